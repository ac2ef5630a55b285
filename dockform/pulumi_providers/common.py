"""Helpers shared by the dynamic providers."""

from typing import Any

from pydantic import BaseModel

from ..migration import MigrationPipeline
from ..models import ManagedResource, PersistedState, ResourceKind

# Output properties the providers add next to the user inputs.
STATE_OUTPUTS = ("attributes", "schema_version")


def spec_from_props(model: type[BaseModel], props: dict[str, Any]) -> Any:
    """Build a spec model from provider props, ignoring computed outputs."""
    return model.model_validate({k: v for k, v in props.items() if k in model.model_fields})


def outputs(props: dict[str, Any], resource: ManagedResource) -> dict[str, Any]:
    inputs = {k: v for k, v in props.items() if k not in STATE_OUTPUTS}
    return {
        **inputs,
        "attributes": resource.state.attributes,
        "schema_version": resource.state.schema_version,
    }


def managed_from_props(
    kind: ResourceKind,
    resource_id: str,
    props: dict[str, Any],
    pipeline: MigrationPipeline,
) -> ManagedResource:
    """Rebuild the ManagedResource a previous create/read stored in props.

    State written by an older release is upgraded on the way in.
    """
    resource = ManagedResource(kind=kind, id=resource_id)
    if props.get("attributes"):
        state = PersistedState(
            schema_version=props.get("schema_version") or 0,
            attributes=dict(props["attributes"]),
        )
        resource.state = pipeline.upgrade(kind, state)
    return resource


def changed_inputs(old_props: dict[str, Any], new_props: dict[str, Any]) -> list[str]:
    keys = (set(old_props) | set(new_props)) - set(STATE_OUTPUTS)
    return sorted(k for k in keys if old_props.get(k) != new_props.get(k))
