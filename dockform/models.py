"""
Pydantic models for resources under Dockform management.

- ResourceKind: the kinds of Docker objects Dockform manages
- PersistedState: the versioned, loosely-typed attribute bag kept per resource
- ManagedResource: one externally-owned object plus its persisted state
"""

import copy
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ResourceKind(str, Enum):
    """Supported resource kinds."""
    CONTAINER = "container"
    NETWORK = "network"
    VOLUME = "volume"
    SERVICE = "service"
    SECRET = "secret"
    CONFIG = "config"


class PersistedState(BaseModel):
    """Attribute bag describing one resource, tagged with its schema version.

    Attributes:
        schema_version: Version of the schema that can interpret ``attributes``
        attributes: Nested JSON-like value (maps, lists, scalars). When
            ``flat`` is True it is a legacy flatmap instead: dotted-path keys
            (``ports.0.internal``) mapping to string values.
        flat: Whether ``attributes`` is still in flatmap form
    """

    schema_version: int = 0
    attributes: dict[str, Any] = Field(default_factory=dict)
    flat: bool = False

    def copy_attributes(self) -> dict[str, Any]:
        """Deep copy of the attributes, safe to hand to a migration step."""
        return copy.deepcopy(self.attributes)

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)


class ManagedResource(BaseModel):
    """One externally-owned Docker object.

    ``id`` is empty until the create call succeeds, is never reassigned
    afterwards and is cleared once a removal reconciliation confirms the
    object is gone.
    """

    kind: ResourceKind
    id: str = ""
    state: PersistedState = Field(default_factory=PersistedState)

    @property
    def exists(self) -> bool:
        return bool(self.id)

    def assign_id(self, resource_id: str) -> None:
        if self.id and self.id != resource_id:
            raise ValueError(
                f"{self.kind.value} already has id '{self.id}', refusing to reassign to '{resource_id}'"
            )
        self.id = resource_id

    def clear_id(self) -> None:
        self.id = ""

    def replace_state(self, attributes: dict[str, Any], schema_version: int) -> None:
        """Swap in a whole new state bag."""
        self.state = PersistedState(
            schema_version=schema_version,
            attributes=attributes,
            flat=False,
        )
