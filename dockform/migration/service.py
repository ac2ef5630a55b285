"""Service v1 to v2: single-map blocks become single-element lists."""

from typing import Any

from ..errors import MigrationError
from .schema import SchemaDescriptor
from .values import first_block, join_path


def _wrap_single_block(parent: dict[str, Any], key: str, path: str) -> None:
    value = parent.get(key)
    if value is None:
        parent[key] = []
    elif isinstance(value, dict):
        parent[key] = [value]
    elif isinstance(value, list):
        # already wrapped
        if len(value) > 1:
            raise MigrationError("expected at most one block", join_path(path, key))
    else:
        raise MigrationError(f"expected a map, got {type(value).__name__}", join_path(path, key))


def upgrade_service_v1(raw: dict[str, Any], descriptor: SchemaDescriptor) -> dict[str, Any]:
    """Wrap ``task_spec.0.restart_policy`` and ``auth`` into lists."""
    task_spec = first_block(raw, "task_spec", "", required=True)
    _wrap_single_block(task_spec, "restart_policy", "task_spec.0")
    _wrap_single_block(raw, "auth", "")
    return raw
