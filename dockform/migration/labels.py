"""Label representation migration: ``{key: value}`` map to ``{label, value}`` set.

The walk is driven by the step's schema descriptor: every ``labels`` map the
descriptor declares is converted, at whatever depth it sits, and every
optional block list on the way that is absent is initialized to ``[]``. A
service's container spec is described with the same block as a bare
container, so both receive the identical migration.
"""

from typing import Any

from ..errors import MigrationError
from ..labels import LabelRecord, map_to_records
from ..models import ResourceKind
from .schema import AttrType, Block, SchemaDescriptor
from .values import expect_list, expect_map, first_block, join_path


LABELS = "labels"


def replace_labels_map_with_set(raw: dict[str, Any], path: str = "") -> dict[str, Any]:
    """Replace ``raw["labels"]`` (map or absent) with a list of records.

    Already list-shaped labels are validated and left alone.
    """
    key = join_path(path, LABELS)
    labels = raw.get(LABELS)
    if labels is None:
        raw[LABELS] = []
    elif isinstance(labels, dict):
        raw[LABELS] = map_to_records(labels)
    elif isinstance(labels, list):
        for index, record in enumerate(labels):
            LabelRecord.from_raw(record, join_path(key, index))
    else:
        raise MigrationError(f"expected labels as a map, got {type(labels).__name__}", key)
    return raw


def _migrate_block(raw: dict[str, Any], block: Block, path: str) -> None:
    for name, attr in block.attributes.items():
        if name == LABELS and attr.type == AttrType.MAP:
            replace_labels_map_with_set(raw, path)
            continue

        if not attr.is_block_list:
            continue

        key = join_path(path, name)
        items = raw.get(name)
        if items is None:
            if attr.required:
                raise MigrationError("required block is missing", key)
            raw[name] = []
            continue

        items = expect_list(items, key)
        if attr.required and not items:
            raise MigrationError("required block is missing", key)
        for index, item in enumerate(items):
            _migrate_block(expect_map(item, join_path(key, index)), attr.elem, join_path(key, index))


def migrate_container_labels(raw: dict[str, Any], descriptor: SchemaDescriptor, path: str = "") -> dict[str, Any]:
    """Container (or container spec) labels, plus the labels of every volume mount."""
    _migrate_block(raw, descriptor.block, path)
    return raw


def migrate_service_labels(raw: dict[str, Any], descriptor: SchemaDescriptor) -> dict[str, Any]:
    """Service labels, plus the embedded container spec's labels and mounts."""
    replace_labels_map_with_set(raw)

    task_spec = first_block(raw, "task_spec", "", required=True)
    container_spec = first_block(task_spec, "container_spec", "task_spec.0", required=True)
    container_descriptor = SchemaDescriptor(
        kind=ResourceKind.CONTAINER,
        version=descriptor.version,
        block=descriptor.block.nested("task_spec", "container_spec"),
    )
    migrate_container_labels(container_spec, container_descriptor, "task_spec.0.container_spec.0")
    return raw


def migrate_labels_only(raw: dict[str, Any], descriptor: SchemaDescriptor) -> dict[str, Any]:
    """Top-level labels of a network, volume or secret."""
    return replace_labels_map_with_set(raw)
