"""
Dockform state migration - versioned, pure upgrades of persisted resource state.
"""

from .labels import (
    migrate_container_labels,
    migrate_labels_only,
    migrate_service_labels,
    replace_labels_map_with_set,
)
from .pipeline import MigrationPipeline, MigrationStep
from .ports import sort_ports, update_ports_order
from .registry import CURRENT_SCHEMA_VERSIONS, build_default_pipeline
from .schema import SchemaDescriptor
from .service import upgrade_service_v1

__all__ = [
    "MigrationPipeline",
    "MigrationStep",
    "SchemaDescriptor",
    "CURRENT_SCHEMA_VERSIONS",
    "build_default_pipeline",
    "migrate_container_labels",
    "migrate_labels_only",
    "migrate_service_labels",
    "replace_labels_map_with_set",
    "sort_ports",
    "update_ports_order",
    "upgrade_service_v1",
]
