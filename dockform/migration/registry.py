"""Default migration chain and the current schema version of every kind."""

from ..models import ResourceKind
from .descriptors import (
    CONTAINER_V0,
    CONTAINER_V1,
    NETWORK_V0,
    SECRET_V0,
    SERVICE_V0,
    SERVICE_V1,
    VOLUME_V0,
)
from .labels import migrate_container_labels, migrate_labels_only, migrate_service_labels
from .pipeline import MigrationPipeline, MigrationStep
from .ports import update_ports_order
from .service import upgrade_service_v1

CURRENT_SCHEMA_VERSIONS = {
    ResourceKind.CONTAINER: 2,
    ResourceKind.NETWORK: 1,
    ResourceKind.VOLUME: 1,
    ResourceKind.SECRET: 1,
    ResourceKind.SERVICE: 2,
    ResourceKind.CONFIG: 0,
}

DEFAULT_STEPS = (
    MigrationStep(update_ports_order, CONTAINER_V0, "sort ports by internal port"),
    MigrationStep(migrate_container_labels, CONTAINER_V1, "labels map to label set"),
    MigrationStep(migrate_labels_only, NETWORK_V0, "labels map to label set"),
    MigrationStep(migrate_labels_only, VOLUME_V0, "labels map to label set"),
    MigrationStep(migrate_labels_only, SECRET_V0, "labels map to label set"),
    MigrationStep(migrate_service_labels, SERVICE_V0, "labels map to label set"),
    MigrationStep(upgrade_service_v1, SERVICE_V1, "wrap restart_policy and auth"),
)


def build_default_pipeline() -> MigrationPipeline:
    """Pipeline with every shipped migration step registered."""
    return MigrationPipeline(CURRENT_SCHEMA_VERSIONS, DEFAULT_STEPS)
