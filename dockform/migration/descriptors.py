"""Historical schema descriptors, one per (kind, version) a migration reads."""

from ..models import ResourceKind
from .schema import (
    Attr,
    AttrType,
    Block,
    SchemaDescriptor,
    block_set,
    blocks,
    boolean,
    integer,
    string,
    string_map,
    string_set,
)

PORT_BLOCK = Block({
    "internal": integer(),
    "external": integer(),
    "ip": string(),
    "protocol": string(),
})

# Mounts with labels stored as a map (before the label set migration).
LEGACY_MOUNT_BLOCK = Block({
    "target": string(),
    "source": string(),
    "type": string(),
    "read_only": boolean(),
    "bind_options": blocks(Block({"propagation": string()})),
    "volume_options": blocks(Block({
        "no_copy": boolean(),
        "labels": string_map(),
        "driver_name": string(),
        "driver_options": string_map(),
    })),
    "tmpfs_options": blocks(Block({
        "size_bytes": integer(),
        "mode": integer(),
    })),
})

# The part of a container that both a bare container and a service's
# container spec share: top-level labels plus mounts.
LEGACY_CONTAINER_SPEC_BLOCK = Block({
    "labels": string_map(),
    "mounts": block_set(LEGACY_MOUNT_BLOCK),
})

CONTAINER_V0 = SchemaDescriptor(
    kind=ResourceKind.CONTAINER,
    version=0,
    flat=True,
    block=Block({
        "ports": blocks(PORT_BLOCK),
    }),
)

CONTAINER_V1 = SchemaDescriptor(
    kind=ResourceKind.CONTAINER,
    version=1,
    block=Block({
        **LEGACY_CONTAINER_SPEC_BLOCK.attributes,
        "ports": blocks(PORT_BLOCK),
        "rm": boolean(),
        "read_only": boolean(),
        "start": boolean(),
        "attach": boolean(),
        "logs": boolean(),
        "must_run": boolean(),
        "publish_all_ports": boolean(),
        "remove_volumes": boolean(),
        "privileged": boolean(),
        "exit_code": integer(),
        "max_retry_count": integer(),
        "destroy_grace_seconds": integer(),
        "memory": integer(),
        "memory_swap": integer(),
        "shm_size": integer(),
        "cpu_shares": integer(),
        "ip_prefix_length": integer(),
        "command": Attr(AttrType.LIST, string()),
        "entrypoint": Attr(AttrType.LIST, string()),
        "dns": string_set(),
        "dns_opts": string_set(),
        "dns_search": string_set(),
        "env": string_set(),
        "links": string_set(),
        "log_opts": string_map(),
        "sysctls": string_map(),
        "ulimit": block_set(Block({
            "name": string(),
            "soft": integer(),
            "hard": integer(),
        })),
        "healthcheck": blocks(Block({
            "test": Attr(AttrType.LIST, string()),
            "interval": string(),
            "timeout": string(),
            "start_period": string(),
            "retries": integer(),
        })),
    }),
)

NETWORK_V0 = SchemaDescriptor(
    kind=ResourceKind.NETWORK,
    version=0,
    block=Block({"labels": string_map()}),
)

VOLUME_V0 = SchemaDescriptor(
    kind=ResourceKind.VOLUME,
    version=0,
    block=Block({"labels": string_map()}),
)

SECRET_V0 = SchemaDescriptor(
    kind=ResourceKind.SECRET,
    version=0,
    block=Block({"labels": string_map()}),
)

SERVICE_V0 = SchemaDescriptor(
    kind=ResourceKind.SERVICE,
    version=0,
    block=Block({
        "labels": string_map(),
        "task_spec": blocks(
            Block({"container_spec": blocks(LEGACY_CONTAINER_SPEC_BLOCK, required=True)}),
            required=True,
        ),
    }),
)

SERVICE_V1 = SchemaDescriptor(
    kind=ResourceKind.SERVICE,
    version=1,
    block=Block({
        "auth": string_map(),
        "task_spec": blocks(
            Block({"restart_policy": string_map()}),
            required=True,
        ),
    }),
)
