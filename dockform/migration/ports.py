"""Port order migration for legacy flatmap container states.

Version 0 persisted port mappings in whatever order the Docker API returned
them, which can differ between reads and shows up as a spurious diff. The
step sorts them by internal port and writes them back positionally.
"""

import logging
from typing import Any

from ..errors import MigrationError
from .flatmap import read_attribute, write_attribute
from .schema import SchemaDescriptor
from .values import expect_int, expect_list, expect_map, join_path

logger = logging.getLogger(__name__)

PORTS = "ports"


def sort_ports(ports: list[Any], path: str = PORTS) -> list[dict[str, Any]]:
    """Stable sort of port mappings by internal port, dropping null entries."""
    mapped = []
    for index, port in enumerate(ports):
        if port is None:
            continue
        port = expect_map(port, join_path(path, index))
        if "internal" not in port:
            raise MigrationError("port mapping without 'internal'", join_path(path, index))
        mapped.append((expect_int(port["internal"], join_path(path, index, "internal")), port))
    mapped.sort(key=lambda item: item[0])
    return [port for _, port in mapped]


def update_ports_order(flat: dict[str, Any], descriptor: SchemaDescriptor) -> dict[str, Any]:
    """Container v0 to v1: rewrite ``ports.*`` sorted by internal port.

    Nested v0 states keep ``ports`` as a list under its bare name, a key a
    flatmap never has. That list is sorted in place.
    """
    if not flat:
        logger.debug("Empty container state; nothing to migrate.")
        return flat

    logger.debug(f"Docker Container Attributes before Migration: {flat!r}")

    if PORTS in flat:
        if flat[PORTS] is None:
            return flat
        migrated = {**flat, PORTS: sort_ports(expect_list(flat[PORTS], PORTS))}
        logger.debug(f"Docker Container Attributes after State Migration: {migrated!r}")
        return migrated

    port_attr = descriptor.block.get(PORTS)
    ports = read_attribute(flat, PORTS, port_attr)
    if ports is None:
        return flat

    ports = sort_ports(expect_list(ports, PORTS))
    migrated = write_attribute(flat, PORTS, ports, port_attr)

    logger.debug(f"Docker Container Attributes after State Migration: {migrated!r}")
    return migrated
