"""
Network reconciler.

A freshly created network is not always inspectable right away, and an
overlay network may show up before its options are populated. Removal can
be refused while containers are still detaching.
"""

import logging
import threading
from typing import Any

from ..errors import ResourceClientError, ResourceNotFoundError
from ..labels import LabelSet
from ..models import ManagedResource, ResourceKind
from ..specs import NetworkSpec
from .base import ALL_FIELDS, PENDING, REMOVED, Reconciler
from .transient import NETWORK_HAS_ACTIVE_ENDPOINTS, contains_message

logger = logging.getLogger(__name__)

OVERLAY_SCOPE = "overlay"


def network_attributes(network: dict[str, Any]) -> dict[str, Any]:
    """Current-schema attributes from a network inspect result."""
    ipam = network.get("IPAM") or {}
    return {
        "name": network.get("Name", ""),
        "driver": network.get("Driver", ""),
        "scope": network.get("Scope", ""),
        "internal": bool(network.get("Internal")),
        "attachable": bool(network.get("Attachable")),
        "ingress": bool(network.get("Ingress")),
        "ipv6": bool(network.get("EnableIPv6")),
        "options": dict(network.get("Options") or {}),
        "labels": LabelSet.from_map(network.get("Labels")).to_records(),
        "ipam_driver": ipam.get("Driver", ""),
        "ipam_config": [
            {
                "subnet": pool.get("Subnet", ""),
                "ip_range": pool.get("IPRange", ""),
                "gateway": pool.get("Gateway", ""),
                "aux_address": dict(pool.get("AuxiliaryAddresses") or {}),
            }
            for pool in ipam.get("Config") or []
        ],
    }


class NetworkReconciler(Reconciler):
    """Create, read and remove networks with convergence."""

    kind = ResourceKind.NETWORK

    def _timings(self) -> dict[str, float]:
        return {
            "timeout": self.settings.network_timeout,
            "delay": self.settings.network_delay,
            "min_interval": self.settings.network_min_interval,
        }

    def read_probe(self, resource: ManagedResource, after_create: bool = False):
        def probe() -> tuple[Any, str]:
            try:
                network = self.client.inspect(resource.id)
            except ResourceNotFoundError:
                if after_create:
                    logger.debug(f"Network '{resource.id}' not visible yet")
                    return None, PENDING
                return None, REMOVED

            if network.get("Scope") == OVERLAY_SCOPE and not network.get("Options"):
                logger.debug(f"Overlay network '{resource.id}' has no options yet")
                return network, PENDING
            return network, ALL_FIELDS

        return probe

    def remove_probe(self, resource: ManagedResource):
        def probe() -> tuple[Any, str]:
            try:
                self.client.inspect(resource.id)
            except ResourceNotFoundError:
                return resource.id, REMOVED

            try:
                self.client.remove(resource.id)
            except ResourceNotFoundError:
                return resource.id, REMOVED
            except ResourceClientError as e:
                if contains_message(e, NETWORK_HAS_ACTIVE_ENDPOINTS, ignore_case=False):
                    logger.debug(f"Network '{resource.id}' still has active endpoints")
                    return resource.id, PENDING
                raise
            return resource.id, REMOVED

        return probe

    def create(self, spec: NetworkSpec, cancel: threading.Event | None = None) -> ManagedResource:
        network_id = self.client.create(spec)
        logger.info(f"Created network '{spec.name}' ({network_id})")
        resource = ManagedResource(kind=self.kind)
        resource.assign_id(network_id)
        self._read(resource, after_create=True, cancel=cancel)
        return resource

    def read(self, resource: ManagedResource, cancel: threading.Event | None = None) -> ManagedResource:
        self._read(resource, after_create=False, cancel=cancel)
        return resource

    def _read(self, resource: ManagedResource, after_create: bool, cancel: threading.Event | None) -> None:
        logger.info(f"Waiting for network '{resource.id}' to expose all fields")
        network = self.converge(
            resource.id,
            self.read_probe(resource, after_create),
            pending=[PENDING],
            target=[ALL_FIELDS, REMOVED],
            cancel=cancel,
            **self._timings(),
        )
        if network is None:
            self.forget(resource)
            return
        self.store(resource, network_attributes(network))

    def remove(self, resource: ManagedResource, cancel: threading.Event | None = None) -> None:
        logger.info(f"Waiting for network '{resource.id}' to be removed")
        self.converge(
            resource.id,
            self.remove_probe(resource),
            pending=[PENDING],
            target=[REMOVED],
            cancel=cancel,
            **self._timings(),
        )
        resource.clear_id()
