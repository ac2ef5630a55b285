"""Volume reconciler. Volumes are addressed by name."""

import logging
import threading
from typing import Any

from ..errors import ResourceClientError, ResourceNotFoundError
from ..labels import LabelSet
from ..models import ManagedResource, ResourceKind
from ..specs import VolumeSpec
from .base import ALL_FIELDS, PENDING, REMOVED, Reconciler
from .transient import VOLUME_IS_IN_USE, contains_message

logger = logging.getLogger(__name__)

IN_USE = "in_use"


def volume_attributes(volume: dict[str, Any]) -> dict[str, Any]:
    return {
        "name": volume.get("Name", ""),
        "driver": volume.get("Driver", ""),
        "driver_opts": dict(volume.get("Options") or {}),
        "mountpoint": volume.get("Mountpoint", ""),
        "labels": LabelSet.from_map(volume.get("Labels")).to_records(),
    }


class VolumeReconciler(Reconciler):
    """Create, read and remove volumes with convergence."""

    kind = ResourceKind.VOLUME

    def _timings(self) -> dict[str, float]:
        return {
            "timeout": self.settings.volume_timeout,
            "delay": self.settings.volume_delay,
            "min_interval": self.settings.volume_min_interval,
        }

    def read_probe(self, resource: ManagedResource, after_create: bool = False):
        def probe() -> tuple[Any, str]:
            try:
                volume = self.client.inspect(resource.id)
            except ResourceNotFoundError:
                return None, PENDING if after_create else REMOVED
            return volume, ALL_FIELDS

        return probe

    def remove_probe(self, resource: ManagedResource):
        def probe() -> tuple[Any, str]:
            try:
                self.client.remove(resource.id, force=True)
            except ResourceNotFoundError:
                return resource.id, REMOVED
            except ResourceClientError as e:
                if contains_message(e, VOLUME_IS_IN_USE):
                    logger.info(f"Volume '{resource.id}' is in use, retrying")
                    return resource.id, IN_USE
                raise
            return resource.id, REMOVED

        return probe

    def create(self, spec: VolumeSpec, cancel: threading.Event | None = None) -> ManagedResource:
        name = self.client.create(spec)
        logger.info(f"Created volume '{name}'")
        resource = ManagedResource(kind=self.kind)
        resource.assign_id(name)
        self._read(resource, after_create=True, cancel=cancel)
        return resource

    def read(self, resource: ManagedResource, cancel: threading.Event | None = None) -> ManagedResource:
        self._read(resource, after_create=False, cancel=cancel)
        return resource

    def _read(self, resource: ManagedResource, after_create: bool, cancel: threading.Event | None) -> None:
        volume = self.converge(
            resource.id,
            self.read_probe(resource, after_create),
            pending=[PENDING],
            target=[ALL_FIELDS, REMOVED],
            cancel=cancel,
            **self._timings(),
        )
        if volume is None:
            self.forget(resource)
            return
        self.store(resource, volume_attributes(volume))

    def remove(self, resource: ManagedResource, cancel: threading.Event | None = None) -> None:
        logger.info(f"Waiting for volume '{resource.id}' to be removed")
        self.converge(
            resource.id,
            self.remove_probe(resource),
            pending=[IN_USE],
            target=[REMOVED],
            cancel=cancel,
            **self._timings(),
        )
        resource.clear_id()
