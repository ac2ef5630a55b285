"""Pulumi dynamic provider for Docker volumes."""

from typing import Any, Optional

import pulumi
from pulumi import Input, Output
from pulumi.dynamic import CreateResult, DiffResult, ReadResult, ResourceProvider

from ..clients import DockerVolumeClient, connect
from ..models import ResourceKind
from ..reconcilers import VolumeReconciler
from ..specs import VolumeSpec
from .common import changed_inputs, managed_from_props, outputs, spec_from_props


class VolumeProvider(ResourceProvider):
    """Dynamic provider for volumes; any input change replaces the volume."""

    def _reconciler(self) -> VolumeReconciler:
        return VolumeReconciler(DockerVolumeClient(connect()))

    def create(self, props: dict[str, Any]) -> CreateResult:
        """
        Create the volume and wait until it exposes all fields.

        Args:
            props: Resource properties

        Returns:
            CreateResult with the volume name as ID and outputs
        """
        resource = self._reconciler().create(spec_from_props(VolumeSpec, props))
        return CreateResult(id_=resource.id, outs=outputs(props, resource))

    def read(self, id: str, props: dict[str, Any]) -> ReadResult:
        """
        Refresh the volume from the daemon.

        Args:
            id: Volume name
            props: Current resource properties

        Returns:
            ReadResult with refreshed outputs, or an empty ID when the volume is gone
        """
        reconciler = self._reconciler()
        resource = managed_from_props(ResourceKind.VOLUME, id, props, reconciler.pipeline)
        reconciler.read(resource)
        if not resource.exists:
            return ReadResult(id_="", outs={})
        return ReadResult(id_=resource.id, outs=outputs(props, resource))

    def delete(self, id: str, props: dict[str, Any]) -> None:
        """
        Remove the volume and wait until it is gone.

        Args:
            id: Volume name
            props: Current resource properties
        """
        reconciler = self._reconciler()
        reconciler.remove(managed_from_props(ResourceKind.VOLUME, id, props, reconciler.pipeline))

    def diff(self, id: str, old_props: dict[str, Any], new_props: dict[str, Any]) -> DiffResult:
        """
        Compare inputs to decide between update and replacement.

        Args:
            id: Volume name
            old_props: Current resource properties
            new_props: Desired resource properties

        Returns:
            DiffResult listing the changed inputs that force a replacement
        """
        replaces = changed_inputs(old_props, new_props)
        return DiffResult(
            changes=bool(replaces),
            replaces=replaces,
            stables=[],
            delete_before_replace=True,
        )


class Volume(pulumi.dynamic.Resource):
    """A Docker volume; removal waits while containers still use it."""

    attributes: Output[dict]
    schema_version: Output[int]

    def __init__(
        self,
        name: str,
        volume_name: Input[str],
        driver: Input[str] = "local",
        driver_opts: Optional[Input[dict]] = None,
        labels: Optional[Input[dict]] = None,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__(
            VolumeProvider(),
            name,
            {
                "name": volume_name,
                "driver": driver,
                "driver_opts": driver_opts or {},
                "labels": labels or {},
                "attributes": None,
                "schema_version": None,
            },
            opts,
        )
