"""Pulumi dynamic provider for Docker networks."""

from typing import Any, Optional

import pulumi
from pulumi import Input, Output
from pulumi.dynamic import CreateResult, DiffResult, ReadResult, ResourceProvider

from ..clients import DockerNetworkClient, connect
from ..models import ResourceKind
from ..reconcilers import NetworkReconciler
from ..specs import NetworkSpec
from .common import changed_inputs, managed_from_props, outputs, spec_from_props


class NetworkProvider(ResourceProvider):
    """Dynamic provider for networks.

    Docker cannot change a network in place, so every input change is a
    replacement.
    """

    def _reconciler(self) -> NetworkReconciler:
        return NetworkReconciler(DockerNetworkClient(connect()))

    def create(self, props: dict[str, Any]) -> CreateResult:
        """
        Create the network and wait until it exposes all fields.

        Args:
            props: Resource properties

        Returns:
            CreateResult with the network ID and outputs
        """
        spec = spec_from_props(NetworkSpec, props)
        resource = self._reconciler().create(spec)
        return CreateResult(id_=resource.id, outs=outputs(props, resource))

    def read(self, id: str, props: dict[str, Any]) -> ReadResult:
        """
        Refresh the network from the daemon.

        Args:
            id: Network ID
            props: Current resource properties

        Returns:
            ReadResult with refreshed outputs, or an empty ID when the network is gone
        """
        reconciler = self._reconciler()
        resource = managed_from_props(ResourceKind.NETWORK, id, props, reconciler.pipeline)
        reconciler.read(resource)
        if not resource.exists:
            return ReadResult(id_="", outs={})
        return ReadResult(id_=resource.id, outs=outputs(props, resource))

    def delete(self, id: str, props: dict[str, Any]) -> None:
        """
        Remove the network and wait until it is gone.

        Args:
            id: Network ID
            props: Current resource properties
        """
        reconciler = self._reconciler()
        reconciler.remove(managed_from_props(ResourceKind.NETWORK, id, props, reconciler.pipeline))

    def diff(self, id: str, old_props: dict[str, Any], new_props: dict[str, Any]) -> DiffResult:
        """
        Compare inputs to decide between update and replacement.

        Args:
            id: Network ID
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


class Network(pulumi.dynamic.Resource):
    """
    A Docker network managed through the convergence engine.

    Args:
        name: Resource name
        network_name: Name of the network in Docker
        driver: Network driver (default: "bridge")
        options: Driver options
        labels: Network labels
        internal: Restrict external access
        attachable: Allow standalone containers to attach (swarm networks)
        opts: Standard Pulumi resource options
    """

    attributes: Output[dict]
    schema_version: Output[int]

    def __init__(
        self,
        name: str,
        network_name: Input[str],
        driver: Input[str] = "bridge",
        options: Optional[Input[dict]] = None,
        labels: Optional[Input[dict]] = None,
        internal: Input[bool] = False,
        attachable: Input[bool] = False,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__(
            NetworkProvider(),
            name,
            {
                "name": network_name,
                "driver": driver,
                "options": options or {},
                "labels": labels or {},
                "internal": internal,
                "attachable": attachable,
                "attributes": None,
                "schema_version": None,
            },
            opts,
        )
