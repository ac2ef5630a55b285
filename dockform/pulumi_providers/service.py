"""Pulumi dynamic provider for swarm services."""

from typing import Any, Optional

import pulumi
from pulumi import Input, Output
from pulumi.dynamic import CreateResult, DiffResult, ReadResult, ResourceProvider, UpdateResult

from ..clients import DockerServiceClient, connect
from ..models import ResourceKind
from ..reconcilers import ServiceReconciler
from ..specs import ServiceSpec
from .common import changed_inputs, managed_from_props, outputs, spec_from_props


class ServiceProvider(ResourceProvider):
    """Dynamic provider for services.

    Services are updated in place; only a new name forces a replacement.
    """

    def _reconciler(self) -> ServiceReconciler:
        return ServiceReconciler(DockerServiceClient(connect()))

    def _resource(self, reconciler: ServiceReconciler, id: str, props: dict[str, Any]):
        resource = managed_from_props(ResourceKind.SERVICE, id, props, reconciler.pipeline)
        resource.state.attributes.setdefault("name", props.get("name", ""))
        return resource

    def create(self, props: dict[str, Any]) -> CreateResult:
        """
        Create the service and wait until it exposes all fields.

        Args:
            props: Resource properties

        Returns:
            CreateResult with the service ID and outputs
        """
        resource = self._reconciler().create(spec_from_props(ServiceSpec, props))
        return CreateResult(id_=resource.id, outs=outputs(props, resource))

    def read(self, id: str, props: dict[str, Any]) -> ReadResult:
        """
        Refresh the service from the daemon.

        Args:
            id: Service ID
            props: Current resource properties

        Returns:
            ReadResult with refreshed outputs, or an empty ID when the service is gone
        """
        reconciler = self._reconciler()
        resource = reconciler.read(self._resource(reconciler, id, props))
        if not resource.exists:
            return ReadResult(id_="", outs={})
        return ReadResult(id_=resource.id, outs=outputs(props, resource))

    def update(self, id: str, old_props: dict[str, Any], new_props: dict[str, Any]) -> UpdateResult:
        """
        Update the service in place and wait for the rollout.

        Args:
            id: Service ID
            old_props: Current resource properties
            new_props: Desired resource properties

        Returns:
            UpdateResult with refreshed outputs
        """
        reconciler = self._reconciler()
        resource = reconciler.update(
            self._resource(reconciler, id, old_props),
            spec_from_props(ServiceSpec, new_props),
        )
        return UpdateResult(outs=outputs(new_props, resource))

    def delete(self, id: str, props: dict[str, Any]) -> None:
        """
        Remove the service and wait until it is gone.

        Args:
            id: Service ID
            props: Current resource properties
        """
        reconciler = self._reconciler()
        reconciler.delete(self._resource(reconciler, id, props))

    def diff(self, id: str, old_props: dict[str, Any], new_props: dict[str, Any]) -> DiffResult:
        """
        Compare inputs to decide between update and replacement.

        Args:
            id: Service ID
            old_props: Current resource properties
            new_props: Desired resource properties

        Returns:
            DiffResult listing the changed inputs that force a replacement
        """
        changes = changed_inputs(old_props, new_props)
        replaces = [key for key in changes if key == "name"]
        return DiffResult(
            changes=bool(changes),
            replaces=replaces,
            stables=[],
            delete_before_replace=True,
        )


class Service(pulumi.dynamic.Resource):
    """
    A swarm service, optionally waiting for its replicas to converge.

    Args:
        name: Resource name
        service_name: Name of the service in the swarm
        image: Container image
        replicas: Replica count (replicated mode)
        env: Environment variables
        labels: Service labels
        networks: Networks to attach tasks to
        stop_grace_period: Time to wait for task containers on delete (e.g. "10s")
        converge_config: ``{"delay": "7s", "timeout": "3m"}`` to wait for convergence
        opts: Standard Pulumi resource options
    """

    attributes: Output[dict]
    schema_version: Output[int]

    def __init__(
        self,
        name: str,
        service_name: Input[str],
        image: Input[str],
        replicas: Input[int] = 1,
        env: Optional[Input[dict]] = None,
        labels: Optional[Input[dict]] = None,
        networks: Optional[Input[list]] = None,
        stop_grace_period: Optional[Input[str]] = None,
        converge_config: Optional[Input[dict]] = None,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__(
            ServiceProvider(),
            name,
            {
                "name": service_name,
                "image": image,
                "replicas": replicas,
                "env": env or {},
                "labels": labels or {},
                "networks": networks or [],
                "stop_grace_period": stop_grace_period,
                "converge_config": converge_config,
                "attributes": None,
                "schema_version": None,
            },
            opts,
        )
