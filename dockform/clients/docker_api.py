"""
Docker SDK backed clients for networks, volumes and swarm services.

All calls go through the low-level API client so inspect results keep the
daemon's JSON shape (``Id``, ``Scope``, ``Options``...).
"""

from __future__ import annotations

import logging
from typing import Any

import docker
import docker.types
import requests

from ..durations import parse_duration
from ..errors import ResourceClientError
from ..specs import NetworkSpec, ServiceSpec, VolumeSpec
from .base import translate_errors

logger = logging.getLogger(__name__)

_NANOSECONDS = 1_000_000_000


def _nanoseconds(duration: str | None) -> int:
    return int(parse_duration(duration) * _NANOSECONDS) if duration else 0


class DockerNetworkClient:
    """Networks through ``/networks``."""

    def __init__(self, client: docker.DockerClient):
        self.api = client.api

    def create(self, spec: NetworkSpec) -> str:
        ipam = None
        if spec.ipam_config or spec.ipam_driver != "default":
            ipam = docker.types.IPAMConfig(
                driver=spec.ipam_driver,
                pool_configs=[
                    docker.types.IPAMPool(
                        subnet=pool.subnet,
                        iprange=pool.ip_range,
                        gateway=pool.gateway,
                        aux_addresses=pool.aux_address or None,
                    )
                    for pool in spec.ipam_config
                ],
            )

        with translate_errors(spec.name):
            response = self.api.create_network(
                spec.name,
                driver=spec.driver,
                options=spec.options or None,
                ipam=ipam,
                check_duplicate=spec.check_duplicate,
                internal=spec.internal,
                labels=spec.labels or None,
                enable_ipv6=spec.ipv6,
                attachable=spec.attachable,
                ingress=spec.ingress,
            )
        if response.get("Warning"):
            logger.warning(f"Network '{spec.name}' created with warning: {response['Warning']}")
        return response["Id"]

    def inspect(self, resource_id: str) -> dict[str, Any]:
        with translate_errors(resource_id):
            return self.api.inspect_network(resource_id)

    def remove(self, resource_id: str) -> None:
        with translate_errors(resource_id):
            self.api.remove_network(resource_id)

    def list(self, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        with translate_errors():
            return self.api.networks(filters=filters)


class DockerVolumeClient:
    """Volumes through ``/volumes``. Volumes are addressed by name."""

    def __init__(self, client: docker.DockerClient):
        self.api = client.api

    def create(self, spec: VolumeSpec) -> str:
        with translate_errors(spec.name):
            response = self.api.create_volume(
                name=spec.name,
                driver=spec.driver,
                driver_opts=spec.driver_opts or None,
                labels=spec.labels or None,
            )
        return response["Name"]

    def inspect(self, resource_id: str) -> dict[str, Any]:
        with translate_errors(resource_id):
            return self.api.inspect_volume(resource_id)

    def remove(self, resource_id: str, force: bool = True) -> None:
        with translate_errors(resource_id):
            self.api.remove_volume(resource_id, force=force)

    def list(self, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        with translate_errors():
            response = self.api.volumes(filters=filters)
        return response.get("Volumes") or []


class DockerServiceClient:
    """Swarm services, plus the tasks, nodes and containers they run on."""

    def __init__(self, client: docker.DockerClient):
        self.api = client.api

    def _task_template(self, spec: ServiceSpec) -> docker.types.TaskTemplate:
        container_spec = docker.types.ContainerSpec(
            spec.image,
            command=spec.command,
            args=spec.args,
            env=spec.env or None,
            labels=spec.container_labels or None,
            stop_grace_period=_nanoseconds(spec.stop_grace_period) or None,
        )
        restart_policy = None
        if spec.restart_policy is not None:
            restart_policy = docker.types.RestartPolicy(
                condition=spec.restart_policy.condition,
                delay=_nanoseconds(spec.restart_policy.delay),
                max_attempts=spec.restart_policy.max_attempts,
                window=_nanoseconds(spec.restart_policy.window),
            )
        return docker.types.TaskTemplate(
            container_spec,
            restart_policy=restart_policy,
            networks=spec.networks or None,
        )

    def _service_kwargs(self, spec: ServiceSpec) -> dict[str, Any]:
        if spec.mode == "global":
            mode = docker.types.ServiceMode("global")
        else:
            mode = docker.types.ServiceMode("replicated", replicas=spec.replicas)

        endpoint_spec = None
        if spec.ports or spec.endpoint_mode:
            ports = []
            for port in spec.ports:
                config = {
                    "TargetPort": port.target_port,
                    "Protocol": port.protocol,
                    "PublishMode": port.publish_mode,
                }
                if port.published_port is not None:
                    config["PublishedPort"] = port.published_port
                ports.append(config)
            endpoint_spec = docker.types.EndpointSpec(mode=spec.endpoint_mode, ports=ports or None)

        return {
            "name": spec.name,
            "labels": spec.labels or None,
            "mode": mode,
            "endpoint_spec": endpoint_spec,
        }

    def create(self, spec: ServiceSpec) -> str:
        with translate_errors(spec.name):
            response = self.api.create_service(self._task_template(spec), **self._service_kwargs(spec))
        return response["ID"]

    def update(self, resource_id: str, spec: ServiceSpec) -> None:
        with translate_errors(resource_id):
            current = self.api.inspect_service(resource_id)
            response = self.api.update_service(
                resource_id,
                current["Version"]["Index"],
                task_template=self._task_template(spec),
                **self._service_kwargs(spec),
            )
        for warning in (response or {}).get("Warnings") or []:
            logger.info(f"Warning while updating service '{resource_id}': {warning}")

    def inspect(self, resource_id: str) -> dict[str, Any]:
        with translate_errors(resource_id):
            return self.api.inspect_service(resource_id)

    def remove(self, resource_id: str) -> None:
        with translate_errors(resource_id):
            self.api.remove_service(resource_id)

    def list(self, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        with translate_errors():
            return self.api.services(filters=filters)

    def tasks(self, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        with translate_errors():
            return self.api.tasks(filters=filters)

    def inspect_task(self, task_id: str) -> dict[str, Any]:
        with translate_errors(task_id):
            return self.api.inspect_task(task_id)

    def nodes(self) -> list[dict[str, Any]]:
        with translate_errors():
            return self.api.nodes()

    def wait_container_removed(self, container_id: str, timeout: float) -> int | None:
        """Block until the container is removed or ``timeout`` elapses.

        Returns:
            The exit code the daemon reported, if any
        """
        try:
            with translate_errors(container_id):
                result = self.api.wait(container_id, timeout=timeout, condition="removed")
        except requests.exceptions.RequestException as e:
            raise ResourceClientError(str(e)) from e
        return (result or {}).get("StatusCode")

    def remove_container(self, container_id: str) -> None:
        with translate_errors(container_id):
            self.api.remove_container(container_id, v=True, force=True)
