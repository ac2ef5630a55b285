"""
Swarm service reconciler.

After a create or update the service is only done once every replica slot
on an active node runs a task in the desired state. Progress is tracked per
slot; when the same slot carries several tasks (restarts, start-first
updates) the one with the lowest desired state wins.
"""

import logging
import threading
from datetime import timedelta
from typing import Any

from ..durations import format_duration, parse_duration
from ..errors import (
    ConfigurationError,
    ConvergenceCancelledError,
    ConvergenceTimeoutError,
    DockformError,
    ResourceClientError,
    ServiceConvergenceError,
    ServiceDidNotConvergeError,
)
from ..labels import LabelSet
from ..models import ManagedResource, ResourceKind
from ..specs import ConvergeConfig, ServiceSpec
from .base import ALL_FIELDS, PENDING, REMOVED, Reconciler
from .transient import contains_ignorable_error_message

logger = logging.getLogger(__name__)

# Task states in lifecycle order; anything past "running" is terminal.
NUMBERED_STATES = {
    "new": 1,
    "allocated": 2,
    "pending": 3,
    "assigned": 4,
    "accepted": 5,
    "preparing": 6,
    "ready": 7,
    "starting": 8,
    "running": 9,
    "complete": 10,
    "shutdown": 11,
    "failed": 12,
    "rejected": 13,
}

CREATE_PENDING_STATES = (
    "new", "allocated", "pending", "assigned", "accepted",
    "preparing", "ready", "starting", "creating", "paused",
)
CREATE_TARGET_STATES = ("running", "complete")
UPDATE_PENDING_STATES = ("creating", "updating")
UPDATE_TARGET_STATES = ("completed",)

NODE_STATE_DOWN = "down"


def terminal_state(state: str) -> bool:
    return NUMBERED_STATES.get(state, 0) > NUMBERED_STATES["running"]


def _task_state(task: dict[str, Any]) -> str:
    return (task.get("Status") or {}).get("State", "")


class ReplicatedProgressTracker:
    """Counts running replicas across successive probes of one run."""

    def __init__(self):
        self.slot_map: dict[int, int] = {}
        self.done = False

    def tasks_by_slot(self, tasks: list[dict[str, Any]], active_nodes: set[str]) -> dict[int, dict[str, Any]]:
        by_slot: dict[int, dict[str, Any]] = {}
        for task in tasks:
            desired = NUMBERED_STATES.get(task.get("DesiredState", ""), 0)
            observed = NUMBERED_STATES.get(_task_state(task), 0)
            if desired == 0 or observed == 0:
                continue

            slot = task.get("Slot", 0)
            existing = by_slot.get(slot)
            if existing is not None:
                existing_desired = NUMBERED_STATES[existing["DesiredState"]]
                if existing_desired < desired:
                    continue
                if existing_desired == desired and NUMBERED_STATES[_task_state(existing)] <= observed:
                    continue

            node_id = task.get("NodeID", "")
            if node_id and node_id not in active_nodes:
                continue
            by_slot[slot] = task
        return by_slot

    def update(
        self,
        service: dict[str, Any],
        tasks: list[dict[str, Any]],
        active_nodes: set[str],
        rollback: bool = False,
    ) -> bool:
        """Whether as many tasks run as the service has replicas.

        Raises:
            ServiceConvergenceError: the service has no replica count
        """
        replicated = ((service.get("Spec") or {}).get("Mode") or {}).get("Replicated") or {}
        replicas = replicated.get("Replicas")
        if replicas is None:
            raise ServiceConvergenceError("no replica count")

        by_slot = self.tasks_by_slot(tasks, active_nodes)

        if self.done and any(_task_state(task) != "running" for task in by_slot.values()):
            self.done = False

        running = 0
        for slot, task in by_slot.items():
            self.slot_map.setdefault(slot, len(self.slot_map) + 1)
            if not terminal_state(task.get("DesiredState", "")) and _task_state(task) == "running":
                running += 1

        if not self.done:
            logger.info(f"... progress: [{running}/{replicas}] - rollback: {rollback}")
            if running == replicas:
                logger.info(f"DONE: all {running} replicas running")
                self.done = True

        return running == replicas


def _first(items: list[Any] | None) -> dict[str, Any]:
    return items[0] if items else {}


def _duration(nanoseconds: int | None) -> str:
    return format_duration(nanoseconds / 1_000_000_000) if nanoseconds else ""


def service_attributes(service: dict[str, Any]) -> dict[str, Any]:
    """Current-schema attributes from a service inspect result."""
    spec = service.get("Spec") or {}
    template = spec.get("TaskTemplate") or {}
    container = template.get("ContainerSpec") or {}
    restart = template.get("RestartPolicy")
    mode = spec.get("Mode") or {}

    endpoint = service.get("Endpoint") or {}
    endpoint_spec = endpoint.get("Spec") if (endpoint.get("Spec") or {}).get("Mode") else spec.get("EndpointSpec")
    endpoint_spec = endpoint_spec or {}

    if "Global" in mode:
        mode_attributes = [{"global": True, "replicated": []}]
    else:
        replicas = (mode.get("Replicated") or {}).get("Replicas", 0)
        mode_attributes = [{"global": False, "replicated": [{"replicas": replicas}]}]

    return {
        "name": spec.get("Name", ""),
        "labels": LabelSet.from_map(spec.get("Labels")).to_records(),
        "task_spec": [{
            "container_spec": [{
                "image": container.get("Image", ""),
                "command": list(container.get("Command") or []),
                "args": list(container.get("Args") or []),
                "env": sorted(container.get("Env") or []),
                "labels": LabelSet.from_map(container.get("Labels")).to_records(),
                "mounts": [],
                "stop_grace_period": _duration(container.get("StopGracePeriod")),
            }],
            "restart_policy": [] if restart is None else [{
                "condition": restart.get("Condition", ""),
                "delay": _duration(restart.get("Delay")),
                "max_attempts": restart.get("MaxAttempts", 0),
                "window": _duration(restart.get("Window")),
            }],
            "networks": sorted(n.get("Target", "") for n in template.get("Networks") or []),
        }],
        "mode": mode_attributes,
        "endpoint_spec": [{
            "mode": endpoint_spec.get("Mode", ""),
            "ports": [
                {
                    "target_port": port.get("TargetPort", 0),
                    "published_port": port.get("PublishedPort", 0),
                    "protocol": port.get("Protocol", "tcp"),
                    "publish_mode": port.get("PublishMode", "ingress"),
                }
                for port in endpoint_spec.get("Ports") or []
            ],
        }],
        "auth": [],
    }


def stop_grace_period(resource: ManagedResource) -> str:
    task_spec = _first(resource.state.get("task_spec"))
    container_spec = _first(task_spec.get("container_spec"))
    return container_spec.get("stop_grace_period") or ""


class ServiceReconciler(Reconciler):
    """Create, update, read and delete swarm services."""

    kind = ResourceKind.SERVICE

    def active_nodes(self) -> set[str]:
        return {
            node["ID"]
            for node in self.client.nodes()
            if (node.get("Status") or {}).get("State") != NODE_STATE_DOWN
        }

    def _running_tasks(self, service_id: str) -> list[dict[str, Any]]:
        return self.client.tasks(filters={"service": service_id, "desired-state": "running"})

    def create_probe(self, service_id: str):
        tracker = ReplicatedProgressTracker()

        def probe() -> tuple[Any, str]:
            service = self.client.inspect(service_id)
            tasks = self._running_tasks(service_id)
            if tracker.update(service, tasks, self.active_nodes(), rollback=False):
                return service_id, "running"
            return service_id, "creating"

        return probe

    def update_probe(self, service_id: str):
        tracker = ReplicatedProgressTracker()

        def probe() -> tuple[Any, str]:
            service = self.client.inspect(service_id)
            rollback = False

            update_status = service.get("UpdateStatus")
            if update_status:
                state = update_status.get("State", "")
                message = update_status.get("Message", "")
                logger.debug(f"update status: {state}")
                if state == "completed":
                    return service_id, "completed"
                if state == "rollback_started":
                    rollback = True
                elif state == "rollback_completed":
                    raise ServiceConvergenceError(f"service rollback completed: {message}")
                elif state == "paused":
                    raise ServiceConvergenceError(f"service update paused: {message}")
                elif state == "rollback_paused":
                    raise ServiceConvergenceError(f"service rollback paused: {message}")

            tasks = self._running_tasks(service_id)
            if tracker.update(service, tasks, self.active_nodes(), rollback=rollback):
                if rollback:
                    message = (update_status or {}).get("Message", "")
                    raise ServiceConvergenceError(f"service rollback completed: {message}")
                return service_id, "completed"
            return service_id, "updating"

        return probe

    def read_probe(self, resource: ManagedResource):
        def probe() -> tuple[Any, str]:
            found = self.find(resource.id, resource.state.get("name", ""))
            if found is None:
                return None, REMOVED

            service = self.client.inspect(found["ID"])
            endpoint_mode = ((service.get("Endpoint") or {}).get("Spec") or {}).get("Mode")
            spec_mode = (((service.get("Spec") or {}).get("EndpointSpec")) or {}).get("Mode")
            if not endpoint_mode and not spec_mode:
                logger.debug(f"Service {found['ID']} does not expose endpoint spec yet")
                return service, PENDING
            return service, ALL_FIELDS

        return probe

    def find(self, service_id: str, name: str) -> dict[str, Any] | None:
        """The listed service whose id or name matches."""
        for service in self.client.list():
            if service.get("ID") == service_id or (name and (service.get("Spec") or {}).get("Name") == name):
                return service
        return None

    def _wait_converged(
        self,
        service_id: str,
        probe,
        config: ConvergeConfig,
        pending,
        target,
        delay: float,
        cancel: threading.Event | None,
    ) -> None:
        timeout = config.timeout_seconds
        try:
            self.converge(
                service_id,
                probe,
                pending=pending,
                target=target,
                timeout=timeout,
                delay=delay,
                min_interval=min(self.settings.service_min_interval, timeout),
                cancel=cancel,
            )
        except ConvergenceTimeoutError as e:
            raise ServiceDidNotConvergeError(
                service_id, e.last_state, timedelta(seconds=timeout), target
            ) from e

    def create(self, spec: ServiceSpec, cancel: threading.Event | None = None) -> ManagedResource:
        service_id = self.client.create(spec)
        logger.info(f"Created service '{spec.name}' ({service_id})")

        if spec.converge_config is not None:
            config = spec.converge_config
            logger.info(f"Waiting for Service '{service_id}' to be created with timeout: {config.timeout}")
            try:
                self._wait_converged(
                    service_id,
                    self.create_probe(service_id),
                    config,
                    CREATE_PENDING_STATES,
                    CREATE_TARGET_STATES,
                    delay=config.delay_seconds,
                    cancel=cancel,
                )
            except ConvergenceCancelledError:
                raise
            except DockformError:
                logger.info(f"Service '{service_id}' did not converge, deleting it")
                self.delete_service(service_id, spec.name, spec.stop_grace_period or "")
                raise

        resource = ManagedResource(kind=self.kind)
        resource.assign_id(service_id)
        resource.state.attributes["name"] = spec.name
        return self.read(resource, cancel=cancel)

    def update(
        self,
        resource: ManagedResource,
        spec: ServiceSpec,
        cancel: threading.Event | None = None,
    ) -> ManagedResource:
        config = spec.converge_config
        if config is not None and self.settings.service_update_delay >= config.timeout_seconds:
            raise ConfigurationError(
                f"service update delay ({format_duration(self.settings.service_update_delay)}) "
                f"must be shorter than converge timeout {config.timeout!r}"
            )

        self.client.update(resource.id, spec)

        if config is not None:
            logger.info(f"Waiting for Service '{resource.id}' to be updated with timeout: {config.timeout}")
            self._wait_converged(
                resource.id,
                self.update_probe(resource.id),
                config,
                UPDATE_PENDING_STATES,
                UPDATE_TARGET_STATES,
                delay=self.settings.service_update_delay,
                cancel=cancel,
            )

        return self.read(resource, cancel=cancel)

    def read(self, resource: ManagedResource, cancel: threading.Event | None = None) -> ManagedResource:
        logger.info(
            f"Waiting for service: '{resource.id}' to expose all fields: "
            f"max '{self.settings.service_read_timeout} seconds'"
        )
        service = self.converge(
            resource.id,
            self.read_probe(resource),
            pending=[PENDING],
            target=[ALL_FIELDS, REMOVED],
            timeout=self.settings.service_read_timeout,
            delay=self.settings.service_read_delay,
            min_interval=self.settings.service_min_interval,
            cancel=cancel,
        )
        if service is None:
            self.forget(resource)
            return resource

        if resource.id != service["ID"]:
            logger.info(f"Service '{resource.id}' was found by name as '{service['ID']}'")
            resource.clear_id()
            resource.assign_id(service["ID"])
        self.store(resource, service_attributes(service))
        return resource

    def delete(self, resource: ManagedResource) -> None:
        self.delete_service(resource.id, resource.state.get("name", ""), stop_grace_period(resource))
        resource.clear_id()

    def _task_containers(self, name: str) -> list[str]:
        container_ids = []
        for listed in self.client.tasks(filters={"service": name}):
            try:
                task = self.client.inspect_task(listed["ID"])
            except ResourceClientError as e:
                logger.warning(f"Could not inspect task '{listed['ID']}': {e}")
                continue
            status = task.get("Status") or {}
            container_id = (status.get("ContainerStatus") or {}).get("ContainerID", "")
            logger.info(f"Found container ['{status.get('State', '')}'] for destroying: '{container_id}'")
            if container_id.strip() and status.get("State") != "shutdown":
                container_ids.append(container_id)
        return container_ids

    def delete_service(self, service_id: str, name: str, grace_period: str = "") -> None:
        """Remove the service, then reap its task containers within the grace period.

        Raises:
            ResourceClientError: removing the service or one of its
                containers failed for a reason other than the container
                already being gone
        """
        grace_seconds = parse_duration(grace_period) if grace_period else 0.0
        container_ids = self._task_containers(name or service_id) if grace_seconds > 0 else []

        logger.info(f"Deleting service: '{service_id}'")
        self.client.remove(service_id)

        for container_id in container_ids:
            logger.info(f"Waiting for container: '{container_id}' to exit: max {grace_period}")
            try:
                exit_code = self.client.wait_container_removed(container_id, grace_seconds)
                logger.info(f"Container exited with code [{exit_code}]: '{container_id}'")
            except ResourceClientError as e:
                logger.info(f"Stopped waiting for container '{container_id}': {e}")

            logger.info(f"Removing container: '{container_id}'")
            try:
                self.client.remove_container(container_id)
            except ResourceClientError as e:
                if not contains_ignorable_error_message(e):
                    raise
                logger.debug(f"Ignoring container removal error: {e}")
