"""
Reconciler base - one mutating client call followed by a convergence run.
"""

import logging
import threading
from collections.abc import Iterable
from typing import Any

from ..convergence import ConvergencePoller, ProbeFunction
from ..migration import MigrationPipeline, build_default_pipeline
from ..models import ManagedResource, ResourceKind
from ..settings import DockformSettings, get_settings

logger = logging.getLogger(__name__)

# State tags shared by the probes.
PENDING = "pending"
ALL_FIELDS = "all_fields"
REMOVED = "removed"


class Reconciler:
    """
    Common plumbing for the kind-specific reconcilers.

    Subclasses set ``kind`` and build their probes; this class owns the
    poller construction and the success-path state replacement.
    """

    kind: ResourceKind

    def __init__(
        self,
        client: Any,
        settings: DockformSettings | None = None,
        pipeline: MigrationPipeline | None = None,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.pipeline = pipeline or build_default_pipeline()

    def converge(
        self,
        resource_id: str,
        probe: ProbeFunction,
        pending: Iterable[str],
        target: Iterable[str],
        timeout: float,
        delay: float,
        min_interval: float,
        cancel: threading.Event | None = None,
    ) -> Any:
        poller = ConvergencePoller(
            resource_id,
            pending=pending,
            target=target,
            timeout=timeout,
            delay=delay,
            min_interval=min_interval,
            max_interval=max(self.settings.max_poll_interval, min_interval),
        )
        return poller.wait(probe, cancel=cancel)

    def store(self, resource: ManagedResource, attributes: dict[str, Any]) -> None:
        """Replace the resource's whole state bag with freshly read attributes."""
        resource.replace_state(attributes, self.pipeline.current_version(self.kind))
        logger.debug(f"Stored {self.kind.value} '{resource.id}' state: {attributes!r}")

    def forget(self, resource: ManagedResource) -> None:
        logger.warning(f"{self.kind.value.capitalize()} '{resource.id}' not found, removing from state")
        resource.clear_id()
