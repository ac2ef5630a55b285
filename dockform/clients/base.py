"""
Client capabilities the reconcilers consume.

Every client exposes the same narrow surface: create, inspect, remove and
list. Inspect results are the daemon's JSON objects as plain dicts. Errors
are ResourceClientError (or ResourceNotFoundError) carrying the daemon's
message verbatim.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol, runtime_checkable

import docker
import docker.errors

from ..errors import ResourceClientError, ResourceNotFoundError
from ..settings import DockformSettings, get_settings

logger = logging.getLogger(__name__)


@runtime_checkable
class ResourceClient(Protocol):
    """Narrow capability over one kind of externally-owned object."""

    def create(self, spec: Any) -> str:
        ...

    def inspect(self, resource_id: str) -> dict[str, Any]:
        ...

    def remove(self, resource_id: str) -> None:
        ...

    def list(self, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        ...


def _explanation(error: docker.errors.DockerException) -> str:
    explanation = getattr(error, "explanation", None)
    if explanation:
        return explanation if isinstance(explanation, str) else str(explanation)
    return str(error)


@contextmanager
def translate_errors(resource_id: str = "") -> Iterator[None]:
    """Map docker SDK exceptions onto the Dockform error taxonomy."""
    try:
        yield
    except docker.errors.NotFound as e:
        raise ResourceNotFoundError(resource_id, _explanation(e)) from e
    except docker.errors.DockerException as e:
        raise ResourceClientError(_explanation(e)) from e


def connect(settings: DockformSettings | None = None) -> docker.DockerClient:
    """Docker client for ``settings.docker_host``, or the environment's default."""
    settings = settings or get_settings()
    with translate_errors():
        if settings.docker_host:
            logger.debug(f"Connecting to Docker at {settings.docker_host}")
            return docker.DockerClient(base_url=settings.docker_host)
        return docker.from_env()
