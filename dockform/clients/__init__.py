"""
Dockform clients - narrow capabilities over the Docker daemon.
"""

from .base import ResourceClient, connect, translate_errors
from .docker_api import DockerNetworkClient, DockerServiceClient, DockerVolumeClient

__all__ = [
    "ResourceClient",
    "connect",
    "translate_errors",
    "DockerNetworkClient",
    "DockerServiceClient",
    "DockerVolumeClient",
]
