"""Pulumi dynamic providers for Dockform resources."""

from .network import Network, NetworkProvider
from .service import Service, ServiceProvider
from .volume import Volume, VolumeProvider

__all__ = [
    "Network",
    "NetworkProvider",
    "Service",
    "ServiceProvider",
    "Volume",
    "VolumeProvider",
]
