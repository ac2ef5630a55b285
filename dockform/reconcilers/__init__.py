"""
Dockform reconcilers - mutating client calls confirmed by convergence runs.
"""

from .base import ALL_FIELDS, PENDING, REMOVED, Reconciler
from .network import NetworkReconciler
from .service import ReplicatedProgressTracker, ServiceReconciler
from .volume import VolumeReconciler

__all__ = [
    "ALL_FIELDS",
    "PENDING",
    "REMOVED",
    "Reconciler",
    "NetworkReconciler",
    "ReplicatedProgressTracker",
    "ServiceReconciler",
    "VolumeReconciler",
]
