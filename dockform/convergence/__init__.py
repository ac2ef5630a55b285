"""Convergence engine: poll an eventually-consistent resource until it settles."""

from .poller import ConvergenceConfig, ConvergencePoller, ProbeFunction, wait_for_state

__all__ = [
    "ConvergenceConfig",
    "ConvergencePoller",
    "ProbeFunction",
    "wait_for_state",
]
