"""
Dockform - keep Docker resources and their persisted state converged.

Two pieces do the work:
- a convergence poller that waits out Docker's eventual consistency after
  creating, updating or removing networks, volumes and swarm services
- a migration pipeline that upgrades persisted resource state across
  schema versions without recreating anything
"""

__version__ = "0.1.0"

from .settings import DockformSettings, get_settings, reload_settings

__all__ = [
    "DockformSettings",
    "get_settings",
    "reload_settings",
]
