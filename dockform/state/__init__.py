"""
Dockform state - persisted records of managed resources.
"""

from .store import StateStore

__all__ = ["StateStore"]
