"""
Pytest configuration and fixtures for Dockform tests.
"""

import tempfile
from pathlib import Path

import pytest

from dockform.settings import DockformSettings


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def fast_settings(temp_dir):
    """Settings with convergence timings short enough for unit tests."""
    return DockformSettings(
        state_file=temp_dir / "state.pkl",
        network_timeout=2.0,
        network_min_interval=0.0,
        network_delay=0.0,
        volume_timeout=2.0,
        volume_min_interval=0.0,
        volume_delay=0.0,
        service_read_timeout=2.0,
        service_read_delay=0.0,
        service_min_interval=0.0,
        service_update_delay=0.0,
        max_poll_interval=0.01,
    )
