"""
Tests for settings loading and validation.
"""

from pathlib import Path

import pytest

import dockform.settings as settings_module
from dockform.errors import ConfigurationError
from dockform.settings import DockformSettings, get_settings, reload_settings


def test_defaults(monkeypatch):
    for name in ("DF_NETWORK_TIMEOUT", "DF_SERVICE_UPDATE_DELAY", "DF_STATE_FILE"):
        monkeypatch.delenv(name, raising=False)

    settings = DockformSettings(_env_file=None)

    assert settings.network_timeout == 30
    assert settings.network_min_interval == 5
    assert settings.network_delay == 2
    assert settings.volume_timeout == 30
    assert settings.service_update_delay == 7
    assert settings.state_file == Path(".dockform/state.pkl")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DF_NETWORK_TIMEOUT", "90")
    monkeypatch.setenv("DF_DOCKER_HOST", "tcp://10.0.0.5:2376")

    settings = DockformSettings(_env_file=None)

    assert settings.network_timeout == 90
    assert settings.docker_host == "tcp://10.0.0.5:2376"


def test_negative_durations_are_rejected():
    with pytest.raises(ConfigurationError, match="volume_delay"):
        DockformSettings(_env_file=None, volume_delay=-1)


def test_reload_replaces_cached_instance(monkeypatch):
    monkeypatch.setattr(settings_module, "_settings", None)
    first = get_settings()
    assert get_settings() is first

    monkeypatch.setenv("DF_LOG_LEVEL", "DEBUG")
    reloaded = reload_settings()

    assert reloaded is not first
    assert reloaded.log_level == "DEBUG"
    assert get_settings() is reloaded
