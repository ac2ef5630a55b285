"""
Unit tests for the convergence poller.
"""

import threading
import time
from unittest.mock import Mock

import pytest

from dockform.convergence import ConvergenceConfig, ConvergencePoller, wait_for_state
from dockform.errors import (
    ConfigurationError,
    ConvergenceCancelledError,
    ConvergenceTimeoutError,
    FatalProbeError,
    ResourceClientError,
    TransientStateError,
    UnexpectedStateError,
)


def sequence_probe(*states):
    """Probe returning the given states in order, repeating the last one."""
    calls = []

    def probe():
        state = states[min(len(calls), len(states) - 1)]
        calls.append(state)
        return f"result-{len(calls)}", state

    probe.calls = calls
    return probe


def test_target_on_first_probe_stops_polling():
    probe = Mock(return_value=("net-1", "removed"))
    poller = ConvergencePoller("net-1", pending=["pending"], target=["removed"], timeout=1)

    assert poller.wait(probe) == "net-1"
    assert probe.call_count == 1
    assert poller.last_state == "removed"


def test_removal_pending_twice_then_removed():
    probe = sequence_probe("pending", "pending", "removed")
    poller = ConvergencePoller(
        "net-1",
        pending=["pending"],
        target=["removed"],
        timeout=5,
        delay=0.05,
        min_interval=0.1,
        max_interval=0.1,
    )

    start = time.monotonic()
    result = poller.wait(probe)
    elapsed = time.monotonic() - start

    assert result == "result-3"
    assert probe.calls == ["pending", "pending", "removed"]
    assert elapsed >= 0.25
    assert elapsed < 2


def test_fatal_error_on_first_probe_is_surfaced_verbatim():
    probe = Mock(side_effect=ResourceClientError("permission denied"))
    poller = ConvergencePoller("net-1", pending=["pending"], target=["removed"], timeout=5)

    with pytest.raises(FatalProbeError) as exc_info:
        poller.wait(probe)

    assert str(exc_info.value) == "permission denied"
    assert isinstance(exc_info.value.cause, ResourceClientError)
    assert probe.call_count == 1


def test_timeout_never_before_deadline():
    probe = sequence_probe("pending")
    poller = ConvergencePoller(
        "vol-1", pending=["pending"], target=["removed"], timeout=0.3, max_interval=0.05
    )

    start = time.monotonic()
    with pytest.raises(ConvergenceTimeoutError) as exc_info:
        poller.wait(probe)
    elapsed = time.monotonic() - start

    assert elapsed >= 0.3
    assert exc_info.value.resource_id == "vol-1"
    assert exc_info.value.last_state == "pending"
    assert "removed" in str(exc_info.value)
    assert len(probe.calls) >= 2


def test_timeout_error_is_a_builtin_timeout():
    poller = ConvergencePoller("x", pending=["pending"], target=["done"], timeout=0.1, max_interval=0.02)

    with pytest.raises(TimeoutError):
        poller.wait(sequence_probe("pending"))


def test_cancel_during_sleep():
    cancel = threading.Event()
    timer = threading.Timer(0.1, cancel.set)
    poller = ConvergencePoller("svc-1", pending=["pending"], target=["running"], timeout=10, min_interval=5)

    start = time.monotonic()
    timer.start()
    try:
        with pytest.raises(ConvergenceCancelledError) as exc_info:
            poller.wait(sequence_probe("pending"), cancel=cancel)
    finally:
        timer.cancel()

    assert time.monotonic() - start < 3
    assert exc_info.value.last_state == "pending"
    assert not isinstance(exc_info.value, ConvergenceTimeoutError)


def test_cancel_abandons_in_flight_probe():
    cancel = threading.Event()
    release = threading.Event()

    def slow_probe():
        release.wait(5)
        return None, "running"

    timer = threading.Timer(0.1, cancel.set)
    poller = ConvergencePoller("svc-1", pending=["pending"], target=["running"], timeout=10)

    start = time.monotonic()
    timer.start()
    try:
        with pytest.raises(ConvergenceCancelledError):
            poller.wait(slow_probe, cancel=cancel)
    finally:
        release.set()
        timer.cancel()

    assert time.monotonic() - start < 3


def test_abandoned_probe_runs_on_a_daemon_thread():
    release = threading.Event()
    probe_threads = []

    def stuck_probe():
        probe_threads.append(threading.current_thread())
        release.wait(5)
        return None, "running"

    poller = ConvergencePoller("svc-1", pending=["pending"], target=["running"], timeout=0.2)

    try:
        with pytest.raises(ConvergenceTimeoutError):
            poller.wait(stuck_probe)
        assert len(probe_threads) == 1
        assert probe_threads[0].daemon
        assert probe_threads[0].is_alive()
    finally:
        release.set()


def test_unexpected_state_ends_run():
    poller = ConvergencePoller("net-1", pending=["pending"], target=["all_fields"], timeout=1)

    with pytest.raises(UnexpectedStateError) as exc_info:
        poller.wait(sequence_probe("other"))

    assert exc_info.value.state == "other"
    assert "all_fields" in str(exc_info.value)


def test_transient_error_counts_as_pending():
    outcomes = iter([TransientStateError("in_use"), ("vol-1", "removed")])

    def probe():
        outcome = next(outcomes)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    poller = ConvergencePoller("vol-1", pending=["in_use"], target=["removed"], timeout=2, max_interval=0.01)

    assert poller.wait(probe) == "vol-1"
    assert poller.probe_count == 2


def test_probe_with_wrong_return_shape_is_fatal():
    poller = ConvergencePoller("x", pending=["pending"], target=["done"], timeout=1)

    with pytest.raises(FatalProbeError):
        poller.wait(lambda: "done")


def test_wait_for_state_helper():
    assert wait_for_state("x", sequence_probe("done"), pending=[], target=["done"], timeout=1) == "result-1"


class TestConvergenceConfig:
    """Validation and cadence of convergence parameters."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"target": []},
            {"pending": ["done"]},
            {"timeout": 0},
            {"min_interval": 10},
            {"delay": 5},
            {"delay": -1},
        ],
    )
    def test_invalid_configuration(self, kwargs):
        params = {"pending": ["pending"], "target": ["done"], "timeout": 5, **kwargs}
        with pytest.raises(ConfigurationError):
            ConvergencePoller("x", **params)

    def test_valid_configuration_has_no_issues(self):
        config = ConvergenceConfig(pending={"pending"}, target={"done"}, timeout=30, delay=2, min_interval=5)
        assert config.validate() == []

    def test_interval_grows_and_is_capped(self):
        config = ConvergenceConfig(pending={"p"}, target={"t"}, timeout=60, max_interval=10)
        assert config.interval(0) == pytest.approx(0.1)
        assert config.interval(3) == pytest.approx(0.8)
        assert config.interval(20) == 10

    def test_interval_never_below_min_interval(self):
        config = ConvergenceConfig(pending={"p"}, target={"t"}, timeout=30, min_interval=5, max_interval=10)
        assert config.interval(0) == 5
        assert config.interval(20) == 10
