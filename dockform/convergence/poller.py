"""
Convergence poller - bounded, cancellable sleep-probe loop.

After a mutating call the external system is eventually consistent: a new
network may not be inspectable yet, a volume may still be referenced by a
container that is going away. The poller repeatedly runs a probe that
classifies the resource into a state tag until a target tag is observed, the
deadline passes, or the caller cancels.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from ..errors import (
    ConfigurationError,
    ConvergenceCancelledError,
    ConvergenceTimeoutError,
    FatalProbeError,
    TransientStateError,
    UnexpectedStateError,
)

logger = logging.getLogger(__name__)

# A probe returns the opaque result and the state tag it classified it as.
ProbeFunction = Callable[[], tuple[Any, str]]

# How often an in-flight probe is checked for cancellation and the deadline.
_WATCH_INTERVAL = 0.05


@dataclass
class ConvergenceConfig:
    """Parameters of one convergence run. Durations are in seconds."""

    pending: frozenset[str]
    target: frozenset[str]
    timeout: float
    delay: float = 0.0
    min_interval: float = 0.0
    max_interval: float = 10.0
    backoff_base: float = 0.1

    def __post_init__(self):
        self.pending = frozenset(self.pending)
        self.target = frozenset(self.target)

    def validate(self) -> list[str]:
        """Validate configuration and return any issues."""
        issues = []

        if not self.target:
            issues.append("target states cannot be empty")

        overlap = self.pending & self.target
        if overlap:
            issues.append(f"states cannot be both pending and target: {', '.join(sorted(overlap))}")

        if self.timeout <= 0:
            issues.append("timeout must be positive")

        for name in ("delay", "min_interval", "max_interval", "backoff_base"):
            if getattr(self, name) < 0:
                issues.append(f"{name} must not be negative")

        if self.min_interval > self.timeout:
            issues.append("min_interval must not exceed timeout")

        if self.delay >= self.timeout:
            issues.append("delay must be shorter than timeout")

        return issues

    def interval(self, pending_count: int) -> float:
        """Sleep before the next probe: grows, but never below min_interval."""
        grown = min(self.max_interval, self.backoff_base * (2 ** pending_count))
        return max(self.min_interval, grown)


def start_probe(probe: ProbeFunction) -> Future:
    """Run ``probe`` on a daemon thread and return a future for its outcome.

    Probes carry no timeout of their own. A daemon thread lets the process
    exit while an abandoned probe is still blocked.
    """
    future: Future = Future()

    def run() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            outcome = probe()
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(outcome)

    threading.Thread(target=run, name="dockform-probe", daemon=True).start()
    return future


class ConvergencePoller:
    """
    Drives a probe until the resource reaches a target state.

    One poller instance describes one resource operation; ``wait`` starts a
    run. Probes within a run are strictly sequential. A probe error ends the
    run immediately, a pending tag keeps it going, a target tag ends it with
    the probe's result.

    Example:
        >>> poller = ConvergencePoller(
        ...     "net-1",
        ...     pending=["pending"],
        ...     target=["removed"],
        ...     timeout=30,
        ...     delay=2,
        ...     min_interval=5,
        ... )
        >>> poller.wait(probe)
    """

    def __init__(
        self,
        resource_id: str,
        pending: Iterable[str],
        target: Iterable[str],
        timeout: float,
        delay: float = 0.0,
        min_interval: float = 0.0,
        max_interval: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.resource_id = resource_id
        self.config = ConvergenceConfig(
            pending=frozenset(pending),
            target=frozenset(target),
            timeout=timeout,
            delay=delay,
            min_interval=min_interval,
            max_interval=max_interval,
        )
        self._clock = clock

        config_issues = self.config.validate()
        if config_issues:
            raise ConfigurationError(f"Invalid convergence configuration: {'; '.join(config_issues)}")

        self.probe_count = 0
        self.last_state: str | None = None

    def wait(self, probe: ProbeFunction, cancel: threading.Event | None = None) -> Any:
        """
        Run the probe until a target state is reached.

        Args:
            probe: Callable returning ``(result, state)``
            cancel: Optional event; setting it aborts the current sleep or
                in-flight probe

        Returns:
            The result returned alongside the target state

        Raises:
            FatalProbeError: The probe raised
            UnexpectedStateError: The probe returned an unknown state
            ConvergenceTimeoutError: The deadline passed first
            ConvergenceCancelledError: ``cancel`` was set
        """
        cancel = cancel or threading.Event()
        config = self.config
        deadline = self._clock() + config.timeout
        self.probe_count = 0
        self.last_state = None

        logger.info(
            f"Waiting for '{self.resource_id}' to reach state {sorted(config.target)}: "
            f"max {config.timeout}s"
        )

        self._sleep(config.delay, deadline, cancel)
        pending_count = 0
        while True:
            result, state = self._probe(probe, deadline, cancel)
            self.last_state = state
            logger.debug(f"'{self.resource_id}' probe {self.probe_count}: state '{state}'")

            if state in config.target:
                logger.info(f"'{self.resource_id}' reached state '{state}'")
                return result

            if state not in config.pending:
                raise UnexpectedStateError(
                    self.resource_id, state, config.pending, config.target
                )

            self._sleep(config.interval(pending_count), deadline, cancel)
            pending_count += 1

    def _probe(
        self,
        probe: ProbeFunction,
        deadline: float,
        cancel: threading.Event,
    ) -> tuple[Any, str]:
        self.probe_count += 1
        future = start_probe(probe)

        while not future.done():
            self._check(deadline, cancel)
            remaining = deadline - self._clock()
            future_wait = min(_WATCH_INTERVAL, max(remaining, 0.0))
            try:
                future.result(timeout=future_wait)
            except TimeoutError:
                continue
            except Exception:
                break

        error = future.exception()
        if error is None:
            outcome = future.result()
            try:
                result, state = outcome
            except (TypeError, ValueError) as e:
                raise FatalProbeError(
                    self.resource_id,
                    ValueError(f"probe must return (result, state), got {outcome!r}"),
                ) from e
            return result, state

        if isinstance(error, TransientStateError):
            logger.debug(f"'{self.resource_id}' transient: {error}")
            return None, error.state
        if isinstance(error, FatalProbeError):
            raise error
        logger.warning(f"'{self.resource_id}' probe failed: {error}")
        raise FatalProbeError(self.resource_id, error) from error

    def _sleep(self, seconds: float, deadline: float, cancel: threading.Event) -> None:
        wake = min(self._clock() + seconds, deadline)
        while True:
            now = self._clock()
            if now >= wake:
                break
            if cancel.wait(wake - now):
                break
        self._check(deadline, cancel)

    def _check(self, deadline: float, cancel: threading.Event) -> None:
        if cancel.is_set():
            logger.info(f"Convergence of '{self.resource_id}' cancelled")
            raise ConvergenceCancelledError(self.resource_id, self.last_state)
        if self._clock() >= deadline:
            raise ConvergenceTimeoutError(
                self.resource_id,
                self.last_state,
                timedelta(seconds=self.config.timeout),
                sorted(self.config.target),
            )


def wait_for_state(
    resource_id: str,
    probe: ProbeFunction,
    pending: Iterable[str],
    target: Iterable[str],
    timeout: float,
    delay: float = 0.0,
    min_interval: float = 0.0,
    max_interval: float = 10.0,
    cancel: threading.Event | None = None,
) -> Any:
    """One-shot helper: build a poller and run it."""
    poller = ConvergencePoller(
        resource_id,
        pending=pending,
        target=target,
        timeout=timeout,
        delay=delay,
        min_interval=min_interval,
        max_interval=max_interval,
    )
    return poller.wait(probe, cancel=cancel)
