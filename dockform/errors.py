"""
Dockform errors - every failure surfaced by the convergence engine, the
migration pipeline and the Docker clients.
"""

from datetime import timedelta

from .durations import format_duration


class DockformError(Exception):
    """Base exception for all Dockform errors."""
    pass


class ConfigurationError(DockformError):
    """Errors in configuration (invalid poller parameters, bad settings)."""
    pass


class ResourceClientError(DockformError):
    """The external resource manager rejected or failed a call.

    The message is the API message, kept verbatim so reconcilers can match
    on it.
    """
    pass


class ResourceNotFoundError(ResourceClientError):
    """The external resource manager does not know the requested id."""

    def __init__(self, resource_id: str, message: str | None = None):
        self.resource_id = resource_id
        super().__init__(message or f"No such resource: {resource_id}")


class TransientStateError(DockformError):
    """A probe recognized a transient condition and wants polling to continue.

    Probes may raise this instead of returning the tag; the poller treats it
    exactly like returning ``state``.
    """

    def __init__(self, state: str, message: str = ""):
        self.state = state
        super().__init__(message or f"transient state: {state}")


class ConvergenceTimeoutError(DockformError, TimeoutError):
    """The resource did not reach a target state before the deadline."""

    def __init__(self, resource_id: str, last_state: str | None, timeout: timedelta, targets=()):
        self.resource_id = resource_id
        self.last_state = last_state
        self.timeout = timeout
        self.targets = tuple(targets)
        super().__init__(
            f"timeout while waiting for state to become '{', '.join(self.targets)}' "
            f"(resource: '{resource_id}', last state: '{last_state}', timeout: {format_duration(timeout.total_seconds())})"
        )


class ServiceDidNotConvergeError(ConvergenceTimeoutError):
    """A swarm service did not converge within its converge config timeout."""

    def __str__(self) -> str:
        return f"Service with ID ({self.resource_id}) did not converge after {format_duration(self.timeout.total_seconds())}"


class ServiceConvergenceError(DockformError):
    """A swarm service reported a failed rollout (rollback, pause, no replica count)."""
    pass


class ConvergenceCancelledError(DockformError):
    """The caller cancelled a convergence run."""

    def __init__(self, resource_id: str, last_state: str | None):
        self.resource_id = resource_id
        self.last_state = last_state
        super().__init__(
            f"convergence of '{resource_id}' cancelled (last state: '{last_state}')"
        )


class UnexpectedStateError(DockformError):
    """A probe returned a state that is neither pending nor target."""

    def __init__(self, resource_id: str, state: str, pending=(), target=()):
        self.resource_id = resource_id
        self.state = state
        super().__init__(
            f"unexpected state '{state}' for '{resource_id}', wanted target "
            f"'{', '.join(sorted(target))}' (pending: '{', '.join(sorted(pending))}')"
        )


class FatalProbeError(DockformError):
    """A probe failed with an unrecognized error; polling aborted."""

    def __init__(self, resource_id: str, cause: BaseException):
        self.resource_id = resource_id
        self.cause = cause
        super().__init__(str(cause))


class MigrationError(DockformError):
    """Persisted state does not conform to the shape a migration step expects."""

    def __init__(self, message: str, path: str = ""):
        self.message = message
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class DuplicateLabelError(DockformError):
    """Strict label decoding found the same label name twice."""

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"duplicate label: {label}")


class StateStoreError(DockformError):
    """The state file could not be read or written."""
    pass
