"""Error taxonomy for the dispatch core.

Dispatcher errors are programmer errors: they surface immediately and are
never retried. OutOfActionWarning is the one non-fatal condition.
"""


class FluxError(Exception):
    """Base class for fluxx errors."""


class DispatchInProgress(FluxError):
    """dispatch() called while another dispatch is still running."""

    def __init__(self, action_id: object) -> None:
        super().__init__(
            f"Cannot dispatch {action_id!r} in the middle of a dispatch."
        )
        self.action_id = action_id


class CircularDependency(FluxError):
    """wait_for() reached a callback that is already running."""

    def __init__(self, token: str) -> None:
        super().__init__(
            f"Circular dependency detected while waiting for {token!r}."
        )
        self.token = token


class NotDispatching(FluxError):
    """A dispatch-only operation was used with no dispatch running."""


class DuplicateKey(FluxError):
    """A Flux container key is already taken."""


class OutOfActionWarning(UserWarning):
    """Store state was changed from outside an action handler."""
