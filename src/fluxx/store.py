"""Store — dispatcher-bound state container with per-action batching.

A Store registers a single callback (handler) with the dispatcher and fans
each payload out to the handlers registered for its action id. State writes
made while those handlers run accumulate in a pending buffer; when the
handlers return, the buffer is committed and one "change" event is emitted.

State is replaced, never mutated in place. How a partial update combines
with the previous state is decided by assign_state(), which subclasses may
override for non-mapping state.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable

from fluxx.action import resolve_action_id
from fluxx.dispatcher import ANY_ACTION, Payload
from fluxx.emitter import ChangeEmitter
from fluxx.errors import NotDispatching, OutOfActionWarning

if TYPE_CHECKING:
    from fluxx.dispatcher import Dispatcher

logger = logging.getLogger("fluxx.store")

OUT_OF_ACTION_MESSAGE = (
    "Store.set_state() called from outside an action handler. This is likely "
    "a mistake. Flux stores should manage their own state."
)

# Every out-of-action write is reported, not just the first per call site.
warnings.filterwarnings("always", category=OutOfActionWarning, append=True)


class Store(ChangeEmitter):
    """Holds state, reacts to actions, notifies "change" listeners."""

    # When True, set_state() outside an action handler raises instead of warning.
    strict: bool = False

    def __init__(self, dispatcher: Dispatcher | None = None) -> None:
        super().__init__()
        self.state: Any = None
        self.dispatcher: Dispatcher | None = None
        self.dispatch_token: str | None = None
        self._handlers: dict[object, list[Callable]] = {}
        self._handling_dispatch = False
        self._pending_state: Any = None
        self._dirty = False
        self._force_emit = False
        if dispatcher is not None:
            self.bind(dispatcher)

    def bind(self, dispatcher: Dispatcher) -> str:
        """Register this store's handler with dispatcher for every action."""
        self.dispatcher = dispatcher
        self.dispatch_token = dispatcher.register(ANY_ACTION, self.handler)
        logger.debug("Bound %s as %s", type(self).__name__, self.dispatch_token)
        return self.dispatch_token

    def unbind(self) -> None:
        if self.dispatcher is not None and self.dispatch_token is not None:
            self.dispatcher.unregister(self.dispatch_token)
            logger.debug("Unbound %s (%s)", type(self).__name__, self.dispatch_token)
        self.dispatcher = None
        self.dispatch_token = None

    # --- Registration ---

    def register(self, action, handler) -> None:
        """Run handler whenever action (an id or ActionFunction) is dispatched.

        handler is called with the dispatched arguments only. Handlers that
        need the store should be bound methods (self.on_add) or closures.
        Non-callable handlers are ignored.
        """
        if not callable(handler):
            return
        self._handlers.setdefault(resolve_action_id(action), []).append(handler)

    def register_async(self, action, on_begin=None, on_success=None, on_failure=None) -> None:
        """Register handlers for the begin, success and failure phases of action."""
        if callable(on_begin):
            self.register(action.action_id, on_begin)
        if callable(on_success):
            self.register(action.success_id, on_success)
        if callable(on_failure):
            self.register(action.failure_id, on_failure)

    # --- Dispatch ---

    def handler(self, payload: Payload) -> None:
        """Dispatcher callback: run the handlers for payload.action_id in one batch."""
        handlers = self._handlers.get(payload.action_id)
        if not handlers:
            return

        body = payload.body
        args = tuple(body) if isinstance(body, (tuple, list)) else (body,)

        self._handling_dispatch = True
        self._pending_state = self.state
        self._dirty = False
        self._force_emit = False
        try:
            for handler in list(handlers):
                handler(*args)
            dirty, force_emit = self._dirty, self._force_emit
            if dirty:
                self.state = self._pending_state
        finally:
            # A handler that raised leaves state untouched.
            self._handling_dispatch = False
            self._pending_state = None
            self._dirty = False
            self._force_emit = False
        if dirty or force_emit:
            self.emit("change")

    def wait_for(self, *stores: Store) -> None:
        """Let stores finish handling the current action before continuing."""
        if self.dispatcher is None:
            raise NotDispatching(f"{type(self).__name__} is not bound to a dispatcher.")
        self.dispatcher.wait_for([store.dispatch_token for store in stores])

    # --- State ---

    @staticmethod
    def assign_state(prev_state: Any, next_state: Any) -> Any:
        """Combine prev_state with a partial next_state.

        Mappings are shallow-merged into a new dict, keys of next_state
        winning. Any other next_state replaces prev_state.
        """
        if isinstance(next_state, Mapping):
            base = prev_state if isinstance(prev_state, Mapping) else {}
            return {**base, **next_state}
        return next_state

    def set_state(self, next_state) -> None:
        """Merge next_state into the state.

        next_state may be a callable taking the current (pending) state and
        returning the partial update.
        """
        if not self._handling_dispatch:
            if self.strict:
                raise NotDispatching(OUT_OF_ACTION_MESSAGE)
            warnings.warn(OUT_OF_ACTION_MESSAGE, OutOfActionWarning, stacklevel=2)

        base = self._pending_state if self._handling_dispatch else self.state
        if callable(next_state):
            next_state = next_state(base)
        self._write_state(self.assign_state(base, next_state))

    def replace_state(self, next_state) -> None:
        """Replace the state with next_state, discarding pending merges."""
        self._write_state(self.assign_state(None, next_state))

    def force_update(self) -> None:
        """Emit "change" without touching state.

        Inside an action handler the event is deferred to the end of the batch.
        """
        if self._handling_dispatch:
            self._force_emit = True
        else:
            self.emit("change")

    def get_state_as_object(self) -> Any:
        if isinstance(self.state, Mapping):
            return dict(self.state)
        return self.state

    def _write_state(self, state: Any) -> None:
        if self._handling_dispatch:
            self._pending_state = state
            self._dirty = True
        else:
            self.state = state
            self.emit("change")
