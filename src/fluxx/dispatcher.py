"""Dispatcher — synchronous fan-out of actions to registered callbacks.

Each dispatch() opens a session that snapshots the callbacks registered for
the action id, then runs them in registration order. A running callback may
call wait_for() to run other callbacks of the same session first; a session
tracks which tokens are handled and which are still running, so cycles fail
fast instead of recursing.

Only one dispatch runs at a time per Dispatcher. Dispatching from inside a
callback raises DispatchInProgress.
"""

from __future__ import annotations

import itertools
import logging
from typing import Callable, Iterable, NamedTuple

from fluxx.action import resolve_action_id
from fluxx.errors import CircularDependency, DispatchInProgress, NotDispatching

logger = logging.getLogger("fluxx.dispatcher")


class _AnyAction:
    __slots__ = ()

    def __repr__(self) -> str:
        return "ANY_ACTION"


# Register under this id to receive every dispatch.
ANY_ACTION = _AnyAction()


class Payload(NamedTuple):
    action_id: object
    body: object = None


Callback = Callable[[Payload], None]


class _DispatchSession:
    """Bookkeeping for a single dispatch() call."""

    __slots__ = ("payload", "callbacks", "handled", "pending")

    def __init__(self, payload: Payload, callbacks: dict[str, Callback]) -> None:
        self.payload = payload
        self.callbacks = callbacks
        self.handled: set[str] = set()
        self.pending: set[str] = set()


class Dispatcher:
    """Routes payloads to callbacks by action id, with wait_for ordering."""

    def __init__(self) -> None:
        self._callbacks: dict[str, tuple[object, Callback]] = {}
        self._token_counter = itertools.count(1)
        self._session: _DispatchSession | None = None

    @property
    def is_dispatching(self) -> bool:
        return self._session is not None

    def register(self, action_id, callback: Callback) -> str:
        """Register callback for action_id. Returns a token for wait_for()."""
        token = f"ID_{next(self._token_counter)}"
        self._callbacks[token] = (resolve_action_id(action_id), callback)
        logger.debug("Registered %s for %r", token, action_id)
        return token

    def unregister(self, token: str) -> None:
        if self._callbacks.pop(token, None) is not None:
            logger.debug("Unregistered %s", token)

    def dispatch(self, action_id, body=None) -> None:
        """Deliver body to every callback registered for action_id."""
        action_id = resolve_action_id(action_id)
        if self._session is not None:
            raise DispatchInProgress(action_id)

        callbacks = {
            token: callback
            for token, (registered_id, callback) in self._callbacks.items()
            if registered_id is ANY_ACTION or registered_id == action_id
        }
        session = _DispatchSession(Payload(action_id, body), callbacks)
        logger.debug("Dispatching %r to %d callbacks", action_id, len(callbacks))

        self._session = session
        try:
            for token in callbacks:
                if token not in session.handled:
                    self._invoke(session, token)
        finally:
            self._session = None

    def wait_for(self, tokens: Iterable[str]) -> None:
        """Run the callbacks for tokens now, before the caller continues.

        Must be called from a callback of the running dispatch. Tokens that
        already ran are skipped; a token that is still running means a cycle.
        """
        session = self._session
        if session is None:
            raise NotDispatching("wait_for() must be called while dispatching.")

        for token in tokens:
            if token in session.pending:
                raise CircularDependency(token)
            if token in session.handled or token not in session.callbacks:
                continue
            self._invoke(session, token)

    def _invoke(self, session: _DispatchSession, token: str) -> None:
        session.pending.add(token)
        try:
            session.callbacks[token](session.payload)
        finally:
            session.pending.discard(token)
            session.handled.add(token)
