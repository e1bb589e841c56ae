"""Action functions — callables with a stable identity on the dispatcher.

Calling an ActionFunction dispatches its action id with the call arguments,
then runs the wrapped body. When the body returns an awaitable (a coroutine
function, typically), the call instead schedules a task on the running loop
that awaits it and dispatches one more time:

    success_id with (value,)  when the awaitable returns
    failure_id with (exc,)    when it raises; exc is re-raised to the caller

The task settles whether or not the caller awaits it. Called with no running
loop, the action returns the settling coroutine for the caller to run.

Stores use these three ids for the begin/success/failure phases of an async
action (see Store.register_async).

Usage:
    class TodoActions(Actions):
        def add(self, text):
            ...

        async def fetch(self, url):
            return await client.get(url)

    actions = TodoActions(dispatcher)
    actions.add("milk")          # dispatches (actions.add.action_id, ("milk",))
    await actions.fetch("/todos")
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import itertools
import logging
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from fluxx.dispatcher import Dispatcher

logger = logging.getLogger("fluxx.action")

# Process-wide, so ids minted for different functions never collide.
_id_counter = itertools.count(1)


def new_action_id(name: str) -> str:
    return f"{name}#{next(_id_counter)}"


class ActionFunction:
    """A wrapped action body paired with its action ids."""

    def __init__(
        self,
        fn: Callable,
        dispatcher: Dispatcher | None = None,
        name: str | None = None,
    ) -> None:
        functools.update_wrapper(self, fn)
        self._fn = fn
        self.dispatcher = dispatcher
        self.action_id = new_action_id(name or getattr(fn, "__qualname__", "action"))
        self._tasks: set[asyncio.Task] = set()

    @property
    def success_id(self) -> str:
        return f"{self.action_id}/success"

    @property
    def failure_id(self) -> str:
        return f"{self.action_id}/failure"

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        self._dispatch(self.action_id, args)
        result = self._fn(*args, **kwargs)
        if not inspect.isawaitable(result):
            return result
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet: the caller drives settlement, e.g. asyncio.run(action()).
            return self._settle(result)
        # Settle as a task so success/failure dispatch even if nobody awaits.
        task = loop.create_task(self._settle(result))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _settle(self, awaitable) -> Any:
        try:
            value = await awaitable
        except Exception as exc:
            logger.debug("%s failed with %s", self.action_id, type(exc).__name__)
            self._dispatch(self.failure_id, (exc,))
            raise
        self._dispatch(self.success_id, (value,))
        return value

    def _dispatch(self, action_id: str, body: tuple) -> None:
        if self.dispatcher is not None:
            self.dispatcher.dispatch(action_id, body)

    def __repr__(self) -> str:
        return f"ActionFunction({self.action_id!r})"


def create_action(fn: Callable, dispatcher: Dispatcher | None = None) -> ActionFunction:
    """Wrap fn as an action, once per function.

    Wrapping the same plain function again returns the same ActionFunction
    (and so the same ids); a dispatcher passed in is attached to it. An
    ActionFunction is returned unchanged. Other callables (bound methods,
    partials) get a fresh ActionFunction per call.
    """
    if isinstance(fn, ActionFunction):
        action = fn
    elif inspect.isfunction(fn):
        action = fn.__dict__.get("_fluxx_action")
        if action is None:
            action = ActionFunction(fn, dispatcher)
            fn._fluxx_action = action
    else:
        return ActionFunction(fn, dispatcher)
    if dispatcher is not None:
        action.dispatcher = dispatcher
    return action


def resolve_action_id(value: object) -> object:
    """Map an ActionFunction to its action id; other values are ids already."""
    if isinstance(value, ActionFunction):
        return value.action_id
    return value


class Actions:
    """Base class whose public methods become ActionFunctions per instance.

    Subclasses that define __init__ must call super().__init__().
    """

    def __init__(self, dispatcher: Dispatcher | None = None) -> None:
        self._actions: dict[str, ActionFunction] = {}
        for name in self._action_method_names():
            action = ActionFunction(
                getattr(self, name), dispatcher, name=f"{type(self).__name__}.{name}"
            )
            setattr(self, name, action)
            self._actions[name] = action

    @classmethod
    def _action_method_names(cls) -> list[str]:
        return [
            name
            for name, _ in inspect.getmembers(cls, inspect.isfunction)
            if not name.startswith("_") and name not in vars(Actions)
        ]

    def bind(self, dispatcher: Dispatcher) -> None:
        """Dispatch every action of this instance on dispatcher."""
        for action in self._actions.values():
            action.dispatcher = dispatcher

    def get_action_ids(self) -> dict[str, str]:
        return {name: action.action_id for name, action in self._actions.items()}
