"""Flux — keyed container for stores and actions sharing one Dispatcher."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from fluxx.action import Actions
from fluxx.dispatcher import Dispatcher
from fluxx.errors import DuplicateKey
from fluxx.store import Store

logger = logging.getLogger("fluxx.flux")

S = TypeVar("S", bound=Store)
A = TypeVar("A", bound=Actions)


class Flux:
    """Creates stores and actions by key and wires them to one dispatcher.

    Usage:
        flux = Flux()
        flux.create_actions("todos", TodoActions)
        flux.create_store("todos", TodoStore)

        flux.get_actions("todos").add("milk")
        flux.get_store("todos").state
    """

    def __init__(self, dispatcher: Dispatcher | None = None) -> None:
        self.dispatcher = dispatcher if dispatcher is not None else Dispatcher()
        self._stores: dict[str, Store] = {}
        self._actions: dict[str, Actions] = {}

    def create_store(self, key: str, store_class: type[S], *args: Any, **kwargs: Any) -> S:
        if not (isinstance(store_class, type) and issubclass(store_class, Store)):
            raise TypeError(f"{store_class!r} is not a Store subclass.")
        if key in self._stores:
            raise DuplicateKey(f"Store key {key!r} already exists.")
        store = store_class(*args, **kwargs)
        if store.dispatcher is not self.dispatcher:
            store.unbind()
            store.bind(self.dispatcher)
        self._stores[key] = store
        logger.debug("Created store %r (%s)", key, store_class.__name__)
        return store

    def get_store(self, key: str) -> Store | None:
        return self._stores.get(key)

    def remove_store(self, key: str) -> None:
        store = self._stores.pop(key, None)
        if store is not None:
            store.unbind()
            logger.debug("Removed store %r", key)

    def create_actions(self, key: str, actions_class: type[A], *args: Any, **kwargs: Any) -> A:
        if not (isinstance(actions_class, type) and issubclass(actions_class, Actions)):
            raise TypeError(f"{actions_class!r} is not an Actions subclass.")
        if key in self._actions:
            raise DuplicateKey(f"Actions key {key!r} already exists.")
        actions = actions_class(*args, **kwargs)
        actions.bind(self.dispatcher)
        self._actions[key] = actions
        logger.debug("Created actions %r (%s)", key, actions_class.__name__)
        return actions

    def get_actions(self, key: str) -> Actions | None:
        return self._actions.get(key)

    def remove_actions(self, key: str) -> None:
        if self._actions.pop(key, None) is not None:
            logger.debug("Removed actions %r", key)

    def get_action_ids(self, key: str) -> dict[str, str] | None:
        actions = self._actions.get(key)
        return actions.get_action_ids() if actions is not None else None

    def dispatch(self, action_id, body=None) -> None:
        self.dispatcher.dispatch(action_id, body)
