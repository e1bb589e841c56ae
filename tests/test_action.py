"""Tests for action functions — ids, sync dispatch, async lifecycle."""

import asyncio
import logging
from unittest.mock import Mock

import pytest

from fluxx import ActionFunction, Actions, Dispatcher, DispatchInProgress, Flux, Store, create_action
from fluxx.dispatcher import ANY_ACTION


def _record(dispatcher):
    log = []
    dispatcher.register(ANY_ACTION, lambda payload: log.append(payload))
    return log


class ExampleActions(Actions):
    def get_foo(self, value):
        return value + "!"

    async def fetch(self, message, succeed=True):
        if not succeed:
            raise ValueError(message)
        return message + " success"

    def _private(self):
        return "not an action"


class TestIds:
    def test_public_methods_become_actions(self):
        actions = ExampleActions()
        assert isinstance(actions.get_foo, ActionFunction)
        assert isinstance(actions.fetch, ActionFunction)
        assert not isinstance(actions._private, ActionFunction)
        assert set(actions.get_action_ids()) == {"get_foo", "fetch"}

    def test_ids_are_stable_per_function(self):
        d = Dispatcher()
        actions = ExampleActions(d)
        log = _record(d)
        actions.get_foo("a")
        actions.get_foo("b")
        assert log[0].action_id == log[1].action_id == actions.get_foo.action_id

    def test_ids_never_collide(self):
        a, b = ExampleActions(), ExampleActions()
        ids = [
            a.get_foo.action_id,
            a.fetch.action_id,
            a.fetch.success_id,
            a.fetch.failure_id,
            b.get_foo.action_id,
            b.fetch.action_id,
        ]
        assert len(set(ids)) == len(ids)

    def test_wrapping_same_function_keeps_ids(self):
        def fetch():
            return None

        first = create_action(fetch)
        second = create_action(fetch)
        assert second is first
        assert second.action_id == first.action_id

    def test_rewrapping_attaches_dispatcher(self):
        def fetch():
            return None

        d = Dispatcher()
        action = create_action(fetch)
        assert create_action(fetch, d) is action
        assert action.dispatcher is d

    def test_distinct_functions_get_distinct_ids(self):
        assert create_action(lambda: 1).action_id != create_action(lambda: 1).action_id

    def test_create_action_keeps_existing_action(self):
        action = create_action(lambda: None)
        assert create_action(action) is action

    def test_keeps_wrapped_metadata(self):
        def add_todo(text):
            """Add a todo."""

        action = create_action(add_todo)
        assert action.__name__ == "add_todo"
        assert action.__doc__ == "Add a todo."


class TestSyncActions:
    def test_dispatches_args_and_returns_result(self):
        d = Dispatcher()
        actions = ExampleActions(d)
        log = _record(d)
        assert actions.get_foo("foo") == "foo!"
        assert [(p.action_id, p.body) for p in log] == [(actions.get_foo.action_id, ("foo",))]

    def test_without_dispatcher_only_runs_body(self):
        assert ExampleActions().get_foo("foo") == "foo!"

    def test_calling_action_from_handler_raises(self):
        d = Dispatcher()
        actions = ExampleActions(d)
        d.register("trigger", lambda payload: actions.get_foo("x"))
        with pytest.raises(DispatchInProgress):
            d.dispatch("trigger")

    def test_store_handler_receives_args(self):
        d = Dispatcher()
        actions = ExampleActions(d)
        store = Store(d)
        handler = Mock()
        store.register(actions.get_foo, handler)
        actions.get_foo("bar")
        handler.assert_called_once_with("bar")


class TestAsyncActions:
    @pytest.mark.asyncio
    async def test_begin_dispatched_before_body_runs(self):
        d = Dispatcher()
        actions = ExampleActions(d)
        log = _record(d)
        pending = actions.fetch("foo")
        assert [p.action_id for p in log] == [actions.fetch.action_id]
        await pending

    @pytest.mark.asyncio
    async def test_settles_without_being_awaited(self):
        d = Dispatcher()
        actions = ExampleActions(d)
        store = Store(d)
        success = Mock()
        store.register_async(actions.fetch, None, success, None)

        actions.fetch("a")
        for _ in range(5):
            await asyncio.sleep(0)

        success.assert_called_once_with("a success")

    @pytest.mark.asyncio
    async def test_failure_dispatched_without_being_awaited(self):
        d = Dispatcher()
        actions = ExampleActions(d)
        log = _record(d)

        task = actions.fetch("bad", False)
        for _ in range(5):
            await asyncio.sleep(0)

        assert [p.action_id for p in log] == [actions.fetch.action_id, actions.fetch.failure_id]
        with pytest.raises(ValueError, match="bad"):
            await task

    @pytest.mark.asyncio
    async def test_success_lifecycle(self):
        d = Dispatcher()
        actions = ExampleActions(d)
        log = _record(d)
        assert await actions.fetch("foo", True) == "foo success"
        assert [(p.action_id, p.body) for p in log] == [
            (actions.fetch.action_id, ("foo", True)),
            (actions.fetch.success_id, ("foo success",)),
        ]

    @pytest.mark.asyncio
    async def test_failure_lifecycle_reraises(self):
        d = Dispatcher()
        actions = ExampleActions(d)
        log = _record(d)
        with pytest.raises(ValueError, match="bar") as excinfo:
            await actions.fetch("bar", False)
        assert [p.action_id for p in log] == [
            actions.fetch.action_id,
            actions.fetch.failure_id,
        ]
        assert log[1].body == (excinfo.value,)

    @pytest.mark.asyncio
    async def test_logs_failure(self, caplog):
        actions = ExampleActions(Dispatcher())
        with caplog.at_level(logging.DEBUG, logger="fluxx.action"):
            with pytest.raises(ValueError):
                await actions.fetch("bar", False)
        assert "failed with ValueError" in caplog.text

    @pytest.mark.asyncio
    async def test_register_async_phases(self):
        flux = Flux()
        actions = flux.create_actions("example", ExampleActions)
        store = flux.create_store("example", Store)

        plain = Mock()
        store.register(actions.fetch, plain)
        begin, success, failure = Mock(), Mock(), Mock()
        store.register_async(actions.fetch, begin, success, failure)

        await actions.fetch("foo", True)
        plain.assert_called_once_with("foo", True)
        begin.assert_called_once_with("foo", True)
        success.assert_called_once_with("foo success")
        failure.assert_not_called()

        with pytest.raises(ValueError) as excinfo:
            await actions.fetch("bar", False)
        assert begin.call_count == 2
        success.assert_called_once()
        failure.assert_called_once_with(excinfo.value)

    @pytest.mark.asyncio
    async def test_store_state_follows_phases(self):
        flux = Flux()
        actions = flux.create_actions("example", ExampleActions)

        class FetchStore(Store):
            def __init__(self):
                super().__init__()
                self.state = {"loading": False, "result": None, "error": None}
                self.register_async(actions.fetch, self.on_begin, self.on_success, self.on_failure)

            def on_begin(self, message, succeed=True):
                self.set_state({"loading": True})

            def on_success(self, result):
                self.set_state({"loading": False, "result": result})

            def on_failure(self, error):
                self.set_state({"loading": False, "error": str(error)})

        store = flux.create_store("fetch", FetchStore)
        changes = []
        store.add_listener("change", lambda: changes.append(dict(store.state)))

        pending = actions.fetch("foo")
        assert store.state["loading"] is True
        await pending
        assert store.state == {"loading": False, "result": "foo success", "error": None}
        assert len(changes) == 2

    @pytest.mark.asyncio
    async def test_awaitable_returning_function(self):
        d = Dispatcher()
        log = _record(d)

        async def _work():
            return 42

        action = create_action(lambda: _work(), d)
        assert await action() == 42
        assert [p.action_id for p in log] == [action.action_id, action.success_id]


class TestWithoutRunningLoop:
    def test_caller_runs_settlement(self):
        d = Dispatcher()
        actions = ExampleActions(d)
        log = _record(d)

        pending = actions.fetch("foo")
        assert [p.action_id for p in log] == [actions.fetch.action_id]
        assert asyncio.run(pending) == "foo success"
        assert [p.action_id for p in log] == [actions.fetch.action_id, actions.fetch.success_id]
