"""Textual integration for fluxx. Opt-in — requires textual.

Store "change" listeners that touch widgets are guarded here, not at
callsites: they are skipped while the app is paused or not running,
NoMatches from widget queries is swallowed, and notifications raised on a
background thread are marshaled through app.call_from_thread.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

# Keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend connected listeners during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def connect(app, store, fn, *, fire_immediately=False):
    """Call fn(store.state) on every store change, safely for app's widgets.

    Returns a disposer that disconnects fn.
    """
    _main = threading.get_ident()

    def _guarded():
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe)
        else:
            _safe()

    def _safe():
        try:
            fn(store.state)
        except NoMatches:
            pass

    disposer = store.add_listener("change", _guarded)
    if fire_immediately:
        _guarded()
    return disposer
