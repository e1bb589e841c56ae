"""fluxx: Flux-style dispatcher, stores and actions for Python."""

from importlib.metadata import version as _version

__version__ = _version("fluxx")

from fluxx.errors import (
    FluxError,
    DispatchInProgress,
    CircularDependency,
    NotDispatching,
    DuplicateKey,
    OutOfActionWarning,
)
from fluxx.emitter import ChangeEmitter
from fluxx.dispatcher import ANY_ACTION, Dispatcher, Payload
from fluxx.action import ActionFunction, Actions, create_action
from fluxx.store import Store
from fluxx.flux import Flux
# textual NOT auto-imported — opt-in only

__all__ = [
    "FluxError",
    "DispatchInProgress",
    "CircularDependency",
    "NotDispatching",
    "DuplicateKey",
    "OutOfActionWarning",
    "ChangeEmitter",
    "ANY_ACTION",
    "Dispatcher",
    "Payload",
    "ActionFunction",
    "Actions",
    "create_action",
    "Store",
    "Flux",
]
