"""stagefx: staged, dependency-tracked store for UI render units."""

from importlib.metadata import version as _version

__version__ = _version("stagefx")

from stagefx._tracking import ReactiveContext
from stagefx.errors import StoreError, IllegalRenderMutation, IllegalGlobalRead
from stagefx.paths import LENGTH, WHOLE
from stagefx.traverse import Record, traverse, deep_clone
from stagefx.handlers import (
    MutationRequest,
    RecordHandle,
    ListHandle,
    MapHandle,
    SetHandle,
    unwrap,
)
from stagefx.listeners import ListenerRegistry
from stagefx.store import Store
from stagefx.render import RenderUnit, collect
from stagefx.action import action, transaction
# textual NOT auto-imported — opt-in only

__all__ = [
    "ReactiveContext",
    "StoreError",
    "IllegalRenderMutation",
    "IllegalGlobalRead",
    "LENGTH",
    "WHOLE",
    "Record",
    "traverse",
    "deep_clone",
    "MutationRequest",
    "RecordHandle",
    "ListHandle",
    "MapHandle",
    "SetHandle",
    "unwrap",
    "ListenerRegistry",
    "Store",
    "RenderUnit",
    "collect",
    "action",
    "transaction",
]
