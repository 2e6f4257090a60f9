"""Render units — the things that read the store and get re-rendered.

A render unit wraps a render function. Each pass clears what the unit
depended on, then calls the function with a snapshot of the canonical
store while the unit is tracking, so every read is recorded in the
listener registry. When a commit touches any recorded path, the unit is
scheduled to render again.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from stagefx.store import Store


class RenderUnit:
    """An opaque identity with a display name, attributed with reads."""

    __slots__ = ("_store", "_fn", "name", "_disposed", "render_count")

    def __init__(self, store: Store, fn: Callable[[Any], None], *, name: str | None = None) -> None:
        self._store = store
        self._fn = fn
        self.name = name or getattr(fn, "__name__", "anonymous")
        self._disposed = False
        self.render_count = 0

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def dependencies(self) -> list[str]:
        """Encoded paths read during the last pass."""
        return self._store.listeners.paths_of(self)

    def _run(self) -> None:
        """Render once, re-recording dependencies."""
        if self._disposed:
            return

        self._store.listeners.clear_unit(self)
        with self._store.context.tracking(self):
            self.render_count += 1
            self._fn(self._store.snapshot())

    def dispose(self) -> None:
        """Stop re-rendering. Drops every recorded dependency."""
        self._disposed = True
        self._store.listeners.clear_unit(self)

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"RenderUnit({self.name}, {state})"


def collect(store: Store, fn: Callable[[Any], None], *, name: str | None = None) -> RenderUnit:
    """Render fn immediately, then again whenever a commit touches what it read.

    fn receives a snapshot of the store; it must not read store.root or
    write to the store.

    Returns the RenderUnit (call .dispose() to stop).

    Usage:
        store = Store({"counter": 0})
        log = []

        unit = collect(store, lambda s: log.append(s.counter))
        # log == [0] — rendered immediately

        store.root.counter = 1
        store.commit()
        # log == [0, 1] — re-rendered because counter changed
    """
    unit = RenderUnit(store, fn, name=name)
    unit._run()
    return unit
