"""Store — the canonical store, its staged copy, and the commit step.

Render units read the canonical store. Writes made outside a render pass
are staged into an independent deep copy (the "next store") and become
visible to render units only when commit() promotes the stage. Until
then, reads made outside a render pass are answered from the stage, so
code that writes and immediately reads back sees its own write.
"""

from __future__ import annotations

import logging
from typing import Any, Hashable

from stagefx import paths
from stagefx._tracking import ReactiveContext
from stagefx.errors import IllegalRenderMutation
from stagefx.handlers import HANDLE_TYPES, NO_VALUE, Handle, MutationRequest, unwrap
from stagefx.listeners import ListenerRegistry
from stagefx.traverse import (
    Kind,
    Record,
    clone_shallow,
    deep_clone,
    get_value,
    kind_of,
    locate,
    replace_contents,
    traverse,
    update_at,
)

logger = logging.getLogger("stagefx.store")


class Store:
    """Owns the canonical store and the staged next store.

    Usage:
        store = Store({"counter": 0, "todos": []})

        store.root.counter = 5
        store.root.counter          # 5 — read back from the stage
        store.canonical.counter     # 0 — until commit
        store.commit()
        store.canonical.counter     # 5
    """

    def __init__(
        self,
        initial: Any = None,
        *,
        context: ReactiveContext | None = None,
        enabled: bool = True,
    ) -> None:
        if initial is None:
            initial = Record()
        elif isinstance(initial, dict):
            initial = Record(**initial)
        if kind_of(initial) is not Kind.RECORD:
            raise TypeError(
                f"The store root must be a Record or dict, not {type(initial).__name__}"
            )

        self.context = context if context is not None else ReactiveContext(enabled=enabled)
        self.listeners = ListenerRegistry()
        self._canonical = deep_clone(initial)
        self._staged: Any = None
        # encoded path -> path, in the order writes happened
        self._dirty: dict[str, paths.Path] = {}
        self._handles: dict[tuple, Handle] = {}
        self._root = HANDLE_TYPES[Kind.RECORD](self, self._canonical, paths.ROOT, is_root=True)

    # --- Access ---

    @property
    def root(self) -> Handle:
        """The global root handle. Reading it while rendering is an error."""
        return self._root

    def snapshot(self) -> Handle:
        """The handle a render unit reads from during its pass."""
        return self.wrap(self._canonical, paths.ROOT)

    @property
    def canonical(self) -> Any:
        """The raw canonical root. Treat as read-only."""
        return self._canonical

    @property
    def has_pending(self) -> bool:
        return self._staged is not None

    @property
    def pending_paths(self) -> list[str]:
        """Paths written since the last commit, for debugging."""
        return [paths.to_user_string(path) for path in self._dirty.values()]

    def wrap(self, value: Any, path: paths.Path) -> Any:
        """The handle for a container at `path`; leaves pass through.

        Handles are cached per path and container until the next commit
        or a write at or above their path, so repeated reads never
        allocate a second handle.
        """
        kind = kind_of(value)
        if kind is None:
            return value
        key = (paths.encode(path), id(value))
        handle = self._handles.get(key)
        if handle is None:
            handle = HANDLE_TYPES[kind](self, value, path)
            self._handles[key] = handle
        return handle

    def _forget_handles(self, path: paths.Path) -> None:
        """Drop cached handles at or below `path`; a write may have replaced them."""
        prefix = paths.encode(path)
        for key in [key for key in self._handles if paths.within(key[0], prefix)]:
            del self._handles[key]

    def rewrap(self, value: Any) -> Any:
        """A copy of `value` fit to be placed in the store.

        Handles are unwrapped and every container is copied, so the
        canonical and staged stores never share a container.
        """
        return traverse(value, lambda node, _path: clone_shallow(unwrap(node)))

    def current_node(self, path: paths.Path) -> Any:
        """The node at `path` as of now: staged if a write is pending."""
        root = self._staged if self._staged is not None else self._canonical
        return locate(root, path)

    # --- Staging protocol ---

    def read_staged(self, target: Handle, prop: Hashable) -> Any:
        """Resolve `prop` against the staged equivalent of `target`."""
        node = self.current_node(target._path)
        return self.wrap(get_value(node, prop), paths.extend(target._path, prop))

    def apply_staged(self, request: MutationRequest) -> None:
        """Replay a write against the stage and mark its paths dirty."""
        target_path = request.target._path
        with self.context.muted():
            if self._staged is None:
                self._staged = deep_clone(self._canonical)
            value = request.value
            if value is not NO_VALUE:
                value = self.rewrap(value)
            found = update_at(
                self._staged, target_path, lambda node: request.updater(node, value)
            )
        if not found:
            raise KeyError(f"{paths.to_user_string(target_path)} is no longer in the store")
        self._forget_handles(target_path)
        for path in request.dirty:
            self._dirty[paths.encode(path)] = path

    def commit(self) -> list:
        """Promote the stage into the canonical store.

        Returns the render units whose dependencies were touched; they
        are scheduled on the context (run now, or when the current batch
        ends).
        """
        unit = self.context.current_unit
        if unit is not None:
            raise IllegalRenderMutation("store", "<pending changes>", unit.name)
        if self._staged is None:
            return []

        with self.context.muted():
            replace_contents(self._canonical, self._staged)
        dirty = list(self._dirty.values())
        self._staged = None
        self._dirty = {}
        self._handles.clear()

        units = self.listeners.affected_by(dirty)
        logger.debug("Committed %d path(s); %d unit(s) to re-render", len(dirty), len(units))
        for affected in units:
            self.context.schedule(affected)
        return units

    def __repr__(self) -> str:
        state = "staged" if self._staged is not None else "clean"
        return f"Store({self._canonical!r}, {state})"
