"""Listener registry — which render units read which paths.

Reads made while a unit is tracking are recorded here, keyed by encoded
path. The registry only ever grows during a render pass; clearing a
unit's entries before it renders again is the scheduler's job.
"""

from __future__ import annotations

from typing import Iterable

from stagefx import paths


class ListenerRegistry:
    """Maps encoded paths to the set of units that depend on them."""

    def __init__(self) -> None:
        self._listeners: dict[str, set] = {}

    def record(self, path: paths.Path, unit) -> None:
        """Register `unit` as a dependent of `path`. No-op without a unit."""
        if unit is None:
            return
        self._listeners.setdefault(paths.encode(path), set()).add(unit)

    def dependents_of(self, path: paths.Path) -> set:
        return set(self._listeners.get(paths.encode(path), ()))

    def paths_of(self, unit) -> list[str]:
        """Encoded paths `unit` currently depends on."""
        return [key for key, units in self._listeners.items() if unit in units]

    def clear_unit(self, unit) -> None:
        """Forget everything `unit` has read. Called before it re-renders."""
        for key in list(self._listeners):
            units = self._listeners[key]
            units.discard(unit)
            if not units:
                del self._listeners[key]

    def affected_by(self, dirty: Iterable[paths.Path]) -> list:
        """Units whose dependencies overlap any of the dirty paths.

        A change at `todos.0` affects readers of `todos.0`, of anything
        below it (`todos.0.title`) and of its ancestors (`todos`), since
        those containers are replaced when the stage is committed.
        """
        encoded = [paths.encode(path) for path in dirty]
        # dict as an ordered set: units re-render in first-recorded order
        affected: dict = {}
        for key, units in self._listeners.items():
            if any(paths.overlaps(key, d) for d in encoded):
                for unit in units:
                    affected[unit] = None
        return list(affected)

    def __len__(self) -> int:
        return len(self._listeners)

    def __repr__(self) -> str:
        return f"ListenerRegistry({len(self._listeners)} paths)"
