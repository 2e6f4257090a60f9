"""Coordination context — the state every interception consults.

A ReactiveContext holds which render unit is tracking, whether
interception is muted, and whether it is enabled at all. Handles reach it
through their store, so nothing here is module-global and two stores can
share one context when they feed the same render units.

Batching: commits inside a transaction accumulate the units to re-render
and run them once when the outermost scope exits.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from stagefx.render import RenderUnit


class ReactiveContext:
    """Explicit replacement for ambient tracking flags."""

    def __init__(self, *, enabled: bool = True) -> None:
        # When False, handles read and write the canonical store directly.
        self.enabled = enabled
        self.current_unit: RenderUnit | None = None
        self._mute_depth = 0
        self._batch_depth = 0
        # Units awaiting a re-render; dict keeps scheduling order.
        self._pending: dict[RenderUnit, None] = {}

    # --- Tracking ---

    @property
    def is_tracking(self) -> bool:
        return self.current_unit is not None

    @contextmanager
    def tracking(self, unit: RenderUnit) -> Iterator[None]:
        """Attribute every read to `unit` for the duration of the block."""
        if self.current_unit is not None:
            raise RuntimeError(
                f"Cannot render <{unit.name}> while <{self.current_unit.name}> "
                f"is rendering"
            )
        self.current_unit = unit
        try:
            yield
        finally:
            self.current_unit = None

    # --- Muting ---

    @property
    def is_muted(self) -> bool:
        return self._mute_depth > 0

    @contextmanager
    def muted(self) -> Iterator[None]:
        """Suspend interception. Re-entrant."""
        self._mute_depth += 1
        try:
            yield
        finally:
            self._mute_depth -= 1

    def should_forward(self) -> bool:
        """Should a read be answered from the staged store?"""
        return self.current_unit is None and self.enabled and not self.is_muted

    def should_bypass(self) -> bool:
        """Should a read skip dependency recording?"""
        return self.is_muted or not self.enabled or self.current_unit is None

    # --- Batching ---

    @property
    def batch_depth(self) -> int:
        return self._batch_depth

    def begin_batch(self) -> None:
        """Enter a batching scope. Nested batches are supported."""
        self._batch_depth += 1

    def end_batch(self) -> None:
        """Exit a batching scope. When the outermost scope exits, flush pending units."""
        self._batch_depth -= 1
        if self._batch_depth == 0:
            self._flush_pending()

    def schedule(self, unit: RenderUnit) -> None:
        """Schedule a unit for re-rendering.

        If inside a batch, defers. Otherwise, runs immediately.
        """
        if self._batch_depth > 0:
            self._pending[unit] = None
        else:
            unit._run()

    def _flush_pending(self) -> None:
        while self._pending:
            # Snapshot and clear — renders may commit and schedule more.
            batch = list(self._pending)
            self._pending.clear()
            for unit in batch:
                unit._run()

    def get_pending_count(self) -> int:
        """Number of units waiting to render. Useful for testing."""
        return len(self._pending)
