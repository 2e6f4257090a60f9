"""Textual integration for stagefx. Opt-in — requires textual.

Render units bound to a Textual app skip their pass while the app is not
running or its widget tree is being replaced, swallow NoMatches from
widget queries, and marshal passes scheduled from a background thread
onto the app's thread.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

from stagefx.render import RenderUnit

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend bound render units during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


class WidgetUnit(RenderUnit):
    """A RenderUnit that only renders while its app is safe to query.

    A skipped pass keeps the dependencies of the last completed pass, so
    the next commit touching them renders the unit again.
    """

    __slots__ = ("_app", "_main")

    def __init__(self, app, store, fn, *, name=None) -> None:
        def _safe(snapshot):
            try:
                fn(snapshot)
            except NoMatches:
                pass

        super().__init__(store, _safe, name=name or getattr(fn, "__name__", None))
        self._app = app
        self._main = threading.get_ident()

    def _run(self) -> None:
        if not is_safe(self._app):
            return
        if threading.get_ident() != self._main:
            self._app.call_from_thread(RenderUnit._run, self)
        else:
            RenderUnit._run(self)


def collect(app, store, fn, *, name=None) -> WidgetUnit:
    """collect() that safely bridges to Textual widgets.

    Usage:
        def render_counter(snapshot):
            app.query_one("#counter", Label).update(str(snapshot.counter))

        stx.collect(app, store, render_counter)
    """
    unit = WidgetUnit(app, store, fn, name=name)
    unit._run()
    return unit
