"""Actions and transactions — batched writes.

Writes are always staged. Wrapping them in an @action or
`with transaction()` commits the stage once when the outermost scope
exits and re-renders every affected unit exactly once, so no unit
renders an intermediate state.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator, ParamSpec, TypeVar

if TYPE_CHECKING:
    from stagefx.store import Store

P = ParamSpec("P")
R = TypeVar("R")


@contextmanager
def transaction(store: Store) -> Iterator[Store]:
    """Context manager for batching writes.

    Usage:
        with transaction(store):
            store.root.first = "Bob"
            store.root.last = "Jones"
            # renders happen here, after both are committed
    """
    context = store.context
    context.begin_batch()
    try:
        yield store
    finally:
        try:
            if context.batch_depth == 1:
                store.commit()
        finally:
            context.end_batch()


def action(store: Store) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Decorator factory: run fn inside a transaction on `store`.

    Usage:
        @action(store)
        def swap():
            a, b = store.root.a, store.root.b
            store.root.a = b
            store.root.b = a
    """

    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        @functools.wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            with transaction(store):
                return fn(*args, **kwargs)

        return wrapper

    return decorator
