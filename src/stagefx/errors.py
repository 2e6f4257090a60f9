"""Errors raised for misuse of the store.

Both are programmer errors: they abort the current operation and leave
the canonical and staged stores untouched.
"""

from __future__ import annotations

from typing import Any


class StoreError(Exception):
    """Base class for stagefx errors."""


class IllegalRenderMutation(StoreError):
    """The store was written to while a render unit was tracking."""

    def __init__(self, path: str, value: Any, unit_name: str) -> None:
        self.path = path
        self.value = value
        self.unit_name = unit_name
        super().__init__(
            f"You are modifying the store while <{unit_name}> is rendering. "
            f'You\'re setting "{path}" to {value!r} somewhere; check the '
            f"traceback. Make the change after the render pass completes."
        )


class IllegalGlobalRead(StoreError):
    """The global store root was read while a render unit was tracking."""

    def __init__(self, prop: Any, unit_name: str) -> None:
        self.prop = prop
        self.unit_name = unit_name
        super().__init__(
            f'You are trying to read "{prop}" from the global store while '
            f"rendering <{unit_name}>. This could result in subtle bugs. "
            f"Read from the snapshot passed to the render function instead."
        )
