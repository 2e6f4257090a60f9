"""Paths — where a value lives in the store.

A path is a tuple of keys from the store root down to a node or leaf.
Paths are encoded into strings so they can key the listener registry and
be compared cheaply. Encoding is injective: two paths share an encoding
only if their keys are equal element-wise.
"""

from __future__ import annotations

from typing import Hashable, Iterable

Path = tuple

# Separator between key tokens. repr() escapes control characters, so it
# can never occur inside a str or int token.
SEP = "\x1f"


class Marker:
    """A reserved path key that can never clash with user data."""

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"<{self.name}>"


# The length of a list. Structural list changes are staged under this key.
LENGTH = Marker("length")

# "The container as a whole" — enumeration and Map/Set reads depend on it.
WHOLE = Marker("*")

ROOT: Path = ()


def _token(key: Hashable) -> str:
    if isinstance(key, Marker):
        return f"@{key.name}"
    if type(key) is str:
        return f"s{key!r}"
    if type(key) is int:
        return f"i{key}"
    return f"{type(key).__qualname__}:{key!r}"


def encode(path: Iterable[Hashable]) -> str:
    """Encode a path as a canonical string."""
    return SEP.join(_token(key) for key in path)


def extend(path: Path, key: Hashable) -> Path:
    return (*path, key)


def whole_container(path: Path) -> Path:
    """The path that denotes `path`'s container as a whole."""
    return (*path, WHOLE)


def parent(path: Path) -> Path:
    return path[:-1]


def overlaps(a: str, b: str) -> bool:
    """Is one encoded path equal to, or an ancestor of, the other?"""
    if a == b or not a or not b:
        return True
    if len(a) < len(b):
        return b.startswith(a + SEP)
    return a.startswith(b + SEP)


def within(path: str, ancestor: str) -> bool:
    """Is encoded `path` equal to, or below, encoded `ancestor`?"""
    if path == ancestor or not ancestor:
        return True
    return path.startswith(ancestor + SEP)


def to_user_string(path: Iterable[Hashable]) -> str:
    """Human-readable form for logs and errors: store.todos.0.title"""
    parts = ["store"]
    for key in path:
        parts.append(key.name if isinstance(key, Marker) else str(key))
    return ".".join(parts)
