"""Traversal and cloning of store graphs.

The store graph is built from four container kinds: records
(SimpleNamespace), sequences (list), maps (dict) and sets (set). Anything
else is a leaf. `traverse` walks a graph depth-first and lets a transform
either mutate each node in place or replace it, which is how independent
copies of the store are produced and how staged updates are applied.
"""

from __future__ import annotations

import enum
from types import SimpleNamespace
from typing import Any, Callable

from stagefx.paths import LENGTH, Path

Record = SimpleNamespace


class Kind(enum.Enum):
    RECORD = "record"
    SEQUENCE = "sequence"
    MAP = "map"
    SET = "set"


def kind_of(value: Any) -> Kind | None:
    """The container kind of `value`, or None for a leaf."""
    if isinstance(value, SimpleNamespace):
        return Kind.RECORD
    if isinstance(value, list):
        return Kind.SEQUENCE
    if isinstance(value, dict):
        return Kind.MAP
    if isinstance(value, set):
        return Kind.SET
    return None


def _require_kind(container: Any) -> Kind:
    kind = kind_of(container)
    if kind is None:
        raise TypeError(f"Unexpected container type: {type(container).__name__}")
    return kind


def get_value(container: Any, key: Any) -> Any:
    """Read `key` from a container. Sets return the key itself."""
    kind = _require_kind(container)
    if kind is Kind.RECORD:
        return getattr(container, key)
    if kind is Kind.SEQUENCE:
        if key is LENGTH:
            return len(container)
        return container[key]
    if kind is Kind.MAP:
        return container[key]
    if key not in container:
        raise KeyError(key)
    return key


def has_key(container: Any, key: Any) -> bool:
    kind = _require_kind(container)
    if kind is Kind.RECORD:
        return isinstance(key, str) and key in vars(container)
    if kind is Kind.SEQUENCE:
        return key is LENGTH or (type(key) is int and 0 <= key < len(container))
    return key in container


def set_value(container: Any, key: Any, value: Any) -> None:
    """Write `value` under `key`. Sets ignore the key and add the value."""
    kind = _require_kind(container)
    if kind is Kind.RECORD:
        setattr(container, key, value)
    elif kind is Kind.SET:
        container.add(value)
    else:
        container[key] = value


def clone_shallow(node: Any) -> Any:
    """Copy one level of a container. Leaves are returned as they are."""
    kind = kind_of(node)
    if kind is Kind.RECORD:
        return type(node)(**vars(node))
    if kind is None:
        return node
    return node.copy()


def traverse(
    node: Any,
    transform: Callable[[Any, Path], Any],
    *,
    descend: Callable[[Path], bool] | None = None,
) -> Any:
    """Walk a store graph depth-first, pre-order.

    `transform(node, path)` is called for every node, leaves included. If
    it returns something other than None, that value replaces the node for
    the rest of the walk (and is what gets written back into the parent);
    otherwise the original node is kept and may be mutated in place.

    `descend(path)` returning False stops the walk below that node.

    Usage:
        copy = traverse(original, lambda node, path: clone_shallow(node))
    """
    path: list = []

    def visit(target: Any) -> Any:
        updated = transform(target, tuple(path))
        current = target if updated is None else updated

        if descend is not None and not descend(tuple(path)):
            return current

        kind = kind_of(current)
        if kind is None:
            return current

        def handle_entry(key: Any, value: Any) -> None:
            path.append(key)
            processed = visit(value)
            path.pop()
            set_value(current, key, processed)

        if kind is Kind.SET:
            # A set has no positions to write back into, so empty it and
            # re-add every value once it has been visited.
            contents = list(current)
            current.clear()
            for value in contents:
                handle_entry(value, value)
        elif kind is Kind.RECORD:
            for key, value in list(vars(current).items()):
                handle_entry(key, value)
        elif kind is Kind.SEQUENCE:
            for index, value in enumerate(list(current)):
                handle_entry(index, value)
        else:
            for key, value in list(current.items()):
                handle_entry(key, value)

        return current

    return visit(node)


def deep_clone(node: Any) -> Any:
    """An independent copy of every container under `node`."""
    return traverse(node, lambda item, _path: clone_shallow(item))


def update_at(root: Any, target_path: Path, fn: Callable[[Any], None]) -> bool:
    """Apply `fn` in place to the node at `target_path` under `root`.

    Only nodes on the way to the target are descended into. Returns
    whether the target was found.
    """
    target_path = tuple(target_path)
    found = False

    def transform(node: Any, path: Path) -> None:
        nonlocal found
        if path == target_path:
            found = True
            fn(node)

    def on_the_way(path: Path) -> bool:
        return len(path) < len(target_path) and path == target_path[: len(path)]

    traverse(root, transform, descend=on_the_way)
    return found


def locate(root: Any, path: Path) -> Any:
    """The node at `path` under `root`. Raises LookupError if absent."""
    node = root
    for key in path:
        try:
            node = get_value(node, key)
        except AttributeError as exc:
            raise KeyError(key) from exc
    return node


def replace_contents(target: Any, source: Any) -> None:
    """Make `target` hold what `source` holds, keeping `target`'s identity."""
    kind = _require_kind(target)
    if kind_of(source) is not kind:
        raise TypeError(
            f"Cannot replace a {kind.value} with a {type(source).__name__}"
        )
    if kind is Kind.RECORD:
        incoming = vars(source)
        for key, value in incoming.items():
            if getattr(target, key, _MISSING) is not value:
                setattr(target, key, value)
        for key in [k for k in vars(target) if k not in incoming]:
            delattr(target, key)
    elif kind is Kind.SEQUENCE:
        target[:] = source
    else:
        target.clear()
        target.update(source)


_MISSING = object()
