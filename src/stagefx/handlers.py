"""Handles — explicit interception for the four store container kinds.

Every container in the store is reached through a handle that knows its
store, its raw container and its path from the root. Python's data model
methods stand in for property traps:

- RecordHandle and ListHandle track reads per key (per index for lists,
  with LENGTH for len()) and stage writes per key.
- MapHandle and SetHandle track every read against the whole container
  and stage each structural call (add, delete, clear, item assignment).

Reads while a render unit is tracking are recorded in the listener
registry. Writes while tracking raise IllegalRenderMutation. Writes
outside tracking become MutationRequests staged by the store, and reads
outside tracking are answered from the staged store, so a write is read
back immediately even though the canonical store is unchanged until the
next commit.
"""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Hashable, Iterator

from stagefx import paths
from stagefx.errors import IllegalGlobalRead, IllegalRenderMutation
from stagefx.paths import LENGTH, WHOLE, Path
from stagefx.traverse import Kind, deep_clone, get_value, has_key

if TYPE_CHECKING:
    from stagefx.store import Store

logger = logging.getLogger("stagefx.handlers")


class _NoValue:
    __slots__ = ()

    def __repr__(self) -> str:
        return "<no value>"


# Mutations that carry no value: deletes, clears, pops.
NO_VALUE = _NoValue()


@dataclass(frozen=True, eq=False)
class MutationRequest:
    """One staged write: `updater(staged_target, value)` replays it."""

    target: Handle
    prop: Hashable
    updater: Callable[[Any, Any], None]
    value: Any = NO_VALUE
    # Paths whose readers must re-render once this write is committed.
    dirty: tuple[Path, ...] = ()

    @property
    def path(self) -> Path:
        return paths.extend(self.target._path, self.prop)


def unwrap(value: Any) -> Any:
    """The container a handle currently stands for, or the value itself."""
    return value._resolved() if isinstance(value, Handle) else value


def _is_internal(prop: Any) -> bool:
    if isinstance(prop, paths.Marker):
        return prop is not LENGTH
    return isinstance(prop, str) and prop.startswith("__") and prop.endswith("__")


def _unchanged(old: Any, new: Any) -> bool:
    return old is new or (type(old) is type(new) and old == new)


class Handle:
    """Base for all container handles."""

    __slots__ = ("_store", "_raw", "_path", "_is_root")

    def __init__(self, store: Store, raw: Any, path: Path, *, is_root: bool = False) -> None:
        # object.__setattr__ because RecordHandle intercepts attribute writes.
        object.__setattr__(self, "_store", store)
        object.__setattr__(self, "_raw", raw)
        object.__setattr__(self, "_path", path)
        object.__setattr__(self, "_is_root", is_root)

    @property
    def _context(self):
        return self._store.context

    def _current(self) -> Any:
        """The node a read or no-op check should see right now."""
        if self._context.should_forward():
            return self._store.current_node(self._path)
        return self._raw

    def _resolved(self) -> Any:
        """The node this handle stands for, found by path.

        A handle taken before the first write wraps a canonical node, so
        outside tracking the staged node at the same path is what it
        means. A handle whose path has left the store keeps its own node.
        """
        if self._context.current_unit is not None:
            return self._raw
        try:
            return self._store.current_node(self._path)
        except LookupError:
            return self._raw

    def _child(self, key: Hashable, value: Any) -> Any:
        return self._store.wrap(value, paths.extend(self._path, key))

    def _track(self, path: Path) -> None:
        unit = self._context.current_unit
        self._store.listeners.record(path, unit)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("GET %s <%s>", paths.to_user_string(path), unit.name)

    def _read_whole(self, path: Path) -> Any:
        """Read the entire node, recording a dependency on `path`."""
        if self._context.should_bypass():
            return self._current()
        self._track(path)
        return self._raw

    def _guard_write(self, prop: Hashable, value: Any) -> None:
        unit = self._context.current_unit
        if unit is not None:
            path = paths.to_user_string(paths.extend(self._path, prop))
            raise IllegalRenderMutation(path, value, unit.name)

    def _writes_directly(self) -> bool:
        context = self._context
        return context.is_muted or not context.enabled

    def _apply_directly(self, updater: Callable[[Any, Any], None], value: Any) -> None:
        if value is not NO_VALUE:
            value = self._store.rewrap(value)
        updater(self._raw, value)

    def _stage(
        self,
        prop: Hashable,
        updater: Callable[[Any, Any], None],
        value: Any = NO_VALUE,
        dirty: tuple[Path, ...] = (),
    ) -> None:
        """Apply a write directly when muted or disabled, else stage it."""
        if self._writes_directly():
            self._apply_directly(updater, value)
            return
        path = paths.extend(self._path, prop)
        if logger.isEnabledFor(logging.DEBUG):
            op = "DELETE" if value is NO_VALUE else "SET"
            logger.debug("%s %s -> %r", op, paths.to_user_string(path), value)
        request = MutationRequest(self, prop, updater, value, dirty or (path,))
        self._store.apply_staged(request)

    def __eq__(self, other: object) -> bool:
        return self._read_whole(self._path) == unwrap(other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({paths.to_user_string(self._path)}, {self._raw!r})"


class _KeyedHandle(Handle):
    """Shared read/write logic for records and lists."""

    __slots__ = ()

    def _get(self, prop: Hashable) -> Any:
        context = self._context
        if _is_internal(prop):
            return get_value(self._raw, prop)
        if self._is_root and context.current_unit is not None:
            raise IllegalGlobalRead(prop, context.current_unit.name)

        if context.should_forward():
            return self._store.read_staged(self, prop)

        value = get_value(self._raw, prop)
        # Methods are not data; bypassed reads are not dependencies.
        if callable(value) or context.should_bypass():
            return self._child(prop, value)

        self._track(paths.extend(self._path, prop))
        return self._child(prop, value)

    def _has(self, prop: Hashable) -> bool:
        if not self._context.should_bypass():
            self._track(paths.extend(self._path, prop))
        return has_key(self._current(), prop)

    def _set(self, prop: Hashable, value: Any, updater: Callable[[Any, Any], None]) -> None:
        self._guard_write(prop, value)
        value = unwrap(value)
        node = self._current()
        exists = has_key(node, prop)
        if exists and _unchanged(get_value(node, prop), value):
            return
        path = paths.extend(self._path, prop)
        if exists:
            dirty = (path,)
        else:
            dirty = (path, paths.whole_container(self._path))
        self._stage(prop, updater, value, dirty)

    def _delete(self, prop: Hashable, updater: Callable[[Any, Any], None]) -> None:
        self._guard_write(prop, NO_VALUE)
        if not has_key(self._current(), prop):
            return
        dirty = (paths.extend(self._path, prop), paths.whole_container(self._path))
        self._stage(prop, updater, dirty=dirty)


class RecordHandle(_KeyedHandle):
    """Attribute-style access to a Record (SimpleNamespace).

    Usage:
        store.root.counter = 5      # staged
        store.root.counter          # 5, read back from the stage
        "counter" in store.root     # existence check, tracked per key
        list(store.root)            # field names, tracked as a whole
    """

    __slots__ = ()

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails, i.e. for record fields.
        if name in Handle.__slots__:
            raise AttributeError(name)
        return self._get(name)

    def _check_field(self, name: str) -> None:
        # Names the handle itself defines would shadow the field on read.
        if hasattr(type(self), name):
            raise AttributeError(
                f"{name!r} is reserved by {type(self).__name__} and cannot be a record field"
            )

    def __setattr__(self, name: str, value: Any) -> None:
        self._check_field(name)
        self._set(name, value, lambda target, v: setattr(target, name, v))

    def __delattr__(self, name: str) -> None:
        self._check_field(name)
        self._delete(name, lambda target, _: delattr(target, name))

    def __contains__(self, name: object) -> bool:
        return self._has(name)

    def _own_keys(self) -> list[str]:
        return list(vars(self._read_whole(paths.whole_container(self._path))))

    def __iter__(self) -> Iterator[str]:
        return iter(self._own_keys())

    def __len__(self) -> int:
        return len(self._own_keys())

    def __bool__(self) -> bool:
        return True


class ListHandle(_KeyedHandle):
    """A list in the store.

    Index reads are tracked per index and len() under LENGTH. Assigning
    an index is a keyed write; every other mutation (append, pop, sort,
    slice assignment...) changes the list's shape and is staged under
    LENGTH, invalidating every reader of the list.
    """

    __slots__ = ()

    def _index(self, index: Any) -> int:
        index = operator.index(index)
        size = len(self._current())
        normalized = index + size if index < 0 else index
        if not 0 <= normalized < size:
            raise IndexError("list index out of range")
        return normalized

    def _mutate(self, updater: Callable[[Any, Any], None], value: Any = NO_VALUE) -> None:
        # Structural changes are never no-ops; the list's own path is dirty.
        self._stage(LENGTH, updater, value, dirty=(self._path,))

    # --- Reads ---

    def __getitem__(self, index: int | slice) -> Any:
        if isinstance(index, slice):
            return [self._get(i) for i in range(len(self))[index]]
        return self._get(self._index(index))

    def __len__(self) -> int:
        return self._get(LENGTH)

    def __iter__(self) -> Iterator[Any]:
        for index in range(len(self)):
            yield self._get(index)

    def __contains__(self, item: object) -> bool:
        item = unwrap(item)
        return any(unwrap(value) == item for value in self)

    def index(self, item: Any) -> int:
        item = unwrap(item)
        for position, value in enumerate(self):
            if unwrap(value) == item:
                return position
        raise ValueError(f"{item!r} is not in list")

    def count(self, item: Any) -> int:
        item = unwrap(item)
        return sum(1 for value in self if unwrap(value) == item)

    # --- Writes ---

    def __setitem__(self, index: int | slice, value: Any) -> None:
        if isinstance(index, slice):
            self._guard_write(LENGTH, value)
            items = [unwrap(item) for item in value]
            self._mutate(lambda target, v: target.__setitem__(index, v), items)
            return
        self._guard_write(index, value)
        index = self._index(index)
        self._set(index, value, lambda target, v: target.__setitem__(index, v))

    def __delitem__(self, index: int | slice) -> None:
        self._guard_write(LENGTH, NO_VALUE)
        if not isinstance(index, slice):
            index = self._index(index)
        self._mutate(lambda target, _: target.__delitem__(index))

    def append(self, item: Any) -> None:
        self._guard_write(LENGTH, item)
        self._mutate(lambda target, v: target.append(v), unwrap(item))

    def extend(self, items) -> None:
        items = [unwrap(item) for item in items]
        self._guard_write(LENGTH, items)
        self._mutate(lambda target, v: target.extend(v), items)

    def insert(self, index: int, item: Any) -> None:
        self._guard_write(LENGTH, item)
        self._mutate(lambda target, v: target.insert(index, v), unwrap(item))

    def pop(self, index: int = -1) -> Any:
        self._guard_write(LENGTH, NO_VALUE)
        node = self._current()
        if not node:
            raise IndexError("pop from empty list")
        index = self._index(index)
        # Detached from both stores.
        removed = deep_clone(node[index])
        self._mutate(lambda target, _: target.pop(index))
        return removed

    def remove(self, item: Any) -> None:
        self._guard_write(LENGTH, NO_VALUE)
        # ValueError if absent, like list.remove
        index = self._current().index(unwrap(item))
        self._mutate(lambda target, _: target.pop(index))

    def clear(self) -> None:
        self._guard_write(LENGTH, NO_VALUE)
        if not self._current():
            return
        self._mutate(lambda target, _: target.clear())

    def sort(self, *, key=None, reverse: bool = False) -> None:
        self._guard_write(LENGTH, NO_VALUE)
        self._mutate(lambda target, _: target.sort(key=key, reverse=reverse))

    def reverse(self) -> None:
        self._guard_write(LENGTH, NO_VALUE)
        self._mutate(lambda target, _: target.reverse())


class _CollectionHandle(Handle):
    """Maps and sets: every read depends on the whole container."""

    __slots__ = ()

    def _read(self) -> Any:
        return self._read_whole(paths.whole_container(self._path))

    def __len__(self) -> int:
        return len(self._read())

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._read()))

    def __contains__(self, key: object) -> bool:
        return unwrap(key) in self._read()

    def __eq__(self, other: object) -> bool:
        return self._read() == unwrap(other)

    __hash__ = None  # type: ignore[assignment]

    def clear(self) -> None:
        self._guard_write(WHOLE, NO_VALUE)
        if not self._current():
            return
        self._stage(WHOLE, lambda target, _: target.clear(), dirty=(self._path,))


class MapHandle(_CollectionHandle):
    """A dict in the store."""

    __slots__ = ()

    def _dirty(self, key: Hashable) -> tuple[Path, ...]:
        return (paths.extend(self._path, key), paths.whole_container(self._path))

    # --- Reads ---

    def __getitem__(self, key: Hashable) -> Any:
        return self._child(key, self._read()[key])

    def get(self, key: Hashable, default: Any = None) -> Any:
        node = self._read()
        if key not in node:
            return default
        return self._child(key, node[key])

    def keys(self) -> list:
        return list(self._read())

    def values(self) -> list:
        return [self._child(key, value) for key, value in self._read().items()]

    def items(self) -> list:
        return [(key, self._child(key, value)) for key, value in self._read().items()]

    # --- Writes ---

    def __setitem__(self, key: Hashable, value: Any) -> None:
        self._guard_write(key, value)
        value = unwrap(value)
        node = self._current()
        if key in node and _unchanged(node[key], value):
            return
        self._stage(key, lambda target, v: target.__setitem__(key, v), value, self._dirty(key))

    def update(self, other=(), **kwargs) -> None:
        for key, value in dict(other, **kwargs).items():
            self[key] = value

    def setdefault(self, key: Hashable, default: Any = None) -> Any:
        if key not in self:
            self[key] = default
        return self[key]

    def delete(self, key: Hashable) -> bool:
        """Remove `key` if present. Returns whether anything was removed."""
        self._guard_write(key, NO_VALUE)
        if key not in self._current():
            return False
        self._stage(key, lambda target, _: target.__delitem__(key), dirty=self._dirty(key))
        return True

    def __delitem__(self, key: Hashable) -> None:
        if not self.delete(key):
            raise KeyError(key)

    def pop(self, key: Hashable, *default: Any) -> Any:
        self._guard_write(key, NO_VALUE)
        node = self._current()
        if key not in node:
            if default:
                return default[0]
            raise KeyError(key)
        value = deep_clone(node[key])
        self.delete(key)
        return value


class SetHandle(_CollectionHandle):
    """A set in the store. A value is its own key."""

    __slots__ = ()

    def add(self, value: Any) -> None:
        self._guard_write(value, value)
        value = unwrap(value)
        if value in self._current():
            return
        self._stage(value, lambda target, v: target.add(v), value, (paths.whole_container(self._path),))

    def update(self, *others) -> None:
        for other in others:
            for value in other:
                self.add(value)

    def discard(self, value: Any) -> None:
        self._guard_write(value, NO_VALUE)
        if value not in self._current():
            return
        self._stage(
            value,
            lambda target, _: target.discard(value),
            dirty=(paths.whole_container(self._path),),
        )

    def remove(self, value: Any) -> None:
        self._guard_write(value, NO_VALUE)
        if value not in self._current():
            raise KeyError(value)
        self.discard(value)


HANDLE_TYPES: dict[Kind, type[Handle]] = {
    Kind.RECORD: RecordHandle,
    Kind.SEQUENCE: ListHandle,
    Kind.MAP: MapHandle,
    Kind.SET: SetHandle,
}
