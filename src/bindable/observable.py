"""Observable nodes — the wrapped dicts and lists that make up a model tree.

Each node knows its chain and the ModelContext of the model that owns it.
Every write funnels through the node (item assignment, set(), or one of the
list operations in array_ops), which wraps container values, stores them,
and asks the context to notify. Reads never notify.

Invariant: every dict or list stored in a node is itself a node. Other
values (numbers, strings, None, tuples, arbitrary objects) are stored as-is
and never looked into, so a dict inside a tuple stays a plain dict.

Thread safety: call set_scheduler() once from the owning thread. After that,
every write from another thread (item assignment, set(), define_property,
deletion and the mutating list operations) is handed to the scheduler, so
writes land in call order and subscribers run on the owning thread. Without
a scheduler nothing is marshaled and callers serialize access themselves.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator

from bindable.array_ops import ArrayOp, intercept
from bindable.chain import extend_chain

if TYPE_CHECKING:
    from bindable.context import ModelContext

Setter = Callable[["ObservableDict", str, Any], None]

# ─── Auto-marshal ────────────────────────────────────────────────────────────
_scheduler = None
_scheduler_thread = None


def set_scheduler(scheduler) -> None:
    """Set the global thread scheduler for cross-thread model writes.

    Call once from the thread that owns the models:
        bindable.set_scheduler(app.call_from_thread)

    After this, writes from any other thread are passed to scheduler(fn)
    and the call returns whatever the scheduler returns. A blocking
    scheduler such as call_from_thread hands back the operation's result;
    a deferring one returns its own value (usually None). Writes from the
    owning thread stay synchronous.
    """
    global _scheduler, _scheduler_thread
    _scheduler = scheduler
    _scheduler_thread = threading.current_thread()


def _marshal(fn: Callable[[], Any]) -> Any:
    if _scheduler is not None and threading.current_thread() != _scheduler_thread:
        return _scheduler(fn)
    return fn()


def wrap_value(value: Any, chain: str, context: ModelContext) -> Any:
    """Wrap dicts and lists into nodes rooted at chain; return anything else unchanged.

    An existing node is copied into a fresh node at the new chain, so a
    subtree never answers to two chains at once.
    """
    if isinstance(value, ObservableNode):
        value = value.to_plain()
    if isinstance(value, dict):
        return ObservableDict(value, chain, context)
    if isinstance(value, list):
        return ObservableList(value, chain, context)
    return value


def to_plain(value: Any) -> Any:
    if isinstance(value, ObservableNode):
        return value.to_plain()
    return value


def _parse_index(key: Any) -> int | None:
    """Non-negative list index from an int or a decimal chain segment."""
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key if key >= 0 else None
    if isinstance(key, str) and key.isascii() and key.isdigit():
        return int(key)
    return None


class ObservableNode:
    """Shared state of dict and list nodes: chain, owning context, extensibility."""

    __slots__ = ("_chain", "_context", "_extensible")

    def __init__(self, chain: str, context: ModelContext) -> None:
        self._chain = chain
        self._context = context
        self._extensible = True

    @property
    def chain(self) -> str:
        return self._chain

    def is_extensible(self) -> bool:
        return self._extensible

    def prevent_extensions(self) -> None:
        """Refuse new keys (dicts) or growth (lists). Existing entries stay writable."""
        self._extensible = False

    def _child_chain(self, key: Any) -> str:
        return extend_chain(self._chain, key)

    def _wrap(self, key: Any, value: Any) -> Any:
        return wrap_value(value, self._child_chain(key), self._context)

    def _notify(self, chain: str) -> None:
        self._context.notify(chain)

    def _children(self) -> Iterable[tuple[Any, Any]]:
        raise NotImplementedError

    def _rebase(self, chain: str) -> None:
        """Move this subtree to a new chain."""
        self._chain = chain
        for key, child in self._children():
            if isinstance(child, ObservableNode):
                child._rebase(extend_chain(chain, key))

    def to_plain(self) -> Any:
        raise NotImplementedError

    __hash__ = None  # mutable


class ObservableDict(ObservableNode):
    """A dict node. Item writes notify the child chain; deletions are silent."""

    __slots__ = ("_data", "_setters")

    def __init__(self, data: dict, chain: str, context: ModelContext) -> None:
        super().__init__(chain, context)
        self._setters: dict[Any, Setter] = {}
        self._data = {key: self._wrap(key, value) for key, value in data.items()}

    def _children(self):
        return self._data.items()

    # --- Read operations ---

    def __getitem__(self, key: Any) -> Any:
        return self._data[key]

    def get(self, key: Any, default: Any = None) -> Any:
        return self._data.get(key, default)

    def __contains__(self, key: Any) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._data)

    def keys(self):
        return self._data.keys()

    def values(self):
        return self._data.values()

    def items(self):
        return self._data.items()

    def __bool__(self) -> bool:
        return bool(self._data)

    # --- Write operations (notify) ---

    def __setitem__(self, key: Any, value: Any) -> None:
        _marshal(lambda k=key, v=value: self._set_direct(k, v))

    def set(self, key: Any, value: Any) -> bool:
        """Assign and notify. Always True for dicts."""
        self[key] = value
        return True

    def _set_direct(self, key: Any, value: Any) -> None:
        if key not in self._data and not self._extensible:
            raise TypeError(f"Cannot add key {key!r}: node at {self._chain!r} is not extensible")
        setter = self._setters.get(key)
        if setter is not None:
            setter(self, key, value)
        self._data[key] = self._wrap(key, value)
        self._notify(self._child_chain(key))

    def update(self, other=None, **kwargs) -> None:
        if other:
            items = other.items() if hasattr(other, "items") else other
            for key, value in items:
                self[key] = value
        for key, value in kwargs.items():
            self[key] = value

    def setdefault(self, key: Any, default: Any = None) -> Any:
        if key not in self._data:
            self[key] = default
        return self._data.get(key, default)

    def define_property(self, key: Any, value: Any, setter: Setter | None = None) -> None:
        """Store value under key without notifying, optionally with a write hook.

        The hook runs as setter(node, key, value) before every later write to
        key; the write itself is still stored and notified as usual.
        """
        _marshal(lambda: self._define_direct(key, value, setter))

    def _define_direct(self, key: Any, value: Any, setter: Setter | None) -> None:
        if key not in self._data and not self._extensible:
            raise TypeError(f"Cannot define key {key!r}: node at {self._chain!r} is not extensible")
        if setter is not None:
            self._setters[key] = setter
        else:
            self._setters.pop(key, None)
        self._data[key] = self._wrap(key, value)

    # --- Deletion (no notification) ---

    def __delitem__(self, key: Any) -> None:
        _marshal(lambda: self._delete_direct(key))

    def _delete_direct(self, key: Any) -> None:
        del self._data[key]
        self._setters.pop(key, None)

    def delete(self, key: Any) -> bool:
        """Remove key if present. Returns whether anything was removed."""
        if key not in self._data:
            return False
        del self[key]
        return True

    def pop(self, key: Any, *args) -> Any:
        return _marshal(lambda: self._pop_direct(key, *args))

    def _pop_direct(self, key: Any, *args) -> Any:
        self._setters.pop(key, None)
        return self._data.pop(key, *args)

    def popitem(self) -> tuple[Any, Any]:
        return _marshal(self._popitem_direct)

    def _popitem_direct(self) -> tuple[Any, Any]:
        key, value = self._data.popitem()
        self._setters.pop(key, None)
        return key, value

    def clear(self) -> None:
        _marshal(self._clear_direct)

    def _clear_direct(self) -> None:
        self._data.clear()
        self._setters.clear()

    # ---

    def to_plain(self) -> dict:
        return {key: to_plain(value) for key, value in self._data.items()}

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ObservableDict):
            return self._data == other._data
        if isinstance(other, dict):
            return self._data == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"ObservableDict({self._data!r})"


class ObservableList(ObservableNode):
    """A list node. Mutating operations notify per array_ops.ArrayOp.

    Single-index assignment notifies the element's chain. After operations
    that move elements, child nodes are re-rooted at their new index.
    """

    __slots__ = ("_items",)

    def __init__(self, items: list, chain: str, context: ModelContext) -> None:
        super().__init__(chain, context)
        self._items = [self._wrap(index, item) for index, item in enumerate(items)]

    def _children(self):
        return enumerate(self._items)

    def _rebase_children(self) -> None:
        for index, item in enumerate(self._items):
            expected = self._child_chain(index)
            if isinstance(item, ObservableNode) and item._chain != expected:
                item._rebase(expected)

    def _check_growth(self) -> None:
        if not self._extensible:
            raise TypeError(f"Cannot grow list at {self._chain!r}: node is not extensible")

    def _intercept(self, op: ArrayOp, fn: Callable[..., Any], *args: Any) -> Any:
        if op.mutates:
            return _marshal(lambda: intercept(self, op, fn, *args))
        return intercept(self, op, fn, *args)

    # --- Read operations ---

    def __getitem__(self, index):
        if isinstance(index, slice):
            return self.slice(index.start, index.stop) if index.step is None else self._items[index]
        return self._items[index]

    def get(self, key: Any, default: Any = None) -> Any:
        index = _parse_index(key)
        if index is None or index >= len(self._items):
            return default
        return self._items[index]

    def keys(self) -> range:
        return range(len(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def __contains__(self, item: Any) -> bool:
        return item in self._items

    def __bool__(self) -> bool:
        return bool(self._items)

    def slice(self, start: int | None = None, end: int | None = None) -> list:
        return self._intercept(ArrayOp.SLICE, lambda: self._items[start:end])

    def index(self, value: Any, *args) -> int:
        return self._intercept(ArrayOp.INDEX_OF, self._items.index, value, *args)

    def count(self, value: Any) -> int:
        return self._intercept(ArrayOp.COUNT, self._items.count, value)

    def copy(self) -> list:
        return self._intercept(ArrayOp.COPY, self._items.copy)

    # --- Element writes ---

    def __setitem__(self, index, value) -> None:
        if isinstance(index, slice):
            self._intercept(ArrayOp.ASSIGN_SLICE, self._assign_slice, index, value)
            return
        _marshal(lambda i=index, v=value: self._set_direct(i, v))

    def _set_direct(self, index: int, value: Any) -> None:
        if index < 0:
            index += len(self._items)
        if not 0 <= index < len(self._items):
            raise IndexError("list assignment index out of range")
        self._items[index] = self._wrap(index, value)
        self._notify(self._child_chain(index))

    def set(self, key: Any, value: Any) -> bool:
        """Assign by index; index == len appends. False for an unusable index."""
        index = _parse_index(key)
        if index is None or index > len(self._items):
            return False
        if index == len(self._items):
            self._intercept(ArrayOp.APPEND, self._push, value)
        else:
            self[index] = value
        return True

    def _assign_slice(self, index: slice, values: Iterable[Any]) -> None:
        values = list(values)
        if index.step is None and not self._extensible:
            start, stop, _ = index.indices(len(self._items))
            if len(values) > max(stop - start, 0):
                self._check_growth()
        self._items[index] = [wrap_value(value, "", self._context) for value in values]

    # --- Growth (notify the new last index) ---

    def push(self, *items: Any) -> int:
        """Append items; returns the new length."""
        return self._intercept(ArrayOp.PUSH, self._push, *items)

    def append(self, item: Any) -> None:
        self._intercept(ArrayOp.APPEND, self._push, item)

    def extend(self, items: Iterable[Any]) -> None:
        self._intercept(ArrayOp.EXTEND, self._push, *items)

    def _push(self, *items: Any) -> int:
        if items:
            self._check_growth()
        start = len(self._items)
        self._items.extend(self._wrap(start + offset, item) for offset, item in enumerate(items))
        return len(self._items)

    # --- Structural mutation (notify the list itself) ---

    def pop(self, index: int = -1) -> Any:
        """Remove and return the item at index.

        Unlike shift(), an empty list or a bad index raises IndexError (logged,
        nothing notified) the way list.pop does.
        """
        return self._intercept(ArrayOp.POP, self._items.pop, index)

    def shift(self) -> Any:
        """Remove and return the first item, or None when empty."""
        return self._intercept(ArrayOp.SHIFT, lambda: self._items.pop(0) if self._items else None)

    def unshift(self, *items: Any) -> int:
        """Prepend items; returns the new length."""
        return self._intercept(ArrayOp.UNSHIFT, self._unshift, *items)

    def _unshift(self, *items: Any) -> int:
        if items:
            self._check_growth()
        self._items[0:0] = [self._wrap(index, item) for index, item in enumerate(items)]
        return len(self._items)

    def insert(self, index: int, item: Any) -> None:
        self._intercept(ArrayOp.INSERT, self._insert, index, item)

    def _insert(self, index: int, item: Any) -> None:
        self._check_growth()
        self._items.insert(index, wrap_value(item, "", self._context))

    def splice(self, start: int, delete_count: int | None = None, *items: Any) -> list:
        """Remove delete_count items at start and insert items there. Returns the removed items."""
        return self._intercept(ArrayOp.SPLICE, self._splice, start, delete_count, items)

    def _splice(self, start: int, delete_count: int | None, items: tuple) -> list:
        size = len(self._items)
        start = slice(start, None).indices(size)[0]
        if delete_count is None:
            delete_count = size - start
        delete_count = min(max(delete_count, 0), size - start)
        if len(items) > delete_count:
            self._check_growth()
        removed = self._items[start:start + delete_count]
        self._items[start:start + delete_count] = [wrap_value(item, "", self._context) for item in items]
        return removed

    def fill(self, value: Any, start: int = 0, end: int | None = None) -> None:
        self._intercept(ArrayOp.FILL, self._fill, value, start, end)

    def _fill(self, value: Any, start: int, end: int | None) -> None:
        for index in range(*slice(start, end).indices(len(self._items))):
            self._items[index] = self._wrap(index, value)

    def copy_within(self, target: int, start: int = 0, end: int | None = None) -> None:
        """Copy items[start:end] over the items at target, keeping the length."""
        self._intercept(ArrayOp.COPY_WITHIN, self._copy_within, target, start, end)

    def _copy_within(self, target: int, start: int, end: int | None) -> None:
        size = len(self._items)
        target = slice(target, None).indices(size)[0]
        start, stop, _ = slice(start, end).indices(size)
        count = min(stop - start, size - target)
        if count <= 0:
            return
        chunk = [wrap_value(item, "", self._context) for item in self._items[start:start + count]]
        self._items[target:target + count] = chunk

    def reverse(self) -> None:
        self._intercept(ArrayOp.REVERSE, self._items.reverse)

    def sort(self, *, key=None, reverse: bool = False) -> None:
        self._intercept(ArrayOp.SORT, lambda: self._items.sort(key=key, reverse=reverse))

    def remove(self, item: Any) -> None:
        self._intercept(ArrayOp.REMOVE, self._items.remove, item)

    def clear(self) -> None:
        self._intercept(ArrayOp.CLEAR, self._items.clear)

    def __delitem__(self, index) -> None:
        self._intercept(ArrayOp.DELETE, self._items.__delitem__, index)

    def delete(self, key: Any) -> bool:
        """Remove the item at index key. Returns whether anything was removed."""
        index = _parse_index(key)
        if index is None or index >= len(self._items):
            return False
        del self[index]
        return True

    # ---

    def to_plain(self) -> list:
        return [to_plain(item) for item in self._items]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ObservableList):
            return self._items == other._items
        if isinstance(other, list):
            return self._items == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"ObservableList({self._items!r})"
