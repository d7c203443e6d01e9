"""Reactive wrappers — stand-ins for plain targets that track reads and trigger writes.

A wrapper never copies its target: every read and write goes straight to the
original dict, list, set or object, with a track() or trigger() on the way.
Nested values are wrapped on read, so only the parts of a graph that are
actually touched pay for reactivity.

Flavors (set at construction, see proxy.py for the factories):
- readonly: reads are tracked, writes are logged and dropped;
- shallow: nested values are returned raw and refs are not unwrapped.

All dependency bookkeeping lives in the target's TargetState (_anchor), shared
by every wrapper of the same target.
"""

from __future__ import annotations

import enum
import inspect
import logging
import types
import weakref
from collections.abc import MutableMapping, MutableSequence, MutableSet
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, TypeVar

from reactly import proxy as _proxy
from reactly import ref as _ref
from reactly._tracking import begin_batch, end_batch, get_context
from reactly.dep import (
    ITERATE_KEY,
    LENGTH_KEY,
    Change,
    TrackOpTypes,
    TriggerOpTypes,
    has_changed,
    track_state,
    trigger_state,
)
from reactly.effect import ReactiveEffect

if TYPE_CHECKING:
    from reactly._anchor import TargetState

logger = logging.getLogger("reactly.proxy")

T = TypeVar("T")
KT = TypeVar("KT")
VT = TypeVar("VT")

_MISSING = object()

GET, HAS, ITERATE = TrackOpTypes.GET, TrackOpTypes.HAS, TrackOpTypes.ITERATE
SET, ADD, DELETE, CLEAR = (
    TriggerOpTypes.SET,
    TriggerOpTypes.ADD,
    TriggerOpTypes.DELETE,
    TriggerOpTypes.CLEAR,
)


class ReactiveBase:
    """Shared plumbing of all wrappers.

    Internal names carry an ``_rx_`` prefix so they cannot shadow attributes of
    a wrapped class instance.
    """

    __slots__ = ("_rx_state", "_rx_readonly", "_rx_shallow", "__weakref__")

    def __init__(self, state: TargetState, readonly: bool = False, shallow: bool = False) -> None:
        object.__setattr__(self, "_rx_state", state)
        object.__setattr__(self, "_rx_readonly", readonly)
        object.__setattr__(self, "_rx_shallow", shallow)

    @property
    def _rx_target(self) -> Any:
        return self._rx_state.target

    def _rx_track(self, type: TrackOpTypes, key: Any) -> None:
        track_state(self._rx_state, type, key)

    def _rx_trigger(self, *changes: Change) -> None:
        trigger_state(self._rx_state, changes)

    def _rx_child(self, value: Any) -> Any:
        """Wrap a value read out of the target."""
        if self._rx_shallow:
            return value
        if _ref.is_ref(value):
            return value.value
        return _proxy.to_reactive(value, readonly=self._rx_readonly)

    def _rx_rejected(self, operation: str, key: Any = None) -> bool:
        """Whether a write must be dropped because this wrapper is readonly."""
        if self._rx_readonly and get_context().locked:
            if key is None:
                logger.warning("%s operation failed: target is readonly.", operation)
            else:
                logger.warning("%s operation on key %r failed: target is readonly.", operation, key)
            return True
        return False

    def _rx_assign_ref(self, old: Any, value: Any) -> bool:
        """Write through a ref stored in the target instead of replacing it."""
        if not self._rx_shallow and _ref.is_ref(old) and not _ref.is_ref(value):
            old.value = value
            return True
        return False

    def __repr__(self) -> str:
        flavor = ""
        if self._rx_readonly:
            flavor += "readonly "
        if self._rx_shallow:
            flavor += "shallow "
        return f"{type(self).__name__}({flavor}{self._rx_target!r})"


class ReactiveDict(ReactiveBase, MutableMapping):
    """Mapping wrapper. Keys are dependency keys; ITERATE_KEY covers enumeration."""

    __slots__ = ()

    # --- Read operations (track) ---

    def __getitem__(self, key: KT) -> VT:
        self._rx_track(GET, key)
        target = self._rx_target
        if key in target:
            return self._rx_child(target[key])
        # A __missing__ hook (defaultdict) may insert the key on read.
        value = target[key]
        if key in target:
            self._rx_trigger(Change(ADD, key, value))
        return self._rx_child(value)

    def get(self, key: KT, default: VT | None = None) -> VT | None:
        self._rx_track(GET, key)
        target = self._rx_target
        if key in target:
            return self._rx_child(target[key])
        return default

    def __contains__(self, key: object) -> bool:
        self._rx_track(HAS, key)
        return key in self._rx_target

    def __len__(self) -> int:
        self._rx_track(ITERATE, ITERATE_KEY)
        return len(self._rx_target)

    def __iter__(self) -> Iterator[KT]:
        self._rx_track(ITERATE, ITERATE_KEY)
        # Snapshot: effects may add keys while the caller is iterating.
        return iter(list(self._rx_target))

    def copy(self) -> dict:
        return dict(self.items())

    # --- Write operations (trigger) ---

    def __setitem__(self, key: KT, value: VT) -> None:
        if self._rx_rejected("Set", key):
            return
        target = self._rx_target
        value = _proxy.to_raw(value)
        had_key = key in target
        old = target.get(key) if had_key else None
        if had_key and self._rx_assign_ref(old, value):
            return
        target[key] = value
        if not had_key:
            self._rx_trigger(Change(ADD, key, value))
        elif has_changed(value, old):
            self._rx_trigger(Change(SET, key, value, old))

    def __delitem__(self, key: KT) -> None:
        if self._rx_rejected("Delete", key):
            return
        target = self._rx_target
        old = target[key]
        del target[key]
        self._rx_trigger(Change(DELETE, key, None, old))

    def pop(self, key: KT, default: Any = _MISSING) -> Any:
        if self._rx_rejected("Delete", key):
            return None
        target = self._rx_target
        if key not in target:
            if default is _MISSING:
                raise KeyError(key)
            return default
        old = target.pop(key)
        self._rx_trigger(Change(DELETE, key, None, old))
        return old

    def popitem(self) -> tuple[KT, VT]:
        if self._rx_rejected("Delete"):
            return None
        key, old = self._rx_target.popitem()
        self._rx_trigger(Change(DELETE, key, None, old))
        return key, old

    def clear(self) -> None:
        if self._rx_rejected("Clear"):
            return
        target = self._rx_target
        if target:
            old_target = dict(target)
            target.clear()
            self._rx_trigger(Change(CLEAR, old_target=old_target))

    def update(self, other=(), /, **kwargs) -> None:
        begin_batch()
        try:
            super().update(other, **kwargs)
        finally:
            end_batch()

    def setdefault(self, key: KT, default: VT | None = None) -> VT:
        if key not in self:
            self[key] = default
        return self[key]


class ReactiveList(ReactiveBase, MutableSequence):
    """Sequence wrapper. Indices are dependency keys; LENGTH_KEY covers size and iteration.

    Structural mutations (append, insert, pop, sort, ...) are applied to the
    target in one go and diffed against a snapshot of the indices they can
    touch (the new tail only, for append and extend), so every changed index is
    triggered in a single trigger call.
    """

    __slots__ = ()

    def _rx_track_all(self) -> list:
        target = self._rx_target
        self._rx_track(GET, LENGTH_KEY)
        for i in range(len(target)):
            self._rx_track(GET, i)
        return target

    # --- Read operations (track) ---

    def __getitem__(self, index):
        target = self._rx_target
        if isinstance(index, slice):
            self._rx_track(GET, LENGTH_KEY)
            indices = range(len(target))[index]
            for i in indices:
                self._rx_track(GET, i)
            return [self._rx_child(target[i]) for i in indices]
        if index < 0:
            self._rx_track(GET, LENGTH_KEY)
            if index + len(target) >= 0:
                index += len(target)
        self._rx_track(GET, index)
        return self._rx_child(target[index])

    def __len__(self) -> int:
        self._rx_track(GET, LENGTH_KEY)
        return len(self._rx_target)

    def __iter__(self) -> Iterator[T]:
        target = self._rx_track_all()
        return iter([self._rx_child(value) for value in target])

    def __contains__(self, value: object) -> bool:
        return _proxy.to_raw(value) in self._rx_track_all()

    def __eq__(self, other: object) -> bool:
        other = _proxy.to_raw(other)
        if not isinstance(other, list):
            return NotImplemented
        return self._rx_track_all() == other

    __hash__ = None

    def copy(self) -> list:
        return list(self)

    # --- Write operations (trigger) ---

    def __setitem__(self, index, value) -> None:
        if self._rx_rejected("Set", index):
            return
        if isinstance(index, slice):
            values = _raw_items(value)
            self._rx_mutate(lambda target: target.__setitem__(index, values))
            return
        target = self._rx_target
        index = index + len(target) if -len(target) <= index < 0 else index
        old = target[index]
        value = _proxy.to_raw(value)
        if self._rx_assign_ref(old, value):
            return
        target[index] = value
        if has_changed(value, old):
            self._rx_trigger(Change(SET, index, value, old))

    def __delitem__(self, index) -> None:
        if self._rx_rejected("Delete", index):
            return
        target = self._rx_target
        if isinstance(index, slice):
            indices = range(len(target))[index]
            start = min(indices[0], indices[-1]) if indices else len(target)
        else:
            start = _clamp_index(index, len(target))
        self._rx_mutate(lambda target: target.__delitem__(index), start)

    def insert(self, index: int, value: T) -> None:
        if self._rx_rejected("Insert", index):
            return
        value = _proxy.to_raw(value)
        start = _clamp_index(index, len(self._rx_target))
        self._rx_mutate(lambda target: target.insert(index, value), start)

    def append(self, value: T) -> None:
        if self._rx_rejected("Append"):
            return
        value = _proxy.to_raw(value)
        self._rx_mutate(lambda target: target.append(value), len(self._rx_target))

    def extend(self, values: Iterable[T]) -> None:
        if self._rx_rejected("Extend"):
            return
        values = _raw_items(values)
        self._rx_mutate(lambda target: target.extend(values), len(self._rx_target))

    def pop(self, index: int = -1) -> T:
        if self._rx_rejected("Pop", index):
            return None
        start = _clamp_index(index, len(self._rx_target))
        return self._rx_mutate(lambda target: target.pop(index), start)

    def remove(self, value: T) -> None:
        if self._rx_rejected("Remove"):
            return
        target = self._rx_target
        try:
            index = target.index(_proxy.to_raw(value))
        except ValueError:
            raise ValueError("list.remove(x): x not in list") from None
        self._rx_mutate(lambda target: target.pop(index), index)

    def clear(self) -> None:
        if self._rx_rejected("Clear"):
            return
        # Dropped indices are covered by the length change.
        self._rx_mutate(lambda target: target.clear(), len(self._rx_target))

    def reverse(self) -> None:
        if self._rx_rejected("Reverse"):
            return
        self._rx_mutate(lambda target: target.reverse())

    def sort(self, *, key: Callable[[Any], Any] | None = None, reverse: bool = False) -> None:
        if self._rx_rejected("Sort"):
            return
        self._rx_mutate(lambda target: target.sort(key=key, reverse=reverse))

    def __iadd__(self, values: Iterable[T]) -> ReactiveList:
        self.extend(values)
        return self

    def _rx_mutate(self, operation: Callable[[list], Any], start: int = 0) -> Any:
        """Apply operation to the target and trigger what changed from start onward.

        Indices below start are untouched by the operation, so only the tail is
        snapshotted: appending costs nothing beyond the new index.
        """
        target = self._rx_target
        before = target[start:]
        old_length = start + len(before)
        result = operation(target)
        new_length = len(target)

        changes = []
        for i in range(start, min(old_length, new_length)):
            if has_changed(target[i], before[i - start]):
                changes.append(Change(SET, i, target[i], before[i - start]))
        for i in range(old_length, new_length):
            changes.append(Change(ADD, i, target[i]))
        if new_length < old_length:
            changes.append(Change(SET, LENGTH_KEY, new_length, old_length))
        self._rx_trigger(*changes)
        return result


class ReactiveSet(ReactiveBase, MutableSet):
    """Set wrapper. Members are dependency keys; ITERATE_KEY covers size and iteration."""

    __slots__ = ()

    # --- Read operations (track) ---

    def __contains__(self, value: object) -> bool:
        value = _proxy.to_raw(value)
        self._rx_track(HAS, value)
        return value in self._rx_target

    def __len__(self) -> int:
        self._rx_track(ITERATE, ITERATE_KEY)
        return len(self._rx_target)

    def __iter__(self) -> Iterator[T]:
        self._rx_track(ITERATE, ITERATE_KEY)
        return iter([self._rx_child(value) for value in self._rx_target])

    def copy(self) -> set:
        self._rx_track(ITERATE, ITERATE_KEY)
        return set(self._rx_target)

    @classmethod
    def _from_iterable(cls, it: Iterable[T]) -> set:
        # Set operators (|, &, -, ^) build plain sets, not wrappers.
        return set(_proxy.to_raw(value) for value in it)

    # --- Write operations (trigger) ---

    def add(self, value: T) -> None:
        if self._rx_rejected("Add", value):
            return
        value = _proxy.to_raw(value)
        target = self._rx_target
        if value not in target:
            target.add(value)
            self._rx_trigger(Change(ADD, value, value))

    def discard(self, value: T) -> None:
        if self._rx_rejected("Delete", value):
            return
        value = _proxy.to_raw(value)
        target = self._rx_target
        if value in target:
            target.discard(value)
            self._rx_trigger(Change(DELETE, value, None, value))

    def remove(self, value: T) -> None:
        if self._rx_rejected("Delete", value):
            return
        if _proxy.to_raw(value) not in self._rx_target:
            raise KeyError(value)
        self.discard(value)

    def pop(self) -> T:
        if self._rx_rejected("Delete"):
            return None
        value = self._rx_target.pop()
        self._rx_trigger(Change(DELETE, value, None, value))
        return value

    def clear(self) -> None:
        if self._rx_rejected("Clear"):
            return
        target = self._rx_target
        if target:
            old_target = set(target)
            target.clear()
            self._rx_trigger(Change(CLEAR, old_target=old_target))

    def update(self, *others: Iterable[T]) -> None:
        begin_batch()
        try:
            for other in others:
                for value in _raw_items(other):
                    self.add(value)
        finally:
            end_batch()

    def difference_update(self, *others: Iterable[T]) -> None:
        begin_batch()
        try:
            for other in others:
                for value in _raw_items(other):
                    self.discard(value)
        finally:
            end_batch()


class ReactiveObject(ReactiveBase):
    """Attribute wrapper for instances of ordinary classes.

    Attribute names are dependency keys. Methods and properties of the class
    are bound to the wrapper, so ``self.x`` inside them is tracked too.
    Protocol methods the class defines (``__len__``, ``__iter__``, ...) are
    forwarded by a per-class subclass, see object_wrapper_type().
    """

    __slots__ = ()

    def __getattr__(self, name: str) -> Any:
        # Dunders and our own slots never resolve on the target: copy and pickle
        # look them up on wrappers whose slots are not set yet.
        if name in ReactiveBase.__slots__ or (name.startswith("__") and name.endswith("__")):
            raise AttributeError(name)
        target = self._rx_target
        cls = type(target)
        attr = inspect.getattr_static(cls, name, _MISSING)
        if attr is not _MISSING and _binds_to_wrapper(attr, target, name):
            return attr.__get__(self, cls)

        self._rx_track(GET, name)
        return self._rx_child(getattr(target, name))

    def __setattr__(self, name: str, value: Any) -> None:
        if name in ReactiveBase.__slots__:
            object.__setattr__(self, name, value)
            return
        if self._rx_rejected("Set", name):
            return
        target = self._rx_target
        attr = inspect.getattr_static(type(target), name, _MISSING)
        if attr is not _MISSING and _is_python_data_descriptor(attr):
            attr.__set__(self, value)
            return

        value = _proxy.to_raw(value)
        old = _own_attribute(target, name)
        if old is not _MISSING and self._rx_assign_ref(old, value):
            return
        setattr(target, name, value)
        if old is _MISSING:
            self._rx_trigger(Change(ADD, name, value))
        elif has_changed(value, old):
            self._rx_trigger(Change(SET, name, value, old))

    def __delattr__(self, name: str) -> None:
        if self._rx_rejected("Delete", name):
            return
        target = self._rx_target
        old = _own_attribute(target, name)
        delattr(target, name)
        if old is not _MISSING:
            self._rx_trigger(Change(DELETE, name, None, old))

    def __eq__(self, other: object) -> bool:
        return self._rx_target == _proxy.to_raw(other)

    def __hash__(self) -> int:
        return hash(self._rx_target)


# Implicit protocols look methods up on the type, bypassing __getattr__.
_FORWARDED_DUNDERS = (
    "__len__",
    "__iter__",
    "__reversed__",
    "__contains__",
    "__getitem__",
    "__setitem__",
    "__delitem__",
    "__call__",
    "__bool__",
    "__enter__",
    "__exit__",
    "__lt__",
    "__le__",
    "__gt__",
    "__ge__",
    "__str__",
)

_object_wrappers: weakref.WeakKeyDictionary[type, type[ReactiveObject]] = weakref.WeakKeyDictionary()


def _forwarder(name: str) -> Callable[..., Any]:
    def forward(self: ReactiveObject, *args: Any, **kwargs: Any) -> Any:
        cls = type(self._rx_target)
        method = inspect.getattr_static(cls, name)
        if hasattr(type(method), "__get__"):
            method = method.__get__(self, cls)
        return method(*args, **kwargs)

    forward.__name__ = name
    return forward


def object_wrapper_type(cls: type) -> type[ReactiveObject]:
    """ReactiveObject, or a cached subclass forwarding the protocol methods cls defines."""
    wrapper = _object_wrappers.get(cls)
    if wrapper is None:
        names = [
            name
            for name in _FORWARDED_DUNDERS
            if getattr(cls, name, None) is not None
            and getattr(cls, name) is not getattr(object, name, None)
        ]
        if not names:
            wrapper = ReactiveObject
        else:
            namespace = {name: _forwarder(name) for name in names}
            namespace["__slots__"] = ()
            wrapper = type(f"Reactive{cls.__name__}", (ReactiveObject,), namespace)
        _object_wrappers[cls] = wrapper
    return wrapper


def _raw_items(values: Iterable[Any]) -> list:
    return [_proxy.to_raw(value) for value in values]


def _clamp_index(index: int, length: int) -> int:
    """First index an insert or removal at index can change, as list.insert resolves it."""
    if index < 0:
        index += length
    return min(max(index, 0), length)


_SLOT_DESCRIPTORS = (types.MemberDescriptorType, types.GetSetDescriptorType)


def _is_python_data_descriptor(attr: Any) -> bool:
    """Data descriptors (properties and the like) that accept the wrapper as instance."""
    if isinstance(attr, _SLOT_DESCRIPTORS):
        return False
    return hasattr(type(attr), "__set__") or hasattr(type(attr), "__delete__")


def _binds_to_wrapper(attr: Any, target: Any, name: str) -> bool:
    if not hasattr(type(attr), "__get__") or isinstance(attr, _SLOT_DESCRIPTORS):
        return False
    if _is_python_data_descriptor(attr):
        return True
    # Non-data descriptors (methods) lose to instance attributes.
    return name not in getattr(target, "__dict__", {})


def _own_attribute(target: Any, name: str) -> Any:
    instance_dict = getattr(target, "__dict__", None)
    if instance_dict is not None and name in instance_dict:
        return instance_dict[name]
    attr = inspect.getattr_static(type(target), name, _MISSING)
    if isinstance(attr, types.MemberDescriptorType):
        return getattr(target, name, _MISSING)
    return _MISSING


def wrapper_type(target: Any) -> type[ReactiveBase] | None:
    """The wrapper class for a target, or None if it cannot be observed."""
    if isinstance(target, dict):
        return ReactiveDict
    if isinstance(target, list):
        return ReactiveList
    if isinstance(target, set):
        return ReactiveSet
    if isinstance(
        target,
        (
            type,
            enum.Enum,
            types.FunctionType,
            types.BuiltinFunctionType,
            types.MethodType,
            types.ModuleType,
        ),
    ):
        return None
    if _ref.is_ref(target) or isinstance(target, (ReactiveEffect, ReactiveBase)):
        return None
    if hasattr(target, "__dict__") or getattr(type(target), "__slots__", None):
        return object_wrapper_type(type(target))
    return None
