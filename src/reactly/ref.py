"""Refs — single-value reactive boxes.

A Ref's ``value`` behaves like one property of a reactive object: reading it
inside an effect subscribes the effect, writing a different value re-runs it.
Objects assigned to a ref are made reactive, so nested reads are tracked too.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

from reactly import proxy as _proxy
from reactly.dep import TrackOpTypes, TriggerOpTypes, has_changed, track, trigger

logger = logging.getLogger("reactly.ref")

T = TypeVar("T")


class RefBase(Generic[T]):
    """Anything with a reactive ``value``: Ref, ObjectRef and Computed."""

    __slots__ = ()

    @property
    def value(self) -> T:
        raise NotImplementedError

    @value.setter
    def value(self, new_value: T) -> None:
        raise NotImplementedError


class Ref(RefBase[T]):
    """A mutable reactive box."""

    __slots__ = ("_raw", "_value")

    def __init__(self, value: T = None) -> None:
        self._raw = _proxy.to_raw(value)
        self._value = _proxy.to_reactive(value)

    @property
    def value(self) -> T:
        track(self, TrackOpTypes.GET, "value")
        return self._value

    @value.setter
    def value(self, new_value: T) -> None:
        raw = _proxy.to_raw(new_value)
        if has_changed(raw, self._raw):
            old = self._raw
            self._raw = raw
            self._value = _proxy.to_reactive(new_value)
            trigger(self, TriggerOpTypes.SET, "value", new_value, old)

    def __repr__(self) -> str:
        return f"Ref({self._value!r})"


class ObjectRef(RefBase[T]):
    """A ref bound to one key of a reactive object; reads and writes go to the source."""

    __slots__ = ("_source", "_key", "_by_item")

    def __init__(self, source: Any, key: Any) -> None:
        self._source = source
        self._key = key
        self._by_item = isinstance(_proxy.to_raw(source), (dict, list))

    @property
    def value(self) -> T:
        if self._by_item:
            return self._source[self._key]
        return getattr(self._source, self._key)

    @value.setter
    def value(self, new_value: T) -> None:
        if self._by_item:
            self._source[self._key] = new_value
        else:
            setattr(self._source, self._key, new_value)

    def __repr__(self) -> str:
        return f"ObjectRef({self._key!r})"


def ref(value: T = None) -> Ref[T]:
    """Create a Ref. Passing a ref returns it unchanged."""
    if is_ref(value):
        return value
    return Ref(value)


def is_ref(value: object) -> bool:
    return isinstance(value, RefBase)


def unref(value: Any) -> Any:
    """The value inside a ref, or the argument itself."""
    return value.value if is_ref(value) else value


def to_refs(source: Any) -> dict | list:
    """One ObjectRef per key of a reactive object, each bound two ways to its key.

    Usage:
        state = reactive({"x": 1, "y": 2})
        refs = to_refs(state)
        refs["x"].value = 3      # state["x"] == 3
        state["y"] = 4           # refs["y"].value == 4
    """
    if not _proxy.is_reactive(source):
        logger.warning("to_refs() expects a reactive object but received a plain one.")
    raw = _proxy.to_raw(source)
    if isinstance(raw, (set, frozenset)):
        logger.warning("to_refs() expects an object with keys but received a set.")
        return {}
    if isinstance(raw, list):
        return [ObjectRef(source, i) for i in range(len(raw))]
    keys = raw if isinstance(raw, dict) else vars(raw)
    return {key: ObjectRef(source, key) for key in keys}
