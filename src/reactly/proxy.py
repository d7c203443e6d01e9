"""Wrapper factories — reactive(), readonly() and their shallow variants.

Wrapping is idempotent: one wrapper per target and flavor, cached by target
identity, and a wrapper passed back in is returned unchanged.

Usage:
    state = reactive({"user": {"name": "Ada"}, "tags": ["a"]})
    state["user"]["name"]      # tracked; state["user"] is itself reactive
    view = readonly(state)     # same target, writes are rejected
    to_raw(view) is to_raw(state)
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from reactly import _anchor
from reactly._tracking import get_context
from reactly.dep import ITERATE_KEY, LENGTH_KEY, TrackOpTypes, track
from reactly.observable import ReactiveBase, ReactiveList, wrapper_type

logger = logging.getLogger("reactly.proxy")

T = TypeVar("T")


def reactive(target: T) -> T:
    """Return the deep reactive wrapper of target."""
    if isinstance(target, ReactiveBase) and target._rx_readonly:
        return target
    if id(target) in _anchor.readonly_values:
        return readonly(target)
    return _create(target, readonly=False, shallow=False)


def shallow_reactive(target: T) -> T:
    """Reactive at the top level only: nested values are returned raw."""
    return _create(target, readonly=False, shallow=True)


def readonly(target: T) -> T:
    """Return a deep readonly wrapper: reads are tracked, writes are rejected."""
    return _create(target, readonly=True, shallow=False)


def shallow_readonly(target: T) -> T:
    """Readonly at the top level only: nested values are returned raw and writable."""
    return _create(target, readonly=True, shallow=True)


def _create(target: Any, readonly: bool, shallow: bool) -> Any:
    if isinstance(target, ReactiveBase):
        if readonly and not target._rx_readonly:
            # readonly(reactive(x)) is readonly(x).
            target = target._rx_target
        else:
            return target

    cls = wrapper_type(target)
    if cls is None:
        logger.warning("value cannot be made reactive: %r", target)
        return target
    if id(target) in _anchor.non_reactive_values:
        return target

    cache = _anchor.proxy_cache(readonly, shallow)
    wrapper = cache.get(id(target))
    if wrapper is None:
        wrapper = cls(_anchor.state_for(target, create=True), readonly, shallow)
        cache[id(target)] = wrapper
    return wrapper


def to_reactive(value: Any, readonly: bool = False) -> Any:
    """Wrap value if it is observable, return it untouched otherwise. Never warns."""
    if isinstance(value, ReactiveBase) or wrapper_type(value) is None:
        return value
    if readonly:
        return _create(value, readonly=True, shallow=False)
    return reactive(value)


def is_reactive(value: object) -> bool:
    """True for any wrapper, readonly ones included."""
    return isinstance(value, ReactiveBase)


def is_readonly(value: object) -> bool:
    return isinstance(value, ReactiveBase) and value._rx_readonly


def to_raw(value: T) -> T:
    """The original target behind a wrapper; other values are returned as-is."""
    if isinstance(value, ReactiveBase):
        return value._rx_state.target
    return value


def mark_readonly(value: T) -> T:
    """Make reactive(value) hand out readonly(value) instead."""
    _anchor.readonly_values[id(value)] = value
    return value


def mark_non_reactive(value: T) -> T:
    """Make reactive(value) return value itself, unwrapped."""
    _anchor.non_reactive_values[id(value)] = value
    return value


def own_keys(value: Any) -> list:
    """List the keys of a target, subscribing the active effect to key changes.

    Keys are indices for lists, members for sets, attribute names for objects.
    Adding or removing a key re-runs the subscriber; reassigning one does not.
    """
    raw = to_raw(value)
    if isinstance(value, ReactiveList) or isinstance(raw, list):
        track(raw, TrackOpTypes.ITERATE, LENGTH_KEY)
        return list(range(len(raw)))
    track(raw, TrackOpTypes.ITERATE, ITERATE_KEY)
    if isinstance(raw, (dict, set)):
        return list(raw)
    return list(getattr(raw, "__dict__", {}))


def lock() -> None:
    """Make readonly wrappers reject writes again (the default)."""
    get_context().locked = True


def unlock() -> None:
    """Let writes through readonly wrappers, e.g. while a parent updates props."""
    get_context().locked = False
