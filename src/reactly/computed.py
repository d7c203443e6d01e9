"""Computed values — derived state with automatic dependency tracking.

A Computed wraps a getter in a lazy ReactiveEffect. Reading ``value`` runs the
getter only when the cache is dirty; otherwise the cached result is returned
as is. When a dependency changes, the effect's scheduler marks the cache
dirty and triggers the computed's own ``value`` slot, so effects reading the
computed re-run, and the getter runs again on their next read.

Computed values are lazy — they only recompute when read.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Callable, TypeVar

from reactly.dep import TrackOpTypes, TriggerOpTypes, track, trigger
from reactly.effect import ReactiveEffect
from reactly.ref import RefBase

logger = logging.getLogger("reactly.computed")

T = TypeVar("T")

_UNSET = object()


class Computed(RefBase[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("effect", "_setter", "_dirty", "_value")

    def __init__(self, getter: Callable[[], T], setter: Callable[[T], None] | None = None) -> None:
        self._setter = setter
        self._dirty = True
        self._value = _UNSET
        self.effect: ReactiveEffect[T] = ReactiveEffect(
            getter, lazy=True, computed=True, scheduler=self._invalidate
        )

    @property
    def value(self) -> T:
        """Read the computed value. Recomputes if dirty."""
        if self._dirty:
            self._value = self.effect.run()
            self._dirty = False
        track(self, TrackOpTypes.GET, "value")
        return self._value

    @value.setter
    def value(self, new_value: T) -> None:
        if self._setter is None:
            logger.warning("Write operation failed: computed value is readonly")
            return
        self._setter(new_value)

    def _invalidate(self, _runner: ReactiveEffect) -> None:
        """Scheduler of the getter effect: mark dirty and notify readers.

        Nothing is recomputed here — that happens on the next read.
        """
        if not self._dirty:
            self._dirty = True
            trigger(self, TriggerOpTypes.SET, "value")

    def stop(self) -> None:
        """Disconnect from all dependencies. The next read re-evaluates untracked."""
        self.effect.stop()
        self._dirty = True
        self._value = _UNSET

    def __repr__(self) -> str:
        state = "dirty" if self._dirty else f"cached={self._value!r}"
        raw = self.effect.raw
        name = getattr(raw, "__name__", type(raw).__name__)
        return f"Computed({name}, {state})"


def computed(getter, setter=None) -> Computed:
    """Create a Computed from a getter, a getter and setter, or {"get": ..., "set": ...}.

    Works as a decorator too:

        counter = reactive({"n": 0})

        @computed
        def doubled():
            return counter["n"] * 2

        doubled.value  # 0
        counter["n"] = 5
        doubled.value  # 10
    """
    if isinstance(getter, Mapping):
        getter, setter = getter["get"], getter.get("set")
    return Computed(getter, setter)
