"""Reactions — side effects that fire only when a derived value changes.

effect(fn) re-runs fn on every dependency notification. A reaction splits the
work in two: data_fn is tracked like an effect, and effect_fn is called with
data_fn's result only when that result differs from the previous one.

Built on the scheduler seam: the tracked data_fn runs as a lazy
ReactiveEffect whose scheduler hands the reaction to the batch queue.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from reactly._tracking import schedule
from reactly.dep import has_changed
from reactly.effect import ReactiveEffect

T = TypeVar("T")


class Reaction(Generic[T]):
    """Tracks data_fn; calls effect_fn with the new value when it changes."""

    __slots__ = ("effect", "_effect_fn", "_last_value", "_initialized", "__weakref__")

    def __init__(self, data_fn: Callable[[], T], effect_fn: Callable[[T], object]) -> None:
        self.effect: ReactiveEffect[T] = ReactiveEffect(
            data_fn, lazy=True, scheduler=self._on_change
        )
        self._effect_fn = effect_fn
        self._last_value: T | None = None
        self._initialized = False

    @property
    def active(self) -> bool:
        return self.effect.active

    def __call__(self) -> None:
        """Re-evaluate data_fn and fire effect_fn if its result changed."""
        if not self.effect.active:
            return
        new_value = self.effect.run()
        if not self._initialized or has_changed(new_value, self._last_value):
            self._last_value = new_value
            self._initialized = True
            self._effect_fn(new_value)

    def _on_change(self, _runner: ReactiveEffect) -> None:
        schedule(self)

    def stop(self) -> None:
        """Stop this reaction. Disconnects from all dependencies."""
        self.effect.stop()

    def __repr__(self) -> str:
        state = "active" if self.effect.active else "stopped"
        raw = self.effect.raw
        name = getattr(raw, "__name__", type(raw).__name__)
        return f"Reaction({name}, {state})"


def reaction(
    data_fn: Callable[[], T],
    effect_fn: Callable[[T], object],
    *,
    fire_immediately: bool = False,
) -> Reaction[T]:
    """Track data_fn's reactive reads; call effect_fn when the result changes.

    Returns the Reaction (call .stop() to stop).

    Usage:
        person = reactive({"first": "Alice", "last": "Smith"})

        names = []
        r = reaction(
            lambda: f"{person['first']} {person['last']}",
            names.append,
        )
        # names == [] — data_fn ran to establish deps, effect_fn did not fire yet

        person["first"] = "Bob"
        # names == ["Bob Smith"]

        r.stop()
    """
    r = Reaction(data_fn, effect_fn)
    if fire_immediately:
        r()
    else:
        # Run data_fn to establish deps, but suppress the initial effect.
        r._last_value = r.effect.run()
        r._initialized = True
    return r
