"""Reactive effects — tracked computations that re-run when their reads change.

Running an effect pushes it on the effect stack, so every reactive read made
by its function subscribes the effect to that slot. Each run starts by
dropping the subscriptions of the previous run, so a branch that stops
reading a property also stops depending on it.

Usage:
    state = reactive({"count": 0})
    seen = []

    runner = effect(lambda: seen.append(state["count"]))
    # seen == [0] — ran immediately

    state["count"] = 1
    # seen == [0, 1]

    runner.stop()
    state["count"] = 2
    # seen == [0, 1] — stopped
"""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Callable, Generic, TypeVar, overload

from reactly import _anchor
from reactly._tracking import get_context

if TYPE_CHECKING:
    from reactly.dep import DebuggerEvent, Dep

T = TypeVar("T")

Scheduler = Callable[["ReactiveEffect"], object]
DebugHook = Callable[["DebuggerEvent"], object]


class ReactiveEffect(Generic[T]):
    """A wrapped computation; calling it runs fn with dependency tracking."""

    __slots__ = (
        "_id",
        "raw",
        "deps",
        "active",
        "lazy",
        "computed",
        "scheduler",
        "on_track",
        "on_trigger",
        "on_stop",
        "allow_recurse",
        "runs",
        "__weakref__",
    )

    def __init__(
        self,
        fn: Callable[[], T],
        *,
        lazy: bool = False,
        computed: bool = False,
        scheduler: Scheduler | None = None,
        on_track: DebugHook | None = None,
        on_trigger: DebugHook | None = None,
        on_stop: Callable[[], object] | None = None,
        allow_recurse: bool = False,
    ) -> None:
        self._id = _anchor.new_id()
        self.raw = fn
        self.deps: list[Dep] = []
        self.active = True
        self.lazy = lazy
        self.computed = computed
        self.scheduler = scheduler
        self.on_track = on_track
        self.on_trigger = on_trigger
        self.on_stop = on_stop
        self.allow_recurse = allow_recurse
        # Tracked runs so far; trigger() uses it to skip effects that already
        # re-ran after the write being propagated.
        self.runs = 0

    def __call__(self) -> T:
        return self.run()

    def run(self) -> T:
        """Run fn, re-tracking dependencies from scratch.

        A stopped effect still runs fn, but nothing it reads is tracked.
        """
        if not self.active:
            return self.raw()

        ctx = get_context()
        self.runs += 1
        self._cleanup()
        saved_pause_depth = ctx.pause_depth
        ctx.pause_depth = 0
        ctx.effect_stack.append(self)
        try:
            return self.raw()
        finally:
            ctx.effect_stack.pop()
            ctx.pause_depth = saved_pause_depth

    def stop(self) -> None:
        """Unsubscribe from everything and never run from a trigger again."""
        if self.active:
            self._cleanup()
            if self.on_stop is not None:
                self.on_stop()
            self.active = False

    def _cleanup(self) -> None:
        for dep in self.deps:
            dep.discard(self)
        self.deps.clear()

    def __repr__(self) -> str:
        name = getattr(self.raw, "__name__", type(self.raw).__name__)
        state = "active" if self.active else "stopped"
        return f"ReactiveEffect({name}, {state}, deps={len(self.deps)})"


@overload
def effect(fn: Callable[[], T], **options) -> ReactiveEffect[T]: ...


@overload
def effect(fn: None = None, **options) -> Callable[[Callable[[], T]], ReactiveEffect[T]]: ...


def effect(fn=None, **options):
    """Create an effect and run it once, unless lazy=True.

    Options: lazy, scheduler, on_track, on_trigger, on_stop, allow_recurse.
    A scheduler is called with the effect instead of re-running it directly
    when a dependency changes; that is where batching or async flushing is
    layered on.

    Works as a plain call, a bare decorator, or a decorator factory:

        @effect
        def render():
            print(state["count"])

        @effect(lazy=True)
        def later():
            ...
    """
    if fn is None:
        return functools.partial(effect, **options)
    if isinstance(fn, ReactiveEffect):
        fn = fn.raw
    runner = ReactiveEffect(fn, **options)
    if not runner.lazy:
        runner.run()
    return runner


def stop(runner: ReactiveEffect) -> None:
    runner.stop()


def is_effect(value: object) -> bool:
    return isinstance(value, ReactiveEffect)
