"""Actions and transactions — batched writes.

Writes inside an @action or `with transaction()` still land in their targets
immediately and still invalidate computed values at once, but the effects
they trigger are queued and run once, after the outermost scope exits. An
effect touched by ten writes in a batch re-runs a single time, and never
sees a half-applied update.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, Iterator, ParamSpec, TypeVar

from reactly._tracking import TrackingContext, begin_batch, end_batch, get_context

P = ParamSpec("P")
R = TypeVar("R")


@contextmanager
def transaction() -> Iterator[TrackingContext]:
    """Batch every reactive write made inside the block.

    Yields the tracking context whose queue collects the deferred effects;
    ``ctx.pending`` lists them until the outermost transaction exits. The
    queue is flushed even when the block raises.

    Usage:
        with transaction() as ctx:
            point["x"] = 1
            point["y"] = 2
            # len(ctx.pending) == 1 for an effect reading both
        # effects fire here, after both writes
    """
    begin_batch()
    try:
        yield get_context()
    finally:
        end_batch()


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator form of transaction(): fn's writes are batched per call.

    Usage:
        point = reactive({"x": 0, "y": 0})

        @action
        def move(dx, dy):
            point["x"] += dx
            point["y"] += dy
            # effects reading x and y re-run once, after move() returns
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with transaction():
            return fn(*args, **kwargs)

    return wrapper
