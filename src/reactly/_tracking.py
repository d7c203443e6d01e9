"""Tracking context — the "is anything listening, and who?" state machine.

One TrackingContext holds the stack of running effects (the innermost is
the active effect, credited with every read), the pause depth, and the
batch queue. The current context lives in a contextvar with a process-wide
default, so tests can reset it and callers can sandbox a block of work
with use_context().

Batching: mutations inside an @action or `with transaction()` queue the
effects they invalidate and flush them once at the end, so each effect sees
the final state only.
"""

from __future__ import annotations

import contextvars
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator

if TYPE_CHECKING:
    from reactly.effect import ReactiveEffect


class TrackingContext:
    """Ambient tracking state for one execution root."""

    __slots__ = ("effect_stack", "pause_depth", "batch_depth", "pending", "locked")

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.effect_stack: list[ReactiveEffect] = []
        self.pause_depth = 0
        self.batch_depth = 0
        # Insertion-ordered set of queued jobs.
        self.pending: dict[Callable[[], object], None] = {}
        # Readonly wrappers reject writes while locked.
        self.locked = True

    @property
    def active_effect(self) -> ReactiveEffect | None:
        return self.effect_stack[-1] if self.effect_stack else None

    @property
    def should_track(self) -> bool:
        return self.pause_depth == 0

    def __repr__(self) -> str:
        return (
            f"TrackingContext(depth={len(self.effect_stack)}, paused={self.pause_depth}, "
            f"batch={self.batch_depth}, pending={len(self.pending)})"
        )


_default_context = TrackingContext()

current_context: contextvars.ContextVar[TrackingContext] = contextvars.ContextVar(
    "current_context", default=_default_context
)


def get_context() -> TrackingContext:
    return current_context.get()


def reset_context() -> None:
    """Drop all ambient tracking state of the current context."""
    current_context.get().reset()


@contextmanager
def use_context(context: TrackingContext | None = None) -> Iterator[TrackingContext]:
    """Run a block against its own tracking state.

    Usage:
        with use_context() as ctx:
            effect(lambda: ...)  # effect stack, batches and pauses are private to ctx
    """
    context = context if context is not None else TrackingContext()
    token = current_context.set(context)
    try:
        yield context
    finally:
        current_context.reset(token)


# ─── Pause / resume ──────────────────────────────────────────────────────────


def pause_tracking() -> None:
    """Stop crediting reads to the active effect. Nests: N pauses need N resumes."""
    current_context.get().pause_depth += 1


def resume_tracking() -> None:
    ctx = current_context.get()
    if ctx.pause_depth > 0:
        ctx.pause_depth -= 1


@contextmanager
def untracked() -> Iterator[None]:
    """Context manager: reads inside the block are not tracked."""
    pause_tracking()
    try:
        yield
    finally:
        resume_tracking()


# ─── Batching ────────────────────────────────────────────────────────────────


def begin_batch() -> None:
    """Enter a batching scope. Nested batches are supported."""
    current_context.get().batch_depth += 1


def end_batch() -> None:
    """Exit a batching scope. When the outermost scope exits, flush pending jobs."""
    ctx = current_context.get()
    ctx.batch_depth -= 1
    if ctx.batch_depth == 0:
        _flush_pending(ctx)


def schedule(job: Callable[[], object]) -> None:
    """Run a job now, or queue it if a batch is open.

    Jobs are effects or reactions; a job that was stopped while queued is
    dropped at flush time.
    """
    ctx = current_context.get()
    if ctx.batch_depth > 0:
        ctx.pending[job] = None
    else:
        job()


def _flush_pending(ctx: TrackingContext) -> None:
    """Run all pending jobs. Handles jobs scheduled during flush."""
    while ctx.pending:
        # Snapshot and clear: jobs may schedule new ones during run.
        batch = list(ctx.pending)
        ctx.pending.clear()
        for job in batch:
            if getattr(job, "active", True):
                job()


def get_pending_count() -> int:
    """Number of jobs waiting for the current batch to close. Useful for testing."""
    return len(current_context.get().pending)


# ─── Thread marshalling ──────────────────────────────────────────────────────
_scheduler: Callable[[Callable[[], None]], object] | None = None
_scheduler_thread: threading.Thread | None = None


def set_scheduler(scheduler: Callable[[Callable[[], None]], object] | None) -> None:
    """Set the global thread scheduler for cross-thread writes.

    Call once from the main/UI thread:
        reactly.set_scheduler(app.call_from_thread)

    After this, a write on a reactive object from a background thread lands in
    the target at once, but the effects it triggers are handed to the scheduler
    and re-run on the main thread. Writes on the main thread stay synchronous.
    Pass None to remove the scheduler.
    """
    global _scheduler, _scheduler_thread
    _scheduler = scheduler
    _scheduler_thread = threading.current_thread() if scheduler is not None else None


def marshal(fn: Callable[[], None]) -> bool:
    """Hand fn to the thread scheduler if called off the scheduler thread.

    Returns True when fn was handed off, False when the caller should run it.
    """
    if _scheduler is not None and threading.current_thread() is not _scheduler_thread:
        _scheduler(fn)
        return True
    return False
