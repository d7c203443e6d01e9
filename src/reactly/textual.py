"""Textual integration for reactly. Opt-in — requires textual.

Effects that update widgets must not run while the widget tree is being
rebuilt, before the app is running, or on a background thread. The helpers
here wrap an effect or reaction body so that it:
- skips while the app is paused or not running,
- ignores NoMatches from widget queries that race a rebuild,
- hops onto the app's thread via call_from_thread when triggered elsewhere.

The core engine stays agnostic of Textual; all coupling lives in this module.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from textual.css.query import NoMatches

from reactly.effect import ReactiveEffect
from reactly.effect import effect as _effect
from reactly.reaction import Reaction
from reactly.reaction import reaction as _reaction

# Module-owned pause state, keyed by id(app) so multiple apps work in tests.
# Invariant: an id is present exactly while inside a pause() block for that app.
_paused_apps: set[int] = set()


@contextmanager
def pause(app) -> Iterator[None]:
    """Suspend guarded effects during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def _guard(app, fn: Callable[..., Any]) -> Callable[..., None]:
    """Wrap fn with the pause/running check, NoMatches suppression and thread hop."""
    main = threading.get_ident()

    def safe(*args: Any) -> None:
        try:
            fn(*args)
        except NoMatches:
            pass

    def guarded(*args: Any) -> None:
        if not is_safe(app):
            return
        if threading.get_ident() != main:
            app.call_from_thread(safe, *args)
        else:
            safe(*args)

    return guarded


def effect(app, fn: Callable[[], Any], **options) -> ReactiveEffect:
    """effect() whose re-runs only touch widgets while the app can take it.

    The first run happens at once to establish dependencies. Later re-runs go
    through a scheduler: skipped while unsafe (the previous dependencies are
    kept, so the next change retries), marshalled when triggered off-thread.
    """
    main = threading.get_ident()

    def body() -> None:
        try:
            fn()
        except NoMatches:
            pass

    def gate(runner: ReactiveEffect) -> None:
        if not is_safe(app):
            return
        if threading.get_ident() != main:
            app.call_from_thread(runner)
        else:
            runner()

    return _effect(body, scheduler=gate, **options)


def reaction(app, data_fn: Callable[[], Any], effect_fn: Callable[[Any], Any], *, fire_immediately: bool = False) -> Reaction:
    """reaction() whose effect_fn is guarded; data_fn is tracked unconditionally."""
    return _reaction(data_fn, _guard(app, effect_fn), fire_immediately=fire_immediately)
