"""Data anchor — plain Python structures that hold all reactive bookkeeping.

Targets are correlated by identity. Most targets (dict, list, set) cannot be
weakly referenced, so the registries key on ``id(target)`` and the values
hold the target strongly: an id can only be reused once every entry that
refers to it has been collected.
"""

from __future__ import annotations

import itertools
import weakref
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reactly.dep import Dep


class TargetState:
    """Dependency store of one target: key -> Dep.

    Kept alive by the wrappers of the target and by every Dep an effect is
    subscribed to. Once neither exists, nothing can observe the target and
    the state is dropped from the registry.
    """

    __slots__ = ("target", "deps", "__weakref__")

    def __init__(self, target: object) -> None:
        self.target = target
        self.deps: dict[object, Dep] = {}

    def dep_for(self, key: object) -> Dep:
        from reactly.dep import Dep

        dep = self.deps.get(key)
        if dep is None:
            dep = self.deps[key] = Dep(self, key)
        return dep

    def __repr__(self) -> str:
        return f"TargetState({type(self.target).__name__}, keys={list(self.deps)!r})"


# id(target) -> TargetState
target_states: weakref.WeakValueDictionary[int, TargetState] = weakref.WeakValueDictionary()

# id(target) -> wrapper, one cache per wrapper flavor
reactive_proxies: weakref.WeakValueDictionary = weakref.WeakValueDictionary()
readonly_proxies: weakref.WeakValueDictionary = weakref.WeakValueDictionary()
shallow_reactive_proxies: weakref.WeakValueDictionary = weakref.WeakValueDictionary()
shallow_readonly_proxies: weakref.WeakValueDictionary = weakref.WeakValueDictionary()

# id(value) -> value. Marked values stay alive so their ids stay unique.
non_reactive_values: dict[int, object] = {}
readonly_values: dict[int, object] = {}

_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)


def state_for(target: object, create: bool = False) -> TargetState | None:
    """Look up (or lazily create) the dependency store of a target."""
    state = target_states.get(id(target))
    if state is None and create:
        state = TargetState(target)
        target_states[id(target)] = state
    return state


def proxy_cache(readonly: bool, shallow: bool) -> weakref.WeakValueDictionary:
    if readonly:
        return shallow_readonly_proxies if shallow else readonly_proxies
    return shallow_reactive_proxies if shallow else reactive_proxies
