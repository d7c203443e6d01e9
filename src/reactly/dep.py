"""Dependency sets, track() and trigger().

A Dep is the subscriber set of one observable slot: one key of one target,
or a synthetic slot such as ITERATE_KEY ("whoever enumerated this target")
or LENGTH_KEY for lists. track() subscribes the active effect to a slot;
trigger() re-runs everything subscribed to the slots a write affected.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Iterator, NamedTuple

from reactly import _anchor
from reactly._tracking import get_context, marshal, schedule

if TYPE_CHECKING:
    from reactly._anchor import TargetState
    from reactly.effect import ReactiveEffect


class TrackOpTypes(str, Enum):
    GET = "get"
    HAS = "has"
    ITERATE = "iterate"


class TriggerOpTypes(str, Enum):
    SET = "set"
    ADD = "add"
    DELETE = "delete"
    CLEAR = "clear"


class _Marker:
    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name


ITERATE_KEY = _Marker("ITERATE_KEY")

# Iteration slot of lists: reading len() or iterating subscribes here.
LENGTH_KEY = "length"

_NO_KEY = _Marker("NO_KEY")


@dataclass
class DebuggerEvent:
    """Payload of the on_track / on_trigger debug hooks."""

    effect: ReactiveEffect
    target: object
    type: TrackOpTypes | TriggerOpTypes
    key: Any
    new_value: Any = None
    old_value: Any = None
    old_target: Any = None


class Change(NamedTuple):
    """One write, as seen by trigger()."""

    type: TriggerOpTypes
    key: Any = _NO_KEY
    new_value: Any = None
    old_value: Any = None
    old_target: Any = None


class Dep:
    """Ordered set of effects subscribed to one slot.

    Holds its TargetState, so a subscribed effect keeps the store alive.
    """

    __slots__ = ("owner", "key", "_effects")

    def __init__(self, owner: TargetState, key: object) -> None:
        self.owner = owner
        self.key = key
        self._effects: dict[ReactiveEffect, None] = {}

    def add(self, effect: ReactiveEffect) -> None:
        self._effects[effect] = None

    def discard(self, effect: ReactiveEffect) -> None:
        self._effects.pop(effect, None)

    def __contains__(self, effect: object) -> bool:
        return effect in self._effects

    def __iter__(self) -> Iterator[ReactiveEffect]:
        return iter(self._effects)

    def __len__(self) -> int:
        return len(self._effects)

    def __repr__(self) -> str:
        return f"Dep({self.key!r}, {len(self._effects)} effects)"


def has_changed(value: Any, old_value: Any) -> bool:
    """Whether a write replaces old_value with something observably different.

    Identity first, then type and equality; NaN is considered unchanged by NaN.
    """
    if value is old_value:
        return False
    if type(value) is not type(old_value):
        return True
    if isinstance(value, float) and math.isnan(value) and math.isnan(old_value):
        return False
    return bool(value != old_value)


# ─── track ───────────────────────────────────────────────────────────────────


def track(target: object, type: TrackOpTypes, key: Any) -> None:
    """Subscribe the active effect to target[key], if anything is listening."""
    ctx = get_context()
    effect = ctx.active_effect
    if effect is None or not ctx.should_track or not effect.active:
        return
    track_state(_anchor.state_for(target, create=True), type, key)


def track_state(state: TargetState, type: TrackOpTypes, key: Any) -> None:
    ctx = get_context()
    effect = ctx.active_effect
    if effect is None or not ctx.should_track or not effect.active:
        return
    dep = state.dep_for(key)
    if effect not in dep:
        dep.add(effect)
        effect.deps.append(dep)
        if effect.on_track is not None:
            effect.on_track(DebuggerEvent(effect, state.target, type, key))


# ─── trigger ─────────────────────────────────────────────────────────────────


def trigger(
    target: object,
    type: TriggerOpTypes,
    key: Any = _NO_KEY,
    new_value: Any = None,
    old_value: Any = None,
    old_target: Any = None,
) -> None:
    """Re-run every effect subscribed to the slots a write on target affected."""
    change = Change(type, key, new_value, old_value, old_target)
    if marshal(lambda: _trigger_target(target, (change,))):
        return
    _trigger_target(target, (change,))


def _trigger_target(target: object, changes: Iterable[Change]) -> None:
    state = _anchor.state_for(target)
    if state is not None:
        _run_changes(state, changes)


def trigger_state(state: TargetState, changes: Iterable[Change]) -> None:
    """Trigger several changes of one target as a single trigger call."""
    changes = tuple(changes)
    if not changes:
        return
    if marshal(lambda: _run_changes(state, changes)):
        return
    _run_changes(state, changes)


def _affected_deps(state: TargetState, change: Change) -> list[Dep]:
    deps = state.deps
    if change.type is TriggerOpTypes.CLEAR:
        return list(deps.values())

    is_list = isinstance(state.target, list)
    affected = []
    if change.key is not _NO_KEY:
        dep = deps.get(change.key)
        if dep is not None:
            affected.append(dep)
    if is_list and change.key == LENGTH_KEY:
        # Shrinking a list also changes every index at or past the new length.
        for key, dep in deps.items():
            if isinstance(key, int) and key >= change.new_value:
                affected.append(dep)
    if change.type is TriggerOpTypes.ADD or (change.type is TriggerOpTypes.DELETE and not is_list):
        dep = deps.get(LENGTH_KEY if is_list else ITERATE_KEY)
        if dep is not None:
            affected.append(dep)
    return affected


def _run_changes(state: TargetState, changes: Iterable[Change]) -> None:
    ctx = get_context()
    active = ctx.active_effect

    # Snapshot before running anything: a running effect re-tracks and would
    # otherwise mutate the sets being walked.
    computed_runners: dict[ReactiveEffect, tuple[Change, int]] = {}
    effects: dict[ReactiveEffect, tuple[Change, int]] = {}
    for change in changes:
        for dep in _affected_deps(state, change):
            for effect in dep:
                if effect is active and not effect.allow_recurse:
                    continue
                runners = computed_runners if effect.computed else effects
                runners.setdefault(effect, (change, effect.runs))

    for runners in (computed_runners, effects):
        for effect, (change, runs) in runners.items():
            if not effect.active or effect.runs != runs:
                # Stopped meanwhile, or already re-ran after this write.
                continue
            if effect.on_trigger is not None:
                effect.on_trigger(
                    DebuggerEvent(
                        effect,
                        state.target,
                        change.type,
                        None if change.key is _NO_KEY else change.key,
                        change.new_value,
                        change.old_value,
                        change.old_target,
                    )
                )
            if effect.scheduler is not None:
                effect.scheduler(effect)
            else:
                schedule(effect)
