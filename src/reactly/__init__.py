"""reactly: fine-grained reactivity for plain Python object graphs."""

from importlib.metadata import version as _version

__version__ = _version("reactly")

from reactly._tracking import (
    TrackingContext,
    get_pending_count,
    pause_tracking,
    reset_context,
    resume_tracking,
    set_scheduler,
    untracked,
    use_context,
)
from reactly.dep import (
    ITERATE_KEY,
    DebuggerEvent,
    TrackOpTypes,
    TriggerOpTypes,
    track,
    trigger,
)
from reactly.effect import ReactiveEffect, effect, is_effect, stop
from reactly.proxy import (
    is_reactive,
    is_readonly,
    lock,
    mark_non_reactive,
    mark_readonly,
    own_keys,
    reactive,
    readonly,
    shallow_reactive,
    shallow_readonly,
    to_raw,
    unlock,
)
from reactly.observable import ReactiveDict, ReactiveList, ReactiveObject, ReactiveSet
from reactly.ref import ObjectRef, Ref, is_ref, ref, to_refs, unref
from reactly.computed import Computed, computed
from reactly.reaction import Reaction, reaction
from reactly.action import action, transaction
# textual is not auto-imported: opt-in only

__all__ = [
    "reactive",
    "readonly",
    "shallow_reactive",
    "shallow_readonly",
    "is_reactive",
    "is_readonly",
    "to_raw",
    "mark_readonly",
    "mark_non_reactive",
    "own_keys",
    "lock",
    "unlock",
    "ReactiveDict",
    "ReactiveList",
    "ReactiveSet",
    "ReactiveObject",
    "ref",
    "is_ref",
    "unref",
    "to_refs",
    "Ref",
    "ObjectRef",
    "computed",
    "Computed",
    "effect",
    "stop",
    "is_effect",
    "ReactiveEffect",
    "track",
    "trigger",
    "ITERATE_KEY",
    "TrackOpTypes",
    "TriggerOpTypes",
    "DebuggerEvent",
    "pause_tracking",
    "resume_tracking",
    "untracked",
    "TrackingContext",
    "use_context",
    "reset_context",
    "set_scheduler",
    "get_pending_count",
    "reaction",
    "Reaction",
    "action",
    "transaction",
]
