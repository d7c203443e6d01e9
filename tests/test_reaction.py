"""Tests for reaction."""

import functools

from reactly import reactive, reaction, transaction


class TestReaction:
    def test_no_initial_effect(self):
        """Without fire_immediately, effect doesn't run on setup."""
        o = reactive({"v": "a"})
        effects = []
        reaction(lambda: o["v"], lambda v: effects.append(v))
        assert effects == []

    def test_fires_on_change(self):
        o = reactive({"v": "a"})
        effects = []
        reaction(lambda: o["v"], lambda v: effects.append(v))
        o["v"] = "b"
        assert effects == ["b"]

    def test_fire_immediately(self):
        o = reactive({"v": "a"})
        effects = []
        reaction(lambda: o["v"], lambda v: effects.append(v), fire_immediately=True)
        assert effects == ["a"]

    def test_dedup_effect(self):
        """Effect only fires when data_fn result actually changes."""
        o = reactive({"n": 1})
        effects = []
        # data_fn always returns "even" or "odd"
        reaction(
            lambda: "even" if o["n"] % 2 == 0 else "odd",
            lambda v: effects.append(v),
        )
        o["n"] = 3  # still odd
        assert effects == []  # data_fn returned same "odd"
        o["n"] = 4  # now even
        assert effects == ["even"]

    def test_effect_fn_is_not_tracked(self):
        o = reactive({"a": 1, "b": 1})
        effects = []
        reaction(lambda: o["a"], lambda v: effects.append((v, o["b"])))
        o["a"] = 2
        o["b"] = 5
        assert effects == [(2, 1)]

    def test_batched(self):
        o = reactive({"x": 0, "y": 0})
        effects = []
        reaction(lambda: o["x"] + o["y"], lambda v: effects.append(v))
        with transaction():
            o["x"] = 1
            o["y"] = 2
        assert effects == [3]

    def test_stop(self):
        o = reactive({"n": 1})
        effects = []
        r = reaction(lambda: o["n"], lambda v: effects.append(v))
        o["n"] = 2
        assert effects == [2]
        r.stop()
        assert not r.active
        o["n"] = 3
        assert effects == [2]  # no more effects

    def test_repr(self):
        r = reaction(functools.partial(int, "3"), lambda v: None)
        assert repr(r) == "Reaction(partial, active)"
        r.stop()
        assert repr(r) == "Reaction(partial, stopped)"
