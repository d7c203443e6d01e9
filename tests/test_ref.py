"""Tests for ref(), unwrapping inside reactive containers, and to_refs()."""

import logging

from reactly import ObjectRef, computed, effect, is_reactive, is_ref, reactive, ref, to_refs, unref


class TestRef:
    def test_holds_a_value(self):
        a = ref(1)
        assert a.value == 1
        a.value = 2
        assert a.value == 2

    def test_is_reactive(self):
        a = ref(1)
        log = []
        effect(lambda: log.append(a.value))
        a.value = 2
        assert log == [1, 2]
        a.value = 2  # same value
        assert log == [1, 2]

    def test_nested_properties_are_reactive(self):
        a = ref({"count": 1})
        log = []
        effect(lambda: log.append(a.value["count"]))
        a.value["count"] = 2
        assert log == [1, 2]

    def test_assigned_objects_become_reactive(self):
        a = ref(None)
        a.value = {"n": 1}
        assert is_reactive(a.value)

    def test_nan_does_not_retrigger(self):
        a = ref(float("nan"))
        log = []
        effect(lambda: log.append(a.value))
        a.value = float("nan")
        assert len(log) == 1

    def test_type_change_triggers(self):
        a = ref(1)
        log = []
        effect(lambda: log.append(a.value))
        a.value = True
        assert log == [1, True]

    def test_ref_of_ref_is_the_same_ref(self):
        a = ref(1)
        assert ref(a) is a

    def test_is_ref_and_unref(self):
        a = ref(1)
        assert is_ref(a)
        assert is_ref(computed(lambda: 1))
        assert not is_ref(1)
        assert not is_ref({"value": 1})
        assert unref(a) == 1
        assert unref(2) == 2

    def test_repr(self):
        assert repr(ref(3)) == "Ref(3)"


class TestUnwrapping:
    def test_unwraps_inside_reactive_dict(self):
        a = ref(1)
        obj = reactive({"a": a, "b": {"c": a, "d": [a]}})
        log = []

        def fn():
            log.append((obj["a"], obj["b"]["c"], obj["b"]["d"][0]))

        effect(fn)
        assert log == [(1, 1, 1)]

        a.value += 1
        assert log[-1] == (2, 2, 2)

        obj["a"] += 1
        assert log[-1] == (3, 3, 3)
        assert a.value == 3

        obj["b"]["c"] += 1
        assert log[-1] == (4, 4, 4)

        obj["b"]["d"][0] += 1
        assert log[-1] == (5, 5, 5)

    def test_assigning_a_ref_replaces_the_ref(self):
        a = ref(1)
        b = ref(2)
        obj = reactive({"r": a})
        obj["r"] = b
        assert obj["r"] == 2
        assert a.value == 1

    def test_unwraps_inside_reactive_object(self):
        class Holder:
            def __init__(self, r):
                self.r = r

        count = ref(0)
        holder = reactive(Holder(count))
        log = []
        effect(lambda: log.append(holder.r))
        holder.r = 5
        assert count.value == 5
        assert log == [0, 5]


class TestToRefs:
    def test_two_way_binding(self):
        a = reactive({"x": 1, "y": 2})
        refs = to_refs(a)
        x, y = refs["x"], refs["y"]
        assert isinstance(x, ObjectRef)
        assert x.value == 1
        assert y.value == 2

        a["x"] = 2
        a["y"] = 3
        assert x.value == 2
        assert y.value == 3

        x.value = 3
        y.value = 4
        assert a["x"] == 3
        assert a["y"] == 4

    def test_refs_are_reactive(self):
        a = reactive({"x": 1, "y": 2})
        refs = to_refs(a)
        log = []
        effect(lambda: log.append((refs["x"].value, refs["y"].value)))
        a["x"] = 2
        assert log[-1] == (2, 2)
        refs["y"].value = 3
        assert log[-1] == (2, 3)

    def test_list_source(self):
        items = reactive(["a", "b"])
        refs = to_refs(items)
        assert [r.value for r in refs] == ["a", "b"]
        refs[1].value = "c"
        assert items[1] == "c"

    def test_object_source(self):
        class Point:
            def __init__(self):
                self.x = 1

        p = reactive(Point())
        refs = to_refs(p)
        refs["x"].value = 9
        assert p.x == 9

    def test_plain_source_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="reactly.ref"):
            refs = to_refs({"x": 1})
        assert refs["x"].value == 1
        assert caplog.records[0].getMessage() == (
            "to_refs() expects a reactive object but received a plain one."
        )

    def test_set_source_warns_and_returns_no_refs(self, caplog):
        with caplog.at_level(logging.WARNING, logger="reactly.ref"):
            refs = to_refs(reactive({"a"}))
        assert refs == {}
        assert caplog.records[-1].getMessage() == (
            "to_refs() expects an object with keys but received a set."
        )
