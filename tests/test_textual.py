"""Tests for reactly.textual — Textual integration layer."""

import threading

import pytest
from textual.css.query import NoMatches

from reactly import reactive
from reactly import textual as rtx


class _MockApp:
    """Minimal mock matching the Textual App interface rtx needs."""

    def __init__(self, *, is_running=True):
        self.is_running = is_running
        self._call_from_thread_log = []

    def call_from_thread(self, fn, *args):
        self._call_from_thread_log.append((fn, args))
        fn(*args)


def _in_thread(fn):
    t = threading.Thread(target=fn)
    t.start()
    t.join()


class TestReaction:
    def test_skips_when_not_running(self):
        app = _MockApp(is_running=False)
        o = reactive({"v": 1})
        effects = []
        rtx.reaction(app, lambda: o["v"], lambda v: effects.append(v))
        o["v"] = 2
        assert effects == []

    def test_skips_during_pause(self):
        app = _MockApp()
        o = reactive({"v": 1})
        effects = []
        rtx.reaction(app, lambda: o["v"], lambda v: effects.append(v))
        with rtx.pause(app):
            o["v"] = 2
        assert effects == []

    def test_fires_when_safe(self):
        app = _MockApp()
        o = reactive({"v": 1})
        effects = []
        rtx.reaction(app, lambda: o["v"], lambda v: effects.append(v))
        o["v"] = 2
        assert effects == [2]

    def test_catches_nomatch(self):
        """NoMatches from widget queries are silently swallowed."""
        app = _MockApp()
        o = reactive({"v": 1})

        def _raise_nomatch(v):
            raise NoMatches("StatusFooter")

        # Should not raise
        r = rtx.reaction(app, lambda: o["v"], _raise_nomatch)
        o["v"] = 2
        r.stop()

    def test_propagates_real_errors(self):
        """Non-NoMatches exceptions propagate normally."""
        app = _MockApp()
        o = reactive({"v": 1})

        def _raise_value_error(v):
            raise ValueError("boom")

        rtx.reaction(app, lambda: o["v"], _raise_value_error)
        with pytest.raises(ValueError, match="boom"):
            o["v"] = 2

    def test_stop(self):
        app = _MockApp()
        o = reactive({"v": 1})
        effects = []
        r = rtx.reaction(app, lambda: o["v"], lambda v: effects.append(v))
        o["v"] = 2
        assert effects == [2]
        r.stop()
        o["v"] = 3
        assert effects == [2]

    def test_thread_marshal(self):
        """Triggers from background thread use call_from_thread."""
        app = _MockApp()
        o = reactive({"v": 1})
        effects = []
        rtx.reaction(app, lambda: o["v"], lambda v: effects.append(v))

        def _bg():
            o["v"] = 2

        _in_thread(_bg)

        assert effects == [2]
        assert len(app._call_from_thread_log) >= 1


class TestEffect:
    def test_skips_during_pause_and_keeps_dependencies(self):
        app = _MockApp()
        o = reactive({"v": 1})
        log = []

        rtx.effect(app, lambda: log.append(o["v"]))
        # effect fires immediately on setup
        assert log == [1]

        with rtx.pause(app):
            o["v"] = 2
        # Skipped during pause
        assert log == [1]

        o["v"] = 3
        assert log == [1, 3]

    def test_skips_when_not_running(self):
        app = _MockApp(is_running=False)
        o = reactive({"v": 1})
        log = []
        rtx.effect(app, lambda: log.append(o["v"]))
        o["v"] = 2
        assert log == [1]
        app.is_running = True
        o["v"] = 3
        assert log == [1, 3]

    def test_catches_nomatch(self):
        """NoMatches from widget queries are silently swallowed."""
        app = _MockApp()
        o = reactive({"v": 1})
        call_count = [0]

        def _fn():
            call_count[0] += 1
            o["v"]  # track dependency
            if call_count[0] > 1:
                raise NoMatches("Widget")

        # Initial run succeeds (call_count becomes 1)
        rtx.effect(app, _fn)
        assert call_count[0] == 1

        # Second run raises NoMatches, silently caught
        o["v"] = 2
        assert call_count[0] == 2

    def test_fires_when_safe(self):
        app = _MockApp()
        o = reactive({"v": 1})
        log = []
        rtx.effect(app, lambda: log.append(o["v"]))
        o["v"] = 2
        assert log == [1, 2]

    def test_thread_marshal(self):
        app = _MockApp()
        o = reactive({"v": 1})
        log = []
        rtx.effect(app, lambda: log.append(o["v"]))

        def _bg():
            o["v"] = 2

        _in_thread(_bg)
        assert log == [1, 2]
        assert len(app._call_from_thread_log) == 1


class TestPause:
    def test_pause_restores_on_exception(self):
        app = _MockApp()
        assert rtx.is_safe(app)

        with pytest.raises(RuntimeError):
            with rtx.pause(app):
                assert not rtx.is_safe(app)
                raise RuntimeError("oops")

        # Restored despite exception
        assert rtx.is_safe(app)

    def test_pause_does_not_mutate_app(self):
        """Pause state lives in the module, not on the app."""
        app = _MockApp()
        attrs_before = set(vars(app))
        with rtx.pause(app):
            attrs_during = set(vars(app))
        attrs_after = set(vars(app))
        assert attrs_before == attrs_during, (
            f"pause() added attributes to app: {attrs_during - attrs_before}"
        )
        assert attrs_before == attrs_after

    def test_multiple_apps_independent(self):
        """Pausing one app does not affect another."""
        app_a = _MockApp()
        app_b = _MockApp()
        with rtx.pause(app_a):
            assert not rtx.is_safe(app_a)
            assert rtx.is_safe(app_b)
