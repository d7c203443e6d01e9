"""Tests for cross-thread write marshalling."""

import threading

from reactly import effect, reactive, set_scheduler


def _in_thread(fn):
    t = threading.Thread(target=fn)
    t.start()
    t.join()


class TestSetScheduler:
    def test_main_thread_writes_stay_synchronous(self):
        calls = []
        set_scheduler(calls.append)
        state = reactive({"n": 0})
        log = []
        effect(lambda: log.append(state["n"]))
        state["n"] = 1
        assert log == [0, 1]
        assert calls == []

    def test_background_write_is_marshalled(self):
        calls = []
        set_scheduler(calls.append)
        state = reactive({"n": 0})
        log = []
        effect(lambda: log.append(state["n"]))

        def _bg():
            state["n"] = 1

        _in_thread(_bg)
        # The value landed, the effect has not run yet.
        assert state["n"] == 1
        assert log == [0]
        assert len(calls) == 1

        calls[0]()
        assert log == [0, 1]

    def test_without_scheduler_background_writes_run_inline(self):
        state = reactive({"n": 0})
        log = []
        effect(lambda: log.append(state["n"]))
        _in_thread(lambda: state.__setitem__("n", 1))
        assert log == [0, 1]

    def test_clearing_the_scheduler(self):
        calls = []
        set_scheduler(calls.append)
        set_scheduler(None)
        state = reactive({"n": 0})
        log = []
        effect(lambda: log.append(state["n"]))
        _in_thread(lambda: state.__setitem__("n", 1))
        assert calls == []
        assert log == [0, 1]
