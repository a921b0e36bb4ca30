import logging
import threading

import pytest

from dddkit.conc import DefaultTracer, Group, default_timer, go_safe, timer


class RecordingTracer:
    def __init__(self):
        self.messages = []
        self._lock = threading.Lock()

    def error(self, msg, *args):
        with self._lock:
            self.messages.append(msg)


def test_group_recovers_panics():
    tracer = RecordingTracer()
    g = Group(tracer)

    def boom(text):
        raise RuntimeError(text)

    g.go_run(lambda: boom("test"))
    g.go_run(lambda: boom("test1"))
    g.wait()
    starts = sorted(m.split(" ")[0] for m in tracer.messages)
    assert starts == ["PANIC[test]", "PANIC[test1]"]


def test_default_tracer_logs(caplog):
    caplog.set_level(logging.ERROR)
    g = Group()
    g.go_run(lambda: 1 / 0)
    g.wait()
    assert any("PANIC[division by zero]" in r.getMessage() for r in caplog.records)


def test_default_tracer_formats_pairs(caplog):
    caplog.set_level(logging.ERROR)
    DefaultTracer().error("msg", "k", 1)
    assert caplog.records[-1].getMessage() == "msg k=1"


def test_wait_with_timeout():
    release = threading.Event()
    finished = []
    g = Group(RecordingTracer())

    def task():
        release.wait(5)
        finished.append(1)

    g.go_run(task)
    g.go_run(task)
    with pytest.raises(TimeoutError):
        g.wait_with_timeout(0.1)
    release.set()
    g.wait_with_timeout(2)
    assert len(finished) == 2


def test_go_safe_runs_and_logs(caplog):
    caplog.set_level(logging.INFO)
    results = []
    go_safe(lambda: results.append("ok")).join(2)
    assert results == ["ok"]

    def fail():
        raise ValueError("bad")

    go_safe(fail).join(2)
    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("PANIC[bad]") for m in messages)
    assert any("goroutine exit" in m for m in messages)


def test_timer_repeats_until_stopped():
    stop = threading.Event()
    calls = []

    def fn():
        calls.append(len(calls) + 1)
        if len(calls) >= 3:
            stop.set()

    result = timer(stop, 0.01, 0.01, fn)
    assert result is None
    assert calls == [1, 2, 3]
    assert stop.is_set()


def test_timer_stopped_before_first_run():
    stop = threading.Event()
    stop.set()
    calls = []
    timer(stop, 0.01, 0.01, lambda: calls.append(1))
    default_timer(stop, 0.01, lambda: calls.append(1))
    assert calls == []