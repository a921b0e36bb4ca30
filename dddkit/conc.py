"""Background task helpers: task groups, safe threads and periodic timers."""

from __future__ import annotations

import logging
import threading
import traceback
from typing import Any, Callable, Protocol

_log = logging.getLogger(__name__)


class Tracer(Protocol):
    def error(self, msg: str, *args: Any) -> None: ...


class DefaultTracer:
    """Reports errors to the standard logging system."""

    def error(self, msg: str, *args: Any) -> None:
        pairs = [f"{args[i]}={args[i + 1]}" for i in range(0, len(args) - 1, 2)]
        if len(args) % 2:
            pairs.append(str(args[-1]))
        _log.error(" ".join([msg, *pairs]))


def _panic_message(exc: BaseException) -> str:
    trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return f"PANIC[{exc}] TRACE[{trace}]"


class Group:
    """Runs functions on threads and waits for all of them to finish.

    Exceptions raised by a function are reported to the tracer, not re-raised.
    """

    def __init__(self, tracer: Tracer | None = None) -> None:
        self._trace: Tracer = tracer if tracer is not None else DefaultTracer()
        self._cond = threading.Condition()
        self._pending = 0

    def go_run(self, fn: Callable[[], Any]) -> None:
        with self._cond:
            self._pending += 1
        threading.Thread(target=self._run, args=(fn,), daemon=True).start()

    def _run(self, fn: Callable[[], Any]) -> None:
        try:
            fn()
        except Exception as exc:
            self._trace.error(_panic_message(exc))
        finally:
            with self._cond:
                self._pending -= 1
                if self._pending == 0:
                    self._cond.notify_all()

    def wait(self) -> None:
        with self._cond:
            self._cond.wait_for(lambda: self._pending == 0)

    def wait_with_timeout(self, timeout: float) -> None:
        """Wait for all tasks; raise TimeoutError after ``timeout`` seconds."""
        with self._cond:
            if not self._cond.wait_for(lambda: self._pending == 0, timeout):
                raise TimeoutError("tasks still running")


def go_safe(fn: Callable[[], Any]) -> threading.Thread:
    """Run ``fn`` on a daemon thread, logging its exit and any exception."""
    name = getattr(fn, "__qualname__", repr(fn))

    def runner() -> None:
        try:
            fn()
        except Exception as exc:
            _log.error(_panic_message(exc))
        finally:
            _log.info("goroutine exit func=%s", name)

    thread = threading.Thread(target=runner, daemon=True)
    thread.start()
    return thread


def default_timer(stop_event: threading.Event, every: float, fn: Callable[[], Any]) -> None:
    """Like :func:`timer` with a first run 3 seconds from now."""
    timer(stop_event, 3.0, every, fn)


def timer(stop_event: threading.Event, first: float, every: float, fn: Callable[[], Any]) -> None:
    """Call ``fn`` after ``first`` seconds, then every ``every`` seconds, until stopped."""
    wait = first
    while not stop_event.wait(wait):
        fn()
        wait = every