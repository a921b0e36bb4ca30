"""JSON logging with size- and time-based file rotation, sampling and context fields."""

from __future__ import annotations

import contextlib
import contextvars
import datetime as _dt
import fnmatch
import json
import logging
import os
import sys
import threading
import time
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

TIME_LAYOUT = "%Y-%m-%d %H:%M:%S"
FILE_PATTERN = "%Y%m%d_%H_%M_%S.log"
FILE_GLOB = "*_*_*_*.log"

_LEVELS = {
    "debug": logging.DEBUG,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}
_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}

_current_level = logging.INFO
_context_fields: contextvars.ContextVar[tuple[tuple[str, Any], ...]] = contextvars.ContextVar(
    "dddkit_log_context_fields", default=()
)
_STANDARD_ATTRS = set(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "taskName"}
_STATIC_ATTR = "_dddkit_static"
_CONTEXT_ATTR = "_dddkit_context"
_SAMPLED_ATTR = "_dddkit_sampled"

_installed: list[logging.Handler] = []


def set_level(level: str) -> int:
    """Set the global threshold from ``debug``/``warn``/``error``; anything else means info."""
    global _current_level
    _current_level = _LEVELS.get(level.lower(), logging.INFO)
    return _current_level


def _seconds(value: float | _dt.timedelta) -> float:
    if isinstance(value, _dt.timedelta):
        return value.total_seconds()
    return float(value)


@dataclass
class Sampler:
    """Within each ``tick_sec`` window, log the first ``first`` copies of a message,
    then every ``thereafter``-th one."""

    tick_sec: int = 0
    first: int = 0
    thereafter: int = 0


@dataclass
class LoggerConfig:
    """Logging settings; durations are seconds or timedeltas, sizes are bytes."""

    dir: str = ""
    id: str = ""
    name: str = ""
    version: str = ""
    debug: bool = False
    max_age: float | _dt.timedelta = 0.0
    rotation_time: float | _dt.timedelta = 0.0
    rotation_size: int = 0
    level: str = ""
    sampler: Sampler = field(default_factory=Sampler)


def new_default_config() -> LoggerConfig:
    return LoggerConfig(
        id="test",
        dir="./logs",
        version="0.0.1",
        debug=True,
        max_age=_dt.timedelta(days=7),
        rotation_time=_dt.timedelta(hours=1),
        rotation_size=1 * 1024 * 1024,
        sampler=Sampler(tick_sec=1, first=5, thereafter=5),
    )


class JsonFormatter(logging.Formatter):
    """One JSON object per record: level, ts, caller, msg, then the fields."""

    def __init__(self, include_caller: bool = True) -> None:
        super().__init__()
        self.include_caller = include_caller

    def format(self, record: logging.LogRecord) -> str:
        out: dict[str, Any] = {
            "level": _LEVEL_NAMES.get(record.levelno, record.levelname.lower()),
            "ts": time.strftime(TIME_LAYOUT, time.localtime(record.created))
            + ".%03d" % int(record.msecs),
        }
        if self.include_caller:
            parent = os.path.basename(os.path.dirname(record.pathname))
            caller = f"{parent}/{record.filename}" if parent else record.filename
            out["caller"] = f"{caller}:{record.lineno}"
        out["msg"] = record.getMessage()
        out.update(getattr(record, _STATIC_ATTR, {}))
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                out[key] = value
        out.update(getattr(record, _CONTEXT_ATTR, {}))
        if record.exc_info:
            out["exception"] = self.formatException(record.exc_info)
        return json.dumps(out, ensure_ascii=False, default=str)


class ContextFieldsFilter(logging.Filter):
    """Attaches fixed fields and the fields bound with :func:`with_attr` to each record."""

    def __init__(self, static: dict[str, Any] | None = None) -> None:
        super().__init__()
        self.static = dict(static or {})

    def filter(self, record: logging.LogRecord) -> bool:
        setattr(record, _STATIC_ATTR, dict(self.static))
        setattr(record, _CONTEXT_ATTR, dict(_context_fields.get()))
        return True


class _LevelFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= _current_level


class _SamplingFilter(logging.Filter):
    """Shared between handlers, so every handler makes the same decision per record."""

    def __init__(self, sampler: Sampler, clock: Callable[[], float] = time.monotonic) -> None:
        super().__init__()
        self.sampler = sampler
        self._clock = clock
        self._counts: dict[tuple[int, str], tuple[float, int]] = {}
        self._lock = threading.Lock()

    def filter(self, record: logging.LogRecord) -> bool:
        cached = record.__dict__.get(_SAMPLED_ATTR)
        if cached is not None:
            return cached
        key = (record.levelno, record.getMessage())
        with self._lock:
            now = self._clock()
            reset_at, count = self._counts.get(key, (0.0, 0))
            if now > reset_at:
                reset_at, count = now + self.sampler.tick_sec, 0
            count += 1
            self._counts[key] = (reset_at, count)
        first, thereafter = self.sampler.first, self.sampler.thereafter
        keep = count <= first or (thereafter > 0 and (count - first) % thereafter == 0)
        setattr(record, _SAMPLED_ATTR, keep)
        return keep


class RotatingLogHandler(logging.Handler):
    """Writes to time-stamped files in ``directory``.

    A new file starts each ``rotation_time`` seconds, or with a ``.N`` suffix when
    the current one reaches ``rotation_size`` bytes; files older than ``max_age``
    seconds are removed whenever a new file is opened.
    """

    def __init__(
        self,
        directory: str | os.PathLike,
        max_age: float | _dt.timedelta = 0,
        rotation_time: float | _dt.timedelta = 0,
        rotation_size: int = 0,
        clock: Callable[[], float] | None = None,
    ) -> None:
        super().__init__()
        self.directory = os.fspath(directory)
        max_age = _seconds(max_age)
        rotation_time = _seconds(rotation_time)
        self.max_age = max_age if max_age > 0 else 7 * 24 * 3600.0
        self.rotation_time = rotation_time if rotation_time > 0 else 12 * 3600.0
        self.rotation_size = rotation_size if rotation_size > 0 else 10 * 1024 * 1024
        self._clock = clock or time.time
        self._stream = None
        self._base: str | None = None
        self._generation = 0
        self.current_path: str | None = None

    def _base_name(self, now: float) -> str:
        start = now - (now % self.rotation_time)
        return os.path.join(self.directory, time.strftime(FILE_PATTERN, time.localtime(start)))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            data = (self.format(record) + "\n").encode("utf-8")
            self._write(data)
        except Exception:
            self.handleError(record)

    def _write(self, data: bytes) -> None:
        now = self._clock()
        base = self._base_name(now)
        if self._stream is None or base != self._base:
            self._open(base, 0, now)
        elif self._stream.tell() >= self.rotation_size:
            self._open(base, self._generation + 1, now)
        self._stream.write(data)
        self._stream.flush()

    def _open(self, base: str, generation: int, now: float) -> None:
        os.makedirs(self.directory, exist_ok=True)
        path = base if generation == 0 else f"{base}.{generation}"
        while generation > 0 and os.path.exists(path):
            generation += 1
            path = f"{base}.{generation}"
        if self._stream is not None:
            self._stream.close()
        self._stream = open(path, "ab")
        self._base = base
        self._generation = generation
        self.current_path = path
        self._purge(now)

    def _purge(self, now: float) -> None:
        cutoff = now - self.max_age
        for name in os.listdir(self.directory):
            if not fnmatch.fnmatch(name, FILE_GLOB):
                continue
            path = os.path.join(self.directory, name)
            if path == self.current_path:
                continue
            try:
                if os.lstat(path).st_mtime < cutoff:
                    os.remove(path)
            except OSError:
                continue

    def close(self) -> None:
        with self.lock:
            if self._stream is not None:
                self._stream.close()
                self._stream = None
        super().close()


@contextlib.contextmanager
def with_attr(key: str, value: Any) -> Iterator[dict[str, Any]]:
    """Bind a field to every record logged inside the block."""
    token = _context_fields.set(_context_fields.get() + ((key, value),))
    try:
        yield dict(_context_fields.get())
    finally:
        _context_fields.reset(token)


def _crash_hooks(crash_file) -> Callable[[], None]:
    previous_hook = sys.excepthook
    previous_thread_hook = threading.excepthook

    def write(exc_type, exc, tb) -> None:
        try:
            crash_file.write("".join(traceback.format_exception(exc_type, exc, tb)))
            crash_file.flush()
        except (OSError, ValueError):
            pass

    def hook(exc_type, exc, tb) -> None:
        write(exc_type, exc, tb)
        previous_hook(exc_type, exc, tb)

    def thread_hook(args) -> None:
        write(args.exc_type, args.exc_value, args.exc_traceback)
        previous_thread_hook(args)

    sys.excepthook = hook
    threading.excepthook = thread_hook

    def restore() -> None:
        sys.excepthook = previous_hook
        threading.excepthook = previous_thread_hook

    return restore


def setup_logging(config: LoggerConfig) -> tuple[logging.Logger, Callable[[], None]]:
    """Configure the root logger; return it and a function that undoes the setup."""
    set_level(config.level)
    sampler = config.sampler
    if sampler.tick_sec <= 0:
        sampler = Sampler(tick_sec=1, first=5, thereafter=5)

    static: dict[str, Any] = {}
    if config.id:
        static["serviceID"] = config.id
    if config.version:
        static["serviceVersion"] = config.version

    formatter = JsonFormatter(include_caller=config.debug)
    filters: list[logging.Filter] = [
        _LevelFilter(),
        ContextFieldsFilter(static),
        _SamplingFilter(sampler),
    ]
    handlers: list[logging.Handler] = [
        RotatingLogHandler(
            config.dir, config.max_age, config.rotation_time, config.rotation_size
        )
    ]
    if config.debug:
        handlers.append(logging.StreamHandler(sys.stdout))

    root = logging.getLogger()
    for old in _installed:
        root.removeHandler(old)
        old.close()
    _installed.clear()
    previous_level = root.level
    for handler in handlers:
        handler.setFormatter(formatter)
        for item in filters:
            handler.addFilter(item)
        root.addHandler(handler)
        _installed.append(handler)
    root.setLevel(logging.DEBUG)

    restore_hooks: Callable[[], None] | None = None
    crash_file = None
    try:
        fd = os.open(
            os.path.join(config.dir, "crash.log"), os.O_CREAT | os.O_WRONLY | os.O_APPEND, 0o600
        )
        crash_file = os.fdopen(fd, "a", encoding="utf-8")
        restore_hooks = _crash_hooks(crash_file)
    except OSError:
        crash_file = None

    def close() -> None:
        if restore_hooks is not None:
            restore_hooks()
        if crash_file is not None:
            crash_file.close()
        for handler in handlers:
            root.removeHandler(handler)
            handler.close()
            if handler in _installed:
                _installed.remove(handler)
        root.setLevel(previous_level)

    return root, close