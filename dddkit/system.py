"""Filesystem, console, version and network helpers."""

from __future__ import annotations

import datetime as _dt
import logging
import os
import queue
import shutil
import socket
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator

_log = logging.getLogger(__name__)

RESET = "\033[0m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"


def executable_dir() -> str:
    """Directory holding the running program."""
    program = sys.executable if getattr(sys, "frozen", False) else (sys.argv[0] or sys.executable)
    return os.path.dirname(os.path.abspath(program))


def getwd() -> str:
    return os.getcwd()


def _walk(path: str) -> Iterator[tuple[str, list[str], list[str]]]:
    """Like ``os.walk`` but raises the first error met instead of ignoring it."""
    errors: list[OSError] = []
    for entry in os.walk(path, onerror=errors.append):
        if errors:
            raise errors[0]
        yield entry
    if errors:
        raise errors[0]


def get_dir_size(path: str | os.PathLike) -> int:
    """Total size in bytes of all files below ``path``."""
    path = os.fspath(path)
    if not os.path.isdir(path):
        return os.lstat(path).st_size
    total = 0
    for root, dirs, files in _walk(path):
        for name in files + [d for d in dirs if os.path.islink(os.path.join(root, d))]:
            total += os.lstat(os.path.join(root, name)).st_size
    return total


@dataclass(frozen=True)
class FileInfo:
    path: str
    size: int
    mod_time: float

    @property
    def name(self) -> str:
        return os.path.basename(self.path)


def glob_files(path: str | os.PathLike) -> list[FileInfo]:
    """All files below ``path``, oldest modification first."""
    path = os.fspath(path)
    found: list[FileInfo] = []
    if not os.path.isdir(path):
        st = os.lstat(path)
        return [FileInfo(path, st.st_size, st.st_mtime)]
    for root, _dirs, files in _walk(path):
        for name in files:
            full = os.path.join(root, name)
            st = os.lstat(full)
            found.append(FileInfo(full, st.st_size, st.st_mtime))
    found.sort(key=lambda f: f.mod_time)
    return found


def clean_old_files(files: Iterable[FileInfo], count: int) -> int:
    """Delete files in order until ``count`` are gone; return how many were removed."""
    removed: list[str] = []
    remaining = count
    for info in files:
        try:
            os.remove(info.path)
        except OSError as exc:
            _log.error("file removal failed err=%s", exc)
            continue
        remaining -= 1
        removed.append(info.path)
        if remaining <= 0:
            break
    if removed:
        _log.info("removed old files logs=%s", removed)
    return count - remaining


def _parent(path: str) -> str:
    return os.path.dirname(path) or "."


def remove_empty_dirs(root_dir: str | os.PathLike, start: _dt.datetime, end: _dt.datetime) -> None:
    """Remove directories below (and including) ``root_dir`` that hold no files.

    Subdirectories modified outside ``[start, end]`` are not descended into.
    """
    root = os.path.normpath(os.fspath(root_dir))
    counts: dict[str, int] = {_parent(root): 1}

    def visit(path: str, is_dir: bool) -> bool:
        if is_dir and path != root:
            mod = _dt.datetime.fromtimestamp(os.lstat(path).st_mtime)
            if mod < start or mod > end:
                return False
            counts[path] = 0
        parent = _parent(path)
        if parent != path:
            counts[parent] = counts.get(parent, 0) + 1
        return True

    visit(root, os.path.isdir(root) and not os.path.islink(root))
    if os.path.isdir(root):
        for current, dirs, files in _walk(root):
            kept = []
            for name in sorted(dirs):
                full = os.path.join(current, name)
                if os.path.islink(full):
                    visit(full, False)
                elif visit(full, True):
                    kept.append(name)
            dirs[:] = kept
            for name in files:
                visit(os.path.join(current, name), False)

    while True:
        changed = False
        for directory in list(counts):
            if counts.get(directory) != 0:
                continue
            try:
                shutil.rmtree(directory)
            except FileNotFoundError:
                pass
            del counts[directory]
            parent = _parent(directory)
            if parent != directory:
                counts[parent] = counts.get(parent, 0) - 1
                changed = True
        if not changed:
            return


def abs_path(path: str) -> str:
    """Absolute path, resolving relative paths against the program's directory."""
    if os.path.isabs(path):
        return os.path.normpath(path)
    return os.path.normpath(os.path.join(executable_dir(), path))


def _format(fmt: str, args: tuple) -> str:
    if not args:
        return fmt
    try:
        return fmt % args
    except TypeError:
        return fmt + " " + " ".join(str(a) for a in args)


def err_printf(fmt: str, *args: object) -> None:
    """Print a %-formatted message in red."""
    print(RED + _format(fmt, args) + RESET, end="")


def warn_printf(fmt: str, *args: object) -> None:
    """Print a %-formatted message in yellow."""
    print(YELLOW + _format(fmt, args) + RESET, end="")


def _version_to_str(text: str) -> str:
    return "".join(part.split("-", 1)[0].rjust(3, "0") for part in text.split("."))


def compare_version_func(a: str, b: str, f: Callable[[str, str], bool]) -> bool:
    """Compare versions or IPs as zero-padded strings; differing shapes give True."""
    s1 = _version_to_str(a)
    s2 = _version_to_str(b)
    if len(s1) != len(s2):
        return True
    return f(s1, s2)


class FileBackup:
    """Writes data to a file in the background via a temporary file and rename.

    Writes arriving while one is still pending are dropped.
    """

    def __init__(self, file: str | os.PathLike) -> None:
        self.source_path = os.fspath(file)
        self.backup_path = self.source_path + ".back"
        self._queue: queue.Queue[bytes] = queue.Queue(maxsize=1)
        self._quit = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._quit.is_set():
            try:
                data = self._queue.get(timeout=0.05)
            except queue.Empty:
                continue
            try:
                with open(self.backup_path, "wb") as fh:
                    fh.write(data)
                os.chmod(self.backup_path, 0o600)
                os.replace(self.backup_path, self.source_path)
            except OSError as exc:
                _log.error("backup write failed err=%s", exc)

    def write(self, data: bytes) -> None:
        try:
            self._queue.put_nowait(bytes(data))
        except queue.Full:
            pass

    def close(self) -> None:
        self._quit.set()
        self._thread.join()

    def __enter__(self) -> FileBackup:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def local_ip() -> str:
    """The local address used to reach the public internet, or an empty string."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.settimeout(3)
            sock.connect(("8.8.8.8", 53))
            return sock.getsockname()[0]
    except OSError:
        return ""


def port_used(mode: str, port: int) -> bool:
    """True when the port cannot be bound (or is out of range)."""
    if port > 65535 or port < 0:
        return True
    kind = socket.SOCK_STREAM if mode.lower() == "tcp" else socket.SOCK_DGRAM
    try:
        with socket.socket(socket.AF_INET, kind) as sock:
            sock.bind(("", port))
    except OSError:
        return True
    return False


__all__ = [
    "BLUE",
    "GREEN",
    "RED",
    "RESET",
    "YELLOW",
    "FileBackup",
    "FileInfo",
    "Path",
    "abs_path",
    "clean_old_files",
    "compare_version_func",
    "err_printf",
    "executable_dir",
    "get_dir_size",
    "getwd",
    "glob_files",
    "local_ip",
    "port_used",
    "remove_empty_dirs",
    "warn_printf",
]