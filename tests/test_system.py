import datetime as dt
import os
import socket
import time

import pytest

from dddkit import system


def test_get_dir_size(tmp_path):
    base = tmp_path / "test"
    base.mkdir()
    for i in range(20):
        (base / f"{i}.txt").write_bytes(b"123")
    assert system.get_dir_size(base) == 3 * 20


def test_get_dir_size_missing_raises(tmp_path):
    with pytest.raises(OSError):
        system.get_dir_size(tmp_path / "missing")


def _window():
    now = dt.datetime.now()
    return now - dt.timedelta(hours=1), now + dt.timedelta(hours=1)


def test_remove_empty_dirs_removes_everything(tmp_path):
    base = tmp_path / "test_bench"
    for i in range(5):
        for j in range(3):
            (base / f"d1_{i}" / f"d2_{j}").mkdir(parents=True)
    start, end = _window()
    system.remove_empty_dirs(base, start, end)
    assert not base.exists()
    assert tmp_path.exists()


def test_remove_empty_dirs_keeps_files(tmp_path):
    base = tmp_path / "root"
    (base / "full" / "inner").mkdir(parents=True)
    (base / "full" / "inner" / "file.txt").write_text("data")
    (base / "empty" / "deeper").mkdir(parents=True)
    start, end = _window()
    system.remove_empty_dirs(base, start, end)
    assert (base / "full" / "inner" / "file.txt").read_text() == "data"
    assert not (base / "empty").exists()


def test_remove_empty_dirs_outside_window_untouched(tmp_path):
    base = tmp_path / "root"
    (base / "a").mkdir(parents=True)
    (base / "b").mkdir()
    future = dt.datetime.now() + dt.timedelta(days=1)
    system.remove_empty_dirs(base, future, future + dt.timedelta(hours=1))
    assert sorted(p.name for p in base.iterdir()) == ["a", "b"]


def test_glob_files_sorted_by_mtime(tmp_path):
    names = ["c.txt", "a.txt", "b.txt"]
    base_time = time.time() - 1000
    for offset, name in enumerate(names):
        path = tmp_path / name
        path.write_text(name)
        os.utime(path, (base_time + offset, base_time + offset))
    files = system.glob_files(tmp_path)
    assert [f.name for f in files] == names
    assert all(f.size == 5 for f in files)


def test_clean_old_files_removes_count(tmp_path):
    for i in range(4):
        (tmp_path / f"{i}.log").write_text("x")
        os.utime(tmp_path / f"{i}.log", (1000 + i, 1000 + i))
    files = system.glob_files(tmp_path)
    removed = system.clean_old_files(files, 2)
    assert removed == 2
    assert sorted(p.name for p in tmp_path.iterdir()) == ["2.log", "3.log"]


def test_clean_old_files_skips_missing(tmp_path):
    (tmp_path / "keep.log").write_text("x")
    ghost = system.FileInfo(str(tmp_path / "ghost.log"), 0, 0.0)
    real = system.glob_files(tmp_path)[0]
    assert system.clean_old_files([ghost, real], 5) == 1
    assert list(tmp_path.iterdir()) == []


def test_abs_path():
    assert system.abs_path("/a/b/../c") == os.path.normpath("/a/c")
    result = system.abs_path("configs")
    assert os.path.isabs(result)
    assert result == os.path.join(system.executable_dir(), "configs")


def test_getwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    cwd = system.getwd()
    assert os.path.realpath(cwd) == os.path.realpath(tmp_path)


def test_compare_version_func():
    greater = lambda a, b: a > b  # noqa: E731
    assert system.compare_version_func("1.2.10", "1.2.3", greater)
    assert not system.compare_version_func("1.2.3", "1.2.10", greater)
    assert system.compare_version_func("1.2", "1.2.3", greater)
    assert not system.compare_version_func("1.2.3-beta", "1.2.3", greater)
    assert system.compare_version_func(
        "192.168.1.2", "192.168.1.2", lambda a, b: a == b
    )


def test_err_and_warn_printf(capsys):
    system.err_printf("err: %s", "boom")
    system.warn_printf("careful %d", 3)
    out = capsys.readouterr().out
    assert out == (
        system.RED + "err: boom" + system.RESET + system.YELLOW + "careful 3" + system.RESET
    )


def test_file_backup_writes(tmp_path):
    target = tmp_path / "h.txt"
    backup = system.FileBackup(target)
    try:
        for i in range(10):
            backup.write(str(i).encode())
        deadline = time.time() + 3
        while not target.exists() and time.time() < deadline:
            time.sleep(0.01)
        assert target.exists()
        assert target.read_text() in {str(i) for i in range(10)}
    finally:
        backup.close()
    assert not (tmp_path / "h.txt.back").exists()


def test_port_used_out_of_range():
    assert system.port_used("tcp", 70000)
    assert system.port_used("udp", -1)


def test_port_used_detects_bound_tcp_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("", 0))
        sock.listen(1)
        port = sock.getsockname()[1]
        assert system.port_used("tcp", port)


def test_port_used_detects_bound_udp_port():
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("", 0))
        port = sock.getsockname()[1]
        assert system.port_used("udp", port)