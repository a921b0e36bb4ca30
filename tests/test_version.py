import sqlite3

import pytest

from dddkit.version import SQLiteVersionStore, Version, VersionCore


@pytest.fixture
def store():
    conn = sqlite3.connect(":memory:")
    yield SQLiteVersionStore(conn).auto_migrate(True)
    conn.close()


def test_empty_store_needs_migration(store):
    core = VersionCore(store)
    assert core.is_auto_migrate("0.0.1") is True
    assert core.is_migrate is True


def test_missing_table_needs_migration():
    conn = sqlite3.connect(":memory:")
    core = VersionCore(SQLiteVersionStore(conn).auto_migrate(False))
    assert core.is_auto_migrate("0.0.1") is True
    conn.close()


def test_first_on_empty_raises(store):
    with pytest.raises(LookupError):
        store.first()


def test_record_and_read_back(store):
    core = VersionCore(store)
    core.record_version("0.0.1", "debug")
    latest = store.first()
    assert latest.version == "0.0.1"
    assert latest.remark == "debug"
    assert latest.created_at == latest.updated_at


def test_first_returns_newest(store):
    store.add(Version(version="0.0.1"))
    second = Version(version="0.0.2", remark="later")
    store.add(second)
    assert store.first().id == second.id
    assert store.first().version == "0.0.2"


@pytest.mark.parametrize(
    "current, expected",
    [
        ("0.0.1", False),
        ("0.0.0", False),
        ("0.0.2", True),
        ("v0.0.2", True),
        ("0.1", True),
        ("0.0.1-beta", False),
    ],
)
def test_is_auto_migrate_compares_versions(store, current, expected):
    core = VersionCore(store)
    core.record_version("0.0.1", "debug")
    assert core.is_auto_migrate(current) is expected
    assert core.is_migrate is expected