import datetime as dt
import sqlite3

import pytest

from dddkit.uniqueid import (
    LETTER_BYTES_36,
    LETTER_BYTES_36_NO_OI,
    IDManager,
    SQLiteUniqueIDStore,
    UniqueID,
    UniqueIDCore,
    generate_random_string,
)


@pytest.fixture
def store():
    conn = sqlite3.connect(":memory:")
    yield SQLiteUniqueIDStore(conn).auto_migrate(True)
    conn.close()


class _AlwaysFails:
    def add(self, item):
        raise sqlite3.IntegrityError("duplicate")

    def delete(self, id_):
        return 0


def test_get_by_id(store):
    store.add(UniqueID(id="jack"))
    out = store.get("jack")
    assert out.id == "jack"


def test_get_missing_raises(store):
    with pytest.raises(LookupError):
        store.get("jack")


def test_default_created_at_is_now(store):
    store.add(UniqueID(id="jack"))
    created = store.get("jack").created_at
    assert abs(created - dt.datetime.now(dt.timezone.utc)) < dt.timedelta(minutes=1)


def test_created_at_round_trip(store):
    stamp = dt.datetime(2024, 1, 2, 3, 4, 5, tzinfo=dt.timezone.utc)
    store.add(UniqueID(id="t", created_at=stamp))
    assert store.get("t").created_at == stamp


def test_duplicate_add_raises(store):
    store.add(UniqueID(id="dup"))
    with pytest.raises(sqlite3.IntegrityError):
        store.add(UniqueID(id="dup"))


def test_without_migration_table_is_missing():
    conn = sqlite3.connect(":memory:")
    unmigrated = SQLiteUniqueIDStore(conn).auto_migrate(False)
    with pytest.raises(sqlite3.OperationalError):
        unmigrated.get("jack")


def test_find_pages(store):
    for name in ("a", "b", "c"):
        store.add(UniqueID(id=name))
    items, total = store.find(2, 0)
    assert total == 3
    assert len(items) == 2
    rest, _ = store.find(2, 2)
    assert {i.id for i in items} | {i.id for i in rest} == {"a", "b", "c"}


def test_find_empty(store):
    assert store.find(10, 0) == ([], 0)


def test_delete_counts(store):
    store.add(UniqueID(id="a"))
    assert store.delete("a") == 1
    assert store.delete("a") == 0


def test_generate_random_string_uses_alphabet():
    value = generate_random_string(LETTER_BYTES_36_NO_OI, 50)
    assert len(value) == 50
    assert set(value) <= set(LETTER_BYTES_36_NO_OI)
    assert "o" not in value and "i" not in value


def test_unique_id_is_stored(store):
    manager = IDManager(store)
    value = manager.unique_id("u_", 6)
    assert value.startswith("u_")
    assert len(value) == len("u_") + 6
    assert set(value[2:]) <= set(LETTER_BYTES_36)
    assert store.get(value).id == value


def test_collision_grows_length(store):
    manager = IDManager(store)
    manager.set_letter_bytes("a")
    assert manager.unique_id("p", 1) == "pa"
    assert manager.unique_id("p", 1) == "paa"


def test_exhausted_attempts_return_unknown():
    assert IDManager(_AlwaysFails()).unique_id("x", 4) == "unknown"


def test_undo_releases_id(store):
    manager = IDManager(store)
    manager.set_letter_bytes("a")
    first = manager.unique_id("p", 1)
    manager.undo_unique_id(first)
    with pytest.raises(LookupError):
        store.get(first)
    assert manager.unique_id("p", 1) == first


def test_core_lengths(store):
    core = UniqueIDCore(store, 8)
    assert len(core.unique_id("x")) == 9
    assert len(core.unique_id_with_custom_len("x", 3)) == 4


def test_core_undo(store):
    core = UniqueIDCore(store, 5)
    value = core.unique_id("")
    core.undo_unique_id(value)
    with pytest.raises(LookupError):
        store.get(value)