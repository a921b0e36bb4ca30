"""Globally unique short identifiers, made unique by a database primary key."""

from __future__ import annotations

import datetime as _dt
import logging
import secrets
import sqlite3
from dataclasses import dataclass
from typing import Protocol

from .orm import scan_time, time_value

_log = logging.getLogger(__name__)

# Letters without "o" and "i", which are easily confused with digits.
LETTER_BYTES_36_NO_OI = "abcdefghjklmnpqrstuvwxyz0123456789"
LETTER_BYTES_72 = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
LETTER_BYTES_36 = "abcdefghijklmnopqrstuvwxyz0123456789"
LETTER_BYTES_36_UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

_LENGTH_STEPS = 10
_ATTEMPTS_PER_LENGTH = 36
UNKNOWN_ID = "unknown"


@dataclass
class UniqueID:
    """A reserved identifier."""

    id: str = ""
    created_at: _dt.datetime | None = None


class UniqueIDStorer(Protocol):
    def add(self, item: UniqueID) -> None: ...

    def delete(self, id_: str) -> int: ...


def _to_db(value: _dt.datetime | None) -> str | None:
    stamp = time_value(value)
    return None if stamp is None else stamp.astimezone().isoformat(sep=" ")


class SQLiteUniqueIDStore:
    """Keeps reserved identifiers in the ``unique_ids`` table of a SQLite database."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def auto_migrate(self, ok: bool) -> SQLiteUniqueIDStore:
        """Create the table when ``ok`` is true."""
        if ok:
            with self.conn:
                self.conn.execute(
                    "CREATE TABLE IF NOT EXISTS unique_ids ("
                    "id TEXT PRIMARY KEY, "
                    "created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP)"
                )
        return self

    def add(self, item: UniqueID) -> None:
        """Insert ``item``; a taken id raises :class:`sqlite3.IntegrityError`."""
        with self.conn:
            self.conn.execute(
                "INSERT INTO unique_ids (id, created_at) "
                "VALUES (?, COALESCE(?, CURRENT_TIMESTAMP))",
                (item.id, _to_db(item.created_at)),
            )

    def get(self, id_: str) -> UniqueID:
        """Return the record for ``id_``; raise LookupError when absent."""
        row = self.conn.execute(
            "SELECT id, created_at FROM unique_ids WHERE id = ? LIMIT 1", (id_,)
        ).fetchone()
        if row is None:
            raise LookupError("record not found")
        return UniqueID(id=row[0], created_at=scan_time(row[1]))

    def delete(self, id_: str) -> int:
        """Delete ``id_``; return how many rows went."""
        with self.conn:
            cursor = self.conn.execute("DELETE FROM unique_ids WHERE id = ?", (id_,))
        return cursor.rowcount

    def find(self, limit: int, offset: int) -> tuple[list[UniqueID], int]:
        """Return one page of records and the total count."""
        (total,) = self.conn.execute("SELECT COUNT(*) FROM unique_ids").fetchone()
        if total <= 0:
            return [], total
        rows = self.conn.execute(
            "SELECT id, created_at FROM unique_ids LIMIT ? OFFSET ?", (limit, offset)
        ).fetchall()
        return [UniqueID(id=i, created_at=scan_time(c)) for i, c in rows], total


def generate_random_string(letters: str, length: int) -> str:
    """A cryptographically random string drawn from ``letters``."""
    return "".join(secrets.choice(letters) for _ in range(length))


class IDManager:
    """Hands out random identifiers, retrying on collisions."""

    def __init__(self, store: UniqueIDStorer) -> None:
        self.store = store
        self.letters = LETTER_BYTES_36

    def set_letter_bytes(self, letters: str) -> None:
        """Change the alphabet random identifiers are drawn from."""
        self.letters = letters

    def unique_id(self, prefix: str, length: int) -> str:
        """Reserve and return a new id; ``"unknown"`` when every attempt collides.

        Each length is tried 36 times before the length grows by one, up to
        ten lengths.
        """
        for extra in range(_LENGTH_STEPS):
            for _ in range(_ATTEMPTS_PER_LENGTH):
                candidate = prefix + generate_random_string(self.letters, length + extra)
                try:
                    self.store.add(UniqueID(id=candidate))
                except Exception as exc:  # any store failure counts as a collision
                    _log.error("UniqueID err=%s", exc)
                    continue
                return candidate
        _log.error("UniqueID err=too many attempts, no unique id obtained")
        return UNKNOWN_ID

    def undo_unique_id(self, id_: str) -> None:
        """Release an id so it may be handed out again."""
        self.store.delete(id_)


class UniqueIDCore:
    """Unique id service with a default length."""

    def __init__(self, store: UniqueIDStorer, length: int) -> None:
        self.store = store
        self.length = length
        self._manager = IDManager(store)

    def unique_id(self, prefix: str) -> str:
        """A new id of the default length after ``prefix``."""
        return self._manager.unique_id(prefix, self.length)

    def unique_id_with_custom_len(self, prefix: str, length: int) -> str:
        return self._manager.unique_id(prefix, length)

    def undo_unique_id(self, id_: str) -> None:
        """Release an id that went unused or whose owner was deleted."""
        self._manager.undo_unique_id(id_)