"""Decides whether database tables need migrating, based on a recorded version."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Protocol

from .orm import Model, scan_time, time_value
from .system import compare_version_func


@dataclass
class Version(Model):
    """One migration record; the newest by id is the current schema version."""

    version: str = ""
    remark: str = ""


class VersionStorer(Protocol):
    def first(self) -> Version: ...

    def add(self, version: Version) -> None: ...


def _newer(a: str, b: str) -> bool:
    return compare_version_func(a.removeprefix("v"), b.removeprefix("v"), lambda x, y: x > y)


class VersionCore:
    """Tracks whether migration is needed for the running program's version."""

    def __init__(self, store: VersionStorer) -> None:
        self.store = store
        self.is_migrate = False

    def is_auto_migrate(self, current_ver: str) -> bool:
        """True when no version is recorded or ``current_ver`` is newer or shaped differently."""
        try:
            recorded = self.store.first()
        except Exception:
            # Any storage failure (missing table, no rows) means migrate.
            self.is_migrate = True
            return True
        self.is_migrate = _newer(current_ver, recorded.version)
        return self.is_migrate

    def record_version(self, current_ver: str, remark: str) -> None:
        self.store.add(Version(version=current_ver, remark=remark))


def _to_db(value) -> str | None:
    stamp = time_value(value)
    return None if stamp is None else stamp.astimezone().isoformat(sep=" ")


class SQLiteVersionStore:
    """Keeps version records in the ``versions`` table of a SQLite database."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def auto_migrate(self, ok: bool) -> SQLiteVersionStore:
        """Create the table when ``ok`` is true."""
        if ok:
            with self.conn:
                self.conn.execute(
                    "CREATE TABLE IF NOT EXISTS versions ("
                    "id INTEGER PRIMARY KEY AUTOINCREMENT, "
                    "created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP, "
                    "updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP, "
                    "version TEXT NOT NULL DEFAULT '', "
                    "remark TEXT NOT NULL DEFAULT '')"
                )
                self.conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_versions_created_at ON versions (created_at)"
                )
        return self

    def first(self) -> Version:
        """The newest record; raises LookupError when there is none."""
        row = self.conn.execute(
            "SELECT id, created_at, updated_at, version, remark "
            "FROM versions ORDER BY id DESC LIMIT 1"
        ).fetchone()
        if row is None:
            raise LookupError("record not found")
        ident, created, updated, version, remark = row
        return Version(
            id=ident,
            created_at=scan_time(created),
            updated_at=scan_time(updated),
            version=version,
            remark=remark,
        )

    def add(self, version: Version) -> None:
        version.before_create()
        with self.conn:
            cursor = self.conn.execute(
                "INSERT INTO versions (created_at, updated_at, version, remark) "
                "VALUES (?, ?, ?, ?)",
                (
                    _to_db(version.created_at),
                    _to_db(version.updated_at),
                    version.version,
                    version.remark,
                ),
            )
        version.id = cursor.lastrowid