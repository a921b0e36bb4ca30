"""Model bases and the time conversions used when storing and serialising models."""

from __future__ import annotations

import datetime as _dt
import json
import re
import secrets
from dataclasses import dataclass
from typing import Any

_enabled_auto_migrate = False

DATE_TIME = "%Y-%m-%d %H:%M:%S"
_RANDOM_LETTERS = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ1234567890"
_INT_RE = re.compile(r"[+-]?[0-9]+")
_LONG_FRACTION = re.compile(r"\.([0-9]{6})[0-9]+")


def set_enabled_auto_migrate(value: bool) -> None:
    """Record whether table migration should run at start-up."""
    global _enabled_auto_migrate
    _enabled_auto_migrate = bool(value)


def get_enabled_auto_migrate() -> bool:
    return _enabled_auto_migrate


def now() -> _dt.datetime:
    """The current local time."""
    return _dt.datetime.now()


@dataclass
class Model:
    """Base for records with an integer primary key and timestamps."""

    id: int = 0
    created_at: _dt.datetime | None = None
    updated_at: _dt.datetime | None = None

    def before_create(self) -> None:
        stamp = now()
        self.created_at = stamp
        self.updated_at = stamp

    def before_update(self) -> None:
        self.updated_at = now()


@dataclass
class ModelWithStrID:
    """Base for records with a string primary key and timestamps."""

    id: str = ""
    created_at: _dt.datetime | None = None
    updated_at: _dt.datetime | None = None

    def before_create(self) -> None:
        stamp = now()
        self.created_at = stamp
        self.updated_at = stamp

    def before_update(self) -> None:
        self.updated_at = now()


def parse_time_to_layout(value: str) -> str:
    """Build a ``strptime`` format for a date such as ``2024-01-02 10:11:12.5+08:00``.

    Only year-month-day forms are supported; the separators are taken from
    the value itself.
    """
    layout = ""
    if len(value) >= 8:
        layout += f"%Y{value[4]}%m{value[7]}%d"
    if len(value) >= 19:
        layout += " %H:%M:%S"
    if len(value) > 19:
        rear = ""
        for char in value[19:]:
            if char == ".":
                rear += "."
            elif char in "+-":
                rear += "%z"
                break
            elif not rear.endswith("%f"):
                rear += "%f"
        return layout + rear
    return layout


def scan_time(value: Any) -> _dt.datetime:
    """Convert a database value into a datetime.

    Strings (as stored by SQLite) without an offset are read as UTC.
    """
    if isinstance(value, _dt.datetime):
        return value
    if isinstance(value, str):
        layout = parse_time_to_layout(value)
        text = _LONG_FRACTION.sub(r".\1", value)
        try:
            date = _dt.datetime.strptime(text, layout)
        except ValueError as exc:
            raise ValueError(
                f"pkg: can not convert {value} to timestamptz layout[{layout}]"
            ) from exc
        if date.tzinfo is None:
            date = date.replace(tzinfo=_dt.timezone.utc)
        return date
    raise TypeError(f"pkg: can not convert {value!r} to timestamptz")


def unmarshal_time_json(raw: str | bytes) -> _dt.datetime | None:
    """Decode a JSON time value; ``None`` stands for the zero time.

    Accepts a single digit (zero time), 10-digit Unix seconds, 13-digit Unix
    milliseconds, ``"YYYY-MM-DD HH:MM:SS"`` local times, empty strings,
    ``null`` and RFC 3339 strings.
    """
    text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw
    if _INT_RE.fullmatch(text):
        number = int(text)
        if len(text) == 1:
            return None
        if len(text) == 10:
            return _dt.datetime.fromtimestamp(number)
        if len(text) == 13:
            return _dt.datetime.fromtimestamp(number / 1000)
        raise ValueError(f"cannot decode {text} as a time")

    stripped = text.strip('"')
    if stripped == "":
        return None
    try:
        return _dt.datetime.strptime(stripped, DATE_TIME)
    except ValueError:
        pass
    decoded = json.loads(text)
    if decoded is None:
        return None
    if not isinstance(decoded, str):
        raise ValueError(f"cannot decode {text} as a time")
    return _dt.datetime.fromisoformat(decoded)


def marshal_time_json(value: _dt.datetime | None) -> str:
    """Encode a time as a quoted ``YYYY-MM-DD HH:MM:SS`` JSON string."""
    if value is None:
        return '"0001-01-01 00:00:00"'
    return '"' + value.strftime(DATE_TIME) + '"'


def time_value(value: _dt.datetime | None) -> _dt.datetime | None:
    """Value to hand to the database; the zero time becomes NULL."""
    if value is None or value == _dt.datetime.min:
        return None
    return value


def json_unmarshal(data: Any) -> Any:
    """Decode JSON from bytes or a string; other inputs give ``None``."""
    if isinstance(data, (bytes, bytearray)):
        return json.loads(data)
    if isinstance(data, str):
        return json.loads(data)
    return None


def generate_random_string(length: int) -> str:
    """A cryptographically random string of letters and digits."""
    return "".join(secrets.choice(_RANDOM_LETTERS) for _ in range(length))