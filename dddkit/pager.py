"""Paging and date-range filters, and a small field validator."""

from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field

MAX_PAGE_SIZE = 10000
DEFAULT_PAGE_SIZE = 10


def _from_ms(ms: int) -> _dt.datetime:
    seconds, millis = divmod(ms, 1000)
    return _dt.datetime.fromtimestamp(seconds) + _dt.timedelta(milliseconds=millis)


@dataclass
class PagerFilter:
    """Page number, page size and an optional sort column."""

    page: int = 0
    size: int = 0
    sort: str = ""
    sort_safelist: list[str] = field(default_factory=list)

    def must_sort_column(self) -> str:
        """``"column ASC|DESC"`` for an allowed sort, otherwise an empty string."""
        column, ok = self.sort_column()
        if not ok:
            return ""
        return column + " " + self.sort_direction()

    def sort_column(self) -> tuple[str, bool]:
        """The sort column without its sign, when it is in the safelist."""
        if self.sort and self.sort in self.sort_safelist:
            return self.sort.removeprefix("-"), True
        return "", False

    def sort_direction(self) -> str:
        return "DESC" if self.sort.startswith("-") else "ASC"

    def offset(self) -> int:
        page = max(self.page, 1)
        return (page - 1) * self.size

    def limit(self) -> int:
        """Page size, 10 when unset and at most 10000."""
        if self.size <= 1:
            return DEFAULT_PAGE_SIZE
        return min(self.size, MAX_PAGE_SIZE)


def new_pager_filter_max_size() -> PagerFilter:
    return PagerFilter(size=99999)


@dataclass
class DateFilter:
    """A time range given in Unix milliseconds."""

    start_ms: int = 0
    end_ms: int = 0

    def start_at(self) -> _dt.datetime:
        return _from_ms(self.start_ms)

    def end_at(self) -> _dt.datetime:
        return _from_ms(self.end_ms)

    def default_start_at(self, date: _dt.datetime) -> _dt.datetime:
        """The start, or ``date`` when unset or after the end."""
        if self.start_ms <= 0 or self.start_ms > self.end_ms:
            return date
        return _from_ms(self.start_ms)

    def default_end_at(self, date: _dt.datetime) -> _dt.datetime:
        """The end, or ``date`` when unset or before the start."""
        if self.end_ms <= 0 or self.end_ms < self.start_ms:
            return date
        return _from_ms(self.end_ms)


def limit(v: int, min_v: int, max_v: int) -> int:
    """Clamp ``v`` into ``[min_v, max_v]``."""
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


def offset(page: int, size: int) -> int:
    """Row offset of a page; pages below 1 give 1."""
    if page < 1:
        return 1
    return (page - 1) * size


class Validator:
    """Collects one error message per key."""

    def __init__(self) -> None:
        self.errors: dict[str, str] = {}

    def valid(self) -> bool:
        return not self.errors

    def add_error(self, key: str, message: str) -> Validator:
        """Record ``message`` unless ``key`` already has one."""
        self.errors.setdefault(key, message)
        return self

    def check(self, ok: bool, key: str, message: str) -> Validator:
        if not ok:
            self.add_error(key, message)
        return self

    def result(self) -> tuple[bool, list[str]]:
        return self.valid(), self.errors_list()

    def errors_list(self) -> list[str]:
        """Errors as ``"key message"`` lines."""
        return [f"{key} {message}" for key, message in self.errors.items()]