"""Business errors that carry a reason code, a message, details and an HTTP status."""

from __future__ import annotations

import copy

_codes: dict[str, str] = {}


class ReasonError(Exception):
    """An error identified by its reason code.

    Copies made by the ``with_*`` and ``set_*`` methods keep the reason, so
    they stay "the same error" for :meth:`same_reason`.
    """

    def __init__(
        self,
        reason: str,
        msg: str,
        details: tuple[str, ...] = (),
        http_status: int = 400,
    ) -> None:
        super().__init__(reason, msg)
        self.reason = reason
        self.msg = msg
        self.details = tuple(details)
        self.http_status = http_status

    def _copy(self, **changes: object) -> ReasonError:
        clone = copy.copy(self)
        for name, value in changes.items():
            setattr(clone, name, value)
        clone.args = (clone.reason, clone.msg)
        return clone

    def with_details(self, *args: str) -> ReasonError:
        """Return a copy with extra detail lines."""
        return self._copy(details=self.details + self.details + tuple(args))

    def withf(self, fmt: str, *args: object) -> ReasonError:
        """Return a copy with one extra detail line built from a %-format."""
        line = fmt % args if args else fmt
        return self._copy(details=self.details + self.details + (line,))

    def set_msg(self, msg: str) -> ReasonError:
        """Return a copy with a different message."""
        return self._copy(msg=msg)

    def set_http_status(self, status: int) -> ReasonError:
        """Return a copy with a different HTTP status."""
        return self._copy(http_status=status)

    def same_reason(self, other: object) -> bool:
        """True when ``other`` carries the same reason code."""
        return getattr(other, "reason", None) == self.reason

    def __str__(self) -> str:
        return self.msg + "".join(";" + d for d in self.details)

    def __repr__(self) -> str:
        return (
            f"ReasonError(reason={self.reason!r}, msg={self.msg!r}, "
            f"details={self.details!r}, http_status={self.http_status!r})"
        )


def new_error(reason: str, msg: str) -> ReasonError:
    """Register a new reason code; each code may be registered only once."""
    if reason in _codes:
        raise ValueError(f"err reason {reason} exists")
    _codes[reason] = msg
    return ReasonError(reason, msg, http_status=400)


def is_custom_error(err: object) -> bool:
    """True when ``err`` is a :class:`ReasonError`."""
    return isinstance(err, ReasonError)


def find_reason_error(err: BaseException | None) -> ReasonError | None:
    """Walk the cause/context chain of ``err`` and return the first ReasonError."""
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        if isinstance(err, ReasonError):
            return err
        seen.add(id(err))
        err = err.__cause__ or err.__context__
    return None