"""Signed HS256 tokens carrying a free-form data map and registered claims."""

from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from typing import Any, Callable

import jwt

# Keys kept stable for compatibility; uid and role_id are ints.
KEY_USER_ID = "uid"
KEY_LEVEL = "level"
KEY_ROLE_ID = "role_id"
KEY_USERNAME = "username"
KEY_TOKEN_STRING = "token"

DEFAULT_ISSUER = "issuer@example.com"
DEFAULT_EXPIRES = _dt.timedelta(hours=6)
_ALGORITHMS = ["HS256", "HS384", "HS512"]


class ClaimsData(dict):
    """The data map placed in a token; setters return the map for chaining."""

    def set_user_id(self, uid: int) -> ClaimsData:
        self[KEY_USER_ID] = uid
        return self

    def set_level(self, level: int) -> ClaimsData:
        self[KEY_LEVEL] = level
        return self

    def set_role_id(self, role_id: int) -> ClaimsData:
        self[KEY_ROLE_ID] = role_id
        return self

    def set_username(self, username: str) -> ClaimsData:
        self[KEY_USERNAME] = username
        return self

    def set(self, key: str, value: Any) -> ClaimsData:
        self[key] = value
        return self


def _numeric(value: _dt.datetime) -> _dt.datetime:
    if value.tzinfo is None:
        value = value.astimezone()
    return value.astimezone(_dt.timezone.utc).replace(microsecond=0)


def _from_numeric(value: Any) -> _dt.datetime | None:
    if value is None:
        return None
    return _dt.datetime.fromtimestamp(value, _dt.timezone.utc)


@dataclass
class Claims:
    """Token contents: the data map plus the registered claims."""

    data: dict[str, Any] | None = field(default_factory=dict)
    issuer: str = ""
    subject: str = ""
    audience: list[str] = field(default_factory=list)
    expires_at: _dt.datetime | None = None
    not_before: _dt.datetime | None = None
    issued_at: _dt.datetime | None = None
    id: str = ""

    def valid(self) -> None:
        """Raise when the token is expired, not yet valid or issued in the future."""
        now = _dt.datetime.now(_dt.timezone.utc)
        if self.expires_at is not None and now >= self.expires_at:
            raise jwt.ExpiredSignatureError("token is expired")
        if self.issued_at is not None and now < self.issued_at:
            raise jwt.ImmatureSignatureError("token used before issued")
        if self.not_before is not None and now < self.not_before:
            raise jwt.ImmatureSignatureError("token is not valid yet")

    def _payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"Data": self.data}
        if self.issuer:
            payload["iss"] = self.issuer
        if self.subject:
            payload["sub"] = self.subject
        if self.audience:
            payload["aud"] = self.audience[0] if len(self.audience) == 1 else list(self.audience)
        for key, stamp in (
            ("exp", self.expires_at),
            ("nbf", self.not_before),
            ("iat", self.issued_at),
        ):
            if stamp is not None:
                payload[key] = int(stamp.timestamp())
        if self.id:
            payload["jti"] = self.id
        return payload

    @classmethod
    def _from_payload(cls, payload: dict[str, Any]) -> Claims:
        audience = payload.get("aud") or []
        if isinstance(audience, str):
            audience = [audience]
        return cls(
            data=payload.get("Data") or {},
            issuer=payload.get("iss", ""),
            subject=payload.get("sub", ""),
            audience=list(audience),
            expires_at=_from_numeric(payload.get("exp")),
            not_before=_from_numeric(payload.get("nbf")),
            issued_at=_from_numeric(payload.get("iat")),
            id=payload.get("jti", ""),
        )


TokenOption = Callable[[Claims], None]


def with_expires_at(expires_at: _dt.datetime) -> TokenOption:
    """Expire at a given time."""

    def apply(claims: Claims) -> None:
        claims.expires_at = _numeric(expires_at)

    return apply


def with_expires(duration: float | _dt.timedelta) -> TokenOption:
    """Expire after ``duration`` (seconds or a timedelta) from now."""
    delta = duration if isinstance(duration, _dt.timedelta) else _dt.timedelta(seconds=duration)

    def apply(claims: Claims) -> None:
        claims.expires_at = _numeric(_dt.datetime.now(_dt.timezone.utc) + delta)

    return apply


def with_issued_at(issued_at: _dt.datetime) -> TokenOption:
    def apply(claims: Claims) -> None:
        claims.issued_at = _numeric(issued_at)

    return apply


def with_issuer(issuer: str) -> TokenOption:
    def apply(claims: Claims) -> None:
        claims.issuer = issuer

    return apply


def with_not_before(not_before: _dt.datetime) -> TokenOption:
    def apply(claims: Claims) -> None:
        claims.not_before = _numeric(not_before)

    return apply


def new_token(data: dict[str, Any] | None, secret: str, *args: TokenOption) -> str:
    """Sign a token; it expires after six hours unless an option says otherwise."""
    if not secret:
        raise ValueError("secret is required")
    now = _dt.datetime.now(_dt.timezone.utc)
    claims = Claims(
        data=data,
        issuer=DEFAULT_ISSUER,
        expires_at=_numeric(now + DEFAULT_EXPIRES),
        issued_at=_numeric(now),
    )
    for option in args:
        option(claims)
    return jwt.encode(claims._payload(), secret, algorithm="HS256")


def parse_token(token: str, secret: str) -> Claims:
    """Check the signature and return the claims; times are not checked here."""
    payload = jwt.decode(
        token,
        secret,
        algorithms=_ALGORITHMS,
        options={
            "verify_signature": True,
            "verify_exp": False,
            "verify_nbf": False,
            "verify_iat": False,
            "verify_aud": False,
            "verify_iss": False,
        },
    )
    return Claims._from_payload(payload)