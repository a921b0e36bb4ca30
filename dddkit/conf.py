"""Application configuration: dataclasses, defaults and TOML reading and writing."""

import datetime as _dt
import os
import re
import shutil
import tomllib
from dataclasses import Field, dataclass, field, fields, is_dataclass
from fractions import Fraction
from typing import Any, get_args, get_origin

import tomli_w

from .orm import generate_random_string

_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}
_PART = r"([0-9]+(?:\.[0-9]*)?|\.[0-9]+)(ns|us|µs|μs|ms|s|m|h)"
_DURATION_RE = re.compile(rf"([-+]?)((?:{_PART})+)")
_PART_RE = re.compile(_PART)


def parse_duration(text: str) -> _dt.timedelta:
    """Parse a duration such as ``30s``, ``1h30m`` or ``1.5ms``."""
    match = _DURATION_RE.fullmatch(text)
    if match is None:
        if text in ("0", "+0", "-0"):
            return _dt.timedelta(0)
        raise ValueError(f"time: invalid duration {text!r}")
    total = sum(
        (Fraction(number) * _UNITS[unit] for number, unit in _PART_RE.findall(match.group(2))),
        Fraction(0),
    )
    nanos = int(total)
    if match.group(1) == "-":
        nanos = -nanos
    return _dt.timedelta(microseconds=nanos // 1000 if nanos >= 0 else -((-nanos) // 1000))


def _frac(value: int, digits: int) -> str:
    whole, rest = divmod(value, 10**digits)
    tail = str(rest).rjust(digits, "0").rstrip("0")
    return f"{whole}.{tail}" if tail else str(whole)


def format_duration(value: _dt.timedelta) -> str:
    """Format a duration the way it is written in the configuration file."""
    nanos = (value.days * 86_400 + value.seconds) * 1_000_000_000 + value.microseconds * 1_000
    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)
    if nanos == 0:
        return "0s"
    if nanos < 1_000:
        return f"{sign}{nanos}ns"
    if nanos < 1_000_000:
        return f"{sign}{_frac(nanos, 3)}µs"
    if nanos < 1_000_000_000:
        return f"{sign}{_frac(nanos, 6)}ms"
    hours, rest = divmod(nanos, 3_600_000_000_000)
    minutes, rest = divmod(rest, 60_000_000_000)
    out = f"{_frac(rest, 9)}s"
    if hours or minutes:
        out = f"{minutes}m{out}"
    if hours:
        out = f"{hours}h{out}"
    return sign + out


def _key(key: str, **kwargs: Any) -> Any:
    return field(metadata={"key": key}, **kwargs)


def _internal(default: Any) -> Any:
    return field(default=default, metadata={"toml": False})


def _toml_key(item: Field) -> str:
    """The key a field is stored under; derived from its name unless given."""
    explicit = item.metadata.get("key")
    if explicit:
        return explicit
    return "".join(part.capitalize() for part in item.name.split("_"))


@dataclass
class ServerPPROF:
    enabled: bool = _key("Enabled", default=False)
    access_ips: list[str] = _key("AccessIps", default_factory=list)


@dataclass
class ServerHTTP:
    port: int = _key("Port", default=0)
    timeout: _dt.timedelta = _key("Timeout", default=_dt.timedelta(0))
    jwt_secret: str = field(default_factory=str)
    pprof: ServerPPROF = _key("PProf", default_factory=ServerPPROF)


@dataclass
class Server:
    http: ServerHTTP = _key("HTTP", default_factory=ServerHTTP)


@dataclass
class Database:
    dsn: str = _key("Dsn", default="")
    max_idle_conns: int = _key("MaxIdleConns", default=0)
    max_open_conns: int = _key("MaxOpenConns", default=0)
    conn_max_lifetime: _dt.timedelta = _key("ConnMaxLifetime", default=_dt.timedelta(0))
    slow_threshold: _dt.timedelta = _key("SlowThreshold", default=_dt.timedelta(0))


@dataclass
class Data:
    database: Database = _key("Database", default_factory=Database)


@dataclass
class Log:
    dir: str = _key("Dir", default="")
    level: str = _key("Level", default="")
    max_age: _dt.timedelta = _key("MaxAge", default=_dt.timedelta(0))
    rotation_time: _dt.timedelta = _key("RotationTime", default=_dt.timedelta(0))
    rotation_size: int = _key("RotationSize", default=0)


@dataclass
class Bootstrap:
    debug: bool = _internal(False)
    build_version: str = _internal("")
    config_dir: str = _internal("")
    config_path: str = _internal("")
    server: Server = _key("Server", default_factory=Server)
    data: Data = _key("Data", default_factory=Data)
    log: Log = _key("Log", default_factory=Log)


def default_config() -> Bootstrap:
    """The configuration written when no configuration file exists."""
    return Bootstrap(
        server=Server(
            http=ServerHTTP(
                port=8080,
                timeout=_dt.timedelta(seconds=30),
                jwt_secret=generate_random_string(32),
                pprof=ServerPPROF(enabled=True, access_ips=["::1", "127.0.0.1"]),
            )
        ),
        data=Data(
            database=Database(
                dsn="./configs/data.db",
                max_idle_conns=10,
                max_open_conns=50,
                conn_max_lifetime=_dt.timedelta(hours=6),
                slow_threshold=_dt.timedelta(milliseconds=200),
            )
        ),
        log=Log(
            dir="./logs",
            level="info",
            max_age=_dt.timedelta(days=7),
            rotation_time=_dt.timedelta(hours=8),
            rotation_size=50,
        ),
    )


def _convert(kind: Any, value: Any, where: str) -> Any:
    if is_dataclass(kind):
        return _from_toml(kind, value, where + ".")
    if kind is _dt.timedelta:
        if isinstance(value, str):
            return parse_duration(value)
    elif kind is bool:
        if isinstance(value, bool):
            return value
    elif kind is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif kind is str:
        if isinstance(value, str):
            return value
    elif get_origin(kind) is list:
        (item_kind,) = get_args(kind)
        if isinstance(value, list):
            return [_convert(item_kind, item, where) for item in value]
    raise ValueError(f"toml: cannot decode {value!r} into {where}")


def _from_toml(cls: type, data: Any, prefix: str = "") -> Any:
    if not isinstance(data, dict):
        raise ValueError(f"toml: expected a table for {prefix.rstrip('.') or cls.__name__}")
    lowered = {key.lower(): value for key, value in data.items()}
    values: dict[str, Any] = {}
    for item in fields(cls):
        if not item.metadata.get("toml", True):
            continue
        key = _toml_key(item)
        if key.lower() in lowered:
            values[item.name] = _convert(item.type, lowered[key.lower()], prefix + key)
    return cls(**values)


def _to_toml(obj: Any) -> Any:
    if is_dataclass(obj):
        return {
            _toml_key(item): _to_toml(getattr(obj, item.name))
            for item in fields(obj)
            if item.metadata.get("toml", True)
        }
    if isinstance(obj, _dt.timedelta):
        return format_duration(obj)
    if isinstance(obj, list):
        return [_to_toml(item) for item in obj]
    return obj


def setup_config(path: str | os.PathLike) -> Bootstrap:
    """Read a configuration file; absent keys keep their zero values."""
    with open(path, "rb") as fh:
        data = tomllib.load(fh)
    return _from_toml(Bootstrap, data)


def write_config(config: Bootstrap, path: str | os.PathLike) -> None:
    """Write the configuration atomically through a temporary file."""
    target = os.fspath(path)
    tmp = target + ".tmp"
    if os.path.isdir(tmp):
        shutil.rmtree(tmp)
    elif os.path.lexists(tmp):
        os.remove(tmp)
    content = tomli_w.dumps(_to_toml(config)).encode("utf-8")
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as fh:
        fh.write(content)
    os.replace(tmp, target)