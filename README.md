# dddkit

A toolkit of small, independent pieces for building service applications
in a domain-driven layout. Each module stands on its own; import what you
need. The only third-party requirements are `pyjwt` (for `dddkit.auth`)
and `tomli-w` (for writing configuration in `dddkit.conf`).

## What is inside

| Module | Purpose |
| --- | --- |
| `dddkit.reason` | Business errors carrying a reason code, a message, details and an HTTP status (`ReasonError`, `new_error`, `is_custom_error`, `find_reason_error`). |
| `dddkit.cir_queue` | A fixed-size circular queue that keeps the most recent items (`CirQueue`). |
| `dddkit.ttl_map` | A lock-guarded map (`SyncMap`) and a map whose entries expire (`TTLMap`). |
| `dddkit.ttl_cache` | A key/value cache with one time-to-live for all entries (`TTLCache`, `Cacher`, `CacheNotFoundError`). |
| `dddkit.conc` | Run functions on threads, wait for them, survive their exceptions (`Group`, `go_safe`, `timer`, `default_timer`). |
| `dddkit.cmd` | Run a command line through the shell and collect its combined output (`exec_command`). |
| `dddkit.hook` | Sequence helpers, memoisation, conversions, MD5 digests, timers and timing helpers. |
| `dddkit.system` | Directory sizes, old-file cleanup, empty-directory removal, version comparison, background file backup, port and local-address checks, coloured console output. |
| `dddkit.orm` | Base models with timestamps and helpers for reading and writing time values. |
| `dddkit.conf` | Application configuration as dataclasses, read from and written to TOML. |
| `dddkit.version` | Decide whether the database schema needs migrating, from versions recorded in SQLite. |
| `dddkit.uniqueid` | Collision-checked random identifiers reserved through a SQLite primary key. |
| `dddkit.pager` | Paging and sorting filters, date ranges and a field validator. |
| `dddkit.auth` | Signing and parsing HS256 JSON Web Tokens with custom claim data. |
| `dddkit.limiter` | Token-bucket rate limiting, globally or per client address. |
| `dddkit.logger` | JSON logging with rotating files, sampling and context fields. |

## Examples

### Errors with a reason

```python
from dddkit.reason import new_error

ERR_USER_NOT_FOUND = new_error("user_not_found", "user does not exist")

err = ERR_USER_NOT_FOUND.set_msg("no user with that name")
assert err.same_reason(ERR_USER_NOT_FOUND)
assert err.http_status == 400
```

`set_msg`, `set_http_status`, `with_details` and `withf` return a new error
and leave the original untouched, so shared error values stay clean.
Registering the same reason twice raises `ValueError`. `str(err)` is the
message followed by each detail, separated by `;`.

### Keeping the latest items

```python
from dddkit.cir_queue import CirQueue

queue = CirQueue(5)
for n in range(1, 101):
    queue.push(n)

assert len(queue) == 5
assert queue.is_full()
assert queue.to_list() == [96, 97, 98, 99, 100]
```

The size must be between 1 and 255.

### Expiring entries

```python
from dddkit.ttl_map import TTLMap
from dddkit.ttl_cache import TTLCache, CacheNotFoundError

with TTLMap() as entries:
    entries.store("a", "1", 1.0)      # expires after one second
    value, found = entries.load("a")

cache = TTLCache(60.0)
cache.set("key", 42)
assert cache.get("key") == 42
try:
    cache.get("missing")
except CacheNotFoundError:
    pass
cache.dispose()
```

A background thread purges expired entries once a second;
`switch_fixed_time_clear` replaces that with a full clear on a schedule.

### Digests and memoisation

```python
from dddkit import hook

assert hook.md5("asbd123") == "219262006d1bdd38c740757b30e2a4e8"

square = hook.use_cache(lambda n: n * n)
assert square(3) == (9, False)   # computed
assert square(3) == (9, True)    # served from the cache
```

### Configuration

```python
from dddkit.conf import default_config, write_config, setup_config

write_config(default_config(), "config.toml")
config = setup_config("config.toml")
assert config.server.http.port == 8080
```

Durations are `datetime.timedelta` values, written as strings such as
`"30s"` or `"6h0m0s"`. Writing goes through a temporary file that is then
renamed over the target. The default configuration carries a fresh random
JWT secret each time it is built.

### Unique identifiers and schema versions

```python
import sqlite3
from dddkit.uniqueid import SQLiteUniqueIDStore, UniqueIDCore
from dddkit.version import SQLiteVersionStore, VersionCore

conn = sqlite3.connect(":memory:")

ids = UniqueIDCore(SQLiteUniqueIDStore(conn).auto_migrate(True), 6)
new_id = ids.unique_id("u_")        # "u_" followed by 6 random characters
ids.undo_unique_id(new_id)

versions = VersionCore(SQLiteVersionStore(conn).auto_migrate(True))
if versions.is_auto_migrate("1.0.0"):
    versions.record_version("1.0.0", "initial schema")
```

On a collision the id manager tries again, 36 times per length, growing
the length by one up to ten times; if every attempt fails it returns
`"unknown"`.

### Paging and validation

```python
from dddkit.pager import PagerFilter, Validator

page = PagerFilter(page=2, size=20)
assert page.offset() == 20
assert page.limit() == 20

validator = Validator()
validator.check(False, "name", "is required")
assert validator.result() == (False, ["name is required"])
```

A size of one or less falls back to 10 rows per page, and sizes above
10000 are capped at 10000. A sort column is only used when it is in
`sort_safelist`; a leading `-` means descending.

### Tokens

```python
from dddkit.auth import ClaimsData, new_token, parse_token, with_expires

secret = "secret"
data = ClaimsData().set_level(1)
encoded = new_token(data, secret, with_expires(3600))
claims = parse_token(encoded, secret)
claims.valid()
assert claims.data["level"] == 1
```

A token expires six hours after issue unless an option such as
`with_expires` or `with_expires_at` says otherwise. An empty secret raises
`ValueError`. `parse_token` checks only the signature; `Claims.valid()`
raises when the token is expired or not yet valid.

### Rate limiting

```python
from dddkit.limiter import ip_rate_limiter

allow = ip_rate_limiter(2, 4)   # 2 requests per second, bursts of 4
assert all(allow("127.0.0.1") for _ in range(4))
assert not allow("127.0.0.1")
```

### Logging

```python
import logging
from dddkit.logger import LoggerConfig, setup_logging, with_attr

root, close = setup_logging(LoggerConfig(dir="./logs", level="debug", debug=True))
with with_attr("trace_id", "abc"):
    logging.getLogger("app").info("hello")
close()
```

Each record is one JSON object. Files are named after the time they
start, rotate by time and by size, and files older than `max_age` are
removed. Uncaught exceptions are also appended to `crash.log` in the log
directory until `close()` is called.

## What this package does not do

It offers no HTTP server, routing, request middleware or metrics
endpoints, and no command to start an application: the pieces above are
meant to be wired into a service of your own. Storage is provided only as
the small SQLite stores in `dddkit.uniqueid` and `dddkit.version`; there
is no general database layer or connection pooling, and no store for
issued login tokens.

## Running the tests

Install the `test` extra and run `pytest` from the project directory.