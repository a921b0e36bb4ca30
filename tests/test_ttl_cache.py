import time

import pytest

from dddkit.ttl_cache import CacheNotFoundError, TTLCache


@pytest.fixture
def cache():
    c = TTLCache(10)
    yield c
    c.dispose()


def test_set_and_get(cache):
    cache.set("k", {"a": 1})
    assert cache.get("k") == {"a": 1}


def test_missing_raises(cache):
    with pytest.raises(CacheNotFoundError) as info:
        cache.get("missing")
    assert info.value.key == "missing"


def test_delete(cache):
    cache.set("k", 1)
    cache.delete("k")
    with pytest.raises(CacheNotFoundError):
        cache.get("k")


def test_set_nx_keeps_existing(cache):
    cache.set_nx("k", "first")
    cache.set_nx("k", "second")
    assert cache.get("k") == "first"
    cache.set("k", "third")
    assert cache.get("k") == "third"


def test_expiry():
    c = TTLCache(0.1)
    try:
        c.set("k", 1)
        assert c.get("k") == 1
        time.sleep(0.2)
        with pytest.raises(CacheNotFoundError):
            c.get("k")
        c.set_nx("k", 2)
        assert c.get("k") == 2
    finally:
        c.dispose()


def test_not_found_is_lookup_error(cache):
    with pytest.raises(LookupError):
        cache.get("nothing")