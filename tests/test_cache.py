from __future__ import annotations

import pytest

from limitless_gateway.services import CacheCapacityError, CacheStore


def test_get_set_counts_hits_and_misses(cache):
    assert cache.get("/lifelogs?") is None
    cache.set("/lifelogs?", {"data": 1}, ttl=60)

    assert cache.get("/lifelogs?") == {"data": 1}
    stats = cache.stats()
    assert (stats.keys, stats.hits, stats.misses) == (1, 1, 1)


def test_expired_entry_is_a_miss_before_any_sweep(cache, clock):
    cache.set("k", "v", ttl=60)
    clock.advance(59)
    assert cache.get("k") == "v"

    clock.advance(1)
    assert cache.get("k") is None
    assert "k" not in cache
    stats = cache.stats()
    assert stats.misses == 1
    assert stats.expired == 1
    assert stats.keys == 0


def test_set_replaces_whole_entry(cache, clock):
    cache.set("k", "old", ttl=10, tags={"listing"})
    clock.advance(5)
    cache.set("k", "new", ttl=100, tags={"search"})

    assert cache.get("k") == "new"
    assert cache.ttl_remaining("k") == 100
    assert cache.invalidate_tag("listing") == 0
    assert cache.invalidate_tag("search") == 1


def test_new_key_refused_at_capacity(clock):
    cache = CacheStore(max_keys=2, clock=clock)
    cache.set("a", 1, ttl=60)
    cache.set("b", 2, ttl=60)

    with pytest.raises(CacheCapacityError) as exc_info:
        cache.set("c", 3, ttl=60)

    assert exc_info.value.key == "c"
    assert exc_info.value.max_keys == 2
    assert "c" not in cache
    assert cache.stats().capacity_rejections == 1


def test_replacing_existing_key_never_fails_on_capacity(clock):
    cache = CacheStore(max_keys=1, clock=clock)
    cache.set("a", 1, ttl=60)
    cache.set("a", 2, ttl=60)
    assert cache.get("a") == 2


def test_expired_entries_are_reclaimed_before_refusing(clock):
    cache = CacheStore(max_keys=1, clock=clock)
    cache.set("a", 1, ttl=10)
    clock.advance(11)

    cache.set("b", 2, ttl=10)
    assert cache.get("b") == 2
    assert cache.keys() == ["b"]


def test_non_positive_ttl_is_not_stored(cache):
    cache.set("k", "v", ttl=0)
    assert "k" not in cache
    assert len(cache) == 0


def test_delete(cache):
    cache.set("k", "v", ttl=60, tags={"listing"})
    assert cache.delete("k") is True
    assert cache.delete("k") is False
    assert not cache.has_tag("listing")


def test_delete_where(cache):
    cache.set("/lifelogs?limit=10", 1, ttl=60)
    cache.set("/lifelogs?limit=20", 2, ttl=60)
    cache.set("/other?", 3, ttl=60)

    removed = cache.delete_where(lambda key, entry: key.startswith("/lifelogs"))

    assert removed == 2
    assert cache.keys() == ["/other?"]


def test_invalidate_tag_is_exact(cache):
    cache.set("/lifelogs?date=2024-05-01&limit=10", 1, ttl=60, tags={"listing", "date:2024-05-01"})
    cache.set("/lifelogs?date=2024-05-02&limit=10", 2, ttl=60, tags={"listing", "date:2024-05-02"})
    cache.set("/lifelogs/abc?", 3, ttl=60, tags={"metadata"})

    assert cache.invalidate_tag("date:2024-05-0") == 0
    assert cache.invalidate_tag("date:2024-05-01") == 1
    assert cache.invalidate_tag("listing") == 1
    assert cache.keys() == ["/lifelogs/abc?"]


def test_clear(cache):
    cache.set("a", 1, ttl=60, tags={"listing"})
    cache.set("b", 2, ttl=60)

    assert cache.clear() == 2
    assert len(cache) == 0
    assert not cache.has_tag("listing")


def test_cleanup_expired_only_removes_expired(cache, clock):
    cache.set("short", 1, ttl=10, tags={"search"})
    cache.set("long", 2, ttl=100)
    clock.advance(50)

    assert cache.cleanup_expired() == 1
    assert cache.keys() == ["long"]
    assert not cache.has_tag("search")
    assert cache.stats().expired == 1


def test_stats_composition_and_ttl(cache, clock):
    cache.set("a", 1, ttl=100, tags={"listing", "resource:lifelogs"})
    cache.set("b", 2, ttl=300, tags={"listing"})
    cache.set("c", 3, ttl=900, tags={"metadata"})
    cache.set("d", 4, ttl=60)
    clock.advance(50)

    stats = cache.stats()

    assert stats.keys == 4
    assert stats.composition == {"listing": 2, "metadata": 1, "default": 1}
    assert stats.avg_ttl_remaining == pytest.approx((50 + 250 + 850 + 10) / 4)
    assert stats.max_keys == 50


def test_stats_to_dict(cache):
    cache.set("a", 1, ttl=60)
    cache.get("a")
    cache.get("missing")

    data = cache.stats().to_dict()

    assert data["hits"] == 1
    assert data["misses"] == 1
    assert data["hit_rate"] == "50.00%"
    assert data["avg_ttl_remaining"] == 60


def test_empty_stats():
    stats = CacheStore().stats()
    assert stats.hit_rate == 0.0
    assert stats.avg_ttl_remaining is None
    assert stats.to_dict()["avg_ttl_remaining"] is None


def test_ttl_remaining(cache, clock):
    cache.set("k", "v", ttl=60)
    clock.advance(15)
    assert cache.ttl_remaining("k") == 45
    assert cache.ttl_remaining("missing") is None
    clock.advance(60)
    assert cache.ttl_remaining("k") is None


def test_max_keys_must_be_positive():
    with pytest.raises(ValueError):
        CacheStore(max_keys=0)


def test_values_are_copied_in_and_out(cache):
    body = {"data": {"lifelogs": [{"id": "a"}]}}
    cache.set("k", body, ttl=60)
    body["data"]["lifelogs"].append({"id": "b"})

    first = cache.get("k")
    first["data"]["lifelogs"].clear()

    assert cache.get("k") == {"data": {"lifelogs": [{"id": "a"}]}}
