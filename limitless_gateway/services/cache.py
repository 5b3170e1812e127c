"""
CacheStore - In-memory response cache with TTL, key ceiling and tag index.

Features:
- Per-entry TTL with lazy expiry on read and a periodic sweep
- Hard ceiling on distinct keys (new keys are refused, never evicted for)
- Structured tags per entry for exact selective invalidation
- Hit/miss counters and per-category composition stats
- Values are deep-copied on the way in and out

All operations are synchronous and never await, so on a single event loop
each call is atomic with respect to other tasks and no lock is needed.
"""

import copy
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from limitless_gateway.services.errors import CacheCapacityError
from limitless_gateway.services.ttl_policy import CATEGORY_TAGS, RequestCategory


@dataclass(frozen=True)
class CacheEntry:
    """A single cache entry with metadata."""

    key: str
    value: Any
    expires_at: float
    inserted_at: float
    tags: frozenset[str] = frozenset()

    def is_expired(self, now: float) -> bool:
        """Check if entry is past its TTL."""
        return now >= self.expires_at

    def ttl_remaining(self, now: float) -> float:
        return max(0.0, self.expires_at - now)


@dataclass
class CacheStats:
    """Cache statistics."""

    keys: int = 0
    hits: int = 0
    misses: int = 0
    expired: int = 0
    capacity_rejections: int = 0
    max_keys: int = 0
    avg_ttl_remaining: float | None = None
    composition: dict[str, int] = field(default_factory=dict)

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "keys": self.keys,
            "hits": self.hits,
            "misses": self.misses,
            "expired": self.expired,
            "capacity_rejections": self.capacity_rejections,
            "max_keys": self.max_keys,
            "hit_rate": f"{self.hit_rate:.2%}",
            "avg_ttl_remaining": (
                round(self.avg_ttl_remaining) if self.avg_ttl_remaining is not None else None
            ),
            "composition": dict(self.composition),
        }


class CacheStore:
    """
    In-memory cache store. Construct one and inject it where it is needed.

    Usage:
        cache = CacheStore(max_keys=500)

        value = cache.get(key)
        if value is None:
            value = await fetch_data()
            try:
                cache.set(key, value, ttl=300, tags={"listing"})
            except CacheCapacityError:
                pass  # serve uncached

        cache.invalidate_tag("listing")
    """

    def __init__(
        self,
        max_keys: int = 500,
        clock: Callable[[], float] = time.monotonic,
        debug: bool = False,
    ):
        if max_keys < 1:
            raise ValueError("max_keys must be at least 1")
        self._entries: dict[str, CacheEntry] = {}
        self._tag_index: dict[str, set[str]] = {}
        self._max_keys = max_keys
        self._clock = clock
        self._debug = debug
        self._hits = 0
        self._misses = 0
        self._expired = 0
        self._capacity_rejections = 0

    @property
    def max_keys(self) -> int:
        return self._max_keys

    def get(self, key: str) -> Any | None:
        """
        Get value from cache.

        Returns the cached value, or None if the key is unknown or expired.
        """
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            self._log(f"MISS: {key[:80]}")
            return None

        if entry.is_expired(self._clock()):
            self._remove(key)
            self._expired += 1
            self._misses += 1
            self._log(f"EXPIRED: {key[:80]}")
            return None

        self._hits += 1
        self._log(f"HIT: {key[:80]}")
        return copy.deepcopy(entry.value)

    def set(
        self,
        key: str,
        value: Any,
        ttl: float,
        tags: Iterable[str] = (),
    ) -> None:
        """
        Set value in cache, replacing any existing entry for the key.

        Args:
            key: Cache key
            value: Data to cache
            ttl: Seconds the entry stays valid
            tags: Labels used by invalidate_tag

        Raises:
            CacheCapacityError: The store is full and key is new
        """
        if ttl <= 0:
            self._log(f"SKIP: {key[:80]} (TTL: {ttl}s)")
            return

        if key not in self._entries and len(self._entries) >= self._max_keys:
            # Expired entries still count until swept; reclaim them first
            self.cleanup_expired()
            if len(self._entries) >= self._max_keys:
                self._capacity_rejections += 1
                raise CacheCapacityError(key, self._max_keys)

        now = self._clock()
        entry = CacheEntry(
            key=key,
            value=copy.deepcopy(value),
            expires_at=now + ttl,
            inserted_at=now,
            tags=frozenset(tags),
        )

        if key in self._entries:
            self._unindex(self._entries[key])
        self._entries[key] = entry
        for tag in entry.tags:
            self._tag_index.setdefault(tag, set()).add(key)

        self._log(f"SET: {key[:80]} (TTL: {ttl}s, tags: {sorted(entry.tags)})")

    def delete(self, key: str) -> bool:
        """Delete a specific key from cache."""
        if key in self._entries:
            self._remove(key)
            self._log(f"DELETE: {key[:80]}")
            return True
        return False

    def delete_where(self, predicate: Callable[[str, CacheEntry], bool]) -> int:
        """
        Delete every entry for which predicate(key, entry) is true.

        Returns:
            Number of entries deleted
        """
        keys_to_delete = [k for k, e in self._entries.items() if predicate(k, e)]
        for key in keys_to_delete:
            self._remove(key)

        if keys_to_delete:
            self._log(f"DELETE_WHERE: {len(keys_to_delete)} entries removed")
        return len(keys_to_delete)

    def invalidate_tag(self, tag: str) -> int:
        """
        Invalidate all entries carrying an exact tag.

        Returns:
            Number of entries invalidated
        """
        keys = self._tag_index.get(tag)
        if not keys:
            return 0

        keys_to_delete = list(keys)
        for key in keys_to_delete:
            self._remove(key)

        self._log(f"INVALIDATE: {len(keys_to_delete)} entries tagged '{tag}'")
        return len(keys_to_delete)

    def has_tag(self, tag: str) -> bool:
        return bool(self._tag_index.get(tag))

    def clear(self) -> int:
        """Clear all cache entries. Returns count of removed entries."""
        count = len(self._entries)
        self._entries.clear()
        self._tag_index.clear()
        self._log(f"CLEAR: {count} entries removed")
        return count

    def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        now = self._clock()
        expired_keys = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired_keys:
            self._remove(key)

        self._expired += len(expired_keys)
        if expired_keys:
            self._log(f"CLEANUP: {len(expired_keys)} expired entries removed")
        return len(expired_keys)

    def ttl_remaining(self, key: str) -> float | None:
        """Seconds left before a live key expires, None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = self._clock()
        if entry.is_expired(now):
            return None
        return entry.ttl_remaining(now)

    def keys(self) -> list[str]:
        """Keys of all live (unexpired) entries."""
        now = self._clock()
        return [k for k, e in self._entries.items() if not e.is_expired(now)]

    def stats(self) -> CacheStats:
        """Get cache statistics."""
        now = self._clock()
        live = [e for e in self._entries.values() if not e.is_expired(now)]

        composition: dict[str, int] = {}
        for entry in live:
            category = next(
                (t for t in entry.tags if t in CATEGORY_TAGS),
                RequestCategory.DEFAULT.value,
            )
            composition[category] = composition.get(category, 0) + 1

        remaining = [e.ttl_remaining(now) for e in live]
        return CacheStats(
            keys=len(live),
            hits=self._hits,
            misses=self._misses,
            expired=self._expired,
            capacity_rejections=self._capacity_rejections,
            max_keys=self._max_keys,
            avg_ttl_remaining=sum(remaining) / len(remaining) if remaining else None,
            composition=dict(sorted(composition.items(), key=lambda kv: -kv[1])),
        )

    def __len__(self) -> int:
        return len(self.keys())

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is not None:
            self._unindex(entry)

    def _unindex(self, entry: CacheEntry) -> None:
        for tag in entry.tags:
            keys = self._tag_index.get(tag)
            if keys is None:
                continue
            keys.discard(entry.key)
            if not keys:
                del self._tag_index[tag]

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[CacheStore] {message}")
