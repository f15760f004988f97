"""Time-boxed response cache keyed by user, model and message prefix."""

import json
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..config import CacheConfig

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached assistant response."""

    key: str
    response: str
    timestamp: float
    tier: str
    fallback: bool = False
    user_id: str | None = None


class ResponseCache:
    """TTL cache with lazy expiry and FIFO eviction past ``max_entries``.

    Expired entries are treated as misses on read and replaced on the next
    ``set``; ``purge_expired`` drops them eagerly to bound memory.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or CacheConfig()
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def make_key(self, user_id: str, model: str, message: str) -> str:
        """Deterministic cache key; long messages share a slot by prefix.

        The parts are JSON-encoded so no choice of ids can make two distinct
        (user, model, prefix) triples collide.
        """
        return json.dumps([user_id, model, message[: self.config.key_prefix_chars]])

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp < self.config.ttl_seconds

    def lookup(self, key: str) -> CacheEntry | None:
        """Return the live entry for a key, or None on a miss."""
        entry = self._entries.get(key)
        if entry is None or not self._is_fresh(entry, self._clock()):
            self.misses += 1
            return None
        self.hits += 1
        return entry

    def get(self, key: str) -> str | None:
        """Return the cached response text, or None on a miss."""
        entry = self.lookup(key)
        return entry.response if entry else None

    def set(
        self,
        key: str,
        response: str,
        *,
        tier: str = "unknown",
        fallback: bool = False,
        user_id: str | None = None,
    ) -> None:
        """Store a response, replacing any previous entry for the key."""
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(
            key=key,
            response=response,
            timestamp=self._clock(),
            tier=tier,
            fallback=fallback,
            user_id=user_id,
        )

        while len(self._entries) > self.config.max_entries:
            oldest_key, _ = self._entries.popitem(last=False)
            self.evictions += 1
            logger.debug(f"Evicted cache entry: {oldest_key[:30]}...")

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self._clock()
        stale = [key for key, entry in self._entries.items() if not self._is_fresh(entry, now)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def invalidate_user(self, user_id: str) -> int:
        """Drop every entry stored for a user. Returns how many were removed."""
        keys = [key for key, entry in self._entries.items() if entry.user_id == user_id]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        """Remove all entries and reset counters."""
        self._entries.clear()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def stats(self) -> dict[str, Any]:
        """Return cache statistics."""
        return {
            "size": len(self._entries),
            "max_entries": self.config.max_entries,
            "ttl_seconds": self.config.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }

    def __len__(self) -> int:
        return len(self._entries)
