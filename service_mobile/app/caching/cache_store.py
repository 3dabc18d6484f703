"""
In-process cache store for the mobile API.
"""

import re
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence

from shared.logging import get_logger
from .fingerprint import FingerprintRegistry, canonical_json, fingerprint

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


EVICTION_OLDEST = "oldest"
EVICTION_LRU = "lru"
EVICTION_POLICIES = (EVICTION_OLDEST, EVICTION_LRU)


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload with its fingerprint and expiry window."""

    key: str
    payload: Any
    fingerprint: str
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def ttl_remaining(self, now: float) -> float:
        return max(0.0, self.expires_at - now)


def compile_pattern(pattern: str) -> "re.Pattern[str]":
    """Translate an invalidation pattern into an anchored regex.

    ``*`` matches any run of characters; everything else is literal.
    """
    parts = [re.escape(part) for part in pattern.split("*")]
    return re.compile("^" + ".*".join(parts) + "$")


class CacheStore:
    """Key to entry mapping with TTL expiry and a size cap enforced on sweep."""

    def __init__(
        self,
        max_entries: int = 500,
        eviction_policy: str = EVICTION_OLDEST,
        clock: Callable[[], float] = time.time,
        registry: Optional[FingerprintRegistry] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if eviction_policy not in EVICTION_POLICIES:
            raise ValueError(f"Unknown eviction policy '{eviction_policy}'")
        self.max_entries = max_entries
        self.eviction_policy = eviction_policy
        self.clock = clock
        self.registry = registry
        self.metrics = metrics
        self.logger = get_logger("mobile.cache_store")

        # Ordered by insertion, or by last access under the LRU policy.
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key`` if present and fresh.

        Expired entries stay in place until the next sweep.
        """
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self.clock()):
            self._misses += 1
            return None

        self._hits += 1
        if self.eviction_policy == EVICTION_LRU:
            self._entries.move_to_end(key)
        return entry

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key`` even when it is stale."""
        return self._entries.get(key)

    def set(
        self,
        key: str,
        payload: Any,
        ttl: float,
        *,
        resource: Optional[str] = None,
        fields: Optional[Sequence[str]] = None,
    ) -> CacheEntry:
        """Store ``payload`` under ``key`` for ``ttl`` seconds, replacing any previous entry."""
        now = self.clock()
        entry = CacheEntry(
            key=key,
            payload=payload,
            fingerprint=self._fingerprint(payload, resource, fields),
            created_at=now,
            expires_at=now + ttl,
        )
        self._entries.pop(key, None)
        self._entries[key] = entry
        self._update_size_gauge()
        return entry

    def _fingerprint(self, payload: Any, resource: Optional[str], fields: Optional[Sequence[str]]) -> str:
        if fields is not None:
            return fingerprint(payload, fields, prefix=resource or "resource")
        if resource is not None and self.registry is not None and resource in self.registry:
            return self.registry.fingerprint(resource, payload)
        return fingerprint(payload, None, prefix=resource or "resource")

    def delete(self, key: str) -> bool:
        removed = self._entries.pop(key, None) is not None
        if removed:
            self._update_size_gauge()
        return removed

    def invalidate(self, pattern: str) -> int:
        """Delete every key matching ``pattern``; return how many were removed."""
        if "*" not in pattern:
            return 1 if self.delete(pattern) else 0

        regex = compile_pattern(pattern)
        doomed = [key for key in self._entries if regex.match(key)]
        for key in doomed:
            del self._entries[key]

        if doomed:
            self._update_size_gauge()
        return len(doomed)

    def sweep(self) -> int:
        """Drop expired entries, then evict down to ``max_entries``."""
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at < now]
        for key in expired:
            del self._entries[key]

        evicted = 0
        overflow = len(self._entries) - self.max_entries
        if overflow > 0:
            for key in self._eviction_order()[:overflow]:
                del self._entries[key]
                evicted += 1

        self._evictions += evicted
        if self.metrics is not None:
            if expired:
                self.metrics.increment_counter("cache_evictions_total", len(expired), reason="expired")
            if evicted:
                self.metrics.increment_counter("cache_evictions_total", evicted, reason=self.eviction_policy)
        self._update_size_gauge()

        if expired or evicted:
            self.logger.debug("Cache swept", expired=len(expired), evicted=evicted, size=len(self._entries))
        return len(expired) + evicted

    def _eviction_order(self) -> List[str]:
        if self.eviction_policy == EVICTION_LRU:
            return list(self._entries)
        return [key for key, _ in sorted(self._entries.items(), key=lambda item: item[1].created_at)]

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        self._update_size_gauge()
        return count

    def ttl_remaining(self, key: str) -> Optional[int]:
        """Whole seconds until ``key`` expires, or None when absent or stale."""
        entry = self._entries.get(key)
        now = self.clock()
        if entry is None or entry.is_expired(now):
            return None
        return int(entry.ttl_remaining(now))

    def keys(self) -> List[str]:
        return list(self._entries)

    def stats(self) -> Dict[str, Any]:
        memory_estimate = 0
        for entry in self._entries.values():
            memory_estimate += len(canonical_json(entry.payload)) + len(entry.key) + len(entry.fingerprint)

        return {
            "size": len(self._entries),
            "max_entries": self.max_entries,
            "eviction_policy": self.eviction_policy,
            "keys": list(self._entries),
            "memory_estimate": memory_estimate,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
        }

    def _update_size_gauge(self) -> None:
        if self.metrics is not None:
            self.metrics.set_gauge("cache_entries", len(self._entries))
