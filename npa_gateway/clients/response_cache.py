# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""In-memory cache for GET responses from the Netskope API.

Entries expire after a TTL. When the cache is full, the single oldest entry
(by stored timestamp) is evicted before an insert. Methods are synchronous:
with one event loop, no other task can observe the cache between the size
check and the insert.
"""

import hashlib
import json
import time
from dataclasses import dataclass
from typing import Any, Callable


@dataclass
class CacheEntry:
    """Cache entry with payload and store time (epoch milliseconds)."""

    key: str
    payload: Any
    stored_at_ms: float


def make_cache_key(method: str, path: str, body: Any = None) -> str:
    """Derive a cache key from verb, path and body digest."""
    if body is None:
        digest = ""
    else:
        raw = body if isinstance(body, (str, bytes)) else json.dumps(body, sort_keys=True, default=str)
        if isinstance(raw, str):
            raw = raw.encode("utf-8")
        digest = hashlib.sha256(raw).hexdigest()
    return f"{method.upper()}:{path}:{digest}"


class ResponseCache:
    """Bounded TTL cache keyed by request identity."""

    def __init__(
        self,
        ttl_seconds: int = 300,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.time,
    ):
        self._cache: dict[str, CacheEntry] = {}
        self._ttl_ms = ttl_seconds * 1000
        self._max_entries = max_entries
        self._clock = clock
        self._hits = 0
        self._misses = 0

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def get(self, key: str) -> Any | None:
        """Return the payload if present and not expired."""
        entry = self._cache.get(key)
        if entry is None:
            self._misses += 1
            return None

        if self._now_ms() - entry.stored_at_ms >= self._ttl_ms:
            del self._cache[key]
            self._misses += 1
            return None

        self._hits += 1
        return entry.payload

    def set(self, key: str, payload: Any) -> None:
        """Store a payload, evicting the oldest entry when full."""
        if key not in self._cache and len(self._cache) >= self._max_entries:
            oldest = min(self._cache.values(), key=lambda e: e.stored_at_ms)
            del self._cache[oldest.key]
        self._cache[key] = CacheEntry(key=key, payload=payload, stored_at_ms=self._now_ms())

    def delete(self, key: str) -> bool:
        """Delete a key from cache."""
        return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all entries from cache."""
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    def stats(self) -> dict[str, Any]:
        """Return cache statistics."""
        return {
            "size": len(self._cache),
            "max_entries": self._max_entries,
            "ttl_seconds": self._ttl_ms // 1000,
            "hits": self._hits,
            "misses": self._misses,
        }
