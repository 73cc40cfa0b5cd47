"""
In-process TTL cache with pluggable eviction.

Used for whole recommendation results and for directory sub-results
(search, browse and detail responses). Entries expire by TTL; when the
store is full the eviction policy picks the victim (LRU by default).
Access is single-threaded under asyncio, so no locking is done.
"""

from __future__ import annotations

import hashlib
import json
import re
import time
from collections import OrderedDict
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Protocol

from app.features.recommendations.domain.models import ArticleContext
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_SIZE = 1000
DEFAULT_TTL_SECONDS = 3600

# TTL class per key prefix: short-lived results, medium directory lists,
# long-lived profiles.
DEFAULT_TTL_CLASSES: dict[str, int] = {
    "recommendation": 3600,
    "search": 21600,
    "browse": 21600,
    "nonprofit": 86400,
}


@dataclass(slots=True)
class CacheEntry:
    key: str
    value: Any
    created_at: float
    expires_at: float
    hit_count: int = 0


class EvictionPolicy(Protocol):
    def touch(self, entries: OrderedDict[str, CacheEntry], key: str) -> None: ...

    def victim(self, entries: OrderedDict[str, CacheEntry]) -> str: ...


class LRUEviction:
    """Evict the least recently read or written entry."""

    def touch(self, entries: OrderedDict[str, CacheEntry], key: str) -> None:
        entries.move_to_end(key)

    def victim(self, entries: OrderedDict[str, CacheEntry]) -> str:
        return next(iter(entries))


class FIFOEviction:
    """Evict the oldest inserted entry regardless of reads."""

    def touch(self, entries: OrderedDict[str, CacheEntry], key: str) -> None:
        return None

    def victim(self, entries: OrderedDict[str, CacheEntry]) -> str:
        return next(iter(entries))


class CacheBackend(Protocol):
    """Interface the pipeline depends on, so another store can be swapped in."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: int | None = None) -> None: ...

    def delete(self, key: str) -> bool: ...

    def clear(self) -> None: ...

    def stats(self) -> dict[str, Any]: ...


class TTLCache:
    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        default_ttl: int = DEFAULT_TTL_SECONDS,
        ttl_classes: dict[str, int] | None = None,
        eviction: EvictionPolicy | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.ttl_classes = dict(ttl_classes or DEFAULT_TTL_CLASSES)
        self._eviction = eviction or LRUEviction()
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def ttl_for(self, key: str) -> int:
        prefix = key.split(":", 1)[0]
        return self.ttl_classes.get(prefix, self.default_ttl)

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        if entry.expires_at <= self._clock():
            del self._entries[key]
            self._expirations += 1
            self._misses += 1
            return None

        entry.hit_count += 1
        self._hits += 1
        self._eviction.touch(self._entries, key)
        return entry.value

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        ttl_seconds = self.ttl_for(key) if ttl is None else ttl
        now = self._clock()

        if key in self._entries:
            del self._entries[key]
        else:
            while len(self._entries) >= self.max_size:
                self._evict_one()

        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            created_at=now,
            expires_at=now + ttl_seconds,
        )

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop every entry and reset the counters."""
        size = len(self._entries)
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0
        logger.info("Cache cleared", entries_removed=size)

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        self._expirations += len(expired)
        return len(expired)

    def stats(self) -> dict[str, Any]:
        lookups = self._hits + self._misses
        hit_rate = (self._hits / lookups * 100) if lookups else 0.0
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(hit_rate, 2),
            "size": len(self._entries),
            "max_size": self.max_size,
            "evictions": self._evictions,
            "expirations": self._expirations,
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and entry.expires_at > self._clock()

    def _evict_one(self) -> None:
        victim = self._eviction.victim(self._entries)
        del self._entries[victim]
        self._evictions += 1
        logger.debug("Cache entry evicted", key=victim)


# =================================================================
# KEY BUILDERS
# =================================================================


def _digest(payload: str) -> str:
    return hashlib.md5(payload.encode("utf-8"), usedforsecurity=False).hexdigest()


def _normalize_text(value: str | None) -> str:
    return re.sub(r"\s+", " ", (value or "").lower()).strip()


def recommendation_key(context: ArticleContext, variant: str = "") -> str:
    """
    Key for a whole recommendation result.

    Built from the normalized title and description, the geography and the
    sorted causes, so cosmetic whitespace or case changes hit the same entry.
    ``variant`` separates results computed with different options.
    """
    text = _normalize_text(f"{context.title} {context.description or ''}")[:500]
    geography = json.dumps(context.entities.geography.as_dict(), sort_keys=True)
    causes = ",".join(sorted(cause.lower() for cause in context.causes))
    return f"recommendation:{_digest('|'.join([text, geography, causes, variant]))}"


def search_key(term: str, causes: Iterable[str] | None = None, take: int = 50) -> str:
    cause_part = ",".join(sorted(causes or []))
    return f"search:{_digest(f'{_normalize_text(term)}|{cause_part}|{take}')}"


def browse_key(cause: str, page: int = 1, take: int = 50) -> str:
    return f"browse:{cause.lower()}:{page}:{take}"


def nonprofit_key(slug: str) -> str:
    return f"nonprofit:{slug}"
