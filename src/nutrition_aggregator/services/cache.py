"""TTL cache with a stale-read mode, backed by persistent tables."""

import hashlib
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from nutrition_aggregator.domain.nutrition import FoodSource

_DAY_SECONDS = 24 * 60 * 60
_WHITESPACE_RE = re.compile(r"\s+")

_logger = logging.getLogger(__name__)


class CacheNamespace(str, Enum):
    """Cache partitions, one persistent table each."""

    NUTRITION = "nutrition_cache"
    SEARCH = "search_cache"


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload with its lifetime in unix seconds."""

    key: str
    payload: object
    created_at: int
    expires_at: int


class CacheRepository(Protocol):
    """Persistence interface for cache rows."""

    def get_entry(self, namespace: CacheNamespace, key: str) -> CacheEntry | None:
        """Return the row stored under key, expired or not."""

    def put_entry(
        self,
        namespace: CacheNamespace,
        entry: CacheEntry,
        columns: dict[str, str],
    ) -> None:
        """Insert or replace the row for entry.key."""


@dataclass(frozen=True)
class CacheTtls:
    """TTL in seconds per source, plus the search result TTL."""

    usda: int = 30 * _DAY_SECONDS
    openfoodfacts: int = 7 * _DAY_SECONDS
    custom: int = 90 * _DAY_SECONDS
    search: int = _DAY_SECONDS

    def for_source(self, source: FoodSource) -> int:
        """Return the detail TTL for a source."""
        if source is FoodSource.USDA:
            return self.usda
        if source is FoodSource.OPEN_FOOD_FACTS:
            return self.openfoodfacts
        return self.custom


def now_seconds() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


def is_expired(expires_at: int, now: int) -> bool:
    """An entry expiring exactly now already counts as expired."""
    return now >= expires_at


def normalize_query(query: str) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    return _WHITESPACE_RE.sub(" ", query.lower().strip())


def search_key(source: str, query: str) -> str:
    """Build the search cache key from a source tag and a normalized query."""
    digest = hashlib.sha256(normalize_query(query).encode("utf-8")).hexdigest()
    return f"{source}:{digest}"


def nutrition_key(source: str, food_id: str) -> str:
    """Build the nutrition cache key for a food."""
    return f"{source}:{food_id}"


@dataclass
class CacheStore:
    """Read-through cache store with fresh-only and any-age reads."""

    repository: CacheRepository
    ttls: CacheTtls = field(default_factory=CacheTtls)
    clock: Callable[[], int] = now_seconds

    def get(self, namespace: CacheNamespace, key: str) -> CacheEntry | None:
        """Return the raw entry, regardless of expiry."""
        return self.repository.get_entry(namespace, key)

    def get_fresh(self, namespace: CacheNamespace, key: str) -> object | None:
        """Return the payload if present and not expired."""
        entry = self.get(namespace, key)
        if entry is None or is_expired(entry.expires_at, self.clock()):
            return None
        return entry.payload

    def get_stale(self, namespace: CacheNamespace, key: str) -> object | None:
        """Return the payload if present, ignoring expiry."""
        entry = self.get(namespace, key)
        if entry is None:
            return None
        return entry.payload

    def set(
        self,
        namespace: CacheNamespace,
        key: str,
        payload: object,
        ttl_seconds: int,
        columns: dict[str, str] | None = None,
    ) -> None:
        """Store a payload, replacing any existing row for the key."""
        now = self.clock()
        entry = CacheEntry(
            key=key,
            payload=payload,
            created_at=now,
            expires_at=now + ttl_seconds,
        )
        self.repository.put_entry(namespace, entry, columns or {})

    def get_nutrition(
        self, source: FoodSource, food_id: str, *, stale: bool = False
    ) -> object | None:
        """Return a cached detail payload for a food."""
        key = nutrition_key(source.value, food_id)
        if stale:
            return self.get_stale(CacheNamespace.NUTRITION, key)
        return self.get_fresh(CacheNamespace.NUTRITION, key)

    def set_nutrition(self, source: FoodSource, food_id: str, payload: object) -> None:
        """Store a detail payload with the source TTL."""
        self.set(
            CacheNamespace.NUTRITION,
            nutrition_key(source.value, food_id),
            payload,
            ttl_seconds=self.ttls.for_source(source),
            columns={"source": source.value, "food_id": food_id},
        )

    def get_search(
        self, source: str, query: str, *, stale: bool = False
    ) -> object | None:
        """Return cached search results for a source tag (or "all")."""
        key = search_key(source, query)
        if stale:
            return self.get_stale(CacheNamespace.SEARCH, key)
        return self.get_fresh(CacheNamespace.SEARCH, key)

    def set_search(self, source: str, query: str, payload: object) -> None:
        """Store search results with the search TTL."""
        self.set(
            CacheNamespace.SEARCH,
            search_key(source, query),
            payload,
            ttl_seconds=self.ttls.search,
            columns={"source": source, "query": normalize_query(query)},
        )
        _logger.debug("Cached search results: source=%s", source)
