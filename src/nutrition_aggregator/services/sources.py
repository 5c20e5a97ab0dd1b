"""Cache-through lookups against upstream food providers."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from nutrition_aggregator.domain.errors import MalformedUpstreamDataError
from nutrition_aggregator.domain.nutrition import (
    Cached,
    FoodSource,
    Freshness,
    NutritionRecord,
    SearchResult,
)
from nutrition_aggregator.services.cache import CacheStore

_logger = logging.getLogger(__name__)


class FoodProvider(Protocol):
    """An upstream food database together with its payload normalizer."""

    source: FoodSource

    async def fetch_search(self, query: str) -> dict[str, object]:
        """Return the raw search payload for a query."""

    async def fetch_detail(self, food_id: str) -> dict[str, object]:
        """Return the raw detail payload for a food id."""

    def normalize_search_results(self, payload: dict[str, object]) -> list[SearchResult]:
        """Map a raw search payload to search results."""

    def normalize_detail(
        self, payload: dict[str, object], food_id: str
    ) -> NutritionRecord:
        """Map a raw detail payload to a canonical record."""


@dataclass
class CachedFoodSource:
    """Serves provider lookups from cache, falling back to stale rows on failure."""

    provider: FoodProvider
    cache: CacheStore
    timeout_seconds: float = 10.0

    @property
    def source(self) -> FoodSource:
        return self.provider.source

    async def search(self, query: str) -> Cached[list[SearchResult]]:
        """Search the provider, preferring a fresh cached result list."""
        cached = self.cache.get_search(self.source.value, query)
        if cached is not None:
            return Cached(data=parse_search_results(cached), freshness=Freshness.CACHE)

        try:
            payload = await asyncio.wait_for(
                self.provider.fetch_search(query), timeout=self.timeout_seconds
            )
            results = self.provider.normalize_search_results(payload)
        except Exception as exc:
            _log_failure(self.source, "search", exc)
            stale = self.cache.get_search(self.source.value, query, stale=True)
            data = parse_search_results(stale) if stale is not None else []
            return Cached(data=data, freshness=Freshness.STALE)

        try:
            self.cache.set_search(
                self.source.value, query, [result.to_payload() for result in results]
            )
        except Exception as exc:
            _log_cache_write_failure(self.source, "search", exc)
        return Cached(data=results, freshness=Freshness.LIVE)

    async def get_nutrition(self, food_id: str) -> Cached[NutritionRecord | None]:
        """Return the normalized record for a food id.

        ``data`` is None only when the provider failed and nothing was ever
        cached for the id.
        """
        cached = self.cache.get_nutrition(self.source, food_id)
        if cached is not None:
            return Cached(data=parse_record(cached), freshness=Freshness.CACHE)

        try:
            payload = await asyncio.wait_for(
                self.provider.fetch_detail(food_id), timeout=self.timeout_seconds
            )
            record = self.provider.normalize_detail(payload, food_id)
        except Exception as exc:
            _log_failure(self.source, f"get_nutrition:{food_id}", exc)
            stale = self.cache.get_nutrition(self.source, food_id, stale=True)
            if stale is None:
                return Cached(data=None, freshness=Freshness.STALE)
            _logger.info("Serving stale %s data for %s", self.source.value, food_id)
            return Cached(data=parse_record(stale), freshness=Freshness.STALE)

        try:
            self.cache.set_nutrition(self.source, food_id, record.to_payload())
        except Exception as exc:
            _log_cache_write_failure(self.source, f"get_nutrition:{food_id}", exc)
        return Cached(data=record, freshness=Freshness.LIVE)


def parse_search_results(payload: object) -> list[SearchResult]:
    """Rebuild search results from a cached payload."""
    if not isinstance(payload, list):
        raise MalformedUpstreamDataError("cached search payload is not a list.")
    try:
        return [SearchResult.from_payload(item) for item in payload]
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise MalformedUpstreamDataError(
            f"cached search payload is unreadable: {exc}"
        ) from exc


def parse_record(payload: object) -> NutritionRecord:
    """Rebuild a nutrition record from a cached payload."""
    if not isinstance(payload, dict):
        raise MalformedUpstreamDataError("cached nutrition payload is not an object.")
    try:
        return NutritionRecord.from_payload(payload)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise MalformedUpstreamDataError(
            f"cached nutrition payload is unreadable: {exc}",
            food_id=str(payload.get("food_id")),
        ) from exc


def _log_failure(source: FoodSource, action: str, exc: Exception) -> None:
    _logger.warning(
        "%s %s failed (status=%s), falling back to stale cache: %r",
        source.label,
        action,
        _status_code_from_exception(exc),
        exc,
    )


def _log_cache_write_failure(source: FoodSource, action: str, exc: Exception) -> None:
    _logger.warning(
        "%s %s cache write failed, returning live data: %r", source.label, action, exc
    )


def _status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"
