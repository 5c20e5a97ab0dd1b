"""Food search across providers with cross-source deduplication."""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from nutrition_aggregator.domain.errors import InvalidInputError
from nutrition_aggregator.domain.nutrition import (
    Cached,
    Freshness,
    SearchResult,
    least_fresh,
)
from nutrition_aggregator.services.cache import CacheStore
from nutrition_aggregator.services.custom_foods import CustomFoodStore
from nutrition_aggregator.services.sources import (
    CachedFoodSource,
    parse_search_results,
)

_COMBINED_CACHE_SOURCE = "all"
_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_QUALIFIER_RE = re.compile(r"\b(raw|cooked|fresh|frozen|dried|organic|natural)\b")
_WHITESPACE_RE = re.compile(r"\s+")
_OVERLAP_THRESHOLD = 0.8

_logger = logging.getLogger(__name__)


class SearchSource(str, Enum):
    """Which sources a search should consult."""

    USDA = "usda"
    OPEN_FOOD_FACTS = "openfoodfacts"
    CUSTOM = "custom"
    ALL = "all"


def parse_source_filter(raw: str | None) -> SearchSource:
    """Map a loosely typed source string to a search source."""
    if raw is None or not raw.strip():
        return SearchSource.ALL
    try:
        return SearchSource(raw.strip().lower())
    except ValueError as exc:
        raise InvalidInputError(
            "source", raw, f"expected one of {', '.join(s.value for s in SearchSource)}."
        ) from exc


@dataclass(frozen=True)
class SearchResponse:
    """Results of a food search."""

    results: list[SearchResult]
    freshness: Freshness = Freshness.LIVE
    warnings: list[str] = field(default_factory=list)


def normalize_name(name: str) -> str:
    """Lowercase, strip punctuation and qualifier words, collapse whitespace."""
    text = _PUNCTUATION_RE.sub("", name.lower())
    text = _QUALIFIER_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def word_overlap(first: str, second: str) -> float:
    """Fraction of shared words relative to the smaller word set."""
    first_words = set(first.split())
    second_words = set(second.split())
    if not first_words or not second_words:
        return 0.0
    shared = len(first_words & second_words)
    return shared / min(len(first_words), len(second_words))


def is_duplicate(first: SearchResult, second: SearchResult) -> bool:
    """Results from different sources that name the same food."""
    if first.source == second.source:
        return False
    first_name = normalize_name(first.name)
    second_name = normalize_name(second.name)
    if not first_name or not second_name:
        return False
    if first_name in second_name or second_name in first_name:
        return True
    return word_overlap(first_name, second_name) > _OVERLAP_THRESHOLD


def deduplicate_results(
    primary: list[SearchResult], secondary: list[SearchResult]
) -> list[SearchResult]:
    """Keep all primary results, then secondary results that duplicate none kept."""
    kept = list(primary)
    for candidate in secondary:
        if not any(is_duplicate(existing, candidate) for existing in kept):
            kept.append(candidate)
    return kept


@dataclass
class SearchService:
    """Searches USDA, Open Food Facts and custom foods."""

    usda: CachedFoodSource
    openfoodfacts: CachedFoodSource
    custom_foods: CustomFoodStore
    cache: CacheStore

    async def search_food(
        self, query: str, source: SearchSource = SearchSource.ALL
    ) -> SearchResponse:
        """Search one source or all of them."""
        if not query.strip():
            raise InvalidInputError("query", query, "must not be empty.")
        if source is SearchSource.CUSTOM:
            return SearchResponse(results=self.custom_foods.search(query))
        if source is SearchSource.USDA:
            return _single_source_response(self.usda, await self.usda.search(query))
        if source is SearchSource.OPEN_FOOD_FACTS:
            return _single_source_response(
                self.openfoodfacts, await self.openfoodfacts.search(query)
            )
        return await self._search_all(query)

    async def _search_all(self, query: str) -> SearchResponse:
        custom_results = self.custom_foods.search(query)
        cached = self.cache.get_search(_COMBINED_CACHE_SOURCE, query)
        if cached is not None:
            return SearchResponse(
                results=custom_results + parse_search_results(cached),
                freshness=Freshness.CACHE,
            )

        usda_outcome, off_outcome = await asyncio.gather(
            self.usda.search(query),
            self.openfoodfacts.search(query),
            return_exceptions=True,
        )
        warnings: list[str] = []
        freshness = Freshness.LIVE
        per_source: list[list[SearchResult]] = []
        complete = True
        for food_source, outcome in (
            (self.usda, usda_outcome),
            (self.openfoodfacts, off_outcome),
        ):
            label = food_source.source.label
            if isinstance(outcome, Exception):
                _logger.warning("%s search raised: %r", label, outcome)
                warnings.append(
                    f"{label} source was unavailable; results may be incomplete."
                )
                per_source.append([])
                complete = False
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            freshness = least_fresh(freshness, outcome.freshness)
            if outcome.freshness is Freshness.STALE:
                warnings.append(f"Using cached data for {label}; API was unavailable.")
                complete = False
            per_source.append(outcome.data)

        merged = deduplicate_results(per_source[0], per_source[1])
        if complete:
            self.cache.set_search(
                _COMBINED_CACHE_SOURCE,
                query,
                [result.to_payload() for result in merged],
            )
        else:
            freshness = Freshness.STALE
        return SearchResponse(
            results=custom_results + merged,
            freshness=freshness,
            warnings=warnings,
        )


def _single_source_response(
    food_source: CachedFoodSource, outcome: Cached[list[SearchResult]]
) -> SearchResponse:
    warnings = []
    if outcome.freshness is Freshness.STALE:
        warnings.append(
            f"Using cached data; {food_source.source.label} API was unavailable."
        )
    return SearchResponse(
        results=outcome.data, freshness=outcome.freshness, warnings=warnings
    )

