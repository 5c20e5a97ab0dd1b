"""Services for user-declared custom foods."""

import hashlib
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from nutrition_aggregator.domain.custom_foods import (
    CustomFoodRow,
    SaveFoodInput,
    SaveFoodResult,
)
from nutrition_aggregator.domain.errors import (
    ExpiredFoodError,
    FoodNotFoundError,
    InvalidInputError,
)
from nutrition_aggregator.domain.nutrition import (
    MANDATORY_NUTRIENTS,
    FoodSource,
    NutrientValue,
    NutritionRecord,
    SearchResult,
    ServingSize,
    StorageMode,
    empty_nutrients,
)
from nutrition_aggregator.services.cache import CacheTtls, is_expired, now_seconds
from nutrition_aggregator.services.conversion import is_weight_unit, weight_to_grams
from nutrition_aggregator.services.scaling import round_half_up
from nutrition_aggregator.services.sources import parse_record

_EXACT_SCORE = 100
_PREFIX_SCORE = 75
_SUBSTRING_SCORE = 50

_logger = logging.getLogger(__name__)


class CustomFoodRepository(Protocol):
    """Persistence interface for custom foods."""

    def upsert_food(self, row: CustomFoodRow) -> None:
        """Insert or replace a custom food row."""

    def get_food(self, food_id: str) -> CustomFoodRow | None:
        """Return a custom food row by id, expired or not."""

    def search_foods(self, text: str, now: int) -> list[CustomFoodRow]:
        """Return unexpired rows whose name or brand contains text literally."""

    def delete_expired(self, now: int) -> None:
        """Delete rows expired as of now."""


def generate_custom_food_id(name: str, brand: str | None = None) -> str:
    """Deterministic id so the same name and brand always upsert one row."""
    normalized = f"{name.lower()}|{(brand or '').lower()}"
    return f"custom:{hashlib.sha256(normalized.encode('utf-8')).hexdigest()}"


def validate_food_input(food: SaveFoodInput) -> None:
    """Reject non-positive servings and negative or non-finite nutrients."""
    if not food.name.strip():
        raise InvalidInputError("name", food.name, "must not be empty.")
    amount = food.serving_size.amount
    if not _is_number(amount) or not math.isfinite(amount) or amount <= 0:
        raise InvalidInputError(
            "serving_size.amount", amount, "must be greater than 0."
        )
    for key in MANDATORY_NUTRIENTS:
        if food.nutrients.get(key) is None:
            raise InvalidInputError(f"nutrients.{key}", None, "is required.")
    for key, value in food.nutrients.items():
        if value is None:
            continue
        if not _is_number(value) or not math.isfinite(value):
            raise InvalidInputError(
                f"nutrients.{key}", value, "expected a finite number."
            )
        if value < 0:
            raise InvalidInputError(f"nutrients.{key}", value, "must be non-negative.")


@dataclass
class CustomFoodStore:
    """Stores custom foods normalized to per-100g or per-single-unit values."""

    repository: CustomFoodRepository
    ttl_seconds: int = CacheTtls().custom
    clock: Callable[[], int] = now_seconds

    def save(self, food: SaveFoodInput) -> SaveFoodResult:
        """Validate, normalize and upsert a custom food."""
        validate_food_input(food)
        food_id = generate_custom_food_id(food.name, food.brand)
        now = self.clock()
        self.repository.delete_expired(now)

        record = normalize_custom_food(food_id, food)
        self.repository.upsert_food(
            CustomFoodRow(
                id=food_id,
                name=food.name,
                brand=food.brand,
                category=food.category,
                data=record.to_payload(),
                created_at=now,
                expires_at=now + self.ttl_seconds,
            )
        )
        _logger.info(
            "Saved custom food %s (%s)", food_id, record.storage_mode.value
        )
        return SaveFoodResult(id=food_id)

    def get(self, food_id: str) -> NutritionRecord | None:
        """Return a custom food, or None if missing or expired."""
        row = self.repository.get_food(food_id)
        if row is None or is_expired(row.expires_at, self.clock()):
            return None
        return parse_record(row.data)

    def require(self, food_id: str) -> NutritionRecord:
        """Return a custom food, telling missing and expired rows apart."""
        row = self.repository.get_food(food_id)
        if row is None:
            raise FoodNotFoundError(food_id, FoodSource.CUSTOM.value)
        if is_expired(row.expires_at, self.clock()):
            raise ExpiredFoodError(food_id, row.expires_at)
        return parse_record(row.data)

    def search(self, text: str) -> list[SearchResult]:
        """Case-insensitive substring search on name or brand."""
        rows = self.repository.search_foods(text, self.clock())
        query = text.lower()
        return [
            SearchResult(
                id=row.id,
                source=FoodSource.CUSTOM,
                name=row.name,
                brand=row.brand,
                match_score=_score(query, row),
            )
            for row in rows
        ]


def normalize_custom_food(food_id: str, food: SaveFoodInput) -> NutritionRecord:
    """Rescale a declaration to 100 g for weight servings, else to one unit."""
    if is_weight_unit(food.serving_size.unit):
        grams = weight_to_grams(food.serving_size.amount, food.serving_size.unit)
        factor = 100 / grams
        serving = ServingSize(amount=100, unit="g")
        storage_mode = StorageMode.PER_100G
    else:
        factor = 1 / food.serving_size.amount
        serving = ServingSize(amount=1, unit=food.serving_size.unit)
        storage_mode = StorageMode.PER_SERVING

    nutrients = empty_nutrients()
    for key, value in food.nutrients.items():
        if value is not None:
            nutrients[key] = NutrientValue(
                value=round_half_up(value * factor, 2), available=True
            )
    return NutritionRecord(
        food_id=food_id,
        source=FoodSource.CUSTOM,
        name=food.name,
        serving_size=serving,
        storage_mode=storage_mode,
        nutrients=nutrients,
    )


def _score(query: str, row: CustomFoodRow) -> float:
    fields = [row.name.lower(), (row.brand or "").lower()]
    if query in fields:
        return _EXACT_SCORE
    if any(field.startswith(query) for field in fields if field):
        return _PREFIX_SCORE
    return _SUBSTRING_SCORE


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)
