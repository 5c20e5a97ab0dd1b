"""Nutrition lookups for a requested amount of a food."""

import logging
import math
from dataclasses import dataclass

from nutrition_aggregator.domain.errors import FoodNotFoundError, InvalidInputError
from nutrition_aggregator.domain.nutrition import (
    Cached,
    FoodSource,
    Freshness,
    NutritionRecord,
    NutritionResult,
)
from nutrition_aggregator.services import scaling
from nutrition_aggregator.services.custom_foods import CustomFoodStore
from nutrition_aggregator.services.sources import CachedFoodSource

_logger = logging.getLogger(__name__)


@dataclass
class NutritionService:
    """Resolves a food from its source and scales it to the requested amount."""

    usda: CachedFoodSource
    openfoodfacts: CachedFoodSource
    custom_foods: CustomFoodStore

    async def get_nutrition(
        self, food_id: str, source: FoodSource, amount: float, unit: str
    ) -> NutritionResult:
        """Return nutrients for amount of unit of a food."""
        if not math.isfinite(amount) or amount <= 0:
            raise InvalidInputError("amount", amount, "must be greater than 0.")
        lookup = await self.lookup(food_id, source)
        record = lookup.data
        nutrients = scaling.scale(
            record, scaling.target_amount(record, amount, unit)
        )
        warnings = []
        if lookup.freshness is Freshness.STALE:
            warnings.append(f"Using cached data; {source.label} API was unavailable.")
        return NutritionResult(
            food_id=food_id,
            source=source,
            serving_description=serving_description(amount, unit, record.name),
            nutrients=nutrients,
            freshness=lookup.freshness,
            warnings=warnings,
        )

    async def lookup(self, food_id: str, source: FoodSource) -> Cached[NutritionRecord]:
        """Fetch the canonical record for a food, raising when nothing is known."""
        if source is FoodSource.CUSTOM:
            return Cached(
                data=self.custom_foods.require(food_id), freshness=Freshness.LIVE
            )
        food_source = self.usda if source is FoodSource.USDA else self.openfoodfacts
        result = await food_source.get_nutrition(food_id)
        if result.data is None:
            _logger.info("No %s data for %s", source.value, food_id)
            raise FoodNotFoundError(food_id, source.value)
        return Cached(data=result.data, freshness=result.freshness)


def serving_description(amount: float, unit: str, name: str) -> str:
    """Format e.g. "150g of Chicken breast"."""
    return f"{_format_amount(amount)}{unit} of {name}"


def _format_amount(amount: float) -> str:
    if float(amount).is_integer():
        return str(int(amount))
    return str(amount)
