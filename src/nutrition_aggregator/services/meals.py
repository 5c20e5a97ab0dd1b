"""Meal calculation: per-item nutrition lookups summed into totals."""

from dataclasses import dataclass

from nutrition_aggregator.domain.errors import (
    InvalidInputError,
    MealItemError,
    NutritionError,
)
from nutrition_aggregator.domain.meals import (
    MealItemRequest,
    MealItemResult,
    MealSummary,
)
from nutrition_aggregator.domain.nutrition import (
    Coverage,
    Freshness,
    NutrientValue,
    least_fresh,
)
from nutrition_aggregator.services.nutrition import NutritionService
from nutrition_aggregator.services.scaling import round_half_up


def aggregate_nutrients(
    item_nutrients: list[dict[str, NutrientValue]],
) -> tuple[dict[str, NutrientValue], dict[str, Coverage]]:
    """Sum available values per nutrient key and report coverage.

    Item values are already rounded to one decimal; the sum is taken over
    those rounded values and rounded again.
    """
    keys: dict[str, None] = {}
    for nutrients in item_nutrients:
        keys.update(dict.fromkeys(nutrients))

    totals: dict[str, NutrientValue] = {}
    coverage: dict[str, Coverage] = {}
    for key in keys:
        available = [
            nutrients[key].value
            for nutrients in item_nutrients
            if key in nutrients and nutrients[key].available
        ]
        key_coverage = _coverage(len(available), len(item_nutrients))
        totals[key] = NutrientValue(
            value=round_half_up(sum(available), 1),
            available=key_coverage is Coverage.FULL,
        )
        coverage[key] = key_coverage
    return totals, coverage


def _coverage(available_count: int, item_count: int) -> Coverage:
    if available_count == item_count:
        return Coverage.FULL
    if available_count > 0:
        return Coverage.PARTIAL
    return Coverage.NONE


@dataclass
class MealService:
    """Computes meal totals from independently resolved items."""

    nutrition_service: NutritionService

    async def calculate_meal(self, items: list[MealItemRequest]) -> MealSummary:
        """Resolve every item and sum the results; any failing item fails the meal."""
        if not items:
            raise InvalidInputError("items", items, "a meal needs at least one item.")

        results: list[MealItemResult] = []
        warnings: list[str] = []
        freshness = Freshness.LIVE
        for index, item in enumerate(items):
            try:
                result = await self.nutrition_service.get_nutrition(
                    item.food_id, item.source, item.amount, item.unit
                )
            except NutritionError as exc:
                raise MealItemError(index, item.food_id, exc) from exc
            results.append(
                MealItemResult(
                    food_id=item.food_id,
                    source=item.source,
                    serving_description=result.serving_description,
                    nutrients=result.nutrients,
                )
            )
            freshness = least_fresh(freshness, result.freshness)
            warnings.extend(result.warnings)

        totals, coverage = aggregate_nutrients([item.nutrients for item in results])
        return MealSummary(
            items=results,
            totals=totals,
            coverage=coverage,
            freshness=freshness,
            warnings=warnings,
        )
