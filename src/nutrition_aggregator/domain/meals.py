"""Domain models for meal calculations."""

from dataclasses import dataclass, field

from nutrition_aggregator.domain.nutrition import (
    Coverage,
    FoodSource,
    Freshness,
    NutrientValue,
)


@dataclass(frozen=True)
class MealItemRequest:
    """One food and amount within a meal."""

    food_id: str
    source: FoodSource
    amount: float
    unit: str


@dataclass(frozen=True)
class MealItemResult:
    """Resolved nutrients for one meal item."""

    food_id: str
    source: FoodSource
    serving_description: str
    nutrients: dict[str, NutrientValue]


@dataclass(frozen=True)
class MealSummary:
    """Per-item nutrients plus totals and per-nutrient coverage."""

    items: list[MealItemResult]
    totals: dict[str, NutrientValue]
    coverage: dict[str, Coverage]
    freshness: Freshness = Freshness.LIVE
    warnings: list[str] = field(default_factory=list)
