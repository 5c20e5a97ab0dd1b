"""Scaling of canonical nutrient data to a requested amount."""

import math

from nutrition_aggregator.domain.errors import (
    MalformedUpstreamDataError,
    UnitMismatchError,
)
from nutrition_aggregator.domain.nutrition import (
    MANDATORY_NUTRIENTS,
    NutrientValue,
    NutritionRecord,
    StorageMode,
)
from nutrition_aggregator.services import conversion


def target_amount(record: NutritionRecord, amount: float, unit: str) -> float:
    """Return grams for per-100g records or a unit count for per-serving ones."""
    if record.storage_mode is StorageMode.PER_SERVING:
        if unit != record.serving_size.unit:
            raise UnitMismatchError(unit, record.serving_size.unit, record.food_id)
        return amount
    return conversion.resolve(
        amount, unit, conversion.ConversionContext.from_record(record)
    )


def scale(record: NutritionRecord, amount: float) -> dict[str, NutrientValue]:
    """Scale every nutrient of record to amount, rounding to one decimal."""
    factor = _scale_factor(record, amount)
    scaled = {
        key: scale_nutrient(nutrient, factor)
        for key, nutrient in record.nutrients.items()
    }
    missing = [key for key in MANDATORY_NUTRIENTS if key not in scaled]
    if missing:
        raise MalformedUpstreamDataError(
            f"missing required nutrients: {', '.join(missing)}",
            food_id=record.food_id,
        )
    return scaled


def scale_nutrient(nutrient: NutrientValue, factor: float) -> NutrientValue:
    if not nutrient.available:
        return NutrientValue.missing()
    return NutrientValue(
        value=round_half_up(nutrient.value * factor, 1), available=True
    )


def round_half_up(value: float, digits: int) -> float:
    """Round to digits decimals with halves going up, not to even."""
    scale_by = 10**digits
    return math.floor(value * scale_by + 0.5) / scale_by


def _scale_factor(record: NutritionRecord, amount: float) -> float:
    if record.storage_mode is StorageMode.PER_SERVING:
        return amount / record.serving_size.amount
    return amount / 100.0
