"""Tests for nutrient scaling."""

import pytest

from nutrition_aggregator.domain.errors import (
    MalformedUpstreamDataError,
    UnitMismatchError,
)
from nutrition_aggregator.domain.nutrition import (
    FoodSource,
    NutrientValue,
    NutritionRecord,
    ServingSize,
    StorageMode,
    empty_nutrients,
)
from nutrition_aggregator.services.scaling import round_half_up, scale, target_amount


def _record(
    storage_mode: StorageMode = StorageMode.PER_100G,
    serving: ServingSize | None = None,
    nutrients: dict[str, NutrientValue] | None = None,
) -> NutritionRecord:
    if nutrients is None:
        nutrients = {
            "calories": NutrientValue(165, True),
            "protein_g": NutrientValue(31, True),
            "total_carbs_g": NutrientValue(0, True),
            "total_fat_g": NutrientValue(3.6, True),
            "cholesterol_mg": NutrientValue(0, False),
        }
    return NutritionRecord(
        food_id="food-1",
        source=FoodSource.CUSTOM,
        name="Test food",
        serving_size=serving or ServingSize(100, "g"),
        storage_mode=storage_mode,
        nutrients=nutrients,
    )


def test_per_100g_scales_by_grams() -> None:
    scaled = scale(_record(), 150)

    assert scaled["calories"] == NutrientValue(247.5, True)
    assert scaled["total_fat_g"].value == 5.4


def test_unavailable_nutrients_stay_unavailable() -> None:
    scaled = scale(_record(), 200)

    assert scaled["cholesterol_mg"] == NutrientValue(0, False)


def test_per_serving_scales_by_unit_count() -> None:
    record = _record(
        StorageMode.PER_SERVING,
        ServingSize(1, "cup"),
        {**empty_nutrients(), "calories": NutrientValue(250, True)},
    )

    assert scale(record, 2)["calories"].value == 500


def test_per_serving_target_requires_stored_unit() -> None:
    record = _record(StorageMode.PER_SERVING, ServingSize(1, "cup"))

    assert target_amount(record, 3, "cup") == 3
    with pytest.raises(UnitMismatchError) as exc_info:
        target_amount(record, 100, "g")

    assert 'saved per "cup"' in str(exc_info.value)


def test_per_100g_target_converts_to_grams() -> None:
    assert target_amount(_record(), 2, "oz") == pytest.approx(56.699)


def test_missing_mandatory_key_is_malformed() -> None:
    record = _record(nutrients={"calories": NutrientValue(100, True)})

    with pytest.raises(MalformedUpstreamDataError):
        scale(record, 100)


def test_halves_round_up() -> None:
    record = _record(
        nutrients={
            **empty_nutrients(),
            "calories": NutrientValue(25, True),
            "protein_g": NutrientValue(5, True),
            "total_carbs_g": NutrientValue(0, True),
            "total_fat_g": NutrientValue(0, True),
        }
    )

    assert scale(record, 1)["calories"].value == 0.3
    assert scale(record, 5)["protein_g"].value == 0.3


def test_round_half_up() -> None:
    assert round_half_up(0.25, 1) == 0.3
    assert round_half_up(2.5, 0) == 3
    assert round_half_up(0.125, 2) == 0.13
    assert round_half_up(0.24, 1) == 0.2
