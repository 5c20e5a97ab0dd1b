"""Normalization of USDA FoodData Central payloads."""

import re
from dataclasses import dataclass

from nutrition_aggregator.adapters.fdc_client import FdcClient
from nutrition_aggregator.domain.errors import MalformedUpstreamDataError
from nutrition_aggregator.domain.nutrition import (
    FoodSource,
    NutrientValue,
    NutritionRecord,
    PortionData,
    SearchResult,
    ServingSize,
    StorageMode,
    empty_nutrients,
)

MAX_SEARCH_RESULTS = 15
ML_PER_CUP = 236.588

_NUTRIENT_IDS = {
    1008: "calories",
    1003: "protein_g",
    1005: "total_carbs_g",
    1004: "total_fat_g",
    1079: "fiber_g",
    2000: "sugar_g",
    1258: "saturated_fat_g",
    1093: "sodium_mg",
    1253: "cholesterol_mg",
}

_JUNK_DESCRIPTIONS = frozenset({"undetermined", "unknown", "quantity not specified"})
_CUP_RE = re.compile(r"\bcups?\b")


def normalize_search_results(payload: dict[str, object]) -> list[SearchResult]:
    """Map a /foods/search payload to search results."""
    foods = payload.get("foods")
    if not isinstance(foods, list):
        raise MalformedUpstreamDataError("USDA search payload has no foods list.")
    results: list[SearchResult] = []
    for food in foods:
        if not isinstance(food, dict):
            continue
        name = str(food.get("description") or "").strip()
        if not name or food.get("fdcId") is None:
            continue
        score = food.get("score")
        results.append(
            SearchResult(
                id=str(food["fdcId"]),
                source=FoodSource.USDA,
                name=name,
                brand=food.get("brandOwner") or food.get("brandName"),
                match_score=float(score) if isinstance(score, int | float) else 0.0,
            )
        )
        if len(results) >= MAX_SEARCH_RESULTS:
            break
    return results


def normalize_detail(payload: dict[str, object]) -> NutritionRecord:
    """Map a /food/{id} payload to a per-100g nutrition record."""
    fdc_id = payload.get("fdcId")
    if fdc_id is None:
        raise MalformedUpstreamDataError("USDA food payload has no fdcId.")
    nutrients = empty_nutrients()
    for entry in payload.get("foodNutrients") or []:
        key, amount = _parse_nutrient(entry)
        if key is not None and amount is not None:
            nutrients[key] = NutrientValue(value=amount, available=True)

    record = NutritionRecord(
        food_id=str(fdc_id),
        source=FoodSource.USDA,
        name=str(payload.get("description", "")),
        serving_size=ServingSize(amount=100, unit="g"),
        storage_mode=StorageMode.PER_100G,
        nutrients=nutrients,
    )

    raw_portions = payload.get("foodPortions")
    if not isinstance(raw_portions, list) or not raw_portions:
        return record
    portions, density = extract_portions(raw_portions)
    return NutritionRecord(
        food_id=record.food_id,
        source=record.source,
        name=record.name,
        serving_size=record.serving_size,
        storage_mode=record.storage_mode,
        nutrients=record.nutrients,
        portions=portions or None,
        density_g_per_ml=density,
        has_filtered_junk_portions=not portions,
    )


def extract_portions(
    raw_portions: list[dict[str, object]],
) -> tuple[list[PortionData], float | None]:
    """Filter raw food portions and derive density from a single cup portion."""
    portions: list[PortionData] = []
    for raw in raw_portions:
        if not isinstance(raw, dict):
            continue
        gram_weight = _to_float(raw.get("gramWeight"))
        if gram_weight is None or gram_weight <= 0:
            continue
        description = _portion_description(raw)
        if _is_junk_description(description):
            continue
        amount = _to_float(raw.get("amount"))
        modifier = raw.get("modifier")
        portions.append(
            PortionData(
                description=description,
                gram_weight=gram_weight,
                amount=1.0 if amount is None else amount,
                modifier=str(modifier) if modifier else None,
            )
        )

    cup_portions = [
        portion
        for portion in portions
        if _CUP_RE.search(portion.description.lower())
    ]
    density = None
    if len(cup_portions) == 1 and cup_portions[0].amount > 0:
        cup = cup_portions[0]
        density = cup.gram_weight / (cup.amount * ML_PER_CUP)
    return portions, density


@dataclass
class UsdaProvider:
    """FoodData Central provider: fetches raw payloads and normalizes them."""

    client: FdcClient
    source: FoodSource = FoodSource.USDA

    async def fetch_search(self, query: str) -> dict[str, object]:
        return await self.client.search_foods(query, page_size=MAX_SEARCH_RESULTS)

    async def fetch_detail(self, food_id: str) -> dict[str, object]:
        return await self.client.get_food(food_id)

    def normalize_search_results(self, payload: dict[str, object]) -> list[SearchResult]:
        return normalize_search_results(payload)

    def normalize_detail(
        self, payload: dict[str, object], food_id: str
    ) -> NutritionRecord:
        return normalize_detail(payload)


def _parse_nutrient(entry: object) -> tuple[str | None, float | None]:
    """Accept both the detail shape and the flat search-result shape."""
    if not isinstance(entry, dict):
        return None, None
    nutrient_info = entry.get("nutrient")
    if not isinstance(nutrient_info, dict):
        nutrient_info = {}
    nutrient_id = nutrient_info.get("id") or entry.get("nutrientId")
    amount = entry.get("amount", entry.get("value"))
    return _NUTRIENT_IDS.get(nutrient_id), _to_float(amount)


def _portion_description(raw: dict[str, object]) -> str:
    description = raw.get("portionDescription")
    if description:
        return str(description)
    measure_unit = raw.get("measureUnit") or {}
    name = measure_unit.get("name") if isinstance(measure_unit, dict) else None
    return str(name) if name else ""


def _is_junk_description(description: str) -> bool:
    trimmed = description.strip()
    return not trimmed or trimmed.lower() in _JUNK_DESCRIPTIONS


def _to_float(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    return None
