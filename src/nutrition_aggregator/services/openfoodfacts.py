"""Normalization of Open Food Facts payloads."""

from dataclasses import dataclass

from nutrition_aggregator.adapters.off_client import OpenFoodFactsClient
from nutrition_aggregator.domain.errors import (
    FoodNotFoundError,
    MalformedUpstreamDataError,
)
from nutrition_aggregator.domain.nutrition import (
    FoodSource,
    NutrientValue,
    NutritionRecord,
    SearchResult,
    ServingSize,
    StorageMode,
    empty_nutrients,
)

MAX_SEARCH_RESULTS = 10
_SCORE_STEP = 0.05

_NUTRIMENT_KEYS = {
    "energy-kcal_100g": "calories",
    "proteins_100g": "protein_g",
    "carbohydrates_100g": "total_carbs_g",
    "fat_100g": "total_fat_g",
    "fiber_100g": "fiber_g",
    "sugars_100g": "sugar_g",
    "saturated-fat_100g": "saturated_fat_g",
    "sodium_100g": "sodium_mg",
    "cholesterol_100g": "cholesterol_mg",
}

# Open Food Facts reports these per 100 g in grams; canonical unit is mg.
_GRAMS_TO_MG = {"sodium_mg", "cholesterol_mg"}


def normalize_search_results(payload: dict[str, object]) -> list[SearchResult]:
    """Map a search.pl payload to search results with position-based scores."""
    products = payload.get("products")
    if not isinstance(products, list):
        raise MalformedUpstreamDataError(
            "Open Food Facts search payload has no products list."
        )
    named = [
        product
        for product in products
        if isinstance(product, dict)
        and str(product.get("product_name") or "").strip()
        and product.get("code")
    ]
    return [
        SearchResult(
            id=str(product["code"]),
            source=FoodSource.OPEN_FOOD_FACTS,
            name=str(product["product_name"]).strip(),
            brand=product.get("brands") or None,
            match_score=max(0.0, 1 - index * _SCORE_STEP),
        )
        for index, product in enumerate(named[:MAX_SEARCH_RESULTS])
    ]


def normalize_detail(payload: dict[str, object], code: str) -> NutritionRecord:
    """Map a product payload to a per-100g nutrition record."""
    product = payload.get("product")
    if payload.get("status") == 0 or not isinstance(product, dict):
        raise FoodNotFoundError(code, FoodSource.OPEN_FOOD_FACTS.value)

    raw_nutriments = product.get("nutriments")
    nutriments = raw_nutriments if isinstance(raw_nutriments, dict) else {}
    nutrients = empty_nutrients()
    for off_key, key in _NUTRIMENT_KEYS.items():
        value = _to_float(nutriments.get(off_key))
        if value is None:
            continue
        if key in _GRAMS_TO_MG:
            value *= 1000
        nutrients[key] = NutrientValue(value=value, available=True)

    return NutritionRecord(
        food_id=str(product.get("code") or code),
        source=FoodSource.OPEN_FOOD_FACTS,
        name=str(product.get("product_name") or "Unknown"),
        serving_size=ServingSize(amount=100, unit="g"),
        storage_mode=StorageMode.PER_100G,
        nutrients=nutrients,
    )


@dataclass
class OpenFoodFactsProvider:
    """Open Food Facts provider: fetches raw payloads and normalizes them."""

    client: OpenFoodFactsClient
    source: FoodSource = FoodSource.OPEN_FOOD_FACTS

    async def fetch_search(self, query: str) -> dict[str, object]:
        return await self.client.search_products(query, page_size=MAX_SEARCH_RESULTS)

    async def fetch_detail(self, food_id: str) -> dict[str, object]:
        return await self.client.get_product(food_id)

    def normalize_search_results(self, payload: dict[str, object]) -> list[SearchResult]:
        return normalize_search_results(payload)

    def normalize_detail(
        self, payload: dict[str, object], food_id: str
    ) -> NutritionRecord:
        return normalize_detail(payload, food_id)


def _to_float(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None
