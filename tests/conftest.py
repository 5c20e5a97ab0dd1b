"""Shared test fixtures."""

from dataclasses import dataclass, field

import httpx
import pytest

from nutrition_aggregator.adapters.fdc_client import FdcClient
from nutrition_aggregator.adapters.off_client import OpenFoodFactsClient
from nutrition_aggregator.config import Settings
from nutrition_aggregator.containers import AppContainer
from nutrition_aggregator.domain.custom_foods import CustomFoodRow
from nutrition_aggregator.services.cache import (
    CacheEntry,
    CacheNamespace,
    CacheRepository,
    CacheStore,
    CacheTtls,
)
from nutrition_aggregator.services.custom_foods import (
    CustomFoodRepository,
    CustomFoodStore,
)
from nutrition_aggregator.services.meals import MealService
from nutrition_aggregator.services.nutrition import NutritionService
from nutrition_aggregator.services.openfoodfacts import OpenFoodFactsProvider
from nutrition_aggregator.services.search import SearchService
from nutrition_aggregator.services.sources import CachedFoodSource
from nutrition_aggregator.services.usda import UsdaProvider

START_TIME = 1_700_000_000


@dataclass
class FakeClock:
    """Settable clock returning unix seconds."""

    now: int = START_TIME

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@dataclass
class InMemoryCacheRepository(CacheRepository):
    """In-memory cache repository for tests."""

    entries: dict[tuple[CacheNamespace, str], CacheEntry] = field(default_factory=dict)
    columns: dict[tuple[CacheNamespace, str], dict[str, str]] = field(
        default_factory=dict
    )

    def get_entry(self, namespace: CacheNamespace, key: str) -> CacheEntry | None:
        return self.entries.get((namespace, key))

    def put_entry(
        self,
        namespace: CacheNamespace,
        entry: CacheEntry,
        columns: dict[str, str],
    ) -> None:
        self.entries[(namespace, entry.key)] = entry
        self.columns[(namespace, entry.key)] = columns


@dataclass
class InMemoryCustomFoodRepository(CustomFoodRepository):
    """In-memory custom food repository for tests."""

    rows: dict[str, CustomFoodRow] = field(default_factory=dict)
    purges: list[int] = field(default_factory=list)

    def upsert_food(self, row: CustomFoodRow) -> None:
        self.rows[row.id] = row

    def get_food(self, food_id: str) -> CustomFoodRow | None:
        return self.rows.get(food_id)

    def search_foods(self, text: str, now: int) -> list[CustomFoodRow]:
        needle = text.lower()
        return [
            row
            for row in self.rows.values()
            if row.expires_at > now
            and (needle in row.name.lower() or needle in (row.brand or "").lower())
        ]

    def delete_expired(self, now: int) -> None:
        self.purges.append(now)
        self.rows = {
            food_id: row for food_id, row in self.rows.items() if row.expires_at > now
        }


def usda_food_payload(
    fdc_id: int = 171077,
    description: str = "Chicken, breast, skinless, boneless, raw",
    nutrients: dict[int, float] | None = None,
    portions: list[dict[str, object]] | None = None,
) -> dict[str, object]:
    """Build a FoodData Central /food/{id} payload."""
    if nutrients is None:
        nutrients = {1008: 165, 1003: 31, 1005: 0, 1004: 3.6}
    payload: dict[str, object] = {
        "fdcId": fdc_id,
        "description": description,
        "dataType": "SR Legacy",
        "foodNutrients": [
            {"nutrient": {"id": nutrient_id}, "amount": amount}
            for nutrient_id, amount in nutrients.items()
        ],
    }
    if portions is not None:
        payload["foodPortions"] = portions
    return payload


def off_product_payload(
    code: str = "3017620422003",
    name: str = "Nutella",
    nutriments: dict[str, object] | None = None,
) -> dict[str, object]:
    """Build an Open Food Facts /api/v2/product payload."""
    if nutriments is None:
        nutriments = {
            "energy-kcal_100g": 539,
            "proteins_100g": 6.3,
            "carbohydrates_100g": 57.5,
            "fat_100g": 30.9,
            "sodium_100g": 0.0428,
        }
    return {
        "status": 1,
        "code": code,
        "product": {"code": code, "product_name": name, "nutriments": nutriments},
    }


def _http_error(url: str) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", url)
    response = httpx.Response(503, request=request)
    return httpx.HTTPStatusError("upstream down", request=request, response=response)


@dataclass
class FakeFdcClient(FdcClient):
    """Fake FDC client with in-memory responses."""

    search_payload: dict[str, object] = field(
        default_factory=lambda: {
            "foods": [
                {
                    "fdcId": 171077,
                    "description": "Chicken, breast, skinless, boneless, raw",
                    "score": 812.5,
                }
            ]
        }
    )
    foods: dict[str, dict[str, object]] = field(default_factory=dict)
    failing: bool = False
    search_calls: int = 0
    food_calls: int = 0

    async def search_foods(self, query: str, page_size: int = 15) -> dict[str, object]:
        self.search_calls += 1
        if self.failing:
            raise _http_error("https://api.test/foods/search")
        return self.search_payload

    async def get_food(self, fdc_id: str) -> dict[str, object]:
        self.food_calls += 1
        if self.failing:
            raise _http_error(f"https://api.test/food/{fdc_id}")
        if fdc_id in self.foods:
            return self.foods[fdc_id]
        raise httpx.HTTPStatusError(
            "not found",
            request=httpx.Request("GET", f"https://api.test/food/{fdc_id}"),
            response=httpx.Response(404),
        )


@dataclass
class FakeOpenFoodFactsClient(OpenFoodFactsClient):
    """Fake Open Food Facts client with in-memory responses."""

    search_payload: dict[str, object] = field(
        default_factory=lambda: {
            "products": [
                {
                    "code": "0001",
                    "product_name": "Chicken Breast Skinless Boneless",
                    "brands": "Store",
                },
                {"code": "0002", "product_name": "Organic Quinoa", "brands": "Bio"},
            ]
        }
    )
    products: dict[str, dict[str, object]] = field(default_factory=dict)
    failing: bool = False
    search_calls: int = 0
    product_calls: int = 0

    async def search_products(
        self, query: str, page_size: int = 10
    ) -> dict[str, object]:
        self.search_calls += 1
        if self.failing:
            raise _http_error("https://off.test/cgi/search.pl")
        return self.search_payload

    async def get_product(self, code: str) -> dict[str, object]:
        self.product_calls += 1
        if self.failing:
            raise _http_error(f"https://off.test/api/v2/product/{code}.json")
        return self.products.get(code, {"status": 0, "code": code})


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        fdc_api_key="fdc-key",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_repository() -> InMemoryCacheRepository:
    return InMemoryCacheRepository()


@pytest.fixture
def cache(cache_repository: InMemoryCacheRepository, clock: FakeClock) -> CacheStore:
    return CacheStore(repository=cache_repository, ttls=CacheTtls(), clock=clock)


@pytest.fixture
def custom_food_repository() -> InMemoryCustomFoodRepository:
    return InMemoryCustomFoodRepository()


@pytest.fixture
def custom_foods(
    custom_food_repository: InMemoryCustomFoodRepository, clock: FakeClock
) -> CustomFoodStore:
    return CustomFoodStore(repository=custom_food_repository, clock=clock)


@pytest.fixture
def fdc_client() -> FakeFdcClient:
    return FakeFdcClient(foods={"171077": usda_food_payload()})


@pytest.fixture
def off_client() -> FakeOpenFoodFactsClient:
    return FakeOpenFoodFactsClient(products={"3017620422003": off_product_payload()})


@pytest.fixture
def usda_source(fdc_client: FakeFdcClient, cache: CacheStore) -> CachedFoodSource:
    return CachedFoodSource(provider=UsdaProvider(fdc_client), cache=cache)


@pytest.fixture
def off_source(
    off_client: FakeOpenFoodFactsClient, cache: CacheStore
) -> CachedFoodSource:
    return CachedFoodSource(provider=OpenFoodFactsProvider(off_client), cache=cache)


@pytest.fixture
def nutrition_service(
    usda_source: CachedFoodSource,
    off_source: CachedFoodSource,
    custom_foods: CustomFoodStore,
) -> NutritionService:
    return NutritionService(
        usda=usda_source, openfoodfacts=off_source, custom_foods=custom_foods
    )


@pytest.fixture
def search_service(
    usda_source: CachedFoodSource,
    off_source: CachedFoodSource,
    custom_foods: CustomFoodStore,
    cache: CacheStore,
) -> SearchService:
    return SearchService(
        usda=usda_source,
        openfoodfacts=off_source,
        custom_foods=custom_foods,
        cache=cache,
    )


@pytest.fixture
def meal_service(nutrition_service: NutritionService) -> MealService:
    return MealService(nutrition_service=nutrition_service)


@pytest.fixture
def container(
    settings: Settings,
    cache: CacheStore,
    custom_foods: CustomFoodStore,
    search_service: SearchService,
    nutrition_service: NutritionService,
    meal_service: MealService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        cache=cache,
        custom_foods=custom_foods,
        search_service=search_service,
        nutrition_service=nutrition_service,
        meal_service=meal_service,
        close_resources=close_resources,
    )
