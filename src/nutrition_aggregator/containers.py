"""Dependency container wiring for the application."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from nutrition_aggregator.adapters.fdc_client import HttpxFdcClient
from nutrition_aggregator.adapters.off_client import HttpxOpenFoodFactsClient
from nutrition_aggregator.adapters.supabase_cache_repository import (
    SupabaseCacheRepository,
)
from nutrition_aggregator.adapters.supabase_custom_food_repository import (
    SupabaseCustomFoodRepository,
)
from nutrition_aggregator.config import Settings
from nutrition_aggregator.services.cache import CacheStore
from nutrition_aggregator.services.custom_foods import CustomFoodStore
from nutrition_aggregator.services.meals import MealService
from nutrition_aggregator.services.nutrition import NutritionService
from nutrition_aggregator.services.openfoodfacts import OpenFoodFactsProvider
from nutrition_aggregator.services.search import SearchService
from nutrition_aggregator.services.sources import CachedFoodSource
from nutrition_aggregator.services.usda import UsdaProvider

_logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    cache: CacheStore
    custom_foods: CustomFoodStore
    search_service: SearchService
    nutrition_service: NutritionService
    meal_service: MealService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    if not resolved_settings.fdc_api_key:
        _logger.warning("FDC_API_KEY is not set; USDA requests will fail.")
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    cache = CacheStore(
        repository=SupabaseCacheRepository(supabase_client),
        ttls=resolved_settings.cache_ttls(),
    )
    custom_foods = CustomFoodStore(
        repository=SupabaseCustomFoodRepository(supabase_client),
        ttl_seconds=resolved_settings.custom_ttl_seconds,
    )
    fdc_client = HttpxFdcClient.create(
        api_key=resolved_settings.fdc_api_key,
        base_url=resolved_settings.fdc_base_url,
        timeout_seconds=resolved_settings.http_timeout_seconds,
    )
    off_client = HttpxOpenFoodFactsClient.create(
        base_url=resolved_settings.off_base_url,
        user_agent=resolved_settings.off_user_agent,
        timeout_seconds=resolved_settings.http_timeout_seconds,
    )
    usda = CachedFoodSource(
        provider=UsdaProvider(fdc_client),
        cache=cache,
        timeout_seconds=resolved_settings.http_timeout_seconds,
    )
    openfoodfacts = CachedFoodSource(
        provider=OpenFoodFactsProvider(off_client),
        cache=cache,
        timeout_seconds=resolved_settings.http_timeout_seconds,
    )
    nutrition_service = NutritionService(
        usda=usda,
        openfoodfacts=openfoodfacts,
        custom_foods=custom_foods,
    )
    search_service = SearchService(
        usda=usda,
        openfoodfacts=openfoodfacts,
        custom_foods=custom_foods,
        cache=cache,
    )
    meal_service = MealService(nutrition_service=nutrition_service)

    async def close_resources() -> None:
        await fdc_client.close()
        await off_client.close()

    return AppContainer(
        settings=resolved_settings,
        cache=cache,
        custom_foods=custom_foods,
        search_service=search_service,
        nutrition_service=nutrition_service,
        meal_service=meal_service,
        close_resources=close_resources,
    )
