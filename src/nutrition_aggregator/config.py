"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from nutrition_aggregator.services.cache import CacheTtls

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")
_DAY_SECONDS = 24 * 60 * 60


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    fdc_api_key: str = ""
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    off_base_url: str = "https://world.openfoodfacts.org"
    off_user_agent: str = "NutritionAggregator/1.0"
    http_timeout_seconds: float = 10.0
    usda_ttl_seconds: int = 30 * _DAY_SECONDS
    openfoodfacts_ttl_seconds: int = 7 * _DAY_SECONDS
    search_ttl_seconds: int = _DAY_SECONDS
    custom_ttl_seconds: int = 90 * _DAY_SECONDS
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def cache_ttls(self) -> CacheTtls:
        """TTL configuration for the cache store."""
        return CacheTtls(
            usda=self.usda_ttl_seconds,
            openfoodfacts=self.openfoodfacts_ttl_seconds,
            custom=self.custom_ttl_seconds,
            search=self.search_ttl_seconds,
        )
