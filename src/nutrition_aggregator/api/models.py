"""Pydantic models for API request payloads."""

from pydantic import BaseModel, Field

from nutrition_aggregator.domain.nutrition import FoodSource


class SearchRequest(BaseModel):
    """Food search payload."""

    query: str
    source: str | None = None


class NutritionRequest(BaseModel):
    """Nutrition lookup payload."""

    food_id: str
    source: FoodSource
    amount: float
    unit: str


class MealItemPayload(BaseModel):
    """One item of a meal calculation payload."""

    food_id: str
    source: FoodSource
    amount: float
    unit: str


class MealRequest(BaseModel):
    """Meal calculation payload."""

    items: list[MealItemPayload]


class ServingSizePayload(BaseModel):
    """Serving size of a custom food."""

    amount: float
    unit: str


class SaveFoodRequest(BaseModel):
    """Custom food payload."""

    name: str
    brand: str | None = None
    category: str | None = None
    serving_size: ServingSizePayload
    nutrients: dict[str, float] = Field(default_factory=dict)
