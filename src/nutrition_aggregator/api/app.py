"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from nutrition_aggregator.api.models import (
    MealRequest,
    NutritionRequest,
    SaveFoodRequest,
    SearchRequest,
)
from nutrition_aggregator.app_logging import configure_logging
from nutrition_aggregator.containers import AppContainer
from nutrition_aggregator.domain.custom_foods import SaveFoodInput
from nutrition_aggregator.domain.errors import MealItemError, NutritionError
from nutrition_aggregator.domain.meals import MealItemRequest, MealSummary
from nutrition_aggregator.domain.nutrition import (
    NutrientValue,
    NutritionResult,
    ServingSize,
)
from nutrition_aggregator.services.search import SearchResponse, parse_source_filter

_STATUS_BY_CODE = {
    "not_found": 404,
    "expired": 410,
    "invalid_input": 422,
    "unsupported_unit": 422,
    "unit_mismatch": 422,
    "missing_conversion_data": 422,
    "ambiguous_conversion": 422,
    "malformed_upstream_data": 502,
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(NutritionError)
    async def nutrition_error_handler(
        request: Request, exc: NutritionError
    ) -> JSONResponse:
        status_code = error_status(exc)
        if status_code >= 500:
            logger.error("Request to %s failed: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"error": str(exc), "code": exc.code},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/foods/search")
    async def search_foods(payload: SearchRequest, request: Request) -> dict:
        """Search foods across providers."""
        state_container: AppContainer = request.app.state.container
        response = await state_container.search_service.search_food(
            payload.query, parse_source_filter(payload.source)
        )
        return _search_payload(response)

    @app.post("/foods/nutrition")
    async def food_nutrition(payload: NutritionRequest, request: Request) -> dict:
        """Return nutrients for an amount of one food."""
        state_container: AppContainer = request.app.state.container
        result = await state_container.nutrition_service.get_nutrition(
            payload.food_id, payload.source, payload.amount, payload.unit
        )
        return _nutrition_payload(result)

    @app.post("/meals/calculate")
    async def calculate_meal(payload: MealRequest, request: Request) -> dict:
        """Sum nutrients over every item of a meal."""
        state_container: AppContainer = request.app.state.container
        summary = await state_container.meal_service.calculate_meal(
            [
                MealItemRequest(
                    food_id=item.food_id,
                    source=item.source,
                    amount=item.amount,
                    unit=item.unit,
                )
                for item in payload.items
            ]
        )
        return _meal_payload(summary)

    @app.post("/foods/custom")
    async def save_custom_food(payload: SaveFoodRequest, request: Request) -> dict:
        """Save or replace a user-declared food."""
        state_container: AppContainer = request.app.state.container
        result = state_container.custom_foods.save(
            SaveFoodInput(
                name=payload.name,
                brand=payload.brand,
                category=payload.category,
                serving_size=ServingSize(
                    amount=payload.serving_size.amount,
                    unit=payload.serving_size.unit,
                ),
                nutrients=payload.nutrients,
            )
        )
        return {"id": result.id, "source": result.source.value}

    return app


def error_status(exc: NutritionError) -> int:
    """HTTP status for a nutrition error; meal item errors use their cause."""
    if isinstance(exc, MealItemError):
        return error_status(exc.cause)
    return _STATUS_BY_CODE.get(exc.code, 500)


def _nutrients_payload(nutrients: dict[str, NutrientValue]) -> dict[str, dict]:
    return {key: value.to_payload() for key, value in nutrients.items()}


def _search_payload(response: SearchResponse) -> dict:
    return {
        "results": [result.to_payload() for result in response.results],
        "freshness": response.freshness.value,
        "warnings": response.warnings,
    }


def _nutrition_payload(result: NutritionResult) -> dict:
    return {
        "food_id": result.food_id,
        "source": result.source.value,
        "serving_description": result.serving_description,
        "nutrients": _nutrients_payload(result.nutrients),
        "freshness": result.freshness.value,
        "warnings": result.warnings,
    }


def _meal_payload(summary: MealSummary) -> dict:
    return {
        "items": [
            {
                "food_id": item.food_id,
                "source": item.source.value,
                "serving_description": item.serving_description,
                "nutrients": _nutrients_payload(item.nutrients),
            }
            for item in summary.items
        ],
        "totals": _nutrients_payload(summary.totals),
        "coverage": {key: value.value for key, value in summary.coverage.items()},
        "freshness": summary.freshness.value,
        "warnings": summary.warnings,
    }
