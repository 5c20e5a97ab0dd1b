"""Exceptions raised by nutrition lookups, conversions and custom foods.

Every error carries structured fields for programmatic use and renders a
human-readable message whose prefix identifies the error class.
"""

from __future__ import annotations

WEIGHT_UNIT_HINT = "Try again using a weight unit (g, kg, oz, lb)."


class NutritionError(Exception):
    """Base exception for nutrition errors."""

    code = "nutrition_error"
    prefix = "Nutrition error"

    def __init__(self, detail: str) -> None:
        """Initialize the exception.

        Args:
            detail: Context appended after the stable prefix.
        """
        self.detail = detail
        super().__init__(f"{self.prefix}: {detail}")


class FoodNotFoundError(NutritionError):
    """Raised when a food is absent from its source and from every cache."""

    code = "not_found"
    prefix = "Food not found"

    def __init__(self, food_id: str, source: str) -> None:
        self.food_id = food_id
        self.source = source
        super().__init__(
            f'no nutrition data for food ID "{food_id}" from source "{source}".'
        )


class ExpiredFoodError(NutritionError):
    """Raised when a custom food exists but is past its expiry."""

    code = "expired"
    prefix = "Food expired"

    def __init__(self, food_id: str, expired_at: int) -> None:
        self.food_id = food_id
        self.expired_at = expired_at
        super().__init__(
            f'custom food "{food_id}" expired at {expired_at}; save it again.'
        )


class UnsupportedUnitError(NutritionError):
    """Raised for a unit string outside every conversion table."""

    code = "unsupported_unit"
    prefix = "Unsupported unit"

    def __init__(self, unit: str, supported: list[str]) -> None:
        self.unit = unit
        self.supported = supported
        super().__init__(f'"{unit}". Supported units: {", ".join(supported)}')


class MissingConversionDataError(NutritionError):
    """Raised when a food lacks the density or portion data a unit needs.

    ``kind`` is ``"density"`` for volume units, ``"portions"`` when a food has
    no portion data at all and ``"unusable_portions"`` when portion data
    existed but every description was filtered out as junk.
    """

    code = "missing_conversion_data"
    prefix = "Missing conversion data"

    def __init__(self, unit: str, kind: str) -> None:
        self.unit = unit
        self.kind = kind
        super().__init__(_missing_data_detail(unit, kind))


def _missing_data_detail(unit: str, kind: str) -> str:
    if kind == "density":
        reason = "density data (grams per mL) is not available for this food."
    elif kind == "unusable_portions":
        reason = "the portion descriptions for this food are not usable."
    else:
        reason = "no portion data available for this food."
    return f'cannot convert "{unit}" to grams: {reason} {WEIGHT_UNIT_HINT}'


class AmbiguousConversionError(NutritionError):
    """Raised when portions exist but none matches a descriptive unit."""

    code = "ambiguous_conversion"
    prefix = "Ambiguous conversion"

    def __init__(self, unit: str, available_portions: list[str]) -> None:
        self.unit = unit
        self.available_portions = available_portions
        super().__init__(
            f'cannot convert descriptive unit "{unit}": no matching portion found. '
            f"Available portions: {', '.join(available_portions)}. "
            f"{WEIGHT_UNIT_HINT}"
        )


class MalformedUpstreamDataError(NutritionError):
    """Raised when stored or fetched data violates the canonical record shape."""

    code = "malformed_upstream_data"
    prefix = "Malformed nutrition data"

    def __init__(self, detail: str, food_id: str | None = None) -> None:
        self.food_id = food_id
        super().__init__(detail)


class InvalidInputError(NutritionError):
    """Raised when caller input fails validation."""

    code = "invalid_input"
    prefix = "Invalid input"

    def __init__(self, field: str, value: object, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f'"{field}" = {value!r}: {reason}')


class UnitMismatchError(NutritionError):
    """Raised when a per-serving custom food is requested in another unit."""

    code = "unit_mismatch"
    prefix = "Unit mismatch"

    def __init__(self, requested_unit: str, stored_unit: str, food_id: str) -> None:
        self.requested_unit = requested_unit
        self.stored_unit = stored_unit
        self.food_id = food_id
        super().__init__(
            f'cannot convert unit "{requested_unit}" to unit "{stored_unit}" '
            f'for this custom food; it was saved per "{stored_unit}".'
        )


class MealItemError(NutritionError):
    """Raised when one item of a meal cannot be resolved."""

    code = "meal_item_failed"
    prefix = "Meal calculation failed"

    def __init__(self, index: int, food_id: str, cause: NutritionError) -> None:
        self.index = index
        self.food_id = food_id
        self.cause = cause
        super().__init__(f'item {index} (foodId: "{food_id}"): {cause}')
