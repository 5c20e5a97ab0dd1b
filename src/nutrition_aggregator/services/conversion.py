"""Conversion of user amounts and units into grams.

Weight units convert directly. Volume units need the food's density.
Descriptive units (piece, slice, small, medium, large) are matched against
the food's portion data in three tiers:

1. a portion whose description or modifier contains the unit keyword;
2. for ``piece``, the lightest natural-unit portion;
3. for size keywords, a natural-unit portion picked by weight rank.

A natural unit is a portion for exactly one countable item, e.g.
"1 banana", as opposed to "1 cup, sliced" or "1 oz".
"""

import re
from dataclasses import dataclass

from nutrition_aggregator.domain.errors import (
    AmbiguousConversionError,
    MalformedUpstreamDataError,
    MissingConversionDataError,
    UnsupportedUnitError,
)
from nutrition_aggregator.domain.nutrition import NutritionRecord, PortionData

WEIGHT_TO_GRAMS = {
    "g": 1.0,
    "kg": 1000.0,
    "oz": 28.3495,
    "lb": 453.592,
}

VOLUME_TO_ML = {
    "mL": 1.0,
    "L": 1000.0,
    "cup": 236.588,
    "tbsp": 14.787,
    "tsp": 4.929,
    "fl_oz": 29.574,
}

DESCRIPTIVE_UNITS = ("piece", "slice", "small", "medium", "large")
SIZE_KEYWORDS = ("small", "medium", "large")

_MEASUREMENT_RE = re.compile(
    r"\b(cups?|tbsp|tablespoons?|tsp|teaspoons?|oz|g|ml|slices?|inch(es)?|fl[ _]?oz)\b"
)


@dataclass(frozen=True)
class ConversionContext:
    """Per-food metadata used to convert non-weight units."""

    density_g_per_ml: float | None = None
    portions: list[PortionData] | None = None
    has_filtered_junk_portions: bool = False

    @classmethod
    def from_record(cls, record: NutritionRecord) -> "ConversionContext":
        return cls(
            density_g_per_ml=record.density_g_per_ml,
            portions=record.portions,
            has_filtered_junk_portions=record.has_filtered_junk_portions,
        )


def supported_units() -> list[str]:
    """Every unit accepted by resolve, weight then volume then descriptive."""
    return [*WEIGHT_TO_GRAMS, *VOLUME_TO_ML, *DESCRIPTIVE_UNITS]


def canonical_unit(unit: str) -> str | None:
    """Return the table spelling of unit (case-insensitive), if supported."""
    if unit in WEIGHT_TO_GRAMS or unit in VOLUME_TO_ML or unit in DESCRIPTIVE_UNITS:
        return unit
    lowered = unit.strip().lower()
    for known in supported_units():
        if known.lower() == lowered:
            return known
    return None


def is_weight_unit(unit: str) -> bool:
    return canonical_unit(unit) in WEIGHT_TO_GRAMS


def is_volume_unit(unit: str) -> bool:
    return canonical_unit(unit) in VOLUME_TO_ML


def is_descriptive_unit(unit: str) -> bool:
    return canonical_unit(unit) in DESCRIPTIVE_UNITS


def weight_to_grams(amount: float, unit: str) -> float:
    """Convert a weight amount to grams."""
    canonical = canonical_unit(unit)
    if canonical not in WEIGHT_TO_GRAMS:
        raise UnsupportedUnitError(unit, list(WEIGHT_TO_GRAMS))
    return amount * WEIGHT_TO_GRAMS[canonical]


def volume_to_ml(amount: float, unit: str) -> float:
    """Convert a volume amount to milliliters."""
    canonical = canonical_unit(unit)
    if canonical not in VOLUME_TO_ML:
        raise UnsupportedUnitError(unit, list(VOLUME_TO_ML))
    return amount * VOLUME_TO_ML[canonical]


def resolve(
    amount: float, unit: str, context: ConversionContext | None = None
) -> float:
    """Convert amount of unit into grams for a food."""
    context = context or ConversionContext()
    canonical = canonical_unit(unit)
    if canonical is None:
        raise UnsupportedUnitError(unit, supported_units())

    if canonical in WEIGHT_TO_GRAMS:
        return amount * WEIGHT_TO_GRAMS[canonical]

    if canonical in VOLUME_TO_ML:
        if context.density_g_per_ml is None:
            raise MissingConversionDataError(canonical, "density")
        return amount * VOLUME_TO_ML[canonical] * context.density_g_per_ml

    portion = match_portion(canonical, context)
    if portion.amount <= 0:
        raise MalformedUpstreamDataError(
            f'portion "{portion.description}" has non-positive amount {portion.amount}.'
        )
    return (amount / portion.amount) * portion.gram_weight


def match_portion(unit: str, context: ConversionContext) -> PortionData:
    """Pick the portion that a descriptive unit refers to."""
    portions = context.portions or []
    if not portions:
        if context.has_filtered_junk_portions:
            raise MissingConversionDataError(unit, "unusable_portions")
        raise MissingConversionDataError(unit, "portions")

    exact = _find_keyword_match(unit, portions)
    if exact is not None:
        return exact

    naturals = sorted(
        (portion for portion in portions if is_natural_unit(portion)),
        key=lambda portion: portion.gram_weight,
    )
    if naturals and unit == "piece":
        return naturals[0]
    if naturals and unit in SIZE_KEYWORDS:
        return _pick_by_size(unit, naturals)

    raise AmbiguousConversionError(
        unit, [portion.description for portion in portions]
    )


def is_natural_unit(portion: PortionData) -> bool:
    """True for a single countable item with no measurement keyword."""
    return portion.amount == 1 and not _MEASUREMENT_RE.search(
        portion.description.lower()
    )


def _find_keyword_match(unit: str, portions: list[PortionData]) -> PortionData | None:
    keyword = unit.lower()
    for portion in portions:
        if keyword in portion.description.lower():
            return portion
        if portion.modifier and keyword in portion.modifier.lower():
            return portion
    return None


def _pick_by_size(unit: str, naturals: list[PortionData]) -> PortionData:
    """naturals must be sorted ascending by gram weight."""
    if len(naturals) == 1:
        return naturals[0]
    if unit == "small":
        return naturals[0]
    if unit == "large":
        return naturals[-1]
    return naturals[len(naturals) // 2]
