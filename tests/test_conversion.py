"""Tests for unit conversion into grams."""

import pytest

from nutrition_aggregator.domain.errors import (
    AmbiguousConversionError,
    MalformedUpstreamDataError,
    MissingConversionDataError,
    UnsupportedUnitError,
)
from nutrition_aggregator.domain.nutrition import PortionData
from nutrition_aggregator.services.conversion import (
    ConversionContext,
    canonical_unit,
    is_natural_unit,
    resolve,
    supported_units,
)


def _portions(*items: tuple[str, float]) -> ConversionContext:
    return ConversionContext(
        portions=[
            PortionData(description=description, gram_weight=grams, amount=1)
            for description, grams in items
        ]
    )


@pytest.mark.parametrize(
    ("amount", "unit", "grams"),
    [
        (150, "g", 150),
        (1.5, "kg", 1500),
        (2, "oz", 56.699),
        (1, "lb", 453.592),
        (3, "G", 3),
    ],
)
def test_weight_units_convert_directly(amount: float, unit: str, grams: float) -> None:
    assert resolve(amount, unit) == pytest.approx(grams)


def test_volume_uses_density() -> None:
    context = ConversionContext(density_g_per_ml=1.03)

    assert resolve(1, "cup", context) == pytest.approx(236.588 * 1.03)
    assert resolve(2, "tbsp", context) == pytest.approx(2 * 14.787 * 1.03)
    assert resolve(250, "ml", context) == pytest.approx(250 * 1.03)


def test_volume_without_density_names_the_gap() -> None:
    with pytest.raises(MissingConversionDataError) as exc_info:
        resolve(1, "cup")

    message = str(exc_info.value)
    assert exc_info.value.kind == "density"
    assert "density" in message
    assert "weight unit" in message


def test_unsupported_unit_lists_supported_units() -> None:
    with pytest.raises(UnsupportedUnitError) as exc_info:
        resolve(1, "handful")

    assert exc_info.value.supported == supported_units()
    assert "tbsp" in str(exc_info.value)


def test_canonical_unit_is_case_insensitive() -> None:
    assert canonical_unit("ML") == "mL"
    assert canonical_unit("Fl_Oz") == "fl_oz"
    assert canonical_unit("bushel") is None


def test_keyword_match_wins_over_natural_fallback() -> None:
    context = _portions(("1 piece", 50), ("1 cookie", 30))

    assert resolve(1, "piece", context) == 50


def test_piece_falls_back_to_lightest_natural_unit() -> None:
    context = _portions(("1 cup, sliced", 150), ("1 fruit", 182), ("1 wedge", 20))

    assert resolve(2, "piece", context) == 40


def test_single_natural_unit_serves_any_size() -> None:
    context = _portions(("1 banana", 118))

    assert resolve(1, "medium", context) == 118
    assert resolve(1, "large", context) == 118


def test_size_keywords_rank_natural_units_by_weight() -> None:
    context = _portions(("1 egg", 50), ("1 egg", 63), ("1 egg", 38))

    assert resolve(1, "small", context) == 38
    assert resolve(1, "medium", context) == 50
    assert resolve(1, "large", context) == 63


def test_modifier_matches_keyword() -> None:
    context = ConversionContext(
        portions=[
            PortionData(description="1 fruit", gram_weight=101, amount=1, modifier="small"),
            PortionData(description="1 fruit", gram_weight=150, amount=1, modifier="large"),
        ]
    )

    assert resolve(1, "large", context) == 150


def test_portion_amount_divides_weight() -> None:
    context = ConversionContext(
        portions=[PortionData(description="2 slices", gram_weight=56, amount=2)]
    )

    assert resolve(3, "slice", context) == pytest.approx(84)


def test_no_portions_reports_missing_data() -> None:
    with pytest.raises(MissingConversionDataError) as exc_info:
        resolve(1, "piece", ConversionContext())

    assert exc_info.value.kind == "portions"


def test_filtered_portions_report_unusable_data() -> None:
    with pytest.raises(MissingConversionDataError) as exc_info:
        resolve(1, "slice", ConversionContext(has_filtered_junk_portions=True))

    assert exc_info.value.kind == "unusable_portions"
    assert "not usable" in str(exc_info.value)


def test_unmatched_portions_are_ambiguous() -> None:
    context = _portions(("1 cup, chopped", 150), ("1 tbsp", 9))

    with pytest.raises(AmbiguousConversionError) as exc_info:
        resolve(1, "medium", context)

    assert exc_info.value.available_portions == ["1 cup, chopped", "1 tbsp"]
    assert "Available portions: 1 cup, chopped, 1 tbsp" in str(exc_info.value)


def test_matched_portion_with_zero_amount_is_malformed() -> None:
    context = ConversionContext(
        portions=[PortionData(description="piece", gram_weight=10, amount=0)]
    )

    with pytest.raises(MalformedUpstreamDataError):
        resolve(1, "piece", context)


def test_natural_unit_detection() -> None:
    assert is_natural_unit(PortionData("1 banana", 118, 1))
    assert not is_natural_unit(PortionData("1 cup, sliced", 150, 1))
    assert not is_natural_unit(PortionData("1 oz", 28, 1))
    assert not is_natural_unit(PortionData("2 bananas", 236, 2))
