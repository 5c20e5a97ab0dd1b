"""Nutrition domain models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")

MANDATORY_NUTRIENTS = ("calories", "protein_g", "total_carbs_g", "total_fat_g")

OPTIONAL_NUTRIENTS = (
    "fiber_g",
    "sugar_g",
    "saturated_fat_g",
    "sodium_mg",
    "cholesterol_mg",
)


class FoodSource(str, Enum):
    """Where a food record comes from."""

    USDA = "usda"
    OPEN_FOOD_FACTS = "openfoodfacts"
    CUSTOM = "custom"

    @property
    def label(self) -> str:
        """Human-readable provider name."""
        return _SOURCE_LABELS[self]


_SOURCE_LABELS = {
    FoodSource.USDA: "USDA",
    FoodSource.OPEN_FOOD_FACTS: "Open Food Facts",
    FoodSource.CUSTOM: "Custom foods",
}


class Freshness(str, Enum):
    """How a value was resolved: live call, fresh cache hit or expired cache."""

    LIVE = "live"
    CACHE = "cache"
    STALE = "stale"

    @property
    def rank(self) -> int:
        """Ordering used to pick the least fresh of several values."""
        return _FRESHNESS_RANK[self]


_FRESHNESS_RANK = {Freshness.LIVE: 0, Freshness.CACHE: 1, Freshness.STALE: 2}


def least_fresh(first: Freshness, second: Freshness) -> Freshness:
    """Return the least fresh of two values (stale > cache > live)."""
    return first if first.rank >= second.rank else second


class Coverage(str, Enum):
    """Whether a nutrient was available across all, some or none of the items."""

    FULL = "full"
    PARTIAL = "partial"
    NONE = "none"


class StorageMode(str, Enum):
    """How nutrient values of a record are stored."""

    PER_100G = "per-100g"
    PER_SERVING = "per-serving"


@dataclass(frozen=True)
class NutrientValue:
    """A nutrient amount that distinguishes a measured zero from missing data."""

    value: float
    available: bool

    @classmethod
    def missing(cls) -> "NutrientValue":
        """Return the placeholder used for unavailable nutrients."""
        return cls(value=0.0, available=False)

    def to_payload(self) -> dict[str, object]:
        return {"value": self.value, "available": self.available}

    @classmethod
    def from_payload(cls, payload: dict[str, object]) -> "NutrientValue":
        available = bool(payload.get("available", False))
        value = float(payload.get("value", 0.0)) if available else 0.0
        return cls(value=value, available=available)


@dataclass(frozen=True)
class ServingSize:
    """Reference amount that nutrient values are expressed against."""

    amount: float
    unit: str


@dataclass(frozen=True)
class PortionData:
    """One real-world serving equivalence for a food, e.g. 1 medium = 118 g."""

    description: str
    gram_weight: float
    amount: float
    modifier: str | None = None

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "description": self.description,
            "gram_weight": self.gram_weight,
            "amount": self.amount,
        }
        if self.modifier is not None:
            payload["modifier"] = self.modifier
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, object]) -> "PortionData":
        modifier = payload.get("modifier")
        return cls(
            description=str(payload.get("description", "")),
            gram_weight=float(payload.get("gram_weight", 0.0)),
            amount=float(payload.get("amount", 0.0)),
            modifier=str(modifier) if modifier is not None else None,
        )


@dataclass(frozen=True)
class NutritionRecord:
    """Canonical per-food nutrition record shared by every source."""

    food_id: str
    source: FoodSource
    name: str
    serving_size: ServingSize
    storage_mode: StorageMode
    nutrients: dict[str, NutrientValue]
    portions: list[PortionData] | None = None
    density_g_per_ml: float | None = None
    has_filtered_junk_portions: bool = False

    def to_payload(self) -> dict[str, object]:
        """Serialize to a JSON-compatible dict for persistence."""
        payload: dict[str, object] = {
            "food_id": self.food_id,
            "source": self.source.value,
            "name": self.name,
            "serving_size": {
                "amount": self.serving_size.amount,
                "unit": self.serving_size.unit,
            },
            "storage_mode": self.storage_mode.value,
            "nutrients": {
                key: nutrient.to_payload() for key, nutrient in self.nutrients.items()
            },
        }
        if self.portions is not None:
            payload["portions"] = [portion.to_payload() for portion in self.portions]
        if self.density_g_per_ml is not None:
            payload["density_g_per_ml"] = self.density_g_per_ml
        if self.has_filtered_junk_portions:
            payload["has_filtered_junk_portions"] = True
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, object]) -> "NutritionRecord":
        """Rebuild a record from its persisted JSON form."""
        serving = payload.get("serving_size") or {}
        raw_nutrients = payload.get("nutrients") or {}
        raw_portions = payload.get("portions")
        density = payload.get("density_g_per_ml")
        return cls(
            food_id=str(payload["food_id"]),
            source=FoodSource(payload["source"]),
            name=str(payload.get("name", "")),
            serving_size=ServingSize(
                amount=float(serving.get("amount", 100)),
                unit=str(serving.get("unit", "g")),
            ),
            storage_mode=StorageMode(payload.get("storage_mode", "per-100g")),
            nutrients={
                str(key): NutrientValue.from_payload(value)
                for key, value in raw_nutrients.items()
            },
            portions=(
                [PortionData.from_payload(item) for item in raw_portions]
                if isinstance(raw_portions, list)
                else None
            ),
            density_g_per_ml=float(density) if density is not None else None,
            has_filtered_junk_portions=bool(
                payload.get("has_filtered_junk_portions", False)
            ),
        )


@dataclass(frozen=True)
class SearchResult:
    """One food returned by a search."""

    id: str
    source: FoodSource
    name: str
    brand: str | None
    match_score: float

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "source": self.source.value,
            "name": self.name,
            "brand": self.brand,
            "match_score": self.match_score,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, object]) -> "SearchResult":
        brand = payload.get("brand")
        return cls(
            id=str(payload["id"]),
            source=FoodSource(payload["source"]),
            name=str(payload.get("name", "")),
            brand=str(brand) if brand is not None else None,
            match_score=float(payload.get("match_score", 0.0)),
        )


@dataclass(frozen=True)
class Cached(Generic[T]):
    """A value paired with how fresh it is."""

    data: T
    freshness: Freshness


@dataclass(frozen=True)
class NutritionResult:
    """Nutrients for a requested amount of a single food."""

    food_id: str
    source: FoodSource
    serving_description: str
    nutrients: dict[str, NutrientValue]
    freshness: Freshness = Freshness.LIVE
    warnings: list[str] = field(default_factory=list)


def empty_nutrients() -> dict[str, NutrientValue]:
    """Return a nutrient map with every mandatory key marked unavailable."""
    return {key: NutrientValue.missing() for key in MANDATORY_NUTRIENTS}
