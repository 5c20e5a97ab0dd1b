"""Domain models for user-declared custom foods."""

from dataclasses import dataclass, field

from nutrition_aggregator.domain.nutrition import FoodSource, ServingSize


@dataclass(frozen=True)
class SaveFoodInput:
    """A food declared by the user with nutrients for one serving."""

    name: str
    serving_size: ServingSize
    nutrients: dict[str, float]
    brand: str | None = None
    category: str | None = None


@dataclass(frozen=True)
class SaveFoodResult:
    """Identifier assigned to a saved custom food."""

    id: str
    source: FoodSource = FoodSource.CUSTOM


@dataclass(frozen=True)
class CustomFoodRow:
    """Persisted custom food row."""

    id: str
    name: str
    brand: str | None
    category: str | None
    data: dict[str, object] = field(default_factory=dict)
    created_at: int = 0
    expires_at: int = 0
