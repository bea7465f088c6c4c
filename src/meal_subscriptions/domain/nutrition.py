"""Nutrition domain models."""

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID


class ActivityLevel(StrEnum):
    """Activity tier of a dog."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class PlanType(StrEnum):
    """Whether a plan feeds the full diet or tops an existing one."""

    FULL = "full"
    TOPPER = "topper"


@dataclass(frozen=True)
class DogBiometrics:
    """Inputs to the energy requirement math."""

    weight_kg: float
    activity: ActivityLevel


@dataclass(frozen=True)
class DogRecord:
    """Dog profile row."""

    id: UUID
    weight_kg: float
    activity_level: str


@dataclass(frozen=True)
class RecipeDensity:
    """Calorie density input for a selected recipe."""

    recipe_id: UUID
    kcal_per_100g: float | None


@dataclass(frozen=True)
class RecipePortion:
    """Portion of a single recipe for one billing cycle."""

    recipe_id: UUID
    kcal_per_100g: float
    daily_kcal: float
    daily_grams: float
    cycle_grams: int


@dataclass(frozen=True)
class NutritionPlan:
    """Energy requirements and per-recipe portions."""

    rer: float
    der: float
    daily_kcal: float
    cycle_days: int
    portions: list[RecipePortion]
