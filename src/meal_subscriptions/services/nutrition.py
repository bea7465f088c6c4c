"""Portion sizing from dog energy requirements."""

from meal_subscriptions.domain.errors import InvalidArgument
from meal_subscriptions.domain.nutrition import (
    ActivityLevel,
    DogBiometrics,
    NutritionPlan,
    PlanType,
    RecipeDensity,
    RecipePortion,
)

# Product constant: every plan ships on a biweekly cadence, whatever interval
# the payment subscription is billed on.
BIWEEKLY_CYCLE_DAYS = 14

DEFAULT_KCAL_PER_100G = 160.0
TOPPER_PERCENTAGES = frozenset({25, 50, 75})
POUNDS_TO_KG = 0.453592

_ACTIVITY_MULTIPLIERS = {
    ActivityLevel.LOW: 0.8,
    ActivityLevel.MODERATE: 1.0,
    ActivityLevel.HIGH: 1.2,
}


def resting_energy_requirement(weight_kg: float) -> float:
    """Return RER in kcal/day: 110 * kg^0.75."""
    if weight_kg <= 0:
        raise InvalidArgument(f"weight must be positive, got {weight_kg}")
    return 110 * weight_kg**0.75


def daily_energy_requirement(biometrics: DogBiometrics) -> float:
    """Return DER in kcal/day for the dog's activity tier."""
    rer = resting_energy_requirement(biometrics.weight_kg)
    return rer * _ACTIVITY_MULTIPLIERS[biometrics.activity]


def portion_multiplier(plan_type: PlanType, topper_percentage: int | None) -> float:
    """Share of the daily requirement a plan covers."""
    if plan_type == PlanType.FULL:
        return 1.0
    if topper_percentage not in TOPPER_PERCENTAGES:
        raise InvalidArgument(
            f"topper plans need a percentage of 25, 50 or 75, got {topper_percentage}"
        )
    return topper_percentage / 100


def calculate_portions(
    biometrics: DogBiometrics,
    plan_type: PlanType,
    topper_percentage: int | None,
    recipes: list[RecipeDensity],
    cycle_days: int = BIWEEKLY_CYCLE_DAYS,
) -> NutritionPlan:
    """Split the dog's daily calories evenly across recipes and size each portion.

    Grams per recipe are ``daily_kcal / (kcal_per_100g * 10) * 1000`` per day,
    rounded to whole grams over ``cycle_days``.
    """
    if not recipes:
        raise InvalidArgument("at least one recipe is required")
    rer = resting_energy_requirement(biometrics.weight_kg)
    der = rer * _ACTIVITY_MULTIPLIERS[biometrics.activity]
    daily_kcal = der * portion_multiplier(plan_type, topper_percentage)
    daily_kcal_per_recipe = daily_kcal / len(recipes)

    portions = []
    for recipe in recipes:
        kcal_per_100g = recipe.kcal_per_100g or DEFAULT_KCAL_PER_100G
        daily_grams = (daily_kcal_per_recipe / (kcal_per_100g * 10)) * 1000
        portions.append(
            RecipePortion(
                recipe_id=recipe.recipe_id,
                kcal_per_100g=kcal_per_100g,
                daily_kcal=daily_kcal_per_recipe,
                daily_grams=daily_grams,
                cycle_grams=max(round(daily_grams * cycle_days), 0),
            )
        )
    return NutritionPlan(
        rer=rer,
        der=der,
        daily_kcal=daily_kcal,
        cycle_days=cycle_days,
        portions=portions,
    )


def parse_activity(value: str | None) -> ActivityLevel:
    """Parse a stored activity level."""
    try:
        return ActivityLevel(str(value).strip().lower())
    except ValueError as exc:
        raise InvalidArgument(f"unknown activity level: {value}") from exc


def parse_plan_type(value: str | None) -> PlanType:
    """Parse a stored plan type, treating a missing value as a full plan."""
    if value is None or value == "":
        return PlanType.FULL
    try:
        return PlanType(str(value).strip().lower())
    except ValueError as exc:
        raise InvalidArgument(f"unknown plan type: {value}") from exc


def pounds_to_kg(weight_lbs: float) -> float:
    """Convert a weight in pounds to kilograms."""
    return weight_lbs * POUNDS_TO_KG
