"""Tests for portion sizing math."""

from uuid import uuid4

import pytest

from meal_subscriptions.domain.errors import InvalidArgument
from meal_subscriptions.domain.nutrition import (
    ActivityLevel,
    DogBiometrics,
    PlanType,
    RecipeDensity,
)
from meal_subscriptions.services.nutrition import (
    BIWEEKLY_CYCLE_DAYS,
    calculate_portions,
    daily_energy_requirement,
    parse_activity,
    parse_plan_type,
    pounds_to_kg,
    resting_energy_requirement,
)


def _recipe(kcal: float | None = 160) -> RecipeDensity:
    return RecipeDensity(recipe_id=uuid4(), kcal_per_100g=kcal)


def test_resting_energy_requirement_follows_formula() -> None:
    assert resting_energy_requirement(20) == pytest.approx(1040.3, abs=0.5)
    assert resting_energy_requirement(1) == pytest.approx(110)


def test_daily_energy_requirement_by_activity() -> None:
    low = daily_energy_requirement(DogBiometrics(20, ActivityLevel.LOW))
    moderate = daily_energy_requirement(DogBiometrics(20, ActivityLevel.MODERATE))
    high = daily_energy_requirement(DogBiometrics(20, ActivityLevel.HIGH))

    assert moderate == pytest.approx(1040.3, abs=0.5)
    assert low == pytest.approx(832.3, abs=0.5)
    assert high == pytest.approx(1248.4, abs=0.5)


def test_single_recipe_full_plan_portion() -> None:
    recipe = _recipe()
    plan = calculate_portions(
        DogBiometrics(20, ActivityLevel.MODERATE), PlanType.FULL, None, [recipe]
    )

    portion = plan.portions[0]
    assert plan.cycle_days == BIWEEKLY_CYCLE_DAYS
    assert portion.recipe_id == recipe.recipe_id
    assert portion.daily_grams == pytest.approx(650.2, abs=0.1)
    assert portion.cycle_grams == 9103
    assert isinstance(portion.cycle_grams, int)


def test_grams_increase_with_weight() -> None:
    recipe = _recipe()
    grams = [
        calculate_portions(
            DogBiometrics(weight, ActivityLevel.MODERATE),
            PlanType.FULL,
            None,
            [recipe],
        )
        .portions[0]
        .cycle_grams
        for weight in (2, 5, 10, 20, 40)
    ]

    assert grams == sorted(grams)
    assert len(set(grams)) == len(grams)


def test_grams_increase_with_activity() -> None:
    recipe = _recipe()
    grams = [
        calculate_portions(
            DogBiometrics(15, activity), PlanType.FULL, None, [recipe]
        )
        .portions[0]
        .cycle_grams
        for activity in (ActivityLevel.LOW, ActivityLevel.MODERATE, ActivityLevel.HIGH)
    ]

    assert grams[0] < grams[1] < grams[2]


def test_topper_half_is_half_of_full() -> None:
    biometrics = DogBiometrics(20, ActivityLevel.HIGH)
    recipes = [_recipe()]

    full = calculate_portions(biometrics, PlanType.FULL, None, recipes)
    topper = calculate_portions(biometrics, PlanType.TOPPER, 50, recipes)

    assert topper.daily_kcal == pytest.approx(full.daily_kcal / 2)
    assert topper.der == pytest.approx(full.der)


def test_calories_split_evenly_across_recipes() -> None:
    biometrics = DogBiometrics(20, ActivityLevel.MODERATE)
    lean, rich = _recipe(120), _recipe(240)

    plan = calculate_portions(biometrics, PlanType.FULL, None, [lean, rich])

    assert plan.portions[0].daily_kcal == pytest.approx(plan.daily_kcal / 2)
    assert plan.portions[1].daily_kcal == pytest.approx(plan.daily_kcal / 2)
    assert plan.portions[0].daily_grams == pytest.approx(
        plan.portions[1].daily_grams * 2
    )


def test_missing_density_defaults_to_160() -> None:
    biometrics = DogBiometrics(10, ActivityLevel.LOW)

    plan = calculate_portions(
        biometrics, PlanType.FULL, None, [_recipe(None), _recipe(0), _recipe(160)]
    )

    assert {portion.kcal_per_100g for portion in plan.portions} == {160.0}
    assert len({portion.cycle_grams for portion in plan.portions}) == 1


def test_calculation_is_deterministic() -> None:
    recipe = _recipe(175)
    biometrics = DogBiometrics(12.5, ActivityLevel.HIGH)

    first = calculate_portions(biometrics, PlanType.TOPPER, 75, [recipe])
    second = calculate_portions(biometrics, PlanType.TOPPER, 75, [recipe])

    assert first == second


def test_empty_recipe_list_is_rejected() -> None:
    with pytest.raises(InvalidArgument):
        calculate_portions(
            DogBiometrics(10, ActivityLevel.LOW), PlanType.FULL, None, []
        )


@pytest.mark.parametrize("weight", [0, -3])
def test_non_positive_weight_is_rejected(weight: float) -> None:
    with pytest.raises(InvalidArgument):
        calculate_portions(
            DogBiometrics(weight, ActivityLevel.LOW), PlanType.FULL, None, [_recipe()]
        )


@pytest.mark.parametrize("percentage", [None, 0, 30, 100])
def test_topper_requires_known_percentage(percentage: int | None) -> None:
    with pytest.raises(InvalidArgument):
        calculate_portions(
            DogBiometrics(10, ActivityLevel.LOW),
            PlanType.TOPPER,
            percentage,
            [_recipe()],
        )


def test_parsers() -> None:
    assert parse_activity(" High ") == ActivityLevel.HIGH
    assert parse_plan_type(None) == PlanType.FULL
    assert parse_plan_type("topper") == PlanType.TOPPER
    with pytest.raises(InvalidArgument):
        parse_activity("couch")
    with pytest.raises(InvalidArgument):
        parse_plan_type("half")


def test_pounds_to_kg() -> None:
    assert pounds_to_kg(44) == pytest.approx(19.958, abs=0.001)
