"""Plan composition: line items and snapshot from recipes, biometrics and price."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from meal_subscriptions.domain.errors import InvalidArgument, NotFound
from meal_subscriptions.domain.nutrition import (
    DogBiometrics,
    DogRecord,
    PlanType,
    RecipeDensity,
)
from meal_subscriptions.domain.plans import (
    DEFAULT_BILLING_CYCLE,
    DEFAULT_BILLING_INTERVAL,
    ItemBilling,
    PlanComposition,
    PlanItemDraft,
    PlanRecord,
    PlanSnapshot,
    PriceResolution,
    RecipeRecord,
    SnapshotRecipe,
)
from meal_subscriptions.services.nutrition import (
    calculate_portions,
    parse_activity,
    pounds_to_kg,
    portion_multiplier,
)
from meal_subscriptions.services.pricing import PriceReconciler, split_unit_price

_logger = logging.getLogger(__name__)


class PlanRepository(Protocol):
    """Persistence interface for plans and their line items."""

    def get_plan(self, plan_id: UUID) -> PlanRecord | None:
        """Return a plan by id."""

    def get_dog(self, dog_id: UUID) -> DogRecord | None:
        """Return a dog profile by id."""

    def get_recipes(self, recipe_ids: list[UUID]) -> list[RecipeRecord]:
        """Return the recipes that exist among the given ids."""

    def list_plan_recipe_ids(self, plan_id: UUID) -> list[UUID]:
        """Return recipe ids of the plan's current line items."""

    def get_item_billing(self, plan_id: UUID) -> ItemBilling | None:
        """Return billing details of the plan's current line items."""

    def replace_plan_items(self, composition: PlanComposition) -> None:
        """Atomically replace line items, snapshot, total and plan type."""


@dataclass
class PlanComposer:
    """Service that re-materializes a plan whenever its recipe set changes."""

    repository: PlanRepository
    price_reconciler: PriceReconciler

    def update_recipes(self, plan_id: UUID, recipe_ids: list[UUID]) -> PlanComposition:
        """Replace the plan's recipes and recompute portions and prices."""
        if not recipe_ids:
            raise InvalidArgument("at least one recipe is required")
        plan = self._get_plan(plan_id)
        return self._compose(
            plan,
            recipe_ids,
            plan_type=plan.plan_type,
            topper_percentage=plan.topper_percentage,
        )

    def provision(
        self,
        plan_id: UUID,
        weight_lbs: float,
        activity_level: str,
        recipe_ids: list[UUID],
    ) -> PlanComposition:
        """Set up a manually provisioned plan from operator-entered biometrics.

        The dog's weight is entered in pounds. The dog profile is updated in the
        same write as the plan items.
        """
        if not recipe_ids:
            raise InvalidArgument("at least one recipe is required")
        if weight_lbs <= 0:
            raise InvalidArgument(f"weight must be positive, got {weight_lbs}")
        biometrics = DogBiometrics(
            weight_kg=pounds_to_kg(weight_lbs),
            activity=parse_activity(activity_level),
        )
        plan = self._get_plan(plan_id)
        return self._compose(
            plan,
            recipe_ids,
            plan_type=plan.plan_type,
            topper_percentage=plan.topper_percentage,
            dog_biometrics=biometrics,
        )

    def change_plan_type(
        self, plan_id: UUID, plan_type: PlanType, topper_percentage: int | None
    ) -> PlanComposition:
        """Switch between full and topper plans and resize the current recipes."""
        resolved_topper = None if plan_type == PlanType.FULL else topper_percentage
        portion_multiplier(plan_type, resolved_topper)
        plan = self._get_plan(plan_id)
        return self._compose(
            plan,
            self._current_recipe_ids(plan_id),
            plan_type=plan_type,
            topper_percentage=resolved_topper,
        )

    def resync_pricing(self, plan_id: UUID) -> PlanComposition:
        """Reprice the plan from the live subscription price."""
        plan = self._get_plan(plan_id)
        if not plan.stripe_subscription_id:
            raise InvalidArgument(f"plan {plan_id} has no linked subscription")
        pricing = self.price_reconciler.fetch_live_price(plan.stripe_subscription_id)
        return self._compose(
            plan,
            self._current_recipe_ids(plan_id),
            plan_type=plan.plan_type,
            topper_percentage=plan.topper_percentage,
            pricing=pricing,
        )

    def _compose(  # noqa: PLR0913
        self,
        plan: PlanRecord,
        recipe_ids: list[UUID],
        *,
        plan_type: PlanType,
        topper_percentage: int | None,
        pricing: PriceResolution | None = None,
        dog_biometrics: DogBiometrics | None = None,
    ) -> PlanComposition:
        unique_ids = list(dict.fromkeys(recipe_ids))
        if dog_biometrics is not None:
            self._get_dog(plan)
            biometrics = dog_biometrics
        else:
            biometrics = self._get_biometrics(plan)
        recipes = self._get_recipes(unique_ids)
        resolved_pricing = pricing or self.price_reconciler.resolve_total(plan)
        nutrition = calculate_portions(
            biometrics,
            plan_type,
            topper_percentage,
            [RecipeDensity(recipe.id, recipe.kcal_per_100g) for recipe in recipes],
        )
        unit_price = split_unit_price(resolved_pricing.total_cents, len(recipes))
        billing = self.repository.get_item_billing(plan.id)
        billing_interval = (
            resolved_pricing.billing_interval
            or (billing.billing_interval if billing else None)
            or DEFAULT_BILLING_INTERVAL
        )
        stripe_price_id = resolved_pricing.stripe_price_id or (
            billing.stripe_price_id if billing else None
        )
        variety = [
            {"id": str(recipe.id), "name": recipe.name, "slug": recipe.slug}
            for recipe in recipes
        ]
        items = [
            PlanItemDraft(
                plan_id=plan.id,
                recipe_id=recipe.id,
                quantity=1,
                size_g=portion.cycle_grams,
                unit_price_cents=unit_price,
                billing_interval=billing_interval,
                stripe_price_id=stripe_price_id,
                meta={"recipe_variety": variety},
            )
            for recipe, portion in zip(recipes, nutrition.portions, strict=True)
        ]
        snapshot = PlanSnapshot(
            recipes=[
                SnapshotRecipe(
                    id=str(recipe.id), name=recipe.name, slug=recipe.slug, quantity=1
                )
                for recipe in recipes
            ],
            total_cents=resolved_pricing.total_cents,
            billing_cycle=DEFAULT_BILLING_CYCLE,
            updated_at=datetime.now(tz=UTC),
        )
        composition = PlanComposition(
            plan_id=plan.id,
            plan_type=plan_type,
            topper_percentage=topper_percentage,
            items=items,
            snapshot=snapshot,
            pricing=resolved_pricing,
            nutrition=nutrition,
            dog_biometrics=dog_biometrics,
        )
        self.repository.replace_plan_items(composition)
        _logger.info(
            "Plan composed: plan_id=%s recipes=%s total_cents=%s source=%s "
            "unallocated_cents=%s",
            plan.id,
            len(items),
            resolved_pricing.total_cents,
            resolved_pricing.source,
            composition.unallocated_cents,
        )
        return composition

    def _get_plan(self, plan_id: UUID) -> PlanRecord:
        plan = self.repository.get_plan(plan_id)
        if plan is None:
            raise NotFound(f"plan {plan_id} not found")
        return plan

    def _get_dog(self, plan: PlanRecord) -> DogRecord:
        if plan.dog_id is None:
            raise NotFound(f"plan {plan.id} has no dog")
        dog = self.repository.get_dog(plan.dog_id)
        if dog is None:
            raise NotFound(f"dog {plan.dog_id} not found")
        return dog

    def _get_biometrics(self, plan: PlanRecord) -> DogBiometrics:
        dog = self._get_dog(plan)
        if dog.weight_kg <= 0:
            raise InvalidArgument(f"dog {dog.id} has no usable weight")
        return DogBiometrics(
            weight_kg=dog.weight_kg, activity=parse_activity(dog.activity_level)
        )

    def _get_recipes(self, recipe_ids: list[UUID]) -> list[RecipeRecord]:
        found = {recipe.id: recipe for recipe in self.repository.get_recipes(recipe_ids)}
        missing = [str(recipe_id) for recipe_id in recipe_ids if recipe_id not in found]
        if missing:
            raise NotFound(f"recipes not found: {', '.join(missing)}")
        return [found[recipe_id] for recipe_id in recipe_ids]

    def _current_recipe_ids(self, plan_id: UUID) -> list[UUID]:
        recipe_ids = self.repository.list_plan_recipe_ids(plan_id)
        if not recipe_ids:
            raise InvalidArgument(f"plan {plan_id} has no recipes")
        return recipe_ids


def snapshot_to_payload(snapshot: PlanSnapshot) -> dict[str, object]:
    """Serialize a snapshot for the plans.snapshot JSON column."""
    return {
        "total_cents": snapshot.total_cents,
        "billing_cycle": snapshot.billing_cycle,
        "recipes": [
            {
                "id": recipe.id,
                "name": recipe.name,
                "slug": recipe.slug,
                "quantity": recipe.quantity,
            }
            for recipe in snapshot.recipes
        ],
        "updated_at": snapshot.updated_at.isoformat() if snapshot.updated_at else None,
    }


def snapshot_from_payload(payload: object | None) -> PlanSnapshot:
    """Parse a stored snapshot, treating a missing one as empty."""
    if payload is None:
        return PlanSnapshot(recipes=[], total_cents=0)
    if not isinstance(payload, dict):
        raise InvalidArgument("plan snapshot is not an object")
    raw_recipes = payload.get("recipes") or []
    if not isinstance(raw_recipes, list):
        raise InvalidArgument("plan snapshot recipes is not a list")
    recipes = []
    for raw in raw_recipes:
        if not isinstance(raw, dict):
            raise InvalidArgument("plan snapshot recipe is not an object")
        quantity = raw.get("quantity")
        recipes.append(
            SnapshotRecipe(
                id=str(raw["id"]) if raw.get("id") else None,
                name=str(raw.get("name") or ""),
                slug=raw.get("slug"),
                quantity=quantity if isinstance(quantity, int) and quantity > 0 else 1,
            )
        )
    total = payload.get("total_cents")
    updated_at = payload.get("updated_at")
    return PlanSnapshot(
        recipes=recipes,
        total_cents=int(total) if isinstance(total, int | float) else 0,
        billing_cycle=str(payload.get("billing_cycle") or DEFAULT_BILLING_CYCLE),
        updated_at=(
            datetime.fromisoformat(updated_at) if isinstance(updated_at, str) else None
        ),
    )
