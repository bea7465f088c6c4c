"""Supabase repository for plans, dogs, recipes and plan items."""

from dataclasses import dataclass
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import Client

from meal_subscriptions.domain.errors import InvalidArgument, PersistenceError
from meal_subscriptions.domain.nutrition import DogRecord
from meal_subscriptions.domain.plans import (
    DEFAULT_BILLING_INTERVAL,
    ItemBilling,
    PlanComposition,
    PlanRecord,
    RecipeRecord,
)
from meal_subscriptions.services.nutrition import parse_plan_type
from meal_subscriptions.services.plans import PlanRepository, snapshot_to_payload

PLAN_COLUMNS = (
    "id, user_id, dog_id, plan_type, topper_level, total_cents, snapshot, "
    "stripe_subscription_id, delivery_zipcode"
)


@dataclass
class SupabasePlanRepository(PlanRepository):
    """Supabase implementation for plan composition."""

    client: Client

    def get_plan(self, plan_id: UUID) -> PlanRecord | None:
        """Return a plan by id."""
        response = (
            self.client.table("plans")
            .select(PLAN_COLUMNS)
            .eq("id", str(plan_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return parse_plan_row(response.data[0])

    def get_dog(self, dog_id: UUID) -> DogRecord | None:
        """Return a dog profile by id."""
        response = (
            self.client.table("dogs")
            .select("id, weight_kg, activity_level")
            .eq("id", str(dog_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return DogRecord(
            id=UUID(row["id"]),
            weight_kg=float(row.get("weight_kg") or 0.0),
            activity_level=str(row.get("activity_level") or "moderate"),
        )

    def get_recipes(self, recipe_ids: list[UUID]) -> list[RecipeRecord]:
        """Return recipes for the given ids."""
        response = (
            self.client.table("recipes")
            .select("id, name, slug, kcal_per_100g")
            .in_("id", [str(recipe_id) for recipe_id in recipe_ids])
            .execute()
        )
        return [
            RecipeRecord(
                id=UUID(row["id"]),
                name=str(row.get("name") or ""),
                slug=row.get("slug"),
                kcal_per_100g=(
                    float(row["kcal_per_100g"]) if row.get("kcal_per_100g") else None
                ),
            )
            for row in response.data or []
        ]

    def list_plan_recipe_ids(self, plan_id: UUID) -> list[UUID]:
        """Return recipe ids of the plan's line items."""
        response = (
            self.client.table("plan_items")
            .select("recipe_id")
            .eq("plan_id", str(plan_id))
            .order("id", desc=False)
            .execute()
        )
        return [UUID(row["recipe_id"]) for row in response.data or []]

    def get_item_billing(self, plan_id: UUID) -> ItemBilling | None:
        """Return billing details of an existing line item."""
        response = (
            self.client.table("plan_items")
            .select("stripe_price_id, billing_interval")
            .eq("plan_id", str(plan_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return ItemBilling(
            stripe_price_id=row.get("stripe_price_id"),
            billing_interval=str(row.get("billing_interval") or DEFAULT_BILLING_INTERVAL),
        )

    def replace_plan_items(self, composition: PlanComposition) -> None:
        """Replace items and snapshot through the transactional SQL function."""
        items = [
            {
                "recipe_id": str(item.recipe_id),
                "qty": item.quantity,
                "size_g": item.size_g,
                "unit_price_cents": item.unit_price_cents,
                "billing_interval": item.billing_interval,
                "stripe_price_id": item.stripe_price_id,
                "meta": item.meta,
            }
            for item in composition.items
        ]
        try:
            self.client.rpc(
                "replace_plan_items",
                {
                    "p_plan_id": str(composition.plan_id),
                    "p_items": items,
                    "p_snapshot": snapshot_to_payload(composition.snapshot),
                    "p_total_cents": composition.pricing.total_cents,
                    "p_plan_type": composition.plan_type.value,
                    "p_topper_level": (
                        str(composition.topper_percentage)
                        if composition.topper_percentage
                        else None
                    ),
                    "p_dog_weight_kg": (
                        composition.dog_biometrics.weight_kg
                        if composition.dog_biometrics
                        else None
                    ),
                    "p_dog_activity_level": (
                        composition.dog_biometrics.activity.value
                        if composition.dog_biometrics
                        else None
                    ),
                },
            ).execute()
        except APIError as exc:
            raise PersistenceError(
                f"failed to replace plan items for plan {composition.plan_id}: "
                f"{exc.message}"
            ) from exc


def parse_plan_row(row: dict[str, object]) -> PlanRecord:
    """Build a plan record from a plans row."""
    return PlanRecord(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        dog_id=UUID(str(row["dog_id"])) if row.get("dog_id") else None,
        plan_type=parse_plan_type(row.get("plan_type")),
        topper_percentage=_parse_topper_level(row.get("topper_level")),
        total_cents=int(row.get("total_cents") or 0),
        snapshot=row.get("snapshot"),
        stripe_subscription_id=row.get("stripe_subscription_id"),
        delivery_zipcode=row.get("delivery_zipcode"),
    )


def _parse_topper_level(value: object) -> int | None:
    if value in (None, ""):
        return None
    try:
        return int(str(value))
    except ValueError as exc:
        raise InvalidArgument(f"invalid topper level: {value!r}") from exc
