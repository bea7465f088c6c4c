"""Domain models for plans and their line items."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from meal_subscriptions.domain.nutrition import DogBiometrics, NutritionPlan, PlanType

DEFAULT_BILLING_CYCLE = "every_2_weeks"
DEFAULT_BILLING_INTERVAL = "week"


@dataclass(frozen=True)
class RecipeRecord:
    """Recipe reference data."""

    id: UUID
    name: str
    slug: str | None
    kcal_per_100g: float | None


@dataclass(frozen=True)
class PlanRecord:
    """Customer plan row.

    ``snapshot`` holds the raw JSON payload stored on the plan; it is parsed
    lazily so that a malformed snapshot only affects the caller reading it.
    """

    id: UUID
    user_id: UUID
    dog_id: UUID | None
    plan_type: PlanType
    topper_percentage: int | None
    total_cents: int
    snapshot: object | None = None
    stripe_subscription_id: str | None = None
    delivery_zipcode: str | None = None


@dataclass(frozen=True)
class SnapshotRecipe:
    """Recipe entry frozen into a plan snapshot."""

    id: str | None
    name: str
    slug: str | None = None
    quantity: int = 1


@dataclass(frozen=True)
class PlanSnapshot:
    """Denormalized recipe list and pricing stored on a plan."""

    recipes: list[SnapshotRecipe]
    total_cents: int
    billing_cycle: str = DEFAULT_BILLING_CYCLE
    updated_at: datetime | None = None


@dataclass(frozen=True)
class ItemBilling:
    """Billing details carried over between line item sets."""

    stripe_price_id: str | None
    billing_interval: str


@dataclass(frozen=True)
class PlanItemDraft:
    """Line item to be written for a plan."""

    plan_id: UUID
    recipe_id: UUID
    quantity: int
    size_g: int
    unit_price_cents: int
    billing_interval: str
    stripe_price_id: str | None = None
    meta: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceResolution:
    """Authoritative total for a plan and where it came from."""

    total_cents: int
    source: str
    billing_interval: str | None = None
    stripe_price_id: str | None = None


@dataclass(frozen=True)
class PlanComposition:
    """Result of re-materializing a plan's line items and snapshot.

    ``dog_biometrics`` is set when the same write must also update the dog.
    """

    plan_id: UUID
    plan_type: PlanType
    topper_percentage: int | None
    items: list[PlanItemDraft]
    snapshot: PlanSnapshot
    pricing: PriceResolution
    nutrition: NutritionPlan
    dog_biometrics: DogBiometrics | None = None

    @property
    def allocated_cents(self) -> int:
        """Sum of unit price times quantity across line items."""
        return sum(item.unit_price_cents * item.quantity for item in self.items)

    @property
    def unallocated_cents(self) -> int:
        """Remainder of the total not carried by any line item."""
        return self.pricing.total_cents - self.allocated_cents
