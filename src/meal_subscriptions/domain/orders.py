"""Domain models for fulfillment orders."""

from dataclasses import dataclass, field
from datetime import date, datetime
from uuid import UUID

from meal_subscriptions.domain.tracking import FulfillmentStage


@dataclass(frozen=True)
class OrderDraft:
    """Subscription order to be inserted."""

    order_number: str
    user_id: UUID
    subscription_id: UUID
    estimated_delivery_date: date
    total_cents: int
    recipes: list[dict[str, object]]
    recipe_name: str
    quantity: int
    delivery_zipcode: str
    estimated_delivery_window: str = "9:00 AM - 5:00 PM"
    order_type: str = "subscription"
    status: str = "paid"
    fulfillment_status: str = FulfillmentStage.LOOKING_FOR_DRIVER.value
    delivery_method: str = "local_delivery"
    is_subscription_order: bool = True


@dataclass(frozen=True)
class OrderRecord:
    """Stored order."""

    id: UUID
    order_number: str
    user_id: UUID
    subscription_id: UUID | None
    estimated_delivery_date: date
    total_cents: int
    recipes: list[dict[str, object]]
    recipe_name: str
    quantity: int
    fulfillment_status: str
    is_subscription_order: bool
    created_at: datetime | None = None


@dataclass
class GenerationResult:
    """Aggregate outcome of one order generation run."""

    delivery_date: date
    created: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    orders: list[OrderRecord] = field(default_factory=list)
