"""Domain models for billing subscriptions."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from meal_subscriptions.domain.plans import PlanRecord

ACTIVE_STATUS = "active"


@dataclass(frozen=True)
class SubscriptionRecord:
    """Subscription row joined with its plan."""

    id: UUID
    user_id: UUID
    status: str
    current_period_end: datetime
    plan_id: UUID | None
    plan: PlanRecord | None
    stripe_subscription_id: str | None = None


@dataclass(frozen=True)
class UnreadableSubscription:
    """Due subscription row that could not be parsed.

    ``id`` is the raw identifier as stored, which may itself be malformed.
    """

    id: str
    reason: str


@dataclass(frozen=True)
class LivePrice:
    """Current price of a subscription in the payment service."""

    unit_amount_cents: int
    billing_interval: str | None
    stripe_price_id: str | None
