"""Billing-cycle order generation for active subscriptions."""

import logging
import secrets
import string
import time
from dataclasses import dataclass
from datetime import UTC, date, datetime
from datetime import time as dt_time
from typing import Protocol
from uuid import UUID
from zoneinfo import ZoneInfo

from meal_subscriptions.domain.errors import DuplicateOrder, EngineError, NotFound
from meal_subscriptions.domain.orders import GenerationResult, OrderDraft, OrderRecord
from meal_subscriptions.domain.subscriptions import (
    ACTIVE_STATUS,
    SubscriptionRecord,
    UnreadableSubscription,
)
from meal_subscriptions.domain.tracking import FulfillmentStage, TrackingEventDraft
from meal_subscriptions.services.plans import snapshot_from_payload

DEFAULT_RECIPE_NAME = "Fresh Food Pack"
DEFAULT_QUANTITY = 14
SEED_EVENT_DESCRIPTION = (
    "Subscription order received. Looking for an available driver in your area."
)

_ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits

_logger = logging.getLogger(__name__)


class SubscriptionRepository(Protocol):
    """Read access to billing subscriptions."""

    def list_due_subscriptions(
        self, status: str, period_end_before: datetime
    ) -> list[SubscriptionRecord | UnreadableSubscription]:
        """Return subscriptions in a status whose period ended by the threshold.

        Rows that cannot be read are returned as ``UnreadableSubscription``.
        """


class OrderRepository(Protocol):
    """Persistence interface for subscription orders."""

    def find_subscription_order(
        self, subscription_id: UUID, delivery_date: date
    ) -> OrderRecord | None:
        """Return the subscription order for a delivery day, if any."""

    def create_subscription_order(
        self, order: OrderDraft, seed_event: TrackingEventDraft
    ) -> OrderRecord:
        """Insert an order with its first tracking event in one transaction.

        Raises ``DuplicateOrder`` when an order already exists for the same
        subscription and delivery day.
        """


@dataclass
class OrderGenerator:
    """Turns each elapsed billing cycle into exactly one fulfillment order."""

    subscription_repository: SubscriptionRepository
    order_repository: OrderRepository
    default_total_cents: int = 5000
    fallback_delivery_zipcode: str = "06902"
    timezone_name: str = "UTC"

    def generate(
        self,
        target_date: date | None = None,
        deadline_seconds: float | None = None,
    ) -> GenerationResult:
        """Create orders for every active subscription due on the target date.

        Failures are recorded per subscription and never abort the run. When a
        deadline is given, subscriptions not reached in time are reported as
        failed without being attempted.
        """
        started = time.monotonic()
        tz = ZoneInfo(self.timezone_name)
        delivery_date = target_date or datetime.now(tz=tz).date()
        threshold = datetime.combine(delivery_date, dt_time.min, tzinfo=tz).astimezone(
            UTC
        )
        result = GenerationResult(delivery_date=delivery_date)

        subscriptions = self.subscription_repository.list_due_subscriptions(
            ACTIVE_STATUS, threshold
        )
        _logger.info(
            "Order generation started: delivery_date=%s due=%s",
            delivery_date.isoformat(),
            len(subscriptions),
        )

        for subscription in subscriptions:
            if (
                deadline_seconds is not None
                and time.monotonic() - started >= deadline_seconds
            ):
                _record_failure(result, subscription.id, "deadline", "deadline exceeded")
                continue
            if isinstance(subscription, UnreadableSubscription):
                _record_failure(
                    result,
                    subscription.id,
                    "unreadable",
                    f"unreadable subscription: {subscription.reason}",
                )
                continue
            try:
                order = self._process(subscription, delivery_date)
            except DuplicateOrder:
                _logger.info(
                    "Order already exists: subscription_id=%s", subscription.id
                )
                result.skipped += 1
            except EngineError as exc:
                _record_failure(result, subscription.id, exc.kind, str(exc))
            except Exception as exc:
                _logger.exception(
                    "Unexpected error generating order: subscription_id=%s",
                    subscription.id,
                )
                _record_failure(result, subscription.id, type(exc).__name__, str(exc))
            else:
                if order is None:
                    result.skipped += 1
                else:
                    result.created += 1
                    result.orders.append(order)

        _logger.info(
            "Order generation finished: delivery_date=%s created=%s failed=%s "
            "skipped=%s",
            delivery_date.isoformat(),
            result.created,
            result.failed,
            result.skipped,
        )
        return result

    def _process(
        self, subscription: SubscriptionRecord, delivery_date: date
    ) -> OrderRecord | None:
        existing = self.order_repository.find_subscription_order(
            subscription.id, delivery_date
        )
        if existing is not None:
            _logger.info(
                "Order already exists: subscription_id=%s order_number=%s",
                subscription.id,
                existing.order_number,
            )
            return None

        plan = subscription.plan
        if subscription.plan_id is None:
            raise NotFound("no linked plan")
        if plan is None:
            raise NotFound(f"plan {subscription.plan_id} not found")
        snapshot = snapshot_from_payload(plan.snapshot)
        recipe_names = [recipe.name for recipe in snapshot.recipes if recipe.name]
        quantity = sum(recipe.quantity for recipe in snapshot.recipes)

        total_cents = snapshot.total_cents
        if total_cents <= 0:
            _logger.warning(
                "Plan snapshot has no total, using default: subscription_id=%s "
                "plan_id=%s total_cents=%s",
                subscription.id,
                plan.id,
                self.default_total_cents,
            )
            total_cents = self.default_total_cents

        draft = OrderDraft(
            order_number=generate_order_number(),
            user_id=subscription.user_id,
            subscription_id=subscription.id,
            estimated_delivery_date=delivery_date,
            total_cents=total_cents,
            recipes=[
                {
                    "id": recipe.id,
                    "name": recipe.name,
                    "slug": recipe.slug,
                    "quantity": recipe.quantity,
                }
                for recipe in snapshot.recipes
            ],
            recipe_name=", ".join(recipe_names) or DEFAULT_RECIPE_NAME,
            quantity=quantity or DEFAULT_QUANTITY,
            delivery_zipcode=plan.delivery_zipcode or self.fallback_delivery_zipcode,
        )
        seed_event = TrackingEventDraft(
            event_type=FulfillmentStage.LOOKING_FOR_DRIVER.value,
            description=SEED_EVENT_DESCRIPTION,
            metadata={
                "subscription_id": str(subscription.id),
                "stripe_subscription_id": subscription.stripe_subscription_id,
            },
        )
        order = self.order_repository.create_subscription_order(draft, seed_event)
        _logger.info(
            "Order created: order_number=%s subscription_id=%s",
            order.order_number,
            subscription.id,
        )
        return order


def generate_order_number() -> str:
    """Return a unique-enough human readable order number."""
    suffix = "".join(secrets.choice(_ORDER_NUMBER_ALPHABET) for _ in range(9))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


def _record_failure(
    result: GenerationResult, subscription_id: UUID | str, kind: str, message: str
) -> None:
    _logger.warning(
        "Order generation failed: subscription_id=%s kind=%s error=%s",
        subscription_id,
        kind,
        message,
    )
    result.failed += 1
    result.errors.append(f"subscription {subscription_id}: {message}")
