"""Plan price reconciliation."""

import logging
import time
from dataclasses import dataclass
from typing import Protocol

from meal_subscriptions.domain.errors import (
    ExternalServiceError,
    InvalidArgument,
    PricingUnresolved,
)
from meal_subscriptions.domain.plans import PlanRecord, PriceResolution
from meal_subscriptions.domain.subscriptions import LivePrice

_logger = logging.getLogger(__name__)


class SubscriptionPriceClient(Protocol):
    """Read-only access to subscription prices in the payment service."""

    def get_live_price(self, stripe_subscription_id: str) -> LivePrice:
        """Return the current price of a subscription."""


@dataclass
class PriceReconciler:
    """Resolves the authoritative total price of a plan.

    Sources are tried in order and the first non-zero wins: the plan's stored
    total, its snapshot total, then the live subscription price.
    """

    price_client: SubscriptionPriceClient
    retry_attempts: int = 2
    retry_delay_seconds: float = 0.5

    def resolve_total(self, plan: PlanRecord) -> PriceResolution:
        """Return the plan total and its source."""
        if plan.total_cents > 0:
            return PriceResolution(total_cents=plan.total_cents, source="plan")
        snapshot_total = _snapshot_total(plan.snapshot)
        if snapshot_total > 0:
            return PriceResolution(total_cents=snapshot_total, source="snapshot")
        if not plan.stripe_subscription_id:
            _logger.warning("Plan has no price source: plan_id=%s", plan.id)
            raise PricingUnresolved
        return self.fetch_live_price(plan.stripe_subscription_id)

    def fetch_live_price(self, stripe_subscription_id: str) -> PriceResolution:
        """Resolve a total from the live subscription price."""
        try:
            live = self._call_with_retry(stripe_subscription_id)
        except ExternalServiceError as exc:
            raise PricingUnresolved from exc
        if live.unit_amount_cents <= 0:
            _logger.warning(
                "Live subscription price is zero: stripe_subscription_id=%s",
                stripe_subscription_id,
            )
            raise PricingUnresolved
        return PriceResolution(
            total_cents=live.unit_amount_cents,
            source="subscription",
            billing_interval=live.billing_interval,
            stripe_price_id=live.stripe_price_id,
        )

    def _call_with_retry(self, stripe_subscription_id: str) -> LivePrice:
        attempt = 0
        while True:
            try:
                return self.price_client.get_live_price(stripe_subscription_id)
            except ExternalServiceError as exc:
                attempt += 1
                _logger.warning(
                    "Live price lookup failed (attempt %s/%s): %s",
                    attempt,
                    self.retry_attempts + 1,
                    exc,
                )
                if not exc.retryable or attempt > self.retry_attempts:
                    raise
                time.sleep(self.retry_delay_seconds)


def split_unit_price(total_cents: int, recipe_count: int) -> int:
    """Return the per-recipe unit price, rounded down.

    The remainder ``total_cents % recipe_count`` is not redistributed, so the
    sum of unit prices can fall short of the total by up to
    ``recipe_count - 1`` minor units.
    """
    if recipe_count < 1:
        raise InvalidArgument("recipe count must be at least 1")
    return total_cents // recipe_count


def _snapshot_total(snapshot: object | None) -> int:
    if not isinstance(snapshot, dict):
        return 0
    value = snapshot.get("total_cents")
    if isinstance(value, bool):
        return 0
    if isinstance(value, int | float):
        return int(value)
    return 0
