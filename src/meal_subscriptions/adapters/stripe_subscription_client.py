"""Stripe-backed subscription price lookups."""

from dataclasses import dataclass

import stripe

from meal_subscriptions.domain.errors import ExternalServiceError
from meal_subscriptions.domain.subscriptions import LivePrice
from meal_subscriptions.services.pricing import SubscriptionPriceClient

_TRANSIENT_ERRORS = (
    stripe.APIConnectionError,
    stripe.RateLimitError,
    stripe.APIError,
)


@dataclass
class StripeSubscriptionClient(SubscriptionPriceClient):
    """Reads the current price of a Stripe subscription."""

    client: stripe.StripeClient

    @classmethod
    def create(
        cls, api_key: str, timeout_seconds: float, max_network_retries: int = 0
    ) -> "StripeSubscriptionClient":
        """Create a client with a bounded request timeout."""
        return cls(
            client=stripe.StripeClient(
                api_key,
                max_network_retries=max_network_retries,
                http_client=stripe.RequestsClient(timeout=timeout_seconds),
            )
        )

    def get_live_price(self, stripe_subscription_id: str) -> LivePrice:
        """Return the first item's price of the subscription."""
        try:
            subscription = self.client.subscriptions.retrieve(
                stripe_subscription_id,
                params={"expand": ["items.data.price"]},
            )
        except stripe.StripeError as exc:
            raise ExternalServiceError(
                f"stripe subscription {stripe_subscription_id} lookup failed: {exc}",
                retryable=isinstance(exc, _TRANSIENT_ERRORS),
            ) from exc
        items = subscription["items"]["data"]
        if not items:
            return LivePrice(
                unit_amount_cents=0, billing_interval=None, stripe_price_id=None
            )
        price = items[0]["price"]
        recurring = price.get("recurring") or {}
        return LivePrice(
            unit_amount_cents=int(price.get("unit_amount") or 0),
            billing_interval=recurring.get("interval"),
            stripe_price_id=price.get("id"),
        )
