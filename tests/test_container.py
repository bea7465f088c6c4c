"""Tests for container wiring."""

from meal_subscriptions.adapters.stripe_subscription_client import (
    StripeSubscriptionClient,
)
from meal_subscriptions.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert container.plan_composer is not None
    assert container.order_generator.timezone_name == "UTC"
    assert container.order_generator.default_total_cents == 5000
    assert isinstance(
        container.price_reconciler.price_client, StripeSubscriptionClient
    )
    assert container.price_reconciler.retry_attempts == settings.stripe_retry_attempts
