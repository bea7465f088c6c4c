"""Dependency container wiring for the application."""

from dataclasses import dataclass

from supabase import create_client

from meal_subscriptions.adapters.stripe_subscription_client import (
    StripeSubscriptionClient,
)
from meal_subscriptions.adapters.supabase_order_repository import (
    SupabaseOrderRepository,
)
from meal_subscriptions.adapters.supabase_plan_repository import SupabasePlanRepository
from meal_subscriptions.adapters.supabase_subscription_repository import (
    SupabaseSubscriptionRepository,
)
from meal_subscriptions.adapters.supabase_tracking_repository import (
    SupabaseTrackingRepository,
)
from meal_subscriptions.config import Settings
from meal_subscriptions.services.orders import OrderGenerator
from meal_subscriptions.services.plans import PlanComposer
from meal_subscriptions.services.pricing import PriceReconciler
from meal_subscriptions.services.tracking import TrackingService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    price_reconciler: PriceReconciler
    plan_composer: PlanComposer
    order_generator: OrderGenerator
    tracking_service: TrackingService


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    price_client = StripeSubscriptionClient.create(
        api_key=resolved_settings.stripe_secret_key,
        timeout_seconds=resolved_settings.stripe_timeout_seconds,
    )
    price_reconciler = PriceReconciler(
        price_client=price_client,
        retry_attempts=resolved_settings.stripe_retry_attempts,
    )
    plan_composer = PlanComposer(
        repository=SupabasePlanRepository(supabase_client),
        price_reconciler=price_reconciler,
    )
    order_generator = OrderGenerator(
        subscription_repository=SupabaseSubscriptionRepository(supabase_client),
        order_repository=SupabaseOrderRepository(supabase_client),
        default_total_cents=resolved_settings.default_order_total_cents,
        fallback_delivery_zipcode=resolved_settings.fallback_delivery_zipcode,
        timezone_name=resolved_settings.business_timezone,
    )
    tracking_service = TrackingService(SupabaseTrackingRepository(supabase_client))

    return AppContainer(
        settings=resolved_settings,
        price_reconciler=price_reconciler,
        plan_composer=plan_composer,
        order_generator=order_generator,
        tracking_service=tracking_service,
    )
