"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from uuid import UUID, uuid4

import pytest

from meal_subscriptions.config import Settings
from meal_subscriptions.containers import AppContainer
from meal_subscriptions.domain.errors import (
    DuplicateOrder,
    ExternalServiceError,
    PersistenceError,
)
from meal_subscriptions.domain.nutrition import DogRecord, PlanType
from meal_subscriptions.domain.orders import OrderDraft, OrderRecord
from meal_subscriptions.domain.plans import (
    ItemBilling,
    PlanComposition,
    PlanItemDraft,
    PlanRecord,
    RecipeRecord,
)
from meal_subscriptions.domain.subscriptions import (
    LivePrice,
    SubscriptionRecord,
    UnreadableSubscription,
)
from meal_subscriptions.domain.tracking import TrackingEvent, TrackingEventDraft
from meal_subscriptions.services.orders import (
    OrderGenerator,
    OrderRepository,
    SubscriptionRepository,
)
from meal_subscriptions.services.plans import (
    PlanComposer,
    PlanRepository,
    snapshot_to_payload,
)
from meal_subscriptions.services.pricing import PriceReconciler, SubscriptionPriceClient
from meal_subscriptions.services.tracking import TrackingRepository, TrackingService

DEFAULT_PERIOD_END = datetime(2025, 1, 1, tzinfo=UTC)


@dataclass
class FakePriceClient(SubscriptionPriceClient):
    """Fake payment-service client returning fixed prices."""

    prices: dict[str, LivePrice] = field(default_factory=dict)
    failures_before_success: int = 0
    calls: list[str] = field(default_factory=list)

    def get_live_price(self, stripe_subscription_id: str) -> LivePrice:
        self.calls.append(stripe_subscription_id)
        if self.failures_before_success > 0:
            self.failures_before_success -= 1
            raise ExternalServiceError("stripe unavailable")
        if stripe_subscription_id not in self.prices:
            raise ExternalServiceError(
                f"no such subscription {stripe_subscription_id}", retryable=False
            )
        return self.prices[stripe_subscription_id]


@dataclass
class InMemoryPlanRepository(PlanRepository):
    """In-memory plan repository for tests."""

    plans: dict[UUID, PlanRecord] = field(default_factory=dict)
    dogs: dict[UUID, DogRecord] = field(default_factory=dict)
    recipes: dict[UUID, RecipeRecord] = field(default_factory=dict)
    items: dict[UUID, list[PlanItemDraft]] = field(default_factory=dict)
    billing: dict[UUID, ItemBilling] = field(default_factory=dict)
    fail_on_replace: bool = False
    replace_calls: int = 0

    def get_plan(self, plan_id: UUID) -> PlanRecord | None:
        return self.plans.get(plan_id)

    def get_dog(self, dog_id: UUID) -> DogRecord | None:
        return self.dogs.get(dog_id)

    def get_recipes(self, recipe_ids: list[UUID]) -> list[RecipeRecord]:
        return [self.recipes[rid] for rid in recipe_ids if rid in self.recipes]

    def list_plan_recipe_ids(self, plan_id: UUID) -> list[UUID]:
        return [item.recipe_id for item in self.items.get(plan_id, [])]

    def get_item_billing(self, plan_id: UUID) -> ItemBilling | None:
        return self.billing.get(plan_id)

    def replace_plan_items(self, composition: PlanComposition) -> None:
        self.replace_calls += 1
        if self.fail_on_replace:
            raise PersistenceError("database unavailable")
        plan = self.plans[composition.plan_id]
        self.items[composition.plan_id] = list(composition.items)
        self.plans[composition.plan_id] = PlanRecord(
            id=plan.id,
            user_id=plan.user_id,
            dog_id=plan.dog_id,
            plan_type=composition.plan_type,
            topper_percentage=composition.topper_percentage,
            total_cents=composition.pricing.total_cents,
            snapshot=snapshot_to_payload(composition.snapshot),
            stripe_subscription_id=plan.stripe_subscription_id,
            delivery_zipcode=plan.delivery_zipcode,
        )
        biometrics = composition.dog_biometrics
        if biometrics is not None and plan.dog_id is not None:
            self.dogs[plan.dog_id] = DogRecord(
                id=plan.dog_id,
                weight_kg=biometrics.weight_kg,
                activity_level=biometrics.activity.value,
            )

    def add_dog(self, weight_kg: float = 20.0, activity: str = "moderate") -> DogRecord:
        dog = DogRecord(
            id=uuid4(), weight_kg=weight_kg, activity_level=activity
        )
        self.dogs[dog.id] = dog
        return dog

    def add_recipe(self, name: str, kcal_per_100g: float | None = 160) -> RecipeRecord:
        recipe = RecipeRecord(
            id=uuid4(),
            name=name,
            slug=name.lower().replace(" ", "-"),
            kcal_per_100g=kcal_per_100g,
        )
        self.recipes[recipe.id] = recipe
        return recipe

    def add_plan(  # noqa: PLR0913
        self,
        dog: DogRecord | None,
        total_cents: int = 0,
        snapshot: dict[str, object] | None = None,
        plan_type: PlanType = PlanType.FULL,
        topper_percentage: int | None = None,
        stripe_subscription_id: str | None = None,
    ) -> PlanRecord:
        plan = PlanRecord(
            id=uuid4(),
            user_id=uuid4(),
            dog_id=dog.id if dog else None,
            plan_type=plan_type,
            topper_percentage=topper_percentage,
            total_cents=total_cents,
            snapshot=snapshot,
            stripe_subscription_id=stripe_subscription_id,
        )
        self.plans[plan.id] = plan
        return plan


@dataclass
class InMemorySubscriptionRepository(SubscriptionRepository):
    """In-memory subscription repository for tests."""

    subscriptions: list[SubscriptionRecord] = field(default_factory=list)
    unreadable: list[UnreadableSubscription] = field(default_factory=list)
    last_threshold: datetime | None = None

    def list_due_subscriptions(
        self, status: str, period_end_before: datetime
    ) -> list[SubscriptionRecord | UnreadableSubscription]:
        self.last_threshold = period_end_before
        due: list[SubscriptionRecord | UnreadableSubscription] = [
            sub
            for sub in self.subscriptions
            if sub.status == status and sub.current_period_end <= period_end_before
        ]
        return due + self.unreadable

    def add(  # noqa: PLR0913
        self,
        plan: PlanRecord | None,
        status: str = "active",
        period_end: datetime | None = None,
        plan_id: UUID | None = None,
    ) -> SubscriptionRecord:
        subscription = SubscriptionRecord(
            id=uuid4(),
            user_id=plan.user_id if plan else uuid4(),
            status=status,
            current_period_end=period_end or DEFAULT_PERIOD_END,
            plan_id=plan.id if plan else plan_id,
            plan=plan,
            stripe_subscription_id=f"sub_{uuid4().hex[:8]}",
        )
        self.subscriptions.append(subscription)
        return subscription


@dataclass
class InMemoryTrackingRepository(TrackingRepository):
    """In-memory tracking repository for tests."""

    events: list[TrackingEvent] = field(default_factory=list)

    def list_events(self, order_id: UUID) -> list[TrackingEvent]:
        return [event for event in self.events if event.order_id == order_id]

    def append_event(self, order_id: UUID, event: TrackingEventDraft) -> TrackingEvent:
        stored = TrackingEvent(
            id=uuid4(),
            order_id=order_id,
            event_type=event.event_type,
            description=event.description,
            metadata=dict(event.metadata),
            created_at=datetime.now(tz=UTC),
        )
        self.events.append(stored)
        return stored


@dataclass
class InMemoryOrderRepository(OrderRepository):
    """In-memory order repository enforcing the idempotency key."""

    tracking: InMemoryTrackingRepository = field(
        default_factory=InMemoryTrackingRepository
    )
    orders: dict[UUID, OrderRecord] = field(default_factory=dict)
    drafts: dict[UUID, OrderDraft] = field(default_factory=dict)
    fail_for: set[UUID] = field(default_factory=set)
    hide_existing: bool = False

    def find_subscription_order(
        self, subscription_id: UUID, delivery_date: date
    ) -> OrderRecord | None:
        if self.hide_existing:
            return None
        return self._find(subscription_id, delivery_date)

    def create_subscription_order(
        self, order: OrderDraft, seed_event: TrackingEventDraft
    ) -> OrderRecord:
        if order.subscription_id in self.fail_for:
            raise PersistenceError("insert rejected")
        if self._find(order.subscription_id, order.estimated_delivery_date):
            raise DuplicateOrder("order already exists")
        record = OrderRecord(
            id=uuid4(),
            order_number=order.order_number,
            user_id=order.user_id,
            subscription_id=order.subscription_id,
            estimated_delivery_date=order.estimated_delivery_date,
            total_cents=order.total_cents,
            recipes=order.recipes,
            recipe_name=order.recipe_name,
            quantity=order.quantity,
            fulfillment_status=order.fulfillment_status,
            is_subscription_order=order.is_subscription_order,
            created_at=datetime.now(tz=UTC),
        )
        self.orders[record.id] = record
        self.drafts[record.id] = order
        self.tracking.append_event(record.id, seed_event)
        return record

    def _find(self, subscription_id: UUID, delivery_date: date) -> OrderRecord | None:
        for order in self.orders.values():
            if (
                order.subscription_id == subscription_id
                and order.estimated_delivery_date == delivery_date
                and order.is_subscription_order
            ):
                return order
        return None


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key=(
            "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9."
            "eyJyb2xlIjoic2VydmljZV9yb2xlIn0."
            "c2lnbmF0dXJl"
        ),
        admin_token="admin-token",
        stripe_secret_key="sk_test_123",
        business_timezone="UTC",
    )


@pytest.fixture
def price_client() -> FakePriceClient:
    return FakePriceClient()


@pytest.fixture
def plan_repository() -> InMemoryPlanRepository:
    return InMemoryPlanRepository()


@pytest.fixture
def subscription_repository() -> InMemorySubscriptionRepository:
    return InMemorySubscriptionRepository()


@pytest.fixture
def order_repository() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture
def price_reconciler(price_client: FakePriceClient) -> PriceReconciler:
    return PriceReconciler(price_client=price_client, retry_delay_seconds=0)


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    price_reconciler: PriceReconciler,
    plan_repository: InMemoryPlanRepository,
    subscription_repository: InMemorySubscriptionRepository,
    order_repository: InMemoryOrderRepository,
) -> AppContainer:
    return AppContainer(
        settings=settings,
        price_reconciler=price_reconciler,
        plan_composer=PlanComposer(plan_repository, price_reconciler),
        order_generator=OrderGenerator(
            subscription_repository=subscription_repository,
            order_repository=order_repository,
            timezone_name=settings.business_timezone,
        ),
        tracking_service=TrackingService(order_repository.tracking),
    )
