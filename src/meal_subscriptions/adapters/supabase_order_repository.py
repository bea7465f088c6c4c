"""Supabase repository for subscription orders."""

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import Client

from meal_subscriptions.domain.errors import DuplicateOrder, PersistenceError
from meal_subscriptions.domain.orders import OrderDraft, OrderRecord
from meal_subscriptions.domain.tracking import TrackingEventDraft
from meal_subscriptions.services.orders import OrderRepository

UNIQUE_VIOLATION = "23505"

_ORDER_COLUMNS = (
    "id, order_number, user_id, subscription_id, estimated_delivery_date, "
    "total_cents, recipes, recipe_name, quantity, fulfillment_status, "
    "is_subscription_order, created_at"
)


@dataclass
class SupabaseOrderRepository(OrderRepository):
    """Supabase implementation for subscription orders."""

    client: Client

    def find_subscription_order(
        self, subscription_id: UUID, delivery_date: date
    ) -> OrderRecord | None:
        """Return the subscription order for a delivery day, if present."""
        response = (
            self.client.table("orders")
            .select(_ORDER_COLUMNS)
            .eq("subscription_id", str(subscription_id))
            .eq("is_subscription_order", True)
            .eq("estimated_delivery_date", delivery_date.isoformat())
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_order(response.data[0])

    def create_subscription_order(
        self, order: OrderDraft, seed_event: TrackingEventDraft
    ) -> OrderRecord:
        """Insert the order and its seed event through one SQL function call.

        The function holds an advisory lock on the idempotency key and the
        orders table carries a unique index on it, so a concurrent run gets a
        unique violation instead of a second order.
        """
        try:
            response = self.client.rpc(
                "create_subscription_order",
                {
                    "p_order": _order_payload(order),
                    "p_event": {
                        "event_type": seed_event.event_type,
                        "description": seed_event.description,
                        "metadata": seed_event.metadata,
                    },
                },
            ).execute()
        except APIError as exc:
            if exc.code == UNIQUE_VIOLATION:
                raise DuplicateOrder(
                    f"order already exists for {order.estimated_delivery_date}"
                ) from exc
            raise PersistenceError(f"failed to create order: {exc.message}") from exc
        data = response.data
        if isinstance(data, list):
            data = data[0] if data else None
        if not data:
            raise PersistenceError("failed to create order: empty response")
        return _parse_order(data)


def _order_payload(order: OrderDraft) -> dict[str, object]:
    return {
        "user_id": str(order.user_id),
        "subscription_id": str(order.subscription_id),
        "order_number": order.order_number,
        "order_type": order.order_type,
        "status": order.status,
        "fulfillment_status": order.fulfillment_status,
        "delivery_method": order.delivery_method,
        "delivery_zipcode": order.delivery_zipcode,
        "estimated_delivery_date": order.estimated_delivery_date.isoformat(),
        "estimated_delivery_window": order.estimated_delivery_window,
        "total": order.total_cents / 100,
        "total_cents": order.total_cents,
        "recipes": order.recipes,
        "recipe_name": order.recipe_name,
        "quantity": order.quantity,
        "is_subscription_order": order.is_subscription_order,
    }


def _parse_order(row: dict[str, object]) -> OrderRecord:
    created_at = row.get("created_at")
    return OrderRecord(
        id=UUID(str(row["id"])),
        order_number=str(row.get("order_number", "")),
        user_id=UUID(str(row["user_id"])),
        subscription_id=(
            UUID(str(row["subscription_id"])) if row.get("subscription_id") else None
        ),
        estimated_delivery_date=date.fromisoformat(
            str(row["estimated_delivery_date"])
        ),
        total_cents=int(row.get("total_cents") or 0),
        recipes=list(row.get("recipes") or []),
        recipe_name=str(row.get("recipe_name", "")),
        quantity=int(row.get("quantity") or 0),
        fulfillment_status=str(row.get("fulfillment_status", "")),
        is_subscription_order=bool(row.get("is_subscription_order")),
        created_at=datetime.fromisoformat(created_at)
        if isinstance(created_at, str)
        else None,
    )
