"""Supabase repository for billing subscriptions."""

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from meal_subscriptions.adapters.supabase_plan_repository import (
    PLAN_COLUMNS,
    parse_plan_row,
)
from meal_subscriptions.domain.errors import EngineError
from meal_subscriptions.domain.plans import PlanRecord
from meal_subscriptions.domain.subscriptions import (
    SubscriptionRecord,
    UnreadableSubscription,
)
from meal_subscriptions.services.orders import SubscriptionRepository

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseSubscriptionRepository(SubscriptionRepository):
    """Supabase implementation for subscription reads."""

    client: Client

    def list_due_subscriptions(
        self, status: str, period_end_before: datetime
    ) -> list[SubscriptionRecord | UnreadableSubscription]:
        """Return subscriptions whose current period ended by the threshold.

        Rows that cannot be parsed, including ones whose embedded plan is
        malformed, are returned as ``UnreadableSubscription``.
        """
        response = (
            self.client.table("subscriptions")
            .select(
                "id, user_id, status, stripe_subscription_id, current_period_end, "
                f"plan_id, plans ({PLAN_COLUMNS})"
            )
            .eq("status", status)
            .lte("current_period_end", period_end_before.isoformat())
            .execute()
        )
        return [_parse_row(row) for row in response.data or []]


def _parse_row(row: dict[str, object]) -> SubscriptionRecord | UnreadableSubscription:
    try:
        return _parse_subscription(row)
    except (EngineError, KeyError, TypeError, ValueError) as exc:
        _logger.warning(
            "Unreadable subscription row: subscription_id=%s plan_id=%s error=%s",
            row.get("id"),
            row.get("plan_id"),
            exc,
        )
        return UnreadableSubscription(id=str(row.get("id")), reason=str(exc))


def _parse_subscription(row: dict[str, object]) -> SubscriptionRecord:
    return SubscriptionRecord(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        status=str(row.get("status", "")),
        current_period_end=datetime.fromisoformat(str(row["current_period_end"])),
        plan_id=UUID(str(row["plan_id"])) if row.get("plan_id") else None,
        plan=_parse_joined_plan(row),
        stripe_subscription_id=row.get("stripe_subscription_id"),
    )


def _parse_joined_plan(row: dict[str, object]) -> PlanRecord | None:
    plan_row = row.get("plans")
    if isinstance(plan_row, list):
        plan_row = plan_row[0] if plan_row else None
    if not isinstance(plan_row, dict):
        return None
    return parse_plan_row(plan_row)
