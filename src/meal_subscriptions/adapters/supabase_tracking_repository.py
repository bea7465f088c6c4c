"""Supabase repository for delivery tracking events."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import Client

from meal_subscriptions.domain.errors import PersistenceError
from meal_subscriptions.domain.tracking import TrackingEvent, TrackingEventDraft
from meal_subscriptions.services.tracking import TrackingRepository


@dataclass
class SupabaseTrackingRepository(TrackingRepository):
    """Supabase implementation for tracking events."""

    client: Client

    def list_events(self, order_id: UUID) -> list[TrackingEvent]:
        """Return events for an order, oldest first."""
        response = (
            self.client.table("delivery_tracking_events")
            .select("id, order_id, event_type, description, metadata, created_at")
            .eq("order_id", str(order_id))
            .order("created_at", desc=False)
            .execute()
        )
        return [_parse_event(row) for row in response.data or []]

    def append_event(self, order_id: UUID, event: TrackingEventDraft) -> TrackingEvent:
        """Insert a tracking event row."""
        try:
            response = (
                self.client.table("delivery_tracking_events")
                .insert(
                    {
                        "order_id": str(order_id),
                        "event_type": event.event_type,
                        "description": event.description,
                        "metadata": event.metadata,
                    }
                )
                .execute()
            )
        except APIError as exc:
            raise PersistenceError(
                f"failed to append tracking event: {exc.message}"
            ) from exc
        if not response.data:
            raise PersistenceError("failed to append tracking event")
        return _parse_event(response.data[0])


def _parse_event(row: dict[str, object]) -> TrackingEvent:
    return TrackingEvent(
        id=UUID(str(row["id"])),
        order_id=UUID(str(row["order_id"])),
        event_type=str(row.get("event_type", "")),
        description=str(row.get("description") or ""),
        metadata=row.get("metadata") or {},
        created_at=datetime.fromisoformat(str(row["created_at"])),
    )
