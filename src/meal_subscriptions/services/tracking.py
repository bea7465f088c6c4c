"""Order tracking timeline."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from meal_subscriptions.domain.errors import InvalidArgument
from meal_subscriptions.domain.tracking import (
    TIMELINE_STAGES,
    TERMINAL_STAGES,
    FulfillmentStage,
    OrderTimeline,
    StageProgress,
    TrackingEvent,
    TrackingEventDraft,
)


class TrackingRepository(Protocol):
    """Persistence interface for tracking events."""

    def list_events(self, order_id: UUID) -> list[TrackingEvent]:
        """Return an order's events, oldest first."""

    def append_event(self, order_id: UUID, event: TrackingEventDraft) -> TrackingEvent:
        """Append an event to an order."""


@dataclass
class TrackingService:
    """Service for reading and appending order tracking events."""

    repository: TrackingRepository

    def record_event(
        self,
        order_id: UUID,
        event_type: str,
        description: str,
        metadata: dict[str, object] | None = None,
    ) -> TrackingEvent:
        """Append an event reported by a fulfillment actor."""
        cleaned = event_type.strip()
        if not cleaned:
            raise InvalidArgument("event type is required")
        return self.repository.append_event(
            order_id,
            TrackingEventDraft(
                event_type=cleaned,
                description=description,
                metadata=metadata or {},
            ),
        )

    def get_timeline(self, order_id: UUID) -> OrderTimeline:
        """Return the order's timeline with its inferred current stage."""
        events = self.repository.list_events(order_id)
        return build_timeline(order_id, events)


def infer_current_stage(events: list[TrackingEvent]) -> FulfillmentStage:
    """Return the stage of the latest event with a known stage.

    Events are expected oldest first. Defaults to looking for a driver.
    """
    for event in reversed(events):
        if event.stage != FulfillmentStage.OTHER:
            return event.stage
    return FulfillmentStage.LOOKING_FOR_DRIVER


def build_timeline(order_id: UUID, events: list[TrackingEvent]) -> OrderTimeline:
    """Group events into timeline stages and additional updates.

    Every event outside the five timeline stages, including a cancellation or
    failure, is kept in ``additional_updates``.
    """
    ordered = sorted(events, key=lambda event: event.created_at)
    current = infer_current_stage(ordered)
    current_index = (
        TIMELINE_STAGES.index(current) if current in TIMELINE_STAGES else -1
    )
    stages = []
    for index, stage in enumerate(TIMELINE_STAGES):
        stage_event = next((event for event in ordered if event.stage == stage), None)
        if current in TERMINAL_STAGES:
            # Stages reached before cancellation stay completed.
            state = "completed" if stage_event else "halted"
        elif index < current_index:
            state = "completed"
        elif index == current_index:
            state = "current"
        else:
            state = "pending"
        stages.append(StageProgress(stage=stage, state=state, event=stage_event))
    return OrderTimeline(
        order_id=order_id,
        current_stage=current,
        stages=stages,
        additional_updates=[
            event for event in ordered if event.stage not in TIMELINE_STAGES
        ],
    )
