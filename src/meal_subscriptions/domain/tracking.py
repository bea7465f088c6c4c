"""Domain models for order tracking."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class FulfillmentStage(StrEnum):
    """Known fulfillment stages plus a catch-all for other event types."""

    LOOKING_FOR_DRIVER = "looking_for_driver"
    DRIVER_ASSIGNED = "driver_assigned"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    FAILED = "failed"
    OTHER = "other"

    @classmethod
    def from_event_type(cls, event_type: str) -> "FulfillmentStage":
        """Map a raw event type to a stage, falling back to ``OTHER``."""
        try:
            stage = cls(event_type)
        except ValueError:
            return cls.OTHER
        return stage


TIMELINE_STAGES: tuple[FulfillmentStage, ...] = (
    FulfillmentStage.LOOKING_FOR_DRIVER,
    FulfillmentStage.DRIVER_ASSIGNED,
    FulfillmentStage.PREPARING,
    FulfillmentStage.OUT_FOR_DELIVERY,
    FulfillmentStage.DELIVERED,
)

TERMINAL_STAGES = frozenset({FulfillmentStage.CANCELLED, FulfillmentStage.FAILED})


@dataclass(frozen=True)
class TrackingEventDraft:
    """Tracking event to be appended to an order."""

    event_type: str
    description: str
    metadata: dict[str, object] = field(default_factory=dict)

    @property
    def stage(self) -> FulfillmentStage:
        """Stage this event belongs to."""
        return FulfillmentStage.from_event_type(self.event_type)


@dataclass(frozen=True)
class TrackingEvent:
    """Stored tracking event."""

    id: UUID
    order_id: UUID
    event_type: str
    description: str
    metadata: dict[str, object]
    created_at: datetime

    @property
    def stage(self) -> FulfillmentStage:
        """Stage this event belongs to."""
        return FulfillmentStage.from_event_type(self.event_type)


@dataclass(frozen=True)
class StageProgress:
    """Display state of one timeline stage."""

    stage: FulfillmentStage
    state: str
    event: TrackingEvent | None


@dataclass(frozen=True)
class OrderTimeline:
    """Inferred current stage and events of an order."""

    order_id: UUID
    current_stage: FulfillmentStage
    stages: list[StageProgress]
    additional_updates: list[TrackingEvent]

    @property
    def is_terminal(self) -> bool:
        """Whether the order was cancelled or failed."""
        return self.current_stage in TERMINAL_STAGES
