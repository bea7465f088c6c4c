"""Pydantic models for API payloads."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field

from meal_subscriptions.domain.nutrition import PlanType


class GenerateOrdersRequest(BaseModel):
    """Trigger payload for an order generation run."""

    delivery_date: date | None = None


class UpdateRecipesRequest(BaseModel):
    """New recipe selection for a plan."""

    recipe_ids: list[UUID] = Field(default_factory=list)


class UpdatePlanTypeRequest(BaseModel):
    """New plan type and topper percentage."""

    plan_type: PlanType
    topper_percentage: int | None = None


class TrackingEventRequest(BaseModel):
    """Event reported by a fulfillment actor."""

    event_type: str
    description: str = ""
    metadata: dict[str, object] = Field(default_factory=dict)


class ProvisionPlanRequest(BaseModel):
    """Operator-entered dog biometrics and first recipe selection."""

    weight_lbs: float
    activity_level: str
    recipe_ids: list[UUID] = Field(default_factory=list)
