"""Operator API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from meal_subscriptions.api.schemas import (
    GenerateOrdersRequest,
    ProvisionPlanRequest,
    TrackingEventRequest,
    UpdatePlanTypeRequest,
    UpdateRecipesRequest,
)

if TYPE_CHECKING:
    from meal_subscriptions.containers import AppContainer
    from meal_subscriptions.domain.orders import GenerationResult, OrderRecord
    from meal_subscriptions.domain.plans import PlanComposition
    from meal_subscriptions.domain.tracking import OrderTimeline, TrackingEvent

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.post(
    "/subscriptions/generate-orders", dependencies=[Depends(require_admin)]
)
def generate_orders(
    payload: GenerateOrdersRequest, request: Request
) -> dict[str, object]:
    """Run order generation for the given delivery date, default today."""
    container: AppContainer = request.app.state.container
    result = container.order_generator.generate(
        target_date=payload.delivery_date,
        deadline_seconds=container.settings.order_generation_deadline_seconds,
    )
    return serialize_generation_result(result)


@router.put("/plans/{plan_id}/recipes", dependencies=[Depends(require_admin)])
def update_plan_recipes(
    plan_id: UUID, payload: UpdateRecipesRequest, request: Request
) -> dict[str, object]:
    """Swap a plan's recipes."""
    container: AppContainer = request.app.state.container
    composition = container.plan_composer.update_recipes(plan_id, payload.recipe_ids)
    return _serialize_composition(composition)


@router.post("/plans/{plan_id}/provision", dependencies=[Depends(require_admin)])
def provision_plan(
    plan_id: UUID, payload: ProvisionPlanRequest, request: Request
) -> dict[str, object]:
    """Record the dog's biometrics and compose the plan's first recipes."""
    container: AppContainer = request.app.state.container
    composition = container.plan_composer.provision(
        plan_id, payload.weight_lbs, payload.activity_level, payload.recipe_ids
    )
    return _serialize_composition(composition)


@router.patch("/plans/{plan_id}", dependencies=[Depends(require_admin)])
def update_plan_type(
    plan_id: UUID, payload: UpdatePlanTypeRequest, request: Request
) -> dict[str, object]:
    """Change a plan between full and topper and resize its portions."""
    container: AppContainer = request.app.state.container
    composition = container.plan_composer.change_plan_type(
        plan_id, payload.plan_type, payload.topper_percentage
    )
    return _serialize_composition(composition)


@router.post(
    "/plans/{plan_id}/resync-pricing", dependencies=[Depends(require_admin)]
)
def resync_plan_pricing(plan_id: UUID, request: Request) -> dict[str, object]:
    """Reprice a plan from its live subscription."""
    container: AppContainer = request.app.state.container
    composition = container.plan_composer.resync_pricing(plan_id)
    return _serialize_composition(composition)


@router.get("/orders/{order_id}/tracking", dependencies=[Depends(require_admin)])
def order_tracking(order_id: UUID, request: Request) -> dict[str, object]:
    """Return an order's tracking timeline."""
    container: AppContainer = request.app.state.container
    timeline = container.tracking_service.get_timeline(order_id)
    return _serialize_timeline(timeline)


@router.post(
    "/orders/{order_id}/tracking-events",
    dependencies=[Depends(require_admin)],
    status_code=status.HTTP_201_CREATED,
)
def record_tracking_event(
    order_id: UUID, payload: TrackingEventRequest, request: Request
) -> dict[str, object]:
    """Append a tracking event to an order."""
    container: AppContainer = request.app.state.container
    event = container.tracking_service.record_event(
        order_id, payload.event_type, payload.description, payload.metadata
    )
    return _serialize_event(event)


def serialize_generation_result(result: GenerationResult) -> dict[str, object]:
    """Return the aggregate report of a generation run."""
    return {
        "delivery_date": result.delivery_date.isoformat(),
        "created": result.created,
        "failed": result.failed,
        "skipped": result.skipped,
        "errors": result.errors,
        "orders": [_serialize_order(order) for order in result.orders],
    }


def _serialize_order(order: OrderRecord) -> dict[str, object]:
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "user_id": str(order.user_id),
        "estimated_delivery_date": order.estimated_delivery_date.isoformat(),
        "recipe_name": order.recipe_name,
        "quantity": order.quantity,
        "total_cents": order.total_cents,
        "fulfillment_status": order.fulfillment_status,
    }


def _serialize_composition(composition: PlanComposition) -> dict[str, object]:
    return {
        "plan_id": str(composition.plan_id),
        "plan_type": composition.plan_type.value,
        "topper_percentage": composition.topper_percentage,
        "total_cents": composition.pricing.total_cents,
        "price_source": composition.pricing.source,
        "unallocated_cents": composition.unallocated_cents,
        "daily_kcal": round(composition.nutrition.daily_kcal, 1),
        "items": [
            {
                "recipe_id": str(item.recipe_id),
                "quantity": item.quantity,
                "size_g": item.size_g,
                "unit_price_cents": item.unit_price_cents,
                "billing_interval": item.billing_interval,
            }
            for item in composition.items
        ],
    }


def _serialize_timeline(timeline: OrderTimeline) -> dict[str, object]:
    return {
        "order_id": str(timeline.order_id),
        "current_stage": timeline.current_stage.value,
        "is_terminal": timeline.is_terminal,
        "stages": [
            {
                "stage": progress.stage.value,
                "state": progress.state,
                "event": _serialize_event(progress.event) if progress.event else None,
            }
            for progress in timeline.stages
        ],
        "additional_updates": [
            _serialize_event(event) for event in timeline.additional_updates
        ],
    }


def _serialize_event(event: TrackingEvent) -> dict[str, object]:
    return {
        "id": str(event.id),
        "event_type": event.event_type,
        "stage": event.stage.value,
        "description": event.description,
        "metadata": event.metadata,
        "created_at": event.created_at.isoformat(),
    }
