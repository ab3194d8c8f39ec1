"""Driver Routes — assigned deliveries, status updates, availability, performance.

Invariants:
    - Only drivers reach these endpoints; the listed deliveries are their own
    - Status updates go through the same state machine as PUT /orders/{id}/status
    - Availability changes never touch orders already assigned
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from fulfillment.api.deps import actor_for, get_workflow, require_role
from fulfillment.core.delivery_rules import DeliveryFilter
from fulfillment.core.domain_types import ActorRole, OrderStatus
from fulfillment.core.order_snapshot import order_to_snapshot
from fulfillment.core.order_stats import PerformancePeriod
from fulfillment.models.user import User as UserModel
from fulfillment.schemas.order import AvailabilityUpdate, StatusUpdate
from fulfillment.services.order_workflow import OrderWorkflow

router = APIRouter(prefix="/api/v1/driver", tags=["driver"])

require_driver = require_role(ActorRole.DRIVER)


@router.get("/deliveries")
async def list_deliveries(
    delivery_date: date | None = Query(None, alias="date"),
    status_filter: OrderStatus | None = Query(None, alias="status"),
    search: str | None = Query(None, max_length=100),
    driver: UserModel = Depends(require_driver),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    orders = await workflow.list_deliveries(
        actor_for(driver), DeliveryFilter(delivery_date, status_filter, search),
    )
    return [order_to_snapshot(o) for o in orders]


@router.put("/deliveries/{order_id}/status")
async def update_delivery_status(
    order_id: UUID,
    body: StatusUpdate,
    driver: UserModel = Depends(require_driver),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    order = await workflow.transition(order_id, actor_for(driver), body)
    return order_to_snapshot(order)


@router.put("/availability")
async def set_availability(
    body: AvailabilityUpdate,
    driver: UserModel = Depends(require_driver),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    driver = await workflow.set_availability(driver, body.is_available)
    return {"driver_id": str(driver.id), "is_available": driver.is_available}


@router.get("/performance")
async def performance(
    period: PerformancePeriod = Query(PerformancePeriod.MONTH),
    driver: UserModel = Depends(require_driver),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    stats = await workflow.driver_performance(actor_for(driver), period)
    return {"period": period.value, **stats.to_dict()}
