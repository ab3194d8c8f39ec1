"""Admin Routes — order oversight and driver assignment.

Invariants:
    - Only admins reach these endpoints
    - Assignment requires an existing, available driver and an order that has
      not left the store
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from fulfillment.api.deps import actor_for, get_workflow, require_role
from fulfillment.core.domain_types import ActorRole, OrderStatus
from fulfillment.core.order_snapshot import order_to_snapshot
from fulfillment.models.user import User as UserModel
from fulfillment.schemas.order import DriverAssignment
from fulfillment.services.order_workflow import OrderWorkflow

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])

require_admin = require_role(ActorRole.ADMIN)


@router.get("/orders")
async def list_orders(
    status_filter: OrderStatus | None = Query(None, alias="status"),
    search: str | None = Query(None, max_length=100),
    admin: UserModel = Depends(require_admin),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    orders = await workflow.list_orders(actor_for(admin), status_filter, search)
    return [order_to_snapshot(o) for o in orders]


@router.put("/orders/{order_id}/assign-driver")
async def assign_driver(
    order_id: UUID,
    body: DriverAssignment,
    admin: UserModel = Depends(require_admin),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    order = await workflow.assign_driver(order_id, actor_for(admin), body.driver_id)
    return order_to_snapshot(order)
