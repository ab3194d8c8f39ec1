"""Order Routes — list, read, place, transition and rate orders.

Invariants:
    - Customers see only their own orders; drivers only assigned ones; admins all
    - POST recomputes subtotal, discount, shipping and total on the server from
      the submitted lines; client-sent totals are ignored. Line unit prices and
      stock limits are taken from the request: the product catalog lives outside
      this service, so they are checked for shape and stock bounds only
    - PUT /status is the generic transition endpoint; the state machine decides
      whether the caller's role may make the move
    - /stats is declared before /{order_id} so it is never parsed as an id
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from fulfillment.api.deps import actor_for, get_current_actor, get_workflow, require_role
from fulfillment.core.domain_types import Actor, ActorRole, OrderStatus
from fulfillment.core.order_snapshot import order_to_snapshot
from fulfillment.models.user import User as UserModel
from fulfillment.schemas.order import FeedbackCreate, OrderCreate, StatusUpdate
from fulfillment.services.order_workflow import OrderWorkflow

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])

require_customer = require_role(ActorRole.CUSTOMER)


@router.get("")
async def list_orders(
    status_filter: OrderStatus | None = Query(None, alias="status"),
    search: str | None = Query(None, max_length=100),
    actor: Actor = Depends(get_current_actor),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    orders = await workflow.list_orders(actor, status_filter, search)
    return [order_to_snapshot(o) for o in orders]


@router.post("", status_code=status.HTTP_201_CREATED)
async def place_order(
    body: OrderCreate,
    customer: UserModel = Depends(require_customer),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    order = await workflow.place_order(customer, body)
    return order_to_snapshot(order)


@router.get("/stats")
async def order_stats(
    customer: UserModel = Depends(require_customer),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    stats, recent = await workflow.customer_stats(actor_for(customer))
    return {**stats.to_dict(), "recent_orders": [order_to_snapshot(o) for o in recent]}


@router.get("/{order_id}")
async def get_order(
    order_id: UUID,
    actor: Actor = Depends(get_current_actor),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    return order_to_snapshot(await workflow.get_order(order_id, actor))


@router.put("/{order_id}/status")
async def update_order_status(
    order_id: UUID,
    body: StatusUpdate,
    actor: Actor = Depends(get_current_actor),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    return order_to_snapshot(await workflow.transition(order_id, actor, body))


@router.post("/{order_id}/feedback")
async def submit_feedback(
    order_id: UUID,
    body: FeedbackCreate,
    customer: UserModel = Depends(require_customer),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    order = await workflow.submit_feedback(order_id, actor_for(customer), body)
    return order_to_snapshot(order)
