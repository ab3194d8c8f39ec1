"""Order Workflow — authoritative order creation and status transitions (backend).

Invariants:
    - Every decision is made by core/: pricing, COD gate, state machine, delivery filters
    - Status, proof, the history row and (on a delivered GCash order) the
      customer's successful_gcash_orders are committed in one transaction
    - A rejected transition writes nothing
    - A lost version race raises ConcurrencyError naming the requested status

Design Decisions:
    - Load ORM row → convert to the frozen domain Order → apply_transition → write
      the result back: the ORM never carries business rules
    - GCash credit is granted at delivery, the point the order has completed
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from fulfillment.config import Settings
from fulfillment.core.cart_ledger import CartItem, cart_with_items, validate_for_checkout
from fulfillment.core.cod_gate import CodEligibility, check_payment_method
from fulfillment.core.delivery_rules import DeliveryFilter, filter_deliveries, matches_search
from fulfillment.core.domain_types import (
    Actor, ActorId, ActorRole, OrderId, OrderStatus, PaymentMethod, ProductId,
)
from fulfillment.core.errors import (
    ConcurrencyError, ErrorContext, FulfillmentError, ResourceNotFoundError,
    ValidationError,
)
from fulfillment.core.order import (
    Order, OrderFeedback, ProofOfDelivery, StatusChange, create_order,
    generate_order_number, snapshot_items,
)
from fulfillment.core.order_feedback import attach_feedback
from fulfillment.core.order_snapshot import (
    feedback_from_dict, feedback_to_dict, items_from_list, items_to_list,
    proof_from_dict, proof_to_dict,
)
from fulfillment.core.order_stats import (
    CustomerOrderStats, DriverPerformance, PerformancePeriod, customer_order_stats,
    driver_performance, period_start, recent_orders,
)
from fulfillment.core.order_state_machine import (
    TransitionRequest, apply_transition, assign_driver,
)
from fulfillment.core.pricing import price_cart
from fulfillment.models.order import Order as OrderModel
from fulfillment.models.order_status_event import OrderStatusEvent
from fulfillment.models.user import User as UserModel
from fulfillment.schemas.order import FeedbackCreate, OrderCreate, StatusUpdate

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ─── ORM ↔ domain ────────────────────────────────────────────────

def order_from_row(row: OrderModel) -> Order:
    """Rebuild the frozen domain Order from its ORM row and event rows."""
    return Order(
        id=OrderId(row.id),
        order_number=row.order_number,
        customer_id=ActorId(row.customer_id),
        customer_name=row.customer_name,
        items=items_from_list(row.items),
        subtotal=row.subtotal,
        shipping_fee=row.shipping_fee,
        discount=row.discount,
        total=row.total,
        payment_method=PaymentMethod(row.payment_method),
        promo_code=row.promo_code,
        status=OrderStatus(row.status),
        delivery_address=row.delivery_address,
        delivery_date=row.delivery_date,
        delivery_window=row.delivery_window,
        created_at=row.created_at,
        updated_at=row.updated_at,
        driver_id=ActorId(row.driver_id) if row.driver_id else None,
        assigned_at=row.assigned_at,
        delivery_started_at=row.delivery_started_at,
        delivered_at=row.delivered_at,
        proof_of_delivery=proof_from_dict(row.proof_of_delivery),
        failure_reason=row.failure_reason,
        cancellation_reason=row.cancellation_reason,
        feedback=feedback_from_dict(row.feedback),
        status_history=tuple(
            StatusChange(
                from_status=OrderStatus(e.from_status),
                to_status=OrderStatus(e.to_status),
                actor_role=ActorRole(e.actor_role),
                actor_id=ActorId(e.actor_id) if e.actor_id else None,
                timestamp=e.created_at,
                notes=e.notes,
            )
            for e in row.events
        ),
    )


def _write_back(row: OrderModel, order: Order) -> None:
    """Copy the mutable fulfillment fields of `order` onto `row`."""
    row.status = order.status.value
    row.updated_at = order.updated_at
    row.driver_id = order.driver_id
    row.assigned_at = order.assigned_at
    row.delivery_started_at = order.delivery_started_at
    row.delivered_at = order.delivered_at
    row.proof_of_delivery = proof_to_dict(order.proof_of_delivery)
    row.failure_reason = order.failure_reason
    row.cancellation_reason = order.cancellation_reason
    row.feedback = feedback_to_dict(order.feedback)


def _event_row(change: StatusChange, position: int) -> OrderStatusEvent:
    return OrderStatusEvent(
        position=position,
        from_status=change.from_status.value,
        to_status=change.to_status.value,
        actor_role=change.actor_role.value,
        actor_id=change.actor_id,
        notes=change.notes,
        created_at=change.timestamp,
    )


def _proof_from_update(data: StatusUpdate) -> ProofOfDelivery | None:
    p = data.proof_of_delivery
    if p is None:
        return None
    return ProofOfDelivery(
        recipient_name=p.recipient_name,
        captured_at=p.captured_at,
        photo=p.photo,
        signature=p.signature,
        notes=p.notes,
    )


class OrderWorkflow:
    """Backend order operations over one AsyncSession."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.settings = settings
        self.clock = clock

    # ─── Reads ───────────────────────────────────────────────────

    async def _load(self, order_id: uuid.UUID) -> OrderModel:
        result = await self.db.execute(
            select(OrderModel).where(OrderModel.id == order_id),
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise ResourceNotFoundError("Order", str(order_id))
        return row

    async def _load_visible(
        self, order_id: uuid.UUID, actor: Actor,
    ) -> tuple[OrderModel, Order]:
        row = await self._load(order_id)
        order = order_from_row(row)
        visible = (
            actor.role == ActorRole.ADMIN
            or (actor.role == ActorRole.CUSTOMER and order.customer_id == actor.id)
            or (actor.role == ActorRole.DRIVER and order.driver_id == actor.id)
        )
        if not visible:
            raise ResourceNotFoundError("Order", str(order_id))
        return row, order

    async def get_order(self, order_id: uuid.UUID, actor: Actor) -> Order:
        """Owner, assigned driver or admin; anyone else gets 404."""
        _, order = await self._load_visible(order_id, actor)
        return order

    async def list_orders(
        self, actor: Actor, status: OrderStatus | None = None, search: str | None = None,
    ) -> list[Order]:
        """Customer: own orders. Driver: assigned orders. Admin: all. Newest first."""
        query = select(OrderModel).order_by(OrderModel.created_at.desc())
        if actor.role == ActorRole.CUSTOMER:
            query = query.where(OrderModel.customer_id == actor.id)
        elif actor.role == ActorRole.DRIVER:
            query = query.where(OrderModel.driver_id == actor.id)
        if status is not None:
            query = query.where(OrderModel.status == status.value)
        result = await self.db.execute(query)
        orders = [order_from_row(row) for row in result.scalars().all()]
        return [o for o in orders if matches_search(o, search)]

    async def list_deliveries(self, driver: Actor, f: DeliveryFilter) -> list[Order]:
        result = await self.db.execute(
            select(OrderModel)
            .where(OrderModel.driver_id == driver.id)
            .order_by(OrderModel.created_at.desc()),
        )
        orders = [order_from_row(row) for row in result.scalars().all()]
        return filter_deliveries(orders, driver.id, f)

    async def customer_stats(
        self, customer: Actor, recent: int = 5,
    ) -> tuple[CustomerOrderStats, list[Order]]:
        """Purchase totals over the customer's own orders, plus the newest few."""
        orders = await self.list_orders(customer)
        return customer_order_stats(orders), recent_orders(orders, recent)

    async def driver_performance(
        self, driver: Actor, period: PerformancePeriod = PerformancePeriod.MONTH,
    ) -> DriverPerformance:
        """Window is filtered in core: SQLite hands back naive datetimes."""
        result = await self.db.execute(
            select(OrderModel).where(OrderModel.driver_id == driver.id),
        )
        orders = [order_from_row(row) for row in result.scalars().all()]
        return driver_performance(orders, driver.id, period_start(period, self.clock()))

    # ─── Writes ──────────────────────────────────────────────────

    async def place_order(self, customer: UserModel, data: OrderCreate) -> Order:
        """Recompute totals, re-check the COD gate, freeze the items and persist as pending.

        Unit prices and max_stock arrive with the lines (the catalog is external);
        everything derived from them is computed here.
        """
        cart = cart_with_items(tuple(
            CartItem(
                product_id=ProductId(line.product_id),
                name=line.name,
                unit_price=line.unit_price,
                quantity=line.quantity,
                max_stock=line.max_stock,
                category=line.category,
                unit=line.unit,
            )
            for line in data.items
        ))
        validate_for_checkout(cart)
        pricing = price_cart(cart.subtotal, self.settings.shipping_policy, data.promo_code)
        check_payment_method(
            data.payment_method,
            CodEligibility(
                customer.successful_gcash_orders, self.settings.cod_required_gcash_orders,
            ),
        )

        now = self.clock()
        order = create_order(
            order_id=OrderId(uuid.uuid4()),
            order_number=generate_order_number(now),
            customer_id=ActorId(customer.id),
            customer_name=customer.name,
            items=snapshot_items(cart.items),
            pricing=pricing,
            payment_method=data.payment_method,
            delivery_address=data.delivery_address,
            delivery_date=data.delivery_date,
            delivery_window=data.delivery_window,
            now=now,
        )
        row = OrderModel(
            id=order.id,
            order_number=order.order_number,
            customer_id=order.customer_id,
            customer_name=order.customer_name,
            items=items_to_list(order.items),
            subtotal=order.subtotal,
            shipping_fee=order.shipping_fee,
            discount=order.discount,
            total=order.total,
            promo_code=order.promo_code,
            payment_method=order.payment_method.value,
            status=order.status.value,
            delivery_address=order.delivery_address,
            delivery_date=order.delivery_date,
            delivery_window=order.delivery_window,
            created_at=order.created_at,
            updated_at=order.updated_at,
            events=[],
        )
        self.db.add(row)
        await self.db.commit()
        logger.info(
            f"Order {order.order_number} placed ({order.payment_method.value}, "
            f"total {order.total:.2f})",
            extra={"order_id": order.id, "order_number": order.order_number,
                   "actor_id": customer.id},
        )
        return order

    async def transition(
        self, order_id: uuid.UUID, actor: Actor, data: StatusUpdate,
    ) -> Order:
        """Apply one role-gated transition and commit it atomically."""
        row = await self._load(order_id)
        current = order_from_row(row)
        request = TransitionRequest(
            actor=actor,
            target=data.status,
            notes=data.notes,
            reason=data.reason,
            proof=_proof_from_update(data),
            override=data.override,
        )
        log_extra = {
            "order_id": current.id, "order_number": current.order_number,
            "actor_role": actor.role.value, "actor_id": actor.id,
            "from_status": current.status.value, "to_status": data.status.value,
        }
        try:
            updated = apply_transition(
                current, request, self.clock(), self.settings.transition_rules,
            )
        except FulfillmentError as e:
            e.context = ErrorContext(order_id=str(current.id), actor_role=actor.role.value)
            logger.warning(
                f"Transition rejected: {e.message}",
                extra={**log_extra, "error_code": e.code},
            )
            raise

        _write_back(row, updated)
        row.events.append(_event_row(updated.status_history[-1], len(row.events)))
        if (
            updated.status == OrderStatus.DELIVERED
            and updated.payment_method == PaymentMethod.GCASH
        ):
            await self._credit_gcash_order(updated.customer_id)
        await self._commit(current, data.status)

        logger.info(
            f"Order {updated.order_number}: {current.status.value} → {updated.status.value}",
            extra=log_extra,
        )
        return updated

    async def assign_driver(
        self, order_id: uuid.UUID, actor: Actor, driver_id: uuid.UUID,
    ) -> Order:
        row = await self._load(order_id)
        current = order_from_row(row)
        driver = await self.db.get(UserModel, driver_id)
        if driver is None or driver.role != ActorRole.DRIVER.value:
            raise ResourceNotFoundError("Driver", str(driver_id))

        updated = assign_driver(
            current, actor, ActorId(driver.id), driver.is_available, self.clock(),
        )
        _write_back(row, updated)
        await self._commit(current, None)
        logger.info(
            f"Order {updated.order_number} assigned to driver {driver.name}",
            extra={"order_id": updated.id, "actor_role": actor.role.value,
                   "actor_id": driver.id},
        )
        return updated

    async def confirm_payment(self, order_id: uuid.UUID) -> Order:
        """Payment-confirmation event: pending → confirmed as the system actor."""
        row = await self._load(order_id)
        if row.payment_method != PaymentMethod.GCASH.value:
            raise ValidationError("Only GCash orders have payment confirmations.", "order_id")
        return await self.transition(
            order_id,
            Actor(ActorRole.SYSTEM),
            StatusUpdate(status=OrderStatus.CONFIRMED, notes="GCash payment confirmed"),
        )

    async def set_availability(self, driver: UserModel, is_available: bool) -> UserModel:
        """Toggle the driver's dispatch availability. Assigned orders are untouched."""
        driver.is_available = is_available
        await self.db.commit()
        logger.info(
            f"Driver {driver.name} availability set to {is_available}",
            extra={"actor_role": driver.role, "actor_id": driver.id},
        )
        return driver

    async def submit_feedback(
        self, order_id: uuid.UUID, actor: Actor, data: FeedbackCreate,
    ) -> Order:
        """Rate a delivered order once. Status and history are left as they are."""
        row, current = await self._load_visible(order_id, actor)
        feedback = OrderFeedback(
            rating=data.rating,
            comment=data.comment,
            product_quality=data.product_quality,
            delivery_service=data.delivery_service,
            packaging=data.packaging,
            would_recommend=data.would_recommend,
        )
        try:
            updated = attach_feedback(current, actor, feedback, self.clock())
        except FulfillmentError as e:
            e.context = ErrorContext(order_id=str(current.id), actor_role=actor.role.value)
            logger.warning(
                f"Feedback rejected: {e.message}",
                extra={"order_id": current.id, "order_number": current.order_number,
                       "actor_id": actor.id, "error_code": e.code},
            )
            raise

        _write_back(row, updated)
        await self._commit(current, None)
        logger.info(
            f"Order {updated.order_number} rated {feedback.rating}/5",
            extra={"order_id": updated.id, "order_number": updated.order_number,
                   "actor_id": actor.id},
        )
        return updated

    # ─── Helpers ─────────────────────────────────────────────────

    async def _credit_gcash_order(self, customer_id: uuid.UUID) -> None:
        customer = await self.db.get(UserModel, customer_id)
        if customer is not None:
            customer.successful_gcash_orders += 1

    async def _commit(self, current: Order, requested: OrderStatus | None) -> None:
        try:
            await self.db.commit()
        except StaleDataError as e:
            await self.db.rollback()
            logger.warning(
                f"Concurrent update on order {current.order_number}: {e}",
                extra={"order_id": current.id, "error_code": "CONCURRENCY_CONFLICT"},
            )
            raise ConcurrencyError(
                "Order was changed by someone else. Refresh and try again.",
                current.status.value,
                requested.value if requested else None,
                ErrorContext(order_id=str(current.id)),
            ) from e
