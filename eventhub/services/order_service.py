import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any
from sqlalchemy import select, desc
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.core.auditing import AuditSpan
from eventhub.core.config import GATEWAY_CURRENCY, RESERVATION_MINUTES
from eventhub.core.money import line_total_cents
from eventhub.core.pagination import PageDTO, fetch_page
from eventhub.domain.events.models import Event, Sponsor
from eventhub.domain.orders.models import Order, OrderItem, OrderStatus, OrderType
from eventhub.domain.orders.schemas import CheckoutRequestDTO, CheckoutReadDTO, CheckoutLineDTO, \
    OrderStatusRequestDTO, OrderListItemDTO, UserOrdersQueryDTO
from eventhub.domain.users.models import User, UserRole
from eventhub.domain.exceptions import NotFound, Forbidden, ForbiddenRole, InvalidInput, Conflict, \
    UpstreamServiceError
from eventhub.integrations.payment_gateway import PaymentGatewayClient
from eventhub.services import inventory_service, revenue_service
from eventhub.services.notification_service import NotificationKind

logger = logging.getLogger("eventhub.orders")


@dataclass
class FinalizeResult:
    applied: bool
    order_id: int | None = None
    status: OrderStatus | None = None
    notifications: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    @classmethod
    def noop(cls, order: Order | None = None) -> "FinalizeResult":
        return cls(
            applied=False,
            order_id=getattr(order, "id", None),
            status=getattr(order, "status", None)
        )


def _require_order_type_allowed(user: User, order_type: OrderType) -> None:
    if order_type == OrderType.PACKAGE and user.role != UserRole.SPONSOR:
        raise ForbiddenRole(
            "You need to be registered as a sponsor to purchase packages",
            ctx={"user_role": user.role, "required": [UserRole.SPONSOR]}
        )


async def _require_event(db: AsyncSession, event_id: int) -> Event:
    event = await db.scalar(select(Event).where(Event.id == event_id))
    if not event:
        raise NotFound("Event not found", ctx={"event_id": event_id}, field="event_id")
    return event


async def _lock_order(db: AsyncSession, gateway_order_id: str) -> Order | None:
    return await db.scalar(
        select(Order)
        .where(Order.gateway_order_id == gateway_order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


def _notification_payload(order: Order) -> dict[str, Any]:
    event = order.event
    buyer = order.user
    return {
        "order_id": order.id,
        "gateway_order_id": order.gateway_order_id,
        "order_type": order.type.value,
        "event_id": order.event_id,
        "event_name": event.name,
        "buyer_id": buyer.id,
        "buyer_email": buyer.email,
        "buyer_name": buyer.display_name,
        "organizer_id": event.organizer_id,
        "organizer_email": event.organizer.email,
        "total_amount_cents": order.total_amount_cents,
        "currency": GATEWAY_CURRENCY,
        "items": [
            {"title": item.pool.title, "quantity": item.quantity, "price": str(item.pool.price)}
            for item in order.items
        ],
    }


async def _record_sponsor(db: AsyncSession, order: Order) -> bool:
    sponsor_id = await db.scalar(
        insert(Sponsor)
        .values(event_id=order.event_id, sponsor_id=order.user_id)
        .on_conflict_do_nothing(constraint="uq_sponsors_event_sponsor")
        .returning(Sponsor.id)
    )
    return sponsor_id is not None


async def create_order(
        db: AsyncSession,
        gateway: PaymentGatewayClient,
        user: User,
        schema: CheckoutRequestDTO,
) -> CheckoutReadDTO:
    async with AuditSpan(
        scope="ORDERS",
        action="CREATE",
        object_type="order",
        event_id=schema.event_id,
        meta={"order_type": schema.order_type, "items": len(schema.items)}
    ) as span:
        _require_order_type_allowed(user, schema.order_type)

        event = await _require_event(db, schema.event_id)
        if event.organizer_id == user.id:
            raise Forbidden(
                "Organizer cannot buy tickets to or sponsor their own event",
                ctx={"event_id": event.id}
            )

        sweep = await inventory_service.sweep_expired_orders(db, event_id=event.id, order_type=schema.order_type)
        await db.commit()
        span.meta["swept"] = sweep["orders_expired"]

        # pool rows are always locked in ascending id order
        pools: dict[int, Any] = {}
        for item in sorted(schema.items, key=lambda i: i.id):
            pools[item.id] = await inventory_service.reserve(
                db, schema.order_type, item.id, item.quantity, event_id=event.id
            )

        reserved = [(pools[item.id], item.quantity) for item in schema.items]
        total_cents = sum(line_total_cents(pool.price, quantity) for pool, quantity in reserved)

        if total_cents <= 0:
            raise InvalidInput("Order total must be greater than zero", ctx={"event_id": event.id}, field="items")

        gateway_order = await gateway.create_order(
            amount_cents=total_cents,
            currency=GATEWAY_CURRENCY,
            notes={
                "event_id": event.id,
                "user_id": user.id,
                "type": schema.order_type.value,
                "item_count": len(schema.items),
            }
        )
        if gateway_order.amount != total_cents:
            raise UpstreamServiceError(
                "Payment gateway order amount mismatch",
                ctx={"expected": total_cents, "actual": gateway_order.amount}
            )

        is_ticket = schema.order_type == OrderType.TICKET
        order = Order(
            gateway_order_id=gateway_order.id,
            user_id=user.id,
            event_id=event.id,
            type=schema.order_type,
            status=OrderStatus.RESERVED,
            total_amount_cents=total_cents,
            expires_at=datetime.now(timezone.utc) + timedelta(minutes=RESERVATION_MINUTES),
            items=[
                OrderItem(
                    ticket_id=pool.id if is_ticket else None,
                    package_id=None if is_ticket else pool.id,
                    quantity=quantity
                )
                for pool, quantity in reserved
            ]
        )
        db.add(order)
        try:
            await db.flush()
        except IntegrityError as e:
            raise Conflict(
                "Gateway order already recorded",
                ctx={"gateway_order_id": gateway_order.id}
            ) from e

        span.object_id = order.id
        span.order_id = order.id
        span.meta.update({"gateway_order_id": gateway_order.id, "total_amount_cents": total_cents})

        return CheckoutReadDTO(
            gateway_order_id=gateway_order.id,
            amount_cents=gateway_order.amount,
            currency=gateway_order.currency,
            expires_at=order.expires_at,
            items=[
                CheckoutLineDTO(title=pool.title, quantity=quantity, price=pool.price)
                for pool, quantity in reserved
            ]
        )


async def get_order_status(db: AsyncSession, user: User, schema: OrderStatusRequestDTO) -> OrderStatus:
    row = (await db.execute(
        select(Order.user_id, Order.type, Order.status)
        .where(Order.gateway_order_id == schema.gateway_order_id)
    )).first()
    if not row or row.type != schema.order_type:
        raise NotFound("Order not found", ctx={"gateway_order_id": schema.gateway_order_id})

    if row.user_id != user.id and user.role != UserRole.ADMIN:
        raise Forbidden("Not allowed to view this order", ctx={"gateway_order_id": schema.gateway_order_id})

    return row.status


async def list_user_orders(db: AsyncSession, user: User, query: UserOrdersQueryDTO) -> PageDTO[OrderListItemDTO]:
    where = [Order.user_id == user.id]
    if query.status is not None:
        where.append(Order.status == query.status)

    orders, total = await fetch_page(
        db,
        select(Order).where(*where).order_by(desc(Order.created_at), Order.id),
        page=query.page,
        page_size=query.page_size
    )

    return PageDTO[OrderListItemDTO](
        items=[OrderListItemDTO.model_validate(order) for order in orders],
        total=total,
        page=query.page,
        page_size=query.page_size
    )


async def mark_paid(db: AsyncSession, gateway_order_id: str) -> FinalizeResult:
    """Commit stock, book revenue and complete the order. Only a RESERVED order is touched."""
    async with AuditSpan(
        scope="ORDERS",
        action="FINALIZE_PAID",
        object_type="order",
        meta={"gateway_order_id": gateway_order_id}
    ) as span:
        order = await _lock_order(db, gateway_order_id)
        if not order:
            logger.warning("Order %s not found", gateway_order_id)
            span.meta["no_op"] = "not_found"
            return FinalizeResult.noop()

        span.object_id = order.id
        span.order_id = order.id
        span.event_id = order.event_id

        if order.status == OrderStatus.COMPLETED:
            logger.info("Order %s already completed", gateway_order_id)
            span.meta["no_op"] = "already_completed"
            return FinalizeResult.noop(order)

        if order.status != OrderStatus.RESERVED:
            # TODO: open a refund with the gateway once refunds are supported
            logger.error(
                "Payment captured for %s order %s after its reservation was released; manual refund required",
                order.status.value, gateway_order_id
            )
            span.meta["no_op"] = f"late_payment_{order.status.value.lower()}"
            return FinalizeResult.noop(order)

        await inventory_service.commit_order_items(db, order)

        revenue_cents = sum(line_total_cents(item.pool.price, item.quantity) for item in order.items)
        await revenue_service.add_order_revenue(db, order.event_id, order.type, revenue_cents)

        order.status = OrderStatus.COMPLETED

        payload = _notification_payload(order)
        result = FinalizeResult(applied=True, order_id=order.id, status=order.status)
        result.notifications.append((NotificationKind.PURCHASE_CONFIRMED, payload))

        if order.type == OrderType.PACKAGE:
            if await _record_sponsor(db, order):
                result.notifications.append((NotificationKind.NEW_SPONSOR, payload))
            else:
                logger.info("User %s already sponsors event %s", order.user_id, order.event_id)

        await db.flush()
        span.meta.update({"revenue_cents": revenue_cents, "notifications": len(result.notifications)})
        return result


async def _finalize_unpaid(
        db: AsyncSession,
        gateway_order_id: str,
        new_status: OrderStatus,
        action: str,
) -> FinalizeResult:
    async with AuditSpan(
        scope="ORDERS",
        action=action,
        object_type="order",
        meta={"gateway_order_id": gateway_order_id}
    ) as span:
        order = await _lock_order(db, gateway_order_id)
        if not order:
            logger.warning("Order %s not found", gateway_order_id)
            span.meta["no_op"] = "not_found"
            return FinalizeResult.noop()

        span.object_id = order.id
        span.order_id = order.id
        span.event_id = order.event_id

        if order.status != OrderStatus.RESERVED:
            logger.info("Order %s already %s", gateway_order_id, order.status.value)
            span.meta["no_op"] = f"already_{order.status.value.lower()}"
            return FinalizeResult.noop(order)

        released = await inventory_service.release_order_items(db, order)
        order.status = new_status
        await db.flush()

        logger.info(
            "Order %s %s: released %d units across %d items",
            gateway_order_id, new_status.value, released, len(order.items)
        )
        span.meta["units_released"] = released
        return FinalizeResult(applied=True, order_id=order.id, status=order.status)


async def mark_payment_failed(db: AsyncSession, gateway_order_id: str) -> FinalizeResult:
    return await _finalize_unpaid(db, gateway_order_id, OrderStatus.FAILED, "FINALIZE_PAYMENT_FAILED")


async def mark_order_failed(db: AsyncSession, gateway_order_id: str) -> FinalizeResult:
    return await _finalize_unpaid(db, gateway_order_id, OrderStatus.EXPIRED, "FINALIZE_ORDER_FAILED")
