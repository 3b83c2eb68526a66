import logging
from datetime import datetime, timezone
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.domain.catalog.models import Ticket, Package
from eventhub.domain.orders.models import Order, OrderItem, OrderStatus, OrderType
from eventhub.domain.exceptions import NotFound, InsufficientStock

logger = logging.getLogger("eventhub.inventory")

SWEEP_LIMIT = 500

PoolModel = type[Ticket] | type[Package]


def pool_model(order_type: OrderType) -> PoolModel:
    return Ticket if order_type == OrderType.TICKET else Package


def _item_pool_ref(item: OrderItem) -> tuple[PoolModel, int]:
    if item.ticket_id is not None:
        return Ticket, item.ticket_id
    return Package, item.package_id


async def _lock_pool(db: AsyncSession, model: PoolModel, pool_id: int, event_id: int) -> Ticket | Package:
    pool = await db.scalar(
        select(model)
        .where(model.id == pool_id, model.event_id == event_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if not pool:
        raise NotFound(f"{model.__name__} not found", ctx={"id": pool_id, "event_id": event_id})
    return pool


async def reserve(
        db: AsyncSession,
        order_type: OrderType,
        pool_id: int,
        quantity: int,
        *,
        event_id: int
) -> Ticket | Package:
    model = pool_model(order_type)
    pool = await _lock_pool(db, model, pool_id, event_id)

    available = pool.quantity - pool.sold - pool.reserved
    if available < quantity:
        raise InsufficientStock(
            requested=quantity,
            available=max(available, 0),
            item_id=pool.id,
            title=pool.title,
            item_type=order_type.value
        )

    await db.execute(
        update(model)
        .where(model.id == pool.id)
        .values(reserved=model.reserved + quantity)
    )
    return pool


async def release(db: AsyncSession, model: PoolModel, pool_id: int, quantity: int) -> None:
    await db.execute(
        update(model)
        .where(model.id == pool_id)
        .values(reserved=func.greatest(model.reserved - quantity, 0))
    )


async def commit(db: AsyncSession, model: PoolModel, pool_id: int, quantity: int) -> None:
    await db.execute(
        update(model)
        .where(model.id == pool_id)
        .values(
            sold=model.sold + quantity,
            reserved=func.greatest(model.reserved - quantity, 0)
        )
    )


async def release_order_items(db: AsyncSession, order: Order) -> int:
    released = 0
    for item in order.items:
        model, pool_id = _item_pool_ref(item)
        await release(db, model, pool_id, item.quantity)
        released += item.quantity
    return released


async def commit_order_items(db: AsyncSession, order: Order) -> int:
    committed = 0
    for item in order.items:
        model, pool_id = _item_pool_ref(item)
        await commit(db, model, pool_id, item.quantity)
        committed += item.quantity
    return committed


async def sweep_expired_orders(
        db: AsyncSession,
        *,
        event_id: int | None = None,
        order_type: OrderType | None = None,
        now: datetime | None = None,
        limit: int = SWEEP_LIMIT
) -> dict:
    # rows locked by a running finalizer are skipped
    now = now or datetime.now(timezone.utc)
    stats = {"orders_expired": 0, "units_released": 0}

    stmt = select(Order).where(Order.status == OrderStatus.RESERVED, Order.expires_at < now)
    if event_id is not None:
        stmt = stmt.where(Order.event_id == event_id)
    if order_type is not None:
        stmt = stmt.where(Order.type == order_type)
    stmt = stmt.order_by(Order.expires_at).limit(limit).with_for_update(skip_locked=True)

    expired = list(await db.scalars(stmt))
    if not expired:
        return stats

    for order in expired:
        stats["units_released"] += await release_order_items(db, order)
        order.status = OrderStatus.EXPIRED
        stats["orders_expired"] += 1

    await db.flush()
    logger.info(
        "Expired %d reservations (%d units) event_id=%s type=%s",
        stats["orders_expired"], stats["units_released"], event_id, getattr(order_type, "value", order_type)
    )
    return stats
