from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.core.auditing import AuditSpan
from eventhub.domain.revenue.models import EventRevenue
from eventhub.domain.revenue.schemas import RevenueReadDTO, RevenuePaidUpdateDTO
from eventhub.domain.orders.models import OrderType
from eventhub.domain.exceptions import NotFound


def to_read_dto(revenue: EventRevenue) -> RevenueReadDTO:
    return RevenueReadDTO(
        id=revenue.id,
        event_id=revenue.event_id,
        event_name=revenue.event.name,
        organizer_id=revenue.event.organizer_id,
        ticket_revenue_cents=revenue.ticket_revenue_cents,
        package_revenue_cents=revenue.package_revenue_cents,
        paid_cents=revenue.paid_cents,
        updated_at=revenue.updated_at
    )


async def ensure_revenue_row(db: AsyncSession, event_id: int) -> None:
    await db.execute(
        insert(EventRevenue)
        .values(event_id=event_id)
        .on_conflict_do_nothing(index_elements=[EventRevenue.event_id])
    )


async def add_order_revenue(db: AsyncSession, event_id: int, order_type: OrderType, amount_cents: int) -> None:
    """
    Relative increment of the event's ticket or package accumulator.

    Must run in the same transaction that moves the order to COMPLETED; the
    status guard in the finalizer is what makes this exactly-once.
    """
    column = (
        EventRevenue.ticket_revenue_cents if order_type == OrderType.TICKET
        else EventRevenue.package_revenue_cents
    )
    await ensure_revenue_row(db, event_id)
    await db.execute(
        update(EventRevenue)
        .where(EventRevenue.event_id == event_id)
        .values({column: column + amount_cents})
    )


async def list_revenues(db: AsyncSession) -> list[RevenueReadDTO]:
    result = await db.scalars(select(EventRevenue).order_by(EventRevenue.event_id))
    return [to_read_dto(revenue) for revenue in result.all()]


async def update_paid_amount(db: AsyncSession, schema: RevenuePaidUpdateDTO) -> RevenueReadDTO:
    async with AuditSpan(
        scope="REVENUE",
        action="UPDATE_PAID",
        object_type="event_revenue",
        event_id=schema.event_id,
        meta={"paid_cents": schema.paid_cents}
    ) as span:
        revenue = await db.scalar(
            select(EventRevenue)
            .where(EventRevenue.event_id == schema.event_id)
            .with_for_update()
        )
        if not revenue:
            raise NotFound("Event revenue not found", ctx={"event_id": schema.event_id}, field="event_id")

        span.object_id = revenue.id
        span.meta["previous_paid_cents"] = revenue.paid_cents
        revenue.paid_cents = schema.paid_cents
        await db.flush()
        await db.refresh(revenue)
        return to_read_dto(revenue)
