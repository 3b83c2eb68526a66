from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.core.auditing import AuditSpan
from eventhub.core.pagination import PageDTO, fetch_page
from eventhub.domain.catalog.models import Ticket, Package
from eventhub.domain.events.models import Event
from eventhub.domain.events.schemas import EventCreateDTO, EventReadDTO, EventDetailsDTO, EventsQueryDTO
from eventhub.domain.orders.models import Order
from eventhub.domain.orders.schemas import OrderListItemDTO
from eventhub.domain.revenue.models import EventRevenue
from eventhub.domain.users.models import User
from eventhub.domain.exceptions import NotFound, InvalidInput


async def create_event(db: AsyncSession, user: User, schema: EventCreateDTO) -> EventReadDTO:
    async with AuditSpan(
        scope="EVENTS",
        action="CREATE",
        object_type="event",
        meta={"tickets": len(schema.tickets), "packages": len(schema.packages)}
    ) as span:
        data = schema.model_dump(exclude={"tickets", "packages"})
        event = Event(
            **data,
            organizer_id=user.id,
            tickets=[Ticket(**pool.model_dump(), sold=0, reserved=0) for pool in schema.tickets],
            packages=[Package(**pool.model_dump(), sold=0, reserved=0) for pool in schema.packages],
            revenue=EventRevenue()
        )
        db.add(event)
        await db.flush()
        await db.refresh(event)

        span.object_id = event.id
        span.event_id = event.id
        return EventReadDTO.model_validate(event)


async def get_event_details(db: AsyncSession, user: User, event_id: int) -> EventDetailsDTO:
    event = await db.scalar(select(Event).where(Event.id == event_id))
    if not event:
        raise NotFound("Event not found", ctx={"event_id": event_id})

    orders = await db.scalars(
        select(Order)
        .where(Order.event_id == event_id, Order.user_id == user.id)
        .order_by(desc(Order.created_at), Order.id)
    )

    return EventDetailsDTO(
        **EventReadDTO.model_validate(event).model_dump(),
        my_orders=[OrderListItemDTO.model_validate(order) for order in orders]
    )


async def list_events(db: AsyncSession, query: EventsQueryDTO) -> PageDTO[EventReadDTO]:
    if query.since and query.until and query.until < query.since:
        raise InvalidInput(
            "until must not be before since",
            ctx={"since": query.since, "until": query.until},
            field="until"
        )

    stmt = select(Event)
    if query.since is not None:
        stmt = stmt.where(Event.event_start >= query.since)
    if query.until is not None:
        stmt = stmt.where(Event.event_start <= query.until)

    events, total = await fetch_page(
        db,
        stmt.order_by(Event.event_start, Event.id),
        page=query.page,
        page_size=query.page_size
    )

    return PageDTO[EventReadDTO](
        items=[EventReadDTO.model_validate(event) for event in events],
        total=total,
        page=query.page,
        page_size=query.page_size
    )
