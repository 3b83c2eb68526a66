import pytest
from datetime import datetime, timezone
from decimal import Decimal
from eventhub.services import event_service
from eventhub.domain.events.models import Event
from eventhub.domain.events.schemas import EventCreateDTO, EventsQueryDTO
from eventhub.domain.orders.models import OrderStatus, OrderType
from eventhub.domain.exceptions import NotFound, InvalidInput
from tests.helper import db_with_scalar, make_user


def _event_payload() -> EventCreateDTO:
    return EventCreateDTO(
        name="  Launch Party ",
        location="Bengaluru",
        event_start=datetime(2025, 6, 1, 18, tzinfo=timezone.utc),
        event_end=datetime(2025, 6, 1, 23, tzinfo=timezone.utc),
        tickets=[{"title": "GA", "price": "250.00", "quantity": 10}],
        packages=[{"title": "Gold", "price": "5000.00", "quantity": 2}],
    )


@pytest.mark.asyncio
async def test_create_event_builds_pools_and_revenue_row(mocker, audit_spans):
    db = mocker.Mock()
    db.add = mocker.Mock()
    db.flush = mocker.AsyncMock()

    async def _refresh(event):
        event.id = 3
        event.created_at = datetime(2025, 1, 1, tzinfo=timezone.utc)
        for i, pool in enumerate(event.tickets + event.packages, start=1):
            pool.id = i

    db.refresh = mocker.AsyncMock(side_effect=_refresh)

    dto = await event_service.create_event(db, make_user(mocker, "organizer-1"), _event_payload())

    event = db.add.call_args.args[0]
    assert isinstance(event, Event)
    assert event.organizer_id == "organizer-1"
    assert event.revenue is not None
    assert dto.name == "Launch Party"
    assert dto.tickets[0].price == Decimal("250.00")
    assert dto.tickets[0].available == 10
    assert dto.packages[0].title == "Gold"
    assert audit_spans[0].event_id == 3


@pytest.mark.asyncio
async def test_get_event_details_missing_raises_not_found(mocker):
    db = db_with_scalar(mocker, None)

    with pytest.raises(NotFound):
        await event_service.get_event_details(db, make_user(mocker), 42)


@pytest.mark.asyncio
async def test_get_event_details_includes_callers_orders(mocker):
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    ticket = mocker.Mock(id=1, description=None, price=Decimal("250.00"), quantity=10, available=4)
    ticket.title = "GA"
    event = mocker.Mock(
        id=3, description=None, location=None, organizer_id="organizer-1",
        event_start=now, event_end=now, created_at=now, tickets=[ticket], packages=[]
    )
    event.name = "Launch Party"
    order = mocker.Mock(
        id=7, gateway_order_id="order_abc", event_id=3, type=OrderType.TICKET,
        status=OrderStatus.RESERVED, total_amount_cents=75000, expires_at=now, created_at=now
    )
    db = db_with_scalar(mocker, event)
    db.scalars = mocker.AsyncMock(return_value=[order])

    details = await event_service.get_event_details(db, make_user(mocker), 3)

    assert details.tickets[0].available == 4
    assert [o.gateway_order_id for o in details.my_orders] == ["order_abc"]


@pytest.mark.asyncio
async def test_list_events_filters_by_start_window_and_orders_by_start(mocker):
    event = Event(
        id=3,
        name="Launch Party",
        organizer_id="organizer-1",
        event_start=datetime(2025, 6, 1, 18, tzinfo=timezone.utc),
        event_end=datetime(2025, 6, 1, 23, tzinfo=timezone.utc),
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        tickets=[],
        packages=[],
    )
    fetch = mocker.patch(
        "eventhub.services.event_service.fetch_page",
        new=mocker.AsyncMock(return_value=([event], 41))
    )
    query = EventsQueryDTO(
        page=3,
        page_size=20,
        since=datetime(2025, 6, 1, tzinfo=timezone.utc),
        until=datetime(2025, 7, 1, tzinfo=timezone.utc),
    )

    page = await event_service.list_events(mocker.Mock(), query)

    stmt = str(fetch.await_args.args[1])
    assert "events.event_start >= :event_start_1" in stmt
    assert "events.event_start <= :event_start_2" in stmt
    assert "ORDER BY events.event_start, events.id" in stmt
    assert fetch.await_args.kwargs == {"page": 3, "page_size": 20}
    assert page.total == 41
    assert page.pages == 3
    assert page.has_next is False
    assert [item.name for item in page.items] == ["Launch Party"]


@pytest.mark.asyncio
async def test_list_events_without_filters_has_no_where_clause(mocker):
    fetch = mocker.patch(
        "eventhub.services.event_service.fetch_page",
        new=mocker.AsyncMock(return_value=([], 0))
    )

    page = await event_service.list_events(mocker.Mock(), EventsQueryDTO())

    assert "WHERE" not in str(fetch.await_args.args[1])
    assert page.items == []
    assert page.pages == 1


@pytest.mark.asyncio
async def test_list_events_rejects_inverted_window(mocker):
    fetch = mocker.patch("eventhub.services.event_service.fetch_page", new=mocker.AsyncMock())
    query = EventsQueryDTO(
        since=datetime(2025, 7, 1, tzinfo=timezone.utc),
        until=datetime(2025, 6, 1, tzinfo=timezone.utc),
    )

    with pytest.raises(InvalidInput) as e:
        await event_service.list_events(mocker.Mock(), query)

    assert e.value.field == "until"
    fetch.assert_not_awaited()
