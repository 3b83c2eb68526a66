import pytest
from datetime import datetime, timezone
from sqlalchemy.dialects import postgresql
from eventhub.services import revenue_service
from eventhub.domain.orders.models import OrderType
from eventhub.domain.revenue.schemas import RevenuePaidUpdateDTO
from eventhub.domain.exceptions import NotFound
from tests.helper import db_with_scalar


def _revenue(mocker, **overrides):
    data = dict(
        id=1,
        event_id=3,
        ticket_revenue_cents=75000,
        package_revenue_cents=0,
        paid_cents=0,
        updated_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    data.update(overrides)
    revenue = mocker.Mock(**data)
    revenue.event.name = "Launch Party"
    revenue.event.organizer_id = "organizer-1"
    return revenue


def _compiled(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


@pytest.mark.asyncio
@pytest.mark.parametrize("order_type, column", [
    (OrderType.TICKET, "ticket_revenue_cents"),
    (OrderType.PACKAGE, "package_revenue_cents"),
])
async def test_add_order_revenue_increments_matching_column(mocker, order_type, column):
    db = mocker.Mock()
    db.execute = mocker.AsyncMock()

    await revenue_service.add_order_revenue(db, 3, order_type, 75000)

    ensure, increment = [c.args[0] for c in db.execute.await_args_list]
    assert "ON CONFLICT (event_id) DO NOTHING" in _compiled(ensure)
    sql = _compiled(increment)
    assert f"SET {column}=(event_revenues.{column} + " in sql
    assert increment.compile(dialect=postgresql.dialect()).params[f"{column}_1"] == 75000


@pytest.mark.asyncio
async def test_list_revenues_flattens_event_details(mocker):
    result = mocker.Mock()
    result.all.return_value = [_revenue(mocker)]
    db = mocker.Mock()
    db.scalars = mocker.AsyncMock(return_value=result)

    revenues = await revenue_service.list_revenues(db)

    assert len(revenues) == 1
    assert revenues[0].event_name == "Launch Party"
    assert revenues[0].organizer_id == "organizer-1"
    assert revenues[0].ticket_revenue_cents == 75000


@pytest.mark.asyncio
async def test_update_paid_amount_when_row_missing_raises_not_found(mocker):
    db = db_with_scalar(mocker, None)

    with pytest.raises(NotFound) as e:
        await revenue_service.update_paid_amount(db, RevenuePaidUpdateDTO(event_id=3, paid_cents=100))

    assert e.value.field == "event_id"
    db.flush.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_paid_amount_sets_value_and_audits_previous(mocker, audit_spans):
    revenue = _revenue(mocker, paid_cents=500)
    db = db_with_scalar(mocker, revenue)
    db.refresh = mocker.AsyncMock()

    dto = await revenue_service.update_paid_amount(db, RevenuePaidUpdateDTO(event_id=3, paid_cents=60000))

    assert revenue.paid_cents == 60000
    assert dto.paid_cents == 60000
    db.flush.assert_awaited_once()
    db.refresh.assert_awaited_once_with(revenue)
    assert audit_spans[0].meta["previous_paid_cents"] == 500
    assert audit_spans[0].object_id == 1
