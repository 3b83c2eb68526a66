import pytest
from datetime import datetime, timezone
from sqlalchemy.dialects import postgresql
from eventhub.services import inventory_service
from eventhub.domain.catalog.models import Ticket, Package
from eventhub.domain.orders.models import OrderStatus, OrderType
from eventhub.domain.exceptions import NotFound, InsufficientStock
from tests.helper import db_with_scalar, make_pool, make_order, make_item


def test_pool_model_maps_order_type():
    assert inventory_service.pool_model(OrderType.TICKET) is Ticket
    assert inventory_service.pool_model(OrderType.PACKAGE) is Package


def test_available_is_quantity_minus_sold_and_reserved():
    ticket = Ticket(title="GA", price=0, quantity=10, sold=6, reserved=0)
    assert ticket.available == 4

    ticket.reserved = 4
    assert ticket.available == 0


@pytest.mark.asyncio
async def test_reserve_when_pool_missing_raises_not_found(mocker):
    db = db_with_scalar(mocker, None)

    with pytest.raises(NotFound) as e:
        await inventory_service.reserve(db, OrderType.TICKET, 99, 1, event_id=3)

    assert e.value.ctx == {"id": 99, "event_id": 3}
    db.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_reserve_more_than_available_raises_insufficient_stock_and_leaves_counters(mocker):
    pool = make_pool(mocker, 5, quantity=10, sold=6, reserved=0, title="Early Bird")
    db = db_with_scalar(mocker, pool)

    with pytest.raises(InsufficientStock) as e:
        await inventory_service.reserve(db, OrderType.TICKET, 5, 5, event_id=3)

    assert e.value.ctx == {"requested": 5, "available": 4, "id": 5, "title": "Early Bird", "type": "TICKET"}
    db.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_reserve_reports_zero_when_pool_is_overcommitted(mocker):
    pool = make_pool(mocker, 5, quantity=10, sold=8, reserved=4)
    db = db_with_scalar(mocker, pool)

    with pytest.raises(InsufficientStock) as e:
        await inventory_service.reserve(db, OrderType.PACKAGE, 5, 1, event_id=3)

    assert e.value.available == 0


@pytest.mark.asyncio
async def test_reserve_exact_remaining_quantity_issues_relative_update(mocker):
    pool = make_pool(mocker, 5, quantity=10, sold=6, reserved=0)
    db = db_with_scalar(mocker, pool)

    result = await inventory_service.reserve(db, OrderType.TICKET, 5, 4, event_id=3)

    assert result is pool
    db.execute.assert_awaited_once()
    compiled = str(db.execute.await_args.args[0])
    assert "UPDATE tickets SET reserved=(tickets.reserved" in compiled


@pytest.mark.asyncio
async def test_release_clamps_reserved_at_zero(mocker):
    db = mocker.Mock()
    db.execute = mocker.AsyncMock()

    await inventory_service.release(db, Package, 2, 3)

    compiled = str(db.execute.await_args.args[0])
    assert "greatest" in compiled
    assert "UPDATE packages SET reserved" in compiled


@pytest.mark.asyncio
async def test_commit_moves_units_from_reserved_to_sold(mocker):
    db = mocker.Mock()
    db.execute = mocker.AsyncMock()

    await inventory_service.commit(db, Ticket, 2, 3)

    compiled = str(db.execute.await_args.args[0])
    assert "sold=(tickets.sold" in compiled
    assert "greatest" in compiled


@pytest.mark.asyncio
async def test_release_order_items_releases_each_item(mocker):
    release = mocker.patch("eventhub.services.inventory_service.release", new=mocker.AsyncMock())
    ticket = make_pool(mocker, 1)
    package = make_pool(mocker, 2)
    order = make_order(mocker, items=[make_item(mocker, ticket, 2), make_item(mocker, package, 3, ticket=False)])

    released = await inventory_service.release_order_items(mocker.Mock(), order)

    assert released == 5
    assert [c.args[1:] for c in release.await_args_list] == [(Ticket, 1, 2), (Package, 2, 3)]


@pytest.mark.asyncio
async def test_commit_order_items_commits_each_item(mocker):
    commit = mocker.patch("eventhub.services.inventory_service.commit", new=mocker.AsyncMock())
    order = make_order(mocker, items=[make_item(mocker, make_pool(mocker, 4), 6)])

    committed = await inventory_service.commit_order_items(mocker.Mock(), order)

    assert committed == 6
    commit.assert_awaited_once()
    assert commit.await_args.args[1:] == (Ticket, 4, 6)


@pytest.mark.asyncio
async def test_sweep_expired_orders_without_matches_does_not_flush(mocker):
    db = mocker.Mock()
    db.scalars = mocker.AsyncMock(return_value=[])
    db.flush = mocker.AsyncMock()

    stats = await inventory_service.sweep_expired_orders(db, event_id=3, order_type=OrderType.TICKET)

    assert stats == {"orders_expired": 0, "units_released": 0}
    db.flush.assert_not_awaited()


@pytest.mark.asyncio
async def test_sweep_expired_orders_releases_and_marks_expired(mocker):
    first = make_order(mocker, order_id=1)
    second = make_order(mocker, order_id=2)
    db = mocker.Mock()
    db.scalars = mocker.AsyncMock(return_value=[first, second])
    db.flush = mocker.AsyncMock()
    release = mocker.patch(
        "eventhub.services.inventory_service.release_order_items",
        new=mocker.AsyncMock(side_effect=[2, 3])
    )

    stats = await inventory_service.sweep_expired_orders(
        db, event_id=3, order_type=OrderType.TICKET, now=datetime(2025, 1, 1, tzinfo=timezone.utc)
    )

    assert stats == {"orders_expired": 2, "units_released": 5}
    assert first.status == OrderStatus.EXPIRED
    assert second.status == OrderStatus.EXPIRED
    assert release.await_count == 2
    db.flush.assert_awaited_once()

    compiled = str(db.scalars.await_args.args[0].compile(dialect=postgresql.dialect()))
    assert "FOR UPDATE SKIP LOCKED" in compiled


def _db_applying_updates(mocker, pool):
    """Session whose UPDATEs land on the locked pool mock, as the database would apply them."""
    def _apply(stmt):
        delta = stmt.compile().params["reserved_1"]
        if "greatest" in str(stmt):
            pool.reserved = max(pool.reserved - delta, 0)
        else:
            pool.reserved += delta

    db = db_with_scalar(mocker, pool)
    db.execute = mocker.AsyncMock(side_effect=_apply)
    return db


@pytest.mark.asyncio
async def test_second_reservation_sees_first_and_fails_with_remaining_availability(mocker):
    pool = make_pool(mocker, 5, quantity=10, sold=0, reserved=0, title="GA")
    db = _db_applying_updates(mocker, pool)

    await inventory_service.reserve(db, OrderType.TICKET, 5, 6, event_id=3)
    with pytest.raises(InsufficientStock) as e:
        await inventory_service.reserve(db, OrderType.TICKET, 5, 6, event_id=3)

    assert e.value.available == 4
    assert e.value.ctx["requested"] == 6
    assert pool.reserved == 6
    assert pool.sold + pool.reserved <= pool.quantity


@pytest.mark.asyncio
async def test_sweep_returns_expired_units_for_the_next_reservation(mocker):
    pool = make_pool(mocker, 5, quantity=10, sold=0, reserved=10)
    stale = make_order(mocker, items=[make_item(mocker, pool, 10)])
    db = _db_applying_updates(mocker, pool)
    db.scalars = mocker.AsyncMock(return_value=[stale])

    with pytest.raises(InsufficientStock):
        await inventory_service.reserve(db, OrderType.TICKET, 5, 4, event_id=3)

    stats = await inventory_service.sweep_expired_orders(db, event_id=3, order_type=OrderType.TICKET)
    result = await inventory_service.reserve(db, OrderType.TICKET, 5, 4, event_id=3)

    assert stats == {"orders_expired": 1, "units_released": 10}
    assert stale.status == OrderStatus.EXPIRED
    assert result is pool
    assert pool.reserved == 4
