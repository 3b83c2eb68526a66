from decimal import Decimal
from eventhub.domain.orders.models import OrderStatus, OrderType
from eventhub.domain.users.models import UserRole


def db_with_scalar(mocker, value):
    db = mocker.Mock()
    db.scalar = mocker.AsyncMock(return_value=value)
    db.execute = mocker.AsyncMock()
    db.flush = mocker.AsyncMock()
    db.commit = mocker.AsyncMock()
    return db


def db_with_execute_first(mocker, row):
    res = mocker.Mock()
    res.first.return_value = row
    db = mocker.Mock()
    db.execute = mocker.AsyncMock(return_value=res)
    return db, res


def make_user(mocker, user_id: str = "user-1", role: UserRole = UserRole.ATTENDEE):
    return mocker.Mock(id=user_id, role=role, email=f"{user_id}@example.com", display_name="Jane Doe")


def make_pool(mocker, pool_id: int = 1, *, quantity: int = 10, sold: int = 0, reserved: int = 0,
              price: Decimal = Decimal("250.00"), title: str = "General Admission"):
    pool = mocker.Mock(id=pool_id, quantity=quantity, sold=sold, reserved=reserved, price=price)
    pool.title = title
    return pool


def make_order(mocker, *, order_id: int = 7, gateway_order_id: str = "order_abc",
               status: OrderStatus = OrderStatus.RESERVED, order_type: OrderType = OrderType.TICKET,
               items: list | None = None, event_id: int = 3, user_id: str = "user-1"):
    order = mocker.Mock(
        id=order_id,
        gateway_order_id=gateway_order_id,
        status=status,
        type=order_type,
        event_id=event_id,
        user_id=user_id,
        total_amount_cents=75000,
        items=items or [],
    )
    order.event.name = "Launch Party"
    order.event.organizer_id = "organizer-1"
    order.event.organizer.email = "organizer@example.com"
    order.user.id = user_id
    order.user.email = f"{user_id}@example.com"
    order.user.display_name = "Jane Doe"
    return order


def make_item(mocker, pool, quantity: int, *, ticket: bool = True):
    item = mocker.Mock(
        quantity=quantity,
        ticket_id=pool.id if ticket else None,
        package_id=None if ticket else pool.id,
        pool=pool,
    )
    return item
