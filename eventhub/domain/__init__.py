from .users.models import User, UserRole
from .events.models import Event, Sponsor
from .catalog.models import Ticket, Package
from .orders.models import Order, OrderItem, OrderStatus, OrderType
from .revenue.models import EventRevenue

__all__ = (
    "User", "UserRole", "Event", "Sponsor", "Ticket", "Package", "Order", "OrderItem", "OrderStatus", "OrderType",
    "EventRevenue"
)
