from enum import Enum
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Identity, Text, ForeignKey, BigInteger, Integer, TIMESTAMP, func, Enum as SQLEnum, \
    CheckConstraint, Index
from eventhub.core.database import Base


class OrderType(str, Enum):
    TICKET = "TICKET"
    PACKAGE = "PACKAGE"


class OrderStatus(str, Enum):
    RESERVED = "RESERVED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    gateway_order_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), nullable=False, index=True)
    type: Mapped[OrderType] = mapped_column(SQLEnum(OrderType, name="order_type"), nullable=False)
    status: Mapped[OrderStatus] = mapped_column(SQLEnum(OrderStatus, name="order_status"),
                                                nullable=False, server_default=OrderStatus.RESERVED.value)
    total_amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    user: Mapped["User"] = relationship(lazy="selectin")
    event: Mapped["Event"] = relationship(lazy="selectin")
    items: Mapped[list["OrderItem"]] = relationship(back_populates="order", lazy="selectin",
                                                    cascade="all, delete-orphan", order_by="OrderItem.id")

    __table_args__ = (
        CheckConstraint("total_amount_cents >= 0", name="chk_order_total_nonneg"),
        Index("ix_orders_sweep", "event_id", "type", "status", "expires_at"),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    ticket_id: Mapped[int | None] = mapped_column(ForeignKey("tickets.id", ondelete="RESTRICT"), nullable=True)
    package_id: Mapped[int | None] = mapped_column(ForeignKey("packages.id", ondelete="RESTRICT"), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    order: Mapped["Order"] = relationship(back_populates="items", lazy="selectin")
    ticket: Mapped["Ticket"] = relationship(lazy="selectin")
    package: Mapped["Package"] = relationship(lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_order_item_quantity_pos"),
        CheckConstraint("(ticket_id IS NULL) <> (package_id IS NULL)", name="chk_order_item_one_pool"),
    )

    @property
    def pool(self):
        return self.ticket if self.ticket_id is not None else self.package
