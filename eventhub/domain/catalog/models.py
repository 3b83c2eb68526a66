from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column, relationship, declared_attr
from sqlalchemy import Identity, Text, Integer, ForeignKey, Numeric, CheckConstraint, text
from eventhub.core.database import Base


class InventoryPoolMixin:
    """
    Stock counters shared by ticket tiers and sponsorship packages.

    `sold` and `reserved` are only ever changed through relative UPDATEs issued by
    the inventory service; the CHECK constraints keep `sold + reserved <= quantity`
    true even if a caller gets that wrong.
    """
    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    sold: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    reserved: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))

    @declared_attr
    def event_id(cls) -> Mapped[int]:
        return mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)

    @property
    def available(self) -> int:
        return self.quantity - self.sold - self.reserved

    @classmethod
    def _pool_constraints(cls, prefix: str) -> tuple:
        return (
            CheckConstraint("price >= 0", name=f"chk_{prefix}_price_nonneg"),
            CheckConstraint("quantity >= 0", name=f"chk_{prefix}_quantity_nonneg"),
            CheckConstraint("sold >= 0", name=f"chk_{prefix}_sold_nonneg"),
            CheckConstraint("reserved >= 0", name=f"chk_{prefix}_reserved_nonneg"),
            CheckConstraint("sold + reserved <= quantity", name=f"chk_{prefix}_no_oversell"),
        )


class Ticket(InventoryPoolMixin, Base):
    __tablename__ = "tickets"

    event: Mapped["Event"] = relationship(back_populates="tickets", lazy="selectin")

    __table_args__ = InventoryPoolMixin._pool_constraints("ticket")


class Package(InventoryPoolMixin, Base):
    __tablename__ = "packages"

    event: Mapped["Event"] = relationship(back_populates="packages", lazy="selectin")

    __table_args__ = InventoryPoolMixin._pool_constraints("package")
