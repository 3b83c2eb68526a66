from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Identity, ForeignKey, BigInteger, TIMESTAMP, func, CheckConstraint, text
from eventhub.core.database import Base


class EventRevenue(Base):
    __tablename__ = "event_revenues"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False, unique=True)
    ticket_revenue_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0,
                                                      server_default=text("0"))
    package_revenue_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0,
                                                       server_default=text("0"))
    paid_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default=text("0"))
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    event: Mapped["Event"] = relationship(back_populates="revenue", lazy="selectin")

    __table_args__ = (
        CheckConstraint("ticket_revenue_cents >= 0", name="chk_revenue_ticket_nonneg"),
        CheckConstraint("package_revenue_cents >= 0", name="chk_revenue_package_nonneg"),
        CheckConstraint("paid_cents >= 0", name="chk_revenue_paid_nonneg"),
    )
