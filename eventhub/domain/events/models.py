from datetime import datetime
from sqlalchemy.orm import mapped_column, Mapped, relationship
from sqlalchemy import Identity, Text, ForeignKey, CheckConstraint, TIMESTAMP, func, UniqueConstraint
from eventhub.core.database import Base


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    organizer_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    event_start: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    event_end: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    organizer: Mapped["User"] = relationship(lazy="selectin")
    tickets: Mapped[list["Ticket"]] = relationship(back_populates="event", lazy="selectin",
                                                   order_by="Ticket.id")
    packages: Mapped[list["Package"]] = relationship(back_populates="event", lazy="selectin",
                                                     order_by="Package.id")
    revenue: Mapped["EventRevenue"] = relationship(back_populates="event", lazy="selectin", uselist=False)

    __table_args__ = (
        CheckConstraint("event_end > event_start", name="chk_event_time_range"),
    )


class Sponsor(Base):
    __tablename__ = "sponsors"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    sponsor_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("event_id", "sponsor_id", name="uq_sponsors_event_sponsor"),
    )
