from enum import Enum
from datetime import datetime, timezone
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Text, text, TIMESTAMP, Enum as SQLEnum
from eventhub.core.database import Base


class UserRole(str, Enum):
    ATTENDEE = "ATTENDEE"
    SPONSOR = "SPONSOR"
    ORGANIZER = "ORGANIZER"
    ADMIN = "ADMIN"


class User(Base):
    """Local profile mirrored from the identity provider; `id` is the provider's subject."""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    first_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[UserRole] = mapped_column(SQLEnum(UserRole, name="user_role"), nullable=False,
                                           server_default=UserRole.ATTENDEE.value)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True),
                                                 default=lambda: datetime.now(timezone.utc),
                                                 server_default=text("timezone('utc', now())"),
                                                 nullable=False)

    @property
    def display_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
