"""Platform user model (admins, guests and other account holders)."""

from enum import Enum

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from vehicle_timeline.core.database.base import Base, TimestampMixin, UUIDMixin


class UserRole(str, Enum):
    """Account roles relevant to attribution."""

    ADMIN = "ADMIN"
    FLEET_ADMIN = "FLEET_ADMIN"
    GUEST = "GUEST"
    USER = "USER"


class User(Base, UUIDMixin, TimestampMixin):
    """User model.

    Admin ids recorded on activity logs and service verifications point here,
    as do the guests attached to bookings.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(20), default=UserRole.USER.value)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    @property
    def is_admin(self) -> bool:
        return self.role in (UserRole.ADMIN.value, UserRole.FLEET_ADMIN.value)

    def __repr__(self) -> str:
        return f"<User {self.email}>"
