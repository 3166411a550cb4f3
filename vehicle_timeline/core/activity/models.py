"""Activity log model."""

from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vehicle_timeline.core.database.base import Base, JSONType, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from vehicle_timeline.core.users.models import User


class ActivityLog(Base, UUIDMixin, TimestampMixin):
    """
    Audit/change-log row for any entity.

    At most one of ``admin_id`` / ``host_id`` / ``user_id`` is normally set;
    rows written by background jobs carry none of them.
    """

    __tablename__ = "activity_logs"

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)  # CAR, BOOKING, ...
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)

    action: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str | None] = mapped_column(String(50))
    severity: Mapped[str | None] = mapped_column(String(20))

    admin_id: Mapped[str | None] = mapped_column(String(36))
    host_id: Mapped[str | None] = mapped_column(String(36))
    user_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=True,
    )

    old_value: Mapped[Any | None] = mapped_column(JSONType)
    new_value: Mapped[Any | None] = mapped_column(JSONType)
    # "metadata" is reserved on declarative classes
    details: Mapped[dict | None] = mapped_column("metadata", JSONType)

    user: Mapped["User | None"] = relationship()

    __table_args__ = (
        Index("idx_activity_logs_entity", "entity_type", "entity_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ActivityLog {self.entity_type}:{self.entity_id} {self.action}>"
