"""Rental host model."""

from typing import TYPE_CHECKING

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vehicle_timeline.core.database.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from vehicle_timeline.core.vehicles.models import Vehicle


class RentalHost(Base, UUIDMixin, TimestampMixin):
    """
    Host (partner) owning one or more fleet vehicles.

    ``insurance_type`` is one of ``none``, ``p2p`` or ``commercial`` and
    drives the host's revenue split.
    """

    __tablename__ = "rental_hosts"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), index=True)
    insurance_type: Mapped[str | None] = mapped_column(String(20))
    revenue_split: Mapped[int | None] = mapped_column(Integer)  # percent
    earnings_tier: Mapped[str | None] = mapped_column(String(50))

    # Relationships
    vehicles: Mapped[list["Vehicle"]] = relationship(back_populates="host")

    def __repr__(self) -> str:
        return f"<RentalHost {self.name}>"
