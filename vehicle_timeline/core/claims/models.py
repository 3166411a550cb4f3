"""Claim and ClaimDamagePhoto models."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vehicle_timeline.core.database.base import Base, TimestampMixin, UUIDMixin
from vehicle_timeline.core.timeline.records import ClaimStatus

if TYPE_CHECKING:
    from vehicle_timeline.core.bookings.models import Booking


class Claim(Base, UUIDMixin, TimestampMixin):
    """
    Insurance claim filed against a booking.

    Lifecycle: filed (``created_at``) -> reviewed (``reviewed_at``) ->
    paid (``paid_at``). ``reviewed_by`` holds the reviewer's display name.
    """

    __tablename__ = "claims"

    booking_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("bookings.id"),
        nullable=False,
    )

    type: Mapped[str] = mapped_column(String(50), nullable=False)  # ACCIDENT, THEFT, ...
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default=ClaimStatus.PENDING.value)

    estimated_cost: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    approved_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    deductible: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))

    incident_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reviewed_by: Mapped[str | None] = mapped_column(String(255))
    review_notes: Mapped[str | None] = mapped_column(Text)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    booking: Mapped["Booking"] = relationship(back_populates="claims")
    damage_photos: Mapped[list["ClaimDamagePhoto"]] = relationship(back_populates="claim")

    __table_args__ = (Index("idx_claims_booking", "booking_id"),)

    def __repr__(self) -> str:
        return f"<Claim {self.type} {self.status}>"


class ClaimDamagePhoto(Base, UUIDMixin):
    """Damage photo attached to a claim."""

    __tablename__ = "claim_damage_photos"

    claim_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("claims.id"),
        nullable=False,
    )

    url: Mapped[str] = mapped_column(String(1000), nullable=False)
    uploaded_by: Mapped[str | None] = mapped_column(String(20))  # HOST or GUEST
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    claim: Mapped["Claim"] = relationship(back_populates="damage_photos")

    __table_args__ = (Index("idx_claim_photos_claim", "claim_id", "uploaded_at"),)

    def __repr__(self) -> str:
        return f"<ClaimDamagePhoto {self.id}>"
