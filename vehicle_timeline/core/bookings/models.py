"""Booking, Reviewer and HostPayout models."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vehicle_timeline.core.database.base import Base, TimestampMixin, UUIDMixin
from vehicle_timeline.core.timeline.records import BookingStatus, TripStatus

if TYPE_CHECKING:
    from vehicle_timeline.core.claims.models import Claim
    from vehicle_timeline.core.users.models import User
    from vehicle_timeline.core.vehicles.models import Vehicle


class Reviewer(Base, UUIDMixin, TimestampMixin):
    """Public reviewer profile attached to a booking once a review is left."""

    __tablename__ = "reviewer_profiles"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    city: Mapped[str | None] = mapped_column(String(100))
    state: Mapped[str | None] = mapped_column(String(50))

    def __repr__(self) -> str:
        return f"<Reviewer {self.name}>"


class Booking(Base, UUIDMixin, TimestampMixin):
    """
    Guest booking of a vehicle.

    ``status`` tracks the reservation, ``trip_status`` the physical trip.
    Check-in/check-out fields are filled in at handover.
    """

    __tablename__ = "bookings"

    booking_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)

    vehicle_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("vehicles.id"),
        nullable=False,
    )
    guest_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=True,
    )
    reviewer_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("reviewer_profiles.id"),
        nullable=True,
    )

    # Denormalized guest contact for guest checkouts without an account
    guest_name: Mapped[str | None] = mapped_column(String(255))
    guest_email: Mapped[str | None] = mapped_column(String(255))

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    number_of_days: Mapped[int | None] = mapped_column(Integer)
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    insurance_tier: Mapped[str | None] = mapped_column(String(50))

    status: Mapped[str] = mapped_column(String(20), default=BookingStatus.PENDING.value)
    trip_status: Mapped[str | None] = mapped_column(String(20), default=TripStatus.NOT_STARTED.value)

    check_in_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    check_out_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    check_in_odometer: Mapped[int | None] = mapped_column(Integer)
    check_out_odometer: Mapped[int | None] = mapped_column(Integer)
    check_in_fuel_level: Mapped[str | None] = mapped_column(String(20))
    check_out_fuel_level: Mapped[str | None] = mapped_column(String(20))

    # Relationships
    vehicle: Mapped["Vehicle"] = relationship(back_populates="bookings")
    guest: Mapped["User | None"] = relationship()
    reviewer: Mapped["Reviewer | None"] = relationship()
    claims: Mapped[list["Claim"]] = relationship(back_populates="booking")
    payouts: Mapped[list["HostPayout"]] = relationship(back_populates="booking")

    __table_args__ = (
        Index("idx_bookings_vehicle", "vehicle_id"),
        Index("idx_bookings_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Booking {self.booking_code} {self.status}>"


class HostPayout(Base, UUIDMixin, TimestampMixin):
    """Transfer of booking earnings to the host."""

    __tablename__ = "host_payouts"

    booking_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("bookings.id"),
        nullable=True,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="PENDING")
    transfer_id: Mapped[str | None] = mapped_column(String(100))  # payment processor reference
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    booking: Mapped["Booking | None"] = relationship(back_populates="payouts")

    __table_args__ = (Index("idx_host_payouts_booking", "booking_id"),)

    def __repr__(self) -> str:
        return f"<HostPayout {self.amount} {self.status}>"
