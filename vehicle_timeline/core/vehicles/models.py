"""Vehicle, VehiclePhoto and VehicleServiceRecord models."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vehicle_timeline.core.database.base import Base, JSONType, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from vehicle_timeline.core.bookings.models import Booking
    from vehicle_timeline.core.hosts.models import RentalHost


class Vehicle(Base, UUIDMixin, TimestampMixin):
    """
    Fleet vehicle listed by a host.

    Registration, VIN and title are stored as current values only; there is
    no history for them, so the timeline anchors them at ``created_at``.
    """

    __tablename__ = "vehicles"

    host_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("rental_hosts.id"),
        nullable=False,
    )

    make: Mapped[str] = mapped_column(String(100), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    vin: Mapped[str | None] = mapped_column(String(17))
    current_mileage: Mapped[int | None] = mapped_column(Integer)

    registration_state: Mapped[str | None] = mapped_column(String(2))
    registration_expiry_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    title_status: Mapped[str | None] = mapped_column(String(50))

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Relationships
    host: Mapped["RentalHost"] = relationship(back_populates="vehicles")
    photos: Mapped[list["VehiclePhoto"]] = relationship(back_populates="vehicle")
    service_records: Mapped[list["VehicleServiceRecord"]] = relationship(back_populates="vehicle")
    bookings: Mapped[list["Booking"]] = relationship(back_populates="vehicle")

    __table_args__ = (Index("idx_vehicles_host", "host_id"),)

    def __repr__(self) -> str:
        return f"<Vehicle {self.year} {self.make} {self.model}>"


class VehiclePhoto(Base, UUIDMixin, TimestampMixin):
    """Listing photo. ``created_at`` is the upload time."""

    __tablename__ = "vehicle_photos"

    vehicle_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("vehicles.id"),
        nullable=False,
    )

    url: Mapped[str] = mapped_column(String(1000), nullable=False)
    is_hero: Mapped[bool] = mapped_column(Boolean, default=False)
    gps_latitude: Mapped[float | None] = mapped_column(Float)
    gps_longitude: Mapped[float | None] = mapped_column(Float)

    # Host id of the uploader, and the uploader's role
    uploaded_by: Mapped[str | None] = mapped_column(String(36))
    uploaded_by_type: Mapped[str | None] = mapped_column(String(20))

    vehicle: Mapped["Vehicle"] = relationship(back_populates="photos")

    __table_args__ = (Index("idx_vehicle_photos_vehicle", "vehicle_id", "created_at"),)

    def __repr__(self) -> str:
        return f"<VehiclePhoto {self.id} hero={self.is_hero}>"


class VehicleServiceRecord(Base, UUIDMixin, TimestampMixin):
    """Maintenance/service record, optionally verified by a fleet admin."""

    __tablename__ = "vehicle_service_records"

    vehicle_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("vehicles.id"),
        nullable=False,
    )

    service_type: Mapped[str] = mapped_column(String(50), nullable=False)  # e.g. OIL_CHANGE
    service_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    mileage_at_service: Mapped[int | None] = mapped_column(Integer)
    shop_name: Mapped[str | None] = mapped_column(String(255))
    shop_address: Mapped[str | None] = mapped_column(String(500))
    cost_total: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    items_serviced: Mapped[list | None] = mapped_column(JSONType)

    next_service_due: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    next_service_mileage: Mapped[int | None] = mapped_column(Integer)

    added_by: Mapped[str | None] = mapped_column(String(36))  # host id
    added_by_name: Mapped[str | None] = mapped_column(String(255))
    added_by_type: Mapped[str | None] = mapped_column(String(20))

    verified_by_fleet: Mapped[bool] = mapped_column(Boolean, default=False)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    verified_by: Mapped[str | None] = mapped_column(String(36))  # admin user id
    verified_by_name: Mapped[str | None] = mapped_column(String(255))

    vehicle: Mapped["Vehicle"] = relationship(back_populates="service_records")

    __table_args__ = (Index("idx_service_records_vehicle", "vehicle_id", "service_date"),)

    def __repr__(self) -> str:
        return f"<VehicleServiceRecord {self.service_type} {self.service_date:%Y-%m-%d}>"
