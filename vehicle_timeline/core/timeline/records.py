"""Native record shapes returned by the timeline source repositories.

These are plain data carriers: the repositories map whatever their store
returns into them, and the normalizer turns them into timeline events.
Monetary amounts are ``Decimal``; datetimes may be naive (read as UTC).
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


class BookingStatus(str, Enum):
    """Booking lifecycle status."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TripStatus(str, Enum):
    """Trip (physical handover) status of a booking."""

    NOT_STARTED = "NOT_STARTED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class ClaimStatus(str, Enum):
    """Insurance claim status."""

    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    DENIED = "DENIED"
    PAID = "PAID"


@dataclass
class HostRecord:
    """Owning host summary."""

    id: str
    name: str | None = None
    email: str | None = None
    insurance_type: str | None = None
    revenue_split: int | None = None
    earnings_tier: str | None = None


@dataclass
class VehicleRecord:
    """Static vehicle record with its owning host."""

    id: str
    make: str
    model: str
    year: int
    host_id: str
    created_at: datetime
    vin: str | None = None
    current_mileage: int | None = None
    registration_state: str | None = None
    registration_expiry_date: date | datetime | None = None
    title_status: str | None = None
    host: HostRecord | None = None

    @property
    def display_name(self) -> str:
        return f"{self.year} {self.make} {self.model}"


@dataclass
class UserRef:
    """User embedded in an activity-log row."""

    id: str
    name: str | None = None
    email: str | None = None


@dataclass
class ActivityLogRecord:
    """Audit/change-log row."""

    id: str
    action: str
    created_at: datetime
    category: str | None = None
    severity: str | None = None
    admin_id: str | None = None
    host_id: str | None = None
    user: UserRef | None = None
    old_value: Any = None
    new_value: Any = None
    metadata: dict[str, Any] | None = None


@dataclass
class ReviewerRecord:
    """Reviewer profile attached to a booking."""

    id: str
    name: str
    city: str | None = None
    state: str | None = None


@dataclass
class BookingRecord:
    """Booking/trip of the vehicle."""

    id: str
    booking_code: str
    start_date: datetime
    end_date: datetime
    status: str
    created_at: datetime
    updated_at: datetime
    trip_status: str | None = None
    guest_id: str | None = None
    guest_name: str | None = None
    guest_email: str | None = None
    number_of_days: int | None = None
    total_amount: Decimal | None = None
    insurance_tier: str | None = None
    check_in_time: datetime | None = None
    check_out_time: datetime | None = None
    check_in_odometer: int | None = None
    check_out_odometer: int | None = None
    check_in_fuel_level: str | None = None
    check_out_fuel_level: str | None = None
    reviewer: ReviewerRecord | None = None


@dataclass
class ServiceRecord:
    """Service/maintenance record."""

    id: str
    service_type: str
    service_date: datetime
    cost_total: Decimal | None = None
    mileage_at_service: int | None = None
    shop_name: str | None = None
    shop_address: str | None = None
    next_service_due: datetime | None = None
    next_service_mileage: int | None = None
    items_serviced: list[str] = field(default_factory=list)
    added_by: str | None = None
    added_by_name: str | None = None
    added_by_type: str | None = None
    verified_by_fleet: bool = False
    verified_at: datetime | None = None
    verified_by: str | None = None
    verified_by_name: str | None = None


@dataclass
class ClaimRecord:
    """Insurance claim filed against one of the vehicle's bookings."""

    id: str
    type: str
    status: str
    created_at: datetime
    booking_id: str | None = None
    booking_code: str | None = None
    description: str | None = None
    estimated_cost: Decimal | None = None
    approved_amount: Decimal | None = None
    deductible: Decimal | None = None
    incident_date: datetime | None = None
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    review_notes: str | None = None
    paid_at: datetime | None = None


@dataclass
class ClaimPhotoRecord:
    """Damage photo linked to a claim. ``uploaded_by`` is a role (HOST/GUEST)."""

    id: str
    claim_id: str
    uploaded_at: datetime
    uploaded_by: str | None = None


@dataclass
class PayoutRecord:
    """Host payout for one of the vehicle's bookings."""

    id: str
    amount: Decimal
    status: str
    created_at: datetime
    booking_id: str | None = None
    booking_code: str | None = None
    transfer_id: str | None = None
    processed_at: datetime | None = None


@dataclass
class PhotoRecord:
    """Vehicle listing photo."""

    id: str
    created_at: datetime
    url: str | None = None
    is_hero: bool = False
    gps_latitude: float | None = None
    gps_longitude: float | None = None
    uploaded_by: str | None = None
    uploaded_by_type: str | None = None

    @property
    def has_gps(self) -> bool:
        return self.gps_latitude is not None and self.gps_longitude is not None


@dataclass
class ActorRecord:
    """Actor returned by a directory lookup."""

    id: str
    name: str | None = None
    email: str | None = None

    @property
    def display_name(self) -> str | None:
        return self.name or self.email


@dataclass
class SourceBundle:
    """Everything fetched for one vehicle in a single aggregation run."""

    vehicle: VehicleRecord
    activity_logs: list[ActivityLogRecord] = field(default_factory=list)
    bookings: list[BookingRecord] = field(default_factory=list)
    service_records: list[ServiceRecord] = field(default_factory=list)
    claims: list[ClaimRecord] = field(default_factory=list)
    claim_photos: list[ClaimPhotoRecord] = field(default_factory=list)
    payouts: list[PayoutRecord] = field(default_factory=list)
    photos: list[PhotoRecord] = field(default_factory=list)
