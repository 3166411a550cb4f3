"""Canonical timeline types: enums, events and the response model."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EventCategory(str, Enum):
    """Category axis used for filtering and statistics."""

    VEHICLE = "VEHICLE"
    DOCUMENT = "DOCUMENT"
    PHOTO = "PHOTO"
    ACTIVITY_LOG = "ACTIVITY_LOG"
    SERVICE = "SERVICE"
    BOOKING = "BOOKING"
    REVIEW = "REVIEW"
    PAYOUT = "PAYOUT"
    CLAIM = "CLAIM"
    COMPLIANCE = "COMPLIANCE"


class EventSource(str, Enum):
    """Which source produced an event. Declaration order is the tie-break priority."""

    VEHICLE = "VEHICLE"
    ACTIVITY_LOG = "ACTIVITY_LOG"
    PHOTO = "PHOTO"
    SERVICE = "SERVICE"
    BOOKING = "BOOKING"
    PAYOUT = "PAYOUT"
    CLAIM = "CLAIM"
    COMPLIANCE = "COMPLIANCE"


class EventSeverity(str, Enum):
    """Event severity."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ActorType(str, Enum):
    """Classification of whoever performed an event."""

    SYSTEM = "SYSTEM"
    ADMIN = "ADMIN"
    HOST = "HOST"
    GUEST = "GUEST"
    USER = "USER"


class EventAction(str, Enum):
    """Event kinds derived by the normalizer and the compliance deriver.

    Activity-log rows keep their own action strings.
    """

    # Vehicle record
    VEHICLE_CREATED = "VEHICLE_CREATED"
    VIN_ADDED = "VIN_ADDED"
    REGISTRATION_UPLOADED = "REGISTRATION_UPLOADED"
    TITLE_STATUS_SET = "TITLE_STATUS_SET"
    INSURANCE_TYPE_SELECTED = "INSURANCE_TYPE_SELECTED"

    # Photos
    PHOTOS_UPLOADED = "PHOTOS_UPLOADED"
    HERO_PHOTO_SET = "HERO_PHOTO_SET"

    # Service
    SERVICE_COMPLETED = "SERVICE_COMPLETED"
    SERVICE_VERIFIED = "SERVICE_VERIFIED"

    # Bookings
    BOOKING_CONFIRMED = "BOOKING_CONFIRMED"
    TRIP_STARTED = "TRIP_STARTED"
    TRIP_COMPLETED = "TRIP_COMPLETED"
    REVIEW_RECEIVED = "REVIEW_RECEIVED"

    # Payouts
    PAYOUT_PROCESSED = "PAYOUT_PROCESSED"

    # Claims
    CLAIM_FILED = "CLAIM_FILED"
    CLAIM_PHOTOS_UPLOADED = "CLAIM_PHOTOS_UPLOADED"
    CLAIM_APPROVED = "CLAIM_APPROVED"
    CLAIM_DENIED = "CLAIM_DENIED"
    CLAIM_REVIEWED = "CLAIM_REVIEWED"
    CLAIM_PAID = "CLAIM_PAID"

    # Compliance (synthetic)
    REGISTRATION_EXPIRY_WARNING = "REGISTRATION_EXPIRY_WARNING"
    REGISTRATION_EXPIRED = "REGISTRATION_EXPIRED"


class AggregationStage(str, Enum):
    """Stages of one aggregation run."""

    FETCHING = "FETCHING"
    NORMALIZING = "NORMALIZING"
    MERGING = "MERGING"
    FILTERING = "FILTERING"
    RESPONDING = "RESPONDING"
    FAILED = "FAILED"


class TimelineEvent(BaseModel):
    """One normalized entry of a vehicle timeline."""

    model_config = ConfigDict(frozen=True)

    id: str
    category: EventCategory
    source: EventSource
    action: str
    description: str
    performed_by: str = "System"
    performed_by_type: ActorType = ActorType.SYSTEM
    severity: EventSeverity = EventSeverity.INFO
    metadata: dict[str, Any] = Field(default_factory=dict)
    old_value: Any = None
    new_value: Any = None
    timestamp: datetime


class HostSummary(BaseModel):
    """Owning host as shown in the response header."""

    id: str
    name: str | None
    insurance_type: str | None = None
    revenue_split: int | None = None
    earnings_tier: str | None = None


class VehicleSummary(BaseModel):
    """Vehicle header of a timeline response."""

    id: str
    make: str
    model: str
    year: int
    display_name: str
    vin: str | None
    current_mileage: int | None
    host: HostSummary | None


class PaginationInfo(BaseModel):
    """Pagination metadata for the filtered timeline."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool


class DataSourceCounts(BaseModel):
    """Raw record counts per source, independent of how many events each produced."""

    activity_logs: int = 0
    bookings: int = 0
    service_records: int = 0
    claims: int = 0
    claim_photos: int = 0
    payouts: int = 0
    photos: int = 0
    vehicle_documents: int = 0


class TimelineStatistics(BaseModel):
    """Histograms over the full, unfiltered timeline."""

    total_events: int
    category_breakdown: dict[str, int]
    severity_breakdown: dict[str, int]
    data_sources: DataSourceCounts


class TimelineResponse(BaseModel):
    """Result of one timeline query."""

    vehicle: VehicleSummary
    timeline: list[TimelineEvent]
    pagination: PaginationInfo
    statistics: TimelineStatistics
    generated_at: datetime
