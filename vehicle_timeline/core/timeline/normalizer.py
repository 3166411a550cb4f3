"""Per-source normalization of native records into timeline events.

One function per source. Each takes the native records plus a
``NormalizationContext`` and returns events; none of them perform I/O.
Event ids are derived from the source and the record id so that repeated
runs over unchanged data produce identical ids.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any

from vehicle_timeline.core.timeline.attribution import (
    SYSTEM_ATTRIBUTION,
    ActorSpace,
    Attribution,
    AttributionMap,
)
from vehicle_timeline.core.timeline.records import (
    ActivityLogRecord,
    BookingRecord,
    BookingStatus,
    ClaimPhotoRecord,
    ClaimRecord,
    ClaimStatus,
    PayoutRecord,
    PhotoRecord,
    ServiceRecord,
    SourceBundle,
    TripStatus,
    VehicleRecord,
)
from vehicle_timeline.core.timeline.types import (
    ActorType,
    EventAction,
    EventCategory,
    EventSeverity,
    EventSource,
    TimelineEvent,
)

INSURANCE_TIERS = {
    "none": "Platform Only (40%)",
    "p2p": "P2P Insurance (75%)",
    "commercial": "Commercial Insurance (90%)",
}

ACTIVITY_DESCRIPTIONS = {
    "CREATE_CAR": "Vehicle added to platform",
    "UPDATE_CAR": "Vehicle details updated",
    "DEACTIVATE_CAR": "Vehicle deactivated",
    "ACTIVATE_CAR": "Vehicle activated",
    "DELETE_PHOTO": "Deleted vehicle photo",
    "SET_HERO_PHOTO": "Set main photo",
    "VERIFY_VIN": "VIN verified",
    "VERIFY_REGISTRATION": "Registration verified",
    "VERIFY_INSURANCE": "Insurance verified",
    "VERIFY_TITLE": "Title verified",
    "UPDATE_PRICING": "Updated pricing",
    "CLAIM_VEHICLE_DEACTIVATED": "Vehicle deactivated due to claim",
    "CLAIM_VEHICLE_REACTIVATED": "Vehicle reactivated after claim resolution",
}


# =============================================================================
# Helpers
# =============================================================================


def ensure_utc(value: date | datetime) -> datetime:
    """Timezone-aware UTC datetime. Naive values and bare dates are read as UTC."""
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value: date | datetime | None) -> str | None:
    return ensure_utc(value).isoformat() if value is not None else None


def format_currency(amount: Decimal | float | int | None) -> str:
    """``$1,234.50``; missing amounts render as ``$0.00``."""
    return f"${Decimal(amount or 0):,.2f}"


def format_number(value: int) -> str:
    return f"{value:,}"


def to_float(amount: Decimal | None) -> float | None:
    return float(amount) if amount is not None else None


def humanize(value: str) -> str:
    """``OIL_CHANGE`` -> ``Oil Change``."""
    return value.replace("_", " ").title()


def _parse_enum(enum_cls, value: str | None, default):
    if not value:
        return default
    try:
        return enum_cls(value.upper())
    except ValueError:
        return default


@dataclass
class NormalizationContext:
    """Inputs shared by every normalization rule of one aggregation run."""

    vehicle: VehicleRecord
    attribution: AttributionMap
    now: datetime

    @property
    def host_name(self) -> str:
        """Owning host's display name, falling back to the directory, then "Host"."""
        host = self.vehicle.host
        if host and (host.name or host.email):
            return host.name or host.email
        resolved = self.attribution.resolve(ActorSpace.HOST, self.vehicle.host_id)
        return resolved.display_name if resolved else "Host"

    @property
    def host(self) -> Attribution:
        return Attribution(display_name=self.host_name, actor_type=ActorType.HOST)

    @property
    def created_at(self) -> datetime:
        return ensure_utc(self.vehicle.created_at)


def _event(
    *,
    id: str,
    category: EventCategory,
    source: EventSource,
    action: EventAction | str,
    description: str,
    timestamp: date | datetime,
    actor: Attribution = SYSTEM_ATTRIBUTION,
    severity: EventSeverity = EventSeverity.INFO,
    metadata: dict[str, Any] | None = None,
    old_value: Any = None,
    new_value: Any = None,
) -> TimelineEvent:
    return TimelineEvent(
        id=id,
        category=category,
        source=source,
        action=action.value if isinstance(action, EventAction) else action,
        description=description,
        performed_by=actor.display_name,
        performed_by_type=actor.actor_type,
        severity=severity,
        metadata=metadata or {},
        old_value=old_value,
        new_value=new_value,
        timestamp=ensure_utc(timestamp),
    )


# =============================================================================
# Vehicle record (creation anchor and document facts)
# =============================================================================


def mask_vin(vin: str) -> str:
    if len(vin) <= 14:
        return vin
    return f"{vin[:10]}...{vin[-4:]}"


def vehicle_events(ctx: NormalizationContext) -> list[TimelineEvent]:
    """
    Creation anchor plus one event per document fact on the vehicle record.

    Document facts carry no history of their own, so they are all stamped
    with the vehicle's creation time.
    """
    vehicle = ctx.vehicle
    host = ctx.host

    events = [
        _event(
            id=f"vehicle-created-{vehicle.id}",
            category=EventCategory.VEHICLE,
            source=EventSource.VEHICLE,
            action=EventAction.VEHICLE_CREATED,
            description="Vehicle added to fleet",
            timestamp=ctx.created_at,
            actor=host,
            metadata={
                "vehicle_id": vehicle.id,
                "make": vehicle.make,
                "model": vehicle.model,
                "year": vehicle.year,
                "vin": vehicle.vin,
            },
        )
    ]

    def document(kind: str, action: EventAction, description: str, metadata: dict) -> None:
        events.append(
            _event(
                id=f"document-{kind}-{vehicle.id}",
                category=EventCategory.DOCUMENT,
                source=EventSource.VEHICLE,
                action=action,
                description=description,
                timestamp=ctx.created_at,
                actor=host,
                metadata=metadata,
            )
        )

    if vehicle.vin:
        document(
            "vin",
            EventAction.VIN_ADDED,
            f"VIN added: {mask_vin(vehicle.vin)}",
            {"vin": vehicle.vin},
        )

    if vehicle.registration_state:
        document(
            "registration",
            EventAction.REGISTRATION_UPLOADED,
            f"Registration uploaded ({vehicle.registration_state})",
            {
                "state": vehicle.registration_state,
                "expiry_date": isoformat(vehicle.registration_expiry_date),
            },
        )

    if vehicle.title_status:
        document(
            "title",
            EventAction.TITLE_STATUS_SET,
            f"Title status: {vehicle.title_status}",
            {"title_status": vehicle.title_status},
        )

    if has_insurance_selection(vehicle):
        insurance_type = vehicle.host.insurance_type
        tier = INSURANCE_TIERS.get(insurance_type.lower(), insurance_type)
        document(
            "insurance",
            EventAction.INSURANCE_TYPE_SELECTED,
            f"Insurance type selected: {tier}",
            {
                "insurance_type": insurance_type,
                "revenue_split": vehicle.host.revenue_split,
                "earnings_tier": vehicle.host.earnings_tier,
            },
        )

    return events


def has_insurance_selection(vehicle: VehicleRecord) -> bool:
    insurance_type = vehicle.host.insurance_type if vehicle.host else None
    return bool(insurance_type) and insurance_type.lower() != "none"


def count_vehicle_documents(vehicle: VehicleRecord) -> int:
    """Number of document facts present on the vehicle record."""
    facts = [
        bool(vehicle.vin),
        bool(vehicle.registration_state),
        bool(vehicle.title_status),
        has_insurance_selection(vehicle),
    ]
    return sum(facts)


# =============================================================================
# Audit log
# =============================================================================


def describe_activity(action: str, metadata: dict[str, Any]) -> str:
    if action == "UPLOAD_PHOTO":
        return f"Uploaded {metadata.get('photoCount') or 1} photo(s)"
    if action == "ADD_SERVICE_RECORD":
        return f"Added service record: {metadata.get('serviceType') or 'maintenance'}"
    if action == "CLAIM_FILED":
        return f"Claim filed: {metadata.get('claimType') or 'incident'}"
    return ACTIVITY_DESCRIPTIONS.get(action, action.replace("_", " ").lower())


def _activity_actor(log: ActivityLogRecord, ctx: NormalizationContext) -> Attribution:
    # Priority: admin, then host, then the embedded user.
    attribution = ctx.attribution.resolve(ActorSpace.ADMIN, log.admin_id)
    if attribution:
        return attribution
    attribution = ctx.attribution.resolve(ActorSpace.HOST, log.host_id)
    if attribution:
        return attribution
    if log.user:
        resolved = ctx.attribution.get(ActorSpace.USER, log.user.id)
        name = (
            (resolved.display_name if resolved else None)
            or log.user.name
            or log.user.email
            or "User"
        )
        return Attribution(display_name=name, actor_type=ActorType.USER)
    return SYSTEM_ATTRIBUTION


def activity_log_events(
    logs: list[ActivityLogRecord], ctx: NormalizationContext
) -> list[TimelineEvent]:
    events = []
    for log in logs:
        if isinstance(log.metadata, dict):
            metadata = dict(log.metadata)
        elif log.metadata is not None:
            metadata = {"value": log.metadata}
        else:
            metadata = {}

        events.append(
            _event(
                id=f"activity-{log.id}",
                category=_parse_enum(EventCategory, log.category, EventCategory.VEHICLE),
                source=EventSource.ACTIVITY_LOG,
                action=log.action,
                description=describe_activity(log.action, metadata),
                timestamp=log.created_at,
                actor=_activity_actor(log, ctx),
                severity=_parse_enum(EventSeverity, log.severity, EventSeverity.INFO),
                metadata=metadata,
                old_value=log.old_value,
                new_value=log.new_value,
            )
        )
    return events


# =============================================================================
# Photos
# =============================================================================


def _photo_actor(photo: PhotoRecord, ctx: NormalizationContext) -> Attribution:
    actor_type = _parse_enum(ActorType, photo.uploaded_by_type, ActorType.HOST)
    if not photo.uploaded_by:
        return Attribution(display_name=ctx.host_name, actor_type=actor_type)
    resolved = ctx.attribution.resolve(ActorSpace.HOST, photo.uploaded_by)
    return Attribution(
        display_name=resolved.display_name if resolved else "Host",
        actor_type=actor_type,
    )


def photo_events(photos: list[PhotoRecord], ctx: NormalizationContext) -> list[TimelineEvent]:
    """
    One summary per upload date with more than one photo, plus one event per
    hero photo.
    """
    by_date: dict[date, list[PhotoRecord]] = defaultdict(list)
    for photo in photos:
        by_date[ensure_utc(photo.created_at).date()].append(photo)

    events = []
    for upload_date in sorted(by_date):
        day_photos = by_date[upload_date]
        if len(day_photos) < 2:
            continue
        latest = max(day_photos, key=lambda p: (ensure_utc(p.created_at), p.id))
        day = upload_date.isoformat()
        events.append(
            _event(
                id=f"photo-summary-{ctx.vehicle.id}-{day}",
                category=EventCategory.PHOTO,
                source=EventSource.PHOTO,
                action=EventAction.PHOTOS_UPLOADED,
                description=f"{len(day_photos)} photos uploaded",
                timestamp=latest.created_at,
                actor=_photo_actor(latest, ctx),
                metadata={
                    "photo_count": len(day_photos),
                    "date": day,
                    "has_gps": any(p.has_gps for p in day_photos),
                },
            )
        )

    for photo in photos:
        if not photo.is_hero:
            continue
        events.append(
            _event(
                id=f"photo-hero-{photo.id}",
                category=EventCategory.PHOTO,
                source=EventSource.PHOTO,
                action=EventAction.HERO_PHOTO_SET,
                description="Hero image set",
                timestamp=photo.created_at,
                actor=_photo_actor(photo, ctx),
                metadata={"photo_id": photo.id, "url": photo.url, "has_gps": photo.has_gps},
            )
        )

    return events


# =============================================================================
# Service records
# =============================================================================


def service_events(
    records: list[ServiceRecord], ctx: NormalizationContext
) -> list[TimelineEvent]:
    events = []
    for service in records:
        actor_type = _parse_enum(ActorType, service.added_by_type, ActorType.HOST)
        if service.added_by_name:
            added_by = service.added_by_name
        elif service.added_by:
            resolved = ctx.attribution.resolve(ActorSpace.HOST, service.added_by)
            added_by = resolved.display_name if resolved else "Host"
        else:
            added_by = ctx.host_name

        events.append(
            _event(
                id=f"service-{service.id}",
                category=EventCategory.SERVICE,
                source=EventSource.SERVICE,
                action=EventAction.SERVICE_COMPLETED,
                description=(
                    f"{humanize(service.service_type)} completed - "
                    f"{format_currency(service.cost_total)}"
                ),
                timestamp=service.service_date,
                actor=Attribution(display_name=added_by, actor_type=actor_type),
                metadata={
                    "service_id": service.id,
                    "service_type": service.service_type,
                    "mileage_at_service": service.mileage_at_service,
                    "shop_name": service.shop_name,
                    "shop_address": service.shop_address,
                    "cost": to_float(service.cost_total),
                    "next_service_due": isoformat(service.next_service_due),
                    "next_service_mileage": service.next_service_mileage,
                    "verified_by_fleet": service.verified_by_fleet,
                    "items_serviced": list(service.items_serviced),
                },
            )
        )

        if service.verified_at:
            verifier = ctx.attribution.attribute(
                ActorSpace.ADMIN,
                service.verified_by,
                Attribution(
                    display_name=service.verified_by_name or "Fleet Admin",
                    actor_type=ActorType.ADMIN,
                ),
            )
            events.append(
                _event(
                    id=f"service-verified-{service.id}",
                    category=EventCategory.SERVICE,
                    source=EventSource.SERVICE,
                    action=EventAction.SERVICE_VERIFIED,
                    description="Service record verified by fleet admin",
                    timestamp=service.verified_at,
                    actor=verifier,
                    metadata={"service_id": service.id, "service_type": service.service_type},
                )
            )

    return events


# =============================================================================
# Bookings
# =============================================================================


def _status(value: str | None) -> str:
    return (value or "").upper()


def booking_events(
    bookings: list[BookingRecord], ctx: NormalizationContext
) -> list[TimelineEvent]:
    """
    Up to four events per booking, each gated on booking state.

    Trip start/end fall back to the scheduled dates when the handover was
    never recorded; those fallbacks are capped at now.
    """
    events = []
    for booking in bookings:
        reviewer_name = booking.reviewer.name if booking.reviewer else None
        guest_name = booking.guest_name or reviewer_name or "Guest"
        guest = Attribution(display_name=guest_name, actor_type=ActorType.GUEST)
        status = _status(booking.status)
        trip_status = _status(booking.trip_status)

        events.append(
            _event(
                id=f"booking-confirmed-{booking.id}",
                category=EventCategory.BOOKING,
                source=EventSource.BOOKING,
                action=EventAction.BOOKING_CONFIRMED,
                description=f"Booking confirmed: {booking.booking_code}",
                timestamp=booking.created_at,
                actor=guest,
                metadata={
                    "booking_code": booking.booking_code,
                    "booking_id": booking.id,
                    "guest_name": guest_name,
                    "guest_email": booking.guest_email,
                    "start_date": isoformat(booking.start_date),
                    "end_date": isoformat(booking.end_date),
                    "number_of_days": booking.number_of_days,
                    "total_amount": to_float(booking.total_amount),
                    "status": booking.status,
                    "insurance_tier": booking.insurance_tier,
                },
            )
        )

        trip_started = (
            trip_status in (TripStatus.ACTIVE.value, TripStatus.COMPLETED.value)
            or status == BookingStatus.COMPLETED.value
        )
        trip_completed = (
            status == BookingStatus.COMPLETED.value
            or trip_status == TripStatus.COMPLETED.value
        )

        if trip_started:
            started_at = booking.check_in_time or min(ensure_utc(booking.start_date), ctx.now)
            description = f"Trip started: {booking.booking_code}"
            if booking.check_in_odometer:
                description += f" - Odometer: {format_number(booking.check_in_odometer)} mi"
            if booking.check_in_fuel_level:
                description += f" - Fuel: {booking.check_in_fuel_level}"

            events.append(
                _event(
                    id=f"booking-started-{booking.id}",
                    category=EventCategory.BOOKING,
                    source=EventSource.BOOKING,
                    action=EventAction.TRIP_STARTED,
                    description=description,
                    timestamp=started_at,
                    metadata={
                        "booking_code": booking.booking_code,
                        "booking_id": booking.id,
                        "check_in_odometer": booking.check_in_odometer,
                        "check_in_fuel_level": booking.check_in_fuel_level,
                        "check_in_time": isoformat(booking.check_in_time),
                        "guest_name": guest_name,
                    },
                )
            )

        if trip_completed:
            ended_at = booking.check_out_time or min(ensure_utc(booking.end_date), ctx.now)
            mileage_driven = 0
            if booking.check_in_odometer is not None and booking.check_out_odometer is not None:
                mileage_driven = booking.check_out_odometer - booking.check_in_odometer
            description = f"Trip completed: {booking.booking_code}"
            if mileage_driven > 0:
                description += f" (+{format_number(mileage_driven)} miles)"

            events.append(
                _event(
                    id=f"booking-completed-{booking.id}",
                    category=EventCategory.BOOKING,
                    source=EventSource.BOOKING,
                    action=EventAction.TRIP_COMPLETED,
                    description=description,
                    timestamp=ended_at,
                    metadata={
                        "booking_code": booking.booking_code,
                        "booking_id": booking.id,
                        "check_in_odometer": booking.check_in_odometer,
                        "check_out_odometer": booking.check_out_odometer,
                        "check_in_fuel_level": booking.check_in_fuel_level,
                        "check_out_fuel_level": booking.check_out_fuel_level,
                        "mileage_driven": mileage_driven,
                        "check_out_time": isoformat(booking.check_out_time),
                        "guest_name": guest_name,
                    },
                )
            )

        if booking.reviewer:
            reviewer = booking.reviewer
            events.append(
                _event(
                    id=f"review-{booking.id}",
                    category=EventCategory.REVIEW,
                    source=EventSource.BOOKING,
                    action=EventAction.REVIEW_RECEIVED,
                    description=f"Review received from {reviewer.name}",
                    timestamp=booking.updated_at,
                    actor=Attribution(display_name=reviewer.name, actor_type=ActorType.GUEST),
                    metadata={
                        "booking_code": booking.booking_code,
                        "reviewer_id": reviewer.id,
                        "reviewer_name": reviewer.name,
                        "reviewer_city": reviewer.city,
                        "reviewer_state": reviewer.state,
                    },
                )
            )

    return events


# =============================================================================
# Payouts
# =============================================================================


def payout_events(payouts: list[PayoutRecord], ctx: NormalizationContext) -> list[TimelineEvent]:
    events = []
    for payout in payouts:
        description = f"Payout processed: {format_currency(payout.amount)}"
        if payout.booking_code:
            description += f" ({payout.booking_code})"

        events.append(
            _event(
                id=f"payout-{payout.id}",
                category=EventCategory.PAYOUT,
                source=EventSource.PAYOUT,
                action=EventAction.PAYOUT_PROCESSED,
                description=description,
                timestamp=payout.processed_at or payout.created_at,
                metadata={
                    "payout_id": payout.id,
                    "booking_code": payout.booking_code,
                    "booking_id": payout.booking_id,
                    "amount": to_float(payout.amount),
                    "status": payout.status,
                    "transfer_id": payout.transfer_id,
                    "processed_at": isoformat(payout.processed_at),
                },
            )
        )
    return events


# =============================================================================
# Claims
# =============================================================================


def _review_outcome(status: str) -> tuple[EventAction, str]:
    if status == ClaimStatus.APPROVED.value:
        return EventAction.CLAIM_APPROVED, "approved"
    if status == ClaimStatus.DENIED.value:
        return EventAction.CLAIM_DENIED, "denied"
    return EventAction.CLAIM_REVIEWED, "reviewed"


def net_claim_payout(claim: ClaimRecord) -> Decimal:
    """Approved amount minus deductible, never negative."""
    if not claim.approved_amount:
        return Decimal("0")
    return max(claim.approved_amount - (claim.deductible or Decimal("0")), Decimal("0"))


def claim_events(
    claims: list[ClaimRecord],
    claim_photos: list[ClaimPhotoRecord],
    ctx: NormalizationContext,
) -> list[TimelineEvent]:
    photos_by_claim: dict[str, list[ClaimPhotoRecord]] = defaultdict(list)
    for photo in claim_photos:
        photos_by_claim[photo.claim_id].append(photo)

    events = []
    for claim in claims:
        photos = photos_by_claim.get(claim.id, [])
        status = _status(claim.status)

        events.append(
            _event(
                id=f"claim-filed-{claim.id}",
                category=EventCategory.CLAIM,
                source=EventSource.CLAIM,
                action=EventAction.CLAIM_FILED,
                description=(
                    f"Claim filed: {claim.type} - "
                    f"{format_currency(claim.estimated_cost)} estimated"
                ),
                timestamp=claim.created_at,
                actor=ctx.host,
                severity=EventSeverity.WARNING,
                metadata={
                    "claim_id": claim.id,
                    "claim_type": claim.type,
                    "booking_code": claim.booking_code,
                    "estimated_cost": to_float(claim.estimated_cost) or 0.0,
                    "status": claim.status,
                    "incident_date": isoformat(claim.incident_date),
                    "damage_photos": len(photos),
                    "description": claim.description,
                },
            )
        )

        if photos:
            first = min(photos, key=lambda p: (ensure_utc(p.uploaded_at), p.id))
            if _status(first.uploaded_by) == ActorType.HOST.value:
                uploader = ctx.host
            else:
                uploader = Attribution(display_name="Guest", actor_type=ActorType.GUEST)
            count = len(photos)
            events.append(
                _event(
                    id=f"claim-photos-{claim.id}",
                    category=EventCategory.CLAIM,
                    source=EventSource.CLAIM,
                    action=EventAction.CLAIM_PHOTOS_UPLOADED,
                    description=f"{count} damage photo{'s' if count > 1 else ''} uploaded",
                    timestamp=first.uploaded_at,
                    actor=uploader,
                    metadata={"claim_id": claim.id, "photo_count": count},
                )
            )

        if claim.reviewed_at:
            action, outcome = _review_outcome(status)
            if action is EventAction.CLAIM_APPROVED:
                description = f"Claim approved: {format_currency(claim.approved_amount)}"
            else:
                description = f"Claim {outcome}"
            events.append(
                _event(
                    id=f"claim-reviewed-{claim.id}",
                    category=EventCategory.CLAIM,
                    source=EventSource.CLAIM,
                    action=action,
                    description=description,
                    timestamp=claim.reviewed_at,
                    actor=Attribution(
                        display_name=claim.reviewed_by or "Fleet Admin",
                        actor_type=ActorType.ADMIN,
                    ),
                    severity=(
                        EventSeverity.INFO
                        if action is EventAction.CLAIM_APPROVED
                        else EventSeverity.WARNING
                    ),
                    metadata={
                        "claim_id": claim.id,
                        "status": claim.status,
                        "approved_amount": to_float(claim.approved_amount),
                        "deductible": to_float(claim.deductible),
                        "review_notes": claim.review_notes,
                    },
                )
            )

        if claim.paid_at:
            net_payout = net_claim_payout(claim)
            events.append(
                _event(
                    id=f"claim-paid-{claim.id}",
                    category=EventCategory.CLAIM,
                    source=EventSource.CLAIM,
                    action=EventAction.CLAIM_PAID,
                    description=f"Claim payout processed: {format_currency(net_payout)}",
                    timestamp=claim.paid_at,
                    metadata={
                        "claim_id": claim.id,
                        "approved_amount": to_float(claim.approved_amount),
                        "deductible": to_float(claim.deductible),
                        "net_payout": float(net_payout),
                    },
                )
            )

    return events


def normalize_sources(bundle: SourceBundle, ctx: NormalizationContext) -> list[TimelineEvent]:
    """All stored-record events of one vehicle, in no particular order."""
    return [
        *vehicle_events(ctx),
        *activity_log_events(bundle.activity_logs, ctx),
        *photo_events(bundle.photos, ctx),
        *service_events(bundle.service_records, ctx),
        *booking_events(bundle.bookings, ctx),
        *payout_events(bundle.payouts, ctx),
        *claim_events(bundle.claims, bundle.claim_photos, ctx),
    ]
