"""SQLAlchemy-backed timeline sources and actor directory."""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from vehicle_timeline.core.activity.models import ActivityLog
from vehicle_timeline.core.bookings.models import Booking, HostPayout
from vehicle_timeline.core.claims.models import Claim, ClaimDamagePhoto
from vehicle_timeline.core.hosts.models import RentalHost
from vehicle_timeline.core.timeline.records import (
    ActivityLogRecord,
    ActorRecord,
    BookingRecord,
    ClaimPhotoRecord,
    ClaimRecord,
    HostRecord,
    PayoutRecord,
    PhotoRecord,
    ReviewerRecord,
    ServiceRecord,
    UserRef,
    VehicleRecord,
)
from vehicle_timeline.core.timeline.sources import ActorDirectory, TimelineSources
from vehicle_timeline.core.users.models import User
from vehicle_timeline.core.vehicles.models import Vehicle, VehiclePhoto, VehicleServiceRecord


class SQLAlchemyTimelineSources(TimelineSources):
    """
    Timeline sources reading the fleet schema.

    Every fetch opens its own session from the factory: an AsyncSession
    cannot run concurrent queries, and the aggregator fans these out.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def fetch_vehicle(self, vehicle_id: str) -> VehicleRecord | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Vehicle)
                .options(selectinload(Vehicle.host))
                .where(Vehicle.id == vehicle_id)
            )
            vehicle = result.scalar_one_or_none()
            if vehicle is None:
                return None

            host = vehicle.host
            return VehicleRecord(
                id=vehicle.id,
                make=vehicle.make,
                model=vehicle.model,
                year=vehicle.year,
                host_id=vehicle.host_id,
                created_at=vehicle.created_at,
                vin=vehicle.vin,
                current_mileage=vehicle.current_mileage,
                registration_state=vehicle.registration_state,
                registration_expiry_date=vehicle.registration_expiry_date,
                title_status=vehicle.title_status,
                host=HostRecord(
                    id=host.id,
                    name=host.name,
                    email=host.email,
                    insurance_type=host.insurance_type,
                    revenue_split=host.revenue_split,
                    earnings_tier=host.earnings_tier,
                )
                if host
                else None,
            )

    async def fetch_activity_logs(
        self, entity_type: str, entity_id: str
    ) -> list[ActivityLogRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ActivityLog)
                .options(selectinload(ActivityLog.user))
                .where(
                    ActivityLog.entity_type == entity_type,
                    ActivityLog.entity_id == entity_id,
                )
                .order_by(ActivityLog.created_at.desc())
            )
            return [
                ActivityLogRecord(
                    id=log.id,
                    action=log.action,
                    created_at=log.created_at,
                    category=log.category,
                    severity=log.severity,
                    admin_id=log.admin_id,
                    host_id=log.host_id,
                    user=UserRef(id=log.user.id, name=log.user.name, email=log.user.email)
                    if log.user
                    else None,
                    old_value=log.old_value,
                    new_value=log.new_value,
                    metadata=log.details,
                )
                for log in result.scalars().all()
            ]

    async def fetch_bookings(self, vehicle_id: str) -> list[BookingRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Booking)
                .options(selectinload(Booking.guest), selectinload(Booking.reviewer))
                .where(Booking.vehicle_id == vehicle_id)
                .order_by(Booking.created_at.desc())
            )
            return [_booking_record(booking) for booking in result.scalars().all()]

    async def fetch_service_records(self, vehicle_id: str) -> list[ServiceRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(VehicleServiceRecord)
                .where(VehicleServiceRecord.vehicle_id == vehicle_id)
                .order_by(VehicleServiceRecord.service_date.desc())
            )
            return [
                ServiceRecord(
                    id=service.id,
                    service_type=service.service_type,
                    service_date=service.service_date,
                    cost_total=service.cost_total,
                    mileage_at_service=service.mileage_at_service,
                    shop_name=service.shop_name,
                    shop_address=service.shop_address,
                    next_service_due=service.next_service_due,
                    next_service_mileage=service.next_service_mileage,
                    items_serviced=list(service.items_serviced or []),
                    added_by=service.added_by,
                    added_by_name=service.added_by_name,
                    added_by_type=service.added_by_type,
                    verified_by_fleet=bool(service.verified_by_fleet),
                    verified_at=service.verified_at,
                    verified_by=service.verified_by,
                    verified_by_name=service.verified_by_name,
                )
                for service in result.scalars().all()
            ]

    async def fetch_claims(self, vehicle_id: str) -> list[ClaimRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Claim)
                .join(Claim.booking)
                .options(selectinload(Claim.booking))
                .where(Booking.vehicle_id == vehicle_id)
                .order_by(Claim.created_at.desc())
            )
            return [
                ClaimRecord(
                    id=claim.id,
                    type=claim.type,
                    status=claim.status,
                    created_at=claim.created_at,
                    booking_id=claim.booking_id,
                    booking_code=claim.booking.booking_code if claim.booking else None,
                    description=claim.description,
                    estimated_cost=claim.estimated_cost,
                    approved_amount=claim.approved_amount,
                    deductible=claim.deductible,
                    incident_date=claim.incident_date,
                    reviewed_at=claim.reviewed_at,
                    reviewed_by=claim.reviewed_by,
                    review_notes=claim.review_notes,
                    paid_at=claim.paid_at,
                )
                for claim in result.scalars().all()
            ]

    async def fetch_claim_photos(self, vehicle_id: str) -> list[ClaimPhotoRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ClaimDamagePhoto)
                .join(ClaimDamagePhoto.claim)
                .join(Claim.booking)
                .where(Booking.vehicle_id == vehicle_id)
                .order_by(ClaimDamagePhoto.uploaded_at, ClaimDamagePhoto.id)
            )
            return [
                ClaimPhotoRecord(
                    id=photo.id,
                    claim_id=photo.claim_id,
                    uploaded_at=photo.uploaded_at,
                    uploaded_by=photo.uploaded_by,
                )
                for photo in result.scalars().all()
            ]

    async def fetch_payouts(self, vehicle_id: str) -> list[PayoutRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(HostPayout)
                .join(HostPayout.booking)
                .options(selectinload(HostPayout.booking))
                .where(Booking.vehicle_id == vehicle_id)
                .order_by(HostPayout.created_at.desc())
            )
            return [
                PayoutRecord(
                    id=payout.id,
                    amount=payout.amount,
                    status=payout.status,
                    created_at=payout.created_at,
                    booking_id=payout.booking_id,
                    booking_code=payout.booking.booking_code if payout.booking else None,
                    transfer_id=payout.transfer_id,
                    processed_at=payout.processed_at,
                )
                for payout in result.scalars().all()
            ]

    async def fetch_photos(self, vehicle_id: str) -> list[PhotoRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(VehiclePhoto)
                .where(VehiclePhoto.vehicle_id == vehicle_id)
                .order_by(VehiclePhoto.created_at.desc())
            )
            return [
                PhotoRecord(
                    id=photo.id,
                    created_at=photo.created_at,
                    url=photo.url,
                    is_hero=bool(photo.is_hero),
                    gps_latitude=photo.gps_latitude,
                    gps_longitude=photo.gps_longitude,
                    uploaded_by=photo.uploaded_by,
                    uploaded_by_type=photo.uploaded_by_type,
                )
                for photo in result.scalars().all()
            ]


def _booking_record(booking: Booking) -> BookingRecord:
    guest = booking.guest
    reviewer = booking.reviewer
    return BookingRecord(
        id=booking.id,
        booking_code=booking.booking_code,
        start_date=booking.start_date,
        end_date=booking.end_date,
        status=booking.status,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
        trip_status=booking.trip_status,
        guest_id=booking.guest_id,
        guest_name=(guest.name if guest else None) or booking.guest_name,
        guest_email=(guest.email if guest else None) or booking.guest_email,
        number_of_days=booking.number_of_days,
        total_amount=booking.total_amount,
        insurance_tier=booking.insurance_tier,
        check_in_time=booking.check_in_time,
        check_out_time=booking.check_out_time,
        check_in_odometer=booking.check_in_odometer,
        check_out_odometer=booking.check_out_odometer,
        check_in_fuel_level=booking.check_in_fuel_level,
        check_out_fuel_level=booking.check_out_fuel_level,
        reviewer=ReviewerRecord(
            id=reviewer.id,
            name=reviewer.name,
            city=reviewer.city,
            state=reviewer.state,
        )
        if reviewer
        else None,
    )


class SQLAlchemyActorDirectory(ActorDirectory):
    """Actor lookups against the users and rental_hosts tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def fetch_admins(self, ids: Iterable[str]) -> list[ActorRecord]:
        return await self._fetch_users(ids)

    async def fetch_users(self, ids: Iterable[str]) -> list[ActorRecord]:
        return await self._fetch_users(ids)

    async def fetch_hosts(self, ids: Iterable[str]) -> list[ActorRecord]:
        id_list = list(ids)
        if not id_list:
            return []
        async with self._session_factory() as session:
            result = await session.execute(
                select(RentalHost).where(RentalHost.id.in_(id_list))
            )
            return [
                ActorRecord(id=host.id, name=host.name, email=host.email)
                for host in result.scalars().all()
            ]

    async def _fetch_users(self, ids: Iterable[str]) -> list[ActorRecord]:
        id_list = list(ids)
        if not id_list:
            return []
        async with self._session_factory() as session:
            result = await session.execute(select(User).where(User.id.in_(id_list)))
            return [
                ActorRecord(id=user.id, name=user.name, email=user.email)
                for user in result.scalars().all()
            ]
