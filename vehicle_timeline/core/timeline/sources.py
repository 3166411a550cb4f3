"""Interfaces the aggregator consumes: source repositories and the actor directory."""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from vehicle_timeline.core.timeline.records import (
    ActivityLogRecord,
    ActorRecord,
    BookingRecord,
    ClaimPhotoRecord,
    ClaimRecord,
    PayoutRecord,
    PhotoRecord,
    ServiceRecord,
    VehicleRecord,
)

VEHICLE_ENTITY_TYPE = "CAR"


class TimelineSources(ABC):
    """Read-only access to everything that happened to a vehicle.

    Each method is an independent fetch; the aggregator runs them
    concurrently, so implementations must not share a connection or session
    between calls.
    """

    @abstractmethod
    async def fetch_vehicle(self, vehicle_id: str) -> VehicleRecord | None:
        """Vehicle record with its owning host, or None when unknown."""
        ...

    @abstractmethod
    async def fetch_activity_logs(
        self, entity_type: str, entity_id: str
    ) -> list[ActivityLogRecord]:
        """All audit-log rows for an entity."""
        ...

    @abstractmethod
    async def fetch_bookings(self, vehicle_id: str) -> list[BookingRecord]:
        ...

    @abstractmethod
    async def fetch_service_records(self, vehicle_id: str) -> list[ServiceRecord]:
        ...

    @abstractmethod
    async def fetch_claims(self, vehicle_id: str) -> list[ClaimRecord]:
        """Claims whose booking belongs to the vehicle."""
        ...

    @abstractmethod
    async def fetch_claim_photos(self, vehicle_id: str) -> list[ClaimPhotoRecord]:
        """Damage photos of claims whose booking belongs to the vehicle."""
        ...

    @abstractmethod
    async def fetch_payouts(self, vehicle_id: str) -> list[PayoutRecord]:
        """Payouts whose booking belongs to the vehicle."""
        ...

    @abstractmethod
    async def fetch_photos(self, vehicle_id: str) -> list[PhotoRecord]:
        ...


class ActorDirectory(ABC):
    """Batch lookups of actors by id, one call per identifier space."""

    @abstractmethod
    async def fetch_admins(self, ids: Iterable[str]) -> list[ActorRecord]:
        ...

    @abstractmethod
    async def fetch_hosts(self, ids: Iterable[str]) -> list[ActorRecord]:
        ...

    @abstractmethod
    async def fetch_users(self, ids: Iterable[str]) -> list[ActorRecord]:
        ...
