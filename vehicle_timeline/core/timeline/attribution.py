"""Batched actor attribution.

Actor ids found across all fetched records are collected up front and
resolved with at most one directory call per identifier space. The result
is a request-scoped ``AttributionMap`` handed to the normalizer; nothing is
cached between requests.
"""

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum

from vehicle_timeline.core.logging import get_logger
from vehicle_timeline.core.timeline.errors import AttributionResolutionError
from vehicle_timeline.core.timeline.records import ActorRecord, SourceBundle
from vehicle_timeline.core.timeline.sources import ActorDirectory
from vehicle_timeline.core.timeline.types import ActorType

logger = get_logger(__name__)


class ActorSpace(str, Enum):
    """Identifier spaces an actor id can belong to."""

    ADMIN = "ADMIN"
    HOST = "HOST"
    USER = "USER"


GENERIC_LABELS: dict[ActorSpace, str] = {
    ActorSpace.ADMIN: "Admin",
    ActorSpace.HOST: "Host",
    ActorSpace.USER: "User",
}

ACTOR_TYPES: dict[ActorSpace, ActorType] = {
    ActorSpace.ADMIN: ActorType.ADMIN,
    ActorSpace.HOST: ActorType.HOST,
    ActorSpace.USER: ActorType.USER,
}


@dataclass(frozen=True)
class Attribution:
    """Display name and classification of whoever performed an event."""

    display_name: str
    actor_type: ActorType


SYSTEM_ATTRIBUTION = Attribution(display_name="System", actor_type=ActorType.SYSTEM)


@dataclass
class AttributionMap:
    """Resolved actors of one aggregation run, keyed by space and id."""

    actors: dict[ActorSpace, dict[str, ActorRecord]] = field(default_factory=dict)
    failed_spaces: frozenset[ActorSpace] = frozenset()

    def get(self, space: ActorSpace, actor_id: str | None) -> ActorRecord | None:
        if not actor_id:
            return None
        return self.actors.get(space, {}).get(actor_id)

    def resolve(self, space: ActorSpace, actor_id: str | None) -> Attribution | None:
        """
        Attribution for an id, or None when the id is empty or unknown.

        Ids from a space whose lookup failed resolve to that space's generic
        label, so a directory outage never hides that an actor was involved.
        """
        if not actor_id:
            return None

        actor = self.get(space, actor_id)
        if actor is not None:
            return Attribution(
                display_name=actor.display_name or GENERIC_LABELS[space],
                actor_type=ACTOR_TYPES[space],
            )
        if space in self.failed_spaces:
            return Attribution(display_name=GENERIC_LABELS[space], actor_type=ACTOR_TYPES[space])
        return None

    def attribute(
        self, space: ActorSpace, actor_id: str | None, fallback: Attribution
    ) -> Attribution:
        """Like ``resolve`` but never empty."""
        return self.resolve(space, actor_id) or fallback


def collect_actor_ids(bundle: SourceBundle) -> dict[ActorSpace, set[str]]:
    """Distinct actor ids referenced anywhere in the fetched records."""
    ids: dict[ActorSpace, set[str]] = {space: set() for space in ActorSpace}

    if bundle.vehicle.host_id:
        ids[ActorSpace.HOST].add(bundle.vehicle.host_id)

    for log in bundle.activity_logs:
        if log.admin_id:
            ids[ActorSpace.ADMIN].add(log.admin_id)
        if log.host_id:
            ids[ActorSpace.HOST].add(log.host_id)
        if log.user:
            ids[ActorSpace.USER].add(log.user.id)

    for photo in bundle.photos:
        if photo.uploaded_by:
            ids[ActorSpace.HOST].add(photo.uploaded_by)

    for service in bundle.service_records:
        if service.added_by:
            ids[ActorSpace.HOST].add(service.added_by)
        if service.verified_by:
            ids[ActorSpace.ADMIN].add(service.verified_by)

    return ids


class AttributionResolver:
    """Resolves collected actor ids through an ``ActorDirectory``."""

    def __init__(self, directory: ActorDirectory):
        self.directory = directory

    async def resolve(self, ids: Mapping[ActorSpace, Iterable[str]]) -> AttributionMap:
        """
        Resolve every space concurrently, one batched call per non-empty space.

        Lookup failures are logged and absorbed; the failed space degrades
        to generic labels.
        """
        batches = {space: sorted(set(space_ids)) for space, space_ids in ids.items()}
        batches = {space: id_list for space, id_list in batches.items() if id_list}
        if not batches:
            return AttributionMap()

        results = await asyncio.gather(
            *(self._lookup(space, id_list) for space, id_list in batches.items())
        )

        actors: dict[ActorSpace, dict[str, ActorRecord]] = {}
        failed: set[ActorSpace] = set()
        for space, records in zip(batches, results):
            if records is None:
                failed.add(space)
                continue
            actors[space] = {record.id: record for record in records}

        return AttributionMap(actors=actors, failed_spaces=frozenset(failed))

    async def _lookup(self, space: ActorSpace, ids: list[str]) -> list[ActorRecord] | None:
        lookups = {
            ActorSpace.ADMIN: self.directory.fetch_admins,
            ActorSpace.HOST: self.directory.fetch_hosts,
            ActorSpace.USER: self.directory.fetch_users,
        }
        try:
            return await lookups[space](ids)
        except Exception as e:
            error = (
                e
                if isinstance(e, AttributionResolutionError)
                else AttributionResolutionError(space.value, str(e))
            )
            logger.warning(
                "attribution_lookup_failed",
                space=space.value,
                id_count=len(ids),
                error=error.message,
            )
            return None
