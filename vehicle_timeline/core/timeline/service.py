"""Timeline aggregation orchestrator.

Drives one run through FETCHING -> NORMALIZING -> MERGING -> FILTERING ->
RESPONDING. Source fetches fan out concurrently; the first failure cancels
the rest and fails the whole run. The run as a whole is bounded by a
timeout; nothing is retried.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from vehicle_timeline.config import Settings
from vehicle_timeline.core.logging import get_logger
from vehicle_timeline.core.timeline.attribution import AttributionResolver, collect_actor_ids
from vehicle_timeline.core.timeline.compliance import ExpiryPolicy, derive_compliance_events
from vehicle_timeline.core.timeline.errors import (
    AggregationTimeoutError,
    SourceFetchError,
    TimelineAggregationError,
    TimelineError,
    TimelineValidationError,
    VehicleNotFoundError,
)
from vehicle_timeline.core.timeline.merger import (
    PageRequest,
    TimelineFilters,
    filter_and_paginate,
    merge_timeline,
)
from vehicle_timeline.core.timeline.normalizer import (
    NormalizationContext,
    ensure_utc,
    normalize_sources,
)
from vehicle_timeline.core.timeline.records import SourceBundle, VehicleRecord
from vehicle_timeline.core.timeline.sources import (
    VEHICLE_ENTITY_TYPE,
    ActorDirectory,
    TimelineSources,
)
from vehicle_timeline.core.timeline.statistics import compute_statistics, count_data_sources
from vehicle_timeline.core.timeline.types import (
    AggregationStage,
    HostSummary,
    TimelineResponse,
    VehicleSummary,
)

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AggregationRun:
    """Stage tracker for one aggregation run."""

    vehicle_id: str
    stage: AggregationStage = AggregationStage.FETCHING
    started: float = field(default_factory=time.perf_counter)

    def advance(self, stage: AggregationStage) -> None:
        logger.debug("timeline_stage_entered", vehicle_id=self.vehicle_id, stage=stage.value)
        self.stage = stage

    @property
    def duration_ms(self) -> int:
        return int((time.perf_counter() - self.started) * 1000)


class TimelineAggregator:
    """Builds the activity timeline of one vehicle from all of its sources."""

    def __init__(
        self,
        sources: TimelineSources,
        directory: ActorDirectory,
        *,
        timeout_seconds: float = 10.0,
        default_page_size: int = 100,
        max_page_size: int = 500,
        expiry_policy: ExpiryPolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.sources = sources
        self.resolver = AttributionResolver(directory)
        self.timeout_seconds = timeout_seconds
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.expiry_policy = expiry_policy or ExpiryPolicy()
        self.clock = clock

    @classmethod
    def from_settings(
        cls,
        sources: TimelineSources,
        directory: ActorDirectory,
        settings: Settings,
    ) -> "TimelineAggregator":
        return cls(
            sources,
            directory,
            timeout_seconds=settings.timeline_timeout_seconds,
            default_page_size=settings.timeline_default_page_size,
            max_page_size=settings.timeline_max_page_size,
            expiry_policy=ExpiryPolicy.from_settings(settings),
        )

    async def get_vehicle_timeline(
        self,
        vehicle_id: str,
        filters: TimelineFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> TimelineResponse:
        """
        Build the filtered, paginated timeline of a vehicle.

        Raises:
            TimelineValidationError: page or limit out of range (before any fetch)
            VehicleNotFoundError: the vehicle does not exist
            SourceFetchError: any source fetch failed
            AggregationTimeoutError: the run exceeded ``timeout_seconds``
            TimelineAggregationError: anything else went wrong
        """
        try:
            page_request = PageRequest.create(
                page=page,
                limit=self.default_page_size if limit is None else limit,
                max_limit=self.max_page_size,
            )
        except TimelineValidationError as e:
            e.vehicle_id = vehicle_id
            raise

        filters = filters or TimelineFilters()
        run = AggregationRun(vehicle_id=vehicle_id)

        try:
            return await asyncio.wait_for(
                self._aggregate(run, filters, page_request),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            stage = run.stage
            run.advance(AggregationStage.FAILED)
            logger.error(
                "timeline_aggregation_timeout",
                vehicle_id=vehicle_id,
                stage=stage.value,
                timeout_seconds=self.timeout_seconds,
            )
            raise AggregationTimeoutError(
                f"Timeline aggregation exceeded {self.timeout_seconds}s",
                vehicle_id=vehicle_id,
                stage=stage,
            ) from None
        except TimelineError as e:
            e.vehicle_id = e.vehicle_id or vehicle_id
            e.stage = e.stage or run.stage
            run.advance(AggregationStage.FAILED)
            logger.warning(
                "timeline_aggregation_failed",
                vehicle_id=vehicle_id,
                stage=e.stage.value,
                error=e.code,
                message=e.message,
            )
            raise
        except Exception as e:
            stage = run.stage
            run.advance(AggregationStage.FAILED)
            logger.exception(
                "timeline_aggregation_failed",
                vehicle_id=vehicle_id,
                stage=stage.value,
                error=str(e),
            )
            raise TimelineAggregationError(
                f"Unexpected error during {stage.value.lower()}: {e}",
                vehicle_id=vehicle_id,
                stage=stage,
            ) from e

    async def _aggregate(
        self,
        run: AggregationRun,
        filters: TimelineFilters,
        page_request: PageRequest,
    ) -> TimelineResponse:
        now = ensure_utc(self.clock())

        bundle = await self._fetch_sources(run.vehicle_id)
        logger.info(
            "timeline_sources_fetched",
            vehicle_id=run.vehicle_id,
            activity_logs=len(bundle.activity_logs),
            bookings=len(bundle.bookings),
            service_records=len(bundle.service_records),
            claims=len(bundle.claims),
            claim_photos=len(bundle.claim_photos),
            payouts=len(bundle.payouts),
            photos=len(bundle.photos),
        )

        run.advance(AggregationStage.NORMALIZING)
        attribution = await self.resolver.resolve(collect_actor_ids(bundle))
        context = NormalizationContext(vehicle=bundle.vehicle, attribution=attribution, now=now)
        events = normalize_sources(bundle, context)
        events.extend(derive_compliance_events(bundle.vehicle, now, self.expiry_policy))

        run.advance(AggregationStage.MERGING)
        timeline = merge_timeline(events, anchor=bundle.vehicle.created_at, now=now)

        run.advance(AggregationStage.FILTERING)
        page_events, pagination = filter_and_paginate(timeline, filters, page_request)
        statistics = compute_statistics(timeline, count_data_sources(bundle))

        run.advance(AggregationStage.RESPONDING)
        response = TimelineResponse(
            vehicle=_vehicle_summary(bundle.vehicle),
            timeline=page_events,
            pagination=pagination,
            statistics=statistics,
            generated_at=now,
        )

        logger.info(
            "timeline_aggregated",
            vehicle_id=run.vehicle_id,
            total_events=statistics.total_events,
            filtered_events=pagination.total,
            returned_events=len(page_events),
            category=filters.category.value if filters.category else None,
            severity=filters.severity.value if filters.severity else None,
            duration_ms=run.duration_ms,
        )
        return response

    async def _fetch_sources(self, vehicle_id: str) -> SourceBundle:
        """Run every fetch concurrently; the first failure cancels the others."""
        fetches: dict[str, Awaitable[Any]] = {
            "vehicle": self._require_vehicle(vehicle_id),
            "activity_logs": self.sources.fetch_activity_logs(VEHICLE_ENTITY_TYPE, vehicle_id),
            "bookings": self.sources.fetch_bookings(vehicle_id),
            "service_records": self.sources.fetch_service_records(vehicle_id),
            "claims": self.sources.fetch_claims(vehicle_id),
            "claim_photos": self.sources.fetch_claim_photos(vehicle_id),
            "payouts": self.sources.fetch_payouts(vehicle_id),
            "photos": self.sources.fetch_photos(vehicle_id),
        }
        tasks = [
            asyncio.create_task(self._fetch(name, fetch), name=f"timeline-fetch-{name}")
            for name, fetch in fetches.items()
        ]

        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        fetched = dict(zip(fetches, results))
        return SourceBundle(vehicle=fetched.pop("vehicle"), **fetched)

    async def _require_vehicle(self, vehicle_id: str) -> VehicleRecord:
        """Raise as soon as the vehicle is known to be missing, cancelling the other fetches."""
        vehicle = await self.sources.fetch_vehicle(vehicle_id)
        if vehicle is None:
            raise VehicleNotFoundError(vehicle_id, stage=AggregationStage.FETCHING)
        return vehicle

    @staticmethod
    async def _fetch(source: str, fetch: Awaitable[Any]) -> Any:
        try:
            return await fetch
        except TimelineError:
            raise
        except Exception as e:
            raise SourceFetchError(source, str(e) or type(e).__name__) from e


def _vehicle_summary(vehicle: VehicleRecord) -> VehicleSummary:
    host = vehicle.host
    return VehicleSummary(
        id=vehicle.id,
        make=vehicle.make,
        model=vehicle.model,
        year=vehicle.year,
        display_name=vehicle.display_name,
        vin=vehicle.vin,
        current_mileage=vehicle.current_mileage,
        host=HostSummary(
            id=host.id,
            name=host.name,
            insurance_type=host.insurance_type,
            revenue_split=host.revenue_split,
            earnings_tier=host.earnings_tier,
        )
        if host
        else None,
    )
