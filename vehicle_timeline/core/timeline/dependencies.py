"""FastAPI dependencies for the timeline subsystem."""

from typing import Annotated

from fastapi import Depends

from vehicle_timeline.config import Settings, get_settings
from vehicle_timeline.core.database.session import async_session_factory
from vehicle_timeline.core.timeline.repository import (
    SQLAlchemyActorDirectory,
    SQLAlchemyTimelineSources,
)
from vehicle_timeline.core.timeline.service import TimelineAggregator


def get_timeline_aggregator(
    settings: Annotated[Settings, Depends(get_settings)],
) -> TimelineAggregator:
    """
    Aggregator over the SQL sources.

    Sources get the session factory rather than a request session: the
    aggregator runs its fetches concurrently and each needs its own session.
    """
    return TimelineAggregator.from_settings(
        SQLAlchemyTimelineSources(async_session_factory),
        SQLAlchemyActorDirectory(async_session_factory),
        settings,
    )


TimelineAggregatorDep = Annotated[TimelineAggregator, Depends(get_timeline_aggregator)]
