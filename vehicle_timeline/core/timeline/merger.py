"""Merging, filtering and pagination of the normalized timeline."""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from vehicle_timeline.core.logging import get_logger
from vehicle_timeline.core.timeline.errors import TimelineValidationError
from vehicle_timeline.core.timeline.normalizer import ensure_utc
from vehicle_timeline.core.timeline.types import (
    EventAction,
    EventCategory,
    EventSeverity,
    EventSource,
    PaginationInfo,
    TimelineEvent,
)

logger = get_logger(__name__)

SOURCE_PRIORITY = {source: index for index, source in enumerate(EventSource)}

# Lower rank sorts later among equal timestamps; the creation anchor is last.
ACTION_RANK = {EventAction.VEHICLE_CREATED.value: 0}
DEFAULT_ACTION_RANK = 1


def _sort_key(event: TimelineEvent) -> tuple:
    return (
        event.timestamp,
        SOURCE_PRIORITY[event.source],
        ACTION_RANK.get(event.action, DEFAULT_ACTION_RANK),
        event.id,
    )


def merge_timeline(
    events: Iterable[TimelineEvent], anchor: datetime, now: datetime | None = None
) -> list[TimelineEvent]:
    """
    Merge events into one newest-first timeline.

    Events older than ``anchor`` (the vehicle's creation time) are lifted to
    it. When ``now`` is given, events other than the creation anchor that
    are later than it are brought back to ``now``. Duplicate ids get a
    ``-2``, ``-3``... suffix in emission order, and ties on timestamp are
    broken by source, action rank and id so the result is fully
    deterministic.
    """
    anchor = ensure_utc(anchor)
    ceiling = max(ensure_utc(now), anchor) if now is not None else None
    used_ids: set[str] = set()
    merged: list[TimelineEvent] = []

    for event in events:
        update = {}

        if event.timestamp < anchor:
            logger.warning(
                "timeline_event_before_anchor",
                event_id=event.id,
                timestamp=event.timestamp.isoformat(),
                anchor=anchor.isoformat(),
            )
            update["timestamp"] = anchor
        elif (
            ceiling is not None
            and event.timestamp > ceiling
            and event.action != EventAction.VEHICLE_CREATED.value
        ):
            logger.warning(
                "timeline_event_after_now",
                event_id=event.id,
                timestamp=event.timestamp.isoformat(),
                now=ceiling.isoformat(),
            )
            update["timestamp"] = ceiling

        event_id = event.id
        suffix = 1
        while event_id in used_ids:
            suffix += 1
            event_id = f"{event.id}-{suffix}"
        used_ids.add(event_id)
        if event_id != event.id:
            update["id"] = event_id

        merged.append(event.model_copy(update=update) if update else event)

    merged.sort(key=_sort_key, reverse=True)
    return merged


@dataclass(frozen=True)
class TimelineFilters:
    """Optional exact-match predicates; an empty filter keeps everything."""

    category: EventCategory | None = None
    severity: EventSeverity | None = None

    @classmethod
    def from_params(
        cls, category: str | None = None, severity: str | None = None
    ) -> "TimelineFilters":
        """Parse raw query values, case-insensitively."""
        return cls(
            category=_parse_filter("category", EventCategory, category),
            severity=_parse_filter("severity", EventSeverity, severity),
        )

    def matches(self, event: TimelineEvent) -> bool:
        if self.category is not None and event.category != self.category:
            return False
        if self.severity is not None and event.severity != self.severity:
            return False
        return True


def _parse_filter(parameter: str, enum_cls, raw: str | None):
    if raw is None or not raw.strip():
        return None
    try:
        return enum_cls(raw.strip().upper())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise TimelineValidationError(
            parameter, f"Invalid {parameter} '{raw}'. Expected one of: {allowed}"
        ) from None


@dataclass(frozen=True)
class PageRequest:
    """A validated 1-indexed page window."""

    page: int
    limit: int

    @classmethod
    def create(cls, page: int = 1, limit: int = 100, max_limit: int = 500) -> "PageRequest":
        if page < 1:
            raise TimelineValidationError("page", f"page must be >= 1 (got {page})")
        if limit < 1:
            raise TimelineValidationError("limit", f"limit must be >= 1 (got {limit})")
        if limit > max_limit:
            raise TimelineValidationError(
                "limit", f"limit must be <= {max_limit} (got {limit})"
            )
        return cls(page=page, limit=limit)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def filter_and_paginate(
    timeline: list[TimelineEvent],
    filters: TimelineFilters,
    page_request: PageRequest,
) -> tuple[list[TimelineEvent], PaginationInfo]:
    """Filter the sorted timeline, then slice out the requested page."""
    filtered = [event for event in timeline if filters.matches(event)]
    total = len(filtered)
    start = page_request.offset
    page_events = filtered[start : start + page_request.limit]

    return page_events, PaginationInfo(
        page=page_request.page,
        limit=page_request.limit,
        total=total,
        total_pages=math.ceil(total / page_request.limit),
        has_more=start + len(page_events) < total,
    )
