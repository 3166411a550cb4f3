"""Histograms and source counts over the full, unfiltered timeline."""

from collections import Counter

from vehicle_timeline.core.timeline.normalizer import count_vehicle_documents
from vehicle_timeline.core.timeline.records import SourceBundle
from vehicle_timeline.core.timeline.types import (
    DataSourceCounts,
    EventCategory,
    EventSeverity,
    TimelineEvent,
    TimelineStatistics,
)


def count_data_sources(bundle: SourceBundle) -> DataSourceCounts:
    """Raw record counts per source, independent of how many events each produced."""
    return DataSourceCounts(
        activity_logs=len(bundle.activity_logs),
        bookings=len(bundle.bookings),
        service_records=len(bundle.service_records),
        claims=len(bundle.claims),
        claim_photos=len(bundle.claim_photos),
        payouts=len(bundle.payouts),
        photos=len(bundle.photos),
        vehicle_documents=count_vehicle_documents(bundle.vehicle),
    )


def compute_statistics(
    timeline: list[TimelineEvent], data_sources: DataSourceCounts
) -> TimelineStatistics:
    """
    Category and severity histograms in enum order, zero counts omitted.

    Always pass the full merged timeline, never a filtered page.
    """
    categories = Counter(event.category for event in timeline)
    severities = Counter(event.severity for event in timeline)

    return TimelineStatistics(
        total_events=len(timeline),
        category_breakdown={
            category.value: categories[category]
            for category in EventCategory
            if categories[category]
        },
        severity_breakdown={
            severity.value: severities[severity]
            for severity in EventSeverity
            if severities[severity]
        },
        data_sources=data_sources,
    )
