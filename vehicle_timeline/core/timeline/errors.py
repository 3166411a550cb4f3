"""Timeline aggregation errors."""

from typing import Any

from vehicle_timeline.core.timeline.types import AggregationStage


class TimelineError(Exception):
    """Base class for errors surfaced by the timeline aggregator.

    ``stage`` is filled in by the aggregator when the error crosses a stage
    boundary, so callers can tell where a run died without reading logs.
    """

    code = "timeline_error"

    def __init__(
        self,
        message: str,
        *,
        vehicle_id: str | None = None,
        stage: AggregationStage | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.vehicle_id = vehicle_id
        self.stage = stage

    def to_detail(self) -> dict[str, Any]:
        """Structured payload for API error responses."""
        return {
            "error": self.code,
            "message": self.message,
            "vehicle_id": self.vehicle_id,
            "stage": self.stage.value if self.stage else None,
        }


class VehicleNotFoundError(TimelineError):
    """The vehicle id does not resolve to a record."""

    code = "vehicle_not_found"

    def __init__(self, vehicle_id: str, **kwargs: Any) -> None:
        super().__init__(f"Vehicle {vehicle_id} not found", vehicle_id=vehicle_id, **kwargs)


class TimelineValidationError(TimelineError):
    """Malformed pagination or filter parameter."""

    code = "validation_error"

    def __init__(self, parameter: str, message: str, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.parameter = parameter

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["parameter"] = self.parameter
        return detail


class SourceFetchError(TimelineError):
    """One of the source fetches failed."""

    code = "source_fetch_failed"

    def __init__(self, source: str, message: str, **kwargs: Any) -> None:
        super().__init__(f"Failed to fetch {source}: {message}", **kwargs)
        self.source = source

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["source"] = self.source
        return detail


class AggregationTimeoutError(TimelineError):
    """The aggregation did not finish within its time budget."""

    code = "aggregation_timeout"


class AttributionResolutionError(TimelineError):
    """A batched actor lookup failed. Absorbed by the resolver."""

    code = "attribution_failed"

    def __init__(self, space: str, message: str, **kwargs: Any) -> None:
        super().__init__(f"Failed to resolve {space} actors: {message}", **kwargs)
        self.space = space


class TimelineAggregationError(TimelineError):
    """Unexpected internal failure while building a timeline."""

    code = "aggregation_failed"
