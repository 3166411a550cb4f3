"""Vehicle activity timeline endpoints."""

from fastapi import APIRouter, HTTPException, Query, status

from vehicle_timeline.core.timeline.dependencies import TimelineAggregatorDep
from vehicle_timeline.core.timeline.errors import (
    AggregationTimeoutError,
    SourceFetchError,
    TimelineError,
    TimelineValidationError,
    VehicleNotFoundError,
)
from vehicle_timeline.core.timeline.merger import TimelineFilters
from vehicle_timeline.core.timeline.types import TimelineResponse

router = APIRouter()

ERROR_STATUS_CODES: dict[type[TimelineError], int] = {
    VehicleNotFoundError: status.HTTP_404_NOT_FOUND,
    TimelineValidationError: status.HTTP_422_UNPROCESSABLE_CONTENT,
    SourceFetchError: status.HTTP_502_BAD_GATEWAY,
    AggregationTimeoutError: status.HTTP_504_GATEWAY_TIMEOUT,
}


def _to_http_exception(error: TimelineError, vehicle_id: str) -> HTTPException:
    detail = error.to_detail()
    detail["vehicle_id"] = detail["vehicle_id"] or vehicle_id
    status_code = next(
        (code for cls, code in ERROR_STATUS_CODES.items() if isinstance(error, cls)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return HTTPException(status_code=status_code, detail=detail)


@router.get("/{vehicle_id}/activity", response_model=TimelineResponse)
async def get_vehicle_activity(
    vehicle_id: str,
    aggregator: TimelineAggregatorDep,
    page: int = Query(1, description="1-indexed page number"),
    limit: int | None = Query(None, description="Page size; defaults to the configured size"),
    category: str | None = Query(None, description="Only events of this category"),
    severity: str | None = Query(None, description="Only events of this severity"),
) -> TimelineResponse:
    """
    Unified activity timeline of a vehicle.

    Events from every source, newest first. Statistics always describe the
    full timeline, whatever the filters and page.
    """
    try:
        filters = TimelineFilters.from_params(category=category, severity=severity)
        return await aggregator.get_vehicle_timeline(
            vehicle_id, filters=filters, page=page, limit=limit
        )
    except TimelineError as e:
        raise _to_http_exception(e, vehicle_id) from e
