"""Synthetic compliance events derived from the vehicle record at query time."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from vehicle_timeline.core.timeline.normalizer import ensure_utc, isoformat
from vehicle_timeline.core.timeline.records import VehicleRecord
from vehicle_timeline.core.timeline.types import (
    EventAction,
    EventCategory,
    EventSeverity,
    EventSource,
    TimelineEvent,
)

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class ExpiryPolicy:
    """Registration-expiry breakpoints, in days before expiry.

    A warning is emitted once expiry is at most ``window_days`` away; it
    escalates to WARNING at ``warning_days`` and to ERROR at ``error_days``.
    """

    window_days: int = 60
    warning_days: int = 30
    error_days: int = 14

    def __post_init__(self) -> None:
        if self.error_days < 0:
            raise ValueError("error_days must not be negative")
        if not self.error_days <= self.warning_days <= self.window_days:
            raise ValueError(
                "Expiry breakpoints must satisfy error_days <= warning_days <= window_days "
                f"(got {self.error_days}, {self.warning_days}, {self.window_days})"
            )

    @classmethod
    def from_settings(cls, settings) -> "ExpiryPolicy":
        return cls(
            window_days=settings.registration_warning_window_days,
            warning_days=settings.registration_warning_days,
            error_days=settings.registration_error_days,
        )

    def severity_for(self, days_until_expiry: int) -> EventSeverity:
        if days_until_expiry <= self.error_days:
            return EventSeverity.ERROR
        if days_until_expiry <= self.warning_days:
            return EventSeverity.WARNING
        return EventSeverity.INFO


def derive_compliance_events(
    vehicle: VehicleRecord,
    now: datetime,
    policy: ExpiryPolicy | None = None,
) -> list[TimelineEvent]:
    """
    Registration-expiry status as of ``now``.

    Returns at most one event: REGISTRATION_EXPIRED once the expiry instant
    has passed, REGISTRATION_EXPIRY_WARNING while it is inside the warning
    window, nothing otherwise. Both are stamped ``now`` and never stored.
    """
    if vehicle.registration_expiry_date is None:
        return []

    policy = policy or ExpiryPolicy()
    now = ensure_utc(now)
    expires_at = ensure_utc(vehicle.registration_expiry_date)
    metadata = {
        "expiry_date": isoformat(expires_at),
        "registration_state": vehicle.registration_state,
    }

    if expires_at <= now:
        days_expired = (now - expires_at) // ONE_DAY
        description = (
            f"Registration expired {days_expired} days ago"
            if days_expired
            else "Registration expired today"
        )
        return [
            TimelineEvent(
                id=f"compliance-registration-expired-{vehicle.id}",
                category=EventCategory.COMPLIANCE,
                source=EventSource.COMPLIANCE,
                action=EventAction.REGISTRATION_EXPIRED.value,
                description=description,
                severity=EventSeverity.CRITICAL,
                metadata={**metadata, "days_expired": days_expired},
                timestamp=now,
            )
        ]

    days_until_expiry = (expires_at - now) // ONE_DAY
    if days_until_expiry > policy.window_days:
        return []

    return [
        TimelineEvent(
            id=f"compliance-registration-expiry-{vehicle.id}",
            category=EventCategory.COMPLIANCE,
            source=EventSource.COMPLIANCE,
            action=EventAction.REGISTRATION_EXPIRY_WARNING.value,
            description=f"Registration expires in {days_until_expiry} days",
            severity=policy.severity_for(days_until_expiry),
            metadata={**metadata, "days_until_expiry": days_until_expiry},
            timestamp=now,
        )
    ]
