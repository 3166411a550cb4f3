"""Unit tests for per-source event normalization."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from tests.factories import (
    NOW,
    VEHICLE_CREATED_AT,
    days_after_creation,
    make_activity_log,
    make_booking,
    make_claim,
    make_claim_photo,
    make_context,
    make_host,
    make_payout,
    make_photo,
    make_service_record,
    make_vehicle,
)
from vehicle_timeline.core.timeline.attribution import ActorSpace, AttributionMap
from vehicle_timeline.core.timeline.normalizer import (
    activity_log_events,
    booking_events,
    claim_events,
    count_vehicle_documents,
    ensure_utc,
    format_currency,
    mask_vin,
    payout_events,
    photo_events,
    service_events,
    vehicle_events,
)
from vehicle_timeline.core.timeline.records import (
    ActorRecord,
    ReviewerRecord,
    UserRef,
)
from vehicle_timeline.core.timeline.types import (
    ActorType,
    EventCategory,
    EventSeverity,
    EventSource,
)


def by_action(events):
    return {event.action: event for event in events}


class TestHelpers:
    """Tests for timestamp and formatting helpers."""

    def test_naive_datetime_is_read_as_utc(self):
        assert ensure_utc(datetime(2025, 3, 1, 8, 30)) == datetime(
            2025, 3, 1, 8, 30, tzinfo=timezone.utc
        )

    def test_aware_datetime_is_converted_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        value = ensure_utc(datetime(2025, 3, 1, 10, 0, tzinfo=plus_two))
        assert value == datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)
        assert value.utcoffset() == timedelta(0)

    def test_bare_date_is_midnight_utc(self):
        assert ensure_utc(date(2025, 3, 1)) == datetime(2025, 3, 1, tzinfo=timezone.utc)

    def test_currency_formatting(self):
        assert format_currency(Decimal("1234.5")) == "$1,234.50"
        assert format_currency(None) == "$0.00"

    def test_vin_masking(self):
        assert mask_vin("4T1BF1FK5CU123456") == "4T1BF1FK5C...3456"


class TestVehicleEvents:
    """Tests for the creation anchor and document facts."""

    def test_creation_and_documents_anchored_at_creation(self):
        events = vehicle_events(make_context())

        assert [e.action for e in events] == [
            "VEHICLE_CREATED",
            "VIN_ADDED",
            "REGISTRATION_UPLOADED",
            "TITLE_STATUS_SET",
            "INSURANCE_TYPE_SELECTED",
        ]
        assert all(e.timestamp == VEHICLE_CREATED_AT for e in events)
        assert all(e.source == EventSource.VEHICLE for e in events)
        assert all(e.performed_by == "Jamie Rivera" for e in events)
        assert all(e.performed_by_type == ActorType.HOST for e in events)

    def test_document_descriptions(self):
        events = by_action(vehicle_events(make_context()))

        assert events["VEHICLE_CREATED"].category == EventCategory.VEHICLE
        assert events["VEHICLE_CREATED"].id == "vehicle-created-veh-1"
        assert events["VIN_ADDED"].description == "VIN added: 4T1BF1FK5C...3456"
        assert events["VIN_ADDED"].category == EventCategory.DOCUMENT
        assert events["REGISTRATION_UPLOADED"].description == "Registration uploaded (AZ)"
        assert events["TITLE_STATUS_SET"].description == "Title status: Clean"
        assert (
            events["INSURANCE_TYPE_SELECTED"].description
            == "Insurance type selected: P2P Insurance (75%)"
        )

    def test_platform_only_insurance_is_not_an_event(self):
        vehicle = make_vehicle(host=make_host(insurance_type="none"))
        events = by_action(vehicle_events(make_context(vehicle)))

        assert "INSURANCE_TYPE_SELECTED" not in events
        assert count_vehicle_documents(vehicle) == 3

    def test_bare_vehicle_still_has_creation_event(self):
        vehicle = make_vehicle(vin=None, registration_state=None, title_status=None, host=None)
        events = vehicle_events(make_context(vehicle))

        assert [e.action for e in events] == ["VEHICLE_CREATED"]
        assert events[0].performed_by == "Host"
        assert count_vehicle_documents(vehicle) == 0

    def test_host_name_falls_back_to_directory(self):
        vehicle = make_vehicle(host=None)
        attribution = AttributionMap(
            actors={ActorSpace.HOST: {"host-1": ActorRecord(id="host-1", name="Directory Host")}}
        )
        events = vehicle_events(make_context(vehicle, attribution))

        assert events[0].performed_by == "Directory Host"


class TestActivityLogEvents:
    """Tests for audit-log rows."""

    def test_description_table(self):
        logs = [
            make_activity_log("a", action="CREATE_CAR"),
            make_activity_log("b", action="UPLOAD_PHOTO", metadata={"photoCount": 4}),
            make_activity_log("c", action="ADD_SERVICE_RECORD", metadata={"serviceType": "Brakes"}),
            make_activity_log("d", action="CLAIM_FILED", metadata={}),
            make_activity_log("e", action="PRICE_OVERRIDE_APPLIED"),
        ]
        descriptions = [e.description for e in activity_log_events(logs, make_context())]

        assert descriptions == [
            "Vehicle added to platform",
            "Uploaded 4 photo(s)",
            "Added service record: Brakes",
            "Claim filed: incident",
            "price override applied",
        ]

    def test_category_and_severity_pass_through(self):
        log = make_activity_log(category="compliance", severity="CRITICAL")
        event = activity_log_events([log], make_context())[0]

        assert event.category == EventCategory.COMPLIANCE
        assert event.severity == EventSeverity.CRITICAL
        assert event.source == EventSource.ACTIVITY_LOG
        assert event.id == "activity-log-1"

    def test_unknown_category_and_severity_fall_back(self):
        log = make_activity_log(category="PRICING", severity=None)
        event = activity_log_events([log], make_context())[0]

        assert event.category == EventCategory.VEHICLE
        assert event.severity == EventSeverity.INFO

    def test_change_payload_is_preserved(self):
        log = make_activity_log(
            old_value={"daily_rate": 80},
            new_value={"daily_rate": 95},
            metadata={"field": "daily_rate"},
        )
        event = activity_log_events([log], make_context())[0]

        assert event.old_value == {"daily_rate": 80}
        assert event.new_value == {"daily_rate": 95}
        assert event.metadata == {"field": "daily_rate"}

    def test_actor_priority_admin_then_host_then_user(self):
        attribution = AttributionMap(
            actors={
                ActorSpace.ADMIN: {"adm-1": ActorRecord(id="adm-1", name="Avery Admin")},
                ActorSpace.HOST: {"host-1": ActorRecord(id="host-1", name="Jamie Rivera")},
            }
        )
        logs = [
            make_activity_log("a", admin_id="adm-1", host_id="host-1"),
            make_activity_log("b", host_id="host-1", user=UserRef(id="u-1", name="Sam")),
            make_activity_log("c", user=UserRef(id="u-1", email="sam@example.com")),
            make_activity_log("d"),
        ]
        events = activity_log_events(logs, make_context(attribution=attribution))

        assert [(e.performed_by, e.performed_by_type) for e in events] == [
            ("Avery Admin", ActorType.ADMIN),
            ("Jamie Rivera", ActorType.HOST),
            ("sam@example.com", ActorType.USER),
            ("System", ActorType.SYSTEM),
        ]

    def test_unknown_admin_falls_through_to_next_actor(self):
        log = make_activity_log(admin_id="adm-gone", user=UserRef(id="u-1", name="Sam"))
        event = activity_log_events([log], make_context())[0]

        assert event.performed_by == "Sam"
        assert event.performed_by_type == ActorType.USER

    def test_failed_admin_lookup_uses_generic_label(self):
        attribution = AttributionMap(failed_spaces=frozenset({ActorSpace.ADMIN}))
        log = make_activity_log(admin_id="adm-1")
        event = activity_log_events([log], make_context(attribution=attribution))[0]

        assert event.performed_by == "Admin"
        assert event.performed_by_type == ActorType.ADMIN


class TestPhotoEvents:
    """Tests for photo grouping and hero photos."""

    def test_same_day_uploads_are_summarized(self):
        photos = [
            make_photo("p1", created_at=days_after_creation(1, 1)),
            make_photo("p2", created_at=days_after_creation(1, 3), gps_latitude=33.4, gps_longitude=-112.0),
            make_photo("p3", created_at=days_after_creation(1, 2)),
            make_photo("p4", created_at=days_after_creation(5)),
        ]
        events = photo_events(photos, make_context())

        assert len(events) == 1
        summary = events[0]
        assert summary.action == "PHOTOS_UPLOADED"
        assert summary.id == "photo-summary-veh-1-2025-01-11"
        assert summary.description == "3 photos uploaded"
        assert summary.timestamp == days_after_creation(1, 3)
        assert summary.metadata["photo_count"] == 3
        assert summary.metadata["has_gps"] is True

    def test_hero_photo_always_emits_its_own_event(self):
        photos = [make_photo("p1", is_hero=True, created_at=days_after_creation(2))]
        events = photo_events(photos, make_context())

        assert [e.action for e in events] == ["HERO_PHOTO_SET"]
        assert events[0].id == "photo-hero-p1"
        assert events[0].performed_by == "Jamie Rivera"

    def test_uploader_resolved_through_host_space(self):
        attribution = AttributionMap(
            actors={ActorSpace.HOST: {"host-2": ActorRecord(id="host-2", name="Co-Host")}}
        )
        photos = [
            make_photo("p1", is_hero=True, uploaded_by="host-2"),
            make_photo(
                "p2",
                is_hero=True,
                uploaded_by="host-unknown",
                created_at=days_after_creation(4),
            ),
        ]
        events = photo_events(photos, make_context(attribution=attribution))

        assert [e.performed_by for e in events] == ["Co-Host", "Host"]


class TestServiceEvents:
    """Tests for service records."""

    def test_completed_event(self):
        event = service_events([make_service_record()], make_context())[0]

        assert event.action == "SERVICE_COMPLETED"
        assert event.description == "Oil Change completed - $89.99"
        assert event.timestamp == days_after_creation(40)
        assert event.performed_by == "Jamie Rivera"
        assert event.metadata["cost"] == 89.99

    def test_added_by_name_wins(self):
        record = make_service_record(added_by="host-1", added_by_name="Shop Intake")
        event = service_events([record], make_context())[0]

        assert event.performed_by == "Shop Intake"

    def test_verification_attributed_to_admin(self):
        attribution = AttributionMap(
            actors={ActorSpace.ADMIN: {"adm-1": ActorRecord(id="adm-1", name="Avery Admin")}}
        )
        record = make_service_record(
            verified_by_fleet=True,
            verified_at=days_after_creation(41),
            verified_by="adm-1",
            verified_by_name="Stale Name",
        )
        events = by_action(service_events([record], make_context(attribution=attribution)))

        verified = events["SERVICE_VERIFIED"]
        assert verified.timestamp == days_after_creation(41)
        assert verified.performed_by == "Avery Admin"
        assert verified.performed_by_type == ActorType.ADMIN

    def test_verification_without_resolved_admin(self):
        record = make_service_record(verified_at=days_after_creation(41))
        events = by_action(service_events([record], make_context()))

        assert events["SERVICE_VERIFIED"].performed_by == "Fleet Admin"

    def test_no_verification_event_without_timestamp(self):
        record = make_service_record(verified_by_fleet=True, verified_at=None)
        events = service_events([record], make_context())

        assert [e.action for e in events] == ["SERVICE_COMPLETED"]


class TestBookingEvents:
    """Tests for booking and trip events."""

    def test_confirmed_only_booking(self):
        events = booking_events([make_booking()], make_context())

        assert [e.action for e in events] == ["BOOKING_CONFIRMED"]
        assert events[0].performed_by == "Morgan Lee"
        assert events[0].performed_by_type == ActorType.GUEST
        assert events[0].description == "Booking confirmed: RENT-BK-1"

    def test_completed_trip_reports_mileage(self):
        booking = make_booking(
            status="COMPLETED",
            trip_status="COMPLETED",
            check_in_time=days_after_creation(20, 2),
            check_out_time=days_after_creation(23, 1),
            check_in_odometer=1000,
            check_out_odometer=1250,
            check_in_fuel_level="FULL",
        )
        events = by_action(booking_events([booking], make_context()))

        started = events["TRIP_STARTED"]
        completed = events["TRIP_COMPLETED"]
        assert started.timestamp == days_after_creation(20, 2)
        assert started.description == "Trip started: RENT-BK-1 - Odometer: 1,000 mi - Fuel: FULL"
        assert completed.timestamp == days_after_creation(23, 1)
        assert "+250 miles" in completed.description
        assert completed.metadata["mileage_driven"] == 250
        assert completed.performed_by == "System"

    def test_non_positive_mileage_is_not_described(self):
        booking = make_booking(
            status="COMPLETED",
            check_in_odometer=1250,
            check_out_odometer=1250,
        )
        completed = by_action(booking_events([booking], make_context()))["TRIP_COMPLETED"]

        assert completed.description == "Trip completed: RENT-BK-1"

    def test_active_trip_falls_back_to_scheduled_start(self):
        booking = make_booking(status="ACTIVE", trip_status="ACTIVE")
        events = by_action(booking_events([booking], make_context()))

        assert events["TRIP_STARTED"].timestamp == days_after_creation(20)
        assert "TRIP_COMPLETED" not in events

    def test_scheduled_fallback_never_lies_in_the_future(self):
        booking = make_booking(
            status="COMPLETED",
            start_date=NOW - timedelta(days=1),
            end_date=NOW + timedelta(days=2),
        )
        events = by_action(booking_events([booking], make_context()))

        assert events["TRIP_STARTED"].timestamp == NOW - timedelta(days=1)
        assert events["TRIP_COMPLETED"].timestamp == NOW

    def test_review_uses_last_update_and_reviewer(self):
        booking = make_booking(
            guest_name=None,
            updated_at=days_after_creation(24),
            reviewer=ReviewerRecord(id="rev-1", name="Pat Q.", city="Phoenix", state="AZ"),
        )
        events = by_action(booking_events([booking], make_context()))

        review = events["REVIEW_RECEIVED"]
        assert review.category == EventCategory.REVIEW
        assert review.timestamp == days_after_creation(24)
        assert review.description == "Review received from Pat Q."
        assert events["BOOKING_CONFIRMED"].performed_by == "Pat Q."

    def test_anonymous_guest(self):
        booking = make_booking(guest_name=None)
        event = booking_events([booking], make_context())[0]

        assert event.performed_by == "Guest"


class TestPayoutEvents:
    """Tests for payouts."""

    def test_processed_payout(self):
        event = payout_events([make_payout()], make_context())[0]

        assert event.action == "PAYOUT_PROCESSED"
        assert event.description == "Payout processed: $1,234.50 (RENT-BK-1)"
        assert event.timestamp == days_after_creation(26)

    def test_unprocessed_payout_uses_creation_time(self):
        payout = make_payout(processed_at=None, booking_code=None)
        event = payout_events([payout], make_context())[0]

        assert event.timestamp == days_after_creation(25)
        assert event.description == "Payout processed: $1,234.50"


class TestClaimEvents:
    """Tests for the claim lifecycle."""

    def test_filed_claim_is_a_warning(self):
        event = claim_events([make_claim()], [], make_context())[0]

        assert event.action == "CLAIM_FILED"
        assert event.severity == EventSeverity.WARNING
        assert event.description == "Claim filed: ACCIDENT - $1,200.00 estimated"
        assert event.performed_by == "Jamie Rivera"

    def test_damage_photos_use_first_upload(self):
        photos = [
            make_claim_photo("cp2", uploaded_at=days_after_creation(31), uploaded_by="GUEST"),
            make_claim_photo("cp1", uploaded_at=days_after_creation(30, 5), uploaded_by="GUEST"),
            make_claim_photo("other", claim_id="clm-2"),
        ]
        events = by_action(claim_events([make_claim()], photos, make_context()))

        uploaded = events["CLAIM_PHOTOS_UPLOADED"]
        assert uploaded.timestamp == days_after_creation(30, 5)
        assert uploaded.description == "2 damage photos uploaded"
        assert uploaded.performed_by == "Guest"
        assert uploaded.performed_by_type == ActorType.GUEST
        assert events["CLAIM_FILED"].metadata["damage_photos"] == 2

    def test_no_photo_event_without_photos(self):
        events = by_action(claim_events([make_claim()], [], make_context()))

        assert "CLAIM_PHOTOS_UPLOADED" not in events

    def test_approved_and_paid_claim(self):
        claim = make_claim(
            status="PAID",
            reviewed_at=days_after_creation(33),
            reviewed_by="Claims Team",
            approved_amount=Decimal("1000.00"),
            deductible=Decimal("250.00"),
            paid_at=days_after_creation(35),
        )
        events = by_action(claim_events([claim], [], make_context()))

        reviewed = events["CLAIM_REVIEWED"]
        assert reviewed.severity == EventSeverity.WARNING
        assert reviewed.performed_by == "Claims Team"
        paid = events["CLAIM_PAID"]
        assert paid.timestamp == days_after_creation(35)
        assert paid.description == "Claim payout processed: $750.00"
        assert paid.metadata["net_payout"] == 750.0

    def test_approval_is_informational(self):
        claim = make_claim(
            status="APPROVED",
            reviewed_at=days_after_creation(33),
            approved_amount=Decimal("900.00"),
        )
        approved = by_action(claim_events([claim], [], make_context()))["CLAIM_APPROVED"]

        assert approved.severity == EventSeverity.INFO
        assert approved.description == "Claim approved: $900.00"
        assert approved.performed_by == "Fleet Admin"

    def test_denied_claim(self):
        claim = make_claim(status="DENIED", reviewed_at=days_after_creation(33))
        denied = by_action(claim_events([claim], [], make_context()))["CLAIM_DENIED"]

        assert denied.severity == EventSeverity.WARNING
        assert denied.description == "Claim denied"

    def test_net_payout_never_negative(self):
        claim = make_claim(
            approved_amount=Decimal("100.00"),
            deductible=Decimal("500.00"),
            paid_at=days_after_creation(35),
        )
        paid = by_action(claim_events([claim], [], make_context()))["CLAIM_PAID"]

        assert paid.metadata["net_payout"] == 0.0
        assert paid.description == "Claim payout processed: $0.00"
