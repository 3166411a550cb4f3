"""
Shared pytest fixtures for the timeline service tests.

Test categories:
    - Unit tests: in-memory sources and directories, no database
    - Integration tests: throwaway SQLite database (aiosqlite) per test,
      schema created from the ORM metadata, app driven through httpx

Database:
    Integration tests never touch PostgreSQL; each test gets its own
    SQLite file under pytest's tmp_path.
"""

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# =============================================================================
# Environment Setup
# =============================================================================

# Override settings BEFORE importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("REQUIRE_MIGRATIONS_ON_STARTUP", "false")

# Now import app modules
from vehicle_timeline.config import Settings  # noqa: E402
from vehicle_timeline.core.database.base import Base  # noqa: E402
from vehicle_timeline.core.database.session import get_db  # noqa: E402
from vehicle_timeline.core.timeline.dependencies import get_timeline_aggregator  # noqa: E402
from vehicle_timeline.core.timeline.repository import (  # noqa: E402
    SQLAlchemyActorDirectory,
    SQLAlchemyTimelineSources,
)
from vehicle_timeline.core.timeline.service import TimelineAggregator  # noqa: E402

# Import all models to register them with Base.metadata
from vehicle_timeline.core.activity.models import ActivityLog  # noqa: E402, F401
from vehicle_timeline.core.bookings.models import Booking, HostPayout, Reviewer  # noqa: E402, F401
from vehicle_timeline.core.claims.models import Claim, ClaimDamagePhoto  # noqa: E402, F401
from vehicle_timeline.core.hosts.models import RentalHost  # noqa: E402, F401
from vehicle_timeline.core.users.models import User  # noqa: E402, F401
from vehicle_timeline.core.vehicles.models import (  # noqa: E402, F401
    Vehicle,
    VehiclePhoto,
    VehicleServiceRecord,
)

from tests.factories import VEHICLE_CREATED_AT, days_after_creation  # noqa: E402


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Get test settings instance."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        app_env="testing",
        debug=False,
        log_level="WARNING",
        require_migrations_on_startup=False,
        timeline_timeout_seconds=5.0,
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Create a SQLite engine backed by a file in tmp_path.

    A file (not :memory:) so every session opened by the concurrent
    fetches sees the same database; NullPool keeps connections per-use.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'timeline.db'}",
        echo=False,
        poolclass=NullPool,
    )
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def setup_database(test_engine):
    """Create all tables in the test database."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def test_session_factory(test_engine):
    """Create session factory for tests."""
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(
    test_session_factory,
    setup_database,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database session for each test.

    Seed data must be committed: the timeline sources read through their
    own sessions.
    """
    async with test_session_factory() as session:
        yield session
        if session.in_transaction():
            await session.rollback()


@pytest.fixture
def sql_aggregator(test_session_factory, test_settings) -> TimelineAggregator:
    """Aggregator over the SQL sources of the test database."""
    return TimelineAggregator.from_settings(
        SQLAlchemyTimelineSources(test_session_factory),
        SQLAlchemyActorDirectory(test_session_factory),
        test_settings,
    )


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def app(setup_database, sql_aggregator) -> FastAPI:
    """Create test application instance.

    The lifespan (logging setup, migration check) is not run by the ASGI
    transport; the aggregator dependency is pointed at the test database.
    """
    from vehicle_timeline.main import create_app

    app_instance = create_app()
    app_instance.dependency_overrides[get_timeline_aggregator] = lambda: sql_aggregator

    yield app_instance

    app_instance.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(
    app: FastAPI,
    db_session: AsyncSession,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# =============================================================================
# Data Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def seeded_fleet(db_session: AsyncSession) -> dict:
    """
    One vehicle with history in every source, plus a second vehicle whose
    records must never leak into the first one's timeline.

    Registration expires 10 days (and an hour) from now.
    """
    now = datetime.now(timezone.utc)

    db_session.add_all(
        [
            RentalHost(
                id="host-1",
                name="Jamie Rivera",
                email="jamie@example.com",
                insurance_type="p2p",
                revenue_split=75,
                earnings_tier="STANDARD",
            ),
            User(id="adm-1", email="avery@example.com", name="Avery Admin", role="ADMIN"),
            User(id="user-guest", email="morgan@example.com", name="Morgan Lee", role="GUEST"),
            Reviewer(id="rev-1", name="Morgan L.", city="Phoenix", state="AZ"),
        ]
    )
    await db_session.flush()

    db_session.add_all(
        [
            Vehicle(
                id="veh-1",
                host_id="host-1",
                make="Toyota",
                model="Camry",
                year=2022,
                vin="4T1BF1FK5CU123456",
                current_mileage=18250,
                registration_state="AZ",
                registration_expiry_date=now + timedelta(days=10, hours=1),
                title_status="Clean",
                created_at=VEHICLE_CREATED_AT,
            ),
            Vehicle(
                id="veh-2",
                host_id="host-1",
                make="Honda",
                model="Civic",
                year=2020,
                created_at=VEHICLE_CREATED_AT,
            ),
        ]
    )
    await db_session.flush()

    db_session.add_all(
        [
            Booking(
                id="bk-1",
                booking_code="RENT-BK-1",
                vehicle_id="veh-1",
                guest_id="user-guest",
                reviewer_id="rev-1",
                start_date=days_after_creation(20),
                end_date=days_after_creation(23),
                number_of_days=3,
                total_amount=Decimal("285.00"),
                status="COMPLETED",
                trip_status="COMPLETED",
                check_in_time=days_after_creation(20, 2),
                check_out_time=days_after_creation(23, 1),
                check_in_odometer=1000,
                check_out_odometer=1250,
                check_in_fuel_level="FULL",
                check_out_fuel_level="3/4",
                created_at=days_after_creation(15),
                updated_at=days_after_creation(24),
            ),
            Booking(
                id="bk-2",
                booking_code="RENT-BK-2",
                vehicle_id="veh-2",
                guest_name="Other Guest",
                start_date=days_after_creation(5),
                end_date=days_after_creation(6),
                status="CONFIRMED",
                created_at=days_after_creation(4),
                updated_at=days_after_creation(4),
            ),
            VehicleServiceRecord(
                id="svc-1",
                vehicle_id="veh-1",
                service_type="OIL_CHANGE",
                service_date=days_after_creation(40),
                cost_total=Decimal("89.99"),
                mileage_at_service=19000,
                items_serviced=["oil", "filter"],
                added_by="host-1",
                verified_by_fleet=True,
                verified_at=days_after_creation(41),
                verified_by="adm-1",
            ),
            VehiclePhoto(
                id="ph-1",
                vehicle_id="veh-1",
                url="https://cdn.example.com/ph-1.jpg",
                uploaded_by="host-1",
                created_at=days_after_creation(1),
            ),
            VehiclePhoto(
                id="ph-2",
                vehicle_id="veh-1",
                url="https://cdn.example.com/ph-2.jpg",
                is_hero=True,
                gps_latitude=33.45,
                gps_longitude=-112.07,
                uploaded_by="host-1",
                created_at=days_after_creation(1, 2),
            ),
            ActivityLog(
                id="log-1",
                entity_type="CAR",
                entity_id="veh-1",
                action="VERIFY_VIN",
                category="DOCUMENT",
                severity="INFO",
                admin_id="adm-1",
                details={"vin": "4T1BF1FK5CU123456"},
                created_at=days_after_creation(2),
            ),
            ActivityLog(
                id="log-2",
                entity_type="CAR",
                entity_id="veh-1",
                action="UPDATE_PRICING",
                user_id="user-guest",
                old_value={"daily_rate": 80},
                new_value={"daily_rate": 95},
                created_at=days_after_creation(10),
            ),
            ActivityLog(
                id="log-3",
                entity_type="BOOKING",
                entity_id="veh-1",
                action="UPDATE_BOOKING",
                created_at=days_after_creation(11),
            ),
        ]
    )
    await db_session.flush()

    db_session.add_all(
        [
            HostPayout(
                id="pay-1",
                booking_id="bk-1",
                amount=Decimal("213.75"),
                status="PAID",
                processed_at=days_after_creation(26),
                created_at=days_after_creation(25),
            ),
            Claim(
                id="clm-1",
                booking_id="bk-1",
                type="DAMAGE",
                status="APPROVED",
                estimated_cost=Decimal("1200.00"),
                approved_amount=Decimal("900.00"),
                deductible=Decimal("250.00"),
                reviewed_at=days_after_creation(33),
                reviewed_by="Claims Team",
                created_at=days_after_creation(30),
            ),
            Claim(
                id="clm-2",
                booking_id="bk-2",
                type="THEFT",
                status="PENDING",
                created_at=days_after_creation(7),
            ),
        ]
    )
    await db_session.flush()

    db_session.add(
        ClaimDamagePhoto(
            id="cp-1",
            claim_id="clm-1",
            url="https://cdn.example.com/cp-1.jpg",
            uploaded_by="HOST",
            uploaded_at=days_after_creation(30, 1),
        )
    )
    await db_session.commit()

    return {"vehicle_id": "veh-1", "other_vehicle_id": "veh-2", "now": now}
