"""Database configuration and models."""

from vehicle_timeline.core.database.base import Base, JSONType, TimestampMixin, UUIDMixin
from vehicle_timeline.core.database.session import (
    engine,
    async_session_factory,
    get_db,
)

__all__ = [
    "Base",
    "JSONType",
    "TimestampMixin",
    "UUIDMixin",
    "engine",
    "async_session_factory",
    "get_db",
]
