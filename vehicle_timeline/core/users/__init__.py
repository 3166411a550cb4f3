"""User management module."""

from vehicle_timeline.core.users.models import User, UserRole

__all__ = ["User", "UserRole"]
