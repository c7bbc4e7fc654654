"""ORM models."""

from deskguard.models.user import User

__all__ = ["User"]
