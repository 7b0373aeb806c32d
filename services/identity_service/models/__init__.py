"""Identity Service models package."""

from services.identity_service.models.core import User  # noqa: F401

__all__ = ["User"]
