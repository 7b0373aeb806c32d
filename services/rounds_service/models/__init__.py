"""Rounds Service models package."""

from services.rounds_service.models.core import Attendance, Round  # noqa: F401
from services.rounds_service.models.enums import AttendanceType  # noqa: F401
