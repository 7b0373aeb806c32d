import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import UTCDateTime, ensure_utc
from pydantic import BaseModel, ConfigDict, Field, model_validator

from services.identity_service.schemas import UserSummary
from services.rounds_service.models import AttendanceType


def _check_window(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is not None and end is not None and ensure_utc(start) > ensure_utc(end):
        raise ValueError("start_time must not be after end_time")


# ===== ROUND SCHEMAS =====
class RoundSummary(BaseModel):
    id: uuid.UUID
    round_number: int
    start_time: Optional[UTCDateTime] = None
    end_time: Optional[UTCDateTime] = None
    location: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RoundCreate(BaseModel):
    community_id: uuid.UUID
    round_number: Optional[int] = Field(None, ge=1)
    start_time: Optional[UTCDateTime] = None
    end_time: Optional[UTCDateTime] = None
    location: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def _window(self):
        _check_window(self.start_time, self.end_time)
        return self


class RoundUpdate(BaseModel):
    round_number: Optional[int] = Field(None, ge=1)
    start_time: Optional[UTCDateTime] = None
    end_time: Optional[UTCDateTime] = None
    location: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def _window(self):
        _check_window(self.start_time, self.end_time)
        return self


class RoundResponse(RoundSummary):
    community_id: uuid.UUID
    created_at: UTCDateTime
    updated_at: UTCDateTime


# ===== ATTENDANCE SCHEMAS =====
class AttendanceCreate(BaseModel):
    round_id: uuid.UUID
    # Defaults to the caller; marking someone else requires admin
    user_id: Optional[uuid.UUID] = None
    attendance_type: AttendanceType = AttendanceType.PRESENT


class AttendanceMark(BaseModel):
    attendance_type: AttendanceType = AttendanceType.PRESENT


class AttendanceUpdate(BaseModel):
    attendance_type: AttendanceType


class AttendanceResponse(BaseModel):
    id: uuid.UUID
    round_id: uuid.UUID
    user_id: uuid.UUID
    attendance_type: AttendanceType
    attended_at: UTCDateTime
    created_at: UTCDateTime
    user: Optional[UserSummary] = None

    model_config = ConfigDict(from_attributes=True)
