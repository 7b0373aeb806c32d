import uuid
from typing import Optional

from libs.common.datetime_utils import UTCDateTime, ensure_utc
from pydantic import BaseModel, ConfigDict, Field, model_validator

from services.identity_service.schemas import UserSummary


class GoalBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    is_team: bool = False
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None


class GoalCreate(GoalBase):
    community_id: Optional[uuid.UUID] = None
    round_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def _dates(self):
        if (
            self.start_date
            and self.end_date
            and ensure_utc(self.start_date) > ensure_utc(self.end_date)
        ):
            raise ValueError("start_date must not be after end_date")
        return self


class GoalUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_team: Optional[bool] = None
    is_complete: Optional[bool] = None
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None


class GoalResponse(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    community_id: Optional[uuid.UUID] = None
    round_id: Optional[uuid.UUID] = None
    title: str
    description: Optional[str] = None
    is_team: bool
    is_complete: bool
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime
    owner: Optional[UserSummary] = None

    model_config = ConfigDict(from_attributes=True)
