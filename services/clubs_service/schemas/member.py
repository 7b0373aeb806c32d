import uuid
from typing import Optional

from libs.common.datetime_utils import UTCDateTime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from services.clubs_service.models import MemberRole
from services.identity_service.schemas import UserSummary


# ===== MEMBER SCHEMAS =====
class MemberCreate(BaseModel):
    community_id: uuid.UUID
    user_id: uuid.UUID
    role: MemberRole = MemberRole.MEMBER


class MemberUpdate(BaseModel):
    role: MemberRole


class MemberResponse(BaseModel):
    id: uuid.UUID
    community_id: uuid.UUID
    user_id: uuid.UUID
    role: MemberRole
    joined_at: UTCDateTime
    created_at: UTCDateTime
    user: Optional[UserSummary] = None

    model_config = ConfigDict(from_attributes=True)


# ===== REACTION SCHEMAS =====
class ReactionText(BaseModel):
    text: str = Field(..., max_length=500)

    @field_validator("text")
    @classmethod
    def _trim(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("text must not be empty")
        return v


class ReactionCreate(ReactionText):
    member_id: uuid.UUID


class ReactionUpdate(ReactionText):
    pass


class ReactionResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    member_id: uuid.UUID
    text: str
    created_at: UTCDateTime
    updated_at: UTCDateTime
    user: Optional[UserSummary] = None

    model_config = ConfigDict(from_attributes=True)
