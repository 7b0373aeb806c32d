import uuid
from typing import Optional

from libs.common.datetime_utils import UTCDateTime
from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserSummary(BaseModel):
    """Public projection of a user embedded in other resources."""

    id: uuid.UUID
    username: str
    nickname: Optional[str] = None
    image_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UserResponse(UserSummary):
    email: Optional[str] = None
    provider: str
    created_at: UTCDateTime
    updated_at: UTCDateTime


class UserUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=64)
    nickname: Optional[str] = Field(None, min_length=1, max_length=64)

    @field_validator("username", "nickname")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class AuthorizeUrlResponse(BaseModel):
    authorize_url: str


class SessionResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    is_new_user: bool = False
    user: UserResponse


class AvailabilityResponse(BaseModel):
    value: str
    available: bool


class ProfileUpdateResponse(BaseModel):
    user: UserResponse
    token: str
