import uuid
from typing import Optional

from libs.common.datetime_utils import UTCDateTime
from pydantic import BaseModel, ConfigDict, Field

from services.identity_service.schemas import UserSummary


class NotificationCreate(BaseModel):
    community_id: uuid.UUID
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    is_pinned: bool = False


class NotificationUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1)
    is_pinned: Optional[bool] = None


class NotificationResponse(BaseModel):
    id: uuid.UUID
    community_id: uuid.UUID
    author_id: uuid.UUID
    title: str
    content: str
    is_pinned: bool
    created_at: UTCDateTime
    updated_at: UTCDateTime
    author: Optional[UserSummary] = None

    model_config = ConfigDict(from_attributes=True)
