import uuid
from typing import List, Optional

from libs.common.datetime_utils import UTCDateTime
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from services.clubs_service.models import MemberRole
from services.notifications_service.schemas import NotificationResponse
from services.rounds_service.schemas import RoundSummary

MAX_TAGS = 20


def _clean_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return None
    cleaned: List[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    if len(cleaned) > MAX_TAGS:
        raise ValueError(f"At most {MAX_TAGS} tags are allowed")
    return cleaned


class CommunityBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    is_public: bool = True
    region: Optional[str] = Field(None, max_length=50)
    sub_region: Optional[str] = Field(None, max_length=50)
    tags: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None


class CommunityCreate(CommunityBase):
    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("tags")
    @classmethod
    def _tags(cls, v: List[str]) -> List[str]:
        return _clean_tags(v)


class CommunityUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    is_public: Optional[bool] = None
    region: Optional[str] = Field(None, max_length=50)
    sub_region: Optional[str] = Field(None, max_length=50)
    tags: Optional[List[str]] = None
    image_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("tags")
    @classmethod
    def _tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_tags(v)


class CommunityResponse(CommunityBase):
    id: uuid.UUID
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)


class CommunityCardResponse(CommunityResponse):
    """Community plus the rounds that have not ended yet."""

    upcoming_rounds: List[RoundSummary] = Field(
        default_factory=list,
        validation_alias=AliasChoices("upcoming_rounds", "rounds"),
    )


class CommunityDetailResponse(CommunityCardResponse):
    member_count: int = 0
    pinned_notification: Optional[NotificationResponse] = None
    my_role: Optional[MemberRole] = None


class MyCommunityResponse(BaseModel):
    membership_id: uuid.UUID
    role: MemberRole
    joined_at: UTCDateTime
    community: CommunityCardResponse


class ImageUploadResponse(BaseModel):
    url: str
    path: str


class RegionResponse(BaseModel):
    region: str
    sub_regions: List[str]
