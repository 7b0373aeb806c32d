"""Clubs Service schemas package."""

from services.clubs_service.schemas.community import (  # noqa: F401
    CommunityCardResponse,
    CommunityCreate,
    CommunityDetailResponse,
    CommunityResponse,
    CommunityUpdate,
    ImageUploadResponse,
    MyCommunityResponse,
    RegionResponse,
)
from services.clubs_service.schemas.member import (  # noqa: F401
    MemberCreate,
    MemberResponse,
    MemberUpdate,
    ReactionCreate,
    ReactionResponse,
    ReactionUpdate,
)
