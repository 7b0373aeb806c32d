"""Identity routes: Kakao login, availability checks and the caller's profile."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.auth.oauth import PROVIDER, KakaoOAuthClient, get_kakao_client
from libs.auth.tokens import create_session_token
from libs.common.errors import ConflictError, ValidationError
from libs.common.logging import get_logger
from libs.common.rate_limit import AUTH_RATE, limiter
from libs.common.responses import ApiResponse
from libs.db.repository import SoftDeleteRepository
from libs.db.session import get_async_db
from services.identity_service.models import User
from services.identity_service.schemas import (
    AuthorizeUrlResponse,
    AvailabilityResponse,
    ProfileUpdateResponse,
    SessionResponse,
    UserResponse,
    UserUpdate,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["auth"])
user_router = APIRouter(prefix="/user", tags=["user"])


async def _is_taken(db: AsyncSession, column, value: str, exclude_id=None) -> bool:
    query = select(func.count()).select_from(User).where(column == value)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    result = await db.execute(query)
    return result.scalar_one() > 0


def _issue_token(user: User) -> str:
    return create_session_token(user.id, user.username, user.nickname)


# ============================================================================
# KAKAO LOGIN
# ============================================================================


@auth_router.get("/kakao/start", response_model=ApiResponse[AuthorizeUrlResponse])
async def kakao_start(
    state: Optional[str] = Query(None, max_length=200),
    kakao: KakaoOAuthClient = Depends(get_kakao_client),
):
    """Return the Kakao authorize URL the client should redirect to."""
    return ApiResponse(data=AuthorizeUrlResponse(authorize_url=kakao.authorize_url(state)))


@auth_router.get("/kakao/callback", response_model=ApiResponse[SessionResponse])
@limiter.limit(AUTH_RATE)
async def kakao_callback(
    request: Request,
    code: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    kakao: KakaoOAuthClient = Depends(get_kakao_client),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Complete the Kakao login: exchange the code, load the profile, then find
    or create the local user and issue a session token.
    """
    if error:
        raise ValidationError(f"Authorization failed: {error}", code="OAUTH_DENIED")
    if not code:
        raise ValidationError("Missing authorization code", code="MISSING_CODE")

    access_token = await kakao.exchange_code(code)
    profile = await kakao.fetch_profile(access_token)

    result = await db.execute(
        select(User).where(
            User.provider == PROVIDER, User.provider_id == profile.provider_id
        )
    )
    user = result.scalar_one_or_none()
    is_new_user = user is None

    if user is None:
        nickname = profile.nickname
        if nickname and await _is_taken(db, User.nickname, nickname):
            nickname = None
        user = User(
            provider=PROVIDER,
            provider_id=profile.provider_id,
            username=profile.suggested_username,
            nickname=nickname,
            email=profile.email,
            image_url=profile.image_url,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        logger.info(
            "Registered user from Kakao login",
            extra={"extra_fields": {"user_id": str(user.id)}},
        )

    return ApiResponse(
        data=SessionResponse(
            token=_issue_token(user),
            is_new_user=is_new_user,
            user=UserResponse.model_validate(user),
        )
    )


# ============================================================================
# AVAILABILITY CHECKS
# ============================================================================


@auth_router.get("/check-username", response_model=ApiResponse[AvailabilityResponse])
async def check_username(
    value: str = Query(..., min_length=1, max_length=64),
    db: AsyncSession = Depends(get_async_db),
):
    taken = await _is_taken(db, User.username, value.strip())
    return ApiResponse(data=AvailabilityResponse(value=value, available=not taken))


@auth_router.get("/check-nickname", response_model=ApiResponse[AvailabilityResponse])
async def check_nickname(
    value: str = Query(..., min_length=1, max_length=64),
    db: AsyncSession = Depends(get_async_db),
):
    taken = await _is_taken(db, User.nickname, value.strip())
    return ApiResponse(data=AvailabilityResponse(value=value, available=not taken))


@auth_router.get("/check-email", response_model=ApiResponse[AvailabilityResponse])
async def check_email(
    value: str = Query(..., min_length=3, max_length=255),
    db: AsyncSession = Depends(get_async_db),
):
    email = value.strip().lower()
    query = select(func.count()).select_from(User).where(func.lower(User.email) == email)
    taken = (await db.execute(query)).scalar_one() > 0
    return ApiResponse(data=AvailabilityResponse(value=value, available=not taken))


# ============================================================================
# CURRENT USER
# ============================================================================


@user_router.get("/me", response_model=ApiResponse[UserResponse])
async def get_me(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    user = await SoftDeleteRepository(db, User, "User").get_active_or_404(
        current_user.user_id
    )
    return ApiResponse(data=UserResponse.model_validate(user))


@user_router.put("/me", response_model=ApiResponse[ProfileUpdateResponse])
async def update_me(
    payload: UserUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Update username/nickname. The returned token carries the new claims."""
    user = await SoftDeleteRepository(db, User, "User").get_active_or_404(
        current_user.user_id
    )
    if payload.username is None and payload.nickname is None:
        raise ValidationError("Nothing to update")

    if payload.nickname is not None and payload.nickname != user.nickname:
        if await _is_taken(db, User.nickname, payload.nickname, exclude_id=user.id):
            raise ConflictError("Nickname is already taken", code="NICKNAME_TAKEN")
        user.nickname = payload.nickname
    if payload.username is not None:
        user.username = payload.username

    await db.commit()
    await db.refresh(user)
    return ApiResponse(
        data=ProfileUpdateResponse(
            user=UserResponse.model_validate(user), token=_issue_token(user)
        )
    )


@user_router.delete("/me", response_model=ApiResponse[dict])
async def delete_me(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Soft-delete the caller's account."""
    user = await SoftDeleteRepository(db, User, "User").get_active_or_404(
        current_user.user_id
    )
    await db.delete(user)
    await db.commit()
    logger.info(
        "User account deleted", extra={"extra_fields": {"user_id": str(user.id)}}
    )
    return ApiResponse(data={"id": str(user.id)}, message="Account deleted")
