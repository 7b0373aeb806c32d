import uuid
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from libs.auth.models import AuthUser
from libs.auth.tokens import decode_session_token
from libs.common.errors import UnauthenticatedError
from libs.db.session import get_async_db
from services.identity_service.models import User

security = HTTPBearer(auto_error=False)


async def _is_active(db: AsyncSession, user_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(User.id).where(User.id == user_id, User.deleted_at.is_(None))
    )
    return result.scalar_one_or_none() is not None


async def get_current_user(
    request: Request,
    token: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: AsyncSession = Depends(get_async_db),
) -> AuthUser:
    """
    Validate the session token and return the authenticated user.

    Tokens issued to an account that has since been deleted are refused.
    """
    if token is None or not token.credentials:
        raise UnauthenticatedError()

    user = decode_session_token(token.credentials)
    if not await _is_active(db, user.user_id):
        raise UnauthenticatedError("Account no longer exists", code="ACCOUNT_DELETED")
    # Lets the rate limiter key on the user instead of the IP
    request.state.user = user
    return user


async def get_optional_user(
    request: Request,
    token: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: AsyncSession = Depends(get_async_db),
) -> Optional[AuthUser]:
    """Like get_current_user, but anonymous callers get None instead of 401."""
    if token is None or not token.credentials:
        return None
    try:
        user = decode_session_token(token.credentials)
    except UnauthenticatedError:
        return None
    if not await _is_active(db, user.user_id):
        return None
    request.state.user = user
    return user


CurrentUser = Annotated[AuthUser, Depends(get_current_user)]
OptionalUser = Annotated[Optional[AuthUser], Depends(get_optional_user)]
