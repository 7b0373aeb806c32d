"""Session token issuing and verification (HS256 JWT via python-jose)."""

from datetime import timedelta
from typing import Any, Optional

from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.errors import UnauthenticatedError


def create_session_token(
    user_id: Any,
    username: Optional[str] = None,
    nickname: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    settings = get_settings()
    now = utc_now()
    ttl = expires_minutes or settings.SESSION_TOKEN_TTL_MINUTES
    claims = {
        "sub": str(user_id),
        "username": username,
        "nickname": nickname,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    return jwt.encode(
        claims, settings.SESSION_JWT_SECRET, algorithm=settings.SESSION_JWT_ALGORITHM
    )


def decode_session_token(token: str) -> AuthUser:
    """Verify signature and expiry; raises UnauthenticatedError otherwise."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.SESSION_JWT_SECRET,
            algorithms=[settings.SESSION_JWT_ALGORITHM],
        )
        return AuthUser(**payload)
    except (JWTError, PydanticValidationError) as e:
        raise UnauthenticatedError("Could not validate credentials") from e
