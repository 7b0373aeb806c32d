"""Shared helpers for service tests.

Fixtures (engine, session, client) live in the root conftest; this module
holds the auth helpers tests import directly.
"""

import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from libs.auth.dependencies import get_current_user, get_optional_user
from libs.auth.models import AuthUser


def make_auth_user(user=None, user_id: Optional[uuid.UUID] = None, **overrides) -> AuthUser:
    """Build the AuthUser a session token for ``user`` would decode to."""
    if user is not None:
        data = {
            "user_id": user.id,
            "username": user.username,
            "nickname": user.nickname,
        }
    else:
        data = {"user_id": user_id or uuid.uuid4(), "username": "tester"}
    data.update(overrides)
    return AuthUser(**data)


@contextmanager
def override_auth(app, user):
    """
    Authenticate every request made inside the block as ``user``.

    Accepts a User model or an AuthUser.
    """
    auth_user = user if isinstance(user, AuthUser) else make_auth_user(user)
    app.dependency_overrides[get_current_user] = lambda: auth_user
    app.dependency_overrides[get_optional_user] = lambda: auth_user
    try:
        yield auth_user
    finally:
        app.dependency_overrides.pop(get_current_user, None)
        app.dependency_overrides.pop(get_optional_user, None)


@pytest.fixture
def now() -> datetime:
    return datetime.now(timezone.utc)


@pytest.fixture
def open_window(now) -> tuple[datetime, datetime]:
    """A round window that contains the current time."""
    return now - timedelta(hours=1), now + timedelta(hours=1)
