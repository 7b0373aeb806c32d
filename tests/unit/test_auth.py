"""Tests for session tokens, the Kakao client and the auth dependency."""

import uuid
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.security import HTTPAuthorizationCredentials
from starlette.requests import Request

from libs.auth.dependencies import get_current_user, get_optional_user
from libs.auth.oauth import KakaoOAuthClient, KakaoProfile
from libs.auth.tokens import create_session_token, decode_session_token
from libs.common.errors import UnauthenticatedError, UpstreamError
from tests.factories import UserFactory


def _request() -> Request:
    return Request({"type": "http", "method": "GET", "path": "/", "headers": []})


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestSessionTokens:
    def test_round_trip_claims(self):
        user_id = uuid.uuid4()
        token = create_session_token(user_id, username="kakao_1", nickname="Mina")

        user = decode_session_token(token)

        assert user.user_id == user_id
        assert user.username == "kakao_1"
        assert user.nickname == "Mina"

    def test_expired_token_is_rejected(self):
        token = create_session_token(uuid.uuid4(), expires_minutes=-1)
        with pytest.raises(UnauthenticatedError):
            decode_session_token(token)

    def test_tampered_token_is_rejected(self):
        token = create_session_token(uuid.uuid4())
        with pytest.raises(UnauthenticatedError):
            decode_session_token(token[:-2] + "xx")


@pytest.mark.asyncio
class TestAuthDependency:
    async def test_missing_token_is_401(self):
        with pytest.raises(UnauthenticatedError) as exc_info:
            await get_current_user(_request(), None, None)
        assert exc_info.value.status_code == 401

    async def test_valid_token_sets_request_user(self, db_session):
        user_row = UserFactory.create()
        db_session.add(user_row)
        await db_session.commit()
        request = _request()

        user = await get_current_user(
            request, _bearer(create_session_token(user_row.id)), db_session
        )

        assert user.user_id == user_row.id
        assert request.state.user.user_id == user_row.id

    async def test_deleted_account_is_401(self, db_session):
        user_row = UserFactory.create()
        db_session.add(user_row)
        await db_session.commit()
        token = create_session_token(user_row.id)
        await db_session.delete(user_row)
        await db_session.commit()

        with pytest.raises(UnauthenticatedError) as exc_info:
            await get_current_user(_request(), _bearer(token), db_session)
        assert exc_info.value.code == "ACCOUNT_DELETED"
        assert await get_optional_user(_request(), _bearer(token), db_session) is None

    async def test_unknown_account_is_401(self, db_session):
        with pytest.raises(UnauthenticatedError):
            await get_current_user(
                _request(), _bearer(create_session_token(uuid.uuid4())), db_session
            )

    async def test_optional_user_tolerates_bad_token(self):
        assert await get_optional_user(_request(), _bearer("garbage"), None) is None
        assert await get_optional_user(_request(), None, None) is None


def _kakao_transport(token_status: int = 200, profile: dict = None):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path == "/oauth/token":
            if token_status != 200:
                return httpx.Response(token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "kakao-access"})
        if request.url.path == "/v2/user/me":
            return httpx.Response(200, json=profile or {})
        return httpx.Response(404)

    return httpx.MockTransport(handler), calls


@pytest.mark.asyncio
class TestKakaoClient:
    async def test_exchange_then_profile(self):
        transport, calls = _kakao_transport(
            profile={
                "id": 12345,
                "kakao_account": {
                    "email": "mina@example.com",
                    "profile": {"nickname": "Mina", "profile_image_url": "https://img"},
                },
            }
        )
        async with httpx.AsyncClient(transport=transport) as http_client:
            client = KakaoOAuthClient(http_client=http_client)
            token = await client.exchange_code("auth-code")
            profile = await client.fetch_profile(token)

        assert token == "kakao-access"
        assert profile == KakaoProfile(
            provider_id="12345",
            email="mina@example.com",
            nickname="Mina",
            image_url="https://img",
        )
        assert profile.suggested_username == "kakao_12345"
        assert len(calls) == 2
        assert parse_qs(calls[0].content.decode())["code"] == ["auth-code"]
        assert calls[1].headers["Authorization"] == "Bearer kakao-access"

    async def test_rejected_code_maps_to_upstream_error(self):
        transport, _ = _kakao_transport(token_status=400)
        async with httpx.AsyncClient(transport=transport) as http_client:
            client = KakaoOAuthClient(http_client=http_client)
            with pytest.raises(UpstreamError) as exc_info:
                await client.exchange_code("bad-code")

        assert exc_info.value.status_code == 502
        assert exc_info.value.code == "OAUTH_FAILED"

    async def test_profile_without_id_is_upstream_error(self):
        transport, _ = _kakao_transport(profile={"kakao_account": {}})
        async with httpx.AsyncClient(transport=transport) as http_client:
            client = KakaoOAuthClient(http_client=http_client)
            with pytest.raises(UpstreamError):
                await client.fetch_profile("kakao-access")


def test_authorize_url_carries_client_and_redirect():
    url = urlparse(KakaoOAuthClient().authorize_url(state="xyz"))
    query = parse_qs(url.query)

    assert url.path == "/oauth/authorize"
    assert query["response_type"] == ["code"]
    assert query["state"] == ["xyz"]
    assert "redirect_uri" in query
