"""Kakao OAuth client.

Two calls per login: exchange the authorization code for an access token,
then fetch the provider's user profile with it.
"""

from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from libs.common.config import get_settings
from libs.common.errors import UpstreamError
from libs.common.logging import get_logger

logger = get_logger(__name__)

PROVIDER = "kakao"


@dataclass
class KakaoProfile:
    provider_id: str
    email: Optional[str] = None
    nickname: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def suggested_username(self) -> str:
        return f"{PROVIDER}_{self.provider_id}"

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "KakaoProfile":
        if payload.get("id") is None:
            raise UpstreamError("Kakao user info response has no id", code="OAUTH_FAILED")
        account = payload.get("kakao_account") or {}
        profile = account.get("profile") or {}
        return cls(
            provider_id=str(payload["id"]),
            email=account.get("email"),
            nickname=profile.get("nickname"),
            image_url=profile.get("profile_image_url"),
        )


class KakaoOAuthClient:
    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = get_settings()
        self._http_client = http_client

    def authorize_url(self, state: Optional[str] = None) -> str:
        params = {
            "response_type": "code",
            "client_id": self.settings.KAKAO_CLIENT_ID,
            "redirect_uri": self.settings.KAKAO_REDIRECT_URI,
        }
        if state:
            params["state"] = state
        return f"{self.settings.KAKAO_AUTH_URL}/oauth/authorize?{urlencode(params)}"

    async def _request(self, method: str, url: str, **kwargs) -> dict[str, Any]:
        try:
            if self._http_client is not None:
                response = await self._http_client.request(method, url, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=10.0) as client:
                    response = await client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Kakao request rejected",
                extra={"extra_fields": {
                    "url": url,
                    "status_code": e.response.status_code,
                    "body": e.response.text[:500],
                }},
            )
            raise UpstreamError("Kakao authentication failed", code="OAUTH_FAILED") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                "Kakao request failed",
                extra={"extra_fields": {"url": url, "error": str(e)}},
            )
            raise UpstreamError("Kakao is unavailable", code="OAUTH_FAILED") from e

    async def exchange_code(self, code: str) -> str:
        """Trade an authorization code for an access token."""
        data = {
            "grant_type": "authorization_code",
            "client_id": self.settings.KAKAO_CLIENT_ID,
            "redirect_uri": self.settings.KAKAO_REDIRECT_URI,
            "code": code,
        }
        if self.settings.KAKAO_CLIENT_SECRET:
            data["client_secret"] = self.settings.KAKAO_CLIENT_SECRET

        payload = await self._request(
            "POST", f"{self.settings.KAKAO_AUTH_URL}/oauth/token", data=data
        )
        token = payload.get("access_token")
        if not token:
            raise UpstreamError("Kakao token response has no access token", code="OAUTH_FAILED")
        return token

    async def fetch_profile(self, access_token: str) -> KakaoProfile:
        payload = await self._request(
            "GET",
            f"{self.settings.KAKAO_API_URL}/v2/user/me",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        return KakaoProfile.from_payload(payload)


def get_kakao_client() -> KakaoOAuthClient:
    """FastAPI dependency; override in tests."""
    return KakaoOAuthClient()
