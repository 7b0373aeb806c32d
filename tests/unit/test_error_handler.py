"""Tests for the error taxonomy and its HTTP mapping."""

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, NoResultFound

from libs.common.error_handler import add_exception_handlers
from libs.common.errors import (
    AlreadyMemberError,
    ConflictError,
    DuplicateAttendanceError,
    ForbiddenError,
    LastAdminError,
    NotFoundError,
    UnauthenticatedError,
    UpstreamError,
    ValidationError,
)


class _Payload(BaseModel):
    name: str


def _build_app() -> FastAPI:
    app = FastAPI()
    add_exception_handlers(app)

    @app.get("/app-error")
    async def app_error():
        raise LastAdminError()

    @app.get("/not-found")
    async def not_found():
        raise NotFoundError.for_resource("Community")

    @app.get("/integrity")
    async def integrity():
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    @app.get("/no-result")
    async def no_result():
        raise NoResultFound()

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret internals")

    @app.post("/validate")
    async def validate(payload: _Payload):
        return payload

    return app


@pytest_asyncio.fixture
async def error_client():
    transport = ASGITransport(app=_build_app(), raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestTaxonomy:
    @pytest.mark.parametrize(
        "error_cls, status, code",
        [
            (ValidationError, 400, "VALIDATION_ERROR"),
            (UnauthenticatedError, 401, "UNAUTHENTICATED"),
            (ForbiddenError, 403, "FORBIDDEN"),
            (NotFoundError, 404, "NOT_FOUND"),
            (ConflictError, 409, "CONFLICT"),
            (LastAdminError, 409, "LAST_ADMIN"),
            (AlreadyMemberError, 409, "ALREADY_MEMBER"),
            (DuplicateAttendanceError, 409, "DUPLICATE_ATTENDANCE"),
            (UpstreamError, 502, "UPSTREAM_ERROR"),
        ],
    )
    def test_status_and_code(self, error_cls, status, code):
        error = error_cls()
        assert error.status_code == status
        assert error.code == code
        assert error.message

    def test_overrides(self):
        error = ValidationError("Bad region", code="REGION_REQUIRED")
        assert error.message == "Bad region"
        assert error.code == "REGION_REQUIRED"
        assert str(error) == "Bad region"


@pytest.mark.asyncio
class TestHandlers:
    async def test_app_error_envelope(self, error_client):
        response = await error_client.get("/app-error")

        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "error": LastAdminError.message,
            "code": "LAST_ADMIN",
        }

    async def test_not_found_message_names_resource(self, error_client):
        response = await error_client.get("/not-found")

        assert response.status_code == 404
        assert response.json()["error"] == "Community not found"

    async def test_request_validation_maps_to_400(self, error_client):
        response = await error_client.post("/validate", json={})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"]

    async def test_integrity_error_maps_to_409(self, error_client):
        response = await error_client.get("/integrity")

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    async def test_no_result_maps_to_404(self, error_client):
        response = await error_client.get("/no-result")
        assert response.status_code == 404

    async def test_unhandled_error_is_opaque(self, error_client):
        response = await error_client.get("/boom")

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"
        assert "secret" not in response.text

    async def test_unknown_route_uses_envelope(self, error_client):
        response = await error_client.get("/missing")

        assert response.status_code == 404
        assert response.json()["success"] is False
