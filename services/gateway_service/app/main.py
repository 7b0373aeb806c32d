"""FastAPI application entrypoint for the study club gateway.

All service routers are mounted in-process under ``/api``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.error_handler import add_exception_handlers
from libs.common.logging import configure_logging, get_logger
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from libs.common.redis import close_redis
from libs.db.config import dispose_engine

# Every mapped class must be registered before relationships are resolved
from services.identity_service import models as _identity_models  # noqa: F401
from services.clubs_service import models as _clubs_models  # noqa: F401
from services.rounds_service import models as _rounds_models  # noqa: F401
from services.goals_service import models as _goals_models  # noqa: F401
from services.notifications_service import models as _notifications_models  # noqa: F401

from services.clubs_service.routers import (
    communities_router,
    members_router,
    reactions_router,
    regions_router,
    search_router,
    upload_router,
    user_communities_router,
)
from services.goals_service.router import router as goals_router
from services.identity_service.router import auth_router, user_router
from services.notifications_service.router import router as notifications_router
from services.rounds_service.routers import attendance_router, rounds_router

API_PREFIX = "/api"

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Gateway starting")
    yield
    await close_redis()
    await dispose_engine()
    logger.info("Gateway stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title="Study Club Gateway",
        version="0.1.0",
        description="API for study clubs, rounds, attendance and goals.",
        lifespan=lifespan,
    )

    # Add rate limiter state to app
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    # Add global exception handlers for consistent error responses
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    @app.get(f"{API_PREFIX}/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Simple readiness endpoint."""
        return {"status": "ok", "time": utc_now().isoformat()}

    @app.get(f"{API_PREFIX}/server-time", tags=["system"])
    async def server_time() -> dict:
        """Authoritative clock for clients checking attendance windows."""
        now = utc_now()
        return {"time": now.isoformat(), "timestamp": int(now.timestamp() * 1000)}

    for router in (
        auth_router,
        user_router,
        user_communities_router,
        communities_router,
        members_router,
        reactions_router,
        regions_router,
        search_router,
        upload_router,
        rounds_router,
        attendance_router,
        goals_router,
        notifications_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    return app


app = create_app()
