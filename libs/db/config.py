from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.db.soft_delete import SoftDeleteSession

logger = get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory whose sessions carry the soft-delete interceptor."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        sync_session_class=SoftDeleteSession,
        expire_on_commit=False,
        autoflush=False,
    )


def init_engine(database_url: Optional[str] = None, **engine_kwargs) -> AsyncEngine:
    """
    Create the process-wide engine and session factory.

    Replaces any engine created earlier; callers are expected to have
    disposed it first.
    """
    global _engine, _session_factory

    settings = get_settings()
    url = database_url or settings.DATABASE_URL

    options = {
        # echo=True for local dev to see SQL queries
        "echo": settings.ENVIRONMENT == "local",
        "pool_pre_ping": True,  # Test connections before using
    }
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
        )
    options.update(engine_kwargs)

    _engine = create_async_engine(url, **options)
    _session_factory = build_session_factory(_engine)
    logger.info(
        "Database engine initialized",
        extra={"extra_fields": {"dialect": _engine.dialect.name}},
    )
    return _engine


def get_engine() -> AsyncEngine:
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        init_engine()
    return _session_factory


async def dispose_engine() -> None:
    """Close pooled connections. Safe to call when no engine exists."""
    global _engine, _session_factory

    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Database engine disposed")
