"""Database engine and session management."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from mindvault.core.config import Settings


def create_engine(app_settings: Settings) -> AsyncEngine:
    """Create the async engine for DATABASE_URL.

    In-memory SQLite databases live and die with a single connection, so they
    are pinned to one with StaticPool.
    """
    url = app_settings.DATABASE_URL
    if app_settings.is_sqlite:
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"):
            kwargs["poolclass"] = StaticPool
        return create_async_engine(url, echo=app_settings.DATABASE_ECHO, **kwargs)

    return create_async_engine(
        url,
        echo=app_settings.DATABASE_ECHO,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session maker bound to the engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
