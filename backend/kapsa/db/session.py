"""Async engine and per-request sessions."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from kapsa.config import get_settings

settings = get_settings()


def _connect_args() -> dict:
    """asyncpg options for hosted Postgres: TLS, and no prepared-statement cache behind a pooler."""
    if not settings.database_requires_ssl:
        return {}
    return {"ssl": "require", "statement_cache_size": 0}


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
    connect_args=_connect_args(),
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request.

    Handlers commit their own writes; whatever is still pending when the
    handler returns is committed here, and any exception rolls it all back.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
