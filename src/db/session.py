"""Database engine and request-scoped sessions for the scenario store.

The engine URL comes from ``DATABASE_URL``: aiosqlite for local use and
tests, asyncpg in deployment. ``get_async_session`` is the only place that
commits; ScenarioRepository stops at flush().
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from src.config.settings import get_settings


class Base(DeclarativeBase):
    """Declarative base for ScenarioRow."""


_settings = get_settings()

engine = create_async_engine(
    _settings.DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
)

# Rows stay readable after commit; the controller reloads via list_all().
async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request.

    Commits once the endpoint returns; any exception raised by the endpoint
    (including the HTTPException mapped from a failed controller result)
    rolls back every flushed scenario write.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
