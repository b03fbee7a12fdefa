"""Declarative base and the process-wide async engine behind SqlDecisionStore.

Tables are created at startup with ``create_all``; there are no migrations.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from whereto.core.config import get_settings


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_db() -> None:
    """Connect to DATABASE_URL and create the decision tables if missing."""
    global _engine, _session_factory

    if _engine is not None:
        return

    # Registers restaurants, collections, groups, decisions and ballots on Base.metadata
    import whereto.db.models  # noqa: F401

    settings = get_settings()
    _engine = create_async_engine(settings.database_url, echo=settings.debug, pool_pre_ping=True)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    global _engine, _session_factory

    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory handed to SqlDecisionStore by the API dependencies."""
    if _session_factory is None:
        raise RuntimeError("Database not initialized; init_db() runs in the app lifespan")
    return _session_factory
