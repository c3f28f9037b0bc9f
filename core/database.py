"""Async engine and sessions for the PawMatch store.

Production runs on PostgreSQL through ``asyncpg``; the test suite points
``DATABASE_URL`` at a SQLite file through ``aiosqlite``. Swipes and matches
are serialized only by their unique constraints, so nothing here relies on
dialect-specific locking.
"""
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import settings


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        # Foreign keys are off by default in SQLite
        engine = create_async_engine(url, echo=echo)

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine
    return create_async_engine(url, echo=echo, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# Loaded rows stay readable after commit, the swipe flow returns them to routers
AsyncSessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session, used as ``Depends(get_db)`` in routers."""
    async with AsyncSessionLocal() as session:
        yield session
