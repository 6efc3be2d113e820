"""
Database engine, session factory and declarative base.

PostgreSQL (asyncpg) in every deployed environment. A ``sqlite+aiosqlite``
DATABASE_URL also works for local experiments; pool sizing is skipped there.
"""

import os
from typing import AsyncGenerator
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine
)
from sqlalchemy.orm import DeclarativeBase
from dotenv import load_dotenv

load_dotenv()


def _database_url() -> str:
    """DATABASE_URL if set, otherwise assembled from the POSTGRES_* variables."""
    url = os.getenv("DATABASE_URL")
    if not url:
        user = os.getenv("POSTGRES_USER", "teamfinder")
        password = os.getenv("POSTGRES_PASSWORD", "teamfinder")
        host = os.getenv("POSTGRES_HOST", "localhost")
        port = os.getenv("POSTGRES_PORT", "5432")
        name = os.getenv("POSTGRES_DB", "teamfinder")
        url = f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{name}"

    # Hosted Postgres providers hand out plain postgresql:// URLs
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


DATABASE_URL = _database_url()

_engine_options = {
    "echo": os.getenv("SQL_ECHO", "false").lower() == "true",
    "pool_pre_ping": True,
}
if not DATABASE_URL.startswith("sqlite"):
    _engine_options["pool_size"] = int(os.getenv("DATABASE_POOL_SIZE", "10"))
    _engine_options["max_overflow"] = int(os.getenv("DATABASE_MAX_OVERFLOW", "20"))

# Process-wide pool; disposed in the app lifespan on shutdown
engine: AsyncEngine = create_async_engine(DATABASE_URL, **_engine_options)

# Objects stay readable after commit: services build response dicts post-commit
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# Models register on Base.metadata; import after Base to avoid a cycle
from teamfinder.database import models  # noqa: F401, E402


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.

    Commits when the handler returns, rolls back if it raises.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping_database(session: AsyncSession) -> bool:
    """Round-trip a trivial query; False if the database is unreachable."""
    try:
        await session.execute(text("SELECT 1"))
    except Exception:
        return False
    return True


async def init_database():
    """Create any missing tables. Alembic owns the schema; this is the dev fallback."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)


async def close_database():
    """Dispose of the connection pool. Called once on application shutdown."""
    await engine.dispose()
