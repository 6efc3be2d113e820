"""
Shared pytest configuration for backend tests.

Service tests run against an in-memory SQLite database through aiosqlite.
Route tests use a file-backed SQLite database shared by a synchronous engine
(for seeding and assertions) and the async session injected into the app.
"""

import os

# Must be set before the app is imported: disables rate limiting
os.environ.setdefault("ENV", "test")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from teamfinder.database.db import Base, get_db_session  # noqa: E402
from teamfinder.database.models import User  # noqa: E402
from teamfinder.services import identity_service  # noqa: E402


@pytest_asyncio.fixture
async def db_session():
    """Create a test database session on a fresh in-memory database."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


class ApiHarness:
    """TestClient plus direct database access for route tests."""

    def __init__(self, client: TestClient, sync_engine):
        self.client = client
        self.engine = sync_engine

    def headers(self, external_id: str) -> dict:
        # Tokens are the caller's external id; see fake_verify_token
        return {"Authorization": f"Bearer {external_id}"}

    def add_user(self, external_id: str, email: str = None):
        with Session(self.engine, expire_on_commit=False) as session:
            user = User(
                external_id=external_id,
                email=email or f"{external_id}@example.com",
                first_name="Test",
                last_name="Bowler",
            )
            session.add(user)
            session.commit()
            return user.id

    def add(self, *rows):
        with Session(self.engine, expire_on_commit=False) as session:
            session.add_all(rows)
            session.commit()

    def query(self, model, **filters):
        with Session(self.engine, expire_on_commit=False) as session:
            rows = session.query(model).filter_by(**filters).all()
            session.expunge_all()
            return rows


def fake_verify_token(token):
    """Accept tokens shaped like provider user ids; everything else is invalid."""
    if token.startswith("user_"):
        return {"sub": token, "email": f"{token}@example.com"}
    return None


@pytest.fixture
def api(tmp_path, monkeypatch):
    """App client wired to a throwaway SQLite database with fake auth."""
    db_file = tmp_path / "api.db"
    sync_engine = create_engine(f"sqlite:///{db_file}")
    Base.metadata.create_all(sync_engine)

    async_engine = create_async_engine(f"sqlite+aiosqlite:///{db_file}", poolclass=NullPool)
    session_maker = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def fake_fetch_provider_user(external_id):
        return None

    monkeypatch.setattr(identity_service, "verify_token", fake_verify_token, raising=True)
    monkeypatch.setattr(
        identity_service, "fetch_provider_user", fake_fetch_provider_user, raising=True
    )

    from teamfinder.api.main import app

    app.dependency_overrides[get_db_session] = override_get_db_session
    try:
        yield ApiHarness(TestClient(app), sync_engine)
    finally:
        app.dependency_overrides.clear()
        sync_engine.dispose()
