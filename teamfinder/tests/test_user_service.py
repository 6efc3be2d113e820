"""
Unit tests for user service: provisioning and identity sync.
"""

import pytest
from sqlalchemy import func, select
from teamfinder.database.models import User
from teamfinder.services import identity_service, user_service


def _identity(external_id="user_123", **overrides):
    identity = {
        "external_id": external_id,
        "email": "Bowler@Example.com",
        "name": "Pat Bowler",
        "first_name": "Pat",
        "last_name": "Bowler",
        "avatar_url": None,
    }
    identity.update(overrides)
    return identity


@pytest.mark.asyncio
async def test_create_user_normalizes_email(db_session):
    user = await user_service.create_user_from_identity(db_session, _identity())

    assert user["external_id"] == "user_123"
    assert user["email"] == "bowler@example.com"
    assert user["first_name"] == "Pat"

    found = await user_service.get_user_by_external_id(db_session, "user_123")
    assert found["id"] == user["id"]
    assert (await user_service.get_user_by_id(db_session, user["id"]))["email"] == user["email"]


@pytest.mark.asyncio
async def test_create_user_requires_email(db_session):
    with pytest.raises(ValueError, match="no email"):
        await user_service.create_user_from_identity(db_session, _identity(email=None))


@pytest.mark.asyncio
async def test_upsert_updates_existing_user(db_session):
    """A user.updated sync refreshes the existing row instead of duplicating it."""
    created = await user_service.upsert_user_from_identity(db_session, _identity())
    updated = await user_service.upsert_user_from_identity(
        db_session, _identity(email="new@example.com", first_name="Patricia")
    )

    assert updated["id"] == created["id"]
    assert updated["email"] == "new@example.com"
    assert updated["first_name"] == "Patricia"


@pytest.mark.asyncio
async def test_ensure_user_returns_existing(db_session, monkeypatch):
    existing = await user_service.create_user_from_identity(db_session, _identity())

    async def fail_fetch(external_id):
        raise AssertionError("provider should not be called")

    monkeypatch.setattr(identity_service, "fetch_provider_user", fail_fetch, raising=True)

    user = await user_service.ensure_user(db_session, _identity())
    assert user["id"] == existing["id"]


@pytest.mark.asyncio
async def test_ensure_user_provisions_from_provider(db_session, monkeypatch):
    """A missing user row is created from the provider's record."""
    async def fake_fetch(external_id):
        return _identity(external_id, email="from-provider@example.com")

    monkeypatch.setattr(identity_service, "fetch_provider_user", fake_fetch, raising=True)

    user = await user_service.ensure_user(db_session, _identity(email=None))

    assert user["external_id"] == "user_123"
    assert user["email"] == "from-provider@example.com"


@pytest.mark.asyncio
async def test_ensure_user_gives_up_without_email(db_session, monkeypatch):
    """No provider record and no email claim means the user cannot be provisioned."""
    async def fake_fetch(external_id):
        return None

    monkeypatch.setattr(identity_service, "fetch_provider_user", fake_fetch, raising=True)

    assert await user_service.ensure_user(db_session, _identity(email=None)) is None
    assert await user_service.get_user_by_external_id(db_session, "user_123") is None


@pytest.mark.asyncio
async def test_ensure_user_relinks_row_with_same_email(db_session, monkeypatch):
    """An account re-created at the provider takes over the local row holding its email."""
    old = User(external_id="user_old", email="bowler@example.com", first_name="Old")
    db_session.add(old)
    await db_session.commit()
    old_id = old.id

    async def fake_fetch(external_id):
        return _identity(external_id, email="Bowler@example.com", first_name="New")

    monkeypatch.setattr(identity_service, "fetch_provider_user", fake_fetch, raising=True)

    user = await user_service.ensure_user(db_session, {"external_id": "user_new"})

    assert user["id"] == old_id
    assert user["external_id"] == "user_new"
    assert user["first_name"] == "New"
    assert await user_service.get_user_by_external_id(db_session, "user_old") is None
    count = await db_session.scalar(select(func.count()).select_from(User))
    assert count == 1


@pytest.mark.asyncio
async def test_create_user_returns_row_from_concurrent_insert(db_session):
    """Losing a provisioning race returns the row the other request created."""
    first = await user_service.create_user_from_identity(db_session, _identity())

    second = await user_service.create_user_from_identity(db_session, _identity())

    assert second["id"] == first["id"]
    count = await db_session.scalar(select(func.count()).select_from(User))
    assert count == 1


@pytest.mark.asyncio
async def test_upsert_keeps_email_owned_by_another_user(db_session):
    """A sync that would steal another user's email keeps the current one."""
    await user_service.create_user_from_identity(
        db_session, _identity("user_other", email="taken@example.com")
    )
    mine = await user_service.create_user_from_identity(db_session, _identity())

    updated = await user_service.upsert_user_from_identity(
        db_session, _identity(email="taken@example.com", first_name="Patricia")
    )

    assert updated["id"] == mine["id"]
    assert updated["email"] == "bowler@example.com"
    assert updated["first_name"] == "Patricia"
