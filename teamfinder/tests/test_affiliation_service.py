"""
Unit tests for affiliation service.
"""

import uuid
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
import pytz
from sqlalchemy import select
from teamfinder.services import affiliation_service
from teamfinder.database.models import Affiliation, User
from teamfinder.models.schemas import CreateAffiliationRequest


async def _create_user(db_session, external_id):
    """Helper: create a user, return user_id."""
    user = User(external_id=external_id, email=f"{external_id}@example.com")
    db_session.add(user)
    await db_session.flush()
    await db_session.commit()
    return user.id


@pytest_asyncio.fixture
async def owners(db_session):
    return {
        "alice": await _create_user(db_session, "user_alice"),
        "bob": await _create_user(db_session, "user_bob"),
    }


@pytest.mark.asyncio
async def test_create_affiliation_defaults(db_session, owners):
    """Type defaults to other and blank optional fields are stored as null."""
    payload = CreateAffiliationRequest.model_validate(
        {"name": "Acme Corp", "role": "", "startYear": "  "}
    )

    affiliation = await affiliation_service.create_affiliation(db_session, owners["alice"], payload)

    assert affiliation["user_id"] == owners["alice"]
    assert affiliation["type"] == "other"
    assert affiliation["name"] == "Acme Corp"
    assert affiliation["role"] is None
    assert affiliation["start_year"] is None
    assert affiliation["end_year"] is None


@pytest.mark.asyncio
async def test_list_affiliations_newest_first(db_session, owners):
    """Only the owner's affiliations are listed, newest first."""
    base = datetime(2024, 1, 1, tzinfo=pytz.UTC)
    db_session.add_all([
        Affiliation(user_id=owners["alice"], type="college", name="State U", created_at=base),
        Affiliation(
            user_id=owners["alice"],
            type="company",
            name="Acme Corp",
            created_at=base + timedelta(days=1),
        ),
        Affiliation(user_id=owners["bob"], type="other", name="Bob's Club", created_at=base),
    ])
    await db_session.commit()

    affiliations = await affiliation_service.list_affiliations(db_session, owners["alice"])

    assert [a["name"] for a in affiliations] == ["Acme Corp", "State U"]


@pytest.mark.asyncio
async def test_delete_own_affiliation(db_session, owners):
    payload = CreateAffiliationRequest.model_validate({"name": "Acme Corp", "type": "company"})
    affiliation = await affiliation_service.create_affiliation(db_session, owners["alice"], payload)

    deleted = await affiliation_service.delete_affiliation(
        db_session, owners["alice"], affiliation["id"]
    )

    assert deleted == 1
    assert await affiliation_service.list_affiliations(db_session, owners["alice"]) == []


@pytest.mark.asyncio
async def test_delete_other_users_affiliation_is_noop(db_session, owners):
    """Deleting someone else's affiliation matches nothing and leaves it intact."""
    payload = CreateAffiliationRequest.model_validate({"name": "Acme Corp"})
    affiliation = await affiliation_service.create_affiliation(db_session, owners["alice"], payload)

    deleted = await affiliation_service.delete_affiliation(
        db_session, owners["bob"], affiliation["id"]
    )

    assert deleted == 0
    result = await db_session.execute(
        select(Affiliation).where(Affiliation.id == affiliation["id"])
    )
    assert result.scalar_one_or_none() is not None


@pytest.mark.asyncio
async def test_delete_unknown_affiliation(db_session, owners):
    deleted = await affiliation_service.delete_affiliation(
        db_session, owners["alice"], uuid.uuid4()
    )
    assert deleted == 0
