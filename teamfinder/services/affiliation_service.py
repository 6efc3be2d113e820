"""Affiliation service: list, create and delete a user's affiliations."""

import uuid
import logging
from typing import Dict, List

from sqlalchemy import select, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession

from teamfinder.database.models import Affiliation
from teamfinder.models.schemas import CreateAffiliationRequest

logger = logging.getLogger(__name__)


def _affiliation_to_dict(affiliation: Affiliation) -> Dict:
    return {
        "id": affiliation.id,
        "user_id": affiliation.user_id,
        "type": affiliation.type,
        "name": affiliation.name,
        "role": affiliation.role,
        "start_year": affiliation.start_year,
        "end_year": affiliation.end_year,
        "created_at": affiliation.created_at,
        "updated_at": affiliation.updated_at,
    }


async def list_affiliations(session: AsyncSession, user_id: uuid.UUID) -> List[Dict]:
    """Get all affiliations owned by a user, newest first."""
    result = await session.execute(
        select(Affiliation)
        .where(Affiliation.user_id == user_id)
        .order_by(Affiliation.created_at.desc())
    )
    return [_affiliation_to_dict(a) for a in result.scalars().all()]


async def create_affiliation(
    session: AsyncSession, user_id: uuid.UUID, payload: CreateAffiliationRequest
) -> Dict:
    """
    Create an affiliation for a user.

    Args:
        session: Database session
        user_id: Owning user
        payload: Validated affiliation payload

    Returns:
        Affiliation dictionary
    """
    affiliation = Affiliation(
        user_id=user_id,
        type=payload.type.value,
        name=payload.name,
        role=payload.role,
        start_year=payload.start_year,
        end_year=payload.end_year,
    )
    session.add(affiliation)
    await session.flush()
    await session.commit()
    return _affiliation_to_dict(affiliation)


async def delete_affiliation(
    session: AsyncSession, user_id: uuid.UUID, affiliation_id: uuid.UUID
) -> int:
    """
    Delete an affiliation if it belongs to the user.

    Ownership is part of the delete predicate, so another user's affiliation
    simply matches no rows.

    Returns:
        Number of rows deleted (0 or 1)
    """
    result = await session.execute(
        delete(Affiliation).where(
            and_(Affiliation.id == affiliation_id, Affiliation.user_id == user_id)
        )
    )
    await session.commit()
    if result.rowcount == 0:
        logger.info(f"Affiliation {affiliation_id} not deleted: no row owned by user {user_id}")
    return result.rowcount
