"""
Player profile service layer.

Handles onboarding (profile creation), full-replace profile updates, and the
player browse query. The USBC member id is unique across all profiles; both
write paths check it before writing and map a unique-constraint race at
commit time to the same DuplicateMemberIdError.
"""

import uuid
import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from teamfinder.database.models import PlayerProfile
from teamfinder.models.schemas import ProfilePayload
from teamfinder.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)

DUPLICATE_MEMBER_ID_MESSAGE = "This USBC Member ID is already registered"


# --- Custom exceptions ---


class DuplicateMemberIdError(ValueError):
    """Raised when a USBC member id already belongs to another profile."""


class ProfileNotFoundError(ValueError):
    """Raised when the caller has no player profile."""


class ProfileAlreadyExistsError(ValueError):
    """Raised when onboarding is submitted by a user who already has a profile."""


def profile_to_dict(profile: PlayerProfile) -> Dict:
    return {
        "id": profile.id,
        "user_id": profile.user_id,
        "usbc_member_id": profile.usbc_member_id,
        "usbc_verified": profile.usbc_verified,
        "usbc_verified_at": profile.usbc_verified_at,
        "gender": profile.gender,
        "date_of_birth": profile.date_of_birth,
        "bowling_hand": profile.bowling_hand,
        "home_bowling_center_id": profile.home_bowling_center_id,
        "current_average": profile.current_average,
        "high_game": profile.high_game,
        "high_series": profile.high_series,
        "years_experience": profile.years_experience,
        "preferred_team_types": list(profile.preferred_team_types or []),
        "preferred_competition_level": profile.preferred_competition_level,
        "looking_for_team": profile.looking_for_team,
        "open_to_substitute": profile.open_to_substitute,
        "bio": profile.bio,
        "profile_complete": profile.profile_complete,
        "created_at": profile.created_at,
        "updated_at": profile.updated_at,
    }


def _mutable_fields(payload: ProfilePayload) -> Dict:
    """The field set written by both onboarding and update."""
    return {
        "usbc_member_id": payload.usbc_member_id,
        "gender": payload.gender.value,
        "bowling_hand": payload.bowling_hand.value,
        "current_average": payload.current_average,
        "high_game": payload.high_game,
        "high_series": payload.high_series,
        "years_experience": payload.years_experience,
        "preferred_team_types": [t.value for t in payload.preferred_team_types],
        "preferred_competition_level": (
            payload.preferred_competition_level.value
            if payload.preferred_competition_level
            else None
        ),
        "looking_for_team": payload.looking_for_team,
        "open_to_substitute": payload.open_to_substitute,
        "bio": payload.bio,
    }


async def _get_profile_row(session: AsyncSession, user_id: uuid.UUID) -> Optional[PlayerProfile]:
    result = await session.execute(
        select(PlayerProfile).where(PlayerProfile.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def member_id_taken(
    session: AsyncSession, usbc_member_id: str, exclude_user_id: Optional[uuid.UUID] = None
) -> bool:
    """
    Check whether a USBC member id is registered to a profile.

    Args:
        session: Database session
        usbc_member_id: Member id to look up
        exclude_user_id: Ignore the profile owned by this user

    Returns:
        True if another profile holds the id
    """
    query = select(PlayerProfile.id).where(PlayerProfile.usbc_member_id == usbc_member_id)
    if exclude_user_id is not None:
        query = query.where(PlayerProfile.user_id != exclude_user_id)
    result = await session.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


async def get_profile_for_user(session: AsyncSession, user_id: uuid.UUID) -> Optional[Dict]:
    """Get the profile owned by a user, or None."""
    profile = await _get_profile_row(session, user_id)
    return profile_to_dict(profile) if profile else None


async def is_profile_complete(session: AsyncSession, user_id: uuid.UUID) -> bool:
    """Whether the user has finished onboarding."""
    result = await session.execute(
        select(PlayerProfile.profile_complete).where(PlayerProfile.user_id == user_id)
    )
    return bool(result.scalar_one_or_none())


async def create_profile(
    session: AsyncSession, user_id: uuid.UUID, payload: ProfilePayload
) -> Dict:
    """
    Create the caller's player profile (onboarding).

    Args:
        session: Database session
        user_id: Owning user
        payload: Validated onboarding payload

    Returns:
        Profile dictionary with profile_complete = True

    Raises:
        ProfileAlreadyExistsError: If the user already has a profile
        DuplicateMemberIdError: If the member id belongs to another profile
    """
    if await _get_profile_row(session, user_id) is not None:
        raise ProfileAlreadyExistsError("Profile already exists")

    if await member_id_taken(session, payload.usbc_member_id):
        raise DuplicateMemberIdError(DUPLICATE_MEMBER_ID_MESSAGE)

    profile = PlayerProfile(user_id=user_id, profile_complete=True, **_mutable_fields(payload))
    session.add(profile)
    try:
        await session.flush()
        await session.commit()
    except IntegrityError:
        # Lost a race with a concurrent onboarding for the same member id
        await session.rollback()
        if await member_id_taken(session, payload.usbc_member_id, exclude_user_id=user_id):
            raise DuplicateMemberIdError(DUPLICATE_MEMBER_ID_MESSAGE)
        raise ProfileAlreadyExistsError("Profile already exists")

    logger.info(f"Created player profile {profile.id} for user {user_id}")
    return profile_to_dict(profile)


async def update_profile(
    session: AsyncSession, user_id: uuid.UUID, payload: ProfilePayload
) -> Dict:
    """
    Replace the mutable fields of the caller's profile.

    Every field in the set is rewritten (absent optional values become None,
    flags become False). usbc_verified and ownership are never touched. The
    member id uniqueness check only runs when the id actually changes.

    Args:
        session: Database session
        user_id: Owning user
        payload: Validated update payload

    Returns:
        Updated profile dictionary

    Raises:
        ProfileNotFoundError: If the user has no profile
        DuplicateMemberIdError: If the new member id belongs to another profile
    """
    profile = await _get_profile_row(session, user_id)
    if profile is None:
        raise ProfileNotFoundError("Profile not found")

    if payload.usbc_member_id != profile.usbc_member_id:
        if await member_id_taken(session, payload.usbc_member_id, exclude_user_id=user_id):
            raise DuplicateMemberIdError(DUPLICATE_MEMBER_ID_MESSAGE)

    for field, value in _mutable_fields(payload).items():
        setattr(profile, field, value)
    profile.updated_at = utcnow()

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise DuplicateMemberIdError(DUPLICATE_MEMBER_ID_MESSAGE)

    return profile_to_dict(profile)


async def list_available_players(
    session: AsyncSession, limit: int = 50, offset: int = 0
) -> List[Dict]:
    """
    List profiles of players looking for a team, most recently updated first.

    Args:
        session: Database session
        limit: Page size
        offset: Rows to skip

    Returns:
        List of profile dicts, each with a nested ``user`` summary
    """
    result = await session.execute(
        select(PlayerProfile)
        .options(selectinload(PlayerProfile.user))
        .where(PlayerProfile.looking_for_team == True)  # noqa: E712
        .order_by(PlayerProfile.updated_at.desc())
        .limit(limit)
        .offset(offset)
    )
    players = []
    for profile in result.scalars().all():
        item = profile_to_dict(profile)
        item["user"] = {
            "id": profile.user.id,
            "email": profile.user.email,
            "first_name": profile.user.first_name,
            "last_name": profile.user.last_name,
            "image_url": profile.user.image_url,
        }
        players.append(item)
    return players
