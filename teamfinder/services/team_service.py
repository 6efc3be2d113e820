"""
Team service layer.

Team creation inserts the team and the captain's membership in a single
transaction, so a team never exists without its captain. Also serves the
recruiting-teams browse query and the team detail view.
"""

import uuid
import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from teamfinder.database.models import (
    DEFAULT_MAX_ROSTER_SIZE,
    Team,
    TeamMember,
    TeamRole,
)
from teamfinder.models.schemas import CreateTeamRequest

logger = logging.getLogger(__name__)


class RosterCapacityError(ValueError):
    """Raised when a roster change would exceed the team's max roster size."""


class TeamNotFoundError(ValueError):
    """Raised when a team id does not match any record."""


def _user_summary(user) -> Optional[Dict]:
    if user is None:
        return None
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "image_url": user.image_url,
    }


def team_to_dict(team: Team, include_captain: bool = False) -> Dict:
    data = {
        "id": team.id,
        "name": team.name,
        "captain_id": team.captain_id,
        "team_type": team.team_type,
        "gender_type": team.gender_type,
        "competition_level": team.competition_level,
        "max_roster_size": team.max_roster_size,
        "current_roster_size": team.current_roster_size,
        "looking_for_players": team.looking_for_players,
        "open_positions": team.open_positions,
        "recruitment_requirements": team.recruitment_requirements,
        "description": team.description,
        "logo_url": team.logo_url,
        "is_active": team.is_active,
        "created_at": team.created_at,
        "updated_at": team.updated_at,
    }
    if include_captain:
        data["captain"] = _user_summary(team.captain)
    return data


def _member_to_dict(member: TeamMember) -> Dict:
    return {
        "id": member.id,
        "team_id": member.team_id,
        "user_id": member.user_id,
        "role": member.role,
        "joined_at": member.joined_at,
        "left_at": member.left_at,
        "user": _user_summary(member.user),
    }


def build_recruitment_requirements(payload: CreateTeamRequest) -> Optional[Dict]:
    """
    Build the recruitment requirements object stored on the team.

    Only teams looking for players that supplied at least one requirement get
    an object; it holds only the supplied keys. Everything else stores None.
    """
    if not payload.looking_for_players:
        return None

    requirements = {}
    if payload.min_average is not None:
        requirements["minAverage"] = payload.min_average
    if payload.max_average is not None:
        requirements["maxAverage"] = payload.max_average
    if payload.additional_notes:
        requirements["additionalNotes"] = payload.additional_notes
    return requirements or None


def ensure_roster_capacity(roster_size: int, open_positions: int, max_size: int) -> None:
    """
    Raise RosterCapacityError if current members plus advertised openings do not fit.

    Raises:
        RosterCapacityError: If roster_size + open_positions exceeds max_size
    """
    if roster_size + open_positions > max_size:
        raise RosterCapacityError(
            f"Roster cannot hold {roster_size} members and {open_positions} open positions "
            f"(maximum roster size {max_size})"
        )


async def create_team(
    session: AsyncSession, captain_user_id: uuid.UUID, payload: CreateTeamRequest
) -> Dict:
    """
    Create a team captained by the caller.

    The captain counts as the first roster member: current_roster_size starts
    at 1 and a TeamMember row with role "captain" is inserted in the same
    transaction as the team.

    Args:
        session: Database session
        captain_user_id: Authenticated caller, already checked against payload.user_id
        payload: Validated team payload

    Returns:
        Team dictionary

    Raises:
        RosterCapacityError: If the captain plus the open positions exceed the max roster size
    """
    max_roster_size = payload.max_roster_size or DEFAULT_MAX_ROSTER_SIZE
    current_roster_size = 1
    open_positions = payload.open_positions or 0
    ensure_roster_capacity(current_roster_size, open_positions, max_roster_size)

    team = Team(
        name=payload.name,
        captain_id=captain_user_id,
        team_type=payload.team_type.value,
        gender_type=payload.gender_type.value,
        competition_level=payload.competition_level.value,
        description=payload.description,
        looking_for_players=payload.looking_for_players,
        open_positions=open_positions,
        recruitment_requirements=build_recruitment_requirements(payload),
        max_roster_size=max_roster_size,
        current_roster_size=current_roster_size,
        is_active=True,
    )

    try:
        session.add(team)
        await session.flush()

        session.add(
            TeamMember(team_id=team.id, user_id=captain_user_id, role=TeamRole.CAPTAIN.value)
        )
        await session.flush()
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(f"Created team {team.id} captained by {captain_user_id}")
    return team_to_dict(team)


async def get_team_detail(session: AsyncSession, team_id: uuid.UUID) -> Dict:
    """
    Get a team with its captain and active members.

    Raises:
        TeamNotFoundError: If the team does not exist
    """
    result = await session.execute(
        select(Team).options(selectinload(Team.captain)).where(Team.id == team_id)
    )
    team = result.scalar_one_or_none()
    if team is None:
        raise TeamNotFoundError("Team not found")

    members_result = await session.execute(
        select(TeamMember)
        .options(selectinload(TeamMember.user))
        .where(TeamMember.team_id == team_id, TeamMember.left_at.is_(None))
        .order_by(TeamMember.joined_at)
    )
    return {
        "team": team_to_dict(team, include_captain=True),
        "members": [_member_to_dict(m) for m in members_result.scalars().all()],
    }


async def list_recruiting_teams(
    session: AsyncSession,
    team_type: Optional[str] = None,
    competition_level: Optional[str] = None,
    gender_type: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict]:
    """
    List active teams looking for players, newest first.

    Args:
        session: Database session
        team_type: Optional team type filter
        competition_level: Optional competition level filter
        gender_type: Optional gender type filter
        limit: Page size
        offset: Rows to skip

    Returns:
        List of team dicts with nested captain summary
    """
    query = (
        select(Team)
        .options(selectinload(Team.captain))
        .where(Team.looking_for_players == True, Team.is_active == True)  # noqa: E712
    )
    if team_type:
        query = query.where(Team.team_type == team_type)
    if competition_level:
        query = query.where(Team.competition_level == competition_level)
    if gender_type:
        query = query.where(Team.gender_type == gender_type)

    result = await session.execute(
        query.order_by(Team.created_at.desc()).limit(limit).offset(offset)
    )
    return [team_to_dict(t, include_captain=True) for t in result.scalars().all()]
