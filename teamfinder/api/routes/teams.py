"""Team route handlers."""

import uuid
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from teamfinder.api.routes import limiter
from teamfinder.database.db import get_db_session
from teamfinder.database.models import CompetitionLevel, TeamGenderType, TeamType
from teamfinder.services import team_service
from teamfinder.api.auth_dependencies import get_current_user_optional, require_complete_profile
from teamfinder.models.schemas import (
    CreateTeamRequest,
    CreateTeamResponse,
    TeamListResponse,
    TeamDetailResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/teams/create", response_model=CreateTeamResponse, status_code=201)
@limiter.limit("10/minute")
async def create_team(
    request: Request,
    payload: CreateTeamRequest,
    user: Optional[dict] = Depends(get_current_user_optional),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create a team captained by the caller.

    The body's userId must be the caller's own id. A mismatch is reported
    exactly like a missing session so it reveals nothing about other users.
    """
    if user is None or user["id"] != payload.user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        team = await team_service.create_team(session, user["id"], payload)
        return {"success": True, "team_id": team["id"]}
    except team_service.RosterCapacityError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating team for user {user['id']}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create team. Please try again.")


@router.get("/api/teams", response_model=TeamListResponse)
async def browse_teams(
    team_type: Optional[TeamType] = Query(None, alias="teamType"),
    competition_level: Optional[CompetitionLevel] = Query(None, alias="competitionLevel"),
    gender_type: Optional[TeamGenderType] = Query(None, alias="genderType"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    user: dict = Depends(require_complete_profile),
    session: AsyncSession = Depends(get_db_session),
):
    """Browse active teams that are looking for players."""
    try:
        teams = await team_service.list_recruiting_teams(
            session,
            team_type=team_type.value if team_type else None,
            competition_level=competition_level.value if competition_level else None,
            gender_type=gender_type.value if gender_type else None,
            limit=page_size,
            offset=(page - 1) * page_size,
        )
        return {"teams": teams}
    except Exception as e:
        logger.error(f"Error browsing teams: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load teams")


@router.get("/api/teams/{team_id}", response_model=TeamDetailResponse)
async def get_team(
    team_id: uuid.UUID,
    user: dict = Depends(require_complete_profile),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a team with its captain and roster."""
    try:
        return await team_service.get_team_detail(session, team_id)
    except team_service.TeamNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error loading team {team_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load team")
