"""Player browse route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from teamfinder.database.db import get_db_session
from teamfinder.services import profile_service
from teamfinder.api.auth_dependencies import require_complete_profile
from teamfinder.models.schemas import PlayerListResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/players", response_model=PlayerListResponse)
async def browse_players(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    user: dict = Depends(require_complete_profile),
    session: AsyncSession = Depends(get_db_session),
):
    """Browse players who are looking for a team."""
    try:
        offset = (page - 1) * page_size
        players = await profile_service.list_available_players(
            session, limit=page_size, offset=offset
        )
        return {"players": players}
    except Exception as e:
        logger.error(f"Error browsing players: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load players")
