"""Player profile route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from teamfinder.database.db import get_db_session
from teamfinder.services import profile_service
from teamfinder.api.auth_dependencies import get_current_user
from teamfinder.models.schemas import ProfilePayload, ProfileEnvelope

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/profile", response_model=ProfileEnvelope)
async def get_my_profile(
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the caller's player profile."""
    try:
        profile = await profile_service.get_profile_for_user(session, user["id"])
    except Exception as e:
        logger.error(f"Error loading profile: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load profile")
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return {"success": True, "profile": profile}


@router.put("/api/profile/update", response_model=ProfileEnvelope)
async def update_my_profile(
    payload: ProfilePayload,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Replace the caller's profile fields."""
    try:
        profile = await profile_service.update_profile(session, user["id"], payload)
        return {"success": True, "profile": profile}
    except profile_service.ProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except profile_service.DuplicateMemberIdError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating profile for user {user['id']}: {e}", exc_info=True)
        raise HTTPException(
            status_code=500, detail="Failed to update profile. Please try again."
        )
