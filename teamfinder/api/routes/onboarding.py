"""Onboarding route handlers: player profile creation and onboarding status."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from teamfinder.api.routes import limiter
from teamfinder.database.db import get_db_session
from teamfinder.services import profile_service
from teamfinder.api.auth_dependencies import get_current_user_optional, get_or_provision_user
from teamfinder.models.schemas import (
    ProfilePayload,
    ProfileEnvelope,
    OnboardingStatusResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/onboarding", response_model=ProfileEnvelope, status_code=201)
@limiter.limit("10/minute")
async def complete_onboarding(
    request: Request,
    payload: ProfilePayload,
    user: dict = Depends(get_or_provision_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create the caller's player profile.

    The caller's user row is provisioned from the identity provider if the
    sync webhook never created it.
    """
    try:
        profile = await profile_service.create_profile(session, user["id"], payload)
        return {"success": True, "profile": profile}
    except (profile_service.DuplicateMemberIdError, profile_service.ProfileAlreadyExistsError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating profile for user {user['id']}: {e}", exc_info=True)
        raise HTTPException(
            status_code=500, detail="Failed to create profile. Please try again."
        )


@router.get("/api/onboarding/status", response_model=OnboardingStatusResponse)
async def get_onboarding_status(
    user: dict = Depends(get_current_user_optional),
    session: AsyncSession = Depends(get_db_session),
):
    """Whether the caller still needs to go through onboarding."""
    if user is None:
        return {"profile_complete": False}
    try:
        complete = await profile_service.is_profile_complete(session, user["id"])
        return {"profile_complete": complete}
    except Exception as e:
        logger.error(f"Error checking onboarding status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to check onboarding status")
