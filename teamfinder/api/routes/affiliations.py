"""Affiliation route handlers."""

import uuid
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from teamfinder.api.routes import limiter
from teamfinder.database.db import get_db_session
from teamfinder.services import affiliation_service
from teamfinder.api.auth_dependencies import get_current_user
from teamfinder.models.schemas import (
    CreateAffiliationRequest,
    AffiliationEnvelope,
    AffiliationListResponse,
    SuccessResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/affiliations", response_model=AffiliationListResponse)
async def get_affiliations(
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the caller's affiliations, newest first."""
    try:
        affiliations = await affiliation_service.list_affiliations(session, user["id"])
        return {"affiliations": affiliations}
    except Exception as e:
        logger.error(f"Error fetching affiliations: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get affiliations")


@router.post("/api/affiliations", response_model=AffiliationEnvelope, status_code=201)
@limiter.limit("30/minute")
async def create_affiliation(
    request: Request,
    payload: CreateAffiliationRequest,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Add an affiliation to the caller's profile."""
    try:
        affiliation = await affiliation_service.create_affiliation(session, user["id"], payload)
        return {"affiliation": affiliation}
    except Exception as e:
        logger.error(f"Error creating affiliation: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create affiliation")


@router.delete("/api/affiliations", response_model=SuccessResponse)
async def delete_affiliation(
    affiliation_id: Optional[str] = Query(None, alias="id"),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Delete one of the caller's affiliations.

    Succeeds even when the id matches nothing the caller owns.
    """
    if not affiliation_id:
        raise HTTPException(status_code=400, detail="Affiliation ID is required")
    try:
        parsed_id = uuid.UUID(affiliation_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid affiliation ID")

    try:
        await affiliation_service.delete_affiliation(session, user["id"], parsed_id)
        return {"success": True}
    except Exception as e:
        logger.error(f"Error deleting affiliation {parsed_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete affiliation")
