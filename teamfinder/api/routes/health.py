"""Health check route."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from teamfinder.database.db import get_db_session, ping_database
from teamfinder.models.schemas import HealthResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/health", response_model=HealthResponse)
async def health_check(session: AsyncSession = Depends(get_db_session)):
    """Report API status and database reachability."""
    database_ok = await ping_database(session)
    if not database_ok:
        logger.warning("Health check database query failed")
    return HealthResponse(status="ok", database="ok" if database_ok else "unavailable")
