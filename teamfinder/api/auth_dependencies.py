"""
Authentication dependencies for FastAPI routes.

The caller's session token is issued by the external identity provider;
identity_service verifies it. These dependencies then resolve the local
user row and, where required, a completed player profile.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from teamfinder.services import identity_service, user_service, profile_service
from teamfinder.database.db import get_db_session

# auto_error=False so a missing header is a 401, not FastAPI's default
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    Dependency to get the caller identity from the provider session token.

    Returns:
        Identity dictionary with external_id, email, name, avatar_url

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if credentials is None:
        raise _unauthorized()

    claims = identity_service.verify_token(credentials.credentials)
    if claims is None:
        raise _unauthorized("Invalid authentication token")

    return identity_service.get_caller_identity(claims)


async def get_current_user(
    identity: dict = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    """
    Dependency to get the caller's local user row.

    Raises:
        HTTPException: 404 if the authenticated caller has no user row
    """
    user = await user_service.get_user_by_external_id(session, identity["external_id"])
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


async def get_current_user_optional(
    identity: dict = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
) -> Optional[dict]:
    """Authenticated caller's user row, or None if it was never provisioned."""
    return await user_service.get_user_by_external_id(session, identity["external_id"])


async def get_or_provision_user(
    identity: dict = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    """
    Like get_current_user, but creates the user row from provider data when missing.

    Raises:
        HTTPException: 404 if the provider cannot supply the user either
    """
    user = await user_service.ensure_user(session, identity)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


async def require_complete_profile(
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    """
    Require a caller who has finished onboarding.

    Raises:
        HTTPException: 403 if the caller's profile is missing or incomplete
    """
    if not await profile_service.is_profile_complete(session, user["id"]):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Profile incomplete")
    return user
