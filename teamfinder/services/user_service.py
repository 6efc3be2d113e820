"""
User service layer.

Local user rows mirror users of the external identity provider. They are
created on first authenticated access (see ensure_user) or by the provider's
sync webhook, and are never deleted here.
"""

import uuid
from typing import Optional, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from teamfinder.database.models import User
from teamfinder.services import identity_service
from teamfinder.utils.datetime_utils import utcnow
import logging

logger = logging.getLogger(__name__)


def _user_to_dict(user: User) -> Dict:
    return {
        "id": user.id,
        "external_id": user.external_id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "image_url": user.image_url,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }


def _normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_external_id(session: AsyncSession, external_id: str) -> Optional[Dict]:
    """
    Get user by identity provider id.

    Args:
        session: Database session
        external_id: Identity provider user id

    Returns:
        User dictionary or None if not found
    """
    result = await session.execute(select(User).where(User.external_id == external_id))
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def get_user_by_id(session: AsyncSession, user_id: uuid.UUID) -> Optional[Dict]:
    """Get user by local id."""
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def _get_user_row_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == _normalize_email(email)))
    return result.scalar_one_or_none()


def _apply_identity(user: User, identity: Dict) -> None:
    user.external_id = identity["external_id"]
    user.email = _normalize_email(identity["email"])
    user.first_name = identity.get("first_name")
    user.last_name = identity.get("last_name")
    user.image_url = identity.get("avatar_url")
    user.updated_at = utcnow()


async def create_user_from_identity(session: AsyncSession, identity: Dict) -> Dict:
    """
    Create a local user from a caller identity.

    Idempotent under concurrent provisioning: if the insert trips a unique
    constraint, the row that won is returned instead. A row holding the same
    email under an older provider id (account deleted and re-created at the
    provider) is relinked to the new id.

    Args:
        session: Database session
        identity: Dict with external_id, email, first_name, last_name, avatar_url

    Returns:
        User dictionary

    Raises:
        ValueError: If the identity has no email address
    """
    if not identity.get("email"):
        raise ValueError("Identity has no email address")

    user = User(
        external_id=identity["external_id"],
        email=_normalize_email(identity["email"]),
        first_name=identity.get("first_name"),
        last_name=identity.get("last_name"),
        image_url=identity.get("avatar_url"),
    )
    session.add(user)
    try:
        await session.flush()
        await session.commit()
    except IntegrityError:
        await session.rollback()
        return await _resolve_existing_user(session, identity)

    logger.info(f"Created user {user.id} for external id {identity['external_id']}")
    return _user_to_dict(user)


async def _resolve_existing_user(session: AsyncSession, identity: Dict) -> Dict:
    """Return the row that blocked an insert for ``identity``, relinking it if needed."""
    result = await session.execute(
        select(User).where(User.external_id == identity["external_id"])
    )
    user = result.scalar_one_or_none()
    if user is not None:
        # Another request provisioned the same caller first
        return _user_to_dict(user)

    user = await _get_user_row_by_email(session, identity["email"])
    if user is None:
        raise ValueError(f"Cannot provision user for {identity['external_id']}")

    logger.warning(
        f"Relinking user {user.id} from external id {user.external_id} "
        f"to {identity['external_id']}"
    )
    _apply_identity(user, identity)
    await session.commit()
    return _user_to_dict(user)


async def upsert_user_from_identity(session: AsyncSession, identity: Dict) -> Dict:
    """
    Create or refresh a local user from provider data (sync webhook path).

    An email change that collides with another local row keeps the old email
    and logs a warning; the other row belongs to a different provider user.

    Args:
        session: Database session
        identity: Identity dict from identity_service.identity_from_provider_user

    Returns:
        User dictionary
    """
    result = await session.execute(
        select(User).where(User.external_id == identity["external_id"])
    )
    user = result.scalar_one_or_none()
    if user is None:
        return await create_user_from_identity(session, identity)

    email_owner = await _get_user_row_by_email(session, identity["email"])
    if email_owner is not None and email_owner.id != user.id:
        logger.warning(
            f"Email for external id {identity['external_id']} already belongs to user "
            f"{email_owner.id}; keeping {user.email}"
        )
        identity = {**identity, "email": user.email}

    _apply_identity(user, identity)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        return await _resolve_existing_user(session, identity)
    return _user_to_dict(user)


async def ensure_user(session: AsyncSession, identity: Dict) -> Optional[Dict]:
    """
    Return the caller's user row, creating it if provisioning never happened.

    When the sync webhook was missed the caller is authenticated but has no
    local row. The provider is asked for the user's profile (token claims may
    not carry the email) and the row is created.

    Args:
        session: Database session
        identity: Caller identity from the session token

    Returns:
        User dictionary, or None if the provider could not supply the user
    """
    user = await get_user_by_external_id(session, identity["external_id"])
    if user:
        return user

    provider_identity = await identity_service.fetch_provider_user(identity["external_id"])
    if provider_identity is None:
        if not identity.get("email"):
            logger.warning(
                f"Cannot provision user for {identity['external_id']}: provider lookup failed"
            )
            return None
        provider_identity = identity

    logger.info(f"Provisioning missing user for external id {identity['external_id']}")
    return await create_user_from_identity(session, provider_identity)
