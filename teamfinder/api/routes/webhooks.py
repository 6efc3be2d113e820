"""Identity provider sync webhook."""

import logging
import os

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from svix.webhooks import Webhook, WebhookVerificationError

from teamfinder.database.db import get_db_session
from teamfinder.services import identity_service, user_service
from teamfinder.models.schemas import IdentityWebhookEvent, SuccessResponse

logger = logging.getLogger(__name__)
router = APIRouter()

USER_UPSERT_EVENTS = {"user.created", "user.updated"}


def _verify_event(body: bytes, headers) -> IdentityWebhookEvent:
    """
    Check the provider's Svix signature and parse the event.

    Raises:
        HTTPException: 401 if the secret is unset or the signature is invalid,
            400 if the signed payload is not a user event
    """
    secret = os.getenv("IDENTITY_WEBHOOK_SECRET")
    if not secret:
        logger.error("IDENTITY_WEBHOOK_SECRET not set - rejecting identity webhook")
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        payload = Webhook(secret).verify(body, headers)
    except WebhookVerificationError as e:
        logger.warning(f"Identity webhook signature rejected: {e}")
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        return IdentityWebhookEvent.model_validate(payload)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Malformed identity event")


@router.post("/api/webhooks/identity", response_model=SuccessResponse)
async def identity_webhook(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Apply a user sync event from the identity provider.

    The raw body is verified against the svix-id, svix-timestamp and
    svix-signature headers before it is parsed. user.created and
    user.updated upsert the local user. Other events, including
    user.deleted, are acknowledged and ignored: local users are never
    deleted by this service.
    """
    event = _verify_event(await request.body(), request.headers)

    if event.type not in USER_UPSERT_EVENTS:
        logger.info(f"Ignoring identity event {event.type}")
        return {"success": True}

    identity = identity_service.identity_from_provider_user(event.data)
    if identity is None:
        raise HTTPException(status_code=400, detail="Event has no user id or email address")

    try:
        await user_service.upsert_user_from_identity(session, identity)
        return {"success": True}
    except Exception as e:
        logger.error(f"Error applying identity event {event.type}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to sync user")
