"""
Identity provider client.

Authentication is delegated to an external provider (Clerk). This module is
the only place that knows the provider's protocol:

- verify_token() checks a session JWT and returns its claims
- get_caller_identity() reduces claims to {external_id, email, name, avatar_url}
- fetch_provider_user() looks a user up through the provider's backend API,
  used to repair missing local user rows and to apply sync webhooks
"""

import logging
import os
import time
from typing import Dict, Optional

import httpx
from jose import jwt, JWTError, ExpiredSignatureError

logger = logging.getLogger(__name__)

CLERK_API_URL = os.getenv("CLERK_API_URL", "https://api.clerk.com/v1").rstrip("/")

# Cache for JWKS keys
_jwks_cache: dict = {}
_jwks_cache_time: float = 0
JWKS_CACHE_TTL = 3600  # 1 hour


def _get_jwt_key() -> Optional[str]:
    """PEM public key for networkless verification, if configured."""
    key = os.getenv("CLERK_JWT_KEY")
    if key:
        # Env files usually carry the PEM with escaped newlines
        return key.replace("\\n", "\n")
    return None


def _fetch_jwks() -> dict:
    """Fetch the provider JWKS with caching."""
    global _jwks_cache, _jwks_cache_time

    current_time = time.time()
    if _jwks_cache and (current_time - _jwks_cache_time) < JWKS_CACHE_TTL:
        return _jwks_cache

    jwks_url = os.getenv("CLERK_JWKS_URL")
    if not jwks_url:
        logger.warning("Neither CLERK_JWT_KEY nor CLERK_JWKS_URL is set - cannot verify tokens")
        return {"keys": []}

    try:
        response = httpx.get(jwks_url, timeout=10)
        response.raise_for_status()
        _jwks_cache = response.json()
        _jwks_cache_time = current_time
        logger.debug(f"Fetched JWKS from {jwks_url}")
        return _jwks_cache
    except Exception as e:
        logger.warning(f"Failed to fetch JWKS: {e}")
        # Serve stale keys rather than failing every request
        if _jwks_cache:
            return _jwks_cache
        return {"keys": []}


def _get_signing_key(token: str):
    """Resolve the key used to verify ``token``. Returns None if unknown."""
    pem = _get_jwt_key()
    if pem:
        return pem

    try:
        kid = jwt.get_unverified_header(token).get("kid")
    except JWTError:
        return None

    for key in _fetch_jwks().get("keys", []):
        if key.get("kid") == kid:
            return key
    return None


def verify_token(token: str) -> Optional[Dict]:
    """
    Verify a provider session token.

    Args:
        token: Bearer token from the Authorization header

    Returns:
        Token claims, or None if the token is invalid, expired or unverifiable
    """
    signing_key = _get_signing_key(token)
    if signing_key is None:
        logger.warning("No signing key available for session token")
        return None

    try:
        claims = jwt.decode(
            token,
            signing_key,
            algorithms=["RS256"],
            options={"verify_aud": False},
        )
    except ExpiredSignatureError:
        logger.info("Session token has expired")
        return None
    except JWTError as e:
        logger.warning(f"Session token validation failed: {e}")
        return None

    if not claims.get("sub"):
        logger.warning("Session token missing 'sub' claim")
        return None
    return claims


def get_caller_identity(claims: Dict) -> Dict:
    """
    Reduce verified token claims to the caller identity used by the core.

    Email, name and avatar are only present when the provider's session
    template adds them; callers that need them fall back to
    fetch_provider_user().
    """
    name = claims.get("name")
    if not name:
        parts = [claims.get("first_name"), claims.get("last_name")]
        name = " ".join(p for p in parts if p) or None
    return {
        "external_id": claims["sub"],
        "email": claims.get("email"),
        "name": name,
        "first_name": claims.get("first_name"),
        "last_name": claims.get("last_name"),
        "avatar_url": claims.get("image_url") or claims.get("picture"),
    }


def identity_from_provider_user(data: Dict) -> Optional[Dict]:
    """
    Convert a provider user object (backend API or webhook payload) to an identity.

    Returns None when the object carries no usable email address.
    """
    external_id = data.get("id")
    if not external_id:
        return None

    email = None
    addresses = data.get("email_addresses") or []
    primary_id = data.get("primary_email_address_id")
    for address in addresses:
        if address.get("id") == primary_id:
            email = address.get("email_address")
            break
    if email is None and addresses:
        email = addresses[0].get("email_address")
    if not email:
        return None

    first_name = data.get("first_name")
    last_name = data.get("last_name")
    return {
        "external_id": external_id,
        "email": email,
        "name": " ".join(p for p in [first_name, last_name] if p) or None,
        "first_name": first_name,
        "last_name": last_name,
        "avatar_url": data.get("image_url"),
    }


async def fetch_provider_user(external_id: str) -> Optional[Dict]:
    """
    Look up a user through the provider's backend API.

    Args:
        external_id: Provider user id (the token's ``sub`` claim)

    Returns:
        Identity dict, or None if the lookup fails or the user has no email
    """
    secret_key = os.getenv("CLERK_SECRET_KEY")
    if not secret_key:
        logger.warning("CLERK_SECRET_KEY not set - cannot look up provider users")
        return None

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.get(
                f"{CLERK_API_URL}/users/{external_id}",
                headers={"Authorization": f"Bearer {secret_key}"},
            )
            resp.raise_for_status()
            data = resp.json()
    except Exception:
        logger.warning("Provider user lookup failed for %s", external_id, exc_info=True)
        return None

    return identity_from_provider_user(data)
