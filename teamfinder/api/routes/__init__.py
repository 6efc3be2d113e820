"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter) lives here; every sub-router imports what it
needs from this package.
"""

import os

from fastapi import APIRouter
from slowapi import Limiter
from slowapi.util import get_remote_address

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"
if IS_TEST_ENV:
    limiter = Limiter(key_func=get_remote_address)

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = lambda *args, **kwargs: no_op_limit()
else:
    limiter = Limiter(key_func=get_remote_address)

# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from teamfinder.api.routes.health import router as health_router  # noqa: E402
from teamfinder.api.routes.onboarding import router as onboarding_router  # noqa: E402
from teamfinder.api.routes.profile import router as profile_router  # noqa: E402
from teamfinder.api.routes.teams import router as teams_router  # noqa: E402
from teamfinder.api.routes.players import router as players_router  # noqa: E402
from teamfinder.api.routes.affiliations import router as affiliations_router  # noqa: E402
from teamfinder.api.routes.webhooks import router as webhooks_router  # noqa: E402

router = APIRouter()
router.include_router(health_router)
router.include_router(onboarding_router)
router.include_router(profile_router)
router.include_router(teams_router)
router.include_router(players_router)
router.include_router(affiliations_router)
router.include_router(webhooks_router)
