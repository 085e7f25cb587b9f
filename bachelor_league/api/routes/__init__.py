"""
API routes - combined router from all domain modules.

The shared rate limiter lives here; every sub-router imports it from this
package.
"""

import os

from fastapi import APIRouter
from slowapi import Limiter
from slowapi.util import get_remote_address

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"
limiter = Limiter(key_func=get_remote_address)
if IS_TEST_ENV:

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = lambda *args, **kwargs: no_op_limit()

# Applied to mutating endpoints
MUTATION_RATE_LIMIT = os.getenv("MUTATION_RATE_LIMIT", "60/minute")

# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from bachelor_league.api.routes.leagues import router as leagues_router  # noqa: E402
from bachelor_league.api.routes.teams import router as teams_router  # noqa: E402
from bachelor_league.api.routes.contestants import router as contestants_router  # noqa: E402
from bachelor_league.api.routes.episodes import router as episodes_router  # noqa: E402
from bachelor_league.api.routes.drafts import router as drafts_router  # noqa: E402
from bachelor_league.api.routes.scoring import router as scoring_router  # noqa: E402
from bachelor_league.api.routes.standings import router as standings_router  # noqa: E402
from bachelor_league.api.routes.notifications import router as notifications_router  # noqa: E402

router = APIRouter()
router.include_router(leagues_router)
router.include_router(teams_router)
router.include_router(contestants_router)
router.include_router(episodes_router)
router.include_router(drafts_router)
router.include_router(scoring_router)
router.include_router(standings_router)
router.include_router(notifications_router)
