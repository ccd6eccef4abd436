"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter, error translation) lives here; every
sub-router imports what it needs from this package.
"""

import logging
import os

from fastapi import APIRouter, HTTPException
from slowapi import Limiter
from slowapi.util import get_remote_address

from padel_stats.utils.exceptions import InvalidStateError, NotFoundError, ValidationFailure

logger = logging.getLogger(__name__)

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
# Shared constants
# ---------------------------------------------------------------------------
INVALID_CREDENTIALS_RESPONSE = HTTPException(
    status_code=401, detail="Email or password is incorrect"
)
INTERNAL_ERROR_RESPONSE = HTTPException(status_code=500, detail="Internal server error")


def to_http_exception(error: Exception, context: str) -> HTTPException:
    """
    Translate a service-layer exception into an HTTPException.

    Unexpected errors are logged with their traceback and surface as a
    generic 500 so internals never reach the client.
    """
    if isinstance(error, HTTPException):
        return error
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, InvalidStateError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, ValidationFailure):
        return HTTPException(
            status_code=400,
            detail={"error": "Validation failed", "details": error.details},
        )
    if isinstance(error, ValueError):
        return HTTPException(status_code=400, detail=str(error))
    logger.error(f"Error {context}: {error}", exc_info=True)
    return INTERNAL_ERROR_RESPONSE


# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from padel_stats.api.routes.auth import router as auth_router  # noqa: E402
from padel_stats.api.routes.matches import router as matches_router  # noqa: E402
from padel_stats.api.routes.tournaments import router as tournaments_router  # noqa: E402
from padel_stats.api.routes.events import router as events_router  # noqa: E402
from padel_stats.api.routes.live import router as live_router  # noqa: E402

router = APIRouter()
router.include_router(auth_router)
router.include_router(matches_router)
router.include_router(tournaments_router)
router.include_router(events_router)
router.include_router(live_router)
