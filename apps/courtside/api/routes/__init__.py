"""
API routes - combined router from all domain modules.

Shared infrastructure (error mapping) lives here; every sub-router
imports what it needs from this package.
"""

from fastapi import APIRouter, HTTPException

from courtside.utils.exceptions import (
    CourtsideError,
    NotFound,
    CapacityExceeded,
    SessionLocked,
    InvalidScore,
    ValidationError,
    DuplicateEntity,
)

# ---------------------------------------------------------------------------
# Shared error mapping
# ---------------------------------------------------------------------------
ERROR_STATUS_CODES = {
    NotFound: 404,
    CapacityExceeded: 409,
    SessionLocked: 409,
    DuplicateEntity: 409,
    InvalidScore: 400,
    ValidationError: 400,
}


def http_error(error: CourtsideError) -> HTTPException:
    """Translate a domain error into the HTTPException a route should raise."""
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))


# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from courtside.api.routes.users import router as users_router  # noqa: E402
from courtside.api.routes.clubs import router as clubs_router  # noqa: E402
from courtside.api.routes.sessions import router as sessions_router  # noqa: E402
from courtside.api.routes.matches import router as matches_router  # noqa: E402

router = APIRouter()
router.include_router(users_router)
router.include_router(clubs_router)
router.include_router(sessions_router)
router.include_router(matches_router)
