"""
API v1 Router

Org-scoped endpoints are prefixed with /organizations/{slug}.
"""

from fastapi import APIRouter
from team_todo_shared.schemas.common import ErrorResponse

from . import auth, context, invites, projects, users
from .organizations import router_global as orgs_global_router
from .organizations import router_scoped as orgs_scoped_router

# Every error is rendered in the same envelope
ERROR_RESPONSES = {
    status: {"model": ErrorResponse} for status in (400, 401, 403, 404, 409, 422)
}

router = APIRouter(responses=ERROR_RESPONSES)

router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(invites.router, prefix="/invites", tags=["Invites"])
router.include_router(users.router, prefix="/me", tags=["Users"])
router.include_router(context.router, prefix="/context", tags=["Context"])

# Organization routes (non-org-scoped: list, create)
router.include_router(orgs_global_router, prefix="/organizations", tags=["Organizations"])

# Organization routes (org-scoped: get, invites)
router.include_router(
    orgs_scoped_router, prefix="/organizations/{slug}", tags=["Organizations"]
)
router.include_router(
    projects.router, prefix="/organizations/{slug}/projects", tags=["Projects"]
)


@router.get("/", tags=["API"])
async def api_root():
    """API root - returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/auth",
            "/me",
            "/context",
            "/invites/{token}",
            "/organizations",
            "/organizations/{slug}/projects",
        ],
    }
