"""
Organization API endpoints.

GET  /api/v1/organizations                  - List orgs for authenticated user
POST /api/v1/organizations                  - Create a new org
GET  /api/v1/organizations/{slug}           - Get org details
POST /api/v1/organizations/{slug}/invites   - Invite by email (owner/admin)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    AccessClaims,
    OrgAccess,
    get_current_user,
    require_org_admin,
)
from app.core.database import get_session
from app.services import invites as invite_service
from app.services import organizations as org_service
from app.services.context import org_response
from app.tasks.email_dispatch import EmailDispatcher, get_email_dispatcher
from team_todo_shared.schemas.common import Role
from team_todo_shared.schemas.organizations import (
    InviteCreateRequest,
    InviteResponse,
    OrgCreateRequest,
    OrgResponse,
)

# ---------------------------------------------------------------------------
# Non-org-scoped routes (no slug in path)
# ---------------------------------------------------------------------------
router_global = APIRouter()


@router_global.get("", response_model=list[OrgResponse])
async def list_orgs(
    user: AccessClaims = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """List orgs the authenticated user belongs to."""
    items = await org_service.list_user_orgs(session, user.user_id)
    return [org_response(org, role) for org, role in items]


@router_global.post("", response_model=OrgResponse, status_code=201)
async def create_org(
    body: OrgCreateRequest,
    user: AccessClaims = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Create a new organization. The creator becomes its owner."""
    org = await org_service.create_org(session, user.user_id, body)
    return org_response(org, Role.OWNER)


# ---------------------------------------------------------------------------
# Org-scoped routes (slug in path)
# ---------------------------------------------------------------------------
router_scoped = APIRouter()


@router_scoped.get("", response_model=OrgResponse)
async def get_org(
    slug: str,
    user: AccessClaims = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Get org details with the caller's role."""
    org, role = await org_service.get_org_for_user(session, user.user_id, slug)
    return org_response(org, role)


@router_scoped.post("/invites", response_model=InviteResponse, status_code=201)
async def create_invite(
    body: InviteCreateRequest,
    access: OrgAccess = Depends(require_org_admin),
    session: AsyncSession = Depends(get_session),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    """Invite someone to the org by email (owner/admin only)."""
    invite = await invite_service.create_invite(
        session, access.org, access.user_id, access.role, body
    )
    message = await invite_service.invite_message(session, invite, access.org)
    # Queue only once the token is stored
    await session.commit()
    dispatcher.submit(message)
    return invite
