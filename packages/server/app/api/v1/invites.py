"""
Invite redemption endpoints.

GET  /api/v1/invites/{token}         - Public invite preview
POST /api/v1/invites/{token}/accept  - Join the org (authenticated)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AccessClaims, get_current_user
from app.core.database import get_session
from app.services import invites as invite_service
from app.services.context import org_response
from team_todo_shared.schemas.organizations import InviteInfoResponse, OrgResponse

router = APIRouter()


@router.get("/{token}", response_model=InviteInfoResponse)
async def get_invite(
    token: str,
    session: AsyncSession = Depends(get_session),
):
    return await invite_service.get_invite_info(session, token)


@router.post("/{token}/accept", response_model=OrgResponse)
async def accept_invite(
    token: str,
    user: AccessClaims = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Join the invite's org with the invite's role."""
    org, role = await invite_service.accept_invite(session, token, user.user_id)
    return org_response(org, role)
