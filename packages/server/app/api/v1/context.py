"""
Navigation context endpoints.

GET /api/v1/context  - Where the user should land (self-healing)
PUT /api/v1/context  - Explicitly set the last org and/or project
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AccessClaims, get_current_user
from app.core.database import get_session
from app.services import context as context_service
from team_todo_shared.schemas.context import ContextResponse, ContextUpdateRequest

router = APIRouter()


@router.get("", response_model=ContextResponse)
async def get_context(
    user: AccessClaims = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await context_service.get_current_context(session, user.user_id)


@router.put("", status_code=204, response_class=Response)
async def update_context(
    body: ContextUpdateRequest,
    user: AccessClaims = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await context_service.update_context(session, user.user_id, body)
    return Response(status_code=204)
