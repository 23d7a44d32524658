"""
Current user endpoints.

GET   /api/v1/me  - Profile of the authenticated user
PATCH /api/v1/me  - Update display name
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AccessClaims, get_current_user
from app.core.database import get_session
from app.services import users as user_service
from team_todo_shared.schemas.users import UserResponse, UserUpdateRequest

router = APIRouter()


@router.get("", response_model=UserResponse)
async def get_me(
    user: AccessClaims = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await user_service.get_user(session, user.user_id)


@router.patch("", response_model=UserResponse)
async def update_me(
    body: UserUpdateRequest,
    user: AccessClaims = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await user_service.update_user(session, user.user_id, body)
