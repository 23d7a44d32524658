"""
User account service: registration, credential checks, profile, and the
last-visited (org, project) pointers used for context restoration.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import (
    hash_password,
    issue_token_pair,
    validate_refresh_token,
    verify_password,
)
from app.core.errors import Conflict, NotFound, Unauthorized
from app.models.user import User
from team_todo_shared.schemas.users import (
    LoginRequest,
    RegisterRequest,
    TokenPair,
    UserUpdateRequest,
)

log = structlog.get_logger()

# Sentinel distinguishing "leave unchanged" from "clear" (None)
UNCHANGED = object()


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user(session: AsyncSession, user_id: uuid.UUID) -> User:
    user = await session.get(User, user_id)
    if not user:
        raise NotFound("user not found")
    return user


async def register_user(session: AsyncSession, req: RegisterRequest) -> User:
    if await get_user_by_email(session, req.email):
        raise Conflict("user with this email already exists")

    user = User(
        email=req.email,
        password_hash=hash_password(req.password),
        display_name=req.display_name,
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError:
        raise Conflict("user with this email already exists")

    log.info("user.registered", user_id=str(user.id), email=user.email)
    return user


async def authenticate(session: AsyncSession, req: LoginRequest) -> User:
    user = await get_user_by_email(session, req.email)
    if not user or not verify_password(req.password, user.password_hash):
        log.warning("auth.login_failure", email=req.email)
        raise Unauthorized("invalid email or password")

    log.info("auth.login_success", user_id=str(user.id))
    return user


async def update_user(
    session: AsyncSession, user_id: uuid.UUID, req: UserUpdateRequest
) -> User:
    user = await get_user(session, user_id)
    if req.display_name is not None and req.display_name.strip():
        user.display_name = req.display_name.strip()
        session.add(user)
        await session.flush()
        log.info("user.updated", user_id=str(user_id))
    return user


async def set_last_context(
    session: AsyncSession,
    user: User,
    *,
    org_id: uuid.UUID | None | object = UNCHANGED,
    project_id: uuid.UUID | None | object = UNCHANGED,
) -> None:
    """Update the user's last-visited pointers. Pass None to clear one."""
    if org_id is not UNCHANGED:
        user.last_org_id = org_id
    if project_id is not UNCHANGED:
        user.last_project_id = project_id
    session.add(user)
    await session.flush()


async def refresh_tokens(session: AsyncSession, refresh_token: str) -> TokenPair:
    """Issue a new token pair for a valid refresh token of an existing user."""
    user_id = validate_refresh_token(refresh_token)
    user = await session.get(User, user_id)
    if not user:
        raise Unauthorized("user not found")
    return issue_token_pair(user.id, user.email, user.display_name)
