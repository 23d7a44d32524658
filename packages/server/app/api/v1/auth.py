"""
Authentication endpoints.

- Email/Password registration & login
- Token refresh (stateless; there is no logout or revocation)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import issue_token_pair
from app.core.config import get_settings
from app.core.database import get_session
from app.services import users as user_service
from app.services.email import EmailService
from app.tasks.email_dispatch import EmailDispatcher, get_email_dispatcher
from team_todo_shared.schemas.users import (
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenPair,
    UserResponse,
)

settings = get_settings()
router = APIRouter()


def _auth_response(user) -> AuthResponse:
    tokens = issue_token_pair(user.id, user.email, user.display_name)
    return AuthResponse(
        user=UserResponse.model_validate(user),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    session: AsyncSession = Depends(get_session),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    """Register a new user and sign them in."""
    user = await user_service.register_user(session, body)
    await session.commit()
    emails = EmailService(settings.app_url, settings.invite_expire_days)
    dispatcher.submit(emails.welcome_message(user.email, user.display_name))
    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with email and password."""
    user = await user_service.authenticate(session, body)
    return _auth_response(user)


@router.post("/refresh", response_model=TokenPair)
async def refresh(
    body: RefreshRequest,
    session: AsyncSession = Depends(get_session),
):
    """Exchange a refresh token for a new token pair."""
    return await user_service.refresh_tokens(session, body.refresh_token)
