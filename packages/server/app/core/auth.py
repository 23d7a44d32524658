"""
Authentication and Authorization for Team Todo.

Supports:
- Email/Password credentials (bcrypt)
- Stateless JWT access/refresh token pairs (single shared HS256 secret)
- Bearer-token authentication dependency
- Org-scoped role dependencies (member, owner/admin)

There is no revocation list: a refresh token stays valid until it expires.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends
from fastapi.security import APIKeyHeader
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import Forbidden, InvalidTokenError, TokenExpiredError, Unauthorized
from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.services import permissions
from team_todo_shared.schemas.common import Role
from team_todo_shared.schemas.users import TokenPair

settings = get_settings()

bearer_header = APIKeyHeader(name="Authorization", auto_error=False)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with the configured cost factor (default 12)."""
    return bcrypt.hashpw(
        password.encode(), bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    ).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        return False


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

class AccessClaims(BaseModel):
    """Identity carried by an access token."""

    user_id: uuid.UUID
    email: str
    display_name: str


def _encode(claims: dict, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "iss": settings.jwt_issuer,
        "iat": now,
        "nbf": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def _decode(token: str, expected_type: str) -> dict:
    """Decode and verify a token of the given type.

    Raises TokenExpiredError or InvalidTokenError.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError()
    except jwt.PyJWTError:
        raise InvalidTokenError()

    if payload.get("typ") != expected_type:
        raise InvalidTokenError()
    return payload


def create_access_token(
    user_id: uuid.UUID,
    email: str,
    display_name: str,
    *,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a short-lived access token carrying the user's identity claims."""
    return _encode(
        {
            "sub": str(user_id),
            "typ": ACCESS_TOKEN_TYPE,
            "user_id": str(user_id),
            "email": email,
            "display_name": display_name,
        },
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(
    user_id: uuid.UUID, *, expires_delta: timedelta | None = None
) -> str:
    """Create a long-lived refresh token carrying only the subject."""
    return _encode(
        {"sub": str(user_id), "typ": REFRESH_TOKEN_TYPE},
        expires_delta or timedelta(days=settings.refresh_token_expire_days),
    )


def issue_token_pair(user_id: uuid.UUID, email: str, display_name: str) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(user_id, email, display_name),
        refresh_token=create_refresh_token(user_id),
        expires_in=settings.access_token_expire_minutes * 60,
    )


def validate_access_token(token: str) -> AccessClaims:
    payload = _decode(token, ACCESS_TOKEN_TYPE)
    try:
        return AccessClaims(
            user_id=uuid.UUID(payload["user_id"]),
            email=payload["email"],
            display_name=payload["display_name"],
        )
    except (KeyError, ValueError, TypeError):
        raise InvalidTokenError()


def validate_refresh_token(token: str) -> uuid.UUID:
    payload = _decode(token, REFRESH_TOKEN_TYPE)
    try:
        return uuid.UUID(payload["sub"])
    except (ValueError, TypeError):
        raise InvalidTokenError()


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise Unauthorized("missing authorization header")
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise Unauthorized("invalid authorization header format")
    return parts[1]


async def get_current_user(
    authorization: Optional[str] = Depends(bearer_header),
) -> AccessClaims:
    """Main authentication dependency: validates the bearer access token."""
    claims = validate_access_token(_bearer_token(authorization))
    structlog.contextvars.bind_contextvars(user_id=str(claims.user_id))
    return claims


class OrgAccess:
    """Container for an authenticated user + their org context."""

    def __init__(
        self,
        user: AccessClaims,
        org: Organization,
        membership: OrganizationMember,
    ):
        self.user = user
        self.org = org
        self.membership = membership
        self.user_id = user.user_id
        self.org_id = org.id
        self.role = Role(membership.role)


async def get_org_access(
    slug: str,
    user: AccessClaims = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> OrgAccess:
    """Resolve the org in the path and require the caller to be a member."""
    org = await permissions.get_org_by_slug(session, slug)
    membership = await permissions.get_membership(session, user.user_id, org.id)
    return OrgAccess(user=user, org=org, membership=membership)


async def require_org_admin(
    access: OrgAccess = Depends(get_org_access),
) -> OrgAccess:
    """Requires owner or admin role."""
    if not permissions.has_admin_permission(access.role):
        raise Forbidden("owner or admin access required")
    return access
