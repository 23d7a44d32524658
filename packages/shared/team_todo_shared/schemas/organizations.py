"""
Organization and invite schemas.

Covers: org create/read, invite create/read, public invite info.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from .common import INVITABLE_ROLES, SLUG_PATTERN, Role


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Organization display name")
    slug: str = Field(
        ...,
        min_length=2,
        max_length=50,
        pattern=SLUG_PATTERN,
        description="URL-safe org identifier",
    )


class InviteCreateRequest(BaseModel):
    email: EmailStr
    role: Role = Role.MEMBER
    project_id: Optional[uuid.UUID] = Field(
        default=None,
        description="Project the invite refers to (recorded only)",
    )

    @field_validator("role")
    @classmethod
    def _role_is_invitable(cls, value: Role) -> Role:
        if value not in INVITABLE_ROLES:
            raise ValueError("role must be one of: admin, member")
        return value


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrgResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    role: Optional[Role] = None  # the requesting user's role in this org
    created_at: datetime

    model_config = {"from_attributes": True}


class InviteResponse(BaseModel):
    id: uuid.UUID
    email: str
    role: Role
    expires_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class InviteInfoResponse(BaseModel):
    """Public view of an invite, shown before the invitee signs in."""
    organization_name: str
    organization_slug: str
    email: str
    expires_at: datetime
