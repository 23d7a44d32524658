"""Organization invite (single-use, time-limited)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Invite(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "invites"
    __table_args__ = (sa.Index("ix_invites_email_org_id", "email", "org_id"),)

    token: str = Field(unique=True, index=True, nullable=False)
    email: str = Field(nullable=False)
    org_id: uuid.UUID = Field(
        foreign_key="organizations.id", nullable=False, index=True, ondelete="CASCADE"
    )
    project_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="projects.id", ondelete="SET NULL"
    )
    role: str = Field(nullable=False, default="member")  # admin | member
    invited_by_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    used_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
