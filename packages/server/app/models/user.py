"""User model."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: str = Field(unique=True, index=True, nullable=False)
    password_hash: str = Field(nullable=False)  # bcrypt
    display_name: str = Field(nullable=False)
    # Navigation context. No foreign keys: these may dangle and are healed on read.
    last_org_id: Optional[uuid.UUID] = Field(default=None, index=True)
    last_project_id: Optional[uuid.UUID] = Field(default=None)
