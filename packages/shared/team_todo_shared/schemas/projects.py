from typing import Optional
from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import datetime
from .common import Permission


class ProjectCreate(BaseModel):
    name: str = Field(..., max_length=100)
    is_private: bool = False

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name is required")
        return value


class ProjectRead(BaseModel):
    id: UUID
    name: str
    is_private: bool
    organization_id: UUID
    permission: Optional[Permission] = None
    created_at: datetime


class ProjectMemberAdd(BaseModel):
    user_id: UUID
    permission: Permission = Permission.VIEW


class ProjectMemberRead(BaseModel):
    user_id: UUID
    email: str
    display_name: str
    permission: Permission
    joined_at: datetime
