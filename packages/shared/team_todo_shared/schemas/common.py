from enum import Enum

from pydantic import BaseModel

# URL-safe org identifier: lowercase alphanumerics separated by single hyphens
SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


# Roles that can be granted through an invite
INVITABLE_ROLES: list["Role"] = [Role.ADMIN, Role.MEMBER]


class Permission(str, Enum):
    EDIT = "edit"
    VIEW = "view"


class ErrorBody(BaseModel):
    code: str
    message: str
    status: int


class ErrorResponse(BaseModel):
    error: ErrorBody
