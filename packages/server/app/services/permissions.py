"""
Membership & permission resolution.

Org level: a user's role in an organization (owner | admin | member).
Project level: a user's permission on a project (edit | view).

Rules:
- Public projects are visible to every org member, `view` by default.
- Private projects require an explicit ProjectMember row.
- An explicit ProjectMember row always wins over the public default.
- Org role never overrides project permission: an owner without a grant on a
  private project is forbidden like anyone else.

Every check hits the database; nothing is cached.
"""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import Forbidden, NotAMemberError, NotFound
from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.models.project import Project
from app.models.project_member import ProjectMember
from team_todo_shared.schemas.common import Permission, Role

ADMIN_ROLES = frozenset({Role.OWNER, Role.ADMIN})


def has_admin_permission(role: Role | str) -> bool:
    """True for owner and admin."""
    return Role(role) in ADMIN_ROLES


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------

async def get_org_by_slug(session: AsyncSession, slug: str) -> Organization:
    result = await session.execute(
        select(Organization).where(Organization.slug == slug)
    )
    org = result.scalar_one_or_none()
    if not org:
        raise NotFound("organization not found")
    return org


async def find_membership(
    session: AsyncSession, user_id: uuid.UUID, org_id: uuid.UUID
) -> Optional[OrganizationMember]:
    result = await session.execute(
        select(OrganizationMember).where(
            OrganizationMember.user_id == user_id,
            OrganizationMember.org_id == org_id,
        )
    )
    return result.scalar_one_or_none()


async def get_membership(
    session: AsyncSession, user_id: uuid.UUID, org_id: uuid.UUID
) -> OrganizationMember:
    membership = await find_membership(session, user_id, org_id)
    if not membership:
        raise NotAMemberError()
    return membership


async def resolve_org_role(
    session: AsyncSession, user_id: uuid.UUID, org_id: uuid.UUID
) -> Role:
    """Return the user's role in the org; raises NotAMemberError otherwise."""
    membership = await get_membership(session, user_id, org_id)
    return Role(membership.role)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

async def find_project_grant(
    session: AsyncSession, user_id: uuid.UUID, project_id: uuid.UUID
) -> Optional[ProjectMember]:
    result = await session.execute(
        select(ProjectMember).where(
            ProjectMember.user_id == user_id,
            ProjectMember.project_id == project_id,
        )
    )
    return result.scalar_one_or_none()


def permission_for(project: Project, grant: Optional[ProjectMember]) -> Optional[Permission]:
    """Effective permission given an optional explicit grant; None means no access."""
    if grant is not None:
        return Permission(grant.permission)
    if project.is_private:
        return None
    return Permission.VIEW


async def resolve_project_permission(
    session: AsyncSession, user_id: uuid.UUID, project: Project
) -> Permission:
    """Resolve the caller's permission on a project.

    Does not check org membership; callers establish that first.
    Raises Forbidden for a private project without an explicit grant.
    """
    grant = await find_project_grant(session, user_id, project.id)
    permission = permission_for(project, grant)
    if permission is None:
        raise Forbidden("you do not have access to this project")
    return permission


async def visible_projects(
    session: AsyncSession, user_id: uuid.UUID, org_id: uuid.UUID
) -> list[tuple[Project, Permission]]:
    """All projects of an org the user may view, oldest first, with permission."""
    result = await session.execute(
        select(Project, ProjectMember)
        .outerjoin(
            ProjectMember,
            (ProjectMember.project_id == Project.id) & (ProjectMember.user_id == user_id),
        )
        .where(Project.org_id == org_id)
        .order_by(Project.created_at, Project.id)
    )
    visible = []
    for project, grant in result.all():
        permission = permission_for(project, grant)
        if permission is not None:
            visible.append((project, permission))
    return visible
