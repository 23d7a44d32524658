"""
Project service: creation, visibility-filtered listing, explicit grants.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from app.models.project import Project
from app.models.project_member import ProjectMember
from app.models.user import User
from app.services import permissions
from app.services.users import get_user, set_last_context
from team_todo_shared.schemas.common import Permission, Role
from team_todo_shared.schemas.projects import ProjectCreate, ProjectMemberAdd

log = structlog.get_logger()


async def get_project_in_org(
    session: AsyncSession, project_id: uuid.UUID, org_id: uuid.UUID
) -> Project:
    project = await session.get(Project, project_id)
    if not project or project.org_id != org_id:
        raise NotFound("project not found")
    return project


async def create_project(
    session: AsyncSession,
    org_id: uuid.UUID,
    creator_id: uuid.UUID,
    creator_role: Role,
    req: ProjectCreate,
) -> Project:
    """Create a project (owner/admin only).

    A private project grants its creator an explicit `edit` row so they keep
    access; the project becomes the creator's last visited one.
    """
    if not permissions.has_admin_permission(creator_role):
        raise Forbidden("only owners and admins can create projects")

    project = Project(org_id=org_id, name=req.name, is_private=req.is_private)
    session.add(project)
    await session.flush()

    if req.is_private:
        session.add(
            ProjectMember(
                user_id=creator_id,
                project_id=project.id,
                permission=Permission.EDIT.value,
            )
        )
        await session.flush()

    creator = await get_user(session, creator_id)
    await set_last_context(session, creator, org_id=org_id, project_id=project.id)

    log.info(
        "project.created",
        project_id=str(project.id),
        org_id=str(org_id),
        is_private=project.is_private,
    )
    return project


async def list_projects(
    session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID
) -> list[tuple[Project, Permission]]:
    return await permissions.visible_projects(session, user_id, org_id)


async def get_project(
    session: AsyncSession,
    org_id: uuid.UUID,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> tuple[Project, Permission]:
    """Get a project the caller may view and record it as their last project."""
    project = await get_project_in_org(session, project_id, org_id)
    permission = await permissions.resolve_project_permission(session, user_id, project)

    user = await get_user(session, user_id)
    await set_last_context(session, user, org_id=org_id, project_id=project.id)
    return project, permission


async def add_project_member(
    session: AsyncSession,
    org_id: uuid.UUID,
    project_id: uuid.UUID,
    caller_role: Role,
    req: ProjectMemberAdd,
) -> tuple[ProjectMember, User]:
    """Grant an org member explicit access to a project (owner/admin only)."""
    if not permissions.has_admin_permission(caller_role):
        raise Forbidden("only owners and admins can manage project members")

    if not await permissions.find_membership(session, req.user_id, org_id):
        raise ValidationFailed("target user is not a member of this organization")

    project = await get_project_in_org(session, project_id, org_id)

    if await permissions.find_project_grant(session, req.user_id, project.id):
        raise Conflict("user is already a member of this project")

    grant = ProjectMember(
        user_id=req.user_id,
        project_id=project.id,
        permission=req.permission.value,
    )
    session.add(grant)
    try:
        await session.flush()
    except IntegrityError:
        raise Conflict("user is already a member of this project")

    target = await get_user(session, req.user_id)
    log.info(
        "project.member_added",
        project_id=str(project.id),
        user_id=str(req.user_id),
        permission=grant.permission,
    )
    return grant, target


async def list_project_members(
    session: AsyncSession,
    org_id: uuid.UUID,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> list[tuple[ProjectMember, User]]:
    """Explicit grants on a project; the caller must be able to view it."""
    project = await get_project_in_org(session, project_id, org_id)
    await permissions.resolve_project_permission(session, user_id, project)

    result = await session.execute(
        select(ProjectMember, User)
        .join(User, User.id == ProjectMember.user_id)
        .where(ProjectMember.project_id == project.id)
        .order_by(ProjectMember.created_at)
    )
    return list(result.all())
