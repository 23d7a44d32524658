"""
Project endpoints, scoped to an organization.

Listing only returns projects the caller can see; private projects need an
explicit grant regardless of org role.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import OrgAccess, get_org_access
from app.core.database import get_session
from app.services import projects as project_service
from app.services.context import project_response
from team_todo_shared.schemas.common import Permission
from team_todo_shared.schemas.projects import (
    ProjectCreate,
    ProjectMemberAdd,
    ProjectMemberRead,
    ProjectRead,
)

router = APIRouter()


def _member_read(grant, user) -> ProjectMemberRead:
    return ProjectMemberRead(
        user_id=user.id,
        email=user.email,
        display_name=user.display_name,
        permission=Permission(grant.permission),
        joined_at=grant.created_at,
    )


@router.get("", response_model=list[ProjectRead])
async def list_projects(
    access: OrgAccess = Depends(get_org_access),
    session: AsyncSession = Depends(get_session),
):
    items = await project_service.list_projects(session, access.org_id, access.user_id)
    return [project_response(project, permission) for project, permission in items]


@router.post("", response_model=ProjectRead, status_code=201)
async def create_project(
    body: ProjectCreate,
    access: OrgAccess = Depends(get_org_access),
    session: AsyncSession = Depends(get_session),
):
    """Create a project (owner/admin only)."""
    project = await project_service.create_project(
        session, access.org_id, access.user_id, access.role, body
    )
    return project_response(project, Permission.EDIT)


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: uuid.UUID,
    access: OrgAccess = Depends(get_org_access),
    session: AsyncSession = Depends(get_session),
):
    project, permission = await project_service.get_project(
        session, access.org_id, project_id, access.user_id
    )
    return project_response(project, permission)


@router.post("/{project_id}/members", response_model=ProjectMemberRead, status_code=201)
async def add_project_member(
    project_id: uuid.UUID,
    body: ProjectMemberAdd,
    access: OrgAccess = Depends(get_org_access),
    session: AsyncSession = Depends(get_session),
):
    """Grant an org member explicit access (owner/admin only)."""
    grant, user = await project_service.add_project_member(
        session, access.org_id, project_id, access.role, body
    )
    return _member_read(grant, user)


@router.get("/{project_id}/members", response_model=list[ProjectMemberRead])
async def list_project_members(
    project_id: uuid.UUID,
    access: OrgAccess = Depends(get_org_access),
    session: AsyncSession = Depends(get_session),
):
    rows = await project_service.list_project_members(
        session, access.org_id, project_id, access.user_id
    )
    return [_member_read(grant, user) for grant, user in rows]
