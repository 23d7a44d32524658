"""
Navigation context: where a returning user should land.

The stored pointers (`last_org_id`, `last_project_id`) are hints. They are
re-validated on every read; pointers to deleted orgs or projects, or to an org
the user was removed from, are cleared as a side effect.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFound
from app.models.organization import Organization
from app.models.project import Project
from app.models.user import User
from app.services import permissions
from app.services.users import UNCHANGED, get_user, set_last_context
from team_todo_shared.schemas.common import Permission, Role
from team_todo_shared.schemas.context import (
    CREATE_ORG_PATH,
    ContextResponse,
    ContextUpdateRequest,
    org_path,
    project_path,
)
from team_todo_shared.schemas.organizations import OrgResponse
from team_todo_shared.schemas.projects import ProjectRead

log = structlog.get_logger()


def org_response(org: Organization, role: Optional[Role] = None) -> OrgResponse:
    return OrgResponse(
        id=org.id, name=org.name, slug=org.slug, role=role, created_at=org.created_at
    )


def project_response(
    project: Project, permission: Optional[Permission] = None
) -> ProjectRead:
    return ProjectRead(
        id=project.id,
        name=project.name,
        is_private=project.is_private,
        organization_id=project.org_id,
        permission=permission,
        created_at=project.created_at,
    )


async def _clear(session: AsyncSession, user: User, reason: str) -> ContextResponse:
    log.info(
        "context.cleared",
        user_id=str(user.id),
        org_id=str(user.last_org_id),
        reason=reason,
    )
    await set_last_context(session, user, org_id=None, project_id=None)
    return ContextResponse(has_context=False, redirect_url=CREATE_ORG_PATH)


async def get_current_context(session: AsyncSession, user_id: uuid.UUID) -> ContextResponse:
    """Resolve the caller's last (org, project) into a landing location."""
    user = await get_user(session, user_id)
    if user.last_org_id is None:
        return ContextResponse(has_context=False, redirect_url=CREATE_ORG_PATH)

    org = await session.get(Organization, user.last_org_id)
    if not org:
        return await _clear(session, user, "org_deleted")

    membership = await permissions.find_membership(session, user_id, org.id)
    if not membership:
        return await _clear(session, user, "membership_revoked")

    context = ContextResponse(
        has_context=True,
        organization=org_response(org, Role(membership.role)),
        redirect_url=org_path(org.slug),
    )

    if user.last_project_id is None:
        return context

    project = await session.get(Project, user.last_project_id)
    if not project:
        log.info(
            "context.project_cleared",
            user_id=str(user_id),
            project_id=str(user.last_project_id),
        )
        await set_last_context(session, user, project_id=None)
        return context

    # Pointer into another org or a private project without a grant: skip it
    # for this response only.
    if project.org_id != org.id:
        return context
    grant = await permissions.find_project_grant(session, user_id, project.id)
    permission = permissions.permission_for(project, grant)
    if permission is None:
        return context

    context.project = project_response(project, permission)
    context.redirect_url = project_path(org.slug, project.id)
    return context


async def update_context(
    session: AsyncSession, user_id: uuid.UUID, req: ContextUpdateRequest
) -> None:
    """Explicitly set the last org and/or project.

    Every reference is checked before anything is written. Setting a project
    also moves the org pointer to the project's org.
    """
    user = await get_user(session, user_id)
    org_id = UNCHANGED
    project_id = UNCHANGED

    if req.org_id is not None:
        org = await session.get(Organization, req.org_id)
        if not org:
            raise NotFound("organization not found")
        await permissions.get_membership(session, user_id, org.id)
        org_id = org.id

    if req.project_id is not None:
        project = await session.get(Project, req.project_id)
        if not project:
            raise NotFound("project not found")
        await permissions.get_membership(session, user_id, project.org_id)
        await permissions.resolve_project_permission(session, user_id, project)
        project_id = project.id
        org_id = project.org_id

    if org_id is UNCHANGED and project_id is UNCHANGED:
        return

    await set_last_context(session, user, org_id=org_id, project_id=project_id)
    log.info(
        "context.updated",
        user_id=str(user_id),
        org_id=str(user.last_org_id),
        project_id=str(user.last_project_id),
    )
