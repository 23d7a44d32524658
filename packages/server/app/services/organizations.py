"""
Organization service: creation and membership-scoped lookups.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import Conflict
from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.models.project import Project
from app.services import permissions
from app.services.users import get_user, set_last_context
from team_todo_shared.schemas.common import Role
from team_todo_shared.schemas.organizations import OrgCreateRequest

log = structlog.get_logger()

DEFAULT_PROJECT_NAME = "General"


async def list_user_orgs(
    session: AsyncSession, user_id: uuid.UUID
) -> list[tuple[Organization, Role]]:
    """List all orgs a user belongs to, with their role."""
    result = await session.execute(
        select(Organization, OrganizationMember.role)
        .join(OrganizationMember, OrganizationMember.org_id == Organization.id)
        .where(OrganizationMember.user_id == user_id)
        .order_by(OrganizationMember.created_at)
    )
    return [(org, Role(role)) for org, role in result.all()]


async def create_org(
    session: AsyncSession,
    creator_id: uuid.UUID,
    req: OrgCreateRequest,
) -> Organization:
    """Create an org with the creator as owner and a public default project.

    The org, owner membership, default project and the creator's last-org
    pointer are flushed in the caller's transaction and commit together.
    """
    existing = await session.execute(
        select(Organization.id).where(Organization.slug == req.slug)
    )
    if existing.scalar_one_or_none():
        raise Conflict("slug is already taken")

    creator = await get_user(session, creator_id)

    org = Organization(name=req.name, slug=req.slug)
    session.add(org)
    try:
        await session.flush()
    except IntegrityError:
        raise Conflict("slug is already taken")

    session.add(
        OrganizationMember(user_id=creator_id, org_id=org.id, role=Role.OWNER.value)
    )
    session.add(Project(org_id=org.id, name=DEFAULT_PROJECT_NAME, is_private=False))
    await session.flush()

    await set_last_context(session, creator, org_id=org.id)

    log.info("org.created", org_id=str(org.id), slug=org.slug, creator=str(creator_id))
    return org


async def get_org_for_user(
    session: AsyncSession, user_id: uuid.UUID, slug: str
) -> tuple[Organization, Role]:
    """Get an org by slug for a member, recording it as their last org."""
    org = await permissions.get_org_by_slug(session, slug)
    role = await permissions.resolve_org_role(session, user_id, org.id)

    user = await get_user(session, user_id)
    if user.last_org_id != org.id:
        await set_last_context(session, user, org_id=org.id)
    return org, role
