"""
Invite lifecycle: create, look up, accept.

An invite is a single-use bearer token (256 random bits, hex encoded) that
lets whoever holds it join an organization with a pre-assigned role until it
expires or is redeemed. Redemption happens in the caller's transaction with
the invite row locked, so two concurrent accepts cannot both succeed.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import timedelta
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.errors import (
    AlreadyMemberError,
    Forbidden,
    InviteNotFoundError,
    ValidationFailed,
)
from app.models.base import utcnow
from app.models.invite import Invite
from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.models.project import Project
from app.services import permissions
from app.services.email import EmailMessage, EmailService
from app.services.users import get_user, set_last_context
from team_todo_shared.schemas.common import Role
from team_todo_shared.schemas.organizations import (
    InviteCreateRequest,
    InviteInfoResponse,
)

log = structlog.get_logger()

INVITE_TOKEN_BYTES = 32


def generate_invite_token() -> str:
    return secrets.token_hex(INVITE_TOKEN_BYTES)


async def _find_redeemable(
    session: AsyncSession, token: str, *, lock: bool = False
) -> Optional[Invite]:
    """Invite by token if it is unused and unexpired."""
    stmt = select(Invite).where(
        Invite.token == token,
        Invite.used_at.is_(None),
        Invite.expires_at > utcnow(),
    )
    if lock:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_invite(
    session: AsyncSession,
    org: Organization,
    inviter_id: uuid.UUID,
    inviter_role: Role,
    req: InviteCreateRequest,
) -> Invite:
    """Persist an invite.

    The invitation email is not queued here; callers hand `invite_message`
    to the dispatcher once the invite is committed.
    """
    if not permissions.has_admin_permission(inviter_role):
        raise Forbidden("only owners and admins can invite members")

    if req.project_id is not None:
        project = await session.get(Project, req.project_id)
        if not project or project.org_id != org.id:
            raise ValidationFailed("project does not belong to this organization")

    invite = Invite(
        token=generate_invite_token(),
        email=req.email,
        org_id=org.id,
        project_id=req.project_id,
        role=req.role.value,
        invited_by_id=inviter_id,
        expires_at=utcnow() + timedelta(days=get_settings().invite_expire_days),
    )
    session.add(invite)
    await session.flush()

    log.info(
        "invite.created",
        invite_id=str(invite.id),
        org_id=str(org.id),
        email=invite.email,
        role=invite.role,
    )
    return invite


async def invite_message(
    session: AsyncSession, invite: Invite, org: Organization
) -> EmailMessage:
    settings = get_settings()
    inviter = await get_user(session, invite.invited_by_id)
    emails = EmailService(settings.app_url, settings.invite_expire_days)
    return emails.invite_message(invite.email, inviter.display_name, org.name, invite.token)


async def get_invite_info(session: AsyncSession, token: str) -> InviteInfoResponse:
    """Public preview of a pending invite."""
    invite = await _find_redeemable(session, token)
    if not invite:
        raise InviteNotFoundError()

    org = await session.get(Organization, invite.org_id)
    if not org:
        raise InviteNotFoundError()

    return InviteInfoResponse(
        organization_name=org.name,
        organization_slug=org.slug,
        email=invite.email,
        expires_at=invite.expires_at,
    )


async def accept_invite(
    session: AsyncSession, token: str, user_id: uuid.UUID
) -> tuple[Organization, Role]:
    """Redeem an invite for the caller.

    Membership insert, `used_at` stamp and the last-org pointer are flushed
    together; any failure leaves the invite unredeemed once the request's
    transaction rolls back.
    """
    invite = await _find_redeemable(session, token, lock=True)
    if not invite:
        raise InviteNotFoundError()

    org = await session.get(Organization, invite.org_id)
    if not org:
        raise InviteNotFoundError()

    if await permissions.find_membership(session, user_id, org.id):
        raise AlreadyMemberError()

    role = Role(invite.role)
    session.add(OrganizationMember(user_id=user_id, org_id=org.id, role=role.value))
    invite.used_at = utcnow()
    session.add(invite)
    try:
        await session.flush()
    except IntegrityError:
        raise AlreadyMemberError()

    user = await get_user(session, user_id)
    await set_last_context(session, user, org_id=org.id)

    log.info(
        "invite.accepted",
        invite_id=str(invite.id),
        org_id=str(org.id),
        user_id=str(user_id),
        role=role.value,
    )
    return org, role
