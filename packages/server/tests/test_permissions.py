"""
Tests for membership and project permission resolution.

Covers:
- Org role lookup and the admin-level predicate
- Public/private project visibility and explicit grants
- Org role never overriding project permission
"""

from __future__ import annotations

import uuid

import pytest

from app.core.errors import Forbidden, NotAMemberError, NotFound
from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.models.project import Project
from app.models.project_member import ProjectMember
from app.models.user import User
from app.services import permissions
from team_todo_shared.schemas.common import Permission, Role


async def _user(session, email: str) -> User:
    user = User(email=email, password_hash="x", display_name=email.split("@")[0])
    session.add(user)
    await session.flush()
    return user


@pytest.fixture
async def org_setup(session):
    """Org with an owner, an admin and a member, plus one public and one private project."""
    owner = await _user(session, "owner@example.com")
    admin = await _user(session, "admin@example.com")
    member = await _user(session, "member@example.com")
    outsider = await _user(session, "outsider@example.com")

    org = Organization(name="Acme", slug="acme")
    session.add(org)
    await session.flush()
    for user, role in ((owner, Role.OWNER), (admin, Role.ADMIN), (member, Role.MEMBER)):
        session.add(OrganizationMember(user_id=user.id, org_id=org.id, role=role.value))

    public = Project(org_id=org.id, name="General", is_private=False)
    private = Project(org_id=org.id, name="Secret", is_private=True)
    session.add_all([public, private])
    await session.flush()

    return {
        "org": org,
        "owner": owner,
        "admin": admin,
        "member": member,
        "outsider": outsider,
        "public": public,
        "private": private,
    }


class TestRolePredicates:
    def test_admin_roles(self):
        assert permissions.has_admin_permission(Role.OWNER)
        assert permissions.has_admin_permission(Role.ADMIN)
        assert not permissions.has_admin_permission(Role.MEMBER)

    def test_accepts_stored_strings(self):
        assert permissions.has_admin_permission("admin")


class TestOrgRole:
    async def test_resolves_each_role(self, session, org_setup):
        org = org_setup["org"]
        assert await permissions.resolve_org_role(session, org_setup["owner"].id, org.id) == Role.OWNER
        assert await permissions.resolve_org_role(session, org_setup["admin"].id, org.id) == Role.ADMIN
        assert await permissions.resolve_org_role(session, org_setup["member"].id, org.id) == Role.MEMBER

    async def test_non_member(self, session, org_setup):
        with pytest.raises(NotAMemberError):
            await permissions.resolve_org_role(session, org_setup["outsider"].id, org_setup["org"].id)

    async def test_non_member_is_forbidden(self):
        assert issubclass(NotAMemberError, Forbidden)

    async def test_org_by_slug(self, session, org_setup):
        org = await permissions.get_org_by_slug(session, "acme")
        assert org.id == org_setup["org"].id
        with pytest.raises(NotFound):
            await permissions.get_org_by_slug(session, "missing")


class TestProjectPermission:
    async def test_public_defaults_to_view(self, session, org_setup):
        perm = await permissions.resolve_project_permission(
            session, org_setup["member"].id, org_setup["public"]
        )
        assert perm == Permission.VIEW

    async def test_explicit_grant_overrides_public_default(self, session, org_setup):
        session.add(
            ProjectMember(
                user_id=org_setup["member"].id,
                project_id=org_setup["public"].id,
                permission=Permission.EDIT.value,
            )
        )
        await session.flush()
        perm = await permissions.resolve_project_permission(
            session, org_setup["member"].id, org_setup["public"]
        )
        assert perm == Permission.EDIT

    async def test_private_without_grant_forbidden(self, session, org_setup):
        with pytest.raises(Forbidden):
            await permissions.resolve_project_permission(
                session, org_setup["member"].id, org_setup["private"]
            )

    async def test_owner_without_grant_forbidden_on_private(self, session, org_setup):
        with pytest.raises(Forbidden):
            await permissions.resolve_project_permission(
                session, org_setup["owner"].id, org_setup["private"]
            )

    async def test_private_with_view_grant(self, session, org_setup):
        session.add(
            ProjectMember(
                user_id=org_setup["member"].id,
                project_id=org_setup["private"].id,
                permission=Permission.VIEW.value,
            )
        )
        await session.flush()
        perm = await permissions.resolve_project_permission(
            session, org_setup["member"].id, org_setup["private"]
        )
        assert perm == Permission.VIEW

    def test_permission_for_without_session(self):
        public = Project(org_id=uuid.uuid4(), name="p", is_private=False)
        private = Project(org_id=uuid.uuid4(), name="q", is_private=True)
        assert permissions.permission_for(public, None) == Permission.VIEW
        assert permissions.permission_for(private, None) is None


class TestVisibleProjects:
    async def test_private_filtered_without_grant(self, session, org_setup):
        visible = await permissions.visible_projects(
            session, org_setup["member"].id, org_setup["org"].id
        )
        assert [(p.name, perm) for p, perm in visible] == [("General", Permission.VIEW)]

    async def test_private_included_with_grant(self, session, org_setup):
        session.add(
            ProjectMember(
                user_id=org_setup["admin"].id,
                project_id=org_setup["private"].id,
                permission=Permission.EDIT.value,
            )
        )
        await session.flush()
        visible = await permissions.visible_projects(
            session, org_setup["admin"].id, org_setup["org"].id
        )
        assert {p.name: perm for p, perm in visible} == {
            "General": Permission.VIEW,
            "Secret": Permission.EDIT,
        }

    async def test_other_users_grants_ignored(self, session, org_setup):
        session.add(
            ProjectMember(
                user_id=org_setup["admin"].id,
                project_id=org_setup["private"].id,
                permission=Permission.EDIT.value,
            )
        )
        await session.flush()
        visible = await permissions.visible_projects(
            session, org_setup["member"].id, org_setup["org"].id
        )
        assert [p.name for p, _ in visible] == ["General"]
