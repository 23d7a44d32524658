"""
Integration tests for Project endpoints.

Covers creation rights, private visibility, explicit grants and the
last-project pointer.
"""

from __future__ import annotations

import pytest


@pytest.fixture
async def team(client, register, create_org, invite_member):
    """Org "acme" with an owner, an admin and a plain member."""
    owner, owner_body = await register("owner@example.com", "Owner")
    admin, admin_body = await register("admin@example.com", "Admin")
    member, member_body = await register("member@example.com", "Member")
    org = await create_org(owner, "acme")
    await invite_member(owner, "acme", "admin@example.com", admin, role="admin")
    await invite_member(owner, "acme", "member@example.com", member)
    return {
        "org": org,
        "owner": owner,
        "admin": admin,
        "member": member,
        "owner_id": owner_body["user"]["id"],
        "admin_id": admin_body["user"]["id"],
        "member_id": member_body["user"]["id"],
    }


async def _create_project(client, headers, name, is_private=False, slug="acme"):
    return await client.post(
        f"/api/v1/organizations/{slug}/projects",
        json={"name": name, "is_private": is_private},
        headers=headers,
    )


class TestCreateProject:
    async def test_admin_can_create(self, client, team):
        resp = await _create_project(client, team["admin"], "Roadmap")
        assert resp.status_code == 201
        body = resp.json()
        assert body["name"] == "Roadmap"
        assert body["permission"] == "edit"
        assert body["organization_id"] == team["org"]["id"]

    async def test_member_cannot_create(self, client, team):
        resp = await _create_project(client, team["member"], "Roadmap")
        assert resp.status_code == 403

    async def test_blank_name_rejected(self, client, team):
        resp = await _create_project(client, team["owner"], "   ")
        assert resp.status_code == 422

    async def test_sets_last_project(self, client, team):
        project = (await _create_project(client, team["owner"], "Roadmap")).json()
        me = (await client.get("/api/v1/me", headers=team["owner"])).json()
        assert me["last_project_id"] == project["id"]
        assert me["last_org_id"] == team["org"]["id"]

    async def test_private_creator_gets_edit_grant(self, client, team):
        project = (await _create_project(client, team["admin"], "Secret", is_private=True)).json()
        resp = await client.get(
            f"/api/v1/organizations/acme/projects/{project['id']}/members",
            headers=team["admin"],
        )
        assert resp.status_code == 200
        assert [(m["user_id"], m["permission"]) for m in resp.json()] == [
            (team["admin_id"], "edit")
        ]


class TestProjectVisibility:
    async def test_private_hidden_from_members_and_owner(self, client, team):
        await _create_project(client, team["admin"], "Secret", is_private=True)

        for who in ("member", "owner"):
            names = [
                p["name"]
                for p in (await client.get("/api/v1/organizations/acme/projects", headers=team[who])).json()
            ]
            assert names == ["General"], who

    async def test_private_get_forbidden_without_grant(self, client, team):
        project = (await _create_project(client, team["admin"], "Secret", is_private=True)).json()
        resp = await client.get(
            f"/api/v1/organizations/acme/projects/{project['id']}", headers=team["owner"]
        )
        assert resp.status_code == 403

    async def test_public_defaults_to_view(self, client, team):
        project = (await _create_project(client, team["owner"], "Roadmap")).json()
        resp = await client.get(
            f"/api/v1/organizations/acme/projects/{project['id']}", headers=team["member"]
        )
        assert resp.status_code == 200
        assert resp.json()["permission"] == "view"

    async def test_get_records_last_project(self, client, team):
        project = (await _create_project(client, team["owner"], "Roadmap")).json()
        await client.get(
            f"/api/v1/organizations/acme/projects/{project['id']}", headers=team["member"]
        )
        me = (await client.get("/api/v1/me", headers=team["member"])).json()
        assert me["last_project_id"] == project["id"]

    async def test_project_from_other_org_is_not_found(self, client, team, create_org):
        other = await create_org(team["owner"], "other")
        projects = (await client.get("/api/v1/organizations/other/projects", headers=team["owner"])).json()
        assert projects and projects[0]["organization_id"] == other["id"]
        resp = await client.get(
            f"/api/v1/organizations/acme/projects/{projects[0]['id']}", headers=team["owner"]
        )
        assert resp.status_code == 404

    async def test_non_member_cannot_list(self, client, team, register):
        stranger, _ = await register("stranger@example.com")
        resp = await client.get("/api/v1/organizations/acme/projects", headers=stranger)
        assert resp.status_code == 403


class TestProjectMembers:
    async def test_grant_makes_private_visible(self, client, team):
        project = (await _create_project(client, team["admin"], "Secret", is_private=True)).json()
        resp = await client.post(
            f"/api/v1/organizations/acme/projects/{project['id']}/members",
            json={"user_id": team["member_id"], "permission": "view"},
            headers=team["admin"],
        )
        assert resp.status_code == 201
        assert resp.json()["email"] == "member@example.com"

        names = [
            p["name"]
            for p in (await client.get("/api/v1/organizations/acme/projects", headers=team["member"])).json()
        ]
        assert "Secret" in names

    async def test_edit_grant_overrides_public_default(self, client, team):
        project = (await _create_project(client, team["owner"], "Roadmap")).json()
        await client.post(
            f"/api/v1/organizations/acme/projects/{project['id']}/members",
            json={"user_id": team["member_id"], "permission": "edit"},
            headers=team["owner"],
        )
        resp = await client.get(
            f"/api/v1/organizations/acme/projects/{project['id']}", headers=team["member"]
        )
        assert resp.json()["permission"] == "edit"

    async def test_duplicate_grant_conflict(self, client, team):
        project = (await _create_project(client, team["owner"], "Roadmap")).json()
        url = f"/api/v1/organizations/acme/projects/{project['id']}/members"
        payload = {"user_id": team["member_id"], "permission": "view"}
        assert (await client.post(url, json=payload, headers=team["owner"])).status_code == 201
        resp = await client.post(url, json=payload, headers=team["owner"])
        assert resp.status_code == 409

    async def test_target_must_be_org_member(self, client, team, register):
        _, stranger = await register("stranger@example.com")
        project = (await _create_project(client, team["owner"], "Roadmap")).json()
        resp = await client.post(
            f"/api/v1/organizations/acme/projects/{project['id']}/members",
            json={"user_id": stranger["user"]["id"]},
            headers=team["owner"],
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_FAILED"

    async def test_member_cannot_grant(self, client, team):
        project = (await _create_project(client, team["owner"], "Roadmap")).json()
        resp = await client.post(
            f"/api/v1/organizations/acme/projects/{project['id']}/members",
            json={"user_id": team["member_id"]},
            headers=team["member"],
        )
        assert resp.status_code == 403

    async def test_list_members_requires_view(self, client, team):
        project = (await _create_project(client, team["admin"], "Secret", is_private=True)).json()
        resp = await client.get(
            f"/api/v1/organizations/acme/projects/{project['id']}/members",
            headers=team["member"],
        )
        assert resp.status_code == 403
