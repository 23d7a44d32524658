"""
Shared fixtures: in-memory SQLite database, API client, captured email.

Settings are read once at import time, so the environment is prepared here
before anything under `app` is imported.
"""

from __future__ import annotations

import os
import uuid

os.environ.setdefault("TT_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TT_CREATE_TABLES_ON_STARTUP", "false")
os.environ.setdefault("TT_BCRYPT_ROUNDS", "4")
os.environ.setdefault("TT_SECRET_KEY", "test-secret-key-with-at-least-32-bytes!")
os.environ.setdefault("TT_LOG_FORMAT", "text")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, select

import app.models  # noqa: F401  (populate metadata)
from app.core.database import get_session
from app.main import app as fastapi_app
from app.models.invite import Invite
from app.services.email import EmailMessage
from app.tasks.email_dispatch import EmailDispatcher, get_email_dispatcher


class RecordingSender:
    """Email sender that keeps every message in memory."""

    def __init__(self):
        self.sent: list[EmailMessage] = []

    async def send(self, message: EmailMessage) -> None:
        self.sent.append(message)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


# ---------------------------------------------------------------------------
# Email
# ---------------------------------------------------------------------------

@pytest.fixture
def outbox():
    return RecordingSender()


@pytest.fixture
async def dispatcher(outbox):
    d = EmailDispatcher(outbox, max_queue_size=10)
    d.start()
    yield d
    await d.stop()


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------

@pytest.fixture
async def client(session_factory, dispatcher):
    async def override_get_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    fastapi_app.dependency_overrides[get_session] = override_get_session
    fastapi_app.dependency_overrides[get_email_dispatcher] = lambda: dispatcher
    async with AsyncClient(
        transport=ASGITransport(app=fastapi_app), base_url="http://test"
    ) as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()


class FailingCommitSession(AsyncSession):
    """Session whose commit is lost, as when the database drops mid-request."""

    async def commit(self) -> None:
        raise OperationalError("COMMIT", {}, ConnectionError("connection lost"))


@pytest.fixture
async def lost_commits(client, engine):
    """Factory: from the call on, request transactions never commit.

    Returns a client that reports the failure as a 500 instead of raising.
    """

    async def override_get_session():
        async with FailingCommitSession(engine, expire_on_commit=False) as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    async with AsyncClient(
        transport=ASGITransport(app=fastapi_app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:

        def _install():
            fastapi_app.dependency_overrides[get_session] = override_get_session
            return ac

        yield _install


@pytest.fixture
def register(client):
    """Factory: register a user and return (auth headers, response body)."""

    async def _register(email: str, display_name: str = "Test User", password: str = "password123"):
        resp = await client.post(
            "/api/v1/auth/register",
            json={"email": email, "password": password, "display_name": display_name},
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return {"Authorization": f"Bearer {body['access_token']}"}, body

    return _register


@pytest.fixture
def create_org(client):
    """Factory: create an org as the given user and return its JSON."""

    async def _create_org(headers: dict, slug: str, name: str | None = None):
        resp = await client.post(
            "/api/v1/organizations",
            json={"name": name or slug.title(), "slug": slug},
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create_org


@pytest.fixture
def invite_member(client, session_factory):
    """Factory: invite `invitee_headers`' user into an org and accept it."""

    async def _invite_member(
        admin_headers: dict, slug: str, email: str, invitee_headers: dict, role: str = "member"
    ):
        resp = await client.post(
            f"/api/v1/organizations/{slug}/invites",
            json={"email": email, "role": role},
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        async with session_factory() as s:
            invite_id = uuid.UUID(resp.json()["id"])
            result = await s.execute(select(Invite).where(Invite.id == invite_id))
            token = result.scalar_one().token
        accepted = await client.post(
            f"/api/v1/invites/{token}/accept", headers=invitee_headers
        )
        assert accepted.status_code == 200, accepted.text
        return token

    return _invite_member
