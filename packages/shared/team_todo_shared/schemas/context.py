"""Navigation context schemas (last visited organization / project)."""

from __future__ import annotations

import uuid
from typing import Optional

from pydantic import BaseModel

from .organizations import OrgResponse
from .projects import ProjectRead

# Frontend route for users with nowhere to land
CREATE_ORG_PATH = "/org/new"


def org_path(slug: str) -> str:
    return f"/org/{slug}"


def project_path(slug: str, project_id: uuid.UUID) -> str:
    return f"/org/{slug}/projects/{project_id}"


class ContextResponse(BaseModel):
    has_context: bool = False
    organization: Optional[OrgResponse] = None
    project: Optional[ProjectRead] = None
    redirect_url: str = CREATE_ORG_PATH


class ContextUpdateRequest(BaseModel):
    org_id: Optional[uuid.UUID] = None
    project_id: Optional[uuid.UUID] = None
