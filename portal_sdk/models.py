"""Pydantic models for the portal API.

Field aliases mirror the wire format of the project-creation backend so that
``model_dump(by_alias=True)`` produces the exact request body.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ── Roles ────────────────────────────────────────────────────────

class Role(str, Enum):
    OWNER = "project-owner"
    EDITOR = "project-editor"
    VIEWER = "project-viewer"

    @property
    def label(self) -> str:
        return _ROLE_LABELS[self]

    @property
    def description(self) -> str:
        return _ROLE_DESCRIPTIONS[self]

    @classmethod
    def parse(cls, value: str) -> "Role":
        """Accept a wire value (``project-editor``) or a short name (``editor``)."""
        key = value.strip().lower()
        for role in cls:
            if key in (role.value, role.name.lower(), role.label.lower()):
                return role
        raise ValueError(f"Unknown role: {value!r}")


_ROLE_LABELS = {
    Role.OWNER: "Owner",
    Role.EDITOR: "Editor",
    Role.VIEWER: "Viewer",
}

_ROLE_DESCRIPTIONS = {
    Role.OWNER: "Full access to project resources",
    Role.EDITOR: "Can modify project resources",
    Role.VIEWER: "Read-only access to project",
}

DEFAULT_ROLE = Role.OWNER


# ── Project creation ─────────────────────────────────────────────

class UserGroup(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    user_ids: str = Field(alias="userIds", min_length=1)
    role: Role


class ProjectSubmission(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    app_id: str = Field(alias="appID", pattern=r"^[a-z0-9-]{3,63}$")
    description: str = Field(default="", max_length=500)
    user_groups: List[UserGroup] = Field(alias="userGroups", min_length=1)


class ApiResponse(BaseModel):
    success: bool
    message: str = ""


# ── Health ───────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str
    timestamp: Optional[str] = None
    version: Optional[str] = None
    environment: Optional[str] = None
