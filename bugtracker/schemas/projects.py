"""Pydantic schemas for projects and project membership."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import StringConstraints, field_validator

from bugtracker.schemas.common import CamelModel, PositiveId, Title, UserBrief

ProjectStatus = Literal["active", "archived"]
MemberRole = Literal["owner", "maintainer", "contributor", "viewer"]

ProjectKey = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=2, max_length=5, pattern=r"^[A-Z]+$"),
]
Description = Annotated[str, StringConstraints(strip_whitespace=True)]


class ProjectCreate(CamelModel):
    name: Title
    key: ProjectKey
    description: Description | None = None
    status: ProjectStatus = "active"
    owner_id: PositiveId


class ProjectUpdate(CamelModel):
    name: Title | None = None
    key: ProjectKey | None = None
    description: Description | None = None
    status: ProjectStatus | None = None
    owner_id: PositiveId | None = None

    @field_validator("name", "key", "status", "owner_id")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("field cannot be null")
        return value


class ProjectOut(CamelModel):
    id: int
    name: str
    key: str
    description: str | None = None
    status: str
    owner_id: int
    created_at: datetime
    updated_at: datetime


class MemberAdd(CamelModel):
    user_id: PositiveId
    role: MemberRole


class MemberRoleUpdate(CamelModel):
    user_id: PositiveId
    role: MemberRole


class MemberRemove(CamelModel):
    user_id: PositiveId


class MemberOut(CamelModel):
    id: int
    project_id: int
    user_id: int
    role: str
    created_at: datetime
    user: UserBrief | None = None
