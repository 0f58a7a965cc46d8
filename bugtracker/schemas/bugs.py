"""Pydantic schemas for bugs, comments and bug history."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import field_validator

from bugtracker.schemas.common import CamelModel, NonEmptyText, PositiveId, ProjectSummary, Title, UserBrief, UserSummary

BugPriority = Literal["low", "medium", "high", "critical"]
BugStatus = Literal["open", "in_progress", "resolved", "closed"]


class BugCreate(CamelModel):
    project_id: PositiveId
    title: Title
    description: NonEmptyText
    priority: BugPriority = "medium"
    status: BugStatus = "open"
    reporter_id: PositiveId
    assignee_id: PositiveId | None = None


class BugUpdate(CamelModel):
    """Partial update; ``assigneeId: null`` unassigns the bug."""

    project_id: PositiveId | None = None
    title: Title | None = None
    description: NonEmptyText | None = None
    priority: BugPriority | None = None
    status: BugStatus | None = None
    reporter_id: PositiveId | None = None
    assignee_id: PositiveId | None = None

    @field_validator("project_id", "title", "description", "priority", "status", "reporter_id")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("field cannot be null")
        return value


class BugOut(CamelModel):
    id: int
    project_id: int
    title: str
    description: str
    priority: str
    status: str
    reporter_id: int
    assignee_id: int | None = None
    created_at: datetime
    updated_at: datetime
    project: ProjectSummary | None = None
    reporter: UserSummary | None = None
    assignee: UserSummary | None = None


class CommentCreate(CamelModel):
    author_id: PositiveId
    body: NonEmptyText


class CommentUpdate(CamelModel):
    body: NonEmptyText


class CommentOut(CamelModel):
    id: int
    bug_id: int
    author_id: int
    body: str
    created_at: datetime
    updated_at: datetime
    author: UserBrief | None = None


class HistoryOut(CamelModel):
    id: int
    bug_id: int
    user_id: int
    field: str
    old_value: str | None = None
    new_value: str | None = None
    created_at: datetime
    user: UserBrief | None = None
