"""Pydantic schemas for attachments."""

from __future__ import annotations

from datetime import datetime

from bugtracker.schemas.common import CamelModel, UserSummary


class AttachmentOut(CamelModel):
    id: int
    filename: str
    stored_name: str
    path: str
    mime: str
    size: int
    issue_id: int | None = None
    project_id: int | None = None
    uploader_id: int | None = None
    created_at: datetime
    uploader: UserSummary | None = None
