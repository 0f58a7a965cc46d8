"""Attachment upload, listing and removal.

Upload pipeline:
1. Declared MIME type must be on the allow-list
2. Content is read with the size cap enforced
3. Magic bytes must agree with the declared type; zip-based formats are
   additionally screened for zip bombs
4. Referenced bug / project must exist
5. File is written to the upload directory, then the row is inserted

Deleting removes the row first. The file itself is removed afterwards by a
background task, so a missing or locked file never fails the request.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.config import settings
from bugtracker.core.errors import PermissionAppError, UnprocessableAppError, ValidationAppError
from bugtracker.core.file_validation import read_upload_file_limited
from bugtracker.core.pagination import FilterField, ListParams, ListSpec, Page
from bugtracker.db.models import Attachment, Bug, Project, User
from bugtracker.schemas.attachments import AttachmentOut
from bugtracker.schemas.common import UserSummary
from bugtracker.services.base import fetch_page, get_or_raise, load_users
from bugtracker.services.bug_service import get_bug_or_404
from bugtracker.services.project_service import get_project_or_404
from bugtracker.utils.file_storage import (
    build_stored_name,
    public_path,
    remove_file_best_effort,
    resolve_stored_path,
    save_upload,
)
from bugtracker.utils.file_validators import (
    is_zip_based,
    normalize_mime,
    validate_file_signature,
    validate_zip_safety,
)

logger = logging.getLogger(__name__)

ATTACHMENT_LIST = ListSpec(
    filters=(
        FilterField("issueId", "issue_id"),
        FilterField("projectId", "project_id"),
    ),
    sort_fields={"createdAt": "created_at", "filename": "filename", "size": "size"},
    style="offset",
)

PARENT_ATTACHMENT_LIST = ListSpec(
    sort_fields={"createdAt": "created_at", "filename": "filename"},
    default_page_size=20,
)

PRIVILEGED_ROLES = frozenset({"admin", "manager"})


class AttachmentService:
    def __init__(self, session: AsyncSession, upload_dir: str | Path | None = None) -> None:
        self.session = session
        self.upload_dir = Path(upload_dir if upload_dir is not None else settings.app.upload_dir)

    async def _get(self, attachment_id: int) -> Attachment:
        return await get_or_raise(
            self.session,
            Attachment,
            attachment_id,
            code="ATTACHMENT_NOT_FOUND",
            message="Attachment not found",
        )

    async def _page(self, params: ListParams, scope=()) -> Page[AttachmentOut]:
        rows, meta = await fetch_page(self.session, Attachment, params, scope=scope)
        uploaders = await load_users(self.session, {row.uploader_id for row in rows})

        data = []
        for row in rows:
            out = AttachmentOut.model_validate(row)
            uploader = uploaders.get(row.uploader_id) if row.uploader_id is not None else None
            out.uploader = UserSummary.model_validate(uploader) if uploader else None
            data.append(out)
        return Page(data=data, pagination=meta)

    async def list(self, params: ListParams) -> Page[AttachmentOut]:
        return await self._page(params)

    async def list_for_bug(self, bug_id: int, params: ListParams) -> Page[AttachmentOut]:
        await get_bug_or_404(self.session, bug_id)
        return await self._page(params, scope=[Attachment.issue_id == bug_id])

    async def list_for_project(self, project_id: int, params: ListParams) -> Page[AttachmentOut]:
        await get_project_or_404(self.session, project_id)
        return await self._page(params, scope=[Attachment.project_id == project_id])

    async def get(self, attachment_id: int) -> AttachmentOut:
        return AttachmentOut.model_validate(await self._get(attachment_id))

    def _check_content(self, data: bytes, mime: str) -> None:
        if not validate_file_signature(data, mime):
            raise UnprocessableAppError(
                code="FILE_REJECTED",
                message="File content does not match its declared type",
                details={"mime": mime},
            )
        if is_zip_based(mime):
            try:
                validate_zip_safety(data)
            except ValueError as exc:
                raise UnprocessableAppError(
                    code="FILE_REJECTED",
                    message=str(exc),
                    details={"mime": mime},
                ) from exc

    async def upload(
        self,
        file: UploadFile | None,
        *,
        issue_id: int | None = None,
        project_id: int | None = None,
        uploader_id: int | None = None,
    ) -> AttachmentOut:
        """Validate, store and register an uploaded file.

        Raises:
            ValidationAppError: MISSING_FILE, EMPTY_FILE or INVALID_FILE_TYPE.
            PayloadTooLargeAppError: FILE_TOO_LARGE.
            UnprocessableAppError: FILE_REJECTED.
            NotFoundAppError: BUG_NOT_FOUND / PROJECT_NOT_FOUND (400).
        """
        if file is None or not file.filename:
            raise ValidationAppError(code="MISSING_FILE", message="No file provided")

        mime = normalize_mime(file.content_type)
        if mime not in settings.app.allowed_mime_types:
            logger.info("attachment.rejected_type", extra={"mime": mime})
            raise ValidationAppError(
                code="INVALID_FILE_TYPE",
                message="File type not allowed",
                details={"mime": mime, "allowed": sorted(settings.app.allowed_mime_types)},
            )

        data = await read_upload_file_limited(file)
        if not data:
            raise ValidationAppError(code="EMPTY_FILE", message="Uploaded file is empty")
        self._check_content(data, mime)

        if issue_id is not None:
            await get_or_raise(
                self.session, Bug, issue_id, code="BUG_NOT_FOUND", message="Bug not found", status=400
            )
        if project_id is not None:
            await get_or_raise(
                self.session, Project, project_id,
                code="PROJECT_NOT_FOUND", message="Project not found", status=400,
            )

        stored_name = build_stored_name(file.filename)
        target = await save_upload(self.upload_dir, stored_name, data)

        attachment = Attachment(
            filename=file.filename,
            stored_name=stored_name,
            path=public_path(stored_name),
            mime=mime,
            size=len(data),
            issue_id=issue_id,
            project_id=project_id,
            uploader_id=uploader_id,
        )
        self.session.add(attachment)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            remove_file_best_effort(target)
            raise

        logger.info(
            "attachment.uploaded",
            extra={
                "attachment_id": attachment.id,
                "mime": mime,
                "size": attachment.size,
                "issue_id": issue_id,
                "project_id": project_id,
            },
        )
        return AttachmentOut.model_validate(attachment)

    async def delete(self, attachment_id: int, *, actor_id: int | None = None) -> Path:
        """Delete the row and return the stored file path for later cleanup.

        When both the acting user and the uploader are known, only the
        uploader or an admin/manager may delete.

        Raises:
            NotFoundAppError: ATTACHMENT_NOT_FOUND.
            PermissionAppError: FORBIDDEN.
        """
        attachment = await self._get(attachment_id)

        if actor_id is not None and attachment.uploader_id is not None and actor_id != attachment.uploader_id:
            actor = await self.session.get(User, actor_id)
            if actor is None or actor.role not in PRIVILEGED_ROLES:
                logger.warning(
                    "attachment.delete_forbidden",
                    extra={"attachment_id": attachment_id, "actor_id": actor_id},
                )
                raise PermissionAppError(
                    code="FORBIDDEN",
                    message="Only the uploader or an admin/manager can delete this attachment",
                )

        target = resolve_stored_path(self.upload_dir, attachment.stored_name)
        await self.session.delete(attachment)
        await self.session.commit()

        logger.info("attachment.deleted", extra={"attachment_id": attachment_id, "actor_id": actor_id})
        return target
