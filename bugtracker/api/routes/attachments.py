"""Attachment endpoints (multipart upload, listing, removal)."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile

from bugtracker.api.deps import ActorId, AttachmentServiceDep, PathId, list_params, parse_positive_id
from bugtracker.core.auth import verify_api_key
from bugtracker.core.pagination import ListParams
from bugtracker.core.rate_limit import NAMESPACE_API, enforce_rate_limit
from bugtracker.schemas.attachments import AttachmentOut
from bugtracker.schemas.common import DataEnvelope, ListEnvelope
from bugtracker.services.attachment_service import ATTACHMENT_LIST
from bugtracker.utils.file_storage import remove_file_best_effort

router = APIRouter(
    prefix="/attachments",
    tags=["Attachments"],
    dependencies=[Depends(verify_api_key), Depends(enforce_rate_limit(NAMESPACE_API))],
)


def _optional_id(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    return parse_positive_id(raw)


@router.get("", response_model=ListEnvelope[AttachmentOut])
async def list_attachments(
    service: AttachmentServiceDep,
    params: Annotated[ListParams, Depends(list_params(ATTACHMENT_LIST))],
) -> ListEnvelope[AttachmentOut]:
    """List attachments; offset style (``limit``/``offset``), filter by ``issueId``/``projectId``."""
    return ListEnvelope[AttachmentOut].from_page(await service.list(params))


@router.post("", response_model=DataEnvelope[AttachmentOut], status_code=201)
async def upload_attachment(
    service: AttachmentServiceDep,
    actor_id: ActorId,
    file: Annotated[UploadFile | None, File(description="File to attach")] = None,
    issue_id: Annotated[str | None, Form(alias="issueId")] = None,
    project_id: Annotated[str | None, Form(alias="projectId")] = None,
) -> DataEnvelope[AttachmentOut]:
    """Upload a file, optionally linked to a bug and/or a project.

    Raises:
        ValidationAppError: 400 MISSING_FILE or INVALID_FILE_TYPE.
        PayloadTooLargeAppError: 413 FILE_TOO_LARGE.
        UnprocessableAppError: 422 FILE_REJECTED.
        NotFoundAppError: 400 BUG_NOT_FOUND or PROJECT_NOT_FOUND.
    """
    attachment = await service.upload(
        file,
        issue_id=_optional_id(issue_id),
        project_id=_optional_id(project_id),
        uploader_id=actor_id,
    )
    return DataEnvelope[AttachmentOut](data=attachment)


@router.get("/{id}", response_model=DataEnvelope[AttachmentOut])
async def get_attachment(attachment_id: PathId, service: AttachmentServiceDep) -> DataEnvelope[AttachmentOut]:
    return DataEnvelope[AttachmentOut](data=await service.get(attachment_id))


@router.delete("/{id}", status_code=204)
async def delete_attachment(
    attachment_id: PathId,
    service: AttachmentServiceDep,
    actor_id: ActorId,
    background_tasks: BackgroundTasks,
) -> None:
    """Delete an attachment; the stored file is removed after the response is sent.

    Raises:
        PermissionAppError: 403 FORBIDDEN.
        NotFoundAppError: 404 ATTACHMENT_NOT_FOUND.
    """
    stored_file = await service.delete(attachment_id, actor_id=actor_id)
    background_tasks.add_task(remove_file_best_effort, stored_file)
