"""Bug endpoints, including the per-bug comment, history and attachment lists."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from bugtracker.api.deps import (
    ActorId,
    AttachmentServiceDep,
    BugServiceDep,
    CommentServiceDep,
    PathId,
    list_params,
)
from bugtracker.core.auth import verify_api_key
from bugtracker.core.pagination import ListParams
from bugtracker.core.rate_limit import NAMESPACE_API, enforce_rate_limit
from bugtracker.schemas.attachments import AttachmentOut
from bugtracker.schemas.bugs import BugCreate, BugOut, BugUpdate, CommentCreate, CommentOut, HistoryOut
from bugtracker.schemas.common import DataEnvelope, DeletedEnvelope, ListEnvelope
from bugtracker.services.attachment_service import PARENT_ATTACHMENT_LIST
from bugtracker.services.bug_service import BUG_LIST, COMMENT_LIST, HISTORY_LIST

router = APIRouter(
    prefix="/bugs",
    tags=["Bugs"],
    dependencies=[Depends(verify_api_key), Depends(enforce_rate_limit(NAMESPACE_API))],
)


@router.get("", response_model=ListEnvelope[BugOut])
async def list_bugs(
    service: BugServiceDep,
    params: Annotated[ListParams, Depends(list_params(BUG_LIST))],
) -> ListEnvelope[BugOut]:
    """List bugs with their project and reporter summaries.

    Query parameters:
        status, priority: enum filters.
        projectId, assigneeId, reporterId: id filters.
        search: substring of title or description.
        sort: createdAt | updatedAt | priority | status | title, with order=asc|desc.
        page, pageSize: pagination.
    """
    return ListEnvelope[BugOut].from_page(await service.list(params))


@router.post("", response_model=DataEnvelope[BugOut], status_code=201)
async def create_bug(payload: BugCreate, service: BugServiceDep) -> DataEnvelope[BugOut]:
    """Report a bug.

    Raises:
        NotFoundAppError: 400 PROJECT_NOT_FOUND, REPORTER_NOT_FOUND or ASSIGNEE_NOT_FOUND.
    """
    return DataEnvelope[BugOut](data=await service.create(payload))


@router.get("/{id}", response_model=DataEnvelope[BugOut])
async def get_bug(bug_id: PathId, service: BugServiceDep) -> DataEnvelope[BugOut]:
    return DataEnvelope[BugOut](data=await service.get(bug_id))


@router.put("/{id}", response_model=DataEnvelope[BugOut])
@router.patch("/{id}", response_model=DataEnvelope[BugOut])
async def update_bug(
    bug_id: PathId, payload: BugUpdate, service: BugServiceDep, actor_id: ActorId
) -> DataEnvelope[BugOut]:
    """Partially update a bug; each changed field is written to its history."""
    return DataEnvelope[BugOut](data=await service.update(bug_id, payload, actor_id=actor_id))


@router.delete("/{id}", response_model=DeletedEnvelope[BugOut])
async def delete_bug(bug_id: PathId, service: BugServiceDep) -> DeletedEnvelope[BugOut]:
    deleted = await service.delete(bug_id)
    return DeletedEnvelope[BugOut](data=deleted, message="Bug deleted successfully")


@router.get("/{id}/comments", response_model=ListEnvelope[CommentOut])
async def list_bug_comments(
    bug_id: PathId,
    service: CommentServiceDep,
    params: Annotated[ListParams, Depends(list_params(COMMENT_LIST))],
) -> ListEnvelope[CommentOut]:
    return ListEnvelope[CommentOut].from_page(await service.list_for_bug(bug_id, params))


@router.post("/{id}/comments", response_model=DataEnvelope[CommentOut], status_code=201)
async def create_bug_comment(
    bug_id: PathId, payload: CommentCreate, service: CommentServiceDep
) -> DataEnvelope[CommentOut]:
    """Comment on a bug.

    Raises:
        NotFoundAppError: 404 BUG_NOT_FOUND or AUTHOR_NOT_FOUND.
    """
    return DataEnvelope[CommentOut](data=await service.create(bug_id, payload))


@router.get("/{id}/history", response_model=ListEnvelope[HistoryOut])
async def list_bug_history(
    bug_id: PathId,
    service: BugServiceDep,
    params: Annotated[ListParams, Depends(list_params(HISTORY_LIST))],
) -> ListEnvelope[HistoryOut]:
    """Field changes of a bug, newest first."""
    return ListEnvelope[HistoryOut].from_page(await service.history(bug_id, params))


@router.get("/{id}/attachments", response_model=ListEnvelope[AttachmentOut])
async def list_bug_attachments(
    bug_id: PathId,
    service: AttachmentServiceDep,
    params: Annotated[ListParams, Depends(list_params(PARENT_ATTACHMENT_LIST))],
) -> ListEnvelope[AttachmentOut]:
    return ListEnvelope[AttachmentOut].from_page(await service.list_for_bug(bug_id, params))
