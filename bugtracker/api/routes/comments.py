from __future__ import annotations

from fastapi import APIRouter, Depends

from bugtracker.api.deps import CommentServiceDep, PathId
from bugtracker.core.auth import verify_api_key
from bugtracker.core.rate_limit import NAMESPACE_API, enforce_rate_limit
from bugtracker.schemas.bugs import CommentOut, CommentUpdate
from bugtracker.schemas.common import DataEnvelope, DeletedEnvelope

router = APIRouter(
    prefix="/comments",
    tags=["Comments"],
    dependencies=[Depends(verify_api_key), Depends(enforce_rate_limit(NAMESPACE_API))],
)


@router.get("/{id}", response_model=DataEnvelope[CommentOut])
async def get_comment(comment_id: PathId, service: CommentServiceDep) -> DataEnvelope[CommentOut]:
    return DataEnvelope[CommentOut](data=await service.get(comment_id))


@router.put("/{id}", response_model=DataEnvelope[CommentOut])
@router.patch("/{id}", response_model=DataEnvelope[CommentOut])
async def update_comment(
    comment_id: PathId, payload: CommentUpdate, service: CommentServiceDep
) -> DataEnvelope[CommentOut]:
    return DataEnvelope[CommentOut](data=await service.update(comment_id, payload))


@router.delete("/{id}", response_model=DeletedEnvelope[CommentOut])
async def delete_comment(comment_id: PathId, service: CommentServiceDep) -> DeletedEnvelope[CommentOut]:
    deleted = await service.delete(comment_id)
    return DeletedEnvelope[CommentOut](data=deleted, message="Comment deleted successfully")
