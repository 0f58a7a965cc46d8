"""Project and project membership endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query

from bugtracker.api.deps import (
    AttachmentServiceDep,
    MembershipServiceDep,
    PathId,
    ProjectServiceDep,
    list_params,
    parse_positive_id,
)
from bugtracker.core.auth import verify_api_key
from bugtracker.core.errors import ValidationAppError
from bugtracker.core.pagination import ListParams
from bugtracker.core.rate_limit import NAMESPACE_API, enforce_rate_limit
from bugtracker.schemas.attachments import AttachmentOut
from bugtracker.schemas.common import DataEnvelope, DeletedEnvelope, ListEnvelope
from bugtracker.schemas.projects import (
    MemberAdd,
    MemberOut,
    MemberRemove,
    MemberRoleUpdate,
    ProjectCreate,
    ProjectOut,
    ProjectUpdate,
)
from bugtracker.services.attachment_service import PARENT_ATTACHMENT_LIST
from bugtracker.services.project_service import MEMBER_LIST, PROJECT_LIST

router = APIRouter(
    prefix="/projects",
    tags=["Projects"],
    dependencies=[Depends(verify_api_key), Depends(enforce_rate_limit(NAMESPACE_API))],
)


@router.get("", response_model=ListEnvelope[ProjectOut])
async def list_projects(
    service: ProjectServiceDep,
    params: Annotated[ListParams, Depends(list_params(PROJECT_LIST))],
) -> ListEnvelope[ProjectOut]:
    """List projects; filter by ``status`` / ``ownerId``, ``search`` on name or key."""
    return ListEnvelope[ProjectOut].from_page(await service.list(params))


@router.post("", response_model=DataEnvelope[ProjectOut], status_code=201)
async def create_project(payload: ProjectCreate, service: ProjectServiceDep) -> DataEnvelope[ProjectOut]:
    """Create a project.

    Raises:
        NotFoundAppError: 400 OWNER_NOT_FOUND.
        ConflictAppError: 409 DUPLICATE_KEY.
    """
    return DataEnvelope[ProjectOut](data=await service.create(payload))


@router.get("/{id}", response_model=DataEnvelope[ProjectOut])
async def get_project(project_id: PathId, service: ProjectServiceDep) -> DataEnvelope[ProjectOut]:
    return DataEnvelope[ProjectOut](data=await service.get(project_id))


@router.put("/{id}", response_model=DataEnvelope[ProjectOut])
@router.patch("/{id}", response_model=DataEnvelope[ProjectOut])
async def update_project(
    project_id: PathId, payload: ProjectUpdate, service: ProjectServiceDep
) -> DataEnvelope[ProjectOut]:
    return DataEnvelope[ProjectOut](data=await service.update(project_id, payload))


@router.delete("/{id}", response_model=DeletedEnvelope[ProjectOut])
async def delete_project(project_id: PathId, service: ProjectServiceDep) -> DeletedEnvelope[ProjectOut]:
    deleted = await service.delete(project_id)
    return DeletedEnvelope[ProjectOut](data=deleted, message="Project deleted successfully")


@router.get("/{id}/members", response_model=ListEnvelope[MemberOut])
async def list_members(
    project_id: PathId,
    service: MembershipServiceDep,
    params: Annotated[ListParams, Depends(list_params(MEMBER_LIST))],
) -> ListEnvelope[MemberOut]:
    """Members of a project with a summary of each user."""
    return ListEnvelope[MemberOut].from_page(await service.list(project_id, params))


@router.post("/{id}/members", response_model=DataEnvelope[MemberOut], status_code=201)
async def add_member(
    project_id: PathId, payload: MemberAdd, service: MembershipServiceDep
) -> DataEnvelope[MemberOut]:
    """Add a user to a project.

    Raises:
        NotFoundAppError: 404 PROJECT_NOT_FOUND or USER_NOT_FOUND.
        ConflictAppError: 409 MEMBER_EXISTS.
    """
    return DataEnvelope[MemberOut](data=await service.add(project_id, payload))


@router.patch("/{id}/members", response_model=DataEnvelope[MemberOut])
async def change_member_role(
    project_id: PathId, payload: MemberRoleUpdate, service: MembershipServiceDep
) -> DataEnvelope[MemberOut]:
    return DataEnvelope[MemberOut](data=await service.change_role(project_id, payload))


@router.delete("/{id}/members", response_model=DeletedEnvelope[MemberOut])
async def remove_member(
    project_id: PathId,
    service: MembershipServiceDep,
    payload: Annotated[MemberRemove | None, Body()] = None,
    user_id: Annotated[str | None, Query(alias="userId")] = None,
) -> DeletedEnvelope[MemberOut]:
    """Remove a member; ``userId`` comes from the JSON body or the query string."""
    if payload is not None:
        member_user_id = payload.user_id
    elif user_id is not None:
        member_user_id = parse_positive_id(user_id)
    else:
        raise ValidationAppError(code="VALIDATION_ERROR", message="userId is required")

    removed = await service.remove(project_id, member_user_id)
    return DeletedEnvelope[MemberOut](data=removed, message="Member removed successfully")


@router.get("/{id}/attachments", response_model=ListEnvelope[AttachmentOut])
async def list_project_attachments(
    project_id: PathId,
    service: AttachmentServiceDep,
    params: Annotated[ListParams, Depends(list_params(PARENT_ATTACHMENT_LIST))],
) -> ListEnvelope[AttachmentOut]:
    return ListEnvelope[AttachmentOut].from_page(await service.list_for_project(project_id, params))
