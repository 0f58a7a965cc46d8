"""User directory endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from bugtracker.api.deps import PathId, UserServiceDep, list_params
from bugtracker.core.auth import verify_api_key
from bugtracker.core.pagination import ListParams
from bugtracker.core.rate_limit import NAMESPACE_API, enforce_rate_limit
from bugtracker.schemas.common import DataEnvelope, DeletedEnvelope, ListEnvelope
from bugtracker.schemas.users import UserCreate, UserOut, UserUpdate
from bugtracker.services.user_service import USER_LIST

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    dependencies=[Depends(verify_api_key), Depends(enforce_rate_limit(NAMESPACE_API))],
)


@router.get("", response_model=ListEnvelope[UserOut])
async def list_users(
    service: UserServiceDep,
    params: Annotated[ListParams, Depends(list_params(USER_LIST))],
) -> ListEnvelope[UserOut]:
    """List users, newest first; ``search`` matches name or email."""
    return ListEnvelope[UserOut].from_page(await service.list(params))


@router.post("", response_model=DataEnvelope[UserOut], status_code=201)
async def create_user(payload: UserCreate, service: UserServiceDep) -> DataEnvelope[UserOut]:
    """Create a user.

    Raises:
        ConflictAppError: 409 DUPLICATE_EMAIL.
    """
    return DataEnvelope[UserOut](data=await service.create(payload))


@router.get("/{id}", response_model=DataEnvelope[UserOut])
async def get_user(user_id: PathId, service: UserServiceDep) -> DataEnvelope[UserOut]:
    return DataEnvelope[UserOut](data=await service.get(user_id))


@router.put("/{id}", response_model=DataEnvelope[UserOut])
@router.patch("/{id}", response_model=DataEnvelope[UserOut])
async def update_user(
    user_id: PathId, payload: UserUpdate, service: UserServiceDep
) -> DataEnvelope[UserOut]:
    """Partially update a user. PUT and PATCH behave the same."""
    return DataEnvelope[UserOut](data=await service.update(user_id, payload))


@router.delete("/{id}", response_model=DeletedEnvelope[UserOut])
async def delete_user(user_id: PathId, service: UserServiceDep) -> DeletedEnvelope[UserOut]:
    deleted = await service.delete(user_id)
    return DeletedEnvelope[UserOut](data=deleted, message="User deleted successfully")
