"""Shared route dependencies: path ids, acting user, list parameters, services."""

from __future__ import annotations

from typing import Annotated, Callable

from fastapi import Depends, Path, Request

from bugtracker.core.auth import get_actor_id
from bugtracker.core.errors import ValidationAppError
from bugtracker.core.pagination import ListParams, ListSpec, parse_list_params
from bugtracker.db.session import SessionDep
from bugtracker.services.attachment_service import AttachmentService
from bugtracker.services.bug_service import BugService, CommentService
from bugtracker.services.project_service import MembershipService, ProjectService
from bugtracker.services.user_service import UserService


def parse_positive_id(raw: str | None) -> int:
    """Parse a resource id; anything but a positive integer is ``INVALID_ID``."""
    value = (raw or "").strip()
    if value.isascii() and value.isdigit() and int(value) > 0:
        return int(value)
    raise ValidationAppError(code="INVALID_ID", message="Invalid ID", details={"id": raw})


async def path_id(id: Annotated[str, Path(description="Positive integer id")]) -> int:
    return parse_positive_id(id)


PathId = Annotated[int, Depends(path_id)]
ActorId = Annotated[int | None, Depends(get_actor_id)]


def list_params(spec: ListSpec) -> Callable[[Request], ListParams]:
    """Dependency parsing the query string against ``spec``."""

    def dependency(request: Request) -> ListParams:
        return parse_list_params(request.query_params, spec)

    return dependency


def get_user_service(session: SessionDep) -> UserService:
    return UserService(session)


def get_project_service(session: SessionDep) -> ProjectService:
    return ProjectService(session)


def get_membership_service(session: SessionDep) -> MembershipService:
    return MembershipService(session)


def get_bug_service(session: SessionDep) -> BugService:
    return BugService(session)


def get_comment_service(session: SessionDep) -> CommentService:
    return CommentService(session)


def get_attachment_service(session: SessionDep) -> AttachmentService:
    return AttachmentService(session)


UserServiceDep = Annotated[UserService, Depends(get_user_service)]
ProjectServiceDep = Annotated[ProjectService, Depends(get_project_service)]
MembershipServiceDep = Annotated[MembershipService, Depends(get_membership_service)]
BugServiceDep = Annotated[BugService, Depends(get_bug_service)]
CommentServiceDep = Annotated[CommentService, Depends(get_comment_service)]
AttachmentServiceDep = Annotated[AttachmentService, Depends(get_attachment_service)]
