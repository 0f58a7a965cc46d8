"""Projects and their memberships."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.errors import ConflictAppError, NotFoundAppError, ValidationAppError
from bugtracker.core.pagination import FilterField, ListParams, ListSpec, Page
from bugtracker.db.models import PROJECT_STATUSES, Project, ProjectMember, User, utcnow
from bugtracker.schemas.common import UserBrief
from bugtracker.schemas.projects import (
    MemberAdd,
    MemberOut,
    MemberRoleUpdate,
    ProjectCreate,
    ProjectOut,
    ProjectUpdate,
)
from bugtracker.services.base import commit_or_conflict, fetch_page, get_or_raise, load_users

logger = logging.getLogger(__name__)

PROJECT_LIST = ListSpec(
    filters=(
        FilterField("status", "status", kind="enum", choices=PROJECT_STATUSES),
        FilterField("ownerId", "owner_id"),
    ),
    search_fields=("name", "key"),
)

MEMBER_LIST = ListSpec(
    sort_fields={"createdAt": "created_at", "role": "role"},
    default_page_size=50,
)

DUPLICATE_KEY = "DUPLICATE_KEY"
DUPLICATE_KEY_MESSAGE = "A project with this key already exists"
MEMBER_EXISTS = "MEMBER_EXISTS"
MEMBER_EXISTS_MESSAGE = "User is already a member of this project"


async def get_project_or_404(session: AsyncSession, project_id: int) -> Project:
    return await get_or_raise(
        session, Project, project_id, code="PROJECT_NOT_FOUND", message="Project not found"
    )


class ProjectService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _ensure_key_free(self, key: str, *, exclude_id: int | None = None) -> None:
        stmt = select(Project.id).where(Project.key == key)
        if exclude_id is not None:
            stmt = stmt.where(Project.id != exclude_id)
        if (await self.session.execute(stmt.limit(1))).first() is not None:
            raise ConflictAppError(code=DUPLICATE_KEY, message=DUPLICATE_KEY_MESSAGE)

    async def _ensure_owner(self, owner_id: int) -> None:
        await get_or_raise(
            self.session, User, owner_id, code="OWNER_NOT_FOUND", message="Owner not found", status=400
        )

    async def list(self, params: ListParams) -> Page[ProjectOut]:
        rows, meta = await fetch_page(self.session, Project, params)
        return Page(data=[ProjectOut.model_validate(row) for row in rows], pagination=meta)

    async def get(self, project_id: int) -> ProjectOut:
        return ProjectOut.model_validate(await get_project_or_404(self.session, project_id))

    async def create(self, payload: ProjectCreate) -> ProjectOut:
        await self._ensure_owner(payload.owner_id)
        await self._ensure_key_free(payload.key)

        project = Project(**payload.model_dump())
        self.session.add(project)
        await commit_or_conflict(self.session, code=DUPLICATE_KEY, message=DUPLICATE_KEY_MESSAGE)

        logger.info("project.created", extra={"project_id": project.id, "key": project.key})
        return ProjectOut.model_validate(project)

    async def update(self, project_id: int, payload: ProjectUpdate) -> ProjectOut:
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationAppError(code="NO_UPDATE_FIELDS", message="No fields to update")

        project = await get_project_or_404(self.session, project_id)
        if "owner_id" in changes:
            await self._ensure_owner(changes["owner_id"])
        if "key" in changes:
            await self._ensure_key_free(changes["key"], exclude_id=project_id)

        for name, value in changes.items():
            setattr(project, name, value)
        project.updated_at = utcnow()
        await commit_or_conflict(self.session, code=DUPLICATE_KEY, message=DUPLICATE_KEY_MESSAGE)

        logger.info("project.updated", extra={"project_id": project_id, "fields": sorted(changes)})
        return ProjectOut.model_validate(project)

    async def delete(self, project_id: int) -> ProjectOut:
        project = await get_project_or_404(self.session, project_id)
        deleted = ProjectOut.model_validate(project)
        await self.session.delete(project)
        await self.session.commit()

        logger.info("project.deleted", extra={"project_id": project_id})
        return deleted


class MembershipService:
    """Who belongs to a project and in which role."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _member_out(self, member: ProjectMember, user: User | None = None) -> MemberOut:
        if user is None:
            user = await self.session.get(User, member.user_id)
        out = MemberOut.model_validate(member)
        out.user = UserBrief.model_validate(user) if user is not None else None
        return out

    async def _find(self, project_id: int, user_id: int) -> ProjectMember:
        stmt = select(ProjectMember).where(
            ProjectMember.project_id == project_id, ProjectMember.user_id == user_id
        )
        member = (await self.session.execute(stmt)).scalar_one_or_none()
        if member is None:
            raise NotFoundAppError(code="MEMBER_NOT_FOUND", message="Member not found")
        return member

    async def list(self, project_id: int, params: ListParams) -> Page[MemberOut]:
        await get_project_or_404(self.session, project_id)
        rows, meta = await fetch_page(
            self.session, ProjectMember, params, scope=[ProjectMember.project_id == project_id]
        )
        users = await load_users(self.session, {row.user_id for row in rows})
        data = [await self._member_out(row, users.get(row.user_id)) for row in rows]
        return Page(data=data, pagination=meta)

    async def add(self, project_id: int, payload: MemberAdd) -> MemberOut:
        """Add a user to a project.

        Raises:
            NotFoundAppError: PROJECT_NOT_FOUND or USER_NOT_FOUND (both 404).
            ConflictAppError: MEMBER_EXISTS.
        """
        await get_project_or_404(self.session, project_id)
        user = await get_or_raise(
            self.session, User, payload.user_id, code="USER_NOT_FOUND", message="User not found"
        )

        existing = await self.session.execute(
            select(ProjectMember.id).where(
                ProjectMember.project_id == project_id, ProjectMember.user_id == payload.user_id
            )
        )
        if existing.first() is not None:
            raise ConflictAppError(code=MEMBER_EXISTS, message=MEMBER_EXISTS_MESSAGE)

        member = ProjectMember(project_id=project_id, user_id=payload.user_id, role=payload.role)
        self.session.add(member)
        await commit_or_conflict(self.session, code=MEMBER_EXISTS, message=MEMBER_EXISTS_MESSAGE)

        logger.info(
            "project.member_added",
            extra={"project_id": project_id, "member_user_id": payload.user_id, "role": payload.role},
        )
        return await self._member_out(member, user)

    async def change_role(self, project_id: int, payload: MemberRoleUpdate) -> MemberOut:
        await get_project_or_404(self.session, project_id)
        member = await self._find(project_id, payload.user_id)
        member.role = payload.role
        member.updated_at = utcnow()
        await self.session.commit()

        logger.info(
            "project.member_role_changed",
            extra={"project_id": project_id, "member_user_id": payload.user_id, "role": payload.role},
        )
        return await self._member_out(member)

    async def remove(self, project_id: int, user_id: int) -> MemberOut:
        await get_project_or_404(self.session, project_id)
        member = await self._find(project_id, user_id)
        removed = await self._member_out(member)
        await self.session.delete(member)
        await self.session.commit()

        logger.info("project.member_removed", extra={"project_id": project_id, "member_user_id": user_id})
        return removed
