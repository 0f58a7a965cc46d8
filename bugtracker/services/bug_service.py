"""Bugs, their comments and their change history.

Every field a bug update actually changes is appended to ``bug_history``
as ``(field, old_value, new_value)`` with values stored as text. The entry is
attributed to the acting user, or to the bug's reporter when the caller did
not identify itself.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.errors import ValidationAppError
from bugtracker.core.pagination import FilterField, ListParams, ListSpec, Page
from bugtracker.db.models import BUG_PRIORITIES, BUG_STATUSES, Bug, BugHistory, Comment, Project, User, utcnow
from bugtracker.schemas.bugs import (
    BugCreate,
    BugOut,
    BugUpdate,
    CommentCreate,
    CommentOut,
    CommentUpdate,
    HistoryOut,
)
from bugtracker.schemas.common import ProjectSummary, UserBrief, UserSummary
from bugtracker.services.base import fetch_page, get_or_raise, load_projects, load_users

logger = logging.getLogger(__name__)

BUG_LIST = ListSpec(
    filters=(
        FilterField("status", "status", kind="enum", choices=BUG_STATUSES),
        FilterField("priority", "priority", kind="enum", choices=BUG_PRIORITIES),
        FilterField("projectId", "project_id"),
        FilterField("assigneeId", "assignee_id"),
        FilterField("reporterId", "reporter_id"),
    ),
    search_fields=("title", "description"),
    sort_fields={
        "createdAt": "created_at",
        "updatedAt": "updated_at",
        "priority": "priority",
        "status": "status",
        "title": "title",
    },
)

COMMENT_LIST = ListSpec(default_page_size=50)
HISTORY_LIST = ListSpec(default_page_size=50)


async def get_bug_or_404(session: AsyncSession, bug_id: int) -> Bug:
    return await get_or_raise(session, Bug, bug_id, code="BUG_NOT_FOUND", message="Bug not found")


def _history_text(value: Any) -> str | None:
    return None if value is None else str(value)


class BugService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _check_references(
        self,
        *,
        project_id: int | None = None,
        reporter_id: int | None = None,
        assignee_id: int | None = None,
    ) -> None:
        """Referenced rows must exist; a missing one is a 400, not a 404."""
        if project_id is not None:
            await get_or_raise(
                self.session, Project, project_id,
                code="PROJECT_NOT_FOUND", message="Project not found", status=400,
            )
        if reporter_id is not None:
            await get_or_raise(
                self.session, User, reporter_id,
                code="REPORTER_NOT_FOUND", message="Reporter not found", status=400,
            )
        if assignee_id is not None:
            await get_or_raise(
                self.session, User, assignee_id,
                code="ASSIGNEE_NOT_FOUND", message="Assignee not found", status=400,
            )

    async def _enrich(self, bugs: list[Bug], *, with_assignee: bool = False) -> list[BugOut]:
        projects = await load_projects(self.session, {bug.project_id for bug in bugs})
        user_ids: set[int | None] = {bug.reporter_id for bug in bugs}
        if with_assignee:
            user_ids |= {bug.assignee_id for bug in bugs}
        users = await load_users(self.session, user_ids)

        result = []
        for bug in bugs:
            out = BugOut.model_validate(bug)
            project = projects.get(bug.project_id)
            reporter = users.get(bug.reporter_id)
            out.project = ProjectSummary.model_validate(project) if project else None
            out.reporter = UserSummary.model_validate(reporter) if reporter else None
            if with_assignee and bug.assignee_id is not None:
                assignee = users.get(bug.assignee_id)
                out.assignee = UserSummary.model_validate(assignee) if assignee else None
            result.append(out)
        return result

    async def list(self, params: ListParams) -> Page[BugOut]:
        rows, meta = await fetch_page(self.session, Bug, params)
        return Page(data=await self._enrich(rows), pagination=meta)

    async def get(self, bug_id: int) -> BugOut:
        bug = await get_bug_or_404(self.session, bug_id)
        return (await self._enrich([bug], with_assignee=True))[0]

    async def create(self, payload: BugCreate) -> BugOut:
        await self._check_references(
            project_id=payload.project_id,
            reporter_id=payload.reporter_id,
            assignee_id=payload.assignee_id,
        )

        bug = Bug(**payload.model_dump())
        self.session.add(bug)
        await self.session.commit()

        logger.info(
            "bug.created",
            extra={"bug_id": bug.id, "project_id": bug.project_id, "priority": bug.priority},
        )
        return BugOut.model_validate(bug)

    async def update(self, bug_id: int, payload: BugUpdate, *, actor_id: int | None = None) -> BugOut:
        """Apply a partial update and record what changed.

        Raises:
            ValidationAppError: NO_UPDATE_FIELDS when the body sets nothing.
            NotFoundAppError: BUG_NOT_FOUND (404), or a 400 reference error.
        """
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationAppError(code="NO_UPDATE_FIELDS", message="No fields to update")

        bug = await get_bug_or_404(self.session, bug_id)
        await self._check_references(
            project_id=changes.get("project_id"),
            reporter_id=changes.get("reporter_id"),
            assignee_id=changes.get("assignee_id"),
        )

        author_id = actor_id if actor_id is not None else bug.reporter_id
        changed: list[str] = []
        for name, value in changes.items():
            old = getattr(bug, name)
            if old == value:
                continue
            setattr(bug, name, value)
            changed.append(name)
            self.session.add(
                BugHistory(
                    bug_id=bug.id,
                    user_id=author_id,
                    field=to_camel(name),
                    old_value=_history_text(old),
                    new_value=_history_text(value),
                )
            )

        bug.updated_at = utcnow()
        await self.session.commit()

        logger.info("bug.updated", extra={"bug_id": bug_id, "fields": changed, "actor_id": author_id})
        return BugOut.model_validate(bug)

    async def delete(self, bug_id: int) -> BugOut:
        bug = await get_bug_or_404(self.session, bug_id)
        deleted = BugOut.model_validate(bug)
        await self.session.delete(bug)
        await self.session.commit()

        logger.info("bug.deleted", extra={"bug_id": bug_id})
        return deleted

    async def history(self, bug_id: int, params: ListParams) -> Page[HistoryOut]:
        await get_bug_or_404(self.session, bug_id)
        rows, meta = await fetch_page(
            self.session, BugHistory, params, scope=[BugHistory.bug_id == bug_id]
        )
        users = await load_users(self.session, {row.user_id for row in rows})

        data = []
        for row in rows:
            out = HistoryOut.model_validate(row)
            user = users.get(row.user_id)
            out.user = UserBrief.model_validate(user) if user else None
            data.append(out)
        return Page(data=data, pagination=meta)


class CommentService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _get(self, comment_id: int) -> Comment:
        return await get_or_raise(
            self.session, Comment, comment_id, code="COMMENT_NOT_FOUND", message="Comment not found"
        )

    async def _with_author(self, comment: Comment, author: User | None = None) -> CommentOut:
        if author is None:
            author = await self.session.get(User, comment.author_id)
        out = CommentOut.model_validate(comment)
        out.author = UserBrief.model_validate(author) if author else None
        return out

    async def list_for_bug(self, bug_id: int, params: ListParams) -> Page[CommentOut]:
        await get_bug_or_404(self.session, bug_id)
        rows, meta = await fetch_page(self.session, Comment, params, scope=[Comment.bug_id == bug_id])
        authors = await load_users(self.session, {row.author_id for row in rows})
        data = [await self._with_author(row, authors.get(row.author_id)) for row in rows]
        return Page(data=data, pagination=meta)

    async def create(self, bug_id: int, payload: CommentCreate) -> CommentOut:
        """Add a comment to a bug.

        Raises:
            NotFoundAppError: BUG_NOT_FOUND or AUTHOR_NOT_FOUND (both 404).
        """
        await get_bug_or_404(self.session, bug_id)
        author = await get_or_raise(
            self.session, User, payload.author_id, code="AUTHOR_NOT_FOUND", message="Author not found"
        )

        comment = Comment(bug_id=bug_id, author_id=payload.author_id, body=payload.body)
        self.session.add(comment)
        await self.session.commit()

        logger.info("comment.created", extra={"comment_id": comment.id, "bug_id": bug_id})
        return await self._with_author(comment, author)

    async def get(self, comment_id: int) -> CommentOut:
        return await self._with_author(await self._get(comment_id))

    async def update(self, comment_id: int, payload: CommentUpdate) -> CommentOut:
        comment = await self._get(comment_id)
        comment.body = payload.body
        comment.updated_at = utcnow()
        await self.session.commit()

        logger.info("comment.updated", extra={"comment_id": comment_id})
        return await self._with_author(comment)

    async def delete(self, comment_id: int) -> CommentOut:
        comment = await self._get(comment_id)
        deleted = await self._with_author(comment)
        await self.session.delete(comment)
        await self.session.commit()

        logger.info("comment.deleted", extra={"comment_id": comment_id})
        return deleted
