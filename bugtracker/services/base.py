"""Query helpers shared by the entity services.

Existence checks and writes are separate round trips (no enclosing
transaction). Unique indexes in the store are the final word on duplicates:
an ``IntegrityError`` at commit is reported with the same conflict code the
pre-check would have produced.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.errors import ConflictAppError, NotFoundAppError
from bugtracker.core.pagination import ListParams, PageMeta, build_filter_clauses, build_order_by, build_page_meta
from bugtracker.db.models import Project, User

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


async def get_or_raise(
    session: AsyncSession,
    model: type[ModelT],
    entity_id: int,
    *,
    code: str,
    message: str,
    status: int = 404,
) -> ModelT:
    """Load ``model`` by primary key or raise an entity-specific not-found error."""
    instance = await session.get(model, entity_id)
    if instance is None:
        raise NotFoundAppError(code=code, message=message, status=status)
    return instance


async def fetch_page(
    session: AsyncSession,
    model: Any,
    params: ListParams,
    *,
    scope: Sequence[Any] = (),
) -> tuple[list[Any], PageMeta]:
    """Run the count and page queries for a list endpoint.

    Args:
        session: Active session.
        model: Mapped class being listed.
        params: Parsed list parameters.
        scope: Extra WHERE clauses fixed by the route (e.g. ``bug_id == 3``).

    Returns:
        Rows of the requested page and the pagination metadata.
    """
    clauses = [*scope, *build_filter_clauses(model, params)]

    count_stmt = select(func.count()).select_from(model).where(*clauses)
    total = (await session.execute(count_stmt)).scalar_one()

    stmt: Select = (
        select(model)
        .where(*clauses)
        .order_by(*build_order_by(model, params))
        .offset(params.offset)
        .limit(params.page_size)
    )
    rows = list((await session.execute(stmt)).scalars().all())
    return rows, build_page_meta(total, params)


async def load_users(session: AsyncSession, user_ids: set[int | None]) -> dict[int, User]:
    """Bulk-load users by id for response enrichment."""
    ids = {uid for uid in user_ids if uid is not None}
    if not ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(ids)))
    return {user.id: user for user in result.scalars()}


async def load_projects(session: AsyncSession, project_ids: set[int]) -> dict[int, Project]:
    if not project_ids:
        return {}
    result = await session.execute(select(Project).where(Project.id.in_(project_ids)))
    return {project.id: project for project in result.scalars()}


async def commit_or_conflict(session: AsyncSession, *, code: str, message: str) -> None:
    """Commit, translating a unique-constraint violation into a 409."""
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.info("db.integrity_conflict", extra={"error_code": code})
        raise ConflictAppError(code=code, message=message) from exc
