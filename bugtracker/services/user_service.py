"""User directory: CRUD with unique, lowercased emails."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.errors import ConflictAppError, ValidationAppError
from bugtracker.core.pagination import ListParams, ListSpec, Page
from bugtracker.db.models import User, utcnow
from bugtracker.schemas.users import UserCreate, UserOut, UserUpdate
from bugtracker.services.base import commit_or_conflict, fetch_page, get_or_raise

logger = logging.getLogger(__name__)

USER_LIST = ListSpec(search_fields=("name", "email"))

DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
DUPLICATE_EMAIL_MESSAGE = "A user with this email already exists"


class UserService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _get(self, user_id: int) -> User:
        return await get_or_raise(
            self.session, User, user_id, code="USER_NOT_FOUND", message="User not found"
        )

    async def _ensure_email_free(self, email: str, *, exclude_id: int | None = None) -> None:
        stmt = select(User.id).where(User.email == email)
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        if (await self.session.execute(stmt.limit(1))).first() is not None:
            raise ConflictAppError(code=DUPLICATE_EMAIL, message=DUPLICATE_EMAIL_MESSAGE)

    async def list(self, params: ListParams) -> Page[UserOut]:
        rows, meta = await fetch_page(self.session, User, params)
        return Page(data=[UserOut.model_validate(row) for row in rows], pagination=meta)

    async def get(self, user_id: int) -> UserOut:
        return UserOut.model_validate(await self._get(user_id))

    async def create(self, payload: UserCreate) -> UserOut:
        await self._ensure_email_free(payload.email)

        user = User(**payload.model_dump())
        self.session.add(user)
        await commit_or_conflict(self.session, code=DUPLICATE_EMAIL, message=DUPLICATE_EMAIL_MESSAGE)

        logger.info("user.created", extra={"user_id": user.id, "role": user.role})
        return UserOut.model_validate(user)

    async def update(self, user_id: int, payload: UserUpdate) -> UserOut:
        """Apply a partial update.

        Raises:
            ValidationAppError: NO_UPDATE_FIELDS when the body sets nothing.
            NotFoundAppError: USER_NOT_FOUND.
            ConflictAppError: DUPLICATE_EMAIL when the email belongs to another user.
        """
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationAppError(code="NO_UPDATE_FIELDS", message="No fields to update")

        user = await self._get(user_id)
        if "email" in changes:
            await self._ensure_email_free(changes["email"], exclude_id=user_id)

        for name, value in changes.items():
            setattr(user, name, value)
        user.updated_at = utcnow()
        await commit_or_conflict(self.session, code=DUPLICATE_EMAIL, message=DUPLICATE_EMAIL_MESSAGE)

        logger.info("user.updated", extra={"user_id": user_id, "fields": sorted(changes)})
        return UserOut.model_validate(user)

    async def delete(self, user_id: int) -> UserOut:
        user = await self._get(user_id)
        deleted = UserOut.model_validate(user)
        await self.session.delete(user)
        await self.session.commit()

        logger.info("user.deleted", extra={"user_id": user_id})
        return deleted
