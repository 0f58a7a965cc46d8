"""Pydantic schemas for users."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import StringConstraints, field_validator

from bugtracker.schemas.common import CamelModel, Title

UserRole = Literal["admin", "manager", "developer", "tester"]

Email = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True,
        to_lower=True,
        max_length=320,
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
    ),
]
ImageUrl = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^https?://\S+$")]


class UserCreate(CamelModel):
    name: Title
    email: Email
    role: UserRole = "developer"
    image: ImageUrl | None = None


class UserUpdate(CamelModel):
    name: Title | None = None
    email: Email | None = None
    role: UserRole | None = None
    image: ImageUrl | None = None

    @field_validator("name", "email", "role")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("field cannot be null")
        return value


class UserOut(CamelModel):
    id: int
    name: str
    email: str
    role: str
    image: str | None = None
    created_at: datetime
    updated_at: datetime
