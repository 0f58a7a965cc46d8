"""Shared response envelopes and field types.

JSON uses camelCase; Python code uses snake_case. Every model accepts both
spellings on input and emits camelCase (FastAPI serializes by alias).
"""

from __future__ import annotations

from typing import Annotated, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

from bugtracker.core.pagination import Page

T = TypeVar("T")

PositiveId = Annotated[int, Field(gt=0)]
Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
NonEmptyText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginationOut(CamelModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    offset: int
    has_next: bool
    has_previous: bool


class DataEnvelope(CamelModel, Generic[T]):
    data: T


class DeletedEnvelope(CamelModel, Generic[T]):
    data: T
    message: str


class ListEnvelope(CamelModel, Generic[T]):
    data: list[T]
    pagination: PaginationOut

    @classmethod
    def from_page(cls, page: Page) -> "ListEnvelope[T]":
        meta = page.pagination
        return cls(
            data=page.data,
            pagination=PaginationOut(
                page=meta.page,
                page_size=meta.page_size,
                total=meta.total,
                total_pages=meta.total_pages,
                offset=meta.offset,
                has_next=meta.has_next,
                has_previous=meta.has_previous,
            ),
        )


class UserSummary(CamelModel):
    id: int
    name: str
    email: str


class UserBrief(UserSummary):
    role: str
    image: str | None = None


class ProjectSummary(CamelModel):
    id: int
    name: str
    key: str
