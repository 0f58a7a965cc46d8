"""List endpoint contract: parse, filter, sort and paginate.

Every list endpoint describes what it accepts with a declarative ``ListSpec``
(filterable fields and their types, free-text search targets, sortable
fields, default page size, page- or offset-style paging). The same parsed
``ListParams`` drive two interchangeable back ends:

- in-memory: ``apply_filters`` / ``sort_rows`` / ``paginate`` over rows
  (mappings or objects);
- SQL: ``build_filter_clauses`` / ``build_order_by`` compiled onto a
  SQLAlchemy ``select``.

Semantics shared by both:
- ``page >= 1``, ``page_size`` clamped to ``[1, MAX_PAGE_SIZE]``, ``offset >= 0``
- filter values that do not parse (``projectId=abc``, unknown enum values)
  are ignored rather than rejected
- distinct filters are ANDed; ``search`` is a case-insensitive substring
  match ORed across the search fields
- an explicit supported ``sort`` is ascending unless ``order=desc``;
  otherwise rows come newest first
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, Literal, Mapping, Sequence, TypeVar

from sqlalchemy import ColumnElement, or_

MAX_PAGE_SIZE = 100

_LEADING_INT = re.compile(r"\s*[+-]?[0-9]+")

FilterKind = Literal["int", "enum", "str"]
PagingStyle = Literal["page", "offset"]

RowT = TypeVar("RowT")


@dataclass(frozen=True)
class FilterField:
    """One equality filter accepted by a list endpoint.

    Attributes:
        param: Query-string name (e.g. ``projectId``).
        attr: Row attribute / model column it constrains (e.g. ``project_id``).
        kind: How the raw value is parsed.
        choices: Allowed values for ``enum`` filters.
    """

    param: str
    attr: str
    kind: FilterKind = "int"
    choices: tuple[str, ...] = ()

    def parse(self, raw: str | None) -> Any:
        """Typed value, or None when absent or unparseable."""
        if raw is None:
            return None
        value = raw.strip()
        if not value:
            return None
        if self.kind == "int":
            return _parse_int(value)
        if self.kind == "enum":
            return value if value in self.choices else None
        return value


@dataclass(frozen=True)
class ListSpec:
    """Declarative description of a list endpoint."""

    filters: tuple[FilterField, ...] = ()
    search_fields: tuple[str, ...] = ()
    sort_fields: Mapping[str, str] = field(default_factory=dict)
    default_page_size: int = 10
    style: PagingStyle = "page"
    created_attr: str = "created_at"
    id_attr: str = "id"


@dataclass(frozen=True)
class ListParams:
    """Normalized list request."""

    page: int
    page_size: int
    offset: int
    filters: Mapping[str, Any] = field(default_factory=dict)
    search: str | None = None
    search_fields: tuple[str, ...] = ()
    sort: str | None = None
    descending: bool = True
    created_attr: str = "created_at"
    id_attr: str = "id"


@dataclass(frozen=True)
class PageMeta:
    page: int
    page_size: int
    total: int
    total_pages: int
    offset: int
    has_next: bool
    has_previous: bool


@dataclass(frozen=True)
class Page(Generic[RowT]):
    data: list[RowT]
    pagination: PageMeta


def _parse_int(raw: str | None) -> int | None:
    # Leading ASCII digits only, so "12abc" is 12 and "1_000" is 1.
    if raw is None:
        return None
    match = _LEADING_INT.match(raw)
    return int(match.group(0)) if match else None


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def parse_list_params(raw: Mapping[str, str], spec: ListSpec) -> ListParams:
    """Turn raw query parameters into clamped, typed ``ListParams``.

    Args:
        raw: Query-string mapping (e.g. ``request.query_params``).
        spec: The endpoint's list description.

    Returns:
        ListParams with paging bounds already clamped.
    """
    default_size = _clamp(spec.default_page_size, 1, MAX_PAGE_SIZE)

    if spec.style == "offset":
        limit = _parse_int(raw.get("limit"))
        page_size = default_size if limit is None else _clamp(limit, 1, MAX_PAGE_SIZE)
        offset = max(0, _parse_int(raw.get("offset")) or 0)
        page = offset // page_size + 1
    else:
        size = _parse_int(raw.get("pageSize"))
        page_size = default_size if size is None else _clamp(size, 1, MAX_PAGE_SIZE)
        page = max(1, _parse_int(raw.get("page")) or 1)
        offset = (page - 1) * page_size

    filters: dict[str, Any] = {}
    for flt in spec.filters:
        value = flt.parse(raw.get(flt.param))
        if value is not None:
            filters[flt.attr] = value

    search = (raw.get("search") or "").strip() or None
    if not spec.search_fields:
        search = None

    sort = spec.sort_fields.get(raw.get("sort") or "")
    descending = True if sort is None else (raw.get("order") or "").lower() == "desc"

    return ListParams(
        page=page,
        page_size=page_size,
        offset=offset,
        filters=filters,
        search=search,
        search_fields=spec.search_fields,
        sort=sort,
        descending=descending,
        created_attr=spec.created_attr,
        id_attr=spec.id_attr,
    )


def _value(row: Any, attr: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(attr)
    return getattr(row, attr, None)


def _matches_search(row: Any, needle: str, fields: Sequence[str]) -> bool:
    needle = needle.lower()
    for attr in fields:
        value = _value(row, attr)
        if value is not None and needle in str(value).lower():
            return True
    return False


def apply_filters(rows: Iterable[RowT], params: ListParams) -> list[RowT]:
    """Keep rows matching every equality filter and (if given) the search."""
    result = []
    for row in rows:
        if any(_value(row, attr) != expected for attr, expected in params.filters.items()):
            continue
        if params.search and not _matches_search(row, params.search, params.search_fields):
            continue
        result.append(row)
    return result


def _sort_key(value: Any) -> tuple[bool, Any]:
    # None sorts last ascending, first descending.
    return (value is None, value if value is not None else 0)


def sort_rows(rows: Iterable[RowT], params: ListParams) -> list[RowT]:
    """Order rows by the requested field, or newest first by default."""
    attr = params.sort or params.created_attr
    return sorted(
        rows,
        key=lambda row: (_sort_key(_value(row, attr)), _sort_key(_value(row, params.id_attr))),
        reverse=params.descending,
    )


def build_page_meta(total: int, params: ListParams) -> PageMeta:
    total_pages = math.ceil(total / params.page_size) if total else 0
    return PageMeta(
        page=params.page,
        page_size=params.page_size,
        total=total,
        total_pages=total_pages,
        offset=params.offset,
        has_next=params.offset + params.page_size < total,
        has_previous=params.offset > 0,
    )


def paginate(rows: Sequence[RowT], params: ListParams) -> Page[RowT]:
    """Slice already filtered and sorted rows into the requested page."""
    data = list(rows[params.offset : params.offset + params.page_size])
    return Page(data=data, pagination=build_page_meta(len(rows), params))


def build_filter_clauses(model: Any, params: ListParams) -> list[ColumnElement[bool]]:
    """SQL equivalent of ``apply_filters`` for a mapped model."""
    clauses: list[ColumnElement[bool]] = [
        getattr(model, attr) == value for attr, value in params.filters.items()
    ]
    if params.search:
        clauses.append(
            or_(
                *(
                    getattr(model, attr).icontains(params.search, autoescape=True)
                    for attr in params.search_fields
                )
            )
        )
    return clauses


def build_order_by(model: Any, params: ListParams) -> list[ColumnElement[Any]]:
    """SQL equivalent of ``sort_rows``; the primary key breaks ties."""
    primary = getattr(model, params.sort or params.created_attr)
    tiebreak = getattr(model, params.id_attr)
    if params.descending:
        return [primary.desc(), tiebreak.desc()]
    return [primary.asc(), tiebreak.asc()]
