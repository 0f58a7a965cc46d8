"""Tests for the list contract: parsing, filtering, sorting and paging."""

from datetime import datetime, timedelta, timezone

import pytest

from bugtracker.core.pagination import (
    MAX_PAGE_SIZE,
    FilterField,
    ListSpec,
    apply_filters,
    build_page_meta,
    paginate,
    parse_list_params,
    sort_rows,
)

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)

ISSUES = ListSpec(
    filters=(
        FilterField("status", "status", kind="enum", choices=("open", "closed")),
        FilterField("projectId", "project_id"),
    ),
    search_fields=("title", "description"),
    sort_fields={"title": "title", "createdAt": "created_at"},
)


def _rows() -> list[dict]:
    return [
        {"id": 1, "title": "Login broken", "description": "500 on submit", "status": "open",
         "project_id": 1, "created_at": BASE},
        {"id": 2, "title": "Typo", "description": "Footer says LOGIN", "status": "closed",
         "project_id": 1, "created_at": BASE + timedelta(hours=1)},
        {"id": 3, "title": "Crash", "description": "On startup", "status": "open",
         "project_id": 2, "created_at": BASE + timedelta(hours=2)},
    ]


class TestParseListParams:
    def test_defaults(self) -> None:
        params = parse_list_params({}, ISSUES)

        assert (params.page, params.page_size, params.offset) == (1, 10, 0)
        assert params.filters == {}
        assert params.search is None
        assert params.sort is None
        assert params.descending is True

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ({"pageSize": "0"}, 1),
            ({"pageSize": "-4"}, 1),
            ({"pageSize": "1000"}, MAX_PAGE_SIZE),
            ({"pageSize": "abc"}, 10),
            ({"pageSize": "25"}, 25),
        ],
    )
    def test_page_size_is_clamped(self, raw: dict, expected: int) -> None:
        assert parse_list_params(raw, ISSUES).page_size == expected

    def test_page_below_one_becomes_one(self) -> None:
        params = parse_list_params({"page": "-3", "pageSize": "5"}, ISSUES)
        assert params.page == 1
        assert params.offset == 0

    def test_offset_style_derives_page(self) -> None:
        spec = ListSpec(style="offset")
        params = parse_list_params({"limit": "5", "offset": "12"}, spec)

        assert params.page_size == 5
        assert params.offset == 12
        assert params.page == 3

    def test_negative_offset_becomes_zero(self) -> None:
        params = parse_list_params({"offset": "-7"}, ListSpec(style="offset"))
        assert params.offset == 0
        assert params.page == 1

    @pytest.mark.parametrize("raw", ["\u00b2", "\u2460", "\uff13"])
    def test_non_ascii_digits_are_not_numbers(self, raw: str) -> None:
        params = parse_list_params({"page": raw, "projectId": raw}, ISSUES)
        assert params.page == 1
        assert params.filters == {}

    def test_integers_parse_leading_digits_only(self) -> None:
        params = parse_list_params({"pageSize": "1_000", "projectId": "7abc"}, ISSUES)
        assert params.page_size == 1
        assert params.filters == {"project_id": 7}

    def test_unparseable_filters_are_ignored(self) -> None:
        params = parse_list_params({"projectId": "abc", "status": "bogus"}, ISSUES)
        assert params.filters == {}

    def test_valid_filters_are_typed(self) -> None:
        params = parse_list_params({"projectId": "2", "status": "open"}, ISSUES)
        assert params.filters == {"project_id": 2, "status": "open"}

    def test_explicit_sort_is_ascending_unless_desc(self) -> None:
        assert parse_list_params({"sort": "title"}, ISSUES).descending is False
        assert parse_list_params({"sort": "title", "order": "desc"}, ISSUES).descending is True

    def test_unsupported_sort_falls_back_to_newest_first(self) -> None:
        params = parse_list_params({"sort": "password", "order": "asc"}, ISSUES)
        assert params.sort is None
        assert params.descending is True

    def test_search_ignored_without_search_fields(self) -> None:
        assert parse_list_params({"search": "x"}, ListSpec()).search is None


class TestInMemoryPipeline:
    def test_filters_are_anded(self) -> None:
        params = parse_list_params({"status": "open", "projectId": "1"}, ISSUES)
        assert [r["id"] for r in apply_filters(_rows(), params)] == [1]

    def test_search_is_case_insensitive_across_fields(self) -> None:
        params = parse_list_params({"search": "login"}, ISSUES)
        assert [r["id"] for r in apply_filters(_rows(), params)] == [1, 2]

    def test_default_order_is_newest_first(self) -> None:
        params = parse_list_params({}, ISSUES)
        assert [r["id"] for r in sort_rows(_rows(), params)] == [3, 2, 1]

    def test_sort_by_title(self) -> None:
        params = parse_list_params({"sort": "title"}, ISSUES)
        assert [r["title"] for r in sort_rows(_rows(), params)] == ["Crash", "Login broken", "Typo"]

    def test_paginate_metadata(self) -> None:
        params = parse_list_params({"page": "2", "pageSize": "2"}, ISSUES)
        page = paginate(sort_rows(_rows(), params), params)

        assert [r["id"] for r in page.data] == [1]
        meta = page.pagination
        assert meta.total == 3
        assert meta.total_pages == 2
        assert meta.has_next is False
        assert meta.has_previous is True

    def test_offset_paging_flags_follow_offset(self) -> None:
        params = parse_list_params({"limit": "5", "offset": "3"}, ListSpec(style="offset"))
        meta = build_page_meta(20, params)

        assert meta.page == 1
        assert meta.has_previous is True
        assert meta.has_next is True
        assert build_page_meta(8, params).has_next is False

    def test_empty_result_has_zero_pages(self) -> None:
        params = parse_list_params({}, ISSUES)
        meta = build_page_meta(0, params)
        assert meta.total_pages == 0
        assert meta.has_next is False

    def test_objects_are_supported(self) -> None:
        class Row:
            def __init__(self, id: int, status: str) -> None:
                self.id = id
                self.status = status
                self.created_at = BASE

        params = parse_list_params({"status": "closed"}, ISSUES)
        rows = [Row(1, "open"), Row(2, "closed")]
        assert [r.id for r in apply_filters(rows, params)] == [2]
