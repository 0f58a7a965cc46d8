"""Tests for sensitive data filtering and request correlation in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from bugtracker.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    set_request_id,
)


@pytest.fixture
def log_stream() -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def test_sensitive_filter_redacts_api_keys(log_stream):
    """Ensure SensitiveDataFilter redacts API key fields."""
    logger, stream = log_stream

    logger.info(
        "test_event",
        extra={
            "api_key": "sk-secret-123",
            "x-api-key": "another-secret",
            "safe_field": "visible",
        },
    )

    output = stream.getvalue()
    assert "sk-secret-123" not in output
    assert "another-secret" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_sensitive_filter_redacts_personal_data(log_stream):
    """User emails never reach the log sink."""
    logger, stream = log_stream

    logger.info("user.created", extra={"email": "jane@example.com", "user_id": 7})

    payload = json.loads(stream.getvalue())
    assert payload["email"] == "[REDACTED]"
    assert payload["user_id"] == 7


def test_sensitive_filter_redacts_nested_dicts(log_stream):
    """Ensure nested sensitive fields are redacted."""
    logger, stream = log_stream

    logger.info(
        "nested_event",
        extra={
            "headers": {"authorization": "Bearer secret-key", "user-agent": "pytest"},
            "safe_data": {"count": 5},
        },
    )

    output = stream.getvalue()
    assert "secret-key" not in output
    assert "pytest" in output


def test_json_line_includes_request_id_from_context(log_stream):
    logger, stream = log_stream

    set_request_id("req-123")
    try:
        logger.info("bug.updated", extra={"bug_id": 3, "fields": ["status"]})
    finally:
        clear_request_id()

    payload = json.loads(stream.getvalue())
    assert payload["message"] == "bug.updated"
    assert payload["level"] == "info"
    assert payload["request_id"] == "req-123"
    assert payload["fields"] == ["status"]


def test_exception_info_is_formatted(log_stream):
    logger, stream = log_stream

    try:
        raise RuntimeError("boom")
    except RuntimeError:
        logger.exception("unhandled_exception")

    payload = json.loads(stream.getvalue())
    assert payload["exc_type"] == "RuntimeError"
    assert "boom" in payload["exc_text"]


def test_email_addresses_in_free_text_are_masked(log_stream):
    logger, stream = log_stream

    logger.info(
        "request_validation_error",
        extra={"errors": [{"field": "email", "input": "dup jane.doe+qa@example.co.uk"}]},
    )

    payload = json.loads(stream.getvalue())
    assert payload["errors"][0]["input"] == "dup [REDACTED]"
    assert payload["errors"][0]["field"] == "email"
