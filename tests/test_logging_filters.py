"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

from portfolio_api.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    redact,
    set_request_id,
)


def _capture(name: str) -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger(name)
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


def test_sensitive_filter_redacts_credentials():
    """Ensure API keys and SMTP passwords never reach the output."""

    logger, stream = _capture("test_redaction")

    logger.info(
        "test_event",
        extra={
            "api_key": "sk-secret-123",
            "smtp_password": "hunter2",
            "safe_field": "visible",
        },
    )

    output = stream.getvalue()

    assert "sk-secret-123" not in output
    assert "hunter2" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_sensitive_filter_redacts_visitor_content():
    """Ensure contact details and message bodies are redacted."""

    logger, stream = _capture("test_visitor_redaction")

    logger.info(
        "contact_event",
        extra={
            "email": "jane@example.com",
            "contact_message": "Please call me about the project",
            "user_message": "What is your stack?",
            "char_count": 100,
        },
    )

    output = stream.getvalue()

    assert "jane@example.com" not in output
    assert "call me" not in output
    assert "your stack" not in output
    assert "char_count" in output


def test_sensitive_filter_allows_safe_fields():
    """Verify safe fields pass through unmodified."""

    logger, stream = _capture("test_safe_fields")

    logger.info(
        "safe_event",
        extra={
            "route": "/api/chatbot",
            "status": 200,
            "limit_class": "chatbot",
            "client_ip": "203.0.113.7",
        },
    )

    payload = json.loads(stream.getvalue())

    assert payload["message"] == "safe_event"
    assert payload["route"] == "/api/chatbot"
    assert payload["status"] == 200
    assert payload["client_ip"] == "203.0.113.7"
    assert "[REDACTED]" not in stream.getvalue()


def test_sensitive_filter_redacts_nested_dicts():
    """Ensure nested sensitive fields are redacted."""

    logger, stream = _capture("test_nested")

    logger.info(
        "nested_event",
        extra={
            "headers": {"authorization": "Bearer secret-token", "user-agent": "pytest"},
            "details": {"context": {"password": "p4ss", "attempt": 2}},
        },
    )

    payload = json.loads(stream.getvalue())

    assert payload["headers"]["authorization"] == "[REDACTED]"
    assert payload["headers"]["user-agent"] == "pytest"
    assert payload["details"]["context"] == {"password": "[REDACTED]", "attempt": 2}


def test_request_id_is_attached_from_context():
    logger, stream = _capture("test_request_id")

    set_request_id("req-abc")
    try:
        logger.info("correlated_event")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-abc"


def test_exception_info_is_rendered():
    logger, stream = _capture("test_exc_info")

    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception("failed_event")

    payload = json.loads(stream.getvalue())
    assert payload["level"] == "error"
    assert "ValueError: boom" in payload["exc_info"]


def test_redact_handles_lists_and_case():
    value = {"items": [{"Email": "a@b.c"}, {"name": "x"}], "TOKEN": "t"}

    assert redact(value) == {"items": [{"Email": "[REDACTED]"}, {"name": "x"}], "TOKEN": "[REDACTED]"}
