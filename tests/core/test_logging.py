"""Tests for structured logging configuration."""

from datetime import date
from decimal import Decimal

import orjson
import structlog

from taxlogic.core.config import settings
from taxlogic.core.logging import (
    _add_context_vars,
    _orjson_serializer,
    configure_logging,
    request_id_ctx,
    session_id_ctx,
    tax_year_ctx,
)


def _reset_structlog() -> None:
    """Reset structlog defaults to avoid test cross-talk."""
    structlog.reset_defaults()


def test_configure_logging_uses_json_when_log_format_json() -> None:
    """Use JSON logging when log_format=json, even in development."""
    original_env = settings.environment
    original_format = settings.log_format

    try:
        settings.environment = "development"
        settings.log_format = "json"
        configure_logging()

        processors = structlog.get_config()["processors"]
        assert any(
            isinstance(processor, structlog.processors.JSONRenderer)
            for processor in processors
        )
        assert any(
            isinstance(processor, structlog.processors.EventRenamer)
            for processor in processors
        )
    finally:
        settings.environment = original_env
        settings.log_format = original_format
        _reset_structlog()


def test_configure_logging_uses_console_when_log_format_console() -> None:
    """Use console logging when log_format=console in development."""
    original_env = settings.environment
    original_format = settings.log_format

    try:
        settings.environment = "development"
        settings.log_format = "console"
        configure_logging()

        processors = structlog.get_config()["processors"]
        assert any(
            isinstance(processor, structlog.dev.ConsoleRenderer)
            for processor in processors
        )
        assert not any(
            isinstance(processor, structlog.processors.JSONRenderer)
            for processor in processors
        )
    finally:
        settings.environment = original_env
        settings.log_format = original_format
        _reset_structlog()


def test_configure_logging_defaults_to_json_outside_development() -> None:
    """Without an override, production renders JSON."""
    original_env = settings.environment
    original_format = settings.log_format

    try:
        settings.environment = "production"
        settings.log_format = None
        configure_logging()

        processors = structlog.get_config()["processors"]
        assert any(
            isinstance(processor, structlog.processors.JSONRenderer)
            for processor in processors
        )
    finally:
        settings.environment = original_env
        settings.log_format = original_format
        _reset_structlog()


def test_context_vars_are_added_to_events() -> None:
    """Request, session and tax year context are merged into every event."""
    tokens = [
        request_id_ctx.set("req-1"),
        session_id_ctx.set("sess-1"),
        tax_year_ctx.set(2025),
    ]
    try:
        event = _add_context_vars(None, "info", {"event": "answer_rejected"})
    finally:
        tax_year_ctx.reset(tokens[2])
        session_id_ctx.reset(tokens[1])
        request_id_ctx.reset(tokens[0])

    assert event == {
        "event": "answer_rejected",
        "request_id": "req-1",
        "session_id": "sess-1",
        "tax_year": 2025,
    }


def test_explicit_fields_win_over_context() -> None:
    token = session_id_ctx.set("from-context")
    try:
        event = _add_context_vars(None, "info", {"event": "x", "session_id": "explicit"})
    finally:
        session_id_ctx.reset(token)

    assert event["session_id"] == "explicit"
    assert "request_id" not in event


def test_console_format_overrides_production() -> None:
    original_env = settings.environment
    original_format = settings.log_format

    try:
        settings.environment = "production"
        settings.log_format = "console"
        configure_logging()

        processors = structlog.get_config()["processors"]
        assert any(
            isinstance(processor, structlog.dev.ConsoleRenderer)
            for processor in processors
        )
    finally:
        settings.environment = original_env
        settings.log_format = original_format
        _reset_structlog()


def test_serializer_renders_amounts_and_dates_as_strings() -> None:
    rendered = _orjson_serializer(
        {"event": "calculation_completed", "net_result": Decimal("92.30"), "day": date(2025, 3, 1)}
    )
    assert orjson.loads(rendered) == {
        "event": "calculation_completed",
        "net_result": "92.30",
        "day": "2025-03-01",
    }
