"""Structured logging for interview sessions and tax calculations.

Every event is a structlog event. The API middleware binds the request id,
and the calculation agent binds the session id and tax year while it works
on a session, so events from the parser, registry and calculator carry them
without passing them around explicitly.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any

import orjson
import structlog
from structlog.types import Processor

from taxlogic.core.config import settings

# Bound per HTTP request and per calculation run
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
session_id_ctx: ContextVar[str | None] = ContextVar("session_id", default=None)
tax_year_ctx: ContextVar[int | None] = ContextVar("tax_year", default=None)


def _add_context_vars(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Stamp the bound request, session and tax year onto an event.

    An explicit ``session_id`` or ``tax_year`` in the log call wins over the
    bound value.
    """
    if request_id := request_id_ctx.get():
        event_dict["request_id"] = request_id
    if session_id := session_id_ctx.get():
        event_dict.setdefault("session_id", session_id)
    if (tax_year := tax_year_ctx.get()) is not None:
        event_dict.setdefault("tax_year", tax_year)
    return event_dict


def _orjson_serializer(obj: Any, **kwargs: Any) -> str:
    """Render an event as JSON. Decimal amounts and dates fall back to ``str``."""
    return orjson.dumps(obj, default=str).decode("utf-8")


def _json_output() -> bool:
    """JSON unless ``log_format`` asks for console, or we run in development."""
    log_format = settings.log_format.lower() if settings.log_format else None
    if log_format is not None:
        return log_format == "json"
    return settings.environment != "development"


def configure_logging() -> None:
    """Configure structlog for the API server and the CLI.

    Development: coloured console output.
    Elsewhere: one JSON object per line, rendered with orjson.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _add_context_vars,
    ]

    if _json_output():
        # Log shippers expect the text under "message"
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.EventRenamer("message"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(serializer=_orjson_serializer),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if settings.debug else logging.INFO,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Module logger, e.g. ``logger = get_logger(__name__)``."""
    return structlog.get_logger(name)
