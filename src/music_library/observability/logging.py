"""
music_library.observability.logging

Structured logging configuration for the service.

Responsibilities:
- Configure `structlog` for JSON logs on stdout.
- Keep SQL text in log events on one line and bounded in size.
- Route SQLAlchemy's own engine logging through the same handler when asked.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

STATEMENT_LOG_LIMIT = 500


def configure_logging(*, service_name: str, level: str, sql_echo: bool = False) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    # Statement-level engine logs are noisy; only on explicit request.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if sql_echo else logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name(service_name),
            _compact_statement,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_service_name(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def _compact_statement(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    statement = event_dict.get("statement")
    if isinstance(statement, str):
        flat = " ".join(statement.split())
        if len(flat) > STATEMENT_LOG_LIMIT:
            flat = flat[:STATEMENT_LOG_LIMIT] + "..."
        event_dict["statement"] = flat
    return event_dict


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# Data-access modules log through `get_logger(__name__)`; transaction and cache
# events are emitted at debug/info so they can be filtered per environment.
# Bound parameters are never logged, only statement text.
