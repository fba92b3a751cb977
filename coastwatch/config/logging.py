"""
Structured logging for CoastWatch.

Production renders one JSON object per line; development renders coloured
console output. Both pass through the same processor chain, which stamps the
service name and scrubs e-mail addresses and bearer tokens from every value.
"""

import logging
import re
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

SERVICE_NAME = "coastwatch"

_BEARER = re.compile(r"Bearer\s+[A-Za-z0-9\-_.=]+")
_JWT = re.compile(r"eyJ[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+")
_EMAIL = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        value = _BEARER.sub("Bearer [TOKEN_REDACTED]", value)
        value = _JWT.sub("[TOKEN_REDACTED]", value)
        return _EMAIL.sub("[EMAIL_REDACTED]", value)
    if isinstance(value, dict):
        return {k: _scrub(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]
    return value


def filter_sensitive(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Replace e-mail addresses and tokens with placeholders.

    Users are identified in logs by UUID only.
    """
    return {key: _scrub(value) for key, value in event_dict.items()}


def add_service_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _renderers(json_format: bool) -> list[Processor]:
    if json_format:
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer(colors=True)]


def configure_logging(*, json_format: bool = True, log_level: str = "INFO") -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        json_format: JSON lines when True, console output otherwise.
        log_level: Minimum level name, e.g. ``"INFO"``.
    """
    level = logging.getLevelName(log_level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            add_service_context,
            filter_sensitive,
            structlog.processors.StackInfoRenderer(),
            *_renderers(json_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # SQLAlchemy and uvicorn log through the stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)


def get_logger(name: str | None = None, **bindings: Any) -> Any:
    """Return a structlog logger, optionally with initial bindings."""
    logger = structlog.get_logger(name)
    return logger.bind(**bindings) if bindings else logger


def bind_context(**kwargs: Any) -> None:
    """
    Bind request-scoped fields onto every later log line.

    Example:
        bind_context(subject_id=str(user.id), role=user.role.value)
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
