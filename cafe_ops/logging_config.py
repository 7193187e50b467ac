"""Structured logging configuration using structlog.

Every log line carries:
- the application name and level
- an ISO timestamp (optional)
- whatever request context was bound (request_id, purchase_id, check_in_id)

QR tokens and payment references are shortened before rendering so that a
voucher cannot be reconstructed from the logs.
"""

import logging
import os
import sys
from typing import Any

import structlog
from structlog.typing import EventDict, Processor

APP_NAME = "cafe-ops"

# Fields holding redeemable secrets; rendered as a short prefix only
SENSITIVE_FIELDS = ("qr_code", "token", "payment_reference")
VISIBLE_PREFIX = 20


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag every event with the application name."""
    event_dict["app"] = APP_NAME
    return event_dict


def shorten_sensitive_fields(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Truncate QR tokens and payment references."""
    for key in SENSITIVE_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > VISIBLE_PREFIX:
            event_dict[key] = value[:VISIBLE_PREFIX] + "..."
    return event_dict


def drop_debug_events(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Drop DEBUG events unless LOG_LEVEL asks for them."""
    if method_name == "debug" and not is_debug_mode():
        raise structlog.DropEvent
    return event_dict


def is_debug_mode() -> bool:
    return os.getenv("LOG_LEVEL", "INFO").upper() == "DEBUG"


def build_processors(
    numeric_level: int,
    json_format: bool = True,
    include_timestamp: bool = True,
) -> list[Processor]:
    """Processor chain, ending in a renderer.

    Secrets are shortened before anything is rendered.
    """
    chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_app_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        shorten_sensitive_fields,
    ]
    if numeric_level > logging.DEBUG:
        chain.append(drop_debug_events)
    if include_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso", key="timestamp"))
    chain += [structlog.processors.StackInfoRenderer(), structlog.processors.format_exc_info]

    if not json_format:
        return chain + [
            structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)
        ]
    return chain + [structlog.processors.JSONRenderer(sort_keys=False)]


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = True,
    include_timestamp: bool = True,
) -> None:
    """Configure structlog on top of the standard library logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_format: JSON lines when True, colored console output otherwise
        include_timestamp: Add an ISO 8601 ``timestamp`` field
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    # stdout carries only the rendered line
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=build_processors(level, json_format, include_timestamp),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_env() -> None:
    """Configure logging from LOG_LEVEL and LOG_FORMAT."""
    configure_logging(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        json_format=os.getenv("LOG_FORMAT", "json").lower() == "json",
    )


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger for ``name`` (usually ``__name__``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables to every subsequent log line in this context.

    Example:
        bind_context(request_id="abc123", check_in_id="chk-456")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
