"""
Structured logging for cachespine.

Backends log through ``get_logger(__name__)``; applications call
``configure_logging`` (or ``configure_from_settings``) once at startup to
choose JSON or console output.

Manifesto:
    Cache traffic is high volume, so the library logs little: lock
    contention, translated backend failures and destructive operations.
    Misses are never logged as errors.

    - **Structures:** JSON output for log aggregation
    - **Flexes:** Console output for development, JSON for production

Examples:
    >>> from cachespine.core.logging import configure_logging, get_logger
    >>> configure_logging(level="INFO", json_format=True, service="sessions")
    >>> logger = get_logger(__name__)
    >>> logger.info("cache_ready", backend="redis")

Tags:
    logging, structlog, observability, json-logging

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Field renames applied to JSON output (ECS names).
_ECS_FIELDS = {"timestamp": "@timestamp", "level": "log.level"}

_FORMATS: dict[str, bool | None] = {"json": True, "console": False, "auto": None}


class _ServiceName:
    """Processor stamping every event with the configured service name."""

    def __init__(self, service: str) -> None:
        self.service = service

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", self.service)
        return event_dict


def _rename_ecs_fields(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for field, ecs_name in _ECS_FIELDS.items():
        if field in event_dict:
            event_dict[ecs_name] = event_dict.pop(field)
    return event_dict


def _processors(service: str, json_format: bool, add_timestamp: bool) -> list[Processor]:
    processors: list[Processor] = []
    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _ServiceName(service),
    ]
    if json_format:
        processors += [_rename_ecs_fields, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    return processors


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "cachespine",
    add_timestamp: bool = True,
) -> None:
    """Configure structlog for the process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name stamped on every event
        add_timestamp: Include ISO timestamp in logs
    """
    if json_format is None:
        json_format = not sys.stdout.isatty()

    structlog.configure(
        processors=_processors(service, json_format, add_timestamp),
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_settings(settings: Any, service: str = "cachespine") -> None:
    """Configure logging from a ``CacheSettings`` instance."""
    configure_logging(
        level=settings.log_level,
        json_format=_FORMATS[settings.log_format],
        service=service,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
]
