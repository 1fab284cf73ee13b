"""
Structured logging for tagmemo.

The façade reports every decision it takes (hit, miss, bypass, fallback,
invalidation) to a pluggable *log sink*. A sink is anything with
structlog-style ``debug/info/warning/error(event, **fields)`` methods, so a
structlog logger from :func:`get_logger` can be passed directly. The
façade's default sink is :class:`NullLogSink`, which discards everything.

Examples:
    >>> from tagmemo.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False, service="reports-api")
    >>> facade.set_log_sink(get_logger("tagmemo.facade"))

    Output (JSON format):

        {"@timestamp": "...", "log.level": "debug", "service.name": "reports-api",
         "event": "cache_hit", "key": "c1f0...", "decision": "hit"}

Tags:
    logging, structlog, observability, tagmemo

Doc-Types:
    - API Reference
    - Observability Guide
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Protocol

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "tagmemo"


class LogSink(Protocol):
    """Leveled, structured diagnostic destination."""

    def debug(self, event: str, **kw: Any) -> Any: ...

    def info(self, event: str, **kw: Any) -> Any: ...

    def warning(self, event: str, **kw: Any) -> Any: ...

    def error(self, event: str, **kw: Any) -> Any: ...


class NullLogSink:
    """Sink that drops every message."""

    def debug(self, event: str, **kw: Any) -> None:
        pass

    def info(self, event: str, **kw: Any) -> None:
        pass

    def warning(self, event: str, **kw: Any) -> None:
        pass

    def error(self, event: str, **kw: Any) -> None:
        pass


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _elasticsearch_compatible(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Rename timestamp/level to their ECS field names."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "tagmemo",
    add_timestamp: bool = True,
) -> None:
    """Configure structlog (and stdlib logging) for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(_elasticsearch_compatible)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger usable as a façade log sink."""
    return structlog.get_logger(name)


__all__ = [
    "LogSink",
    "NullLogSink",
    "configure_logging",
    "get_logger",
]
