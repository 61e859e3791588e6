"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys
from datetime import timedelta
from typing import Any

import structlog

from loglag import __version__

SERVICE_NAME = "loglag"


def add_service(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Stamp every event with the service name and version."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    return event_dict


def render_durations(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Render timedelta values as seconds rounded to milliseconds."""
    for key, value in event_dict.items():
        if isinstance(value, timedelta):
            event_dict[key] = round(value.total_seconds(), 3)
    return event_dict


def setup_logging(level: str = "info") -> None:
    """Configure structlog for JSON output to stderr.

    Probe latencies may be passed as ``timedelta`` and come out as seconds,
    so they can be scraped straight out of the log stream.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_service,
            structlog.processors.add_log_level,
            render_durations,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[no-any-return]
