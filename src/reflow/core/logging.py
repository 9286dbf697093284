"""
Reflow logging - structured logging via structlog.

All human-facing progress ("workflow dispatched", "run is at <url>",
"status: in_progress") and all debug tracing (which context files were
loaded, which were skipped) go through this module. Output goes to stderr so
that stdout stays reserved for command results (outputs, rendered templates,
the ``run-id`` line).

Architecture:
    ::

        ┌────────────────────────────────────────────────────────────┐
        │ configure_logging(level="INFO", json_format=None)          │
        │                                                             │
        │     ↓                                                       │
        │ structlog processor chain:                                  │
        │   1. merge_contextvars  (run_id, workflow from LogContext)  │
        │   2. add_log_level, add_logger_name                         │
        │   3. TimeStamper(iso)                                       │
        │   4. add_service_metadata                                   │
        │   5. JSONRenderer (or ConsoleRenderer on a tty)             │
        └────────────────────────────────────────────────────────────┘

Examples:
    >>> from reflow.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG")
    >>> logger = get_logger(__name__)
    >>> with LogContext(run_id="3f1c", workflow="deploy.yaml"):
    ...     logger.info("workflow_dispatched", anchor="reflow/3f1c")

Guardrails:
    - Never bind or log the GitHub token
    - Service name stored globally (set once at startup)

Tags:
    logging, structlog, observability, reflow
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Store service name for metadata
_SERVICE_NAME = "reflow"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service", _SERVICE_NAME)
    return event_dict


class _NamedPrintLogger(structlog.PrintLogger):
    """PrintLogger on the current stderr that remembers its logger name."""

    def __init__(self, name: str | None = None):
        super().__init__(file=sys.stderr)
        self.name = name


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # Resolved per logger so a replaced sys.stderr is honoured
    return _NamedPrintLogger(str(args[0]) if args else None)


def _add_logger_name(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the name passed to get_logger() as ``logger``."""
    name = getattr(logger, "name", None)
    if name:
        event_dict.setdefault("logger", name)
    return event_dict



def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "reflow",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if stderr is not a tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not sys.stderr.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        _add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )

    # httpx logs every request at INFO through the stdlib
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(run_id="abc123"):
            logger.info("run_started")
        # run_id unbound here
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "LogContext",
]
