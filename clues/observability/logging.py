"""
Structured logging setup using structlog.

Every record, whether it comes from a structlog logger (the queue wrapper,
publishers) or a plain ``logging`` logger (registry, worker), goes through
the same processor chain: bound job context, trace ids, and the host and
process the record came from, which match the ``hostname`` and ``process``
stamped into job metadata.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from opentelemetry import trace

from clues.config import Settings, get_settings
from clues.metadata import host_info

# Loggers that are chatty at INFO when the OTLP exporter cannot reach a collector
NOISY_LOGGERS = ("opentelemetry", "grpc")


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Add OpenTelemetry trace context to log records.

    Args:
        logger: The logger instance.
        method_name: The method name being called.
        event_dict: The event dictionary.

    Returns:
        The event dictionary with trace context added.
    """
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def add_origin(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add the host and process identity used in job metadata."""
    info = host_info()
    event_dict.setdefault("hostname", info.hostname)
    event_dict.setdefault("process", info.pid)
    return event_dict


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure structured logging for the process.

    Args:
        settings: Settings to read level and format from. Defaults to the
            cached process settings.
    """
    settings = settings or get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        add_origin,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__).

    Returns:
        BoundLogger: A structlog logger instance.
    """
    return structlog.get_logger(name)


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """
    Bind key-value pairs to every log record emitted inside the block.

    Keys bound by an enclosing block are restored on exit, so nested blocks
    (a worker around the job it is performing) compose.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
