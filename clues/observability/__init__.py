"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from clues.observability.logging import get_logger, log_context, setup_logging
from clues.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from clues.observability.tracing import get_tracer, setup_tracing

__all__ = [
    "setup_logging",
    "get_logger",
    "log_context",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
]
