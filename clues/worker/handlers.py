"""
Job handler registry.

Handlers are plain callables keyed by the job class identifier they
perform; they receive the job's positional arguments.
"""

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

# Type alias for job handler functions
JobHandler = Callable[..., Any]

# Handler registry
_handlers: dict[str, JobHandler] = {}


def register_handler(job_class: str) -> Callable[[JobHandler], JobHandler]:
    """
    Decorator to register a job handler.

    Args:
        job_class: The job class identifier this handler performs.

    Returns:
        Decorator function.

    Example:
        @register_handler("SendEmail")
        def send_email(address, subject):
            ...
    """
    def decorator(handler: JobHandler) -> JobHandler:
        _handlers[job_class] = handler
        logger.info(f"Registered handler for job class: {job_class}")
        return handler
    return decorator


def unregister_handler(job_class: str) -> None:
    """Remove the handler for a job class, if any."""
    _handlers.pop(job_class, None)


def get_handler(job_class: str) -> JobHandler | None:
    """
    Get the handler for a job class.

    Args:
        job_class: The job class identifier.

    Returns:
        The handler function or None if not found.
    """
    return _handlers.get(job_class)


def list_handlers() -> list[str]:
    """List all registered job classes."""
    return list(_handlers.keys())
