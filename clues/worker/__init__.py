"""
Worker module.
Pops instrumented jobs, performs them and publishes perform events.
"""

from clues.worker.handlers import (
    get_handler,
    list_handlers,
    register_handler,
    unregister_handler,
)
from clues.worker.main import Worker

__all__ = [
    "Worker",
    "register_handler",
    "unregister_handler",
    "get_handler",
    "list_handlers",
]
