"""
In-memory queue backend.

Stores payloads JSON-encoded, the way a broker would, so whatever a worker
pops has been through a real serialization round trip. Intended for tests
and local development.
"""

import json
import threading
from collections import defaultdict, deque
from collections.abc import Mapping
from typing import Any

from clues.exceptions import PayloadValidationError


class InMemoryQueue:
    """
    Thread-safe FIFO queues keyed by name.

    Implements the raw ``push``/``pop`` contract that InstrumentedQueue wraps.
    """

    def __init__(self) -> None:
        self._queues: defaultdict[str, deque[str]] = defaultdict(deque)
        self._lock = threading.Lock()

    def push(self, queue: str, payload: Mapping[str, Any]) -> None:
        """Append a payload to the tail of a queue."""
        try:
            encoded = json.dumps(dict(payload))
        except (TypeError, ValueError) as e:
            raise PayloadValidationError(
                f"Payload is not JSON serializable: {e}", payload=payload
            ) from e
        with self._lock:
            self._queues[queue].append(encoded)

    def pop(self, queue: str) -> dict[str, Any] | None:
        """Remove and return the head of a queue, or None if it is empty."""
        with self._lock:
            pending = self._queues.get(queue)
            if not pending:
                return None
            encoded = pending.popleft()
        return json.loads(encoded)

    def size(self, queue: str) -> int:
        """Number of payloads waiting in a queue."""
        with self._lock:
            return len(self._queues.get(queue, ()))

    def queues(self) -> list[str]:
        """Names of queues that currently hold payloads."""
        with self._lock:
            return [name for name, pending in self._queues.items() if pending]

    def clear(self) -> None:
        """Drop every queued payload."""
        with self._lock:
            self._queues.clear()
