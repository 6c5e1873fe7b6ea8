"""
Lifecycle event type definitions.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from clues.constants import EventType
from clues.types.job import MetadataRecord


class LifecycleEvent(BaseModel):
    """
    Event emitted when a job is enqueued, dequeued or performed.

    Immutable; built inside a single publish call and handed to the
    publisher's transport.
    """

    model_config = ConfigDict(frozen=True)

    event_type: EventType
    timestamp: datetime
    queue: str
    metadata: MetadataRecord
    job_class: str
    args: tuple[Any, ...] = ()

    def to_message(self) -> dict[str, Any]:
        """Flat, JSON-compatible representation for transports."""
        return {
            "event_type": str(self.event_type),
            "timestamp": self.timestamp.isoformat(),
            "queue": self.queue,
            "metadata": self.metadata.to_dict(),
            "job_class": self.job_class,
            "args": list(self.args),
        }
