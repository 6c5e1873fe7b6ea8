"""
Event publishers.

A publisher receives queue lifecycle events as
``enqueued(timestamp, queue, metadata, job_class, *args)`` and
``dequeued(...)`` calls, plus the perform events emitted by workers.
EventPublisher turns each call into a LifecycleEvent and hands it to
``publish``; subclasses only decide where the event goes.

Publishers are called synchronously and their exceptions propagate to the
queue operation that triggered them. Nothing here retries.
"""

import json
import sys
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime
from typing import Any, TextIO

from clues.config import Settings
from clues.constants import (
    META_TIME_TO_PERFORM,
    PUBLISHER_LOG,
    PUBLISHER_METRICS,
    PUBLISHER_NONE,
    PUBLISHER_STDOUT,
    EventType,
)
from clues.observability.logging import get_logger
from clues.observability.metrics import MetricsCollector, get_metrics
from clues.types.events import LifecycleEvent
from clues.types.job import MetadataRecord


class EventPublisher(ABC):
    """Base class for publishers that work on LifecycleEvent objects."""

    def enqueued(
        self,
        timestamp: datetime,
        queue: str,
        metadata: MetadataRecord | Mapping[str, Any],
        job_class: str,
        *args: Any,
    ) -> None:
        """Publish a job pushed onto a queue."""
        self._emit(EventType.ENQUEUED, timestamp, queue, metadata, job_class, args)

    def dequeued(
        self,
        timestamp: datetime,
        queue: str,
        metadata: MetadataRecord | Mapping[str, Any],
        job_class: str,
        *args: Any,
    ) -> None:
        """Publish a job popped off a queue."""
        self._emit(EventType.DEQUEUED, timestamp, queue, metadata, job_class, args)

    def perform_started(
        self,
        timestamp: datetime,
        queue: str,
        metadata: MetadataRecord | Mapping[str, Any],
        job_class: str,
        *args: Any,
    ) -> None:
        """Publish a worker starting to perform a job."""
        self._emit(
            EventType.PERFORM_STARTED, timestamp, queue, metadata, job_class, args
        )

    def perform_finished(
        self,
        timestamp: datetime,
        queue: str,
        metadata: MetadataRecord | Mapping[str, Any],
        job_class: str,
        *args: Any,
    ) -> None:
        """Publish a job performed successfully."""
        self._emit(
            EventType.PERFORM_FINISHED, timestamp, queue, metadata, job_class, args
        )

    def failed(
        self,
        timestamp: datetime,
        queue: str,
        metadata: MetadataRecord | Mapping[str, Any],
        job_class: str,
        *args: Any,
    ) -> None:
        """Publish a job whose handler raised."""
        self._emit(EventType.FAILED, timestamp, queue, metadata, job_class, args)

    def _emit(
        self,
        event_type: EventType,
        timestamp: datetime,
        queue: str,
        metadata: MetadataRecord | Mapping[str, Any],
        job_class: str,
        args: tuple[Any, ...],
    ) -> None:
        if not isinstance(metadata, MetadataRecord):
            metadata = MetadataRecord.from_mapping(dict(metadata), strict=False)
        self.publish(
            LifecycleEvent(
                event_type=event_type,
                timestamp=timestamp,
                queue=queue,
                metadata=metadata,
                job_class=job_class,
                args=args,
            )
        )

    @abstractmethod
    def publish(self, event: LifecycleEvent) -> None:
        """Deliver one event."""


class StreamPublisher(EventPublisher):
    """Writes each event as one JSON document per line."""

    def __init__(self, stream: TextIO | None = None):
        """
        Args:
            stream: Text stream to write to. Defaults to the current sys.stdout.
        """
        self._stream = stream

    def publish(self, event: LifecycleEvent) -> None:
        stream = self._stream or sys.stdout
        stream.write(json.dumps(event.to_message(), default=str) + "\n")
        stream.flush()


class LogPublisher(EventPublisher):
    """Emits each event as a structured log record."""

    def __init__(self, logger: Any = None):
        self._logger = logger or get_logger(__name__)

    def publish(self, event: LifecycleEvent) -> None:
        message = event.to_message()
        # "timestamp" is owned by the log processor chain
        message["event_timestamp"] = message.pop("timestamp")
        self._logger.info("job_lifecycle_event", **message)


class MetricsPublisher(EventPublisher):
    """Turns events into Prometheus counters and latency histograms."""

    def __init__(self, collector: MetricsCollector | None = None):
        self._collector = collector or get_metrics()

    def publish(self, event: LifecycleEvent) -> None:
        self._collector.record_event(str(event.event_type), event.queue)

        if event.event_type == EventType.DEQUEUED:
            time_in_queue = event.metadata.time_in_queue
            if isinstance(time_in_queue, (int, float)):
                self._collector.record_time_in_queue(event.queue, time_in_queue)
        elif event.event_type == EventType.PERFORM_FINISHED:
            extra = event.metadata.model_extra or {}
            elapsed = extra.get(META_TIME_TO_PERFORM)
            if elapsed is not None:
                self._collector.record_time_to_perform(
                    event.queue, event.job_class, float(elapsed)
                )
        elif event.event_type == EventType.FAILED:
            self._collector.record_job_failed(event.queue, event.job_class)


class CompositePublisher(EventPublisher):
    """
    Forwards every event to several publishers, in order.

    The first publisher to raise stops the fan-out and its exception
    propagates. Members that do not implement a worker-side perform event
    are skipped for that event.
    """

    def __init__(self, *publishers: Any):
        self.publishers = list(publishers)

    def _emit(
        self,
        event_type: EventType,
        timestamp: datetime,
        queue: str,
        metadata: MetadataRecord | Mapping[str, Any],
        job_class: str,
        args: tuple[Any, ...],
    ) -> None:
        for publisher in self.publishers:
            method = getattr(publisher, str(event_type), None)
            if method is None:
                continue
            method(timestamp, queue, metadata, job_class, *args)

    def publish(self, event: LifecycleEvent) -> None:
        self._emit(
            event.event_type,
            event.timestamp,
            event.queue,
            event.metadata,
            event.job_class,
            event.args,
        )


def build_publisher(settings: Settings) -> EventPublisher | None:
    """
    Build the publisher named by settings.

    Args:
        settings: Settings whose ``publisher`` is "none", "stdout", "log",
            "metrics", or a comma-separated combination.

    Returns:
        The publisher, a CompositePublisher for several names, or None.

    Raises:
        ValueError: If a publisher name is unknown.
    """
    publishers: list[EventPublisher] = []
    for name in settings.publisher.split(","):
        name = name.strip().lower()
        if not name or name == PUBLISHER_NONE:
            continue
        if name == PUBLISHER_STDOUT:
            publishers.append(StreamPublisher())
        elif name == PUBLISHER_LOG:
            publishers.append(LogPublisher())
        elif name == PUBLISHER_METRICS:
            publishers.append(MetricsPublisher())
        else:
            raise ValueError(f"Unknown publisher: {name}")

    if not publishers:
        return None
    if len(publishers) == 1:
        return publishers[0]
    return CompositePublisher(*publishers)
