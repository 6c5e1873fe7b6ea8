"""
Instrumented queue wrapper.

InstrumentedQueue sits in front of any queue exposing raw ``push(queue,
payload)`` and ``pop(queue)`` and offers the same two operations. When a
preprocessor or publisher is configured, pushed jobs get correlation
metadata and an ``enqueued`` event, popped jobs get their time in queue and a
``dequeued`` event. Unconfigured, both calls go straight through.
"""

from collections.abc import Callable, Mapping
from typing import Any, Protocol

from pydantic import BaseModel

from clues.constants import (
    META_ENQUEUED_TIME,
    META_EVENT_HASH,
    META_TIME_IN_QUEUE,
    SPAN_DEQUEUE,
    SPAN_ENQUEUE,
    EventType,
)
from clues.exceptions import PublishError, QueueNameError
from clues.metadata import elapsed_since, stamp, utc_now
from clues.observability.logging import get_logger
from clues.observability.tracing import get_tracer, set_span_attributes
from clues.registry import CluesConfig, get_config
from clues.types.job import JobPayload, MetadataRecord

logger = get_logger(__name__)


class UnderlyingQueue(Protocol):
    """Raw queue operations being instrumented."""

    def push(self, queue: str, payload: Any) -> None:
        ...

    def pop(self, queue: str) -> Any | None:
        ...


class InstrumentedQueue:
    """
    Queue decorator that attaches metadata and publishes lifecycle events.

    The wrapper keeps no per-job state; everything it adds travels inside the
    payload, so concurrent calls need no locking beyond what the underlying
    queue does.

    Publisher failures are not swallowed. They surface as PublishError, which
    chains the publisher's own exception as ``__cause__`` (also exposed as
    ``original``) and says whether the push or pop already happened.
    """

    def __init__(self, queue: UnderlyingQueue, config: CluesConfig | None = None):
        """
        Initialize the wrapper.

        Args:
            queue: The queue whose push/pop are wrapped.
            config: Preprocessor/publisher to use. If omitted, the process-wide
                registration is read on every call.
        """
        self._queue = queue
        self._config = config

    @property
    def queue(self) -> UnderlyingQueue:
        """The wrapped queue."""
        return self._queue

    @property
    def config(self) -> CluesConfig:
        """The configuration in effect for the next call."""
        return self._config if self._config is not None else get_config()

    def push(self, queue: str, payload: Any) -> None:
        """
        Push a job onto a queue.

        The caller's payload is copied before it is stamped, so it is never
        modified. The preprocessor may edit the stamped copy in place, or
        return a mapping or pydantic model to use instead; any other return
        value is ignored.

        Args:
            queue: Queue name.
            payload: Job payload; a mapping, JobPayload, pydantic model or
                JSON object text.

        Raises:
            QueueNameError: If the queue name is empty.
            PayloadValidationError: If the payload is malformed.
            PublishError: If the publisher failed; the job was not pushed.
                ``original`` on the error holds the publisher's exception.
        """
        config = self.config
        if not config.is_configured:
            self._queue.push(queue, payload)
            return

        _check_queue_name(queue)
        with get_tracer().start_as_current_span(SPAN_ENQUEUE):
            item = JobPayload.normalize(payload)
            stamp(item)

            if config.preprocessor is not None:
                replacement = config.preprocessor(queue, item)
                if isinstance(replacement, (Mapping, BaseModel)):
                    item = JobPayload.normalize(replacement)

            metadata = MetadataRecord.from_payload(item)
            set_span_attributes(queue=queue, event_hash=metadata.event_hash)

            if config.publisher is not None:
                self._publish(
                    config.publisher.enqueued,
                    EventType.ENQUEUED,
                    queue,
                    item,
                    metadata,
                    operation_completed=False,
                )

            self._queue.push(queue, item.to_dict())
            logger.debug("job_enqueued", queue=queue, event_hash=metadata.event_hash)

    def pop(self, queue: str) -> Any | None:
        """
        Pop the next job off a queue.

        Metadata found on the job is read, never validated: a job stamped by
        another producer is returned with its metadata as it was, plus
        ``time_in_queue`` when ``enqueued_time`` is a number.

        Args:
            queue: Queue name.

        Returns:
            None if the queue is empty. Otherwise the raw item when
            unconfigured, or a JobPayload with ``time_in_queue`` added to its
            metadata when configured.

        Raises:
            PayloadValidationError: If the popped item is not a mapping, or a
                publisher is configured and the job has no class or args.
            PublishError: If the publisher failed. The job has already left
                the queue; ``payload`` on the error holds it and ``original``
                holds the publisher's exception.
        """
        raw = self._queue.pop(queue)
        if raw is None:
            return None

        config = self.config
        if not config.is_configured:
            return raw

        with get_tracer().start_as_current_span(SPAN_DEQUEUE):
            item = JobPayload.normalize(raw)

            metadata = item.metadata or {}
            enqueued_time = metadata.get(META_ENQUEUED_TIME)
            if isinstance(enqueued_time, (int, float)) and not isinstance(enqueued_time, bool):
                metadata[META_TIME_IN_QUEUE] = elapsed_since(enqueued_time)
            else:
                logger.debug("job_without_enqueue_time", queue=queue)

            event_hash = metadata.get(META_EVENT_HASH)
            time_in_queue = metadata.get(META_TIME_IN_QUEUE)
            set_span_attributes(
                queue=queue,
                event_hash=event_hash,
                time_in_queue=time_in_queue,
            )

            if config.publisher is not None:
                self._publish(
                    config.publisher.dequeued,
                    EventType.DEQUEUED,
                    queue,
                    item,
                    MetadataRecord.from_payload(item, strict=False),
                    operation_completed=True,
                )

            logger.debug(
                "job_dequeued",
                queue=queue,
                event_hash=event_hash,
                time_in_queue=time_in_queue,
            )
            return item

    def _publish(
        self,
        method: Callable[..., Any],
        event_type: EventType,
        queue: str,
        item: JobPayload,
        metadata: MetadataRecord,
        operation_completed: bool,
    ) -> None:
        job_class = item.job_class
        args = item.args
        try:
            method(utc_now(), queue, metadata, job_class, *args)
        except Exception as e:
            logger.warning(
                "event_publish_failed",
                event_type=str(event_type),
                queue=queue,
                event_hash=metadata.event_hash,
                error=str(e),
            )
            raise PublishError(
                event_type=str(event_type),
                queue=queue,
                payload=item,
                operation_completed=operation_completed,
            ) from e


def _check_queue_name(queue: Any) -> None:
    if not isinstance(queue, str) or not queue:
        raise QueueNameError(f"Queue name must be a non-empty string, got {queue!r}")
