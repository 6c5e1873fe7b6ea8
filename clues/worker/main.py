"""
Worker for performing instrumented jobs.

The worker pops jobs through an InstrumentedQueue, so every job it takes gets
its ``dequeued`` event, then runs the registered handler and reports
``perform_started`` followed by ``perform_finished`` or ``failed`` to the
configured publisher.
"""

import logging
import time
from typing import Any

from clues.config import get_settings
from clues.constants import (
    META_EVENT_HASH,
    META_EXCEPTION,
    META_MESSAGE,
    META_TIME_TO_PERFORM,
    SPAN_PERFORM,
    EventType,
)
from clues.exceptions import HandlerNotFoundError, PublishError
from clues.metadata import host_info, utc_now
from clues.observability.logging import log_context
from clues.observability.tracing import get_tracer, set_span_attributes
from clues.queue import InstrumentedQueue, UnderlyingQueue
from clues.registry import CluesConfig
from clues.types.job import JobPayload, JobResult, MetadataRecord
from clues.worker.handlers import get_handler

logger = logging.getLogger(__name__)


class Worker:
    """
    Job worker that polls queues in order and performs what it pops.

    Handler exceptions are reported as ``failed`` events and turned into a
    failed JobResult. Publisher failures propagate as PublishError.
    """

    def __init__(
        self,
        queue: UnderlyingQueue,
        queues: list[str] | None = None,
        config: CluesConfig | None = None,
        worker_id: str | None = None,
        poll_interval: float | None = None,
    ):
        """
        Initialize the worker.

        Args:
            queue: The raw queue to pop from; wrapped in an InstrumentedQueue.
            queues: Queue names in priority order. Defaults to settings.
            config: Instrumentation config. Defaults to the process-wide one.
            worker_id: Worker identifier. Defaults to hostname + PID.
            poll_interval: Seconds between polls when every queue is empty.
        """
        settings = get_settings()
        host = host_info()

        self.worker_id = worker_id or f"{host.hostname}-{host.pid}"
        self.queues = queues or [
            name.strip() for name in settings.worker_queues.split(",") if name.strip()
        ]
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.worker_poll_interval_seconds
        )

        self._queue = InstrumentedQueue(queue, config)
        self._running = False

    def work_once(self) -> JobResult | None:
        """
        Pop and perform at most one job.

        Returns:
            The result of the performed job, or None if every queue was empty.
        """
        for name in self.queues:
            item = self._queue.pop(name)
            if item is not None:
                return self.perform(name, item)
        return None

    def run(self, burst: bool = False) -> int:
        """
        Perform jobs until stopped.

        Log records emitted while running, including those of the jobs being
        performed, carry ``worker_id``.

        Args:
            burst: Return as soon as every queue is empty instead of polling.

        Returns:
            Number of jobs performed.
        """
        with log_context(worker_id=self.worker_id):
            logger.info("Worker starting", extra={"queues": self.queues})
            self._running = True
            performed = 0

            while self._running:
                result = self.work_once()
                if result is not None:
                    performed += 1
                    continue
                if burst:
                    break
                time.sleep(self.poll_interval)

            self._running = False
            logger.info("Worker stopped", extra={"performed": performed})
        return performed

    def stop(self) -> None:
        """Stop after the job in progress."""
        logger.info("Worker stopping", extra={"worker_id": self.worker_id})
        self._running = False

    def perform(self, queue: str, item: Any) -> JobResult:
        """
        Perform a single popped job.

        Args:
            queue: The queue the job came from.
            item: The popped payload.

        Returns:
            JobResult describing the outcome.

        Raises:
            PublishError: If the publisher failed; ``payload`` on the error
                holds the job.
        """
        payload = JobPayload.normalize(item)
        job_class = payload.job_class
        args = payload.args
        # Perform details are reported on a copy; the payload keeps what it
        # had at dequeue.
        metadata = dict(payload.metadata or {})
        event_hash = metadata.get(META_EVENT_HASH)

        with (
            log_context(queue=queue, job_class=job_class, event_hash=event_hash),
            get_tracer().start_as_current_span(SPAN_PERFORM),
        ):
            set_span_attributes(queue=queue, job_class=job_class, event_hash=event_hash)
            self._emit(EventType.PERFORM_STARTED, queue, payload, metadata)

            started = time.perf_counter()
            try:
                handler = get_handler(job_class)
                if handler is None:
                    raise HandlerNotFoundError(job_class)
                output = handler(*args)
            except Exception as e:
                duration = time.perf_counter() - started
                logger.exception(
                    "Job failed",
                    extra={"queue": queue, "job_class": job_class, "event_hash": event_hash},
                )
                metadata[META_EXCEPTION] = type(e).__name__
                metadata[META_MESSAGE] = str(e)
                self._emit(EventType.FAILED, queue, payload, metadata)
                return JobResult(
                    success=False,
                    queue=queue,
                    job_class=job_class,
                    event_hash=event_hash,
                    error=f"{type(e).__name__}: {e}",
                    duration_ms=duration * 1000,
                )

            duration = time.perf_counter() - started
            metadata[META_TIME_TO_PERFORM] = duration
            self._emit(EventType.PERFORM_FINISHED, queue, payload, metadata)

        return JobResult(
            success=True,
            queue=queue,
            job_class=job_class,
            event_hash=event_hash,
            output=output,
            duration_ms=duration * 1000,
        )

    def _emit(
        self,
        event_type: EventType,
        queue: str,
        payload: JobPayload,
        metadata: dict[str, Any],
    ) -> None:
        publisher = self._queue.config.publisher
        method = getattr(publisher, str(event_type), None) if publisher else None
        if method is None:
            return
        try:
            method(
                utc_now(),
                queue,
                MetadataRecord.from_mapping(metadata, strict=False),
                payload.job_class,
                *payload.args,
            )
        except Exception as e:
            raise PublishError(
                event_type=str(event_type),
                queue=queue,
                payload=payload,
                operation_completed=True,
            ) from e
