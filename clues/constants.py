"""
Application constants.
Centralized location for all constant values used across the package.
"""

from enum import StrEnum


class EventType(StrEnum):
    """
    Lifecycle events published for a job.

    Queue side:
    - ENQUEUED: job pushed onto a queue
    - DEQUEUED: job popped off a queue

    Worker side:
    - PERFORM_STARTED -> PERFORM_FINISHED (success)
    - PERFORM_STARTED -> FAILED (handler raised)
    """

    ENQUEUED = "enqueued"
    DEQUEUED = "dequeued"
    PERFORM_STARTED = "perform_started"
    PERFORM_FINISHED = "perform_finished"
    FAILED = "failed"


# Payload fields
FIELD_CLASS = "class"
FIELD_ARGS = "args"
FIELD_METADATA = "metadata"

# Metadata fields
META_EVENT_HASH = "event_hash"
META_HOSTNAME = "hostname"
META_PROCESS = "process"
META_ENQUEUED_TIME = "enqueued_time"
META_TIME_IN_QUEUE = "time_in_queue"
META_TIME_TO_PERFORM = "time_to_perform"
META_EXCEPTION = "exception"
META_MESSAGE = "message"

# Publisher names accepted by settings
PUBLISHER_NONE = "none"
PUBLISHER_STDOUT = "stdout"
PUBLISHER_LOG = "log"
PUBLISHER_METRICS = "metrics"

# Metrics names (prefixed with the configured namespace)
METRIC_EVENTS_PUBLISHED = "events_published_total"
METRIC_TIME_IN_QUEUE = "time_in_queue_seconds"
METRIC_TIME_TO_PERFORM = "time_to_perform_seconds"
METRIC_JOBS_FAILED = "jobs_failed_total"

# Trace span names
SPAN_ENQUEUE = "clues.enqueue"
SPAN_DEQUEUE = "clues.dequeue"
SPAN_PERFORM = "clues.perform"
