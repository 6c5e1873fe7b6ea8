"""
Exception hierarchy for queue instrumentation.

Missing configuration and missing metadata on dequeue are not errors and
have no exception type here.
"""

from typing import Any


class CluesError(Exception):
    """Base class for all instrumentation errors."""


class PayloadValidationError(CluesError, ValueError):
    """
    A job payload is malformed.

    Raised when a payload cannot be turned into a field-keyed mapping, or when
    a required field (class identifier, argument list) is missing at the point
    it is first needed.
    """

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.payload = payload


class QueueNameError(CluesError, ValueError):
    """A queue name is empty or not a string."""


class PublishError(CluesError):
    """
    The event publisher failed while handling a lifecycle event.

    The publisher's own exception is never dropped: it is chained as
    ``__cause__`` and returned by ``original``. Catch PublishError, not the
    transport's exception types, around instrumented queue calls.

    Attributes:
        event_type: The event being published.
        queue: The queue the job was pushed to or popped from.
        payload: The instrumented job payload.
        operation_completed: False when the queue operation did not happen
            (enqueue publishes before pushing), True when it already did
            (dequeue publishes after popping, so ``payload`` is the only copy
            of the job left).
    """

    def __init__(
        self,
        event_type: str,
        queue: str,
        payload: Any,
        operation_completed: bool,
    ):
        super().__init__(
            f"Failed to publish {event_type} event for queue {queue!r}"
        )
        self.event_type = event_type
        self.queue = queue
        self.payload = payload
        self.operation_completed = operation_completed

    @property
    def original(self) -> BaseException | None:
        """The exception raised by the publisher."""
        return self.__cause__


class HandlerNotFoundError(CluesError, LookupError):
    """No worker handler is registered for a job class."""

    def __init__(self, job_class: str):
        super().__init__(f"No handler registered for job class: {job_class}")
        self.job_class = job_class
