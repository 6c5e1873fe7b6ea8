"""
Preprocessor and publisher registration.

A CluesConfig can be handed straight to an InstrumentedQueue. Wrappers built
without one read the process-wide registration below, which is replaced as a
whole on every ``configure`` call so readers never see half of an update.
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from clues.config import Settings, get_settings
from clues.publishers import build_publisher

logger = logging.getLogger(__name__)


class Preprocessor(Protocol):
    """
    Hook run on every instrumented push, before the event is published.

    Receives the queue name and the payload with metadata already attached.
    It may mutate the payload in place, or return a replacement mapping or
    pydantic model to use instead. Any other return value, such as the result
    of a trailing ``setdefault``, is ignored.
    Raising aborts the push.
    """

    def __call__(self, queue: str, payload: Any) -> Any:
        ...


@runtime_checkable
class Publisher(Protocol):
    """Receiver of queue lifecycle events."""

    def enqueued(
        self, timestamp: Any, queue: str, metadata: Any, job_class: str, *args: Any
    ) -> None:
        ...

    def dequeued(
        self, timestamp: Any, queue: str, metadata: Any, job_class: str, *args: Any
    ) -> None:
        ...


@dataclass(frozen=True, slots=True)
class CluesConfig:
    """Immutable pair of optional preprocessor and publisher."""

    preprocessor: Preprocessor | None = None
    publisher: Publisher | None = None

    @property
    def is_configured(self) -> bool:
        """True when there is anything to instrument with."""
        return self.preprocessor is not None or self.publisher is not None


UNCONFIGURED = CluesConfig()

# Process-wide configuration
_config: CluesConfig = UNCONFIGURED


def configure(
    preprocessor: Preprocessor | None = None,
    publisher: Publisher | None = None,
) -> CluesConfig:
    """
    Register the process-wide preprocessor and publisher.

    Meant to be called once during startup. Replaces both registrations.

    Args:
        preprocessor: Optional payload preprocessor.
        publisher: Optional event publisher.

    Returns:
        CluesConfig: The newly installed configuration.
    """
    global _config
    if publisher is not None and not isinstance(publisher, Publisher):
        raise TypeError(
            f"{type(publisher).__name__} does not implement enqueued/dequeued"
        )
    if preprocessor is not None and not callable(preprocessor):
        raise TypeError(f"{type(preprocessor).__name__} is not callable")

    config = CluesConfig(preprocessor=preprocessor, publisher=publisher)
    _config = config
    logger.info(
        "Queue instrumentation configured",
        extra={
            "preprocessor": type(preprocessor).__name__ if preprocessor else None,
            "publisher": type(publisher).__name__ if publisher else None,
        },
    )
    return config


def configure_from_settings(settings: Settings | None = None) -> CluesConfig:
    """
    Register the publisher named by settings, without a preprocessor.

    Args:
        settings: Settings to read. Defaults to the cached environment settings.

    Returns:
        CluesConfig: The newly installed configuration.
    """
    settings = settings or get_settings()
    return configure(publisher=build_publisher(settings))


def get_config() -> CluesConfig:
    """Get the process-wide configuration."""
    return _config


def is_configured() -> bool:
    """Check whether the process-wide configuration enables instrumentation."""
    return _config.is_configured


def reset() -> None:
    """Drop the process-wide registrations."""
    global _config
    _config = UNCONFIGURED
