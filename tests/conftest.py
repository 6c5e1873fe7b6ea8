"""
Pytest configuration and shared fixtures.
"""

from collections.abc import Generator
from typing import Any

import pytest
from prometheus_client import CollectorRegistry

from clues import registry
from clues.backends.memory import InMemoryQueue
from clues.config import Settings, get_settings
from clues.constants import EventType
from clues.metadata import _host_info
from clues.observability.metrics import MetricsCollector
from clues.publishers import EventPublisher
from clues.queue import InstrumentedQueue
from clues.registry import CluesConfig
from clues.types.events import LifecycleEvent


class RecordingPublisher(EventPublisher):
    """Publisher that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[LifecycleEvent] = []

    def publish(self, event: LifecycleEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> list[LifecycleEvent]:
        return [event for event in self.events if event.event_type == event_type]


class FailingPublisher(EventPublisher):
    """Publisher whose transport is down for the given event types."""

    def __init__(self, *failing: EventType) -> None:
        self.failing = set(failing) or set(EventType)
        self.delivered: list[LifecycleEvent] = []

    def publish(self, event: LifecycleEvent) -> None:
        if event.event_type in self.failing:
            raise ConnectionError(f"transport down for {event.event_type}")
        self.delivered.append(event)


@pytest.fixture(autouse=True)
def reset_registry() -> Generator[None]:
    """Start and finish every test without process-wide registrations."""
    registry.reset()
    yield
    registry.reset()


@pytest.fixture
def clear_caches() -> Generator[None]:
    """Drop cached settings and host info around a test that changes the env."""
    get_settings.cache_clear()
    _host_info.cache_clear()
    yield
    get_settings.cache_clear()
    _host_info.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        publisher="none",
        log_level="DEBUG",
        log_format="console",
        worker_queues="high,default",
        worker_poll_interval_seconds=0.01,
    )


@pytest.fixture
def memory_queue() -> InMemoryQueue:
    """Create an empty in-memory queue."""
    return InMemoryQueue()


@pytest.fixture
def recorder() -> RecordingPublisher:
    """Create a recording publisher."""
    return RecordingPublisher()


@pytest.fixture
def instrumented(memory_queue: InMemoryQueue, recorder: RecordingPublisher) -> InstrumentedQueue:
    """Wrap the in-memory queue with a recording publisher."""
    return InstrumentedQueue(memory_queue, CluesConfig(publisher=recorder))


@pytest.fixture
def metrics_collector() -> MetricsCollector:
    """Create a metrics collector on an isolated registry."""
    return MetricsCollector(registry=CollectorRegistry(), namespace="clues")


@pytest.fixture
def sample_job() -> dict[str, Any]:
    """Create a sample job payload."""
    return {"class": "Job", "args": ["x"]}
