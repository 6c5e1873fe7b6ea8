"""
Unit tests for logging, metrics and tracing setup.
"""

import io
import logging
from collections.abc import Generator
from typing import Any

import pytest
import structlog
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from clues import queue as queue_module
from clues.backends.memory import InMemoryQueue
from clues.config import Settings
from clues.metadata import host_info
from clues.observability import tracing
from clues.observability.logging import (
    NOISY_LOGGERS,
    add_origin,
    add_trace_context,
    log_context,
    setup_logging,
)
from clues.observability.metrics import get_metrics, setup_metrics
from clues.observability.tracing import get_tracer, setup_tracing
from clues.queue import InstrumentedQueue
from clues.registry import CluesConfig

from conftest import RecordingPublisher


@pytest.fixture
def restore_logging() -> Generator[None]:
    """Undo global logging configuration after the test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    quiet = {name: logging.getLogger(name).level for name in NOISY_LOGGERS}
    yield
    structlog.reset_defaults()
    root.handlers = handlers
    root.setLevel(level)
    for name, quiet_level in quiet.items():
        logging.getLogger(name).setLevel(quiet_level)


@pytest.fixture
def span_exporter(monkeypatch) -> InMemorySpanExporter:
    """Route the queue wrapper's spans to an in-memory exporter."""
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setattr(queue_module, "get_tracer", lambda: provider.get_tracer("test"))
    return exporter


class TestLogging:
    """Tests for setup_logging."""

    def test_setup_logging(self, restore_logging, test_settings: Settings):
        setup_logging(test_settings)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert structlog.is_configured()

    def test_trace_context_absent_without_span(self):
        event_dict: dict[str, Any] = {"event": "x"}

        assert add_trace_context(None, "info", event_dict) == {"event": "x"}

    def test_noisy_loggers_quieted(self, restore_logging, test_settings: Settings):
        setup_logging(test_settings)

        assert logging.getLogger("opentelemetry").level == logging.WARNING
        assert logging.getLogger("grpc").level == logging.WARNING

    def test_origin_added(self, clear_caches):
        event_dict = add_origin(None, "info", {"event": "x"})

        assert event_dict["hostname"] == host_info().hostname
        assert event_dict["process"] == host_info().pid

    def test_origin_does_not_override(self):
        event_dict = add_origin(None, "info", {"event": "x", "hostname": "elsewhere"})

        assert event_dict["hostname"] == "elsewhere"

    def test_log_context_nests_and_restores(self):
        with log_context(worker_id="w-1"):
            with log_context(queue="q", worker_id="w-2"):
                assert structlog.contextvars.get_contextvars() == {
                    "worker_id": "w-2",
                    "queue": "q",
                }
            assert structlog.contextvars.get_contextvars() == {"worker_id": "w-1"}

        assert structlog.contextvars.get_contextvars() == {}


class TestMetricsSingleton:
    """Tests for the process-wide collector."""

    def test_get_metrics_reuses_collector(self):
        assert get_metrics() is setup_metrics()


class TestTracing:
    """Tests for spans around queue operations."""

    def test_tracer_available_without_setup(self):
        with get_tracer().start_as_current_span("noop"):
            pass

    def test_push_and_pop_spans(self, span_exporter: InMemorySpanExporter):
        recorder = RecordingPublisher()
        queue = InstrumentedQueue(InMemoryQueue(), CluesConfig(publisher=recorder))

        queue.push("q", {"class": "Job", "args": []})
        queue.pop("q")

        spans = span_exporter.get_finished_spans()
        assert [span.name for span in spans] == ["clues.enqueue", "clues.dequeue"]
        event_hash = recorder.events[0].metadata.event_hash
        assert spans[0].attributes["clues.queue"] == "q"
        assert spans[0].attributes["clues.event_hash"] == event_hash
        assert spans[1].attributes["clues.event_hash"] == event_hash

    def test_no_spans_when_unconfigured(self, span_exporter: InMemorySpanExporter):
        queue = InstrumentedQueue(InMemoryQueue())

        queue.push("q", {"class": "Job", "args": []})
        queue.pop("q")

        assert span_exporter.get_finished_spans() == ()


class TestSetupTracing:
    """Tests for setup_tracing."""

    @pytest.fixture
    def installed(self, monkeypatch, clear_caches) -> Generator[list[TracerProvider]]:
        """Capture the provider instead of installing it process-wide."""
        providers: list[TracerProvider] = []
        monkeypatch.setenv("CLUES_OTEL_EXPORTER_OTLP_ENDPOINT", "")
        monkeypatch.setenv("CLUES_OTEL_SERVICE_NAME", "clues-test")
        monkeypatch.setattr(tracing.trace, "set_tracer_provider", providers.append)
        monkeypatch.setattr(tracing, "_tracer", None)
        yield providers
        for provider in providers:
            provider.shutdown()

    def test_installs_provider_and_tracer(self, installed: list[TracerProvider]):
        tracer = setup_tracing()

        assert len(installed) == 1
        assert installed[0].resource.attributes["service.name"] == "clues-test"
        assert get_tracer() is tracer
        with tracer.start_as_current_span("clues.test") as span:
            assert span.is_recording()

    def test_console_export(self, installed: list[TracerProvider], monkeypatch):
        stream = io.StringIO()
        monkeypatch.setattr(tracing, "ConsoleSpanExporter", lambda: ConsoleSpanExporter(out=stream))

        tracer = setup_tracing(enable_console_export=True)

        with tracer.start_as_current_span("clues.console"):
            pass
        installed[0].force_flush()

        assert '"name": "clues.console"' in stream.getvalue()
