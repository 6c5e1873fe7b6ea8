"""
Unit tests for job payload normalization and metadata records.
"""

from datetime import UTC, datetime
from enum import Enum

import pytest
from pydantic import BaseModel, ValidationError

from clues.constants import EventType
from clues.exceptions import PayloadValidationError
from clues.types.events import LifecycleEvent
from clues.types.job import JobPayload, MetadataRecord, canonical_key


class Key(Enum):
    CLASS = "class"
    ARGS = "args"


class TestCanonicalKey:
    """Tests for key canonicalization."""

    def test_string_unchanged(self):
        assert canonical_key("class") == "class"

    def test_enum_uses_value(self):
        assert canonical_key(Key.CLASS) == "class"

    def test_bytes_decoded(self):
        assert canonical_key(b"args") == "args"

    def test_numbers_stringified(self):
        assert canonical_key(1) == "1"


class TestNormalize:
    """Tests for JobPayload.normalize."""

    def test_mapping(self):
        """Test a plain dict is copied into a payload."""
        raw = {"class": "Job", "args": [1]}

        payload = JobPayload.normalize(raw)

        assert payload == raw
        payload["extra"] = True
        assert "extra" not in raw

    def test_mixed_keys_unified(self):
        """Test different spellings of a field end up on one key."""
        payload = JobPayload.normalize({Key.CLASS: "Job", b"args": [1], 7: "seven"})

        assert payload.job_class == "Job"
        assert payload.args == [1]
        assert payload["7"] == "seven"
        assert payload[7] == "seven"

    def test_nested_mappings_normalized(self):
        """Test nested metadata keys are canonicalized too."""
        payload = JobPayload.normalize(
            {"class": "Job", "args": [{1: "a"}], "metadata": {b"event_hash": "abc"}}
        )

        assert payload.metadata == {"event_hash": "abc"}
        assert payload.args == [{"1": "a"}]

    def test_json_text(self):
        """Test JSON object text is decoded."""
        payload = JobPayload.normalize(b'{"class": "Job", "args": []}')

        assert payload.job_class == "Job"

    def test_invalid_json(self):
        """Test undecodable text is a validation error."""
        with pytest.raises(PayloadValidationError):
            JobPayload.normalize("not json")

    def test_non_mapping_rejected(self):
        """Test a JSON array or other value is rejected."""
        with pytest.raises(PayloadValidationError):
            JobPayload.normalize("[1, 2]")
        with pytest.raises(PayloadValidationError):
            JobPayload.normalize(42)

    def test_pydantic_model(self):
        """Test a pydantic model is dumped by alias."""
        class Job(BaseModel):
            job_class: str = "Job"
            args: list[int] = [1]

        payload = JobPayload.normalize(Job())

        assert payload["job_class"] == "Job"
        assert payload.args == [1]

    def test_payload_is_copied(self):
        """Test normalizing a payload returns an independent copy."""
        payload = JobPayload({"class": "Job", "args": [], "metadata": {"event_hash": "abc"}})

        copy = JobPayload.normalize(payload)

        assert copy == payload
        assert copy is not payload
        copy.metadata["event_hash"] = "def"
        copy.args.append(1)
        assert payload.metadata == {"event_hash": "abc"}
        assert payload.args == []

    def test_tuple_args_become_list(self):
        """Test argument tuples are stored as lists."""
        payload = JobPayload.normalize({"class": "Job", "args": (1, 2)})

        assert payload.args == [1, 2]


class TestAccessors:
    """Tests for JobPayload field accessors."""

    def test_missing_class(self):
        payload = JobPayload({"args": []})

        with pytest.raises(PayloadValidationError) as exc_info:
            payload.job_class

        assert exc_info.value.payload is payload

    def test_empty_class(self):
        with pytest.raises(PayloadValidationError):
            JobPayload({"class": "", "args": []}).job_class

    def test_args_not_a_list(self):
        with pytest.raises(PayloadValidationError):
            JobPayload({"class": "Job", "args": "x"}).args

    def test_metadata_absent(self):
        payload = JobPayload({"class": "Job", "args": []})

        assert payload.metadata is None
        assert payload.has_metadata is False

    def test_metadata_setter(self):
        payload = JobPayload({"class": "Job", "args": []})

        payload.metadata = {"event_hash": "abc"}

        assert payload.has_metadata is True
        assert payload["metadata"] == {"event_hash": "abc"}

    def test_mapping_protocol(self):
        payload = JobPayload({"class": "Job", "args": []})

        del payload["args"]

        assert list(payload) == ["class"]
        assert len(payload) == 1
        assert payload.to_dict() == {"class": "Job"}


class TestMetadataRecord:
    """Tests for MetadataRecord."""

    def test_from_payload(self):
        payload = JobPayload(
            {
                "class": "Job",
                "args": [],
                "metadata": {
                    "event_hash": "abc",
                    "hostname": "host",
                    "process": 42,
                    "enqueued_time": 10.5,
                    "region": "us",
                },
            }
        )

        record = MetadataRecord.from_payload(payload)

        assert record.event_hash == "abc"
        assert record.process == 42
        assert record.time_in_queue is None
        assert record.model_extra == {"region": "us"}
        assert record.to_dict()["region"] == "us"
        assert "time_in_queue" not in record.to_dict()

    def test_empty_when_no_metadata(self):
        record = MetadataRecord.from_payload(JobPayload({"class": "Job", "args": []}))

        assert record.to_dict() == {}

    def test_malformed_metadata(self):
        payload = JobPayload(
            {"class": "Job", "args": [], "metadata": {"enqueued_time": "yesterday"}}
        )

        with pytest.raises(PayloadValidationError):
            MetadataRecord.from_payload(payload)

    def test_lenient_keeps_mistyped_values(self):
        """Test non-strict reading keeps values as found instead of failing."""
        payload = JobPayload(
            {
                "class": "Job",
                "args": [],
                "metadata": {"event_hash": 12345, "process": "worker-1", "region": "us"},
            }
        )

        record = MetadataRecord.from_payload(payload, strict=False)

        assert record.event_hash == 12345
        assert record.process == "worker-1"
        assert record.hostname is None
        assert record.to_dict() == {"event_hash": 12345, "process": "worker-1", "region": "us"}

    def test_lenient_still_validates_good_metadata(self):
        record = MetadataRecord.from_mapping({"process": "42"}, strict=False)

        assert record.process == 42


class TestLifecycleEvent:
    """Tests for LifecycleEvent."""

    @pytest.fixture
    def event(self) -> LifecycleEvent:
        return LifecycleEvent(
            event_type=EventType.ENQUEUED,
            timestamp=datetime(2026, 1, 1, tzinfo=UTC),
            queue="q",
            metadata=MetadataRecord(event_hash="abc"),
            job_class="Job",
            args=["x", 1],
        )

    def test_is_immutable(self, event: LifecycleEvent):
        with pytest.raises(ValidationError):
            event.queue = "other"

    def test_to_message(self, event: LifecycleEvent):
        assert event.to_message() == {
            "event_type": "enqueued",
            "timestamp": "2026-01-01T00:00:00+00:00",
            "queue": "q",
            "metadata": {"event_hash": "abc"},
            "job_class": "Job",
            "args": ["x", 1],
        }
