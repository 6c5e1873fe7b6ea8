"""
Job-related type definitions.

JobPayload is the one canonical shape a job takes inside the instrumentation:
a mutable mapping with string keys, normalized once when it crosses into the
wrapper. MetadataRecord is the typed view of the metadata attached to it.
"""

import json
from collections.abc import Iterator, Mapping, MutableMapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from clues.constants import FIELD_ARGS, FIELD_CLASS, FIELD_METADATA
from clues.exceptions import PayloadValidationError


def canonical_key(key: Any) -> str:
    """Map any key spelling of a field to its string name."""
    if isinstance(key, str):
        return key
    if isinstance(key, Enum):
        return canonical_key(key.value)
    if isinstance(key, (bytes, bytearray)):
        return bytes(key).decode("utf-8")
    return str(key)


def _canonical_value(value: Any) -> Any:
    if isinstance(value, JobPayload):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {canonical_key(k): _canonical_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical_value(v) for v in value]
    return value


class JobPayload(MutableMapping[str, Any]):
    """
    Field-keyed job payload.

    Carries at least a class identifier (``class``) and positional arguments
    (``args``); those are validated lazily by the accessors, when a consumer
    first needs them. Any other field, including ``metadata`` and whatever a
    preprocessor adds, is carried through untouched.
    """

    __slots__ = ("_fields",)

    def __init__(self, fields: Mapping[Any, Any] | None = None):
        self._fields: dict[str, Any] = _canonical_value(fields or {})

    @classmethod
    def normalize(cls, raw: Any) -> "JobPayload":
        """
        Convert any supported payload shape into a JobPayload.

        Args:
            raw: A mapping, a JobPayload, a pydantic model, or JSON text/bytes
                encoding an object.

        Returns:
            JobPayload: A new payload with canonical string keys. An existing
            JobPayload is copied, so stamping the result never touches the
            caller's object.

        Raises:
            PayloadValidationError: If ``raw`` cannot be read as a mapping.
        """
        if isinstance(raw, JobPayload):
            return cls(raw._fields)
        if isinstance(raw, BaseModel):
            return cls(raw.model_dump(by_alias=True))
        if isinstance(raw, (str, bytes, bytearray)):
            try:
                raw = json.loads(raw)
            except ValueError as e:
                raise PayloadValidationError(
                    f"Payload is not valid JSON: {e}", payload=raw
                ) from e
        if not isinstance(raw, Mapping):
            raise PayloadValidationError(
                f"Payload must be a mapping, got {type(raw).__name__}",
                payload=raw,
            )
        return cls(raw)

    def __getitem__(self, key: Any) -> Any:
        return self._fields[canonical_key(key)]

    def __setitem__(self, key: Any, value: Any) -> None:
        self._fields[canonical_key(key)] = _canonical_value(value)

    def __delitem__(self, key: Any) -> None:
        del self._fields[canonical_key(key)]

    def __contains__(self, key: object) -> bool:
        return canonical_key(key) in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"JobPayload({self._fields!r})"

    @property
    def job_class(self) -> str:
        """The class identifier of the job."""
        value = self._fields.get(FIELD_CLASS)
        if not isinstance(value, str) or not value:
            raise PayloadValidationError(
                "Payload is missing a class identifier", payload=self
            )
        return value

    @property
    def args(self) -> list[Any]:
        """The positional arguments of the job."""
        value = self._fields.get(FIELD_ARGS)
        if not isinstance(value, list):
            raise PayloadValidationError(
                "Payload is missing an argument list", payload=self
            )
        return value

    @property
    def metadata(self) -> dict[str, Any] | None:
        """Attached metadata, or None if the job was never instrumented."""
        value = self._fields.get(FIELD_METADATA)
        return value if isinstance(value, dict) else None

    @metadata.setter
    def metadata(self, value: Mapping[str, Any]) -> None:
        self[FIELD_METADATA] = value

    @property
    def has_metadata(self) -> bool:
        return self.metadata is not None

    def to_dict(self) -> dict[str, Any]:
        """Plain dict suitable for handing to a queue backend."""
        return dict(self._fields)


class MetadataRecord(BaseModel):
    """
    Correlation metadata attached to a job.

    Every field is optional so a job popped without (or with partial)
    metadata can still be described without inventing values. Extra keys,
    such as ones written by a preprocessor, are preserved.
    """

    model_config = ConfigDict(extra="allow")

    event_hash: str | None = None
    hostname: str | None = None
    process: int | None = None
    enqueued_time: float | None = None
    time_in_queue: float | None = None

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        strict: bool = True,
        payload: JobPayload | None = None,
    ) -> "MetadataRecord":
        """
        Build a record from a metadata mapping.

        Args:
            data: Metadata as found on a payload.
            strict: When False, values that do not match the declared field
                types are kept as they are instead of being rejected. Used for
                metadata written by someone else, which must never cost a job.
            payload: Payload the metadata belongs to, for error reporting.

        Raises:
            PayloadValidationError: If ``strict`` and a field has the wrong type.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            if not strict:
                return cls.model_construct(**data)
            raise PayloadValidationError(
                f"Payload metadata is malformed: {e}", payload=payload
            ) from e

    @classmethod
    def from_payload(cls, payload: JobPayload, strict: bool = True) -> "MetadataRecord":
        """Build a snapshot of the payload's current metadata."""
        return cls.from_mapping(payload.metadata or {}, strict=strict, payload=payload)

    def to_dict(self) -> dict[str, Any]:
        """Fields that are actually set."""
        return self.model_dump(exclude_none=True, warnings=False)


class JobResult(BaseModel):
    """
    Result of performing a job.
    Returned by the worker after running a handler.
    """

    success: bool
    queue: str
    job_class: str
    event_hash: str | None = None
    output: Any = None
    error: str | None = None
    duration_ms: float | None = None
