"""
Type definitions for queue instrumentation.
"""

from clues.types.events import LifecycleEvent
from clues.types.job import JobPayload, JobResult, MetadataRecord, canonical_key

__all__ = [
    # Job types
    "JobPayload",
    "JobResult",
    "MetadataRecord",
    "canonical_key",
    # Event types
    "LifecycleEvent",
]
