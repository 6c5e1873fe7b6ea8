"""
Metadata generation for instrumented jobs.

Produces the correlation identifier and origin attributes stamped onto a job
at enqueue time, and the timing used to compute queue latency at dequeue.
"""

import hashlib
import itertools
import os
import secrets
import socket
import time
from datetime import UTC, datetime
from functools import lru_cache
from typing import NamedTuple

from clues.config import get_settings
from clues.constants import (
    META_ENQUEUED_TIME,
    META_EVENT_HASH,
    META_HOSTNAME,
    META_PROCESS,
)
from clues.types.job import JobPayload, MetadataRecord

# Process-wide sequence mixed into every event hash seed
_sequence = itertools.count()


class HostInfo(NamedTuple):
    """Origin machine and process of an event."""

    hostname: str
    pid: int


def new_event_hash() -> str:
    """
    Generate a new correlation identifier.

    The seed combines a high-resolution timestamp, the origin host and pid, a
    process-wide counter and random bytes. Collisions are not checked for.

    Returns:
        str: 32 character hex digest.
    """
    host = host_info()
    seed = b"|".join(
        (
            str(time.time_ns()).encode(),
            host.hostname.encode(),
            str(host.pid).encode(),
            str(next(_sequence)).encode(),
            secrets.token_bytes(16),
        )
    )
    return hashlib.md5(seed, usedforsecurity=False).hexdigest()


def host_info() -> HostInfo:
    """
    Get the local hostname and the current process id.

    Cached per process; a forked child gets its own entry.
    """
    return _host_info(os.getpid())


@lru_cache(maxsize=8)
def _host_info(pid: int) -> HostInfo:
    hostname = get_settings().hostname or socket.gethostname()
    return HostInfo(hostname=hostname, pid=pid)


def utc_now_epoch() -> float:
    """Current UTC time as epoch seconds."""
    return time.time()


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def elapsed_since(epoch_seconds: float) -> float:
    """
    Seconds elapsed since the given UTC epoch timestamp.

    Not clamped: if the clock moved backwards the result is negative.
    """
    return utc_now_epoch() - epoch_seconds


def stamp(payload: JobPayload) -> MetadataRecord:
    """
    Attach a fresh metadata record to a payload.

    Any metadata the payload already carries is replaced, so every enqueue is
    a new event instance with its own event hash.

    Args:
        payload: The payload to stamp, modified in place.

    Returns:
        MetadataRecord: The attached metadata.
    """
    host = host_info()
    payload.metadata = {
        META_EVENT_HASH: new_event_hash(),
        META_HOSTNAME: host.hostname,
        META_PROCESS: host.pid,
        META_ENQUEUED_TIME: utc_now_epoch(),
    }
    return MetadataRecord.from_payload(payload)
