"""Time helpers.

Breakpoint expiry is compared as aware UTC datetimes; metric points carry
integer nanoseconds since the Unix epoch.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def unix_nanos() -> int:
    """Wall-clock time in nanoseconds since the epoch."""
    return time.time_ns()
