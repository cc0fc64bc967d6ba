"""Code monitoring: breakpoint cache, auto-registration, and snapshot capture."""

from tracekit.snapshots.cache import BreakpointCache, LabelKey, LocationKey
from tracekit.snapshots.client import SnapshotClient
from tracekit.snapshots.models import BreakpointDefinition, BreakpointRegistration, Snapshot

__all__ = [
    "BreakpointCache",
    "BreakpointDefinition",
    "BreakpointRegistration",
    "LabelKey",
    "LocationKey",
    "Snapshot",
    "SnapshotClient",
]
