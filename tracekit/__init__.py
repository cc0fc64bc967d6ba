"""TraceKit in-process telemetry agent: batched metrics and code-level snapshots."""

from tracekit.config.settings import TracekitSettings
from tracekit.core.errors import (
    ConfigurationError,
    ErrorCode,
    InvalidArgumentError,
    TracekitError,
    TransportError,
)
from tracekit.metrics.instruments import Counter, Gauge, Histogram
from tracekit.sdk import TracekitSDK
from tracekit.snapshots.models import Snapshot
from tracekit.version import __version__

__all__ = [
    "ConfigurationError",
    "Counter",
    "ErrorCode",
    "Gauge",
    "Histogram",
    "InvalidArgumentError",
    "Snapshot",
    "TracekitError",
    "TracekitSDK",
    "TracekitSettings",
    "TransportError",
    "__version__",
]
