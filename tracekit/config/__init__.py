"""Configuration module for the TraceKit agent."""

from tracekit.config.settings import (
    METRICS_FLUSH_INTERVAL_SECONDS,
    METRICS_FLUSH_THRESHOLD,
    TracekitSettings,
)

__all__ = [
    "METRICS_FLUSH_INTERVAL_SECONDS",
    "METRICS_FLUSH_THRESHOLD",
    "TracekitSettings",
]
