"""Metric instruments, buffering registry, and exporter."""

from tracekit.metrics.exporter import MetricsExporter
from tracekit.metrics.instruments import Counter, Gauge, Histogram
from tracekit.metrics.models import MetricKind, MetricPoint
from tracekit.metrics.registry import MetricsRegistry

__all__ = [
    "Counter",
    "Gauge",
    "Histogram",
    "MetricKind",
    "MetricPoint",
    "MetricsExporter",
    "MetricsRegistry",
]
