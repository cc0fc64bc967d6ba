"""
Metric instruments.

Each instrument owns a name and a fixed tag set and records a point into its
registry on every mutation. Counter and Gauge keep a running value; the
update and the point emission happen under the instrument's lock so points
reach the buffer in value order.
"""

from __future__ import annotations

import math
import threading
from typing import TYPE_CHECKING, Mapping

from tracekit.core.errors import InvalidArgumentError
from tracekit.metrics.models import MetricKind

if TYPE_CHECKING:
    from tracekit.metrics.registry import MetricsRegistry


class _Instrument:
    kind: MetricKind

    def __init__(
        self,
        name: str,
        tags: Mapping[str, str] | None,
        registry: "MetricsRegistry",
    ) -> None:
        self.name = name
        self.tags: dict[str, str] = {str(k): str(v) for k, v in (tags or {}).items()}
        self._registry = registry
        self._lock = threading.Lock()

    def _emit(self, value: float) -> None:
        self._registry.record_metric(self.name, self.kind, value, self.tags)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, tags={self.tags!r})"


class Counter(_Instrument):
    """Monotonically increasing total (request counts, error counts)."""

    kind = MetricKind.COUNTER

    def __init__(self, name, tags, registry) -> None:
        super().__init__(name, tags, registry)
        self._value = 0.0

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def inc(self) -> None:
        """Increment the counter by 1."""
        self.add(1.0)

    def add(self, value: float) -> None:
        """
        Add a non-negative amount and emit the new cumulative total.

        Raises:
            InvalidArgumentError: If ``value`` is negative, NaN or infinite.
                The counter is left unchanged.
        """
        if not math.isfinite(value) or value < 0:
            raise InvalidArgumentError(
                "Counter values must be finite and non-negative",
                details={"metric": self.name, "value": value},
            )
        with self._lock:
            self._value += value
            self._emit(self._value)


class Gauge(_Instrument):
    """Point-in-time value that can go up or down."""

    kind = MetricKind.GAUGE

    def __init__(self, name, tags, registry) -> None:
        super().__init__(name, tags, registry)
        self._value = 0.0

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)
            self._emit(self._value)

    def inc(self) -> None:
        with self._lock:
            self._value += 1
            self._emit(self._value)

    def dec(self) -> None:
        with self._lock:
            self._value -= 1
            self._emit(self._value)


class Histogram(_Instrument):
    """Raw observations (durations, payload sizes); no client-side buckets."""

    kind = MetricKind.HISTOGRAM

    def record(self, value: float) -> None:
        self._emit(float(value))
