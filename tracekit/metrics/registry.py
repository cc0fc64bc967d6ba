"""
Metrics registry with buffered, batched export.

Points from every instrument land in one shared buffer. The buffer is
flushed to the exporter when it reaches the size threshold or when the flush
interval has elapsed since the last flush, whichever comes first.
"""

from __future__ import annotations

import asyncio
import math
import threading
import time
from collections.abc import Mapping
from concurrent.futures import Future
from typing import TypeVar

from tracekit.config.settings import METRICS_FLUSH_INTERVAL_SECONDS, METRICS_FLUSH_THRESHOLD
from tracekit.core.background import BackgroundLoop
from tracekit.core.logging import get_logger
from tracekit.core.time import unix_nanos
from tracekit.metrics.exporter import MetricsExporter
from tracekit.metrics.instruments import Counter, Gauge, Histogram, _Instrument
from tracekit.metrics.models import MetricKind, MetricPoint

logger = get_logger(__name__)

I = TypeVar("I", bound=_Instrument)


class MetricsRegistry:
    """Thread-safe point buffer with threshold and interval flushing."""

    def __init__(
        self,
        exporter: MetricsExporter,
        loop: BackgroundLoop,
        flush_threshold: int = METRICS_FLUSH_THRESHOLD,
        flush_interval: float = METRICS_FLUSH_INTERVAL_SECONDS,
    ) -> None:
        self.flush_threshold = flush_threshold
        self.flush_interval = flush_interval
        self._exporter = exporter
        self._loop = loop

        self._lock = threading.Lock()
        self._buffer: list[MetricPoint] = []
        self._flush_scheduled = False
        self._last_flush = time.monotonic()

        # Serializes threshold, interval, and shutdown flushes on the loop
        self._flush_lock = asyncio.Lock()

        self._instruments_lock = threading.Lock()
        self._instruments: dict[tuple, _Instrument] = {}

        self._interval_task: Future | None = None
        self._closed = False

    @property
    def pending_count(self) -> int:
        """Number of points waiting for the next flush."""
        with self._lock:
            return len(self._buffer)

    def start(self) -> None:
        """Start the interval flusher on the background loop."""
        if self._interval_task is None:
            self._interval_task = self._loop.spawn(
                self._flush_on_interval(), name="metrics-interval-flush"
            )

    def counter(self, name: str, tags: Mapping[str, str] | None = None) -> Counter:
        return self._instrument(Counter, name, tags)

    def gauge(self, name: str, tags: Mapping[str, str] | None = None) -> Gauge:
        return self._instrument(Gauge, name, tags)

    def histogram(self, name: str, tags: Mapping[str, str] | None = None) -> Histogram:
        return self._instrument(Histogram, name, tags)

    def _instrument(self, cls: type[I], name: str, tags: Mapping[str, str] | None) -> I:
        """Get or create the instrument for one (kind, name, tags) series."""
        key = (cls.kind, name, frozenset((str(k), str(v)) for k, v in (tags or {}).items()))
        with self._instruments_lock:
            instrument = self._instruments.get(key)
            if instrument is None:
                instrument = cls(name, tags, self)
                self._instruments[key] = instrument
            return instrument  # type: ignore[return-value]

    def record_metric(
        self,
        name: str,
        kind: MetricKind | str,
        value: float,
        tags: Mapping[str, str] | None = None,
    ) -> None:
        """
        Buffer one point; schedule a flush when the threshold is reached.

        NaN and infinite values cannot be encoded as JSON; they are logged
        and skipped so they never reach a batch.
        """
        value = float(value)
        if not math.isfinite(value):
            logger.warning(
                "Skipping non-finite metric value",
                data={"metric": name, "kind": str(kind), "value": repr(value)},
            )
            return

        point = MetricPoint(
            name=name,
            kind=MetricKind(kind),
            value=value,
            tags=dict(tags or {}),
            timestamp_nanos=unix_nanos(),
        )

        with self._lock:
            self._buffer.append(point)
            trigger = len(self._buffer) >= self.flush_threshold and not self._flush_scheduled
            if trigger:
                self._flush_scheduled = True

        if trigger:
            future = self._loop.submit(self.flush(), name="metrics-threshold-flush")
            if future is None:
                with self._lock:
                    self._flush_scheduled = False

    async def flush(self) -> int:
        """
        Drain the buffer and export it as one batch.

        Returns the number of points handed to the exporter (0 when the
        buffer was empty).
        """
        async with self._flush_lock:
            with self._lock:
                batch, self._buffer = self._buffer, []
                self._flush_scheduled = False
                self._last_flush = time.monotonic()

            if not batch:
                return 0

            try:
                await self._exporter.export(batch)
            except Exception as exc:
                logger.warning(
                    "Failed to export metrics",
                    data={"error": str(exc), "points": len(batch)},
                )
            return len(batch)

    async def _flush_on_interval(self) -> None:
        while True:
            remaining = self._last_flush + self.flush_interval - time.monotonic()
            if remaining > 0:
                await asyncio.sleep(remaining)
                continue
            await self.flush()

    def close(self, timeout: float = 15.0) -> None:
        """Stop the interval flusher and run one final synchronous flush."""
        if self._closed:
            return
        self._closed = True
        self._loop.cancel(self._interval_task)
        self._interval_task = None

        if not self._loop.is_running:
            logger.warning(
                "Background loop stopped before final flush",
                data={"dropped_points": self.pending_count},
            )
            return

        try:
            flushed = self._loop.run_sync(self.flush(), timeout=timeout)
            logger.debug("Final metrics flush complete", data={"points": flushed})
        except Exception as exc:
            logger.warning("Final metrics flush failed", data={"error": str(exc)})
