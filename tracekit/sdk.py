"""
TraceKit agent.

One TracekitSDK instance owns all agent state: the background loop, the
shared control plane HTTP client, the metrics registry, and (when code
monitoring is enabled) the snapshot client. Construct it once at startup and
close it once at shutdown.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from tracekit.config.settings import TracekitSettings
from tracekit.core.background import BackgroundLoop
from tracekit.core.endpoint import resolve_endpoint
from tracekit.core.errors import ConfigurationError
from tracekit.core.http_client import create_http_client
from tracekit.core.local_ui import LocalUIDetector
from tracekit.core.logging import get_logger, setup_logging
from tracekit.core.tracing import TraceContextProvider, current_trace_context
from tracekit.metrics.exporter import MetricsExporter
from tracekit.metrics.instruments import Counter, Gauge, Histogram
from tracekit.metrics.registry import MetricsRegistry
from tracekit.snapshots.client import SnapshotClient
from tracekit.snapshots.models import Snapshot
from tracekit.version import __version__

logger = get_logger(__name__)

METRICS_PATH = "/v1/metrics"


class TracekitSDK:
    """In-process telemetry agent: metrics and code monitoring."""

    def __init__(
        self,
        settings: TracekitSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        trace_context: TraceContextProvider | None = None,
    ):
        errors = settings.validation_errors()
        if errors:
            raise ConfigurationError(
                "TraceKit agent configuration is incomplete", details={"errors": errors}
            )

        self.settings = settings
        self._closed = False
        setup_logging(
            settings.log_level, json_output=settings.log_json, service_name=settings.service_name
        )

        logger.info(
            "Initializing TraceKit agent",
            data={
                "version": __version__,
                "service": settings.service_name,
                "environment": settings.environment,
            },
        )

        if settings.local_ui_detection:
            local_endpoint = LocalUIDetector(settings.local_ui_port).endpoint()
            if local_endpoint:
                logger.info("Local UI detected", data={"endpoint": local_endpoint})

        self.metrics_url = resolve_endpoint(settings.endpoint, METRICS_PATH, settings.use_ssl)
        self.snapshot_base_url = resolve_endpoint(settings.endpoint, "", settings.use_ssl)

        self._loop = BackgroundLoop(name=f"tracekit-{settings.service_name}")
        self._loop.start()

        self._client = create_http_client(
            api_key=settings.api_key,
            timeout_seconds=settings.http_timeout_seconds,
            base_url=self.snapshot_base_url,
            transport=transport,
        )

        exporter = MetricsExporter(self._client, self.metrics_url, settings.service_name)
        self.metrics = MetricsRegistry(exporter, self._loop)
        self.metrics.start()

        self.snapshots: SnapshotClient | None = None
        if settings.enable_code_monitoring:
            self.snapshots = SnapshotClient(
                self._client,
                self.snapshot_base_url,
                settings.service_name,
                self._loop,
                poll_interval=settings.code_monitoring_poll_interval_seconds,
                trace_context=trace_context or current_trace_context,
            )
            self.snapshots.start()

        logger.info(
            "TraceKit agent initialized",
            data={
                "metrics_endpoint": self.metrics_url,
                "code_monitoring": settings.enable_code_monitoring,
            },
        )

    @classmethod
    def from_env(cls, **kwargs: Any) -> "TracekitSDK":
        """Build an agent from TRACEKIT_* environment variables."""
        try:
            settings = TracekitSettings()
        except ValidationError as exc:
            raise ConfigurationError(
                "Invalid TraceKit settings", details={"errors": exc.errors()}
            ) from exc
        return cls(settings, **kwargs)

    @property
    def service_name(self) -> str:
        return self.settings.service_name

    @property
    def closed(self) -> bool:
        return self._closed

    def counter(self, name: str, tags: Mapping[str, str] | None = None) -> Counter:
        """Counter for monotonically increasing totals, e.g. ``http.requests.total``."""
        return self.metrics.counter(name, tags)

    def gauge(self, name: str, tags: Mapping[str, str] | None = None) -> Gauge:
        """Gauge for point-in-time values, e.g. ``http.requests.active``."""
        return self.metrics.gauge(name, tags)

    def histogram(self, name: str, tags: Mapping[str, str] | None = None) -> Histogram:
        """Histogram for value distributions, e.g. ``http.request.duration``."""
        return self.metrics.histogram(name, tags)

    def capture_snapshot(
        self,
        label: str,
        variables: Mapping[str, Any],
        *,
        file_path: str | None = None,
        line_number: int | None = None,
        function_name: str | None = None,
        stacklevel: int = 1,
    ) -> Snapshot | None:
        """
        Capture a redacted snapshot of ``variables`` at the calling location.

        A no-op returning None unless code monitoring is enabled and an
        active breakpoint matches this (function, label) or (file, line).
        """
        if self.snapshots is None or self._closed:
            return None
        return self.snapshots.capture_snapshot(
            label,
            variables,
            file_path=file_path,
            line_number=line_number,
            function_name=function_name,
            stacklevel=stacklevel + 1,
        )

    def flush(self, timeout: float = 15.0) -> int:
        """Export buffered metric points now; returns how many were sent."""
        return self._loop.run_sync(self.metrics.flush(), timeout=timeout)

    def close(self) -> None:
        """
        Stop background work and flush buffered metrics.

        Pending registrations and snapshot submissions are abandoned.
        """
        if self._closed:
            return
        self._closed = True

        if self.snapshots is not None:
            self.snapshots.close()
        self.metrics.close()

        try:
            self._loop.run_sync(self._client.aclose(), timeout=5.0)
        except Exception as exc:
            logger.warning("Error closing HTTP client", data={"error": str(exc)})
        self._loop.stop()

        logger.info("TraceKit agent shutdown complete", data={"service": self.service_name})

    def __enter__(self) -> "TracekitSDK":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
