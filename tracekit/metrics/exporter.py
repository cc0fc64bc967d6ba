"""
Metrics export in OTLP/JSON format.

Counters are sent as monotonic delta sums: the instruments emit cumulative
totals and the exporter converts each point into the change since the
previous point of the same series. Gauges and histograms are sent as raw
gauge points.
"""

from __future__ import annotations

from typing import Any

import httpx

from tracekit.core.errors import TransportError
from tracekit.core.http_client import raise_for_status, send_request
from tracekit.core.logging import get_logger
from tracekit.metrics.models import MetricKind, MetricPoint

logger = get_logger(__name__)

# OTLP AggregationTemporality
AGGREGATION_TEMPORALITY_DELTA = 1

SCOPE_NAME = "tracekit"


class MetricsExporter:
    """POST metric batches to the control plane, best-effort."""

    def __init__(self, client: httpx.AsyncClient, endpoint: str, service_name: str):
        self.endpoint = endpoint
        self.service_name = service_name
        self._client = client
        # series -> (last cumulative value, its timestamp)
        self._last_cumulative: dict[tuple, tuple[float, int]] = {}

    async def export(self, points: list[MetricPoint]) -> bool:
        """
        Send one batch. Returns True on a 2xx response.

        Failures are logged and the batch is dropped; nothing is raised.
        """
        if not points:
            return True

        payload = self.build_payload(points)
        try:
            response = await send_request(self._client, "POST", self.endpoint, json=payload)
            raise_for_status(response)
        except TransportError as exc:
            logger.warning(
                "Metrics export failed",
                data={**exc.to_info().to_dict(), "points": len(points)},
            )
            return False

        logger.debug("Metrics exported", data={"points": len(points)})
        return True

    def build_payload(self, points: list[MetricPoint]) -> dict[str, Any]:
        """Group points by (name, kind) and build the OTLP request body."""
        grouped: dict[tuple[str, MetricKind], list[MetricPoint]] = {}
        for point in points:
            grouped.setdefault((point.name, point.kind), []).append(point)

        metrics: list[dict[str, Any]] = []
        for (name, kind), group in grouped.items():
            if kind == MetricKind.COUNTER:
                metrics.append(
                    {
                        "name": name,
                        "sum": {
                            "dataPoints": [self._delta_point(p) for p in group],
                            "aggregationTemporality": AGGREGATION_TEMPORALITY_DELTA,
                            "isMonotonic": True,
                        },
                    }
                )
            else:
                metrics.append(
                    {
                        "name": name,
                        "gauge": {
                            "dataPoints": [
                                _data_point(p.tags, p.timestamp_nanos, p.value) for p in group
                            ],
                        },
                    }
                )

        return {
            "resourceMetrics": [
                {
                    "resource": {
                        "attributes": [_attribute("service.name", self.service_name)],
                    },
                    "scopeMetrics": [
                        {
                            "scope": {"name": SCOPE_NAME},
                            "metrics": metrics,
                        }
                    ],
                }
            ]
        }

    def _delta_point(self, point: MetricPoint) -> dict[str, Any]:
        key = point.series_key
        previous = self._last_cumulative.get(key)
        if previous is None or point.value < previous[0]:
            # First sighting, or the series restarted from zero
            delta, start = point.value, point.timestamp_nanos
        else:
            delta, start = point.value - previous[0], previous[1]
        self._last_cumulative[key] = (point.value, point.timestamp_nanos)

        data = _data_point(point.tags, point.timestamp_nanos, delta)
        data["startTimeUnixNano"] = start
        return data


def _attribute(key: str, value: str) -> dict[str, Any]:
    return {"key": key, "value": {"stringValue": value}}


def _data_point(tags, timestamp_nanos: int, value: float) -> dict[str, Any]:
    return {
        "attributes": [_attribute(k, v) for k, v in tags.items()],
        "timeUnixNano": timestamp_nanos,
        "asDouble": value,
    }
