"""Detection of a locally running TraceKit UI."""

from __future__ import annotations

import httpx

from tracekit.core.logging import get_logger

logger = get_logger(__name__)

PROBE_TIMEOUT_SECONDS = 0.5


class LocalUIDetector:
    """Probe ``http://localhost:{port}/api/health`` for a development UI."""

    def __init__(self, port: int = 9999, transport: httpx.BaseTransport | None = None):
        self.port = port
        self._transport = transport

    @property
    def base_url(self) -> str:
        return f"http://localhost:{self.port}"

    def is_running(self) -> bool:
        """Return True when the local UI answers its health check."""
        try:
            with httpx.Client(timeout=PROBE_TIMEOUT_SECONDS, transport=self._transport) as client:
                response = client.get(f"{self.base_url}/api/health")
            return response.is_success
        except httpx.HTTPError as exc:
            logger.debug("Local UI not reachable", data={"port": self.port, "error": str(exc)})
            return False

    def endpoint(self) -> str | None:
        """Local UI base URL if it is running, otherwise None."""
        return self.base_url if self.is_running() else None
