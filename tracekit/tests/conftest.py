import json
import threading
import time
from typing import Any, Callable

import httpx
import pytest

from tracekit.config.settings import TracekitSettings
from tracekit.core.background import BackgroundLoop
from tracekit.core.http_client import create_http_client

BASE_URL = "http://tracekit.test"
SERVICE_NAME = "checkout"


class FakeControlPlane:
    """In-memory control plane served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.breakpoints: list[dict[str, Any]] = []
        self.active_status = 200
        self.active_body: Any = None
        self.register_status = 200
        self.capture_status = 200
        self.metrics_status = 200
        self.requests: list[httpx.Request] = []
        self._lock = threading.Lock()

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)

        path = request.url.path
        if path == "/v1/metrics":
            return httpx.Response(self.metrics_status, json={})
        if path.startswith("/sdk/snapshots/active/"):
            if self.active_status != 200:
                return httpx.Response(self.active_status, json={"error": "unavailable"})
            body = self.active_body if self.active_body is not None else {
                "breakpoints": self.breakpoints
            }
            return httpx.Response(200, json=body)
        if path == "/sdk/snapshots/auto-register":
            return httpx.Response(self.register_status, json={})
        if path == "/sdk/snapshots/capture":
            return httpx.Response(self.capture_status, json={})
        return httpx.Response(404, json={"error": "not found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_to(self, path_prefix: str) -> list[httpx.Request]:
        with self._lock:
            return [r for r in self.requests if r.url.path.startswith(path_prefix)]

    def bodies_to(self, path_prefix: str) -> list[Any]:
        return [json.loads(r.content) for r in self.requests_to(path_prefix)]


@pytest.fixture
def control_plane() -> FakeControlPlane:
    return FakeControlPlane()


@pytest.fixture
def background_loop():
    loop = BackgroundLoop(name="tracekit-test")
    loop.start()
    yield loop
    loop.stop()


@pytest.fixture
def http_client(control_plane, background_loop):
    client = create_http_client(
        api_key="test-key",
        timeout_seconds=5,
        base_url=BASE_URL,
        transport=control_plane.transport,
    )
    yield client
    background_loop.run_sync(client.aclose(), timeout=5)


@pytest.fixture
def settings() -> TracekitSettings:
    return TracekitSettings(
        api_key="test-key",
        service_name=SERVICE_NAME,
        endpoint=BASE_URL,
        local_ui_detection=False,
        code_monitoring_poll_interval_seconds=60,
    )


def _wait_until(
    predicate: Callable[[], bool], timeout: float = 3.0, interval: float = 0.01
) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def wait_until():
    """Poll for the effect of fire-and-forget work."""
    return _wait_until
