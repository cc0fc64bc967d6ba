"""Tests for control plane HTTP helpers and local UI detection."""

from __future__ import annotations

import httpx
import pytest

from tracekit.core import (
    ControlPlaneAuthError,
    ControlPlaneBadResponseError,
    ControlPlaneRejectedError,
    ControlPlaneUnavailableError,
    ErrorCode,
    TransportError,
)
from tracekit.core.http_client import (
    API_KEY_HEADER,
    create_http_client,
    parse_json,
    raise_for_status,
    send_request,
)
from tracekit.core.local_ui import LocalUIDetector


def _response(status: int, **kwargs) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("GET", "http://tracekit.test/x"), **kwargs)


@pytest.mark.parametrize(
    ("status", "error_type", "code"),
    [
        (401, ControlPlaneAuthError, ErrorCode.CONTROL_PLANE_AUTH_FAILED),
        (403, ControlPlaneAuthError, ErrorCode.CONTROL_PLANE_AUTH_FAILED),
        (404, ControlPlaneRejectedError, ErrorCode.CONTROL_PLANE_REJECTED),
        (500, ControlPlaneUnavailableError, ErrorCode.CONTROL_PLANE_UNAVAILABLE),
        (503, ControlPlaneUnavailableError, ErrorCode.CONTROL_PLANE_UNAVAILABLE),
    ],
)
def test_raise_for_status_maps_codes(status, error_type, code) -> None:
    with pytest.raises(error_type) as exc_info:
        raise_for_status(_response(status, text="denied"))

    assert exc_info.value.code == code
    assert exc_info.value.details["status"] == status
    assert isinstance(exc_info.value, TransportError)


def test_raise_for_status_accepts_2xx() -> None:
    raise_for_status(_response(204))


def test_auth_error_keeps_status_code() -> None:
    with pytest.raises(ControlPlaneAuthError) as exc_info:
        raise_for_status(_response(403))

    assert exc_info.value.status_code == 403


def test_parse_json_rejects_invalid_body() -> None:
    with pytest.raises(ControlPlaneBadResponseError) as exc_info:
        parse_json(_response(200, text="<html>oops</html>"))

    assert exc_info.value.to_info().to_dict()["error"]["code"] == "E2004"


@pytest.mark.asyncio
async def test_send_request_maps_network_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    client = create_http_client("k", 1, transport=httpx.MockTransport(handler))

    with pytest.raises(ControlPlaneUnavailableError) as exc_info:
        await send_request(client, "GET", "http://tracekit.test/v1/metrics")

    assert exc_info.value.details["url"] == "http://tracekit.test/v1/metrics"
    await client.aclose()


@pytest.mark.asyncio
async def test_client_sends_api_key_on_every_request() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    client = create_http_client(
        "secret-key", 5, base_url="http://tracekit.test/", transport=httpx.MockTransport(handler)
    )
    response = await send_request(client, "GET", "/sdk/snapshots/active/svc")

    assert parse_json(response) == {"ok": True}
    assert str(seen[0].url) == "http://tracekit.test/sdk/snapshots/active/svc"
    assert seen[0].headers[API_KEY_HEADER] == "secret-key"
    await client.aclose()


def test_local_ui_detected_when_health_check_answers() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"status": "ok"})

    detector = LocalUIDetector(port=9999, transport=httpx.MockTransport(handler))

    assert detector.endpoint() == "http://localhost:9999"
    assert seen == ["http://localhost:9999/api/health"]


def test_local_ui_absent_on_error_status() -> None:
    detector = LocalUIDetector(
        port=9123, transport=httpx.MockTransport(lambda request: httpx.Response(500))
    )

    assert detector.is_running() is False
    assert detector.endpoint() is None


def test_local_ui_absent_when_unreachable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    detector = LocalUIDetector(transport=httpx.MockTransport(handler))

    assert detector.endpoint() is None
