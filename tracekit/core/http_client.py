"""
Shared HTTP client helpers for control plane calls.

Provides consistent timeouts, auth headers, and error mapping so callers
handle stable TransportError instances. There are no retries: a failed
call is reported once and dropped by the caller.
"""

from __future__ import annotations

from typing import Any

import httpx

from tracekit.core.errors import (
    ControlPlaneAuthError,
    ControlPlaneBadResponseError,
    ControlPlaneRejectedError,
    ControlPlaneUnavailableError,
    TransportError,
)
from tracekit.version import __version__

API_KEY_HEADER = "X-API-Key"
USER_AGENT = f"tracekit-python/{__version__}"


def create_http_client(
    api_key: str,
    timeout_seconds: float,
    base_url: str = "",
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    One client per agent, shared by the exporter and the snapshot client.

    Every request carries ``X-API-Key`` and the agent User-Agent. ``transport``
    replaces the network layer (httpx.MockTransport in tests).
    """
    timeout = httpx.Timeout(timeout_seconds)
    return httpx.AsyncClient(
        base_url=base_url.rstrip("/"),
        timeout=timeout,
        headers={API_KEY_HEADER: api_key, "User-Agent": USER_AGENT},
        transport=transport,
    )


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs: Any,
) -> httpx.Response:
    """
    Execute a single HTTP request and map transport failures.

    Network and timeout errors become ControlPlaneUnavailableError; other
    request-level errors become TransportError.
    """
    try:
        return await client.request(method, url, **kwargs)
    except (httpx.TimeoutException, httpx.NetworkError) as exc:
        raise ControlPlaneUnavailableError(
            "Control plane unavailable", details={"reason": str(exc), "url": url}
        ) from exc
    except httpx.HTTPError as exc:
        raise TransportError(
            "Control plane request failed", details={"reason": str(exc), "url": url}
        ) from exc


def raise_for_status(response: httpx.Response) -> None:
    """Raise the TransportError subclass matching a non-2xx status."""
    status = response.status_code
    if 200 <= status < 300:
        return

    details = _safe_error_details(response)

    if status in (401, 403):
        raise ControlPlaneAuthError(details=details, status_code=status)
    if status >= 500:
        raise ControlPlaneUnavailableError("Control plane unavailable", details=details)
    raise ControlPlaneRejectedError(details=details)


def parse_json(response: httpx.Response) -> Any:
    """Decode a JSON body or raise ControlPlaneBadResponseError."""
    try:
        return response.json()
    except ValueError as exc:
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors
        raise ControlPlaneBadResponseError(
            details={"status": response.status_code, "body": response.text[:500]}
        ) from exc


def _safe_error_details(response: httpx.Response) -> dict[str, Any]:
    """Status, URL and the start of the body; never headers."""
    try:
        body = response.text
    except (UnicodeDecodeError, httpx.ResponseNotRead):
        body = ""
    return {"status": response.status_code, "url": str(response.url), "body": body[:300]}
