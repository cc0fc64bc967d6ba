"""
FastAPI / Starlette integration.

TracekitMiddleware records request metrics through the agent and tags the
current span with the client IP. install_tracekit() wires the middleware and
the agent's shutdown into an application.
"""

from __future__ import annotations

import asyncio
import ipaddress
import time
import uuid
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from tracekit.core.logging import get_logger, request_context
from tracekit.core.tracing import set_span_attribute
from tracekit.sdk import TracekitSDK

logger = get_logger(__name__)

REQUESTS_METRIC = "http.server.requests"
ACTIVE_REQUESTS_METRIC = "http.server.active_requests"
DURATION_METRIC = "http.server.request.duration"
ERRORS_METRIC = "http.server.errors"


def _valid_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def extract_client_ip(request: Request) -> str:
    """
    Client IP for a possibly proxied request.

    Checks the first X-Forwarded-For entry, then X-Real-IP, then the socket
    peer. Returns "" when none is available.
    """
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded.strip():
        first = forwarded.split(",")[0].strip()
        if _valid_ip(first):
            return first

    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip and _valid_ip(real_ip):
        return real_ip

    if request.client is None:
        return ""
    host = request.client.host
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return host
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return str(address.ipv4_mapped)
    return str(address)


class TracekitMiddleware(BaseHTTPMiddleware):
    """Per-request metrics: count, in-flight gauge, duration, and errors."""

    def __init__(self, app, sdk: TracekitSDK):
        super().__init__(app)
        self.sdk = sdk

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        path = request.url.path
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        context_token = request_context.set({"request_id": request_id, "path": path})

        active = self.sdk.gauge(ACTIVE_REQUESTS_METRIC, {"http.method": method})
        duration = self.sdk.histogram(DURATION_METRIC, {"unit": "ms"})
        active.inc()

        client_ip = extract_client_ip(request)
        if client_ip:
            set_span_attribute("http.client_ip", client_ip)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)

            self.sdk.counter(REQUESTS_METRIC, {"http.method": method, "http.route": path}).inc()
            if response.status_code >= 400:
                self.sdk.counter(
                    ERRORS_METRIC,
                    {"http.method": method, "http.status_code": str(response.status_code)},
                ).inc()
            return response

        except Exception as exc:
            self.sdk.counter(
                ERRORS_METRIC, {"http.method": method, "error.type": type(exc).__name__}
            ).inc()
            logger.error(
                "Unhandled exception in request",
                exc_info=exc,
                data={"method": method, "path": path},
            )
            raise

        finally:
            active.dec()
            duration.record((time.perf_counter() - start_time) * 1000)
            request_context.reset(context_token)


def install_tracekit(app: FastAPI, sdk: TracekitSDK) -> None:
    """
    Instrument ``app`` with ``sdk``.

    Adds TracekitMiddleware, exposes the agent as ``app.state.tracekit``, and
    closes the agent (flushing buffered metrics) when the application shuts
    down. Call before the application starts serving.
    """
    app.add_middleware(TracekitMiddleware, sdk=sdk)
    app.state.tracekit = sdk

    inner_lifespan = app.router.lifespan_context

    @asynccontextmanager
    async def lifespan(_app):
        try:
            async with inner_lifespan(_app) as state:
                yield state
        finally:
            # close() blocks on the agent's own loop; keep the server loop free
            await asyncio.to_thread(sdk.close)

    app.router.lifespan_context = lifespan
    logger.info("TraceKit middleware installed", data={"service": sdk.service_name})
