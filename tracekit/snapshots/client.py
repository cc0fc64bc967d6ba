"""
Code monitoring client.

Polls the control plane for active breakpoints, auto-registers call sites the
first time they capture, and submits redacted snapshots when a usable
breakpoint matches. All network work runs on the agent's background loop;
capture_snapshot() itself only touches in-memory state.
"""

from __future__ import annotations

import asyncio
import inspect
import threading
import traceback
from collections.abc import Mapping
from concurrent.futures import Future
from types import FrameType
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from tracekit.core.background import BackgroundLoop
from tracekit.core.errors import ControlPlaneBadResponseError, TransportError
from tracekit.core.http_client import parse_json, raise_for_status, send_request
from tracekit.core.logging import get_logger
from tracekit.core.tracing import TraceContextProvider, current_trace_context
from tracekit.security.detector import SensitiveDataDetector
from tracekit.snapshots.cache import EMPTY_CACHE, BreakpointCache, LabelKey, LocationKey
from tracekit.snapshots.models import (
    BreakpointDefinition,
    BreakpointRegistration,
    Snapshot,
    to_jsonable,
)

logger = get_logger(__name__)

ACTIVE_BREAKPOINTS_PATH = "/sdk/snapshots/active/{service_name}"
AUTO_REGISTER_PATH = "/sdk/snapshots/auto-register"
CAPTURE_PATH = "/sdk/snapshots/capture"

DEFAULT_POLL_INTERVAL_SECONDS = 30.0
# Gives the control plane time to activate a freshly registered location
REGISTRATION_REFRESH_DELAY_SECONDS = 0.5


class SnapshotClient:
    """Breakpoint cache, poller, auto-registration, and snapshot capture."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        service_name: str,
        loop: BackgroundLoop,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        detector: SensitiveDataDetector | None = None,
        trace_context: TraceContextProvider = current_trace_context,
        refresh_delay: float = REGISTRATION_REFRESH_DELAY_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_name = service_name
        self.poll_interval = poll_interval
        self.refresh_delay = refresh_delay
        self._client = client
        self._loop = loop
        self._detector = detector or SensitiveDataDetector()
        self._trace_context = trace_context

        self._cache: BreakpointCache = EMPTY_CACHE
        self._registered: set[LabelKey] = set()
        self._registered_lock = threading.Lock()
        self._poll_task: Future | None = None

    @property
    def breakpoints(self) -> BreakpointCache:
        """The current cache; replaced wholesale on every successful poll."""
        return self._cache

    @property
    def registered_locations(self) -> frozenset[LabelKey]:
        with self._registered_lock:
            return frozenset(self._registered)

    @property
    def active_breakpoints_url(self) -> str:
        return self.base_url + ACTIVE_BREAKPOINTS_PATH.format(
            service_name=quote(self.service_name, safe="")
        )

    def start(self) -> None:
        """Poll immediately, then every poll_interval seconds."""
        if self._poll_task is None:
            self._poll_task = self._loop.every(
                self.poll_interval,
                self.refresh_breakpoints,
                name="breakpoint-poll",
                initial_delay=0,
            )
            logger.info(
                "Code monitoring started",
                data={"service": self.service_name, "poll_interval": self.poll_interval},
            )

    def close(self) -> None:
        self._loop.cancel(self._poll_task)
        self._poll_task = None

    async def refresh_breakpoints(self) -> bool:
        """
        Fetch the active breakpoint list and swap in a new cache.

        Returns False when the fetch failed; the previous cache is kept.
        """
        try:
            response = await send_request(self._client, "GET", self.active_breakpoints_url)
            raise_for_status(response)
            definitions = _parse_definitions(parse_json(response))
        except TransportError as exc:
            logger.warning(
                "Failed to fetch active breakpoints; keeping previous cache",
                data=exc.to_info().to_dict(),
            )
            return False

        self._cache = BreakpointCache.build(definitions)
        logger.debug("Breakpoint cache refreshed", data={"breakpoints": len(definitions)})
        return True

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
        Capture ``variables`` if an active breakpoint matches this call site.

        The location defaults to the caller ``stacklevel`` frames up. Returns
        the submitted Snapshot, or None when no usable breakpoint matched.
        """
        frame = _caller_frame(stacklevel)
        try:
            if frame is not None:
                file_path = file_path if file_path is not None else frame.f_code.co_filename
                line_number = line_number if line_number is not None else frame.f_lineno
                function_name = (
                    function_name if function_name is not None else frame.f_code.co_qualname
                )
            file_path = file_path or ""
            line_number = line_number or 0
            function_name = function_name or ""

            label_key = LabelKey(function_name, label)
            self._auto_register(label_key, file_path, line_number)

            definition = self._cache.find_usable(label_key, LocationKey(file_path, line_number))
            if definition is None:
                return None

            # Detach from the caller's objects so the scanned data is what gets sent
            detached = {str(k): to_jsonable(v) for k, v in variables.items()}
            result = self._detector.scan(detached)
            trace_ctx = self._trace_context()
            stack_trace = "".join(traceback.format_stack(frame)) if frame is not None else ""
        finally:
            del frame

        snapshot = Snapshot(
            breakpoint_id=definition.id,
            service_name=self.service_name,
            file_path=file_path,
            function_name=function_name or None,
            label=label or None,
            line_number=line_number,
            variables=result.sanitized,
            security_flags=result.flags,
            stack_trace=stack_trace,
            trace_id=trace_ctx.trace_id if trace_ctx else None,
            span_id=trace_ctx.span_id if trace_ctx else None,
        )
        self._loop.submit(self._submit(snapshot), name="snapshot-submit")
        return snapshot

    def _auto_register(self, key: LabelKey, file_path: str, line_number: int) -> None:
        with self._registered_lock:
            if key in self._registered:
                return
            self._registered.add(key)

        registration = BreakpointRegistration(
            service_name=self.service_name,
            file_path=file_path,
            line_number=line_number,
            function_name=key.function_name or None,
            label=key.label or None,
        )
        self._loop.submit(self._register(registration), name="breakpoint-register")

    async def _register(self, registration: BreakpointRegistration) -> None:
        try:
            response = await send_request(
                self._client,
                "POST",
                self.base_url + AUTO_REGISTER_PATH,
                json=registration.model_dump(mode="json"),
            )
            raise_for_status(response)
        except TransportError as exc:
            logger.warning(
                "Breakpoint auto-registration failed",
                data={
                    **exc.to_info().to_dict(),
                    "function": registration.function_name,
                    "label": registration.label,
                },
            )
            return

        await asyncio.sleep(self.refresh_delay)
        await self.refresh_breakpoints()

    async def _submit(self, snapshot: Snapshot) -> None:
        try:
            response = await send_request(
                self._client,
                "POST",
                self.base_url + CAPTURE_PATH,
                json=snapshot.to_payload(),
            )
            raise_for_status(response)
        except TransportError as exc:
            logger.warning(
                "Snapshot submission failed",
                data={**exc.to_info().to_dict(), "breakpoint_id": snapshot.breakpoint_id},
            )
            return

        logger.debug(
            "Snapshot submitted",
            data={"breakpoint_id": snapshot.breakpoint_id, "flags": len(snapshot.security_flags)},
        )


def _parse_definitions(payload: Any) -> list[BreakpointDefinition]:
    """Validate the active-breakpoints body, skipping malformed entries."""
    items = payload.get("breakpoints") if isinstance(payload, dict) else None
    if not isinstance(items, list):
        raise ControlPlaneBadResponseError(
            "Active breakpoints response has no breakpoint list",
            details={"body": str(payload)[:300]},
        )

    definitions: list[BreakpointDefinition] = []
    for item in items:
        try:
            definitions.append(BreakpointDefinition.model_validate(item))
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed breakpoint definition",
                data={"error": str(exc), "entry": str(item)[:300]},
            )
    return definitions


def _caller_frame(stacklevel: int) -> FrameType | None:
    """Frame ``stacklevel`` levels above the function calling this helper."""
    frame = inspect.currentframe()
    try:
        # Skip this helper's own frame as well
        for _ in range(stacklevel + 1):
            if frame is None:
                return None
            frame = frame.f_back
        return frame
    finally:
        del frame
