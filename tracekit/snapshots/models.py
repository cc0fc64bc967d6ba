"""Wire models for the snapshot API."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tracekit.core.time import as_utc, utcnow
from tracekit.security.detector import SecurityFlag


class BreakpointDefinition(BaseModel):
    """A server-managed capture directive, as returned by the active list."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    file_path: str = ""
    line_number: int = 0
    function_name: str | None = None
    label: str | None = None
    enabled: bool = True
    max_captures: int = 0
    capture_count: int = 0
    expire_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("expire_at")
    @classmethod
    def normalize_expiry(cls, v: datetime | None) -> datetime | None:
        return as_utc(v) if v is not None else None

    def is_usable(self, now: datetime | None = None) -> bool:
        """Enabled, unexpired, and under its capture limit."""
        if not self.enabled:
            return False
        if self.expire_at is not None and (now or utcnow()) >= self.expire_at:
            return False
        if self.max_captures > 0 and self.capture_count >= self.max_captures:
            return False
        return True


class BreakpointRegistration(BaseModel):
    """Code location reported on first capture."""

    service_name: str
    file_path: str
    line_number: int
    function_name: str | None = None
    label: str | None = None


class Snapshot(BaseModel):
    """Redacted variable state captured at one breakpoint hit."""

    model_config = ConfigDict(frozen=True)

    breakpoint_id: str
    service_name: str
    file_path: str
    function_name: str | None = None
    label: str | None = None
    line_number: int
    variables: dict[str, Any] = Field(default_factory=dict)
    security_flags: list[SecurityFlag] = Field(default_factory=list)
    stack_trace: str = ""
    trace_id: str | None = None
    span_id: str | None = None
    captured_at: datetime = Field(default_factory=utcnow)

    def to_payload(self) -> dict[str, Any]:
        """JSON body for the capture endpoint.

        ``variables`` already holds detached, JSON-safe data (see to_jsonable).
        """
        return self.model_dump(mode="json", by_alias=True)


def to_jsonable(value: Any, _depth: int = 0) -> Any:
    """
    Best-effort conversion of a captured value into JSON-safe data.

    Containers are copied, so the result shares nothing mutable with
    ``value``. Non-finite floats become strings ("nan", "inf", "-inf").
    """
    if isinstance(value, float) and not math.isfinite(value):
        return repr(value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if _depth >= 8:
        return repr(value)
    if isinstance(value, dict):
        return {str(k): to_jsonable(v, _depth + 1) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v, _depth + 1) for v in value]
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, BaseModel):
        return to_jsonable(value.model_dump(mode="python"), _depth + 1)
    return repr(value)
