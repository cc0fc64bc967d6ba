"""
Structured error handling with stable error codes.

Only two conditions ever reach the host application: ConfigurationError at
agent construction and InvalidArgumentError on instrument misuse. Transport
errors are raised inside background work and handled there.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes for agent errors."""

    # Caller-facing errors (1xxx)
    CONFIGURATION_ERROR = "E1000"
    INVALID_ARGUMENT = "E1001"

    # Control plane transport errors (2xxx)
    TRANSPORT_ERROR = "E2000"
    CONTROL_PLANE_UNAVAILABLE = "E2001"
    CONTROL_PLANE_AUTH_FAILED = "E2002"
    CONTROL_PLANE_REJECTED = "E2003"
    CONTROL_PLANE_BAD_RESPONSE = "E2004"


@dataclass(frozen=True)
class ErrorInfo:
    """Loggable error summary.

    Format: {error: {code, message, details?}}
    """

    code: ErrorCode
    message: str
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured log output."""
        error: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.details:
            error["details"] = self.details
        return {"error": error}


class TracekitError(Exception):
    """Base agent error with structured error detail."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)

    def to_info(self) -> ErrorInfo:
        """Create a loggable summary of this error."""
        return ErrorInfo(code=self.code, message=self.message, details=self.details)


class ConfigurationError(TracekitError):
    """Missing or invalid agent configuration."""

    def __init__(self, message: str = "Invalid configuration", details: dict[str, Any] | None = None):
        super().__init__(ErrorCode.CONFIGURATION_ERROR, message, details)


class InvalidArgumentError(TracekitError, ValueError):
    """Caller passed a value the operation does not accept."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(ErrorCode.INVALID_ARGUMENT, message, details)


class TransportError(TracekitError):
    """Any failure talking to the control plane."""

    def __init__(
        self,
        message: str = "Control plane request failed",
        details: dict[str, Any] | None = None,
        code: ErrorCode = ErrorCode.TRANSPORT_ERROR,
    ):
        super().__init__(code, message, details)


class ControlPlaneUnavailableError(TransportError):
    """Network failure, timeout, or 5xx from the control plane."""

    def __init__(
        self, message: str = "Control plane unavailable", details: dict[str, Any] | None = None
    ):
        super().__init__(message, details, ErrorCode.CONTROL_PLANE_UNAVAILABLE)


class ControlPlaneAuthError(TransportError):
    """Control plane rejected the API key (401/403)."""

    def __init__(
        self,
        message: str = "Control plane authentication failed",
        status_code: int = 401,
        details: dict[str, Any] | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, details, ErrorCode.CONTROL_PLANE_AUTH_FAILED)


class ControlPlaneRejectedError(TransportError):
    """Control plane refused the request (other 4xx)."""

    def __init__(
        self, message: str = "Control plane rejected request", details: dict[str, Any] | None = None
    ):
        super().__init__(message, details, ErrorCode.CONTROL_PLANE_REJECTED)


class ControlPlaneBadResponseError(TransportError):
    """Control plane returned a body the agent cannot use."""

    def __init__(
        self,
        message: str = "Control plane returned invalid response",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details, ErrorCode.CONTROL_PLANE_BAD_RESPONSE)
