"""Core module with errors, logging, endpoints, and background execution."""

from tracekit.core.background import BackgroundLoop
from tracekit.core.endpoint import extract_base_url, resolve_endpoint
from tracekit.core.errors import (
    ConfigurationError,
    ControlPlaneAuthError,
    ControlPlaneBadResponseError,
    ControlPlaneRejectedError,
    ControlPlaneUnavailableError,
    ErrorCode,
    ErrorInfo,
    InvalidArgumentError,
    TracekitError,
    TransportError,
)
from tracekit.core.logging import get_logger, request_context, setup_logging

__all__ = [
    "BackgroundLoop",
    "ConfigurationError",
    "ControlPlaneAuthError",
    "ControlPlaneBadResponseError",
    "ControlPlaneRejectedError",
    "ControlPlaneUnavailableError",
    "ErrorCode",
    "ErrorInfo",
    "InvalidArgumentError",
    "TracekitError",
    "TransportError",
    "extract_base_url",
    "get_logger",
    "request_context",
    "resolve_endpoint",
    "setup_logging",
]
