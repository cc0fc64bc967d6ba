"""Web framework integrations."""

from tracekit.integrations.fastapi import TracekitMiddleware, extract_client_ip, install_tracekit

__all__ = ["TracekitMiddleware", "extract_client_ip", "install_tracekit"]
