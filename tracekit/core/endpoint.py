"""
Endpoint resolution for control plane URLs.

The configured endpoint may be a bare host, a host with scheme, or a full URL.
Every outbound URL (metrics, snapshot API) is derived from it here.
"""

from __future__ import annotations

import re

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_BASE_URL_RE = re.compile(r"^(https?://[^/]+)", re.IGNORECASE)


def resolve_endpoint(endpoint: str, path: str, use_ssl: bool) -> str:
    """
    Build a fully qualified URL for ``path`` on the configured endpoint.

    Args:
        endpoint: Bare host ("app.tracekit.dev"), host with scheme
            ("http://localhost:8081") or a full URL.
        path: Path to append ("/v1/metrics"), or "" for the base URL.
        use_ssl: Scheme to use when ``endpoint`` carries none.

    Examples:
        >>> resolve_endpoint("app.tracekit.dev", "/v1/traces", True)
        'https://app.tracekit.dev/v1/traces'
        >>> resolve_endpoint("http://localhost:8081", "/v1/traces", True)
        'http://localhost:8081/v1/traces'
        >>> resolve_endpoint("https://app.tracekit.dev/v1/traces", "/v1/metrics", True)
        'https://app.tracekit.dev/v1/metrics'
    """
    if _SCHEME_RE.match(endpoint):
        if endpoint.endswith("/"):
            endpoint = endpoint[:-1]

        without_scheme = _SCHEME_RE.sub("", endpoint, count=1)
        if "/" in without_scheme:
            # Existing path is replaced, never merged
            return extract_base_url(endpoint) + path

        return endpoint + path

    scheme = "https://" if use_ssl else "http://"
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    return scheme + endpoint + path


def extract_base_url(full_url: str) -> str:
    """
    Return scheme + host[:port] of a URL, dropping any path.

    Inputs without an http(s) scheme are returned unchanged.
    """
    match = _BASE_URL_RE.match(full_url)
    return match.group(1) if match else full_url
