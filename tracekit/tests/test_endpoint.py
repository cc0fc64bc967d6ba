"""Tests for control plane endpoint resolution."""

import pytest

from tracekit.core.endpoint import extract_base_url, resolve_endpoint


@pytest.mark.parametrize(
    ("endpoint", "path", "use_ssl", "expected"),
    [
        ("app.example.com", "/v1/traces", True, "https://app.example.com/v1/traces"),
        ("http://localhost:8081", "/v1/traces", True, "http://localhost:8081/v1/traces"),
        (
            "https://app.example.com/v1/traces",
            "/v1/metrics",
            True,
            "https://app.example.com/v1/metrics",
        ),
        ("app.example.com", "", True, "https://app.example.com"),
    ],
)
def test_resolve_endpoint_documented_cases(endpoint, path, use_ssl, expected) -> None:
    assert resolve_endpoint(endpoint, path, use_ssl) == expected


def test_bare_host_uses_ssl_flag() -> None:
    assert resolve_endpoint("localhost:8081", "/v1/traces", False) == "http://localhost:8081/v1/traces"
    assert resolve_endpoint("app.tracekit.dev", "/v1/traces", True) == "https://app.tracekit.dev/v1/traces"


def test_trailing_slash_is_dropped() -> None:
    assert resolve_endpoint("app.tracekit.dev/", "/v1/metrics", True) == "https://app.tracekit.dev/v1/metrics"
    assert resolve_endpoint("http://localhost:8081/", "/v1/traces", True) == "http://localhost:8081/v1/traces"


def test_scheme_overrides_ssl_flag() -> None:
    assert resolve_endpoint("https://app.tracekit.dev", "/v1/metrics", False) == (
        "https://app.tracekit.dev/v1/metrics"
    )


@pytest.mark.parametrize(
    "endpoint",
    [
        "http://localhost:8081/v1/traces",
        "http://localhost:8081/custom/path",
    ],
)
def test_existing_path_is_replaced(endpoint) -> None:
    assert resolve_endpoint(endpoint, "/v1/traces", True) == "http://localhost:8081/v1/traces"


def test_existing_path_with_trailing_slash_is_replaced() -> None:
    assert resolve_endpoint("https://app.tracekit.dev/api/v2/", "/v1/traces", False) == (
        "https://app.tracekit.dev/v1/traces"
    )


def test_empty_path_returns_base_url() -> None:
    assert resolve_endpoint("http://localhost:8081", "", True) == "http://localhost:8081"
    assert resolve_endpoint("http://localhost:8081/v1/traces", "", True) == "http://localhost:8081"


def test_extract_base_url() -> None:
    assert extract_base_url("https://app.tracekit.dev/v1/traces") == "https://app.tracekit.dev"
    assert extract_base_url("http://localhost:8081/custom/path") == "http://localhost:8081"
    assert extract_base_url("not-a-url") == "not-a-url"
