#!/usr/bin/env python3
"""Check control plane connectivity by listing a service's active breakpoints.

Usage:
  python scripts/check_control_plane.py --api-key KEY --service-name checkout --endpoint app.tracekit.dev

Environment fallbacks:
  TRACEKIT_API_KEY, TRACEKIT_SERVICE_NAME, TRACEKIT_ENDPOINT
"""
from __future__ import annotations

import argparse
import os
import sys
from urllib.parse import quote

import httpx

from tracekit.core.endpoint import resolve_endpoint
from tracekit.core.http_client import API_KEY_HEADER, USER_AGENT
from tracekit.snapshots.client import ACTIVE_BREAKPOINTS_PATH


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="TraceKit control plane check")
    parser.add_argument("--api-key", default=os.getenv("TRACEKIT_API_KEY"))
    parser.add_argument("--service-name", default=os.getenv("TRACEKIT_SERVICE_NAME"))
    parser.add_argument("--endpoint", default=os.getenv("TRACEKIT_ENDPOINT", "app.tracekit.dev"))
    parser.add_argument("--insecure", action="store_true", help="Use http:// for bare hosts")
    parser.add_argument("--timeout", type=float, default=10.0)
    parser.add_argument("--quiet", action="store_true")
    return parser.parse_args(argv)


def exit_with(message: str, code: int = 1) -> None:
    print(message, file=sys.stderr)
    raise SystemExit(code)


def main(argv: list[str] | None = None, transport: httpx.BaseTransport | None = None) -> None:
    args = parse_args(argv)

    if not args.api_key:
        exit_with("Missing API key (use --api-key or TRACEKIT_API_KEY)")
    if not args.service_name:
        exit_with("Missing service name (use --service-name or TRACEKIT_SERVICE_NAME)")

    use_ssl = not args.insecure
    metrics_url = resolve_endpoint(args.endpoint, "/v1/metrics", use_ssl)
    base_url = resolve_endpoint(args.endpoint, "", use_ssl)
    active_path = ACTIVE_BREAKPOINTS_PATH.format(service_name=quote(args.service_name, safe=""))

    if not args.quiet:
        print(f"Metrics endpoint:  {metrics_url}")
        print(f"Snapshot API base: {base_url}")

    headers = {API_KEY_HEADER: args.api_key, "User-Agent": USER_AGENT}
    with httpx.Client(
        base_url=base_url, timeout=args.timeout, headers=headers, transport=transport
    ) as client:
        try:
            response = client.get(active_path)
        except httpx.HTTPError as exc:
            exit_with(f"Request failed: {exc}")

    if response.status_code in (401, 403):
        exit_with(f"API key rejected: HTTP {response.status_code}")
    if response.status_code != 200:
        exit_with(f"Control plane check failed: HTTP {response.status_code} {response.text}")

    try:
        payload = response.json()
    except ValueError:
        exit_with("Control plane returned invalid JSON")
    if not isinstance(payload, dict) or not isinstance(payload.get("breakpoints"), list):
        exit_with("Control plane response has no breakpoint list")
    breakpoints = payload["breakpoints"]

    if not args.quiet:
        print(f"Active breakpoints for {args.service_name}: {len(breakpoints)}")
        for bp in breakpoints:
            if not isinstance(bp, dict):
                print(f"  skipped malformed entry: {str(bp)[:80]}")
                continue
            location = f"{bp.get('file_path', '?')}:{bp.get('line_number', '?')}"
            label = bp.get("label") or "-"
            print(f"  {bp.get('id')}  {location}  {bp.get('function_name') or '-'}  {label}")


if __name__ == "__main__":
    main()
