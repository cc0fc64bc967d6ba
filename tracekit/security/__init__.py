"""Sensitive data detection for snapshots."""

from tracekit.security.detector import (
    REDACTED,
    ScanResult,
    SecurityFlag,
    SensitiveDataDetector,
    scan,
)
from tracekit.security.patterns import DETECTORS, Detector, FlagCategory, Severity

__all__ = [
    "DETECTORS",
    "Detector",
    "FlagCategory",
    "REDACTED",
    "ScanResult",
    "SecurityFlag",
    "SensitiveDataDetector",
    "Severity",
    "scan",
]
