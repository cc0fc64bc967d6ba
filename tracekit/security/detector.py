"""
Sensitive data detection and redaction for captured variables.

Every snapshot passes through SensitiveDataDetector.scan() before it is
built. The scan is pure: the same input always yields the same sanitized
mapping and flags.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from tracekit.security.patterns import DETECTORS, Detector, FlagCategory, Severity

REDACTED = "[REDACTED]"


class SecurityFlag(BaseModel):
    """One detected sensitive value.

    On the wire the control plane names the category ``type`` and the
    subtype ``category``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    category: FlagCategory = Field(serialization_alias="type")
    subtype: str = Field(serialization_alias="category")
    severity: Severity
    variable: str
    redacted: bool = True


@dataclass(frozen=True)
class ScanResult:
    """Sanitized variables and the flags raised while producing them."""

    sanitized: dict[str, Any] = field(default_factory=dict)
    flags: list[SecurityFlag] = field(default_factory=list)


class SensitiveDataDetector:
    """Classify and redact variable values against an ordered detector list."""

    def __init__(self, detectors: tuple[Detector, ...] = DETECTORS):
        self.detectors = detectors

    def scan(self, variables: Mapping[str, Any]) -> ScanResult:
        sanitized: dict[str, Any] = {}
        flags: list[SecurityFlag] = []

        for key, value in variables.items():
            clean, flag = self.scan_value(key, value)
            sanitized[key] = clean
            if flag is not None:
                flags.append(flag)

        return ScanResult(sanitized=sanitized, flags=flags)

    def scan_value(self, key: str, value: Any) -> tuple[Any, SecurityFlag | None]:
        """Return the value to send and the flag it raised, if any."""
        if value is None:
            return None, None

        text = str(value)
        for detector in self.detectors:
            if detector.matches(text):
                flag = SecurityFlag(
                    category=detector.category,
                    subtype=detector.subtype,
                    severity=detector.severity,
                    variable=key,
                    redacted=True,
                )
                return REDACTED, flag

        return value, None


_default_detector = SensitiveDataDetector()


def scan(variables: Mapping[str, Any]) -> ScanResult:
    """Scan with the default detector list."""
    return _default_detector.scan(variables)
