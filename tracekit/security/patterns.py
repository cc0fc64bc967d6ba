"""Regex detectors for sensitive data in captured variables.

Order matters: the scanner stops at the first detector that matches.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Pattern


class FlagCategory(str, Enum):
    PII = "pii"
    CREDENTIAL = "credential"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Detector:
    """One sensitive-data pattern and the flag it produces."""

    subtype: str
    category: FlagCategory
    severity: Severity
    pattern: Pattern[str]

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


# PII
EMAIL = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b")
SSN = re.compile(r"\b\d{3}-\d{2}-\d{4}\b")
CREDIT_CARD = re.compile(r"\b\d{4}[- ]?\d{4}[- ]?\d{4}[- ]?\d{4}\b")
PHONE = re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b")

# Credentials
API_KEY = re.compile(
    r"(api[_-]?key|apikey|access[_-]?key)[\s:=]+['\" ]?([a-zA-Z0-9_-]{20,})['\" ]?",
    re.IGNORECASE,
)
AWS_KEY = re.compile(r"AKIA[0-9A-Z]{16}")
STRIPE_KEY = re.compile(r"sk_live_[0-9a-zA-Z]{24}")
PASSWORD = re.compile(
    r"(password|pwd|pass)[\s:=]+['\" ]?([^\s'\" ]{6,})['\" ]?",
    re.IGNORECASE,
)
JWT = re.compile(r"eyJ[a-zA-Z0-9_-]+\.eyJ[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+")
PRIVATE_KEY = re.compile(r"-----BEGIN (RSA |EC )?PRIVATE KEY-----")


DETECTORS: tuple[Detector, ...] = (
    Detector("email", FlagCategory.PII, Severity.MEDIUM, EMAIL),
    Detector("ssn", FlagCategory.PII, Severity.CRITICAL, SSN),
    Detector("credit_card", FlagCategory.PII, Severity.CRITICAL, CREDIT_CARD),
    Detector("phone", FlagCategory.PII, Severity.MEDIUM, PHONE),
    Detector("api_key", FlagCategory.CREDENTIAL, Severity.CRITICAL, API_KEY),
    Detector("aws_key", FlagCategory.CREDENTIAL, Severity.CRITICAL, AWS_KEY),
    Detector("stripe_key", FlagCategory.CREDENTIAL, Severity.CRITICAL, STRIPE_KEY),
    Detector("password", FlagCategory.CREDENTIAL, Severity.CRITICAL, PASSWORD),
    Detector("jwt", FlagCategory.CREDENTIAL, Severity.HIGH, JWT),
    Detector("private_key", FlagCategory.CREDENTIAL, Severity.CRITICAL, PRIVATE_KEY),
)
