"""Metric point types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class MetricKind(str, Enum):
    """Supported instrument kinds."""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


@dataclass(frozen=True)
class MetricPoint:
    """One recorded value, created on every instrument mutation."""

    name: str
    kind: MetricKind
    value: float
    tags: Mapping[str, str] = field(default_factory=dict)
    timestamp_nanos: int = 0

    def __post_init__(self) -> None:
        # Detach from the caller's dict so later mutation cannot leak in
        object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))

    @property
    def series_key(self) -> tuple[str, frozenset[tuple[str, str]]]:
        """Identity of the time series this point belongs to."""
        return self.name, frozenset(self.tags.items())
