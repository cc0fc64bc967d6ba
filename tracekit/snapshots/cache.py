"""
Breakpoint lookup structure.

A BreakpointCache is immutable. The poller builds a new one from each
successful response and swaps the reference, so readers always see either
the complete old set or the complete new set.

Lookup precedence is fixed: the (function, label) key is consulted first,
and the (file, line) key only when the first yields nothing usable.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, NamedTuple

from tracekit.snapshots.models import BreakpointDefinition


class LabelKey(NamedTuple):
    function_name: str
    label: str


class LocationKey(NamedTuple):
    file_path: str
    line_number: int


class BreakpointCache:
    """Two read-only indexes over one set of breakpoint definitions."""

    __slots__ = ("_by_label", "_by_location")

    def __init__(
        self,
        by_label: Mapping[LabelKey, BreakpointDefinition] | None = None,
        by_location: Mapping[LocationKey, BreakpointDefinition] | None = None,
    ) -> None:
        self._by_label = MappingProxyType(dict(by_label or {}))
        self._by_location = MappingProxyType(dict(by_location or {}))

    @classmethod
    def build(cls, definitions: Iterable[BreakpointDefinition]) -> "BreakpointCache":
        by_label: dict[LabelKey, BreakpointDefinition] = {}
        by_location: dict[LocationKey, BreakpointDefinition] = {}
        for definition in definitions:
            if definition.function_name and definition.label:
                by_label[LabelKey(definition.function_name, definition.label)] = definition
            by_location[LocationKey(definition.file_path, definition.line_number)] = definition
        return cls(by_label, by_location)

    @property
    def by_label(self) -> Mapping[LabelKey, BreakpointDefinition]:
        return self._by_label

    @property
    def by_location(self) -> Mapping[LocationKey, BreakpointDefinition]:
        return self._by_location

    def __len__(self) -> int:
        return len({d.id for d in self._by_location.values()} | {d.id for d in self._by_label.values()})

    def find_usable(
        self,
        label_key: LabelKey,
        location_key: LocationKey,
        now: datetime | None = None,
    ) -> BreakpointDefinition | None:
        """Return the first usable definition, label key before location key."""
        definition = self._by_label.get(label_key)
        if definition is not None and definition.is_usable(now):
            return definition

        definition = self._by_location.get(location_key)
        if definition is not None and definition.is_usable(now):
            return definition

        return None


EMPTY_CACHE = BreakpointCache()
