"""Numeric-integrity and protected-section region detection.

Two detectors scan raw act text and return half-open ``[start, end)`` spans:

- numeric regions: currency amounts, percentages, rates and table/schedule
  markers. Repair rules never rewrite inside these.
- protected regions: windows around definition, proviso and explanation
  cues. OCR corrections inside them are flagged, never applied.

Each detector merges its own overlapping or adjacent spans, so regions from
one detector are pairwise disjoint and sorted by ``start``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, Sequence

from bdlaw.patterns import (
    NUMERIC_PATTERNS,
    PROTECTED_LOOKAHEAD,
    PROTECTED_LOOKBEHIND,
    PROTECTED_SECTION_PATTERNS,
)


@dataclass(frozen=True, slots=True)
class Region:
    start: int
    end: int                  # exclusive
    type: str                 # currency | percentage,rate | definition | ...
    text: str                 # matched text (numeric) or marker(s) (protected)
    sensitive: bool = True

    def overlaps(self, start: int, end: int) -> bool:
        return not (end <= self.start or self.end <= start)

    def contains(self, position: int) -> bool:
        return self.start <= position < self.end

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "type": self.type,
            "text": self.text,
            "numeric_integrity_sensitive": self.sensitive,
        }


@dataclass(frozen=True, slots=True)
class ProtectedRegion:
    start: int
    end: int
    type: str        # definition | proviso | explanation, comma-joined when merged
    marker: str      # matched cue(s), ", "-joined when merged

    def overlaps(self, start: int, end: int) -> bool:
        return not (end <= self.start or self.end <= start)

    def contains(self, position: int) -> bool:
        return self.start <= position < self.end

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "type": self.type,
            "marker": self.marker,
            "legally_protected": True,
        }


@dataclass(frozen=True, slots=True)
class ProtectedSections:
    protected_sections: tuple[str, ...]     # distinct types, detection order
    regions: tuple[ProtectedRegion, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "protected_sections": list(self.protected_sections),
            "regions": [r.to_dict() for r in self.regions],
        }


EMPTY_PROTECTED = ProtectedSections(protected_sections=(), regions=())


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------


def _join_type(current: str, extra: str) -> str:
    if extra in current.split(","):
        return current
    return f"{current},{extra}"


def merge_numeric_regions(regions: Sequence[Region]) -> list[Region]:
    """Merge overlapping or touching regions (``next.start <= last.end + 1``)."""
    if not regions:
        return []
    ordered = sorted(regions, key=lambda r: (r.start, -r.end))
    merged: list[Region] = [ordered[0]]
    for cur in ordered[1:]:
        last = merged[-1]
        if cur.start <= last.end + 1:
            text = last.text if cur.text in last.text else f"{last.text} {cur.text}"
            merged[-1] = Region(
                start=last.start,
                end=max(last.end, cur.end),
                type=_join_type(last.type, cur.type),
                text=text,
                sensitive=True,
            )
        else:
            merged.append(cur)
    return merged


def merge_protected_regions(regions: Sequence[ProtectedRegion]) -> list[ProtectedRegion]:
    if not regions:
        return []
    ordered = sorted(regions, key=lambda r: (r.start, -r.end))
    merged: list[ProtectedRegion] = [ordered[0]]
    for cur in ordered[1:]:
        last = merged[-1]
        if cur.start <= last.end + 1:
            markers = last.marker.split(", ")
            marker = last.marker if cur.marker in markers else f"{last.marker}, {cur.marker}"
            merged[-1] = ProtectedRegion(
                start=last.start,
                end=max(last.end, cur.end),
                type=_join_type(last.type, cur.type),
                marker=marker,
            )
        else:
            merged.append(cur)
    return merged


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def detect_numeric_regions(text: str | None) -> list[Region]:
    """Find currency/percentage/rate/table-schedule spans in ``text``.

    Returns merged, sorted, pairwise-disjoint regions; ``[]`` for empty or
    non-string input.
    """
    if not text or not isinstance(text, str):
        return []
    found: list[Region] = []
    for region_type, patterns in NUMERIC_PATTERNS.items():
        for pattern in patterns:
            for m in pattern.finditer(text):
                if m.end() == m.start():
                    continue
                found.append(Region(
                    start=m.start(),
                    end=m.end(),
                    type=region_type,
                    text=m.group(0),
                ))
    return merge_numeric_regions(found)


def detect_protected_sections(text: str | None) -> ProtectedSections:
    """Find definition/proviso/explanation windows in ``text``.

    Each cue at index ``i`` protects ``[i - 50, i + len(cue) + 200)``,
    clipped to the text bounds.
    """
    if not text or not isinstance(text, str):
        return EMPTY_PROTECTED
    kinds: list[str] = []
    found: list[ProtectedRegion] = []
    length = len(text)
    for section_type, patterns in PROTECTED_SECTION_PATTERNS.items():
        for pattern in patterns:
            for m in pattern.finditer(text):
                if section_type not in kinds:
                    kinds.append(section_type)
                found.append(ProtectedRegion(
                    start=max(0, m.start() - PROTECTED_LOOKBEHIND),
                    end=min(length, m.end() + PROTECTED_LOOKAHEAD),
                    type=section_type,
                    marker=m.group(0),
                ))
    return ProtectedSections(
        protected_sections=tuple(kinds),
        regions=tuple(merge_protected_regions(found)),
    )


# ---------------------------------------------------------------------------
# Membership tests
# ---------------------------------------------------------------------------


def is_in_numeric_region(position: int, regions: Sequence[Region] | None) -> bool:
    if not isinstance(position, int) or not regions:
        return False
    return any(r.contains(position) for r in regions)


def range_overlaps_numeric_region(start: int, end: int, regions: Sequence[Region] | None) -> bool:
    if not isinstance(start, int) or not isinstance(end, int) or not regions:
        return False
    return any(r.overlaps(start, end) for r in regions)


def is_in_protected_section(position: int, regions: Sequence[ProtectedRegion] | None) -> bool:
    if not isinstance(position, int) or not regions:
        return False
    return any(r.contains(position) for r in regions)


def range_overlaps_protected_section(
    start: int,
    end: int,
    regions: Sequence[ProtectedRegion] | None,
) -> bool:
    if not isinstance(start, int) or not isinstance(end, int) or not regions:
        return False
    return any(r.overlaps(start, end) for r in regions)


# ---------------------------------------------------------------------------
# Injectable detector
# ---------------------------------------------------------------------------


class RegionDetector(Protocol):
    """Optional capability handed to ``quality.clean_content``."""

    def numeric_regions(self, text: str) -> list[Region]: ...

    def protected_sections(self, text: str) -> ProtectedSections: ...


class PatternRegionDetector:
    """Region detection backed by the pattern library."""

    def numeric_regions(self, text: str) -> list[Region]:
        return detect_numeric_regions(text)

    def protected_sections(self, text: str) -> ProtectedSections:
        return detect_protected_sections(text)


class NullRegionDetector:
    """Detects nothing; cleaning proceeds without region protection."""

    def numeric_regions(self, text: str) -> list[Region]:
        return []

    def protected_sections(self, text: str) -> ProtectedSections:
        return EMPTY_PROTECTED
