"""Content-noise filtering and section/amendment marker accounting.

The site wraps every act in navigation chrome ("প্রিন্ট ভিউ", "Top" links,
copyright and division footers). ``filter_content_noise`` removes exactly
those tokens and nothing else: legal markers are never touched.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from bdlaw.patterns import (
    AMENDMENT_MARKERS,
    NUMERAL_DANDA_RE,
    SECTION_MARKERS,
    UI_NOISE_LITERALS,
    UI_NOISE_PATTERNS,
)

_LEADING_WS_RE = re.compile(r"^\s+")
_TRAILING_WS_RE = re.compile(r"\s+$")
_AMENDMENT_CONTEXT = 20


def filter_content_noise(text: str | None) -> str | None:
    """Strip UI boilerplate, then leading/trailing whitespace.

    ``None`` and ``""`` are returned unchanged.
    """
    if not text or not isinstance(text, str):
        return text
    filtered = text
    for literal in UI_NOISE_LITERALS:
        filtered = filtered.replace(literal, "")
    for pattern in UI_NOISE_PATTERNS:
        filtered = pattern.sub("", filtered)
    filtered = _LEADING_WS_RE.sub("", filtered)
    return _TRAILING_WS_RE.sub("", filtered)


# ---------------------------------------------------------------------------
# Section markers
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MarkerHit:
    type: str           # the marker literal, e.g. "ধারা"
    line: str
    line_number: int    # 1-based
    position: int       # offset within the line
    context: str = ""   # amendment markers only

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": self.type,
            "line": self.line,
            "line_number": self.line_number,
            "position": self.position,
        }
        if self.context:
            out["context"] = self.context
        return out


def _scan_lines(text: str, markers: tuple[str, ...], *, with_context: bool) -> list[MarkerHit]:
    hits: list[MarkerHit] = []
    for idx, line in enumerate(text.split("\n")):
        for marker in markers:
            pos = line.find(marker)
            while pos != -1:
                context = ""
                if with_context:
                    context = line[
                        max(0, pos - _AMENDMENT_CONTEXT):
                        min(len(line), pos + len(marker) + _AMENDMENT_CONTEXT)
                    ]
                hits.append(MarkerHit(
                    type=marker,
                    line=line,
                    line_number=idx + 1,
                    position=pos,
                    context=context,
                ))
                pos = line.find(marker, pos + len(marker))
    return hits


def detect_section_markers(text: str | None) -> list[MarkerHit]:
    """Every occurrence of ধারা / অধ্যায় / তফসিল, line by line."""
    if not text or not isinstance(text, str):
        return []
    return _scan_lines(text, SECTION_MARKERS, with_context=False)


def detect_amendment_markers(text: str | None) -> list[MarkerHit]:
    """Every occurrence of বিলুপ্ত / সংশোধিত / প্রতিস্থাপিত with ±20 chars of line context."""
    if not text or not isinstance(text, str):
        return []
    return _scan_lines(text, AMENDMENT_MARKERS, with_context=True)


def count_section_markers(text: str | None) -> dict[str, int]:
    counts = {marker: 0 for marker in SECTION_MARKERS}
    if not text or not isinstance(text, str):
        return counts
    for marker in SECTION_MARKERS:
        counts[marker] = text.count(marker)
    return counts


def count_bengali_section_markers(text: str | None) -> dict[str, int]:
    """Marker frequency block for the output record.

    ``bengali_numbered_sections`` is ``dhara_count + numeral_danda_count``;
    the two counts are kept separate because a ``ধারা ৫`` cross-reference
    and a ``৫৷`` section heading are different things.
    """
    freq = {
        "dhara_count": 0,
        "numeral_danda_count": 0,
        "bengali_numbered_sections": 0,
        "chapter_count": 0,
        "schedule_count": 0,
    }
    if not text or not isinstance(text, str):
        return freq
    dhara, chapter, schedule = SECTION_MARKERS
    freq["dhara_count"] = text.count(dhara)
    freq["numeral_danda_count"] = len(NUMERAL_DANDA_RE.findall(text))
    freq["bengali_numbered_sections"] = freq["dhara_count"] + freq["numeral_danda_count"]
    freq["chapter_count"] = text.count(chapter)
    freq["schedule_count"] = text.count(schedule)
    return freq
