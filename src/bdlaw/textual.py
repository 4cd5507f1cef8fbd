"""Textual-fidelity signals recorded alongside every act.

Detection only: nothing in this module modifies the text it is given. The
results feed ``data_quality`` (preamble / enactment / footnote presence) and
the descriptive blocks of the output record (digit systems, language mix,
editorial content).
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any

from bdlaw.patterns import (
    BENGALI_RANGE_RE,
    BN_DIGIT_RE,
    EDITORIAL_PATTERNS,
    EN_DIGIT_RE,
    ENACTMENT_PATTERNS,
    ENGLISH_LETTER_RE,
    LEGAL_SIGNAL_PATTERNS,
    PREAMBLE_PATTERNS,
    STATUTORY_FOOTNOTE_PATTERNS,
)


@dataclass(frozen=True, slots=True)
class MarkerDetection:
    present: bool
    position: int | None            # earliest match offset
    markers: tuple[str, ...]        # matched texts in detection order


@dataclass(frozen=True, slots=True)
class PreambleDetection:
    detection: MarkerDetection

    @property
    def present(self) -> bool:
        return self.detection.present

    def to_dict(self) -> dict[str, Any]:
        d = self.detection
        return {
            "has_preamble": d.present,
            "preamble_captured": d.present,
            "preamble_start_position": d.position,
            "preamble_present": d.present,
            "preamble_markers": list(d.markers),
        }


@dataclass(frozen=True, slots=True)
class EnactmentDetection:
    detection: MarkerDetection

    @property
    def present(self) -> bool:
        return self.detection.present

    def to_dict(self) -> dict[str, Any]:
        d = self.detection
        return {
            "has_enactment_clause": d.present,
            "enactment_clause_captured": d.present,
            "enactment_clause_position": d.position,
            "enactment_clause_present": d.present,
            "enactment_markers": list(d.markers),
        }


@dataclass(frozen=True, slots=True)
class NumericRepresentation:
    bn_digit_count: int = 0
    en_digit_count: int = 0

    @property
    def systems(self) -> list[str]:
        out: list[str] = []
        if self.bn_digit_count:
            out.append("bn_digits")
        if self.en_digit_count:
            out.append("en_digits")
        return out

    def to_dict(self) -> dict[str, Any]:
        systems = self.systems
        return {
            "numeric_representation": systems,
            "bn_digit_count": self.bn_digit_count,
            "en_digit_count": self.en_digit_count,
            "is_mixed": len(systems) > 1,
        }


@dataclass(frozen=True, slots=True)
class EditorialContent:
    types: tuple[str, ...] = field(default=())

    def to_dict(self) -> dict[str, Any]:
        return {
            "editorial_content_present": bool(self.types),
            "editorial_types": list(self.types),
        }


# ---------------------------------------------------------------------------
# Preamble / enactment
# ---------------------------------------------------------------------------


def _scan_markers(
    content: str | None,
    patterns: tuple[tuple[re.Pattern[str], bool], ...],
) -> MarkerDetection:
    if not content or not isinstance(content, str):
        return MarkerDetection(present=False, position=None, markers=())
    markers: list[str] = []
    earliest: int | None = None
    for pattern, record_every_hit in patterns:
        for m in pattern.finditer(content):
            text = m.group(0)
            if record_every_hit or text not in markers:
                markers.append(text)
            if earliest is None or m.start() < earliest:
                earliest = m.start()
    return MarkerDetection(present=earliest is not None, position=earliest, markers=tuple(markers))


def detect_preamble(content: str | None) -> PreambleDetection:
    """Detect যেহেতু / WHEREAS style preamble markers."""
    return PreambleDetection(_scan_markers(content, PREAMBLE_PATTERNS))


def detect_enactment_clause(content: str | None) -> EnactmentDetection:
    """Detect সেহেতু এতদ্বারা ... / Be it enacted style enactment clauses."""
    return EnactmentDetection(_scan_markers(content, ENACTMENT_PATTERNS))


# ---------------------------------------------------------------------------
# Footnotes and editorial content
# ---------------------------------------------------------------------------


def detect_statutory_footnotes(content: str | None) -> dict[str, Any]:
    if not content or not isinstance(content, str):
        return {"statutory_footnotes_present": False, "footnote_count": 0}
    count = sum(len(p.findall(content)) for p in STATUTORY_FOOTNOTE_PATTERNS)
    return {"statutory_footnotes_present": count > 0, "footnote_count": count}


def detect_editorial_content(content: str | None) -> EditorialContent:
    """Flag footnote markers, marginal notes and editor annotations by type."""
    if not content or not isinstance(content, str):
        return EditorialContent()
    types = [
        kind for kind, patterns in EDITORIAL_PATTERNS.items()
        if any(p.search(content) for p in patterns)
    ]
    return EditorialContent(types=tuple(types))


# ---------------------------------------------------------------------------
# Digits, language, legal signal
# ---------------------------------------------------------------------------


def detect_numeric_representation(content: str | None) -> NumericRepresentation:
    """Count Bengali and ASCII digits. No conversion is performed."""
    if not content or not isinstance(content, str):
        return NumericRepresentation()
    return NumericRepresentation(
        bn_digit_count=len(BN_DIGIT_RE.findall(content)),
        en_digit_count=len(EN_DIGIT_RE.findall(content)),
    )


def _round2(value: float) -> float:
    # half-up, matching how the ratios have always been reported
    return math.floor(value * 100 + 0.5) / 100


def calculate_language_distribution(content: str | None) -> dict[str, float]:
    """Share of Bengali-block characters vs ASCII letters, rounded to 2 places."""
    if not content or not isinstance(content, str):
        return {"bn_ratio": 0, "en_ratio": 0}
    bn = len(BENGALI_RANGE_RE.findall(content))
    en = len(ENGLISH_LETTER_RE.findall(content))
    total = bn + en
    if total == 0:
        return {"bn_ratio": 0, "en_ratio": 0}
    return {"bn_ratio": _round2(bn / total), "en_ratio": _round2(en / total)}


def has_legal_signal(content: str | None) -> bool:
    """True when the text carries at least one legal-document marker."""
    if not content or not isinstance(content, str):
        return False
    trimmed = content.strip()
    if not trimmed:
        return False
    return any(p.search(trimmed) for p in LEGAL_SIGNAL_PATTERNS)
