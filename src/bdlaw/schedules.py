"""Schedule (তফসিল) accounting.

Schedules are captured verbatim as HTML and never interpreted. This module
keeps the text-side bookkeeping: how many schedule references the act text
makes, how many schedule tables the page actually carried, and whether the
two disagree.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Sequence

from bdlaw.patterns import (
    SCHEDULE_MARKER_PATTERNS,
    SCHEDULE_REFERENCE_MIN_GAP,
    SCHEDULE_REFERENCE_PATTERNS,
)

REPRESENTATION = "raw_html"
EXTRACTION_METHOD = "verbatim_dom_capture"

_VALIDATION_REFERENCE_PATTERNS: tuple[re.Pattern[str], ...] = SCHEDULE_MARKER_PATTERNS[:3]


@dataclass(frozen=True, slots=True)
class ScheduleReference:
    text: str
    position: int

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "position": self.position}


@dataclass(frozen=True, slots=True)
class ScheduleTable:
    selector: str        # e.g. ".schedule table", "#lawContent table"
    has_content: bool

    def to_dict(self) -> dict[str, Any]:
        return {"selector": self.selector, "has_content": self.has_content}


@dataclass(frozen=True, slots=True)
class ScheduleDistinction:
    references: tuple[ScheduleReference, ...]
    tables: tuple[ScheduleTable, ...]

    @property
    def schedule_reference_count(self) -> int:
        return len(self.references)

    @property
    def schedule_table_count(self) -> int:
        return len(self.tables)

    @property
    def missing_schedule(self) -> bool:
        return self.schedule_reference_count > 0 and self.schedule_table_count == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "schedule_reference_count": self.schedule_reference_count,
            "schedule_table_count": self.schedule_table_count,
            "missing_schedule": self.missing_schedule,
            "references": [r.to_dict() for r in self.references],
            "tables": [t.to_dict() for t in self.tables],
        }


@dataclass(frozen=True, slots=True)
class ScheduleElement:
    selector: str
    html: str
    has_table: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "selector": self.selector,
            "has_table": self.has_table,
            "html_length": len(self.html),
        }


@dataclass(frozen=True, slots=True)
class ScheduleCapture:
    """Verbatim schedule HTML captured from the page (never processed)."""

    elements: tuple[ScheduleElement, ...] = ()
    markers_in_text: bool = False     # schedule markers seen in the page text
    representation: str = REPRESENTATION
    extraction_method: str = EXTRACTION_METHOD
    processed: bool = False

    @property
    def html_content(self) -> str | None:
        if not self.elements:
            return None
        return "\n\n".join(e.html for e in self.elements)

    @property
    def schedule_count(self) -> int:
        return len(self.elements)

    @property
    def has_tables(self) -> bool:
        return any(e.has_table for e in self.elements)

    @property
    def missing_schedule_flag(self) -> bool:
        return not self.elements and self.markers_in_text

    def to_dict(self) -> dict[str, Any]:
        return {
            "representation": self.representation,
            "extraction_method": self.extraction_method,
            "processed": self.processed,
            "html_content": self.html_content,
            "schedule_count": self.schedule_count,
            "has_tables": self.has_tables,
            "missing_schedule_flag": self.missing_schedule_flag,
            "schedule_elements": [e.to_dict() for e in self.elements],
        }


@dataclass(frozen=True, slots=True)
class ScheduleValidation:
    valid: bool
    issues: tuple[dict[str, str], ...] = field(default=())
    flags: tuple[str, ...] = field(default=())


# ---------------------------------------------------------------------------
# Text-side counting
# ---------------------------------------------------------------------------


def has_schedule_markers(text: str | None) -> bool:
    if not text or not isinstance(text, str):
        return False
    return any(p.search(text) for p in SCHEDULE_MARKER_PATTERNS)


def count_schedule_references(content: str | None) -> list[ScheduleReference]:
    """Schedule references in ``content``.

    Patterns overlap ("প্রথম তফসিল" also contains "তফসিল"), so a match
    that overlaps one already counted, or starts within 5 characters of it,
    is ignored. References are returned in text order.
    """
    if not content or not isinstance(content, str):
        return []
    seen: list[tuple[int, int]] = []
    refs: list[ScheduleReference] = []
    for pattern in SCHEDULE_REFERENCE_PATTERNS:
        for m in pattern.finditer(content):
            start, end = m.span()
            if any(
                abs(start - s) < SCHEDULE_REFERENCE_MIN_GAP or (start < e and s < end)
                for s, e in seen
            ):
                continue
            seen.append((start, end))
            refs.append(ScheduleReference(text=m.group(0), position=start))
    refs.sort(key=lambda r: r.position)
    return refs


def detect_schedule_distinction(
    content: str | None,
    tables: Sequence[ScheduleTable] = (),
) -> ScheduleDistinction:
    """Compare textual schedule references with schedule tables found in the DOM."""
    return ScheduleDistinction(
        references=tuple(count_schedule_references(content)),
        tables=tuple(tables),
    )


def check_missing_schedules(text: str | None, capture: ScheduleCapture | None) -> dict[str, Any]:
    """Distinct schedule marker texts, and whether no schedule HTML backs them."""
    if not text or not isinstance(text, str):
        return {"missing": False, "references": []}
    refs: list[str] = []
    for pattern in SCHEDULE_MARKER_PATTERNS:
        for m in pattern.finditer(text):
            if m.group(0) not in refs:
                refs.append(m.group(0))
    missing = bool(refs) and (capture is None or capture.html_content is None)
    return {"missing": missing, "references": refs}


# ---------------------------------------------------------------------------
# Validation / metadata
# ---------------------------------------------------------------------------


def validate_schedule_capture(
    capture: ScheduleCapture | None,
    text: str | None = None,
) -> ScheduleValidation:
    """Check capture metadata and flag schedules referenced but not captured."""
    if capture is None:
        return ScheduleValidation(
            valid=False,
            issues=({
                "type": "schedule_validation_error",
                "description": "No schedule extraction result provided",
            },),
        )
    valid = True
    issues: list[dict[str, str]] = []
    flags: list[str] = []
    if capture.representation != REPRESENTATION:
        valid = False
        issues.append({
            "type": "schedule_metadata_error",
            "description": 'Schedule representation must be "raw_html"',
        })
    if capture.extraction_method != EXTRACTION_METHOD:
        valid = False
        issues.append({
            "type": "schedule_metadata_error",
            "description": 'Schedule extraction_method must be "verbatim_dom_capture"',
        })
    if capture.processed is not False:
        valid = False
        issues.append({
            "type": "schedule_metadata_error",
            "description": "Schedule processed flag must be false",
        })
    if capture.missing_schedule_flag:
        flags.append("missing_schedule")
        issues.append({
            "type": "missing_schedule",
            "description": "Schedule markers found in text but no schedule HTML extracted",
        })
    if text and isinstance(text, str):
        referenced = any(p.search(text) for p in _VALIDATION_REFERENCE_PATTERNS)
        if referenced and capture.html_content is None:
            if "missing_schedule" not in flags:
                flags.append("missing_schedule")
            issues.append({
                "type": "missing_schedule",
                "description": "Text content references schedules but no schedule HTML was extracted",
            })
    return ScheduleValidation(valid=valid, issues=tuple(issues), flags=tuple(flags))


def schedule_quality_assessment(
    capture: ScheduleCapture | None,
    text: str | None = None,
) -> dict[str, Any]:
    validation = validate_schedule_capture(capture, text)
    return {
        "schedule_html_preserved": capture is not None and capture.html_content is not None,
        "schedule_count": capture.schedule_count if capture else 0,
        "schedule_has_tables": capture.has_tables if capture else False,
        "schedule_missing_flag": "missing_schedule" in validation.flags,
        "schedule_validation_issues": [i["description"] for i in validation.issues],
    }


def schedule_metadata(
    capture: ScheduleCapture,
    text: str | None,
    tables: Sequence[ScheduleTable] = (),
) -> dict[str, Any]:
    """The ``schedules`` block of an output record."""
    if text:
        missing = check_missing_schedules(text, capture)
        distinction = detect_schedule_distinction(text, tables)
    else:
        missing = {"missing": False, "references": []}
        distinction = ScheduleDistinction(references=(), tables=())
    return {
        "representation": capture.representation,
        "extraction_method": capture.extraction_method,
        "processed": capture.processed,
        "html_content": capture.html_content,
        "schedule_count": capture.schedule_count,
        "has_tables": capture.has_tables,
        "missing_schedule_flag": (
            distinction.missing_schedule
            or capture.missing_schedule_flag
            or missing["missing"]
        ),
        "missing_schedule_references": missing["references"],
        "schedule_reference_count": distinction.schedule_reference_count,
        "schedule_table_count": distinction.schedule_table_count,
    }
