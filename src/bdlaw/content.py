"""Three-version content model, title preservation and the transformation log.

``content_raw`` is exactly what the DOM yielded and is never modified.
``content_normalized`` is its Unicode NFC form. ``content_corrected`` starts
equal to the normalized text and only ever receives non-semantic fixes.
Each version is a new string; nothing is edited in place.
"""
from __future__ import annotations

import hashlib
import unicodedata
from dataclasses import dataclass, replace
from typing import Any, Iterable

from bdlaw.patterns import NON_SEMANTIC_TRANSFORMATIONS
from bdlaw.quality import FlaggedArtifact, Transformation

HASH_SOURCE = "content_raw"

# quality-engine record type -> transformation log type
_LOG_TYPES: dict[str, str] = {
    "encoding_repair": "encoding_fix",
    "ocr_correction": "ocr_correction",
    "formatting": "formatting",
}


@dataclass(frozen=True, slots=True)
class ThreeVersionContent:
    content_raw: str
    content_normalized: str
    content_corrected: str

    def to_dict(self) -> dict[str, str]:
        return {
            "content_raw": self.content_raw,
            "content_normalized": self.content_normalized,
            "content_corrected": self.content_corrected,
        }


@dataclass(frozen=True, slots=True)
class TitlePreservation:
    title_raw: str
    title_normalized: str

    def to_dict(self) -> dict[str, str]:
        return {"title_raw": self.title_raw, "title_normalized": self.title_normalized}


@dataclass(frozen=True, slots=True)
class ContentHash:
    content_hash: str | None     # "sha256:<hex>"
    hash_source: str = HASH_SOURCE
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"content_hash": self.content_hash, "hash_source": self.hash_source}
        if self.error:
            out["error"] = self.error
        return out


def create_three_version_content(extracted_text: Any) -> ThreeVersionContent:
    if extracted_text is None:
        return ThreeVersionContent("", "", "")
    raw = str(extracted_text)
    normalized = unicodedata.normalize("NFC", raw)
    return ThreeVersionContent(
        content_raw=raw,
        content_normalized=normalized,
        content_corrected=normalized,
    )


def apply_corrected_content(content: ThreeVersionContent, corrected: str) -> ThreeVersionContent:
    """Return a copy with a new ``content_corrected``; raw and normalized untouched."""
    return replace(content, content_corrected=corrected)


def create_title_preservation(extracted_title: Any) -> TitlePreservation:
    if extracted_title is None:
        return TitlePreservation("", "")
    raw = str(extracted_title)
    return TitlePreservation(title_raw=raw, title_normalized=unicodedata.normalize("NFC", raw))


def sha256_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def compute_content_hash(content: ThreeVersionContent | str | None) -> ContentHash:
    """SHA-256 of ``content_raw`` (UTF-8), anchored so consumers can verify it."""
    if content is None:
        return ContentHash(content_hash=None, error="No content provided")
    if isinstance(content, ThreeVersionContent):
        raw = content.content_raw
    elif isinstance(content, str):
        raw = content
    else:
        return ContentHash(content_hash=None, error="Invalid content type")
    if not raw:
        return ContentHash(content_hash=None, error="Empty content")
    return ContentHash(content_hash=f"sha256:{sha256_text(raw)}")


# ---------------------------------------------------------------------------
# Transformation log
# ---------------------------------------------------------------------------


def get_risk_level(transformation_type: str) -> str:
    """``non-semantic`` for encoding-level fixes, ``potential-semantic`` otherwise."""
    if transformation_type in NON_SEMANTIC_TRANSFORMATIONS:
        return "non-semantic"
    return "potential-semantic"


def is_transformation_safe(transformation_type: str) -> bool:
    return get_risk_level(transformation_type) == "non-semantic"


@dataclass(frozen=True, slots=True)
class LogEntry:
    transformation_type: str
    original: str
    corrected: str
    position: int
    risk_level: str
    applied: bool
    count: int = 1
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "transformation_type": self.transformation_type,
            "original": self.original,
            "corrected": self.corrected,
            "position": self.position,
            "risk_level": self.risk_level,
            "applied": self.applied,
            "count": self.count,
        }
        if self.reason:
            out["reason"] = self.reason
        return out


class TransformationLog:
    """Append-only record of every transformation considered for one act.

    Potential-semantic transformations are logged with ``applied=False`` and
    never written into ``content_corrected``.
    """

    def __init__(self, entries: Iterable[LogEntry] = ()) -> None:
        self._entries: list[LogEntry] = list(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    @property
    def entries(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    def log(
        self,
        transformation_type: str,
        original: Any = "",
        corrected: Any = "",
        position: Any = 0,
        *,
        count: int = 1,
        applied: bool | None = None,
        reason: str | None = None,
    ) -> bool:
        """Record one transformation; returns whether it may be applied.

        ``applied`` can only narrow the decision: a potential-semantic
        transformation is never marked applied.
        """
        t_type = transformation_type or "unknown"
        risk = get_risk_level(t_type)
        allowed = risk == "non-semantic"
        if applied is not None:
            allowed = allowed and applied
        self._entries.append(LogEntry(
            transformation_type=t_type,
            original="" if original is None else str(original),
            corrected="" if corrected is None else str(corrected),
            position=position if isinstance(position, int) else 0,
            risk_level=risk,
            applied=allowed,
            count=count,
            reason=reason,
        ))
        return allowed

    def apply(
        self,
        content: ThreeVersionContent,
        transformation_type: str,
        original: str,
        corrected: str,
        position: int,
    ) -> ThreeVersionContent:
        """Log a point edit and, if it is non-semantic, splice it into ``content_corrected``."""
        if not self.log(transformation_type, original, corrected, position):
            return content
        text = content.content_corrected
        if text[position:position + len(original)] != original:
            return content
        return apply_corrected_content(
            content, text[:position] + corrected + text[position + len(original):],
        )

    def record_cleaning(
        self,
        transformations: Iterable[Transformation],
        flagged: Iterable[FlaggedArtifact] = (),
    ) -> None:
        """Log quality-engine records (one entry per rule invocation)."""
        for t in transformations:
            self.log(
                _LOG_TYPES.get(t.type, t.type),
                original=t.incorrect or t.rule or "",
                corrected=t.correct or t.replacement or "",
                position=0,
                count=t.count,
                applied=t.applied,
                reason=t.skipped_reason,
            )
        for f in flagged:
            self.log(
                "ocr_correction",
                original=f.incorrect,
                corrected=f.correct,
                position=f.position,
                count=1,
                applied=False,
                reason=f.reason,
            )

    def flagged(self) -> list[LogEntry]:
        return [e for e in self._entries if not e.applied]

    def applied(self) -> list[LogEntry]:
        return [e for e in self._entries if e.applied]

    def to_list(self) -> list[dict[str, Any]]:
        return [e.to_dict() for e in self._entries]


def flagged_transformations(log: TransformationLog | None) -> list[LogEntry]:
    return log.flagged() if log is not None else []


def applied_transformations(log: TransformationLog | None) -> list[LogEntry]:
    return log.applied() if log is not None else []
