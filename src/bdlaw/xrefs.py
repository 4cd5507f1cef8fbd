"""Cross-reference detection over act text.

Citations are string matches and nothing more. Each hit carries the
citation components, ±50 characters of context and a *lexical* relation
label derived from keywords near the citation. A Bengali negation word within
the negation window forces the label to ``mention``; that override is never
bypassed.

Output records have a closed field set: no key ever claims that one act
amends, repeals or otherwise affects another.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from bdlaw.config import DEFAULT_CONTEXT_WINDOW, DEFAULT_NEGATION_WINDOW, QualityConfig
from bdlaw.patterns import (
    BENGALI_RANGE_RE,
    CITATION_PATTERNS,
    LEXICAL_RELATION_DISCLAIMER,
    LEXICAL_RELATION_KEYWORDS,
    NEGATION_WORDS,
    REFERENCE_SEMANTICS,
    REFERENCE_WARNING,
)

NEGATION_NOTE = "Negation detected - forced to mention type"
DETECTION_METHOD = "pattern-based detection"

_NEGATION_BY_LENGTH: tuple[str, ...] = tuple(sorted(NEGATION_WORDS, key=len, reverse=True))


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NegationCheck:
    negation_present: bool
    negation_word: str | None = None
    negation_position: int | None = None
    negation_context: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if not self.negation_present:
            return {"negation_present": False}
        return {
            "negation_present": True,
            "negation_word": self.negation_word,
            "negation_position": self.negation_position,
            "negation_context": self.negation_context,
        }


NO_NEGATION = NegationCheck(negation_present=False)


@dataclass(frozen=True, slots=True)
class LexicalRelation:
    lexical_relation_type: str
    negation_present: bool
    negation_word: str | None = None
    negation_context: str | None = None
    classification_note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "lexical_relation_type": self.lexical_relation_type,
            "negation_present": self.negation_present,
        }
        if self.negation_present:
            out["negation_word"] = self.negation_word
            out["negation_context"] = self.negation_context
            out["classification_note"] = self.classification_note
        return out


@dataclass(frozen=True, slots=True)
class CitationComponents:
    script: str                        # english | bengali
    act_name: str | None = None
    citation_year: str | None = None
    citation_serial: str | None = None
    act_type: str | None = None        # BENGALI_ACT_SHORT only: আইন | অধ্যাদেশ


@dataclass(frozen=True, slots=True)
class DetectedCitation:
    citation_text: str
    pattern_type: str
    line_number: int                   # 1-based
    position: int                      # absolute offset in the scanned text
    components: CitationComponents
    context_before: str
    context_after: str
    relation: LexicalRelation
    lexical_relation_confidence: str

    @property
    def end(self) -> int:
        return self.position + len(self.citation_text)

    def to_dict(self) -> dict[str, Any]:
        c = self.components
        out: dict[str, Any] = {
            "citation_text": self.citation_text,
            "pattern_type": self.pattern_type,
            "line_number": self.line_number,
            "position": self.position,
            "act_name": c.act_name,
            "citation_year": c.citation_year,
            "citation_serial": c.citation_serial,
            "script": c.script,
            "context_before": self.context_before,
            "context_after": self.context_after,
            "reference_semantics": REFERENCE_SEMANTICS,
            "reference_warning": REFERENCE_WARNING,
            "lexical_relation_confidence": self.lexical_relation_confidence,
        }
        if c.act_type is not None:
            out["act_type"] = c.act_type
        out.update(self.relation.to_dict())
        return out


# ---------------------------------------------------------------------------
# Context and classification
# ---------------------------------------------------------------------------


def extract_context_before(text: str | None, position: int, length: int = DEFAULT_CONTEXT_WINDOW) -> str:
    """Up to ``length`` characters before ``position``, trimmed; never padded."""
    if not text or position <= 0:
        return ""
    return text[max(0, position - length):position].strip()


def extract_context_after(text: str | None, position: int, length: int = DEFAULT_CONTEXT_WINDOW) -> str:
    """Up to ``length`` characters from ``position`` (the end of a match), trimmed."""
    if not text or position >= len(text):
        return ""
    return text[position:min(len(text), position + length)].strip()


def check_negation_context(
    content: str | None,
    position: Any,
    window: int = DEFAULT_NEGATION_WINDOW,
) -> NegationCheck:
    """Look for a negation word within ``±window`` characters of ``position``.

    Longer words are tried first so ``নাই`` is reported rather than its
    prefix ``না``.
    """
    if not content or not isinstance(content, str):
        return NO_NEGATION
    if not isinstance(position, int) or isinstance(position, bool) or position < 0:
        return NO_NEGATION
    start = max(0, position - window)
    end = min(len(content), position + window)
    context = content[start:end]
    for word in _NEGATION_BY_LENGTH:
        idx = context.find(word)
        if idx != -1:
            return NegationCheck(
                negation_present=True,
                negation_word=word,
                negation_position=start + idx,
                negation_context=context,
            )
    return NO_NEGATION


def detect_lexical_relation_type(context_text: str | None) -> str:
    """First relation type whose keyword occurs in the context; ``mention`` otherwise."""
    if not context_text:
        return "mention"
    lowered = context_text.lower()
    for relation_type, keywords in LEXICAL_RELATION_KEYWORDS.items():
        for keyword in keywords:
            if keyword in context_text or keyword.lower() in lowered:
                return relation_type
    return "mention"


def classify_lexical_relation(
    context_text: str | None,
    negation_check: NegationCheck | None = None,
) -> LexicalRelation:
    if negation_check is not None and negation_check.negation_present:
        return LexicalRelation(
            lexical_relation_type="mention",
            negation_present=True,
            negation_word=negation_check.negation_word,
            negation_context=negation_check.negation_context,
            classification_note=NEGATION_NOTE,
        )
    return LexicalRelation(
        lexical_relation_type=detect_lexical_relation_type(context_text),
        negation_present=False,
    )


def assign_lexical_confidence(components: CitationComponents | None) -> str:
    """``high`` for name+year+serial, ``medium`` for year+serial, else ``low``.

    Reflects how much of the citation pattern matched, not whether the
    citation is legally valid.
    """
    if components is None:
        return "low"
    has_name = bool(components.act_name and components.act_name.strip())
    has_year = bool(components.citation_year)
    has_serial = bool(components.citation_serial)
    if has_name and has_year and has_serial:
        return "high"
    if has_year and has_serial:
        return "medium"
    return "low"


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def _strip_or_none(value: str | None) -> str | None:
    return value.strip() if value else None


def extract_citation_components(pattern_type: str, m: re.Match[str]) -> CitationComponents:
    g = m.group
    if pattern_type == "ENGLISH_ACT_FULL":
        return CitationComponents("english", _strip_or_none(g(1)), g(2) or g(4), g(3))
    if pattern_type == "ENGLISH_ACT_SHORT":
        return CitationComponents("english", None, g(2), g(1))
    if pattern_type == "BENGALI_ACT_FULL":
        return CitationComponents("bengali", _strip_or_none(g(1)), g(2) or g(3), g(4))
    if pattern_type == "BENGALI_ACT_SHORT":
        return CitationComponents("bengali", None, g(1), g(2), act_type=g(3))
    if pattern_type == "BENGALI_ORDINANCE":
        return CitationComponents("bengali", _strip_or_none(g(1)), g(2) or g(4), g(3))
    if pattern_type == "PRESIDENTS_ORDER":
        return CitationComponents("english", None, g(2), g(1))
    return CitationComponents("unknown")


def deduplicate_citations(citations: Iterable[DetectedCitation]) -> list[DetectedCitation]:
    """Keep the longest match at each position and drop anything overlapping it."""
    ordered = sorted(citations, key=lambda c: (c.position, -len(c.citation_text)))
    out: list[DetectedCitation] = []
    last_end = -1
    for citation in ordered:
        if citation.position < last_end:
            continue
        out.append(citation)
        last_end = citation.end
    return out


def detect_cross_references(
    text: str | None,
    config: QualityConfig | None = None,
) -> list[DetectedCitation]:
    """Scan ``text`` line by line with every citation pattern family.

    Args:
        text: Act text (normally ``content_raw``).
        config: Supplies the negation and context windows.

    Returns:
        De-duplicated citations ordered by position.
    """
    if not text or not isinstance(text, str):
        return []
    cfg = config or QualityConfig.default()
    found: list[DetectedCitation] = []
    line_offset = 0
    for line_index, line in enumerate(text.split("\n")):
        for pattern_type, pattern in CITATION_PATTERNS.items():
            for m in pattern.finditer(line):
                if m.start() == m.end():
                    continue
                position = line_offset + m.start()
                citation_text = m.group(0)
                components = extract_citation_components(pattern_type, m)
                before = extract_context_before(text, position, cfg.context_window)
                after = extract_context_after(text, position + len(citation_text), cfg.context_window)
                negation = check_negation_context(text, position, cfg.negation_window)
                relation = classify_lexical_relation(
                    f"{before} {citation_text} {after}", negation,
                )
                found.append(DetectedCitation(
                    citation_text=citation_text,
                    pattern_type=pattern_type,
                    line_number=line_index + 1,
                    position=position,
                    components=components,
                    context_before=before,
                    context_after=after,
                    relation=relation,
                    lexical_relation_confidence=assign_lexical_confidence(components),
                ))
        line_offset += len(line) + 1
    return deduplicate_citations(found)


def detect_content_language(content: str | None) -> str:
    if not content or not isinstance(content, str):
        return "english"
    return "bengali" if BENGALI_RANGE_RE.search(content) else "english"


def lexical_references_metadata(references: Sequence[DetectedCitation] | None) -> dict[str, Any]:
    """The ``lexical_references`` block of an output record."""
    refs = list(references or ())
    return {
        "count": len(refs),
        "method": DETECTION_METHOD,
        "disclaimer": LEXICAL_RELATION_DISCLAIMER,
        "relationship_inference": "explicitly_prohibited",
        "references": [r.to_dict() for r in refs],
    }
