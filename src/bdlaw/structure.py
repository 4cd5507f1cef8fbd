"""DOM-first structure derivation.

The DOM collaborator supplies hints: one ``SectionHint`` per
``.lineremoves`` row, preamble/enactment blocks from ``.lineremove`` and
link references. ``build_structure_tree`` anchors every hint to character
offsets in ``content_raw`` by exact substring search; nothing is normalized,
case-folded or renumbered, and nothing absent from the DOM is synthesized.

``derive_structure_and_references`` is the boundary used by the pipeline: it
never raises for bad hints (the record degrades to ``structure=None``) but
does raise ``ContentRawMutationError`` if ``content_raw`` ever changes while
it runs.
"""
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Sequence

from bdlaw.config import DEFAULT_CONTEXT_WINDOW, DEFAULT_NEGATION_WINDOW
from bdlaw.patterns import (
    CITATION_PATTERNS,
    CLAUSE_MARKER_RE,
    ENACTMENT_START_RE,
    NUMERAL_DANDA_RE,
    PREAMBLE_START_RE,
    REFERENCE_SEMANTICS,
    REFERENCE_WARNING,
    SUBSECTION_MARKER_RE,
)
from bdlaw.xrefs import (
    LexicalRelation,
    check_negation_context,
    classify_lexical_relation,
    extract_context_after,
    extract_context_before,
)

log = logging.getLogger(__name__)

SECTION_DOM_SOURCE = ".lineremoves"
BLOCK_DOM_SOURCE = ".lineremove"
EXTRACTION_METHOD = "dom_first"

_CITATION_TYPES: tuple[tuple[str, str], ...] = (
    ("BENGALI_ACT_SHORT", "bengali_citation"),
    ("ENGLISH_ACT_SHORT", "english_citation"),
)


class ContentRawMutationError(RuntimeError):
    """content_raw changed during derivation. Always a logic bug, never data."""


# ---------------------------------------------------------------------------
# Hints from the DOM collaborator
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MarkerHint:
    marker: str                             # verbatim, e.g. "(১)" or "(ক)"
    relative_offset: int                    # offset inside the section body text
    clauses: tuple[MarkerHint, ...] = ()    # subsections only

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"marker": self.marker, "relative_offset": self.relative_offset}
        if self.clauses:
            out["clauses"] = [c.to_dict() for c in self.clauses]
        return out


@dataclass(frozen=True, slots=True)
class SectionHint:
    dom_index: int
    section_number: str | None
    heading: str | None
    body_text: str
    has_table: bool = False
    subsections: tuple[MarkerHint, ...] = ()
    clauses: tuple[MarkerHint, ...] = ()


@dataclass(frozen=True, slots=True)
class BlockHint:
    """Preamble or enactment text taken verbatim from a DOM block."""

    text: str
    dom_source: str = BLOCK_DOM_SOURCE


@dataclass(frozen=True, slots=True)
class LinkReference:
    citation_text: str
    href: str | None = None
    act_id: str | None = None
    character_offset: int = -1
    dom_section_index: int | None = None


@dataclass(frozen=True, slots=True)
class PatternReference:
    citation_text: str
    character_offset: int
    pattern_type: str                     # bengali_citation | english_citation
    dom_section_index: int | None = None


@dataclass(frozen=True, slots=True)
class StructureData:
    preamble: BlockHint | None = None
    enactment: BlockHint | None = None
    sections: tuple[SectionHint, ...] = ()
    link_references: tuple[LinkReference, ...] = ()
    pattern_references: tuple[PatternReference, ...] | None = None   # None: derive from sections


# ---------------------------------------------------------------------------
# Structure tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ClauseNode:
    marker: str
    marker_offset: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "marker": self.marker,
            "marker_offset": self.marker_offset,
            "content_start": self.marker_offset,
            "content_end": -1,
        }


@dataclass(frozen=True, slots=True)
class SubsectionNode:
    marker: str
    marker_offset: int
    clauses: tuple[ClauseNode, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "marker": self.marker,
            "marker_offset": self.marker_offset,
            "clauses": [c.to_dict() for c in self.clauses],
            "content_start": self.marker_offset,
            "content_end": -1,
        }


@dataclass(frozen=True, slots=True)
class SectionNode:
    dom_index: int
    section_number: str | None
    heading: str | None
    body_text: str
    has_table: bool
    heading_offset: int
    number_offset: int
    body_offset: int
    content_start: int
    content_end: int
    subsections: tuple[SubsectionNode, ...] = ()
    clauses: tuple[ClauseNode, ...] = ()
    dom_source: str = SECTION_DOM_SOURCE

    def to_dict(self) -> dict[str, Any]:
        return {
            "dom_index": self.dom_index,
            "section_number": self.section_number,
            "heading": self.heading,
            "body_text": self.body_text,
            "has_table": self.has_table,
            "heading_offset": self.heading_offset,
            "number_offset": self.number_offset,
            "subsections": [s.to_dict() for s in self.subsections],
            "clauses": [c.to_dict() for c in self.clauses],
            "content_start": self.content_start,
            "content_end": self.content_end,
            "dom_source": self.dom_source,
        }


@dataclass(frozen=True, slots=True)
class BlockNode:
    text: str | None
    offset: int
    dom_source: str | None

    @property
    def present(self) -> bool:
        return self.text is not None


@dataclass(frozen=True, slots=True)
class StructureTree:
    preamble: BlockNode
    enactment_clause: BlockNode
    sections: tuple[SectionNode, ...]

    @property
    def total_subsections(self) -> int:
        return sum(len(s.subsections) for s in self.sections)

    @property
    def total_clauses(self) -> int:
        return sum(
            len(s.clauses) + sum(len(sub.clauses) for sub in s.subsections)
            for s in self.sections
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "preamble": _block_to_dict(self.preamble, "has_preamble"),
            "enactment_clause": _block_to_dict(self.enactment_clause, "has_enactment_clause"),
            "sections": [s.to_dict() for s in self.sections],
            "metadata": {
                "total_sections": len(self.sections),
                "total_subsections": self.total_subsections,
                "total_clauses": self.total_clauses,
                "extraction_method": EXTRACTION_METHOD,
                "deterministic": True,
            },
        }


def _block_to_dict(block: BlockNode, flag: str) -> dict[str, Any]:
    if not block.present:
        return {"text": None, flag: False, "dom_source": None}
    return {"text": block.text, "offset": block.offset, flag: True, "dom_source": block.dom_source}


# ---------------------------------------------------------------------------
# Hint construction helpers
# ---------------------------------------------------------------------------


def parse_section_title(title: str | None) -> tuple[str | None, str | None]:
    """Split a ``.txt-head`` title into ``(section_number, heading)``.

    The number is the first Bengali-numeral run followed by ``৷``; the
    heading is the text before it. Without a number the whole title is the
    heading. Empty parts are ``None``.
    """
    title = (title or "").strip()
    if not title:
        return None, None
    m = NUMERAL_DANDA_RE.search(title)
    if m is None:
        return None, title
    heading = title[:m.start()].strip()
    return m.group(0), heading or None


def _marker_hints(pattern, content: str | None) -> list[MarkerHint]:
    if not content or not isinstance(content, str):
        return []
    return [MarkerHint(marker=m.group(0), relative_offset=m.start()) for m in pattern.finditer(content)]


def detect_subsections_in_content(section_content: str | None) -> list[MarkerHint]:
    """``(১)``-style markers in document order, offsets relative to the body."""
    return _marker_hints(SUBSECTION_MARKER_RE, section_content)


def detect_clauses_in_content(content: str | None) -> list[MarkerHint]:
    """``(ক)``-style markers in document order, offsets relative to the body."""
    return _marker_hints(CLAUSE_MARKER_RE, content)


def detect_citations_in_content(content: str | None) -> list[PatternReference]:
    """Short-form Bengali and English citations with body-relative offsets."""
    if not content or not isinstance(content, str):
        return []
    found: list[PatternReference] = []
    for pattern_name, pattern_type in _CITATION_TYPES:
        for m in CITATION_PATTERNS[pattern_name].finditer(content):
            found.append(PatternReference(
                citation_text=m.group(0),
                character_offset=m.start(),
                pattern_type=pattern_type,
            ))
    found.sort(key=lambda c: c.character_offset)
    return found


def section_hint_from_row(dom_index: int, title: str | None, body: str | None, has_table: bool = False) -> SectionHint:
    """Build a ``SectionHint`` from one row's title and body text.

    A clause marker belongs to the nearest subsection marker before it;
    clauses ahead of the first subsection stay on the section itself.
    """
    number, heading = parse_section_title(title)
    body_text = (body or "").strip()
    subsections = detect_subsections_in_content(body_text)
    direct: list[MarkerHint] = []
    nested: dict[int, list[MarkerHint]] = {}
    for clause in detect_clauses_in_content(body_text):
        owner = None
        for i, sub in enumerate(subsections):
            if sub.relative_offset < clause.relative_offset:
                owner = i
        if owner is None:
            direct.append(clause)
        else:
            nested.setdefault(owner, []).append(clause)
    return SectionHint(
        dom_index=dom_index,
        section_number=number,
        heading=heading,
        body_text=body_text,
        has_table=has_table,
        subsections=tuple(
            replace(sub, clauses=tuple(nested.get(i, ()))) for i, sub in enumerate(subsections)
        ),
        clauses=tuple(direct),
    )


def block_hints_from_texts(
    texts: Iterable[str | None],
    dom_source: str = BLOCK_DOM_SOURCE,
) -> tuple[BlockHint | None, BlockHint | None]:
    """Pick the first preamble block and the first enactment block.

    One block may be both: the site often carries the যেহেতু ... সেহেতু
    এতদ্বারা sentence in a single ``.lineremove`` element.
    """
    preamble: BlockHint | None = None
    enactment: BlockHint | None = None
    for raw in texts:
        text = (raw or "").strip()
        if not text:
            continue
        if preamble is None and PREAMBLE_START_RE.search(text):
            preamble = BlockHint(text=text, dom_source=dom_source)
        if enactment is None and ENACTMENT_START_RE.search(text):
            enactment = BlockHint(text=text, dom_source=dom_source)
    return preamble, enactment


# ---------------------------------------------------------------------------
# Tree building
# ---------------------------------------------------------------------------


def calculate_offset_in_content_raw(text: str | None, content_raw: str | None, search_start: int = 0) -> int:
    """Offset of the trimmed ``text`` in ``content_raw`` at or after ``search_start``; -1 when absent."""
    if not text or not content_raw or not isinstance(text, str) or not isinstance(content_raw, str):
        return -1
    trimmed = text.strip()
    if not trimmed:
        return -1
    return content_raw.find(trimmed, max(0, search_start))


def anchor_link_references(
    links: Iterable[LinkReference],
    content_raw: str | None,
) -> tuple[LinkReference, ...]:
    """Fill in ``character_offset`` for links the DOM could not place."""
    out: list[LinkReference] = []
    for link in links:
        if link.character_offset == -1:
            link = replace(
                link, character_offset=calculate_offset_in_content_raw(link.citation_text, content_raw),
            )
        out.append(link)
    return tuple(out)


def _block_node(hint: BlockHint | None, content_raw: str) -> BlockNode:
    if hint is None or not hint.text:
        return BlockNode(text=None, offset=-1, dom_source=None)
    return BlockNode(
        text=hint.text,
        offset=calculate_offset_in_content_raw(hint.text, content_raw),
        dom_source=hint.dom_source or BLOCK_DOM_SOURCE,
    )


def _section_anchor(section: SectionHint, content_raw: str) -> tuple[int, int, int]:
    """(heading_offset, number_offset, content_start) of one hint."""
    heading_offset = (
        calculate_offset_in_content_raw(section.heading, content_raw)
        if section.heading else -1
    )
    number_offset = (
        calculate_offset_in_content_raw(
            section.section_number, content_raw, heading_offset if heading_offset > -1 else 0,
        )
        if section.section_number else -1
    )
    content_start = number_offset if number_offset > -1 else heading_offset
    return heading_offset, number_offset, content_start


def build_structure_tree(
    preamble: BlockHint | None,
    enactment: BlockHint | None,
    sections: Sequence[SectionHint] | None,
    content_raw: str,
) -> StructureTree:
    """Anchor DOM hints to ``content_raw`` offsets.

    Args:
        preamble: Preamble block, or None when the page has none.
        enactment: Enactment clause block, or None.
        sections: One hint per DOM section row, in DOM order.
        content_raw: The immutable extracted text.

    Returns:
        StructureTree with one ``SectionNode`` per hint, same order.
    """
    content_raw = content_raw or ""
    hints = list(sections or ())
    anchors = [_section_anchor(section, content_raw) for section in hints]
    nodes: list[SectionNode] = []
    for index, section in enumerate(hints):
        heading_offset, number_offset, content_start = anchors[index]
        content_end = len(content_raw)
        if index < len(hints) - 1:
            nxt = hints[index + 1]
            next_heading = (
                calculate_offset_in_content_raw(nxt.heading, content_raw, content_start + 1)
                if nxt.heading else -1
            )
            if next_heading > -1:
                content_end = next_heading
            elif anchors[index + 1][2] > content_start:
                content_end = anchors[index + 1][2]
        search_from = content_start if content_start > -1 else 0

        subsections: list[SubsectionNode] = []
        for sub in section.subsections:
            marker_offset = calculate_offset_in_content_raw(sub.marker, content_raw, search_from)
            nested = tuple(
                ClauseNode(
                    marker=c.marker,
                    marker_offset=calculate_offset_in_content_raw(
                        c.marker, content_raw, marker_offset if marker_offset > -1 else search_from,
                    ),
                )
                for c in sub.clauses
            )
            subsections.append(SubsectionNode(marker=sub.marker, marker_offset=marker_offset, clauses=nested))
        clauses = tuple(
            ClauseNode(
                marker=c.marker,
                marker_offset=calculate_offset_in_content_raw(c.marker, content_raw, search_from),
            )
            for c in section.clauses
        )
        nodes.append(SectionNode(
            dom_index=section.dom_index if section.dom_index is not None else index,
            section_number=section.section_number or None,
            heading=section.heading or None,
            body_text=section.body_text,
            has_table=section.has_table,
            heading_offset=heading_offset,
            number_offset=number_offset,
            body_offset=calculate_offset_in_content_raw(section.body_text, content_raw, search_from),
            content_start=content_start,
            content_end=content_end,
            subsections=tuple(subsections),
            clauses=clauses,
        ))

    return StructureTree(
        preamble=_block_node(preamble, content_raw),
        enactment_clause=_block_node(enactment, content_raw),
        sections=tuple(nodes),
    )


def collect_pattern_references(structure: StructureTree | None, content_raw: str | None) -> list[PatternReference]:
    """Citations found inside section bodies, converted to ``content_raw`` offsets.

    The body's own offset is preferred; failing that the section's
    ``content_start``; failing that a search for the citation text.
    """
    if structure is None:
        return []
    out: list[PatternReference] = []
    for section in structure.sections:
        if not section.body_text:
            continue
        for citation in detect_citations_in_content(section.body_text):
            if section.body_offset > -1:
                offset = section.body_offset + citation.character_offset
            elif section.content_start > -1:
                offset = section.content_start + citation.character_offset
            else:
                offset = calculate_offset_in_content_raw(citation.citation_text, content_raw)
            out.append(PatternReference(
                citation_text=citation.citation_text,
                character_offset=offset,
                pattern_type=citation.pattern_type,
                dom_section_index=section.dom_index,
            ))
    return out


# ---------------------------------------------------------------------------
# Scope anchoring and cross references
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ReferenceScope:
    section: str | None = None
    subsection: str | None = None
    clause: str | None = None
    dom_section_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "section": self.section,
            "subsection": self.subsection,
            "clause": self.clause,
            "dom_section_index": self.dom_section_index,
        }


EMPTY_SCOPE = ReferenceScope()


def _scope_in_section(section: SectionNode, offset: int) -> ReferenceScope:
    subsection: str | None = None
    clause: str | None = None
    # markers only place offsets that fall inside the section's own text
    if section.content_start <= offset < section.content_end:
        for sub in section.subsections:
            if -1 < sub.marker_offset <= offset:
                subsection = sub.marker
                clause = None
                for c in sub.clauses:
                    if -1 < c.marker_offset <= offset:
                        clause = c.marker
        if subsection is None:
            for c in section.clauses:
                if -1 < c.marker_offset <= offset:
                    clause = c.marker
    return ReferenceScope(
        section=section.section_number,
        subsection=subsection,
        clause=clause,
        dom_section_index=section.dom_index,
    )


def anchor_reference_scope(
    character_offset: Any,
    structure: StructureTree | None,
    dom_section_index: int | None = None,
) -> ReferenceScope:
    """Section / subsection / clause containing ``character_offset``.

    A reference that knows its DOM row is anchored to that section. Otherwise
    the section is the one whose ``[content_start, content_end)`` holds the
    offset. Within the section, the last subsection (and clause) whose marker
    starts at or before the offset.
    """
    if structure is None or not isinstance(character_offset, int) or isinstance(character_offset, bool):
        return EMPTY_SCOPE
    offset = character_offset
    if dom_section_index is not None:
        for section in structure.sections:
            if section.dom_index == dom_section_index:
                return _scope_in_section(section, offset)
    for section in structure.sections:
        if section.content_start <= offset < section.content_end:
            return _scope_in_section(section, offset)
    return EMPTY_SCOPE


@dataclass(frozen=True, slots=True)
class CrossReference:
    citation_text: str
    character_offset: int
    scope: ReferenceScope
    href: str | None = None
    act_id: str | None = None
    relation: LexicalRelation | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "citation_text": self.citation_text,
            "character_offset": self.character_offset,
            "href": self.href,
            "act_id": self.act_id,
            "scope": self.scope.to_dict(),
            "reference_semantics": REFERENCE_SEMANTICS,
            "reference_warning": REFERENCE_WARNING,
        }
        if self.relation is not None:
            out["lexical_relation_type"] = self.relation.lexical_relation_type
            out["negation_present"] = self.relation.negation_present
        return out


def _classify_at(
    content_raw: str | None,
    citation_text: str,
    offset: int,
    negation_window: int,
    context_window: int,
) -> LexicalRelation | None:
    if not content_raw:
        return None
    before = extract_context_before(content_raw, offset, context_window)
    after = extract_context_after(content_raw, offset + len(citation_text), context_window)
    negation = check_negation_context(content_raw, offset, negation_window)
    return classify_lexical_relation(f"{before} {citation_text} {after}", negation)


def build_cross_references(
    link_references: Sequence[LinkReference] | None,
    pattern_references: Sequence[PatternReference] | None,
    structure: StructureTree | None,
    content_raw: str | None = None,
    *,
    negation_window: int = DEFAULT_NEGATION_WINDOW,
    context_window: int = DEFAULT_CONTEXT_WINDOW,
) -> list[CrossReference]:
    """Merge link and pattern references into the ``cross_references`` list.

    Link references win on a shared offset; offsets of -1 (text not found in
    ``content_raw``) are dropped. The result is sorted by offset.
    """
    seen: set[int] = set()
    refs: list[CrossReference] = []

    def _add(
        citation_text: str,
        offset: int,
        href: str | None,
        act_id: str | None,
        dom_section_index: int | None,
    ) -> None:
        if offset == -1 or offset in seen:
            return
        seen.add(offset)
        refs.append(CrossReference(
            citation_text=citation_text,
            character_offset=offset,
            scope=anchor_reference_scope(offset, structure, dom_section_index),
            href=href,
            act_id=act_id,
            relation=_classify_at(content_raw, citation_text, offset, negation_window, context_window),
        ))

    for link in link_references or ():
        _add(link.citation_text, link.character_offset, link.href, link.act_id, link.dom_section_index)
    for ref in pattern_references or ():
        _add(ref.citation_text, ref.character_offset, None, None, ref.dom_section_index)

    refs.sort(key=lambda r: r.character_offset)
    return refs


# ---------------------------------------------------------------------------
# Boundary
# ---------------------------------------------------------------------------


def _digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def _raw_text(extraction_result: Mapping[str, Any]) -> Any:
    if "content_raw" in extraction_result:
        return extraction_result["content_raw"]
    return extraction_result.get("content")


def derive_structure_and_references(
    extraction_result: Mapping[str, Any] | None,
    structure_data: StructureData | None,
    *,
    negation_window: int = DEFAULT_NEGATION_WINDOW,
    context_window: int = DEFAULT_CONTEXT_WINDOW,
) -> dict[str, Any]:
    """Return a new dict: ``extraction_result`` plus ``structure`` and ``cross_references``.

    ``structure`` holds a ``StructureTree`` (or None) and
    ``cross_references`` a list of ``CrossReference``. Missing input or
    hints degrade to ``None`` / ``[]``; an exception while deriving degrades
    the same way with ``structure_derivation_error`` set.

    Raises:
        ContentRawMutationError: content_raw differs after derivation.
    """
    result: dict[str, Any] = dict(extraction_result or {})
    content_raw = _raw_text(result)
    if not content_raw or not isinstance(content_raw, str):
        result["structure"] = None
        result["cross_references"] = []
        return result

    before = _digest(content_raw)
    try:
        if structure_data is None:
            structure = None
            cross_references: list[CrossReference] = []
        else:
            structure = build_structure_tree(
                structure_data.preamble,
                structure_data.enactment,
                structure_data.sections,
                content_raw,
            )
            pattern_refs = structure_data.pattern_references
            if pattern_refs is None:
                pattern_refs = tuple(collect_pattern_references(structure, content_raw))
            cross_references = build_cross_references(
                structure_data.link_references,
                pattern_refs,
                structure,
                content_raw,
                negation_window=negation_window,
                context_window=context_window,
            )
    except Exception as exc:
        log.error("structure derivation failed: %s", exc, exc_info=True)
        result["structure"] = None
        result["cross_references"] = []
        result["structure_derivation_error"] = str(exc)
        return result

    current = _raw_text(result)
    if not isinstance(current, str) or _digest(current) != before:
        raise ContentRawMutationError("content_raw was modified during structure derivation")

    result["structure"] = structure
    result["cross_references"] = cross_references
    return result


def structure_to_dict(structure: StructureTree | None) -> dict[str, Any] | None:
    return structure.to_dict() if structure is not None else None


def cross_references_to_list(refs: Iterable[CrossReference]) -> list[dict[str, Any]]:
    return [r.to_dict() for r in refs]
