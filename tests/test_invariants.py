"""Invariant checks for raw-content preservation and region handling.

Curated act fragments plus seeded random token soups; every invariant must
hold for all of them.
"""
from __future__ import annotations

import hashlib
import random
from typing import Sequence

import pytest

from bdlaw.config import DEFAULT_NEGATION_WINDOW
from bdlaw.noise import count_section_markers, detect_amendment_markers, filter_content_noise
from bdlaw.patterns import DEFAULT_OCR_CORRECTIONS, NEGATION_WORDS, SCHEDULE_REFERENCE_MIN_GAP
from bdlaw.pipeline import ActInput, process_act
from bdlaw.quality import clean_content
from bdlaw.regions import (
    PatternRegionDetector,
    ProtectedRegion,
    Region,
    detect_numeric_regions,
    detect_protected_sections,
    merge_numeric_regions,
)
from bdlaw.schedules import count_schedule_references
from bdlaw.structure import PatternReference, build_cross_references
from bdlaw.xrefs import detect_cross_references

LEXICAL_REFERENCE_KEYS = frozenset({
    "citation_text", "pattern_type", "line_number", "position", "act_name",
    "citation_year", "citation_serial", "script", "act_type", "context_before",
    "context_after", "reference_semantics", "reference_warning",
    "lexical_relation_confidence", "lexical_relation_type", "negation_present",
    "negation_word", "negation_context", "classification_note",
})
CROSS_REFERENCE_KEYS = frozenset({
    "citation_text", "character_offset", "href", "act_id", "scope",
    "reference_semantics", "reference_warning", "lexical_relation_type",
    "negation_present",
})
INFERENCE_KEYS = frozenset({"amends", "repeals", "resolved_to", "legal_effect"})

TOKENS = (
    "ধারা", "১৷", "২৷", "(১)", "(ক)", "৳", "১০০", "টাকা", "%", "শতাংশ", "æ", "ì",
    "সংজ্ঞা", "তবে শর্ত থাকে যে", "তফসিল", "প্রথম তফসিল", "Schedule II", ";", "।",
    "১৯৯০ সনের ২০ নং আইন", "Act XXXVI of 1984", "রহিত", "নহে", "Top", "প্রিন্ট ভিউ",
    DEFAULT_OCR_CORRECTIONS[0].incorrect, "\n", " ", " ", "  ",
)

TEST_TEXTS = [
    # Amount with a corrupted separator.
    "জরিমানা ৳ ১০০æ০০ টাকা পর্যন্ত হইবে।",
    # Definition section carrying an OCR artifact.
    f"২৷ সংজ্ঞা৷ এই আইনে {DEFAULT_OCR_CORRECTIONS[0].incorrect} অর্থ হইবে।",
    # List items that formatting would split.
    "নিম্নরূপ; (ক) প্রথম; (খ) দ্বিতীয়। (গ) তৃতীয়",
    # Page chrome around act text.
    "প্রিন্ট ভিউ\nধারা ১৷ এই আইন।\nTop\nCopyright © 2019",
    # Table border mojibake next to a schedule.
    "প্রথম তফসিলìফিস ১০ টাকাíদ্বিতীয় তফসিল",
    # Negation word just before an amending citation.
    "ধারা ৪৷ ধারা ৩ ব্যতীত ১৯৯০ সনের ২০ নং আইন সংশোধন করা হইল।",
    # Repeal with no negation nearby.
    "ধারা ৯৷ Act XXXVI of 1984 is hereby repealed.",
]


def _random_text(seed: int, length: int = 40) -> str:
    rng = random.Random(seed)
    return "".join(rng.choice(TOKENS) for _ in range(length))


ALL_TEXTS = TEST_TEXTS + [_random_text(seed) for seed in range(25)]


def _assert_sorted_disjoint(regions: Sequence[Region | ProtectedRegion]) -> None:
    for a, b in zip(regions, regions[1:]):
        assert a.start < a.end
        assert a.end < b.start


@pytest.mark.parametrize("text", ALL_TEXTS)
def test_raw_content_is_filtered_input(text: str) -> None:
    record = process_act(ActInput(content=text)).to_dict()
    raw = filter_content_noise(text) or ""
    assert record["content_raw"] == raw
    if raw:
        assert record["content_hash"] == "sha256:" + hashlib.sha256(raw.encode("utf-8")).hexdigest()


@pytest.mark.parametrize("text", ALL_TEXTS)
def test_semantic_transformations_never_applied(text: str) -> None:
    record = process_act(ActInput(content=text)).to_dict()
    for entry in record["transformations"]:
        if entry["risk_level"] == "potential-semantic":
            assert entry["applied"] is False


@pytest.mark.parametrize("text", ALL_TEXTS)
def test_noise_filter_idempotent(text: str) -> None:
    once = filter_content_noise(text)
    assert filter_content_noise(once) == once


@pytest.mark.parametrize("text", ALL_TEXTS)
def test_numeric_regions_sorted_and_disjoint(text: str) -> None:
    _assert_sorted_disjoint(detect_numeric_regions(text))


@pytest.mark.parametrize("text", ALL_TEXTS)
def test_encoding_repair_leaves_numeric_regions_untouched(text: str) -> None:
    regions = detect_numeric_regions(text)
    result = clean_content(
        text,
        apply_ocr_corrections=False,
        apply_formatting=False,
        region_detector=PatternRegionDetector(),
    )
    # encoding rules replace one character with one character
    assert len(result.cleaned) == len(text)
    for region in regions:
        assert result.cleaned[region.start:region.end] == text[region.start:region.end]


@pytest.mark.parametrize("text", ALL_TEXTS)
def test_dry_run_returns_input(text: str) -> None:
    result = clean_content(text, dry_run=True, region_detector=PatternRegionDetector())
    assert result.cleaned is text
    assert result.original is text
    assert all(not t.applied for t in result.transformations)


@pytest.mark.parametrize("text", ALL_TEXTS)
def test_citations_in_text_order(text: str) -> None:
    positions = [ref.position for ref in detect_cross_references(text)]
    assert positions == sorted(positions)


@pytest.mark.parametrize("text", ALL_TEXTS)
def test_schedule_references_spaced(text: str) -> None:
    refs = count_schedule_references(text)
    positions = [r.position for r in refs]
    assert positions == sorted(positions)
    for a, b in zip(refs, refs[1:]):
        assert b.position - a.position >= SCHEDULE_REFERENCE_MIN_GAP
        assert a.position + len(a.text) <= b.position


@pytest.mark.parametrize("seed", range(10))
def test_merge_covers_every_input_region(seed: int) -> None:
    rng = random.Random(seed)
    regions = []
    for _ in range(rng.randint(1, 12)):
        start = rng.randint(0, 200)
        regions.append(Region(start=start, end=start + rng.randint(1, 15), type="currency", text="x"))
    merged = merge_numeric_regions(regions)
    _assert_sorted_disjoint(merged)
    for region in regions:
        assert any(m.start <= region.start and region.end <= m.end for m in merged)


@pytest.mark.parametrize("text", ALL_TEXTS)
def test_record_deterministic(text: str) -> None:
    assert process_act(ActInput(content=text)).to_dict() == process_act(ActInput(content=text)).to_dict()


@pytest.mark.parametrize("text", ALL_TEXTS)
def test_detectors_deterministic(text: str) -> None:
    assert detect_numeric_regions(text) == detect_numeric_regions(text)
    assert detect_protected_sections(text) == detect_protected_sections(text)
    first = [c.to_dict() for c in detect_cross_references(text)]
    assert first == [c.to_dict() for c in detect_cross_references(text)]


@pytest.mark.parametrize("text", ALL_TEXTS)
def test_negation_forces_mention(text: str) -> None:
    for citation in detect_cross_references(text):
        p = citation.position
        window = text[max(0, p - DEFAULT_NEGATION_WINDOW):p + DEFAULT_NEGATION_WINDOW]
        negated = any(word in window for word in NEGATION_WORDS)
        assert citation.relation.negation_present is negated
        if negated:
            assert citation.relation.lexical_relation_type == "mention"


@pytest.mark.parametrize("text", ALL_TEXTS)
def test_noise_filter_keeps_legal_markers(text: str) -> None:
    filtered = filter_content_noise(text)
    assert count_section_markers(filtered) == count_section_markers(text)
    assert len(detect_amendment_markers(filtered)) == len(detect_amendment_markers(text))


@pytest.mark.parametrize("text", ALL_TEXTS)
def test_reference_keys_closed(text: str) -> None:
    citations = detect_cross_references(text)
    for citation in citations:
        keys = set(citation.to_dict())
        assert keys <= LEXICAL_REFERENCE_KEYS
        assert not keys & INFERENCE_KEYS
    patterns = [PatternReference(c.citation_text, c.position, c.pattern_type) for c in citations]
    for ref in build_cross_references([], patterns, None, text):
        keys = set(ref.to_dict())
        assert keys <= CROSS_REFERENCE_KEYS
        assert not keys & INFERENCE_KEYS


@pytest.mark.parametrize("text", ALL_TEXTS)
def test_protected_regions_sorted_and_disjoint(text: str) -> None:
    _assert_sorted_disjoint(detect_protected_sections(text).regions)


@pytest.mark.parametrize("text", ALL_TEXTS)
def test_ocr_never_rewrites_protected_text(text: str) -> None:
    result = clean_content(text, apply_encoding_repairs=False, apply_formatting=False)
    for region in result.protected_regions:
        assert text[region.start:region.end] in result.cleaned
    assert all(not f.applied for f in result.flagged_in_protected_sections)
