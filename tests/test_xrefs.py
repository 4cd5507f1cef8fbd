"""Tests for bdlaw.xrefs module."""
from __future__ import annotations

import pytest

from bdlaw.config import QualityConfig
from bdlaw.xrefs import (
    NEGATION_NOTE,
    CitationComponents,
    assign_lexical_confidence,
    check_negation_context,
    classify_lexical_relation,
    detect_content_language,
    detect_cross_references,
    detect_lexical_relation_type,
    extract_context_after,
    extract_context_before,
    lexical_references_metadata,
)

ENGLISH_CITATION = "Income Tax Act, 1984 (XXXVI of 1984)"
BENGALI_CITATION = "১৯৯০ সনের ২০ নং আইন"

# Keys an output reference may carry; nothing asserting legal effect.
ALLOWED_KEYS = {
    "citation_text", "pattern_type", "line_number", "position",
    "act_name", "citation_year", "citation_serial", "script", "act_type",
    "context_before", "context_after",
    "reference_semantics", "reference_warning",
    "lexical_relation_type", "lexical_relation_confidence",
    "negation_present", "negation_word", "negation_context", "classification_note",
}


class TestContext:
    def test_before_and_after(self) -> None:
        text = "abcdefghij"
        assert extract_context_before(text, 5, 3) == "cde"
        assert extract_context_after(text, 5, 3) == "fgh"

    def test_bounds(self) -> None:
        assert extract_context_before("abc", 0) == ""
        assert extract_context_after("abc", 3) == ""
        assert extract_context_before("  abc", 5, 50) == "abc"


class TestNegation:
    def test_within_window(self) -> None:
        text = "এই আইন প্রযোজ্য নহে " + BENGALI_CITATION
        check = check_negation_context(text, text.index(BENGALI_CITATION))
        assert check.negation_present
        assert check.negation_word == "নহে"
        assert check.negation_position == text.index("নহে")

    def test_longest_word_reported(self) -> None:
        text = "কোন বিধান নাই " + BENGALI_CITATION
        check = check_negation_context(text, text.index(BENGALI_CITATION))
        assert check.negation_word == "নাই"

    def test_outside_window(self) -> None:
        text = "না" + " " * 40 + BENGALI_CITATION
        assert not check_negation_context(text, text.index(BENGALI_CITATION)).negation_present

    @pytest.mark.parametrize("position", [-1, None, True, "3"])
    def test_invalid_position(self, position: object) -> None:
        assert not check_negation_context("না", position).negation_present


class TestClassification:
    @pytest.mark.parametrize(
        "context,expected",
        [
            ("সংশোধন করা হইল", "amendment"),
            ("is hereby repealed", "repeal"),
            ("প্রতিস্থাপিত হইবে", "substitution"),
            ("subject to the provisions", "dependency"),
            ("সন্নিবেশিত", "incorporation"),
            ("উল্লেখ আছে", "mention"),
            ("", "mention"),
        ],
    )
    def test_keyword_types(self, context: str, expected: str) -> None:
        assert detect_lexical_relation_type(context) == expected

    def test_first_type_wins(self) -> None:
        assert detect_lexical_relation_type("amended and repealed") == "amendment"

    def test_negation_forces_mention(self) -> None:
        text = "রহিত করা হয় নাই " + BENGALI_CITATION
        negation = check_negation_context(text, text.index(BENGALI_CITATION))
        relation = classify_lexical_relation(text, negation)
        assert relation.lexical_relation_type == "mention"
        assert relation.negation_present
        assert relation.classification_note == NEGATION_NOTE

    def test_confidence(self) -> None:
        assert assign_lexical_confidence(CitationComponents("english", "Act", "1984", "XXXVI")) == "high"
        assert assign_lexical_confidence(CitationComponents("bengali", None, "১৯৯০", "২০")) == "medium"
        assert assign_lexical_confidence(CitationComponents("bengali", None, "১৯৯০", None)) == "low"
        assert assign_lexical_confidence(None) == "low"


class TestDetectCrossReferences:
    def test_english_full_citation(self) -> None:
        text = f"as defined in the {ENGLISH_CITATION}, the tax shall"
        (ref,) = detect_cross_references(text)
        assert ref.citation_text == ENGLISH_CITATION
        assert ref.pattern_type == "ENGLISH_ACT_FULL"
        assert ref.components.citation_year == "1984"
        assert ref.components.citation_serial == "XXXVI"
        assert ref.components.script == "english"
        d = ref.to_dict()
        assert d["reference_semantics"] == "string_match_only"
        assert d["lexical_relation_confidence"] == "high"

    def test_bengali_short_citation(self) -> None:
        text = f"ধারা ৫\n{BENGALI_CITATION} দ্বারা সংশোধিত"
        (ref,) = detect_cross_references(text)
        assert ref.line_number == 2
        assert ref.position == text.index(BENGALI_CITATION)
        assert ref.components.act_type == "আইন"
        assert ref.relation.lexical_relation_type == "amendment"
        assert ref.lexical_relation_confidence == "medium"

    def test_negated_citation(self) -> None:
        text = f"রহিত নহে {BENGALI_CITATION}"
        (ref,) = detect_cross_references(text)
        assert ref.relation.negation_present
        assert ref.relation.lexical_relation_type == "mention"

    def test_negation_window_from_config(self) -> None:
        text = f"{BENGALI_CITATION} এর বিধান সমূহ রহিত করা হইল, তবে ইহা প্রযোজ্য নহে"
        cfg = QualityConfig.from_mapping({"negationWindow": 5})
        (ref,) = detect_cross_references(text, cfg)
        assert not ref.relation.negation_present
        assert ref.relation.lexical_relation_type == "repeal"

    def test_ordered_and_deduplicated(self) -> None:
        text = f"Act XXXVI of 1984 and {BENGALI_CITATION}"
        refs = detect_cross_references(text)
        assert [r.pattern_type for r in refs] == ["ENGLISH_ACT_SHORT", "BENGALI_ACT_SHORT"]
        positions = [r.position for r in refs]
        assert positions == sorted(positions)

    def test_closed_key_set(self) -> None:
        text = (
            f"{ENGLISH_CITATION} amended.\n"
            f"{BENGALI_CITATION} রহিত নহে।\n"
            "P.O. No. 27 of 1972"
        )
        for ref in detect_cross_references(text):
            assert set(ref.to_dict()) <= ALLOWED_KEYS

    def test_empty(self) -> None:
        assert detect_cross_references("") == []
        assert detect_cross_references(None) == []


class TestMetadata:
    def test_block(self) -> None:
        refs = detect_cross_references(BENGALI_CITATION)
        meta = lexical_references_metadata(refs)
        assert meta["count"] == 1
        assert meta["relationship_inference"] == "explicitly_prohibited"
        assert meta["method"] == "pattern-based detection"
        assert len(meta["references"]) == 1

    def test_language(self) -> None:
        assert detect_content_language("ধারা") == "bengali"
        assert detect_content_language("Section") == "english"
        assert detect_content_language(None) == "english"
