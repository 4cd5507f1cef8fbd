"""Tests for bdlaw.patterns module."""
from __future__ import annotations

import pytest

from bdlaw.patterns import (
    CITATION_PATTERNS,
    DEFAULT_ENCODING_RULES,
    DEFAULT_FORMATTING_RULES,
    EN_DIGIT_RE,
    LEGAL_SIGNAL_PATTERNS,
    LEXICAL_RELATION_KEYWORDS,
    LEXICAL_RELATION_TYPES,
    NUMERAL_DANDA_RE,
    PREAMBLE_START_RE,
    SECTION_DANDA,
    SENTENCE_DANDA,
)


class TestNumerals:
    def test_section_danda_is_not_sentence_danda(self) -> None:
        assert SECTION_DANDA != SENTENCE_DANDA

    def test_numeral_danda_matches_section_number(self) -> None:
        m = NUMERAL_DANDA_RE.search("সংজ্ঞা ১২৷ এই আইনে")
        assert m is not None
        assert m.group(0) == "১২৷"

    def test_numeral_followed_by_sentence_danda_is_not_a_section(self) -> None:
        assert NUMERAL_DANDA_RE.search("মোট ১২।") is None

    def test_english_digit_class_excludes_bengali_digits(self) -> None:
        assert EN_DIGIT_RE.search("১৯৮৪") is None
        assert EN_DIGIT_RE.search("1984") is not None


class TestCitationPatterns:
    def test_english_full_groups(self) -> None:
        m = CITATION_PATTERNS["ENGLISH_ACT_FULL"].search(
            "under the Income Tax Act, 1984 (XXXVI of 1984) and"
        )
        assert m is not None
        assert m.group(1) == "Income Tax Act"
        assert m.group(2) == "1984"
        assert m.group(3) == "XXXVI"
        assert m.group(4) == "1984"

    def test_english_short(self) -> None:
        m = CITATION_PATTERNS["ENGLISH_ACT_SHORT"].search("see Act XXXVI of 1984")
        assert m is not None
        assert m.groups() == ("XXXVI", "1984")

    def test_bengali_short(self) -> None:
        m = CITATION_PATTERNS["BENGALI_ACT_SHORT"].search("১৯৯০ সনের ২০ নং আইন দ্বারা")
        assert m is not None
        assert m.groups() == ("১৯৯০", "২০", "আইন")

    def test_bengali_short_ordinance(self) -> None:
        m = CITATION_PATTERNS["BENGALI_ACT_SHORT"].search("১৯৮২ সনের ৫ নং অধ্যাদেশ")
        assert m is not None
        assert m.group(3) == "অধ্যাদেশ"

    def test_presidents_order(self) -> None:
        m = CITATION_PATTERNS["PRESIDENTS_ORDER"].search("P.O. No. 27 of 1972")
        assert m is not None
        assert m.groups() == ("27", "1972")

    def test_patterns_are_stateless_across_scans(self) -> None:
        pattern = CITATION_PATTERNS["BENGALI_ACT_SHORT"]
        text = "১৯৯০ সনের ২০ নং আইন"
        first = [m.start() for m in pattern.finditer(text)]
        second = [m.start() for m in pattern.finditer(text)]
        assert first == second == [0]


class TestLexicons:
    def test_mention_is_first_relation_type(self) -> None:
        assert LEXICAL_RELATION_TYPES[0] == "mention"
        assert set(LEXICAL_RELATION_TYPES[1:]) == set(LEXICAL_RELATION_KEYWORDS)

    def test_amendment_checked_before_repeal(self) -> None:
        order = list(LEXICAL_RELATION_KEYWORDS)
        assert order.index("amendment") < order.index("repeal")

    @pytest.mark.parametrize("text", ["যেহেতু", "WHEREAS", "Whereas"])
    def test_preamble_start(self, text: str) -> None:
        assert PREAMBLE_START_RE.search(text) is not None

    def test_legal_signal_patterns_include_section_marker(self) -> None:
        assert any(p.search("৫৷") for p in LEGAL_SIGNAL_PATTERNS)


class TestDefaultRules:
    def test_quote_mojibake_rule(self) -> None:
        rule = DEFAULT_ENCODING_RULES[0]
        assert rule.pattern is not None
        assert rule.pattern.sub(rule.replacement, "æশব্দæ") == '"শব্দ"'

    def test_formatting_rules_enabled_by_default(self) -> None:
        names = [r.name for r in DEFAULT_FORMATTING_RULES if r.enabled]
        assert names == ["bengali_list_separation", "english_list_separation"]
