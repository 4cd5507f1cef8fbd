"""Tests for bdlaw.textual module."""
from __future__ import annotations

import pytest

from bdlaw.textual import (
    calculate_language_distribution,
    detect_editorial_content,
    detect_enactment_clause,
    detect_numeric_representation,
    detect_preamble,
    detect_statutory_footnotes,
    has_legal_signal,
)

BN_PREAMBLE = "যেহেতু নিম্নবর্ণিত উদ্দেশ্যসমূহ পূরণকল্পে বিধান করা সমীচীন ও প্রয়োজনীয়;"
BN_ENACTMENT = "সেহেতু এতদ্বারা আইন করা হইল:"


class TestPreamble:
    def test_bengali_preamble(self) -> None:
        text = f"শিরোনাম\n{BN_PREAMBLE}"
        result = detect_preamble(text)
        assert result.present
        assert result.detection.position == text.index("যেহেতু")
        assert result.detection.markers == ("যেহেতু",)

    def test_secondary_marker_added_once(self) -> None:
        result = detect_preamble("যেহেতু ক; এবং যেহেতু খ;")
        assert result.detection.position == 0
        assert result.detection.markers.count("এবং যেহেতু") == 1

    def test_english_preamble(self) -> None:
        result = detect_preamble("WHEREAS it is expedient to provide")
        assert result.present
        assert result.detection.markers == ("WHEREAS",)

    def test_absent(self) -> None:
        d = detect_preamble("১৷ এই আইন").to_dict()
        assert d["has_preamble"] is False
        assert d["preamble_start_position"] is None

    def test_does_not_modify_input(self) -> None:
        text = BN_PREAMBLE
        detect_preamble(text)
        assert text == BN_PREAMBLE


class TestEnactment:
    def test_bengali(self) -> None:
        result = detect_enactment_clause(f"{BN_PREAMBLE} {BN_ENACTMENT}")
        assert result.present
        assert result.to_dict()["enactment_clause_present"] is True

    def test_english(self) -> None:
        assert detect_enactment_clause("Be it enacted by Parliament as follows").present

    def test_absent(self) -> None:
        assert not detect_enactment_clause("১৷ এই আইন").present


class TestFootnotesAndEditorial:
    def test_statutory_footnotes_counted(self) -> None:
        text = "[Substituted by Act XII of 1990] এবং [বিলুপ্ত ২০০১ সনের ৫ নং আইন]"
        result = detect_statutory_footnotes(text)
        assert result == {"statutory_footnotes_present": True, "footnote_count": 2}

    def test_editor_note(self) -> None:
        result = detect_editorial_content("ধারা ৫ [Editor's Note: see below]")
        assert result.types == ("editor_annotation",)
        assert result.to_dict()["editorial_content_present"] is True

    def test_no_editorial(self) -> None:
        assert detect_editorial_content("ধারা ৫").to_dict() == {
            "editorial_content_present": False,
            "editorial_types": [],
        }


class TestNumericRepresentation:
    def test_mixed_digits(self) -> None:
        result = detect_numeric_representation("ধারা ১২ and 2024")
        assert result.bn_digit_count == 2
        assert result.en_digit_count == 4
        d = result.to_dict()
        assert d["numeric_representation"] == ["bn_digits", "en_digits"]
        assert d["is_mixed"] is True

    def test_no_digits(self) -> None:
        assert detect_numeric_representation("ধারা").to_dict()["numeric_representation"] == []


class TestLanguageDistribution:
    def test_ratio(self) -> None:
        assert calculate_language_distribution("কখগ a") == {"bn_ratio": 0.75, "en_ratio": 0.25}

    def test_rounding_half_up(self) -> None:
        assert calculate_language_distribution("কখ a") == {"bn_ratio": 0.67, "en_ratio": 0.33}

    @pytest.mark.parametrize("text", [None, "", "12 %"])
    def test_no_letters(self, text: str | None) -> None:
        assert calculate_language_distribution(text) == {"bn_ratio": 0, "en_ratio": 0}


class TestLegalSignal:
    @pytest.mark.parametrize(
        "text",
        ["৫৷ সংজ্ঞা", "অধ্যায় ২", "Section 4 of this Act", BN_PREAMBLE],
    )
    def test_present(self, text: str) -> None:
        assert has_legal_signal(text)

    @pytest.mark.parametrize("text", [None, "", "   ", "Welcome to the portal. Login"])
    def test_absent(self, text: str | None) -> None:
        assert not has_legal_signal(text)
