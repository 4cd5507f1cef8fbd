"""Tests for bdlaw.content module."""
from __future__ import annotations

import hashlib
import unicodedata

import pytest

from bdlaw.content import (
    TransformationLog,
    apply_corrected_content,
    applied_transformations,
    compute_content_hash,
    create_three_version_content,
    create_title_preservation,
    flagged_transformations,
    get_risk_level,
    is_transformation_safe,
)
from bdlaw.quality import FlaggedArtifact, Transformation

# U+09DF is a composition exclusion: NFC decomposes it to U+09AF U+09BC
PRECOMPOSED_YA = "\u09df"


class TestThreeVersionContent:
    def test_versions_start_from_raw(self) -> None:
        v = create_three_version_content("ধারা ১")
        assert v.content_raw == v.content_normalized == v.content_corrected == "ধারা ১"

    def test_normalized_is_nfc(self) -> None:
        raw = f"নি{PRECOMPOSED_YA}ম"
        v = create_three_version_content(raw)
        assert v.content_raw == raw
        assert v.content_normalized == unicodedata.normalize("NFC", raw)
        assert v.content_normalized != raw

    def test_none(self) -> None:
        v = create_three_version_content(None)
        assert v.to_dict() == {"content_raw": "", "content_normalized": "", "content_corrected": ""}

    def test_apply_corrected_returns_new_object(self) -> None:
        v = create_three_version_content("aæb")
        updated = apply_corrected_content(v, 'a"b')
        assert updated.content_corrected == 'a"b'
        assert updated.content_raw == "aæb"
        assert v.content_corrected == "aæb"

    def test_title_preservation(self) -> None:
        t = create_title_preservation(f"আইন{PRECOMPOSED_YA}")
        assert t.title_raw.endswith(PRECOMPOSED_YA)
        assert PRECOMPOSED_YA not in t.title_normalized
        assert create_title_preservation(None).to_dict() == {"title_raw": "", "title_normalized": ""}


class TestContentHash:
    def test_hash_of_raw(self) -> None:
        raw = "ধারা ১৷ সংক্ষিপ্ত শিরোনাম"
        h = compute_content_hash(create_three_version_content(raw))
        assert h.content_hash == "sha256:" + hashlib.sha256(raw.encode("utf-8")).hexdigest()
        assert h.hash_source == "content_raw"

    def test_string_input(self) -> None:
        assert compute_content_hash("x").content_hash == compute_content_hash(
            create_three_version_content("x")
        ).content_hash

    @pytest.mark.parametrize(
        "value,error",
        [(None, "No content provided"), ("", "Empty content"), (42, "Invalid content type")],
    )
    def test_errors(self, value: object, error: str) -> None:
        h = compute_content_hash(value)  # type: ignore[arg-type]
        assert h.content_hash is None
        assert h.to_dict()["error"] == error


class TestRiskLevels:
    @pytest.mark.parametrize(
        "kind", ["mojibake", "html_entity", "broken_unicode", "unicode_normalization", "encoding_fix"],
    )
    def test_non_semantic(self, kind: str) -> None:
        assert get_risk_level(kind) == "non-semantic"
        assert is_transformation_safe(kind)

    @pytest.mark.parametrize("kind", ["ocr_correction", "formatting", "spelling_correction", "whatever"])
    def test_potential_semantic(self, kind: str) -> None:
        assert get_risk_level(kind) == "potential-semantic"
        assert not is_transformation_safe(kind)


class TestTransformationLog:
    def test_semantic_entry_never_applied(self) -> None:
        log = TransformationLog()
        assert log.log("ocr_correction", "ক", "খ", 3, applied=True) is False
        assert log.entries[0].applied is False
        assert log.entries[0].risk_level == "potential-semantic"

    def test_non_semantic_entry_applied(self) -> None:
        log = TransformationLog()
        assert log.log("encoding_fix", "æ", '"', 1) is True
        assert len(log) == 1
        assert applied_transformations(log) == list(log)

    def test_applied_false_narrows(self) -> None:
        log = TransformationLog()
        assert log.log("encoding_fix", "æ", '"', 1, applied=False) is False
        assert flagged_transformations(log) == list(log)

    def test_apply_splices_only_corrected(self) -> None:
        v = create_three_version_content("aæb")
        log = TransformationLog()
        out = log.apply(v, "encoding_fix", "æ", '"', 1)
        assert out.content_corrected == 'a"b'
        assert out.content_raw == "aæb"
        assert out.content_normalized == "aæb"

    def test_apply_refuses_semantic_change(self) -> None:
        v = create_three_version_content("ক খ")
        log = TransformationLog()
        out = log.apply(v, "ocr_correction", "ক", "গ", 0)
        assert out is v
        assert log.entries[0].applied is False

    def test_apply_position_mismatch(self) -> None:
        v = create_three_version_content("abc")
        out = TransformationLog().apply(v, "encoding_fix", "z", "y", 1)
        assert out is v

    def test_record_cleaning(self) -> None:
        log = TransformationLog()
        log.record_cleaning(
            [
                Transformation(
                    type="encoding_repair", count=2, skipped_count=0, applied=True,
                    rule="Corrupted quotation mark", replacement='"',
                ),
                Transformation(
                    type="formatting", count=1, skipped_count=0, applied=False,
                    rule="bengali_list_separation",
                ),
            ],
            [FlaggedArtifact(incorrect="ক", correct="খ", position=9, context="ctx")],
        )
        rows = log.to_list()
        assert [r["transformation_type"] for r in rows] == ["encoding_fix", "formatting", "ocr_correction"]
        assert [r["applied"] for r in rows] == [True, False, False]
        assert rows[0]["count"] == 2
        assert rows[2]["position"] == 9
        assert rows[2]["reason"] == "protected_section_enforcement"

    def test_none_log_helpers(self) -> None:
        assert flagged_transformations(None) == []
        assert applied_transformations(None) == []
