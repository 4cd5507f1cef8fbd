"""Tests for bdlaw.config module."""
from __future__ import annotations

import math
from pathlib import Path

import orjson
import pytest

from bdlaw.config import (
    DEFAULT_SCHEDULE_CONTENT_THRESHOLD,
    QualityConfig,
    clamp_extraction_delay,
    clamp_max_retries,
    load_quality_config,
)
from bdlaw.patterns import DEFAULT_ENCODING_RULES, DEFAULT_OCR_CORRECTIONS


class TestDefaults:
    def test_default_values(self) -> None:
        cfg = QualityConfig.default()
        assert cfg.schedule_content_threshold == DEFAULT_SCHEDULE_CONTENT_THRESHOLD == 500
        assert cfg.negation_window == 20
        assert cfg.context_window == 50
        assert cfg.encoding_errors == DEFAULT_ENCODING_RULES
        assert cfg.ocr_corrections == DEFAULT_OCR_CORRECTIONS
        assert cfg.source == "default"

    def test_source_does_not_affect_equality(self) -> None:
        assert QualityConfig(source="somewhere.json") == QualityConfig.default()

    def test_config_is_frozen(self) -> None:
        cfg = QualityConfig.default()
        with pytest.raises(AttributeError):
            cfg.schedule_content_threshold = 1  # type: ignore[misc]


class TestFromMapping:
    def test_camel_case_threshold(self) -> None:
        cfg = QualityConfig.from_mapping({"scheduleContentThreshold": 800})
        assert cfg.schedule_content_threshold == 800

    def test_snake_case_threshold(self) -> None:
        cfg = QualityConfig.from_mapping({"schedule_content_threshold": 120})
        assert cfg.schedule_content_threshold == 120

    def test_bad_threshold_keeps_default(self) -> None:
        cfg = QualityConfig.from_mapping({"scheduleContentThreshold": "lots"})
        assert cfg.schedule_content_threshold == 500

    def test_unknown_keys_ignored(self) -> None:
        assert QualityConfig.from_mapping({"colorScheme": "dark"}) == QualityConfig.default()

    def test_encoding_rules_replace_defaults(self) -> None:
        cfg = QualityConfig.from_mapping({
            "encodingErrors": [
                {"pattern": "¤", "replacement": "-", "description": "Currency sign noise"},
            ],
        })
        assert len(cfg.encoding_errors) == 1
        rule = cfg.encoding_errors[0]
        assert rule.replacement == "-"
        assert rule.description == "Currency sign noise"

    def test_malformed_encoding_rules_skipped(self) -> None:
        cfg = QualityConfig.from_mapping({
            "encodingErrors": [
                {"pattern": "("},                               # no replacement
                {"pattern": "(", "replacement": "x"},           # does not compile
                {"pattern": "ø", "replacement": "o"},
                "not a rule",
            ],
        })
        assert [r.replacement for r in cfg.encoding_errors] == ["o"]
        assert cfg.encoding_errors[0].description == "ø"

    def test_ocr_corrections_require_both_sides(self) -> None:
        cfg = QualityConfig.from_mapping({
            "ocrCorrections": [
                {"incorrect": "ক্ক", "correct": ""},
                {"incorrect": "ক্ষত", "correct": "ক্ষতি", "context": "damage"},
            ],
        })
        assert len(cfg.ocr_corrections) == 1
        assert cfg.ocr_corrections[0].correct == "ক্ষতি"

    def test_disable_one_formatting_rule(self) -> None:
        cfg = QualityConfig.from_mapping({
            "formattingRules": {"bengaliListSeparation": {"enabled": False}},
        })
        assert [r.name for r in cfg.formatting_rules] == [
            "bengali_list_separation", "english_list_separation",
        ]
        assert [r.name for r in cfg.enabled_formatting_rules()] == ["english_list_separation"]

    def test_new_formatting_rule_template_converted(self) -> None:
        cfg = QualityConfig.from_mapping({
            "formattingRules": {
                "semicolonBreak": {"pattern": ";\\s+(\\d)", "replacement": ";\n$1"},
            },
        })
        rule = cfg.formatting_rules[-1]
        assert rule.name == "semicolon_break"
        assert rule.replacement == ";\n\\g<1>"
        assert rule.enabled is True

    def test_new_formatting_rule_without_pattern_skipped(self) -> None:
        cfg = QualityConfig.from_mapping({"formattingRules": {"orphan": {"enabled": True}}})
        assert "orphan" not in [r.name for r in cfg.formatting_rules]

    def test_schedule_patterns_grouped_by_script(self) -> None:
        cfg = QualityConfig.from_mapping({
            "schedulePatterns": {"english": ["Annex\\s+[A-Z]"], "bengali": ["পরিশিষ্ট"]},
        })
        assert len(cfg.schedule_patterns) == 2
        assert cfg.schedule_patterns[0].search("annex b") is not None


class TestLoadQualityConfig:
    def test_load_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "quality.json"
        path.write_bytes(orjson.dumps({"scheduleContentThreshold": 42, "negationWindow": 30}))
        cfg = load_quality_config(path)
        assert cfg.schedule_content_threshold == 42
        assert cfg.negation_window == 30
        assert cfg.source == str(path)

    def test_non_object_payload(self, tmp_path: Path) -> None:
        path = tmp_path / "quality.json"
        path.write_bytes(b"[1, 2]")
        with pytest.raises(ValueError):
            load_quality_config(path)

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "quality.json"
        path.write_bytes(b"{not json")
        with pytest.raises(orjson.JSONDecodeError):
            load_quality_config(path)


class TestClamps:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (0, 0),
            (250, 250),
            (12.7, 12),
            (-5, 0),
            (6000, 5000),
            ("250", 250),
            ("abc", 0),
            (None, 0),
            (True, 0),
            (math.nan, 0),
            (math.inf, 0),
        ],
    )
    def test_extraction_delay(self, value: object, expected: int) -> None:
        assert clamp_extraction_delay(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [(3, 3), (0, 1), (-2, 1), (11, 10), (2.9, 2), (None, 3), ("x", 3), (False, 3)],
    )
    def test_max_retries(self, value: object, expected: int) -> None:
        assert clamp_max_retries(value) == expected
