"""Immutable configuration for the quality engine and extraction audit.

``QualityConfig`` is a value object: every operation that needs rules takes
one explicitly (``QualityConfig.default()`` when the caller has nothing
special). User overrides come from a JSON file or mapping using the keys of
the extension's settings surface::

    {
      "scheduleContentThreshold": 800,
      "encodingErrors": [{"pattern": "æ", "replacement": "\\"", "description": "..."}],
      "ocrCorrections": [{"incorrect": "...", "correct": "...", "context": "..."}],
      "formattingRules": {"bengaliListSeparation": {"enabled": false}}
    }

snake_case spellings of the same keys are accepted too. Entries missing a
required field, or whose pattern does not compile, are skipped with a
warning; they never abort loading.
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import orjson

from bdlaw.patterns import (
    DEFAULT_ENCODING_RULES,
    DEFAULT_FORMATTING_RULES,
    DEFAULT_OCR_CORRECTIONS,
    QUALITY_SCHEDULE_PATTERNS,
    EncodingRule,
    FormattingRule,
    OcrCorrection,
)

log = logging.getLogger(__name__)

DEFAULT_SCHEDULE_CONTENT_THRESHOLD = 500
DEFAULT_NEGATION_WINDOW = 20
DEFAULT_CONTEXT_WINDOW = 50

EXTRACTION_DELAY_DEFAULT_MS = 0
EXTRACTION_DELAY_MIN_MS = 0
EXTRACTION_DELAY_MAX_MS = 5000

MAX_RETRIES_DEFAULT = 3
MAX_RETRIES_MIN = 1
MAX_RETRIES_MAX = 10

_FLAG_LETTERS: dict[str, re.RegexFlag] = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}
# "$1" / "$<name>" style group references -> Python templates
_JS_GROUP_REF_RE = re.compile(r"\$(\d+|<\w+>)")
_CAMEL_BOUNDARY_RE = re.compile(r"(?<!^)(?=[A-Z])")


@dataclass(frozen=True, slots=True)
class QualityConfig:
    """Rule set consumed by the quality engine."""

    schedule_patterns: tuple[re.Pattern[str], ...] = QUALITY_SCHEDULE_PATTERNS
    schedule_content_threshold: int = DEFAULT_SCHEDULE_CONTENT_THRESHOLD
    encoding_errors: tuple[EncodingRule, ...] = DEFAULT_ENCODING_RULES
    ocr_corrections: tuple[OcrCorrection, ...] = DEFAULT_OCR_CORRECTIONS
    formatting_rules: tuple[FormattingRule, ...] = DEFAULT_FORMATTING_RULES
    negation_window: int = DEFAULT_NEGATION_WINDOW
    context_window: int = DEFAULT_CONTEXT_WINDOW
    source: str = field(default="default", compare=False)  # file path or "default"

    @classmethod
    def default(cls) -> QualityConfig:
        return cls()

    @classmethod
    def from_mapping(cls, data: dict[str, Any], *, source: str = "mapping") -> QualityConfig:
        """Overlay user settings on the defaults.

        Unknown keys are ignored. List-valued rule sets replace the default
        list wholesale; ``formattingRules`` is merged per rule name so a user
        can disable one rule without restating the others.
        """
        cfg = cls(source=source)
        norm = {_snake(k): v for k, v in data.items() if isinstance(k, str)}
        updates: dict[str, Any] = {}

        if "schedule_content_threshold" in norm:
            threshold = _as_int(norm["schedule_content_threshold"])
            if threshold is None or threshold < 0:
                log.warning("ignoring scheduleContentThreshold=%r", norm["schedule_content_threshold"])
            else:
                updates["schedule_content_threshold"] = threshold
        for key in ("negation_window", "context_window"):
            if key in norm:
                value = _as_int(norm[key])
                if value is None or value < 0:
                    log.warning("ignoring %s=%r", key, norm[key])
                else:
                    updates[key] = value

        if "schedule_patterns" in norm:
            updates["schedule_patterns"] = _parse_schedule_patterns(norm["schedule_patterns"])
        if "encoding_errors" in norm:
            updates["encoding_errors"] = _parse_encoding_rules(norm["encoding_errors"])
        if "ocr_corrections" in norm:
            updates["ocr_corrections"] = _parse_ocr_corrections(norm["ocr_corrections"])
        if "formatting_rules" in norm:
            updates["formatting_rules"] = _merge_formatting_rules(
                cfg.formatting_rules, norm["formatting_rules"],
            )
        return replace(cfg, **updates)

    def enabled_formatting_rules(self) -> tuple[FormattingRule, ...]:
        return tuple(r for r in self.formatting_rules if r.enabled and r.pattern is not None)


def load_quality_config(path: Path) -> QualityConfig:
    """Load a ``QualityConfig`` from a JSON file.

    Raises:
        OSError: the file cannot be read.
        orjson.JSONDecodeError: the file is not valid JSON.
        ValueError: the top-level payload is not an object.
    """
    payload = orjson.loads(path.read_bytes())
    if not isinstance(payload, dict):
        raise ValueError(f"Quality config must be a JSON object: {path}")
    return QualityConfig.from_mapping(payload, source=str(path))


# ---------------------------------------------------------------------------
# Extraction delay / retry bounds
# ---------------------------------------------------------------------------


def clamp_extraction_delay(value: Any) -> int:
    """Clamp a requested delay to [0, 5000] ms, floored; junk -> 0."""
    number = _as_number(value)
    if number is None:
        return EXTRACTION_DELAY_DEFAULT_MS
    return int(min(EXTRACTION_DELAY_MAX_MS, max(EXTRACTION_DELAY_MIN_MS, math.floor(number))))


def clamp_max_retries(value: Any) -> int:
    """Clamp a retry budget to [1, 10], floored; junk -> 3."""
    number = _as_number(value)
    if number is None:
        return MAX_RETRIES_DEFAULT
    return int(min(MAX_RETRIES_MAX, max(MAX_RETRIES_MIN, math.floor(number))))


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def _snake(key: str) -> str:
    return _CAMEL_BOUNDARY_RE.sub("_", key).lower()


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return float(value)


def _as_int(value: Any) -> int | None:
    number = _as_number(value)
    return None if number is None else int(math.floor(number))


def _compile(raw: Any, flags: Any = "") -> re.Pattern[str] | None:
    if isinstance(raw, re.Pattern):
        return raw
    if not isinstance(raw, str) or not raw:
        return None
    flag_value = 0
    for letter in str(flags or ""):
        flag_value |= _FLAG_LETTERS.get(letter, 0)
    try:
        return re.compile(raw, flag_value)
    except re.error as exc:
        log.warning("skipping rule with bad pattern %r: %s", raw, exc)
        return None


def _python_template(replacement: str) -> str:
    return _JS_GROUP_REF_RE.sub(
        lambda m: f"\\g{m.group(1)}" if m.group(1).startswith("<") else f"\\g<{m.group(1)}>",
        replacement,
    )


def _parse_schedule_patterns(value: Any) -> tuple[re.Pattern[str], ...]:
    # {"english": [...], "bengali": [...]} or a flat list
    if isinstance(value, dict):
        raw_items = [*value.get("english", []), *value.get("bengali", [])]
    elif isinstance(value, list):
        raw_items = value
    else:
        log.warning("ignoring schedulePatterns of type %s", type(value).__name__)
        return QUALITY_SCHEDULE_PATTERNS
    out: list[re.Pattern[str]] = []
    for item in raw_items:
        if isinstance(item, dict):
            pat = _compile(item.get("pattern"), item.get("flags", "i"))
        else:
            pat = _compile(item, "i")
        if pat is not None:
            out.append(pat)
    return tuple(out)


def _parse_encoding_rules(value: Any) -> tuple[EncodingRule, ...]:
    if not isinstance(value, list):
        log.warning("ignoring encodingErrors of type %s", type(value).__name__)
        return DEFAULT_ENCODING_RULES
    rules: list[EncodingRule] = []
    for item in value:
        if not isinstance(item, dict) or "replacement" not in item:
            log.warning("skipping malformed encoding rule %r", item)
            continue
        pat = _compile(item.get("pattern"), item.get("flags", ""))
        if pat is None:
            log.warning("skipping encoding rule without pattern %r", item)
            continue
        rules.append(EncodingRule(
            pattern=pat,
            replacement=str(item["replacement"]),
            description=str(item.get("description") or pat.pattern),
        ))
    return tuple(rules)


def _parse_ocr_corrections(value: Any) -> tuple[OcrCorrection, ...]:
    if not isinstance(value, list):
        log.warning("ignoring ocrCorrections of type %s", type(value).__name__)
        return DEFAULT_OCR_CORRECTIONS
    out: list[OcrCorrection] = []
    for item in value:
        if (
            not isinstance(item, dict)
            or not isinstance(item.get("incorrect"), str) or not item["incorrect"]
            or not isinstance(item.get("correct"), str) or not item["correct"]
        ):
            log.warning("skipping malformed OCR correction %r", item)
            continue
        out.append(OcrCorrection(
            incorrect=item["incorrect"],
            correct=item["correct"],
            context=str(item.get("context") or ""),
        ))
    return tuple(out)


def _merge_formatting_rules(
    current: tuple[FormattingRule, ...],
    value: Any,
) -> tuple[FormattingRule, ...]:
    if isinstance(value, list):
        value = {str(item.get("name", "")): item for item in value if isinstance(item, dict)}
    if not isinstance(value, dict):
        log.warning("ignoring formattingRules of type %s", type(value).__name__)
        return current

    by_name = {rule.name: rule for rule in current}
    order = [rule.name for rule in current]
    for raw_name, entry in value.items():
        name = _snake(str(raw_name))
        if not name or not isinstance(entry, dict):
            log.warning("skipping malformed formatting rule %r", raw_name)
            continue
        base = by_name.get(name)
        pattern = _compile(entry["pattern"], entry.get("flags", "")) if "pattern" in entry else None
        if base is None and pattern is None:
            log.warning("skipping formatting rule %r without pattern", name)
            continue
        replacement = entry.get("replacement")
        if replacement is not None:
            template = _python_template(str(replacement))
        else:
            template = base.replacement if base is not None else ""
        by_name[name] = FormattingRule(
            name=name,
            pattern=pattern if pattern is not None else base.pattern,
            replacement=template,
            enabled=bool(entry.get("enabled", base.enabled if base else True)),
        )
        if name not in order:
            order.append(name)
    return tuple(by_name[name] for name in order)
