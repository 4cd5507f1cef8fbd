"""Quality remediation engine: detect and repair textual defects.

Detection:
    ``detect_missing_schedules``, ``detect_encoding_errors`` and
    ``detect_ocr_artifacts`` report issues; ``validate_content_quality``
    folds them into a ``QualityAssessment``.

Repair:
    ``apply_encoding_repair_rules``, ``apply_ocr_correction_rules`` and
    ``apply_formatting_rules`` rewrite a working copy, skipping any match that
    overlaps a numeric region (and, for OCR, flagging rather than correcting
    matches inside protected sections). ``clean_content`` runs the three in
    order and always returns the input untouched as ``original``.

Every rule that matched anything produces a ``Transformation`` record, even
when all of its matches were skipped (``count == 0``), so the audit trail
shows what was considered as well as what was changed.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Sequence

from bdlaw.config import QualityConfig
from bdlaw.patterns import (
    COMPLETENESS_DISCLAIMER,
    INTENDED_ML_USE,
    ML_USAGE_WARNING,
    EncodingRule,
    FormattingRule,
    OcrCorrection,
)
from bdlaw.regions import (
    PatternRegionDetector,
    ProtectedRegion,
    Region,
    RegionDetector,
    range_overlaps_numeric_region,
    range_overlaps_protected_section,
)
from bdlaw.textual import (
    detect_enactment_clause,
    detect_preamble,
    detect_statutory_footnotes,
)

ENCODING_CONTEXT_CHARS = 20

SKIP_NUMERIC = "numeric_region_protection"
SKIP_PROTECTED = "protected_section_enforcement"

EMPTY_KNOWN_LIMITATIONS: tuple[str, ...] = (
    "Preamble and enactment clause may not be present in all HTML extractions",
    "Statutory footnotes may be incomplete or missing from source HTML",
    "Section boundary detection is presentation-dependent",
)
KNOWN_LIMITATIONS: tuple[str, ...] = (
    "Section boundary detection is presentation-dependent",
    "Gazette PDF comparison is out of scope",
    "Amendment chain inference is prohibited",
    "Preamble and enactment clause may not be present in all HTML extractions",
    "Statutory footnotes may be incomplete or missing from source HTML",
)

_ML_RISKS: tuple[str, ...] = (
    "numeric_corruption_risk",
    "encoding_ambiguity",
    "missing_schedule_content",
    "heavy_ocr_correction",
)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class QualityIssue:
    type: str                        # missing_schedule | encoding_error | ocr_artifact
    position: int
    description: str
    character: str | None = None     # encoding_error
    context: str | None = None
    incorrect: str | None = None     # ocr_artifact
    correct: str | None = None
    schedule_type: str | None = None  # missing_schedule: the matched reference

    @property
    def dedup_key(self) -> str:
        detail = self.schedule_type or self.character or self.incorrect or ""
        return f"{self.type}:{self.position}:{detail}"

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": self.type,
            "position": self.position,
            "description": self.description,
        }
        for key in ("character", "context", "incorrect", "correct", "schedule_type"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out


@dataclass(frozen=True, slots=True)
class Transformation:
    type: str                          # encoding_repair | ocr_correction | formatting
    count: int                         # matches actually rewritten (or that would be, in dry run)
    skipped_count: int
    applied: bool
    rule: str | None = None
    replacement: str | None = None
    incorrect: str | None = None
    correct: str | None = None
    context: str | None = None
    skipped_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": self.type,
            "count": self.count,
            "skipped_count": self.skipped_count,
            "applied": self.applied,
        }
        for key in ("rule", "replacement", "incorrect", "correct", "context", "skipped_reason"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out


@dataclass(frozen=True, slots=True)
class FlaggedArtifact:
    """OCR artifact found inside a protected section; reported, never corrected."""

    incorrect: str
    correct: str
    position: int
    context: str
    type: str = "ocr_artifact_in_protected_section"
    applied: bool = False
    reason: str = SKIP_PROTECTED

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "incorrect": self.incorrect,
            "correct": self.correct,
            "position": self.position,
            "context": self.context,
            "applied": self.applied,
            "reason": self.reason,
        }


@dataclass(frozen=True, slots=True)
class RepairResult:
    content: str
    transformations: tuple[Transformation, ...] = ()
    skipped_in_numeric_regions: int = 0
    skipped_in_protected_sections: int = 0
    flagged_in_protected_sections: tuple[FlaggedArtifact, ...] = ()
    # regions re-anchored to ``content`` after any length-changing edits
    numeric_regions: tuple[Region, ...] = ()
    protected_regions: tuple[ProtectedRegion, ...] = ()


@dataclass(frozen=True, slots=True)
class CleanResult:
    original: str
    cleaned: str
    transformations: tuple[Transformation, ...]
    flags: tuple[str, ...]
    numeric_regions: tuple[Region, ...]
    protected_regions: tuple[ProtectedRegion, ...]
    skipped_in_numeric_regions: int
    skipped_in_protected_sections: int
    flagged_in_protected_sections: tuple[FlaggedArtifact, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "original": self.original,
            "cleaned": self.cleaned,
            "transformations": [t.to_dict() for t in self.transformations],
            "flags": list(self.flags),
            "numeric_regions": [r.to_dict() for r in self.numeric_regions],
            "protected_regions": [r.to_dict() for r in self.protected_regions],
            "skipped_in_numeric_regions": self.skipped_in_numeric_regions,
            "skipped_in_protected_sections": self.skipped_in_protected_sections,
            "flagged_in_protected_sections": [
                f.to_dict() for f in self.flagged_in_protected_sections
            ],
        }


@dataclass(frozen=True, slots=True)
class QualityOptions:
    """Caller-supplied risk signals for ``validate_content_quality``."""

    has_numeric_corruption_risk: bool = False
    has_encoding_ambiguity: bool = False
    has_missing_schedules: bool = False
    has_heavy_ocr_correction: bool = False
    editorial_content_present: bool = False


@dataclass(frozen=True, slots=True)
class QualityAssessment:
    completeness: str                 # complete | textual_partial | uncertain
    flags: tuple[str, ...] = ()
    issues: tuple[str, ...] = ()      # issue descriptions
    risks: tuple[str, ...] = ()
    known_limitations: tuple[str, ...] = EMPTY_KNOWN_LIMITATIONS
    safe_for_ml_training: bool = True
    ml_risk_factors: tuple[str, ...] = ()
    preamble_present: bool = False
    preamble_markers: tuple[str, ...] = ()
    enactment_clause_present: bool = False
    enactment_markers: tuple[str, ...] = ()
    statutory_footnotes_present: bool = False
    statutory_footnote_count: int = 0
    editorial_content_present: bool = False
    extra: dict[str, Any] = field(default_factory=dict)   # schedule assessment etc.

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "completeness": self.completeness,
            "completeness_disclaimer": COMPLETENESS_DISCLAIMER,
            "flags": list(self.flags),
            "issues": list(self.issues),
            "risks": list(self.risks),
            "known_limitations": list(self.known_limitations),
            "safe_for_ml_training": self.safe_for_ml_training,
            "ml_usage_warning": ML_USAGE_WARNING,
            "ml_risk_factors": list(self.ml_risk_factors),
            "intended_ml_use": list(INTENDED_ML_USE),
            "preamble_present": self.preamble_present,
            "preamble_markers": list(self.preamble_markers),
            "enactment_clause_present": self.enactment_clause_present,
            "enactment_markers": list(self.enactment_markers),
            "statutory_footnotes_present": self.statutory_footnotes_present,
            "statutory_footnote_count": self.statutory_footnote_count,
            "editorial_content_present": self.editorial_content_present,
        }
        out.update(self.extra)
        return out


def create_empty_assessment() -> QualityAssessment:
    """Assessment returned for empty or non-string input."""
    return QualityAssessment(completeness="complete")


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def deduplicate_issues(issues: Iterable[QualityIssue]) -> list[QualityIssue]:
    seen: set[str] = set()
    out: list[QualityIssue] = []
    for issue in issues:
        key = issue.dedup_key
        if key in seen:
            continue
        seen.add(key)
        out.append(issue)
    return out


def detect_missing_schedules(content: str | None, config: QualityConfig | None = None) -> list[QualityIssue]:
    """Flag schedule references followed by too little text to hold a schedule.

    A reference is flagged when the stripped text after it is shorter than
    ``config.schedule_content_threshold`` characters.
    """
    cfg = config or QualityConfig.default()
    if not content or not isinstance(content, str):
        return []
    threshold = cfg.schedule_content_threshold
    issues: list[QualityIssue] = []
    for pattern in cfg.schedule_patterns:
        for m in pattern.finditer(content):
            trailing = len(content[m.end():].strip())
            if trailing < threshold:
                issues.append(QualityIssue(
                    type="missing_schedule",
                    position=m.start(),
                    schedule_type=m.group(0),
                    description=(
                        f'Schedule "{m.group(0)}" referenced but content appears missing '
                        f"(only {trailing} chars after reference)"
                    ),
                ))
    return deduplicate_issues(issues)


def detect_encoding_errors(content: str | None, config: QualityConfig | None = None) -> list[QualityIssue]:
    cfg = config or QualityConfig.default()
    if not content or not isinstance(content, str):
        return []
    issues: list[QualityIssue] = []
    for rule in cfg.encoding_errors:
        if rule.pattern is None:
            continue
        for m in rule.pattern.finditer(content):
            if m.start() == m.end():
                continue
            char = m.group(0)
            pos = m.start()
            issues.append(QualityIssue(
                type="encoding_error",
                position=pos,
                character=char,
                context=content[
                    max(0, pos - ENCODING_CONTEXT_CHARS):
                    min(len(content), pos + len(char) + ENCODING_CONTEXT_CHARS)
                ],
                description=f'{rule.description}: "{char}" at position {pos}',
            ))
    return issues


def detect_ocr_artifacts(content: str | None, config: QualityConfig | None = None) -> list[QualityIssue]:
    cfg = config or QualityConfig.default()
    if not content or not isinstance(content, str):
        return []
    issues: list[QualityIssue] = []
    for corr in cfg.ocr_corrections:
        if not corr.incorrect:
            continue
        for m in re.finditer(re.escape(corr.incorrect), content):
            issues.append(QualityIssue(
                type="ocr_artifact",
                position=m.start(),
                incorrect=corr.incorrect,
                correct=corr.correct,
                context=corr.context,
                description=(
                    f'OCR artifact: "{corr.incorrect}" should be "{corr.correct}" '
                    f"({corr.context})"
                ),
            ))
    return issues


def determine_completeness(flags: Iterable[str]) -> str:
    """Map quality flags to a completeness label.

    Encoding and OCR flags are fixable quality issues, not gaps, so they
    leave content ``complete``; only ``missing_schedule`` makes it
    ``textual_partial``; anything else is ``uncertain``.
    """
    flag_set = set(flags or ())
    if not flag_set:
        return "complete"
    if "missing_schedule" in flag_set:
        return "textual_partial"
    if "encoding_error" in flag_set or "ocr_artifact" in flag_set:
        return "complete"
    return "uncertain"


# ---------------------------------------------------------------------------
# Repair
# ---------------------------------------------------------------------------


def _splice(text: str, edits: list[tuple[int, int, str]]) -> str:
    # right-to-left so earlier offsets stay valid
    for start, end, new in sorted(edits, key=lambda e: e[0], reverse=True):
        text = text[:start] + new + text[end:]
    return text


def _shift_position(position: int, edits: list[tuple[int, int, str]]) -> int:
    return position + sum(len(new) - (end - start) for start, end, new in edits if end <= position)


def _shift_regions(regions: Iterable[Any], edits: list[tuple[int, int, str]]) -> tuple[Any, ...]:
    """Re-anchor regions after ``_splice``: edits ending at or before a boundary move it."""
    if not edits:
        return tuple(regions)
    return tuple(
        replace(r, start=_shift_position(r.start, edits), end=_shift_position(r.end, edits))
        for r in regions
    )


def apply_encoding_repair_rules(
    content: str | None,
    config: QualityConfig | None = None,
    dry_run: bool = False,
    numeric_regions: Sequence[Region] | None = None,
    protected_regions: Sequence[ProtectedRegion] | None = None,
) -> RepairResult:
    """Replace known mojibake characters outside numeric regions.

    ``protected_regions`` are not consulted, only re-anchored for the next stage.
    """
    cfg = config or QualityConfig.default()
    if not content or not isinstance(content, str):
        return RepairResult(content=content or "")

    result = content
    numeric = tuple(numeric_regions or ())
    protected = tuple(protected_regions or ())
    transformations: list[Transformation] = []
    skipped_total = 0
    for rule in cfg.encoding_errors:
        if not isinstance(rule, EncodingRule) or rule.pattern is None:
            continue
        apply: list[tuple[int, int, str]] = []
        skipped = 0
        for m in rule.pattern.finditer(result):
            if m.start() == m.end():
                continue
            if range_overlaps_numeric_region(m.start(), m.end(), numeric):
                skipped += 1
            else:
                apply.append((m.start(), m.end(), rule.replacement))
        skipped_total += skipped
        if not apply and not skipped:
            continue
        transformations.append(Transformation(
            type="encoding_repair",
            rule=rule.description,
            count=len(apply),
            skipped_count=skipped,
            replacement=rule.replacement,
            applied=bool(apply) and not dry_run,
            skipped_reason=None if apply else SKIP_NUMERIC,
        ))
        if apply and not dry_run:
            result = _splice(result, apply)
            numeric = _shift_regions(numeric, apply)
            protected = _shift_regions(protected, apply)

    return RepairResult(
        content=result,
        transformations=tuple(transformations),
        skipped_in_numeric_regions=skipped_total,
        numeric_regions=numeric,
        protected_regions=protected,
    )


def apply_ocr_correction_rules(
    content: str | None,
    config: QualityConfig | None = None,
    dry_run: bool = False,
    numeric_regions: Sequence[Region] | None = None,
    protected_regions: Sequence[ProtectedRegion] | None = None,
) -> RepairResult:
    """Apply literal OCR corrections.

    Matches overlapping a numeric region are skipped. Matches overlapping a
    protected section are reported in ``flagged_in_protected_sections`` and
    left as they are.
    """
    cfg = config or QualityConfig.default()
    if not content or not isinstance(content, str):
        return RepairResult(content=content or "")

    result = content
    numeric = tuple(numeric_regions or ())
    protected = tuple(protected_regions or ())
    transformations: list[Transformation] = []
    skipped_numeric_total = 0
    skipped_protected_total = 0
    flagged: list[FlaggedArtifact] = []
    for corr in cfg.ocr_corrections:
        if not isinstance(corr, OcrCorrection) or not corr.incorrect or not corr.correct:
            continue
        apply: list[tuple[int, int, str]] = []
        skipped_numeric = 0
        flagged_here: list[FlaggedArtifact] = []
        for m in re.finditer(re.escape(corr.incorrect), result):
            if range_overlaps_numeric_region(m.start(), m.end(), numeric):
                skipped_numeric += 1
            elif range_overlaps_protected_section(m.start(), m.end(), protected):
                flagged_here.append(FlaggedArtifact(
                    incorrect=corr.incorrect,
                    correct=corr.correct,
                    position=m.start(),
                    context=corr.context,
                ))
            else:
                apply.append((m.start(), m.end(), corr.correct))

        skipped_numeric_total += skipped_numeric
        skipped_protected_total += len(flagged_here)
        flagged.extend(flagged_here)

        if flagged_here:
            transformations.append(Transformation(
                type="ocr_correction",
                incorrect=corr.incorrect,
                correct=corr.correct,
                context=corr.context,
                count=0,
                skipped_count=len(flagged_here),
                skipped_reason=SKIP_PROTECTED,
                applied=False,
            ))
        if apply:
            transformations.append(Transformation(
                type="ocr_correction",
                incorrect=corr.incorrect,
                correct=corr.correct,
                context=corr.context,
                count=len(apply),
                skipped_count=skipped_numeric,
                applied=not dry_run,
            ))
            if not dry_run:
                result = _splice(result, apply)
                numeric = _shift_regions(numeric, apply)
                protected = _shift_regions(protected, apply)
        elif skipped_numeric:
            transformations.append(Transformation(
                type="ocr_correction",
                incorrect=corr.incorrect,
                correct=corr.correct,
                context=corr.context,
                count=0,
                skipped_count=skipped_numeric,
                skipped_reason=SKIP_NUMERIC,
                applied=False,
            ))

    return RepairResult(
        content=result,
        transformations=tuple(transformations),
        skipped_in_numeric_regions=skipped_numeric_total,
        skipped_in_protected_sections=skipped_protected_total,
        flagged_in_protected_sections=tuple(flagged),
        numeric_regions=numeric,
        protected_regions=protected,
    )


def apply_formatting_rules(
    content: str | None,
    config: QualityConfig | None = None,
    dry_run: bool = False,
    numeric_regions: Sequence[Region] | None = None,
    protected_regions: Sequence[ProtectedRegion] | None = None,
) -> RepairResult:
    """Apply enabled presentation-only rules (list item separation).

    ``protected_regions`` are not consulted, only re-anchored.
    """
    cfg = config or QualityConfig.default()
    if not content or not isinstance(content, str):
        return RepairResult(content=content or "")

    result = content
    numeric = tuple(numeric_regions or ())
    protected = tuple(protected_regions or ())
    transformations: list[Transformation] = []
    skipped_total = 0
    for rule in cfg.enabled_formatting_rules():
        if not isinstance(rule, FormattingRule):
            continue
        apply: list[tuple[int, int, str]] = []
        skipped = 0
        try:
            for m in rule.pattern.finditer(result):
                if range_overlaps_numeric_region(m.start(), m.end(), numeric):
                    skipped += 1
                else:
                    apply.append((m.start(), m.end(), m.expand(rule.replacement)))
        except (re.error, IndexError):
            # bad group reference in a user-supplied template
            continue
        skipped_total += skipped
        if not apply and not skipped:
            continue
        transformations.append(Transformation(
            type="formatting",
            rule=rule.name,
            count=len(apply),
            skipped_count=skipped,
            applied=bool(apply) and not dry_run,
            skipped_reason=None if apply else SKIP_NUMERIC,
        ))
        if apply and not dry_run:
            result = _splice(result, apply)
            numeric = _shift_regions(numeric, apply)
            protected = _shift_regions(protected, apply)

    return RepairResult(
        content=result,
        transformations=tuple(transformations),
        skipped_in_numeric_regions=skipped_total,
        numeric_regions=numeric,
        protected_regions=protected,
    )


def clean_content(
    content: str | None,
    *,
    config: QualityConfig | None = None,
    apply_encoding_repairs: bool = True,
    apply_ocr_corrections: bool = True,
    apply_formatting: bool = True,
    dry_run: bool = False,
    numeric_regions: Sequence[Region] | None = None,
    protected_regions: Sequence[ProtectedRegion] | None = None,
    skip_numeric_region_detection: bool = False,
    skip_protected_section_detection: bool = False,
    region_detector: RegionDetector | None = None,
) -> CleanResult:
    """Run encoding repair, OCR correction and formatting in that order.

    Regions are resolved once against the input: explicitly supplied regions
    win, then the ``skip_*`` flags, then ``region_detector`` (pattern based
    when none is given; pass ``NullRegionDetector`` to disable).
    ``original`` is always the input string itself; in ``dry_run`` mode
    ``cleaned`` is the input too, while the transformation records still
    describe what would have changed.

    Args:
        content: Text to clean.
        config: Rule set; defaults to ``QualityConfig.default()``.
        region_detector: Supplies numeric and protected regions when the
            caller did not pass them.

    Returns:
        CleanResult with the audit trail and coarse flags
        (``cleaning_applied``, ``numeric_regions_protected``,
        ``protected_sections_enforced``).
    """
    cfg = config or QualityConfig.default()
    if not content or not isinstance(content, str):
        empty = content if isinstance(content, str) else ""
        return CleanResult(
            original=empty,
            cleaned=empty,
            transformations=(),
            flags=(),
            numeric_regions=(),
            protected_regions=(),
            skipped_in_numeric_regions=0,
            skipped_in_protected_sections=0,
            flagged_in_protected_sections=(),
        )

    detector = region_detector or PatternRegionDetector()
    if numeric_regions is not None:
        numeric = tuple(numeric_regions)
    elif skip_numeric_region_detection:
        numeric = ()
    else:
        numeric = tuple(detector.numeric_regions(content))
    if protected_regions is not None:
        protected = tuple(protected_regions)
    elif skip_protected_section_detection:
        protected = ()
    else:
        protected = tuple(detector.protected_sections(content).regions)

    original = content
    working = content
    working_numeric = numeric
    working_protected = protected
    transformations: list[Transformation] = []
    skipped_numeric = 0
    skipped_protected = 0
    flagged: list[FlaggedArtifact] = []

    if apply_encoding_repairs:
        res = apply_encoding_repair_rules(working, cfg, dry_run, working_numeric, working_protected)
        working = res.content
        working_numeric, working_protected = res.numeric_regions, res.protected_regions
        transformations.extend(res.transformations)
        skipped_numeric += res.skipped_in_numeric_regions
    if apply_ocr_corrections:
        res = apply_ocr_correction_rules(working, cfg, dry_run, working_numeric, working_protected)
        working = res.content
        working_numeric, working_protected = res.numeric_regions, res.protected_regions
        transformations.extend(res.transformations)
        skipped_numeric += res.skipped_in_numeric_regions
        skipped_protected += res.skipped_in_protected_sections
        flagged.extend(res.flagged_in_protected_sections)
    if apply_formatting:
        res = apply_formatting_rules(working, cfg, dry_run, working_numeric, working_protected)
        working = res.content
        transformations.extend(res.transformations)
        skipped_numeric += res.skipped_in_numeric_regions

    flags: list[str] = ["cleaning_applied"] if transformations else []
    if skipped_numeric:
        flags.append("numeric_regions_protected")
    if skipped_protected:
        flags.append("protected_sections_enforced")

    return CleanResult(
        original=original,
        cleaned=original if dry_run else working,
        transformations=tuple(transformations),
        flags=tuple(flags),
        numeric_regions=numeric,
        protected_regions=protected,
        skipped_in_numeric_regions=skipped_numeric,
        skipped_in_protected_sections=skipped_protected,
        flagged_in_protected_sections=tuple(flagged),
    )


# ---------------------------------------------------------------------------
# Assessment
# ---------------------------------------------------------------------------


def determine_safe_for_ml_training(
    flags: Iterable[str],
    risks: Iterable[str],
    options: QualityOptions | None = None,
) -> bool:
    """False whenever numeric, encoding, schedule or heavy-OCR risk is present."""
    opts = options or QualityOptions()
    flag_set = set(flags or ())
    risk_set = set(risks or ())
    if "numeric_corruption_risk" in risk_set or opts.has_numeric_corruption_risk:
        return False
    if "encoding_ambiguity" in risk_set or "encoding_error" in flag_set or opts.has_encoding_ambiguity:
        return False
    if (
        "missing_schedule_content" in risk_set
        or "missing_schedule" in flag_set
        or opts.has_missing_schedules
    ):
        return False
    if "heavy_ocr_correction" in risk_set or opts.has_heavy_ocr_correction:
        return False
    return True


def validate_content_quality(
    content: str | None,
    config: QualityConfig | None = None,
    options: QualityOptions | None = None,
) -> QualityAssessment:
    """Run every detector over ``content`` and summarize the result."""
    cfg = config or QualityConfig.default()
    opts = options or QualityOptions()
    if not content or not isinstance(content, str):
        return create_empty_assessment()

    flags: list[str] = []
    issues: list[QualityIssue] = []
    risks: list[str] = []

    schedule_issues = detect_missing_schedules(content, cfg)
    if schedule_issues:
        flags.append("missing_schedule")
        issues.extend(schedule_issues)
        risks.append("missing_schedule_content")
    encoding_issues = detect_encoding_errors(content, cfg)
    if encoding_issues:
        flags.append("encoding_error")
        issues.extend(encoding_issues)
        risks.append("encoding_ambiguity")
    ocr_issues = detect_ocr_artifacts(content, cfg)
    if ocr_issues:
        flags.append("ocr_artifact")
        issues.extend(ocr_issues)

    if opts.has_numeric_corruption_risk:
        risks.append("numeric_corruption_risk")
    if opts.has_encoding_ambiguity and "encoding_ambiguity" not in risks:
        risks.append("encoding_ambiguity")
    if opts.has_missing_schedules and "missing_schedule_content" not in risks:
        risks.append("missing_schedule_content")
    if opts.has_heavy_ocr_correction:
        risks.append("heavy_ocr_correction")

    preamble = detect_preamble(content)
    enactment = detect_enactment_clause(content)
    footnotes = detect_statutory_footnotes(content)

    ml_risk_factors = [r for r in _ML_RISKS if r in risks]
    if not preamble.present:
        ml_risk_factors.append("preamble_not_detected")
    if not enactment.present:
        ml_risk_factors.append("enactment_clause_not_detected")

    return QualityAssessment(
        completeness=determine_completeness(flags),
        flags=tuple(flags),
        issues=tuple(i.description for i in issues),
        risks=tuple(risks),
        known_limitations=KNOWN_LIMITATIONS,
        safe_for_ml_training=determine_safe_for_ml_training(flags, risks, opts),
        ml_risk_factors=tuple(ml_risk_factors),
        preamble_present=preamble.present,
        preamble_markers=preamble.detection.markers,
        enactment_clause_present=enactment.present,
        enactment_markers=enactment.detection.markers,
        statutory_footnotes_present=footnotes["statutory_footnotes_present"],
        statutory_footnote_count=footnotes["footnote_count"],
        editorial_content_present=opts.editorial_content_present,
    )
