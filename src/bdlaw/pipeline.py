"""End-to-end assembly of one act record.

``process_act`` takes what the DOM layer produced for a page and runs, in
order: noise filtering, region detection, quality remediation, structure
derivation and cross-reference detection. The result is an ``ActRecord``
whose ``to_dict()`` is the JSON record written to the corpus.

``content_raw`` is fixed as soon as it is produced. Remediation works on the
NFC-normalized copy: only non-semantic encoding repairs are written into
``content_corrected``; OCR corrections and formatting are computed in
dry-run mode and logged as flagged, never applied.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from bdlaw.audit import (
    DOM_EXTRACTION_METHOD,
    NO_RISK,
    ExtractionDelayMetadata,
    ExtractionMetadata,
    ExtractionRisk,
    RetryMetadata,
    create_extraction_delay_metadata,
)
from bdlaw.config import QualityConfig
from bdlaw.content import (
    TransformationLog,
    apply_corrected_content,
    compute_content_hash,
    create_three_version_content,
    create_title_preservation,
)
from bdlaw.dom import DomSnapshot, TableMatrix
from bdlaw.noise import (
    count_bengali_section_markers,
    count_section_markers,
    detect_amendment_markers,
    filter_content_noise,
)
from bdlaw.patterns import (
    AUTHORITY_RANK,
    CONTENT_RAW_DISCLAIMER,
    FORMATTING_SCOPE,
    NEGATION_HANDLING,
    NUMERIC_INTEGRITY,
    NUMERIC_WARNING,
    REFERENCE_SEMANTICS,
    REFERENCE_WARNING,
    SOURCE_AUTHORITY,
    TEMPORAL_DISCLAIMER,
    TEMPORAL_STATUS,
)
from bdlaw.quality import CleanResult, QualityOptions, clean_content, validate_content_quality
from bdlaw.regions import (
    EMPTY_PROTECTED,
    PatternRegionDetector,
    ProtectedSections,
    Region,
    RegionDetector,
)
from bdlaw.schedules import ScheduleCapture, ScheduleTable, schedule_metadata, schedule_quality_assessment
from bdlaw.structure import (
    CrossReference,
    StructureData,
    StructureTree,
    anchor_link_references,
    derive_structure_and_references,
)
from bdlaw.textual import (
    calculate_language_distribution,
    detect_editorial_content,
    detect_numeric_representation,
)
from bdlaw.xrefs import DetectedCitation, detect_cross_references, lexical_references_metadata

log = logging.getLogger(__name__)

SCHEMA_VERSION = "3.1"
INTERNAL_ID_NOTE = "internal_id is the bdlaws database identifier, not the legal citation number"

_MARKER_METHODS: dict[str, str] = {
    "ধারা": "raw string frequency, including cross-references",
    "অধ্যায়": "raw string frequency",
    "তফসিল": "raw string frequency, including schedule references",
}


@dataclass(frozen=True, slots=True)
class ActInput:
    """What the DOM layer hands over for one page."""

    content: str
    title: str = ""
    url: str | None = None
    act_id: str | None = None
    structure: StructureData | None = None
    extraction: ExtractionMetadata | None = None     # None: text supplied directly, no DOM
    retry: RetryMetadata | None = None
    extraction_risk: ExtractionRisk = NO_RISK
    extraction_delay: ExtractionDelayMetadata = field(default_factory=ExtractionDelayMetadata)
    schedules: ScheduleCapture = field(default_factory=ScheduleCapture)
    schedule_tables: tuple[ScheduleTable, ...] = ()
    tables: tuple[TableMatrix, ...] = ()
    has_encoding_ambiguity: bool = False
    has_heavy_ocr_correction: bool = False

    @classmethod
    def from_snapshot(
        cls,
        snapshot: DomSnapshot,
        *,
        url: str | None = None,
        act_id: str | None = None,
        extraction_delay_ms: Any = 0,
    ) -> ActInput:
        outcome = snapshot.extraction
        return cls(
            content=snapshot.content,
            title=snapshot.title,
            url=url,
            act_id=act_id,
            structure=snapshot.structure,
            extraction=outcome.metadata,
            retry=outcome.retry,
            extraction_risk=snapshot.risk,
            extraction_delay=create_extraction_delay_metadata(extraction_delay_ms, snapshot.readiness),
            schedules=snapshot.schedules,
            schedule_tables=snapshot.schedule_tables,
            tables=snapshot.tables,
        )


@dataclass(frozen=True, slots=True)
class ActRecord:
    act: ActInput
    content_raw: str
    content_normalized: str
    content_corrected: str
    title_raw: str
    title_normalized: str
    numeric_regions: tuple[Region, ...]
    protected: ProtectedSections
    repair: CleanResult
    preview: CleanResult
    transformations: TransformationLog
    structure: StructureTree | None
    cross_references: tuple[CrossReference, ...]
    lexical_references: tuple[DetectedCitation, ...]
    data_quality: dict[str, Any]
    structure_derivation_error: str | None = None

    @property
    def cleaning_applied(self) -> bool:
        return bool(self.repair.transformations or self.preview.transformations)

    def to_dict(self) -> dict[str, Any]:
        act = self.act
        raw = self.content_raw
        section_counts = count_section_markers(raw)
        content_hash = compute_content_hash(raw)
        extraction = act.extraction.to_dict() if act.extraction is not None else {
            "extraction_success": bool(raw),
            "failure_reason": None,
            "selectors_attempted": [],
            "successful_selector": None,
            "extraction_method": None,
            "all_selectors_exhausted": False,
        }
        out: dict[str, Any] = {
            "identifiers": {"internal_id": act.act_id, "note": INTERNAL_ID_NOTE},
            "url": act.url,
            "title": self.title_normalized,
            "title_raw": self.title_raw,
            "title_normalized": self.title_normalized,
            "content_raw": raw,
            "content_normalized": self.content_normalized,
            "content_corrected": self.content_corrected,
            "content_raw_disclaimer": CONTENT_RAW_DISCLAIMER,
            "content_hash": content_hash.content_hash,
            "hash_source": content_hash.hash_source,
            "structure": self.structure.to_dict() if self.structure is not None else None,
            "cross_references": [r.to_dict() for r in self.cross_references],
            "lexical_references": lexical_references_metadata(self.lexical_references),
            "data_quality": self.data_quality,
            "extraction_risk": act.extraction_risk.to_dict(),
            "extraction_method": extraction["extraction_method"],
            "successful_selector": extraction["successful_selector"],
            "selectors_attempted": extraction["selectors_attempted"],
            "extraction_success": extraction["extraction_success"],
            "failure_reason": extraction["failure_reason"],
            "all_selectors_exhausted": extraction["all_selectors_exhausted"],
            "dom_extraction_method": DOM_EXTRACTION_METHOD,
            "extraction_delay": act.extraction_delay.to_dict(),
            "numeric_regions": [r.to_dict() for r in self.numeric_regions],
            "protected_sections": list(self.protected.protected_sections),
            "protected_regions": [r.to_dict() for r in self.protected.regions],
            "amendments": [m.to_dict() for m in detect_amendment_markers(raw)],
            "schedules": schedule_metadata(act.schedules, raw, act.schedule_tables),
            "tables": [t.to_dict() for t in act.tables],
            "transformations": self.transformations.to_list(),
            "numeric_representation": detect_numeric_representation(raw).to_dict(),
            "language_distribution": calculate_language_distribution(raw),
            "editorial_content": detect_editorial_content(raw).to_dict(),
            "marker_frequency": {
                marker: {"count": section_counts[marker], "method": method}
                for marker, method in _MARKER_METHODS.items()
            },
            "bengali_marker_frequency": count_bengali_section_markers(raw),
            "temporal_status": TEMPORAL_STATUS,
            "temporal_disclaimer": TEMPORAL_DISCLAIMER,
            "source_authority": SOURCE_AUTHORITY,
            "authority_rank": list(AUTHORITY_RANK),
            "reference_semantics": REFERENCE_SEMANTICS,
            "reference_warning": REFERENCE_WARNING,
            "negation_handling": NEGATION_HANDLING,
            "numeric_integrity": NUMERIC_INTEGRITY,
            "numeric_warning": NUMERIC_WARNING,
            "schema_version": SCHEMA_VERSION,
        }
        if self.cleaning_applied:
            out["formatting_scope"] = FORMATTING_SCOPE
        if act.retry is not None:
            out["retry"] = act.retry.to_dict()
        if self.structure_derivation_error is not None:
            out["structure_derivation_error"] = self.structure_derivation_error
        return out


def _regions_for(
    text: str,
    detector: RegionDetector,
    cached_text: str,
    numeric: tuple[Region, ...],
    protected: ProtectedSections,
) -> tuple[tuple[Region, ...], ProtectedSections]:
    """Regions of ``text``; reuses the cached result when the text is unchanged."""
    if text == cached_text:
        return numeric, protected
    return tuple(detector.numeric_regions(text)), detector.protected_sections(text)


def process_act(
    act: ActInput,
    config: QualityConfig | None = None,
    *,
    region_detector: RegionDetector | None = None,
) -> ActRecord:
    """Build the corpus record for one act.

    Args:
        act: Text, title and DOM hints for one page.
        config: Quality rules and windows; defaults to ``QualityConfig.default()``.
        region_detector: Numeric/protected region source; pattern based by default.

    Returns:
        ActRecord. An empty page yields a well-formed record with empty
        content, ``structure=None`` and no references.
    """
    cfg = config or QualityConfig.default()
    detector = region_detector or PatternRegionDetector()

    content_raw = filter_content_noise(act.content) or ""
    versions = create_three_version_content(content_raw)
    title = create_title_preservation(act.title)
    tlog = TransformationLog()

    if content_raw:
        numeric = tuple(detector.numeric_regions(content_raw))
        protected = detector.protected_sections(content_raw)
    else:
        numeric, protected = (), EMPTY_PROTECTED

    normalized = versions.content_normalized
    if normalized != content_raw:
        tlog.log("unicode_normalization", position=0)
    norm_numeric, norm_protected = _regions_for(normalized, detector, content_raw, numeric, protected)
    repair = clean_content(
        normalized,
        config=cfg,
        apply_ocr_corrections=False,
        apply_formatting=False,
        numeric_regions=norm_numeric,
        protected_regions=norm_protected.regions,
    )
    corrected = repair.cleaned
    tlog.record_cleaning(repair.transformations)

    corr_numeric, corr_protected = _regions_for(corrected, detector, normalized, norm_numeric, norm_protected)
    preview = clean_content(
        corrected,
        config=cfg,
        apply_encoding_repairs=False,
        dry_run=True,
        numeric_regions=corr_numeric,
        protected_regions=corr_protected.regions,
    )
    tlog.record_cleaning(preview.transformations, preview.flagged_in_protected_sections)
    versions = apply_corrected_content(versions, corrected)

    structure_data = act.structure
    if structure_data is not None and structure_data.link_references:
        structure_data = StructureData(
            preamble=structure_data.preamble,
            enactment=structure_data.enactment,
            sections=structure_data.sections,
            link_references=anchor_link_references(structure_data.link_references, content_raw),
            pattern_references=structure_data.pattern_references,
        )
    derived = derive_structure_and_references(
        {"content_raw": content_raw},
        structure_data,
        negation_window=cfg.negation_window,
        context_window=cfg.context_window,
    )

    schedules = schedule_quality_assessment(act.schedules, content_raw)
    options = QualityOptions(
        has_numeric_corruption_risk=bool(numeric) and repair.skipped_in_numeric_regions > 0,
        has_encoding_ambiguity=act.has_encoding_ambiguity,
        has_missing_schedules=schedules["schedule_missing_flag"],
        has_heavy_ocr_correction=act.has_heavy_ocr_correction,
        editorial_content_present=bool(detect_editorial_content(content_raw).types),
    )
    assessment = validate_content_quality(content_raw, cfg, options)
    data_quality = assessment.to_dict()
    flags = data_quality["flags"]
    for flag in (*repair.flags, *preview.flags):
        if flag not in flags:
            flags.append(flag)
    data_quality.update(schedules)

    if derived.get("structure_derivation_error"):
        log.warning("%s: structure degraded to null", act.url or act.act_id or "<act>")

    return ActRecord(
        act=act,
        content_raw=content_raw,
        content_normalized=versions.content_normalized,
        content_corrected=versions.content_corrected,
        title_raw=title.title_raw,
        title_normalized=title.title_normalized,
        numeric_regions=numeric,
        protected=protected,
        repair=repair,
        preview=preview,
        transformations=tlog,
        structure=derived["structure"],
        cross_references=tuple(derived["cross_references"]),
        lexical_references=tuple(detect_cross_references(content_raw, cfg)),
        data_quality=data_quality,
        structure_derivation_error=derived.get("structure_derivation_error"),
    )
