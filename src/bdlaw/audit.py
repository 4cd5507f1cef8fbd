"""Extraction audit: selector tiers, failure classification, retry and risk records.

Content is located by an ordered list of selector strategies:

    structured     section rows of the act container
    primary        site-specific content containers
    fallback       generic page containers
    body_fallback  the whole body minus navigation chrome; accepted only
                   when the text carries a legal signal

Every selector tried is recorded with an increasing ``attempt_order`` so the
output shows exactly how the text was found (or why it was not). Nothing
here touches a DOM directly; strategies receive a query callable from the
DOM adapter.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

from bdlaw.config import EXTRACTION_DELAY_DEFAULT_MS, clamp_extraction_delay, clamp_max_retries
from bdlaw.textual import has_legal_signal

DOM_EXTRACTION_METHOD = "textContent"


class FailureReason(str, Enum):
    """Why no usable content was extracted."""

    CONTENT_SELECTOR_MISMATCH = "content_selector_mismatch"
    EMPTY_CONTENT = "empty_content"
    DOM_NOT_READY = "dom_not_ready"
    DOM_TIMEOUT = "dom_timeout"
    CONTENT_BELOW_THRESHOLD = "content_below_threshold"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"


class DomReadiness(str, Enum):
    READY = "ready"
    UNCERTAIN = "uncertain"
    NOT_READY = "not_ready"


RETRYABLE_FAILURES: frozenset[FailureReason] = frozenset({FailureReason.CONTENT_SELECTOR_MISMATCH})

EXTRACTION_METHODS: tuple[str, ...] = ("structured", "primary", "fallback", "body_fallback")


# ---------------------------------------------------------------------------
# Selector attempts
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SelectorAttempt:
    selector: str
    matched: bool
    element_count: int
    attempt_order: int        # 0-based, strictly increasing per extraction

    def to_dict(self) -> dict[str, Any]:
        return {
            "selector": self.selector,
            "matched": self.matched,
            "element_count": self.element_count,
            "attempt_order": self.attempt_order,
        }


def create_selector_attempt(selector: Any, matched: Any, element_count: Any, attempt_order: Any) -> SelectorAttempt:
    return SelectorAttempt(
        selector=selector if isinstance(selector, str) else "",
        matched=bool(matched),
        element_count=element_count if isinstance(element_count, int) else 0,
        attempt_order=attempt_order if isinstance(attempt_order, int) else 0,
    )


@dataclass(frozen=True, slots=True)
class ExtractionMetadata:
    extraction_success: bool
    failure_reason: FailureReason | None
    selectors_attempted: tuple[SelectorAttempt, ...]
    successful_selector: str | None
    extraction_method: str | None

    @property
    def all_selectors_exhausted(self) -> bool:
        return not self.extraction_success and bool(self.selectors_attempted)

    def to_dict(self) -> dict[str, Any]:
        return {
            "extraction_success": self.extraction_success,
            "failure_reason": self.failure_reason.value if self.failure_reason else None,
            "selectors_attempted": [a.to_dict() for a in self.selectors_attempted],
            "successful_selector": self.successful_selector,
            "extraction_method": self.extraction_method,
            "all_selectors_exhausted": self.all_selectors_exhausted,
            "dom_extraction_method": DOM_EXTRACTION_METHOD,
        }


def create_extraction_metadata(
    success: bool = False,
    failure_reason: FailureReason | None = None,
    selectors_attempted: Sequence[SelectorAttempt] = (),
    successful_selector: str | None = None,
    extraction_method: str | None = "primary",
) -> ExtractionMetadata:
    """A failed extraction always carries a reason (``unknown`` when none given)."""
    return ExtractionMetadata(
        extraction_success=success,
        failure_reason=None if success else (failure_reason or FailureReason.UNKNOWN),
        selectors_attempted=tuple(selectors_attempted),
        successful_selector=successful_selector if success else None,
        extraction_method=extraction_method,
    )


def classify_failure(
    selectors_attempted: Sequence[SelectorAttempt] = (),
    *,
    dom_ready: bool = True,
    timed_out: bool = False,
    network_error: bool = False,
    content_found: str | None = "",
    min_content_length: int = 0,
) -> FailureReason:
    """Pick the failure reason for an unsuccessful extraction.

    A page that visibly holds legal text which no selector matched is a
    selector mismatch, not empty content.
    """
    if network_error:
        return FailureReason.NETWORK_ERROR
    if timed_out:
        return FailureReason.DOM_TIMEOUT
    if not dom_ready:
        return FailureReason.DOM_NOT_READY
    content = content_found if isinstance(content_found, str) else ""
    if selectors_attempted and not content.strip():
        return FailureReason.CONTENT_SELECTOR_MISMATCH
    if content and not content.strip():
        return FailureReason.EMPTY_CONTENT
    if content and not has_legal_signal(content):
        return FailureReason.CONTENT_SELECTOR_MISMATCH
    if content and len(content.strip()) < min_content_length:
        return FailureReason.CONTENT_BELOW_THRESHOLD
    return FailureReason.UNKNOWN


# ---------------------------------------------------------------------------
# Strategy list
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SelectorHit:
    """What a single selector yielded on the page."""

    matched: bool
    element_count: int = 0
    content: str = ""


SelectorFn = Callable[[Any, str], SelectorHit]


@dataclass(frozen=True, slots=True)
class SelectorStrategy:
    name: str                          # one of EXTRACTION_METHODS
    selectors: tuple[str, ...]
    query: SelectorFn
    require_legal_signal: bool = False


@dataclass(frozen=True, slots=True)
class SelectionResult:
    content: str
    extraction_success: bool
    extraction_method: str | None
    successful_selector: str | None
    selectors_attempted: tuple[SelectorAttempt, ...] = ()
    has_legal_signal: bool = False

    def metadata(self, failure_reason: FailureReason | None = None) -> ExtractionMetadata:
        return create_extraction_metadata(
            success=self.extraction_success,
            failure_reason=failure_reason,
            selectors_attempted=self.selectors_attempted,
            successful_selector=self.successful_selector,
            extraction_method=self.extraction_method,
        )


def run_selector_strategies(document: Any, strategies: Sequence[SelectorStrategy]) -> SelectionResult:
    """Try every strategy's selectors in order; the first non-empty hit wins.

    A hit from a strategy with ``require_legal_signal`` but no legal signal
    stops the search as a failure, keeping its content so the failure can be
    classified as a selector mismatch.
    """
    attempts: list[SelectorAttempt] = []
    for strategy in strategies:
        for selector in strategy.selectors:
            hit = strategy.query(document, selector)
            attempts.append(create_selector_attempt(
                selector, hit.matched, hit.element_count, len(attempts),
            ))
            content = (hit.content or "").strip()
            if not content:
                continue
            signal = has_legal_signal(content)
            if strategy.require_legal_signal and not signal:
                return SelectionResult(
                    content=content,
                    extraction_success=False,
                    extraction_method=strategy.name,
                    successful_selector=None,
                    selectors_attempted=tuple(attempts),
                    has_legal_signal=False,
                )
            return SelectionResult(
                content=content,
                extraction_success=True,
                extraction_method=strategy.name,
                successful_selector=selector,
                selectors_attempted=tuple(attempts),
                has_legal_signal=signal,
            )
    return SelectionResult(
        content="",
        extraction_success=False,
        extraction_method=None,
        successful_selector=None,
        selectors_attempted=tuple(attempts),
    )


# ---------------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RetryAttempt:
    attempt_number: int               # 0 is the initial extraction
    selector_used: str | None
    extraction_method: str | None
    success: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempt_number": self.attempt_number,
            "selector_used": self.selector_used,
            "extraction_method": self.extraction_method,
            "success": self.success,
        }


@dataclass(frozen=True, slots=True)
class RetryMetadata:
    retry_count: int
    max_retries: int
    successful_selector: str | None
    all_selectors_exhausted: bool
    retry_attempts: tuple[RetryAttempt, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "retry_count": self.retry_count,
            "max_retries": self.max_retries,
            "successful_selector": self.successful_selector,
            "all_selectors_exhausted": self.all_selectors_exhausted,
            "retry_attempts": [a.to_dict() for a in self.retry_attempts],
        }


@dataclass(frozen=True, slots=True)
class RetryOutcome:
    selection: SelectionResult
    failure_reason: FailureReason | None
    retry: RetryMetadata

    @property
    def metadata(self) -> ExtractionMetadata:
        return self.selection.metadata(self.failure_reason)


def is_retryable_failure(failure_reason: Any) -> bool:
    """Only selector mismatches are retried."""
    try:
        return FailureReason(failure_reason) in RETRYABLE_FAILURES
    except ValueError:
        return False


def should_retry_extraction(failure_reason: Any, current_retry_count: Any, max_retries: Any = None) -> bool:
    if not is_retryable_failure(failure_reason):
        return False
    if not isinstance(current_retry_count, int) or isinstance(current_retry_count, bool):
        return False
    return current_retry_count < clamp_max_retries(max_retries)


def _attempt_record(number: int, selection: SelectionResult) -> RetryAttempt:
    return RetryAttempt(
        attempt_number=number,
        selector_used=selection.successful_selector,
        extraction_method=selection.extraction_method,
        success=selection.extraction_success,
    )


def extract_with_retry(
    document: Any,
    strategies: Sequence[SelectorStrategy],
    max_retries: Any = None,
) -> RetryOutcome:
    """Run the strategy list, retrying while the failure is a selector mismatch.

    Retries use the same strategies; only the page state may differ between
    attempts.
    """
    limit = clamp_max_retries(max_retries)
    attempts: list[RetryAttempt] = []
    selection = run_selector_strategies(document, strategies)
    attempts.append(_attempt_record(0, selection))
    retry_count = 0
    failure: FailureReason | None = None

    while not selection.extraction_success:
        failure = classify_failure(selection.selectors_attempted, content_found=selection.content)
        if not should_retry_extraction(failure, retry_count, limit):
            break
        retry_count += 1
        selection = run_selector_strategies(document, strategies)
        attempts.append(_attempt_record(retry_count, selection))

    if selection.extraction_success:
        failure = None
    return RetryOutcome(
        selection=selection,
        failure_reason=failure,
        retry=RetryMetadata(
            retry_count=retry_count,
            max_retries=limit,
            successful_selector=selection.successful_selector,
            all_selectors_exhausted=not selection.extraction_success,
            retry_attempts=tuple(attempts),
        ),
    )


# ---------------------------------------------------------------------------
# Delay, readiness and truncation risk
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExtractionDelayMetadata:
    extraction_delay_ms: int = EXTRACTION_DELAY_DEFAULT_MS
    dom_readiness: DomReadiness = DomReadiness.READY

    def to_dict(self) -> dict[str, Any]:
        return {
            "extraction_delay_ms": self.extraction_delay_ms,
            "dom_readiness": self.dom_readiness.value,
        }


def create_extraction_delay_metadata(
    delay_ms: Any = EXTRACTION_DELAY_DEFAULT_MS,
    dom_readiness: DomReadiness | str = DomReadiness.READY,
) -> ExtractionDelayMetadata:
    try:
        readiness = DomReadiness(dom_readiness)
    except ValueError:
        readiness = DomReadiness.UNCERTAIN
    return ExtractionDelayMetadata(
        extraction_delay_ms=clamp_extraction_delay(delay_ms),
        dom_readiness=readiness,
    )


@dataclass(frozen=True, slots=True)
class ExtractionRisk:
    """Truncation risks flagged on the page; flagged only, never worked around."""

    detected_risks: tuple[dict[str, Any], ...] = field(default=())

    @property
    def categories(self) -> list[str]:
        out: list[str] = []
        for risk in self.detected_risks:
            kind = risk.get("type")
            if kind and kind not in out:
                out.append(kind)
        return out

    @property
    def possible_truncation(self) -> bool:
        return bool(self.detected_risks)

    @property
    def reason(self) -> str:
        return ", ".join(self.categories) or "none"

    def to_dict(self) -> dict[str, Any]:
        return {
            "possible_truncation": self.possible_truncation,
            "reason": self.reason,
            "detected_risks": [dict(r) for r in self.detected_risks],
        }


NO_RISK = ExtractionRisk()


def merge_risks(risks: Iterable[ExtractionRisk]) -> ExtractionRisk:
    combined: list[dict[str, Any]] = []
    for risk in risks:
        combined.extend(risk.detected_risks)
    return ExtractionRisk(detected_risks=tuple(combined))


def ms_to_seconds(delay_ms: int) -> float:
    """Seconds to wait before re-reading a live page."""
    return math.floor(max(0, delay_ms)) / 1000.0
