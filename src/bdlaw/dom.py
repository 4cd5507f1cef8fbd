"""BeautifulSoup adapter over a saved bdlaws act page.

Turns one ``act-details-*.html`` snapshot into everything the text pipeline
consumes: the extracted text (via the selector strategy list), the title,
section/preamble/enactment hints, link references, schedule HTML, table
counts, DOM readiness and truncation risks.

Text is taken the way a browser's ``textContent`` returns it (no separators
inserted between nodes), so offsets line up with what the live page yields.
The parsed document is never mutated; the body fallback works on a copy.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from bs4 import BeautifulSoup
from bs4.element import Tag

from bdlaw.audit import (
    DomReadiness,
    ExtractionRisk,
    RetryOutcome,
    SelectorHit,
    SelectorStrategy,
    extract_with_retry,
)
from bdlaw.noise import filter_content_noise
from bdlaw.patterns import ACT_LINK_RE
from bdlaw.schedules import ScheduleCapture, ScheduleElement, ScheduleTable, has_schedule_markers
from bdlaw.structure import (
    BLOCK_DOM_SOURCE,
    LinkReference,
    SectionHint,
    StructureData,
    block_hints_from_texts,
    section_hint_from_row,
)

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Selectors
# ---------------------------------------------------------------------------

TITLE_SELECTORS: tuple[str, ...] = ("h1", ".act-title")
CONTENT_SELECTORS: tuple[str, ...] = ("#lawContent", ".law-content", ".act-details")
FALLBACK_SELECTORS: tuple[str, ...] = (
    ".boxed-layout", ".content-wrapper", ".main-content", "article", "main", '[role="main"]',
)
ACT_CONTAINER = ".boxed-layout"
SECTION_ROW = ".lineremoves"
SECTION_TITLE = ".col-sm-3.txt-head"
SECTION_BODY = ".col-sm-9.txt-details"
PRE_SECTION_SELECTOR = ".bg-act-section, .bt-act-repealed, .act-role-style, .lineremove"
ACT_LINK_SELECTOR = 'a[href*="act-details"]'

BODY_EXCLUSIONS: tuple[str, ...] = (
    "header", "nav", "footer", "aside",
    ".sidebar", ".navigation", ".menu", ".nav-menu", ".header-content", ".footer-content",
    ".search", ".search-box", ".search-form", ".search-results", '[role="search"]',
    ".related-links", ".breadcrumb", ".breadcrumbs", ".copyright", ".disclaimer", ".social-links",
    "script", "style", "noscript", "iframe", "object", "embed",
)

LOADING_INDICATORS: tuple[str, ...] = (".loading", ".spinner", '[data-loading="true"]', ".skeleton")
MIN_READY_BODY_CHARS = 100

PAGINATION_SELECTORS: tuple[str, ...] = (
    ".pagination", ".page-nav", ".pager", ".page-numbers", "[data-page]",
    '[class*="pagination"]', '[class*="pager"]', 'nav[aria-label*="page"]', ".page-link", ".page-item",
)
LAZY_LOAD_SELECTORS: tuple[str, ...] = (
    "[data-src]", '[loading="lazy"]', ".lazy-load", ".lazy", "[data-lazy]",
    '[class*="lazy"]', "img[data-original]", "[data-srcset]",
)
EXTERNAL_SCHEDULE_SELECTORS: tuple[str, ...] = (
    'a[href*="schedule"]', 'a[href*="appendix"]', 'a[href*="tofshil"]',
    'a[href*="form"]', 'a[href*="annex"]', 'a[href*="attachment"]',
)
HIDDEN_SELECTORS: tuple[str, ...] = (
    '[style*="display:none"]', '[style*="display: none"]', "[hidden]", ".hidden", ".d-none",
    '[aria-hidden="true"]', ".collapse:not(.show)", ".tab-pane:not(.active)",
    '[style*="visibility:hidden"]', '[style*="visibility: hidden"]',
)
HIDDEN_CONTENT_MIN_CHARS = 50

SCHEDULE_SELECTORS: tuple[str, ...] = (
    ".schedule", "#schedule", ".tofshil",
    '[class*="schedule"]', '[id*="schedule"]', '[class*="tofshil"]',
)
SCHEDULE_TABLE_SELECTORS: tuple[str, ...] = (
    ".schedule table", "#schedule table", ".tofshil table", '[class*="schedule"] table',
)
CONTENT_TABLE_CONTAINERS: tuple[str, ...] = (
    "#lawContent", ".law-content", ".act-details", ".boxed-layout", ".txt-details",
)

_PAGINATION_TEXT_RE = re.compile(r"\d|page|next|prev|পৃষ্ঠা", re.IGNORECASE)
_TITLE_SUFFIX_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"\s*[-|]\s*bdlaws.*$", re.IGNORECASE),
    re.compile(r"\s*[-|]\s*Bangladesh.*$", re.IGNORECASE),
)
_CELL_WS_RE = re.compile(r"\s+")


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def _text(el: Tag | None) -> str:
    """``textContent`` of an element; "" for None."""
    return el.get_text() if el is not None else ""


# ---------------------------------------------------------------------------
# Title and structured content
# ---------------------------------------------------------------------------


def extract_title(soup: BeautifulSoup) -> str:
    """First ``h1``/``.act-title`` text, else the page title minus the site suffix."""
    for selector in TITLE_SELECTORS:
        el = soup.select_one(selector)
        if el is not None:
            text = _text(el).strip()
            if text:
                return text
    if soup.title is None:
        return ""
    title = _text(soup.title).strip()
    for pattern in _TITLE_SUFFIX_RES:
        title = pattern.sub("", title)
    return title.strip()


def _section_rows(soup: BeautifulSoup) -> list[Tag]:
    container = soup.select_one(ACT_CONTAINER)
    if container is None:
        return []
    return container.select(SECTION_ROW)


def _row_parts(row: Tag) -> tuple[str, str]:
    return (
        _text(row.select_one(SECTION_TITLE)).strip(),
        _text(row.select_one(SECTION_BODY)).strip(),
    )


def assemble_structured_content(soup: BeautifulSoup) -> str:
    """Pre-section blocks then one ``title\\nbody`` part per row, joined by blank lines.

    Returns "" when the act container has no section rows.
    """
    container = soup.select_one(ACT_CONTAINER)
    if container is None:
        return ""
    rows = container.select(SECTION_ROW)
    if not rows:
        return ""
    parts: list[str] = []
    pre = [_text(el).strip() for el in container.select(PRE_SECTION_SELECTOR)]
    pre = [p for p in pre if p]
    if pre:
        parts.append("\n\n".join(pre))
    for row in rows:
        title, body = _row_parts(row)
        if title and body:
            parts.append(f"{title}\n{body}")
        elif title or body:
            parts.append(title or body)
    return filter_content_noise("\n\n".join(parts)) or ""


# ---------------------------------------------------------------------------
# Selector strategies
# ---------------------------------------------------------------------------


def _query_structured(soup: BeautifulSoup, selector: str) -> SelectorHit:
    container = soup.select_one(selector)
    if container is None:
        return SelectorHit(matched=False)
    rows = container.select(SECTION_ROW)
    if not rows:
        return SelectorHit(matched=False)
    return SelectorHit(matched=True, element_count=len(rows), content=assemble_structured_content(soup))


def _query_selector(soup: BeautifulSoup, selector: str) -> SelectorHit:
    elements = soup.select(selector)
    if not elements:
        return SelectorHit(matched=False)
    return SelectorHit(
        matched=True,
        element_count=len(elements),
        content=filter_content_noise(_text(elements[0])) or "",
    )


def _query_body(soup: BeautifulSoup, selector: str) -> SelectorHit:
    body = soup.select_one(selector)
    if body is None:
        return SelectorHit(matched=False)
    copy = BeautifulSoup(str(body), "html.parser")
    for excluded in BODY_EXCLUSIONS:
        for el in copy.select(excluded):
            el.extract()
    return SelectorHit(matched=True, element_count=1, content=filter_content_noise(copy.get_text()) or "")


DEFAULT_STRATEGIES: tuple[SelectorStrategy, ...] = (
    SelectorStrategy("structured", (ACT_CONTAINER,), _query_structured),
    SelectorStrategy("primary", CONTENT_SELECTORS, _query_selector),
    SelectorStrategy("fallback", FALLBACK_SELECTORS, _query_selector),
    SelectorStrategy("body_fallback", ("body",), _query_body, require_legal_signal=True),
)


# ---------------------------------------------------------------------------
# Hints
# ---------------------------------------------------------------------------


def section_hints(soup: BeautifulSoup) -> tuple[SectionHint, ...]:
    hints: list[SectionHint] = []
    for index, row in enumerate(_section_rows(soup)):
        title, body = _row_parts(row)
        hints.append(section_hint_from_row(index, title, body, has_table=row.find("table") is not None))
    return tuple(hints)


def block_texts(soup: BeautifulSoup) -> list[str]:
    """Text of every ``.lineremove`` block (section rows are ``.lineremoves`` and excluded)."""
    return [_text(el) for el in soup.select(BLOCK_DOM_SOURCE)]


def link_references(soup: BeautifulSoup) -> tuple[LinkReference, ...]:
    """Act links inside the container; offsets are anchored later against ``content_raw``."""
    scope = soup.select_one(ACT_CONTAINER) or soup
    rows = _section_rows(soup)
    refs: list[LinkReference] = []
    for a in scope.select(ACT_LINK_SELECTOR):
        text = _text(a).strip()
        if not text:
            continue
        href = a.get("href")
        m = ACT_LINK_RE.search(href or "")
        row = a.find_parent(class_="lineremoves")
        index = next((i for i, r in enumerate(rows) if r is row), None) if row is not None else None
        refs.append(LinkReference(
            citation_text=text,
            href=href,
            act_id=m.group(1) if m else None,
            dom_section_index=index,
        ))
    return tuple(refs)


def structure_data(soup: BeautifulSoup) -> StructureData:
    preamble, enactment = block_hints_from_texts(block_texts(soup))
    return StructureData(
        preamble=preamble,
        enactment=enactment,
        sections=section_hints(soup),
        link_references=link_references(soup),
    )


# ---------------------------------------------------------------------------
# Readiness and risks
# ---------------------------------------------------------------------------


def check_dom_readiness(soup: BeautifulSoup | None, ready_state: str = "complete") -> DomReadiness:
    """Readiness of a document; a saved snapshot is always ``complete``."""
    if soup is None:
        return DomReadiness.NOT_READY
    if ready_state not in ("complete", "interactive"):
        return DomReadiness.NOT_READY
    if any(soup.select_one(sel) is not None for sel in LOADING_INDICATORS):
        return DomReadiness.NOT_READY
    if soup.body is None:
        return DomReadiness.NOT_READY
    if len(_text(soup.body).strip()) < MIN_READY_BODY_CHARS:
        return DomReadiness.UNCERTAIN
    return DomReadiness.READY


def detect_extraction_risks(soup: BeautifulSoup) -> ExtractionRisk:
    """Flag pagination, lazy loading, external schedule links and hidden text."""
    risks: list[dict[str, Any]] = []

    for selector in PAGINATION_SELECTORS:
        elements = soup.select(selector)
        if any(_PAGINATION_TEXT_RE.search(_text(el)) or el.find("a") for el in elements):
            risks.append({"type": "pagination", "selector": selector, "element_count": len(elements)})

    for selector in LAZY_LOAD_SELECTORS:
        elements = soup.select(selector)
        if elements:
            risks.append({"type": "lazy_loading", "selector": selector, "element_count": len(elements)})

    seen_hrefs: set[str] = set()
    for selector in EXTERNAL_SCHEDULE_SELECTORS:
        for a in soup.select(selector):
            href = a.get("href") or ""
            if href.startswith("#") or href.startswith("javascript:") or href in seen_hrefs:
                continue
            seen_hrefs.add(href)
            risks.append({
                "type": "external_schedule_link",
                "selector": selector,
                "href": href,
                "link_text": _text(a).strip()[:100],
            })

    for selector in HIDDEN_SELECTORS:
        for el in soup.select(selector):
            text = _text(el).strip()
            if len(text) > HIDDEN_CONTENT_MIN_CHARS:
                risks.append({
                    "type": "hidden_content",
                    "selector": selector,
                    "content_length": len(text),
                    "sample_text": text[:100],
                })

    return ExtractionRisk(detected_risks=tuple(risks))


# ---------------------------------------------------------------------------
# Schedules and tables
# ---------------------------------------------------------------------------


def capture_schedules(soup: BeautifulSoup) -> ScheduleCapture:
    """Verbatim outer HTML of schedule elements and content tables, de-duplicated."""
    seen: set[str] = set()
    elements: list[ScheduleElement] = []
    for selector in SCHEDULE_SELECTORS:
        for el in soup.select(selector):
            html = str(el)
            if html in seen:
                continue
            seen.add(html)
            has_table = el.name == "table" or el.find("table") is not None
            elements.append(ScheduleElement(selector=selector, html=html, has_table=has_table))
    for container in CONTENT_TABLE_CONTAINERS:
        selector = f"{container} table"
        for table in soup.select(selector):
            html = str(table)
            if html in seen:
                continue
            seen.add(html)
            elements.append(ScheduleElement(selector=selector, html=html, has_table=True))
    body_text = _text(soup.body) if soup.body is not None else _text(soup)
    return ScheduleCapture(elements=tuple(elements), markers_in_text=has_schedule_markers(body_text))


def count_schedule_tables(soup: BeautifulSoup) -> list[ScheduleTable]:
    """Tables in schedule containers, then in content containers."""
    selectors = SCHEDULE_TABLE_SELECTORS + tuple(f"{c} table" for c in CONTENT_TABLE_CONTAINERS)
    seen: set[str] = set()
    tables: list[ScheduleTable] = []
    for selector in selectors:
        for table in soup.select(selector):
            html = str(table)
            if html in seen:
                continue
            seen.add(html)
            tables.append(ScheduleTable(selector=selector, has_content=bool(_text(table).strip())))
    return tables


@dataclass(frozen=True, slots=True)
class TableMatrix:
    data: tuple[tuple[str, ...], ...]
    has_merged_cells: bool
    row_count: int
    col_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": [list(row) for row in self.data],
            "has_merged_cells": self.has_merged_cells,
            "row_count": self.row_count,
            "col_count": self.col_count,
        }


def _span(cell: Tag, attr: str) -> int:
    try:
        value = int(str(cell.get(attr) or "1"))
    except ValueError:
        return 1
    return value if value > 0 else 1


def table_to_matrix(table: Tag) -> TableMatrix:
    """Expand a table into a rectangular grid.

    A merged cell's text sits at its origin; the other grid positions it
    spans hold "".
    """
    grid: dict[int, dict[int, str]] = {}
    has_merged = False
    rows = table.find_all("tr")
    for r, tr in enumerate(rows):
        row = grid.setdefault(r, {})
        col = 0
        for cell in tr.find_all(["td", "th"], recursive=False):
            while col in row:
                col += 1
            content = _CELL_WS_RE.sub(" ", _text(cell).replace("\xa0", " ")).strip()
            rowspan = _span(cell, "rowspan")
            colspan = _span(cell, "colspan")
            if rowspan > 1 or colspan > 1:
                has_merged = True
            for dr in range(rowspan):
                target = grid.setdefault(r + dr, {})
                for dc in range(colspan):
                    target[col + dc] = content if dr == 0 and dc == 0 else ""
            col += colspan
    max_cols = max((max(row) + 1 for row in grid.values() if row), default=0)
    data = tuple(
        tuple(grid.get(r, {}).get(c, "") for c in range(max_cols))
        for r in range(len(rows))
    )
    return TableMatrix(data=data, has_merged_cells=has_merged, row_count=len(data), col_count=max_cols)


def extract_tables(soup: BeautifulSoup) -> list[TableMatrix]:
    seen: set[int] = set()
    out: list[TableMatrix] = []
    for container in CONTENT_TABLE_CONTAINERS:
        for table in soup.select(f"{container} table"):
            if id(table) in seen:
                continue
            seen.add(id(table))
            out.append(table_to_matrix(table))
    return out


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DomSnapshot:
    """Everything read from one page."""

    title: str
    extraction: RetryOutcome
    structure: StructureData
    readiness: DomReadiness
    risk: ExtractionRisk
    schedules: ScheduleCapture
    schedule_tables: tuple[ScheduleTable, ...] = ()
    tables: tuple[TableMatrix, ...] = field(default=())

    @property
    def content(self) -> str:
        return self.extraction.selection.content if self.extraction.selection.extraction_success else ""


def read_snapshot(html: str, *, max_retries: Any = None, source: str = "<html>") -> DomSnapshot:
    """Parse a saved page and collect everything the pipeline needs.

    Args:
        html: Page HTML.
        max_retries: Retry limit for selector mismatches (clamped to [1, 10]).
        source: Name used in log messages.

    Returns:
        DomSnapshot. A page where every selector failed still yields a
        snapshot; its extraction carries the failure reason.
    """
    soup = parse_html(html)
    outcome = extract_with_retry(soup, DEFAULT_STRATEGIES, max_retries)
    if not outcome.selection.extraction_success:
        log.info(
            "%s: selectors exhausted after %d attempt(s) (%s)",
            source,
            len(outcome.selection.selectors_attempted),
            outcome.failure_reason.value if outcome.failure_reason else "unknown",
        )
    return DomSnapshot(
        title=extract_title(soup),
        extraction=outcome,
        structure=structure_data(soup),
        readiness=check_dom_readiness(soup),
        risk=detect_extraction_risks(soup),
        schedules=capture_schedules(soup),
        schedule_tables=tuple(count_schedule_tables(soup)),
        tables=tuple(extract_tables(soup)),
    )
