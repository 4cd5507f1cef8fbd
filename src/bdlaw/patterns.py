"""Pattern library for Bengali/English legal act text.

Pure data: compiled regexes, lexicons and fixed disclaimer strings used by
every other module. Nothing here holds scan state -- ``re.Pattern`` objects
are immutable and each ``finditer``/``search`` call starts a fresh scan, so
module-level compilation is safe to share across calls and threads.

Numeral classes:
    Bengali digits are U+09E6..U+09EF (``০``-``৯``). English classes are
    spelled ``[0-9]`` rather than ``\\d`` because Python's ``\\d`` also
    matches Bengali digits.

The section-number terminator is U+09F7 (``৷``), which is what the source
site renders after section numerals. It is distinct from the Devanagari
danda U+0964 (``।``) used as sentence punctuation.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Character classes
# ---------------------------------------------------------------------------

BN_DIGITS = "০-৯"
SECTION_DANDA = "৷"
SENTENCE_DANDA = "।"
BENGALI_RANGE_RE = re.compile(r"[ঀ-৿]")
ENGLISH_LETTER_RE = re.compile(r"[A-Za-z]")
BN_DIGIT_RE = re.compile(rf"[{BN_DIGITS}]")
EN_DIGIT_RE = re.compile(r"[0-9]")

# ---------------------------------------------------------------------------
# Fixed disclaimers / semantics tags
# ---------------------------------------------------------------------------

REFERENCE_SEMANTICS = "string_match_only"
REFERENCE_WARNING = (
    "Keywords detected in proximity to citation strings. No legal "
    "relationship, effect, direction, or applicability is implied."
)
LEXICAL_RELATION_DISCLAIMER = (
    "Detected via pattern matching. No legal force or applicability implied."
)
NEGATION_HANDLING = "classification_suppression_only"
NUMERIC_INTEGRITY = "best_effort_html_only"
NUMERIC_WARNING = (
    "Numeric expressions may be incomplete or malformed due to HTML source "
    "limitations"
)
CONTENT_RAW_DISCLAIMER = (
    "Represents browser-parsed DOM text via textContent, not raw HTML or "
    "server response bytes"
)
TEMPORAL_STATUS = "historical_text"
TEMPORAL_DISCLAIMER = "No inference of current legal force or applicability"
SOURCE_AUTHORITY = "bdlaws_html_only"
AUTHORITY_RANK: tuple[str, ...] = ("bdlaws_html",)
FORMATTING_SCOPE = "presentation_only"
COMPLETENESS_DISCLAIMER = (
    "Website representation incomplete; legal completeness unknown"
)
ML_USAGE_WARNING = (
    "HTML artifacts, encoding noise, and structural gaps are present; "
    "suitable only for exploratory retrieval and analysis. Not validated "
    "for training or evaluation."
)
INTENDED_ML_USE: tuple[str, ...] = ("retrieval", "extractive_question_answering")

# ---------------------------------------------------------------------------
# Section / amendment markers
# ---------------------------------------------------------------------------

SECTION_MARKERS: tuple[str, ...] = ("ধারা", "অধ্যায়", "তফসিল")
AMENDMENT_MARKERS: tuple[str, ...] = ("বিলুপ্ত", "সংশোধিত", "প্রতিস্থাপিত")

NUMERAL_DANDA_RE = re.compile(rf"[{BN_DIGITS}]+{SECTION_DANDA}")
SUBSECTION_MARKER_RE = re.compile(rf"\([{BN_DIGITS}]+\)")
CLAUSE_MARKER_RE = re.compile(r"\([ক-ঢ]\)")  # (ক) .. (ঢ)
PREAMBLE_START_RE = re.compile(r"যেহেতু|WHEREAS", re.IGNORECASE)
ENACTMENT_START_RE = re.compile(r"সেহেতু\s+এতদ্বারা|Be\s+it\s+enacted", re.IGNORECASE)
ACT_LINK_RE = re.compile(r"act-details-(\d+)")

# ---------------------------------------------------------------------------
# Citation patterns
# ---------------------------------------------------------------------------

CITATION_PATTERNS: dict[str, re.Pattern[str]] = {
    # Income Tax Act, 1984 (XXXVI of 1984)
    "ENGLISH_ACT_FULL": re.compile(
        r"([A-Z][a-zA-Z\s]+(?:Act|Ordinance)),?\s*([0-9]{4})\s*"
        r"\(([IVXLCDM]+|[0-9]+)\s+of\s+([0-9]{4})\)"
    ),
    # Act XXXVI of 1984
    "ENGLISH_ACT_SHORT": re.compile(
        r"(?:Act|Ordinance)\s+([IVXLCDM]+|[0-9]+)\s+of\s+([0-9]{4})"
    ),
    # <name> আইন, ১৯৯০ (১৯৯০ সনের ২০ নং আইন)
    "BENGALI_ACT_FULL": re.compile(
        rf"([^\s,{SENTENCE_DANDA}]+(?:\s+[^\s,{SENTENCE_DANDA}]+)*\s+আইন),?\s*"
        rf"([{BN_DIGITS}]{{4}})\s*\(([{BN_DIGITS}]{{4}})\s*সনের\s*"
        rf"([{BN_DIGITS}]+)\s*নং\s*আইন\)"
    ),
    # ১৯৯০ সনের ২০ নং আইন
    "BENGALI_ACT_SHORT": re.compile(
        rf"([{BN_DIGITS}]{{4}})\s*সনের\s*([{BN_DIGITS}]+)\s*নং\s*(আইন|অধ্যাদেশ)"
    ),
    # <name> অধ্যাদেশ, ১৯৮২ (অধ্যাদেশ নং ৫, ১৯৮২)
    "BENGALI_ORDINANCE": re.compile(
        rf"([^\s,{SENTENCE_DANDA}]+(?:\s+[^\s,{SENTENCE_DANDA}]+)*\s+অধ্যাদেশ),?\s*"
        rf"([{BN_DIGITS}]{{4}})\s*\(অধ্যাদেশ\s*নং\s*([{BN_DIGITS}]+),?\s*"
        rf"([{BN_DIGITS}]{{4}})\)"
    ),
    # P.O. No. 27 of 1972
    "PRESIDENTS_ORDER": re.compile(
        r"P\.?O\.?\s*(?:No\.?)?\s*([0-9]+)\s+of\s+([0-9]{4})",
        re.IGNORECASE,
    ),
}

# ---------------------------------------------------------------------------
# Lexical relation keywords and negation
# ---------------------------------------------------------------------------

# Order matters: the first type with a keyword hit wins.
LEXICAL_RELATION_KEYWORDS: dict[str, tuple[str, ...]] = {
    "amendment": ("সংশোধন", "সংশোধিত", "amendment", "amended", "amending"),
    "repeal": ("রহিত", "রহিতকরণ", "বিলুপ্ত", "repeal", "repealed", "repealing"),
    "substitution": ("প্রতিস্থাপিত", "প্রতিস্থাপন", "substituted", "substitution", "replaced"),
    "dependency": ("সাপেক্ষে", "অধীন", "অনুসারে", "subject to", "under", "pursuant to"),
    "incorporation": ("সন্নিবেশিত", "অন্তর্ভুক্ত", "inserted", "incorporated", "added"),
}
LEXICAL_RELATION_TYPES: tuple[str, ...] = ("mention", *LEXICAL_RELATION_KEYWORDS)

NEGATION_WORDS: tuple[str, ...] = ("না", "নয়", "নহে", "নাই", "নেই", "ব্যতীত", "ছাড়া")

# ---------------------------------------------------------------------------
# UI noise
# ---------------------------------------------------------------------------

UI_NOISE_LITERALS: tuple[str, ...] = (
    "প্রিন্ট ভিউ",
    "Legislative and Parliamentary Affairs Division",
)
UI_NOISE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^[ \t]*Top[ \t]*$", re.MULTILINE),
    re.compile(r"Copyright © [0-9]{4}"),
)

# ---------------------------------------------------------------------------
# Numeric-integrity-sensitive regions
# ---------------------------------------------------------------------------

_NUM = rf"[0-9{BN_DIGITS}]+(?:\.[0-9{BN_DIGITS}]+)?"

NUMERIC_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "currency": (
        re.compile(rf"৳\s*[0-9{BN_DIGITS},.]+"),
        re.compile(rf"টাকা\s*[0-9{BN_DIGITS},.]+"),
        re.compile(rf"[0-9{BN_DIGITS},.]+\s*টাকা"),
        re.compile(r"Tk\.?\s*[0-9,.]+", re.IGNORECASE),
        re.compile(r"\$\s*[0-9,.]+"),
        re.compile(r"[0-9,.]+\s*(?:taka|rupees?)", re.IGNORECASE),
    ),
    "percentage": (
        re.compile(rf"{_NUM}\s*%"),
        re.compile(rf"{_NUM}\s*শতাংশ"),
        re.compile(rf"{_NUM}\s*percent", re.IGNORECASE),
        re.compile(rf"{_NUM}\s*per\s*cent", re.IGNORECASE),
    ),
    "rate": (
        re.compile(rf"{_NUM}\s*(?:per\s+annum|p\.?a\.?)", re.IGNORECASE),
        re.compile(rf"{_NUM}\s*বার্ষিক"),
        re.compile(rf"{_NUM}\s*হার"),
        re.compile(rf"rate\s+of\s+{_NUM}", re.IGNORECASE),
        re.compile(rf"interest\s+(?:rate\s+)?(?:of\s+)?{_NUM}", re.IGNORECASE),
        re.compile(rf"সুদের?\s*হার\s*{_NUM}"),
    ),
    "table_schedule": (
        re.compile(r"<table[\s\S]*?</table>", re.IGNORECASE),
        re.compile(r"তফসিল"),
        re.compile(r"\bSchedule\s*[IVXLCDM0-9]+", re.IGNORECASE),
        re.compile(r"\bAppendix\s*[A-Z0-9]*", re.IGNORECASE),
        re.compile(r"\bForm\s*[A-Z0-9]+", re.IGNORECASE),
        re.compile(r"\bTable\s*[IVXLCDM0-9]+", re.IGNORECASE),
    ),
}

# ---------------------------------------------------------------------------
# Protected sections (definitions, provisos, explanations)
# ---------------------------------------------------------------------------

PROTECTED_SECTION_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "definition": (
        re.compile(r"সংজ্ঞা"),
        re.compile(r"\bdefinitions?\b", re.IGNORECASE),
        re.compile(r"\bmeans\b", re.IGNORECASE),
        re.compile(r"\"[^\"]+\"\s+(?:means|অর্থ)", re.IGNORECASE),
        re.compile(r"অর্থ\s+হইবে"),
        re.compile(r"বলিতে\s+বুঝাইবে"),
    ),
    "proviso": (
        re.compile(r"তবে শর্ত"),
        re.compile(r"\bProvided\s+that\b", re.IGNORECASE),
        re.compile(r"\bproviso\b", re.IGNORECASE),
        re.compile(r"শর্ত\s+থাকে\s+যে"),
        re.compile(r"এই\s+শর্তে\s+যে"),
    ),
    "explanation": (
        re.compile(r"ব্যাখ্যা"),
        re.compile(r"\bExplanation\b", re.IGNORECASE),
        re.compile(r"\bNote\b", re.IGNORECASE),
        re.compile(r"দ্রষ্টব্য"),
    ),
}
PROTECTED_LOOKBEHIND = 50
PROTECTED_LOOKAHEAD = 200

# ---------------------------------------------------------------------------
# Quality rules (defaults for QualityConfig)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EncodingRule:
    """Signature of a known encoding corruption and its repair."""

    pattern: re.Pattern[str] | None
    replacement: str
    description: str


@dataclass(frozen=True, slots=True)
class OcrCorrection:
    """Literal OCR misreading and its correction (matched regex-escaped)."""

    incorrect: str
    correct: str
    context: str


@dataclass(frozen=True, slots=True)
class FormattingRule:
    """Presentation-only rewrite, e.g. splitting inline list items."""

    name: str                           # bengali_list_separation
    pattern: re.Pattern[str] | None
    replacement: str                    # re.sub template
    enabled: bool = True


QUALITY_SCHEDULE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(First|Second|Third|Fourth|Fifth)\s+Schedule\b", re.IGNORECASE),
    re.compile(r"\bSchedule\s+[IVXLCDM]+\b", re.IGNORECASE),
    re.compile(r"\bAppendix\s+[A-Z]?\b", re.IGNORECASE),
    re.compile(r"\bAppendix\s+to\s+this\s+(Act|Regulation)\b", re.IGNORECASE),
    re.compile(r"তফসিল"),
    re.compile(r"প্রথম\s+তফসিল"),
    re.compile(r"দ্বিতীয়\s+তফসিল"),
    re.compile(r"তৃতীয়\s+তফসিল"),
    re.compile(r"Topsil", re.IGNORECASE),
)

DEFAULT_ENCODING_RULES: tuple[EncodingRule, ...] = (
    EncodingRule(
        pattern=re.compile("æ"),
        replacement='"',
        description="Corrupted quotation mark",
    ),
    EncodingRule(
        pattern=re.compile("[ìíîï]"),
        replacement="\n",
        description="Corrupted table border",
    ),
)

DEFAULT_OCR_CORRECTIONS: tuple[OcrCorrection, ...] = (
    OcrCorrection(incorrect="প্রম্্নফ", correct="প্রুফ", context="London Proof"),
    OcrCorrection(incorrect="অতগরটির", correct="অক্ষরটির", context="letter reference"),
)

DEFAULT_FORMATTING_RULES: tuple[FormattingRule, ...] = (
    FormattingRule(
        name="bengali_list_separation",
        pattern=re.compile(rf"(?<=[;{SENTENCE_DANDA}])\s+(\([ক-হ]\))"),
        replacement=r"\n\1",
    ),
    FormattingRule(
        name="english_list_separation",
        pattern=re.compile(r"(?<=;)\s+(\([a-z]\))", re.IGNORECASE),
        replacement=r"\n\1",
    ),
)

# ---------------------------------------------------------------------------
# Schedule references / markers
# ---------------------------------------------------------------------------

SCHEDULE_REFERENCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"তফসিল"),
    re.compile(r"প্রথম\s*তফসিল"),
    re.compile(r"দ্বিতীয়\s*তফসিল"),
    re.compile(r"তৃতীয়\s*তফসিল"),
    re.compile(r"Schedule\s*[IVXLCDM0-9]*", re.IGNORECASE),
    re.compile(r"First\s+Schedule", re.IGNORECASE),
    re.compile(r"Second\s+Schedule", re.IGNORECASE),
    re.compile(r"Third\s+Schedule", re.IGNORECASE),
    re.compile(r"Appendix\s*[A-Z0-9]*", re.IGNORECASE),
)
SCHEDULE_REFERENCE_MIN_GAP = 5

SCHEDULE_MARKER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"তফসিল"),
    re.compile(r"Schedule\s*[IVXLCDM0-9]*", re.IGNORECASE),
    re.compile(r"Appendix\s*[A-Z0-9]*", re.IGNORECASE),
    re.compile(r"Form\s*[A-Z0-9]+", re.IGNORECASE),
)

# ---------------------------------------------------------------------------
# Preamble / enactment / footnotes / editorial content
# ---------------------------------------------------------------------------

# (pattern, record_every_hit): primary patterns record each hit; secondary
# ones only add marker texts not already recorded.
PREAMBLE_PATTERNS: tuple[tuple[re.Pattern[str], bool], ...] = (
    (re.compile(r"যেহেতু"), True),
    (re.compile(r"এবং\s*যেহেতু"), False),
    (re.compile(r"\bWHEREAS\b|\bWhereas\b"), True),
    (re.compile(r"\bWHEREAS\b", re.IGNORECASE), False),
    (re.compile(r"\bPreamble\b", re.IGNORECASE), False),
    (re.compile(r"প্রস্তাবনা"), False),
)

ENACTMENT_PATTERNS: tuple[tuple[re.Pattern[str], bool], ...] = (
    (re.compile(r"সেহেতু\s*এতদ্বারা\s*আইন\s*করা\s*হইল"), True),
    (re.compile(r"এতদ্বারা\s*নিম্নরূপ\s*আইন\s*করা\s*হইল"), False),
    (re.compile(r"\bBe\s+it\s+enacted\b|\bIT\s+IS\s+HEREBY\s+ENACTED\b", re.IGNORECASE), True),
    (re.compile(r"\bIt is hereby enacted\b", re.IGNORECASE), False),
    (re.compile(r"\bBe it therefore enacted\b", re.IGNORECASE), False),
    (re.compile(r"এতদ্দ্বারা প্রণীত হইল"), False),
    (re.compile(r"এতদ্দ্বারা আইন প্রণয়ন করা হইল"), False),
    (re.compile(r"নিম্নরূপ আইন প্রণয়ন করা হইল"), False),
)

STATUTORY_FOOTNOTE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\[Substituted by\s+[^\]]+\]", re.IGNORECASE),
    re.compile(r"\[Inserted by\s+[^\]]+\]", re.IGNORECASE),
    re.compile(r"\[Omitted by\s+[^\]]+\]", re.IGNORECASE),
    re.compile(r"\[Repealed by\s+[^\]]+\]", re.IGNORECASE),
    re.compile(r"\[Added by\s+[^\]]+\]", re.IGNORECASE),
    re.compile(r"\[Amended by\s+[^\]]+\]", re.IGNORECASE),
    re.compile(r"\[প্রতিস্থাপিত[^\]]*\]"),
    re.compile(r"\[সংযোজিত[^\]]*\]"),
    re.compile(r"\[বিলুপ্ত[^\]]*\]"),
    re.compile(r"\[সংশোধিত[^\]]*\]"),
)

EDITORIAL_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "footnote": (
        re.compile(r"\[[0-9]+\]"),
        re.compile(r"\*{1,3}"),
        re.compile("†"),           # dagger
        re.compile("‡"),           # double dagger
        re.compile(r"\([0-9]+\)"),
        re.compile(r"\[\*\]"),
        re.compile(r"পাদটীকা"),
    ),
    "marginal_note": (
        re.compile(r"\[মার্জিনাল নোট[^\]]*\]"),
        re.compile(r"\[Marginal Note[^\]]*\]", re.IGNORECASE),
        re.compile(r"\[পার্শ্ব টীকা[^\]]*\]"),
        re.compile(r"\[Side Note[^\]]*\]", re.IGNORECASE),
        re.compile(r"মার্জিনাল নোট\s*:"),
        re.compile(r"Marginal Note\s*:", re.IGNORECASE),
    ),
    "editor_annotation": (
        re.compile(r"\[সম্পাদকের নোট[^\]]*\]"),
        re.compile(r"\[Editor'?s? Note[^\]]*\]", re.IGNORECASE),
        re.compile(r"\[Note:[^\]]*\]", re.IGNORECASE),
        re.compile(r"\[Ed\.?:[^\]]*\]", re.IGNORECASE),
        re.compile(r"\[সম্পাদক:[^\]]*\]"),
        re.compile(r"সম্পাদকের নোট\s*:"),
        re.compile(r"Editor'?s? Note\s*:", re.IGNORECASE),
    ),
}

# ---------------------------------------------------------------------------
# Legal signal (accepting body-fallback content)
# ---------------------------------------------------------------------------

LEGAL_SIGNAL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"ধারা"),
    re.compile(r"অধ্যায়"),
    re.compile(r"তফসিল"),
    NUMERAL_DANDA_RE,
    re.compile(r"যেহেতু"),
    re.compile(r"সেহেতু\s*এতদ্বারা"),
    re.compile(r"\bSection\b", re.IGNORECASE),
    re.compile(r"\bChapter\b", re.IGNORECASE),
    re.compile(r"\bSchedule\b", re.IGNORECASE),
    re.compile(r"\bWHEREAS\b", re.IGNORECASE),
    re.compile(r"\bBe\s+it\s+enacted\b", re.IGNORECASE),
)

# ---------------------------------------------------------------------------
# Transformation risk classes
# ---------------------------------------------------------------------------

NON_SEMANTIC_TRANSFORMATIONS: frozenset[str] = frozenset({
    "mojibake",
    "html_entity",
    "broken_unicode",
    "unicode_normalization",
    "encoding_fix",
})
POTENTIAL_SEMANTIC_TRANSFORMATIONS: frozenset[str] = frozenset({
    "ocr_word_correction",
    "ocr_correction",
    "spelling_correction",
    "punctuation_change",
    "word_substitution",
})
