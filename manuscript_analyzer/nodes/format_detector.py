"""Built-in novel/screenplay format detector.

Weighted regex hits for each format plus three layout heuristics
(paragraph length, line length, words per page).  Callers can swap in
their own detector through ``AnalysisOptions.format_detector``.
"""

from __future__ import annotations

import logging
import re

from ..models import DetectedFormat
from ..timing import timed_node

log = logging.getLogger(__name__)

MIN_DETECTABLE_LENGTH = 500
CHARS_PER_PAGE = 3000

SCREENPLAY_PATTERNS = tuple(
    (re.compile(pattern), weight)
    for pattern, weight in (
        # sluglines
        (r"(?m)^(INT\.|EXT\.|INT/EXT\.|I/E\.)", 3.0),
        (r"(?m)^(INTERIOR|EXTERIOR)", 2.5),
        (r"(?m)^[A-Z][A-Z\s]+\s*-\s*(DAY|NIGHT|CONTINUOUS|LATER|MORNING|EVENING|DAWN|DUSK)", 3.0),
        # character cues
        (r"(?m)^\s{20,}[A-Z][A-Z\s]+\s*$", 2.0),
        (r"(?m)^[A-Z]{2,}\s*\(V\.O\.\)|\(O\.S\.\)|\(CONT'D\)", 3.0),
        # parentheticals
        (r"(?m)^\s*\([a-z][^)]+\)\s*$", 2.0),
        # transitions
        (r"(?m)^(FADE IN:|FADE OUT\.|FADE TO:|CUT TO:|DISSOLVE TO:|SMASH CUT:|MATCH CUT:)", 3.0),
        # short action lines
        (r"(?m)^[A-Z][^.!?]{10,80}[.!?]\s*$", 0.5),
        (r"\n{2,}", 0.3),
    )
)

NOVEL_PATTERNS = tuple(
    (re.compile(pattern), weight)
    for pattern, weight in (
        (r"(?i)chapter\s+\d+|chapter\s+[a-z]+", 2.5),
        (r"(?i)^part\s+(one|two|three|four|five|\d+)", 2.0),
        (r"(?m)^[A-Z][^\n]{200,}", 2.0),
        (r"(?i)\b(thought|wondered|realized|felt|believed|remembered|imagined)\b", 1.5),
        (r"(?i)\b(she thought|he thought|I thought)\b", 2.0),
        (r"(?i)\b(said|asked|replied|whispered|shouted|murmured)\b\s*,", 1.5),
        (r"(?i)\b(the\s+\w+\s+was|it\s+was\s+a)\b", 0.5),
        (r"(?i)\b(his|her)\s+(eyes|face|voice|heart|hands)\s+(were|was|seemed)", 1.5),
        (r"(?i)\b(the next morning|hours later|days passed|years ago|that night)\b", 1.5),
    )
)


def _weighted_hits(text: str, patterns) -> float:
    return sum(len(regex.findall(text)) * weight for regex, weight in patterns)


@timed_node("format_detector", "segmentation")
def detect_format(text: str) -> DetectedFormat:
    """Classify *text* as ``novel`` or ``screenplay`` with a confidence."""
    if len(text) <= MIN_DETECTABLE_LENGTH:
        return DetectedFormat("novel", 0.5)

    screenplay = _weighted_hits(text, SCREENPLAY_PATTERNS)
    novel = _weighted_hits(text, NOVEL_PATTERNS)

    paragraphs = [p for p in text.split("\n\n") if p.strip()]
    if paragraphs:
        avg_paragraph = sum(len(p) for p in paragraphs) // len(paragraphs)
        if avg_paragraph < 150:
            screenplay += 3.0
        elif avg_paragraph > 300:
            novel += 3.0

    lines = [line for line in text.split("\n") if line]
    if lines:
        avg_line = sum(len(line) for line in lines) // len(lines)
        if avg_line < 60:
            screenplay += 2.0
        elif avg_line > 80:
            novel += 2.0

    word_count = len(text.split())
    pages = max(1, len(text) // CHARS_PER_PAGE) if paragraphs else 1
    words_per_page = word_count // pages
    if words_per_page < 220:
        screenplay += 2.0
    elif words_per_page > 240:
        novel += 2.0

    total = screenplay + novel
    if total <= 0:
        return DetectedFormat("novel", 0.5)

    probability = screenplay / total
    if probability > 0.6:
        detected = DetectedFormat("screenplay", min(1.0, probability))
    elif probability < 0.4:
        detected = DetectedFormat("novel", min(1.0, 1.0 - probability))
    else:
        detected = DetectedFormat("novel", 0.5)

    log.info("Format detector: %s (%.2f) screenplay=%.1f novel=%.1f",
             detected.format, detected.confidence, screenplay, novel)
    return detected
