"""Segmentation — words, sentences, paragraphs, chapters, poem lines.

Every other node reads text through these helpers, so the splitting rules
live in one place:

- words are whitespace-delimited tokens
- sentences are fragments between ``.``, ``!`` and ``?``
- paragraphs are non-blank lines
- chapters come from the caller's outline when it has a chapter-like
  level, otherwise from marker lines (``Chapter 3``, ``CH. 3``, ``3.``)
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from ..models import Chapter, OutlineEntry, PageLocation, ParagraphStats
from ..timing import timed_node

log = logging.getLogger(__name__)

LONG_PARAGRAPH_WORDS = 150
MAX_LEVEL2_CHAPTERS = 10

_SENTENCE_SPLIT = re.compile(r"[.!?]")
_CHAPTER_MARKER = re.compile(r"^(?:Chapter \d+|CHAPTER \d+|Ch\. \d+|\d+\.|# Chapter)")
_CHAPTER_TITLE = re.compile(r"^\s*chapter\s+(?:\d+|[ivxlcdm]+|[a-z]+)\b", re.IGNORECASE)
_POEM_TOKEN = re.compile(r"(?:[^\W\d_]|')+")
_HEADER_PUNCTUATION = set(".,;:!?")

POETRY_STOPWORDS = frozenset([
    "the", "a", "an", "and", "or", "but", "if", "then", "so", "than", "as",
    "to", "of", "in", "on", "at", "by", "for", "from", "with", "without", "into", "over", "under",
    "is", "are", "was", "were", "be", "been", "being", "do", "did", "does", "have", "has", "had",
    "i", "me", "my", "mine", "you", "your", "yours", "we", "us", "our", "ours",
    "he", "him", "his", "she", "her", "hers", "they", "them", "their", "theirs",
    "this", "that", "these", "those", "it", "its", "not", "no", "yes", "all", "any", "some",
    "there", "here", "where", "when", "why", "how", "what", "who", "whom",
    "up", "down", "out", "off", "again", "once", "very", "just", "only", "even",
])


# ---------------------------------------------------------------------------
# Words, sentences, paragraphs
# ---------------------------------------------------------------------------

def tokenize_words(text: str) -> list[str]:
    return text.split()


def count_words(text: str) -> int:
    return len(text.split())


def split_sentences(text: str) -> list[str]:
    return [s for s in _SENTENCE_SPLIT.split(text) if s.strip()]


def count_sentences(text: str) -> int:
    return len(split_sentences(text))


def split_paragraphs(text: str) -> list[str]:
    return [p for p in text.splitlines() if p.strip()]


@timed_node("paragraph_stats", "segmentation")
def paragraph_stats(text: str) -> ParagraphStats:
    """Count non-blank lines, their average word count, and flag long ones.

    ``long_paragraphs`` holds 1-based paragraph indices.
    """
    paragraphs = split_paragraphs(text)
    if not paragraphs:
        return ParagraphStats()

    total = 0
    long_ones: list[int] = []
    for index, paragraph in enumerate(paragraphs, start=1):
        words = count_words(paragraph)
        total += words
        if words > LONG_PARAGRAPH_WORDS:
            long_ones.append(index)

    return ParagraphStats(
        count=len(paragraphs),
        average_length=total // len(paragraphs),
        long_paragraphs=long_ones,
    )


# ---------------------------------------------------------------------------
# Chapters
# ---------------------------------------------------------------------------

@timed_node("chapter_splitter", "segmentation")
def split_into_chapters(text: str, outline: Sequence[OutlineEntry] = ()) -> list[Chapter]:
    """Split *text* into ordered chapters.

    The outline wins when it has usable entries; offsets past the end of
    the text are clamped rather than rejected.  Without an outline the
    marker-line scan is used, and without markers the whole text is a
    single chapter.
    """
    entries = _chapter_entries(outline)
    if entries:
        chapters = _chapters_from_outline(text, entries)
        log.info("Chapters from outline: %d", len(chapters))
        return chapters

    chapters = _chapters_from_markers(text)
    log.info("Chapters from markers: %d", len(chapters))
    return chapters


def _chapter_entries(outline: Sequence[OutlineEntry]) -> list[OutlineEntry]:
    """Pick the most chapter-like subset of the outline."""
    if not outline:
        return []

    titled = [e for e in outline if _CHAPTER_TITLE.match(e.title)]
    if titled:
        return titled

    for level in (1, 0):
        at_level = [e for e in outline if e.level == level]
        if at_level:
            return at_level

    return [e for e in outline if e.level == 2][:MAX_LEVEL2_CHAPTERS]


def _chapters_from_outline(text: str, entries: list[OutlineEntry]) -> list[Chapter]:
    length = len(text)
    ordered = sorted(entries, key=lambda e: e.range_start)
    chapters: list[Chapter] = []
    for index, entry in enumerate(ordered):
        start = min(max(0, entry.range_start), length)
        if index < len(ordered) - 1:
            end = ordered[index + 1].range_start
        else:
            end = length
        end = min(max(start, end), length)
        chapters.append(Chapter(
            number=index + 1,
            text=text[start:end],
            start=start,
            title=entry.title.strip(),
        ))
    return chapters


def _chapters_from_markers(text: str) -> list[Chapter]:
    chapters: list[Chapter] = []
    current: list[str] = []
    current_start = 0
    current_title = ""
    offset = 0

    for line in text.splitlines(keepends=True):
        trimmed = line.strip()
        if _CHAPTER_MARKER.match(trimmed) and "".join(current).strip():
            chapters.append(Chapter(len(chapters) + 1, "".join(current), current_start, current_title))
            current = []
            current_start = offset
            current_title = trimmed
        elif _CHAPTER_MARKER.match(trimmed) and not current_title:
            current_title = trimmed
        current.append(line)
        offset += len(line)

    if current or not chapters:
        chapters.append(Chapter(len(chapters) + 1, "".join(current), current_start, current_title))
    return chapters


def page_for_location(location: int, page_mapping: Sequence[PageLocation]) -> int:
    """Page of the last mapping entry at or before *location* (0 if none)."""
    page = 0
    for entry in sorted(page_mapping, key=lambda p: p.location):
        if entry.location > location:
            break
        page = entry.page
    return page


# ---------------------------------------------------------------------------
# Poems
# ---------------------------------------------------------------------------

def poetry_body_lines(text: str) -> list[str]:
    """Return the poem's lines with a title/author header stripped.

    Two header shapes are recognised: 1-3 short lines closed by a blank
    line within the first five lines, or (for bodies of 8+ lines) up to
    three short unpunctuated lines at the very top.
    """
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = normalized.split("\n")

    first_blank = next((i for i, line in enumerate(lines) if not line.strip()), None)
    if first_blank is not None and 0 < first_blank <= 5:
        header = [line.strip() for line in lines[:first_blank] if line.strip()]
        if 1 <= len(header) <= 3 and all(len(h) <= 80 for h in header):
            lines = lines[first_blank + 1:]

    if sum(1 for line in lines if line.strip()) >= 8:
        last_header = -1
        found = 0
        for index, line in enumerate(lines):
            trimmed = line.strip()
            if not trimmed:
                continue
            if found < 3 and _is_header_candidate(trimmed):
                last_header = index
                found += 1
                continue
            break
        if last_header >= 0:
            lines = lines[last_header + 1:]

    return lines


def _is_header_candidate(trimmed: str) -> bool:
    if len(trimmed) > 60:
        return False
    return not any(ch in _HEADER_PUNCTUATION for ch in trimmed)


def build_stanzas(lines: Sequence[str]) -> list[list[str]]:
    """Group contiguous non-blank lines; a blank line closes a stanza."""
    stanzas: list[list[str]] = []
    current: list[str] = []
    for line in lines:
        if not line.strip():
            if current:
                stanzas.append(current)
                current = []
            continue
        current.append(line)
    if current:
        stanzas.append(current)
    return stanzas


def tokenize_poem_words(line: str) -> list[str]:
    """Lowercase runs of letters and apostrophes."""
    return _POEM_TOKEN.findall(line.lower())


def content_tokens(tokens: Sequence[str]) -> list[str]:
    """Tokens that are not stopwords and longer than two characters."""
    return [t for t in tokens if t not in POETRY_STOPWORDS and len(t) > 2]
