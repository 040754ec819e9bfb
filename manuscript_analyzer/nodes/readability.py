"""Readability and structural metrics.

Syllable estimates, Flesch-Kincaid grade, sentence-length variety, page
counts and the dialogue share of the text.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from ..timing import timed_node
from .segmentation import count_words, split_sentences, tokenize_words

log = logging.getLogger(__name__)

MAX_GRADE = 18
VARIETY_FULL_STDEV = 5.0
WORDS_PER_PAGE = 250
SCREENPLAY_LINES_PER_PAGE = 55

_VOWELS = frozenset("aeiouy")


def count_syllables(word: str) -> int:
    word = word.lower()
    count = 0
    previous_vowel = False
    for ch in word:
        is_vowel = ch in _VOWELS
        if is_vowel and not previous_vowel:
            count += 1
        previous_vowel = is_vowel
    if word.endswith("e") and count > 1:
        count -= 1
    return max(count, 1)


@timed_node("reading_level", "metric")
def reading_level(text: str, word_count: int, sentence_count: int) -> str:
    """Flesch-Kincaid grade rendered as ``"Grade N"`` (``"--"`` when undefined)."""
    if word_count <= 0 or sentence_count <= 0:
        return "--"
    syllables = sum(count_syllables(w) for w in tokenize_words(text))
    grade = (
        0.39 * (word_count / sentence_count)
        + 11.8 * (syllables / word_count)
        - 15.59
    )
    return f"Grade {int(max(0.0, min(float(MAX_GRADE), grade)))}"


def population_stdev(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


@timed_node("sentence_variety", "metric")
def sentence_variety(text: str) -> tuple[int, list[int]]:
    """Return ``(score, lengths)``; a stdev of 5 words or more scores 100."""
    sentences = split_sentences(text)
    if len(sentences) < 2:
        return 0, []
    lengths = [count_words(s) for s in sentences]
    sd = population_stdev(lengths)
    return min(100, int(sd / VARIETY_FULL_STDEV * 100)), lengths


def screenplay_page_count(text: str) -> int:
    lines = text.splitlines()
    while lines and not lines[-1].strip():
        lines.pop()
    return max(1, math.ceil(max(1, len(lines)) / SCREENPLAY_LINES_PER_PAGE))


@timed_node("page_count", "metric")
def page_count(
    text: str,
    word_count: int,
    is_screenplay: bool,
    override: Optional[int] = None,
) -> int:
    if override is not None and override > 0:
        return override
    if word_count <= 0 and not text.strip():
        return 0
    if is_screenplay:
        return screenplay_page_count(text)
    return max(1, math.ceil(word_count / WORDS_PER_PAGE))


def dialogue_percentage(dialogue_segments: Sequence[str], total_words: int) -> int:
    if total_words <= 0 or not dialogue_segments:
        return 0
    dialogue_words = sum(count_words(s) for s in dialogue_segments)
    return int(dialogue_words / total_words * 100)
