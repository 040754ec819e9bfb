"""Dialogue extraction and quality scoring.

Prose dialogue is pulled out with a quote-toggling scan: any of ``"``,
``“`` or ``”`` flips the inside-dialogue state, and each
open/close pair yields one trimmed segment.

Screenplay dialogue is everything under a character cue (a short,
all-caps line that is not a slugline or transition) up to the next blank
line, cue, slugline or transition, joined with spaces.

The scorer runs ten independent checks worth ten points each.
"""

from __future__ import annotations

import logging
import re
import string
from collections import Counter
from typing import Sequence

from ..models import DialogueQualityMetrics
from ..timing import timed_node
from .readability import population_stdev

log = logging.getLogger(__name__)

QUOTE_CHARS = frozenset(['"', "“", "”"])

MAX_CUE_LENGTH = 40
FILLER_RATIO_LIMIT = 0.2
MIN_TAG_VARIETY = 6
MAX_PREDICTABLE = 3
PREDICTABLE_CAP = 5
DEPTH_MIN_AVERAGE = 50
GROWTH_MIN_SEGMENTS = 10
EXPOSITION_MIN_LENGTH = 100
CONFLICT_RATIO = 0.2
PACING_FULL_STDEV = 30.0
PACING_PASS = 60
MONOTONY_CAP = 5

DIALOGUE_FILLERS = (
    "uh", "um", "well", "like", "you know", "actually",
    "basically", "literally", "honestly", "i mean",
    "sort of", "kind of", "you see", "right",
)

PREDICTABLE_DIALOGUE = (
    "we need to talk", "it's not what it looks like",
    "i can explain", "you wouldn't understand",
    "this isn't over", "we meet again",
    "you have no idea", "trust me", "believe me",
    "i'm fine", "everything's fine", "don't worry about it",
    "it's complicated", "long story", "never mind",
    "forget about it", "what are you doing here",
    "who are you", "what do you want",
)

CONFLICT_WORDS = (
    "but", "no", "never", "don't", "can't", "won't",
    "disagree", "wrong", "impossible", "ridiculous",
    "stupid", "idiot", "fool", "liar", "lie",
    "fight", "argue", "angry", "furious", "hate",
)

DIALOGUE_TAGS = (
    "said", "asked", "replied", "answered", "whispered",
    "shouted", "yelled", "muttered", "murmured", "exclaimed",
    "stated", "remarked", "noted", "added", "continued",
)

TRANSITION_PREFIXES = (
    "CUT TO", "FADE IN", "FADE OUT", "SMASH CUT", "DISSOLVE TO",
    "MATCH CUT", "JUMP CUT", "WIPE TO", "FADE TO", "BACK TO",
)

_SCENE_HEADING = re.compile(r"^(INT\.|EXT\.|INT/EXT|EXT/INT|INT\s|EXT\s)")
_CUE_CHARS = re.compile(r"^[A-Z0-9 .()'\"-]+$")
_HAS_LETTER = re.compile(r"[A-Z]")


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def extract_prose_dialogue(text: str) -> list[str]:
    """Return the text between each open/close quote pair, trimmed."""
    segments: list[str] = []
    if not any(q in text for q in QUOTE_CHARS):
        return segments

    inside = False
    current: list[str] = []
    for ch in text:
        if ch in QUOTE_CHARS:
            if inside:
                segment = "".join(current).strip()
                if segment:
                    segments.append(segment)
                current = []
            inside = not inside
        elif inside:
            current.append(ch)
    return segments


def is_scene_heading(line: str) -> bool:
    trimmed = line.strip()
    return bool(trimmed) and bool(_SCENE_HEADING.match(trimmed.upper()))


def is_transition(line: str) -> bool:
    trimmed = line.strip()
    if not trimmed:
        return False
    upper = trimmed.upper()
    return upper.endswith(":") or upper.startswith(TRANSITION_PREFIXES)


def is_character_cue(line: str) -> bool:
    trimmed = line.strip()
    if not trimmed or trimmed.upper() != trimmed:
        return False
    if is_scene_heading(trimmed) or is_transition(trimmed):
        return False
    if len(trimmed) > MAX_CUE_LENGTH or ":" in trimmed:
        return False
    if not _HAS_LETTER.search(trimmed):
        return False
    return bool(_CUE_CHARS.match(trimmed))


def extract_screenplay_dialogue(text: str) -> list[str]:
    lines = text.splitlines()
    while lines and not lines[-1].strip():
        lines.pop()

    segments: list[str] = []
    index = 0
    while index < len(lines):
        if not is_character_cue(lines[index]):
            index += 1
            continue

        index += 1
        buffer: list[str] = []
        while index < len(lines):
            trimmed = lines[index].strip()
            if not trimmed:
                index += 1
                break
            if is_character_cue(trimmed) or is_scene_heading(trimmed) or is_transition(trimmed):
                break
            buffer.append(trimmed)
            index += 1

        combined = " ".join(buffer).strip()
        if combined:
            segments.append(combined)
    return segments


@timed_node("dialogue_extractor", "dialogue")
def extract_dialogue(text: str, screenplay: bool = False) -> list[str]:
    """Extract dialogue segments; screenplay mode falls back to quotes."""
    if screenplay:
        segments = extract_screenplay_dialogue(text)
        if segments:
            return segments
        log.info("No screenplay cues found, falling back to quoted dialogue")
    return extract_prose_dialogue(text)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def _normalize(segment: str) -> str:
    return segment.lower().strip(string.punctuation)


def repetition(segments: Sequence[str]) -> tuple[bool, int, list[str]]:
    """Return ``(has_repetition, score, repeated_segments)``.

    Needs more than five segments; a normalized segment seen more than
    twice is a repetition.
    """
    if len(segments) <= 5:
        return False, 0, []
    counts = Counter(_normalize(s) for s in segments)
    repeated = [phrase for phrase, n in counts.items() if n > 2]
    score = min(100, len(repeated) * 100 // max(1, len(segments)))
    return bool(repeated), score, repeated[:MONOTONY_CAP]


def count_fillers(segments: Sequence[str]) -> int:
    """Segments containing at least one filler."""
    return sum(1 for s in segments if any(f in s.lower() for f in DIALOGUE_FILLERS))


def tag_variety(text: str) -> int:
    lowered = text.lower()
    return sum(1 for tag in DIALOGUE_TAGS if tag in lowered)


def predictable_phrases(segments: Sequence[str]) -> list[str]:
    found: list[str] = []
    for segment in segments:
        lowered = segment.lower()
        for phrase in PREDICTABLE_DIALOGUE:
            if phrase in lowered and phrase not in found:
                found.append(phrase)
                if len(found) >= PREDICTABLE_CAP:
                    return found
    return found


def exposition_count(segments: Sequence[str]) -> int:
    return sum(
        1 for s in segments
        if len(s) > EXPOSITION_MIN_LENGTH and "?" not in s and "!" not in s
    )


def has_conflict(segments: Sequence[str]) -> bool:
    hits = sum(1 for s in segments if any(w in s.lower() for w in CONFLICT_WORDS))
    return hits / max(1, len(segments)) > CONFLICT_RATIO


def has_emotional_variety(segments: Sequence[str]) -> bool:
    exclamation = any("!" in s for s in segments)
    question = any("?" in s for s in segments)
    ellipsis = any("..." in s or "…" in s for s in segments)
    return sum([exclamation, question, ellipsis]) >= 2


def pacing_score(segments: Sequence[str]) -> int:
    if len(segments) < 2:
        return 0
    sd = population_stdev([len(s) for s in segments])
    return min(100, int(sd / PACING_FULL_STDEV * 100))


@timed_node("dialogue_quality", "dialogue")
def score_dialogue(segments: Sequence[str], text: str) -> DialogueQualityMetrics:
    """Score *segments* (extracted from *text*) on the ten dialogue checks."""
    if not segments:
        return DialogueQualityMetrics()

    n = len(segments)
    points = 0

    # depth
    if sum(len(s) for s in segments) // n > DEPTH_MIN_AVERAGE:
        points += 1

    repeated, repetition_score, monotony = repetition(segments)
    if not repeated:
        points += 1

    fillers = count_fillers(segments)
    if fillers / n < FILLER_RATIO_LIMIT:
        points += 1

    tags = tag_variety(text)
    if tags >= MIN_TAG_VARIETY:
        points += 1

    predictable = predictable_phrases(segments)
    if len(predictable) < MAX_PREDICTABLE:
        points += 1

    # vocabulary growth between halves
    if n > GROWTH_MIN_SEGMENTS:
        half = n // 2
        if len(set(segments[n - half:])) > len(set(segments[:half])):
            points += 1

    exposition = exposition_count(segments)
    if exposition < n // 5:
        points += 1

    conflict = has_conflict(segments)
    if conflict:
        points += 1

    if has_emotional_variety(segments):
        points += 1

    pacing = pacing_score(segments)
    if pacing > PACING_PASS:
        points += 1

    log.info("Dialogue: %d segments, %d/10 checks passed", n, points)
    return DialogueQualityMetrics(
        quality_score=points * 10,
        segment_count=n,
        filler_count=fillers,
        repetition_score=repetition_score,
        tag_variety=tags,
        monotony_issues=monotony,
        predictable_phrases=predictable,
        exposition_count=exposition,
        pacing_score=pacing,
        has_conflict=conflict,
    )
