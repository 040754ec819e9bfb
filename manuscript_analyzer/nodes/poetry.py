"""Poetry analyzer.

Runs over the poem body (header stripped) grouped into stanzas.  Every
sub-analysis works on the same per-line token lists, so tokens are
computed once in ``analyze_poetry`` and handed down.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from typing import Iterable, Optional, Sequence

from ..models import (
    SENSES,
    CountedItem,
    EmotionalTrajectory,
    FormalTechnical,
    ImagerySensory,
    MacroStructure,
    PoetryInsights,
    ThemeMotif,
    VoiceRhetoric,
)
from ..timing import timed_node
from .poetry_craft import build_writers_analysis, derive_craft_signals
from .segmentation import (
    POETRY_STOPWORDS,
    build_stanzas,
    content_tokens,
    poetry_body_lines,
    tokenize_poem_words,
)

log = logging.getLogger(__name__)

MIN_POEM_LINES = 2
RHYME_KEY_CHARS = 3

_END_PUNCTUATION = frozenset(".,;:!?\"'”)»—–")
_CAESURA_MARKS = ("—", "–", ":", ";", ",")
_NON_LETTERS = re.compile(r"[^a-z]")

SENSE_WORDS = (
    ("Visual", frozenset([
        "see", "saw", "look", "looked", "light", "bright", "dark", "color", "shadow",
        "glow", "shimmer", "spark", "glitter", "eyes"])),
    ("Auditory", frozenset([
        "hear", "heard", "sound", "sing", "song", "voice", "whisper", "shout", "silence",
        "echo", "rumble", "buzz"])),
    ("Tactile", frozenset([
        "touch", "feel", "felt", "cold", "warm", "hot", "soft", "hard", "rough", "smooth",
        "skin", "bone"])),
    ("Olfactory", frozenset([
        "smell", "scent", "odor", "fragrant", "musty", "stale", "fresh", "acrid", "perfume"])),
    ("Gustatory", frozenset([
        "taste", "tasted", "sweet", "sour", "bitter", "salt", "salty", "honey", "tongue"])),
    ("Kinesthetic", frozenset([
        "run", "ran", "walk", "walked", "move", "moved", "fall", "fell", "rise", "rising",
        "turn", "lean", "tremble", "shiver"])),
)

FIRST_PERSON = frozenset(["i", "me", "my", "mine", "myself"])
SECOND_PERSON = frozenset(["you", "your", "yours", "yourself"])
THIRD_PERSON = frozenset(["he", "him", "his", "she", "her", "hers", "they", "them", "their", "theirs"])
NARRATIVE_VERBS = frozenset([
    "said", "say", "told", "tell", "asked", "ask", "went", "go", "came", "come", "took", "take",
    "made", "make", "saw", "see", "heard", "hear", "did", "do", "had", "have", "was", "were",
    "fell", "fall", "rose", "rise",
])
HEDGES = frozenset(["maybe", "perhaps", "seems", "seemed", "almost", "nearly", "kind", "sort", "possibly"])
MODALITY = frozenset(["must", "should", "ought", "need", "can't", "cannot", "won't", "never", "always"])
VOLTA_CUES = frozenset(["but", "yet", "however", "though", "although", "instead", "still", "then", "so", "therefore"])

POSITIVE = frozenset([
    "love", "loved", "light", "bright", "warm", "hope", "joy", "gentle", "tender", "laugh",
    "smile", "grace", "bloom",
])
NEGATIVE = frozenset([
    "dark", "cold", "fear", "grief", "sad", "sorrow", "hate", "anger", "alone", "lonely",
    "hurt", "loss", "die", "dead", "empty",
])
INTENSIFIERS = frozenset(["very", "so", "too", "utterly", "completely", "always", "never"])

NARRATIVE_MARKERS = frozenset([
    "then", "when", "after", "before", "suddenly", "later", "once", "while", "until",
    "walk", "walked", "run", "ran", "went", "go", "came", "come", "turned", "turn", "took",
    "take", "gave", "give", "made", "make",
    "said", "say", "told", "tell", "asked", "ask",
])
ADDRESS_MARKERS = frozenset(["you", "your", "yours", "thou", "thee", "thy", "thine", "ye", "o", "oh"])
CONTEMPLATION_VERBS = frozenset([
    "think", "thought", "know", "knew", "see", "saw", "seem", "seems", "remember", "imagine",
    "wonder", "ask", "tell", "consider",
])
ABSTRACT_MARKERS = frozenset([
    "truth", "beauty", "time", "eternity", "forever", "still", "silence", "mind", "soul", "idea", "meaning",
])


def _round(value: float) -> int:
    return math.floor(value + 0.5)


def top_counted(counts: Counter, limit: int, min_count: int) -> list[CountedItem]:
    """Items seen at least *min_count* times, by count then alphabetically."""
    ranked = sorted(
        ((text, n) for text, n in counts.items() if n >= min_count),
        key=lambda item: (-item[1], item[0]),
    )
    return [CountedItem(text, n) for text, n in ranked[:limit]]


def sample_stdev(values: Sequence[float]) -> float:
    if len(values) < 2:
        return 0.0
    mean = sum(values) / len(values)
    return math.sqrt(sum((v - mean) ** 2 for v in values) / (len(values) - 1))


# ---------------------------------------------------------------------------
# Formal / technical
# ---------------------------------------------------------------------------

def rhyme_key(line: str) -> str:
    """Last three letters of the line's final word, or ``""``."""
    pieces = line.split()
    if not pieces:
        return ""
    cleaned = _NON_LETTERS.sub("", pieces[-1].lower())
    return cleaned[-RHYME_KEY_CHARS:]


def rhyme_scheme(stanza: Sequence[str]) -> str:
    letters: dict[str, str] = {}
    scheme: list[str] = []
    for line in stanza:
        key = rhyme_key(line)
        if not key:
            scheme.append("-")
            continue
        if key not in letters:
            letters[key] = chr(ord("A") + len(letters))
        scheme.append(letters[key])
    return "".join(scheme)


def is_enjambed(line: str) -> bool:
    trimmed = line.strip()
    return bool(trimmed) and trimmed[-1] not in _END_PUNCTUATION


def has_caesura(line: str) -> bool:
    trimmed = line.strip()
    if not trimmed:
        return False
    mid = len(trimmed) // 2
    left, right = trimmed[:mid], trimmed[mid:]
    return any(mark in left for mark in _CAESURA_MARKS) and len(right.strip()) > 2


def alliteration_examples(lines: Sequence[str], limit: int = 6) -> list[str]:
    """Per line, the longest run of words sharing an initial letter."""
    examples: list[str] = []
    for number, line in enumerate(lines, 1):
        best: Optional[tuple[str, int]] = None
        run_char: Optional[str] = None
        run_len = 0
        for word in line.split():
            cleaned = _NON_LETTERS.sub("", word.lower())
            if not cleaned:
                continue
            if cleaned[0] == run_char:
                run_len += 1
                continue
            if run_char is not None and run_len >= 2 and (best is None or run_len > best[1]):
                best = (run_char, run_len)
            run_char, run_len = cleaned[0], 1
        if run_char is not None and run_len >= 2 and (best is None or run_len > best[1]):
            best = (run_char, run_len)
        if best is not None:
            examples.append(f"Line {number}: repeated initial '{best[0]}' ({best[1]}×)")
        if len(examples) >= limit:
            break
    return examples


def formal_technical(stanzas: Sequence[Sequence[str]], tokens_by_line: Sequence[Sequence[str]]) -> FormalTechnical:
    lines = [line for stanza in stanzas for line in stanza]
    lengths = [len(line.strip()) for line in lines]
    n = len(lines)

    repetitions: Counter = Counter()
    openings: Counter = Counter()
    for tokens in tokens_by_line:
        repetitions.update(content_tokens(tokens))
        leading = [t for t in tokens if t not in POETRY_STOPWORDS]
        if leading:
            openings[leading[0]] += 1
        if len(leading) >= 2:
            openings[f"{leading[0]} {leading[1]}"] += 1

    return FormalTechnical(
        line_count=n,
        stanza_count=len(stanzas),
        average_line_length=_round(sum(lengths) / n) if n else 0,
        line_length_std_dev=sample_stdev(lengths),
        enjambment_rate=sum(1 for line in lines if is_enjambed(line)) / n if n else 0.0,
        caesura_rate=sum(1 for line in lines if has_caesura(line)) / n if n else 0.0,
        rhyme_scheme_by_stanza=[rhyme_scheme(s) for s in stanzas],
        notable_repetitions=top_counted(repetitions, 8, 2),
        notable_anaphora=top_counted(openings, 6, 2),
        alliteration_examples=alliteration_examples(lines),
    )


# ---------------------------------------------------------------------------
# Imagery, voice, emotion, motifs
# ---------------------------------------------------------------------------

def analyze_imagery(tokens_by_line: Iterable[Sequence[str]]) -> ImagerySensory:
    """Each token counts toward the first sense whose lexicon holds it."""
    counts = {sense: 0 for sense in SENSES}
    tokens_seen: Counter = Counter()
    for tokens in tokens_by_line:
        for token in tokens:
            for sense, words in SENSE_WORDS:
                if token in words:
                    counts[sense] += 1
                    tokens_seen[token] += 1
                    break

    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    dominant = [sense for sense, n in ranked if n > 0][:2]
    return ImagerySensory(
        counts_by_sense=counts,
        dominant_senses=dominant,
        top_sensory_tokens=top_counted(tokens_seen, 8, 1),
    )


def address_mode(first: int, second: int, third: int, narrative_hits: int, quoteish: int) -> str:
    if second > first and second > 0:
        return "Address (speaker → you)"
    if third > max(first, second) and (narrative_hits >= 6 or quoteish >= 2):
        return "Narrative / storytelling voice (speaker → scene)"
    if first > 0:
        return "First-person stance (speaker-centered)"
    return "Observational / descriptive"


def analyze_voice(lines: Sequence[str], tokens_by_line: Sequence[Sequence[str]]) -> VoiceRhetoric:
    first = second = third = questions = exclamations = narrative = quoteish = 0
    hedges: Counter = Counter()
    modality: Counter = Counter()
    volta: Optional[int] = None

    for number, (line, tokens) in enumerate(zip(lines, tokens_by_line), 1):
        trimmed = line.strip()
        if trimmed.endswith("?"):
            questions += 1
        if trimmed.endswith("!"):
            exclamations += 1
        if any(q in trimmed for q in ('"', "“", "”")):
            quoteish += 1
        for token in tokens:
            first += token in FIRST_PERSON
            second += token in SECOND_PERSON
            third += token in THIRD_PERSON
            narrative += token in NARRATIVE_VERBS
            if token in HEDGES:
                hedges[token] += 1
            if token in MODALITY:
                modality[token] += 1
        if volta is None and any(t in VOLTA_CUES for t in tokens):
            volta = number

    return VoiceRhetoric(
        first_person_pronouns=first,
        second_person_pronouns=second,
        third_person_pronouns=third,
        questions=questions,
        exclamations=exclamations,
        hedges=top_counted(hedges, 6, 1),
        modality=top_counted(modality, 6, 1),
        likely_address_mode=address_mode(first, second, third, narrative, quoteish),
        candidate_volta_line=volta,
    )


def line_affect(line: str, tokens: Sequence[str]) -> float:
    pos = sum(1 for t in tokens if t in POSITIVE)
    neg = sum(1 for t in tokens if t in NEGATIVE)
    amp = sum(1 for t in tokens if t in INTENSIFIERS)
    score = (pos - neg) / max(1, pos + neg)
    if line.strip().endswith("!"):
        score = max(-1.0, min(1.0, score * 1.15))
    if amp:
        score = max(-1.0, min(1.0, score * (1.0 + min(0.25, amp * 0.05))))
    return score


def _top_shifts(scores: Sequence[float]) -> list[int]:
    deltas = [abs(b - a) for a, b in zip(scores, scores[1:])]
    ranked = sorted(range(len(deltas)), key=lambda i: -deltas[i])[:3]
    return sorted(i + 1 for i in ranked)


def _argmax(values: Sequence[float]) -> Optional[int]:
    return values.index(max(values)) + 1 if values else None


def _argmin(values: Sequence[float]) -> Optional[int]:
    return values.index(min(values)) + 1 if values else None


def analyze_emotion(
    lines: Sequence[str],
    tokens_by_line: Sequence[Sequence[str]],
    stanza_line_counts: Sequence[int],
    volta_line: Optional[int] = None,
) -> EmotionalTrajectory:
    """Lexical affect per line and per stanza; indices are 1-based."""
    scores = [line_affect(line, tokens) for line, tokens in zip(lines, tokens_by_line)]

    stanza_scores: list[float] = []
    cursor = 0
    for count in stanza_line_counts:
        chunk = scores[cursor:cursor + count]
        if not chunk:
            break
        stanza_scores.append(sum(chunk) / len(chunk))
        cursor += count

    deltas = [abs(b - a) for a, b in zip(scores, scores[1:])]
    shift_lines = _top_shifts(scores)
    shift_stanzas = _top_shifts(stanza_scores)

    if volta_line is not None:
        if volta_line not in shift_lines:
            shift_lines = sorted(shift_lines + [volta_line])
        end = 0
        for index, count in enumerate(stanza_line_counts, 1):
            end += count
            if volta_line <= end:
                if index not in shift_stanzas:
                    shift_stanzas = sorted(shift_stanzas + [index])
                break

    return EmotionalTrajectory(
        line_scores=scores,
        stanza_scores=stanza_scores,
        peak_line=_argmax(scores),
        trough_line=_argmin(scores),
        peak_stanza=_argmax(stanza_scores),
        trough_stanza=_argmin(stanza_scores),
        volatility=sum(deltas) / len(deltas) if deltas else 0.0,
        notable_shift_lines=shift_lines,
        notable_shift_stanzas=shift_stanzas,
    )


def analyze_motifs(tokens_by_line: Sequence[Sequence[str]]) -> ThemeMotif:
    words: Counter = Counter()
    bigrams: Counter = Counter()
    for tokens in tokens_by_line:
        content = content_tokens(tokens)
        words.update(content)
        bigrams.update(f"{a} {b}" for a, b in zip(content, content[1:]))
    return ThemeMotif(top_motifs=top_counted(words, 10, 2), repeated_phrases=top_counted(bigrams, 6, 2))


def macro_structure(stanzas: Sequence[Sequence[str]]) -> MacroStructure:
    """Stanza sizes; longest/shortest are 0-based, first occurrence wins."""
    counts = [len(s) for s in stanzas]
    if not counts:
        return MacroStructure()
    return MacroStructure(
        stanza_line_counts=counts,
        longest_stanza_index=counts.index(max(counts)),
        shortest_stanza_index=counts.index(min(counts)),
    )


# ---------------------------------------------------------------------------
# Mode
# ---------------------------------------------------------------------------

def classify_mode(lines: Sequence[str], tokens_by_line: Sequence[Sequence[str]]) -> tuple[str, str]:
    """Return ``(mode, rationale)``: Narrative, Contemplative, Lyric or Hybrid."""
    action = reflection = address = past = 0
    for tokens in tokens_by_line:
        for t in tokens:
            action += t in NARRATIVE_MARKERS
            address += t in ADDRESS_MARKERS
            reflection += t in CONTEMPLATION_VERBS
            reflection += t in ABSTRACT_MARKERS
            past += t.endswith("ed") and len(t) > 3

    action += min(6, sum(1 for line in lines if '"' in line))
    action += min(8, past)
    questions = sum(1 for line in lines if "?" in line)
    contemplation = reflection + address // 2 + questions * 2

    if action >= contemplation + 10:
        return "Narrative", "Leans narrative: action/sequence signals dominate (events/scenes implied)."
    if contemplation >= action + 10:
        return "Contemplative", (
            "Leans contemplative: direct address/questions/ideas outweigh event markers. "
            "Plot may stay static; what changes is the speaker’s stance or understanding."
        )
    if reflection + address >= action + 4:
        return "Lyric", "Leans lyric: voice and interior pressure outweigh event markers."
    return "Hybrid", "Hybrid: voice cues and event cues are both present."


def _section_senses(tokens_by_line: Sequence[Sequence[str]]) -> list[list[str]]:
    n = len(tokens_by_line)
    if not n:
        return []
    third = max(1, n // 3)
    sections = (
        tokens_by_line[:third],
        tokens_by_line[third:2 * third],
        tokens_by_line[-max(1, n - 2 * third):],
    )
    return [analyze_imagery(section).dominant_senses for section in sections]


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def poem_word_count(text: str) -> int:
    return sum(len(tokenize_poem_words(line)) for line in poetry_body_lines(text))


@timed_node("poetry_analyzer", "poetry")
def analyze_poetry(text: str) -> Optional[PoetryInsights]:
    """Full poetry read, or ``None`` when the body has fewer than two lines."""
    stanzas = build_stanzas(poetry_body_lines(text))
    lines = [line for stanza in stanzas for line in stanza]
    if len(lines) < MIN_POEM_LINES:
        log.warning("Poetry analysis skipped: %d line(s) after header stripping", len(lines))
        return None

    tokens_by_line = [tokenize_poem_words(line) for line in lines]
    formal = formal_technical(stanzas, tokens_by_line)
    imagery = analyze_imagery(tokens_by_line)
    voice = analyze_voice(lines, tokens_by_line)
    structure = macro_structure(stanzas)
    emotion = analyze_emotion(lines, tokens_by_line, structure.stanza_line_counts, voice.candidate_volta_line)
    motif = analyze_motifs(tokens_by_line)
    mode, rationale = classify_mode(lines, tokens_by_line)

    signals = derive_craft_signals(
        lines, stanzas, tokens_by_line, formal, imagery, voice, emotion, motif,
        mode, rationale, _section_senses(tokens_by_line),
    )
    writers = build_writers_analysis(signals)
    log.info("Poetry: %d lines, %d stanzas, mode %s, form %s",
             formal.line_count, formal.stanza_count, mode, writers.form_context)
    return PoetryInsights(
        formal=formal,
        imagery=imagery,
        voice=voice,
        emotion=emotion,
        motif=motif,
        structure=structure,
        writers=writers,
    )
