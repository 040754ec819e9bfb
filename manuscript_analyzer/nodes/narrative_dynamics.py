"""Narrative dynamics — relationships, inner/outer alignment, language drift.

Lexicon heuristics over the sentences that name a character.  They are
coarse signals for charts, computed only for validated characters and
only over sampled chapters where the character appears.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from ..models import (
    AlignmentPoint,
    Chapter,
    CharacterAlignment,
    CharacterDrift,
    CharacterInteraction,
    CharacterPresence,
    CharacterRegistry,
    DriftPoint,
    DriftSummary,
    EvolutionPoint,
    InternalExternalAlignmentData,
    LanguageDriftData,
    RelationshipEdge,
    RelationshipEvolutionData,
    RelationshipNode,
)
from ..timing import timed_node
from .character_arcs import sample_chapter_indices
from .character_registry import alias_patterns, character_aliases, mentions
from .segmentation import split_sentences

log = logging.getLogger(__name__)

POWER_RATIO = 1.5
GAP_CHANGE = 0.1
TREND_DELTA = 0.1
SENTENCE_LENGTH_DELTA = 2.0

_WORD = re.compile(r"[a-z']+")

TRUST_WORDS = frozenset([
    "trust", "trusted", "helped", "help", "smiled", "laughed", "embraced", "hugged",
    "agreed", "thanked", "comforted", "protected", "saved", "forgave", "together",
    "friend", "friends", "loved", "love", "kind", "gently", "supported",
])
CONFLICT_WORDS = frozenset([
    "argued", "argue", "fought", "fight", "shouted", "yelled", "glared", "accused",
    "betrayed", "lied", "hated", "hate", "threatened", "refused", "blamed", "angry",
    "furious", "struck", "slapped", "ignored", "against", "enemy",
])

INTERIOR_WORDS = frozenset([
    "felt", "feel", "feels", "thought", "think", "thinks", "feared", "fear", "wondered",
    "wonder", "hoped", "hope", "wished", "wish", "remembered", "remember", "believed",
    "believe", "knew", "know", "realized", "doubted", "longed", "dreaded", "ashamed",
    "guilt", "secretly", "inside", "heart", "mind",
])
ACTION_WORDS = frozenset([
    "walked", "ran", "grabbed", "said", "smiled", "nodded", "turned", "opened", "closed",
    "took", "gave", "laughed", "shouted", "pushed", "pulled", "stood", "sat", "left",
    "entered", "looked", "answered", "replied", "shrugged", "reached", "threw", "moved",
])

FIRST_SINGULAR = frozenset(["i", "me", "my", "mine", "myself"])
FIRST_PLURAL = frozenset(["we", "us", "our", "ours", "ourselves"])
OBLIGATION_MODALS = ("must", "have to", "has to", "need to", "needs to", "should", "ought to")
CHOICE_MODALS = ("choose", "chose", "can", "could", "want to", "wants to", "decide", "will")
EMOTION_WORDS = frozenset([
    "love", "loved", "hate", "hated", "fear", "afraid", "angry", "anger", "joy", "happy",
    "sad", "grief", "sorrow", "hope", "despair", "shame", "guilt", "pride", "jealous",
    "lonely", "furious", "terrified", "delighted", "miserable", "anxious",
])
CERTAINTY_WORDS = frozenset([
    "know", "knew", "certain", "certainly", "sure", "always", "never", "definitely",
    "absolutely", "clearly", "obviously", "will",
])
HEDGE_WORDS = frozenset([
    "maybe", "perhaps", "might", "possibly", "probably", "seems", "seemed", "guess",
    "somehow", "almost", "unsure", "wondered",
])


def _words(sentence: str) -> list[str]:
    return _WORD.findall(sentence.lower())


def _character_sentences(chapter: Chapter, patterns) -> list[str]:
    return [s.strip() for s in split_sentences(chapter.text) if mentions(patterns, s)]


def _sampled_appearances(chapters: Sequence[Chapter], patterns) -> list[Chapter]:
    return [
        chapters[i] for i in sample_chapter_indices(len(chapters))
        if mentions(patterns, chapters[i].text)
    ]


# ---------------------------------------------------------------------------
# Relationship evolution
# ---------------------------------------------------------------------------

def _trust_score(sentences: Sequence[str]) -> float:
    trust = conflict = 0
    for sentence in sentences:
        for word in _words(sentence):
            if word in TRUST_WORDS:
                trust += 1
            elif word in CONFLICT_WORDS:
                conflict += 1
    return (trust - conflict) / max(1, trust + conflict)


def _describe_trust(level: float) -> str:
    if level >= 0.3:
        return "Trust building"
    if level <= -0.3:
        return "Conflict"
    return "Neutral"


@timed_node("relationship_evolution", "character")
def relationship_evolution(
    chapters: Sequence[Chapter],
    names: Sequence[str],
    presence: Sequence[CharacterPresence],
    pairs: Sequence[CharacterInteraction],
    registry: CharacterRegistry = CharacterRegistry(),
) -> RelationshipEvolutionData:
    totals = {p.character_name: p.total for p in presence}
    peak = max(totals.values(), default=0)
    nodes = [
        RelationshipNode(name, totals.get(name, 0) / peak if peak else 0.0)
        for name in names
    ]

    patterns = {name: alias_patterns(character_aliases(registry, name)) for name in names}
    sampled = [chapters[i] for i in sample_chapter_indices(len(chapters))]
    edges: list[RelationshipEdge] = []
    for pair in pairs:
        a, b = pair.character1, pair.character2
        evolution: list[EvolutionPoint] = []
        a_first = b_first = 0
        for chapter in sampled:
            shared = [
                s for s in split_sentences(chapter.text)
                if mentions(patterns[a], s) and mentions(patterns[b], s)
            ]
            if not shared:
                continue
            level = _trust_score(shared)
            evolution.append(EvolutionPoint(chapter.number, level, _describe_trust(level)))
            for sentence in shared:
                pos_a = min(m.start() for p in patterns[a] for m in p.finditer(sentence))
                pos_b = min(m.start() for p in patterns[b] for m in p.finditer(sentence))
                if pos_a < pos_b:
                    a_first += 1
                elif pos_b < pos_a:
                    b_first += 1

        trust = sum(e.trust_level for e in evolution) / len(evolution) if evolution else 0.0
        if a_first >= max(1, b_first) * POWER_RATIO:
            power = a
        elif b_first >= max(1, a_first) * POWER_RATIO:
            power = b
        else:
            power = "balanced"
        edges.append(RelationshipEdge(a, b, trust, power, evolution))

    return RelationshipEvolutionData(nodes=nodes, edges=edges)


# ---------------------------------------------------------------------------
# Internal vs external alignment
# ---------------------------------------------------------------------------

def _share(sentences: Sequence[str], lexicon: frozenset[str]) -> float:
    if not sentences:
        return 0.0
    hits = sum(1 for s in sentences if lexicon.intersection(_words(s)))
    return hits / len(sentences)


def _level_label(value: float, low: str, mid: str, high: str) -> str:
    if value >= 0.5:
        return high
    if value >= 0.2:
        return mid
    return low


def gap_trend(points: Sequence[AlignmentPoint]) -> str:
    if len(points) < 2:
        return "Fluctuating"

    deltas = [b.gap - a.gap for a, b in zip(points, points[1:]) if abs(b.gap - a.gap) >= 0.05]
    reversals = sum(1 for x, y in zip(deltas, deltas[1:]) if (x > 0) != (y > 0))
    if reversals >= 2:
        return "Fluctuating"

    change = points[-1].gap - points[0].gap
    if change >= GAP_CHANGE:
        return "Widening (Denial/Repression)"
    if change <= -GAP_CHANGE:
        last = points[-1]
        if last.inner_truth < 0.3 and last.outer_behavior < 0.3:
            return "Closing (Collapse)"
        return "Closing (Integration)"
    return "Stabilizing (Coping)"


@timed_node("internal_external_alignment", "character")
def internal_external_alignment(
    chapters: Sequence[Chapter],
    names: Sequence[str],
    registry: CharacterRegistry = CharacterRegistry(),
) -> InternalExternalAlignmentData:
    characters: list[CharacterAlignment] = []
    for name in names:
        patterns = alias_patterns(character_aliases(registry, name))
        points: list[AlignmentPoint] = []
        for chapter in _sampled_appearances(chapters, patterns):
            sentences = _character_sentences(chapter, patterns)
            if not sentences:
                continue
            inner = _share(sentences, INTERIOR_WORDS)
            outer = _share(sentences, ACTION_WORDS)
            points.append(AlignmentPoint(
                chapter=chapter.number,
                inner_truth=inner,
                outer_behavior=outer,
                inner_label=_level_label(inner, "Guarded", "Reflective", "Exposed"),
                outer_label=_level_label(outer, "Still", "Active", "Driven"),
            ))
        characters.append(CharacterAlignment(name, points, gap_trend(points)))
    return InternalExternalAlignmentData(characters=characters)


# ---------------------------------------------------------------------------
# Language drift
# ---------------------------------------------------------------------------

def _phrase_hits(sentences: Sequence[str], phrases: Sequence[str]) -> int:
    total = 0
    for sentence in sentences:
        padded = " " + " ".join(_words(sentence)) + " "
        total += sum(padded.count(" " + p + " ") for p in phrases)
    return total


def _drift_point(chapter: int, sentences: Sequence[str]) -> DriftPoint:
    words = [w for s in sentences for w in _words(s)]
    n_words = max(1, len(words))
    n_sentences = max(1, len(sentences))
    certainty = sum(1 for w in words if w in CERTAINTY_WORDS)
    hedges = sum(1 for w in words if w in HEDGE_WORDS)
    return DriftPoint(
        chapter=chapter,
        pronoun_i=sum(1 for w in words if w in FIRST_SINGULAR) / n_words,
        pronoun_we=sum(1 for w in words if w in FIRST_PLURAL) / n_words,
        modal_must=min(1.0, _phrase_hits(sentences, OBLIGATION_MODALS) / n_sentences),
        modal_choice=min(1.0, _phrase_hits(sentences, CHOICE_MODALS) / n_sentences),
        emotional_density=sum(1 for w in words if w in EMOTION_WORDS) / n_sentences,
        average_sentence_length=len(words) / n_sentences,
        certainty_score=certainty / (certainty + hedges) if certainty + hedges else 0.5,
    )


def _trend(delta: float, threshold: float, up: str, down: str) -> str:
    if delta > threshold:
        return up
    if delta < -threshold:
        return down
    return "Stable"


def drift_summary(points: Sequence[DriftPoint]) -> DriftSummary:
    """Compare the first and last points of a character's series."""
    if len(points) < 2:
        return DriftSummary()
    first, last = points[0], points[-1]

    pronoun = "Stable"
    if last.pronoun_we > first.pronoun_we and last.pronoun_i < first.pronoun_i:
        pronoun = "I → We"
    elif last.pronoun_i > first.pronoun_i and last.pronoun_we < first.pronoun_we:
        pronoun = "We → I"

    modal = "Stable"
    if last.modal_choice > first.modal_choice and last.modal_must < first.modal_must:
        modal = "Obligation → Choice"
    elif last.modal_must > first.modal_must and last.modal_choice < first.modal_choice:
        modal = "Choice → Obligation"

    return DriftSummary(
        pronoun_shift=pronoun,
        modal_shift=modal,
        emotional_trend=_trend(last.emotional_density - first.emotional_density,
                               TREND_DELTA, "Increasing", "Decreasing"),
        sentence_trend=_trend(last.average_sentence_length - first.average_sentence_length,
                              SENTENCE_LENGTH_DELTA, "Longer", "Shorter"),
        certainty_trend=_trend(last.certainty_score - first.certainty_score,
                               TREND_DELTA, "More Certain", "Less Certain"),
    )


@timed_node("language_drift", "character")
def language_drift(
    chapters: Sequence[Chapter],
    names: Sequence[str],
    registry: CharacterRegistry = CharacterRegistry(),
) -> LanguageDriftData:
    characters: list[CharacterDrift] = []
    for name in names:
        patterns = alias_patterns(character_aliases(registry, name))
        points = [
            _drift_point(chapter.number, sentences)
            for chapter in _sampled_appearances(chapters, patterns)
            if (sentences := _character_sentences(chapter, patterns))
        ]
        characters.append(CharacterDrift(name, points, drift_summary(points)))
    return LanguageDriftData(characters=characters)
