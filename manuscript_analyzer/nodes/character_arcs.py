"""Character arcs — belief shifts, decision chains, decision-belief loops.

All three extractors share one discipline: sample up to eighteen evenly
spaced chapters, skip chapters where none of the character's aliases
appear, and pull the first sentence that pairs an alias with an
indicator word.  Supporting fields fall back to the first indicator-only
sentence, then to the first sentence naming the character, and finally
to fixed placeholder text, so every validated character always gets a
result.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Callable, Sequence

from ..models import (
    BeliefEntry,
    BeliefShiftMatrix,
    ChainEntry,
    Chapter,
    CharacterRegistry,
    DecisionBeliefLoop,
    DecisionConsequenceChain,
    LoopEntry,
    PageLocation,
)
from ..timing import timed_node
from .character_registry import alias_patterns, character_aliases, mentions
from .segmentation import page_for_location, split_sentences

log = logging.getLogger(__name__)

MAX_SAMPLED_CHAPTERS = 18
MAX_BELIEF_ENTRIES = 8
MAX_CHAIN_ENTRIES = 6
MAX_LOOP_ENTRIES = 8
MAX_SENTENCE_CHARS = 120

BELIEF_INDICATORS = (
    "believe", "think", "thought", "realize", "realized", "understand", "know", "trust",
    "faith", "value", "values", "principle", "principles", "convinced", "certain", "sure",
    "feel", "felt", "want", "wanted", "need", "needed", "hope", "hoped", "fear", "feared",
    "swore", "vowed", "promised", "resolved",
)
EVIDENCE_INDICATORS = (
    "because", "shows", "demonstrates", "proves", "revealed", "acted", "chose", "decided", "refused",
)
COUNTERPRESSURE_INDICATORS = (
    "but", "however", "challenged", "questioned", "opposed", "confronted", "despite",
    "although", "forced", "pressured",
)
DECISION_INDICATORS = (
    "decided", "chose", "choose", "selected", "agreed", "refused", "accepted", "rejected", "committed",
)
OUTCOME_INDICATORS = (
    "resulted", "consequence", "outcome", "happened", "led to", "caused", "as a result",
    "therefore", "thus",
)
EFFECT_INDICATORS = (
    "changed", "shaped", "influenced", "affected", "transformed", "learned", "realized", "became",
)

FALLBACK_BELIEF = "Belief implied by character actions"
FALLBACK_EVIDENCE = "Character's actions reflect this belief"
FALLBACK_COUNTERPRESSURE = "Circumstances test this perspective"
FALLBACK_DECISION = "No explicit decision keyword found"
FALLBACK_OUTCOME = "Direct consequences unfold"
FALLBACK_EFFECT = "Character trajectory shifts"


def sample_chapter_indices(count: int, limit: int = MAX_SAMPLED_CHAPTERS) -> list[int]:
    """Up to *limit* evenly spaced indices into *count* chapters."""
    if count <= 0:
        return []
    if count <= limit:
        return list(range(count))
    if limit <= 1:
        return [0]
    step = (count - 1) / (limit - 1)
    out: list[int] = []
    for i in range(limit):
        index = min(count - 1, max(0, math.floor(i * step + 0.5)))
        if index not in out:
            out.append(index)
    return out


# ---------------------------------------------------------------------------
# Sentence finders
# ---------------------------------------------------------------------------

def _clip(sentence: str) -> str:
    return sentence.strip()[:MAX_SENTENCE_CHARS]


def _has_indicator(sentence: str, indicators: Sequence[str]) -> bool:
    lowered = sentence.lower()
    return any(indicator in lowered for indicator in indicators)


def find_alias_sentence(
    sentences: Sequence[str],
    patterns: Sequence[re.Pattern],
    indicators: Sequence[str],
    *,
    alias_fallback: bool = False,
    indicator_fallback: bool = False,
) -> str:
    """First sentence naming the character with an indicator word.

    ``indicator_fallback`` returns the first indicator-only sentence when
    no alias co-occurs; ``alias_fallback`` then returns the first sentence
    naming the character.  Returns ``""`` when nothing qualifies.
    """
    first_alias = ""
    first_indicator = ""
    for sentence in sentences:
        named = mentions(patterns, sentence)
        flagged = _has_indicator(sentence, indicators)
        if named and flagged:
            return _clip(sentence)
        if named and not first_alias:
            first_alias = _clip(sentence)
        if flagged and not first_indicator:
            first_indicator = _clip(sentence)
    if indicator_fallback and first_indicator:
        return first_indicator
    if alias_fallback and first_alias:
        return first_alias
    return ""


def _belief(sentences, patterns) -> str:
    return find_alias_sentence(sentences, patterns, BELIEF_INDICATORS, alias_fallback=True)


def _evidence(sentences, patterns) -> str:
    found = find_alias_sentence(
        sentences, patterns, EVIDENCE_INDICATORS, indicator_fallback=True, alias_fallback=True
    )
    return found or FALLBACK_EVIDENCE


def _counterpressure(sentences, patterns) -> str:
    found = find_alias_sentence(
        sentences, patterns, COUNTERPRESSURE_INDICATORS, indicator_fallback=True, alias_fallback=True
    )
    return found or FALLBACK_COUNTERPRESSURE


def _decision(sentences, patterns) -> str:
    return find_alias_sentence(sentences, patterns, DECISION_INDICATORS)


def _outcome(sentences, patterns) -> str:
    found = find_alias_sentence(sentences, patterns, OUTCOME_INDICATORS, indicator_fallback=True)
    return found or FALLBACK_OUTCOME


def _effect(sentences, patterns) -> str:
    found = find_alias_sentence(sentences, patterns, EFFECT_INDICATORS, indicator_fallback=True)
    return found or FALLBACK_EFFECT


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------

class _ChapterIndex:
    """Chapters with their sentences split once per analysis."""

    def __init__(self, chapters: Sequence[Chapter], page_mapping: Sequence[PageLocation]):
        self.chapters = list(chapters)
        self.sentences = [split_sentences(c.text) for c in self.chapters]
        self.pages = [page_for_location(c.start, page_mapping) if page_mapping else 0
                      for c in self.chapters]
        self.sampled = sample_chapter_indices(len(self.chapters))

    def appearing(self, patterns) -> list[int]:
        return [i for i in self.sampled if mentions(patterns, self.chapters[i].text)]


def _per_character(
    names: Sequence[str],
    registry: CharacterRegistry,
    fn: Callable[[str, list[re.Pattern]], object],
) -> list:
    out = []
    for name in names:
        patterns = alias_patterns(character_aliases(registry, name))
        out.append(fn(name, patterns))
    return out


@timed_node("belief_shift_matrices", "character")
def belief_shift_matrices(
    chapters: Sequence[Chapter],
    names: Sequence[str],
    registry: CharacterRegistry = CharacterRegistry(),
    page_mapping: Sequence[PageLocation] = (),
) -> list[BeliefShiftMatrix]:
    """One matrix per validated character, in input order."""
    index = _ChapterIndex(chapters, page_mapping)

    def build(name: str, patterns: list[re.Pattern]) -> BeliefShiftMatrix:
        entries: list[BeliefEntry] = []
        for i in index.appearing(patterns):
            sentences = index.sentences[i]
            belief = _belief(sentences, patterns)
            if not belief:
                continue
            entries.append(BeliefEntry(
                chapter=index.chapters[i].number,
                chapter_page=index.pages[i],
                core_belief=belief,
                evidence=_evidence(sentences, patterns),
                counterpressure=_counterpressure(sentences, patterns),
            ))
            if len(entries) >= MAX_BELIEF_ENTRIES:
                break

        if not entries:
            first = next((i for i, c in enumerate(index.chapters) if mentions(patterns, c.text)), None)
            if first is not None:
                sentences = index.sentences[first]
                entries.append(BeliefEntry(
                    chapter=index.chapters[first].number,
                    chapter_page=index.pages[first],
                    core_belief=_belief(sentences, patterns) or FALLBACK_BELIEF,
                    evidence=_evidence(sentences, patterns),
                    counterpressure=_counterpressure(sentences, patterns),
                ))

        log.debug("Belief matrix for %s: %d entries", name, len(entries))
        return BeliefShiftMatrix(character_name=name, entries=entries)

    return _per_character(names, registry, build)


@timed_node("decision_consequence_chains", "character")
def decision_consequence_chains(
    chapters: Sequence[Chapter],
    names: Sequence[str],
    registry: CharacterRegistry = CharacterRegistry(),
    page_mapping: Sequence[PageLocation] = (),
) -> list[DecisionConsequenceChain]:
    """One chain per validated character; a placeholder entry when no decision is found."""
    index = _ChapterIndex(chapters, page_mapping)

    def build(name: str, patterns: list[re.Pattern]) -> DecisionConsequenceChain:
        entries: list[ChainEntry] = []
        for i in index.appearing(patterns):
            sentences = index.sentences[i]
            decision = _decision(sentences, patterns)
            if not decision:
                continue
            entries.append(ChainEntry(
                chapter=index.chapters[i].number,
                chapter_page=index.pages[i],
                decision=decision,
                immediate_outcome=_outcome(sentences, patterns),
                long_term_effect=_effect(sentences, patterns),
            ))
            if len(entries) >= MAX_CHAIN_ENTRIES:
                break

        if not entries:
            entries.append(ChainEntry(
                chapter=index.chapters[0].number if index.chapters else 1,
                chapter_page=index.pages[0] if index.chapters else 0,
                decision=FALLBACK_DECISION,
                immediate_outcome=FALLBACK_OUTCOME,
                long_term_effect=FALLBACK_EFFECT,
            ))
        return DecisionConsequenceChain(character_name=name, entries=entries)

    return _per_character(names, registry, build)


@timed_node("decision_belief_loops", "character")
def decision_belief_loops(
    chapters: Sequence[Chapter],
    names: Sequence[str],
    registry: CharacterRegistry = CharacterRegistry(),
) -> list[DecisionBeliefLoop]:
    """Pressure → belief → decision → outcome → shift, per sampled chapter."""
    index = _ChapterIndex(chapters, ())

    def build(name: str, patterns: list[re.Pattern]) -> DecisionBeliefLoop:
        entries: list[LoopEntry] = []
        for i in index.appearing(patterns):
            sentences = index.sentences[i]
            entries.append(LoopEntry(
                chapter=index.chapters[i].number,
                pressure=_counterpressure(sentences, patterns),
                belief_in_play=_belief(sentences, patterns) or FALLBACK_BELIEF,
                decision=_decision(sentences, patterns),
                outcome=_outcome(sentences, patterns),
                belief_shift=_effect(sentences, patterns),
            ))
            if len(entries) >= MAX_LOOP_ENTRIES:
                break
        return DecisionBeliefLoop(character_name=name, entries=entries)

    return _per_character(names, registry, build)
