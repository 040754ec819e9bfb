"""Character presence by chapter and pairwise interactions."""

from __future__ import annotations

import logging
from itertools import combinations
from typing import Sequence

from ..models import Chapter, CharacterInteraction, CharacterPresence, CharacterRegistry
from ..timing import timed_node
from .character_registry import alias_patterns, character_aliases, count_mentions, mentions

log = logging.getLogger(__name__)

WORDS_PER_SECTION = 1000


def split_into_sections(text: str, words_per_section: int = WORDS_PER_SECTION) -> list[str]:
    words = text.split()
    return [
        " ".join(words[i:i + words_per_section])
        for i in range(0, len(words), words_per_section)
    ]


@timed_node("character_presence", "character")
def presence_by_chapter(
    chapters: Sequence[Chapter],
    names: Sequence[str],
    registry: CharacterRegistry = CharacterRegistry(),
) -> list[CharacterPresence]:
    """Alias mention counts per chapter; chapters without mentions are omitted."""
    out: list[CharacterPresence] = []
    for name in names:
        patterns = alias_patterns(character_aliases(registry, name))
        counts: dict[int, int] = {}
        for chapter in chapters:
            n = count_mentions(patterns, chapter.text)
            if n > 0:
                counts[chapter.number] = n
        out.append(CharacterPresence(character_name=name, chapter_presence=counts))
    return out


@timed_node("character_interactions", "character")
def interactions(
    text: str,
    names: Sequence[str],
    registry: CharacterRegistry = CharacterRegistry(),
) -> list[CharacterInteraction]:
    """Pairs that share at least one 1000-word section, strongest first.

    ``relationship_strength`` is the share of sections the pair shares.
    """
    sections = split_into_sections(text)
    if not sections:
        return []

    present: dict[str, set[int]] = {}
    for name in names:
        patterns = alias_patterns(character_aliases(registry, name))
        present[name] = {i for i, section in enumerate(sections) if mentions(patterns, section)}

    pairs: list[CharacterInteraction] = []
    for first, second in combinations(names, 2):
        shared = sorted(present[first] & present[second])
        if not shared:
            continue
        pairs.append(CharacterInteraction(
            character1=first,
            character2=second,
            co_appearances=len(shared),
            sections=shared,
            relationship_strength=len(shared) / len(sections),
        ))

    pairs.sort(key=lambda p: -p.co_appearances)
    log.info("Character interactions: %d pairs over %d sections", len(pairs), len(sections))
    return pairs
