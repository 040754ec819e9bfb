"""Character registry — name validation, aliases and cast ranking.

Character-keyed analytics only ever see names that survive
``validate_character_names``: registry keys when a registry is present,
the caller's names verbatim when it is not.  The capitalized-word guess
runs only when explicitly requested and nothing else is available.
"""

from __future__ import annotations

import logging
import re
import string
from collections import Counter
from typing import Sequence

from ..models import CharacterInteraction, CharacterPresence, CharacterRegistry
from ..timing import timed_node

log = logging.getLogger(__name__)

GUESS_MIN_OCCURRENCES = 3
GUESS_LIMIT = 10
PRESENCE_THRESHOLD = 3
INTERACTION_THRESHOLD = 2
MIN_SIGNIFICANT = 5
MAX_SIGNIFICANT = 15

_GUESS_EXCLUDE = frozenset([
    "The", "A", "An", "He", "She", "They", "I", "We", "You",
    "But", "And", "Or", "If", "When", "Where", "Why", "How",
    "Chapter", "Part", "Section", "Act",
    "Pressure", "Belief", "Beliefs", "Decision", "Decisions", "Outcome", "Outcomes",
    "Consequence", "Consequences", "Shift", "Shifts", "Evidence", "Counterpressure",
    "Framework", "Loop", "Loops", "Matrix", "Matrices", "Arc", "Arcs",
    "His", "Her", "Their", "Its", "My", "Our", "Your",
    "It", "As", "At", "In", "On", "To", "From", "With",
    "This", "That", "These", "Those", "What", "Which", "Who",
    "All", "Some", "Any", "No", "Not", "Yes",
])

_PUNCTUATION = string.punctuation + "“”‘’—–…"


def _key(name: str) -> str:
    return " ".join(name.split()).lower()


@timed_node("character_validation", "character")
def validate_character_names(
    registry: CharacterRegistry,
    names: Sequence[str] = (),
) -> list[str]:
    """Resolve candidate names to the ones analytics may use.

    With a registry, candidates (the caller's names, or every registry key
    when none are given) map case-insensitively onto canonical keys and
    unknown names are dropped.  Without one, the caller's names are kept
    as given, trimmed and deduplicated.
    """
    if not registry.is_empty:
        canonical = {_key(k): k for k in registry.canonical_keys()}
        candidates = names or registry.canonical_keys()
        out: list[str] = []
        for name in candidates:
            match = canonical.get(_key(name))
            if match is None:
                log.debug("Dropping %r: not in character registry", name)
                continue
            if match not in out:
                out.append(match)
        return out

    out = []
    seen: set[str] = set()
    for name in names:
        trimmed = name.strip()
        if trimmed and _key(trimmed) not in seen:
            seen.add(_key(trimmed))
            out.append(trimmed)
    return out


def character_aliases(registry: CharacterRegistry, name: str) -> list[str]:
    """The canonical name followed by its registry aliases, deduplicated."""
    aliases = [name]
    for alias in registry.aliases_for(name):
        alias = alias.strip()
        if alias and _key(alias) not in {_key(a) for a in aliases}:
            aliases.append(alias)
    return aliases


def alias_patterns(aliases: Sequence[str]) -> list[re.Pattern]:
    return [re.compile(r"\b" + re.escape(a) + r"\b", re.IGNORECASE) for a in aliases if a.strip()]


def mentions(patterns: Sequence[re.Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def count_mentions(patterns: Sequence[re.Pattern], text: str) -> int:
    return sum(len(p.findall(text)) for p in patterns)


@timed_node("character_guess", "character")
def guess_character_names(text: str) -> list[str]:
    """Capitalized words seen at least three times, most frequent first.

    Only used when there is no registry and no caller-supplied names.
    """
    counts: Counter[str] = Counter()
    for word in text.split():
        cleaned = word.strip(_PUNCTUATION)
        if len(cleaned) >= 2 and cleaned[0].isupper() and cleaned not in _GUESS_EXCLUDE:
            counts[cleaned] += 1
    ranked = sorted(
        ((name, n) for name, n in counts.items() if n >= GUESS_MIN_OCCURRENCES),
        key=lambda item: (-item[1], item[0]),
    )
    names = [name for name, _ in ranked[:GUESS_LIMIT]]
    log.info("Guessed character names: %s", names)
    return names


def significant_characters(
    presence: Sequence[CharacterPresence] = (),
    interactions: Sequence[CharacterInteraction] = (),
) -> list[str]:
    """Rank the cast for display, keeping between five and fifteen names.

    Presence totals are used when available (threshold 3); otherwise
    co-appearance totals from interactions (threshold 2).  Ties sort by
    name so the result is reproducible.
    """
    totals: Counter[str] = Counter()
    if any(p.total for p in presence):
        for p in presence:
            totals[p.character_name] += p.total
        threshold = PRESENCE_THRESHOLD
    else:
        for i in interactions:
            totals[i.character1] += i.co_appearances
            totals[i.character2] += i.co_appearances
        threshold = INTERACTION_THRESHOLD

    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    keep = [name for name, n in ranked if n >= threshold]
    if len(keep) < MIN_SIGNIFICANT:
        keep = [name for name, _ in ranked[:MIN_SIGNIFICANT]]
    return keep[:MAX_SIGNIFICANT]
