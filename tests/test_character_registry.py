import pytest

from manuscript_analyzer.models import (
    Chapter,
    CharacterInteraction,
    CharacterPresence,
    CharacterRegistry,
    RegistryEntry,
)
from manuscript_analyzer.nodes.character_presence import (
    interactions,
    presence_by_chapter,
    split_into_sections,
)
from manuscript_analyzer.nodes.character_registry import (
    alias_patterns,
    character_aliases,
    count_mentions,
    guess_character_names,
    significant_characters,
    validate_character_names,
)


@pytest.fixture
def registry():
    return CharacterRegistry((
        RegistryEntry("Elizabeth Bennet", ("Lizzy", "Eliza", "lizzy")),
        RegistryEntry("Mr. Darcy", ("Darcy",)),
        RegistryEntry("  ", ("ghost",)),
    ))


def test_registry_keys_win(registry):
    assert validate_character_names(registry) == ["Elizabeth Bennet", "Mr. Darcy"]


def test_registry_drops_unknown_names(registry):
    names = validate_character_names(registry, ["mr.  darcy", "Wickham", "MR. DARCY"])
    assert names == ["Mr. Darcy"]


def test_without_registry_names_are_trimmed_and_deduplicated():
    names = validate_character_names(CharacterRegistry(), [" Anna ", "anna", "", "Ben"])
    assert names == ["Anna", "Ben"]


def test_aliases_deduplicate_case_insensitively(registry):
    assert character_aliases(registry, "Elizabeth Bennet") == ["Elizabeth Bennet", "Lizzy", "Eliza"]


def test_alias_patterns_use_word_boundaries(registry):
    patterns = alias_patterns(character_aliases(registry, "Elizabeth Bennet"))
    assert count_mentions(patterns, "Lizzy smiled. ELIZA laughed. Elizabethan drama.") == 2


def test_guess_character_names():
    text = "Anna ran. Anna fell. Anna rose. The dog barked. The cat hid. Ben waved. Ben left."
    assert guess_character_names(text) == ["Anna"]


def test_significant_characters_prefers_presence():
    presence = [
        CharacterPresence("Anna", {1: 4}),
        CharacterPresence("Ben", {1: 1, 2: 1}),
    ]
    # fewer than five over threshold, so the top five by total are kept
    assert significant_characters(presence) == ["Anna", "Ben"]


def test_significant_characters_falls_back_to_interactions():
    pairs = [CharacterInteraction("A", "B", 3, [0, 1, 2], 1.0)]
    assert significant_characters([], pairs) == ["A", "B"]


def test_significant_characters_caps_at_fifteen():
    presence = [CharacterPresence(f"C{i:02d}", {1: 10 + i}) for i in range(20)]
    ranked = significant_characters(presence)
    assert len(ranked) == 15
    assert ranked[0] == "C19"


def test_presence_by_chapter(registry):
    chapters = [
        Chapter(1, "Lizzy met Darcy. Darcy bowed."),
        Chapter(2, "Nobody here."),
        Chapter(3, "Elizabeth Bennet wrote."),
    ]
    presence = presence_by_chapter(chapters, ["Elizabeth Bennet", "Mr. Darcy"], registry)

    assert presence[0].chapter_presence == {1: 1, 3: 1}
    assert presence[1].chapter_presence == {1: 2}
    assert presence[1].total == 2


def test_interactions_share_sections():
    text = " ".join(["Anna Ben"] + ["filler"] * 998 + ["Anna Cara"] + ["filler"] * 998)
    sections = split_into_sections(text)
    assert len(sections) == 2

    pairs = interactions(text, ["Anna", "Ben", "Cara"])
    assert [(p.character1, p.character2) for p in pairs] == [("Anna", "Ben"), ("Anna", "Cara")]
    assert pairs[0].sections == [0]
    assert pairs[1].sections == [1]
    assert pairs[0].relationship_strength == 0.5


def test_interactions_on_empty_text():
    assert interactions("", ["Anna", "Ben"]) == []
