import pytest

from manuscript_analyzer.models import Chapter, PageLocation
from manuscript_analyzer.nodes.character_arcs import (
    FALLBACK_DECISION,
    belief_shift_matrices,
    decision_belief_loops,
    decision_consequence_chains,
    sample_chapter_indices,
)

ANNA = (
    "Anna believed in the old house. But the storm challenged her. "
    "Anna decided to stay. As a result the roof fell. Anna learned patience."
)


@pytest.fixture
def chapters():
    return [
        Chapter(1, ANNA, start=0),
        Chapter(2, "Nobody is here.", start=200),
        Chapter(3, "Ben waited alone.", start=300),
    ]


def test_sample_chapter_indices():
    assert sample_chapter_indices(0) == []
    assert sample_chapter_indices(5) == [0, 1, 2, 3, 4]

    sampled = sample_chapter_indices(40)
    assert len(sampled) == 18
    assert sampled[0] == 0
    assert sampled[-1] == 39
    assert sampled == sorted(set(sampled))


def test_belief_matrix_per_character(chapters):
    mapping = [PageLocation(0, 1), PageLocation(250, 2)]
    matrices = belief_shift_matrices(chapters, ["Anna", "Ben"], page_mapping=mapping)

    assert [m.character_name for m in matrices] == ["Anna", "Ben"]
    anna = matrices[0].entries
    assert len(anna) == 1
    assert anna[0].chapter == 1
    assert anna[0].chapter_page == 1
    assert anna[0].core_belief == "Anna believed in the old house"
    assert anna[0].evidence == "Anna decided to stay"
    assert anna[0].counterpressure == "But the storm challenged her"

    ben = matrices[1].entries
    assert ben[0].chapter == 3
    assert ben[0].chapter_page == 2
    assert ben[0].core_belief == "Ben waited alone"
    assert ben[0].evidence == "Ben waited alone"
    assert ben[0].counterpressure == "Ben waited alone"


def test_supporting_fields_fall_back_to_naming_sentence():
    matrices = belief_shift_matrices([Chapter(1, "Ben waited alone. The rain kept on.", start=0)], ["Ben"])

    entry = matrices[0].entries[0]
    assert entry.evidence == "Ben waited alone"
    assert entry.counterpressure == "Ben waited alone"


def test_indicator_sentence_wins_over_naming_sentence():
    chapter = Chapter(1, "Ben waited alone. But the storm challenged everyone.", start=0)
    entry = belief_shift_matrices([chapter], ["Ben"])[0].entries[0]
    assert entry.counterpressure == "But the storm challenged everyone"
    assert entry.evidence == "Ben waited alone"


def test_decision_chains_always_have_an_entry(chapters):
    chains = decision_consequence_chains(chapters, ["Anna", "Ben"])

    anna = chains[0].entries[0]
    assert anna.decision == "Anna decided to stay"
    assert anna.immediate_outcome == "As a result the roof fell"
    assert anna.long_term_effect == "Anna learned patience"

    ben = chains[1].entries
    assert len(ben) == 1
    assert ben[0].decision == FALLBACK_DECISION
    assert 1 <= ben[0].chapter <= len(chapters)


def test_decision_belief_loops(chapters):
    loops = decision_belief_loops(chapters, ["Anna", "Nobody Known"])

    assert len(loops) == 2
    assert len(loops[0].entries) == 1
    assert loops[0].entries[0].decision == "Anna decided to stay"
    assert loops[0].arc_quality == "Insufficient Data"
    assert loops[1].entries == []


def test_arcs_with_no_chapters():
    chains = decision_consequence_chains([], ["Anna"])
    assert chains[0].entries[0].chapter == 1
    assert belief_shift_matrices([], ["Anna"])[0].entries == []
