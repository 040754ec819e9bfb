import pytest

from manuscript_analyzer.models import SENSES, POETRY_MODES, CountedItem
from manuscript_analyzer.nodes.poetry import (
    alliteration_examples,
    analyze_emotion,
    analyze_poetry,
    classify_mode,
    has_caesura,
    is_enjambed,
    macro_structure,
    poem_word_count,
    rhyme_key,
    rhyme_scheme,
)
from manuscript_analyzer.nodes.poetry_craft import (
    FORM_BALLAD,
    FORM_MIXED,
    FORM_NOTES,
    FORM_OPEN,
    FORM_STANZAIC,
    CraftSignals,
    build_writers_analysis,
    ending_job,
    infer_form_context,
    is_alternating_quatrain,
)
from manuscript_analyzer.nodes.segmentation import tokenize_poem_words

POEM = """I walk the road by day,
the stars come out at night
I walk the road by day,
and find the morning light.

You must remember me?
maybe the dark will stay
the cold sea whispers low
and I go home away."""


def _tokens(lines):
    return [tokenize_poem_words(line) for line in lines]


# ---------------------------------------------------------------------------
# Formal
# ---------------------------------------------------------------------------

def test_rhyme_scheme():
    assert rhyme_scheme(["day", "night", "day", "light"]) == "ABAB"
    assert rhyme_scheme(["123", "--", "!!", "..."]) == "----"
    assert rhyme_key("Under the sea-bound sky!") == "sky"
    assert rhyme_key("   ") == ""


def test_line_endings():
    assert is_enjambed("and then the")
    assert not is_enjambed("done.")
    assert not is_enjambed("")
    assert has_caesura("Stop, and listen to the wind")
    assert not has_caesura("No pause here at all")


def test_alliteration():
    assert alliteration_examples(["big bad bear", "no run here"]) == ["Line 1: repeated initial 'b' (3×)"]


def test_macro_structure_indices_are_zero_based():
    structure = macro_structure([["a", "b"], ["c"], ["d", "e", "f"], ["g"]])
    assert structure.stanza_line_counts == [2, 1, 3, 1]
    assert structure.longest_stanza_index == 2
    assert structure.shortest_stanza_index == 1


# ---------------------------------------------------------------------------
# Emotion and mode
# ---------------------------------------------------------------------------

def test_emotional_trajectory():
    lines = ["love and light", "cold and dark", "love"]
    emotion = analyze_emotion(lines, _tokens(lines), [2, 1])

    assert emotion.line_scores == [1.0, -1.0, 1.0]
    assert emotion.stanza_scores == [0.0, 1.0]
    assert (emotion.peak_line, emotion.trough_line) == (1, 2)
    assert (emotion.peak_stanza, emotion.trough_stanza) == (2, 1)
    assert emotion.volatility == 2.0
    assert emotion.notable_shift_lines == [1, 2]


def test_volta_joins_shift_lists():
    lines = ["love and light", "cold and dark", "love"]
    emotion = analyze_emotion(lines, _tokens(lines), [2, 1], volta_line=3)
    assert emotion.notable_shift_lines == [1, 2, 3]
    assert emotion.notable_shift_stanzas == [1, 2]


@pytest.mark.parametrize("lines, expected", [
    (["then we walked"] * 6, "Narrative"),
    (["Do you remember the truth?", "Do you know the soul?", "what is time?"], "Contemplative"),
    (["a stone", "a tree"], "Hybrid"),
])
def test_classify_mode(lines, expected):
    mode, rationale = classify_mode(lines, _tokens(lines))
    assert mode == expected
    assert rationale


# ---------------------------------------------------------------------------
# Full read
# ---------------------------------------------------------------------------

def test_too_short_poem_returns_none():
    assert analyze_poetry("Just one line") is None
    assert analyze_poetry("Title\n\nonly line") is None
    assert analyze_poetry("") is None


def test_analyze_poetry():
    insights = analyze_poetry(POEM)

    assert insights.formal.line_count == 8
    assert insights.formal.stanza_count == 2
    assert insights.formal.rhyme_scheme_by_stanza[0] == "ABAB"
    assert insights.formal.notable_anaphora[0] == CountedItem("walk", 2)
    assert insights.structure.stanza_line_counts == [4, 4]
    assert insights.voice.questions == 1
    assert set(insights.imagery.counts_by_sense) == set(SENSES)
    assert len(insights.emotion.line_scores) == 8
    assert 1 <= insights.emotion.peak_line <= 8
    assert insights.writers.mode in POETRY_MODES
    assert insights.writers.form_context == FORM_STANZAIC
    assert insights.writers.ending_strategy


def test_poem_word_count_skips_header():
    assert poem_word_count("Night Song\n\nthe sea is loud\nand I am not") == 8


# ---------------------------------------------------------------------------
# Craft rules
# ---------------------------------------------------------------------------

def test_alternating_quatrains():
    assert is_alternating_quatrain("ABAB")
    assert is_alternating_quatrain("ABCB")
    assert not is_alternating_quatrain("AABB")
    assert not is_alternating_quatrain("AB-B")
    assert not is_alternating_quatrain("ABC")


def test_form_context():
    assert infer_form_context(CraftSignals("Lyric", "")) == FORM_MIXED
    assert infer_form_context(CraftSignals(
        "Lyric", "", stanza_count=3, stanza_line_counts=[4, 4, 4])) == FORM_STANZAIC
    assert infer_form_context(CraftSignals(
        "Narrative", "", line_count=80, stanza_count=20,
        stanza_line_counts=[4] * 20, rhyme_schemes=["ABCB"] * 20)) == FORM_BALLAD
    assert infer_form_context(CraftSignals(
        "Lyric", "", stanza_count=2, stanza_line_counts=[7, 3])) == FORM_OPEN
    assert infer_form_context(CraftSignals(
        "Lyric", "", stanza_count=3, stanza_line_counts=[7, 3, 5], enjambment_rate=0.2)) == FORM_MIXED


@pytest.mark.parametrize("last_line, average, expected", [
    ("Where now?", 0.0, "Ends in suspension (question)."),
    ("and then—", 0.0, "Ends in refusal/suspension (dash)."),
    ("fine", 0.5, "Ends with emotional lift."),
    ("fine", -0.5, "Ends in darkening/unease."),
    ("fine", 0.0, "Ends without clear resolution (steady state)."),
])
def test_ending_job(last_line, average, expected):
    assert ending_job(last_line, average) == expected


def test_writers_analysis_for_stanzaic_poem():
    signals = CraftSignals(
        mode="Lyric",
        mode_rationale="r",
        line_count=12,
        stanza_count=3,
        stanza_line_counts=[4, 4, 4],
        enjambment_rate=0.1,
        last_line="and we go home",
    )
    writers = build_writers_analysis(signals)

    assert writers.form_context == FORM_STANZAIC
    assert writers.pressure_points[0] == FORM_NOTES[FORM_STANZAIC]
    assert writers.pressure_points[1].startswith("Low enjambment (≈10%): expected in stanzaic forms")
    assert writers.voice_management[-1].startswith("Low overt rhetoric")
    assert writers.compression_choices == [
        "Low explanation markers: the poem relies on implication more than reasoning."
    ]
    assert writers.emotional_arc[-1] == "Ends without clear resolution (steady state)."
    assert writers.ending_strategy[-1].startswith("The last line is directional")


def test_long_poem_reports_stanzas():
    signals = CraftSignals(
        mode="Lyric",
        mode_rationale="r",
        line_count=90,
        stanza_count=12,
        has_stanza_scores=True,
        peak_stanza=3,
        trough_stanza=7,
    )
    arc = build_writers_analysis(signals).emotional_arc
    assert "Peak intensity around stanza 3." in arc
    assert "Lowest point around stanza 7." in arc
