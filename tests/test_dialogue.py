from manuscript_analyzer.models import DialogueQualityMetrics
from manuscript_analyzer.nodes.dialogue import (
    count_fillers,
    exposition_count,
    extract_dialogue,
    extract_prose_dialogue,
    extract_screenplay_dialogue,
    has_conflict,
    is_character_cue,
    pacing_score,
    predictable_phrases,
    repetition,
    score_dialogue,
)

SCREENPLAY = """INT. ROOM - DAY

JANE
Hello there.
How are you?

TOM (V.O.)
Fine.
CUT TO:
"""


def test_screenplay_cues():
    assert is_character_cue("JANE")
    assert is_character_cue("  TOM (V.O.)  ")
    assert not is_character_cue("INT. ROOM - DAY")
    assert not is_character_cue("CUT TO:")
    assert not is_character_cue("Jane")
    assert not is_character_cue("123")


def test_screenplay_dialogue_joins_lines_under_cue():
    assert extract_screenplay_dialogue(SCREENPLAY) == ["Hello there. How are you?", "Fine."]


def test_prose_dialogue_pairs_quotes():
    text = 'He said, "Hello." Then “Go away,” she said. "" and "unclosed'
    assert extract_prose_dialogue(text) == ["Hello.", "Go away,"]
    assert extract_prose_dialogue("No quotes at all.") == []


def test_screenplay_mode_falls_back_to_quotes():
    assert extract_dialogue('she said "hi there" softly', screenplay=True) == ["hi there"]


def test_empty_segments_score_zero():
    assert score_dialogue([], "Some text.") == DialogueQualityMetrics()


def test_score_dialogue_counts_passed_checks():
    metrics = score_dialogue(["Why?", "Because!"], "")
    assert metrics.segment_count == 2
    assert metrics.quality_score == 40
    assert metrics.has_conflict is False
    assert metrics.pacing_score == 6


def test_repetition_needs_more_than_five_segments():
    assert repetition(["Yes."] * 5) == (False, 0, [])

    repeated, score, phrases = repetition(["Yes.", "yes", "YES!", "No.", "Maybe.", "Later."])
    assert repeated is True
    assert score == 16
    assert phrases == ["yes"]


def test_helpers():
    assert count_fillers(["Um, okay", "Sure"]) == 1
    assert predictable_phrases(["Trust me, I can explain."]) == ["i can explain", "trust me"]
    assert exposition_count(["x" * 101, "y" * 101 + "?", "short"]) == 1
    assert has_conflict(["No way", "Okay"]) is True
    assert pacing_score(["only one"]) == 0
