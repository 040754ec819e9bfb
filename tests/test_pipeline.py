import pytest

from manuscript_analyzer.models import (
    AnalysisOptions,
    CharacterRegistry,
    DetectedFormat,
    RegistryEntry,
    results_from_json,
    results_to_json,
)
from manuscript_analyzer.pipeline import NODE_TYPES, analyze_text, run_pipeline

STORY = (
    "Chapter 1\n"
    "Anna believed the house was haunted. \"We need to talk,\" Anna said quickly.\n"
    "Ben refused to listen. The door was opened by the wind.\n"
    "Chapter 2\n"
    "Anna decided to leave. Ben followed her home through the cold, dark rain.\n"
)


@pytest.fixture
def registry():
    return CharacterRegistry((
        RegistryEntry("Anna", ("Annie",)),
        RegistryEntry("Ben", ()),
    ))


def test_empty_document():
    results = analyze_text("")

    assert results.word_count == 0
    assert results.sentence_count == 0
    assert results.page_count == 0
    assert results.reading_level == "--"
    assert results.document_format == "novel"
    assert results.plot_analysis is None
    assert results.character_presence == []
    assert results.poetry_insights is None
    assert results.truncated is False


def test_analysis_is_deterministic():
    assert analyze_text(STORY) == analyze_text(STORY)


def test_prose_metrics():
    results = analyze_text(STORY)

    assert results.word_count == len(STORY.split())
    assert results.paragraph_count == 5
    assert results.passive_voice_count >= 2
    assert "quickly" in results.adverb_phrases
    assert results.dialogue_segment_count == 1
    assert "we need to talk" in results.dialogue_predictable_phrases
    assert results.plot_analysis is not None
    assert results.plot_analysis.document_format == "novel"


def test_truncation_keeps_full_word_count():
    text = "word " * 10
    result = run_pipeline(text, AnalysisOptions(max_analysis_length=10))

    assert result.results.truncated is True
    assert result.results.word_count == 10


def test_report_has_every_node_type():
    report = run_pipeline(STORY).report

    assert "total_duration_ms" in report
    for node_type in NODE_TYPES:
        assert f"{node_type}_duration_ms" in report
    names = {n["node"] for n in report["nodes"]}
    assert {"passive_voice", "dialogue_quality", "plot_analysis"} <= names
    assert report["total_duration_ms"] == sum(n["duration_ms"] for n in report["nodes"])


def test_invalid_options():
    with pytest.raises(ValueError):
        AnalysisOptions(style="haiku")
    with pytest.raises(ValueError):
        AnalysisOptions(max_analysis_length=0)


def test_screenplay_style_forces_format():
    results = analyze_text("Hello there.", AnalysisOptions(style="screenplay"))
    assert results.document_format == "screenplay"


def test_custom_format_detector():
    options = AnalysisOptions(format_detector=lambda text: DetectedFormat("screenplay", 0.9))
    results = analyze_text(STORY, options)
    assert results.document_format == "screenplay"
    assert results.plot_analysis.format_confidence == 0.9


def test_short_poem_is_flagged():
    results = analyze_text("One line only", AnalysisOptions(style="poetry"))
    assert results.poetry_insights is None
    assert results.insufficient_poetry_content is True


def test_poetry_style_runs_poetry_analysis():
    poem = (
        "the sea is loud tonight\nand I am far from home\nthe gulls go crying\nover the empty foam\n\n"
        "but still the light goes on\nand on"
    )
    results = analyze_text(poem, AnalysisOptions(style="poetry"))

    assert results.insufficient_poetry_content is False
    assert results.poetry_insights.formal.line_count == 6
    assert results.poetry_insights.formal.stanza_count == 2
    assert results.word_count == 27


def test_characters_come_from_registry(registry):
    results = analyze_text(STORY, AnalysisOptions(registry=registry))

    assert [p.character_name for p in results.character_presence] == ["Anna", "Ben"]
    assert results.character_presence[0].chapter_presence == {1: 2, 2: 1}
    assert [m.character_name for m in results.belief_shift_matrices] == ["Anna", "Ben"]
    assert [c.character_name for c in results.decision_consequence_chains] == ["Anna", "Ben"]
    assert results.character_interactions[0].character1 == "Anna"
    assert len(results.relationship_evolution.nodes) == 2
    assert len(results.internal_external_alignment.characters) == 2
    assert len(results.language_drift.characters) == 2


def test_unknown_names_are_dropped(registry):
    options = AnalysisOptions(registry=registry, character_names=("Ben", "Chapter"))
    results = analyze_text(STORY, options)
    assert [p.character_name for p in results.character_presence] == ["Ben"]


def test_no_characters_without_registry_or_names():
    results = analyze_text(STORY)
    assert results.character_presence == []
    assert results.belief_shift_matrices == []


def test_guessing_is_opt_in():
    results = analyze_text(STORY, AnalysisOptions(guess_character_names=True))
    assert [p.character_name for p in results.character_presence] == ["Anna"]


def test_results_survive_json(registry):
    results = analyze_text(STORY, AnalysisOptions(registry=registry))
    assert results_from_json(results_to_json(results)) == results
