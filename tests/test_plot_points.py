from manuscript_analyzer.models import DetectedFormat, PlotPoint, TensionPoint
from manuscript_analyzer.nodes.plot_points import (
    NOVEL_BEATS,
    NOVEL_KEY_BEATS,
    SCREENPLAY_KEY_BEATS,
    analyze_plot,
    estimate_runtime,
    missing_points,
    narrative_momentum,
    novel_plot_points,
    novel_structural_issues,
    sample_interval,
    scene_efficiency,
    screenplay_plot_points,
    screenplay_structural_issues,
    structure_score,
    tension_curve,
    thematic_resonance,
    visual_causality,
    window_tension,
)


def _flat_curve(n=10, level=0.0):
    return [TensionPoint(i / n, level, i * 100) for i in range(1, n + 1)]


def _story(words=1000):
    calm = ["the", "house", "was", "quiet", "and", "still"]
    tense = ["danger", "attack", "blood", "scream", "escape", "grabbed", "secret"]
    out = []
    for i in range(words):
        # a tense stretch around the middle of the text
        source = tense if 450 <= i < 600 else calm
        out.append(source[i % len(source)])
    return " ".join(out)


def test_window_tension():
    assert window_tension(["calm", "quiet"], False) == 0.0
    assert window_tension(["danger"] * 20, False) == 1.0
    assert window_tension(["Walks"], True) == 0.15 / 3.0
    assert window_tension(["walks"], False) == 0.0


def test_sample_interval():
    assert sample_interval(1000, False) == 100
    assert sample_interval(100_000, False) == 500
    assert sample_interval(1000, True) == 50


def test_tension_curve_covers_the_text():
    assert tension_curve("") == []

    curve = tension_curve(_story())
    assert len(curve) == 10
    assert curve[-1].position == 1.0
    assert curve[-1].word_position == 1000
    assert [p.word_position for p in curve] == sorted(p.word_position for p in curve)
    assert all(0.0 <= p.tension_level <= 1.0 for p in curve)
    assert max(curve, key=lambda p: p.tension_level).position in (0.5, 0.6)


def test_short_curve_has_no_plot_points():
    assert novel_plot_points(_flat_curve(5)) == []
    assert screenplay_plot_points(_flat_curve(5)) == []


def test_flat_curve_gets_expected_key_beats():
    points = novel_plot_points(_flat_curve())

    assert {p.type for p in points} == set(NOVEL_KEY_BEATS)
    assert all(p.description.startswith("Expected ") for p in points)
    assert all(p.suggested_improvement for p in points)
    assert [p.word_position for p in points] == sorted(p.word_position for p in points)

    missing = missing_points(points, NOVEL_BEATS)
    assert len(missing) == len(NOVEL_BEATS) - len(NOVEL_KEY_BEATS)
    assert "Opening State" in missing


def test_screenplay_key_beats_mention_pages():
    points = screenplay_plot_points(_flat_curve())
    assert {p.type for p in points} == set(SCREENPLAY_KEY_BEATS)
    assert all(p.is_screenplay_point for p in points)
    midpoint = next(p for p in points if p.type == "Midpoint Reversal")
    assert midpoint.description == "Expected at ~60 pages"


def test_novel_peak_becomes_beat():
    curve = _flat_curve()
    curve[4] = TensionPoint(0.5, 0.9, 500)
    points = novel_plot_points(curve)
    midpoint = [p for p in points if p.type == "Midpoint Reversal"]
    assert len(midpoint) == 1
    assert midpoint[0].word_position == 500
    assert midpoint[0].suggested_improvement is None


def test_novel_inertia_and_late_ignition():
    curve = _flat_curve(7) + [TensionPoint(1.0, 0.5, 800)]
    late = PlotPoint("Midpoint Reversal", 400, 0.35, 0.6, "", "")
    issues = novel_structural_issues([late], curve)

    categories = {i.category: i for i in issues}
    assert categories["Excessive Inertia"].severity == "Moderate"
    assert categories["Late Plot Ignition"].severity == "Major"


def test_screenplay_runtime_issue():
    curve = _flat_curve() + [TensionPoint(1.0, 0.9, 1100)]
    issues = screenplay_structural_issues([], curve, 1000)
    categories = {i.category: i for i in issues}
    assert categories["Pacing Problems"].severity == "Major"
    assert categories["Passive Protagonist"].severity == "Moderate"
    assert categories["Repetitive Scenes"].severity == "Major"


def test_format_metrics():
    assert estimate_runtime(16_500, screenplay=True) == 100
    assert estimate_runtime(0, screenplay=False) == 1
    assert scene_efficiency("INT. KITCHEN\nEXT. STREET", 400) == 90
    assert scene_efficiency("no headings", 400) == 50
    assert visual_causality("walks " * 10) == 100
    assert visual_causality("word " * 200) == 40
    assert thematic_resonance("love love love truth") == 15
    assert narrative_momentum(_flat_curve(2)) == 50


def test_structure_score_is_bounded():
    assert structure_score([], list(range(30)), [], True) == 0
    assert structure_score([], [], [], False) == 100


def test_analyze_novel():
    plot = analyze_plot(_story(), DetectedFormat("novel", 0.8))
    assert plot.document_format == "novel"
    assert plot.format_confidence == 0.8
    assert len(plot.tension_curve) == 10
    assert plot.estimated_runtime == 0
    assert plot.visual_causality_score == 0
    assert 0 <= plot.structure_score <= 100


def test_analyze_screenplay_uses_full_word_count():
    plot = analyze_plot(_story(), DetectedFormat("screenplay", 1.0), word_count=16_500)
    assert plot.document_format == "screenplay"
    assert plot.estimated_runtime == 100
    assert plot.internal_change_score == 0
    assert all(p.is_screenplay_point for p in plot.plot_points)
