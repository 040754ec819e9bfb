"""Pipeline orchestrator.

Runs every analysis node over one document in a fixed order and
collects per-node timing metrics into a structured report.  Nodes are
pure functions of the text and options, so the pipeline holds no state
between calls.
"""

from __future__ import annotations

import logging
from typing import Optional

from .models import (
    AnalysisOptions,
    AnalysisResults,
    DetectedFormat,
    NodeMetrics,
    PipelineResult,
)
from .nodes import (
    character_arcs,
    character_presence,
    character_registry,
    detectors,
    dialogue,
    format_detector,
    narrative_dynamics,
    plot_points,
    poetry,
    readability,
    segmentation,
)
from .timing import collect_metrics

log = logging.getLogger(__name__)

NODE_TYPES = ("segmentation", "detector", "metric", "dialogue", "plot", "character", "poetry")


def run_pipeline(text: str, options: Optional[AnalysisOptions] = None) -> PipelineResult:
    """Analyze *text* and return the results with a per-node metrics report."""
    options = options or AnalysisOptions()

    analysis_text = text
    truncated = len(text) > options.max_analysis_length
    if truncated:
        analysis_text = text[:options.max_analysis_length]
        log.warning("Input truncated from %d to %d characters",
                    len(text), options.max_analysis_length)

    with collect_metrics() as metrics:
        # --------------------------------------------------------------
        # Segmentation
        # --------------------------------------------------------------
        words = segmentation.tokenize_words(analysis_text)
        word_count = segmentation.count_words(text)
        if options.style == "poetry":
            word_count = poetry.poem_word_count(text) or word_count
        sentence_count = segmentation.count_sentences(analysis_text)
        paragraphs = segmentation.paragraph_stats(analysis_text)

        detect = options.format_detector or format_detector.detect_format
        detected = detect(analysis_text)
        if options.style == "screenplay":
            detected = DetectedFormat("screenplay", 1.0)
        screenplay = detected.format == "screenplay"

        # --------------------------------------------------------------
        # Detectors
        # --------------------------------------------------------------
        passive = detectors.detect_passive_voice(analysis_text)
        adverbs = detectors.detect_adverbs(words)
        sensory = detectors.count_sensory_words(analysis_text)
        weak = detectors.detect_weak_verbs(words)
        cliches = detectors.detect_cliches(analysis_text)
        filters = detectors.detect_filter_words(words)

        # --------------------------------------------------------------
        # Metrics
        # --------------------------------------------------------------
        variety, lengths = readability.sentence_variety(analysis_text)
        level = readability.reading_level(analysis_text, word_count, sentence_count)
        pages = readability.page_count(text, word_count, screenplay, options.page_count_override)

        # --------------------------------------------------------------
        # Dialogue
        # --------------------------------------------------------------
        segments = dialogue.extract_dialogue(analysis_text, screenplay=screenplay)
        quality = dialogue.score_dialogue(segments, analysis_text)

        # --------------------------------------------------------------
        # Plot
        # --------------------------------------------------------------
        plot = None
        if words:
            plot = plot_points.analyze_plot(analysis_text, detected, word_count)

        # --------------------------------------------------------------
        # Characters (validated names only)
        # --------------------------------------------------------------
        names = character_registry.validate_character_names(options.registry, options.character_names)
        if (not names and options.guess_character_names
                and options.registry.is_empty and not options.character_names):
            names = character_registry.guess_character_names(analysis_text)

        characters: dict = {}
        if names:
            characters = _character_branch(analysis_text, names, options)

        # --------------------------------------------------------------
        # Poetry
        # --------------------------------------------------------------
        insights = None
        if options.style == "poetry":
            insights = poetry.analyze_poetry(analysis_text)

    results = AnalysisResults(
        word_count=word_count,
        sentence_count=sentence_count,
        paragraph_count=paragraphs.count,
        average_paragraph_length=paragraphs.average_length,
        long_paragraphs=paragraphs.long_paragraphs,
        page_count=pages,
        document_format=detected.format,
        passive_voice_count=passive.count,
        passive_voice_phrases=passive.examples,
        adverb_count=adverbs.count,
        adverb_phrases=adverbs.examples,
        weak_verb_count=weak.count,
        weak_verb_phrases=weak.examples,
        cliche_count=cliches.count,
        cliche_phrases=cliches.examples,
        filter_word_count=filters.count,
        filter_word_phrases=filters.examples,
        sensory_detail_count=sensory,
        missing_sensory_detail=detectors.is_missing_sensory_detail(sensory, word_count),
        reading_level=level,
        sentence_variety_score=variety,
        sentence_lengths=lengths,
        dialogue_percentage=readability.dialogue_percentage(segments, len(words)),
        dialogue_quality_score=quality.quality_score,
        dialogue_segment_count=quality.segment_count,
        dialogue_filler_count=quality.filler_count,
        dialogue_repetition_score=quality.repetition_score,
        dialogue_tag_variety=quality.tag_variety,
        dialogue_monotony_issues=quality.monotony_issues,
        dialogue_predictable_phrases=quality.predictable_phrases,
        dialogue_exposition_count=quality.exposition_count,
        dialogue_pacing_score=quality.pacing_score,
        has_dialogue_conflict=quality.has_conflict,
        plot_analysis=plot,
        poetry_insights=insights,
        truncated=truncated,
        insufficient_poetry_content=options.style == "poetry" and insights is None,
        **characters,
    )

    report = _build_report(metrics)

    # Log summary.
    log.info(
        "Pipeline complete: %d words, %d characters, format=%s | total=%dms (%s)",
        word_count, len(names), detected.format,
        report["total_duration_ms"],
        ", ".join(f"{t}={report[f'{t}_duration_ms']}ms" for t in NODE_TYPES),
    )

    return PipelineResult(results=results, report=report)


def analyze_text(text: str, options: Optional[AnalysisOptions] = None) -> AnalysisResults:
    """Analyze *text*; the same input and options always give the same results."""
    return run_pipeline(text, options).results


def _character_branch(text: str, names: list[str], options: AnalysisOptions) -> dict:
    registry = options.registry
    chapters = segmentation.split_into_chapters(text, options.outline)
    presence = character_presence.presence_by_chapter(chapters, names, registry)
    pairs = character_presence.interactions(text, names, registry)
    return {
        "character_presence": presence,
        "character_interactions": pairs,
        "decision_belief_loops": character_arcs.decision_belief_loops(chapters, names, registry),
        "belief_shift_matrices": character_arcs.belief_shift_matrices(
            chapters, names, registry, options.page_mapping),
        "decision_consequence_chains": character_arcs.decision_consequence_chains(
            chapters, names, registry, options.page_mapping),
        "relationship_evolution": narrative_dynamics.relationship_evolution(
            chapters, names, presence, pairs, registry),
        "internal_external_alignment": narrative_dynamics.internal_external_alignment(
            chapters, names, registry),
        "language_drift": narrative_dynamics.language_drift(chapters, names, registry),
    }


def _build_report(metrics: list[NodeMetrics]) -> dict:
    """Build the structured report dict from node metrics."""
    report: dict = {"total_duration_ms": sum(m.duration_ms for m in metrics)}
    for node_type in NODE_TYPES:
        report[f"{node_type}_duration_ms"] = sum(
            m.duration_ms for m in metrics if m.node_type == node_type
        )
    report["nodes"] = [
        {
            "node": m.node_name,
            "type": m.node_type,
            "duration_ms": m.duration_ms,
        }
        for m in metrics
    ]
    return report
