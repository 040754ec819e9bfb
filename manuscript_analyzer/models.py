"""Data models for the manuscript analysis pipeline.

Options and registry snapshots flow in, one frozen ``AnalysisResults``
flows out.  Every output type is a plain dataclass so consumers can map it
to their own view models; ``results_to_json`` / ``results_from_json``
round-trip the whole tree through pydantic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from pydantic import TypeAdapter


STYLES = frozenset(["prose", "screenplay", "poetry"])
FORMATS = frozenset(["novel", "screenplay"])

DEFAULT_MAX_ANALYSIS_LENGTH = 500_000


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OutlineEntry:
    """One heading from the outline provider (offsets are character indices)."""

    title: str
    level: int
    range_start: int
    range_end: int = 0


@dataclass(frozen=True)
class PageLocation:
    location: int
    page: int


@dataclass(frozen=True)
class RegistryEntry:
    key: str
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class CharacterRegistry:
    """Read-only snapshot of the caller's character library."""

    characters: tuple[RegistryEntry, ...] = ()

    def canonical_keys(self) -> list[str]:
        return [c.key for c in self.characters if c.key.strip()]

    def aliases_for(self, key: str) -> list[str]:
        for c in self.characters:
            if c.key == key:
                return [a for a in c.aliases if a.strip()]
        return []

    @property
    def is_empty(self) -> bool:
        return not self.canonical_keys()


@dataclass(frozen=True)
class DetectedFormat:
    format: str  # "novel" | "screenplay"
    confidence: float = 0.5


@dataclass(frozen=True)
class AnalysisOptions:
    """Per-call context supplied by the host application."""

    style: str = "prose"  # "prose" | "screenplay" | "poetry"
    outline: tuple[OutlineEntry, ...] = ()
    page_mapping: tuple[PageLocation, ...] = ()
    page_count_override: Optional[int] = None
    registry: CharacterRegistry = field(default_factory=CharacterRegistry)
    character_names: tuple[str, ...] = ()
    guess_character_names: bool = False
    format_detector: Optional[Callable[[str], DetectedFormat]] = None
    max_analysis_length: int = DEFAULT_MAX_ANALYSIS_LENGTH

    def __post_init__(self) -> None:
        if self.style not in STYLES:
            raise ValueError(f"unknown style {self.style!r}; expected one of {sorted(STYLES)}")
        if self.max_analysis_length <= 0:
            raise ValueError("max_analysis_length must be positive")


# ---------------------------------------------------------------------------
# Segmentation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Chapter:
    number: int
    text: str
    start: int = 0
    title: str = ""


@dataclass(frozen=True)
class ParagraphStats:
    count: int = 0
    average_length: int = 0
    long_paragraphs: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class DetectorResult:
    count: int = 0
    examples: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Dialogue
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DialogueQualityMetrics:
    quality_score: int = 0
    segment_count: int = 0
    filler_count: int = 0
    repetition_score: int = 0
    tag_variety: int = 0
    monotony_issues: list[str] = field(default_factory=list)
    predictable_phrases: list[str] = field(default_factory=list)
    exposition_count: int = 0
    pacing_score: int = 0
    has_conflict: bool = False


# ---------------------------------------------------------------------------
# Character analytics
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BeliefEntry:
    chapter: int
    core_belief: str
    evidence: str
    counterpressure: str
    chapter_page: int = 0


@dataclass(frozen=True)
class BeliefShiftMatrix:
    character_name: str
    entries: list[BeliefEntry] = field(default_factory=list)


@dataclass(frozen=True)
class ChainEntry:
    chapter: int
    decision: str
    immediate_outcome: str
    long_term_effect: str
    chapter_page: int = 0


@dataclass(frozen=True)
class DecisionConsequenceChain:
    character_name: str
    entries: list[ChainEntry] = field(default_factory=list)


@dataclass(frozen=True)
class LoopEntry:
    chapter: int
    pressure: str = ""
    belief_in_play: str = ""
    decision: str = ""
    outcome: str = ""
    belief_shift: str = ""


@dataclass(frozen=True)
class DecisionBeliefLoop:
    character_name: str
    entries: list[LoopEntry] = field(default_factory=list)

    @property
    def arc_quality(self) -> str:
        if len(self.entries) < 2:
            return "Insufficient Data"
        beliefs = {e.belief_in_play.strip().lower() for e in self.entries}
        shifts = {e.belief_shift.strip().lower() for e in self.entries}
        if len(beliefs) == 1 and len(shifts) <= 1:
            return "Flat Arc - Beliefs unchanging"
        if len(beliefs) >= 2 and len(shifts) >= 2:
            return "Evolving Arc - Clear pattern change"
        return "Developing Arc - Some changes"


@dataclass(frozen=True)
class CharacterPresence:
    character_name: str
    chapter_presence: dict[int, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.chapter_presence.values())


@dataclass(frozen=True)
class CharacterInteraction:
    character1: str
    character2: str
    co_appearances: int = 0
    sections: list[int] = field(default_factory=list)
    relationship_strength: float = 0.0


@dataclass(frozen=True)
class RelationshipNode:
    character: str
    emotional_investment: float  # 0..1


@dataclass(frozen=True)
class EvolutionPoint:
    chapter: int
    trust_level: float  # -1 (conflict) .. 1 (trust)
    description: str


@dataclass(frozen=True)
class RelationshipEdge:
    source: str
    target: str
    trust_level: float
    power_direction: str  # "balanced" | name of the dominant character
    evolution: list[EvolutionPoint] = field(default_factory=list)


@dataclass(frozen=True)
class RelationshipEvolutionData:
    nodes: list[RelationshipNode] = field(default_factory=list)
    edges: list[RelationshipEdge] = field(default_factory=list)


@dataclass(frozen=True)
class AlignmentPoint:
    chapter: int
    inner_truth: float  # 0..1
    outer_behavior: float  # 0..1
    inner_label: str = ""
    outer_label: str = ""

    @property
    def gap(self) -> float:
        return abs(self.inner_truth - self.outer_behavior)


@dataclass(frozen=True)
class CharacterAlignment:
    character_name: str
    points: list[AlignmentPoint] = field(default_factory=list)
    gap_trend: str = "Fluctuating"


@dataclass(frozen=True)
class InternalExternalAlignmentData:
    characters: list[CharacterAlignment] = field(default_factory=list)


@dataclass(frozen=True)
class DriftPoint:
    chapter: int
    pronoun_i: float
    pronoun_we: float
    modal_must: float
    modal_choice: float
    emotional_density: float
    average_sentence_length: float
    certainty_score: float


@dataclass(frozen=True)
class DriftSummary:
    pronoun_shift: str = "Stable"
    modal_shift: str = "Stable"
    emotional_trend: str = "Stable"
    sentence_trend: str = "Stable"
    certainty_trend: str = "Stable"


@dataclass(frozen=True)
class CharacterDrift:
    character_name: str
    points: list[DriftPoint] = field(default_factory=list)
    summary: DriftSummary = field(default_factory=DriftSummary)


@dataclass(frozen=True)
class LanguageDriftData:
    characters: list[CharacterDrift] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Plot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TensionPoint:
    position: float  # 0..1 through the story
    tension_level: float  # 0..1
    word_position: int


@dataclass(frozen=True)
class PlotPoint:
    type: str
    word_position: int
    percentage_position: float
    tension_level: float
    description: str
    analysis_question: str
    suggested_improvement: Optional[str] = None
    is_screenplay_point: bool = False


@dataclass(frozen=True)
class StructuralIssue:
    severity: str  # "Minor" | "Moderate" | "Major"
    category: str
    description: str
    suggestion: str
    affected_start: float
    affected_end: float


@dataclass(frozen=True)
class PlotAnalysis:
    document_format: str = "novel"
    format_confidence: float = 0.5
    plot_points: list[PlotPoint] = field(default_factory=list)
    tension_curve: list[TensionPoint] = field(default_factory=list)
    structure_score: int = 0
    missing_points: list[str] = field(default_factory=list)
    structural_issues: list[StructuralIssue] = field(default_factory=list)
    internal_change_score: int = 0
    thematic_resonance: int = 0
    narrative_momentum: int = 0
    visual_causality_score: int = 0
    scene_efficiency: int = 0
    pacing_score: int = 0
    estimated_runtime: int = 0


# ---------------------------------------------------------------------------
# Poetry
# ---------------------------------------------------------------------------

SENSES = ("Visual", "Auditory", "Tactile", "Olfactory", "Gustatory", "Kinesthetic")
POETRY_MODES = ("Lyric", "Contemplative", "Narrative", "Hybrid")


@dataclass(frozen=True)
class CountedItem:
    text: str
    count: int


@dataclass(frozen=True)
class FormalTechnical:
    line_count: int
    stanza_count: int
    average_line_length: int
    line_length_std_dev: float
    enjambment_rate: float
    caesura_rate: float
    rhyme_scheme_by_stanza: list[str] = field(default_factory=list)
    notable_repetitions: list[CountedItem] = field(default_factory=list)
    notable_anaphora: list[CountedItem] = field(default_factory=list)
    alliteration_examples: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ImagerySensory:
    counts_by_sense: dict[str, int] = field(default_factory=dict)
    dominant_senses: list[str] = field(default_factory=list)
    top_sensory_tokens: list[CountedItem] = field(default_factory=list)


@dataclass(frozen=True)
class VoiceRhetoric:
    first_person_pronouns: int = 0
    second_person_pronouns: int = 0
    third_person_pronouns: int = 0
    questions: int = 0
    exclamations: int = 0
    hedges: list[CountedItem] = field(default_factory=list)
    modality: list[CountedItem] = field(default_factory=list)
    likely_address_mode: str = ""
    candidate_volta_line: Optional[int] = None


@dataclass(frozen=True)
class EmotionalTrajectory:
    line_scores: list[float] = field(default_factory=list)
    stanza_scores: list[float] = field(default_factory=list)
    peak_line: Optional[int] = None
    trough_line: Optional[int] = None
    peak_stanza: Optional[int] = None
    trough_stanza: Optional[int] = None
    volatility: float = 0.0
    notable_shift_lines: list[int] = field(default_factory=list)
    notable_shift_stanzas: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class ThemeMotif:
    top_motifs: list[CountedItem] = field(default_factory=list)
    repeated_phrases: list[CountedItem] = field(default_factory=list)


@dataclass(frozen=True)
class MacroStructure:
    stanza_line_counts: list[int] = field(default_factory=list)
    longest_stanza_index: Optional[int] = None
    shortest_stanza_index: Optional[int] = None


@dataclass(frozen=True)
class WritersAnalysis:
    mode: str
    mode_rationale: str
    form_context: str = "mixed"
    pressure_points: list[str] = field(default_factory=list)
    line_energy: list[str] = field(default_factory=list)
    image_logic: list[str] = field(default_factory=list)
    voice_management: list[str] = field(default_factory=list)
    emotional_arc: list[str] = field(default_factory=list)
    compression_choices: list[str] = field(default_factory=list)
    ending_strategy: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PoetryInsights:
    formal: FormalTechnical
    imagery: ImagerySensory
    voice: VoiceRhetoric
    emotion: EmotionalTrajectory
    motif: ThemeMotif
    structure: MacroStructure
    writers: WritersAnalysis


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnalysisResults:
    """The single immutable output of ``analyze_text``."""

    word_count: int = 0
    sentence_count: int = 0
    paragraph_count: int = 0
    average_paragraph_length: int = 0
    long_paragraphs: list[int] = field(default_factory=list)
    page_count: int = 0
    document_format: str = "novel"

    passive_voice_count: int = 0
    passive_voice_phrases: list[str] = field(default_factory=list)
    adverb_count: int = 0
    adverb_phrases: list[str] = field(default_factory=list)
    weak_verb_count: int = 0
    weak_verb_phrases: list[str] = field(default_factory=list)
    cliche_count: int = 0
    cliche_phrases: list[str] = field(default_factory=list)
    filter_word_count: int = 0
    filter_word_phrases: list[str] = field(default_factory=list)
    sensory_detail_count: int = 0
    missing_sensory_detail: bool = False

    reading_level: str = "--"
    sentence_variety_score: int = 0
    sentence_lengths: list[int] = field(default_factory=list)
    dialogue_percentage: int = 0

    dialogue_quality_score: int = 0
    dialogue_segment_count: int = 0
    dialogue_filler_count: int = 0
    dialogue_repetition_score: int = 0
    dialogue_tag_variety: int = 0
    dialogue_monotony_issues: list[str] = field(default_factory=list)
    dialogue_predictable_phrases: list[str] = field(default_factory=list)
    dialogue_exposition_count: int = 0
    dialogue_pacing_score: int = 0
    has_dialogue_conflict: bool = False

    plot_analysis: Optional[PlotAnalysis] = None
    decision_belief_loops: list[DecisionBeliefLoop] = field(default_factory=list)
    character_interactions: list[CharacterInteraction] = field(default_factory=list)
    character_presence: list[CharacterPresence] = field(default_factory=list)
    belief_shift_matrices: list[BeliefShiftMatrix] = field(default_factory=list)
    decision_consequence_chains: list[DecisionConsequenceChain] = field(default_factory=list)
    relationship_evolution: RelationshipEvolutionData = field(default_factory=RelationshipEvolutionData)
    internal_external_alignment: InternalExternalAlignmentData = field(default_factory=InternalExternalAlignmentData)
    language_drift: LanguageDriftData = field(default_factory=LanguageDriftData)
    poetry_insights: Optional[PoetryInsights] = None

    truncated: bool = False
    insufficient_poetry_content: bool = False


# ---------------------------------------------------------------------------
# Pipeline bookkeeping
# ---------------------------------------------------------------------------

@dataclass
class NodeMetrics:
    """Timing for one pipeline node."""

    node_name: str
    node_type: str  # "segmentation" | "detector" | "metric" | "dialogue" | ...
    duration_ms: int = 0


@dataclass
class PipelineResult:
    results: AnalysisResults
    report: dict = field(default_factory=dict)


_RESULTS_ADAPTER = TypeAdapter(AnalysisResults)


def results_to_dict(results: AnalysisResults) -> dict:
    """JSON-safe dict of every field (int dict keys become strings)."""
    return _RESULTS_ADAPTER.dump_python(results, mode="json")


def results_to_json(results: AnalysisResults) -> bytes:
    return _RESULTS_ADAPTER.dump_json(results)


def results_from_json(data: bytes | str) -> AnalysisResults:
    return _RESULTS_ADAPTER.validate_json(data)
