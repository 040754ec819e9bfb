"""Writer's-craft commentary for poems.

``derive_craft_signals`` reduces the poetry analyzers' output to one flat
``CraftSignals`` record; ``build_writers_analysis`` is a pure rules layer
over that record.  Keeping the rules pure means each remark can be tested
by constructing signals directly.

The form context (ballad-like, stanzaic lyric, open form, mixed) reframes
metric-driven remarks: low enjambment in a quatrain poem is what the form
asks for, not a weakness.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..models import (
    CountedItem,
    EmotionalTrajectory,
    FormalTechnical,
    ImagerySensory,
    ThemeMotif,
    VoiceRhetoric,
    WritersAnalysis,
)
from .segmentation import content_tokens, tokenize_poem_words

FORM_BALLAD = "ballad_like"
FORM_STANZAIC = "stanzaic_lyric"
FORM_OPEN = "open_form"
FORM_MIXED = "mixed"

LONG_POEM_LINES = 80
LONG_POEM_STANZAS = 10
EXCERPT_CHARS = 80

EXPOSITION_MARKERS = frozenset([
    "because", "therefore", "thus", "hence", "since", "means", "meaning", "explains", "explain",
    "define", "definition", "conclude", "conclusion", "implies", "imply",
])
DIRECTION_WORDS = frozenset(["toward", "into", "beyond", "away", "home", "forward", "out", "through"])

_HARD_STOPS = frozenset("?!.,;:")
_DASHES = frozenset("—–")

FORM_NOTES = {
    FORM_BALLAD: (
        "Form context: likely stanzaic narrative (ballad-like). Many line-ending stats "
        "(enjambment/hard-stops) are partly explained by quatrain/sextet structure; interpret "
        "them as constraints before choices."
    ),
    FORM_STANZAIC: (
        "Form context: stanzaic structure detected. Some metrics (enjambment/hard-stops) will "
        "skew toward closure because stanzas create regular landing pads."
    ),
    FORM_OPEN: (
        "Form context: open-form / free-verse leaning. Line breaks are doing more semantic work "
        "here, so enjambment cues are more likely to be stylistic choices."
    ),
}


@dataclass(frozen=True)
class CraftSignals:
    mode: str
    mode_rationale: str
    line_count: int = 0
    stanza_count: int = 0
    stanza_line_counts: list[int] = field(default_factory=list)
    rhyme_schemes: list[str] = field(default_factory=list)
    enjambment_rate: float = 0.0
    caesura_rate: float = 0.0
    average_line_length: int = 0
    line_length_std_dev: float = 0.0
    anaphora: list[CountedItem] = field(default_factory=list)
    open_break_rate: float = 0.0
    hard_stop_rate: float = 0.0
    dash_endings: int = 0
    question_endings: int = 0
    volta_line: Optional[int] = None
    section_senses: list[list[str]] = field(default_factory=list)
    dominant_senses: list[str] = field(default_factory=list)
    top_motifs: list[CountedItem] = field(default_factory=list)
    address_mode: str = ""
    pronouns: tuple[int, int, int] = (0, 0, 0)
    modality: list[CountedItem] = field(default_factory=list)
    hedges: list[CountedItem] = field(default_factory=list)
    questions: int = 0
    exclamations: int = 0
    peak_line: Optional[int] = None
    trough_line: Optional[int] = None
    peak_stanza: Optional[int] = None
    trough_stanza: Optional[int] = None
    shift_lines: list[int] = field(default_factory=list)
    shift_stanzas: list[int] = field(default_factory=list)
    has_stanza_scores: bool = False
    peak_excerpt: Optional[str] = None
    trough_excerpt: Optional[str] = None
    end_average: float = 0.0
    last_line: str = ""
    exposition_count: int = 0
    opening_overlap: float = 0.0
    ending_motifs: list[str] = field(default_factory=list)

    @property
    def is_long(self) -> bool:
        return self.line_count >= LONG_POEM_LINES or self.stanza_count >= LONG_POEM_STANZAS


def _excerpt(lines: Sequence[str], line_number: Optional[int]) -> Optional[str]:
    if line_number is None or not 1 <= line_number <= len(lines):
        return None
    raw = lines[line_number - 1].strip()
    if not raw:
        return None
    if len(raw) <= EXCERPT_CHARS:
        return raw
    return raw[:EXCERPT_CHARS] + "…"


def derive_craft_signals(
    lines: Sequence[str],
    stanzas: Sequence[Sequence[str]],
    tokens_by_line: Sequence[Sequence[str]],
    formal: FormalTechnical,
    imagery: ImagerySensory,
    voice: VoiceRhetoric,
    emotion: EmotionalTrajectory,
    motif: ThemeMotif,
    mode: str,
    mode_rationale: str,
    section_senses: Sequence[Sequence[str]] = (),
) -> CraftSignals:
    open_breaks = hard_stops = dashes = questions = 0
    for line in lines:
        trimmed = line.strip()
        if not trimmed:
            continue
        last = trimmed[-1]
        if last in _HARD_STOPS:
            hard_stops += 1
            if last == "?":
                questions += 1
        elif last in _DASHES:
            dashes += 1
        else:
            open_breaks += 1
    total = max(1, len(lines))

    first_line = next((line for line in lines if line.strip()), "")
    last_line = next((line for line in reversed(lines) if line.strip()), "")
    first_tokens = set(content_tokens(tokenize_poem_words(first_line)))
    last_tokens = set(content_tokens(tokenize_poem_words(last_line)))
    overlap = len(first_tokens & last_tokens) / max(1, len(first_tokens | last_tokens))

    last_stanza = set()
    if stanzas:
        last_stanza = set(content_tokens([t for line in stanzas[-1] for t in tokenize_poem_words(line)]))
    ending_motifs = [m.text for m in motif.top_motifs[:6] if m.text in last_stanza]

    end_window = emotion.line_scores[-3:]

    return CraftSignals(
        mode=mode,
        mode_rationale=mode_rationale,
        line_count=formal.line_count,
        stanza_count=formal.stanza_count,
        stanza_line_counts=[len(s) for s in stanzas],
        rhyme_schemes=list(formal.rhyme_scheme_by_stanza),
        enjambment_rate=formal.enjambment_rate,
        caesura_rate=formal.caesura_rate,
        average_line_length=formal.average_line_length,
        line_length_std_dev=formal.line_length_std_dev,
        anaphora=list(formal.notable_anaphora),
        open_break_rate=open_breaks / total,
        hard_stop_rate=hard_stops / total,
        dash_endings=dashes,
        question_endings=questions,
        volta_line=voice.candidate_volta_line,
        section_senses=[list(s) for s in section_senses],
        dominant_senses=list(imagery.dominant_senses),
        top_motifs=list(motif.top_motifs),
        address_mode=voice.likely_address_mode,
        pronouns=(voice.first_person_pronouns, voice.second_person_pronouns, voice.third_person_pronouns),
        modality=list(voice.modality),
        hedges=list(voice.hedges),
        questions=voice.questions,
        exclamations=voice.exclamations,
        peak_line=emotion.peak_line,
        trough_line=emotion.trough_line,
        peak_stanza=emotion.peak_stanza,
        trough_stanza=emotion.trough_stanza,
        shift_lines=list(emotion.notable_shift_lines),
        shift_stanzas=list(emotion.notable_shift_stanzas),
        has_stanza_scores=bool(emotion.stanza_scores),
        peak_excerpt=_excerpt(lines, emotion.peak_line),
        trough_excerpt=_excerpt(lines, emotion.trough_line),
        end_average=sum(end_window) / len(end_window) if end_window else 0.0,
        last_line=last_line,
        exposition_count=sum(1 for tokens in tokens_by_line for t in tokens if t in EXPOSITION_MARKERS),
        opening_overlap=overlap,
        ending_motifs=ending_motifs,
    )


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def _pct(value: float) -> str:
    return f"≈{math.floor(value * 100 + 0.5)}%"


def _counted(items: Sequence[CountedItem], limit: int) -> str:
    return ", ".join(f"{i.text} ({i.count}×)" for i in items[:limit])


def is_alternating_quatrain(scheme: str) -> bool:
    """ABAB or ABCB; unknown rhyme keys never match."""
    if len(scheme) != 4 or "-" in scheme:
        return False
    a, b, c, d = scheme
    if a == c and b == d and a != b:
        return True
    return b == d and a != b and c != b


def infer_form_context(signals: CraftSignals) -> str:
    counts = signals.stanza_line_counts
    if not counts:
        return FORM_MIXED

    stanzaic_ratio = sum(1 for n in counts if n in (4, 6)) / len(counts)
    quatrains = [s for s in signals.rhyme_schemes if len(s) == 4]
    ballad_ratio = (
        sum(1 for s in quatrains if is_alternating_quatrain(s)) / len(quatrains) if quatrains else 0.0
    )

    if (signals.is_long and stanzaic_ratio >= 0.6
            and signals.mode in ("Narrative", "Hybrid") and ballad_ratio >= 0.25):
        return FORM_BALLAD
    if stanzaic_ratio >= 0.6:
        return FORM_STANZAIC
    if signals.stanza_count <= 2 or signals.enjambment_rate >= 0.55:
        return FORM_OPEN
    return FORM_MIXED


def _pressure_points(s: CraftSignals, form: str) -> list[str]:
    out: list[str] = []
    if form in FORM_NOTES:
        out.append(FORM_NOTES[form])

    rate = _pct(s.enjambment_rate)
    if s.enjambment_rate >= 0.6:
        out.append(f"High enjambment ({rate}): the poem delays closure; use this to carry "
                   "tension without explaining it.")
    elif s.enjambment_rate <= 0.3:
        if form in (FORM_BALLAD, FORM_STANZAIC):
            out.append(f"Low enjambment ({rate}): expected in stanzaic forms where rhyme and cadence "
                       "reward clean landings. If you want extra propulsion, use a few strategic "
                       "run-on lines, but treat it as a pacing tool, not a rule-break for its own sake.")
        else:
            out.append(f"Low enjambment ({rate}): lines land cleanly. If you want a spike of "
                       "forward-leaning pressure, try a few deliberate run-on lines (and notice how "
                       "that changes breath and urgency).")
    else:
        out.append(f"Mixed closure (enjambment {rate}): you can control when the reader is allowed "
                   "to know something by tightening or loosening line endings.")

    if s.caesura_rate >= 0.25:
        out.append(f"Frequent mid-line pauses (caesura {_pct(s.caesura_rate)}): internal pivots are "
                   "part of the music, great for reversals and rethinks.")

    if s.average_line_length > 0:
        variability = s.line_length_std_dev / max(1, s.average_line_length)
        if variability >= 0.35:
            out.append(f"Line lengths vary a lot (σ/μ ≈ {variability:.2f}): form is already doing "
                       "emotional modulation for you.")

    if s.anaphora:
        top = _counted(s.anaphora, 2)
        if form == FORM_BALLAD:
            out.append(f"Refrain/anaphora signal: {top}. In ballad-like narration, repetition is "
                       "often the engine (memory, inevitability, moral insistence). If you want "
                       "emphasis, vary the refrain slightly at the turning point rather than fully "
                       "breaking it.")
        else:
            out.append(f"You establish a rule early (anaphora): {top}. Consider varying it once "
                       "for emphasis.")
    return out


def _line_energy(s: CraftSignals, form: str) -> list[str]:
    out = [f"Open line breaks: {_pct(s.open_break_rate)}; hard stops: {_pct(s.hard_stop_rate)}. "
           "Line breaks are the poem’s timing edits (heuristic signal)."]
    if s.dash_endings:
        out.append(f"Dash endings ({s.dash_endings}) keep meaning suspended; use them to deny "
                   "closure or force rereads.")
    if s.question_endings:
        out.append(f"Questions ({s.question_endings}) inject uncertainty, good for pressure "
                   "without plot.")
    if s.volta_line is not None:
        if form == FORM_BALLAD:
            out.append(f"Candidate turn: line {s.volta_line}. In stanzaic narrative, a turn often "
                       "lands at a stanza boundary or on a repeated line; consider marking it with "
                       "a refrained phrase, a tonal gear-shift, or a suddenly plainer sentence.")
        else:
            out.append(f"Candidate turn: line {s.volta_line}. If you want a pivot, tighten syntax "
                       "right before it, then break pattern at the turn.")
    return out


def _senses(names: Sequence[str]) -> str:
    return ", ".join(names) if names else "(none detected)"


def _image_logic(s: CraftSignals) -> list[str]:
    out: list[str] = []
    if s.line_count and len(s.section_senses) == 3:
        start, middle, end = (_senses(x) for x in s.section_senses)
        out.append(f"Dominant sensory cues by section (start → middle → end): {start} → {middle} "
                   f"→ {end} (lexical/heuristic, interpretive).")
    if s.dominant_senses:
        out.append(f"Overall dominant sensory cues: {', '.join(s.dominant_senses)} "
                   "(based on detected sensory words).")
    if s.top_motifs:
        out.append(f"Recurring image-words (motifs): {_counted(s.top_motifs, 6)}. Let order do the "
                   "thinking: arrange these to escalate, soften, or turn uncanny.")
    return out


def _voice_management(s: CraftSignals, form: str) -> list[str]:
    first, second, third = s.pronouns
    out = [f"Address mode: {s.address_mode}. Pronouns (1st/2nd/3rd): {first}/{second}/{third}."]
    if form == FORM_BALLAD:
        out.append("Note: framed/narrative address is common in ballad-like poems (a speaker tells "
                   "an event to a listener). Pronoun counts alone can mislabel this as \"lyric "
                   "reflection\"; treat this as a delivery stance, not a persona diagnosis.")
    if s.modality:
        out.append(f"Modality pressure (must/should/never/etc.): {_counted(s.modality, 4)}. Use "
                   "certainty to create authority, or remove it to create vulnerability.")
    if s.hedges:
        out.append(f"Hedges (maybe/seems/etc.): {_counted(s.hedges, 4)}. Strategic hedging can "
                   "imply fear, irony, or self-protection.")
    if s.exclamations == 0 and s.questions == 0:
        out.append("Low overt rhetoric (no ?/! endings): tone reads controlled. That restraint can "
                   "intensify disturbing content.")
    return out


def ending_job(last_line: str, end_average: float) -> str:
    trimmed = last_line.strip()
    last = trimmed[-1] if trimmed else ""
    if last == "?":
        return "Ends in suspension (question)."
    if last == "!":
        return "Ends with a surge (exclamation)."
    if last in _DASHES:
        return "Ends in refusal/suspension (dash)."
    if end_average >= 0.2:
        return "Ends with emotional lift."
    if end_average <= -0.2:
        return "Ends in darkening/unease."
    return "Ends without clear resolution (steady state)."


def _emotional_arc(s: CraftSignals, form: str) -> list[str]:
    out: list[str] = []
    if s.mode == "Narrative" or form == FORM_BALLAD:
        out.append("Affect curve is a lexical estimate (word-based). In narrative poems it often "
                   "tracks event intensity or moral dread more than a speaker’s interior mood; use "
                   "it as instrumentation, not a critical verdict.")

    if s.is_long and s.has_stanza_scores:
        if s.peak_stanza is not None:
            out.append(f"Peak intensity around stanza {s.peak_stanza}.")
        if s.trough_stanza is not None:
            out.append(f"Lowest point around stanza {s.trough_stanza}.")
        if s.shift_stanzas:
            out.append("Major emotional turns by stanza: "
                       f"{', '.join(str(n) for n in s.shift_stanzas[:6])}.")
        if s.peak_excerpt:
            out.append(f"Example near the peak (line {s.peak_line}): \"{s.peak_excerpt}\"")
        if s.trough_excerpt:
            out.append(f"Example near the low point (line {s.trough_line}): \"{s.trough_excerpt}\"")
    else:
        if s.peak_line is not None:
            out.append(f"Peak intensity around line {s.peak_line}.")
        if s.trough_line is not None:
            out.append(f"Lowest point around line {s.trough_line}.")
        if s.shift_lines:
            out.append("Notable emotional turns near lines: "
                       f"{', '.join(str(n) for n in s.shift_lines[:6])}.")
        if s.peak_excerpt:
            out.append(f"Example near the peak: \"{s.peak_excerpt}\"")

    out.append(ending_job(s.last_line, s.end_average))
    return out


def _compression(s: CraftSignals, form: str) -> list[str]:
    out: list[str] = []
    if s.exposition_count <= 1:
        out.append("Low explanation markers: the poem relies on implication more than reasoning.")
    elif form == FORM_BALLAD:
        out.append(f"Explanation markers detected ({s.exposition_count}). In ballad/parable modes, "
                   "explicit causality and reiteration can be part of the ethic (moral insistence). "
                   "If it drags, try compressing one explanatory aside or moving explanation into a "
                   "repeated line; avoid removing clarity that’s doing thematic work.")
    else:
        out.append(f"Explanation markers detected ({s.exposition_count}). If the poem feels "
                   "over-explained, try compressing one causal bridge (keep the logic, reduce the "
                   "connective tissue).")

    avg = s.average_line_length
    if 0 < avg <= 35:
        out.append(f"Short lines (avg {avg} chars) concentrate meaning; silence is already doing work.")
    elif avg >= 70:
        out.append(f"Longer lines (avg {avg} chars) read more prose-like; consider strategic cuts "
                   "to increase pressure.")
    return out


def _ending_strategy(s: CraftSignals) -> list[str]:
    out: list[str] = []
    if s.opening_overlap >= 0.18:
        out.append("Ending echoes the opening (shared keywords overlap ≈ "
                   f"{s.opening_overlap * 100:.0f}%). Echoes make rereads inevitable.")
    else:
        out.append("Ending resists the opening (low keyword overlap). Resistive endings can "
                   "reframe the first line without mirroring it.")
    if s.last_line.lower().count(" is ") >= 2:
        out.append("Ending pivots to aphorism (repeated “is” claims), which can override motif cues.")
    if s.ending_motifs:
        out.append(f"Ending includes established motif tokens: {', '.join(s.ending_motifs[:3])}.")
    if DIRECTION_WORDS.intersection(tokenize_poem_words(s.last_line)):
        out.append("The last line is directional (points somewhere). Endings that point often "
                   "feel stronger than endings that conclude.")
    return out


def build_writers_analysis(signals: CraftSignals) -> WritersAnalysis:
    form = infer_form_context(signals)
    return WritersAnalysis(
        mode=signals.mode,
        mode_rationale=signals.mode_rationale,
        form_context=form,
        pressure_points=_pressure_points(signals, form),
        line_energy=_line_energy(signals, form),
        image_logic=_image_logic(signals),
        voice_management=_voice_management(signals, form),
        emotional_arc=_emotional_arc(signals, form),
        compression_choices=_compression(signals, form),
        ending_strategy=_ending_strategy(signals),
    )
