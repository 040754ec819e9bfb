"""Plot analysis — tension curve, beats, structural issues and scores.

Novels and screenplays are read against different beat sheets.  Both
start from the same tension curve: a 100-word sliding window sampled at a
format-dependent interval and scored from small tension lexicons.
"""

from __future__ import annotations

import logging
import re
import string
from dataclasses import dataclass
from typing import Optional, Sequence

from ..models import DetectedFormat, PlotAnalysis, PlotPoint, StructuralIssue, TensionPoint
from ..timing import timed_node
from .segmentation import tokenize_words

log = logging.getLogger(__name__)

WINDOW_WORDS = 100
MIN_CURVE_POINTS = 6
NOVEL_PEAK = 0.4
SCREENPLAY_PEAK = 0.45
SETUP_RISE = 0.25
REVERSAL_JUMP = 0.3
SCREENPLAY_WORDS_PER_MINUTE = 165
NOVEL_WORDS_PER_MINUTE = 225
SCREENPLAY_PAGES = 120

_PUNCTUATION = string.punctuation + "“”‘’—–…"

TENSION_WORDS = frozenset([
    "danger", "threat", "fear", "scared", "terrified", "panic",
    "urgent", "desperate", "crisis", "disaster", "catastrophe",
    "attack", "fight", "battle", "conflict", "struggle",
    "death", "dying", "killed", "murder", "blood",
    "trapped", "cornered", "helpless", "doomed",
    "explode", "explosion", "crash", "collide",
    "scream", "yell", "shout", "cry",
    "chase", "pursue", "flee", "escape", "run",
])

ACTION_VERBS = frozenset([
    "grabbed", "lunged", "attacked", "struck", "hit",
    "ran", "raced", "sprinted", "dashed", "rushed",
    "jumped", "leaped", "dove", "ducked",
    "threw", "hurled", "smashed", "crashed",
    "fired", "shot", "aimed", "pulled",
])

REVELATION_WORDS = frozenset([
    "realized", "discovered", "understood", "revealed",
    "truth", "secret", "hidden", "concealed",
    "betrayal", "lie", "deception", "trick",
])

INTERNAL_CHANGE_WORDS = frozenset([
    "believed", "understood", "realized", "accepted", "rejected",
    "forgave", "regretted", "doubted", "trusted", "feared",
    "hoped", "despaired", "resolved", "questioned", "embraced",
    "abandoned", "confronted", "acknowledged", "denied",
])

THEMATIC_WORDS = frozenset([
    "meaning", "purpose", "truth", "justice", "love", "loss",
    "identity", "freedom", "power", "sacrifice", "redemption",
    "betrayal", "loyalty", "honor", "duty", "choice",
])

VISUAL_ACTION_WORDS = frozenset([
    "sees", "watches", "looks", "stares", "glances",
    "enters", "exits", "walks", "runs", "stands",
    "grabs", "throws", "pushes", "pulls", "slams",
    "opens", "closes", "turns", "moves", "stops",
])

_SCENE_HEADING = re.compile(r"(INT\.|EXT\.|INT/EXT\.)", re.IGNORECASE)


@dataclass(frozen=True)
class Beat:
    name: str
    position: float
    question: str
    failure: str


NOVEL_BEATS = (
    Beat("Opening State", 0.02,
         "What worldview and tonal contract does this establish?",
         "Weak or unclear tonal contract with the reader"),
    Beat("Inciting Disruption", 0.12,
         "Does this force a choice, not just reveal information?",
         "Late plot ignition or passive discovery"),
    Beat("First Commitment", 0.25,
         "Is this a clear turn where the protagonist acts?",
         "Hesitation without commitment"),
    Beat("Progressive Complications", 0.35,
         "What changes internally in this span?",
         "Excessive inertia or over-indulgent introspection"),
    Beat("Midpoint Reversal", 0.50,
         "Does this change what success looks like?",
         "Thematic diffusion - no redefinition of success"),
    Beat("Escalating Costs", 0.62,
         "Does every gain create a new, worse problem?",
         "Moral complexity doesn't increase"),
    Beat("Crisis / Lowest Point", 0.75,
         "Is this unfixable by the old belief?",
         "Crisis could be solved by old belief"),
    Beat("Final Choice", 0.85,
         "Is there internal reconciliation with belief?",
         "No internal reconciliation"),
    Beat("Climax", 0.92,
         "Does meaning crystallize here?",
         "Meaning doesn't crystallize"),
    Beat("Aftermath", 0.98,
         "Does this echo and transform the opening state?",
         "No resonance with opening"),
)
# upper bound of the position band each beat claims
NOVEL_BANDS = (0.05, 0.18, 0.30, 0.45, 0.55, 0.70, 0.82, 0.90, 0.96, 1.01)
NOVEL_KEY_BEATS = ("Inciting Disruption", "Midpoint Reversal", "Crisis / Lowest Point", "Climax")

SCREENPLAY_BEATS = (
    Beat("Opening Image", 0.01,
         "Is there a visible contradiction or unease?",
         "No visual hook or contradiction"),
    Beat("Inciting Incident", 0.10,
         "Is this external, observable, and does it change the situation?",
         "Internal/invisible inciting incident"),
    Beat("Lock In (End Act I)", 0.25,
         "Does the protagonist clearly act, not just decide?",
         "Passive protagonist - no clear action"),
    Beat("First Sequence", 0.30,
         "Does each scene advance plot, escalate stakes, and end with a turn?",
         "Scenes without visible turns"),
    Beat("Rising Complications", 0.40,
         "Does each scene have a visible objective and turn?",
         "Repetitive scenes without escalation"),
    Beat("Midpoint Reversal", 0.50,
         "Is this a visible reversal (victory→defeat, safety→danger)?",
         "Midpoint sag - no power shift"),
    Beat("Bad Guys Close In", 0.60,
         "Are options visibly narrowing?",
         "Stakes remain static"),
    Beat("All Is Lost", 0.75,
         "Is the protagonist situationally trapped or stripped of power?",
         "Protagonist not truly trapped"),
    Beat("Dark Night of Soul", 0.80,
         "Is there a moment of reflection before action?",
         "Missing emotional beat"),
    Beat("Third Act Break", 0.85,
         "Is there a decisive action under pressure?",
         "Third-act solution not earned visually"),
    Beat("Finale", 0.95,
         "Is there clear physical or strategic resolution?",
         "Invisible stakes in resolution"),
    Beat("Closing Image", 0.99,
         "Does this mirror the opening with changed behavior?",
         "No visual bookend"),
)
SCREENPLAY_BANDS = (0.05, 0.15, 0.28, 0.38, 0.48, 0.55, 0.68, 0.78, 0.83, 0.90, 0.97, 1.01)
SCREENPLAY_KEY_BEATS = (
    "Opening Image", "Inciting Incident", "Lock In (End Act I)", "Midpoint Reversal",
    "All Is Lost", "Finale", "Closing Image",
)


def _clean(word: str) -> str:
    return word.lower().strip(_PUNCTUATION)


def _beat_at(position: float, beats: Sequence[Beat], bands: Sequence[float]) -> Beat:
    for beat, upper in zip(beats, bands):
        if position < upper:
            return beat
    return beats[-1]


def population_variance(values: Sequence[float]) -> float:
    if len(values) < 2:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def _mean(points: Sequence[TensionPoint]) -> float:
    return sum(p.tension_level for p in points) / len(points)


# ---------------------------------------------------------------------------
# Tension curve
# ---------------------------------------------------------------------------

def window_tension(words: Sequence[str], screenplay: bool) -> float:
    score = 0.0
    for word in words:
        clean = _clean(word)
        if clean in TENSION_WORDS:
            score += 0.3
        if clean in ACTION_VERBS:
            score += 0.2
        if clean in REVELATION_WORDS:
            score += 0.25
        if screenplay and clean in VISUAL_ACTION_WORDS:
            score += 0.15
        elif not screenplay and clean in INTERNAL_CHANGE_WORDS:
            score += 0.15
    return min(1.0, score / 3.0)


def sample_interval(word_count: int, screenplay: bool) -> int:
    if screenplay:
        return max(50, min(200, word_count // 20))
    return max(100, min(500, word_count // 10))


def tension_curve(text: str, screenplay: bool = False) -> list[TensionPoint]:
    words = tokenize_words(text)
    if not words:
        return []
    interval = sample_interval(len(words), screenplay)
    points: list[TensionPoint] = []
    for end in range(1, len(words) + 1):
        if end % interval == 0 or end == len(words):
            window = words[max(0, end - WINDOW_WORDS):end]
            points.append(TensionPoint(
                position=end / len(words),
                tension_level=window_tension(window, screenplay),
                word_position=end,
            ))
    return points


# ---------------------------------------------------------------------------
# Plot points
# ---------------------------------------------------------------------------

def _point(beat: Beat, at: TensionPoint, description: str, screenplay: bool,
           improvement: Optional[str] = None) -> PlotPoint:
    return PlotPoint(
        type=beat.name,
        word_position=at.word_position,
        percentage_position=at.position,
        tension_level=at.tension_level,
        description=description,
        analysis_question=beat.question,
        suggested_improvement=improvement,
        is_screenplay_point=screenplay,
    )


def _add_key_beats(points: list[PlotPoint], curve: Sequence[TensionPoint],
                   beats: Sequence[Beat], keys: Sequence[str], screenplay: bool) -> None:
    found = {p.type for p in points}
    by_name = {b.name: b for b in beats}
    for name in keys:
        if name in found:
            continue
        beat = by_name[name]
        closest = min(curve, key=lambda p: abs(p.position - beat.position))
        if screenplay:
            description = f"Expected at ~{int(beat.position * SCREENPLAY_PAGES)} pages"
        else:
            description = f"Expected {beat.name}"
        points.append(_point(beat, closest, description, screenplay, beat.failure))


def novel_plot_points(curve: Sequence[TensionPoint]) -> list[PlotPoint]:
    if len(curve) < MIN_CURVE_POINTS:
        return []
    points: list[PlotPoint] = []
    for prev, current, nxt in zip(curve, curve[1:], curve[2:]):
        t = current.tension_level
        if t > prev.tension_level and t > nxt.tension_level and t > NOVEL_PEAK:
            beat = _beat_at(current.position, NOVEL_BEATS, NOVEL_BANDS)
            points.append(_point(beat, current, beat.question, False))
        if t < prev.tension_level and nxt.tension_level - t > SETUP_RISE:
            beat = _beat_at(current.position, NOVEL_BEATS, NOVEL_BANDS)
            points.append(_point(beat, current, "Setup before tension increase", False))
    _add_key_beats(points, curve, NOVEL_BEATS, NOVEL_KEY_BEATS, False)
    return sorted(points, key=lambda p: p.word_position)


def screenplay_plot_points(curve: Sequence[TensionPoint]) -> list[PlotPoint]:
    if len(curve) < MIN_CURVE_POINTS:
        return []
    points: list[PlotPoint] = []
    for prev, current, nxt in zip(curve, curve[1:], curve[2:]):
        t = current.tension_level
        peak = t > prev.tension_level and t > nxt.tension_level and t > SCREENPLAY_PEAK
        reversal = (abs(t - prev.tension_level) > REVERSAL_JUMP
                    or abs(nxt.tension_level - t) > REVERSAL_JUMP)
        if peak or reversal:
            beat = _beat_at(current.position, SCREENPLAY_BEATS, SCREENPLAY_BANDS)
            points.append(_point(beat, current, beat.question, True))
    _add_key_beats(points, curve, SCREENPLAY_BEATS, SCREENPLAY_KEY_BEATS, True)
    return sorted(points, key=lambda p: p.word_position)


def missing_points(points: Sequence[PlotPoint], beats: Sequence[Beat]) -> list[str]:
    found = {p.type for p in points}
    return [b.name for b in beats if b.name not in found]


# ---------------------------------------------------------------------------
# Structural issues
# ---------------------------------------------------------------------------

def novel_structural_issues(points: Sequence[PlotPoint],
                            curve: Sequence[TensionPoint]) -> list[StructuralIssue]:
    issues: list[StructuralIssue] = []

    streak = 0
    streak_start = 0.0
    for point in curve:
        if point.tension_level < 0.2:
            if streak == 0:
                streak_start = point.position
            streak += 1
            continue
        if streak > 5:
            issues.append(StructuralIssue(
                severity="Major" if streak > 10 else "Moderate",
                category="Excessive Inertia",
                description="Extended low-tension passage detected. Beautiful but potentially stagnant.",
                suggestion="Consider adding micro-conflicts, revelations, or thematic tensions "
                           "to maintain reader engagement.",
                affected_start=streak_start,
                affected_end=point.position,
            ))
        streak = 0

    first = next((p for p in points if p.tension_level > NOVEL_PEAK), None)
    if first is not None and first.percentage_position > 0.20:
        issues.append(StructuralIssue(
            severity="Major" if first.percentage_position > 0.30 else "Moderate",
            category="Late Plot Ignition",
            description=f"Plot ignition appears late at {int(first.percentage_position * 100)}%.",
            suggestion="Consider introducing the inciting disruption earlier to hook readers.",
            affected_start=0.0,
            affected_end=first.percentage_position,
        ))

    midpoint = [p.tension_level for p in curve if 0.45 <= p.position <= 0.55]
    if midpoint and population_variance(midpoint) < 0.02:
        issues.append(StructuralIssue(
            severity="Moderate",
            category="Thematic Diffusion",
            description="Midpoint lacks clear reversal or redefinition of success.",
            suggestion="The midpoint should change what victory looks like for the protagonist.",
            affected_start=0.45,
            affected_end=0.55,
        ))
    return issues


def screenplay_structural_issues(points: Sequence[PlotPoint], curve: Sequence[TensionPoint],
                                 word_count: int) -> list[StructuralIssue]:
    issues: list[StructuralIssue] = []

    streak = 0
    streak_start = 0.0
    for prev, current in zip(curve, curve[1:]):
        if abs(current.tension_level - prev.tension_level) < 0.05:
            if streak == 0:
                streak_start = prev.position
            streak += 1
            continue
        if streak > 3:
            issues.append(StructuralIssue(
                severity="Major" if streak > 6 else "Moderate",
                category="Repetitive Scenes",
                description="Sequence of scenes without visible turns detected.",
                suggestion="Each scene must turn: someone gains or loses leverage. "
                           "Would cutting these scenes break causality?",
                affected_start=streak_start,
                affected_end=current.position,
            ))
        streak = 0

    before = [p for p in curve if 0.40 <= p.position < 0.50]
    after = [p for p in curve if 0.50 <= p.position <= 0.60]
    if before and after and _mean(after) < _mean(before) * 0.9:
        issues.append(StructuralIssue(
            severity="Major",
            category="Midpoint Sag",
            description="Tension decreases after midpoint instead of escalating.",
            suggestion="Midpoint should be a visible reversal that raises stakes "
                       "and accelerates toward the climax.",
            affected_start=0.50,
            affected_end=0.60,
        ))

    if sum(1 for p in points if p.tension_level > 0.5) < 3:
        issues.append(StructuralIssue(
            severity="Moderate",
            category="Passive Protagonist",
            description="Few high-tension action beats detected.",
            suggestion="Protagonist must make visible choices under pressure. "
                       "Actions reveal character; dialogue alone cannot.",
            affected_start=0.0,
            affected_end=1.0,
        ))

    minutes = estimate_runtime(word_count, screenplay=True)
    if minutes < 85 or minutes > 130:
        issues.append(StructuralIssue(
            severity="Major" if minutes < 70 or minutes > 150 else "Minor",
            category="Pacing Problems",
            description=f"Estimated runtime: ~{minutes} minutes. "
                        "Feature films typically run 90-120 minutes.",
            suggestion="Consider expanding sequences or adding subplots." if minutes < 85
                       else "Consider tightening scenes; each must justify its screen time.",
            affected_start=0.0,
            affected_end=1.0,
        ))
    return issues


# ---------------------------------------------------------------------------
# Format metrics
# ---------------------------------------------------------------------------

def _lexicon_hits(text: str, lexicon: frozenset[str]) -> list[str]:
    return [w for w in (_clean(t) for t in text.split()) if w in lexicon]


def internal_change_score(text: str) -> int:
    return min(100, len(_lexicon_hits(text, INTERNAL_CHANGE_WORDS)) * 2)


def thematic_resonance(text: str) -> int:
    counts: dict[str, int] = {}
    for word in _lexicon_hits(text, THEMATIC_WORDS):
        counts[word] = counts.get(word, 0) + 1
    recurring = sum(1 for n in counts.values() if n >= 3)
    return min(100, recurring * 15)


def narrative_momentum(curve: Sequence[TensionPoint]) -> int:
    if len(curve) <= 2:
        return 50
    increases = sum(1 for a, b in zip(curve, curve[1:]) if b.tension_level > a.tension_level)
    decreases = len(curve) - 1 - increases
    bonus = 10 if increases and decreases else 0
    return min(100, int(increases / (len(curve) - 1) * 80) + bonus)


def visual_causality(text: str) -> int:
    words = text.split()
    hits = len(_lexicon_hits(text, VISUAL_ACTION_WORDS))
    words_per_action = len(words) / max(1, hits)
    if words_per_action < 20:
        return 100
    if words_per_action < 50:
        return 80
    if words_per_action < 100:
        return 60
    return 40


def scene_efficiency(text: str, word_count: int) -> int:
    scenes = len(_SCENE_HEADING.findall(text))
    if scenes == 0:
        return 50
    words_per_scene = word_count // scenes
    if 100 <= words_per_scene <= 300:
        return 90
    if words_per_scene < 100:
        return 60
    if words_per_scene <= 500:
        return 70
    return 40


def screenplay_pacing(curve: Sequence[TensionPoint]) -> int:
    if len(curve) < MIN_CURVE_POINTS:
        return 50
    score = 50
    act1 = next((p for p in curve if 0.23 <= p.position <= 0.27), None)
    act2 = next((p for p in curve if 0.73 <= p.position <= 0.77), None)
    if act1 is not None and act1.tension_level > 0.4:
        score += 15
    if act2 is not None and act2.tension_level > 0.6:
        score += 15
    final = [p for p in curve if p.position >= 0.75]
    if final and _mean(final) > 0.6:
        score += 20
    return min(100, score)


def estimate_runtime(word_count: int, screenplay: bool) -> int:
    """Minutes: screen time for screenplays, reading time for novels."""
    per_minute = SCREENPLAY_WORDS_PER_MINUTE if screenplay else NOVEL_WORDS_PER_MINUTE
    return max(1, word_count // per_minute)


def structure_score(points: Sequence[PlotPoint], missing: Sequence[str],
                    issues: Sequence[StructuralIssue], screenplay: bool) -> int:
    score = 100 - len(missing) * (8 if screenplay else 6)
    penalties = {"Minor": 3, "Moderate": 7, "Major": 12}
    score -= sum(penalties[i.severity] for i in issues)
    tensions = [p.tension_level for p in points]
    if len(tensions) > 2 and population_variance(tensions) > 0.05:
        score += 10
    return max(0, min(100, score))


@timed_node("plot_analysis", "plot")
def analyze_plot(text: str, detected: DetectedFormat, word_count: Optional[int] = None) -> PlotAnalysis:
    """Read *text* against the beat sheet for *detected*'s format.

    The curve is positioned over *text* itself; *word_count* (the
    untruncated total, when known) drives runtime and scene length.
    """
    screenplay = detected.format == "screenplay"
    if word_count is None:
        word_count = len(tokenize_words(text))
    curve = tension_curve(text, screenplay)

    if screenplay:
        points = screenplay_plot_points(curve)
        missing = missing_points(points, SCREENPLAY_BEATS)
        issues = screenplay_structural_issues(points, curve, word_count)
        extra = dict(
            visual_causality_score=visual_causality(text),
            scene_efficiency=scene_efficiency(text, word_count),
            pacing_score=screenplay_pacing(curve),
            estimated_runtime=estimate_runtime(word_count, screenplay=True),
        )
    else:
        points = novel_plot_points(curve)
        missing = missing_points(points, NOVEL_BEATS)
        issues = novel_structural_issues(points, curve)
        extra = dict(
            internal_change_score=internal_change_score(text),
            thematic_resonance=thematic_resonance(text),
            narrative_momentum=narrative_momentum(curve),
        )

    score = structure_score(points, missing, issues, screenplay)
    log.info("Plot: %s, %d curve points, %d beats, %d issues, score %d",
             detected.format, len(curve), len(points), len(issues), score)
    return PlotAnalysis(
        document_format=detected.format,
        format_confidence=detected.confidence,
        plot_points=points,
        tension_curve=curve,
        structure_score=score,
        missing_points=missing,
        structural_issues=issues,
        **extra,
    )
