"""Lexicon and pattern detectors.

Each detector is a pure scan returning ``DetectorResult(count, examples)``.
Counts reflect every match; examples are a capped, case-insensitively
deduplicated sample for display.
"""

from __future__ import annotations

import logging
import re
import string
from typing import Iterable, Sequence

from ..models import DetectorResult
from ..timing import timed_node

log = logging.getLogger(__name__)

MAX_EXAMPLES = 10
SENSORY_WORDS_PER_HIT = 50

_PUNCTUATION = string.punctuation + "“”‘’—–…"

PASSIVE_IRREGULAR_PARTICIPLES = (
    "known", "seen", "given", "taken", "done", "gone", "made", "found", "kept", "left", "lost",
    "built", "bought", "caught", "felt", "held", "heard", "lent", "paid", "read", "said",
    "sold", "sent", "set", "told", "thought", "understood", "written", "driven", "eaten",
    "thrown", "grown", "broken", "chosen", "spoken", "forgotten", "forgiven", "hidden",
    "shown", "sung", "worn", "born", "put", "cut", "hit", "hurt", "won", "beaten",
    "bound", "fed", "laid", "led", "met",
)

_AUX = r"\b(?:am|is|are|was|were|be|been|being)\b"
PASSIVE_VOICE_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        _AUX + r"\s+\w+ed\b",
        _AUX + r"\s+being\s+\w+ed\b",
        _AUX + r"\s+(?:" + "|".join(PASSIVE_IRREGULAR_PARTICIPLES) + r")\b",
    )
)

ADVERB_EXCEPTIONS = frozenset([
    "family", "only", "lovely", "lonely", "friendly", "silly", "ugly", "early", "daily",
    "weekly", "monthly", "yearly", "holy", "jelly", "belly", "bully", "fly", "rely",
    "supply", "apply", "reply",
])

SENSORY_WORDS = (
    # visual
    "see", "saw", "look", "looked", "bright", "dark", "colorful", "gleaming", "shadowy", "shimmering",
    # auditory
    "hear", "heard", "sound", "loud", "quiet", "whisper", "shout", "echo", "silence", "rumble",
    # tactile
    "feel", "felt", "touch", "rough", "smooth", "soft", "hard", "cold", "warm", "hot",
    # olfactory
    "smell", "smelled", "scent", "fragrant", "musty", "fresh", "acrid", "aromatic",
    # gustatory
    "taste", "tasted", "flavor", "sweet", "sour", "bitter", "salty", "savory", "delicious",
)
SENSORY_WORD_REGEX = re.compile(r"\b(" + "|".join(SENSORY_WORDS) + r")\w*\b", re.IGNORECASE)

WEAK_VERBS = frozenset([
    "is", "are", "was", "were", "be", "being", "been",
    "have", "has", "had", "having",
    "do", "does", "did", "doing",
    "get", "gets", "got", "getting", "gotten",
    "make", "makes", "made", "making",
    "go", "goes", "went", "going", "gone",
    "come", "comes", "came", "coming",
    "take", "takes", "took", "taking", "taken",
    "give", "gives", "gave", "giving", "given",
    "put", "puts", "putting",
    "seem", "seems", "seemed", "seeming",
    "become", "becomes", "became", "becoming",
])

CLICHES = (
    "at the end of the day", "think outside the box", "bottom line",
    "hit the ground running", "low-hanging fruit", "move the needle",
    "eyes sparkled", "eyes gleamed", "heart raced", "blood ran cold",
    "time stood still", "moment of truth", "breath caught",
    "crystal clear", "clear as day", "cold as ice", "dark as night",
    "quiet as a mouse", "quick as lightning", "strong as an ox",
    "busy as a bee", "light as a feather", "fit as a fiddle",
    "last but not least", "it goes without saying", "needless to say",
    "at this point in time", "in this day and age", "for all intents and purposes",
    "each and every", "first and foremost", "sad but true",
    "only time will tell", "easier said than done", "better late than never",
    "actions speak louder than words", "the tip of the iceberg",
    "a blessing in disguise", "add insult to injury", "beat around the bush",
    # physical reactions
    "heart pounded", "heart sank", "heart skipped", "heart leaped",
    "stomach churned", "stomach dropped", "stomach turned",
    "knees buckled", "knees weak", "jaw dropped", "jaw clenched",
    "fists clenched", "pulse quickened", "palms sweaty",
    "spine tingled", "hair stood on end", "goosebumps",
    "butterflies in stomach", "lump in throat", "face flushed",
    "cheeks burned", "ears burned", "blood boiled",
    # emotional
    "breath away", "swept off feet", "head over heels",
    "love at first sight", "match made in heaven",
    "writing on the wall", "threw caution to the wind",
    "caught between a rock and a hard place",
    "avoid like the plague", "bite the bullet", "break the ice",
    "cutting corners", "give the benefit of the doubt",
    "hit the nail on the head", "in the heat of the moment",
    "jump on the bandwagon", "let the cat out of the bag",
    "piece of cake", "raining cats and dogs", "bite off more than you can chew",
)

FILTER_WORDS = frozenset([
    "saw", "see", "sees", "seeing", "seen",
    "heard", "hear", "hears", "hearing",
    "felt", "feel", "feels", "feeling",
    "noticed", "notice", "notices", "noticing",
    "seemed", "seem", "seems", "seeming",
    "realized", "realize", "realizes", "realizing",
    "thought", "think", "thinks", "thinking",
    "wondered", "wonder", "wonders", "wondering",
    "watched", "watch", "watches", "watching",
    "looked", "look", "looks", "looking",
    "smelled", "smell", "smells", "smelling",
])


def clean_token(word: str) -> str:
    """Strip surrounding punctuation and lowercase."""
    return word.strip(_PUNCTUATION).lower()


def unique_examples(items: Iterable[str], limit: int = MAX_EXAMPLES) -> list[str]:
    """First *limit* items, deduplicated case-insensitively, order kept."""
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        key = item.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(item)
        if len(out) >= limit:
            break
    return out


@timed_node("passive_voice", "detector")
def detect_passive_voice(text: str) -> DetectorResult:
    count = 0
    phrases: list[str] = []
    for regex in PASSIVE_VOICE_PATTERNS:
        for match in regex.finditer(text):
            count += 1
            phrases.append(match.group(0).lower())
    return DetectorResult(count, unique_examples(phrases))


@timed_node("adverbs", "detector")
def detect_adverbs(words: Sequence[str]) -> DetectorResult:
    hits = []
    for word in words:
        clean = clean_token(word)
        if len(clean) > 2 and clean.endswith("ly") and clean not in ADVERB_EXCEPTIONS:
            hits.append(clean)
    return DetectorResult(len(hits), unique_examples(hits))


@timed_node("weak_verbs", "detector")
def detect_weak_verbs(words: Sequence[str]) -> DetectorResult:
    return _detect_membership(words, WEAK_VERBS)


@timed_node("filter_words", "detector")
def detect_filter_words(words: Sequence[str]) -> DetectorResult:
    return _detect_membership(words, FILTER_WORDS)


def _detect_membership(words: Sequence[str], lexicon: frozenset[str]) -> DetectorResult:
    hits = [clean for clean in (clean_token(w) for w in words) if clean in lexicon]
    return DetectorResult(len(hits), unique_examples(hits))


@timed_node("cliches", "detector")
def detect_cliches(text: str) -> DetectorResult:
    """Case-insensitive substring search; every occurrence counts."""
    lowered = text.lower()
    count = 0
    found: list[str] = []
    for cliche in CLICHES:
        occurrences = lowered.count(cliche)
        if occurrences:
            count += occurrences
            found.append(cliche)
    return DetectorResult(count, unique_examples(found))


@timed_node("sensory_words", "detector")
def count_sensory_words(text: str) -> int:
    return sum(1 for _ in SENSORY_WORD_REGEX.finditer(text))


def is_missing_sensory_detail(sensory_count: int, word_count: int) -> bool:
    """Fewer than one sensory word per fifty words (at least one expected)."""
    if word_count <= 0:
        return False
    return sensory_count < max(1, word_count // SENSORY_WORDS_PER_HIT)
