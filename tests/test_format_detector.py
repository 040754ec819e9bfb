from manuscript_analyzer.models import DetectedFormat
from manuscript_analyzer.nodes.format_detector import MIN_DETECTABLE_LENGTH, detect_format

SCENE = """INT. KITCHEN - NIGHT

Jane stands by the sink.

JANE
Where were you?

TOM
Out.

"""

PARAGRAPH = (
    "Mara thought about the letter all night, and she wondered whether her brother had "
    "ever believed a single word of it. \"You never listen,\" she said, and he replied, "
    "\"I remembered everything.\" The next morning her eyes were red, and she felt the "
    "house had changed around her in ways she could not name or hold."
)


def test_short_text_defaults_to_novel():
    detected = detect_format("A short note.")
    assert detected.format == "novel"
    assert detected.confidence == 0.5


def test_detects_screenplay():
    text = "FADE IN:\n\n" + SCENE * 8
    detected = detect_format(text)
    assert detected.format == "screenplay"
    assert 0.6 < detected.confidence <= 1.0


def test_detection_starts_past_minimum_length():
    text = "FADE IN:\n\n" + SCENE * 8

    assert detect_format(text[:MIN_DETECTABLE_LENGTH]) == DetectedFormat("novel", 0.5)
    assert detect_format(text[:MIN_DETECTABLE_LENGTH + 1]).format == "screenplay"


def test_detects_novel():
    text = "\n\n".join([PARAGRAPH] * 3)
    detected = detect_format(text)
    assert detected.format == "novel"
    assert 0.6 <= detected.confidence <= 1.0
