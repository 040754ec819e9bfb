from manuscript_analyzer.nodes.detectors import (
    MAX_EXAMPLES,
    clean_token,
    count_sensory_words,
    detect_adverbs,
    detect_cliches,
    detect_filter_words,
    detect_passive_voice,
    detect_weak_verbs,
    is_missing_sensory_detail,
    unique_examples,
)
from manuscript_analyzer.nodes.segmentation import tokenize_words

SAMPLE = "She was taken to the store. She quickly ran home."


def test_passive_voice_irregular_participle():
    result = detect_passive_voice(SAMPLE)
    assert result.count == 1
    assert result.examples == ["was taken"]


def test_passive_voice_regular_participle():
    result = detect_passive_voice("The door WAS opened by the wind.")
    assert result.count >= 1
    assert "was opened" in result.examples


def test_adverbs_skip_exceptions():
    words = tokenize_words(SAMPLE + " The only friendly family left early.")
    result = detect_adverbs(words)
    assert result.count == 1
    assert result.examples == ["quickly"]


def test_weak_and_filter_words():
    weak = detect_weak_verbs(tokenize_words(SAMPLE))
    assert weak.count == 2
    assert weak.examples == ["was", "taken"]

    filters = detect_filter_words(tokenize_words("She saw the ship. She felt cold. She SAW it."))
    assert filters.count == 3
    assert filters.examples == ["saw", "felt"]


def test_cliches_count_every_occurrence():
    text = "At the end of the day, my heart raced. At the end of the day we left."
    result = detect_cliches(text)
    assert result.count == 3
    assert result.examples == ["at the end of the day", "heart raced"]


def test_examples_are_bounded():
    words = [f"x{i}ly" for i in range(20)]
    result = detect_adverbs(words)
    assert result.count == 20
    assert len(result.examples) == MAX_EXAMPLES


def test_unique_examples_is_case_insensitive():
    assert unique_examples(["Was", "was", "WAS", "been"]) == ["Was", "been"]
    assert unique_examples(["a", "b", "c"], limit=2) == ["a", "b"]


def test_clean_token():
    assert clean_token("“Quickly,”") == "quickly"
    assert clean_token("...") == ""


def test_sensory_words():
    assert count_sensory_words("The bright sun felt warm.") == 3
    assert count_sensory_words("") == 0


def test_missing_sensory_detail():
    assert is_missing_sensory_detail(0, 0) is False
    assert is_missing_sensory_detail(0, 10) is True
    assert is_missing_sensory_detail(1, 100) is True
    assert is_missing_sensory_detail(2, 100) is False
