from manuscript_analyzer.models import OutlineEntry, PageLocation
from manuscript_analyzer.nodes.segmentation import (
    build_stanzas,
    content_tokens,
    count_sentences,
    count_words,
    page_for_location,
    paragraph_stats,
    poetry_body_lines,
    split_into_chapters,
    split_sentences,
    tokenize_poem_words,
)


def test_words_and_sentences():
    assert count_words("  one two\tthree\nfour ") == 4
    assert count_words("") == 0
    assert split_sentences("Hi. Bye! Why?") == ["Hi", " Bye", " Why"]
    assert count_sentences("...") == 0


def test_paragraph_stats_flags_long_paragraphs():
    long_line = " ".join(["word"] * 151)
    stats = paragraph_stats(f"one two\n\n{long_line}\nthree\n")

    assert stats.count == 3
    assert stats.average_length == (2 + 151 + 1) // 3
    assert stats.long_paragraphs == [2]


def test_paragraph_stats_empty():
    stats = paragraph_stats("\n \n")
    assert stats.count == 0
    assert stats.long_paragraphs == []


def test_chapters_without_markers_is_single_chapter():
    chapters = split_into_chapters("Just a story.\nNo headings here.")
    assert len(chapters) == 1
    assert chapters[0].number == 1
    assert chapters[0].text == "Just a story.\nNo headings here."


def test_chapters_from_marker_lines():
    text = "Chapter 1\nIt began.\nChapter 2\nIt ended.\n"
    chapters = split_into_chapters(text)

    assert [c.number for c in chapters] == [1, 2]
    assert [c.title for c in chapters] == ["Chapter 1", "Chapter 2"]
    assert chapters[0].text == "Chapter 1\nIt began.\n"
    assert chapters[1].start == text.index("Chapter 2")
    assert "".join(c.text for c in chapters) == text


def test_outline_offsets_are_clamped():
    text = "a" * 20
    outline = [
        OutlineEntry("Chapter Two", 1, 10),
        OutlineEntry("Chapter One", 1, 0),
        OutlineEntry("Chapter Three", 1, 999),
    ]
    chapters = split_into_chapters(text, outline)

    assert [c.title for c in chapters] == ["Chapter One", "Chapter Two", "Chapter Three"]
    assert [c.number for c in chapters] == [1, 2, 3]
    assert len(chapters[0].text) == 10
    assert len(chapters[1].text) == 10
    assert chapters[2].text == ""
    assert chapters[2].start == 20


def test_outline_prefers_top_level_entries():
    text = "x" * 30
    outline = [
        OutlineEntry("Prologue", 1, 0),
        OutlineEntry("Scene", 2, 5),
        OutlineEntry("Interlude", 1, 15),
    ]
    chapters = split_into_chapters(text, outline)
    assert [c.title for c in chapters] == ["Prologue", "Interlude"]


def test_page_for_location():
    mapping = [PageLocation(100, 2), PageLocation(0, 1), PageLocation(200, 3)]
    assert page_for_location(150, mapping) == 2
    assert page_for_location(200, mapping) == 3
    assert page_for_location(-1, mapping) == 0
    assert page_for_location(50, []) == 0


def test_poetry_header_is_stripped():
    lines = poetry_body_lines("Night Song\nBy Someone\n\nline one\nline two")
    assert lines == ["line one", "line two"]


def test_poetry_without_header_keeps_first_line():
    lines = poetry_body_lines("The sea was loud, the night was long.\nAnd I was there.")
    assert lines[0] == "The sea was loud, the night was long."


def test_build_stanzas():
    stanzas = build_stanzas(["a", "b", "", "c", " ", "", "d"])
    assert stanzas == [["a", "b"], ["c"], ["d"]]


def test_poem_tokens():
    assert tokenize_poem_words("Don't stop, 2 Night!") == ["don't", "stop", "night"]
    assert content_tokens(["the", "sea", "at", "moonlight", "ox"]) == ["sea", "moonlight"]
