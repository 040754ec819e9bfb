import pytest
from fastapi.testclient import TestClient

from manuscript_analyzer.main import app


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_analyze_prose(client):
    response = client.post("/analyze", json={"text": "She was taken to the store. She quickly ran home."})
    assert response.status_code == 200

    body = response.json()
    assert body["results"]["word_count"] == 10
    assert body["results"]["passive_voice_phrases"] == ["was taken"]
    assert body["results"]["adverb_phrases"] == ["quickly"]
    assert "total_duration_ms" in body["report"]
    assert isinstance(body["report"]["nodes"], list)


def test_analyze_with_characters(client):
    payload = {
        "text": "Anna met Ben. Anna decided to stay. Ben left.",
        "characters": [{"key": "Anna", "aliases": ["Annie"]}, {"key": "Ben"}],
        "page_count_override": 3,
    }
    response = client.post("/analyze", json=payload)
    assert response.status_code == 200

    results = response.json()["results"]
    assert results["page_count"] == 3
    assert [p["character_name"] for p in results["character_presence"]] == ["Anna", "Ben"]
    assert results["character_presence"][0]["chapter_presence"] == {"1": 2}
    assert results["decision_consequence_chains"][0]["entries"][0]["decision"] == "Anna decided to stay"


def test_analyze_poetry_too_short(client):
    response = client.post("/analyze", json={"text": "one line", "style": "poetry"})
    assert response.status_code == 200
    assert response.json()["results"]["insufficient_poetry_content"] is True


def test_unknown_style_is_rejected(client):
    response = client.post("/analyze", json={"text": "Hello.", "style": "haiku"})
    assert response.status_code == 422
    body = response.json()
    assert "detail" in body
    assert "haiku" in body["body_preview"]


def test_missing_text_is_rejected(client):
    response = client.post("/analyze", json={"style": "prose"})
    assert response.status_code == 422
