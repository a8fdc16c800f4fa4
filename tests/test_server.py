import asyncio
import time

import pytest
from fastapi.testclient import TestClient

import home
import server
import store
from definitions import DefinitionLookupService
from keywords import KeywordDetailsLoader
from tests.fakes import FakeCache, FakeCompletion, FakeDictionary, speech_track

ARTICLE = {
    "title": {"english": "A Cat", "korean": "고양이"},
    "content": {"english": ["The cat sat.", "It was happy."], "korean": ["고양이가 앉았다.", "행복했다."]},
    "keywords": ["cat"],
}


@pytest.fixture
def client(db_path):
    async def seed():
        await store.init_db()
        data = dict(ARTICLE)
        audio = speech_track(ARTICLE["content"]["english"])
        data["audio"] = {
            "url": audio.url,
            "characters": audio.characters,
            "character_start_times_seconds": audio.character_start_times_seconds,
            "character_end_times_seconds": audio.character_end_times_seconds,
        }
        await store.put_document("articles", "art-1", data)

    asyncio.run(seed())
    with TestClient(server.app) as c:
        yield c


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_home_stats_are_not_cacheable(client):
    resp = client.get("/api/home-stats")
    assert resp.status_code == 200
    assert resp.json()["totalArticles"] == 1
    assert "no-store" in resp.headers["cache-control"]


def test_home_stats_failure_is_500(client, monkeypatch):
    async def boom():
        raise RuntimeError("store down")

    monkeypatch.setattr(home, "fetch_home_stats", boom)
    resp = client.get("/api/home-stats")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to fetch home stats"}
    assert "no-store" in resp.headers["cache-control"]


def test_home_topics(client, monkeypatch):
    monkeypatch.setattr(server.home, "FEATURED_ARTICLE_IDS", ["art-1", "gone"])
    topics = client.get("/api/home-topics").json()
    assert [t["id"] for t in topics] == ["art-1"]
    assert topics[0]["excerpt"] == "The cat sat."


def test_get_article(client):
    body = client.get("/articles/art-1").json()
    assert body["title"]["english"] == "A Cat"
    assert body["readingTime"] == "0분 2초"
    assert len(body["audio"]["timestamps"]) == 26


def test_missing_article_is_404(client):
    assert client.get("/articles/nope").status_code == 404
    assert client.post("/articles/nope/lookup", json={"word": "cat"}).status_code == 404


def test_alignment(client):
    body = client.get("/articles/art-1/alignment").json()
    assert body["offsets"] == [0, 12]
    assert body["audioOffsets"] == [0, 13]
    assert body["wordRanges"][0] == [[0, 2], [4, 6], [8, 11]]
    assert body["alignment"] == "exact"
    assert body["timestampCount"] == 26


def test_lookup_rejects_phrases(client):
    resp = client.post("/articles/art-1/lookup", json={"word": "two words"})
    assert resp.status_code == 400


def test_lookup_returns_both_branches(client, monkeypatch):
    monkeypatch.setattr(server, "DefinitionLookupService", lambda: DefinitionLookupService(
        cache=FakeCache(), completion=FakeCompletion(), dictionary=FakeDictionary({"cat"})))
    body = client.post("/articles/art-1/lookup", json={"word": "cat,", "sentence": "The cat sat."}).json()
    assert body["word"] == "cat"
    assert body["aiDefinition"] == "definition of cat"
    assert body["dictionary"][0]["partOfSpeech"] == "noun"
    assert not body["aiError"]


def test_saved_words(client, monkeypatch):
    monkeypatch.setattr(server, "_keywords", KeywordDetailsLoader(dictionary=FakeDictionary({"cat"})))
    assert client.post("/users/u1/saved-words", json={"word": "Cat!"}).json()["word"] == "Cat"
    assert client.post("/users/u1/saved-words", json={"word": "no way"}).status_code == 400

    for _ in range(50):
        body = client.get("/users/u1/saved-words").json()
        if not body["loading"]:
            break
        time.sleep(0.01)
    assert body["words"] == ["Cat"]
    assert body["details"]["Cat"][0]["partOfSpeech"] == "noun"

    assert client.delete("/users/u1/saved-words/Cat").json() == {"deleted": "Cat"}
    assert client.get("/users/u1/saved-words").json()["words"] == []
