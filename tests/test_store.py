import pytest

import store


async def test_documents_upsert_and_count(db):
    await store.put_document("articles", "a1", {"title": {"english": "One"}})
    await store.put_document("articles", "a1", {"title": {"english": "Uno"}})
    await store.put_document("articles", "a2", {})
    assert await store.count_documents("articles") == 2
    assert await store.count_documents("events") == 0
    assert (await store.get_document("articles", "a1"))["title"]["english"] == "Uno"
    assert await store.get_document("articles", "missing") is None


async def test_get_article_normalizes(db):
    await store.put_document("articles", "a1", {
        "title": {"english": "Cats", "korean": "고양이"},
        "content": {"english": ["One.", "Two."], "korean": ["하나."]},
        "audio": {"url": "a.mp3", "characters": ["O", "n"],
                  "character_start_times_seconds": [0, 0.1],
                  "character_end_times_seconds": [0.1, 0.2]},
    })
    article = await store.get_article("a1")
    assert article.title_korean == "고양이"
    assert article.korean == ["하나.", ""]
    assert article.korean_for(1) is None
    assert [t.character for t in article.audio.timestamps] == ["O", "n"]


async def test_get_article_missing(db):
    with pytest.raises(store.ArticleNotFound):
        await store.get_article("nope")


async def test_definition_cache_is_per_article(db):
    await store.put_cached_definition("a1", "cat", "고양이")
    await store.put_cached_definition("a1", "cat", "작은 고양이")
    assert await store.get_cached_definition("a1", "cat") == "작은 고양이"
    assert await store.get_cached_definition("a2", "cat") is None


async def test_saved_words(db):
    await store.add_saved_word("u1", "cat")
    await store.add_saved_word("u1", "cat")
    await store.add_saved_word("u1", "dog")
    await store.add_saved_word("u2", "owl")
    assert sorted(await store.list_saved_words("u1")) == ["cat", "dog"]
    await store.remove_saved_word("u1", "cat")
    assert await store.list_saved_words("u1") == ["dog"]
