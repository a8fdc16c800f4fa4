# ABOUTME: FastAPI server for the One Cup English reader: articles, word lookups, saved words
# ABOUTME: Also serves the non-cacheable home-stats / home-topics aggregates for the landing page
from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

import home
import store
from char_word_map import alignment_mode, audio_offsets
from definitions import DefinitionLookupService
from keywords import KeywordDetailsLoader
from render import reading_time
from settings import CORS_ORIGINS, HOST, MAX_WORD_LENGTH, PORT
from timestamp_index import TimestampIndex
from word_boundary import is_acceptable_word, strip_punctuation

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("one-cup-english")

NO_STORE = {"Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate"}

app = FastAPI(title="One Cup English API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

_keywords: KeywordDetailsLoader | None = None


class LookupRequest(BaseModel):
    word: str
    sentence: str = ""


class SavedWordRequest(BaseModel):
    word: str


def keyword_loader() -> KeywordDetailsLoader:
    global _keywords
    if _keywords is None:
        _keywords = KeywordDetailsLoader()
    return _keywords


@app.on_event("startup")
async def startup():
    await store.init_db()
    logger.info("One Cup English API started (db=%s)", store.DB_PATH)


@app.on_event("shutdown")
async def shutdown():
    global _keywords
    if _keywords is not None:
        await _keywords.close()
        _keywords = None


@app.get("/health")
async def health():
    return {"status": "ok", "db": store.DB_PATH}


@app.get("/api/home-stats")
async def home_stats():
    try:
        stats = await home.fetch_home_stats()
        return JSONResponse(stats, headers=NO_STORE)
    except Exception as e:
        logger.exception("Failed to fetch home stats: %s", e)
        return JSONResponse({"error": "Failed to fetch home stats"}, status_code=500, headers=NO_STORE)


@app.get("/api/home-topics")
async def home_topics():
    try:
        topics = await home.fetch_home_topics()
        return JSONResponse(topics, headers=NO_STORE)
    except Exception as e:
        logger.exception("Failed to fetch home topics: %s", e)
        return JSONResponse({"error": "Failed to fetch home topics"}, status_code=500, headers=NO_STORE)


async def _load_article(article_id: str):
    try:
        return await store.get_article(article_id)
    except store.ArticleNotFound:
        raise HTTPException(404, f"Article not found: {article_id}")


@app.get("/articles/{article_id}")
async def get_article(article_id: str):
    article = await _load_article(article_id)
    data = article.to_dict()
    data["readingTime"] = reading_time(article.english)
    return data


@app.get("/articles/{article_id}/alignment")
async def get_alignment(article_id: str):
    """Index tables the reading view needs to highlight along with the audio."""
    article = await _load_article(article_id)
    audio = article.audio
    timestamps = audio.timestamps if audio else []
    characters = audio.characters if audio and audio.has_character_track else [t.character for t in timestamps]
    index = TimestampIndex.build(article.english, timestamps)
    return {
        "articleId": article_id,
        "offsets": list(index.offsets),
        "wordRanges": [[list(r) for r in para] for para in index.word_ranges],
        "audioOffsets": audio_offsets(article.english),
        "timestampCount": len(timestamps),
        "alignment": alignment_mode(article.english, characters),
    }


@app.post("/articles/{article_id}/lookup")
async def lookup_word(article_id: str, req: LookupRequest):
    word = strip_punctuation(req.word.strip())
    if not is_acceptable_word(word):
        raise HTTPException(400, f"Not a single word (max {MAX_WORD_LENGTH} chars): {req.word!r}")
    await _load_article(article_id)

    service = DefinitionLookupService()
    try:
        result = await service.lookup(word, req.sentence, article_id)
    finally:
        await service.close()
    return result.to_dict()


@app.get("/users/{user_id}/saved-words")
async def list_saved_words(user_id: str):
    """Saved words with whatever details have loaded so far; the rest load in the background."""
    loader = keyword_loader()
    words = await loader.load_saved_words(user_id)
    return {
        "words": words,
        "details": {
            w: [m.to_dict() for m in loader.details[w.lower()]] if loader.details.get(w.lower()) else None
            for w in words
        },
        "loading": [w for w in words if loader.is_loading(w)],
    }


@app.post("/users/{user_id}/saved-words")
async def add_saved_word(user_id: str, req: SavedWordRequest):
    word = strip_punctuation(req.word.strip())
    if not is_acceptable_word(word):
        raise HTTPException(400, f"Not a single word: {req.word!r}")
    await store.add_saved_word(user_id, word)
    keyword_loader().fetch(word)
    return {"user_id": user_id, "word": word}


@app.delete("/users/{user_id}/saved-words/{word}")
async def remove_saved_word(user_id: str, word: str):
    await store.remove_saved_word(user_id, word)
    return {"deleted": word}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=HOST, port=PORT)
