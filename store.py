# ABOUTME: SQLite-backed async content store (articles, events, users as JSON documents)
# ABOUTME: Also holds the per-article AI definition cache and per-user saved-word lists
from __future__ import annotations

import json
from datetime import datetime, timezone

import aiosqlite

from models import Article, article_from_dict
from settings import DB_PATH

SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    id TEXT NOT NULL,
    data TEXT NOT NULL,
    created_at TEXT,
    updated_at TEXT,
    PRIMARY KEY (collection, id)
);
CREATE TABLE IF NOT EXISTS meanings (
    article_id TEXT NOT NULL,
    word TEXT NOT NULL,
    definition TEXT NOT NULL,
    created_at TEXT,
    PRIMARY KEY (article_id, word)
);
CREATE TABLE IF NOT EXISTS saved_words (
    user_id TEXT NOT NULL,
    word TEXT NOT NULL,
    created_at TEXT,
    PRIMARY KEY (user_id, word)
);
"""


class ArticleNotFound(KeyError):
    """The requested article document does not exist."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def init_db():
    """Create tables if they don't exist."""
    async with aiosqlite.connect(DB_PATH) as db:
        await db.executescript(SCHEMA)
        await db.commit()


async def put_document(collection: str, doc_id: str, data: dict):
    """Insert or replace a whole document."""
    now = _now()
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            """INSERT INTO documents (collection, id, data, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(collection, id) DO UPDATE SET data=excluded.data, updated_at=excluded.updated_at""",
            (collection, doc_id, json.dumps(data, ensure_ascii=False), now, now),
        )
        await db.commit()


async def get_document(collection: str, doc_id: str) -> dict | None:
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            "SELECT data FROM documents WHERE collection = ? AND id = ?", (collection, doc_id)
        ) as cursor:
            row = await cursor.fetchone()
            return json.loads(row[0]) if row else None


async def count_documents(collection: str) -> int:
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute("SELECT COUNT(*) FROM documents WHERE collection = ?", (collection,)) as cursor:
            row = await cursor.fetchone()
            return int(row[0]) if row else 0


async def get_article(article_id: str) -> Article:
    """Fetch and normalize an article. Raises ArticleNotFound when absent."""
    data = await get_document("articles", article_id)
    if data is None:
        raise ArticleNotFound(article_id)
    return article_from_dict(article_id, data)


async def get_cached_definition(article_id: str, word_lower: str) -> str | None:
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            "SELECT definition FROM meanings WHERE article_id = ? AND word = ?", (article_id, word_lower)
        ) as cursor:
            row = await cursor.fetchone()
            return row[0] if row else None


async def put_cached_definition(article_id: str, word_lower: str, text: str):
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            """INSERT OR REPLACE INTO meanings (article_id, word, definition, created_at)
               VALUES (?, ?, ?, ?)""",
            (article_id, word_lower, text, _now()),
        )
        await db.commit()


async def list_saved_words(user_id: str) -> list[str]:
    """Saved words for a user, oldest first."""
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            "SELECT word FROM saved_words WHERE user_id = ? ORDER BY created_at, word", (user_id,)
        ) as cursor:
            return [row[0] async for row in cursor]


async def add_saved_word(user_id: str, word: str):
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            "INSERT OR IGNORE INTO saved_words (user_id, word, created_at) VALUES (?, ?, ?)",
            (user_id, word, _now()),
        )
        await db.commit()


async def remove_saved_word(user_id: str, word: str):
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute("DELETE FROM saved_words WHERE user_id = ? AND word = ?", (user_id, word))
        await db.commit()
