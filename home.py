# ABOUTME: Home page aggregates: community counts and featured article summaries
# ABOUTME: Counts fall back through legacy collection names; failures degrade to zeros/empty lists
from __future__ import annotations

import asyncio
import logging
import sqlite3
from datetime import datetime, timezone

import store
from settings import FEATURED_ARTICLE_IDS

logger = logging.getLogger("one-cup-english.home")

MEETUP_COLLECTIONS = ["events", "meetups", "meetup"]
MEMBER_COLLECTIONS = ["users", "members"]
ARTICLE_COLLECTIONS = ["articles", "articleEntries", "posts"]

EXCERPT_CHARS = 140
MAX_TOPIC_KEYWORDS = 5


async def _count_first_nonempty(collections: list[str]) -> int:
    """Count of the first collection that has documents."""
    for name in collections:
        try:
            count = await store.count_documents(name)
        except sqlite3.Error as e:
            logger.warning("Count failed for collection %s: %s", name, e)
            continue
        if count > 0:
            if name != collections[0]:
                logger.info("Home stats: using fallback collection %r (primary returned no documents)", name)
            return count

    if len(collections) > 1:
        logger.warning("Home stats: collections %s returned no documents", ", ".join(collections))
    return 0


async def fetch_home_stats() -> dict:
    meetups, members, articles = await asyncio.gather(
        _count_first_nonempty(MEETUP_COLLECTIONS),
        _count_first_nonempty(MEMBER_COLLECTIONS),
        _count_first_nonempty(ARTICLE_COLLECTIONS),
    )
    stats = {"totalMeetups": meetups, "totalMembers": members, "totalArticles": articles}
    logger.info("Home stats fetched: %s", stats)
    return stats


def _excerpt(data: dict) -> str:
    english = (data.get("content") or {}).get("english") or []
    source = data.get("summary") or data.get("excerpt") or (english[0] if english else "")
    if isinstance(source, list):
        source = " ".join(str(s) for s in source)
    if not isinstance(source, str):
        source = ""
    return source[:EXCERPT_CHARS]


async def fetch_home_topics(article_ids: list[str] | None = None) -> list[dict]:
    """Featured article summaries in configured order; missing articles are skipped."""
    topics: list[dict] = []
    for article_id in article_ids if article_ids is not None else FEATURED_ARTICLE_IDS:
        try:
            data = await store.get_document("articles", article_id)
        except sqlite3.Error as e:
            logger.error("Error fetching article %s: %s", article_id, e)
            continue
        if data is None:
            logger.warning("Featured article %s not found", article_id)
            continue

        title = data.get("title") or {}
        keywords = data.get("keywords")
        topics.append({
            "id": article_id,
            "titleEnglish": title.get("english") or "",
            "titleKorean": title.get("korean") or "",
            "imageUrl": data.get("image_url") or data.get("hero_image") or "",
            "excerpt": _excerpt(data),
            "keywords": keywords[:MAX_TOPIC_KEYWORDS] if isinstance(keywords, list) else [],
            "timestampISO": data.get("timestamp") or datetime.now(timezone.utc).isoformat(),
        })

    logger.info("Fetched %d home topics", len(topics))
    return topics
