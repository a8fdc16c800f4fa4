# ABOUTME: Word definition lookup: cached AI definition + dictionary entry, fetched concurrently
# ABOUTME: Each branch has its own loading flag; results for a superseded lookup are dropped
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Protocol

import httpx

import store
from lookup_clients import (
    CompletionClient,
    DictionaryClient,
    DictionaryMeaning,
    MalformedResponse,
    MissingCredential,
)
from settings import DEFINITION_LOCALE

logger = logging.getLogger("one-cup-english.definitions")

AI_FALLBACK_MESSAGES = {
    "ko": "뜻을 불러오지 못했습니다. 잠시 후 다시 시도해 주세요.",
    "en": "Sorry, we couldn't load a definition. Please try again later.",
}


class DefinitionCache(Protocol):
    async def get(self, article_id: str, word_lower: str) -> str | None: ...
    async def put(self, article_id: str, word_lower: str, text: str) -> None: ...


class SqliteDefinitionCache:
    """Per-article meanings stored alongside the content."""

    async def get(self, article_id: str, word_lower: str) -> str | None:
        return await store.get_cached_definition(article_id, word_lower)

    async def put(self, article_id: str, word_lower: str, text: str) -> None:
        await store.put_cached_definition(article_id, word_lower, text)


@dataclass
class DefinitionResult:
    word: str
    sentence: str
    article_id: str
    request_id: int = 0
    ai_definition: str | None = None
    ai_loading: bool = True
    ai_error: bool = False
    ai_cached: bool = False
    dictionary: list[DictionaryMeaning] | None = None
    dictionary_loading: bool = True

    @property
    def loading(self) -> bool:
        return self.ai_loading or self.dictionary_loading

    def to_dict(self) -> dict:
        return {
            "word": self.word,
            "sentence": self.sentence,
            "aiDefinition": self.ai_definition,
            "aiError": self.ai_error,
            "aiCached": self.ai_cached,
            "dictionary": [m.to_dict() for m in self.dictionary] if self.dictionary else None,
        }


class DefinitionLookupService:
    """Holds the state of one definition modal."""

    def __init__(
        self,
        cache: DefinitionCache | None = None,
        completion: CompletionClient | None = None,
        dictionary: DictionaryClient | None = None,
        locale: str = DEFINITION_LOCALE,
        on_change: Callable[[DefinitionResult], None] | None = None,
    ):
        self.cache = cache or SqliteDefinitionCache()
        self.completion = completion or CompletionClient()
        self.dictionary = dictionary or DictionaryClient()
        self.locale = locale
        self.on_change = on_change
        self.current: DefinitionResult | None = None
        self._seq = 0

    @property
    def fallback_message(self) -> str:
        return AI_FALLBACK_MESSAGES.get(self.locale, AI_FALLBACK_MESSAGES["en"])

    async def lookup(self, word: str, sentence: str, article_id: str) -> DefinitionResult:
        """Start both branches and wait for them; the returned result is this request's own."""
        self._seq += 1
        result = DefinitionResult(word=word, sentence=sentence, article_id=article_id, request_id=self._seq)
        self.current = result
        self._changed(result)

        await asyncio.gather(self._ai_branch(result), self._dictionary_branch(result))
        return result

    def clear(self):
        """Close the modal; any in-flight branch results are discarded."""
        self.current = None

    async def close(self):
        self.clear()
        await self.completion.close()
        await self.dictionary.close()

    def is_current(self, result: DefinitionResult) -> bool:
        current = self.current
        return (
            current is result
            and current.word == result.word
            and current.article_id == result.article_id
        )

    def _commit(self, result: DefinitionResult, **fields):
        if not self.is_current(result):
            logger.debug("Dropping stale %s result for %r", ", ".join(fields), result.word)
            return
        for name, value in fields.items():
            setattr(result, name, value)
        self._changed(result)

    def _changed(self, result: DefinitionResult):
        if self.on_change:
            self.on_change(result)

    async def _ai_branch(self, result: DefinitionResult):
        key = result.word.lower()
        try:
            cached = await self.cache.get(result.article_id, key)
        except Exception as e:
            logger.warning("Definition cache read failed for %r: %s", key, e)
            cached = None
        if cached:
            self._commit(result, ai_definition=cached, ai_cached=True, ai_loading=False)
            return

        try:
            text = await self.completion.define(result.word, result.sentence, self.locale)
        except MissingCredential:
            logger.warning("AI definition unavailable: no API key configured")
            self._commit(result, ai_definition=self.fallback_message, ai_error=True, ai_loading=False)
            return
        except (httpx.HTTPError, MalformedResponse) as e:
            logger.warning("AI definition failed for %r: %s", result.word, e)
            self._commit(result, ai_definition=self.fallback_message, ai_error=True, ai_loading=False)
            return
        except Exception:
            logger.exception("Unexpected error defining %r", result.word)
            self._commit(result, ai_definition=self.fallback_message, ai_error=True, ai_loading=False)
            return

        try:
            await self.cache.put(result.article_id, key, text)
        except Exception as e:
            logger.warning("Definition cache write failed for %r: %s", key, e)
        self._commit(result, ai_definition=text, ai_loading=False)

    async def _dictionary_branch(self, result: DefinitionResult):
        try:
            entry = await self.dictionary.lookup(result.word)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Dictionary lookup failed for %r: %s", result.word, e)
            entry = None
        self._commit(result, dictionary=entry, dictionary_loading=False)
