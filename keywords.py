# ABOUTME: Saved-word list loading plus fire-and-forget dictionary details per keyword
# ABOUTME: Per-word loading flags with a watchdog that clears a flag stuck for too long
from __future__ import annotations

import asyncio
import logging

import httpx

import store
from lookup_clients import DictionaryClient, DictionaryMeaning
from settings import KEYWORD_WATCHDOG_SECS

logger = logging.getLogger("one-cup-english.keywords")


class KeywordDetailsLoader:
    """Fetches dictionary details for many words independently of each other."""

    def __init__(self, dictionary: DictionaryClient | None = None, watchdog_secs: float = KEYWORD_WATCHDOG_SECS):
        self.dictionary = dictionary or DictionaryClient()
        self.watchdog_secs = watchdog_secs
        self.details: dict[str, list[DictionaryMeaning] | None] = {}
        self.loading: dict[str, bool] = {}
        self._tokens: dict[str, int] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._watchdogs: dict[str, asyncio.TimerHandle] = {}
        # Superseded fetches keep running until they settle; hold references to them
        self._background: set[asyncio.Task] = set()

    def is_loading(self, word: str) -> bool:
        return self.loading.get(word.lower(), False)

    def fetch(self, word: str) -> asyncio.Task:
        """Start (or join) the detail fetch for one word. Needs a running loop."""
        key = word.lower()
        task = self._tasks.get(key)
        if self.loading.get(key) and task is not None and not task.done():
            return task

        token = self._tokens.get(key, 0) + 1
        self._tokens[key] = token
        self.loading[key] = True

        loop = asyncio.get_running_loop()
        self._arm_watchdog(key, token, loop)
        task = loop.create_task(self._run(key, token))
        self._tasks[key] = task
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        task.add_done_callback(lambda t, k=key: self._forget_task(k, t))
        return task

    def _forget_task(self, key: str, task: asyncio.Task):
        if self._tasks.get(key) is task:
            del self._tasks[key]

    def _arm_watchdog(self, key: str, token: int, loop: asyncio.AbstractEventLoop):
        old = self._watchdogs.pop(key, None)
        if old is not None:
            old.cancel()
        self._watchdogs[key] = loop.call_later(self.watchdog_secs, self._watchdog_fired, key, token)

    def _watchdog_fired(self, key: str, token: int):
        self._watchdogs.pop(key, None)
        if self._tokens.get(key) == token and self.loading.get(key):
            logger.warning("Detail fetch for %r did not settle in %.1fs; clearing loading flag",
                           key, self.watchdog_secs)
            self.loading[key] = False

    async def _run(self, key: str, token: int):
        try:
            meanings = await self.dictionary.lookup(key)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Detail fetch failed for %r: %s", key, e)
            meanings = None

        if self._tokens.get(key) != token:
            logger.debug("Dropping superseded detail result for %r", key)
            return
        self.details[key] = meanings
        self.loading[key] = False
        watchdog = self._watchdogs.pop(key, None)
        if watchdog is not None:
            watchdog.cancel()

    async def load_saved_words(self, user_id: str) -> list[str]:
        """Saved words for a user; kicks off detail fetches without waiting for them."""
        words = await store.list_saved_words(user_id)
        for word in words:
            if word.lower() not in self.details:
                self.fetch(word)
        return words

    async def wait_idle(self):
        """Wait for every fetch started so far (tests and shutdown)."""
        tasks = list(self._background)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def close(self):
        for handle in self._watchdogs.values():
            handle.cancel()
        self._watchdogs.clear()
        for task in self._background:
            task.cancel()
        await self.wait_idle()
        self._tasks.clear()
        await self.dictionary.close()
