from __future__ import annotations

import asyncio

from lookup_clients import DictionaryMeaning
from models import AudioPayload, Timestamp


def speech_track(paragraphs: list[str], secs_per_char: float = 0.1) -> AudioPayload:
    """Character track for paragraphs joined by a newline break, one slot per char."""
    stream = "\n".join(paragraphs)
    timestamps = [
        Timestamp(start=round(i * secs_per_char, 6), end=round((i + 1) * secs_per_char, 6), character=ch)
        for i, ch in enumerate(stream)
    ]
    return AudioPayload(
        url="https://cdn.example.com/audio.mp3",
        timestamps=timestamps,
        characters=list(stream),
        character_start_times_seconds=[t.start for t in timestamps],
        character_end_times_seconds=[t.end for t in timestamps],
    )


class FakeCache:
    def __init__(self, data: dict | None = None, error: Exception | None = None):
        self.data = dict(data or {})
        self.error = error
        self.puts: list[tuple[str, str, str]] = []

    async def get(self, article_id, word_lower):
        if self.error:
            raise self.error
        return self.data.get((article_id, word_lower))

    async def put(self, article_id, word_lower, text):
        if self.error:
            raise self.error
        self.puts.append((article_id, word_lower, text))
        self.data[(article_id, word_lower)] = text


class FakeCompletion:
    """Completion client whose answers can be held back per word."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[str] = []

    def hold(self, word: str) -> asyncio.Event:
        self.gates[word] = asyncio.Event()
        return self.gates[word]

    async def define(self, word, sentence, locale):
        self.calls.append(word)
        if word in self.gates:
            await self.gates[word].wait()
        if self.error:
            raise self.error
        return f"definition of {word}"

    async def close(self):
        pass


class FakeDictionary:
    def __init__(self, entries: set[str] | None = None, error: Exception | None = None):
        self.entries = entries or set()
        self.error = error
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[str] = []

    def hold(self, word: str) -> asyncio.Event:
        self.gates[word] = asyncio.Event()
        return self.gates[word]

    async def lookup(self, word):
        self.calls.append(word)
        if word in self.gates:
            await self.gates[word].wait()
        if self.error:
            raise self.error
        if word not in self.entries:
            return None
        return [DictionaryMeaning(part_of_speech="noun")]

    async def close(self):
        pass
