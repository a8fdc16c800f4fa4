# ABOUTME: Async HTTP clients for the AI completion endpoint and the dictionary API
# ABOUTME: Completion calls retry on 5xx/timeout; dictionary 404 means "no entry"
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from urllib.parse import quote

import httpx

from settings import DICTIONARY_BASE_URL, OPENAI_API_KEY, OPENAI_BASE_URL, OPENAI_MODEL

logger = logging.getLogger("one-cup-english.clients")

REQUEST_TIMEOUT = 30.0
MAX_RETRIES = 3
BACKOFF_SECS = [1, 2, 4]

LANGUAGE_NAMES = {"ko": "Korean", "en": "English"}


class MissingCredential(Exception):
    """No API key configured for the completion endpoint."""


class MalformedResponse(ValueError):
    """The endpoint answered 2xx with a payload we cannot read."""


@dataclass
class DictionaryDefinition:
    definition: str
    example: str | None = None
    synonyms: list[str] = field(default_factory=list)
    antonyms: list[str] = field(default_factory=list)


@dataclass
class DictionaryMeaning:
    part_of_speech: str
    definitions: list[DictionaryDefinition] = field(default_factory=list)
    synonyms: list[str] = field(default_factory=list)
    antonyms: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "partOfSpeech": self.part_of_speech,
            "definitions": [
                {"definition": d.definition, "example": d.example,
                 "synonyms": d.synonyms, "antonyms": d.antonyms}
                for d in self.definitions
            ],
            "synonyms": self.synonyms,
            "antonyms": self.antonyms,
        }


def build_definition_prompt(word: str, sentence: str, locale: str) -> str:
    language = LANGUAGE_NAMES.get(locale, "Korean")
    return (
        f'Define the English word "{word}" as it is used in this sentence:\n'
        f'"{sentence}"\n\n'
        f"Answer in {language} with one concise definition (one or two sentences). "
        f"Do not repeat the sentence and do not add examples."
    )


class CompletionClient:
    """Async client for an OpenAI-compatible chat completions endpoint."""

    def __init__(self, api_key: str = OPENAI_API_KEY, base_url: str = OPENAI_BASE_URL,
                 model: str = OPENAI_MODEL, transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.backoff_secs = BACKOFF_SECS

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(REQUEST_TIMEOUT, connect=10.0),
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _request_with_retry(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Make HTTP request with backoff retry on 5xx/timeout."""
        last_exc = None
        for attempt in range(MAX_RETRIES):
            try:
                client = await self._get_client()
                resp = await client.request(method, path, **kwargs)
                if resp.status_code < 500:
                    resp.raise_for_status()
                    return resp
                last_exc = httpx.HTTPStatusError(
                    f"Server error {resp.status_code}",
                    request=resp.request,
                    response=resp,
                )
            except httpx.TimeoutException as e:
                last_exc = e

            if attempt < MAX_RETRIES - 1:
                wait = self.backoff_secs[attempt]
                logger.warning("Completion request failed (attempt %d/%d), retrying in %ss: %s",
                               attempt + 1, MAX_RETRIES, wait, last_exc)
                await asyncio.sleep(wait)

        raise last_exc  # type: ignore[misc]

    async def define(self, word: str, sentence: str, locale: str) -> str:
        """Return a single concise definition of word in the locale's language."""
        if not self.api_key:
            raise MissingCredential("OPENAI_API_KEY is not set")

        resp = await self._request_with_retry(
            "POST",
            "/chat/completions",
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": "You are a concise English vocabulary tutor."},
                    {"role": "user", "content": build_definition_prompt(word, sentence, locale)},
                ],
                "temperature": 0.3,
                "max_tokens": 150,
            },
        )
        try:
            text = resp.json()["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise MalformedResponse(f"Unexpected completion payload: {e}") from e
        if not isinstance(text, str) or not text.strip():
            raise MalformedResponse("Empty completion")
        return text.strip()


def _str_list(v) -> list[str]:
    return [str(x) for x in v] if isinstance(v, list) else []


def parse_dictionary_entries(payload) -> list[DictionaryMeaning]:
    """Flatten dictionary entries into their meanings, in response order."""
    if not isinstance(payload, list):
        raise MalformedResponse("Dictionary payload is not a list")
    meanings: list[DictionaryMeaning] = []
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        for m in entry.get("meanings") or []:
            if not isinstance(m, dict):
                continue
            meanings.append(DictionaryMeaning(
                part_of_speech=str(m.get("partOfSpeech") or ""),
                definitions=[
                    DictionaryDefinition(
                        definition=str(d.get("definition") or ""),
                        example=d.get("example"),
                        synonyms=_str_list(d.get("synonyms")),
                        antonyms=_str_list(d.get("antonyms")),
                    )
                    for d in m.get("definitions") or []
                    if isinstance(d, dict)
                ],
                synonyms=_str_list(m.get("synonyms")),
                antonyms=_str_list(m.get("antonyms")),
            ))
    return meanings


class DictionaryClient:
    """Async client for the free dictionary API."""

    def __init__(self, base_url: str = DICTIONARY_BASE_URL, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(REQUEST_TIMEOUT, connect=10.0),
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def lookup(self, word: str) -> list[DictionaryMeaning] | None:
        """Meanings for word, or None when the dictionary has no entry (404)."""
        client = await self._get_client()
        resp = await client.get(f"{self.base_url}/{quote(word)}")
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return parse_dictionary_entries(resp.json())
