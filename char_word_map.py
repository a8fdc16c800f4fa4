# ABOUTME: Maps synthesized-speech characters to the (paragraph, word) they belong to
# ABOUTME: Audio index space: each paragraph break counts as one character of the speech stream
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

logger = logging.getLogger("one-cup-english.charmap")

PARAGRAPH_BREAK = 1

TOKEN_SPLIT = re.compile(r"(\s+)")


@dataclass(frozen=True)
class WordRef:
    paragraph_index: int
    word_index: int


def char_key(character: str, global_index: int) -> str:
    return f"{character}-{global_index}"


def audio_offsets(paragraphs: list[str]) -> list[int]:
    """Start of each paragraph in the speech stream (paragraph length + 1 break)."""
    offsets: list[int] = []
    running = 0
    for para in paragraphs:
        offsets.append(running)
        running += len(para) + PARAGRAPH_BREAK
    return offsets


def expected_audio_length(paragraphs: list[str]) -> int:
    if not paragraphs:
        return 0
    return sum(len(p) for p in paragraphs) + PARAGRAPH_BREAK * (len(paragraphs) - 1)


class CharacterWordMap:
    """Read-only lookup from character key to WordRef, built once per article."""

    def __init__(self, entries: dict[str, WordRef]):
        self._entries: Mapping[str, WordRef] = MappingProxyType(entries)

    @classmethod
    def build(cls, paragraphs: list[str], audio_characters: list[str]) -> CharacterWordMap:
        entries: dict[str, WordRef] = {}
        running = 0

        for p_idx, para in enumerate(paragraphs):
            local = 0
            word_idx = 0
            for token in TOKEN_SPLIT.split(para):
                if not token:
                    continue
                if token.isspace():
                    local += len(token)
                    continue
                ref = WordRef(p_idx, word_idx)
                for ch in token:
                    g = running + local
                    glyph = audio_characters[g] if g < len(audio_characters) else ch
                    entries[char_key(glyph, g)] = ref
                    local += 1
                word_idx += 1
            running += len(para) + PARAGRAPH_BREAK

        return cls(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, character: str, global_index: int) -> WordRef | None:
        """WordRef for a speech character, or None when the key is unknown."""
        return self._entries.get(char_key(character, global_index))


def alignment_mode(paragraphs: list[str], audio_characters: list[str]) -> str:
    """"exact" when the speech stream is exactly as long as the text plus one break per paragraph.

    Any other length means the map's indices would drift, so positions are estimated.
    """
    if not audio_characters:
        return "estimated"
    expected = expected_audio_length(paragraphs)
    if len(audio_characters) == expected:
        return "exact"
    logger.warning("Audio character track drifts from text by %d chars (%d vs %d); estimating positions",
                   abs(len(audio_characters) - expected), len(audio_characters), expected)
    return "estimated"
