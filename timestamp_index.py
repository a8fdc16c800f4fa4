# ABOUTME: Paragraph character offsets, per-paragraph word ranges, and timestamp queries
# ABOUTME: Text index space (no paragraph separator); falls back to proportional time estimates
from __future__ import annotations

import math
from dataclasses import dataclass

from models import Timestamp

WordRange = tuple[int, int]  # inclusive global [start, end]


def build_offsets(paragraphs: list[str]) -> list[int]:
    """Cumulative character count of all preceding paragraphs."""
    offsets: list[int] = []
    total = 0
    for para in paragraphs:
        offsets.append(total)
        total += len(para)
    return offsets


def build_word_ranges(paragraphs: list[str], offsets: list[int]) -> list[list[WordRange]]:
    """Inclusive global ranges of each maximal non-whitespace run, per paragraph."""
    ranges: list[list[WordRange]] = []
    for para, base in zip(paragraphs, offsets):
        para_ranges: list[WordRange] = []
        start = None
        for i, ch in enumerate(para):
            if ch.isspace():
                if start is not None:
                    para_ranges.append((base + start, base + i - 1))
                    start = None
            elif start is None:
                start = i
        if start is not None:
            para_ranges.append((base + start, base + len(para) - 1))
        ranges.append(para_ranges)
    return ranges


@dataclass(frozen=True)
class TimestampIndex:
    paragraphs: tuple[str, ...]
    timestamps: tuple[Timestamp, ...]
    offsets: tuple[int, ...]
    word_ranges: tuple[tuple[WordRange, ...], ...]

    @classmethod
    def build(cls, paragraphs: list[str], timestamps: list[Timestamp]) -> TimestampIndex:
        offsets = build_offsets(paragraphs)
        word_ranges = build_word_ranges(paragraphs, offsets)
        return cls(
            paragraphs=tuple(paragraphs),
            timestamps=tuple(timestamps),
            offsets=tuple(offsets),
            word_ranges=tuple(tuple(r) for r in word_ranges),
        )

    @property
    def total_chars(self) -> int:
        if not self.paragraphs:
            return 0
        return self.offsets[-1] + len(self.paragraphs[-1])

    def active_range_for_char(self, global_char_index: int, paragraph_index: int) -> WordRange | None:
        """First word range of the paragraph containing the index, or None."""
        if not 0 <= paragraph_index < len(self.word_ranges):
            return None
        for start, end in self.word_ranges[paragraph_index]:
            if start <= global_char_index <= end:
                return (start, end)
        return None

    def word_index_for_char(self, global_char_index: int, paragraph_index: int) -> int | None:
        if not 0 <= paragraph_index < len(self.word_ranges):
            return None
        for i, (start, end) in enumerate(self.word_ranges[paragraph_index]):
            if start <= global_char_index <= end:
                return i
        return None

    def paragraph_for_char(self, global_char_index: int) -> int | None:
        """Paragraph whose text-space span contains the index."""
        for i in range(len(self.paragraphs) - 1, -1, -1):
            if self.offsets[i] <= global_char_index < self.offsets[i] + len(self.paragraphs[i]):
                return i
        return None

    def active_timestamp_for_time(self, current_time: float) -> int:
        """Index of the first entry with start <= t <= end, or -1 in a gap."""
        for i, ts in enumerate(self.timestamps):
            if ts.start <= current_time <= ts.end:
                return i
        return -1

    def estimate_position(self, current_time: float, duration: float) -> tuple[int, int] | None:
        """Guess (paragraph, word) by spreading the duration evenly over characters.

        Used when the character track cannot be trusted to line up with the text.
        """
        total = self.total_chars
        if total == 0 or not duration or math.isnan(duration) or duration <= 0:
            return None
        fraction = min(max(current_time / duration, 0.0), 1.0)
        char_index = min(int(fraction * total), total - 1)
        paragraph = self.paragraph_for_char(char_index)
        if paragraph is None:
            return None

        # Whitespace between words maps to the word before it
        word = self.word_index_for_char(char_index, paragraph)
        if word is None:
            candidates = [i for i, (s, _) in enumerate(self.word_ranges[paragraph]) if s <= char_index]
            if not candidates:
                return (paragraph, 0) if self.word_ranges[paragraph] else None
            word = candidates[-1]
        return (paragraph, word)
