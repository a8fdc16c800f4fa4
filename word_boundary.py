# ABOUTME: Resolves the word under a pointer from rendered paragraph HTML
# ABOUTME: Pure boundary/punctuation rules on flat text plus a BeautifulSoup caret adapter
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from settings import MAX_WORD_LENGTH

logger = logging.getLogger("one-cup-english.words")

TEXT_CONTAINER_CLASS = "article-text"
ORIGINAL_TEXT_ATTR = "data-original-text"

EM_DASH = "—"
EDGE_PUNCTUATION = re.compile(r"^[^\w]+|[^\w]+$")
SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


# --- flat text rules ---

def _is_boundary(ch: str) -> bool:
    return ch.isspace() or ch == EM_DASH


def word_span_at(text: str, offset: int) -> tuple[int, int]:
    """Half-open span of the run of non-space, non-em-dash characters around offset.

    Hyphens do not break words, so compounds come back whole.
    """
    offset = max(0, min(offset, len(text)))
    start = end = offset
    while start > 0 and not _is_boundary(text[start - 1]):
        start -= 1
    while end < len(text) and not _is_boundary(text[end]):
        end += 1
    return start, end


def strip_punctuation(word: str) -> str:
    """Drop leading/trailing punctuation; internal hyphens and apostrophes stay."""
    return EDGE_PUNCTUATION.sub("", word)


def word_at_offset(text: str, offset: int) -> str:
    start, end = word_span_at(text, offset)
    return strip_punctuation(text[start:end])


def is_acceptable_word(word: str, max_length: int = MAX_WORD_LENGTH) -> bool:
    """Reject empty, overly long, or multi-word selections (hyphen-joined is fine)."""
    if not word or len(word) > max_length:
        return False
    if any(ch.isspace() for ch in word) and "-" not in word:
        return False
    return True


def sentence_around(text: str, offset: int) -> str:
    """The sentence of a paragraph that contains the offset."""
    pos = 0
    for sentence in SENTENCE_SPLIT.split(text):
        start = text.find(sentence, pos)
        end = start + len(sentence)
        if start <= offset <= end:
            return sentence.strip()
        pos = end
    return text.strip()


# --- DOM adapter ---

@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float


@dataclass
class Caret:
    """Text position under a point: a text node and an offset into it."""
    node: NavigableString
    offset: int
    rect: Rect | None = None


@dataclass(frozen=True)
class ExtractedWord:
    word: str
    bounding_rect: Rect | None = None
    sentence: str = ""

    def __bool__(self) -> bool:
        return bool(self.word)


NO_WORD = ExtractedWord("")

CaretResolver = Callable[[float, float], "Caret | None"]


def text_nodes(container: Tag) -> list[NavigableString]:
    """Text nodes in document order, skipping comments."""
    return [s for s in container.find_all(string=True) if not isinstance(s, Comment)]


def flatten_text(container: Tag) -> str:
    """Plain text of a container, ignoring any highlight markup around it."""
    return "".join(str(s) for s in text_nodes(container))


def flat_offset(container: Tag, node: NavigableString, offset: int) -> int | None:
    total = 0
    for s in text_nodes(container):
        if s is node:
            return total + offset
        total += len(s)
    return None


def find_text_container(node) -> Tag | None:
    if isinstance(node, Tag) and TEXT_CONTAINER_CLASS in (node.get("class") or []):
        return node
    return node.find_parent(class_=TEXT_CONTAINER_CLASS)


def extract_word_at_point(resolve_caret: CaretResolver, x: float, y: float) -> ExtractedWord:
    """Word under (x, y), or NO_WORD when anything along the way is missing."""
    caret = resolve_caret(x, y)
    if caret is None:
        return NO_WORD

    container = find_text_container(caret.node)
    if container is None:
        return NO_WORD
    if container.get(ORIGINAL_TEXT_ATTR) is None:
        logger.debug("Text container without %s", ORIGINAL_TEXT_ATTR)
        return NO_WORD

    text = flatten_text(container)
    offset = flat_offset(container, caret.node, caret.offset)
    if offset is None:
        return NO_WORD

    word = word_at_offset(text, offset)
    if not word:
        return NO_WORD
    return ExtractedWord(word=word, bounding_rect=caret.rect, sentence=sentence_around(text, offset))


class MonospaceLayout:
    """Caret resolver for a headless page of fixed-width text.

    Each `.article-text` container is laid out as a block below the previous one,
    greedily word-wrapped at `columns` characters.
    """

    def __init__(self, html: str | BeautifulSoup, columns: int = 60,
                 char_width: float = 8.0, line_height: float = 20.0):
        self.soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html, "html.parser")
        self.columns = columns
        self.char_width = char_width
        self.line_height = line_height
        # (top line, container, [(line start offset, line text length)])
        self._blocks: list[tuple[int, Tag, list[tuple[int, int]]]] = []
        self.relayout()

    def relayout(self):
        self._blocks = []
        line_no = 0
        for container in self.soup.find_all(class_=TEXT_CONTAINER_CLASS):
            lines = self._wrap(flatten_text(container))
            self._blocks.append((line_no, container, lines))
            line_no += max(len(lines), 1)

    def _wrap(self, text: str) -> list[tuple[int, int]]:
        lines: list[tuple[int, int]] = []
        start = 0
        while start < len(text):
            end = min(start + self.columns, len(text))
            if end < len(text):
                brk = text.rfind(" ", start, end + 1)
                if brk > start:
                    end = brk + 1
            lines.append((start, end - start))
            start = end
        return lines

    def point_for_offset(self, container: Tag, offset: int) -> tuple[float, float] | None:
        """Centre of the character at a flat offset."""
        for top, block, lines in self._blocks:
            if block is not container:
                continue
            for i, (start, length) in enumerate(lines):
                if start <= offset < start + length:
                    col = offset - start
                    return ((col + 0.5) * self.char_width, (top + i + 0.5) * self.line_height)
        return None

    def __call__(self, x: float, y: float) -> Caret | None:
        line = int(y // self.line_height)
        col = int(x // self.char_width)
        if x < 0 or y < 0:
            return None
        for top, container, lines in self._blocks:
            if not top <= line < top + len(lines):
                continue
            start, length = lines[line - top]
            if col >= length:
                return None
            return self._caret_for(container, start + col)
        return None

    def _caret_for(self, container: Tag, offset: int) -> Caret | None:
        total = 0
        for s in text_nodes(container):
            if offset < total + len(s):
                rect = None
                point = self.point_for_offset(container, offset)
                if point:
                    rect = Rect(point[0] - self.char_width / 2, point[1] - self.line_height / 2,
                                self.char_width, self.line_height)
                return Caret(node=s, offset=offset - total, rect=rect)
            total += len(s)
        return None
