# ABOUTME: Renders article paragraphs as HTML for plain, quick-read and audio modes
# ABOUTME: Markup only wraps characters, so flattened text always equals the source paragraph
from __future__ import annotations

from html import escape

from char_word_map import TOKEN_SPLIT, WordRef
from settings import QUICK_READ_MAX_BOLD, READING_WPM
from word_boundary import ORIGINAL_TEXT_ATTR, TEXT_CONTAINER_CLASS


def reading_time(paragraphs: list[str], wpm: int = READING_WPM) -> str:
    """Estimated reading time as "{minutes}분 {seconds}초"."""
    total_words = sum(len(p.split()) for p in paragraphs)
    seconds_total = total_words / wpm * 60
    minutes = int(seconds_total // 60)
    seconds = round(seconds_total % 60)
    return f"{minutes}분 {seconds}초"


def quick_read_bold_count(word: str) -> int:
    return max(1, min(QUICK_READ_MAX_BOLD, len(word) // 2))


def quick_read_html(text: str) -> str:
    parts: list[str] = []
    for token in TOKEN_SPLIT.split(text):
        if not token:
            continue
        if token.isspace():
            parts.append(escape(token))
            continue
        n = quick_read_bold_count(token)
        parts.append(f"<b>{escape(token[:n])}</b>{escape(token[n:])}")
    return "".join(parts)


def audio_html(text: str, paragraph_index: int, audio_offset: int, active: WordRef | None = None) -> str:
    """Every character in a span carrying its speech-stream index; words grouped."""
    parts: list[str] = []
    local = 0
    word_idx = 0
    for token in TOKEN_SPLIT.split(text):
        if not token:
            continue
        if token.isspace():
            parts.append(escape(token))
            local += len(token)
            continue
        classes = "word"
        if active is not None and active == WordRef(paragraph_index, word_idx):
            classes += " active"
        chars = []
        for ch in token:
            chars.append(f'<span class="char" data-index="{audio_offset + local}">{escape(ch)}</span>')
            local += 1
        parts.append(f'<span class="{classes}" data-word="{word_idx}">{"".join(chars)}</span>')
        word_idx += 1
    return "".join(parts)


def text_container(tag: str, inner_html: str, original: str, **data: int | str) -> str:
    attrs = "".join(f' data-{k.replace("_", "-")}="{escape(str(v))}"' for k, v in data.items())
    return (
        f'<{tag} class="{TEXT_CONTAINER_CLASS}" {ORIGINAL_TEXT_ATTR}="{escape(original)}"{attrs}>'
        f"{inner_html}</{tag}>"
    )
