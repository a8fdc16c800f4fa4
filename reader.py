# ABOUTME: Reading session controller for one article: modes, gestures, seeking, translations
# ABOUTME: Builds the timestamp index and character map once per article and owns their playback clock
from __future__ import annotations

import json
import logging
import math
from enum import Enum
from html import escape
from pathlib import Path
from typing import Callable

from bs4 import Tag

from char_word_map import CharacterWordMap, WordRef, alignment_mode, audio_offsets
from clock import Handle, Scheduler
from definitions import DefinitionLookupService, DefinitionResult
from models import Article
from playback import PlaybackClock, SourceFactory
from render import audio_html, quick_read_html, text_container
from settings import (
    LONG_PRESS_MOVE_PX,
    LONG_PRESS_SECS,
    PREFS_PATH,
    TRANSLATION_WARNING_AUTOCLOSE_SECS,
    TRANSLATION_WARNING_THRESHOLD,
)
from timestamp_index import TimestampIndex
from word_boundary import CaretResolver, extract_word_at_point, is_acceptable_word

logger = logging.getLogger("one-cup-english.reader")

HIDE_TRANSLATION_WARNING = "hideTranslationWarning"


class ReadingMode(str, Enum):
    NORMAL = "normal"
    QUICK_READ = "quick_read"
    AUDIO = "audio"


class Preferences:
    """User preferences persisted as a small JSON file."""

    def __init__(self, path: str | Path = PREFS_PATH):
        self.path = Path(path)
        self._data: dict = {}
        if self.path.exists():
            try:
                self._data = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning("Ignoring unreadable preferences file %s: %s", self.path, e)

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def set(self, key: str, value):
        self._data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, ensure_ascii=False, indent=2), encoding="utf-8")


class PageDocument:
    """Document-level listener registry and body style of the reading page."""

    def __init__(self):
        self.listeners: dict[str, list[Callable]] = {}
        self.body_overflow = ""

    def add_listener(self, event: str, callback: Callable):
        self.listeners.setdefault(event, []).append(callback)

    def remove_listener(self, event: str, callback: Callable):
        callbacks = self.listeners.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def listener_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self.listeners.get(event, []))
        return sum(len(v) for v in self.listeners.values())

    def dispatch(self, event: str, *args):
        for callback in list(self.listeners.get(event, [])):
            callback(*args)


class ModalScope:
    """Escape/outside-click listeners and the scroll lock held while a modal is open.

    release() is the single teardown path and is safe to call repeatedly.
    """

    def __init__(self, document: PageDocument, on_dismiss: Callable[[], None]):
        self.document = document
        self.on_dismiss = on_dismiss
        self.active = False
        self._saved_overflow = ""

    def acquire(self):
        if self.active:
            return
        self.document.add_listener("keydown", self._on_keydown)
        self.document.add_listener("pointerdown", self._on_pointer_down)
        self._saved_overflow = self.document.body_overflow
        self.document.body_overflow = "hidden"
        self.active = True

    def release(self):
        if not self.active:
            return
        self.document.remove_listener("keydown", self._on_keydown)
        self.document.remove_listener("pointerdown", self._on_pointer_down)
        self.document.body_overflow = self._saved_overflow
        self.active = False

    def _on_keydown(self, key: str):
        if key == "Escape":
            self.on_dismiss()

    def _on_pointer_down(self, inside_modal: bool):
        if not inside_modal:
            self.on_dismiss()


class LongPressGesture:
    """Press-and-hold detection shared by mouse and touch input."""

    def __init__(self, scheduler: Scheduler, hold_secs: float = LONG_PRESS_SECS,
                 move_threshold: float = LONG_PRESS_MOVE_PX):
        self.scheduler = scheduler
        self.hold_secs = hold_secs
        self.move_threshold = move_threshold
        self.start: tuple[float, float] | None = None
        self.fired = False
        self._timer: Handle | None = None

    @property
    def armed(self) -> bool:
        return self._timer is not None

    def press(self, x: float, y: float):
        self.cancel()
        self.start = (x, y)
        self._timer = self.scheduler.call_later(self.hold_secs, self._fire)

    def _fire(self):
        self._timer = None
        self.fired = True

    def move(self, x: float, y: float):
        if self.start is None or self._timer is None:
            return
        if math.hypot(x - self.start[0], y - self.start[1]) > self.move_threshold:
            # A drag or scroll, not a long-press
            self.cancel()

    def release(self) -> bool:
        """End the press; True when the hold completed."""
        fired = self.fired
        self.cancel()
        return fired

    def cancel(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.start = None
        self.fired = False


class ArticleReadingController:
    def __init__(
        self,
        article: Article,
        scheduler: Scheduler,
        source_factory: SourceFactory,
        definitions: DefinitionLookupService,
        preferences: Preferences | None = None,
        document: PageDocument | None = None,
        caret_resolver: CaretResolver | None = None,
        is_in_viewport: Callable[[WordRef], bool] | None = None,
        on_scroll_request: Callable[[WordRef], None] | None = None,
    ):
        self.scheduler = scheduler
        self.source_factory = source_factory
        self.definitions = definitions
        self.preferences = preferences if preferences is not None else Preferences()
        self.document = document or PageDocument()
        self.caret_resolver = caret_resolver
        self.is_in_viewport = is_in_viewport
        self.on_scroll_request = on_scroll_request or self._record_scroll
        self.scroll_requests: list[WordRef] = []

        self.modal = ModalScope(self.document, self.close_definition)
        self.gesture = LongPressGesture(scheduler)
        self.clock: PlaybackClock | None = None
        # Kept across clock teardown
        self.playback_speed = 1.0
        self._warning_timer: Handle | None = None
        self.article: Article | None = None
        self.load_article(article)

    # --- article lifecycle ---

    def load_article(self, article: Article):
        """Tear down anything tied to the previous article and index the new one."""
        if self.article is not None:
            self.unmount()

        self.article = article
        audio = article.audio
        timestamps = audio.timestamps if audio else []
        characters = (audio.characters if audio and audio.has_character_track
                      else [t.character for t in timestamps])

        self.index = TimestampIndex.build(article.english, timestamps)
        self.char_map = CharacterWordMap.build(article.english, characters) if characters else None
        self.alignment = alignment_mode(article.english, characters)
        self.audio_offsets = audio_offsets(article.english)

        self.mode = ReadingMode.NORMAL
        self.korean_title_visible = False
        self.visible_korean: set[int] = set()
        self.translation_expansions = 0
        self.warning_visible = False
        self.warning_shown = False
        logger.info("Article %s ready: %d paragraphs, %d timestamps, alignment=%s",
                    article.id, len(article.english), len(timestamps), self.alignment)

    @property
    def has_audio(self) -> bool:
        return bool(self.article.audio and self.article.audio.url)

    def unmount(self):
        """Release every timer, listener and audio resource held by the view."""
        self._teardown_clock()
        self.gesture.cancel()
        self.close_definition()
        self._cancel_warning_timer()
        self.warning_visible = False

    # --- modes ---

    def set_mode(self, mode: ReadingMode):
        if mode == self.mode:
            return
        if mode == ReadingMode.AUDIO and not self.has_audio:
            logger.warning("Article %s has no audio; staying in %s mode", self.article.id, self.mode.value)
            return

        if self.mode == ReadingMode.AUDIO:
            self._teardown_clock()
        self.gesture.cancel()
        self.mode = mode
        if mode == ReadingMode.AUDIO:
            self._ensure_clock()

    def toggle_quick_read(self):
        self.set_mode(ReadingMode.NORMAL if self.mode == ReadingMode.QUICK_READ else ReadingMode.QUICK_READ)

    def toggle_audio_mode(self):
        self.set_mode(ReadingMode.NORMAL if self.mode == ReadingMode.AUDIO else ReadingMode.AUDIO)

    def _ensure_clock(self) -> PlaybackClock:
        if self.clock is None:
            self.clock = PlaybackClock(
                self.index,
                self.scheduler,
                self.source_factory,
                char_map=self.char_map,
                alignment=self.alignment,
                is_in_viewport=self.is_in_viewport,
                on_scroll_request=self.on_scroll_request,
            )
            self.clock.set_speed(self.playback_speed)
        self.clock.load(self.article.audio.url)
        return self.clock

    def _teardown_clock(self):
        clock, self.clock = self.clock, None
        if clock is not None:
            self.playback_speed = clock.state.playback_speed
            clock.unload()

    def set_speed(self, multiplier: float):
        self.playback_speed = multiplier
        if self.clock is not None:
            self.clock.set_speed(multiplier)

    def _record_scroll(self, word: WordRef):
        self.scroll_requests.append(word)

    # --- pointer input ---

    def press_start(self, x: float, y: float):
        if self.mode == ReadingMode.AUDIO:
            return
        self.gesture.press(x, y)

    def pointer_move(self, x: float, y: float):
        self.gesture.move(x, y)

    async def press_end(self, x: float, y: float) -> DefinitionResult | None:
        """Finish a press; a completed long-press looks up the word at the release point."""
        if self.mode == ReadingMode.AUDIO:
            self.gesture.cancel()
            return None
        if not self.gesture.release():
            return None
        if self.caret_resolver is None:
            return None

        extracted = extract_word_at_point(self.caret_resolver, x, y)
        if not is_acceptable_word(extracted.word):
            logger.debug("Ignoring selection %r", extracted.word)
            return None
        return await self.define(extracted.word, extracted.sentence)

    async def click(self, element: Tag) -> bool:
        """Audio mode: seek to the clicked character and start playback."""
        if self.mode != ReadingMode.AUDIO or self.clock is None:
            return False
        span = element if _is_char_span(element) else element.find_parent(_is_char_span)
        if span is None:
            return False
        try:
            char_index = int(span["data-index"])
        except (KeyError, ValueError):
            return False
        if not 0 <= char_index < len(self.index.timestamps):
            logger.debug("No timestamp for character %d", char_index)
            return False

        self.clock.seek_to_time(self.index.timestamps[char_index].start)
        if not self.clock.state.is_playing:
            await self.clock.play()
        return True

    # --- definition modal ---

    async def define(self, word: str, sentence: str) -> DefinitionResult:
        self.modal.acquire()
        return await self.definitions.lookup(word, sentence, self.article.id)

    @property
    def definition_open(self) -> bool:
        return self.modal.active

    def close_definition(self):
        self.modal.release()
        self.definitions.clear()

    # --- translations ---

    def toggle_korean_title(self):
        self.korean_title_visible = not self.korean_title_visible

    def toggle_korean_paragraph(self, index: int) -> bool:
        """Show/hide a paragraph's translation; True when this showed the reliance warning."""
        if index in self.visible_korean:
            self.visible_korean.discard(index)
            return False

        self.visible_korean.add(index)
        self.translation_expansions += 1
        if (self.translation_expansions >= TRANSLATION_WARNING_THRESHOLD
                and not self.warning_shown
                and not self.preferences.get(HIDE_TRANSLATION_WARNING, False)):
            self.warning_shown = True
            self.warning_visible = True
            self._warning_timer = self.scheduler.call_later(
                TRANSLATION_WARNING_AUTOCLOSE_SECS, self.dismiss_translation_warning)
            return True
        return False

    def dismiss_translation_warning(self, dont_show_again: bool = False):
        if dont_show_again:
            self.preferences.set(HIDE_TRANSLATION_WARNING, True)
        self._cancel_warning_timer()
        self.warning_visible = False

    def _cancel_warning_timer(self):
        if self._warning_timer is not None:
            self._warning_timer.cancel()
            self._warning_timer = None

    # --- rendering ---

    @property
    def active_word(self) -> WordRef | None:
        if self.clock is None:
            return None
        return self.clock.state.active_word

    def render_paragraph(self, index: int) -> str:
        text = self.article.english[index]
        if self.mode == ReadingMode.QUICK_READ:
            inner = quick_read_html(text)
        elif self.mode == ReadingMode.AUDIO:
            inner = audio_html(text, index, self.audio_offsets[index], self.active_word)
        else:
            inner = escape(text)
        return text_container("p", inner, text, paragraph=index)

    def render(self) -> str:
        parts = [text_container("h1", escape(self.article.title_english), self.article.title_english)]
        if self.korean_title_visible and self.article.title_korean:
            parts.append(text_container("h2", escape(self.article.title_korean), self.article.title_korean))
        for i in range(len(self.article.english)):
            parts.append(self.render_paragraph(i))
            korean = self.article.korean_for(i)
            if korean and i in self.visible_korean:
                parts.append(text_container("p", escape(korean), korean, korean=i))
        return "<article>" + "".join(parts) + "</article>"


def _is_char_span(tag) -> bool:
    return isinstance(tag, Tag) and tag.name == "span" and "char" in (tag.get("class") or [])
