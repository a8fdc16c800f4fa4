# ABOUTME: Playback clock that polls an audio source once per frame and publishes highlight state
# ABOUTME: Audio sources are adapters; ClockedAudioSource simulates one on top of a Scheduler
from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

from char_word_map import CharacterWordMap, WordRef
from clock import Handle, Scheduler
from timestamp_index import TimestampIndex

logger = logging.getLogger("one-cup-english.playback")

AUDIO_EVENTS = ("loadedmetadata", "timeupdate", "ended")


class PlaybackBlocked(Exception):
    """The platform refused to start playback (e.g. autoplay policy)."""


class AudioSource(ABC):
    """Minimal audio element surface the clock relies on."""

    def __init__(self, url: str):
        self.url = url
        self._listeners: dict[str, list[Callable[[], None]]] = {}

    def add_listener(self, event: str, callback: Callable[[], None]):
        self._listeners.setdefault(event, []).append(callback)

    def remove_listener(self, event: str, callback: Callable[[], None]):
        callbacks = self._listeners.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def listener_count(self) -> int:
        return sum(len(v) for v in self._listeners.values())

    def emit(self, event: str):
        for callback in list(self._listeners.get(event, [])):
            callback()

    @property
    @abstractmethod
    def current_time(self) -> float: ...

    @current_time.setter
    @abstractmethod
    def current_time(self, value: float): ...

    @property
    @abstractmethod
    def duration(self) -> float:
        """Seconds, or NaN before metadata has loaded."""

    @property
    @abstractmethod
    def playback_rate(self) -> float: ...

    @playback_rate.setter
    @abstractmethod
    def playback_rate(self, value: float): ...

    @property
    @abstractmethod
    def paused(self) -> bool: ...

    @abstractmethod
    def load(self):
        """Start fetching metadata."""

    @abstractmethod
    async def play(self):
        """Start playback. May raise PlaybackBlocked."""

    @abstractmethod
    def pause(self): ...

    @abstractmethod
    def release(self):
        """Drop the underlying media resource."""


class ClockedAudioSource(AudioSource):
    """Audio source whose position advances with a Scheduler's clock."""

    def __init__(self, url: str, duration: float, scheduler: Scheduler, autoplay_allowed: bool = True):
        super().__init__(url)
        self._scheduler = scheduler
        self._known_duration = duration
        self._duration = math.nan
        self._rate = 1.0
        self._paused = True
        self._position = 0.0
        self._anchor = 0.0
        self._end_timer: Handle | None = None
        self.autoplay_allowed = autoplay_allowed
        self.released = False

    def _sync(self):
        if not self._paused:
            now = self._scheduler.now()
            self._position = min(self._position + (now - self._anchor) * self._rate, self._known_duration)
            self._anchor = now

    def _schedule_end(self):
        if self._end_timer is not None:
            self._end_timer.cancel()
            self._end_timer = None
        if not self._paused:
            remaining = max(self._known_duration - self._position, 0.0) / self._rate
            self._end_timer = self._scheduler.call_later(remaining, self._finish)

    def _finish(self):
        self._end_timer = None
        self._sync()
        self._position = self._known_duration
        self._paused = True
        self.emit("ended")

    @property
    def current_time(self) -> float:
        self._sync()
        return self._position

    @current_time.setter
    def current_time(self, value: float):
        self._sync()
        self._position = min(max(value, 0.0), self._known_duration)
        self._schedule_end()
        self.emit("timeupdate")

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def playback_rate(self) -> float:
        return self._rate

    @playback_rate.setter
    def playback_rate(self, value: float):
        self._sync()
        self._rate = value
        self._schedule_end()

    @property
    def paused(self) -> bool:
        return self._paused

    def load(self):
        self._duration = self._known_duration
        self.emit("loadedmetadata")

    async def play(self):
        if self.released:
            raise PlaybackBlocked("source released")
        if not self.autoplay_allowed:
            raise PlaybackBlocked("play() not allowed without user gesture")
        if self._paused:
            self._paused = False
            self._anchor = self._scheduler.now()
            self._schedule_end()

    def pause(self):
        self._sync()
        self._paused = True
        self._schedule_end()

    def release(self):
        self.pause()
        self._listeners.clear()
        self.released = True


class PlaybackStatus(str, Enum):
    IDLE = "idle"
    LOADED = "loaded"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass
class PlaybackState:
    is_playing: bool = False
    current_time: float = 0.0
    duration: float = 0.0
    progress: float = 0.0
    playback_speed: float = 1.0
    active_timestamp_index: int | None = None
    active_word: WordRef | None = None
    status: PlaybackStatus = PlaybackStatus.IDLE


SourceFactory = Callable[[str], AudioSource]


class PlaybackClock:
    """Owns the audio source and the per-frame tick loop for one article."""

    def __init__(
        self,
        index: TimestampIndex,
        scheduler: Scheduler,
        source_factory: SourceFactory,
        char_map: CharacterWordMap | None = None,
        alignment: str = "exact",
        is_in_viewport: Callable[[WordRef], bool] | None = None,
        on_scroll_request: Callable[[WordRef], None] | None = None,
        on_change: Callable[[PlaybackState], None] | None = None,
    ):
        self.index = index
        self.char_map = char_map
        self.alignment = alignment
        self.scheduler = scheduler
        self.source_factory = source_factory
        self.is_in_viewport = is_in_viewport
        self.on_scroll_request = on_scroll_request
        self.on_change = on_change
        self.state = PlaybackState()
        self._source: AudioSource | None = None
        self._frame: Handle | None = None
        self._handlers = {
            "loadedmetadata": self._on_loaded_metadata,
            "timeupdate": self._on_time_update,
            "ended": self._on_ended,
        }

    @property
    def source(self) -> AudioSource | None:
        return self._source

    @property
    def ticking(self) -> bool:
        return self._frame is not None

    def snapshot(self) -> PlaybackState:
        return replace(self.state)

    def _notify(self):
        if self.on_change:
            self.on_change(self.snapshot())

    # --- lifecycle ---

    def load(self, url: str):
        if self._source is not None:
            if self._source.url == url:
                return
            self.unload()

        source = self.source_factory(url)
        for event, handler in self._handlers.items():
            source.add_listener(event, handler)
        source.playback_rate = self.state.playback_speed
        self._source = source
        self.state.status = PlaybackStatus.LOADED
        source.load()
        logger.debug("Loaded audio %s", url)
        self._notify()

    def unload(self):
        """Stop the tick loop, detach listeners and release the source."""
        self._cancel_frame()
        source, self._source = self._source, None
        if source is not None:
            for event, handler in self._handlers.items():
                source.remove_listener(event, handler)
            source.pause()
            source.release()
            logger.debug("Released audio %s", source.url)
        self.state = PlaybackState(playback_speed=self.state.playback_speed)
        self._notify()

    # --- transport ---

    async def toggle_play_pause(self):
        source = self._source
        if source is None:
            logger.warning("toggle_play_pause with no audio loaded")
            return

        if self.state.is_playing:
            self.pause()
            return

        self.state.is_playing = True
        self.state.status = PlaybackStatus.PLAYING
        self._schedule_tick()
        self._notify()
        try:
            await source.play()
        except Exception as e:
            logger.warning("Audio playback was rejected: %s", e)
            if source is self._source:
                self.state.is_playing = False
                self.state.status = PlaybackStatus.PAUSED
                self._cancel_frame()
                self._notify()

    async def play(self):
        if not self.state.is_playing:
            await self.toggle_play_pause()

    def pause(self):
        if self._source is None:
            return
        self._source.pause()
        self.state.is_playing = False
        self.state.status = PlaybackStatus.PAUSED
        self._cancel_frame()
        self._publish_time()
        self._notify()

    def seek(self, fraction: float):
        """Jump to a fraction of the duration and publish immediately."""
        if self._source is None:
            return
        duration = self._known_duration()
        if not duration:
            logger.debug("Seek ignored: duration unknown")
            return
        self.seek_to_time(min(max(fraction, 0.0), 1.0) * duration)

    def seek_to_time(self, seconds: float):
        if self._source is None:
            return
        self._source.current_time = max(seconds, 0.0)
        self._publish_time()
        self._update_active()
        self._notify()

    def set_speed(self, multiplier: float):
        self.state.playback_speed = multiplier
        if self._source is not None:
            self._source.playback_rate = multiplier
        self._notify()

    # --- tick loop ---

    def _schedule_tick(self):
        if self._frame is None:
            self._frame = self.scheduler.request_frame(self._tick)

    def _cancel_frame(self):
        if self._frame is not None:
            self._frame.cancel()
            self._frame = None

    def _tick(self):
        self._frame = None
        if not self.state.is_playing or self._source is None:
            return
        self._publish_time()
        self._update_active()
        self._notify()
        if self.state.is_playing:
            self._schedule_tick()

    def _known_duration(self) -> float:
        if self._source is None:
            return 0.0
        duration = self._source.duration
        if duration is None or math.isnan(duration) or math.isinf(duration):
            return 0.0
        return duration

    def _publish_time(self):
        if self._source is None:
            return
        current = self._source.current_time
        duration = self._known_duration()
        self.state.current_time = current
        self.state.duration = duration
        self.state.progress = (current / duration * 100) if duration else 0.0

    def _resolve_word(self, ts_index: int) -> WordRef | None:
        if self.alignment == "exact":
            if ts_index < 0 or self.char_map is None:
                return None
            ts = self.index.timestamps[ts_index]
            return self.char_map.lookup(ts.character, ts_index)

        estimate = self.index.estimate_position(self.state.current_time, self.state.duration)
        return WordRef(*estimate) if estimate else None

    def _update_active(self):
        ts_index = self.index.active_timestamp_for_time(self.state.current_time)
        self.state.active_timestamp_index = ts_index if ts_index >= 0 else None

        word = self._resolve_word(ts_index)
        if word == self.state.active_word:
            return
        self.state.active_word = word
        if word is not None and self.on_scroll_request is not None:
            if self.is_in_viewport is None or not self.is_in_viewport(word):
                self.on_scroll_request(word)

    # --- source events ---

    def _on_loaded_metadata(self):
        self.state.duration = self._known_duration()
        self._notify()

    def _on_time_update(self):
        if not self.state.is_playing:
            self._publish_time()

    def _on_ended(self):
        self._cancel_frame()
        if self._source is not None:
            self._source.current_time = 0.0
        self.state.is_playing = False
        self.state.current_time = 0.0
        self.state.progress = 0.0
        self.state.active_timestamp_index = None
        self.state.active_word = None
        self.state.status = PlaybackStatus.LOADED
        logger.debug("Playback ended")
        self._notify()
