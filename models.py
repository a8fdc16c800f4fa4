# ABOUTME: Article, audio payload and timestamp dataclasses for the reader
# ABOUTME: Parses stored article documents tolerantly (missing audio sub-fields become empty)
from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger("one-cup-english.models")


@dataclass(frozen=True)
class Timestamp:
    """One entry of the text-to-speech alignment track."""
    start: float
    end: float
    character: str


@dataclass
class AudioPayload:
    url: str = ""
    timestamps: list[Timestamp] = field(default_factory=list)
    characters: list[str] = field(default_factory=list)
    character_start_times_seconds: list[float] = field(default_factory=list)
    character_end_times_seconds: list[float] = field(default_factory=list)

    @property
    def has_character_track(self) -> bool:
        return bool(self.characters)


@dataclass
class Article:
    id: str
    title_english: str = ""
    title_korean: str = ""
    english: list[str] = field(default_factory=list)
    korean: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    image_url: str = ""
    source_url: str = ""
    discussion_topics: list[str] = field(default_factory=list)
    timestamp: str = ""
    audio: AudioPayload | None = None

    def korean_for(self, index: int) -> str | None:
        """Korean translation of a paragraph, or None when it has none."""
        if 0 <= index < len(self.korean) and self.korean[index]:
            return self.korean[index]
        return None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "title": {"english": self.title_english, "korean": self.title_korean},
            "content": {"english": list(self.english), "korean": list(self.korean)},
            "keywords": list(self.keywords),
            "image_url": self.image_url,
            "source_url": self.source_url,
            "discussion_topics": list(self.discussion_topics),
            "timestamp": self.timestamp,
        }
        if self.audio is not None:
            data["audio"] = {
                "url": self.audio.url,
                "timestamps": [
                    {"start": t.start, "end": t.end, "character": t.character}
                    for t in self.audio.timestamps
                ],
                "characters": list(self.audio.characters),
                "character_start_times_seconds": list(self.audio.character_start_times_seconds),
                "character_end_times_seconds": list(self.audio.character_end_times_seconds),
            }
        return data


def _as_str_list(v) -> list[str]:
    if v is None:
        return []
    if isinstance(v, str):
        return [v]
    if isinstance(v, list):
        return ["" if x is None else str(x) for x in v]
    return [str(v)]


def _as_float_list(v) -> list[float]:
    if not isinstance(v, list):
        return []
    out: list[float] = []
    for x in v:
        try:
            out.append(float(x))
        except (TypeError, ValueError):
            out.append(0.0)
    return out


def _parse_timestamps(raw) -> list[Timestamp]:
    if not isinstance(raw, list):
        return []
    out: list[Timestamp] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            out.append(Timestamp(
                start=float(item.get("start", 0.0)),
                end=float(item.get("end", 0.0)),
                character=str(item.get("character", "")),
            ))
        except (TypeError, ValueError):
            logger.warning("Skipping malformed timestamp entry: %r", item)
    return out


def parse_audio(raw) -> AudioPayload | None:
    """Build an AudioPayload from a stored dict, or None when there is no audio."""
    if not isinstance(raw, dict):
        return None
    audio = AudioPayload(
        url=str(raw.get("url") or ""),
        timestamps=_parse_timestamps(raw.get("timestamps")),
        characters=_as_str_list(raw.get("characters")),
        character_start_times_seconds=_as_float_list(raw.get("character_start_times_seconds")),
        character_end_times_seconds=_as_float_list(raw.get("character_end_times_seconds")),
    )

    # Character arrays are the finer-grained track; synthesize timestamps from them
    # when the coarse list was not stored.
    if not audio.timestamps and audio.characters:
        n = min(
            len(audio.characters),
            len(audio.character_start_times_seconds),
            len(audio.character_end_times_seconds),
        )
        if n != len(audio.characters):
            logger.warning("Audio character arrays disagree in length (%d chars, %d starts, %d ends)",
                           len(audio.characters), len(audio.character_start_times_seconds),
                           len(audio.character_end_times_seconds))
        audio.timestamps = [
            Timestamp(
                start=audio.character_start_times_seconds[i],
                end=audio.character_end_times_seconds[i],
                character=audio.characters[i],
            )
            for i in range(n)
        ]
    return audio


def article_from_dict(article_id: str, data: dict) -> Article:
    """Normalize a stored article document into an Article."""
    content = data.get("content") or {}
    title = data.get("title") or {}
    english = _as_str_list(content.get("english"))
    korean = _as_str_list(content.get("korean"))
    if len(korean) < len(english):
        korean = korean + [""] * (len(english) - len(korean))

    return Article(
        id=article_id,
        title_english=str(title.get("english") or ""),
        title_korean=str(title.get("korean") or ""),
        english=english,
        korean=korean,
        keywords=_as_str_list(data.get("keywords")),
        image_url=str(data.get("image_url") or ""),
        source_url=str(data.get("source_url") or ""),
        discussion_topics=_as_str_list(data.get("discussion_topics")),
        timestamp=str(data.get("timestamp") or ""),
        audio=parse_audio(data.get("audio")),
    )
