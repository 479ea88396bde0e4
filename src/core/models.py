# core/models.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

_YOUTUBE_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")


class PlaybackMode(Enum):
    SEQUENTIAL = "sequential"
    RANDOM = "random"
    REPEAT = "repeat"


@dataclass(frozen=True)
class Track:
    media_ref: str          # YouTube video id, URL or local path
    title: str
    segment_start: float    # seconds into the media
    segment_end: float
    artist: str | None = None
    vocalists: frozenset[str] = field(default_factory=frozenset)
    category: str | None = None

    @property
    def duration(self) -> float:
        return max(0.0, float(self.segment_end) - float(self.segment_start))

    @property
    def is_playable(self) -> bool:
        return bool((self.media_ref or "").strip()) and self.segment_end > self.segment_start

    @property
    def thumbnail_url(self) -> str | None:
        if not _YOUTUBE_ID_RE.match(self.media_ref or ""):
            return None
        return f"https://img.youtube.com/vi/{self.media_ref}/maxresdefault.jpg"

    def same_segment(self, other: "Track") -> bool:
        return (
            self.media_ref == other.media_ref
            and self.segment_start == other.segment_start
            and self.segment_end == other.segment_end
        )


@dataclass(frozen=True)
class TrackFilter:
    category: str | None = None
    vocalist: str | None = None

    def is_empty(self) -> bool:
        return not self.category and not self.vocalist

    def matches(self, track: Track) -> bool:
        if self.category and track.category != self.category:
            return False
        if self.vocalist and self.vocalist not in track.vocalists:
            return False
        return True
