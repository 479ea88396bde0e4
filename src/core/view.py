# core/view.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from core.models import Track, TrackFilter


@dataclass(frozen=True)
class PlaylistView:
    """Ordered, filtered projection of the catalog. Never mutates a Track."""
    tracks: tuple[Track, ...] = ()
    track_filter: TrackFilter = TrackFilter()

    def __len__(self) -> int:
        return len(self.tracks)

    def __getitem__(self, index: int) -> Track:
        return self.tracks[index]

    def __iter__(self):
        return iter(self.tracks)

    def is_empty(self) -> bool:
        return not self.tracks

    def get(self, index: Optional[int]) -> Optional[Track]:
        if index is None or index < 0 or index >= len(self.tracks):
            return None
        return self.tracks[index]

    def index_of(self, track: Optional[Track]) -> Optional[int]:
        """
        Finds `track` by media_ref. When several entries share the media_ref
        (songs cut from one long video), the one with the same segment wins.
        """
        if track is None:
            return None
        first: Optional[int] = None
        for i, t in enumerate(self.tracks):
            if t.media_ref != track.media_ref:
                continue
            if t.same_segment(track):
                return i
            if first is None:
                first = i
        return first


def resolve_view(catalog: Iterable[Track], track_filter: Optional[TrackFilter] = None) -> PlaylistView:
    track_filter = track_filter or TrackFilter()
    tracks = tuple(t for t in catalog if t.is_playable and track_filter.matches(t))
    return PlaylistView(tracks=tracks, track_filter=track_filter)


def preview_count(catalog: Iterable[Track], track_filter: Optional[TrackFilter]) -> int:
    return len(resolve_view(catalog, track_filter))


def vocalist_choices(catalog: Iterable[Track]) -> list[str]:
    names: set[str] = set()
    for t in catalog:
        names.update(t.vocalists)
    return sorted(names)


def category_choices(catalog: Iterable[Track]) -> list[str]:
    return sorted({t.category for t in catalog if t.category})


class FilterState:
    """
    Applied filter plus the pending draft edited in the filter dialog.
    Editing the draft never touches the view or playback.
    """

    def __init__(self, applied: Optional[TrackFilter] = None):
        self.applied = applied or TrackFilter()
        self.pending = self.applied

    def begin_edit(self) -> None:
        self.pending = self.applied

    def set_pending_category(self, category: Optional[str]) -> None:
        self.pending = TrackFilter(category=category or None, vocalist=self.pending.vocalist)

    def set_pending_vocalist(self, vocalist: Optional[str]) -> None:
        self.pending = TrackFilter(category=self.pending.category, vocalist=vocalist or None)

    def preview_count(self, catalog: Iterable[Track]) -> int:
        return preview_count(catalog, self.pending)

    def can_confirm(self, catalog: Iterable[Track]) -> bool:
        return self.preview_count(catalog) > 0

    def commit(self) -> TrackFilter:
        self.applied = self.pending
        return self.applied
