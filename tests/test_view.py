from conftest import A, B, C, CATALOG
from core.models import Track, TrackFilter
from core.utils import clamp, fmt_seconds, split_tags
from core.view import (
    FilterState, PlaylistView, category_choices, preview_count, resolve_view, vocalist_choices
)


class TestResolveView:
    def test_no_filter_keeps_catalog_order(self):
        assert list(resolve_view(CATALOG)) == [A, B, C]

    def test_category_and_vocalist_are_combined(self):
        view = resolve_view(CATALOG, TrackFilter(category="Original", vocalist="Ben"))
        assert list(view) == [C]
        assert view.track_filter.category == "Original"

    def test_vocalist_matches_any_listed_singer(self):
        assert list(resolve_view(CATALOG, TrackFilter(vocalist="Ann"))) == [A, C]

    def test_unplayable_tracks_dropped(self):
        bad = [Track("", "x", 0, 1), Track("ggggggggggg", "y", 5, 5)]
        assert resolve_view(bad).is_empty()

    def test_preview_count(self):
        assert preview_count(CATALOG, None) == 3
        assert preview_count(CATALOG, TrackFilter(category="Cover")) == 1
        assert preview_count(CATALOG, TrackFilter(category="Live")) == 0

    def test_choices(self):
        assert category_choices(CATALOG) == ["Cover", "Original"]
        assert vocalist_choices(CATALOG) == ["Ann", "Ben"]


class TestPlaylistView:
    def test_get_out_of_range(self):
        view = resolve_view(CATALOG)
        assert view.get(None) is None
        assert view.get(-1) is None
        assert view.get(3) is None
        assert view.get(2) == C

    def test_index_of_prefers_same_segment(self):
        first = Track("hhhhhhhhhhh", "Medley part 1", 0.0, 60.0)
        second = Track("hhhhhhhhhhh", "Medley part 2", 60.0, 120.0)
        view = PlaylistView(tracks=(first, second))
        assert view.index_of(second) == 1
        assert view.index_of(first) == 0

    def test_index_of_falls_back_to_media_ref(self):
        view = PlaylistView(tracks=(A, B))
        moved = Track(B.media_ref, "Song B (recut)", 1.0, 4.0)
        assert view.index_of(moved) == 1
        assert view.index_of(C) is None
        assert view.index_of(None) is None


class TestFilterState:
    def test_pending_edits_do_not_apply(self):
        fs = FilterState()
        fs.begin_edit()
        fs.set_pending_category("Cover")
        assert fs.applied == TrackFilter()
        assert fs.preview_count(CATALOG) == 1

    def test_commit(self):
        fs = FilterState()
        fs.set_pending_vocalist("Ann")
        fs.set_pending_category("Original")
        assert fs.can_confirm(CATALOG)
        assert fs.commit() == TrackFilter(category="Original", vocalist="Ann")
        assert fs.applied == fs.pending

    def test_zero_match_cannot_confirm(self):
        fs = FilterState()
        fs.set_pending_category("Cover")
        fs.set_pending_vocalist("Ann")
        assert not fs.can_confirm(CATALOG)

    def test_begin_edit_discards_draft(self):
        fs = FilterState(TrackFilter(category="Cover"))
        fs.set_pending_category(None)
        fs.begin_edit()
        assert fs.pending == TrackFilter(category="Cover")

    def test_blank_choice_clears(self):
        fs = FilterState(TrackFilter(vocalist="Ann"))
        fs.set_pending_vocalist("")
        assert fs.pending.vocalist is None
        assert fs.pending.is_empty()


class TestModels:
    def test_duration_and_thumbnail(self):
        t = Track("dQw4w9WgXcQ", "x", 12.5, 20.0)
        assert t.duration == 7.5
        assert t.thumbnail_url == "https://img.youtube.com/vi/dQw4w9WgXcQ/maxresdefault.jpg"
        assert Track("/media/clip.mp4", "y", 0, 1).thumbnail_url is None

    def test_negative_range_has_zero_duration(self):
        t = Track("ggggggggggg", "y", 9, 3)
        assert t.duration == 0.0
        assert not t.is_playable


def test_utils():
    assert split_tags(" Ann ,Ben,,  ") == frozenset({"Ann", "Ben"})
    assert split_tags(None) == frozenset()
    assert clamp(12, 0, 10) == 10.0
    assert clamp(5, 0, -1) == 0.0
    assert fmt_seconds(125.9) == "2:05"
    assert fmt_seconds(None) == "0:00"
