"""Widget wiring, on the offscreen platform."""

from PySide6.QtCore import QBuffer, QIODevice, Qt
from PySide6.QtGui import QColor, QImage

from conftest import A, C, CATALOG, spy
from core.models import PlaybackMode, TrackFilter
from core.view import FilterState, resolve_view
from player.controller import ControllerState
from ui.dialogs.filter_dialog import FilterDialog
from ui.models.playlist_model import PlaylistModel
from ui.player_bar import TICKS, PlayerBar
from ui.widgets.playlist_widget import PlaylistWidget
from ui.workers.thumbnail_loader import ThumbnailLoader


class TestPlaylistModel:
    def test_rows_and_columns(self):
        model = PlaylistModel(CATALOG)
        assert model.rowCount() == 3
        assert model.columnCount() == 4
        assert model.data(model.index(2, 1)) == "Ann, Ben"
        assert model.data(model.index(1, 2)) == "Cover"
        assert model.data(model.index(0, 3)) == "0:10"
        assert model.data(model.index(0, 0), Qt.UserRole) == A

    def test_current_row_is_bold(self):
        model = PlaylistModel(CATALOG)
        model.set_current(1)
        assert model.data(model.index(1, 0), Qt.FontRole).bold()
        assert model.data(model.index(0, 0), Qt.FontRole) is None

    def test_track_at(self):
        model = PlaylistModel(CATALOG)
        assert model.track_at(2) == C
        assert model.track_at(3) is None


class TestPlaylistWidget:
    def test_empty_view_shows_placeholder(self):
        w = PlaylistWidget()
        w.set_view(resolve_view(CATALOG, TrackFilter(category="Live")))
        assert w.lbl_empty.isVisibleTo(w)
        assert not w.table.isVisibleTo(w)

    def test_now_playing_selects_row(self):
        w = PlaylistWidget()
        w.set_view(resolve_view(CATALOG))
        w.set_now_playing(2)
        assert w.selected_row() == 2


class TestFilterDialog:
    def test_apply_disabled_without_matches(self):
        fs = FilterState()
        dlg = FilterDialog(fs, CATALOG)
        assert dlg.apply_btn.isEnabled()

        fs.set_pending_category("Cover")
        fs.set_pending_vocalist("Ann")
        dlg._refresh_preview()
        assert not dlg.apply_btn.isEnabled()
        assert dlg.lbl_preview.text() == "No tracks match"

        dlg.apply()
        assert fs.applied == TrackFilter()

    def test_radio_choice_updates_draft_only(self):
        fs = FilterState()
        dlg = FilterDialog(fs, CATALOG)
        cover = next(b for b in dlg.category_group.buttons() if b.text() == "Cover")
        cover.click()
        assert fs.pending.category == "Cover"
        assert fs.applied == TrackFilter()
        assert dlg.preview_count() == 1

        dlg.apply()
        assert fs.applied == TrackFilter(category="Cover")


class TestPlayerBar:
    def test_controls_follow_controller(self, harness):
        bar = PlayerBar(harness.ctl)
        harness.ctl.trackChanged.emit(harness.ctl.current_track)
        assert bar.slider.maximum() == 10 * TICKS
        assert not bar.btn_prev.isEnabled()
        assert bar.btn_next.isEnabled()

        harness.ctl.toggle_repeat()
        assert bar.btn_repeat.isChecked()
        assert not bar.btn_next.isEnabled()

    def test_slider_drag_seeks(self, harness):
        bar = PlayerBar(harness.ctl)
        harness.ctl.play()
        bar._on_slider_pressed()
        bar._on_slider_moved(25)
        assert harness.ctl.state is ControllerState.SEEK_PENDING
        bar._on_slider_released()
        assert harness.adapter.calls[-2:] == [("load", A.media_ref, 2.5, 10.0), ("play",)]
        assert harness.ctl.state is ControllerState.PLAYING

    def test_mode_buttons(self, harness):
        bar = PlayerBar(harness.ctl)
        bar.btn_random.click()
        assert harness.ctl.mode is PlaybackMode.RANDOM
        bar.btn_repeat.click()
        assert harness.ctl.mode is PlaybackMode.REPEAT
        assert not bar.btn_random.isChecked()


def _png(width=120, height=90) -> bytes:
    image = QImage(width, height, QImage.Format_RGB32)
    image.fill(QColor("#38bdf8"))
    buf = QBuffer()
    buf.open(QIODevice.WriteOnly)
    image.save(buf, "PNG")
    return buf.data().data()


class FakeThumbnailClient:
    def __init__(self, images):
        self.images = images
        self.fetched = []

    def fetch(self, url):
        self.fetched.append(url)
        return self.images.get(url)


class TestThumbnails:
    def test_model_decorates_title_column(self):
        model = PlaylistModel(CATALOG)
        changed = spy(model.dataChanged)
        assert model.data(model.index(0, 0), Qt.DecorationRole) is None

        assert model.set_thumbnail(A.media_ref, _png())

        pm = model.data(model.index(0, 0), Qt.DecorationRole)
        assert pm is not None and not pm.isNull()
        assert pm.width() <= PlaylistModel.THUMB_SIZE.width()
        assert pm.height() <= PlaylistModel.THUMB_SIZE.height()
        assert model.data(model.index(0, 1), Qt.DecorationRole) is None
        assert model.data(model.index(1, 0), Qt.DecorationRole) is None
        assert len(changed) == 1

    def test_thumbnails_survive_view_changes(self):
        w = PlaylistWidget()
        w.set_view(resolve_view(CATALOG))
        w.set_thumbnail(C.media_ref, _png())
        w.set_view(resolve_view(CATALOG, TrackFilter(vocalist="Ben")))
        assert w.model.data(w.model.index(1, 0), Qt.DecorationRole) is not None

    def test_undecodable_image_is_ignored(self):
        model = PlaylistModel(CATALOG)
        assert not model.set_thumbnail(A.media_ref, b"not an image")
        assert model.data(model.index(0, 0), Qt.DecorationRole) is None

    def test_loader_emits_fetched_images(self):
        png = _png()
        client = FakeThumbnailClient({A.thumbnail_url: png})
        loader = ThumbnailLoader(
            {A.media_ref: A.thumbnail_url, C.media_ref: C.thumbnail_url}, client=client
        )
        got = spy(loader.thumbnail_ready)

        loader.run()

        assert client.fetched == [A.thumbnail_url, C.thumbnail_url]
        assert got == [(A.media_ref, png)]

    def test_player_bar_shows_current_track_thumbnail(self, harness):
        bar = PlayerBar(harness.ctl)
        harness.ctl.trackChanged.emit(harness.ctl.current_track)
        assert not bar.lbl_thumb.isVisibleTo(bar)

        bar.set_thumbnail(C.media_ref, _png())
        assert not bar.lbl_thumb.isVisibleTo(bar)

        bar.set_thumbnail(A.media_ref, _png())
        assert bar.lbl_thumb.isVisibleTo(bar)
        assert not bar.lbl_thumb.pixmap().isNull()

        harness.ctl.select(2)
        assert bar.lbl_thumb.isVisibleTo(bar)

        harness.ctl.set_catalog([])
        assert not bar.lbl_thumb.isVisibleTo(bar)
