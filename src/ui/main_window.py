from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QLabel, QHBoxLayout, QSplitter, QToolButton, QStyle
)
from PySide6.QtCore import Qt
from PySide6.QtGui import QShortcut, QKeySequence

from core.view import FilterState
from player.controller import ControllerState, PlaybackController
from ui.dialogs.filter_dialog import FilterDialog
from ui.player_bar import PlayerBar
from ui.widgets.playlist_widget import PlaylistWidget
from ui.widgets.toast import ToastManager
from ui.workers.catalog_loader import CatalogLoader
from ui.workers.thumbnail_loader import ThumbnailLoader


class MainWindow(QMainWindow):
    def __init__(self, app_state, make_adapter):
        """
        `make_adapter(wid)` builds the PlayerAdapter that renders into the
        native window `wid` of the video area.
        """
        super().__init__()
        self.setWindowTitle("Segment Player")
        self.resize(1100, 680)
        self.app_state = app_state
        self.filter_state = FilterState()
        self.loader = None
        self._thumb_loaders: list[ThumbnailLoader] = []
        self._thumb_requested: set[str] = set()

        self.central_widget = QWidget()
        self.setCentralWidget(self.central_widget)
        self.layout = QVBoxLayout(self.central_widget)
        self.layout.setContentsMargins(0, 0, 0, 0)

        self.toasts = ToastManager(self)
        self.app_state.notification.connect(self._on_notify)

        # --- Top bar ---
        top_bar = QHBoxLayout()
        top_bar.setContentsMargins(8, 6, 8, 0)
        self.lbl_filter = QLabel("All tracks")
        self.lbl_filter.setObjectName("FilterLabel")
        top_bar.addWidget(self.lbl_filter, 1)

        self.btn_filter = QToolButton()
        self.btn_filter.setIcon(self.style().standardIcon(QStyle.StandardPixmap.SP_FileDialogContentsView))
        self.btn_filter.setToolTip("Filter (Ctrl+F)")
        self.btn_filter.clicked.connect(self.open_filter_dialog)

        self.btn_reload = QToolButton()
        self.btn_reload.setIcon(self.style().standardIcon(QStyle.StandardPixmap.SP_BrowserReload))
        self.btn_reload.setToolTip("Reload playlist (Ctrl+L)")
        self.btn_reload.clicked.connect(self.load_catalog)

        top_bar.addWidget(self.btn_filter)
        top_bar.addWidget(self.btn_reload)
        self.layout.addLayout(top_bar)

        # --- Video + playlist ---
        splitter = QSplitter(Qt.Orientation.Horizontal)

        self.video_area = QWidget()
        self.video_area.setObjectName("VideoArea")
        self.video_area.setAttribute(Qt.WidgetAttribute.WA_NativeWindow, True)
        self.video_area.setAttribute(Qt.WidgetAttribute.WA_DontCreateNativeAncestors, True)
        self.video_area.setMinimumSize(480, 270)
        splitter.addWidget(self.video_area)

        self.playlist = PlaylistWidget()
        splitter.addWidget(self.playlist)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 2)
        self.layout.addWidget(splitter, 1)

        # --- Player ---
        self.adapter = make_adapter(int(self.video_area.winId()))
        self.controller = PlaybackController(
            self.adapter,
            poll_interval_ms=self.app_state.config.poll_interval_ms,
            parent=self,
        )
        self.app_state.player = self.adapter
        self.app_state.controller = self.controller

        self.player_bar = PlayerBar(self.controller, self)
        self.layout.addWidget(self.player_bar)

        self.playlist.playIndex.connect(self.controller.select)
        self.controller.viewChanged.connect(self._on_view_changed)
        self.controller.trackChanged.connect(self._on_track_changed)
        self.controller.stateChanged.connect(self._on_state_changed)
        self.controller.nothingToPlay.connect(
            lambda: self.statusBar().showMessage("Nothing to play")
        )
        self.controller.commandFailed.connect(lambda msg: self.app_state.notify(msg, "warn"))
        self.controller.failed.connect(
            lambda msg: self.app_state.notify(f"{msg}. Press F5 to retry.", "error")
        )
        self.app_state.catalog_changed.connect(self.controller.set_catalog)

        # --- Shortcuts ---
        QShortcut(QKeySequence("Space"), self, activated=self.controller.toggle_play_pause)
        QShortcut(QKeySequence("Ctrl+Right"), self, activated=self.controller.next)
        QShortcut(QKeySequence("Ctrl+Left"), self, activated=self.controller.prev)
        QShortcut(QKeySequence("Ctrl+F"), self, activated=self.open_filter_dialog)
        QShortcut(QKeySequence("Ctrl+L"), self, activated=self.load_catalog)
        QShortcut(QKeySequence("F5"), self, activated=self.controller.retry)

        self.show_queued_notifications()

        self.setStyleSheet(self.styleSheet() + """
            QMainWindow, QWidget#VideoArea { background: #000000; }
            QLabel#FilterLabel { color: #9ca3af; font-size: 11px; }
            QToolButton {
                border: 1px solid transparent;
                background: transparent;
                padding: 6px;
                border-radius: 10px;
            }
            QToolButton:hover {
                background: #0b1222;
                border-color: #1f2937;
            }
            """)

    # ------------------ catalog ------------------
    def load_catalog(self):
        if self.loader is not None and self.loader.isRunning():
            return
        source = self.app_state.config.catalog_source
        self.statusBar().showMessage(f"Loading playlist… ({source})")
        self.btn_reload.setEnabled(False)

        self.loader = CatalogLoader(source, self)
        self.loader.finished_signal.connect(self._catalog_loaded)
        self.loader.start()

    def _catalog_loaded(self, ok: bool, msg: str, tracks):
        self.btn_reload.setEnabled(True)
        self.statusBar().showMessage(msg, 4000)
        if not ok:
            self.app_state.notify(msg, "error")
            return
        self.app_state.set_catalog(tracks)

    # ------------------ filter ------------------
    def open_filter_dialog(self):
        dlg = FilterDialog(self.filter_state, self.controller.catalog, self)
        if dlg.exec():
            self.controller.apply_filter(self.filter_state.applied)
            self._update_filter_label()

    def _update_filter_label(self):
        f = self.filter_state.applied
        parts = [p for p in (f.category, f.vocalist) if p]
        self.lbl_filter.setText(" · ".join(parts) if parts else "All tracks")

    # ------------------ controller -> ui ------------------
    def _on_view_changed(self, view):
        self.playlist.set_view(view)
        self.playlist.set_now_playing(self.controller.current_index)
        self._fetch_thumbnails(view.tracks)

    def _fetch_thumbnails(self, tracks):
        urls = {}
        for t in tracks:
            url = t.thumbnail_url
            if url and t.media_ref not in self._thumb_requested:
                urls[t.media_ref] = url
        if not urls:
            return
        self._thumb_requested.update(urls)

        loader = ThumbnailLoader(urls, parent=self)
        loader.thumbnail_ready.connect(self.playlist.set_thumbnail)
        loader.thumbnail_ready.connect(self.player_bar.set_thumbnail)
        loader.finished.connect(lambda: self._thumb_loaders.remove(loader))
        self._thumb_loaders.append(loader)
        loader.start()

    def _on_track_changed(self, track):
        self.playlist.set_now_playing(self.controller.current_index)
        if track is not None:
            self.setWindowTitle(f"{track.title} — Segment Player")
        else:
            self.setWindowTitle("Segment Player")

    def _on_state_changed(self, state):
        if state is ControllerState.TRANSITIONING and not self.controller.current_track:
            self.statusBar().showMessage("Starting player…")
        elif state is ControllerState.ERROR:
            self.statusBar().showMessage("Player unavailable")

    # ------------------ notifications ------------------
    def _on_notify(self, n):
        msg = getattr(n, "message", "") or ""
        if not msg:
            return
        self.toasts.show_toast(msg, notify_type=getattr(n, "notify_type", "info"), timeout_ms=3000)

    def show_queued_notifications(self):
        for n in self.app_state.queued_notifications:
            self._on_notify(n)
        self.app_state.queued_notifications.clear()

    def closeEvent(self, event):
        if self.loader is not None and self.loader.isRunning():
            self.loader.wait(2000)
        for loader in list(self._thumb_loaders):
            loader.requestInterruption()
            loader.wait(2000)
        self.adapter.shutdown()
        super().closeEvent(event)
