# ui/widgets/playlist_widget.py
from __future__ import annotations

from PySide6.QtCore import Signal, Qt, QItemSelectionModel
from PySide6.QtWidgets import QWidget, QVBoxLayout, QTableView, QMenu, QLabel

from ui.models.playlist_model import PlaylistModel


class PlaylistWidget(QWidget):
    playIndex = Signal(int)       # row in the current view

    def __init__(self, parent=None):
        super().__init__(parent)

        self.table = QTableView()
        self.model = PlaylistModel([])
        self.table.setModel(self.model)

        self.table.setSelectionBehavior(QTableView.SelectionBehavior.SelectRows)
        self.table.setSelectionMode(QTableView.SelectionMode.SingleSelection)
        self.table.verticalHeader().setVisible(False)
        self.table.setShowGrid(False)
        self.table.setAlternatingRowColors(True)
        self.table.setColumnWidth(0, 360)
        self.table.setColumnWidth(1, 140)
        self.table.setColumnWidth(2, 90)
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.verticalHeader().setDefaultSectionSize(PlaylistModel.THUMB_SIZE.height() + 4)
        self.table.setIconSize(PlaylistModel.THUMB_SIZE)
        self.table.setObjectName("PlaylistTable")

        self.lbl_empty = QLabel("Nothing to play")
        self.lbl_empty.setObjectName("EmptyLabel")
        self.lbl_empty.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.lbl_empty.setVisible(False)

        self.table.doubleClicked.connect(self._on_double_click)
        self.table.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self.table.customContextMenuRequested.connect(self._on_context_menu)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.table)
        layout.addWidget(self.lbl_empty)

        self._apply_styles()

    # -------------------------
    # External API
    # -------------------------
    def set_view(self, view):
        self.model.set_tracks(view.tracks)
        empty = view.is_empty()
        self.table.setVisible(not empty)
        self.lbl_empty.setVisible(empty)

    def set_now_playing(self, row: int | None):
        self.model.set_current(row)
        if row is None:
            self.table.clearSelection()
            return

        idx = self.model.index(row, 0)
        sm = self.table.selectionModel()
        if not idx.isValid() or sm is None:
            return
        sm.setCurrentIndex(idx, QItemSelectionModel.ClearAndSelect | QItemSelectionModel.Rows)
        self.table.scrollTo(idx, QTableView.ScrollHint.EnsureVisible)

    def set_thumbnail(self, media_ref: str, data: bytes):
        self.model.set_thumbnail(media_ref, data)

    def selected_row(self) -> int | None:
        idx = self.table.currentIndex()
        return idx.row() if idx.isValid() else None

    # -------------------------
    # UI Events
    # -------------------------
    def _on_double_click(self, index):
        if index.isValid():
            self.playIndex.emit(index.row())

    def _on_context_menu(self, pos):
        idx = self.table.indexAt(pos)
        if not idx.isValid():
            return

        menu = QMenu(self)
        act_play = menu.addAction("Play")
        chosen = menu.exec(self.table.viewport().mapToGlobal(pos))
        if chosen == act_play:
            self.playIndex.emit(idx.row())

    def _apply_styles(self):
        self.setStyleSheet("""
        QTableView#PlaylistTable {
            background-color: #020617;
            alternate-background-color: #030712;
            border: none;
            color: #e5e7eb;
            selection-background-color: rgba(56, 189, 248, 0.2);
            selection-color: #e5e7eb;
        }
        QHeaderView::section {
            background-color: #020617;
            color: #9ca3af;
            padding: 4px 6px;
            border: none;
            border-bottom: 1px solid #111827;
            font-size: 11px;
        }
        QLabel#EmptyLabel {
            color: #9ca3af;
            font-size: 13px;
            padding: 24px;
        }
        """)
