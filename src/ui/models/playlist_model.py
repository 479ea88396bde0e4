# ui/models/playlist_model.py
from __future__ import annotations
from PySide6.QtCore import QAbstractTableModel, Qt, QModelIndex, QSize
from PySide6.QtGui import QFont, QPixmap

from core.models import Track
from core.utils import fmt_seconds


class PlaylistModel(QAbstractTableModel):
    HEADERS = ["Track", "Vocalist", "Category", "Length"]
    THUMB_SIZE = QSize(64, 36)

    def __init__(self, tracks=()):
        super().__init__()
        self._tracks: list[Track] = list(tracks)
        self._current: int | None = None
        self._thumbs: dict[str, QPixmap] = {}   # media_ref -> scaled thumbnail

    def set_tracks(self, tracks):
        self.beginResetModel()
        self._tracks = list(tracks)
        self._current = None
        self.endResetModel()

    def set_current(self, row: int | None):
        old, self._current = self._current, row
        for r in (old, row):
            if r is not None and 0 <= r < len(self._tracks):
                self.dataChanged.emit(self.index(r, 0), self.index(r, self.columnCount() - 1))

    def set_thumbnail(self, media_ref: str, data: bytes) -> bool:
        pm = QPixmap()
        if not pm.loadFromData(data):
            return False
        self._thumbs[media_ref] = pm.scaled(
            self.THUMB_SIZE, Qt.KeepAspectRatio, Qt.SmoothTransformation
        )
        for r, track in enumerate(self._tracks):
            if track.media_ref == media_ref:
                idx = self.index(r, 0)
                self.dataChanged.emit(idx, idx, [Qt.DecorationRole])
        return True

    def thumbnail(self, media_ref: str) -> QPixmap | None:
        return self._thumbs.get(media_ref)

    def rowCount(self, parent=QModelIndex()) -> int:
        return len(self._tracks)

    def columnCount(self, parent=QModelIndex()) -> int:
        return len(self.HEADERS)

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        if role != Qt.DisplayRole or orientation != Qt.Horizontal:
            return None
        return self.HEADERS[section]

    def data(self, index: QModelIndex, role=Qt.DisplayRole):
        if not index.isValid():
            return None
        track = self._tracks[index.row()]
        col = index.column()

        if role == Qt.DisplayRole:
            if col == 0:
                return f"{track.artist} — {track.title}" if track.artist else track.title
            if col == 1:
                return ", ".join(sorted(track.vocalists))
            if col == 2:
                return track.category or ""
            if col == 3:
                return fmt_seconds(track.duration)
        if role == Qt.DecorationRole and col == 0:
            return self._thumbs.get(track.media_ref)
        if role == Qt.FontRole and index.row() == self._current:
            font = QFont()
            font.setBold(True)
            return font
        if role == Qt.UserRole:
            return track
        return None

    def track_at(self, row: int) -> Track | None:
        if row < 0 or row >= len(self._tracks):
            return None
        return self._tracks[row]
