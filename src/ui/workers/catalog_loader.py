# ui/workers/catalog_loader.py
import logging

from PySide6.QtCore import QThread, Signal

from catalog.loader import CatalogError, load_catalog

logger = logging.getLogger(__name__)


class CatalogLoader(QThread):
    finished_signal = Signal(bool, str, object)   # ok, message, list[Track]

    def __init__(self, source: str, parent=None):
        super().__init__(parent)
        self.source = source

    def run(self):
        try:
            tracks = load_catalog(self.source)
        except CatalogError as e:
            logger.warning("Catalog load failed: %s", e)
            self.finished_signal.emit(False, str(e), [])
            return
        except Exception as e:
            logger.exception("Unexpected error while loading %s", self.source)
            self.finished_signal.emit(False, f"Playlist load failed: {e}", [])
            return

        self.finished_signal.emit(True, f"Loaded {len(tracks)} tracks", tracks)
