# ui/workers/thumbnail_loader.py
import logging

from PySide6.QtCore import QThread, Signal

from catalog.thumbnails import ThumbnailClient

logger = logging.getLogger(__name__)


class ThumbnailLoader(QThread):
    thumbnail_ready = Signal(str, object)   # media_ref, image bytes

    def __init__(self, urls: dict[str, str], client: ThumbnailClient | None = None, parent=None):
        """`urls` maps media_ref to its thumbnail URL."""
        super().__init__(parent)
        self.urls = dict(urls)
        self.client = client

    def run(self):
        client = self.client or ThumbnailClient()
        fetched = 0
        for media_ref, url in self.urls.items():
            if self.isInterruptionRequested():
                break
            data = client.fetch(url)
            if data is None:
                continue
            fetched += 1
            self.thumbnail_ready.emit(media_ref, data)
        logger.debug("Fetched %d/%d thumbnails", fetched, len(self.urls))
