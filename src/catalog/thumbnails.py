# src/catalog/thumbnails.py
from __future__ import annotations

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)

# maxresdefault is missing for many older uploads; mqdefault always exists
FALLBACK_SIZES = ("maxresdefault", "mqdefault")


class ThumbnailClient:
    def __init__(self, user_agent: str = "segment-player/0.1", timeout_s: float = 10):
        self.timeout_s = timeout_s
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def _get(self, url: str) -> Optional[bytes]:
        try:
            r = self.session.get(url, timeout=self.timeout_s)
            r.raise_for_status()
        except requests.RequestException as e:
            logger.debug("Thumbnail %s unavailable: %s", url, e)
            return None
        return r.content or None

    def fetch(self, url: str) -> Optional[bytes]:
        """Image bytes for `url`, trying the smaller YouTube size when the large one is missing."""
        data = self._get(url)
        if data is not None:
            return data
        big, small = FALLBACK_SIZES
        if big in url:
            return self._get(url.replace(big, small))
        return None
