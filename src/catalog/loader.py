# src/catalog/loader.py
from __future__ import annotations

import csv
import logging
import os
from typing import Any, Iterable, Mapping, Optional

import requests

from core.models import Track
from core.utils import collapse, split_tags

logger = logging.getLogger(__name__)

# Column names of the playlist sheet (same as the JSON keys served by /api/playlists)
COL_TITLE = "track_title"
COL_ARTIST = "artist"
COL_MEDIA = "youtube_video_id"
COL_START = "start_time"
COL_END = "end_time"
COL_VOCALIST = "vocalist"
COL_CATEGORY = "category"


class CatalogError(Exception):
    pass


def _text(row: Mapping[str, Any], key: str) -> Optional[str]:
    v = row.get(key)
    if v is None:
        return None
    s = collapse(str(v))
    return s or None


def track_from_record(row: Mapping[str, Any]) -> Optional[Track]:
    """
    Builds a Track from one catalog record. Returns None when the offsets are
    not numbers; a bad range or a missing media ref is kept and left for the
    view resolver to exclude.
    """
    try:
        start = float(row.get(COL_START) or 0)
        end = float(row.get(COL_END))
    except (TypeError, ValueError):
        return None

    return Track(
        media_ref=_text(row, COL_MEDIA) or "",
        title=_text(row, COL_TITLE) or "Untitled",
        artist=_text(row, COL_ARTIST),
        vocalists=split_tags(row.get(COL_VOCALIST)),
        category=_text(row, COL_CATEGORY),
        segment_start=start,
        segment_end=end,
    )


def parse_records(rows: Iterable[Mapping[str, Any]]) -> list[Track]:
    tracks: list[Track] = []
    for n, row in enumerate(rows, start=1):
        if not isinstance(row, Mapping):
            logger.warning("Skipping catalog record %d: not an object", n)
            continue
        t = track_from_record(row)
        if t is None:
            logger.warning("Skipping catalog record %d (%s): bad start/end time", n, row.get(COL_TITLE))
            continue
        tracks.append(t)
    return tracks


def load_csv(path: str) -> list[Track]:
    if not os.path.isfile(path):
        raise CatalogError(f"Playlist file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8-sig", newline="") as fh:
            reader = csv.DictReader(fh, skipinitialspace=True)
            return parse_records(reader)
    except (OSError, csv.Error) as e:
        raise CatalogError(f"Failed to read playlist {path}: {e}") from e


class HttpCatalogClient:
    def __init__(self, base_url: str, user_agent: str = "segment-player/0.1", timeout_s: float = 15):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def fetch_records(self) -> list[dict]:
        try:
            r = self.session.get(self.base_url, timeout=self.timeout_s)
            r.raise_for_status()
            data = r.json()
        except requests.RequestException as e:
            raise CatalogError(f"Failed to fetch playlist from {self.base_url}: {e}") from e
        except ValueError as e:
            raise CatalogError(f"Playlist endpoint returned invalid JSON: {e}") from e

        if not isinstance(data, list):
            raise CatalogError("Playlist endpoint did not return a list")
        return data

    def fetch_tracks(self) -> list[Track]:
        return parse_records(self.fetch_records())


def load_catalog(source: str) -> list[Track]:
    """Loads the catalog from an http(s) endpoint or a CSV file."""
    source = (source or "").strip()
    if not source:
        raise CatalogError("No playlist source configured")
    if source.startswith(("http://", "https://")):
        return HttpCatalogClient(source).fetch_tracks()
    return load_csv(source)
