from unittest.mock import MagicMock, patch

import pytest
import requests

from catalog.loader import (
    CatalogError, HttpCatalogClient, load_catalog, load_csv, parse_records, track_from_record
)
from catalog.thumbnails import ThumbnailClient

CSV_TEXT = """track_title,artist,youtube_video_id,start_time,end_time,vocalist,category
Opening,Unit,aaaaaaaaaaa,0,95.5,"Ann, Ben",Original
Cover song,Someone,bbbbbbbbbbb,120,300,Ann,Cover
Broken,Someone,ccccccccccc,abc,10,Ann,Cover
"""


class TestRecords:
    def test_full_record(self):
        t = track_from_record({
            "track_title": "  Opening  ",
            "artist": "Unit",
            "youtube_video_id": "aaaaaaaaaaa",
            "start_time": "12",
            "end_time": 95.5,
            "vocalist": "Ann, Ben",
            "category": "Original",
        })
        assert t.title == "Opening"
        assert t.segment_start == 12.0
        assert t.segment_end == 95.5
        assert t.vocalists == frozenset({"Ann", "Ben"})
        assert t.category == "Original"

    def test_missing_start_defaults_to_zero(self):
        t = track_from_record({"youtube_video_id": "aaaaaaaaaaa", "end_time": "5"})
        assert t.segment_start == 0.0
        assert t.title == "Untitled"
        assert t.artist is None

    def test_non_numeric_offsets_are_rejected(self):
        assert track_from_record({"start_time": "0", "end_time": None}) is None
        assert track_from_record({"start_time": "x", "end_time": "5"}) is None

    def test_parse_skips_bad_records(self, caplog):
        tracks = parse_records([
            {"youtube_video_id": "aaaaaaaaaaa", "start_time": 0, "end_time": 5},
            "not a record",
            {"youtube_video_id": "bbbbbbbbbbb", "start_time": 0, "end_time": "?"},
        ])
        assert [t.media_ref for t in tracks] == ["aaaaaaaaaaa"]
        assert "Skipping catalog record 2" in caplog.text
        assert "Skipping catalog record 3" in caplog.text


class TestCsv:
    def test_load_csv(self, tmp_path):
        path = tmp_path / "playlist.csv"
        path.write_text(CSV_TEXT, encoding="utf-8")
        tracks = load_csv(str(path))
        assert [t.title for t in tracks] == ["Opening", "Cover song"]
        assert tracks[1].segment_start == 120.0

    def test_bom_is_ignored(self, tmp_path):
        path = tmp_path / "playlist.csv"
        path.write_text(CSV_TEXT, encoding="utf-8-sig")
        assert load_csv(str(path))[0].title == "Opening"

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError):
            load_csv(str(tmp_path / "nope.csv"))

    def test_bundled_sample_loads(self):
        from core.config import DEFAULT_CATALOG

        tracks = load_catalog(DEFAULT_CATALOG)
        assert len(tracks) > 5
        assert all(t.is_playable for t in tracks)


class TestHttp:
    def _client(self, response):
        client = HttpCatalogClient("https://example.test/api/playlists/")
        client.session = MagicMock()
        client.session.get.return_value = response
        return client

    def test_fetch_tracks(self):
        response = MagicMock()
        response.json.return_value = [
            {"track_title": "Opening", "youtube_video_id": "aaaaaaaaaaa", "start_time": 0, "end_time": 90},
        ]
        client = self._client(response)

        tracks = client.fetch_tracks()

        assert tracks[0].title == "Opening"
        client.session.get.assert_called_once_with("https://example.test/api/playlists", timeout=15)

    def test_http_error(self):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("503")
        with pytest.raises(CatalogError):
            self._client(response).fetch_records()

    def test_invalid_json(self):
        response = MagicMock()
        response.json.side_effect = ValueError("no json")
        with pytest.raises(CatalogError):
            self._client(response).fetch_records()

    def test_non_list_payload(self):
        response = MagicMock()
        response.json.return_value = {"tracks": []}
        with pytest.raises(CatalogError):
            self._client(response).fetch_records()

    def test_load_catalog_dispatches_on_scheme(self):
        with patch("catalog.loader.HttpCatalogClient") as client_cls:
            client_cls.return_value.fetch_tracks.return_value = []
            assert load_catalog("http://example.test/list") == []
        client_cls.assert_called_once_with("http://example.test/list")

    def test_empty_source(self):
        with pytest.raises(CatalogError):
            load_catalog("  ")


class TestThumbnails:
    URL = "https://img.youtube.com/vi/aaaaaaaaaaa/maxresdefault.jpg"

    def _client(self, *responses):
        client = ThumbnailClient()
        client.session = MagicMock()
        client.session.get.side_effect = list(responses)
        return client

    def test_fetch_returns_image_bytes(self):
        response = MagicMock(content=b"\xff\xd8jpeg")
        client = self._client(response)
        assert client.fetch(self.URL) == b"\xff\xd8jpeg"
        client.session.get.assert_called_once_with(self.URL, timeout=10)

    def test_missing_large_image_falls_back_to_medium(self):
        missing = MagicMock()
        missing.raise_for_status.side_effect = requests.HTTPError("404")
        medium = MagicMock(content=b"medium")
        client = self._client(missing, medium)

        assert client.fetch(self.URL) == b"medium"
        assert client.session.get.call_args.args[0] == (
            "https://img.youtube.com/vi/aaaaaaaaaaa/mqdefault.jpg"
        )

    def test_network_failure_gives_none(self):
        client = self._client(requests.ConnectionError("offline"), requests.ConnectionError("offline"))
        assert client.fetch(self.URL) is None
        assert client.session.get.call_count == 2

    def test_other_urls_are_not_rewritten(self):
        client = self._client(requests.Timeout("slow"))
        assert client.fetch("https://example.test/thumb.png") is None
        assert client.session.get.call_count == 1
