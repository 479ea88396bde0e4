from core.config import DEFAULT_CATALOG, DEFAULT_YTDL_FORMAT, AppConfig


def test_defaults_from_empty_env():
    cfg = AppConfig.from_env({})
    assert cfg.catalog_source == DEFAULT_CATALOG
    assert cfg.mpv_path is None
    assert cfg.poll_interval_ms == 200
    assert cfg.max_restart_attempts == 3
    assert cfg.restart_backoff_ms == 500
    assert cfg.ytdl_format == DEFAULT_YTDL_FORMAT
    assert cfg.log_level == "WARNING"


def test_values_from_env():
    cfg = AppConfig.from_env({
        "SEGPLAYER_CATALOG": "https://example.test/api/playlists",
        "SEGPLAYER_MPV_PATH": "/opt/mpv/mpv",
        "SEGPLAYER_POLL_MS": "50",
        "SEGPLAYER_RESTART_ATTEMPTS": "0",
        "SEGPLAYER_RESTART_BACKOFF_MS": "1000",
        "SEGPLAYER_LOG_LEVEL": "debug",
    })
    assert cfg.catalog_source == "https://example.test/api/playlists"
    assert cfg.mpv_path == "/opt/mpv/mpv"
    assert cfg.poll_interval_ms == 50
    assert cfg.max_restart_attempts == 0
    assert cfg.restart_backoff_ms == 1000
    assert cfg.log_level == "DEBUG"


def test_invalid_numbers_fall_back(caplog):
    cfg = AppConfig.from_env({"SEGPLAYER_POLL_MS": "fast", "SEGPLAYER_RESTART_ATTEMPTS": "-2"})
    assert cfg.poll_interval_ms == 200
    assert cfg.max_restart_attempts == 3
    assert "SEGPLAYER_POLL_MS" in caplog.text


def test_poll_interval_has_a_floor():
    assert AppConfig.from_env({"SEGPLAYER_POLL_MS": "1"}).poll_interval_ms == 200
