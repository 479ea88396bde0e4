# core/config.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CATALOG = str(ROOT / "data" / "sample_playlist.csv")
DEFAULT_YTDL_FORMAT = "bestvideo[height<=?720]+bestaudio/best"


def _env_int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not an integer), using %d", name, raw, default)
        return default
    if value < minimum:
        logger.warning("Ignoring %s=%d (below %d), using %d", name, value, minimum, default)
        return default
    return value


@dataclass(frozen=True)
class AppConfig:
    catalog_source: str = DEFAULT_CATALOG
    mpv_path: Optional[str] = None
    poll_interval_ms: int = 200
    max_restart_attempts: int = 3
    restart_backoff_ms: int = 500
    ytdl_format: str = DEFAULT_YTDL_FORMAT
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AppConfig":
        env = os.environ if env is None else env
        return cls(
            catalog_source=env.get("SEGPLAYER_CATALOG") or DEFAULT_CATALOG,
            mpv_path=env.get("SEGPLAYER_MPV_PATH") or None,
            poll_interval_ms=_env_int(env, "SEGPLAYER_POLL_MS", 200, minimum=10),
            max_restart_attempts=_env_int(env, "SEGPLAYER_RESTART_ATTEMPTS", 3),
            restart_backoff_ms=_env_int(env, "SEGPLAYER_RESTART_BACKOFF_MS", 500),
            ytdl_format=env.get("SEGPLAYER_YTDL_FORMAT") or DEFAULT_YTDL_FORMAT,
            log_level=(env.get("SEGPLAYER_LOG_LEVEL") or "WARNING").upper(),
        )
