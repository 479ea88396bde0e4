# src/player/player.py
from __future__ import annotations

import logging
import os
from typing import Any, Callable, Optional

from PySide6.QtCore import QTimer

from .adapter import AdapterCommandError, AdapterUnavailableError, PlayerAdapter, PlayerState
from .mpv_ipc import MpvBackendConfig, MpvIpcBackend

logger = logging.getLogger(__name__)

YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={ref}"


def media_url(media_ref: str) -> str:
    """URLs and existing paths pass through; anything else is a YouTube id."""
    ref = (media_ref or "").strip()
    if "://" in ref or os.path.exists(ref):
        return ref
    return YOUTUBE_WATCH_URL.format(ref=ref)


class MpvPlayerAdapter(PlayerAdapter):
    """
    PlayerAdapter backed by an mpv process (see mpv_ipc).

    IPC messages are pumped on a QTimer so every signal is emitted on the GUI
    thread. Restarts after a fault are bounded by `max_restart_attempts` with
    an exponential backoff; the budget refills once playback is observed.
    """

    def __init__(
        self,
        config: Optional[MpvBackendConfig] = None,
        *,
        max_restart_attempts: int = 3,
        restart_backoff_ms: int = 500,
        backend_factory: Callable[[MpvBackendConfig], Any] = MpvIpcBackend,
        parent=None,
    ):
        super().__init__(parent)
        self.config = config or MpvBackendConfig()
        self.max_restart_attempts = max(0, int(max_restart_attempts))
        self.restart_backoff_ms = max(0, int(restart_backoff_ms))
        self._backend_factory = backend_factory

        self._mpv = None
        self._restart_attempts = 0
        self._restart_pending = False

        # (media_ref, end) of the file mpv holds
        self._loaded_key: Optional[tuple[str, Optional[float]]] = None
        self._file_loaded = False
        self._eof_armed = False
        self._last_state: Optional[PlayerState] = None

        # Reported by current_time() until mpv publishes the position after a load/seek
        self._position_hint: Optional[float] = None

        self._poll_timer = QTimer(self)
        self._poll_timer.setInterval(30)
        self._poll_timer.timeout.connect(self._poll)

    # ----------------------------
    # Lifecycle
    # ----------------------------

    def start(self) -> None:
        """Fresh start with a full restart budget."""
        self._teardown()
        self._restart_attempts = 0
        try:
            self._start_backend()
        except AdapterUnavailableError as e:
            logger.warning("mpv failed to start: %s", e)
            if not self.reinitialize():
                self.errorOccurred.emit("unavailable")

    def _start_backend(self) -> None:
        backend = self._backend_factory(self.config)
        try:
            backend.start()
            backend.on_event("file-loaded", self._on_file_loaded)
            backend.on_event("end-file", self._on_end_file)
            backend.observe_property("pause", self._on_pause_changed)
            backend.observe_property("time-pos", self._on_time_pos)
        except (OSError, TimeoutError, RuntimeError) as e:
            backend.stop()
            raise AdapterUnavailableError(f"mpv did not come up: {e}") from e

        self._mpv = backend
        self._loaded_key = None
        self._file_loaded = False
        self._eof_armed = False
        self._last_state = None
        self._poll_timer.start()
        logger.info("mpv ready (ipc %s)", getattr(backend, "ipc", "?"))
        self.ready.emit()

    def _teardown(self) -> None:
        self._poll_timer.stop()
        backend, self._mpv = self._mpv, None
        if backend is not None:
            try:
                backend.stop()
            except (OSError, RuntimeError) as e:
                logger.debug("Error while stopping mpv: %s", e)

    def reinitialize(self) -> bool:
        if self._restart_pending:
            return True
        if self._restart_attempts >= self.max_restart_attempts:
            logger.error("mpv restart budget exhausted (%d attempts)", self._restart_attempts)
            return False

        self._restart_attempts += 1
        delay = self.restart_backoff_ms * (2 ** (self._restart_attempts - 1))
        logger.warning(
            "Restarting mpv in %d ms (attempt %d/%d)",
            delay, self._restart_attempts, self.max_restart_attempts,
        )
        self._restart_pending = True
        QTimer.singleShot(delay, self._restart)
        return True

    def _restart(self) -> None:
        self._restart_pending = False
        self._teardown()
        try:
            self._start_backend()
        except AdapterUnavailableError as e:
            logger.warning("mpv restart failed: %s", e)
            if not self.reinitialize():
                self.errorOccurred.emit("unavailable")

    def shutdown(self) -> None:
        self._teardown()

    def restart_attempts(self) -> int:
        return self._restart_attempts

    # ----------------------------
    # mpv handlers
    # ----------------------------

    def _set_state(self, state: PlayerState) -> None:
        if state == PlayerState.PLAYING:
            self._restart_attempts = 0
        if state != self._last_state:
            self._last_state = state
            self.stateChanged.emit(state)

    def _on_file_loaded(self, _msg: dict) -> None:
        self._file_loaded = True
        self._eof_armed = True
        paused = self._mpv.is_paused() if self._mpv is not None else True
        self._last_state = None
        self._set_state(PlayerState.PAUSED if paused else PlayerState.PLAYING)

    def _on_end_file(self, msg: dict) -> None:
        reason = msg.get("reason")
        self._file_loaded = False
        if reason == "eof":
            # eof-like events can repeat; report the end of each load once
            if self._eof_armed:
                self._eof_armed = False
                self._set_state(PlayerState.ENDED)
        elif reason == "error":
            self._loaded_key = None
            code = msg.get("file_error") or "unknown"
            logger.warning("mpv could not play the file: %s", code)
            self.errorOccurred.emit(f"load_failed:{code}")

    def _on_pause_changed(self, value: Any) -> None:
        if not self._file_loaded:
            return
        self._set_state(PlayerState.PAUSED if value else PlayerState.PLAYING)

    def _on_time_pos(self, value: Any) -> None:
        if value is not None:
            self._position_hint = None

    def _poll(self) -> None:
        if self._mpv is None:
            return

        if not self._mpv.is_running():
            logger.warning("mpv exited unexpectedly")
            self._teardown()
            self.errorOccurred.emit("process_exited")
            return

        try:
            self._mpv.process_messages(max_messages=500)
        except (OSError, RuntimeError) as e:
            logger.warning("mpv IPC failed: %s", e)
            self._teardown()
            self.errorOccurred.emit("ipc_failed")

    # ----------------------------
    # Commands
    # ----------------------------

    def _send(self, fn_name: str, *args: Any) -> None:
        if self._mpv is None:
            raise AdapterCommandError("mpv is not running")
        try:
            getattr(self._mpv, fn_name)(*args)
        except (OSError, RuntimeError, TimeoutError) as e:
            raise AdapterCommandError(f"mpv {fn_name} failed: {e}") from e

    def load(self, media_ref: str, start: float, end_hint: Optional[float] = None) -> None:
        key = (media_ref, end_hint)
        if key == self._loaded_key and self._file_loaded:
            # Same file and end point: a seek keeps mpv from re-resolving the stream
            self._send("pause")
            self._send("seek_seconds", float(start))
            self._eof_armed = True
        else:
            self._send("load", media_url(media_ref), float(start), end_hint)
            self._loaded_key = key
            self._file_loaded = False
            self._last_state = None
            # an eof still queued for the replaced file must not end this one
            self._eof_armed = False
        self._position_hint = float(start)

    def play(self) -> None:
        self._send("play")

    def pause(self) -> None:
        self._send("pause")

    def current_time(self) -> float:
        if self._mpv is None:
            raise AdapterCommandError("mpv is not running")
        if self._position_hint is not None:
            return self._position_hint
        t = self._mpv.time_pos()
        if t is None:
            raise AdapterCommandError("time position unavailable")
        return float(t)

    def duration(self) -> Optional[float]:
        if self._mpv is None:
            raise AdapterCommandError("mpv is not running")
        return self._mpv.duration()
