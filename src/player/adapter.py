# src/player/adapter.py
from __future__ import annotations

from enum import Enum, auto
from typing import Optional

from PySide6.QtCore import QObject, Signal


class PlayerState(Enum):
    PLAYING = auto()
    PAUSED = auto()
    ENDED = auto()


class AdapterError(Exception):
    pass


class AdapterCommandError(AdapterError):
    """A single command (load/play/pause/query) was rejected or could not be sent."""


class AdapterUnavailableError(AdapterError):
    """The external player could not be started."""


class PlayerAdapter(QObject):
    """
    Command/event surface of the external video player.

    Commands are fire-and-forget: a call returning means the command was sent,
    the outcome arrives later through stateChanged/errorOccurred. Failures to
    send raise AdapterCommandError.

    The PlaybackController is the only caller of the command methods.
    """
    ready = Signal()
    stateChanged = Signal(object)   # PlayerState
    errorOccurred = Signal(str)     # error code

    def start(self) -> None:
        raise NotImplementedError

    def load(self, media_ref: str, start: float, end_hint: Optional[float] = None) -> None:
        """Load `media_ref` cued (paused) at `start` seconds."""
        raise NotImplementedError

    def play(self) -> None:
        raise NotImplementedError

    def pause(self) -> None:
        raise NotImplementedError

    def current_time(self) -> float:
        raise NotImplementedError

    def duration(self) -> Optional[float]:
        """Media duration in seconds, or None while unknown."""
        raise NotImplementedError

    def reinitialize(self) -> bool:
        """
        Schedule a restart of the underlying player. Returns False when the
        restart budget is spent; otherwise `ready` follows on success.
        """
        raise NotImplementedError

    def shutdown(self) -> None:
        raise NotImplementedError
