# src/player/progress.py
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal

from core.models import Track
from core.utils import clamp

from .adapter import AdapterError, PlayerAdapter

logger = logging.getLogger(__name__)

# Samples this close to the segment end count as having reached it
END_TOLERANCE_S = 0.05


class ProgressSynchronizer(QObject):
    """
    Polls the adapter's clock while a segment plays and publishes the
    segment-relative position. Reaching the segment end is reported once
    per start(), tagged with the generation the poll was started for.
    """
    positionSampled = Signal(float)   # seconds into the segment
    segmentEnded = Signal(int)        # generation

    def __init__(self, adapter: PlayerAdapter, interval_ms: int = 200, parent=None):
        super().__init__(parent)
        self.adapter = adapter
        self._track: Optional[Track] = None
        self._generation = -1
        self._ended = False

        self._timer = QTimer(self)
        self._timer.setInterval(max(10, int(interval_ms)))
        self._timer.timeout.connect(self.poll)

    def start(self, track: Track, generation: int) -> None:
        self._track = track
        self._generation = generation
        self._ended = False
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()
        self._track = None

    def is_active(self) -> bool:
        return self._timer.isActive()

    def poll(self) -> None:
        track = self._track
        if track is None or self._ended:
            return

        try:
            t = self.adapter.current_time()
        except AdapterError as e:
            logger.debug("Skipping progress sample: %s", e)
            return

        position = clamp(t - track.segment_start, 0.0, track.duration)
        self.positionSampled.emit(position)

        # the sample above may have triggered a transition that stopped us
        if self._track is not track:
            return

        if position >= track.duration - END_TOLERANCE_S:
            self._ended = True
            self.segmentEnded.emit(self._generation)
