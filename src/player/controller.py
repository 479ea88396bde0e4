# src/player/controller.py
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable, Optional

from PySide6.QtCore import QObject, Qt, QTimer, Signal

from core.models import PlaybackMode, Track, TrackFilter
from core.utils import clamp
from core.view import PlaylistView, preview_count, resolve_view

from .adapter import AdapterError, PlayerAdapter, PlayerState
from .progress import END_TOLERANCE_S, ProgressSynchronizer

logger = logging.getLogger(__name__)


class ControllerState(Enum):
    IDLE = auto()           # no track loaded
    CUED = auto()           # track loaded, not yet played
    PLAYING = auto()
    PAUSED = auto()
    SEEK_PENDING = auto()   # scrub in progress, adapter not retargeted yet
    TRANSITIONING = auto()  # advance or adapter recovery in flight
    ERROR = auto()          # adapter gone and out of restarts


@dataclass
class PlaybackSession:
    current_index: Optional[int] = None
    mode: PlaybackMode = PlaybackMode.SEQUENTIAL
    playing: bool = False
    seeking: bool = False
    position: float = 0.0


class PlaybackController(QObject):
    """
    Drives the PlayerAdapter through a filtered playlist of segments.

    Owns the only reference that issues adapter commands. Segment end has
    three candidate triggers (single-shot timer, progress poll, adapter
    ENDED); each carries the generation it was scheduled under and
    notify_segment_end() acts on the live generation only, so one
    completion advances once. Every transition bumps the generation.
    """
    stateChanged = Signal(object)     # ControllerState
    trackChanged = Signal(object)     # Track | None
    positionChanged = Signal(float)   # seconds into the segment
    modeChanged = Signal(object)      # PlaybackMode
    viewChanged = Signal(object)      # PlaylistView
    nothingToPlay = Signal()
    commandFailed = Signal(str)       # transient, state unchanged
    failed = Signal(str)              # terminal adapter failure

    def __init__(
        self,
        adapter: PlayerAdapter,
        *,
        poll_interval_ms: int = 200,
        rng: Optional[random.Random] = None,
        parent=None,
    ):
        super().__init__(parent)
        self.adapter = adapter
        self.session = PlaybackSession()
        self._rng = rng or random.Random()

        self._catalog: list[Track] = []
        self._filter = TrackFilter()
        self._view = PlaylistView()

        self._state = ControllerState.IDLE
        self._generation = 0
        self._watch_generation = -1

        self._adapter_ready = False
        self._loaded = False              # adapter holds the current track
        self._recovering = False
        self._resume_after_recovery = False
        self._state_before_seek = ControllerState.IDLE
        self._advancing = False
        self._drag_consumed = False       # drag reached the end and advanced; wait for release
        self._failed_load: Optional[Track] = None

        # Backup trigger only; re-armed from every position sample
        self._segment_timer = QTimer(self)
        self._segment_timer.setSingleShot(True)
        self._segment_timer.setTimerType(Qt.TimerType.PreciseTimer)
        self._segment_timer.timeout.connect(self._on_segment_timer)

        self.progress = ProgressSynchronizer(adapter, poll_interval_ms, self)
        self.progress.positionSampled.connect(self._on_position_sampled)
        self.progress.segmentEnded.connect(self.notify_segment_end)

        adapter.ready.connect(self._on_adapter_ready)
        adapter.stateChanged.connect(self._on_adapter_state)
        adapter.errorOccurred.connect(self._on_adapter_error)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def view(self) -> PlaylistView:
        return self._view

    @property
    def catalog(self) -> list[Track]:
        return list(self._catalog)

    @property
    def track_filter(self) -> TrackFilter:
        return self._filter

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def current_index(self) -> Optional[int]:
        return self.session.current_index

    @property
    def current_track(self) -> Optional[Track]:
        return self._view.get(self.session.current_index)

    @property
    def segment_duration(self) -> float:
        track = self.current_track
        return track.duration if track else 0.0

    @property
    def position(self) -> float:
        return clamp(self.session.position, 0.0, self.segment_duration)

    @property
    def mode(self) -> PlaybackMode:
        return self.session.mode

    @property
    def playing(self) -> bool:
        return self.session.playing

    @property
    def seeking(self) -> bool:
        return self.session.seeking

    def can_next(self) -> bool:
        idx = self.session.current_index
        if idx is None or self.session.mode is PlaybackMode.REPEAT:
            return False
        if self.session.mode is PlaybackMode.RANDOM:
            return len(self._view) > 1
        return idx < len(self._view) - 1

    def can_prev(self) -> bool:
        idx = self.session.current_index
        if idx is None or self.session.mode is PlaybackMode.REPEAT:
            return False
        if self.session.mode is PlaybackMode.RANDOM:
            return len(self._view) > 1
        return idx > 0

    def preview_count(self, track_filter: Optional[TrackFilter]) -> int:
        return preview_count(self._catalog, track_filter)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _set_state(self, state: ControllerState) -> None:
        if state is self._state:
            return
        logger.debug("state %s -> %s", self._state.name, state.name)
        self._state = state
        self.stateChanged.emit(state)

    def _set_position(self, seconds: float) -> None:
        self.session.position = clamp(seconds, 0.0, self.segment_duration)
        self.positionChanged.emit(self.session.position)

    def _issue(self, command: str, *args) -> bool:
        """Send one adapter command, retrying once on failure."""
        for attempt in (1, 2):
            try:
                getattr(self.adapter, command)(*args)
                return True
            except AdapterError as e:
                logger.warning("Player %s failed (attempt %d/2): %s", command, attempt, e)
        return False

    def _load(self, track: Track, offset: float = 0.0) -> bool:
        ok = self._issue("load", track.media_ref, track.segment_start + offset, track.segment_end)
        self._loaded = ok
        return ok

    def _cancel_watches(self) -> None:
        self._generation += 1
        self._segment_timer.stop()
        self.progress.stop()

    def _schedule_watches(self) -> None:
        track = self.current_track
        if track is None:
            return
        remaining = max(0.0, track.duration - self.position)
        self._watch_generation = self._generation
        self._segment_timer.start(int(remaining * 1000))
        self.progress.start(track, self._generation)

    def _start_playing(self) -> None:
        self._cancel_watches()
        self.session.playing = True
        self._set_state(ControllerState.PLAYING)
        self._schedule_watches()

    def _was_playing(self) -> bool:
        return self._state is ControllerState.PLAYING or (
            self._state is ControllerState.SEEK_PENDING
            and self._state_before_seek is ControllerState.PLAYING
        )

    def _random_index(self) -> int:
        n = len(self._view)
        cur = self.session.current_index or 0
        idx = self._rng.randrange(n - 1)
        return idx + 1 if idx >= cur else idx

    def _pick_target(self, direction: int, natural: bool) -> Optional[int]:
        """
        Index to move to, or None for "stay put" (manual) / "stop" (natural end).
        """
        cur = self.session.current_index
        n = len(self._view)
        if cur is None or n == 0:
            return None

        mode = self.session.mode
        if mode is PlaybackMode.REPEAT:
            return cur if natural else None
        if mode is PlaybackMode.RANDOM:
            if n <= 1:
                return cur if natural else None
            return self._random_index()

        target = cur + direction
        if 0 <= target < n:
            return target
        return None

    def _switch_to(self, index: int, resume: bool) -> bool:
        """
        Load view[index] from its segment start. Nothing changes unless the
        adapter accepted the load.
        """
        track = self._view.get(index)
        if track is None:
            return False

        previous = self._state
        self._set_state(ControllerState.TRANSITIONING)
        if not self._load(track):
            self._set_state(previous)
            self.commandFailed.emit(f"Could not load “{track.title}”")
            return False

        self._cancel_watches()
        self.session.current_index = index
        self.session.seeking = False
        self._failed_load = None
        self._set_position(0.0)
        self.trackChanged.emit(track)

        if resume and self._issue("play"):
            self._start_playing()
            return True
        if resume:
            self.commandFailed.emit(f"Could not start “{track.title}”")

        self.session.playing = False
        self._set_state(ControllerState.CUED)
        return True

    def _cue_forced(self, index: int) -> None:
        """Bind to view[index] cued and paused (filter or catalog switch)."""
        self._cancel_watches()
        self.session.current_index = index
        self.session.playing = False
        self.session.seeking = False
        self._resume_after_recovery = False
        self._set_position(0.0)
        track = self._view[index]
        self.trackChanged.emit(track)

        if self._state is ControllerState.ERROR or self._recovering:
            self._loaded = False
            return

        if not self._load(track):
            self.commandFailed.emit(f"Could not load “{track.title}”")
        self._set_state(ControllerState.CUED)

    def _enter_idle(self) -> None:
        if self._was_playing():
            self._issue("pause")
        self._cancel_watches()
        self.session.current_index = None
        self.session.playing = False
        self.session.seeking = False
        self.session.position = 0.0
        self._loaded = False
        self.positionChanged.emit(0.0)
        self.trackChanged.emit(None)
        if self._state is not ControllerState.ERROR:
            self._set_state(ControllerState.IDLE)
        self.nothingToPlay.emit()

    def _stop_at_end(self) -> None:
        """Sequential mode ran past the last track: stop, no wraparound."""
        was_playing = self._was_playing()
        self._cancel_watches()
        if was_playing:
            self._issue("pause")
        self._loaded = False
        self.session.playing = False
        self.session.seeking = False
        self._set_position(self.segment_duration)
        self._set_state(ControllerState.PAUSED)

    def _finish_segment(self, resume: bool) -> None:
        target = self._pick_target(+1, natural=True)
        if target is None:
            self._stop_at_end()
            return

        self._advancing = True
        try:
            self._switch_to(target, resume=resume)
        finally:
            self._advancing = False

    def _rebind_view(self, view: PlaylistView) -> None:
        previous = self.current_track
        self._view = view
        try:
            if view.is_empty():
                self._enter_idle()
                return

            idx = view.index_of(previous)
            if idx is not None:
                # still listed: only the index moves
                self.session.current_index = idx
                return

            if previous is None and not self._adapter_ready:
                # session binds once the adapter is ready
                self.session.current_index = None
                return

            self._cue_forced(0)
        finally:
            self.viewChanged.emit(view)

    # ------------------------------------------------------------------
    # Catalog and filter
    # ------------------------------------------------------------------

    def set_catalog(self, tracks: Iterable[Track]) -> None:
        self._catalog = list(tracks)
        logger.debug("catalog replaced (%d tracks)", len(self._catalog))
        self._rebind_view(resolve_view(self._catalog, self._filter))

    def apply_filter(self, track_filter: Optional[TrackFilter]) -> None:
        self._filter = track_filter or TrackFilter()
        self._rebind_view(resolve_view(self._catalog, self._filter))

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def play(self) -> None:
        if self._state not in (ControllerState.CUED, ControllerState.PAUSED):
            return
        track = self.current_track
        if track is None:
            return

        at_end = self.position >= track.duration - END_TOLERANCE_S
        if at_end or not self._loaded:
            if at_end:
                self._set_position(0.0)
            if not self._load(track, self.position):
                self.commandFailed.emit(f"Could not load “{track.title}”")
                return

        if not self._issue("play"):
            self.commandFailed.emit("Could not start playback")
            return
        self._start_playing()

    def pause(self) -> None:
        if self._state is not ControllerState.PLAYING:
            return
        if not self._issue("pause"):
            self.commandFailed.emit("Could not pause playback")
            return
        self._cancel_watches()
        self.session.playing = False
        self._set_state(ControllerState.PAUSED)

    def toggle_play_pause(self) -> None:
        if self._state is ControllerState.PLAYING:
            self.pause()
        else:
            self.play()

    def _navigable(self) -> bool:
        return self._state not in (
            ControllerState.IDLE,
            ControllerState.ERROR,
            ControllerState.TRANSITIONING,
        )

    def next(self) -> None:
        if not self._navigable():
            return
        target = self._pick_target(+1, natural=False)
        if target is not None:
            self._switch_to(target, resume=self._was_playing())

    def prev(self) -> None:
        if not self._navigable():
            return
        target = self._pick_target(-1, natural=False)
        if target is not None:
            self._switch_to(target, resume=self._was_playing())

    def select(self, index: int) -> None:
        """Track click."""
        if not self._navigable() or self._view.get(index) is None:
            return
        self._switch_to(index, resume=self._was_playing())

    def notify_segment_end(self, generation: int) -> None:
        if generation != self._generation:
            logger.debug("ignoring stale segment end (gen %d, live %d)", generation, self._generation)
            return
        if self._advancing or self._state is not ControllerState.PLAYING:
            return
        logger.debug("segment ended: %s", self.current_track)
        self._finish_segment(resume=True)

    # ------------------------------------------------------------------
    # Seeking
    # ------------------------------------------------------------------

    def seek_drag(self, seconds: float) -> None:
        track = self.current_track
        if track is None or self._drag_consumed or not self._navigable():
            return

        if not self.session.seeking:
            self._state_before_seek = self._state
            self._cancel_watches()
            self.session.seeking = True
            self._set_state(ControllerState.SEEK_PENDING)

        self._set_position(seconds)
        if self.session.position >= track.duration:
            # slider at its maximum counts as the segment running out;
            # the rest of this drag, release included, is ignored
            self._drag_consumed = True
            self._finish_segment(resume=True)

    def _media_limit(self, track: Track) -> float:
        try:
            media_duration = self.adapter.duration()
        except AdapterError as e:
            logger.debug("Duration query failed, using segment end: %s", e)
            media_duration = None
        if media_duration is None or media_duration <= 0:
            return track.segment_end
        return media_duration

    def _abort_seek(self) -> None:
        self.session.seeking = False
        restored = self._state_before_seek
        if restored is ControllerState.PLAYING:
            self._start_playing()
        else:
            self._set_state(restored)

    def seek_commit(self) -> None:
        if self._drag_consumed:
            self._drag_consumed = False
            return
        track = self.current_track
        if not self.session.seeking or self._state is not ControllerState.SEEK_PENDING or track is None:
            return

        target = min(track.segment_start + self.position, self._media_limit(track))
        offset = max(0.0, target - track.segment_start)
        if not self._load(track, offset):
            self.commandFailed.emit("Could not seek")
            self._abort_seek()
            return
        self._set_position(offset)
        self.session.seeking = False

        if not self._issue("play"):
            self.commandFailed.emit("Could not resume playback")
            self.session.playing = False
            self._set_state(ControllerState.PAUSED)
            return
        self._start_playing()

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    def set_mode(self, mode: PlaybackMode) -> None:
        if mode is self.session.mode:
            return
        self.session.mode = mode
        self.modeChanged.emit(mode)
        if self._state is ControllerState.PLAYING:
            self._cancel_watches()
            self._schedule_watches()

    def toggle_random(self) -> None:
        on = self.session.mode is PlaybackMode.RANDOM
        self.set_mode(PlaybackMode.SEQUENTIAL if on else PlaybackMode.RANDOM)

    def toggle_repeat(self) -> None:
        on = self.session.mode is PlaybackMode.REPEAT
        self.set_mode(PlaybackMode.SEQUENTIAL if on else PlaybackMode.REPEAT)

    # ------------------------------------------------------------------
    # Adapter events
    # ------------------------------------------------------------------

    def _on_segment_timer(self) -> None:
        self.notify_segment_end(self._watch_generation)

    def _on_position_sampled(self, seconds: float) -> None:
        if self.session.seeking or self._state is not ControllerState.PLAYING:
            return
        self._set_position(seconds)
        if self._segment_timer.isActive() and self._watch_generation == self._generation:
            # the player's clock sets the deadline, so load latency and stalls push it back
            remaining = max(0.0, self.segment_duration - self.position)
            self._segment_timer.start(int(remaining * 1000))

    def _on_adapter_state(self, state: PlayerState) -> None:
        logger.debug("adapter state %s", state.name)
        if state is PlayerState.PLAYING:
            self._failed_load = None
        elif state is PlayerState.ENDED:
            self.notify_segment_end(self._generation)

    def _on_adapter_ready(self) -> None:
        self._adapter_ready = True
        if self._recovering:
            self._recovering = False
            self._resume_from_recovery()
            return
        if self.session.current_index is None and not self._view.is_empty():
            self._cue_forced(0)

    def _resume_from_recovery(self) -> None:
        track = self.current_track
        if track is None:
            if self._view.is_empty():
                self._set_state(ControllerState.IDLE)
            else:
                self._cue_forced(0)
            return

        if not self._load(track, self.position):
            self.commandFailed.emit(f"Could not load “{track.title}”")
            self._set_state(ControllerState.PAUSED)
            return

        if self._resume_after_recovery and self._issue("play"):
            self._start_playing()
        else:
            self.session.playing = False
            self._set_state(ControllerState.PAUSED)
        logger.info("playback recovered at %.1fs of %s", self.position, track.title)

    def _on_load_failed(self, code: str) -> None:
        """
        The player rejected the current media (deleted or blocked video).
        Reload once; a second rejection leaves the track paused and reports it.
        """
        track = self.current_track
        if track is None:
            return

        if self._failed_load is not track:
            self._failed_load = track
            logger.warning("Reloading %s after %s", track.title, code)
            resume = self._state is ControllerState.PLAYING
            if self._load(track, self.position) and (not resume or self._issue("play")):
                if resume:
                    self._start_playing()
                return

        self._failed_load = None
        self._cancel_watches()
        self._loaded = False
        self.session.playing = False
        self.session.seeking = False
        self._set_state(ControllerState.PAUSED)
        self.commandFailed.emit(f"Could not play “{track.title}”")

    def _on_adapter_error(self, code: str) -> None:
        logger.warning("player error: %s", code)
        if self._state is ControllerState.ERROR:
            return
        if code.startswith("load_failed") and not self._recovering:
            self._on_load_failed(code)
            return
        if not self._recovering:
            self._resume_after_recovery = self._was_playing()

        self._cancel_watches()
        self._loaded = False
        self._adapter_ready = False
        self.session.playing = False
        self.session.seeking = False

        if self.adapter.reinitialize():
            self._recovering = True
            self._set_state(ControllerState.TRANSITIONING)
            return

        self._recovering = False
        logger.error("player could not be recovered (%s)", code)
        self._set_state(ControllerState.ERROR)
        self.failed.emit(f"Video player unavailable ({code})")

    def retry(self) -> None:
        """Start the adapter again after ERROR, keeping catalog, filter and index."""
        if self._state is not ControllerState.ERROR:
            return
        self._recovering = True
        self._set_state(ControllerState.TRANSITIONING)
        self.adapter.start()
