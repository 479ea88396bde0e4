import os
import random

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtWidgets import QApplication

from core.models import Track
from player.adapter import AdapterCommandError, PlayerAdapter, PlayerState
from player.controller import PlaybackController


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


# ── Fake player ──────────────────────────────────────────────────────


class FakeAdapter(PlayerAdapter):
    """
    Records every command as a tuple. `fail[name] = n` makes the next n
    calls of that command raise; `restart_budget` bounds reinitialize().
    """

    def __init__(self):
        super().__init__()
        self.calls: list[tuple] = []
        self.time = 0.0
        self.media_duration = None
        self.time_error = False
        self.fail: dict[str, int] = {}
        self.restart_budget = 3
        self.reinit_calls = 0
        self.starts = 0

    def _record(self, name, *args):
        remaining = self.fail.get(name, 0)
        if remaining:
            self.fail[name] = remaining - 1
            raise AdapterCommandError(f"{name} rejected")
        self.calls.append((name, *args))

    def commands(self, name=None):
        return [c for c in self.calls if name is None or c[0] == name]

    def start(self):
        self.starts += 1
        self.ready.emit()

    def load(self, media_ref, start, end_hint=None):
        self._record("load", media_ref, start, end_hint)
        self.time = start

    def play(self):
        self._record("play")

    def pause(self):
        self._record("pause")

    def current_time(self):
        if self.time_error:
            raise AdapterCommandError("time position unavailable")
        return self.time

    def duration(self):
        return self.media_duration

    def reinitialize(self):
        if self.restart_budget <= 0:
            return False
        self.restart_budget -= 1
        self.reinit_calls += 1
        return True

    def shutdown(self):
        pass

    def emit_ended(self):
        self.stateChanged.emit(PlayerState.ENDED)


def spy(signal) -> list:
    """Collects every emission of `signal` (argument tuples are unpacked when single)."""
    got = []
    signal.connect(lambda *args: got.append(args[0] if len(args) == 1 else args))
    return got


# ── Catalog ──────────────────────────────────────────────────────────

A = Track("aaaaaaaaaaa", "Song A", 0.0, 10.0, vocalists=frozenset({"Ann"}), category="Original")
B = Track("bbbbbbbbbbb", "Song B", 0.0, 5.0, vocalists=frozenset({"Ben"}), category="Cover")
C = Track("ccccccccccc", "Song C", 0.0, 8.0, vocalists=frozenset({"Ann", "Ben"}), category="Original")
CATALOG = [A, B, C]


class _Harness:
    def __init__(self):
        self.adapter = FakeAdapter()
        self.ctl = PlaybackController(self.adapter, poll_interval_ms=200, rng=random.Random(7))

    def boot(self, catalog=CATALOG):
        """Ready adapter, catalog loaded, first track cued; command log cleared."""
        self.adapter.start()
        self.ctl.set_catalog(catalog)
        self.adapter.calls.clear()
        return self

    def play_index(self, index):
        """Start playing view[index] and clear the command log."""
        self.ctl.play()
        while self.ctl.current_index != index:
            self.ctl.next()
        self.adapter.calls.clear()


@pytest.fixture
def harness():
    """
    Controller over a fake adapter with the catalog
        A  0–10 s   Original  Ann
        B  0– 5 s   Cover     Ben
        C  0– 8 s   Original  Ann, Ben
    cued on A.
    """
    h = _Harness().boot()
    yield h
    h.ctl.progress.stop()
    h.ctl._segment_timer.stop()
