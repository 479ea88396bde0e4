from conftest import FakeAdapter, spy
from core.models import Track
from player.progress import ProgressSynchronizer

SEG = Track("fffffffffff", "Segment", 30.0, 40.0)


def make_sync():
    adapter = FakeAdapter()
    sync = ProgressSynchronizer(adapter, interval_ms=200)
    return adapter, sync, spy(sync.positionSampled), spy(sync.segmentEnded)


def test_position_is_relative_to_segment_start():
    adapter, sync, positions, ended = make_sync()
    sync.start(SEG, generation=4)
    adapter.time = 33.5
    sync.poll()
    assert positions == [3.5]
    assert ended == []
    sync.stop()


def test_position_is_clamped():
    adapter, sync, positions, _ = make_sync()
    sync.start(SEG, generation=1)
    adapter.time = 12.0
    sync.poll()
    adapter.time = 55.0
    sync.poll()
    assert positions == [0.0, 10.0]
    sync.stop()


def test_segment_end_reported_once_with_generation():
    adapter, sync, _, ended = make_sync()
    sync.start(SEG, generation=9)
    adapter.time = 39.97
    sync.poll()
    sync.poll()
    assert ended == [9]

    # a new start re-arms the end latch
    sync.start(SEG, generation=10)
    sync.poll()
    assert ended == [9, 10]
    sync.stop()


def test_failed_sample_is_skipped():
    adapter, sync, positions, ended = make_sync()
    adapter.time_error = True
    sync.start(SEG, generation=1)
    sync.poll()
    assert positions == []
    assert ended == []
    sync.stop()


def test_stopped_synchronizer_is_silent():
    adapter, sync, positions, _ = make_sync()
    sync.start(SEG, generation=1)
    assert sync.is_active()
    sync.stop()
    assert not sync.is_active()
    adapter.time = 35.0
    sync.poll()
    assert positions == []
