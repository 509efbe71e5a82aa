"""
Unit tests for AutoAdvanceMonitor.

Most tests drive single cycles through check_once() with a fake clock; a few
run the real background thread with a short interval.
"""

import time
from unittest.mock import Mock

import pytest

from audiora.backend import AudioBackend
from audiora.monitor import AutoAdvanceMonitor
from audiora.playback import PlaybackController, PlaybackResult
from audiora.tracks import TrackStore


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def wait_for(predicate, timeout=3.0):
    """Poll until predicate() is true or the timeout passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_backend():
    backend = Mock(spec=AudioBackend)
    backend.start.return_value = True
    backend.is_active.return_value = False
    return backend


@pytest.fixture
def store():
    s = TrackStore()
    s.add("Song A", "Artist A", 5, "a.mp3")
    s.add("Song B", "Artist B", 3, "b.mp3")
    return s


@pytest.fixture
def controller(store, mock_backend, clock):
    return PlaybackController(store, mock_backend, settle_delay=0, clock=clock)


@pytest.fixture
def monitor(controller):
    m = AutoAdvanceMonitor(controller, interval=2.0, end_buffer=1.0)
    yield m
    m.stop(timeout=2.0)


def test_no_advance_before_duration_plus_buffer(monitor, controller, clock):
    """Test that the track is not considered finished too early."""
    controller.play(1)
    clock.advance(5.9)

    assert monitor.check_once() is False
    assert controller.state.current_track.id == 1
    assert controller.state.is_playing is True


def test_advance_after_duration_plus_buffer(monitor, controller, clock, mock_backend):
    """Test that the next track starts once duration + buffer has elapsed."""
    controller.play(1)
    clock.advance(6)

    assert monitor.check_once() is True

    assert controller.state.current_track.id == 2
    assert controller.state.is_playing is True
    assert controller.history.track_ids() == [1]
    mock_backend.start.assert_called_with("b.mp3")


def test_one_advance_per_threshold_crossing(monitor, controller, clock):
    """Test that repeated cycles after one crossing advance exactly once."""
    controller.play(1)
    controller.advance = Mock(wraps=controller.advance)
    clock.advance(7)

    assert monitor.check_once() is True
    assert monitor.check_once() is False
    assert monitor.check_once() is False

    assert controller.advance.call_count == 1
    controller.advance.assert_called_once_with(expected_track_id=1)


def test_each_track_gets_its_own_crossing(monitor, controller, clock):
    """Test advancing through the playlist and stopping at the end."""
    controller.play(1)
    clock.advance(6)
    monitor.check_once()
    assert controller.state.current_track.id == 2

    clock.advance(3.5)
    assert monitor.check_once() is False
    clock.advance(0.5)
    assert monitor.check_once() is True

    # Last track: finished, not playing, no wraparound
    assert controller.state.current_track.id == 2
    assert controller.state.is_playing is False

    clock.advance(100)
    assert monitor.check_once() is False


@pytest.mark.parametrize(
    "setup",
    [
        lambda c: c.toggle_auto_play(),
        lambda c: c.stop(),
        lambda c: setattr(c.state, "is_playing", False),
    ],
    ids=["auto_play_disabled", "manual_stop", "not_playing"],
)
def test_no_advance_when_suppressed(monitor, controller, clock, setup):
    """Test each condition that keeps the monitor from advancing."""
    controller.play(1)
    setup(controller)
    clock.advance(60)

    assert monitor.check_once() is False
    assert controller.state.current_track.id == 1


def test_no_advance_without_current_track(monitor, controller, clock):
    """Test an idle player."""
    clock.advance(60)
    assert monitor.check_once() is False


def test_no_advance_for_zero_duration(mock_backend, clock):
    """Test that tracks without a known duration never auto-advance."""
    store = TrackStore()
    store.add("Unknown length", "Artist", 0, "a.mp3")
    store.add("Next", "Artist", 3, "b.mp3")
    controller = PlaybackController(store, mock_backend, settle_delay=0, clock=clock)
    monitor = AutoAdvanceMonitor(controller)

    controller.play(1)
    clock.advance(3600)

    assert monitor.check_once() is False
    assert controller.state.current_track.id == 1


def test_unplayable_next_track(mock_backend, clock):
    """Test auto-advance onto a track without an audio file."""
    store = TrackStore()
    store.add("A", "Artist", 5, "a.mp3")
    store.add("B", "Artist", 3, "")
    listener = Mock()
    controller = PlaybackController(
        store, mock_backend, settle_delay=0, clock=clock, listener=listener
    )
    monitor = AutoAdvanceMonitor(controller)

    controller.play(1)
    clock.advance(7)

    assert monitor.check_once() is True

    state = controller.state
    assert state.current_track.id == 2
    assert state.is_playing is False
    assert controller.history.track_ids() == [1]
    listener.assert_called_with(PlaybackResult.UNPLAYABLE, state.current_track)
    # Not retried on later cycles
    clock.advance(60)
    assert monitor.check_once() is False


def test_stop_between_check_and_advance(monitor, controller, clock, mock_backend):
    """Test that a stop landing after the check but before the advance wins."""
    controller.play(1)
    clock.advance(7)

    real_advance = controller.advance

    def stop_then_advance(**kwargs):
        controller.stop()
        return real_advance(**kwargs)

    controller.advance = Mock(side_effect=stop_then_advance)

    assert monitor.check_once() is True

    assert controller.advance.call_count == 1
    assert controller.state.current_track.id == 1
    assert controller.state.manual_stop is True
    assert mock_backend.start.call_count == 1


def test_background_thread_advances(controller, clock):
    """Test the real thread picking up a finished track."""
    monitor = AutoAdvanceMonitor(controller, interval=0.01)
    controller.play(1)
    clock.advance(6)

    monitor.start()
    try:
        assert wait_for(lambda: controller.state.current_track.id == 2)
    finally:
        monitor.stop(timeout=2.0)

    assert not monitor.is_running


def test_start_is_idempotent(controller):
    """Test that a second start does not spawn another thread."""
    monitor = AutoAdvanceMonitor(controller, interval=0.01)
    monitor.start()
    first_thread = monitor._thread
    monitor.start()

    assert monitor._thread is first_thread
    monitor.stop(timeout=2.0)
    assert not monitor.is_running


def test_stop_without_start(controller):
    """Test that stopping an unstarted monitor is harmless."""
    monitor = AutoAdvanceMonitor(controller)
    monitor.stop()
    assert not monitor.is_running


@pytest.mark.parametrize("interval", [0, -2.5])
def test_non_positive_interval_uses_default(controller, interval):
    """Test that a zero or negative interval does not make the thread spin."""
    monitor = AutoAdvanceMonitor(controller, interval=interval)
    assert monitor.interval == AutoAdvanceMonitor.DEFAULT_INTERVAL


def test_stop_wakes_sleeping_thread(controller):
    """Test that stop does not wait out a long interval."""
    monitor = AutoAdvanceMonitor(controller, interval=60)
    monitor.start()

    started = time.monotonic()
    monitor.stop(timeout=5.0)

    assert time.monotonic() - started < 5.0
    assert not monitor.is_running


def test_thread_survives_errors(controller):
    """Test that an exception in one cycle does not end the thread."""
    monitor = AutoAdvanceMonitor(controller, interval=0.01)
    monitor.ERROR_BACKOFF = 0.01
    calls = []

    def flaky_check():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("transient")
        return False

    monitor.check_once = flaky_check
    monitor.start()
    try:
        assert wait_for(lambda: len(calls) >= 3)
        assert monitor.is_running
    finally:
        monitor.stop(timeout=2.0)
