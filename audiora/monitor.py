"""
Auto-advance monitor for audiora.

The external player gives no "track finished" signal, so a background thread
wakes every few seconds and compares the time since the track started with
the track's duration. Once the duration plus a small buffer has passed, the
track is assumed to be over and the controller is told to advance.
"""

import logging
import threading
from typing import Optional

from .playback import PlaybackController, PlaybackState


class AutoAdvanceMonitor:
    """Background thread that triggers PlaybackController.advance()."""

    DEFAULT_INTERVAL = 2.0  # Seconds between checks
    DEFAULT_END_BUFFER = 1.0  # Seconds past the duration before advancing
    ERROR_BACKOFF = 5.0

    def __init__(
        self,
        controller: PlaybackController,
        interval: float = DEFAULT_INTERVAL,
        end_buffer: float = DEFAULT_END_BUFFER,
    ):
        """
        Initialize AutoAdvanceMonitor.

        Args:
            controller: Controller whose state is watched and advanced
            interval: Seconds to sleep between checks
            end_buffer: Extra seconds allowed past the expected duration
        """
        self.controller = controller
        self.end_buffer = end_buffer
        self.logger = logging.getLogger(__name__)

        if interval <= 0:
            self.logger.warning(
                "Invalid monitor interval %ss, using %ss", interval, self.DEFAULT_INTERVAL
            )
            interval = self.DEFAULT_INTERVAL
        self.interval = interval

        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._stop_event = threading.Event()  # Wakes the thread on stop

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start the monitor thread."""
        if self._running:
            return

        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="AutoAdvanceMonitor")
        self._thread.start()
        self.logger.info("Auto-advance monitor started (every %ss)", self.interval)

    def _run(self):
        while self._running:
            try:
                self._stop_event.wait(self.interval)
                if not self._running:
                    break
                self.check_once()
            except Exception as e:
                self.logger.error("Error in auto-advance monitor: %s", e, exc_info=True)
                self._stop_event.wait(self.ERROR_BACKOFF)

    def _track_finished(self, state: PlaybackState) -> bool:
        """Evaluate the advance condition. Assumes the state lock is held."""
        if not (
            state.auto_play_enabled
            and state.is_playing
            and not state.manual_stop
            and state.current_track is not None
            and state.expected_duration > 0
            and state.track_start_time is not None
        ):
            return False

        elapsed = self.controller.clock() - state.track_start_time
        return elapsed >= state.expected_duration + self.end_buffer

    def check_once(self) -> bool:
        """
        Run one monitor cycle.

        If the current track has run past its duration, playback is marked
        stopped under the lock, and advance() is called after the lock is
        released.

        Returns:
            True if an advance was triggered
        """
        state = self.controller.state
        with state.lock:
            if not self._track_finished(state):
                return False
            state.is_playing = False
            finished = state.current_track

        self.logger.info("Track finished: %s, playing next", finished.describe())
        self.controller.advance(expected_track_id=finished.id)
        return True

    def stop(self, timeout: Optional[float] = None):
        """
        Stop the monitor thread and wait for it to exit.

        Args:
            timeout: Seconds to wait for the thread. None waits until it exits.
        """
        if not self._running:
            return

        self.logger.info("Stopping auto-advance monitor...")
        self._running = False
        self._stop_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                self.logger.warning("Auto-advance monitor did not stop within %ss", timeout)

        self.logger.info("Auto-advance monitor stopped")
