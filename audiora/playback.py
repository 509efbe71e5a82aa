"""
Playback controller for audiora.

Owns the shared "now playing" state and every transition of it. The
foreground (menu) thread and the auto-advance monitor thread both go through
this controller; all state fields except the auto-play flag are read and
written under PlaybackState.lock.

Lock scope differs per operation:
  - play() and stop() call the audio backend while holding the lock.
  - advance() updates state under the lock, then releases it before the
    backend stop / settle delay / start sequence.

Backend commands are serialized by a second lock owned by the controller.
It is always taken after PlaybackState.lock, never before it, and
`generation` is only written while both are held. advance() checks the
generation holding just the backend lock, so a play() or stop() that
slipped in while the state lock was released always issues its backend
command after advance() gave up, never before it.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .backend import AudioBackend, BackendUnavailableError
from .history import RecentlyPlayed
from .models import Track
from .queue import UpcomingQueue
from .tracks import TrackStore


class PlaybackResult(Enum):
    """Outcome of a playback operation, also passed to the listener."""
    STARTED = 'started'
    STOPPED = 'stopped'
    NOT_FOUND = 'not_found'
    UNPLAYABLE = 'unplayable'  # Track has no audio file
    BACKEND_UNAVAILABLE = 'backend_unavailable'
    BACKEND_FAILED = 'backend_failed'  # Player exists but did not launch
    FINISHED = 'finished'  # End of playlist, no wraparound
    NO_CURRENT = 'no_current'
    QUEUE_EMPTY = 'queue_empty'
    SUPERSEDED = 'superseded'  # State changed before the advance could apply


PlaybackListener = Callable[[PlaybackResult, Optional[Track]], None]


@dataclass
class PlaybackState:
    """
    The single shared "now playing" record.

    `track_start_time` and `expected_duration` only mean something while
    `current_track` is set. `is_playing` is what the controller last asked
    for, not something the player process confirmed.

    `generation` is bumped on every transition so an advance that released
    the lock can tell whether someone else changed the state meanwhile. It is
    written with the controller's backend lock held as well, and may be read
    under either lock.
    """
    current_track: Optional[Track] = None
    is_playing: bool = False
    manual_stop: bool = False
    auto_play_enabled: bool = True
    track_start_time: Optional[float] = None
    expected_duration: int = 0
    generation: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def clear_timing(self):
        """Forget start time and duration. Assumes lock is held."""
        self.track_start_time = None
        self.expected_duration = 0


class PlaybackController:
    """Starts, stops and advances playback under the shared lock."""

    DEFAULT_SETTLE_DELAY = 1.0

    def __init__(
        self,
        store: TrackStore,
        backend: AudioBackend,
        history: Optional[RecentlyPlayed] = None,
        upcoming: Optional[UpcomingQueue] = None,
        state: Optional[PlaybackState] = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        clock: Callable[[], float] = time.monotonic,
        listener: Optional[PlaybackListener] = None,
    ):
        """
        Initialize PlaybackController.

        Args:
            store: Playlist the controller plays from
            backend: Audio output
            history: Recently played stack (created if None)
            upcoming: Upcoming queue (created if None)
            state: Shared playback state (created if None)
            settle_delay: Seconds to wait between stopping the old track and
                starting the next one during advance()
            clock: Time source for start times and elapsed checks
            listener: Called with (result, track) after each operation,
                outside the lock
        """
        self.store = store
        self.backend = backend
        self.history = history if history is not None else RecentlyPlayed()
        self.upcoming = upcoming if upcoming is not None else UpcomingQueue()
        self.state = state if state is not None else PlaybackState()
        self.settle_delay = settle_delay
        self.clock = clock
        self.listener = listener

        # Serializes backend commands, see module docstring. Reentrant: a
        # backend may call back into the controller on the same thread
        self._audio_lock = threading.RLock()

        self.logger = logging.getLogger(__name__)

    @property
    def lock(self) -> threading.Lock:
        return self.state.lock

    def _notify(self, result: PlaybackResult, track: Optional[Track]):
        if self.listener is None:
            return
        try:
            self.listener(result, track)
        except Exception as e:
            self.logger.error('Playback listener failed for %s: %s', result.value, e, exc_info=True)

    def _launch(self, track: Track) -> PlaybackResult:
        """Ask the backend to play `track`. Touches no state."""
        try:
            started = self.backend.start(track.source_path)
        except BackendUnavailableError as e:
            self.logger.error('Cannot play %s: %s', track.source_path, e)
            return PlaybackResult.BACKEND_UNAVAILABLE

        if not started:
            self.logger.error('Audio backend failed to start %s', track.source_path)
            return PlaybackResult.BACKEND_FAILED
        return PlaybackResult.STARTED

    def _become_current(self, track: Track):
        """
        Make `track` current, pushing the previous one onto history.

        Assumes lock and the backend lock are held.
        """
        state = self.state
        if state.current_track is not None:
            self.history.push(state.current_track)
        state.current_track = track
        state.expected_duration = track.duration
        state.track_start_time = self.clock()
        state.generation += 1

    # =========================================================================
    # User operations
    # =========================================================================

    def play(self, track_id: int) -> PlaybackResult:
        """
        Play a track from the playlist.

        The backend is stopped and restarted while the lock is held.

        Args:
            track_id: ID of the track to play

        Returns:
            STARTED, NOT_FOUND, UNPLAYABLE, BACKEND_UNAVAILABLE or BACKEND_FAILED
        """
        with self.lock, self._audio_lock:
            track = self.store.find_by_id(track_id)
            if track is None:
                self.logger.warning('Track %s not found', track_id)
                result = PlaybackResult.NOT_FOUND
            else:
                if self.backend.is_active():
                    self.backend.stop()

                self._become_current(track)
                self.state.manual_stop = False
                self.logger.info('Now playing: %s', track.describe())

                if not track.has_audio:
                    self.logger.warning('Track %s has no audio file', track.id)
                    self.state.is_playing = False
                    result = PlaybackResult.UNPLAYABLE
                else:
                    result = self._launch(track)
                    self.state.is_playing = result is PlaybackResult.STARTED

        self._notify(result, track)
        return result

    def stop(self) -> PlaybackResult:
        """
        Stop playback and suppress auto-advance until the next play().

        The current track stays selected.
        """
        with self.lock, self._audio_lock:
            self.state.manual_stop = True
            self.backend.stop()
            self.state.is_playing = False
            self.state.clear_timing()
            self.state.generation += 1
            track = self.state.current_track

        self.logger.info('Playback stopped')
        self._notify(PlaybackResult.STOPPED, track)
        return PlaybackResult.STOPPED

    def toggle_auto_play(self) -> bool:
        """
        Flip the auto-play flag.

        Not lock-protected: the menu thread is the only writer and the
        monitor's read of it is best-effort.

        Returns:
            The new value
        """
        self.state.auto_play_enabled = not self.state.auto_play_enabled
        self.logger.info('Auto-play %s', 'enabled' if self.state.auto_play_enabled else 'disabled')
        return self.state.auto_play_enabled

    def delete_track(self, track_id: int) -> bool:
        """
        Remove a track from the playlist.

        Deleting the current track stops it and leaves nothing selected.
        Queued entries for the track are dropped.

        Returns:
            True if deleted, False if not found
        """
        with self.lock, self._audio_lock:
            state = self.state
            was_current = state.current_track is not None and state.current_track.id == track_id

            if not self.store.delete(track_id):
                self.logger.warning('Track %s not found for delete', track_id)
                return False

            self.upcoming.discard(track_id)

            if was_current:
                self.logger.info('Deleted the current track, stopping playback')
                self.backend.stop()
                state.current_track = None
                state.is_playing = False
                state.clear_timing()
                state.generation += 1

        return True

    # =========================================================================
    # Auto-advance
    # =========================================================================

    def advance(self, expected_track_id: Optional[int] = None) -> PlaybackResult:
        """
        Move to the track after the current one in playlist order.

        State is updated under the lock; the backend stop, settle delay and
        start then run with the lock released. Neither backend call is made
        once another transition has moved the generation on.

        Args:
            expected_track_id: When given (the monitor passes the track it
                judged finished), the advance only applies if that track is
                still current and playback was not stopped by the user.

        Returns:
            STARTED, NO_CURRENT, FINISHED, UNPLAYABLE, SUPERSEDED,
            BACKEND_UNAVAILABLE or BACKEND_FAILED
        """
        with self.lock, self._audio_lock:
            state = self.state
            current = state.current_track

            if current is None:
                self.logger.info('No track currently playing')
                return PlaybackResult.NO_CURRENT

            if expected_track_id is not None and (
                current.id != expected_track_id or state.manual_stop
            ):
                self.logger.info(
                    'Skipping advance from track %s: state changed (current=%s, manual_stop=%s)',
                    expected_track_id, current.id, state.manual_stop
                )
                return PlaybackResult.SUPERSEDED

            next_track = self.store.find_next(current)

            if next_track is None:
                self.logger.info('Playlist finished, no more tracks to play')
                state.is_playing = False
                result = PlaybackResult.FINISHED
            elif not next_track.has_audio:
                self.logger.error('Next track %s has no audio file', next_track.id)
                self._become_current(next_track)
                state.track_start_time = None
                state.is_playing = False
                result = PlaybackResult.UNPLAYABLE
            else:
                self.logger.info('Advancing to: %s', next_track.describe())
                self._become_current(next_track)
                state.manual_stop = False
                state.is_playing = False
                generation = state.generation
                result = None

        if result is not None:
            self._notify(result, current if result is PlaybackResult.FINISHED else next_track)
            return result

        with self._audio_lock:
            if self.state.generation != generation:
                return self._abandon_advance(next_track)
            self.backend.stop()

        if self.settle_delay > 0:
            time.sleep(self.settle_delay)

        with self._audio_lock:
            if self.state.generation != generation:
                return self._abandon_advance(next_track)
            result = self._launch(next_track)

        with self.lock:
            if self.state.generation == generation:
                self.state.is_playing = result is PlaybackResult.STARTED

        self._notify(result, next_track)
        return result

    def _abandon_advance(self, next_track: Track) -> PlaybackResult:
        self.logger.info('Playback changed during advance, not starting %s', next_track.id)
        return PlaybackResult.SUPERSEDED

    # =========================================================================
    # Upcoming queue
    # =========================================================================

    def queue_track(self, track_id: int) -> bool:
        """Add a track to the upcoming queue. False if it does not exist."""
        with self.lock:
            track = self.store.find_by_id(track_id)
            if track is None:
                self.logger.warning('Track %s not found, not queued', track_id)
                return False
            self.upcoming.enqueue(track)
        return True

    def play_queued(self) -> PlaybackResult:
        """
        Play the oldest entry of the upcoming queue.

        Returns:
            QUEUE_EMPTY if nothing is queued, otherwise the result of play()
        """
        with self.lock:
            track_id = self.upcoming.dequeue()
        if track_id is None:
            self.logger.info('Upcoming queue is empty')
            return PlaybackResult.QUEUE_EMPTY
        return self.play(track_id)

    # =========================================================================
    # Status
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        """
        Get a consistent snapshot of the playback state.

        Returns:
            Dictionary with current track, flags and timing
        """
        with self.lock:
            state = self.state
            elapsed = None
            if state.current_track is not None and state.track_start_time is not None:
                elapsed = max(0.0, self.clock() - state.track_start_time)
            return {
                'current_track': state.current_track,
                'is_playing': state.is_playing,
                'manual_stop': state.manual_stop,
                'auto_play_enabled': state.auto_play_enabled,
                'elapsed_seconds': elapsed,
                'expected_duration': state.expected_duration,
            }

    def recently_played(self) -> List[Track]:
        with self.lock:
            return self.history.resolve(self.store)

    def upcoming_tracks(self) -> List[Track]:
        with self.lock:
            return self.upcoming.resolve(self.store)

    def shutdown(self):
        """
        Stop audio and clear per-session state.

        The monitor must already be stopped.
        """
        self.logger.info('Shutting down playback controller')
        with self.lock, self._audio_lock:
            self.backend.stop()
            self.state.is_playing = False
            self.state.clear_timing()
            self.state.generation += 1
            self.history.clear()
            self.upcoming.clear()
        self.logger.info('Playback controller shut down')
