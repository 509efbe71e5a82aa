"""
Upcoming queue for audiora.

FIFO of track ids the user lined up by hand. Auto-advance follows playlist
order and never reads from this queue.
"""

import logging
from collections import deque
from typing import TYPE_CHECKING, Deque, List, Optional

if TYPE_CHECKING:
    from .models import Track
    from .tracks import TrackStore


class UpcomingQueue:
    """Unbounded FIFO of track ids."""

    def __init__(self):
        self._ids: Deque[int] = deque()
        self.logger = logging.getLogger(__name__)

    def enqueue(self, track: "Track") -> None:
        self._ids.append(track.id)
        self.logger.debug("Queued track %s (queue length: %s)", track.id, len(self._ids))

    def dequeue(self) -> Optional[int]:
        """Remove and return the oldest id, or None when empty."""
        if not self._ids:
            return None
        return self._ids.popleft()

    def peek(self) -> Optional[int]:
        if not self._ids:
            return None
        return self._ids[0]

    def discard(self, track_id: int) -> int:
        """
        Drop every pending entry for a track.

        Returns:
            Number of entries removed
        """
        before = len(self._ids)
        self._ids = deque(i for i in self._ids if i != track_id)
        return before - len(self._ids)

    def clear(self) -> None:
        self._ids.clear()

    def track_ids(self) -> List[int]:
        """Ids in play order."""
        return list(self._ids)

    def resolve(self, store: "TrackStore") -> List["Track"]:
        """Tracks for the queued ids that are still in the store."""
        tracks = []
        for track_id in self._ids:
            track = store.find_by_id(track_id)
            if track is not None:
                tracks.append(track)
        return tracks

    def __len__(self) -> int:
        return len(self._ids)
