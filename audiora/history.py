"""
Recently played tracks.

A stack of track ids, most recent first. The track store owns the records;
this only remembers which ones were played.
"""

import logging
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .models import Track
    from .tracks import TrackStore


class RecentlyPlayed:
    """LIFO of played track ids. Unbounded."""

    def __init__(self):
        self._ids: List[int] = []
        self.logger = logging.getLogger(__name__)

    def push(self, track: "Track") -> None:
        self._ids.append(track.id)
        self.logger.debug("Pushed track %s onto recently played", track.id)

    def pop(self) -> Optional[int]:
        """Remove and return the most recent id, or None when empty."""
        if not self._ids:
            return None
        return self._ids.pop()

    def peek(self) -> Optional[int]:
        if not self._ids:
            return None
        return self._ids[-1]

    def clear(self) -> None:
        self._ids.clear()

    def track_ids(self) -> List[int]:
        """Ids from most to least recent."""
        return list(reversed(self._ids))

    def resolve(self, store: "TrackStore") -> List["Track"]:
        """
        Look the remembered ids up in the store.

        Tracks deleted since they were played are skipped.
        """
        tracks = []
        for track_id in self.track_ids():
            track = store.find_by_id(track_id)
            if track is not None:
                tracks.append(track)
        return tracks

    def __len__(self) -> int:
        return len(self._ids)
