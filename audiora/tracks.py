"""
Track store for audiora.

Holds the playlist in insertion order and hands out track ids.
"""

import logging
from typing import Iterable, Iterator, List, Optional

from .models import Track


class TrackStore:
    """Ordered collection of tracks with monotonically assigned ids."""

    FIRST_ID = 1

    def __init__(self):
        self._tracks: List[Track] = []
        self._next_id = self.FIRST_ID
        self.logger = logging.getLogger(__name__)

    @property
    def next_id(self) -> int:
        """Id that the next added track will receive."""
        return self._next_id

    def add(self, title: str, artist: str, duration: int, path: str = "") -> int:
        """
        Append a new track to the end of the playlist.

        Args:
            title: Track title
            artist: Artist name
            duration: Duration in seconds
            path: Audio file path (empty if the track has no audio)

        Returns:
            ID of the created track

        Raises:
            ValueError: If duration is negative
        """
        if duration < 0:
            raise ValueError(f"duration must be >= 0, got {duration}")

        track = Track(
            id=self._next_id,
            title=title,
            artist=artist,
            duration=duration,
            source_path=path,
        )
        self._tracks.append(track)
        self._next_id += 1

        self.logger.info("Added track: %s (ID: %s)", track.describe(), track.id)
        return track.id

    def delete(self, track_id: int) -> bool:
        """Remove a track. Returns False if no track has that id."""
        for index, track in enumerate(self._tracks):
            if track.id == track_id:
                del self._tracks[index]
                self.logger.info("Deleted track %s", track_id)
                return True
        self.logger.debug("Track %s not found for delete", track_id)
        return False

    def find_by_id(self, track_id: int) -> Optional[Track]:
        """Get a track by id, or None."""
        for track in self._tracks:
            if track.id == track_id:
                return track
        return None

    def find_next(self, track: Optional[Track]) -> Optional[Track]:
        """
        Get the track that follows `track` in playlist order.

        Only the playlist order counts here; the history stack and the
        upcoming queue play no part.

        Returns:
            The successor, or None if `track` is last or not in the store
        """
        if track is None:
            return None
        for index, candidate in enumerate(self._tracks):
            if candidate.id == track.id:
                if index + 1 < len(self._tracks):
                    return self._tracks[index + 1]
                return None
        return None

    def get_all(self) -> List[Track]:
        """Get a copy of the playlist in order."""
        return list(self._tracks)

    def restore(self, tracks: Iterable[Track], next_id: int) -> None:
        """
        Replace the playlist with previously persisted tracks.

        The counter is raised to max(id) + 1 when the stored value is lower,
        so ids handed out afterwards never collide with loaded ones.
        """
        self._tracks = list(tracks)
        highest = max((track.id for track in self._tracks), default=0)
        if next_id <= highest:
            self.logger.warning(
                "Stored next id %s is not above highest track id %s, using %s",
                next_id,
                highest,
                highest + 1,
            )
            next_id = highest + 1
        self._next_id = max(next_id, self.FIRST_ID)

    def __len__(self) -> int:
        return len(self._tracks)

    def __iter__(self) -> Iterator[Track]:
        return iter(list(self._tracks))
