"""
Playlist persistence.

The playlist lives in a plain text file:

    <next id>
    <id>|<title>|<artist>|<duration>|<file path>
    ...

Fields are not escaped, so titles, artists or paths containing "|" or a
newline cannot be stored faithfully. Parsing is permissive: a line that does
not have the expected shape still produces a track, with missing text fields
left empty and unreadable numbers read as 0.

The file is UTF-8. Bytes that are not valid UTF-8 (older playlists stored
whatever the terminal produced) are carried through unchanged as surrogate
escapes, so they survive a load and save and still name the right file.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .models import Track
from .tracks import TrackStore

FIELD_SEPARATOR = "|"
DEFAULT_PLAYLIST_FILE = "playlist_audio.txt"
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"

logger = logging.getLogger(__name__)


def _parse_int(value: str, default: int = 0) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return default


def parse_track_line(line: str) -> Track:
    """
    Parse one `id|title|artist|duration|path` line.

    The path is everything after the fourth separator.
    """
    fields = line.rstrip("\r\n").split(FIELD_SEPARATOR, 4)
    if len(fields) < 5:
        logger.warning("Malformed playlist line (%s fields): %r", len(fields), line)
        fields += [""] * (5 - len(fields))

    track_id, title, artist, duration, path = fields
    return Track(
        id=_parse_int(track_id),
        title=title,
        artist=artist,
        duration=_parse_int(duration),
        source_path=path,
    )


def format_track_line(track: Track) -> str:
    return FIELD_SEPARATOR.join(
        [str(track.id), track.title, track.artist, str(track.duration), track.source_path]
    )


class PlaylistFile:
    """Reads and writes a TrackStore in the pipe-delimited playlist format."""

    def __init__(self, path: Union[str, Path, None] = None):
        """
        Initialize PlaylistFile.

        Args:
            path: Playlist file location. If None, uses playlist_audio.txt
                in the current directory.
        """
        self.path = Path(path) if path is not None else Path(DEFAULT_PLAYLIST_FILE)
        self.logger = logging.getLogger(__name__)

    def read(self) -> Optional[Tuple[List[Track], int]]:
        """
        Read tracks and the stored next-id counter.

        Returns:
            (tracks, next_id), or None if the file is missing or unreadable
        """
        if not self.path.exists():
            self.logger.info("No playlist file at %s, starting empty", self.path)
            return None

        try:
            with open(self.path, "r", encoding=ENCODING, errors=ENCODING_ERRORS) as handle:
                lines = handle.readlines()
        except OSError as e:
            self.logger.error("Could not read playlist from %s: %s", self.path, e)
            return None

        next_id = TrackStore.FIRST_ID
        if lines:
            next_id = _parse_int(lines[0], default=TrackStore.FIRST_ID)

        tracks = [parse_track_line(line) for line in lines[1:] if line.strip()]
        return tracks, next_id

    def load(self, store: TrackStore) -> int:
        """
        Populate `store` from the file.

        Returns:
            Number of tracks loaded (0 if the file does not exist)
        """
        contents = self.read()
        if contents is None:
            return 0

        tracks, next_id = contents
        store.restore(tracks, next_id)
        self.logger.info("Loaded %s tracks from %s", len(tracks), self.path)
        return len(tracks)

    def save(self, store: TrackStore) -> bool:
        """
        Write `store` to the file, replacing its previous contents.

        Returns:
            True if written, False if the file could not be written
        """
        try:
            with open(self.path, "w", encoding=ENCODING, errors=ENCODING_ERRORS) as handle:
                handle.write(f"{store.next_id}\n")
                for track in store:
                    handle.write(format_track_line(track) + "\n")
        except OSError as e:
            self.logger.error("Could not save playlist to %s: %s", self.path, e)
            return False

        self.logger.info("Saved %s tracks to %s", len(store), self.path)
        return True
