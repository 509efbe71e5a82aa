"""
Data models for audiora.

Defines typed dataclasses for the entities shared between modules.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Track:
    """A playable playlist entry."""

    id: int
    title: str
    artist: str
    duration: int  # Seconds
    source_path: str = ""  # Empty when no audio file is attached

    @property
    def has_audio(self) -> bool:
        """True when the track points at an audio file."""
        return bool(self.source_path)

    def describe(self) -> str:
        """Return a one-line "Artist - Title (N sec)" label."""
        return f"{self.artist} - {self.title} ({self.duration} sec)"


@dataclass
class ConfigEntry:
    """Configuration entry."""

    key: str
    value: str
    updated_at: Optional[datetime] = None
