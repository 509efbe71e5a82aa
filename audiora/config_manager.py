"""
Configuration management using database storage.

Provides access to configuration values with defaults and type conversion.
CONFIG_SCHEMA describes each user-facing key for `audiora --show-config`.
"""

import logging
import sys
from typing import Any, Dict, Optional

from .database import ConfigRepository, Database

# Schema describing each configuration key
CONFIG_SCHEMA = {
    "playlist_file": {
        "label": "Playlist File",
        "description": "Where the playlist is loaded from and saved to.",
    },
    "player_command": {
        "label": "Audio Player",
        "description": "Command used to play audio files (the path is appended). "
        "Leave empty to auto-detect afplay, mpg123, ffplay, gst-play-1.0 or aplay.",
    },
    "monitor_interval_seconds": {
        "label": "Monitor Interval",
        "description": "How often the auto-play monitor checks whether a track has finished.",
    },
    "end_buffer_seconds": {
        "label": "End Buffer",
        "description": "Extra seconds past a track's duration before it counts as finished.",
    },
    "settle_delay_seconds": {
        "label": "Settle Delay",
        "description": "Pause between stopping one track and starting the next during auto-play.",
    },
    "stop_timeout_seconds": {
        "label": "Stop Timeout",
        "description": "How long to wait for the player to exit before killing it.",
    },
    "auto_play_default": {
        "label": "Auto-Play",
        "description": "Whether auto-play is enabled when audiora starts.",
    },
    "log_level": {
        "label": "Log Level",
        "description": "DEBUG, INFO, WARNING or ERROR.",
    },
    "log_file": {
        "label": "Log File",
        "description": "Write logs to this file instead of stderr. Leave empty for stderr.",
    },
}


class ConfigManager:
    """Manages configuration stored in database."""

    @staticmethod
    def _get_platform_defaults():
        """Get platform-specific default values."""
        if sys.platform == "darwin":
            # afplay ships with macOS
            return {"player_command": "afplay"}
        # Auto-detect elsewhere
        return {"player_command": None}

    # Default configuration values (merged with platform-specific)
    DEFAULTS = {
        "playlist_file": "playlist_audio.txt",
        "player_command": None,  # Overridden by platform defaults
        "monitor_interval_seconds": "2",
        "end_buffer_seconds": "1",
        "settle_delay_seconds": "1",
        "stop_timeout_seconds": "2",
        "auto_play_default": "true",
        "log_level": "WARNING",
        "log_file": None,
    }

    def __init__(self, database: Database):
        """
        Initialize ConfigManager.

        Args:
            database: Database instance
        """
        self.database = database
        self.repository = ConfigRepository(database)
        self.logger = logging.getLogger(__name__)
        # Merge platform-specific defaults
        platform_defaults = self._get_platform_defaults()
        self._merged_defaults = {**self.DEFAULTS, **platform_defaults}
        self.repository.initialize_defaults(self._merged_defaults)

    def get(self, key: str, default: Any = None) -> Optional[str]:
        """
        Get a configuration value.

        Args:
            key: Configuration key
            default: Default value if not found (uses merged defaults if None)

        Returns:
            Configuration value as string, or None if not found
        """
        if default is None:
            default = self._merged_defaults.get(key)

        entry = self.repository.get(key)
        if entry:
            return entry.value if entry.value else default
        return default

    def get_float(self, key: str, default: Optional[float] = None) -> Optional[float]:
        """Get configuration value as float."""
        value = self.get(key)
        if value is None or value == "":
            return default
        try:
            return float(value)
        except ValueError:
            self.logger.warning("Invalid float value for %s: %s", key, value)
            return default

    def get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        """Get configuration value as boolean."""
        value = self.get(key)
        if value is None or value == "":
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def set(self, key: str, value: Any) -> bool:
        """
        Set a configuration value.

        Args:
            key: Configuration key
            value: Value to set (will be converted to string)

        Returns:
            True if successful
        """
        return self.repository.set(key, str(value))

    def get_all(self) -> dict:
        """
        Get all configuration values.

        Returns:
            Dictionary of all configuration key-value pairs
        """
        entries = self.repository.get_all()
        config = {entry.key: entry.value for entry in entries}

        # Merge with defaults to ensure all keys are present
        result = self._merged_defaults.copy()
        result.update(config)
        return result

    def get_config_schema(self) -> Dict[str, dict]:
        """Get the configuration schema (copies, safe to modify)."""
        return {key: dict(key_def) for key, key_def in CONFIG_SCHEMA.items()}
