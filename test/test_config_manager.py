"""
Unit tests for ConfigManager.
"""

import os
import tempfile
from unittest.mock import patch

import pytest

from audiora.config_manager import CONFIG_SCHEMA, ConfigManager
from audiora.database import ConfigRepository, Database


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    db = Database(db_path=path)
    yield db
    db.close()
    os.unlink(path)


@pytest.fixture
def config_manager(temp_db):
    """Create a ConfigManager instance for testing."""
    return ConfigManager(temp_db)


def test_get_default(config_manager):
    """Test getting default configuration values."""
    assert config_manager.get("playlist_file") == "playlist_audio.txt"
    assert config_manager.get("monitor_interval_seconds") == "2"
    assert config_manager.get("end_buffer_seconds") == "1"
    assert config_manager.get("log_level") == "WARNING"
    assert config_manager.get("log_file") is None


def test_set_and_get(config_manager):
    """Test setting and getting configuration values."""
    config_manager.set("playlist_file", "/tmp/mine.txt")
    assert config_manager.get("playlist_file") == "/tmp/mine.txt"

    config_manager.set("test_key", "test_value")
    assert config_manager.get("test_key") == "test_value"


def test_empty_value_falls_back_to_default(config_manager):
    """Test that clearing a value restores its default."""
    config_manager.set("playlist_file", "")
    assert config_manager.get("playlist_file") == "playlist_audio.txt"


def test_get_float(config_manager):
    """Test getting float configuration values."""
    assert config_manager.get_float("settle_delay_seconds") == 1.0

    config_manager.set("settle_delay_seconds", "0.25")
    assert config_manager.get_float("settle_delay_seconds") == 0.25

    config_manager.set("settle_delay_seconds", "soon")
    assert config_manager.get_float("settle_delay_seconds", default=1.0) == 1.0


def test_get_bool(config_manager):
    """Test getting boolean configuration values."""
    assert config_manager.get_bool("auto_play_default") is True

    config_manager.set("auto_play_default", "false")
    assert config_manager.get_bool("auto_play_default") is False

    config_manager.set("auto_play_default", "yes")
    assert config_manager.get_bool("auto_play_default") is True

    assert config_manager.get_bool("nonexistent", default=True) is True


def test_get_all(config_manager):
    """Test getting all configuration values."""
    config_manager.set("custom_key", "custom_value")

    all_config = config_manager.get_all()

    assert all_config["playlist_file"] == "playlist_audio.txt"
    assert "player_command" in all_config
    assert all_config["custom_key"] == "custom_value"


def test_config_persistence(temp_db):
    """Test that configuration persists across ConfigManager instances."""
    cm1 = ConfigManager(temp_db)
    cm1.set("playlist_file", "saved.txt")

    cm2 = ConfigManager(temp_db)
    assert cm2.get("playlist_file") == "saved.txt"


def test_platform_defaults(temp_db):
    """Test that macOS defaults to afplay and other platforms auto-detect."""
    with patch("audiora.config_manager.sys.platform", "darwin"):
        assert ConfigManager(temp_db).get("player_command") == "afplay"


def test_schema_covers_defaults(config_manager):
    """Test that every default key is documented."""
    schema = config_manager.get_config_schema()
    assert set(ConfigManager.DEFAULTS) == set(schema)
    schema["playlist_file"]["label"] = "changed"
    assert CONFIG_SCHEMA["playlist_file"]["label"] == "Playlist File"


def test_repository_entries(temp_db):
    """Test raw repository access."""
    repo = ConfigRepository(temp_db)
    assert repo.get("missing") is None

    assert repo.set("alpha", "1") is True
    entry = repo.get("alpha")
    assert entry.key == "alpha"
    assert entry.value == "1"
    assert entry.updated_at is not None

    repo.set("alpha", "2")
    assert repo.get("alpha").value == "2"
    assert [e.key for e in repo.get_all()] == ["alpha"]


def test_database_context_manager():
    """Test using Database in a with block."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    try:
        with Database(db_path=path) as db:
            ConfigManager(db).set("playlist_file", "mine.txt")
        assert ConfigManager(Database(db_path=path)).get("playlist_file") == "mine.txt"
    finally:
        os.unlink(path)
