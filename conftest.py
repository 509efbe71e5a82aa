"""
Pytest configuration for audiora tests.

Provides:
- @pytest.mark.player marker for tests that launch a real external audio player
- Auto-skip of player tests when no player binary is on PATH
"""

import pytest

from audiora.platform import find_player_command


def _is_player_available():
    """Check if an external audio player is installed."""
    return find_player_command() is not None


PLAYER_AVAILABLE = _is_player_available()


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "player: marks tests as requiring an external audio player (skipped if unavailable)"
    )


def pytest_collection_modifyitems(config, items):
    """Auto-skip player tests when no audio player is installed."""
    if PLAYER_AVAILABLE:
        return

    skip_player = pytest.mark.skip(reason="No audio player found on PATH")
    for item in items:
        if "player" in item.keywords:
            item.add_marker(skip_player)
