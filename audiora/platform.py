"""
Platform-specific code for macOS, Linux and Windows.

This module isolates platform-specific functionality to keep the rest of the
codebase platform-agnostic: which external command plays an audio file on
the current OS, and whether it is installed.
"""

import logging
import shlex
import shutil
import sys
from typing import List, Optional

logger = logging.getLogger(__name__)

# Player commands per platform, in order of preference. The file path is
# appended as the last argument.
MACOS_PLAYERS = [
    ["afplay"],
]

LINUX_PLAYERS = [
    ["mpg123", "-q"],
    ["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet"],
    ["gst-play-1.0", "-q"],
    ["aplay", "-q"],
]

WINDOWS_PLAYERS = [
    ["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet"],
]


def is_macos() -> bool:
    """Check if running on macOS."""
    return sys.platform == "darwin"


def is_windows() -> bool:
    """Check if running on Windows."""
    return sys.platform == "win32"


def is_linux() -> bool:
    """Check if running on Linux."""
    return sys.platform.startswith("linux")


def player_candidates() -> List[List[str]]:
    """
    Get the player commands to try on this platform.

    Returns:
        List of argv prefixes, most preferred first. Empty on platforms
        without known players.
    """
    if is_macos():
        return [list(c) for c in MACOS_PLAYERS]
    if is_windows():
        return [list(c) for c in WINDOWS_PLAYERS]
    if is_linux():
        return [list(c) for c in LINUX_PLAYERS]
    logger.warning("No known audio players for platform %s", sys.platform)
    return []


def parse_player_command(command: str) -> List[str]:
    """Split a configured player command line into argv."""
    return shlex.split(command, posix=not is_windows())


def find_player_command(configured: Optional[str] = None) -> Optional[List[str]]:
    """
    Find an installed player command.

    Args:
        configured: Command line from configuration. When set it is the only
            candidate considered.

    Returns:
        argv prefix for the first installed player, or None if none is found
    """
    if configured:
        candidates = [parse_player_command(configured)]
    else:
        candidates = player_candidates()

    for candidate in candidates:
        if not candidate:
            continue
        executable = shutil.which(candidate[0])
        if executable:
            logger.debug("Using audio player %s", executable)
            return [executable] + candidate[1:]
        logger.debug("Audio player %s not found on PATH", candidate[0])

    return None
