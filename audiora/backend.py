"""
Audio backends for audiora.

audiora never decodes audio itself. A backend hands a file path to something
that can play it and can be told to stop again.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from .platform import find_player_command, is_windows


class BackendUnavailableError(Exception):
    """Raised when no audio player is available on this host."""

    pass


class AudioBackend(ABC):
    """Abstract base class for audio output."""

    @abstractmethod
    def start(self, path: str) -> bool:
        """
        Start playing a file and return without waiting for it to finish.

        Args:
            path: Audio file path

        Returns:
            True if playback was launched, False if the player failed to start

        Raises:
            BackendUnavailableError: If there is no way to play audio here
        """
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop whatever is playing. A no-op when idle."""
        ...

    @abstractmethod
    def is_active(self) -> bool:
        """Check whether audio is currently being played."""
        ...


class ProcessAudioBackend(AudioBackend):
    """Plays files by launching an external player process per track."""

    def __init__(
        self,
        player_command: Optional[str] = None,
        stop_timeout: float = 2.0,
    ):
        """
        Initialize ProcessAudioBackend.

        Args:
            player_command: Player command line to use instead of the platform
                defaults, e.g. "mpv --no-video". The file path is appended.
            stop_timeout: Seconds to wait for the player to exit after
                terminate() before killing it
        """
        self.player_command = player_command
        self.stop_timeout = stop_timeout
        self.logger = logging.getLogger(__name__)

        self._argv: Optional[List[str]] = None
        self._proc: Optional[subprocess.Popen] = None
        self._proc_lock = threading.Lock()

    def _resolve_player(self) -> List[str]:
        if self._argv is None:
            self._argv = find_player_command(self.player_command)
        if self._argv is None:
            if self.player_command:
                raise BackendUnavailableError(
                    f"Configured audio player not found: {self.player_command}"
                )
            raise BackendUnavailableError("No audio player found on this system")
        return self._argv

    def is_available(self) -> bool:
        """Check if a player command can be found, without starting it."""
        try:
            self._resolve_player()
        except BackendUnavailableError:
            return False
        return True

    def start(self, path: str) -> bool:
        argv = self._resolve_player() + [path]

        creationflags = 0
        if is_windows():
            creationflags = getattr(subprocess, "CREATE_NO_WINDOW", 0)

        with self._proc_lock:
            self._terminate_locked()
            try:
                self._proc = subprocess.Popen(
                    argv,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    start_new_session=not is_windows(),
                    creationflags=creationflags,
                )
            except OSError as e:
                self.logger.error("Failed to launch %s: %s", argv[0], e)
                self._proc = None
                return False
            pid = self._proc.pid

        self.logger.info("Started %s (pid %s) for %s", argv[0], pid, path)
        return True

    def stop(self) -> None:
        with self._proc_lock:
            self._terminate_locked()

    def _terminate_locked(self) -> None:
        """Terminate the player process. Assumes _proc_lock is held."""
        proc = self._proc
        self._proc = None
        if proc is None or proc.poll() is not None:
            return

        self.logger.debug("Stopping player process %s", proc.pid)
        try:
            proc.terminate()
            proc.wait(timeout=self.stop_timeout)
        except subprocess.TimeoutExpired:
            self.logger.warning(
                "Player process %s did not exit within %ss, killing it",
                proc.pid,
                self.stop_timeout,
            )
            proc.kill()
            try:
                proc.wait(timeout=self.stop_timeout)
            except subprocess.TimeoutExpired:
                self.logger.error("Player process %s could not be killed", proc.pid)
        except ProcessLookupError:
            # Exited between poll() and terminate()
            pass

    def is_active(self) -> bool:
        with self._proc_lock:
            return self._proc is not None and self._proc.poll() is None
