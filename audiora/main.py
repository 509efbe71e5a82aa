"""
Main entry point for audiora.

Wires the playlist, playback controller, auto-advance monitor and settings
together and runs the interactive menu.
"""

import argparse
import logging
import sys
from typing import Callable, List, Optional, TextIO

from .backend import AudioBackend, ProcessAudioBackend
from .config_manager import ConfigManager
from .database import Database
from .models import Track
from .monitor import AutoAdvanceMonitor
from .playback import PlaybackController, PlaybackResult
from .storage import PlaylistFile
from .tracks import TrackStore

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


class AudioraPlayer:
    """Owns every component for one session and their startup/teardown order."""

    def __init__(
        self,
        config_manager: ConfigManager,
        playlist_path: Optional[str] = None,
        backend: Optional[AudioBackend] = None,
        player_command: Optional[str] = None,
        listener: Optional[Callable[[PlaybackResult, Optional[Track]], None]] = None,
    ):
        """
        Initialize all components.

        Args:
            config_manager: Settings source
            playlist_path: Playlist file (overrides the playlist_file setting)
            backend: Audio backend (defaults to an external player process)
            player_command: Player command (overrides the player_command setting)
            listener: Receives playback results, see PlaybackController
        """
        logger.info("Initializing audiora...")
        self.config_manager = config_manager

        self.store = TrackStore()
        self.playlist_file = PlaylistFile(playlist_path or config_manager.get("playlist_file"))

        if backend is None:
            backend = ProcessAudioBackend(
                player_command=player_command or config_manager.get("player_command"),
                stop_timeout=config_manager.get_float("stop_timeout_seconds", 2.0),
            )
        self.backend = backend

        self.controller = PlaybackController(
            self.store,
            self.backend,
            settle_delay=config_manager.get_float(
                "settle_delay_seconds", PlaybackController.DEFAULT_SETTLE_DELAY
            ),
            listener=listener,
        )
        self.controller.state.auto_play_enabled = config_manager.get_bool("auto_play_default", True)

        self.monitor = AutoAdvanceMonitor(
            self.controller,
            interval=config_manager.get_float(
                "monitor_interval_seconds", AutoAdvanceMonitor.DEFAULT_INTERVAL
            ),
            end_buffer=config_manager.get_float(
                "end_buffer_seconds", AutoAdvanceMonitor.DEFAULT_END_BUFFER
            ),
        )
        self._started = False

    def start(self):
        """Load the playlist and start the auto-advance monitor."""
        count = self.playlist_file.load(self.store)
        logger.info("Playlist has %s tracks", count)
        self.monitor.start()
        self._started = True

    def save(self) -> bool:
        return self.playlist_file.save(self.store)

    def shutdown(self):
        """Stop the monitor (waiting for it to exit), then stop audio and clear state."""
        if not self._started:
            return
        logger.info("Stopping audiora...")
        self.monitor.stop()
        self.controller.shutdown()
        self._started = False
        logger.info("audiora stopped")

    def exit(self) -> bool:
        """Save the playlist, then tear everything down."""
        saved = self.save()
        self.shutdown()
        return saved


class MenuCLI:
    """Numbered text menu driving an AudioraPlayer."""

    MENU = (
        "\n=== AUDIORA MUSIC PLAYER ===\n"
        "1. Add Song\n"
        "2. Delete Song\n"
        "3. Display Playlist\n"
        "4. Play Song\n"
        "5. Stop Playback\n"
        "6. Toggle Auto-Play\n"
        "7. Save Playlist\n"
        "8. Exit\n"
        "9. Now Playing\n"
        "10. Recently Played\n"
        "11. Add Song to Upcoming\n"
        "12. Show Upcoming\n"
        "13. Play Next From Upcoming\n"
        "14. Skip to Next Song"
    )
    EXIT_CHOICE = 8

    def __init__(
        self,
        player_factory: Callable[[Callable], AudioraPlayer],
        input_func: Callable[[str], str] = input,
        out: TextIO = sys.stdout,
    ):
        """
        Initialize MenuCLI.

        Args:
            player_factory: Builds the player given the listener to attach
            input_func: Reads one line of user input for a prompt
            out: Where menu text is written
        """
        self.input_func = input_func
        self.out = out
        self.player = player_factory(self.on_playback_event)
        self.controller = self.player.controller

        self.actions = {
            1: self.add_song,
            2: self.delete_song,
            3: self.display_playlist,
            4: self.play_song,
            5: self.stop_playback,
            6: self.toggle_auto_play,
            7: self.save_playlist,
            9: self.now_playing,
            10: self.recently_played,
            11: self.queue_song,
            12: self.show_upcoming,
            13: self.play_from_upcoming,
            14: self.skip,
        }

    def say(self, message: str = ""):
        print(message, file=self.out, flush=True)

    def on_playback_event(self, result: PlaybackResult, track: Optional[Track]):
        """Report playback results; called from the menu and the monitor thread."""
        if result is PlaybackResult.STARTED:
            self.say(f"\n♪ Now Playing: {track.describe()}")
        elif result is PlaybackResult.UNPLAYABLE:
            self.say(f"\nNow Playing: {track.describe()}")
            self.say("ERROR: This song has no audio file!")
        elif result is PlaybackResult.BACKEND_UNAVAILABLE:
            self.say("\nError: No audio player found.")
        elif result is PlaybackResult.BACKEND_FAILED:
            self.say("\nError: Could not play audio file.")
        elif result is PlaybackResult.FINISHED:
            self.say("\n♪ Playlist finished! No more songs to play.")
        elif result is PlaybackResult.STOPPED:
            self.say("\nPlayback stopped.")
        elif result is PlaybackResult.NOT_FOUND:
            self.say("\nSong not found!")

    # =========================================================================
    # Input helpers
    # =========================================================================

    def read_text(self, prompt: str) -> str:
        return self.input_func(prompt).strip()

    def read_int(self, prompt: str) -> Optional[int]:
        raw = self.read_text(prompt)
        try:
            return int(raw)
        except ValueError:
            self.say(f"Invalid number: {raw!r}")
            return None

    # =========================================================================
    # Menu actions
    # =========================================================================

    def add_song(self):
        title = self.read_text("Title: ")
        artist = self.read_text("Artist: ")
        duration = self.read_int("Duration (sec): ")
        if duration is None:
            return
        path = self.read_text("Audio File Path: ")
        try:
            track_id = self.player.store.add(title, artist, duration, path)
        except ValueError as e:
            self.say(f"\n✗ {e}")
            return
        self.say(f"\n✓ Song added successfully! (ID: {track_id})")

    def delete_song(self):
        track_id = self.read_int("Enter Song ID: ")
        if track_id is None:
            return
        if self.controller.delete_track(track_id):
            self.say("\n✓ Song deleted.")
        else:
            self.say("\n✗ Song ID not found.")

    def display_playlist(self):
        tracks = self.player.store.get_all()
        if not tracks:
            self.say("\nPlaylist is empty.")
            return
        for track in tracks:
            marker = "Audio ✓" if track.has_audio else "No File"
            self.say(
                f"{track.id} | {track.artist} - {track.title} ({track.duration} sec) [{marker}]"
            )

    def play_song(self):
        track_id = self.read_int("Enter Song ID: ")
        if track_id is not None:
            self.controller.play(track_id)

    def stop_playback(self):
        self.controller.stop()

    def toggle_auto_play(self):
        enabled = self.controller.toggle_auto_play()
        self.say(f"\nAuto-play is now {'ENABLED' if enabled else 'DISABLED'}.")

    def save_playlist(self):
        if self.player.save():
            self.say("\nPlaylist saved.")
        else:
            self.say("\nError: Could not save playlist.")

    def now_playing(self):
        status = self.controller.get_status()
        track = status["current_track"]
        if track is None:
            self.say("\nNo song selected.")
            return
        state = "Playing" if status["is_playing"] else "Not playing"
        self.say(f"\n{state}: {track.describe()}")
        if status["elapsed_seconds"] is not None:
            self.say(f"Elapsed: {int(status['elapsed_seconds'])} / {status['expected_duration']} sec")
        self.say(f"Auto-play: {'ON' if status['auto_play_enabled'] else 'OFF'}")

    def recently_played(self):
        self._list_tracks("Recently Played", self.controller.recently_played())

    def queue_song(self):
        track_id = self.read_int("Enter Song ID: ")
        if track_id is None:
            return
        if self.controller.queue_track(track_id):
            self.say("\n✓ Added to upcoming.")
        else:
            self.say("\n✗ Song ID not found.")

    def show_upcoming(self):
        self._list_tracks("Upcoming", self.controller.upcoming_tracks())

    def play_from_upcoming(self):
        if self.controller.play_queued() is PlaybackResult.QUEUE_EMPTY:
            self.say("\nUpcoming queue is empty.")

    def skip(self):
        if self.controller.advance() is PlaybackResult.NO_CURRENT:
            self.say("\nNo song currently playing.")

    def _list_tracks(self, heading: str, tracks: List[Track]):
        self.say(f"\n{heading}:")
        if not tracks:
            self.say("  (none)")
        for position, track in enumerate(tracks, start=1):
            self.say(f"  {position}. {track.describe()}")

    # =========================================================================
    # Loop
    # =========================================================================

    def run(self) -> int:
        """Run the menu until Exit is chosen or input ends. Always saves on the way out."""
        self.player.start()
        try:
            while True:
                self.say(self.MENU)
                choice = self.read_int("Enter your choice: ")
                if choice is None:
                    continue
                if choice == self.EXIT_CHOICE:
                    break
                action = self.actions.get(choice)
                if action is None:
                    self.say("Invalid choice.")
                    continue
                action()
        except (EOFError, KeyboardInterrupt):
            self.say()
        finally:
            self.player.exit()

        self.say("\nThanks For Using Audiora")
        return 0


def configure_logging(level: str, log_file: Optional[str] = None):
    """Configure root logging once for the process."""
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, filename=log_file)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="audiora", description="audiora - playlist manager with auto-play"
    )
    parser.add_argument("--playlist", help="playlist file to load and save")
    parser.add_argument("--config-db", help="settings database (default ~/.audiora/audiora.db)")
    parser.add_argument("--player", help="audio player command, e.g. 'mpg123 -q'")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--log-file", help="write logs to this file")
    parser.add_argument(
        "--set",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="store a setting in the settings database (repeatable)",
    )
    parser.add_argument(
        "--show-config", action="store_true", help="print settings and exit"
    )
    return parser.parse_args(argv)


def apply_settings(config_manager: ConfigManager, assignments: List[str]):
    """
    Persist KEY=VALUE assignments.

    Raises:
        ValueError: If an assignment has no "="
    """
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Expected KEY=VALUE, got {assignment!r}")
        config_manager.set(key.strip(), value.strip())


def show_config(config_manager: ConfigManager, out: TextIO = sys.stdout):
    values = config_manager.get_all()
    for key, key_def in config_manager.get_config_schema().items():
        value = values.get(key)
        print(f"{key} = {'' if value is None else value}", file=out)
        print(f"    {key_def['label']}: {key_def['description']}", file=out)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    with Database(args.config_db) as database:
        return run(args, ConfigManager(database))


def run(args: argparse.Namespace, config_manager: ConfigManager) -> int:
    """Apply command-line settings, then show the config or run the menu."""
    try:
        apply_settings(config_manager, args.set)
    except ValueError as e:
        print(f"audiora: {e}", file=sys.stderr)
        return 2

    if args.show_config:
        show_config(config_manager)
        return 0

    configure_logging(
        args.log_level or config_manager.get("log_level"),
        args.log_file or config_manager.get("log_file"),
    )

    # Titles from older playlists may carry undecodable bytes
    reconfigure = getattr(sys.stdout, "reconfigure", None)
    if reconfigure is not None:
        reconfigure(errors="backslashreplace")

    def build_player(listener):
        return AudioraPlayer(
            config_manager,
            playlist_path=args.playlist,
            player_command=args.player,
            listener=listener,
        )

    return MenuCLI(build_player).run()


if __name__ == "__main__":
    sys.exit(main())
