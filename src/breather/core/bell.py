"""Bell notifiers: play the cue sound for a session milestone."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Protocol, Sequence

import click

from breather.core.timer import CueKind

logger = logging.getLogger(__name__)

_PLAYERS: tuple[str, ...] = ("afplay", "paplay", "aplay")


class BellNotifier(Protocol):
    """Anything that can sound a cue.  Must not raise."""

    def play_cue(self, kind: CueKind) -> None: ...


class NullBell:
    """A bell that makes no sound."""

    def play_cue(self, kind: CueKind) -> None:
        logger.debug("Silent cue: %s", kind.value)


class TerminalBell:
    """Ring the terminal bell."""

    def play_cue(self, kind: CueKind) -> None:
        try:
            click.echo("\a", nl=False, err=True)
        except OSError:
            logger.warning("Could not ring terminal bell for %s", kind.value)


class SoundFileBell:
    """Play a sound file through the first available command-line player.

    Playback runs in a background process so the caller never waits for the
    sound to finish.  When the file or a player is missing, or the player
    cannot be launched, the terminal bell is used instead.
    """

    def __init__(
        self,
        sound_file: str | Path,
        players: Sequence[str] = _PLAYERS,
        fallback: BellNotifier | None = None,
    ) -> None:
        self.sound_file = Path(sound_file).expanduser()
        self._players = tuple(players)
        self._fallback: BellNotifier = fallback if fallback is not None else TerminalBell()
        self._process: subprocess.Popen[bytes] | None = None

    def find_player(self) -> str | None:
        for name in self._players:
            path = shutil.which(name)
            if path:
                return path
        return None

    def play_cue(self, kind: CueKind) -> None:
        if not self.sound_file.exists():
            logger.warning("Bell sound not found: %s", self.sound_file)
            self._fallback.play_cue(kind)
            return

        player = self.find_player()
        if player is None:
            logger.warning("No audio player available, using fallback bell")
            self._fallback.play_cue(kind)
            return

        # A new cue cuts off the previous one, like restarting a single player.
        if self._process is not None and self._process.poll() is None:
            self._process.terminate()

        try:
            self._process = subprocess.Popen(
                [player, str(self.sound_file)],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            logger.debug("Playing %s for %s", self.sound_file.name, kind.value)
        except OSError as exc:
            logger.error("Failed to play bell with %s: %s", player, exc)
            self._fallback.play_cue(kind)


def make_bell(sound_file: str | None, silent: bool = False) -> BellNotifier:
    """Build the bell that matches the user's settings."""
    if silent:
        return NullBell()
    if sound_file:
        return SoundFileBell(sound_file)
    return TerminalBell()
