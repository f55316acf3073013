"""Persisted user settings."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from breather.core.timer import CueKind

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "breather"
SETTINGS_FILE = "settings.yml"

# Durations offered by the session length picker, in minutes.
DURATION_CHOICES: tuple[int, ...] = (1, 2, 3, 5, 10, 15, 20, 25, 30, 45, 60, 90)


@dataclass
class Settings:
    start_end_bell: bool = True
    halfway_bell: bool = False
    every_minute_bell: bool = False
    default_minutes: int = 10
    sound_file: Optional[str] = None
    tick_interval: float = 0.5
    data_dir: str = str(DEFAULT_CONFIG_DIR)

    def enabled_cues(self) -> frozenset[CueKind]:
        """Translate the bell toggles into the cues a session should play."""
        cues: set[CueKind] = set()
        if self.start_end_bell:
            cues.update({CueKind.SESSION_START, CueKind.SESSION_END})
        if self.halfway_bell:
            cues.add(CueKind.HALFWAY)
        if self.every_minute_bell:
            cues.add(CueKind.EVERY_MINUTE)
        return frozenset(cues)


def default_settings_path() -> str:
    return str(DEFAULT_CONFIG_DIR / SETTINGS_FILE)


def load_settings(path: str) -> Settings:
    """Read settings from *path*; a missing file yields the defaults."""
    if not os.path.exists(path):
        return Settings()

    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"settings file {path} must contain a mapping")

    defaults = Settings()
    try:
        minutes = int(data.get("default_minutes", defaults.default_minutes))
        tick_interval = float(data.get("tick_interval", defaults.tick_interval))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid settings in {path}: {exc}") from exc
    if minutes <= 0:
        logger.warning("Ignoring non-positive default_minutes=%s in %s", minutes, path)
        minutes = defaults.default_minutes

    return Settings(
        start_end_bell=bool(data.get("start_end_bell", defaults.start_end_bell)),
        halfway_bell=bool(data.get("halfway_bell", defaults.halfway_bell)),
        every_minute_bell=bool(data.get("every_minute_bell", defaults.every_minute_bell)),
        default_minutes=minutes,
        sound_file=data.get("sound_file"),
        tick_interval=tick_interval,
        data_dir=data.get("data_dir", defaults.data_dir),
    )


def save_settings(path: str, settings: Settings) -> None:
    data = {
        "start_end_bell": settings.start_end_bell,
        "halfway_bell": settings.halfway_bell,
        "every_minute_bell": settings.every_minute_bell,
        "default_minutes": settings.default_minutes,
        "sound_file": settings.sound_file,
        "tick_interval": settings.tick_interval,
        "data_dir": settings.data_dir,
    }
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False)
