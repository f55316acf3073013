"""Session history: completed sessions persisted to a JSON file."""

from __future__ import annotations

import fcntl
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Protocol

from breather.core.timer import CompletedSession

logger = logging.getLogger(__name__)

_DEFAULT_DATA_DIR = Path.home() / ".config" / "breather"
_HISTORY_FILE = "history.json"


class HistoryRecorder(Protocol):
    """Anything that can store a finished session.  Must not raise."""

    def record(self, start_time: float, duration_seconds: float) -> None: ...


class JsonHistory:
    """Append-only session log stored at ``<data_dir>/history.json``.

    The file holds a JSON list of ``{"start_time", "duration"}`` objects.
    Writes take an exclusive ``fcntl`` lock so two processes finishing at
    the same moment cannot clobber each other.
    """

    def __init__(self, data_dir: Path | None = None) -> None:
        self._data_dir: Path = data_dir if data_dir is not None else _DEFAULT_DATA_DIR

    @property
    def path(self) -> Path:
        return self._data_dir / _HISTORY_FILE

    # -- recorder interface ----------------------------------------------------

    def record(self, start_time: float, duration_seconds: float) -> None:
        """Append a session.  Failures are logged, never raised."""
        entry = {"start_time": start_time, "duration": duration_seconds}
        try:
            self._append(entry)
        except (OSError, ValueError) as exc:
            logger.error("Could not save session to %s: %s", self.path, exc)
            return
        logger.info("Session saved: %d minutes", int(duration_seconds // 60))

    # -- queries ---------------------------------------------------------------

    def sessions(self) -> list[CompletedSession]:
        """Return every recorded session, oldest first."""
        return [
            CompletedSession(start_time=float(item["start_time"]), duration=float(item["duration"]))
            for item in self._load()
        ]

    def sessions_on(self, day: date) -> list[CompletedSession]:
        return [s for s in self.sessions() if datetime.fromtimestamp(s.start_time).date() == day]

    def total_for_day(self, day: date | None = None) -> float:
        """Seconds meditated on *day* (today by default)."""
        day = day if day is not None else date.today()
        return sum(s.duration for s in self.sessions_on(day))

    def total(self) -> float:
        return sum(s.duration for s in self.sessions())

    # -- persistence -----------------------------------------------------------

    def _load(self) -> list[dict]:
        if not self.path.exists():
            return []
        try:
            with open(self.path) as f:
                fcntl.flock(f, fcntl.LOCK_SH)
                text = f.read()
        except OSError as exc:
            logger.error("Could not read %s: %s", self.path, exc)
            return []
        return _parse(text, self.path)

    def _append(self, entry: dict) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a+") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            f.seek(0)
            entries = _parse(f.read(), self.path)
            entries.append(entry)
            f.seek(0)
            f.truncate()
            json.dump(entries, f, indent=2)


def _parse(text: str, path: Path) -> list[dict]:
    if not text.strip():
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Ignoring corrupt history file %s", path)
        return []
    if not isinstance(data, list):
        logger.warning("Ignoring unexpected history format in %s", path)
        return []
    return [item for item in data if isinstance(item, dict) and "start_time" in item and "duration" in item]
