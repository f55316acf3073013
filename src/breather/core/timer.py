"""Session timer core: a pure state machine for meditation sessions.

The engine owns session progress and decides when bell cues are due.  It
performs no I/O: every operation returns an :class:`Update` carrying the new
snapshot, the cues that fired and, on completion, the session record.  Playing
sounds and persisting records is left to the caller.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, cast

from breather.core.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


class SessionStatus(Enum):
    """Possible states of a session."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"


class CueKind(Enum):
    """Bell cues a session can be configured to play."""

    SESSION_START = "session_start"
    SESSION_END = "session_end"
    HALFWAY = "halfway"
    EVERY_MINUTE = "every_minute"


class InvalidConfigurationError(ValueError):
    """Raised when a session is configured with an unusable duration."""


_MINUTE = 60
_DEFAULT_DURATION = 10 * _MINUTE


@dataclass(frozen=True)
class SessionConfig:
    """Immutable per-session configuration."""

    total_duration: int
    enabled_cues: frozenset[CueKind] = frozenset()

    def __post_init__(self) -> None:
        _validate_duration(self.total_duration)

    def is_enabled(self, cue: CueKind) -> bool:
        return cue in self.enabled_cues


@dataclass(frozen=True)
class CompletedSession:
    """A finished session: when it started and how long was meditated."""

    start_time: float
    duration: float

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the engine, emitted after every transition."""

    status: SessionStatus
    total_duration: int
    remaining_seconds: float
    elapsed_seconds: float
    started_at: Optional[float] = None
    paused_at: Optional[float] = None
    enabled_cues: frozenset[CueKind] = frozenset()


@dataclass(frozen=True)
class Update:
    """Outcome of one engine operation."""

    snapshot: SessionSnapshot
    cues: tuple[CueKind, ...] = ()
    record: Optional[CompletedSession] = None

    @property
    def status(self) -> SessionStatus:
        return self.snapshot.status

    @property
    def remaining_seconds(self) -> float:
        return self.snapshot.remaining_seconds


def _validate_duration(seconds: object) -> None:
    if isinstance(seconds, bool) or not isinstance(seconds, int):
        raise InvalidConfigurationError(
            f"duration must be an integer number of seconds, got {type(seconds).__name__}"
        )
    if seconds <= 0:
        raise InvalidConfigurationError(f"duration must be positive, got {seconds}")


class SessionTimer:
    """State machine for a single meditation session.

    Remaining time is always derived from wall-clock deltas::

        elapsed = (now - started_at) - accumulated_pause_offset
        remaining = max(0, total_duration - elapsed)

    so a poller that was suspended for a while only has to call
    :meth:`recompute` once to catch up.  Invalid transitions are silent
    no-ops; only bad durations raise :class:`InvalidConfigurationError`.
    """

    def __init__(self, clock: Clock | None = None, selected_duration: int = _DEFAULT_DURATION) -> None:
        _validate_duration(selected_duration)
        self._clock: Clock = clock if clock is not None else SystemClock()
        self._selected_duration: int = selected_duration
        self._status: SessionStatus = SessionStatus.IDLE
        self._config: SessionConfig | None = None
        self._started_at: float | None = None
        self._paused_at: float | None = None
        self._accumulated_pause_offset: float = 0.0
        self._fired_cues: set[CueKind] = set()
        self._last_minute_mark_fired: int | None = None
        self._remaining_at_finish: float = 0.0

    # -- properties ------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def selected_duration(self) -> int:
        return self._selected_duration

    @property
    def accumulated_pause_offset(self) -> float:
        return self._accumulated_pause_offset

    # -- commands --------------------------------------------------------------

    def select_duration(self, seconds: int) -> bool:
        """Choose the duration for the next session.

        Only allowed while IDLE; a session keeps its duration until it has
        been reset.  Returns ``False`` when the change is rejected.
        """
        _validate_duration(seconds)
        if self._status != SessionStatus.IDLE:
            logger.debug("Ignoring duration change while %s", self._status.value)
            return False
        self._selected_duration = seconds
        return True

    def start(
        self, total_duration: int | None = None, enabled_cues: Iterable[CueKind] = ()
    ) -> Update:
        """Start a session of *total_duration* seconds (Idle only)."""
        if self._status != SessionStatus.IDLE:
            logger.debug("start() ignored from %s state", self._status.value)
            return self._update()
        duration = self._selected_duration if total_duration is None else total_duration
        config = SessionConfig(duration, frozenset(enabled_cues))

        self._config = config
        self._selected_duration = duration
        self._started_at = self._clock.now()
        self._paused_at = None
        self._accumulated_pause_offset = 0.0
        self._fired_cues = set()
        self._last_minute_mark_fired = None
        self._remaining_at_finish = 0.0
        self._status = SessionStatus.RUNNING
        logger.info("Session started: %ss", duration)

        cues: list[CueKind] = []
        if config.is_enabled(CueKind.SESSION_START):
            self._fired_cues.add(CueKind.SESSION_START)
            cues.append(CueKind.SESSION_START)
        return self._update(cues)

    def pause(self) -> Update:
        """Pause a running session."""
        if self._status != SessionStatus.RUNNING:
            return self._update()
        self._paused_at = self._clock.now()
        self._status = SessionStatus.PAUSED
        logger.info("Session paused")
        return self._update()

    def resume(self) -> Update:
        """Resume a paused session, excluding the pause from elapsed time."""
        if self._status != SessionStatus.PAUSED or self._paused_at is None:
            return self._update()
        pause_length = max(0.0, self._clock.now() - self._paused_at)
        self._accumulated_pause_offset += pause_length
        self._paused_at = None
        self._status = SessionStatus.RUNNING
        logger.info("Session resumed after %.1fs pause", pause_length)
        return self._update()

    def recompute(self, now: float | None = None) -> Update:
        """Re-derive remaining time and fire any cues that are due.

        Idempotent for a given *now*: calling it again cannot fire a cue a
        second time, and minute marks only ever move forward.
        """
        if self._status != SessionStatus.RUNNING or self._config is None:
            return self._update()
        if now is None:
            now = self._clock.now()

        config = self._config
        elapsed = self._elapsed_at(now)
        remaining = max(0.0, config.total_duration - elapsed)
        cues: list[CueKind] = []

        if (
            config.is_enabled(CueKind.HALFWAY)
            and CueKind.HALFWAY not in self._fired_cues
            and elapsed >= config.total_duration / 2
            and remaining > 0
        ):
            self._fired_cues.add(CueKind.HALFWAY)
            cues.append(CueKind.HALFWAY)

        if config.is_enabled(CueKind.EVERY_MINUTE):
            mark = math.floor(elapsed)
            if mark > (self._last_minute_mark_fired or 0) and mark % _MINUTE == 0:
                self._last_minute_mark_fired = mark
                cues.append(CueKind.EVERY_MINUTE)

        if remaining <= 0:
            return self._complete(cues, remaining=0.0, ring_end=True)

        return self._update(cues, now=now)

    def on_became_active(self, now: float | None = None) -> Update:
        """Catch up after the host was suspended or backgrounded."""
        return self.recompute(now)

    def finish(self) -> Update:
        """End the session early (or on time) at the user's request.

        The end bell belongs to natural completion and is never rung here,
        even when the full duration has already passed.
        """
        if self._status not in (SessionStatus.RUNNING, SessionStatus.PAUSED) or self._config is None:
            return self._update()
        reference = self._paused_at if self._paused_at is not None else self._clock.now()
        remaining = max(0.0, self._config.total_duration - self._elapsed_at(reference))
        return self._complete([], remaining=remaining, ring_end=False)

    def reset(self) -> Update:
        """Re-arm a finished session so a new one can be started."""
        if self._status != SessionStatus.FINISHED:
            return self._update()
        self._status = SessionStatus.IDLE
        self._config = None
        self._started_at = None
        self._paused_at = None
        self._accumulated_pause_offset = 0.0
        self._fired_cues = set()
        self._last_minute_mark_fired = None
        self._remaining_at_finish = 0.0
        return self._update()

    def snapshot(self, now: float | None = None) -> SessionSnapshot:
        """Return the state as of *now* (the clock by default) without mutating anything."""
        return self._snapshot_at(now)

    # -- private helpers -------------------------------------------------------

    def _elapsed_at(self, now: float) -> float:
        if self._started_at is None:
            return 0.0
        return max(0.0, (now - self._started_at) - self._accumulated_pause_offset)

    def _complete(self, cues: list[CueKind], remaining: float, ring_end: bool) -> Update:
        """Enter FINISHED and build the record for the time meditated."""
        config = cast(SessionConfig, self._config)
        if ring_end and config.is_enabled(CueKind.SESSION_END):
            self._fired_cues.add(CueKind.SESSION_END)
            cues.append(CueKind.SESSION_END)

        self._status = SessionStatus.FINISHED
        self._paused_at = None
        self._remaining_at_finish = remaining

        meditated = config.total_duration - remaining
        record = None
        if meditated > 0 and self._started_at is not None:
            record = CompletedSession(start_time=self._started_at, duration=meditated)
        logger.info("Session finished: %.1fs meditated", meditated)
        return self._update(cues, record=record)

    def _update(
        self,
        cues: list[CueKind] | None = None,
        record: CompletedSession | None = None,
        now: float | None = None,
    ) -> Update:
        return Update(snapshot=self._snapshot_at(now), cues=tuple(cues or ()), record=record)

    def _snapshot_at(self, now: float | None) -> SessionSnapshot:
        config = self._config
        if self._status == SessionStatus.IDLE or config is None:
            return SessionSnapshot(
                status=self._status,
                total_duration=self._selected_duration,
                remaining_seconds=float(self._selected_duration),
                elapsed_seconds=0.0,
            )

        total = config.total_duration
        if self._status == SessionStatus.FINISHED:
            remaining = self._remaining_at_finish
            elapsed = total - remaining
        else:
            if self._status == SessionStatus.PAUSED and self._paused_at is not None:
                reference = self._paused_at
            else:
                reference = now if now is not None else self._clock.now()
            elapsed = self._elapsed_at(reference)
            remaining = max(0.0, total - elapsed)

        return SessionSnapshot(
            status=self._status,
            total_duration=total,
            remaining_seconds=remaining,
            elapsed_seconds=elapsed,
            started_at=self._started_at,
            paused_at=self._paused_at,
            enabled_cues=config.enabled_cues,
        )
