"""Meditation session host: wires the timer engine to its collaborators.

The engine itself is pure; this module is the single writer that serializes
every engine call, owns the periodic ticker while a session is active, and
turns engine updates into side effects (bells, history records, snapshot
listeners).
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable

from breather.core.bell import BellNotifier, NullBell
from breather.core.clock import Clock, SystemClock
from breather.core.history import HistoryRecorder
from breather.core.ticker import Ticker
from breather.core.timer import (
    CueKind,
    SessionSnapshot,
    SessionStatus,
    SessionTimer,
    Update,
)

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[SessionSnapshot], None]
TickerFactory = Callable[[float, Callable[[], object]], Ticker]

_DEFAULT_TICK_INTERVAL = 0.5
_ACTIVE_STATES = frozenset({SessionStatus.RUNNING, SessionStatus.PAUSED})


class _NullHistory:
    def record(self, start_time: float, duration_seconds: float) -> None:
        logger.debug("History disabled, dropping %.1fs session", duration_seconds)


class MeditationSession:
    """Run meditation sessions against a clock, a bell and a history store.

    All engine mutations happen under one re-entrant lock, so user commands,
    ticker callbacks and "became active" signals can arrive from any thread.
    Collaborator failures are logged and never undo a transition.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        bell: BellNotifier | None = None,
        history: HistoryRecorder | None = None,
        tick_interval: float = _DEFAULT_TICK_INTERVAL,
        ticker_factory: TickerFactory | None = None,
        selected_duration: int = 600,
    ) -> None:
        self._clock: Clock = clock if clock is not None else SystemClock()
        self._bell: BellNotifier = bell if bell is not None else NullBell()
        self._history: HistoryRecorder = history if history is not None else _NullHistory()
        self._tick_interval = tick_interval
        self._ticker_factory: TickerFactory = ticker_factory if ticker_factory is not None else Ticker
        self._timer = SessionTimer(self._clock, selected_duration)
        self._lock = threading.RLock()
        self._ticker: Ticker | None = None
        self._listeners: list[SnapshotListener] = []
        self._last_recompute_at: float | None = None
        self._last_session_duration: float = 0.0
        self._total_meditated: float = 0.0

    # -- observation -----------------------------------------------------------

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call *listener* with a snapshot after every transition.

        Returns a function that removes the listener again.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    @property
    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._timer.snapshot()

    @property
    def status(self) -> SessionStatus:
        return self.snapshot.status

    @property
    def ticking(self) -> bool:
        return self._ticker is not None

    @property
    def last_session_duration(self) -> float:
        """Seconds meditated in the most recently finished session."""
        return self._last_session_duration

    @property
    def total_meditated(self) -> float:
        """Seconds meditated across all sessions run by this object."""
        return self._total_meditated

    # -- commands --------------------------------------------------------------

    def select_duration(self, seconds: int) -> bool:
        with self._lock:
            accepted = self._timer.select_duration(seconds)
        if accepted:
            self._notify_listeners(self.snapshot)
        return accepted

    def start(self, total_duration: int | None = None, enabled_cues: Iterable[CueKind] = ()) -> SessionSnapshot:
        cues = frozenset(enabled_cues)
        return self._apply(lambda: self._timer.start(total_duration, cues), forget_recompute=True)

    def pause(self) -> SessionSnapshot:
        return self._apply(self._timer.pause, forget_recompute=True)

    def resume(self) -> SessionSnapshot:
        return self._apply(self._timer.resume, forget_recompute=True)

    def finish(self) -> SessionSnapshot:
        return self._apply(self._timer.finish)

    def reset(self) -> SessionSnapshot:
        return self._apply(self._timer.reset)

    def recompute(self, now: float | None = None) -> SessionSnapshot:
        """Bring the session up to date with *now* (the clock by default).

        Requests that arrive for an instant no later than the last applied
        recompute are coalesced: the snapshot for that instant is returned without a
        second pass.  Sessions that are not running are left alone and no
        listener is notified.
        """
        when = now if now is not None else self._clock.now()

        def action() -> Update | None:
            # Paused or finished sessions have nothing to recompute or announce.
            if self._timer.status != SessionStatus.RUNNING:
                return None
            if self._last_recompute_at is not None and when <= self._last_recompute_at:
                return None
            update = self._timer.recompute(when)
            if update.status == SessionStatus.RUNNING:
                self._last_recompute_at = when
            return update

        return self._apply(action)

    def on_became_active(self, now: float | None = None) -> SessionSnapshot:
        """Resync immediately after the host returns from suspension."""
        logger.debug("Became active, resyncing session")
        return self.recompute(now)

    def close(self) -> None:
        """Release the ticker, whatever state the session is in."""
        with self._lock:
            ticker, self._ticker = self._ticker, None
        if ticker is not None:
            ticker.stop()

    def __enter__(self) -> "MeditationSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- private helpers -------------------------------------------------------

    def _tick(self) -> None:
        self.recompute()

    def _apply(self, action: Callable[[], Update | None], forget_recompute: bool = False) -> SessionSnapshot:
        """Run *action* under the lock, then perform its side effects."""
        released: Ticker | None = None
        with self._lock:
            update = action()
            if update is None:
                # Nothing applied: report the instant already applied.
                return self._timer.snapshot(self._last_recompute_at)
            if forget_recompute:
                self._last_recompute_at = None
            if update.status in _ACTIVE_STATES:
                if self._ticker is None:
                    self._ticker = self._ticker_factory(self._tick_interval, self._tick)
                    self._ticker.start()
            elif self._ticker is not None:
                released, self._ticker = self._ticker, None
            if update.record is not None:
                self._last_session_duration = update.record.duration
                self._total_meditated += update.record.duration

        # Stopping joins the ticker thread, which may be waiting on the lock.
        if released is not None:
            released.stop()
        self._dispatch(update)
        return update.snapshot

    def _dispatch(self, update: Update) -> None:
        for cue in update.cues:
            try:
                self._bell.play_cue(cue)
            except Exception:
                logger.exception("Bell failed for %s cue", cue.value)

        record = update.record
        if record is not None:
            try:
                self._history.record(record.start_time, record.duration)
            except Exception:
                logger.exception("Could not record finished session")

        self._notify_listeners(update.snapshot)

    def _notify_listeners(self, snapshot: SessionSnapshot) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener failed")
