"""Periodic ticker that drives session recomputation."""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class Ticker:
    """Call *callback* every *interval* seconds on a daemon thread.

    A ticker is a scheduling handle: acquire it with :meth:`start` (or a
    ``with`` block) and it is guaranteed to be released by :meth:`stop`.
    Stopping is idempotent and may be done from inside the callback.
    """

    def __init__(self, interval: float, callback: Callable[[], object], name: str = "breather-ticker") -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._interval = interval
        self._callback = callback
        self._name = name
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> "Ticker":
        if self._thread is not None:
            return self
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        logger.debug("Ticker started (%.2fs)", self._interval)
        return self

    def stop(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._interval * 2 + 1)
        logger.debug("Ticker stopped")

    def __enter__(self) -> "Ticker":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self._callback()
            except Exception:
                logger.exception("Ticker callback failed")
