"""
Countdown primitives shared by the banner, the flash offer and both challenges.

Remaining time is always recomputed from a fixed end instant on a fixed-period
timer, so a late or skipped tick never drifts the displayed value.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from storefront.config import Config

logger = logging.getLogger(__name__)

Instant = Union[datetime, float, int]

FAST_TICK_SECONDS: float = Config.CHALLENGE_TICK_SECONDS
SLOW_TICK_SECONDS: float = Config.BANNER_TICK_SECONDS


def to_epoch(value: Instant) -> float:
    """Epoch seconds for a datetime (naive values are taken as UTC) or a number."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    return float(value)


def remaining(target_end: Optional[Instant], now: Instant) -> int:
    """Whole seconds left until ``target_end``; 0 once it has passed or when unset."""
    if target_end is None:
        return 0
    delta = to_epoch(target_end) - to_epoch(now)
    return max(0, math.floor(delta))


def format_clock(seconds: int) -> str:
    """Format as ``m:ss`` for the challenge widgets."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


def format_banner(seconds: int) -> str:
    """Format as ``HH:MM:SS``; hours wrap at 24 like the storefront banner."""
    seconds = max(0, int(seconds))
    hours = (seconds // 3600) % 24
    minutes = (seconds // 60) % 60
    secs = seconds % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class RepeatingTimer:
    """Calls ``callback`` every ``interval`` seconds on a daemon thread until cancelled."""

    def __init__(self, interval: float, callback: Callable[[], None], name: Optional[str] = None) -> None:
        if interval <= 0:
            raise ValueError("Timer interval must be positive")
        self.interval = interval
        self.callback = callback
        self.name = name or f"repeating-timer-{id(self):x}"
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stopped.is_set()

    def start(self) -> "RepeatingTimer":
        with self._lock:
            if self.is_running:
                return self
            self._stopped.clear()
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
        return self

    def cancel(self) -> None:
        with self._lock:
            self._stopped.set()
            thread = self._thread
            self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=max(self.interval * 2, 0.5))

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.callback()
            except Exception:
                logger.exception("Timer callback %s failed", self.name)


class CountdownClock:
    """Remaining-seconds signal for a fixed end instant."""

    def __init__(
        self,
        target_end: Optional[Instant],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.target_end = target_end
        self.clock = clock
        self._timer: Optional[RepeatingTimer] = None
        self._last_value: Optional[int] = None

    def remaining(self, now: Optional[Instant] = None) -> int:
        return remaining(self.target_end, self.clock() if now is None else now)

    def expired(self, now: Optional[Instant] = None) -> bool:
        return self.remaining(now) == 0

    @property
    def last_value(self) -> Optional[int]:
        return self._last_value

    def retarget(self, target_end: Optional[Instant]) -> None:
        self.target_end = target_end
        self._last_value = None

    def tick(self) -> int:
        value = self.remaining()
        self._last_value = value
        return value

    def start(self, on_tick: Callable[[int], None], interval: float = SLOW_TICK_SECONDS) -> None:
        """Publish the remaining value to ``on_tick`` every ``interval`` seconds."""
        self.stop()
        on_tick(self.tick())
        self._timer = RepeatingTimer(interval, lambda: on_tick(self.tick()), name="countdown").start()

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


__all__ = [
    "FAST_TICK_SECONDS",
    "SLOW_TICK_SECONDS",
    "CountdownClock",
    "RepeatingTimer",
    "format_banner",
    "format_clock",
    "remaining",
    "to_epoch",
]
