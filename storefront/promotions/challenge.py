"""
Lifecycle of a single shopper's time-boxed discount attempt.

Both the time challenge and the try-now challenge run on the same machine:

    IDLE -> RUNNING -> COMPLETED | TIMED_OUT -> IDLE (reset / dismiss)

``start`` may be called from any state and always re-initialises the run, which
is how "Try Again" works after a timeout.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from enum import Enum
from typing import Callable, Dict, List, Optional

from storefront.promotions.countdown import FAST_TICK_SECONDS, RepeatingTimer

logger = logging.getLogger(__name__)


class ChallengeKind(str, Enum):
    TIME = "time"
    TRY_NOW = "try_now"


class ChallengeStatus(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    TIMED_OUT = "TIMED_OUT"


class ChallengeType(str, Enum):
    """Try-now sub-mode: a percentage race or a free-first-N flash race."""

    TIMER = "timer"
    FLASH = "flash"


# Legacy status vocabulary per kind, still used by widgets and stored sessions
_STATUS_LABELS: Dict[ChallengeKind, Dict[ChallengeStatus, str]] = {
    ChallengeKind.TIME: {
        ChallengeStatus.IDLE: "idle",
        ChallengeStatus.RUNNING: "started",
        ChallengeStatus.COMPLETED: "completed",
        ChallengeStatus.TIMED_OUT: "expired",
    },
    ChallengeKind.TRY_NOW: {
        ChallengeStatus.IDLE: "idle",
        ChallengeStatus.RUNNING: "active",
        ChallengeStatus.COMPLETED: "completed",
        ChallengeStatus.TIMED_OUT: "failed",
    },
}

_TERMINAL = {ChallengeStatus.COMPLETED, ChallengeStatus.TIMED_OUT}


class ChallengeRun:
    """Client-local run state for one challenge kind."""

    def __init__(
        self,
        kind: ChallengeKind,
        clock: Callable[[], float] = time.time,
        on_start: Optional[Callable[["ChallengeRun"], None]] = None,
    ) -> None:
        self.kind = ChallengeKind(kind)
        self.clock = clock
        self._on_start: List[Callable[["ChallengeRun"], None]] = [on_start] if on_start else []
        self._on_timeout: List[Callable[["ChallengeRun"], None]] = []
        self._lock = threading.RLock()
        self._watch: Optional[RepeatingTimer] = None
        self._clear()

    def _clear(self) -> None:
        self.status = ChallengeStatus.IDLE
        self.challenge_type: Optional[ChallengeType] = None
        self.start_time: Optional[float] = None
        self.duration_seconds = 0
        self.discount_percent = 0
        self.time_remaining = 0

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------
    def add_start_listener(self, callback: Callable[["ChallengeRun"], None]) -> None:
        self._on_start.append(callback)

    def add_timeout_listener(self, callback: Callable[["ChallengeRun"], None]) -> None:
        self._on_timeout.append(callback)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def start(
        self,
        duration_seconds: int,
        discount_percent: int,
        challenge_type: Optional[ChallengeType | str] = None,
        now: Optional[float] = None,
    ) -> None:
        duration_seconds = int(duration_seconds)
        discount_percent = int(discount_percent)
        if duration_seconds <= 0:
            raise ValueError("Challenge duration must be positive")
        if not 0 <= discount_percent <= 100:
            raise ValueError("Challenge discount must be between 0 and 100 percent")

        resolved_type: Optional[ChallengeType] = None
        if self.kind is ChallengeKind.TRY_NOW:
            if challenge_type is None:
                raise ValueError("Try-now challenges need a challenge type")
            resolved_type = ChallengeType(challenge_type)
        elif challenge_type is not None:
            resolved_type = ChallengeType(challenge_type)

        # Side effects such as clearing the cart run before the clock starts
        for callback in list(self._on_start):
            callback(self)

        with self._lock:
            self.status = ChallengeStatus.RUNNING
            self.challenge_type = resolved_type
            self.duration_seconds = duration_seconds
            self.discount_percent = discount_percent
            self.start_time = self.clock() if now is None else float(now)
            self.time_remaining = duration_seconds

        logger.info(
            "%s challenge started",
            self.kind.value,
            extra={
                "duration_seconds": duration_seconds,
                "discount_percent": discount_percent,
                "challenge_type": resolved_type.value if resolved_type else None,
            },
        )

    def sample(self, now: Optional[float] = None) -> int:
        """Recompute the remaining time; the first zero sample times the run out."""
        timed_out = False
        with self._lock:
            if self.status is not ChallengeStatus.RUNNING or self.start_time is None:
                return self.time_remaining
            current = self.clock() if now is None else float(now)
            elapsed = math.floor(current - self.start_time)
            self.time_remaining = max(0, self.duration_seconds - elapsed)
            if self.time_remaining == 0:
                self.status = ChallengeStatus.TIMED_OUT
                timed_out = True
            value = self.time_remaining

        if timed_out:
            logger.info("%s challenge timed out", self.kind.value)
            self._stop_watch()
            for callback in list(self._on_timeout):
                callback(self)
        return value

    def complete(self) -> bool:
        """RUNNING -> COMPLETED. Anything else is ignored."""
        with self._lock:
            if self.status is not ChallengeStatus.RUNNING:
                return False
            self.status = ChallengeStatus.COMPLETED
        self._stop_watch()
        logger.info("%s challenge completed", self.kind.value)
        return True

    def fail(self) -> bool:
        with self._lock:
            if self.status is not ChallengeStatus.RUNNING:
                return False
            self.status = ChallengeStatus.TIMED_OUT
        self._stop_watch()
        return True

    def reset(self) -> None:
        self._stop_watch()
        with self._lock:
            self._clear()

    def dismiss(self) -> bool:
        """Close the result popup: terminal runs go back to IDLE."""
        with self._lock:
            if self.status not in _TERMINAL:
                return False
        self.reset()
        return True

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------
    def effective_discount_percent(self, now: Optional[float] = None) -> int:
        self.sample(now)
        with self._lock:
            return self.discount_percent if self.status is ChallengeStatus.RUNNING else 0

    def is_active(self, now: Optional[float] = None) -> bool:
        self.sample(now)
        with self._lock:
            return self.status is ChallengeStatus.RUNNING and self.time_remaining > 0

    @property
    def is_running(self) -> bool:
        return self.status is ChallengeStatus.RUNNING

    @property
    def is_terminal(self) -> bool:
        return self.status in _TERMINAL

    @property
    def status_label(self) -> str:
        return _STATUS_LABELS[self.kind][self.status]

    # ------------------------------------------------------------------
    # Periodic sampling
    # ------------------------------------------------------------------
    def watch(self, interval: float = FAST_TICK_SECONDS) -> None:
        self._stop_watch()
        self._watch = RepeatingTimer(interval, self.sample, name=f"{self.kind.value}-challenge").start()

    def unwatch(self) -> None:
        self._stop_watch()

    def _stop_watch(self) -> None:
        watch, self._watch = self._watch, None
        if watch is not None:
            watch.cancel()


def time_challenge(clock: Callable[[], float] = time.time) -> ChallengeRun:
    return ChallengeRun(ChallengeKind.TIME, clock=clock)


def try_now_challenge(
    clock: Callable[[], float] = time.time,
    on_start: Optional[Callable[[ChallengeRun], None]] = None,
) -> ChallengeRun:
    return ChallengeRun(ChallengeKind.TRY_NOW, clock=clock, on_start=on_start)


__all__ = [
    "ChallengeKind",
    "ChallengeRun",
    "ChallengeStatus",
    "ChallengeType",
    "time_challenge",
    "try_now_challenge",
]
