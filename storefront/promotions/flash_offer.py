"""
Client view of the global flash offer.

The stored ``isActive`` bit is only the admin switch; time and capacity
exhaustion are never written back, so every consumer derives the effective
state itself.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from storefront.promotions.countdown import Instant, remaining, to_epoch

logger = logging.getLogger(__name__)


def parse_instant(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class FlashOfferSnapshot:
    is_active: bool
    max_claims: int
    claimed_count: int
    duration_seconds: int
    started_at: Optional[datetime]
    ends_at: Optional[datetime]
    banner_text: str = ""

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> Optional["FlashOfferSnapshot"]:
        """Build from the ``/api/flash-offer`` JSON body; ``None`` for an empty body."""
        if not payload:
            return None
        return cls(
            is_active=bool(payload.get("isActive")),
            max_claims=int(payload.get("maxClaims") or 0),
            claimed_count=int(payload.get("claimedCount") or 0),
            duration_seconds=int(payload.get("durationSeconds") or 0),
            started_at=parse_instant(payload.get("startedAt")),
            ends_at=parse_instant(payload.get("endsAt")),
            banner_text=payload.get("bannerText") or "",
        )

    @property
    def spots_remaining(self) -> int:
        return max(0, self.max_claims - self.claimed_count)


def is_effectively_active(snapshot: Optional[FlashOfferSnapshot], now: Instant) -> bool:
    if snapshot is None or not snapshot.is_active or snapshot.ends_at is None:
        return False
    if to_epoch(now) >= to_epoch(snapshot.ends_at):
        return False
    return snapshot.claimed_count < snapshot.max_claims


class FlashOfferGate:
    """
    Tracks the latest snapshot and reports the inactive -> active edge.

    Only the transition fires ``on_activated``; later samples with the offer
    still active are quiet, so the cart is cleared once per activation.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self.clock = clock
        self.snapshot: Optional[FlashOfferSnapshot] = None
        self.stale = False
        self._was_active = False
        self._listeners: List[Callable[[FlashOfferSnapshot], None]] = []
        self._lock = threading.Lock()

    def add_activation_listener(self, callback: Callable[[FlashOfferSnapshot], None]) -> None:
        self._listeners.append(callback)

    def observe(self, snapshot: Optional[FlashOfferSnapshot], now: Optional[Instant] = None) -> bool:
        """Record a poll result; returns True when it is the activating sample."""
        current = self.clock() if now is None else now
        with self._lock:
            self.snapshot = snapshot
            self.stale = False
            active = is_effectively_active(snapshot, current)
            activated = active and not self._was_active
            self._was_active = active

        if activated:
            logger.info(
                "Flash offer became active",
                extra={"max_claims": snapshot.max_claims, "claimed_count": snapshot.claimed_count},
            )
            for callback in list(self._listeners):
                callback(snapshot)
        return activated

    def mark_unavailable(self) -> None:
        """
        Record a failed poll.

        The last snapshot and the edge state are kept, so the next good sample
        of the same offer is not taken for a fresh activation. Until then the
        offer does not price.
        """
        with self._lock:
            self.stale = True

    def is_active(self, now: Optional[Instant] = None) -> bool:
        if self.stale:
            return False
        return is_effectively_active(self.snapshot, self.clock() if now is None else now)

    def time_remaining(self, now: Optional[Instant] = None) -> int:
        current = self.clock() if now is None else now
        if not self.is_active(current):
            return 0
        return remaining(self.snapshot.ends_at, current)

    @property
    def spots_remaining(self) -> int:
        return self.snapshot.spots_remaining if self.snapshot else 0


__all__ = ["FlashOfferGate", "FlashOfferSnapshot", "is_effectively_active", "parse_instant"]
