"""
Shopper-side promotion state and checkout sequencing.

``ShopperSession`` owns the cart, both challenge runs and the flash-offer
edge detector, keeps them fresh by polling the API, and turns the combined
state into a quote. Checkout captures that quote before the network call and
only mutates local state once the server has accepted the order.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from storefront.client.api import CheckoutError, StorefrontAPIError, StorefrontClient
from storefront.client.cart import Cart
from storefront.config import Config
from storefront.observability import increment_counter
from storefront.promotions.challenge import (
    ChallengeRun,
    ChallengeStatus,
    ChallengeType,
    time_challenge,
    try_now_challenge,
)
from storefront.promotions.countdown import CountdownClock, RepeatingTimer
from storefront.promotions.discounts import DiscountResolver, PromotionState, Quote
from storefront.promotions.flash_offer import FlashOfferGate, FlashOfferSnapshot, parse_instant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CustomerDetails:
    customer_name: str
    address: str
    mobile: str
    instagram: str

    def to_payload(self) -> Dict[str, str]:
        return {
            "customerName": self.customer_name,
            "address": self.address,
            "mobile": self.mobile,
            "instagram": self.instagram,
        }


@dataclass(frozen=True)
class CheckoutResult:
    order_number: str
    quote: Quote
    order: Dict[str, Any]
    flash_claim_lost: bool = False
    completed_challenges: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def total(self) -> str:
        return self.order.get("total") or self.quote.total_display

    @property
    def is_try_now(self) -> bool:
        return self.order_number.startswith("TRY-")


class ShopperSession:
    def __init__(
        self,
        client: StorefrontClient,
        cart: Optional[Cart] = None,
        clock: Callable[[], float] = time.time,
        resolver: Optional[DiscountResolver] = None,
        config: type[Config] = Config,
    ) -> None:
        self.client = client
        self.cart = cart if cart is not None else Cart()
        self.clock = clock
        self.resolver = resolver or DiscountResolver()
        self.config = config

        self.flash_gate = FlashOfferGate(clock=clock)
        self.flash_gate.add_activation_listener(self._on_flash_offer_activated)
        self.time_challenge: ChallengeRun = time_challenge(clock=clock)
        self.try_now: ChallengeRun = try_now_challenge(
            clock=clock,
            on_start=lambda run: self._clear_cart("try-now challenge started"),
        )

        self.time_challenge_settings: Optional[Dict[str, Any]] = None
        self.promotional_settings: Optional[Dict[str, Any]] = None
        self.checkout_discount_percent = 0
        self.banner_clock = CountdownClock(None, clock=clock)
        self.banner_listeners: List[Callable[[int], None]] = []

        self._timers: List[RepeatingTimer] = []
        self._checkout_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Server state
    # ------------------------------------------------------------------
    def refresh_flash_offer(self) -> Optional[FlashOfferSnapshot]:
        try:
            snapshot = self.client.fetch_flash_offer()
        except StorefrontAPIError as e:
            logger.warning(f"Flash offer poll failed, keeping last snapshot: {e.message}")
            self.flash_gate.mark_unavailable()
            return None
        self.flash_gate.observe(snapshot)
        return snapshot

    def refresh_time_challenge(self) -> Optional[Dict[str, Any]]:
        self.time_challenge_settings = self.client.get_time_challenge()
        return self.time_challenge_settings

    def refresh_checkout_discount(self) -> int:
        self.checkout_discount_percent = self.client.get_checkout_discount()
        return self.checkout_discount_percent

    def refresh_promotional_settings(self) -> Optional[Dict[str, Any]]:
        settings = self.client.get_promotional_settings()
        self.promotional_settings = settings
        self.banner_clock.retarget(parse_instant(settings.get("timerEndTime")) if settings else None)
        return settings

    def refresh_all(self) -> None:
        self.refresh_flash_offer()
        self.refresh_time_challenge()
        self.refresh_checkout_discount()
        self.refresh_promotional_settings()

    def start_polling(self) -> None:
        """Refresh everything now, then keep each source on its own period."""
        self.stop_polling()
        self.refresh_all()
        self._timers = [
            RepeatingTimer(self.config.FLASH_OFFER_POLL_SECONDS, self.refresh_flash_offer, name="poll-flash-offer").start(),
            RepeatingTimer(
                self.config.TIME_CHALLENGE_POLL_SECONDS, self._refresh_settings, name="poll-promotion-settings"
            ).start(),
        ]
        for run in (self.time_challenge, self.try_now):
            if run.is_running:
                run.watch(self.config.CHALLENGE_TICK_SECONDS)
        self.banner_clock.start(self._on_banner_tick, self.config.BANNER_TICK_SECONDS)

    def stop_polling(self) -> None:
        timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()
        self.time_challenge.unwatch()
        self.try_now.unwatch()
        self.banner_clock.stop()

    def _refresh_settings(self) -> None:
        self.refresh_time_challenge()
        self.refresh_checkout_discount()

    # ------------------------------------------------------------------
    # Challenges
    # ------------------------------------------------------------------
    def start_time_challenge(self, now: Optional[float] = None) -> bool:
        """
        Start (or retry) the time challenge with the configured terms.

        Only possible while the store has the challenge switched on. Starting
        from idle empties the cart; a retry after a timeout keeps it.
        """
        settings = self.time_challenge_settings
        if settings is None:
            settings = self.refresh_time_challenge()
        if not settings or not settings.get("isActive"):
            logger.info("Time challenge is not available")
            return False
        if self.time_challenge.is_running:
            return False

        if self.time_challenge.status is ChallengeStatus.IDLE:
            self._clear_cart("time challenge started")

        discount_percent = settings.get("discountPercent")
        self.time_challenge.start(
            duration_seconds=settings.get("durationSeconds") or self.config.TIME_CHALLENGE_DEFAULT_DURATION_SECONDS,
            discount_percent=(
                self.config.TIME_CHALLENGE_DEFAULT_DISCOUNT_PERCENT if discount_percent is None else discount_percent
            ),
            now=now,
        )
        self.time_challenge.watch(self.config.CHALLENGE_TICK_SECONDS)
        return True

    def start_try_now_challenge(
        self,
        challenge_type: ChallengeType | str,
        duration_seconds: int,
        discount_percent: int = 0,
        now: Optional[float] = None,
    ) -> ChallengeRun:
        self.try_now.start(
            duration_seconds=duration_seconds,
            discount_percent=discount_percent,
            challenge_type=challenge_type,
            now=now,
        )
        self.try_now.watch(self.config.CHALLENGE_TICK_SECONDS)
        return self.try_now

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------
    def promotion_state(self, now: Optional[float] = None) -> PromotionState:
        current = self.clock() if now is None else now
        try_now_active = self.try_now.is_active(current)
        return PromotionState(
            flash_offer_active=self.flash_gate.is_active(current),
            time_challenge_percent=self.time_challenge.effective_discount_percent(current),
            try_now_active=try_now_active,
            try_now_type=self.try_now.challenge_type if try_now_active else None,
            try_now_percent=self.try_now.effective_discount_percent(current),
            checkout_discount_percent=self.checkout_discount_percent,
        )

    def quote(self, now: Optional[float] = None) -> Quote:
        return self.resolver.resolve(self.cart.subtotal, self.promotion_state(now))

    def banner_time_remaining(self, now: Optional[float] = None) -> int:
        return self.banner_clock.remaining(now)

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------
    def checkout(self, customer: CustomerDetails, now: Optional[float] = None) -> CheckoutResult:
        if not self._checkout_lock.acquire(blocking=False):
            raise CheckoutError("A checkout is already in progress")
        try:
            return self._checkout(customer, now)
        finally:
            self._checkout_lock.release()

    def _checkout(self, customer: CustomerDetails, now: Optional[float]) -> CheckoutResult:
        if self.cart.is_empty:
            raise CheckoutError("Your cart is empty", retryable=False)

        # Discount eligibility is fixed here, before the order leaves the process
        state = self.promotion_state(now)
        quote = self.resolver.resolve(self.cart.subtotal, state)
        time_challenge_running = self.time_challenge.is_running
        try_now_running = state.try_now_active

        payload = {
            **customer.to_payload(),
            "items": self.cart.snapshot(),
            "total": quote.total_display,
            "isFlashOffer": quote.is_flash_offer,
            "flashOfferDiscount": quote.flash_offer_discount,
            "isTryNowChallenge": try_now_running,
        }
        order = self.client.submit_order(payload)
        order_number = str(order["orderNumber"])

        # Try-now orders are never stored and never claim a slot
        flash_claim_lost = False
        if quote.is_flash_offer and not order_number.startswith("TRY-"):
            claimed, snapshot = self.client.claim_flash_offer()
            if snapshot is not None:
                self.flash_gate.observe(snapshot)
            if not claimed:
                flash_claim_lost = True
                increment_counter("flash_offer_claims_lost_total")
                logger.warning(f"Order {order_number} kept flash offer pricing but its claim was rejected")

        completed: List[str] = []
        if time_challenge_running and self.time_challenge.complete():
            completed.append(self.time_challenge.kind.value)
        if try_now_running and self.try_now.complete():
            completed.append(self.try_now.kind.value)

        self.cart.clear()
        logger.info(f"Checkout finished with order {order_number} ({quote.total_display})")
        return CheckoutResult(
            order_number=order_number,
            quote=quote,
            order=order,
            flash_claim_lost=flash_claim_lost,
            completed_challenges=tuple(completed),
        )

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------
    def _on_banner_tick(self, seconds_left: int) -> None:
        for listener in list(self.banner_listeners):
            listener(seconds_left)

    def _on_flash_offer_activated(self, snapshot: FlashOfferSnapshot) -> None:
        self._clear_cart("flash offer activated")

    def _clear_cart(self, reason: str) -> None:
        if self.cart.is_empty:
            return
        logger.info(f"Clearing cart: {reason}")
        self.cart.clear()
