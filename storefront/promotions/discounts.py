"""
Checkout discount resolution.

Tiers, highest first; only one of the first two can apply and either of them
suppresses everything below:

1. flash offer (first ``flash_offer_limit`` units free)
2. try-now challenge in flash mode (same mechanic)
3. time challenge and/or try-now timer challenge (percent of subtotal, additive)
4. global checkout discount (percent of subtotal, additive with tier 3)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from storefront.config import Config
from storefront.promotions.challenge import ChallengeType
from storefront.promotions.pricing import format_amount, percent_of


class PricingTier(str, Enum):
    FLASH_OFFER = "flash_offer"
    TRY_NOW_FLASH = "try_now_flash"
    CHALLENGE = "challenge"
    CHECKOUT_DISCOUNT = "checkout_discount"
    FULL_PRICE = "full_price"


class DiscountSource(str, Enum):
    FLASH_OFFER = "flash_offer"
    TRY_NOW_FLASH = "try_now_flash"
    TIME_CHALLENGE = "time_challenge"
    TRY_NOW_TIMER = "try_now_timer"
    CHECKOUT_DISCOUNT = "checkout_discount"


@dataclass(frozen=True)
class PromotionState:
    """Point-in-time view of every promotion source; the default is "nothing running"."""

    flash_offer_active: bool = False
    time_challenge_percent: int = 0
    try_now_active: bool = False
    try_now_type: Optional[ChallengeType] = None
    try_now_percent: int = 0
    checkout_discount_percent: int = 0

    @property
    def try_now_flash(self) -> bool:
        return self.try_now_active and self.try_now_type is ChallengeType.FLASH

    @property
    def try_now_timer(self) -> bool:
        return self.try_now_active and self.try_now_type is ChallengeType.TIMER


@dataclass(frozen=True)
class DiscountLine:
    label: str
    amount: int
    source: DiscountSource
    percent: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "amount": self.amount,
            "display": f"-{format_amount(self.amount)}",
            "source": self.source.value,
            "percent": self.percent,
        }


@dataclass(frozen=True)
class Quote:
    subtotal: int
    shipping: int
    total: int
    tier: PricingTier
    discount_lines: List[DiscountLine] = field(default_factory=list)

    @property
    def discount_total(self) -> int:
        return sum(line.amount for line in self.discount_lines)

    @property
    def is_flash_offer(self) -> bool:
        return self.tier is PricingTier.FLASH_OFFER

    @property
    def flash_offer_discount(self) -> int:
        if self.tier not in {PricingTier.FLASH_OFFER, PricingTier.TRY_NOW_FLASH}:
            return 0
        return self.discount_total

    @property
    def total_display(self) -> str:
        return format_amount(self.total)

    def discount_for(self, source: DiscountSource) -> int:
        return sum(line.amount for line in self.discount_lines if line.source is source)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subtotal": self.subtotal,
            "shipping": self.shipping,
            "discountLines": [line.to_dict() for line in self.discount_lines],
            "discountTotal": self.discount_total,
            "total": self.total,
            "totalDisplay": self.total_display,
            "tier": self.tier.value,
            "isFlashOffer": self.is_flash_offer,
            "flashOfferDiscount": self.flash_offer_discount,
        }


class DiscountResolver:
    def __init__(
        self,
        shipping_cost: Optional[int] = None,
        flash_offer_limit: Optional[int] = None,
    ) -> None:
        self.shipping_cost = Config.SHIPPING_COST if shipping_cost is None else int(shipping_cost)
        self.flash_offer_limit = Config.FLASH_OFFER_LIMIT if flash_offer_limit is None else int(flash_offer_limit)

    def resolve(self, subtotal: int, state: Optional[PromotionState] = None) -> Quote:
        state = state or PromotionState()
        subtotal = max(0, int(subtotal))

        if state.flash_offer_active:
            return self._free_first_units(subtotal, PricingTier.FLASH_OFFER, DiscountSource.FLASH_OFFER, "Flash offer")
        if state.try_now_flash:
            return self._free_first_units(
                subtotal, PricingTier.TRY_NOW_FLASH, DiscountSource.TRY_NOW_FLASH, "Flash challenge"
            )

        lines: List[DiscountLine] = []
        if state.time_challenge_percent > 0:
            lines.append(
                self._percent_line(subtotal, state.time_challenge_percent, DiscountSource.TIME_CHALLENGE, "Time challenge")
            )
        if state.try_now_timer and state.try_now_percent > 0:
            lines.append(
                self._percent_line(subtotal, state.try_now_percent, DiscountSource.TRY_NOW_TIMER, "Timer challenge")
            )
        challenge_applied = bool(lines)
        if state.checkout_discount_percent > 0:
            lines.append(
                self._percent_line(
                    subtotal, state.checkout_discount_percent, DiscountSource.CHECKOUT_DISCOUNT, "Checkout discount"
                )
            )

        if challenge_applied:
            tier = PricingTier.CHALLENGE
        elif lines:
            tier = PricingTier.CHECKOUT_DISCOUNT
        else:
            tier = PricingTier.FULL_PRICE

        gross = subtotal + self.shipping_cost
        total = max(0, gross - sum(line.amount for line in lines))
        return Quote(subtotal=subtotal, shipping=self.shipping_cost, total=total, tier=tier, discount_lines=lines)

    def _free_first_units(
        self,
        subtotal: int,
        tier: PricingTier,
        source: DiscountSource,
        label: str,
    ) -> Quote:
        covered = min(subtotal, self.flash_offer_limit)
        total = max(0, subtotal - self.flash_offer_limit) + self.shipping_cost
        lines = [DiscountLine(label=label, amount=covered, source=source)] if covered else []
        return Quote(subtotal=subtotal, shipping=self.shipping_cost, total=total, tier=tier, discount_lines=lines)

    @staticmethod
    def _percent_line(subtotal: int, percent: int, source: DiscountSource, label: str) -> DiscountLine:
        percent = max(0, min(100, int(percent)))
        return DiscountLine(
            label=f"{label} ({percent}%)",
            amount=percent_of(subtotal, percent),
            source=source,
            percent=percent,
        )


def resolve_total(subtotal: int, state: Optional[PromotionState] = None) -> Quote:
    return DiscountResolver().resolve(subtotal, state)


__all__ = [
    "DiscountLine",
    "DiscountResolver",
    "DiscountSource",
    "PricingTier",
    "PromotionState",
    "Quote",
    "resolve_total",
]
