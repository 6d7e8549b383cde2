"""Promotion mechanics shared by the server and the shopper client."""

from .challenge import ChallengeKind, ChallengeRun, ChallengeStatus, ChallengeType
from .countdown import CountdownClock, RepeatingTimer, format_banner, format_clock, remaining
from .discounts import DiscountLine, DiscountResolver, DiscountSource, PricingTier, PromotionState, Quote
from .flash_offer import FlashOfferGate, FlashOfferSnapshot, is_effectively_active, parse_instant
from .pricing import apply_percent_off, format_amount, parse_amount, percent_of

__all__ = [
    "ChallengeKind",
    "ChallengeRun",
    "ChallengeStatus",
    "ChallengeType",
    "CountdownClock",
    "RepeatingTimer",
    "format_banner",
    "format_clock",
    "remaining",
    "DiscountLine",
    "DiscountResolver",
    "DiscountSource",
    "PricingTier",
    "PromotionState",
    "Quote",
    "FlashOfferGate",
    "FlashOfferSnapshot",
    "is_effectively_active",
    "parse_instant",
    "apply_percent_off",
    "format_amount",
    "parse_amount",
    "percent_of",
]
