"""Currency-string parsing and integer discount arithmetic."""
from __future__ import annotations

import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from storefront.config import Config

_NON_DIGITS = re.compile(r"[^\d]")


def parse_amount(value: Optional[Union[str, int, float]]) -> int:
    """
    Turn a currency-prefixed price such as ``"₹499"`` into whole currency units.

    Every non-digit character is stripped before parsing, so ``"₹1,299"`` is 1299.
    Anything that leaves no digits behind parses as 0.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    digits = _NON_DIGITS.sub("", str(value))
    if not digits:
        return 0
    try:
        return int(digits)
    except ValueError:
        return 0


def format_amount(amount: int, symbol: Optional[str] = None) -> str:
    symbol = Config.CURRENCY_SYMBOL if symbol is None else symbol
    return f"{symbol}{int(amount)}"


def round_half_up(value: Union[Decimal, int, float]) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount: int, percent: int) -> int:
    """``round(amount * percent / 100)`` with halves rounded away from zero."""
    if not percent or not amount:
        return 0
    return round_half_up(Decimal(amount) * Decimal(percent) / Decimal(100))


def apply_percent_off(amount: int, percent: int) -> int:
    """Return ``amount`` reduced by ``percent`` percent, rounded half-up."""
    if not percent:
        return amount
    return round_half_up(Decimal(amount) * (Decimal(100) - Decimal(percent)) / Decimal(100))


__all__ = [
    "parse_amount",
    "format_amount",
    "round_half_up",
    "percent_of",
    "apply_percent_off",
]
