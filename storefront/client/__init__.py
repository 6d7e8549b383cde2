"""Shopper-side library: cart, promotion polling, checkout and the developer panel."""

from .api import CheckoutError, StorefrontAPIError, StorefrontClient
from .cart import Cart, CartLine, CartStore
from .developer import DeveloperGate, DeveloperModeLocked, DeveloperPanel
from .session import CheckoutResult, CustomerDetails, ShopperSession

__all__ = [
    "CheckoutError",
    "StorefrontAPIError",
    "StorefrontClient",
    "Cart",
    "CartLine",
    "CartStore",
    "DeveloperGate",
    "DeveloperModeLocked",
    "DeveloperPanel",
    "CheckoutResult",
    "CustomerDetails",
    "ShopperSession",
]
