"""Mystery box storefront: promotion mechanics, order API and shopper client."""

__version__ = "1.0.0"
