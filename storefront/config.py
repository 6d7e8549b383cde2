"""Centralized storefront configuration for the server, the shopper client and scripts."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Final

from dotenv import load_dotenv

BASE_DIR: Final[Path] = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"

# Runtime env wins over .env values
load_dotenv(dotenv_path=ENV_PATH, override=False)


def _str_to_bool(value: str | bool | None, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _determine_database_url() -> str:
    """
    Return a connection string using the following precedence:
    1. Explicit DATABASE_URL
    2. Individual DB_* components (for PostgreSQL)
    3. Local SQLite fallback (for onboarding / tests)
    """
    explicit_url = os.getenv("DATABASE_URL")
    if explicit_url:
        return explicit_url

    username = os.getenv("DB_USERNAME")
    password = os.getenv("DB_PASSWORD")
    host = os.getenv("DB_HOST")
    port = os.getenv("DB_PORT")
    name = os.getenv("DB_NAME")

    if all([username, password, host, port, name]):
        driver = os.getenv("DB_DRIVER", "postgresql+psycopg2")
        return f"{driver}://{username}:{password}@{host}:{port}/{name}"

    fallback_path = BASE_DIR / "db" / "storefront.db"
    fallback_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{fallback_path.as_posix()}"


class Config:
    """Default runtime configuration shared across Flask, services, and the shopper client."""

    APP_NAME: Final[str] = os.getenv("APP_NAME", "Mystery Box Storefront")
    APP_ENV: Final[str] = os.getenv("APP_ENV", "development")

    SECRET_KEY: Final[str] = os.getenv("SECRET_KEY", "change-me-in-prod")
    DEBUG: Final[bool] = _str_to_bool(os.getenv("FLASK_DEBUG"), default=APP_ENV == "development")
    TESTING: Final[bool] = _str_to_bool(os.getenv("FLASK_TESTING"), default=False)

    FLASK_RUN_HOST: Final[str] = os.getenv("FLASK_RUN_HOST", "0.0.0.0")
    FLASK_RUN_PORT: Final[int] = int(os.getenv("FLASK_RUN_PORT", "5000"))

    # Database
    DATABASE_URL: Final[str] = _determine_database_url()
    SQL_ECHO: Final[bool] = _str_to_bool(os.getenv("SQL_ECHO"), default=False)
    DB_POOL_SIZE: Final[int] = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_MAX_OVERFLOW: Final[int] = int(os.getenv("DB_MAX_OVERFLOW", "20"))

    # Pricing
    CURRENCY_SYMBOL: Final[str] = os.getenv("CURRENCY_SYMBOL", "₹")
    SHIPPING_COST: Final[int] = int(os.getenv("SHIPPING_COST", "39"))
    FLASH_OFFER_LIMIT: Final[int] = int(os.getenv("FLASH_OFFER_LIMIT", "200"))
    # "reapply" keeps the legacy behaviour of discounting the submitted total a second time,
    # "once" stores the client total untouched.
    CHECKOUT_DISCOUNT_SERVER_MODE: Final[str] = os.getenv("CHECKOUT_DISCOUNT_SERVER_MODE", "reapply").strip().lower()

    # Flash offer defaults used by the admin "start" action
    FLASH_OFFER_DEFAULT_MAX_CLAIMS: Final[int] = int(os.getenv("FLASH_OFFER_DEFAULT_MAX_CLAIMS", "5"))
    FLASH_OFFER_DEFAULT_DURATION_SECONDS: Final[int] = int(os.getenv("FLASH_OFFER_DEFAULT_DURATION_SECONDS", "30"))
    FLASH_OFFER_DEFAULT_BANNER: Final[str] = os.getenv("FLASH_OFFER_DEFAULT_BANNER", "First 5 orders are FREE!")

    # Time challenge seed values
    TIME_CHALLENGE_DEFAULT_NAME: Final[str] = os.getenv("TIME_CHALLENGE_DEFAULT_NAME", "Time is Money")
    TIME_CHALLENGE_DEFAULT_DURATION_SECONDS: Final[int] = int(os.getenv("TIME_CHALLENGE_DEFAULT_DURATION_SECONDS", "30"))
    TIME_CHALLENGE_DEFAULT_DISCOUNT_PERCENT: Final[int] = int(os.getenv("TIME_CHALLENGE_DEFAULT_DISCOUNT_PERCENT", "30"))

    # Promotional banner seed values
    BANNER_DEFAULT_TEXT: Final[str] = os.getenv("BANNER_DEFAULT_TEXT", "₹10 off on every product")
    BANNER_DEFAULT_TIMER_SECONDS: Final[int] = int(os.getenv("BANNER_DEFAULT_TIMER_SECONDS", "604800"))
    BANNER_DEFAULT_DELIVERY_TEXT: Final[str] = os.getenv(
        "BANNER_DEFAULT_DELIVERY_TEXT", "Shop for ₹199 and get free delivery"
    )

    # Shopper client polling (seconds)
    FLASH_OFFER_POLL_SECONDS: Final[float] = float(os.getenv("FLASH_OFFER_POLL_SECONDS", "1.0"))
    TIME_CHALLENGE_POLL_SECONDS: Final[float] = float(os.getenv("TIME_CHALLENGE_POLL_SECONDS", "5.0"))
    CHALLENGE_TICK_SECONDS: Final[float] = float(os.getenv("CHALLENGE_TICK_SECONDS", "0.1"))
    BANNER_TICK_SECONDS: Final[float] = float(os.getenv("BANNER_TICK_SECONDS", "1.0"))

    STOREFRONT_API_URL: Final[str] = os.getenv("STOREFRONT_API_URL", "http://localhost:5000")
    HTTP_TIMEOUT_SECONDS: Final[float] = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))
    CART_STORE_PATH: Final[Path] = Path(os.getenv("CART_STORE_PATH", (BASE_DIR / "db" / "cart.json").as_posix()))

    # Admin access
    ADMIN_TOKEN: Final[str] = os.getenv("ADMIN_TOKEN", "change-me-admin-token")
    ADMIN_TOKEN_HEADER: Final[str] = os.getenv("ADMIN_TOKEN_HEADER", "X-Admin-Token")
    DEVELOPER_SECRET_PHRASE: Final[str] = os.getenv("DEVELOPER_SECRET_PHRASE", "dormamu is a aunty")

    # Observability
    STRUCTURED_LOGS_ENABLED: Final[bool] = _str_to_bool(os.getenv("STRUCTURED_LOGS_ENABLED"), default=True)
    LOG_LEVEL: Final[str] = os.getenv("LOG_LEVEL", "INFO")
    REQUEST_ID_HEADER: Final[str] = os.getenv("REQUEST_ID_HEADER", "X-Request-ID")
    OBSERVABILITY_ENABLED: Final[bool] = _str_to_bool(os.getenv("OBSERVABILITY_ENABLED"), default=True)

    DEFAULT_TIMEZONE: Final[str] = os.getenv("DEFAULT_TIMEZONE", "Asia/Kolkata")

    @classmethod
    def configure_app(cls, app: Any) -> None:
        """Apply core configuration to a Flask app instance."""
        app.config["SECRET_KEY"] = cls.SECRET_KEY
        app.config["ENV"] = cls.APP_ENV
        app.config["DEBUG"] = cls.DEBUG
        app.config["TESTING"] = cls.TESTING
        app.config["SQLALCHEMY_DATABASE_URI"] = cls.DATABASE_URL
        app.config["SQLALCHEMY_ECHO"] = cls.SQL_ECHO
        app.config["JSON_AS_ASCII"] = False
        app.config["SHIPPING_COST"] = cls.SHIPPING_COST
        app.config["FLASH_OFFER_LIMIT"] = cls.FLASH_OFFER_LIMIT
        app.config["CHECKOUT_DISCOUNT_SERVER_MODE"] = cls.CHECKOUT_DISCOUNT_SERVER_MODE
        app.config["STRUCTURED_LOGS_ENABLED"] = cls.STRUCTURED_LOGS_ENABLED
        app.config["OBSERVABILITY_ENABLED"] = cls.OBSERVABILITY_ENABLED
