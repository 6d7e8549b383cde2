from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from storefront.client.api import StorefrontClient
from storefront.config import Config
from storefront.promotions.flash_offer import FlashOfferSnapshot

logger = logging.getLogger(__name__)


class DeveloperModeLocked(Exception):
    """Raised when a developer panel action is used before the secret phrase was typed."""


class DeveloperGate:
    """Unlocks developer mode once the secret phrase shows up in the typed keys."""

    def __init__(self, secret_phrase: Optional[str] = None) -> None:
        self.secret_phrase = (secret_phrase or Config.DEVELOPER_SECRET_PHRASE).lower()
        if not self.secret_phrase:
            raise ValueError("Secret phrase cannot be empty")
        self._buffer = ""
        self.unlocked = False

    def press(self, key: str) -> bool:
        """Feed one key press; returns True on the press that unlocks."""
        if self.unlocked:
            return False
        self._buffer = (self._buffer + key).lower()[-len(self.secret_phrase):]
        if self._buffer == self.secret_phrase:
            self.unlocked = True
            self._buffer = ""
            logger.info("Developer mode unlocked")
            return True
        return False

    def type_text(self, text: str) -> bool:
        return any([self.press(ch) for ch in text])

    def lock(self) -> None:
        self.unlocked = False
        self._buffer = ""


class DeveloperPanel:
    """Admin actions for promotions, usable only while the gate is unlocked."""

    def __init__(
        self,
        client: StorefrontClient,
        gate: Optional[DeveloperGate] = None,
        admin_token: Optional[str] = None,
    ) -> None:
        self.client = client
        self.gate = gate or DeveloperGate()
        if admin_token is not None:
            self.client.admin_token = admin_token

    def _ensure_unlocked(self) -> None:
        if not self.gate.unlocked:
            raise DeveloperModeLocked("Developer mode is locked")

    def start_flash_offer(
        self,
        max_claims: int = Config.FLASH_OFFER_DEFAULT_MAX_CLAIMS,
        duration_seconds: int = Config.FLASH_OFFER_DEFAULT_DURATION_SECONDS,
        banner_text: str = Config.FLASH_OFFER_DEFAULT_BANNER,
    ) -> Optional[FlashOfferSnapshot]:
        self._ensure_unlocked()
        return self.client.start_flash_offer(max_claims, duration_seconds, banner_text)

    def stop_flash_offer(self) -> Optional[FlashOfferSnapshot]:
        self._ensure_unlocked()
        return self.client.stop_flash_offer()

    def set_checkout_discount(self, discount_percent: int) -> Dict[str, Any]:
        self._ensure_unlocked()
        return self.client.update_checkout_discount(discount_percent)

    def configure_time_challenge(
        self,
        name: Optional[str] = None,
        is_active: Optional[bool] = None,
        duration_seconds: Optional[int] = None,
        discount_percent: Optional[int] = None,
    ) -> Dict[str, Any]:
        self._ensure_unlocked()
        fields = {
            "name": name,
            "isActive": is_active,
            "durationSeconds": duration_seconds,
            "discountPercent": discount_percent,
        }
        return self.client.update_time_challenge(**{key: value for key, value in fields.items() if value is not None})

    def set_promotional_settings(self, banner_text: str, timer_seconds: int, delivery_text: str) -> Dict[str, Any]:
        self._ensure_unlocked()
        return self.client.update_promotional_settings(banner_text, timer_seconds, delivery_text)
