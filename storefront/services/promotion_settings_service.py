from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from storefront.config import Config
from storefront.models import CheckoutDiscount, PromotionalSettings, TimeChallenge, utcnow
from storefront.observability import record_event


class PromotionSettingsService:
    """
    Single-row promotion settings edited from the developer panel.

    Each getter lazily seeds its row so the storefront always has a value to
    serve, even on a fresh database.
    """

    def __init__(self, db_session: Session, config: type[Config] = Config) -> None:
        self.db = db_session
        self.config = config
        self.logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Checkout discount
    # ------------------------------------------------------------------
    def get_checkout_discount(self) -> CheckoutDiscount:
        discount = self.db.query(CheckoutDiscount).order_by(CheckoutDiscount.checkoutDiscountID).first()
        if discount is None:
            discount = CheckoutDiscount(discount_percent=0)
            self.db.add(discount)
            self.db.commit()
            self.db.refresh(discount)
        return discount

    def update_checkout_discount(self, discount_percent: Any) -> Tuple[bool, str, Optional[CheckoutDiscount]]:
        percent, error = _coerce_percent(discount_percent)
        if error:
            return False, error, None

        discount = self.get_checkout_discount()
        previous = discount.discount_percent
        discount.discount_percent = percent
        self.db.commit()
        self.db.refresh(discount)

        record_event("checkout_discount_updated", {"old_percent": previous, "new_percent": percent})
        self.logger.info("Checkout discount changed from %s%% to %s%%", previous, percent)
        return True, "Checkout discount updated", discount

    # ------------------------------------------------------------------
    # Time challenge
    # ------------------------------------------------------------------
    def get_time_challenge(self) -> TimeChallenge:
        challenge = self.db.query(TimeChallenge).order_by(TimeChallenge.timeChallengeID).first()
        if challenge is None:
            challenge = TimeChallenge(
                name=self.config.TIME_CHALLENGE_DEFAULT_NAME,
                is_active=False,
                duration_seconds=self.config.TIME_CHALLENGE_DEFAULT_DURATION_SECONDS,
                discount_percent=self.config.TIME_CHALLENGE_DEFAULT_DISCOUNT_PERCENT,
            )
            self.db.add(challenge)
            self.db.commit()
            self.db.refresh(challenge)
        return challenge

    def update_time_challenge(self, updates: Dict[str, Any]) -> Tuple[bool, str, Optional[TimeChallenge]]:
        """Apply a partial update of name / isActive / durationSeconds / discountPercent."""
        changes: Dict[str, Any] = {}

        if "name" in updates:
            name = (updates.get("name") or "").strip()
            if not name:
                return False, "Challenge name cannot be empty", None
            changes["name"] = name
        if "isActive" in updates:
            if not isinstance(updates["isActive"], bool):
                return False, "isActive must be a boolean", None
            changes["is_active"] = updates["isActive"]
        if "durationSeconds" in updates:
            try:
                duration = int(updates["durationSeconds"])
            except (TypeError, ValueError):
                return False, "durationSeconds must be an integer", None
            if duration <= 0:
                return False, "durationSeconds must be positive", None
            changes["duration_seconds"] = duration
        if "discountPercent" in updates:
            percent, error = _coerce_percent(updates["discountPercent"])
            if error:
                return False, error, None
            changes["discount_percent"] = percent

        if not changes:
            return False, "No time challenge fields supplied", None

        challenge = self.get_time_challenge()
        for attribute, value in changes.items():
            setattr(challenge, attribute, value)
        self.db.commit()
        self.db.refresh(challenge)

        record_event("time_challenge_updated", {key: value for key, value in changes.items()})
        self.logger.info("Time challenge settings updated", extra={"changes": changes})
        return True, "Time challenge updated", challenge

    # ------------------------------------------------------------------
    # Banner
    # ------------------------------------------------------------------
    def get_promotional_settings(self) -> PromotionalSettings:
        settings = self.db.query(PromotionalSettings).order_by(PromotionalSettings.settingsID).first()
        if settings is None:
            settings = PromotionalSettings(
                banner_text=self.config.BANNER_DEFAULT_TEXT,
                timer_seconds=self.config.BANNER_DEFAULT_TIMER_SECONDS,
                timer_end_time=utcnow() + timedelta(seconds=self.config.BANNER_DEFAULT_TIMER_SECONDS),
                delivery_text=self.config.BANNER_DEFAULT_DELIVERY_TEXT,
            )
            self.db.add(settings)
            self.db.commit()
            self.db.refresh(settings)
        return settings

    def update_promotional_settings(
        self,
        banner_text: Optional[str],
        timer_seconds: Any,
        delivery_text: Optional[str],
    ) -> Tuple[bool, str, Optional[PromotionalSettings]]:
        """Replace the banner copy and restart its countdown from now."""
        if not banner_text or not banner_text.strip():
            return False, "Banner text is required", None
        if not delivery_text or not delivery_text.strip():
            return False, "Delivery text is required", None
        try:
            seconds = int(timer_seconds)
        except (TypeError, ValueError):
            return False, "timerSeconds must be an integer", None
        if seconds < 0:
            return False, "timerSeconds cannot be negative", None

        settings = self.get_promotional_settings()
        settings.banner_text = banner_text.strip()
        settings.timer_seconds = seconds
        settings.timer_end_time = utcnow() + timedelta(seconds=seconds)
        settings.delivery_text = delivery_text.strip()
        self.db.commit()
        self.db.refresh(settings)

        self.logger.info("Promotional banner updated, countdown %ss", seconds)
        return True, "Promotional settings updated", settings

    def seed_defaults(self) -> None:
        self.get_checkout_discount()
        self.get_time_challenge()
        self.get_promotional_settings()


def _coerce_percent(value: Any) -> Tuple[int, Optional[str]]:
    if isinstance(value, bool):
        return 0, "discountPercent must be an integer"
    try:
        percent = int(value)
    except (TypeError, ValueError):
        return 0, "discountPercent must be an integer"
    if not 0 <= percent <= 100:
        return 0, "discountPercent must be between 0 and 100"
    return percent, None
