# storefront/services/flash_offer_service.py
from datetime import timedelta
from typing import Optional, Tuple
import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from storefront.config import Config
from storefront.models import FlashOffer, utcnow
from storefront.observability import increment_counter, record_event

logger = logging.getLogger(__name__)

class FlashOfferService:
    """Server-side owner of the single global flash offer record"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def get_flash_offer(self) -> Optional[FlashOffer]:
        """Return the flash offer row as stored; expiry is never written back"""
        return self.db.query(FlashOffer).order_by(FlashOffer.flashOfferID).first()

    def start_flash_offer(
        self,
        max_claims: Optional[int] = None,
        duration_seconds: Optional[int] = None,
        banner_text: Optional[str] = None,
    ) -> Tuple[bool, str, Optional[FlashOffer]]:
        """Open a fresh claim window starting now"""
        slots = Config.FLASH_OFFER_DEFAULT_MAX_CLAIMS if max_claims is None else int(max_claims)
        duration = Config.FLASH_OFFER_DEFAULT_DURATION_SECONDS if duration_seconds is None else int(duration_seconds)
        text = Config.FLASH_OFFER_DEFAULT_BANNER if banner_text is None else banner_text.strip()

        if slots <= 0:
            return False, "Max claims must be positive", None
        if duration <= 0:
            return False, "Duration must be positive", None

        try:
            now = utcnow()
            offer = self.get_flash_offer()
            if offer is None:
                offer = FlashOffer()
                self.db.add(offer)

            offer.is_active = True
            offer.claimed_count = 0
            offer.max_claims = slots
            offer.duration_seconds = duration
            offer.banner_text = text
            offer.started_at = now
            offer.ends_at = now + timedelta(seconds=duration)

            self.db.commit()
            self.db.refresh(offer)

            increment_counter("flash_offers_started_total")
            record_event(
                "flash_offer_started",
                {"max_claims": slots, "duration_seconds": duration, "ends_at": offer.ends_at.isoformat()},
            )
            logger.info(f"Started flash offer {offer.flashOfferID}: {slots} claims for {duration}s")
            return True, "Flash offer started", offer

        except Exception as e:
            self.db.rollback()
            logger.error(f"Error starting flash offer: {e}")
            return False, f"Error starting flash offer: {str(e)}", None

    def stop_flash_offer(self) -> Tuple[bool, str, Optional[FlashOffer]]:
        """Turn the admin switch off"""
        try:
            offer = self.get_flash_offer()
            if not offer:
                return False, "No flash offer configured", None

            offer.is_active = False
            self.db.commit()
            self.db.refresh(offer)

            record_event("flash_offer_stopped", {"claimed_count": offer.claimed_count})
            logger.info(f"Stopped flash offer {offer.flashOfferID} after {offer.claimed_count} claims")
            return True, "Flash offer stopped", offer

        except Exception as e:
            self.db.rollback()
            logger.error(f"Error stopping flash offer: {e}")
            return False, f"Error stopping flash offer: {str(e)}", None

    def claim_flash_offer(self) -> Tuple[bool, str, Optional[FlashOffer]]:
        """
        Take one slot of the flash offer.

        The increment is a single conditional UPDATE so that simultaneous
        checkouts can never push claimed_count past max_claims.
        """
        try:
            offer = self.get_flash_offer()
            if not offer or not offer.is_active:
                return False, "Flash offer is not active", offer

            now = utcnow()
            result = self.db.execute(
                update(FlashOffer)
                .where(
                    FlashOffer.flashOfferID == offer.flashOfferID,
                    FlashOffer.is_active.is_(True),
                    FlashOffer.claimed_count < FlashOffer.max_claims,
                    FlashOffer.ends_at > now,
                )
                .values(claimed_count=FlashOffer.claimed_count + 1)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
            self.db.refresh(offer)

            if result.rowcount != 1:
                increment_counter("flash_offer_claims_rejected_total")
                if offer.get_spots_remaining() > 0:
                    reason = "Flash offer has expired"
                else:
                    reason = "All flash offer spots have been claimed"
                logger.info(f"Rejected flash offer claim: {reason}")
                return False, reason, offer

            increment_counter("flash_offer_claims_total")
            record_event(
                "flash_offer_claimed",
                {"claimed_count": offer.claimed_count, "spots_remaining": offer.get_spots_remaining()},
            )
            logger.info(f"Flash offer claim accepted ({offer.claimed_count}/{offer.max_claims})")
            return True, "Flash offer claimed", offer

        except Exception as e:
            self.db.rollback()
            logger.error(f"Error claiming flash offer: {e}")
            return False, f"Error claiming flash offer: {str(e)}", None
