# storefront/models.py
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Boolean,
    Text,
    JSON,
)

# One shared Base keeps every table on the same metadata
from storefront.database import Base
from storefront.promotions.countdown import remaining
from storefront.promotions.flash_offer import FlashOfferSnapshot
from storefront.promotions.pricing import parse_amount


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything is stored as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


class Product(Base):
    __tablename__ = 'Product'
    productID = Column(Integer, primary_key=True, autoincrement=True)
    product_code = Column(String(64), unique=True)
    title = Column(String(255), nullable=False)
    label = Column(String(255), default="")
    price = Column(String(32), nullable=False)
    original_price = Column(String(32))
    image = Column(String(1024), default="")
    description = Column(Text)
    is_in_stock = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    @property
    def amount(self) -> int:
        return parse_amount(self.price)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.productID,
            "productCode": self.product_code,
            "title": self.title,
            "label": self.label,
            "price": self.price,
            "originalPrice": self.original_price,
            "amount": self.amount,
            "image": self.image,
            "description": self.description,
            "isInStock": bool(self.is_in_stock),
        }


class FlashOffer(Base):
    """Single global flash offer row; ``is_active`` is the admin switch only."""

    __tablename__ = 'FlashOffer'
    flashOfferID = Column(Integer, primary_key=True, autoincrement=True)
    is_active = Column(Boolean, default=False, nullable=False)
    max_claims = Column(Integer, default=5, nullable=False)
    claimed_count = Column(Integer, default=0, nullable=False)
    duration_seconds = Column(Integer, default=30, nullable=False)
    started_at = Column(DateTime(timezone=True))
    ends_at = Column(DateTime(timezone=True))
    banner_text = Column(String(255), default="", nullable=False)

    def is_effectively_active(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        ends_at = as_utc(self.ends_at)
        if not self.is_active or ends_at is None:
            return False
        return now < ends_at and (self.claimed_count or 0) < (self.max_claims or 0)

    def get_spots_remaining(self) -> int:
        return max(0, (self.max_claims or 0) - (self.claimed_count or 0))

    def to_snapshot(self) -> FlashOfferSnapshot:
        return FlashOfferSnapshot(
            is_active=bool(self.is_active),
            max_claims=self.max_claims or 0,
            claimed_count=self.claimed_count or 0,
            duration_seconds=self.duration_seconds or 0,
            started_at=as_utc(self.started_at),
            ends_at=as_utc(self.ends_at),
            banner_text=self.banner_text or "",
        )

    def to_dict(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        return {
            "id": self.flashOfferID,
            "isActive": bool(self.is_active),
            "maxClaims": self.max_claims,
            "claimedCount": self.claimed_count,
            "durationSeconds": self.duration_seconds,
            "startedAt": _isoformat(self.started_at),
            "endsAt": _isoformat(self.ends_at),
            "bannerText": self.banner_text,
            "isEffectivelyActive": self.is_effectively_active(now),
            "spotsRemaining": self.get_spots_remaining(),
            "timeRemaining": remaining(as_utc(self.ends_at), now) if self.is_active else 0,
        }


class CheckoutDiscount(Base):
    __tablename__ = 'CheckoutDiscount'
    checkoutDiscountID = Column(Integer, primary_key=True, autoincrement=True)
    discount_percent = Column(Integer, default=0, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.checkoutDiscountID, "discountPercent": self.discount_percent}


class TimeChallenge(Base):
    """Availability and terms of the time challenge; runs themselves live with the shopper."""

    __tablename__ = 'TimeChallenge'
    timeChallengeID = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), default="Time is Money", nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    duration_seconds = Column(Integer, default=30, nullable=False)
    discount_percent = Column(Integer, default=30, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.timeChallengeID,
            "name": self.name,
            "isActive": bool(self.is_active),
            "durationSeconds": self.duration_seconds,
            "discountPercent": self.discount_percent,
        }


class PromotionalSettings(Base):
    __tablename__ = 'PromotionalSettings'
    settingsID = Column(Integer, primary_key=True, autoincrement=True)
    banner_text = Column(String(255), nullable=False)
    timer_seconds = Column(Integer, nullable=False)
    timer_end_time = Column(DateTime(timezone=True))
    delivery_text = Column(String(255), nullable=False)

    def to_dict(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        return {
            "id": self.settingsID,
            "bannerText": self.banner_text,
            "timerSeconds": self.timer_seconds,
            "timerEndTime": _isoformat(self.timer_end_time),
            "timeRemaining": remaining(as_utc(self.timer_end_time), now),
            "deliveryText": self.delivery_text,
        }


class DeliveryAddress(Base):
    __tablename__ = 'DeliveryAddress'
    addressID = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(512), nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.addressID, "name": self.name, "displayOrder": self.display_order}


class Order(Base):
    """Immutable once written; ``total`` already carries the applied discounts."""

    __tablename__ = 'Order'
    orderID = Column(Integer, primary_key=True, autoincrement=True)
    order_number = Column(String(32), unique=True, nullable=False)
    customer_name = Column(String(255), nullable=False)
    address = Column(String(512), nullable=False)
    mobile = Column(String(32), nullable=False)
    instagram = Column(String(255), nullable=False)
    items = Column(JSON, nullable=False)
    total = Column(String(32), nullable=False)
    is_flash_offer = Column(Boolean, default=False, nullable=False)
    flash_offer_discount = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    @property
    def total_amount(self) -> int:
        return parse_amount(self.total)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.orderID,
            "orderNumber": self.order_number,
            "customerName": self.customer_name,
            "address": self.address,
            "mobile": self.mobile,
            "instagram": self.instagram,
            "items": self.items,
            "total": self.total,
            "isFlashOffer": bool(self.is_flash_offer),
            "flashOfferDiscount": self.flash_offer_discount,
            "createdAt": _isoformat(self.created_at),
        }
