from __future__ import annotations

import logging
import random
import time
from typing import Any, Dict, List, Optional, Tuple

import bleach
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.config import Config
from storefront.models import DeliveryAddress, Order
from storefront.observability import increment_counter, record_event
from storefront.promotions.pricing import apply_percent_off, format_amount, parse_amount
from storefront.services.notification_service import publish_order_placed
from storefront.services.promotion_settings_service import PromotionSettingsService

CUSTOMER_FIELDS = ("customerName", "address", "mobile", "instagram")
ORDER_NUMBER_ATTEMPTS = 25
TRY_NOW_PREFIX = "TRY-"


class OrderService:
    """Validates, prices and stores submitted orders."""

    def __init__(
        self,
        db_session: Session,
        config: type[Config] = Config,
        settings_service: Optional[PromotionSettingsService] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.db = db_session
        self.config = config
        self.settings_service = settings_service or PromotionSettingsService(db_session, config=config)
        self.rng = rng or random.Random()
        self.logger = logging.getLogger(__name__)

    def create_order(self, payload: Dict[str, Any]) -> Tuple[bool, str, Optional[Dict[str, Any]]]:
        """
        Create an order from a checkout submission.

        Try-now challenge orders get a ``TRY-<epoch ms>`` number and are neither
        stored nor published. Everything else is persisted under a fresh
        five-digit order number and published to the notification subscribers.
        """
        customer, error = self._clean_customer(payload)
        if error:
            return False, error, None

        items, error = self._clean_items(payload.get("items"))
        if error:
            return False, error, None

        submitted_total = str(payload.get("total") or "").strip()
        if not any(ch.isdigit() for ch in submitted_total):
            return False, "Order total is required", None

        is_flash_offer = bool(payload.get("isFlashOffer"))
        is_try_now = bool(payload.get("isTryNowChallenge"))
        flash_offer_discount = parse_amount(payload.get("flashOfferDiscount"))

        if is_try_now:
            order_number = f"{TRY_NOW_PREFIX}{int(time.time() * 1000)}"
            increment_counter("try_now_orders_total")
            self.logger.info(f"Try-now order {order_number} accepted without persistence")
            return True, "Order placed", {
                **customer,
                "orderNumber": order_number,
                "items": items,
                "total": submitted_total,
                "isFlashOffer": is_flash_offer,
                "flashOfferDiscount": flash_offer_discount,
                "isTryNowChallenge": True,
                "persisted": False,
            }

        total = self._apply_checkout_discount(submitted_total, is_flash_offer)

        try:
            order = self._insert_with_unique_number(
                customer_name=customer["customerName"],
                address=customer["address"],
                mobile=customer["mobile"],
                instagram=customer["instagram"],
                items=items,
                total=total,
                is_flash_offer=is_flash_offer,
                flash_offer_discount=flash_offer_discount if is_flash_offer else 0,
            )
        except Exception as e:
            self.db.rollback()
            self.logger.error(f"Error creating order: {e}")
            return False, f"Error creating order: {str(e)}", None

        if order is None:
            increment_counter("order_number_exhausted_total")
            return False, "Could not allocate a unique order number", None

        result = order.to_dict()
        result["isTryNowChallenge"] = False
        result["persisted"] = True
        publish_order_placed(result)
        return True, "Order placed", result

    def get_order_by_number(self, order_number: str) -> Optional[Order]:
        return self.db.query(Order).filter(Order.order_number == order_number).first()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _clean_customer(self, payload: Dict[str, Any]) -> Tuple[Dict[str, str], Optional[str]]:
        customer: Dict[str, str] = {}
        for field_name in CUSTOMER_FIELDS:
            raw = payload.get(field_name)
            value = bleach.clean(str(raw), tags=[], strip=True).strip() if raw is not None else ""
            if not value:
                return {}, f"{field_name} is required"
            customer[field_name] = value

        customer["instagram"] = customer["instagram"].lstrip("@") or customer["instagram"]

        known_addresses = [row.name for row in self.db.query(DeliveryAddress).all()]
        if known_addresses and customer["address"] not in known_addresses:
            return {}, "Address is not a delivery location"
        return customer, None

    @staticmethod
    def _clean_items(raw_items: Any) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        if not isinstance(raw_items, list) or not raw_items:
            return [], "Order must contain at least one item"

        items: List[Dict[str, Any]] = []
        for raw in raw_items:
            if not isinstance(raw, dict):
                return [], "Invalid order item"
            try:
                quantity = int(raw.get("quantity", 0))
            except (TypeError, ValueError):
                return [], "Invalid item quantity"
            if quantity < 1:
                return [], "Item quantity must be at least 1"
            title = bleach.clean(str(raw.get("title") or ""), tags=[], strip=True).strip()
            if not title:
                return [], "Item title is required"
            items.append(
                {
                    "productId": raw.get("productId"),
                    "title": title,
                    "price": str(raw.get("price") or ""),
                    "quantity": quantity,
                    "image": str(raw.get("image") or ""),
                }
            )
        return items, None

    def _apply_checkout_discount(self, submitted_total: str, is_flash_offer: bool) -> str:
        if is_flash_offer or self.config.CHECKOUT_DISCOUNT_SERVER_MODE == "once":
            return submitted_total

        percent = self.settings_service.get_checkout_discount().discount_percent or 0
        if percent <= 0:
            return submitted_total

        discounted = apply_percent_off(parse_amount(submitted_total), percent)
        self.logger.info(f"Re-applied {percent}% checkout discount on receipt: {submitted_total} -> {discounted}")
        return format_amount(discounted)

    def _next_order_number(self) -> str:
        return str(self.rng.randint(10000, 99999))

    def _insert_with_unique_number(self, **fields: Any) -> Optional[Order]:
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            order_number = self._next_order_number()
            if self.get_order_by_number(order_number) is not None:
                continue

            order = Order(order_number=order_number, **fields)
            self.db.add(order)
            try:
                self.db.commit()
            except IntegrityError:
                # Lost the number to a concurrent insert
                self.db.rollback()
                continue
            self.db.refresh(order)

            record_event(
                "order_created",
                {"order_number": order_number, "total": order.total, "is_flash_offer": order.is_flash_offer},
            )
            self.logger.info(f"Created order {order_number} ({order.total})")
            return order
        return None
