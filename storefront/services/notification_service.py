"""
Order notifications.

Publish-subscribe hub for placed orders. Handlers run synchronously in the
request thread; a failing handler is logged and never fails the order. The
default subscriber writes a one-line summary to the log, and delivery
adapters (chat bots, e-mail) register their own handler at start-up.
"""
from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

from storefront.observability import increment_counter, record_event

OrderHandler = Callable[[Dict[str, Any]], None]

logger = logging.getLogger(__name__)


def format_order_message(order: Dict[str, Any]) -> str:
    """Human readable summary of an order payload (``Order.to_dict()``)."""
    lines = [
        f"New Order #{order.get('orderNumber')}",
        f"Customer: {order.get('customerName')}",
        f"Mobile: {order.get('mobile')}",
        f"Address: {order.get('address')}",
        f"Instagram: @{order.get('instagram')}",
        "Items:",
    ]
    for item in order.get("items") or []:
        lines.append(f"- {item.get('title')} x{item.get('quantity')} - {item.get('price')}")
    lines.append(f"Total: {order.get('total')}")
    return "\n".join(lines)


def _log_order(order: Dict[str, Any]) -> None:
    logger.info("Order %s placed: %s", order.get("orderNumber"), format_order_message(order).replace("\n", " | "))


class OrderNotificationService:
    """Singleton registry of order-placed subscribers."""

    _instance: Optional["OrderNotificationService"] = None
    _lock: Lock = Lock()

    def __new__(cls) -> "OrderNotificationService":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return
        self._handlers: List[OrderHandler] = [_log_order]
        self._initialized = True

    def subscribe(self, handler: OrderHandler) -> None:
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)

    def unsubscribe(self, handler: OrderHandler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def reset(self) -> None:
        """Drop custom subscribers, keeping the logging default. Testing helper."""
        with self._lock:
            self._handlers = [_log_order]

    def publish(self, order: Dict[str, Any]) -> int:
        """Deliver ``order`` to every handler; returns how many succeeded."""
        with self._lock:
            handlers = list(self._handlers)

        delivered = 0
        for handler in handlers:
            try:
                handler(order)
                delivered += 1
            except Exception:
                increment_counter("order_notifications_failed_total")
                logger.exception("Order notification handler %r failed", handler)
        return delivered


def publish_order_placed(order: Dict[str, Any]) -> None:
    """Publish a persisted order to all subscribers."""
    record_event(
        "order_placed",
        {
            "order_number": order.get("orderNumber"),
            "total": order.get("total"),
            "is_flash_offer": order.get("isFlashOffer", False),
        },
    )
    increment_counter(
        "orders_placed_total",
        labels={"flash_offer": str(bool(order.get("isFlashOffer"))).lower()},
    )
    OrderNotificationService().publish(order)
