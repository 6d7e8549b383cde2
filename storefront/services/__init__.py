from .delivery_address_service import DeliveryAddressService
from .flash_offer_service import FlashOfferService
from .notification_service import OrderNotificationService, publish_order_placed
from .order_service import OrderService
from .promotion_settings_service import PromotionSettingsService

__all__ = [
    "DeliveryAddressService",
    "FlashOfferService",
    "OrderNotificationService",
    "OrderService",
    "PromotionSettingsService",
    "publish_order_placed",
]
