from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import bleach
from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.models import DeliveryAddress

logger = logging.getLogger(__name__)


class DeliveryAddressService:
    """Ordered list of places the store delivers to."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def list_addresses(self) -> List[DeliveryAddress]:
        return (
            self.db.query(DeliveryAddress)
            .order_by(DeliveryAddress.display_order, DeliveryAddress.addressID)
            .all()
        )

    def get_address(self, address_id: int) -> Optional[DeliveryAddress]:
        return self.db.query(DeliveryAddress).filter(DeliveryAddress.addressID == address_id).first()

    def create_address(self, name: Optional[str]) -> Tuple[bool, str, Optional[DeliveryAddress]]:
        clean_name = _clean(name)
        if not clean_name:
            return False, "Address name is required", None

        try:
            next_order = (self.db.query(func.max(DeliveryAddress.display_order)).scalar() or 0) + 1
            address = DeliveryAddress(name=clean_name, display_order=next_order)
            self.db.add(address)
            self.db.commit()
            self.db.refresh(address)
            logger.info(f"Added delivery address {address.addressID}: {clean_name}")
            return True, "Delivery address created", address
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating delivery address: {e}")
            return False, f"Error creating delivery address: {str(e)}", None

    def update_address(
        self,
        address_id: int,
        name: Optional[str] = None,
        display_order: Optional[int] = None,
    ) -> Tuple[bool, str, Optional[DeliveryAddress]]:
        address = self.get_address(address_id)
        if not address:
            return False, "Delivery address not found", None

        clean_name = None
        if name is not None:
            clean_name = _clean(name)
            if not clean_name:
                return False, "Address name is required", None
        new_order = None
        if display_order is not None:
            if isinstance(display_order, bool):
                return False, "displayOrder must be an integer", None
            try:
                new_order = int(display_order)
            except (TypeError, ValueError):
                return False, "displayOrder must be an integer", None

        try:
            if clean_name is not None:
                address.name = clean_name
            if new_order is not None:
                address.display_order = new_order
            self.db.commit()
            self.db.refresh(address)
            logger.info(f"Updated delivery address {address_id}")
            return True, "Delivery address updated", address
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating delivery address: {e}")
            return False, f"Error updating delivery address: {str(e)}", None

    def delete_address(self, address_id: int) -> Tuple[bool, str]:
        address = self.get_address(address_id)
        if not address:
            return False, "Delivery address not found"
        self.db.delete(address)
        self.db.commit()
        logger.info(f"Removed delivery address {address_id}")
        return True, "Delivery address deleted"


def _clean(value: Optional[str]) -> str:
    if value is None:
        return ""
    return bleach.clean(str(value), tags=[], strip=True).strip()
