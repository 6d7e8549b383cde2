from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from storefront.promotions.pricing import parse_amount

logger = logging.getLogger(__name__)


@dataclass
class CartLine:
    product_id: int
    title: str
    price: str
    quantity: int = 1
    product_code: str = ""
    label: str = ""
    image: str = ""

    @property
    def amount(self) -> int:
        return parse_amount(self.price)

    @property
    def line_total(self) -> int:
        return self.amount * self.quantity

    def to_order_item(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "title": self.title,
            "price": self.price,
            "quantity": self.quantity,
            "image": self.image,
        }

    @classmethod
    def from_product(cls, product: Dict[str, Any]) -> "CartLine":
        """Build a single-unit line from an ``/api/products`` entry."""
        return cls(
            product_id=int(product["id"]),
            title=product.get("title", ""),
            price=str(product.get("price", "")),
            product_code=product.get("productCode") or "",
            label=product.get("label") or "",
            image=product.get("image") or "",
        )


class Cart:
    """
    Ordered cart lines, one per product.

    Quantities never drop below 1; removing a product is an explicit ``remove``.
    When a ``CartStore`` is attached every change is written through to it.
    """

    def __init__(self, store: Optional["CartStore"] = None) -> None:
        self.store = store
        self._lock = threading.RLock()
        self._lines: List[CartLine] = store.load() if store else []

    def _find(self, product_id: int) -> Optional[CartLine]:
        for line in self._lines:
            if line.product_id == product_id:
                return line
        return None

    def _changed(self) -> None:
        if self.store is not None:
            self.store.save(self._lines)

    def add(self, item: Union[CartLine, Dict[str, Any]]) -> CartLine:
        """Add one unit of ``item``; a product already in the cart gets its quantity bumped."""
        line = item if isinstance(item, CartLine) else CartLine.from_product(item)
        with self._lock:
            existing = self._find(line.product_id)
            if existing:
                existing.quantity += 1
                result = existing
            else:
                result = CartLine(**{**asdict(line), "quantity": 1})
                self._lines.append(result)
            self._changed()
        return result

    def update_quantity(self, product_id: int, quantity: int) -> bool:
        if quantity < 1:
            return False
        with self._lock:
            line = self._find(product_id)
            if line is None:
                return False
            line.quantity = int(quantity)
            self._changed()
        return True

    def remove(self, product_id: int) -> bool:
        with self._lock:
            line = self._find(product_id)
            if line is None:
                return False
            self._lines.remove(line)
            self._changed()
        return True

    def clear(self) -> None:
        with self._lock:
            self._lines = []
            self._changed()

    @property
    def lines(self) -> List[CartLine]:
        with self._lock:
            return list(self._lines)

    @property
    def count(self) -> int:
        with self._lock:
            return sum(line.quantity for line in self._lines)

    @property
    def subtotal(self) -> int:
        with self._lock:
            return sum(line.line_total for line in self._lines)

    @property
    def is_empty(self) -> bool:
        with self._lock:
            return not self._lines

    def snapshot(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [line.to_order_item() for line in self._lines]

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)


class CartStore:
    """JSON file holding the cart between runs."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> List[CartLine]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return [CartLine(**entry) for entry in raw]
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Ignoring unreadable cart file {self.path}: {e}")
            return []

    def save(self, lines: List[CartLine]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps([asdict(line) for line in lines], ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(self.path)
