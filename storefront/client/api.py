"""HTTP client for the storefront API, used by the shopper session and the developer panel."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from storefront.config import Config
from storefront.promotions.flash_offer import FlashOfferSnapshot

logger = logging.getLogger(__name__)


class StorefrontAPIError(Exception):
    """A storefront API call failed or returned an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CheckoutError(StorefrontAPIError):
    """Order submission failed. Cart and challenge state are left untouched."""

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = True) -> None:
        super().__init__(message, status_code)
        self.retryable = retryable


class StorefrontClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        admin_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or Config.STOREFRONT_API_URL).rstrip("/")
        self.timeout = Config.HTTP_TIMEOUT_SECONDS if timeout is None else timeout
        self.admin_token = admin_token
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _admin_headers(self) -> Dict[str, str]:
        if not self.admin_token:
            raise StorefrontAPIError("Admin token is not configured", status_code=403)
        return {Config.ADMIN_TOKEN_HEADER: self.admin_token}

    def _fetch_json(self, path: str) -> Any:
        """GET ``path``; raises ``StorefrontAPIError`` when no usable body came back."""
        try:
            response = self.session.get(self._url(path), timeout=self.timeout)
        except requests.RequestException as e:
            raise StorefrontAPIError(f"Request to {path} failed: {e}") from e
        if response.status_code != 200:
            raise StorefrontAPIError(
                f"Request to {path} returned status {response.status_code}", response.status_code
            )
        try:
            return response.json()
        except ValueError as e:
            raise StorefrontAPIError(f"Request to {path} returned a non-JSON body") from e

    def _get_json(self, path: str) -> Any:
        """GET ``path``; returns ``None`` when the request fails for any reason."""
        try:
            return self._fetch_json(path)
        except StorefrontAPIError as e:
            logger.warning(e.message)
            return None

    def _admin_call(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = self.session.request(
                method,
                self._url(path),
                json=payload,
                headers=self._admin_headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StorefrontAPIError(f"{method} {path} failed: {e}") from e
        body = _json_or_empty(response)
        if response.status_code >= 400:
            raise StorefrontAPIError(body.get("error") or f"{method} {path} failed", response.status_code)
        return body

    # ------------------------------------------------------------------
    # Shopper reads
    # ------------------------------------------------------------------
    def fetch_flash_offer(self) -> Optional[FlashOfferSnapshot]:
        """
        Current flash offer, or ``None`` when the store has none configured.

        Unlike ``get_flash_offer`` a failed request raises ``StorefrontAPIError``
        so pollers can keep their last good snapshot.
        """
        payload = self._fetch_json("/api/flash-offer")
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise StorefrontAPIError("Malformed flash offer payload")
        try:
            return FlashOfferSnapshot.from_payload(payload)
        except (TypeError, ValueError) as e:
            raise StorefrontAPIError(f"Malformed flash offer payload: {e}") from e

    def get_flash_offer(self) -> Optional[FlashOfferSnapshot]:
        try:
            return self.fetch_flash_offer()
        except StorefrontAPIError as e:
            logger.warning(e.message)
            return None

    def get_time_challenge(self) -> Optional[Dict[str, Any]]:
        payload = self._get_json("/api/time-challenge")
        return payload if isinstance(payload, dict) else None

    def get_checkout_discount(self) -> int:
        payload = self._get_json("/api/checkout-discount")
        if not isinstance(payload, dict):
            return 0
        try:
            return max(0, min(100, int(payload.get("discountPercent") or 0)))
        except (TypeError, ValueError):
            return 0

    def get_promotional_settings(self) -> Optional[Dict[str, Any]]:
        payload = self._get_json("/api/promotional-settings")
        return payload if isinstance(payload, dict) else None

    def get_products(self) -> List[Dict[str, Any]]:
        payload = self._get_json("/api/products")
        return payload if isinstance(payload, list) else []

    def get_delivery_addresses(self) -> List[Dict[str, Any]]:
        payload = self._get_json("/api/delivery-addresses")
        return payload if isinstance(payload, list) else []

    # ------------------------------------------------------------------
    # Shopper writes
    # ------------------------------------------------------------------
    def submit_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.post(self._url("/api/orders"), json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise CheckoutError(f"Could not reach the store: {e}") from e

        body = _json_or_empty(response)
        if response.status_code >= 400:
            raise CheckoutError(
                body.get("error") or "Order could not be placed",
                status_code=response.status_code,
            )
        if not body.get("orderNumber"):
            raise CheckoutError("Order response did not include an order number", status_code=response.status_code)
        return body

    def claim_flash_offer(self) -> Tuple[bool, Optional[FlashOfferSnapshot]]:
        """Take one flash offer slot; ``(False, None)`` when the server could not be reached."""
        try:
            response = self.session.post(self._url("/api/flash-offer/claim"), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Flash offer claim failed: {e}")
            return False, None

        body = _json_or_empty(response)
        snapshot = FlashOfferSnapshot.from_payload(body.get("flashOffer"))
        return response.status_code == 200 and bool(body.get("success")), snapshot

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------
    def start_flash_offer(
        self,
        max_claims: Optional[int] = None,
        duration_seconds: Optional[int] = None,
        banner_text: Optional[str] = None,
    ) -> Optional[FlashOfferSnapshot]:
        payload: Dict[str, Any] = {}
        if max_claims is not None:
            payload["maxClaims"] = max_claims
        if duration_seconds is not None:
            payload["durationSeconds"] = duration_seconds
        if banner_text is not None:
            payload["bannerText"] = banner_text
        return FlashOfferSnapshot.from_payload(self._admin_call("POST", "/api/flash-offer/start", payload))

    def stop_flash_offer(self) -> Optional[FlashOfferSnapshot]:
        return FlashOfferSnapshot.from_payload(self._admin_call("POST", "/api/flash-offer/stop"))

    def update_checkout_discount(self, discount_percent: int) -> Dict[str, Any]:
        return self._admin_call("PATCH", "/api/checkout-discount", {"discountPercent": discount_percent})

    def update_time_challenge(self, **fields: Any) -> Dict[str, Any]:
        """Partial update; keyword names are the wire names (``isActive``, ``durationSeconds`` ...)."""
        return self._admin_call("PATCH", "/api/time-challenge", fields)

    def update_promotional_settings(self, banner_text: str, timer_seconds: int, delivery_text: str) -> Dict[str, Any]:
        return self._admin_call(
            "PATCH",
            "/api/promotional-settings",
            {"bannerText": banner_text, "timerSeconds": timer_seconds, "deliveryText": delivery_text},
        )

    def get_metrics(self) -> Dict[str, Any]:
        return self._admin_call("GET", "/admin/metrics")


def _json_or_empty(response: Any) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
