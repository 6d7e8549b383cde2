from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Blueprint, jsonify, request

from storefront.blueprints import require_admin
from storefront.database import get_db
from storefront.services.flash_offer_service import FlashOfferService
from storefront.services.promotion_settings_service import PromotionSettingsService

promotions_bp = Blueprint("promotions", __name__, url_prefix="/api")


def _get_flash_offer_service() -> FlashOfferService:
    return FlashOfferService(get_db())


def _get_settings_service() -> PromotionSettingsService:
    return PromotionSettingsService(get_db())


def _optional_int(payload: Dict[str, Any], key: str) -> Optional[int]:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{key} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be an integer")


# ----------------------------------------------------------------------
# Flash offer
# ----------------------------------------------------------------------
@promotions_bp.route("/flash-offer", methods=["GET"])
def get_flash_offer():
    offer = _get_flash_offer_service().get_flash_offer()
    return jsonify(offer.to_dict() if offer else None)


@promotions_bp.route("/flash-offer/start", methods=["POST"])
def start_flash_offer():
    require_admin()
    payload = request.get_json(silent=True) or {}
    try:
        max_claims = _optional_int(payload, "maxClaims")
        duration = _optional_int(payload, "durationSeconds")
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    banner_text = payload.get("bannerText")
    if banner_text is not None and not isinstance(banner_text, str):
        return jsonify({"error": "bannerText must be a string"}), 400

    success, message, offer = _get_flash_offer_service().start_flash_offer(
        max_claims=max_claims,
        duration_seconds=duration,
        banner_text=banner_text,
    )
    if not success:
        return jsonify({"error": message}), 400
    return jsonify(offer.to_dict())


@promotions_bp.route("/flash-offer/stop", methods=["POST"])
def stop_flash_offer():
    require_admin()
    success, message, offer = _get_flash_offer_service().stop_flash_offer()
    if not success:
        return jsonify({"error": message}), 404
    return jsonify(offer.to_dict())


@promotions_bp.route("/flash-offer/claim", methods=["POST"])
def claim_flash_offer():
    success, message, offer = _get_flash_offer_service().claim_flash_offer()
    response: Dict[str, Any] = {
        "success": success,
        "message": message,
        "flashOffer": offer.to_dict() if offer else None,
        "spotsRemaining": offer.get_spots_remaining() if offer else 0,
    }
    return jsonify(response), 200 if success else 409


# ----------------------------------------------------------------------
# Checkout discount
# ----------------------------------------------------------------------
@promotions_bp.route("/checkout-discount", methods=["GET"])
def get_checkout_discount():
    return jsonify(_get_settings_service().get_checkout_discount().to_dict())


@promotions_bp.route("/checkout-discount", methods=["PATCH"])
def update_checkout_discount():
    require_admin()
    payload = request.get_json(silent=True) or {}
    if "discountPercent" not in payload:
        return jsonify({"error": "discountPercent is required"}), 400

    success, message, discount = _get_settings_service().update_checkout_discount(payload["discountPercent"])
    if not success:
        return jsonify({"error": message}), 400
    return jsonify(discount.to_dict())


# ----------------------------------------------------------------------
# Time challenge settings
# ----------------------------------------------------------------------
@promotions_bp.route("/time-challenge", methods=["GET"])
def get_time_challenge():
    return jsonify(_get_settings_service().get_time_challenge().to_dict())


@promotions_bp.route("/time-challenge", methods=["PATCH"])
def update_time_challenge():
    require_admin()
    payload = request.get_json(silent=True) or {}
    success, message, challenge = _get_settings_service().update_time_challenge(payload)
    if not success:
        return jsonify({"error": message}), 400
    return jsonify(challenge.to_dict())


# ----------------------------------------------------------------------
# Promotional banner
# ----------------------------------------------------------------------
@promotions_bp.route("/promotional-settings", methods=["GET"])
def get_promotional_settings():
    return jsonify(_get_settings_service().get_promotional_settings().to_dict())


@promotions_bp.route("/promotional-settings", methods=["PATCH"])
def update_promotional_settings():
    require_admin()
    payload = request.get_json(silent=True) or {}
    success, message, settings = _get_settings_service().update_promotional_settings(
        banner_text=payload.get("bannerText"),
        timer_seconds=payload.get("timerSeconds"),
        delivery_text=payload.get("deliveryText"),
    )
    if not success:
        return jsonify({"error": message}), 400
    return jsonify(settings.to_dict())
