from __future__ import annotations

from flask import Blueprint, jsonify, request

from storefront.blueprints import require_admin
from storefront.database import get_db
from storefront.models import Product
from storefront.services.delivery_address_service import DeliveryAddressService
from storefront.services.order_service import OrderService

orders_bp = Blueprint("orders", __name__, url_prefix="/api")


@orders_bp.route("/products", methods=["GET"])
def list_products():
    db = get_db()
    products = db.query(Product).order_by(Product.display_order, Product.productID).all()
    return jsonify([product.to_dict() for product in products])


@orders_bp.route("/orders", methods=["POST"])
def create_order():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "JSON body required"}), 400

    success, message, order = OrderService(get_db()).create_order(payload)
    if not success:
        status_code = 500 if message.startswith("Error") else 400
        return jsonify({"error": message}), status_code
    return jsonify(order), 201


@orders_bp.route("/orders/<order_number>", methods=["GET"])
def get_order(order_number: str):
    order = OrderService(get_db()).get_order_by_number(order_number)
    if not order:
        return jsonify({"error": "Order not found"}), 404
    return jsonify(order.to_dict())


# ----------------------------------------------------------------------
# Delivery addresses
# ----------------------------------------------------------------------
@orders_bp.route("/delivery-addresses", methods=["GET"])
def list_delivery_addresses():
    addresses = DeliveryAddressService(get_db()).list_addresses()
    return jsonify([address.to_dict() for address in addresses])


@orders_bp.route("/delivery-addresses", methods=["POST"])
def create_delivery_address():
    require_admin()
    payload = request.get_json(silent=True) or {}
    success, message, address = DeliveryAddressService(get_db()).create_address(payload.get("name"))
    if not success:
        return jsonify({"error": message}), 400
    return jsonify(address.to_dict()), 201


@orders_bp.route("/delivery-addresses/<int:address_id>", methods=["PATCH"])
def update_delivery_address(address_id: int):
    require_admin()
    payload = request.get_json(silent=True) or {}
    success, message, address = DeliveryAddressService(get_db()).update_address(
        address_id,
        name=payload.get("name"),
        display_order=payload.get("displayOrder"),
    )
    if not success:
        status_code = 404 if message == "Delivery address not found" else 400
        return jsonify({"error": message}), status_code
    return jsonify(address.to_dict())


@orders_bp.route("/delivery-addresses/<int:address_id>", methods=["DELETE"])
def delete_delivery_address(address_id: int):
    require_admin()
    success, message = DeliveryAddressService(get_db()).delete_address(address_id)
    if not success:
        return jsonify({"error": message}), 404
    return jsonify({"success": True, "message": message})
