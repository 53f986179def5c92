# Overview: Flask API routes for cart operations; parses input and returns JSON responses.

"""
Cart routes. Every route acts on the caller's own cart only.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import KioskError
from ..services import cart_service
from ..decorators import require_auth
from ..validation import json_object

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.get("")
@require_auth
def get_cart():
    try:
        cart = cart_service.get_cart(g.current_user)
        return jsonify({"cart": cart.to_dict()}), 200
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load cart")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.post("")
@require_auth
def add_to_cart():
    """Body: {product_id, quantity=1}. Quantities accumulate on an existing line."""
    try:
        data = json_object(request.get_json(silent=True))
        item = cart_service.add_item(g.current_user, data.get("product_id"), data.get("quantity", 1))
        return jsonify({"success": True, "item": item.to_dict()}), 201
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add item to cart")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("")
@require_auth
def clear_cart():
    try:
        removed = cart_service.clear_cart(g.current_user)
        return jsonify({"success": True, "removed": removed, "message": "Cart cleared"}), 200
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to clear cart")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.patch("/<int:cart_item_id>")
@require_auth
def update_cart_item(cart_item_id: int):
    try:
        data = json_object(request.get_json(silent=True))
        item = cart_service.update_item_quantity(g.current_user, cart_item_id, data.get("quantity"))
        return jsonify({"success": True, "item": item.to_dict()}), 200
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("/<int:cart_item_id>")
@require_auth
def remove_cart_item(cart_item_id: int):
    try:
        cart_service.remove_item(g.current_user, cart_item_id)
        return jsonify({"success": True, "message": "Item removed from cart"}), 200
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to remove cart item")
        return jsonify({"error": "Internal server error"}), 500
