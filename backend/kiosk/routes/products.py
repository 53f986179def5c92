# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/kiosk/routes/products.py
"""
Catalog routes.

Reads are public; the storefront filters by ?country=. Writes require an
administrator. Stock changes only through /restock (and checkout).
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..errors import KioskError
from ..services import catalog_service
from ..decorators import require_auth, require_admin
from ..validation import json_object

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    Query params:
    - country: Iraq | Syria (optional)
    """
    try:
        products = catalog_service.list_products(request.args.get("country") or None)
        return jsonify({"products": [p.to_dict() for p in products]}), 200
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
        return jsonify({"product": product.to_dict()}), 200
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("")
@require_auth
@require_admin
def create_product():
    try:
        product = catalog_service.create_product(request.get_json(silent=True))
        return jsonify({"success": True, "product": product.to_dict()}), 201
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>")
@require_auth
@require_admin
def update_product(product_id: int):
    try:
        product = catalog_service.update_product(product_id, request.get_json(silent=True))
        return jsonify({"success": True, "product": product.to_dict()}), 200
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/restock")
@require_auth
@require_admin
def restock_product(product_id: int):
    try:
        data = json_object(request.get_json(silent=True))
        product = catalog_service.restock_product(product_id, data.get("quantity"))
        current_app.logger.info("Admin %s restocked product %s", g.current_user.id, product_id)
        return jsonify({"success": True, "product": product.to_dict()}), 200
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product(product_id: int):
    try:
        catalog_service.delete_product(product_id)
        return jsonify({"success": True, "message": "Product deleted"}), 200
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500
