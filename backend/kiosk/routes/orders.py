# Overview: Flask API routes for orders operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, current_app, g
from sqlalchemy.orm import joinedload

from ..errors import KioskError
from ..extensions import db
from ..models import Order
from ..services import ledger_service
from ..services.ledger_service import format_cents
from ..decorators import require_auth

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders():
    """Administrators see every order with its customer; users see their own."""
    try:
        query = db.session.query(Order).options(joinedload(Order.items))
        if g.current_user.is_admin:
            query = query.options(joinedload(Order.user))
        else:
            query = query.filter(Order.user_id == g.current_user.id)

        orders = query.order_by(Order.created_at.desc(), Order.id.desc()).all()
        return jsonify({
            "orders": [o.to_dict(include_user=g.current_user.is_admin) for o in orders]
        }), 200
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("")
@require_auth
def place_order():
    """
    Check out the caller's cart.

    Never fails for lack of balance: whatever the balance does not cover is
    added to the caller's outstanding debt and the order is PENDING_PAYMENT.
    """
    try:
        result = ledger_service.place_order(g.current_user)

        if result.has_pending_debt:
            message = (
                f"Order placed. {format_cents(result.remaining_debt_cents)} "
                "was added to your outstanding balance."
            )
        else:
            message = "Order placed successfully"

        return jsonify({
            "success": True,
            "order": result.order.to_dict(),
            "has_pending_debt": result.has_pending_debt,
            "remaining_debt_cents": result.remaining_debt_cents,
            "message": message,
        }), 201
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Internal server error"}), 500
