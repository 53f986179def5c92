# Overview: Flask API routes for user administration; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import KioskError
from ..extensions import db
from ..models import User
from ..services import ledger_service
from ..services.ledger_service import format_cents
from ..decorators import require_auth, require_admin
from ..validation import json_object

admin_users_bp = Blueprint("admin_users", __name__, url_prefix="/api/admin/users")
users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@admin_users_bp.get("")
@require_auth
@require_admin
def list_users():
    try:
        users = db.session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
        return jsonify({"users": [u.to_dict() for u in users]}), 200
    except Exception:
        current_app.logger.exception("Failed to list users")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.post("/settle-debt")
@require_auth
@require_admin
def settle_debt():
    """
    Body: {user_id, amount_cents}.

    Payments larger than the debt are clamped; the response reports the
    amount actually applied.
    """
    try:
        data = json_object(request.get_json(silent=True))
        result = ledger_service.settle_debt(g.current_user, data.get("user_id"), data.get("amount_cents"))

        if result.remaining_debt_cents == 0:
            message = "Debt fully settled"
        else:
            message = f"Settled {format_cents(result.amount_settled_cents)}. " \
                      f"{format_cents(result.remaining_debt_cents)} still outstanding."

        return jsonify({
            "success": True,
            "user_id": result.user_id,
            "amount_settled_cents": result.amount_settled_cents,
            "remaining_debt_cents": result.remaining_debt_cents,
            "completed_order_count": result.completed_order_count,
            "message": message,
        }), 200
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to settle debt")
        return jsonify({"error": "Internal server error"}), 500
