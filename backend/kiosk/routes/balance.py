# Overview: Flask API routes for balance operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import KioskError, UserNotFoundError
from ..extensions import db
from ..models import User
from ..services import ledger_service
from ..decorators import require_auth, require_admin
from ..validation import json_object

balance_bp = Blueprint("balance", __name__, url_prefix="/api/balance")


@balance_bp.get("")
@require_auth
def get_balance():
    """The caller's balance and debt, read fresh (not from the session snapshot)."""
    try:
        user = db.session.get(User, g.current_user.id)
        if not user:
            raise UserNotFoundError(g.current_user.id)
        return jsonify({
            "balance_cents": user.balance_cents,
            "outstanding_debt_cents": user.outstanding_debt_cents,
        }), 200
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load balance")
        return jsonify({"error": "Internal server error"}), 500


@balance_bp.post("")
@require_auth
@require_admin
def add_balance():
    """Body: {user_id, amount_cents}."""
    try:
        data = json_object(request.get_json(silent=True))
        result = ledger_service.add_balance(g.current_user, data.get("user_id"), data.get("amount_cents"))
        return jsonify({
            "success": True,
            "user_id": result.user_id,
            "amount_cents": result.amount_cents,
            "new_balance_cents": result.new_balance_cents,
            "message": result.message,
        }), 200
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add balance")
        return jsonify({"error": "Internal server error"}), 500
