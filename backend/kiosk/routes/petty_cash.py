# Overview: Flask API routes for petty cash operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import KioskError
from ..services import petty_cash_service
from ..decorators import require_auth, require_admin
from ..validation import json_object

petty_cash_bp = Blueprint("petty_cash", __name__, url_prefix="/api/petty-cash")


@petty_cash_bp.get("")
@require_auth
@require_admin
def list_petty_cash():
    try:
        return jsonify(petty_cash_service.list_entries()), 200
    except Exception:
        current_app.logger.exception("Failed to list petty cash")
        return jsonify({"error": "Internal server error"}), 500


@petty_cash_bp.post("")
@require_auth
@require_admin
def create_petty_cash_entry():
    """Body: {amount_cents, description, type: INCOME|EXPENSE}."""
    try:
        entry = petty_cash_service.record_manual_entry(
            payload=json_object(request.get_json(silent=True)),
            actor_user_id=g.current_user.id,
        )
        return jsonify({"success": True, "transaction": entry.to_dict()}), 201
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record petty cash entry")
        return jsonify({"error": "Internal server error"}), 500


@petty_cash_bp.get("/history")
@require_auth
@require_admin
def petty_cash_history():
    """
    Query params:
    - start_date, end_date: ISO dates (end date includes the whole day)
    - type: ALL | INCOME | EXPENSE | PENDING_INCOME
    - search: substring of the description
    """
    try:
        result = petty_cash_service.history(
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            entry_type=request.args.get("type"),
            search=request.args.get("search"),
        )
        return jsonify(result), 200
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load petty cash history")
        return jsonify({"error": "Internal server error"}), 500
