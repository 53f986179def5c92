from flask import Blueprint, jsonify, request, current_app

from ..decorators import require_auth, require_admin
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/admin/reports")


@reports_bp.get("")
@require_auth
@require_admin
def summary_report():
    timeframe = request.args.get("timeframe", "all")

    try:
        report = reporting_service.summary_report(timeframe)
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify(exc.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to generate report")
        return jsonify({"error": "Internal server error"}), 500
