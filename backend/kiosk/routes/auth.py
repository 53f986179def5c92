# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/kiosk/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on registration
- Same 401 message for unknown phone, wrong password and wrong role
- Administrator accounts can only be created by an administrator (or the CLI)
- Session management with token-based auth
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import KioskError
from ..extensions import db
from ..models import User
from ..models.users import ROLE_ADMIN, ROLE_USER
from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth, require_admin
from ..validation import json_object


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
user_bp = Blueprint("user", __name__, url_prefix="/api/user")


def _register(role: str):
    data = json_object(request.get_json(silent=True))
    user = auth_service.create_user(
        name=data.get("name"),
        phone=data.get("phone"),
        password=data.get("password"),
        country=data.get("country"),
        role=role,
    )
    return jsonify({
        "success": True,
        "user": user.to_dict(),
        "message": "Registration successful",
    }), 201


def _login(require_role: str | None):
    data = json_object(request.get_json(silent=True))
    user = auth_service.authenticate(
        data.get("phone"),
        data.get("password"),
        require_role=require_role,
    )

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )

    return jsonify({
        "success": True,
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "message": "Login successful",
    }), 200


@auth_bp.post("/register")
def register_route():
    """Customer self-registration. Always creates a USER account."""
    try:
        return _register(ROLE_USER)
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/admin/register")
@require_auth
@require_admin
def admin_register_route():
    """Create another administrator. The first one comes from `flask users create-admin`."""
    try:
        response, status = _register(ROLE_ADMIN)
        current_app.logger.info("Admin %s created a new administrator account", g.current_user.id)
        return response, status
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register administrator")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by phone and password and create a session token.

    The token must be sent as `Authorization: Bearer <token>` on protected routes.
    """
    try:
        return _login(None)
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/admin/login")
def admin_login_route():
    try:
        return _login(ROLE_ADMIN)
    except KioskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to login administrator")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.session_token)
        return jsonify({"success": True, "message": "Logout successful"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@user_bp.get("/me")
@require_auth
def me_route():
    """Current user, read fresh from the database."""
    try:
        user = db.session.get(User, g.current_user.id)
        return jsonify({"success": True, "user": user.to_dict()}), 200
    except Exception:
        current_app.logger.exception("Failed to load current user")
        return jsonify({"error": "Internal server error"}), 500
