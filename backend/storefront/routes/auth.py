# Overview: Flask API routes for store and admin authentication; parses input and returns JSON responses.

"""
Authentication routes

Sessions are signed tokens carried in HttpOnly cookies:
- store-session: subject = store id
- admin-session: subject = admin email

SECURITY:
- Every mutation passes the Origin guard before any business logic
- Legacy password hashes are upgraded during login (account_service)
- Logout responses are never cached
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_same_origin
from ..services import account_service, session_service
from ..services.token_service import KIND_ADMIN, KIND_STORE
from ..validation import StorefrontError


auth_bp = Blueprint("auth", __name__, url_prefix="/api")


def _no_store(response):
    response.headers["Cache-Control"] = "no-store"
    return response


# =============================================================================
# Store operators
# =============================================================================

@auth_bp.post("/store/auth/signup")
@require_same_origin
def store_signup_route():
    """
    Register a store. The account stays pending until an admin approves it.
    """
    data = request.get_json(silent=True) or {}
    try:
        store = account_service.signup_store(
            data.get("store_id"),
            data.get("email"),
            data.get("password") or "",
        )
        return jsonify({
            "message": "Registration successful! Your account is pending admin approval.",
            "store": store.to_dict(),
        }), 201
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Store signup failed")
        return jsonify({"error": "Registration failed. Please try again."}), 500


@auth_bp.post("/store/auth/login")
@require_same_origin
def store_login_route():
    data = request.get_json(silent=True) or {}
    store_id = data.get("store_id")
    password = data.get("password")

    if not store_id or not password:
        return jsonify({"error": "Store ID and password are required"}), 400

    try:
        store = account_service.authenticate_store(store_id, password)
        response = jsonify({"store_id": store.store_id, "email": store.email})
        return session_service.start_session(response, KIND_STORE, store.store_id), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Store login failed")
        return jsonify({"error": "Login failed. Please try again."}), 500


@auth_bp.post("/store/auth/logout")
@require_same_origin
def store_logout_route():
    response = jsonify({"success": True})
    session_service.end_session(response, KIND_STORE)
    return _no_store(response), 200


@auth_bp.get("/store/auth/session")
def store_session_route():
    claims = session_service.read_session(KIND_STORE)
    if not claims:
        return jsonify({"authenticated": False}), 401
    return jsonify({"authenticated": True, "store_id": claims.subject}), 200


# =============================================================================
# Administrators
# =============================================================================

@auth_bp.post("/admin/auth/login")
@require_same_origin
def admin_login_route():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    try:
        admin = account_service.authenticate_admin(email, password)
        response = jsonify({"email": admin.email})
        return session_service.start_session(response, KIND_ADMIN, admin.email), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Admin login failed")
        return jsonify({"error": "Login failed. Please try again."}), 500


@auth_bp.post("/admin/auth/logout")
@require_same_origin
def admin_logout_route():
    response = jsonify({"success": True})
    session_service.end_session(response, KIND_ADMIN)
    return _no_store(response), 200


@auth_bp.get("/admin/auth/session")
def admin_session_route():
    claims = session_service.read_session(KIND_ADMIN)
    if not claims:
        return jsonify({"authenticated": False}), 401
    return jsonify({"authenticated": True, "email": claims.subject}), 200
