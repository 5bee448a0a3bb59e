# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

"""
Admin routes: store approval queue and admin bootstrap.

SECURITY:
- Store listing and approval require an admin session
- Approval and bootstrap are mutations and pass the Origin guard
- The bootstrap endpoint requires X-Setup-Token and is disabled in
  production unless ALLOW_ADMIN_SETUP is set
"""

import hmac

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_admin_session, require_same_origin
from ..services import account_service
from ..validation import StorefrontError, parse_text


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/stores")
@require_admin_session
def list_stores_route():
    try:
        stores = account_service.list_stores(request.args.get("status"))
        return jsonify({"stores": [store.to_dict() for store in stores]}), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list stores")
        return jsonify({"error": "Failed to fetch stores"}), 500


@admin_bp.post("/approve-store")
@require_same_origin
@require_admin_session
def approve_store_route():
    """
    Approve or deny a store.

    Request body:
    {
        "store_id": "shop01",
        "action": "approve" | "deny"
    }

    Denying an approved store revokes it.
    """
    data = request.get_json(silent=True) or {}
    try:
        store_id = parse_text(data.get("store_id"), "store_id")
        action = parse_text(data.get("action"), "action")
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code

    if not store_id or not action:
        return jsonify({"error": "store_id and action required"}), 400

    try:
        store = account_service.set_store_status(store_id, action, g.admin_email)
        current_app.logger.info("Admin %s set store %s to %s", g.admin_email, store_id, store.status)
        return jsonify({"success": True, "store": store.to_dict()}), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update store status")
        return jsonify({"error": "Failed to update store status"}), 500


@admin_bp.post("/setup")
@require_same_origin
def setup_admin_route():
    """
    Create an admin account, or reset an existing admin's password.

    Requires the X-Setup-Token header to match ADMIN_SETUP_TOKEN.
    """
    config = current_app.config

    if config.get("APP_ENV") == "production" and not config.get("ALLOW_ADMIN_SETUP"):
        return jsonify({"error": "Not found"}), 404

    expected = config.get("ADMIN_SETUP_TOKEN") or ""
    if not expected:
        current_app.logger.error("Admin setup requested but ADMIN_SETUP_TOKEN is not configured")
        return jsonify({"error": "Setup is not configured"}), 500

    provided = request.headers.get("X-Setup-Token") or ""
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        return jsonify({"error": "Unauthorized"}), 401

    data = request.get_json(silent=True) or {}
    try:
        admin, created = account_service.upsert_admin(data.get("email"), data.get("password") or "")
        current_app.logger.info("Admin %s %s via setup endpoint", admin.email, "created" if created else "updated")
        return jsonify({
            "success": True,
            "created": created,
            "admin": admin.to_dict(),
        }), 201 if created else 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Admin setup failed")
        return jsonify({"error": "Setup failed"}), 500
