# Overview: Request and session decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import origin_guard, session_service
from .services.token_service import KIND_ADMIN, KIND_STORE


def require_same_origin(f):
    """
    Reject cross-site mutations by Origin header.

    Returns 403 when the Origin header is present and not allow-listed,
    or when no allow-list is configured at all.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        origin = request.headers.get("Origin")
        decision = origin_guard.check(origin)
        if not decision.allowed:
            current_app.logger.warning("Blocked %s %s from origin %r", request.method, request.path, origin)
            return jsonify({"error": decision.reason}), 403
        return f(*args, **kwargs)

    return decorated_function


def require_store_session(f):
    """
    Require a valid store session cookie.

    Sets g.store_id to the session's store id.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        claims = session_service.read_session(KIND_STORE)
        if not claims:
            return jsonify({"error": "Unauthorized"}), 401

        g.store_id = claims.subject
        return f(*args, **kwargs)

    return decorated_function


def require_admin_session(f):
    """
    Require a valid admin session cookie.

    Sets g.admin_email to the session's admin email.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        claims = session_service.read_session(KIND_ADMIN)
        if not claims:
            return jsonify({"error": "Unauthorized"}), 401

        g.admin_email = claims.subject
        return f(*args, **kwargs)

    return decorated_function
