# Overview: Session cookies carrying signed store/admin tokens.

"""
Session Cookie Management

Sessions are self-contained signed tokens (see token_service); nothing is
stored server-side. A cookie value is attacker-controlled input until
verify_session_token accepts it.

Cookies: HttpOnly, SameSite=Lax, Secure when SESSION_COOKIE_SECURE,
max-age 7 days. Logout re-sets the cookie empty with max-age 0.
"""

from flask import current_app, request

from .token_service import (
    KIND_ADMIN,
    KIND_STORE,
    SESSION_TTL,
    Claims,
    mint_session_token,
    verify_session_token,
)


STORE_COOKIE = "store-session"
ADMIN_COOKIE = "admin-session"

COOKIE_NAMES = {
    KIND_STORE: STORE_COOKIE,
    KIND_ADMIN: ADMIN_COOKIE,
}


def _cookie_kwargs(max_age: int) -> dict:
    return {
        "max_age": max_age,
        "httponly": True,
        "secure": bool(current_app.config.get("SESSION_COOKIE_SECURE")),
        "samesite": "Lax",
        "path": "/",
    }


def start_session(response, kind: str, subject: str):
    token = mint_session_token(kind, subject)
    response.set_cookie(
        COOKIE_NAMES[kind],
        token,
        **_cookie_kwargs(int(SESSION_TTL.total_seconds())),
    )
    return response


def end_session(response, kind: str):
    response.set_cookie(COOKIE_NAMES[kind], "", **_cookie_kwargs(0))
    return response


def read_session(kind: str) -> Claims | None:
    """Verified claims from the request's session cookie, or None."""
    token = request.cookies.get(COOKIE_NAMES[kind])
    if not token:
        return None
    return verify_session_token(token, kind)


def current_store_id() -> str | None:
    claims = read_session(KIND_STORE)
    return claims.subject if claims else None
