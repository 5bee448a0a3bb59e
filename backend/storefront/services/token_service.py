# Overview: Signed, time-bounded claims for login sessions and bill links.

"""
Signed Token Service

Tokens are `<payload>.<signature>`:
- payload:   base64url(JSON claims {"v", "typ", "sub", "iat", "exp"})
- signature: base64url(HMAC-SHA256(secret, payload))

The signature covers the encoded payload string exactly as transmitted,
so any change to either half fails verification.

Two families share the mechanism:
- session tokens: typ "store" (sub = store id) or "admin" (sub = email)
- bill capability tokens: typ "bill" (sub = order id)

verify() returns None for every failure (bad shape, bad signature, bad
JSON, wrong kind, expired). Callers cannot tell the reasons apart.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..time_utils import epoch_seconds


TOKEN_VERSION = 1

KIND_STORE = "store"
KIND_ADMIN = "admin"
KIND_BILL = "bill"

SESSION_KINDS = (KIND_STORE, KIND_ADMIN)

SESSION_TTL = timedelta(days=7)
BILL_TOKEN_TTL = timedelta(days=7)


def b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


@dataclass(frozen=True)
class Claims:
    """Verified token contents. Only TokenSigner.verify builds these from input."""
    version: int
    kind: str
    subject: str
    issued_at: int
    expires_at: int

    def to_payload(self) -> dict:
        return {
            "v": self.version,
            "typ": self.kind,
            "sub": self.subject,
            "iat": self.issued_at,
            "exp": self.expires_at,
        }


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class TokenSigner:
    """Mints and verifies tokens with one server-held secret."""

    def __init__(self, secret: str):
        if not secret:
            raise RuntimeError("SESSION_SECRET is not set")
        self._key = secret.encode("utf-8")

    def _sign(self, payload_b64: str) -> str:
        mac = hmac.new(self._key, payload_b64.encode("ascii"), hashlib.sha256).digest()
        return b64url_encode(mac)

    def mint(self, kind: str, subject: str, ttl: timedelta | int, *, now: int | None = None) -> str:
        if not kind or not subject:
            raise ValueError("kind and subject are required")

        issued_at = epoch_seconds() if now is None else int(now)
        ttl_seconds = int(ttl.total_seconds()) if isinstance(ttl, timedelta) else int(ttl)

        claims = Claims(
            version=TOKEN_VERSION,
            kind=kind,
            subject=subject,
            issued_at=issued_at,
            expires_at=issued_at + ttl_seconds,
        )
        payload_json = json.dumps(claims.to_payload(), separators=(",", ":"))
        payload_b64 = b64url_encode(payload_json.encode("utf-8"))
        return f"{payload_b64}.{self._sign(payload_b64)}"

    def verify(self, token: str | None, expected_kind: str, *, now: int | None = None) -> Claims | None:
        if not isinstance(token, str) or token.count(".") != 1:
            return None

        payload_b64, signature = token.split(".")
        if not payload_b64 or not signature:
            return None

        try:
            expected_signature = self._sign(payload_b64)
        except UnicodeEncodeError:
            return None

        if not hmac.compare_digest(
            signature.encode("utf-8", "replace"),
            expected_signature.encode("ascii"),
        ):
            return None

        try:
            data = json.loads(b64url_decode(payload_b64).decode("utf-8"))
        except (binascii.Error, ValueError, UnicodeDecodeError):
            return None

        if not isinstance(data, dict):
            return None

        version = data.get("v")
        kind = data.get("typ")
        subject = data.get("sub")
        issued_at = data.get("iat")
        expires_at = data.get("exp")

        if version != TOKEN_VERSION or isinstance(version, bool):
            return None
        if kind != expected_kind:
            return None
        if not isinstance(subject, str) or not subject:
            return None
        if not _is_number(expires_at):
            return None

        current = epoch_seconds() if now is None else int(now)
        if expires_at <= current:
            return None

        return Claims(
            version=TOKEN_VERSION,
            kind=kind,
            subject=subject,
            issued_at=int(issued_at) if _is_number(issued_at) else 0,
            expires_at=int(expires_at),
        )


def init_app(app) -> None:
    """Build the signer at startup; a missing secret aborts app creation."""
    app.extensions["token_signer"] = TokenSigner(app.config.get("SESSION_SECRET", ""))


def get_signer() -> TokenSigner:
    return current_app.extensions["token_signer"]


def mint_session_token(kind: str, subject: str, *, now: int | None = None) -> str:
    if kind not in SESSION_KINDS:
        raise ValueError(f"Unknown session kind: {kind}")
    return get_signer().mint(kind, subject, SESSION_TTL, now=now)


def verify_session_token(token: str | None, kind: str, *, now: int | None = None) -> Claims | None:
    return get_signer().verify(token, kind, now=now)


def mint_bill_token(order_id: str, *, now: int | None = None) -> str:
    return get_signer().mint(KIND_BILL, order_id, BILL_TOKEN_TTL, now=now)


def verify_bill_token(token: str | None, order_id: str, *, now: int | None = None) -> bool:
    claims = get_signer().verify(token, KIND_BILL, now=now)
    return claims is not None and claims.subject == order_id
