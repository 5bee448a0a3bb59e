"""
Signed token tests.

Verifies:
- mint/verify round-trip before expiry, invalid at and after expiry
- any flipped byte in payload or signature invalidates the token
- kinds are isolated (store token is not an admin token)
- bill tokens are bound to one order id
- a missing signing secret stops app creation
"""

import json

import pytest

from storefront import create_app
from storefront.services.token_service import (
    KIND_ADMIN,
    KIND_BILL,
    KIND_STORE,
    SESSION_TTL,
    TokenSigner,
    b64url_decode,
    b64url_encode,
    mint_bill_token,
    verify_bill_token,
)


NOW = 1_700_000_000


@pytest.fixture
def signer():
    return TokenSigner("unit-test-secret")


def _flip(text: str, index: int) -> str:
    replacement = "A" if text[index] != "A" else "B"
    return text[:index] + replacement + text[index + 1:]


# =============================================================================
# ROUND-TRIP AND EXPIRY
# =============================================================================


class TestRoundTrip:

    @pytest.mark.parametrize("kind,subject", [
        (KIND_STORE, "shop01"),
        (KIND_ADMIN, "admin@example.com"),
        (KIND_BILL, "ORD1700000000000ABCDEF"),
    ])
    def test_verify_returns_claims(self, signer, kind, subject):
        token = signer.mint(kind, subject, SESSION_TTL, now=NOW)
        claims = signer.verify(token, kind, now=NOW + 60)

        assert claims is not None
        assert claims.kind == kind
        assert claims.subject == subject
        assert claims.issued_at == NOW
        assert claims.expires_at == NOW + int(SESSION_TTL.total_seconds())

    def test_expired_token_is_invalid(self, signer):
        token = signer.mint(KIND_STORE, "shop01", 60, now=NOW)

        assert signer.verify(token, KIND_STORE, now=NOW + 59) is not None
        assert signer.verify(token, KIND_STORE, now=NOW + 60) is None
        assert signer.verify(token, KIND_STORE, now=NOW + 3600) is None

    def test_payload_is_compact_json(self, signer):
        token = signer.mint(KIND_STORE, "shop01", 60, now=NOW)
        payload_b64, _ = token.split(".")
        payload = json.loads(b64url_decode(payload_b64))

        assert payload == {"v": 1, "typ": "store", "sub": "shop01", "iat": NOW, "exp": NOW + 60}
        assert "=" not in token


# =============================================================================
# TAMPERING
# =============================================================================


class TestTamperDetection:

    def test_every_flipped_character_is_rejected(self, signer):
        token = signer.mint(KIND_STORE, "shop01", SESSION_TTL, now=NOW)
        for index, char in enumerate(token):
            if char == ".":
                continue
            tampered = _flip(token, index)
            assert signer.verify(tampered, KIND_STORE, now=NOW) is None, f"index {index} accepted"

    def test_forged_payload_with_original_signature(self, signer):
        token = signer.mint(KIND_STORE, "shop01", SESSION_TTL, now=NOW)
        _, signature = token.split(".")
        forged = b64url_encode(json.dumps(
            {"v": 1, "typ": "store", "sub": "shop02", "iat": NOW, "exp": NOW + 999}
        ).encode())

        assert signer.verify(f"{forged}.{signature}", KIND_STORE, now=NOW) is None

    def test_other_secret_rejected(self, signer):
        token = TokenSigner("another-secret").mint(KIND_STORE, "shop01", SESSION_TTL, now=NOW)
        assert signer.verify(token, KIND_STORE, now=NOW) is None

    @pytest.mark.parametrize("token", [
        None,
        "",
        "no-dot",
        "a.b.c",
        ".sig",
        "payload.",
        "!!!.???",
        "café.sig",
    ])
    def test_malformed_tokens_never_raise(self, signer, token):
        assert signer.verify(token, KIND_STORE, now=NOW) is None

    def test_signed_non_object_payload_is_invalid(self, signer):
        payload_b64 = b64url_encode(b"[1, 2, 3]")
        token = f"{payload_b64}.{signer._sign(payload_b64)}"
        assert signer.verify(token, KIND_STORE, now=NOW) is None

    def test_signed_payload_missing_expiry_is_invalid(self, signer):
        payload_b64 = b64url_encode(json.dumps({"v": 1, "typ": "store", "sub": "shop01"}).encode())
        token = f"{payload_b64}.{signer._sign(payload_b64)}"
        assert signer.verify(token, KIND_STORE, now=NOW) is None


# =============================================================================
# KIND ISOLATION
# =============================================================================


class TestKindIsolation:

    def test_store_token_is_not_admin(self, signer):
        token = signer.mint(KIND_STORE, "shop01", SESSION_TTL, now=NOW)
        assert signer.verify(token, KIND_ADMIN, now=NOW) is None

    def test_session_token_is_not_bill(self, signer):
        token = signer.mint(KIND_STORE, "ORD1", SESSION_TTL, now=NOW)
        assert signer.verify(token, KIND_BILL, now=NOW) is None


class TestBillTokens:

    def test_bound_to_order(self, app):
        token = mint_bill_token("ORD-A")
        assert verify_bill_token(token, "ORD-A") is True
        assert verify_bill_token(token, "ORD-B") is False

    def test_missing_token(self, app):
        assert verify_bill_token(None, "ORD-A") is False


# =============================================================================
# CONFIGURATION
# =============================================================================


class TestSecretConfiguration:

    def test_empty_secret_rejected(self):
        with pytest.raises(RuntimeError):
            TokenSigner("")

    def test_app_refuses_to_start_without_secret(self):
        with pytest.raises(RuntimeError):
            create_app({
                'TESTING': True,
                'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
                'SESSION_SECRET': '',
            })
