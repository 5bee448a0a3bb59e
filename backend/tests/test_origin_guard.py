"""
CSRF origin guard tests.

Verifies:
- origins normalize to scheme://host[:port]
- missing Origin is allowed
- unlisted Origin is denied; no allow-list at all denies (fail closed)
- mutation endpoints answer 403 before any business logic runs
"""

import pytest

from storefront.models import AdminUser, StoreAccount
from storefront.services.origin_guard import check, normalize_origin, parse_allowed_origins


ALLOWED_ORIGIN = "http://localhost:5173"


class TestNormalize:

    @pytest.mark.parametrize("raw,expected", [
        ("https://Shop.Example.com", "https://shop.example.com"),
        ("https://shop.example.com:443", "https://shop.example.com"),
        ("http://shop.example.com:80/", "http://shop.example.com"),
        ("http://localhost:5173/path?q=1", "http://localhost:5173"),
        ("  https://shop.example.com  ", "https://shop.example.com"),
        ("http://[::1]:8080", "http://[::1]:8080"),
        ("null", "null"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_origin(raw) == expected

    def test_allowed_origins_falls_back_to_public_base_url(self):
        assert parse_allowed_origins("", "https://shop.example.com/app") == frozenset({"https://shop.example.com"})
        assert parse_allowed_origins("http://a.test, http://b.test:8080", "https://ignored.test") == frozenset(
            {"http://a.test", "http://b.test:8080"}
        )
        assert parse_allowed_origins("", "") == frozenset()


class TestCheck:

    allowed = frozenset({"https://shop.example.com"})

    def test_no_origin_allowed(self):
        assert check(None, self.allowed).allowed is True
        assert check("", frozenset()).allowed is True

    def test_listed_origin_allowed(self):
        assert check("https://SHOP.example.com:443", self.allowed).allowed is True

    def test_unlisted_origin_denied(self):
        decision = check("https://evil.example.com", self.allowed)
        assert decision.allowed is False
        assert decision.reason

    def test_fail_closed_without_allow_list(self):
        decision = check("https://shop.example.com", frozenset())
        assert decision.allowed is False
        assert "ALLOWED_ORIGINS" in decision.reason


class TestGuardedRoutes:

    @pytest.mark.parametrize("path", [
        "/api/store/auth/signup",
        "/api/store/auth/login",
        "/api/admin/auth/login",
        "/api/admin/approve-store",
        "/api/customer/checkout",
        "/api/customer/otp/send",
        "/api/store/products",
        "/api/store/orders/approve",
        "/api/admin/setup",
    ])
    def test_foreign_origin_rejected(self, client, db_session, path):
        resp = client.post(path, json={}, headers={"Origin": "https://evil.example.com"})
        assert resp.status_code == 403

    def test_rejected_before_business_logic(self, client, db_session):
        resp = client.post(
            "/api/store/auth/signup",
            json={"store_id": "shop99", "email": "x@example.com", "password": "Secret1"},
            headers={"Origin": "https://evil.example.com"},
        )
        assert resp.status_code == 403
        assert db_session.query(StoreAccount).filter_by(store_id="shop99").first() is None

    def test_admin_setup_rejected_even_with_setup_token(self, client, db_session):
        resp = client.post(
            "/api/admin/setup",
            json={"email": "boss@example.com", "password": "Boss1234"},
            headers={"Origin": "https://evil.example.com", "X-Setup-Token": "setup-token"},
        )
        assert resp.status_code == 403
        assert db_session.query(AdminUser).filter_by(email="boss@example.com").first() is None

    def test_allowed_origin_passes(self, client, db_session):
        resp = client.post(
            "/api/store/auth/signup",
            json={"store_id": "shop99", "email": "x@example.com", "password": "Secret1"},
            headers={"Origin": ALLOWED_ORIGIN},
        )
        assert resp.status_code == 201
        assert resp.headers["Access-Control-Allow-Origin"] == ALLOWED_ORIGIN
        assert resp.headers["Access-Control-Allow-Credentials"] == "true"

    def test_fail_closed_when_unconfigured(self, app, client, db_session):
        original = (app.config["ALLOWED_ORIGINS"], app.config["PUBLIC_BASE_URL"])
        app.config["ALLOWED_ORIGINS"] = ""
        app.config["PUBLIC_BASE_URL"] = ""
        try:
            resp = client.post(
                "/api/store/auth/login",
                json={"store_id": "shop01", "password": "Secret1"},
                headers={"Origin": ALLOWED_ORIGIN},
            )
            assert resp.status_code == 403
        finally:
            app.config["ALLOWED_ORIGINS"], app.config["PUBLIC_BASE_URL"] = original
