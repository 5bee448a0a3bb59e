"""
SMS gateway tests. The Twilio HTTP call is replaced with a fake httpx.post.
"""

import httpx
import pytest

from storefront.services import notification_service
from storefront.services.notification_service import (
    TwilioSmsGateway,
    format_phone_number,
    mask_phone,
    order_message,
)


class TestFormatting:

    @pytest.mark.parametrize("raw,expected", [
        ("9876543210", "+919876543210"),
        ("98765 43210", "+919876543210"),
        ("+91 98765-43210", "+919876543210"),
        ("14155550123", "+14155550123"),
    ])
    def test_e164(self, raw, expected):
        assert format_phone_number(raw) == expected

    def test_mask(self):
        assert mask_phone("+91 98765 43210") == "********3210"
        assert mask_phone("12") == "***"

    def test_order_messages(self):
        placed = order_message("ORD1", "https://x/bill", "pay_at_desk", settled=False)
        confirmed = order_message("ORD1", "https://x/bill", "pay_at_desk", settled=True)
        card = order_message("ORD1", "https://x/bill", "card", settled=True)

        assert "pay at the desk" in placed
        assert "confirmed" in confirmed
        assert "confirmed" in card
        assert all("https://x/bill" in m for m in (placed, confirmed, card))


class TestTwilioGateway:

    def _gateway(self, **overrides):
        settings = {
            "account_sid": "AC123",
            "auth_token": "secret",
            "from_number": "+15550001111",
        }
        settings.update(overrides)
        return TwilioSmsGateway(**settings, timeout=5.0)

    def test_posts_to_messages_endpoint(self, monkeypatch):
        calls = []

        def fake_post(url, **kwargs):
            calls.append((url, kwargs))
            return httpx.Response(201, json={"sid": "SM1"})

        monkeypatch.setattr(notification_service.httpx, "post", fake_post)

        assert self._gateway().send("9876543210", "hello") is True

        url, kwargs = calls[0]
        assert url == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
        assert kwargs["data"] == {"To": "+919876543210", "From": "+15550001111", "Body": "hello"}
        assert kwargs["auth"] == ("AC123", "secret")
        assert kwargs["timeout"] == 5.0

    def test_provider_error_reports_failure(self, monkeypatch):
        monkeypatch.setattr(
            notification_service.httpx, "post",
            lambda url, **kwargs: httpx.Response(400, json={"code": 21211, "message": "Invalid To"}),
        )
        assert self._gateway().send("9876543210", "hello") is False

    def test_network_error_reports_failure(self, monkeypatch):
        def boom(url, **kwargs):
            raise httpx.ConnectTimeout("timed out")

        monkeypatch.setattr(notification_service.httpx, "post", boom)
        assert self._gateway().send("9876543210", "hello") is False

    def test_unconfigured_gateway_does_not_call_out(self, monkeypatch):
        def unexpected(url, **kwargs):
            raise AssertionError("should not be called")

        monkeypatch.setattr(notification_service.httpx, "post", unexpected)
        assert self._gateway(auth_token="").send("9876543210", "hello") is False
