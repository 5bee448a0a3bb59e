# Overview: SMS delivery for OTP codes and order confirmations.

"""
Notification Gateway

Contract: send(to, body) -> bool. The gateway never raises; a False result
is logged by the caller and never fails the business operation that
triggered it (orders are already committed when we notify).

TwilioSmsGateway posts to the Twilio Messages REST endpoint with httpx.
Tests swap app.extensions["sms_gateway"] for a recording fake.
"""

from __future__ import annotations

import logging
import re

import httpx
from flask import current_app

from ..models.orders import PAYMENT_AT_DESK


logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"


def mask_phone(phone: str) -> str:
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) <= 4:
        return "***"
    return "*" * (len(digits) - 4) + digits[-4:]


def format_phone_number(phone: str, default_country_code: str = "91") -> str:
    """Format a phone number as E.164; bare 10-digit numbers get the default country code."""
    cleaned = re.sub(r"\D", "", phone or "")
    if len(cleaned) == 10:
        return f"+{default_country_code}{cleaned}"
    return f"+{cleaned}"


class TwilioSmsGateway:
    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        *,
        default_country_code: str = "91",
        timeout: float = 10.0,
        api_base: str = TWILIO_API_BASE,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.default_country_code = default_country_code
        self.timeout = timeout
        self.api_base = api_base.rstrip("/")

    def missing_settings(self) -> list[str]:
        missing = []
        if not self.account_sid:
            missing.append("TWILIO_ACCOUNT_SID")
        if not self.auth_token:
            missing.append("TWILIO_AUTH_TOKEN")
        if not self.from_number:
            missing.append("TWILIO_PHONE_NUMBER")
        return missing

    def send(self, to: str, body: str) -> bool:
        formatted = format_phone_number(to, self.default_country_code)

        missing = self.missing_settings()
        if missing:
            logger.error("SMS gateway not configured; missing %s", ", ".join(missing))
            return False

        url = f"{self.api_base}/Accounts/{self.account_sid}/Messages.json"
        try:
            response = httpx.post(
                url,
                data={"To": formatted, "From": self.from_number, "Body": body},
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            logger.error("SMS to %s failed: %s", mask_phone(formatted), exc)
            return False

        if response.status_code >= 400:
            code = None
            try:
                code = response.json().get("code")
            except ValueError:
                pass
            logger.error(
                "SMS to %s rejected: HTTP %s (provider code %s)",
                mask_phone(formatted), response.status_code, code,
            )
            return False

        logger.info("SMS sent to %s", mask_phone(formatted))
        return True


def init_app(app) -> None:
    config = app.config
    app.extensions["sms_gateway"] = TwilioSmsGateway(
        account_sid=config.get("TWILIO_ACCOUNT_SID", ""),
        auth_token=config.get("TWILIO_AUTH_TOKEN", ""),
        from_number=config.get("TWILIO_PHONE_NUMBER", ""),
        default_country_code=config.get("SMS_DEFAULT_COUNTRY_CODE", "91"),
        timeout=config.get("SMS_TIMEOUT_SECONDS", 10.0),
    )


def get_gateway():
    return current_app.extensions["sms_gateway"]


def absolute_url(path: str) -> str:
    base = (current_app.config.get("PUBLIC_BASE_URL") or "").rstrip("/")
    return f"{base}{path}"


def otp_message(code: str) -> str:
    return f"Your OTP code is {code}. It expires in 10 minutes. Do not share this code with anyone."


def order_message(order_id: str, bill_url: str, payment_method: str, settled: bool) -> str:
    if payment_method == PAYMENT_AT_DESK and not settled:
        return f"Your order {order_id} has been placed. Please pay at the desk. Download your bill: {bill_url}"
    return f"Your order {order_id} has been confirmed. Download your bill: {bill_url}"


def send_otp_sms(phone: str, code: str) -> bool:
    return get_gateway().send(phone, otp_message(code))


def send_order_confirmation_sms(phone: str, order_id: str, bill_path: str, payment_method: str, settled: bool) -> bool:
    body = order_message(order_id, absolute_url(bill_path), payment_method, settled)
    return get_gateway().send(phone, body)
