# backend/storefront/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    APP_ENV = os.environ.get("APP_ENV", "development")

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Signs session cookies and bill links. No default: create_app refuses to start without it.
    SESSION_SECRET = os.environ.get("SESSION_SECRET", "")

    # Optional server-wide pepper for password hashing
    PASSWORD_PEPPER = os.environ.get("PASSWORD_PEPPER", "")

    # CSRF allow-list (comma-separated). Falls back to PUBLIC_BASE_URL.
    ALLOWED_ORIGINS = os.environ.get("ALLOWED_ORIGINS", "")
    PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL", "")

    SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE", APP_ENV == "production")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///storefront.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # SMS gateway (Twilio)
    TWILIO_ACCOUNT_SID = os.environ.get("TWILIO_ACCOUNT_SID", "")
    TWILIO_AUTH_TOKEN = os.environ.get("TWILIO_AUTH_TOKEN", "")
    TWILIO_PHONE_NUMBER = os.environ.get("TWILIO_PHONE_NUMBER", "")
    SMS_DEFAULT_COUNTRY_CODE = os.environ.get("SMS_DEFAULT_COUNTRY_CODE", "91")
    SMS_TIMEOUT_SECONDS = float(os.environ.get("SMS_TIMEOUT_SECONDS", "10"))

    # Echo OTP in the error body when SMS fails. Ignored in production.
    OTP_DEBUG = _env_flag("OTP_DEBUG")

    # Admin bootstrap endpoint
    ADMIN_SETUP_TOKEN = os.environ.get("ADMIN_SETUP_TOKEN", "")
    ALLOW_ADMIN_SETUP = _env_flag("ALLOW_ADMIN_SETUP")
