from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any


# Maximum price: Rs 9,999,999.99 (999,999,999 paise)
MAX_PRICE_CENTS = 999_999_999

STORE_ID_PATTERN = re.compile(r"^[A-Za-z0-9]{1,50}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15


class StorefrontError(Exception):
    """Base for errors that map onto an HTTP status."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(StorefrontError):
    """400-level input problem."""
    status_code = 400


class UnauthorizedError(StorefrontError):
    """Missing, invalid or expired token or credential."""
    status_code = 401


class ForbiddenError(StorefrontError):
    """Request rejected by the origin check or an account-state rule."""
    status_code = 403


class NotFoundError(StorefrontError):
    status_code = 404


class ConflictError(StorefrontError):
    """409-level business rule conflict (e.g., duplicate store id)."""
    status_code = 409


class InternalError(StorefrontError):
    status_code = 500


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int


def require_fields(data: dict, *names: str) -> None:
    missing = [name for name in names if data.get(name) in (None, "")]
    if missing:
        raise ValidationError(
            "Missing required fields",
            details={"missing": missing},
        )


def parse_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer coercion: rejects bools, floats, decimals and
    scientific notation.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return result


def parse_price_cents(value: Any, field: str = "price_cents") -> int:
    cents = parse_int(value, field, minimum=0)
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} exceeds maximum allowed value")
    return cents


def require_string(value: Any, field: str) -> str:
    """JSON string field as sent; a missing value reads as empty."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value


def parse_text(value: Any, field: str) -> str:
    return require_string(value, field).strip()


def validate_store_id(store_id: Any) -> str:
    store_id = parse_text(store_id, "store_id")
    if not STORE_ID_PATTERN.match(store_id):
        raise ValidationError("Store ID must contain only letters and numbers")
    return store_id


def validate_email(email: Any) -> str:
    email = parse_text(email, "email")
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email format")
    return email


def validate_password_policy(password: Any) -> None:
    """Signup policy: at least 6 characters with one uppercase letter."""
    password = require_string(password, "password")
    if len(password) < 6 or not re.search(r"[A-Z]", password):
        raise ValidationError(
            "Password must be at least 6 characters and include one uppercase letter"
        )


def validate_phone(phone: Any) -> str:
    """
    Normalize a phone number to its digits, keeping a leading "+".

    "98765 43210" and "9876543210" are the same phone.
    """
    phone = parse_text(phone, "phone")
    digits = re.sub(r"\D", "", phone)
    if not MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS:
        raise ValidationError("Valid phone number is required")
    return ("+" if phone.startswith("+") else "") + digits


def parse_cart(raw: Any) -> list[CartLine]:
    """
    Parse checkout cart lines; duplicate product lines are merged.

    Each line is {"product_id": int, "quantity": int}.
    """
    if not isinstance(raw, list) or not raw:
        raise ValidationError("Cart must be a non-empty list")

    quantities: dict[int, int] = {}
    for entry in raw:
        if not isinstance(entry, dict):
            raise ValidationError("Cart lines must be objects")
        product_id = parse_int(
            entry.get("product_id"), "product_id", minimum=1
        )
        quantity = parse_int(entry.get("quantity"), "quantity", minimum=1)
        quantities[product_id] = quantities.get(product_id, 0) + quantity

    return [CartLine(product_id=pid, quantity=qty) for pid, qty in quantities.items()]
