# Overview: Coupon pricing, redemption counters, and store coupon management.

"""
Coupon Service

Pricing (preview) never touches used_count. Redemption happens once per
order, inside the settlement transaction (see order_service), through a
conditional increment that refuses to pass usage_limit.

Amounts are integer paise. Percentage coupons hold basis points, so
2000 means 20%. Percentage discounts round half up to the nearest paisa.
"""

from datetime import datetime

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Coupon
from ..models.catalog import DISCOUNT_FIXED, DISCOUNT_PERCENTAGE, DISCOUNT_TYPES
from ..time_utils import as_utc_naive, parse_iso_datetime, utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    parse_int,
    parse_price_cents,
    parse_text,
)


MAX_PERCENTAGE_BPS = 10_000


def normalize_code(code: str | None, field: str = "code") -> str:
    return parse_text(code, field).upper()


def compute_discount(coupon: Coupon, amount_cents: int) -> int:
    """Discount for an amount; never negative and never above the amount."""
    if coupon.discount_type == DISCOUNT_PERCENTAGE:
        discount = (amount_cents * coupon.discount_value + 5_000) // 10_000
        if coupon.max_discount_cents is not None:
            discount = min(discount, coupon.max_discount_cents)
    elif coupon.discount_type == DISCOUNT_FIXED:
        discount = coupon.discount_value
    else:
        discount = 0

    return max(0, min(discount, amount_cents))


def find_active_coupon(code: str, store_id: str) -> Coupon | None:
    return (
        db.session.query(Coupon)
        .filter_by(code=normalize_code(code), store_id=store_id, is_active=True)
        .first()
    )


def preview_discount(
    code: str,
    store_id: str,
    amount_cents: int,
    *,
    now: datetime | None = None,
) -> tuple[Coupon, int]:
    """
    Validate a coupon against an amount and return (coupon, discount).

    Raises:
        NotFoundError: unknown or inactive coupon
        ValidationError: expired, not yet valid, below minimum, or used up
    """
    now = now or utcnow()

    coupon = find_active_coupon(code, store_id)
    if not coupon:
        raise NotFoundError("Invalid or expired coupon code")

    valid_until = as_utc_naive(coupon.valid_until)
    if valid_until is not None and valid_until < now:
        raise ValidationError("Coupon has expired")

    valid_from = as_utc_naive(coupon.valid_from)
    if valid_from is not None and valid_from > now:
        raise ValidationError("Coupon is not valid yet")

    if amount_cents < coupon.min_purchase_cents:
        raise ValidationError(
            "Minimum purchase amount not met",
            details={"min_purchase_cents": coupon.min_purchase_cents},
        )

    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise ValidationError("Coupon usage limit reached")

    return coupon, compute_discount(coupon, amount_cents)


def redeem(coupon_id: int) -> bool:
    """
    Count one use of a coupon inside the caller's transaction.

    Returns False when usage_limit is already reached; the caller rolls back.
    """
    result = db.session.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon_id,
            or_(Coupon.usage_limit.is_(None), Coupon.used_count < Coupon.usage_limit),
        )
        .values(used_count=Coupon.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def create_coupon(store_id: str, data: dict) -> Coupon:
    code = normalize_code(data.get("code"))
    if not code or len(code) > 50:
        raise ValidationError("code is required (max 50 characters)")

    discount_type = data.get("discount_type")
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError(f"discount_type must be one of {list(DISCOUNT_TYPES)}")

    discount_value = parse_int(data.get("discount_value"), "discount_value", minimum=1)
    if discount_type == DISCOUNT_PERCENTAGE and discount_value > MAX_PERCENTAGE_BPS:
        raise ValidationError("Percentage discount cannot exceed 10000 basis points (100%)")

    max_discount = data.get("max_discount_cents")
    usage_limit = data.get("usage_limit")

    try:
        valid_from = parse_iso_datetime(data.get("valid_from")) or utcnow()
        valid_until = parse_iso_datetime(data.get("valid_until"))
    except ValueError:
        raise ValidationError("valid_from / valid_until must be ISO-8601 datetimes")

    if valid_until is not None and valid_until < valid_from:
        raise ValidationError("valid_until must be after valid_from")

    coupon = Coupon(
        store_id=store_id,
        code=code,
        discount_type=discount_type,
        discount_value=discount_value,
        min_purchase_cents=parse_price_cents(data.get("min_purchase_cents") or 0, "min_purchase_cents"),
        max_discount_cents=parse_price_cents(max_discount, "max_discount_cents") if max_discount is not None else None,
        usage_limit=parse_int(usage_limit, "usage_limit", minimum=1) if usage_limit is not None else None,
        used_count=0,
        valid_from=valid_from,
        valid_until=valid_until,
        is_active=True,
    )
    db.session.add(coupon)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Coupon code already exists for this store")
    return coupon


def list_coupons(store_id: str) -> list[Coupon]:
    return (
        db.session.query(Coupon)
        .filter_by(store_id=store_id)
        .order_by(Coupon.created_at.desc(), Coupon.id.desc())
        .all()
    )


def deactivate_coupon(store_id: str, coupon_id: int) -> Coupon:
    coupon = db.session.query(Coupon).filter_by(id=coupon_id, store_id=store_id).first()
    if not coupon:
        raise NotFoundError("Coupon not found")
    coupon.is_active = False
    db.session.commit()
    return coupon
