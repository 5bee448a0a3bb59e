# Overview: Bill access authorization and bill rendering.

"""
Bill Access

A bill is readable by either:
- the holder of a valid bill token minted for that exact order id, or
- a store session whose store owns the order.

Everything else gets the same 403, whether the order exists or not.
"""

from __future__ import annotations

from ..models import Order, StoreAccount
from ..extensions import db
from ..time_utils import to_utc_z
from .token_service import verify_bill_token


def authorize(order_id: str, bill_token: str | None, session_store_id: str | None) -> bool:
    if bill_token and verify_bill_token(bill_token, order_id):
        return True

    if session_store_id:
        owner = db.session.query(Order.store_id).filter_by(order_id=order_id).scalar()
        if owner is not None and owner == session_store_id:
            return True

    return False


def build_bill(order: Order) -> dict:
    """Printable bill for an order: header, lines, totals, payment."""
    store = db.session.query(StoreAccount).filter_by(store_id=order.store_id).first()

    return {
        "order_id": order.order_id,
        "store": {
            "store_id": order.store_id,
            "email": store.email if store else None,
        },
        "customer_phone": order.customer_phone,
        "created_at": to_utc_z(order.created_at),
        "items": [
            {
                "name": item.product_name,
                "quantity": item.quantity,
                "unit_price_cents": item.unit_price_cents,
                "line_total_cents": item.line_total_cents,
            }
            for item in order.items
        ],
        "subtotal_cents": order.subtotal_cents,
        "discount_cents": order.discount_cents,
        "coupon_code": order.coupon_code,
        "final_amount_cents": order.final_amount_cents,
        "payment": {
            "method": order.payment_method,
            "status": order.payment_status,
            "paid_at": to_utc_z(order.paid_at),
        },
        "order_status": order.order_status,
    }
