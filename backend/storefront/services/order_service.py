# Overview: Checkout and payment settlement; encapsulates business logic and database work.

"""
Order Service - checkout state machine

    cart -> price verified -> phone verified -> submitted -> settled

Checkout (submit_order):
1. phone must hold a verified OTP
2. every cart product is re-read, scoped to the store; a missing product or
   short stock rejects the whole checkout
3. subtotal comes from stored prices only; the discount is recomputed from
   the coupon against that subtotal
4. the order and its items are written in one transaction
5. card / UPI orders settle in that same transaction; pay-at-desk orders
   stay pending until approve_order

Settlement applies, atomically with the status change:
- per line: UPDATE products SET stock = stock - qty WHERE ... AND stock >= qty
- coupon:   used_count + 1 unless usage_limit is reached
A zero row count rolls back everything, so stock never goes negative and
a coupon never passes its limit even under concurrent checkouts.

Notification runs only after commit and can never fail the order.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime
from urllib.parse import quote

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Order, OrderItem, Product, Coupon, StoreAccount
from ..models.accounts import STORE_STATUS_APPROVED
from ..models.orders import (
    IMMEDIATE_PAYMENT_METHODS,
    ORDER_STATUS_CONFIRMED,
    ORDER_STATUS_PENDING,
    PAYMENT_AT_DESK,
    PAYMENT_METHODS,
    PAYMENT_STATUS_COMPLETED,
    PAYMENT_STATUS_PENDING,
)
from ..time_utils import utcnow
from ..validation import (
    CartLine,
    ConflictError,
    NotFoundError,
    StorefrontError,
    UnauthorizedError,
    ValidationError,
)
from . import coupon_service, notification_service, otp_service
from .concurrency import lock_for_update, run_with_retry
from .notification_service import mask_phone
from .token_service import mint_bill_token


logger = logging.getLogger(__name__)


class OrderError(ConflictError):
    """Settlement could not be applied (stock or coupon exhausted, or order already settled)."""


@dataclass
class PricedLine:
    product_id: int
    name: str
    quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass
class CheckoutResult:
    order: Order
    bill_url: str
    notified: bool
    total_mismatch: bool = False


def generate_order_id() -> str:
    """ORD + epoch milliseconds + 24 random bits."""
    return f"ORD{int(time.time() * 1000)}{secrets.token_hex(3).upper()}"


def bill_path(order_id: str) -> str:
    token = mint_bill_token(order_id)
    return f"/api/customer/bill/{quote(order_id, safe='')}?t={quote(token, safe='')}"


def _require_open_store(store_id: str) -> None:
    store = db.session.query(StoreAccount).filter_by(store_id=store_id).first()
    if not store or store.status != STORE_STATUS_APPROVED:
        raise NotFoundError("Store not found")


def price_cart(store_id: str, lines: list[CartLine]) -> list[PricedLine]:
    """
    Re-read cart products from the store and check stock.

    Raises ValidationError when a product is missing or short on stock.
    """
    product_ids = [line.product_id for line in lines]
    products = {
        p.id: p
        for p in db.session.query(Product)
        .filter(Product.id.in_(product_ids), Product.store_id == store_id)
        .all()
    }

    missing = [pid for pid in product_ids if pid not in products]
    if missing:
        raise ValidationError("Some products are not available", details={"product_ids": missing})

    priced = []
    insufficient = []
    for line in lines:
        product = products[line.product_id]
        if product.stock < line.quantity:
            insufficient.append({
                "product_id": product.id,
                "name": product.name,
                "requested_quantity": line.quantity,
                "stock": product.stock,
            })
            continue
        priced.append(PricedLine(
            product_id=product.id,
            name=product.name,
            quantity=line.quantity,
            unit_price_cents=product.price_cents,
        ))

    if insufficient:
        names = ", ".join(item["name"] for item in insufficient)
        raise ValidationError(f"Insufficient stock for {names}", details={"items": insufficient})

    return priced


def _apply_settlement_effects(order: Order, lines: list[tuple[int, int]]) -> None:
    """
    Decrement stock per line and count the coupon use.

    Must run inside the transaction that flips the order to completed.
    Raises OrderError on any shortfall; the caller rolls back.
    """
    for product_id, quantity in lines:
        if product_id is None:
            raise OrderError("A product on this order no longer exists")
        result = db.session.execute(
            update(Product)
            .where(
                Product.id == product_id,
                Product.store_id == order.store_id,
                Product.stock >= quantity,
            )
            .values(stock=Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise OrderError(
                "Insufficient stock to settle order",
                details={"product_id": product_id, "requested_quantity": quantity},
            )

    if order.coupon_code:
        coupon = (
            db.session.query(Coupon)
            .filter_by(store_id=order.store_id, code=order.coupon_code)
            .first()
        )
        if coupon is None:
            logger.warning("Coupon %s on order %s no longer exists; usage not counted",
                           order.coupon_code, order.order_id)
        elif not coupon_service.redeem(coupon.id):
            raise OrderError("Coupon usage limit reached", details={"coupon_code": order.coupon_code})


def submit_order(
    *,
    store_id: str,
    phone: str,
    lines: list[CartLine],
    payment_method: str,
    coupon_code: str | None = None,
    client_total_cents: int | None = None,
    now: datetime | None = None,
) -> CheckoutResult:
    """
    Validate and persist an order; settle it immediately for card / UPI.

    Raises:
        ValidationError: bad payment method, missing product, short stock,
            coupon rejected
        UnauthorizedError: phone not OTP-verified
        NotFoundError: unknown store or coupon
        OrderError: stock or coupon exhausted by a concurrent settlement
    """
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method. Must be one of {list(PAYMENT_METHODS)}")
    if not lines:
        raise ValidationError("Cart is empty")

    _require_open_store(store_id)

    if not otp_service.has_verified_phone(phone):
        raise UnauthorizedError("Please verify your phone number with OTP first")

    priced = price_cart(store_id, lines)
    subtotal = sum(line.line_total_cents for line in priced)

    discount = 0
    applied_code = None
    if coupon_code:
        coupon, discount = coupon_service.preview_discount(coupon_code, store_id, subtotal, now=now)
        applied_code = coupon.code

    final_amount = subtotal - discount

    total_mismatch = client_total_cents is not None and client_total_cents != final_amount
    if total_mismatch:
        logger.warning(
            "Checkout total mismatch for store %s: client %s, server %s",
            store_id, client_total_cents, final_amount,
        )

    settle_now = payment_method in IMMEDIATE_PAYMENT_METHODS

    def _op():
        created_at = now or utcnow()
        order = Order(
            order_id=generate_order_id(),
            store_id=store_id,
            customer_phone=phone,
            subtotal_cents=subtotal,
            discount_cents=discount,
            final_amount_cents=final_amount,
            coupon_code=applied_code,
            payment_method=payment_method,
            payment_status=PAYMENT_STATUS_PENDING,
            order_status=ORDER_STATUS_PENDING,
            created_at=created_at,
        )
        db.session.add(order)
        for line in priced:
            db.session.add(OrderItem(
                order_id=order.order_id,
                product_id=line.product_id,
                product_name=line.name,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                line_total_cents=line.line_total_cents,
            ))
        db.session.flush()

        if settle_now:
            _apply_settlement_effects(order, [(line.product_id, line.quantity) for line in priced])
            order.payment_status = PAYMENT_STATUS_COMPLETED
            order.order_status = ORDER_STATUS_CONFIRMED
            order.paid_at = created_at

        db.session.commit()
        return order

    try:
        order = run_with_retry(_op)
    except (StorefrontError, IntegrityError):
        db.session.rollback()
        raise

    logger.info(
        "Order %s created for store %s (%s, %s)",
        order.order_id, store_id, payment_method, order.payment_status,
    )

    url, notified = notify_customer(order)
    return CheckoutResult(order=order, bill_url=url, notified=notified, total_mismatch=total_mismatch)


def approve_order(store_id: str, order_id: str, *, now: datetime | None = None) -> tuple[Order, bool]:
    """
    Settle a pay-at-desk order after the operator takes payment.

    Returns (order, notified).

    Raises:
        NotFoundError: order not in this store
        ConflictError: not a pay-at-desk order, or already paid
        OrderError: stock or coupon exhausted since checkout
    """
    def _op():
        approved_at = now or utcnow()

        order = lock_for_update(
            db.session.query(Order).filter_by(order_id=order_id, store_id=store_id)
        ).first()
        if not order:
            raise NotFoundError("Order not found")

        if order.payment_method != PAYMENT_AT_DESK:
            raise ConflictError("This order is not a pay-at-desk order")

        if order.payment_status == PAYMENT_STATUS_COMPLETED:
            raise ConflictError("Order already paid")

        # Only one concurrent approval can move the row out of pending
        result = db.session.execute(
            update(Order)
            .where(
                Order.order_id == order_id,
                Order.store_id == store_id,
                Order.payment_method == PAYMENT_AT_DESK,
                Order.payment_status == PAYMENT_STATUS_PENDING,
            )
            .values(
                payment_status=PAYMENT_STATUS_COMPLETED,
                order_status=ORDER_STATUS_CONFIRMED,
                paid_at=approved_at,
                approved_at=approved_at,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError("Order already paid")

        _apply_settlement_effects(order, [(item.product_id, item.quantity) for item in order.items])

        db.session.commit()
        return order

    try:
        order = run_with_retry(_op)
    except StorefrontError:
        db.session.rollback()
        raise

    logger.info("Order %s approved by store %s", order_id, store_id)

    _, notified = notify_customer(order)
    return order, notified


def notify_customer(order: Order) -> tuple[str, bool]:
    """
    Mint a bill link and text it to the customer.

    Returns (bill path, delivered). Failures are logged, never raised.
    """
    url = bill_path(order.order_id)
    settled = order.payment_status == PAYMENT_STATUS_COMPLETED
    try:
        delivered = notification_service.send_order_confirmation_sms(
            order.customer_phone, order.order_id, url, order.payment_method, settled,
        )
    except Exception:
        logger.exception("Order confirmation SMS for %s raised", order.order_id)
        return url, False

    if not delivered:
        logger.warning("Order confirmation SMS for %s to %s not delivered",
                       order.order_id, mask_phone(order.customer_phone))
    return url, delivered


def list_store_orders(store_id: str) -> list[Order]:
    return (
        db.session.query(Order)
        .filter_by(store_id=store_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def get_order(order_id: str) -> Order | None:
    return db.session.query(Order).filter_by(order_id=order_id).first()
