from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


PAYMENT_CARD = "card"
PAYMENT_UPI = "upi"
PAYMENT_AT_DESK = "pay_at_desk"

PAYMENT_METHODS = (PAYMENT_CARD, PAYMENT_UPI, PAYMENT_AT_DESK)
IMMEDIATE_PAYMENT_METHODS = (PAYMENT_CARD, PAYMENT_UPI)

PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_COMPLETED = "completed"

ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_CONFIRMED = "confirmed"


class Order(db.Model):
    """
    Customer order.

    Created together with its items at checkout. payment_status and
    order_status only ever move pending -> completed / confirmed.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint("discount_cents >= 0", name="ck_orders_discount_non_negative"),
        db.CheckConstraint("final_amount_cents >= 0", name="ck_orders_final_non_negative"),
        db.Index("ix_orders_store_created", "store_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(50), nullable=False, unique=True, index=True)
    store_id = db.Column(db.String(50), db.ForeignKey("store_accounts.store_id"), nullable=False, index=True)
    customer_phone = db.Column(db.String(20), nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    final_amount_cents = db.Column(db.Integer, nullable=False)
    coupon_code = db.Column(db.String(50), nullable=True)

    payment_method = db.Column(db.String(20), nullable=False)
    payment_status = db.Column(db.String(20), nullable=False, default=PAYMENT_STATUS_PENDING)
    order_status = db.Column(db.String(20), nullable=False, default=ORDER_STATUS_PENDING)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        order_by="OrderItem.id",
        primaryjoin="Order.order_id == OrderItem.order_id",
    )

    def __repr__(self) -> str:
        return f"<Order order_id={self.order_id!r} status={self.payment_status}/{self.order_status}>"

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "order_id": self.order_id,
            "store_id": self.store_id,
            "customer_phone": self.customer_phone,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "final_amount_cents": self.final_amount_cents,
            "coupon_code": self.coupon_code,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "order_status": self.order_status,
            "created_at": to_utc_z(self.created_at),
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """Order line; name and price are captured at checkout."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(50), db.ForeignKey("orders.order_id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }
