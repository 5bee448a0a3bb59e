from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_FIXED = "fixed"

DISCOUNT_TYPES = (DISCOUNT_PERCENTAGE, DISCOUNT_FIXED)


class Product(db.Model):
    """
    Store-scoped product.

    Stock is only decremented when an order settles, never when a product
    is added to a cart. The check constraint keeps the column non-negative
    even if application code misbehaves.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("store_id", "custom_id", name="uq_products_store_custom_id"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_store_category", "store_id", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.String(50), db.ForeignKey("store_accounts.store_id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(100), nullable=False, default="General")
    # Store-assigned label (printed tag / QR code)
    custom_id = db.Column(db.String(50), nullable=True)

    # Authoritative storage in paise
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} store_id={self.store_id!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "category": self.category,
            "custom_id": self.custom_id,
            "price_cents": self.price_cents,
            "stock": self.stock,
            "created_at": to_utc_z(self.created_at),
        }


class Coupon(db.Model):
    """
    Store coupon.

    discount_value is basis points for percentage coupons (2000 = 20%)
    and paise for fixed coupons. used_count moves only at settlement.
    """
    __tablename__ = "coupons"
    __table_args__ = (
        db.UniqueConstraint("store_id", "code", name="uq_coupons_store_code"),
        db.CheckConstraint("used_count >= 0", name="ck_coupons_used_count_non_negative"),
        db.CheckConstraint(
            "usage_limit IS NULL OR used_count <= usage_limit",
            name="ck_coupons_used_count_within_limit",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.String(50), db.ForeignKey("store_accounts.store_id"), nullable=False, index=True)
    code = db.Column(db.String(50), nullable=False)

    discount_type = db.Column(db.String(16), nullable=False)
    discount_value = db.Column(db.Integer, nullable=False)
    min_purchase_cents = db.Column(db.Integer, nullable=False, default=0)
    max_discount_cents = db.Column(db.Integer, nullable=True)

    usage_limit = db.Column(db.Integer, nullable=True)
    used_count = db.Column(db.Integer, nullable=False, default=0)

    valid_from = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    valid_until = db.Column(db.DateTime(timezone=True), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "code": self.code,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "min_purchase_cents": self.min_purchase_cents,
            "max_discount_cents": self.max_discount_cents,
            "usage_limit": self.usage_limit,
            "used_count": self.used_count,
            "valid_from": to_utc_z(self.valid_from),
            "valid_until": to_utc_z(self.valid_until) if self.valid_until else None,
            "is_active": self.is_active,
        }
