# Overview: Service-layer operations for store products; encapsulates business logic and database work.

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    parse_int,
    parse_price_cents,
)


WRITABLE_FIELDS = {"name", "category", "custom_id", "price_cents", "stock"}


def _clean_text(value, field: str, max_length: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value


def _apply(product: Product, data: dict) -> None:
    unknown = set(data) - WRITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    if "name" in data:
        product.name = _clean_text(data["name"], "name", 255)
    if "category" in data:
        product.category = _clean_text(data["category"], "category", 100)
    if "custom_id" in data:
        product.custom_id = _clean_text(data["custom_id"], "custom_id", 50) if data["custom_id"] is not None else None
    if "price_cents" in data:
        product.price_cents = parse_price_cents(data["price_cents"])
    if "stock" in data:
        product.stock = parse_int(data["stock"], "stock", minimum=0)


def _commit_unique_custom_id() -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Custom ID already exists")


def list_products(store_id: str) -> tuple[list[Product], list[dict]]:
    """Products of a store, newest first, plus per-category counts."""
    items = (
        db.session.query(Product)
        .filter_by(store_id=store_id)
        .order_by(Product.id.desc())
        .all()
    )
    rows = (
        db.session.query(Product.category, func.count(Product.id), func.coalesce(func.sum(Product.stock), 0))
        .filter(Product.store_id == store_id)
        .group_by(Product.category)
        .order_by(Product.category)
        .all()
    )
    category_counts = [
        {"category": category, "count": count, "total_stock": int(total_stock)}
        for category, count, total_stock in rows
    ]
    return items, category_counts


def create_product(store_id: str, data: dict) -> Product:
    if "name" not in data or "price_cents" not in data:
        raise ValidationError("name and price_cents required")

    product = Product(store_id=store_id, category="General", stock=0)
    _apply(product, data)

    db.session.add(product)
    _commit_unique_custom_id()
    return product


def get_store_product(store_id: str, product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id, store_id=store_id).first()
    if not product:
        raise NotFoundError("Product not found")
    return product


def update_product(store_id: str, product_id: int, data: dict) -> Product:
    product = get_store_product(store_id, product_id)
    _apply(product, data)
    _commit_unique_custom_id()
    return product


def delete_product(store_id: str, product_id: int) -> None:
    product = get_store_product(store_id, product_id)
    db.session.delete(product)
    db.session.commit()


def lookup_product(store_id: str, product_ref: str) -> Product:
    """
    Customer-facing lookup by numeric id or store custom id.

    Out-of-stock products are reported with their own message so a shopper
    can tell a sold-out item from a wrong code.
    """
    product_ref = (product_ref or "").strip()
    query = db.session.query(Product).filter(Product.store_id == store_id)
    if product_ref.isdigit():
        product = query.filter(Product.id == int(product_ref)).first()
    else:
        product = query.filter(Product.custom_id == product_ref).first()

    if not product:
        raise NotFoundError(f'Product "{product_ref}" not found in store "{store_id}"')
    if product.stock <= 0:
        raise NotFoundError("Product is out of stock")
    return product
