# Overview: Flask API routes for store operator operations; parses input and returns JSON responses.

"""
Store operator routes.

SCOPING: every query is filtered by g.store_id from the store session;
the store id is never taken from the request body.

SECURITY: all routes require a store session; writes also pass the
Origin guard.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_same_origin, require_store_session
from ..services import coupon_service, order_service, products_service
from ..validation import StorefrontError, parse_text


store_bp = Blueprint("store", __name__, url_prefix="/api/store")


def _error(e: StorefrontError):
    return jsonify(e.to_dict()), e.status_code


# =============================================================================
# Products
# =============================================================================

@store_bp.get("/products")
@require_store_session
def list_products_route():
    try:
        items, category_counts = products_service.list_products(g.store_id)
        return jsonify({
            "products": [p.to_dict() for p in items],
            "categories": category_counts,
        }), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Failed to fetch products"}), 500


@store_bp.post("/products")
@require_same_origin
@require_store_session
def create_product_route():
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.create_product(g.store_id, data)
        return jsonify(product.to_dict()), 201
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Failed to create product"}), 500


@store_bp.put("/products/<int:product_id>")
@require_same_origin
@require_store_session
def update_product_route(product_id: int):
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.update_product(g.store_id, product_id, data)
        return jsonify(product.to_dict()), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to update product %s", product_id)
        return jsonify({"error": "Failed to update product"}), 500


@store_bp.delete("/products/<int:product_id>")
@require_same_origin
@require_store_session
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(g.store_id, product_id)
        return jsonify({"success": True}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return jsonify({"error": "Failed to delete product"}), 500


# =============================================================================
# Orders
# =============================================================================

@store_bp.get("/orders")
@require_store_session
def list_orders_route():
    try:
        orders = order_service.list_store_orders(g.store_id)
        return jsonify({"orders": [o.to_dict(include_items=True) for o in orders]}), 200
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Failed to fetch orders"}), 500


@store_bp.post("/orders/approve")
@require_same_origin
@require_store_session
def approve_order_route():
    """
    Settle a pay-at-desk order once payment is taken at the counter.

    Request body: {"order_id": "ORD..."}
    """
    data = request.get_json(silent=True) or {}
    try:
        order_id = parse_text(data.get("order_id"), "order_id")
    except StorefrontError as e:
        return _error(e)
    if not order_id:
        return jsonify({"error": "order_id is required"}), 400

    try:
        order, notified = order_service.approve_order(g.store_id, order_id)
        return jsonify({
            "success": True,
            "order": order.to_dict(include_items=True),
            "sms_sent": notified,
        }), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to approve order %s", order_id)
        return jsonify({"error": "Failed to approve order"}), 500


# =============================================================================
# Coupons
# =============================================================================

@store_bp.get("/coupons")
@require_store_session
def list_coupons_route():
    try:
        coupons = coupon_service.list_coupons(g.store_id)
        return jsonify({"coupons": [c.to_dict() for c in coupons]}), 200
    except Exception:
        current_app.logger.exception("Failed to list coupons")
        return jsonify({"error": "Failed to fetch coupons"}), 500


@store_bp.post("/coupons")
@require_same_origin
@require_store_session
def create_coupon_route():
    """
    Create a coupon.

    Request body:
    {
        "code": "SAVE50",
        "discount_type": "percentage" | "fixed",
        "discount_value": 5000,           (paise, or basis points for percentage)
        "min_purchase_cents": 10000,      (optional)
        "max_discount_cents": 3000,       (optional)
        "usage_limit": 100,               (optional)
        "valid_from": "2025-01-01T00:00:00Z",   (optional)
        "valid_until": "2025-12-31T23:59:59Z"   (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        coupon = coupon_service.create_coupon(g.store_id, data)
        return jsonify(coupon.to_dict()), 201
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to create coupon")
        return jsonify({"error": "Failed to create coupon"}), 500


@store_bp.post("/coupons/<int:coupon_id>/deactivate")
@require_same_origin
@require_store_session
def deactivate_coupon_route(coupon_id: int):
    try:
        coupon = coupon_service.deactivate_coupon(g.store_id, coupon_id)
        return jsonify(coupon.to_dict()), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to deactivate coupon %s", coupon_id)
        return jsonify({"error": "Failed to deactivate coupon"}), 500
