# Overview: Flask API routes for customer checkout operations; parses input and returns JSON responses.

"""
Customer routes (no login)

Flow:
1. GET  /api/customer/product        - scan or type a product into the cart
2. POST /api/customer/coupon/apply   - preview a coupon discount
3. POST /api/customer/otp/send       - text a 6-digit code to the phone
4. POST /api/customer/otp/verify     - verify it
5. POST /api/customer/checkout       - submit the order
6. GET  /api/customer/bill/<id>?t=   - bill via the SMS link

Prices and discounts are always recomputed server-side; client totals are
only compared and reported back.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_same_origin
from ..services import (
    bill_service,
    coupon_service,
    notification_service,
    order_service,
    otp_service,
    products_service,
    session_service,
)
from ..services.notification_service import mask_phone
from ..validation import (
    InternalError,
    StorefrontError,
    ValidationError,
    parse_cart,
    parse_int,
    parse_text,
    require_fields,
    validate_phone,
)


customer_bp = Blueprint("customer", __name__, url_prefix="/api/customer")


@customer_bp.get("/product")
def lookup_product_route():
    store_id = request.args.get("store_id")
    product_ref = request.args.get("product_id")

    if not store_id or not product_ref:
        return jsonify({"error": "store_id and product_id are required"}), 400

    try:
        product = products_service.lookup_product(store_id, product_ref)
        return jsonify(product.to_dict()), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Product lookup failed")
        return jsonify({"error": "Failed to fetch product"}), 500


@customer_bp.post("/coupon/apply")
def apply_coupon_route():
    """
    Preview a coupon against an amount. Does not count a use.

    Request body:
    {
        "code": "SAVE50",
        "store_id": "shop01",
        "amount_cents": 25000
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        require_fields(data, "code", "store_id", "amount_cents")
        amount = parse_int(data.get("amount_cents"), "amount_cents", minimum=0)

        store_id = parse_text(data["store_id"], "store_id")
        coupon, discount = coupon_service.preview_discount(data["code"], store_id, amount)
        return jsonify({
            "success": True,
            "coupon": {
                "code": coupon.code,
                "discount_type": coupon.discount_type,
                "discount_value": coupon.discount_value,
            },
            "discount_cents": discount,
            "final_amount_cents": amount - discount,
        }), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Coupon preview failed")
        return jsonify({"error": "Failed to apply coupon"}), 500


@customer_bp.post("/otp/send")
@require_same_origin
def send_otp_route():
    data = request.get_json(silent=True) or {}
    try:
        phone = validate_phone(data.get("phone"))
        record = otp_service.issue_otp(phone)
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to issue OTP")
        return jsonify({"error": "Failed to send OTP"}), 500

    if notification_service.send_otp_sms(phone, record.otp_code):
        return jsonify({"success": True, "message": "OTP sent successfully"}), 200

    current_app.logger.warning("OTP SMS to %s was not delivered", mask_phone(phone))
    error = InternalError("Failed to send OTP SMS. Please try again.")
    body = error.to_dict()
    config = current_app.config
    if config.get("OTP_DEBUG") and config.get("APP_ENV") != "production":
        body["otp"] = record.otp_code
    return jsonify(body), error.status_code


@customer_bp.post("/otp/verify")
@require_same_origin
def verify_otp_route():
    data = request.get_json(silent=True) or {}
    try:
        phone = validate_phone(data.get("phone"))
        code = data.get("otp")
        if not code:
            raise ValidationError("Phone number and OTP are required")

        otp_service.verify_otp(phone, str(code))
        return jsonify({"success": True, "verified": True}), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("OTP verification failed")
        return jsonify({"error": "Failed to verify OTP"}), 500


@customer_bp.post("/checkout")
@require_same_origin
def checkout_route():
    """
    Submit an order.

    Request body:
    {
        "store_id": "shop01",
        "phone": "9876543210",
        "payment_method": "card" | "upi" | "pay_at_desk",
        "cart": [{"product_id": 1, "quantity": 2}],
        "coupon_code": "SAVE50",           (optional)
        "total_amount_cents": 20000        (optional, compared only)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        require_fields(data, "store_id", "phone", "payment_method")
        store_id = parse_text(data["store_id"], "store_id")
        payment_method = parse_text(data["payment_method"], "payment_method")
        coupon_code = parse_text(data.get("coupon_code"), "coupon_code") or None
        phone = validate_phone(data["phone"])
        lines = parse_cart(data.get("cart"))

        client_total = data.get("total_amount_cents")
        if client_total is not None:
            client_total = parse_int(client_total, "total_amount_cents", minimum=0)

        result = order_service.submit_order(
            store_id=store_id,
            phone=phone,
            lines=lines,
            payment_method=payment_method,
            coupon_code=coupon_code,
            client_total_cents=client_total,
        )

        body = {
            "success": True,
            "order": result.order.to_dict(include_items=True),
            "bill_url": result.bill_url,
            "sms_sent": result.notified,
        }
        if result.total_mismatch:
            body["total_mismatch"] = True
        return jsonify(body), 201
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Checkout failed")
        return jsonify({"error": "Failed to create order"}), 500


@customer_bp.get("/bill/<order_id>")
def get_bill_route(order_id: str):
    """
    Bill for an order: via the SMS link token, or the owning store's session.
    """
    try:
        allowed = bill_service.authorize(
            order_id,
            request.args.get("t"),
            session_service.current_store_id(),
        )
        if not allowed:
            return jsonify({"error": "Forbidden"}), 403

        order = order_service.get_order(order_id)
        if not order:
            return jsonify({"error": "Order not found"}), 404

        response = jsonify(bill_service.build_bill(order))
        response.headers["Cache-Control"] = "no-store"
        return response, 200
    except Exception:
        current_app.logger.exception("Failed to build bill for %s", order_id)
        return jsonify({"error": "Failed to generate bill"}), 500
