"""
Store operator product and coupon routes, plus customer product lookup.

TENANT SCOPING: a store never reads or writes another store's rows.
"""

import pytest

from storefront.models import Product


class TestUnauthenticated:

    @pytest.mark.parametrize("method,path", [
        ("GET", "/api/store/products"),
        ("POST", "/api/store/products"),
        ("PUT", "/api/store/products/1"),
        ("DELETE", "/api/store/products/1"),
        ("GET", "/api/store/orders"),
        ("GET", "/api/store/coupons"),
        ("POST", "/api/store/coupons"),
        ("POST", "/api/store/coupons/1/deactivate"),
    ])
    def test_requires_store_session(self, client, db_session, method, path):
        resp = client.open(path, method=method, json={})
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"


class TestProducts:

    def test_create_and_list(self, store_client):
        resp = store_client.post("/api/store/products", json={
            "name": "Basmati Rice",
            "category": "Grains",
            "custom_id": "RICE-5KG",
            "price_cents": 45000,
            "stock": 20,
        })
        assert resp.status_code == 201
        created = resp.get_json()
        assert created["store_id"] == "shop01"

        store_client.post("/api/store/products", json={"name": "Tea", "price_cents": 12000})

        listing = store_client.get("/api/store/products").get_json()
        assert [p["name"] for p in listing["products"]] == ["Tea", "Basmati Rice"]
        assert {c["category"]: c["count"] for c in listing["categories"]} == {"General": 1, "Grains": 1}

    def test_store_id_in_body_is_rejected(self, store_client, make_store, db_session):
        make_store("shop02")
        resp = store_client.post("/api/store/products", json={
            "name": "Tea",
            "price_cents": 100,
            "store_id": "shop02",
        })
        assert resp.status_code == 400
        assert db_session.query(Product).count() == 0

    @pytest.mark.parametrize("body", [
        {"price_cents": 100},
        {"name": "Tea"},
        {"name": "Tea", "price_cents": -1},
        {"name": "Tea", "price_cents": 10.5},
        {"name": "Tea", "price_cents": 100, "stock": -3},
        {"name": "  ", "price_cents": 100},
    ])
    def test_invalid_product(self, store_client, body):
        resp = store_client.post("/api/store/products", json=body)
        assert resp.status_code == 400

    def test_duplicate_custom_id(self, store_client, make_product):
        make_product(custom_id="SKU1")
        resp = store_client.post("/api/store/products", json={"name": "Other", "price_cents": 100, "custom_id": "SKU1"})
        assert resp.status_code == 409

    def test_update_and_delete(self, store_client, make_product, db_session):
        product = make_product(stock=1)

        resp = store_client.put(f"/api/store/products/{product.id}", json={"stock": 15, "price_cents": 999})
        assert resp.status_code == 200
        assert resp.get_json()["stock"] == 15
        assert resp.get_json()["price_cents"] == 999

        resp = store_client.delete(f"/api/store/products/{product.id}")
        assert resp.status_code == 200
        assert db_session.query(Product).count() == 0

    def test_cannot_touch_other_store_products(self, store_client, make_store, make_product, db_session):
        make_store("shop02")
        theirs = make_product(store_id="shop02", stock=5)

        assert store_client.put(f"/api/store/products/{theirs.id}", json={"stock": 0}).status_code == 404
        assert store_client.delete(f"/api/store/products/{theirs.id}").status_code == 404

        listing = store_client.get("/api/store/products").get_json()
        assert listing["products"] == []

        db_session.expire_all()
        assert db_session.get(Product, theirs.id).stock == 5


class TestCoupons:

    def test_create_list_deactivate(self, store_client):
        resp = store_client.post("/api/store/coupons", json={
            "code": "save20",
            "discount_type": "percentage",
            "discount_value": 2000,
            "max_discount_cents": 3000,
        })
        assert resp.status_code == 201
        coupon = resp.get_json()
        assert coupon["code"] == "SAVE20"

        listing = store_client.get("/api/store/coupons").get_json()["coupons"]
        assert [c["code"] for c in listing] == ["SAVE20"]

        off = store_client.post(f"/api/store/coupons/{coupon['id']}/deactivate")
        assert off.status_code == 200
        assert off.get_json()["is_active"] is False

    def test_preview_route(self, client, store, make_coupon):
        make_coupon(code="PCT20", discount_type="percentage", discount_value=2000, max_discount_cents=3000)

        resp = client.post("/api/customer/coupon/apply", json={
            "code": "PCT20",
            "store_id": "shop01",
            "amount_cents": 50000,
        })

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["discount_cents"] == 3000
        assert data["final_amount_cents"] == 47000

    def test_preview_route_minimum_not_met(self, client, store, make_coupon):
        make_coupon(code="SAVE50", min_purchase_cents=10000)

        resp = client.post("/api/customer/coupon/apply", json={
            "code": "SAVE50",
            "store_id": "shop01",
            "amount_cents": 5000,
        })
        assert resp.status_code == 400

    @pytest.mark.parametrize("body", [
        {"code": 50, "store_id": "shop01", "amount_cents": 5000},
        {"code": "SAVE50", "store_id": 1, "amount_cents": 5000},
    ])
    def test_preview_route_non_string_fields(self, client, store, make_coupon, body):
        make_coupon(code="SAVE50")
        resp = client.post("/api/customer/coupon/apply", json=body)
        assert resp.status_code == 400


class TestCustomerLookup:

    def test_by_numeric_id(self, client, store, make_product):
        product = make_product(name="Tea")
        resp = client.get("/api/customer/product", query_string={"store_id": "shop01", "product_id": str(product.id)})
        assert resp.status_code == 200
        assert resp.get_json()["name"] == "Tea"

    def test_by_custom_id(self, client, store, make_product):
        make_product(name="Rice", custom_id="RICE-5KG")
        resp = client.get("/api/customer/product", query_string={"store_id": "shop01", "product_id": "RICE-5KG"})
        assert resp.status_code == 200
        assert resp.get_json()["name"] == "Rice"

    def test_out_of_stock_reported_separately(self, client, store, make_product):
        make_product(custom_id="GONE", stock=0)

        gone = client.get("/api/customer/product", query_string={"store_id": "shop01", "product_id": "GONE"})
        missing = client.get("/api/customer/product", query_string={"store_id": "shop01", "product_id": "NOPE"})

        assert gone.status_code == 404
        assert "out of stock" in gone.get_json()["error"]
        assert missing.status_code == 404
        assert "not found" in missing.get_json()["error"]

    def test_other_store_product_not_visible(self, client, make_store, make_product):
        make_store("shop01")
        make_store("shop02")
        theirs = make_product(store_id="shop02")

        resp = client.get("/api/customer/product", query_string={"store_id": "shop01", "product_id": str(theirs.id)})
        assert resp.status_code == 404
