"""
Pytest fixtures for storefront backend tests.

Provides the app with an in-memory database, a recording SMS gateway,
account/catalog factories, and logged-in test clients.
"""

from datetime import timedelta

import pytest
from storefront import create_app
from storefront.extensions import db
from storefront.models import StoreAccount, AdminUser, Product, Coupon, OtpVerification
from storefront.services.credential_service import set_password
from storefront.time_utils import utcnow


ALLOWED_ORIGIN = "http://localhost:5173"
STORE_PASSWORD = "Secret1"
ADMIN_PASSWORD = "AdminPass1"


class RecordingGateway:
    """Stands in for the Twilio gateway; records every message."""

    def __init__(self):
        self.messages = []
        self.succeed = True

    def send(self, to, body):
        self.messages.append((to, body))
        return self.succeed


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'APP_ENV': 'testing',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SESSION_SECRET': 'test-session-secret-0123456789abcdef',
        'PASSWORD_PEPPER': 'test-pepper',
        'ALLOWED_ORIGINS': ALLOWED_ORIGIN,
        'PUBLIC_BASE_URL': 'https://shop.example.com',
        'SESSION_COOKIE_SECURE': False,
        'ADMIN_SETUP_TOKEN': 'setup-token',
        'OTP_DEBUG': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def sms(app):
    """Swap the SMS gateway for a recorder."""
    original = app.extensions["sms_gateway"]
    gateway = RecordingGateway()
    app.extensions["sms_gateway"] = gateway
    yield gateway
    app.extensions["sms_gateway"] = original


@pytest.fixture(scope='function')
def make_store(db_session):
    def _make(store_id="shop01", status="approved", password=STORE_PASSWORD, email=None):
        store = StoreAccount(
            store_id=store_id,
            email=email or f"{store_id}@example.com",
            status=status,
        )
        set_password(store, password)
        db_session.add(store)
        db_session.commit()
        return store
    return _make


@pytest.fixture(scope='function')
def store(make_store):
    """Approved store 'shop01'."""
    return make_store()


@pytest.fixture(scope='function')
def admin(db_session):
    user = AdminUser(email="admin@example.com")
    set_password(user, ADMIN_PASSWORD)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def make_product(db_session):
    def _make(store_id="shop01", name="Tea", price_cents=10000, stock=10, **kwargs):
        product = Product(store_id=store_id, name=name, price_cents=price_cents, stock=stock, **kwargs)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_coupon(db_session):
    def _make(store_id="shop01", code="SAVE50", discount_type="fixed", discount_value=5000, **kwargs):
        kwargs.setdefault("valid_from", utcnow() - timedelta(days=1))
        coupon = Coupon(
            store_id=store_id,
            code=code,
            discount_type=discount_type,
            discount_value=discount_value,
            min_purchase_cents=kwargs.pop("min_purchase_cents", 0),
            used_count=kwargs.pop("used_count", 0),
            is_active=kwargs.pop("is_active", True),
            **kwargs,
        )
        db_session.add(coupon)
        db_session.commit()
        return coupon
    return _make


@pytest.fixture(scope='function')
def verified_phone(db_session):
    """A phone number that has passed OTP verification."""
    phone = "9876543210"
    db_session.add(OtpVerification(
        phone=phone,
        otp_code="123456",
        expires_at=utcnow() + timedelta(minutes=10),
        verified=True,
    ))
    db_session.commit()
    return phone


@pytest.fixture(scope='function')
def store_client(client, store):
    """Test client holding a store-session cookie for 'shop01'."""
    response = client.post("/api/store/auth/login", json={
        "store_id": store.store_id,
        "password": STORE_PASSWORD,
    })
    assert response.status_code == 200
    return client


@pytest.fixture(scope='function')
def admin_client(client, admin):
    """Test client holding an admin-session cookie."""
    response = client.post("/api/admin/auth/login", json={
        "email": admin.email,
        "password": ADMIN_PASSWORD,
    })
    assert response.status_code == 200
    return client
