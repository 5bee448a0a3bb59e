# Overview: Service-layer operations for store and admin accounts.

"""
Account Service

Store accounts:
- signup creates a pending account (store id must be unique)
- only an administrator approves, denies, or revokes (approved -> denied)
- login requires an approved account

Admin accounts are created by the bootstrap endpoint or `flask admin create`.

Both login flows go through credential_service.check_record_password, which
upgrades legacy hashes in place; the upgrade is committed before the caller
builds the login response.
"""

import logging

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import StoreAccount, AdminUser
from ..models.accounts import (
    STORE_STATUS_APPROVED,
    STORE_STATUS_DENIED,
    STORE_STATUS_PENDING,
    STORE_STATUSES,
)
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
    parse_text,
    require_string,
    validate_email,
    validate_password_policy,
    validate_store_id,
)
from .credential_service import check_record_password, set_password


logger = logging.getLogger(__name__)

STORE_ACTIONS = ("approve", "deny")


def get_store(store_id: str) -> StoreAccount | None:
    return db.session.query(StoreAccount).filter_by(store_id=store_id).first()


def signup_store(store_id: str, email: str, password: str) -> StoreAccount:
    """
    Register a store as pending approval.

    Raises:
        ValidationError: bad store id, email, or password policy
        ConflictError: store id already taken
    """
    store_id = validate_store_id(store_id)
    email = validate_email(email)
    validate_password_policy(password)

    if get_store(store_id):
        raise ConflictError("Store ID already exists. Please choose a different Store ID.")

    store = StoreAccount(store_id=store_id, email=email, status=STORE_STATUS_PENDING)
    set_password(store, password)

    db.session.add(store)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same id
        db.session.rollback()
        raise ConflictError("Store ID already exists. Please choose a different Store ID.")

    logger.info("Store %s registered, pending approval", store_id)
    return store


def list_stores(status: str | None = None) -> list[StoreAccount]:
    query = db.session.query(StoreAccount)
    if status:
        if status not in STORE_STATUSES:
            raise ValidationError(f"Invalid status: {status}")
        query = query.filter(StoreAccount.status == status)
    return query.order_by(StoreAccount.created_at.desc(), StoreAccount.id.desc()).all()


def set_store_status(store_id: str, action: str, admin_email: str) -> StoreAccount:
    """
    Approve or deny a store. Denying an approved store revokes it.
    """
    if action not in STORE_ACTIONS:
        raise ValidationError("Invalid action")

    store_id = parse_text(store_id, "store_id")
    store = get_store(store_id)
    if not store:
        raise NotFoundError("Store not found")

    if action == "approve":
        store.status = STORE_STATUS_APPROVED
        store.approved_at = utcnow()
        store.approved_by = admin_email
    else:
        store.status = STORE_STATUS_DENIED
        store.approved_at = None
        store.approved_by = None

    db.session.commit()
    logger.info("Store %s %s by %s", store_id, store.status, admin_email)
    return store


def authenticate_store(store_id: str, password: str) -> StoreAccount:
    """
    Verify store credentials.

    Raises:
        UnauthorizedError: unknown store or wrong password
        ForbiddenError: store not approved
    """
    store_id = parse_text(store_id, "store_id")
    password = require_string(password, "password")
    store = get_store(store_id)
    if not store:
        raise UnauthorizedError("Store ID not found")

    if store.status != STORE_STATUS_APPROVED:
        raise ForbiddenError("Your account is pending approval. Please wait for admin approval.")

    if not check_record_password(store, password):
        raise UnauthorizedError("Incorrect password")

    # Persists a legacy-hash upgrade, if any, before the session is issued
    db.session.commit()
    return store


def authenticate_admin(email: str, password: str) -> AdminUser:
    email = parse_text(email, "email")
    password = require_string(password, "password")
    admin = db.session.query(AdminUser).filter_by(email=email).first()
    if not admin or not check_record_password(admin, password):
        raise UnauthorizedError("Invalid admin credentials")

    admin.last_login_at = utcnow()
    db.session.commit()
    return admin


def upsert_admin(email: str, password: str) -> tuple[AdminUser, bool]:
    """
    Create an admin, or reset the password of an existing one.

    Returns (admin, created).
    """
    email = validate_email(email)
    password = require_string(password, "password")
    if not password:
        raise ValidationError("Password is required")

    admin = db.session.query(AdminUser).filter_by(email=email).first()
    created = admin is None
    if created:
        admin = AdminUser(email=email)
        db.session.add(admin)

    set_password(admin, password)
    db.session.commit()
    return admin, created
