from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


STORE_STATUS_PENDING = "pending"
STORE_STATUS_APPROVED = "approved"
STORE_STATUS_DENIED = "denied"

STORE_STATUSES = (STORE_STATUS_PENDING, STORE_STATUS_APPROVED, STORE_STATUS_DENIED)


class StoreAccount(db.Model):
    """
    Store operator account.

    Created pending on signup; only an administrator moves it to approved
    or denied. Login is refused unless the account is approved.
    """
    __tablename__ = "store_accounts"
    __table_args__ = (
        db.Index("ix_store_accounts_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.String(50), nullable=False, unique=True, index=True)
    email = db.Column(db.String(255), nullable=False)

    password_hash = db.Column(db.String(255), nullable=False)
    # current | legacy_base64 | legacy_int; NULL for rows imported before tagging
    password_format = db.Column(db.String(16), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=STORE_STATUS_PENDING)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_by = db.Column(db.String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<StoreAccount store_id={self.store_id!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "email": self.email,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "approved_by": self.approved_by,
        }


class AdminUser(db.Model):
    """Administrator account; approves store signups."""
    __tablename__ = "admin_users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    password_hash = db.Column(db.String(255), nullable=False)
    password_format = db.Column(db.String(16), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
