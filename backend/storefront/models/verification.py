from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class OtpVerification(db.Model):
    """
    One-time code sent to a customer phone before checkout.

    Issuing a new code deletes every earlier row for the phone.
    verified flips false -> true once and never back.
    """
    __tablename__ = "otp_verifications"
    __table_args__ = (
        db.Index("ix_otp_verifications_phone_created", "phone", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    phone = db.Column(db.String(20), nullable=False)
    otp_code = db.Column(db.String(6), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    verified = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        # otp_code deliberately omitted
        return {
            "id": self.id,
            "phone": self.phone,
            "expires_at": to_utc_z(self.expires_at),
            "verified": self.verified,
            "created_at": to_utc_z(self.created_at),
        }
