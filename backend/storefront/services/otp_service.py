# Overview: One-time codes that gate checkout on phone ownership.

"""
OTP Verification Service

- issue: 6-digit code, 10-minute expiry; all earlier rows for the phone
  are deleted first so only the newest code can ever verify
- verify: rejects missing, already-verified, expired, or wrong codes;
  a match flips verified to true exactly once
- checkout gate: the phone needs a verified row

Attempts are not rate limited and a verified row stays usable for later
checkouts from the same phone until a new code is issued.
"""

import hmac
import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy import update

from ..extensions import db
from ..models import OtpVerification
from ..time_utils import as_utc_naive, utcnow
from ..validation import ConflictError, NotFoundError, UnauthorizedError
from .notification_service import mask_phone


logger = logging.getLogger(__name__)

OTP_TTL = timedelta(minutes=10)
OTP_LENGTH = 6


def generate_otp() -> str:
    return str(100000 + secrets.randbelow(900000))


def issue_otp(phone: str, *, now: datetime | None = None) -> OtpVerification:
    """Replace any outstanding codes for the phone with a fresh one."""
    now = now or utcnow()

    db.session.query(OtpVerification).filter_by(phone=phone).delete(synchronize_session=False)

    record = OtpVerification(
        phone=phone,
        otp_code=generate_otp(),
        expires_at=now + OTP_TTL,
        verified=False,
        created_at=now,
    )
    db.session.add(record)
    db.session.commit()

    logger.info("Issued OTP for %s", mask_phone(phone))
    return record


def latest_otp(phone: str) -> OtpVerification | None:
    return (
        db.session.query(OtpVerification)
        .filter_by(phone=phone)
        .order_by(OtpVerification.created_at.desc(), OtpVerification.id.desc())
        .first()
    )


def verify_otp(phone: str, code: str, *, now: datetime | None = None) -> OtpVerification:
    """
    Mark the phone's latest code verified.

    Raises:
        NotFoundError: no code issued for the phone
        ConflictError: code already used or expired
        UnauthorizedError: code does not match
    """
    now = now or utcnow()

    record = latest_otp(phone)
    if not record:
        raise NotFoundError("OTP not found. Please request a new OTP.")

    if record.verified:
        raise ConflictError("OTP already used. Please request a new OTP.")

    if as_utc_naive(record.expires_at) < now:
        raise ConflictError("OTP expired. Please request a new OTP.")

    if not hmac.compare_digest(record.otp_code.encode("utf-8"), str(code).strip().encode("utf-8")):
        raise UnauthorizedError("Invalid OTP code.")

    # Conditional flip so two concurrent verifications cannot both succeed
    result = db.session.execute(
        update(OtpVerification)
        .where(OtpVerification.id == record.id, OtpVerification.verified.is_(False))
        .values(verified=True)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.rollback()
        raise ConflictError("OTP already used. Please request a new OTP.")

    db.session.commit()
    logger.info("Verified OTP for %s", mask_phone(phone))
    return record


def has_verified_phone(phone: str) -> bool:
    """Checkout gate: the most recent code issued to the phone was verified."""
    record = latest_otp(phone)
    return record is not None and record.verified
