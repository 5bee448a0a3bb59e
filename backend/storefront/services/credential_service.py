# Overview: Password hashing, verification and lazy upgrade of legacy hashes.

"""
Credential Service

Stored formats:
- CURRENT:        scrypt$<salt b64url>$<key b64url>
                  scrypt(N=16384, r=8, p=1, 32-byte key) over
                  password + "\\0" + pepper (pepper optional)
- LEGACY_BASE64:  sha:<base64(password)>           (old store accounts)
- LEGACY_INT:     signed 32-bit string hash, e.g. "-1549875532"  (old admins)

The format is resolved once when a record is loaded (StoredCredential.load),
either from the row's password_format column or by classifying the stored
string when the column is empty.

Verification never raises on a malformed stored hash; it reports no match.
A successful legacy match reports needs_upgrade=True and the caller rewrites
the record with hash_password() before answering the login request.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import re
import secrets
from dataclasses import dataclass
from enum import Enum

from flask import current_app, has_app_context

from .token_service import b64url_decode, b64url_encode


SCRYPT_PREFIX = "scrypt$"
LEGACY_BASE64_PREFIX = "sha:"
LEGACY_INT_PATTERN = re.compile(r"^-?\d+$")

SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_KEY_LENGTH = 32
SALT_BYTES = 16


class HashFormat(str, Enum):
    CURRENT = "current"
    LEGACY_BASE64 = "legacy_base64"
    LEGACY_INT = "legacy_int"


@dataclass(frozen=True)
class VerifyResult:
    matches: bool
    needs_upgrade: bool = False


NO_MATCH = VerifyResult(matches=False)


@dataclass(frozen=True)
class StoredCredential:
    format: HashFormat
    encoded: str
    salt: bytes = b""
    key: bytes = b""

    @classmethod
    def classify(cls, password_hash: str) -> HashFormat | None:
        if password_hash.startswith(SCRYPT_PREFIX):
            return HashFormat.CURRENT
        if password_hash.startswith(LEGACY_BASE64_PREFIX):
            return HashFormat.LEGACY_BASE64
        if LEGACY_INT_PATTERN.match(password_hash):
            return HashFormat.LEGACY_INT
        return None

    @classmethod
    def load(cls, password_hash: str | None, hash_format: str | None = None) -> "StoredCredential | None":
        """Resolve a stored hash into a tagged credential; None if unusable."""
        if not isinstance(password_hash, str) or not password_hash:
            return None

        if hash_format:
            try:
                fmt = HashFormat(hash_format)
            except ValueError:
                return None
        else:
            fmt = cls.classify(password_hash)
            if fmt is None:
                return None

        if fmt is HashFormat.CURRENT:
            parts = password_hash.split("$")
            if len(parts) != 3 or parts[0] != SCRYPT_PREFIX.rstrip("$"):
                return None
            try:
                salt = b64url_decode(parts[1])
                key = b64url_decode(parts[2])
            except (binascii.Error, ValueError):
                return None
            if not salt or not key:
                return None
            return cls(format=fmt, encoded=password_hash, salt=salt, key=key)

        return cls(format=fmt, encoded=password_hash)


def _configured_pepper() -> str:
    if has_app_context():
        return current_app.config.get("PASSWORD_PEPPER", "") or ""
    return ""


def _key_material(password: str, pepper: str) -> bytes:
    material = f"{password}\0{pepper}" if pepper else password
    return material.encode("utf-8")


def _derive(password: str, salt: bytes, length: int, pepper: str) -> bytes:
    return hashlib.scrypt(
        _key_material(password, pepper),
        salt=salt,
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=length,
    )


def legacy_base64_hash(password: str) -> str:
    return LEGACY_BASE64_PREFIX + base64.b64encode(password.encode("utf-8", "replace")).decode("ascii")


def legacy_int_hash(password: str) -> str:
    """31-multiplier rolling hash over UTF-16 code units, wrapped to signed 32 bits."""
    value = 0
    units = password.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(units), 2):
        code_unit = units[i] | (units[i + 1] << 8)
        value = (value * 31 + code_unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return str(value)


def hash_password(password: str, *, pepper: str | None = None) -> str:
    """Hash a password in the current format with a fresh random salt."""
    if pepper is None:
        pepper = _configured_pepper()
    salt = secrets.token_bytes(SALT_BYTES)
    key = _derive(password, salt, SCRYPT_KEY_LENGTH, pepper)
    return f"{SCRYPT_PREFIX}{b64url_encode(salt)}${b64url_encode(key)}"


def verify_credential(
    credential: StoredCredential | None,
    password: str,
    *,
    pepper: str | None = None,
) -> VerifyResult:
    if credential is None or not isinstance(password, str):
        return NO_MATCH

    if credential.format is HashFormat.CURRENT:
        if pepper is None:
            pepper = _configured_pepper()
        try:
            actual = _derive(password, credential.salt, len(credential.key), pepper)
        except (ValueError, MemoryError):
            return NO_MATCH
        return VerifyResult(matches=hmac.compare_digest(actual, credential.key))

    if credential.format is HashFormat.LEGACY_BASE64:
        candidate = legacy_base64_hash(password)
    else:
        candidate = legacy_int_hash(password)

    if hmac.compare_digest(candidate.encode("utf-8"), credential.encoded.encode("utf-8")):
        return VerifyResult(matches=True, needs_upgrade=True)
    return NO_MATCH


def verify_password(
    stored_hash: str | None,
    password: str,
    *,
    hash_format: str | None = None,
    pepper: str | None = None,
) -> VerifyResult:
    """Check a password against a stored hash; never raises."""
    return verify_credential(StoredCredential.load(stored_hash, hash_format), password, pepper=pepper)


def set_password(record, password: str) -> None:
    """Write a current-format hash onto any model with password_hash/password_format."""
    record.password_hash = hash_password(password)
    record.password_format = HashFormat.CURRENT.value


def check_record_password(record, password: str) -> bool:
    """
    Verify a model's password and upgrade a legacy hash in place on success.

    The caller commits the session; the upgrade must be persisted before the
    login response is sent.
    """
    result = verify_password(record.password_hash, password, hash_format=record.password_format)
    if not result.matches:
        return False
    if result.needs_upgrade:
        set_password(record, password)
    elif record.password_format is None:
        record.password_format = HashFormat.CURRENT.value
    return True
