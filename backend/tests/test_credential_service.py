"""
Password hashing tests.

Verifies:
- current format is scrypt with a random salt and honours the pepper
- both legacy formats verify and request an upgrade
- legacy upgrade is idempotent (second verification needs no upgrade)
- malformed stored hashes report no match instead of raising
"""

import pytest

from storefront.models import StoreAccount, AdminUser
from storefront.services.credential_service import (
    HashFormat,
    StoredCredential,
    check_record_password,
    hash_password,
    legacy_base64_hash,
    legacy_int_hash,
    verify_password,
)


class TestCurrentFormat:

    def test_hash_shape(self):
        stored = hash_password("Secret1", pepper="")
        prefix, salt, key = stored.split("$")

        assert prefix == "scrypt"
        assert salt and key
        assert StoredCredential.classify(stored) is HashFormat.CURRENT

    def test_salt_is_random(self):
        assert hash_password("Secret1", pepper="") != hash_password("Secret1", pepper="")

    def test_verify(self):
        stored = hash_password("Secret1", pepper="")

        ok = verify_password(stored, "Secret1", pepper="")
        assert ok.matches is True
        assert ok.needs_upgrade is False

        assert verify_password(stored, "secret1", pepper="").matches is False

    def test_pepper_is_part_of_the_key(self):
        stored = hash_password("Secret1", pepper="pepper-a")

        assert verify_password(stored, "Secret1", pepper="pepper-a").matches is True
        assert verify_password(stored, "Secret1", pepper="pepper-b").matches is False
        assert verify_password(stored, "Secret1", pepper="").matches is False

    def test_app_pepper_used_by_default(self, app):
        stored = hash_password("Secret1")
        assert verify_password(stored, "Secret1", pepper="test-pepper").matches is True


class TestLegacyFormats:

    def test_base64_legacy(self):
        stored = legacy_base64_hash("Secret1")
        assert stored == "sha:U2VjcmV0MQ=="

        result = verify_password(stored, "Secret1")
        assert result.matches is True
        assert result.needs_upgrade is True

        assert verify_password(stored, "Secret2").matches is False

    @pytest.mark.parametrize("password,expected", [
        ("", "0"),
        ("a", "97"),
        ("hello", "99162322"),
        ("admin123", "-969161597"),
    ])
    def test_int_hash_values(self, password, expected):
        assert legacy_int_hash(password) == expected

    def test_int_legacy(self):
        stored = legacy_int_hash("admin123")

        result = verify_password(stored, "admin123")
        assert result.matches is True
        assert result.needs_upgrade is True

    def test_format_column_overrides_sniffing(self):
        stored = legacy_base64_hash("Secret1")
        assert verify_password(stored, "Secret1", hash_format="legacy_int").matches is False


class TestMalformedHashes:

    @pytest.mark.parametrize("stored", [
        None,
        "",
        "scrypt$",
        "scrypt$$",
        "scrypt$not base64$also not",
        "scrypt$a$b$c",
        "bcrypt$2b$12$abc",
        "plaintext",
    ])
    def test_no_match_never_raises(self, stored):
        assert verify_password(stored, "Secret1").matches is False

    def test_unknown_format_tag(self):
        assert verify_password(hash_password("x", pepper=""), "x", hash_format="md5").matches is False


class TestLazyUpgrade:

    def test_legacy_upgrade_is_idempotent(self, db_session):
        store = StoreAccount(
            store_id="legacy01",
            email="legacy@example.com",
            status="approved",
            password_hash=legacy_base64_hash("Secret1"),
            password_format=None,
        )
        db_session.add(store)
        db_session.commit()

        first = verify_password(store.password_hash, "Secret1", hash_format=store.password_format)
        assert first.matches is True
        assert first.needs_upgrade is True

        assert check_record_password(store, "Secret1") is True
        db_session.commit()

        assert store.password_format == HashFormat.CURRENT.value
        assert store.password_hash.startswith("scrypt$")

        second = verify_password(store.password_hash, "Secret1", hash_format=store.password_format)
        assert second.matches is True
        assert second.needs_upgrade is False

    def test_failed_legacy_check_leaves_record_alone(self, db_session):
        stored = legacy_int_hash("admin123")
        admin = AdminUser(email="old@example.com", password_hash=stored)
        db_session.add(admin)
        db_session.commit()

        assert check_record_password(admin, "wrong") is False
        assert admin.password_hash == stored
        assert admin.password_format is None
