"""
Unit Tests for Security Module
Tests for: password hashing, verification, strength checks
"""
import pytest

from aaghaaz.core.exceptions import ValidationError
from aaghaaz.core.security import (
    get_password_hash,
    get_password_hash_async,
    validate_password_strength,
    verify_password,
    verify_password_async,
)


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_password_returns_different_value(self):
        """Test that hashing returns a different value than input"""
        password = "secret1"
        hashed = get_password_hash(password)

        assert hashed != password
        assert hashed.startswith("$2")

    def test_hash_password_different_each_time(self):
        """Bcrypt generates a fresh salt per hash"""
        assert get_password_hash("secret1") != get_password_hash("secret1")

    def test_verify_password_correct(self):
        hashed = get_password_hash("secret1")
        assert verify_password("secret1", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = get_password_hash("secret1")
        assert verify_password("secret2", hashed) is False

    def test_hash_long_password_truncated(self):
        """Bcrypt only looks at the first 72 bytes"""
        long_password = "a" * 100
        hashed = get_password_hash(long_password)

        assert verify_password(long_password, hashed) is True
        assert verify_password("a" * 72, hashed) is True

    def test_hash_unicode_password(self):
        password = "pässwörd-🔐"
        hashed = get_password_hash(password)
        assert verify_password(password, hashed) is True


class TestVerifyPasswordNeverRaises:
    """Unusable stored hashes read as a failed match"""

    @pytest.mark.parametrize("stored", [None, "", "not-a-bcrypt-hash", "$2b$12$short"])
    def test_unusable_hash_returns_false(self, stored):
        assert verify_password("secret1", stored) is False

    def test_none_password_returns_false(self):
        assert verify_password(None, get_password_hash("secret1")) is False


class TestPasswordStrength:
    def test_minimum_length_accepted(self):
        assert validate_password_strength("secret") == "secret"

    def test_short_password_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_password_strength("abc")
        assert exc_info.value.status_code == 400
        assert exc_info.value.details["field"] == "password"


class TestAsyncVariants:
    @pytest.mark.asyncio
    async def test_async_round_trip(self):
        hashed = await get_password_hash_async("secret1")

        assert await verify_password_async("secret1", hashed) is True
        assert await verify_password_async("wrong", hashed) is False
