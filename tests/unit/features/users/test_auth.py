"""
Tests for token and password helpers.
"""
import pytest
from fastapi import HTTPException

from app.features.users.auth import create_access_token, hash_password, verify_jwt_token, verify_password


class TestPasswordHashing:
    def test_round_trip(self):
        hashed = hash_password("secret123")
        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("secret124", hashed)

    def test_multibyte_password_over_72_bytes(self):
        """40 two-byte characters is 80 bytes; bcrypt only sees the first 72."""
        password = "é" * 40
        hashed = hash_password(password)
        assert verify_password(password, hashed)

    def test_only_first_72_bytes_count(self):
        hashed = hash_password("a" * 72 + "tail")
        assert verify_password("a" * 72, hashed)
        assert verify_password("a" * 72 + "other", hashed)
        assert not verify_password("a" * 71, hashed)


class TestAccessToken:
    def test_round_trip(self):
        payload = verify_jwt_token(create_access_token(7))
        assert payload["sub"] == "7"

    def test_expired(self):
        token = create_access_token(7, expires_minutes=-1)
        with pytest.raises(HTTPException) as exc_info:
            verify_jwt_token(token)
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has expired"

    def test_garbage(self):
        with pytest.raises(HTTPException) as exc_info:
            verify_jwt_token("not-a-jwt")
        assert exc_info.value.status_code == 401
