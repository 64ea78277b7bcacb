"""Unit tests for authentication functions."""
import os
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException
from jose import jwt

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

from common.auth import (
    authenticate_user,
    create_access_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from common.config import get_settings
from common.models import User

settings = get_settings()


def make_user(hashed_password: str) -> User:
    return User(
        id=1,
        first_name="Test",
        last_name="User",
        username="testuser",
        email="test@example.com",
        hashed_password=hashed_password,
    )


class TestPasswordHashing:
    """Test password hashing and verification."""

    def test_password_hash_and_verify(self):
        password = "MySecurePassword123!"
        hashed = get_password_hash(password)

        assert hashed != password
        assert verify_password(password, hashed) is True
        assert verify_password("WrongPassword", hashed) is False

    def test_same_password_different_hashes(self):
        """The same password hashes differently thanks to the salt."""
        password = "TestPassword123"
        hash1 = get_password_hash(password)
        hash2 = get_password_hash(password)

        assert hash1 != hash2
        assert verify_password(password, hash1) is True
        assert verify_password(password, hash2) is True


class TestJWTTokens:
    """Test JWT token creation and decoding."""

    def test_create_access_token(self):
        token = create_access_token({"sub": "testuser", "uid": 1})

        decoded = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        assert decoded["sub"] == "testuser"
        assert decoded["uid"] == 1
        assert "exp" in decoded

    def test_create_token_with_custom_expiry(self):
        token = create_access_token({"sub": "user123"}, timedelta(minutes=30))

        decoded = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        assert decoded["exp"] > datetime.utcnow().timestamp()

    def test_decode_token_valid(self):
        token = create_access_token({"sub": "testuser"})
        assert decode_token(token)["sub"] == "testuser"

    def test_decode_token_invalid(self):
        with pytest.raises(HTTPException) as exc_info:
            decode_token("invalid.token.here")

        assert exc_info.value.status_code == 401
        assert "Invalid token" in str(exc_info.value.detail)

    def test_decode_token_expired(self):
        token = create_access_token({"sub": "testuser"}, timedelta(hours=-1))

        with pytest.raises(HTTPException) as exc_info:
            decode_token(token)

        assert exc_info.value.status_code == 401


class TestUserAuthentication:
    """Test user authentication logic."""

    def test_authenticate_user_success(self):
        mock_db = MagicMock()
        password = "TestPass123"
        mock_db.query.return_value.filter.return_value.first.return_value = make_user(get_password_hash(password))

        result = authenticate_user(mock_db, "testuser", password)

        assert result is not None
        assert result.username == "testuser"
        assert result.id == 1

    def test_authenticate_user_wrong_password(self):
        mock_db = MagicMock()
        mock_db.query.return_value.filter.return_value.first.return_value = make_user(
            get_password_hash("CorrectPassword")
        )

        assert authenticate_user(mock_db, "testuser", "WrongPassword") is None

    def test_authenticate_user_not_found(self):
        mock_db = MagicMock()
        mock_db.query.return_value.filter.return_value.first.return_value = None

        assert authenticate_user(mock_db, "nonexistent", "anypassword") is None
