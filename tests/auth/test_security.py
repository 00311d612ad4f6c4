"""Tests for auth security functions."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import JWTError, jwt

from src.auth.permissions import UserRole
from src.auth.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from src.config import get_settings


class TestPasswordHashing:
    """Tests for password hashing functions."""

    def test_hash_password_creates_hash(self) -> None:
        """Hash should be different from plain password."""
        password = "SecureP@ssword123"
        hashed = hash_password(password)
        assert hashed != password
        assert hashed.startswith("$argon2")

    def test_hash_password_unique_hashes(self) -> None:
        """Same password should produce different hashes (due to salt)."""
        password = "SecureP@ssword123"
        assert hash_password(password) != hash_password(password)

    def test_verify_password_correct(self) -> None:
        password = "SecureP@ssword123"
        is_valid, new_hash = verify_password(password, hash_password(password))
        assert is_valid is True
        assert new_hash is None

    def test_verify_password_incorrect(self) -> None:
        hashed = hash_password("SecureP@ssword123")
        is_valid, new_hash = verify_password("WrongP@ssword456", hashed)
        assert is_valid is False
        assert new_hash is None

    def test_verify_password_garbage_hash(self) -> None:
        """A corrupt stored hash fails verification instead of raising."""
        is_valid, _new_hash = verify_password("anything", "not-a-hash")
        assert is_valid is False


class TestAccessToken:
    """Tests for access token creation and decoding."""

    @staticmethod
    def _claims() -> dict[str, str]:
        return {
            "sub": str(uuid4()),
            "username": "alice",
            "role": UserRole.EMPLOYER.value,
        }

    def test_decode_access_token(self) -> None:
        claims = self._claims()
        payload = decode_access_token(create_access_token(claims))

        assert payload["sub"] == claims["sub"]
        assert payload["username"] == "alice"
        assert payload["role"] == "employer"
        assert payload["type"] == "access"
        assert "exp" in payload
        assert "iat" in payload

    def test_decode_access_token_expired(self) -> None:
        token = create_access_token(self._claims(), expires_delta=timedelta(seconds=-1))

        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_decode_access_token_invalid(self) -> None:
        with pytest.raises(JWTError):
            decode_access_token("invalid.token.here")

    def test_decode_access_token_wrong_type(self) -> None:
        settings = get_settings()
        token = jwt.encode(
            {**self._claims(), "type": "refresh"},
            settings.auth_secret_key,
            algorithm=settings.auth_algorithm,
        )

        with pytest.raises(JWTError, match="expected 'access'"):
            decode_access_token(token)

    def test_decode_access_token_missing_username(self) -> None:
        token = create_access_token({"sub": str(uuid4())})

        with pytest.raises(JWTError, match="identity"):
            decode_access_token(token)
