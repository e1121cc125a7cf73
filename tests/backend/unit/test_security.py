"""
Unit tests for core.security module.
Tests password hashing, JWT tokens and API key comparison.
"""
import datetime as dt

import jwt
import pytest
from activation_hub.core.security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    api_key_matches,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


class TestPasswordHashing:
    """Tests for password hashing and verification."""

    def test_hash_is_salted(self):
        """Same password hashes differently each time."""
        assert hash_password("TestPassword123") != hash_password("TestPassword123")

    def test_verify_roundtrip(self):
        hashed = hash_password("TestPassword123")
        assert hashed != "TestPassword123"
        assert verify_password("TestPassword123", hashed) is True
        assert verify_password("WrongPassword456", hashed) is False


class TestJWTTokens:
    """Tests for JWT token creation and validation."""

    def test_token_carries_subject_and_role(self):
        payload = decode_access_token(create_access_token("user-1", "admin"))
        assert payload["sub"] == "user-1"
        assert payload["role"] == "admin"

    def test_token_expiration_matches_setting(self):
        payload = decode_access_token(create_access_token("user-2", "user"))
        assert payload["exp"] > dt.datetime.now(dt.timezone.utc).timestamp()
        diff_minutes = (payload["exp"] - payload["iat"]) / 60
        assert abs(diff_minutes - ACCESS_TOKEN_EXPIRE_MINUTES) < 1

    def test_invalid_token_rejected(self):
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token("invalid.token.here")

    def test_wrong_secret_rejected(self):
        token = create_access_token("user-3", "user")
        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(token, "wrong-secret", algorithms=["HS256"])


class TestApiKey:
    """Tests for X-API-Key comparison."""

    def test_matching_key(self):
        assert api_key_matches("s3cret-key", "s3cret-key") is True

    def test_wrong_key(self):
        assert api_key_matches("s3cret-kez", "s3cret-key") is False

    @pytest.mark.parametrize("presented,expected", [(None, "k"), ("", "k"), ("k", None), ("k", "")])
    def test_missing_side_never_matches(self, presented, expected):
        assert api_key_matches(presented, expected) is False
