# activation_hub/core/security.py
"""
Security module for operator authentication and admin gating.
Handles password hashing, JWT token creation/validation, and API key comparison.
"""
import os
import hmac
import datetime as dt
import jwt  # PyJWT
from passlib.context import CryptContext
from dotenv import load_dotenv
from pathlib import Path

ENV_PATH = Path(__file__).resolve().parents[3] / ".env"
load_dotenv(dotenv_path=ENV_PATH)

# Argon2 only; no legacy schemes to migrate from
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret")  # Use a strong secret in production
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
JWT_ALG = "HS256"

def hash_password(plain: str) -> str:
    """Hash a plain text password using Argon2."""
    return pwd_context.hash(plain)

def verify_password(plain: str, hashed: str) -> bool:
    """Return True if ``plain`` matches the stored Argon2 hash."""
    return pwd_context.verify(plain, hashed)

def create_access_token(user_id: str, role: str) -> str:
    """
    Create a JWT access token for an operator.

    The role is embedded so admin-only routes can be gated by the
    dependency layer; the user row is still loaded to confirm it exists.

    Token payload:
        - sub: user ID
        - role: "user" or "admin"
        - iat / exp: issue and expiry timestamps
    """
    now = dt.datetime.now(dt.timezone.utc)
    payload = {
        "sub": user_id,
        "role": role,
        "iat": now,
        "exp": now + dt.timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)

def decode_access_token(token: str) -> dict:
    """
    Decode and validate a JWT access token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or malformed
    """
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])

def api_key_matches(presented: str | None, expected: str | None) -> bool:
    """
    Constant-time comparison of an ``X-API-Key`` header against the configured key.

    An unset expected key never matches, so enabling API key auth without
    configuring API_KEY locks the routes instead of opening them.
    """
    if not presented or not expected:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))
