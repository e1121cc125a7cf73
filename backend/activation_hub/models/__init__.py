"""
Database models module initialization.
Exports all Tortoise ORM models for convenient imports.

Models exported:
- User: Operator account used to sign in to admin routes
- ActivationCode: Single-use activation code
- IssuedCode: Append-only ledger of issued code strings
- RateLimitHit: Shared fixed-window request counter
"""
from .user import User
from .activation_code import ActivationCode, IssuedCode
from .rate_limit import RateLimitHit
