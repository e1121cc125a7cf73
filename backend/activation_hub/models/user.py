"""
Database model for operators.
An operator signs in to manage activation codes; only the "admin" role may
issue, list, delete and clean up codes.
"""
import uuid
from tortoise import fields, models

class User(models.Model):
    """
    Operator account.

    Relationships:
    - Has many redeemed ActivationCodes (via used_by foreign key in ActivationCode model)

    Security:
    - Password is stored as an Argon2 hash
    - Username must be unique across all users
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    username = fields.CharField(max_length=256, unique=True, index=True)
    email = fields.CharField(max_length=256, null=True)
    password_hash = fields.CharField(max_length=255)
    role = fields.CharField(max_length=16, default="user")  # "user" or "admin"
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "users"
