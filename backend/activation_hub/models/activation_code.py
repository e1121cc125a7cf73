import uuid
from typing import Optional
from tortoise import fields, models

class ActivationCode(models.Model):
    """
    Single-use, time-bounded activation code.
    - code: Upper-case token handed to the customer, unique
    - created_at: Issue time (set by the lifecycle service clock)
    - expires_at: created_at + TTL
    - is_used: Flips false -> true exactly once, via a conditional update
    - used_at: Redemption time, set together with is_used
    - used_by: Redeeming operator when the verify call carried a token (optional)
    - metadata / product_info: Caller-supplied JSON, stored as-is
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    code = fields.CharField(max_length=64, unique=True, index=True)

    created_at = fields.DatetimeField(index=True)
    expires_at = fields.DatetimeField(index=True)

    is_used = fields.BooleanField(default=False, index=True)
    used_at = fields.DatetimeField(null=True)
    used_by: Optional[fields.ForeignKeyNullableRelation["User"]] = fields.ForeignKeyField(
        "models.User", related_name="redeemed_codes", null=True, on_delete=fields.SET_NULL
    )

    metadata = fields.JSONField(null=True)
    product_info = fields.JSONField(null=True)

    class Meta:
        table = "activation_codes"


class IssuedCode(models.Model):
    """
    Ledger of every code string ever issued.
    Rows are never deleted, so the unique constraint keeps a deleted code from being reissued.
    """
    id = fields.IntField(pk=True)
    code = fields.CharField(max_length=64, unique=True)
    issued_at = fields.DatetimeField()

    class Meta:
        table = "issued_codes"
