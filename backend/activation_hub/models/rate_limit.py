from tortoise import fields, models

class RateLimitHit(models.Model):
    """
    Request counter for one (bucket, identity) pair in one fixed window.
    Shared by every API instance pointing at the same database.
    """
    id = fields.IntField(pk=True)
    bucket = fields.CharField(max_length=64)
    identity = fields.CharField(max_length=128)
    window_start = fields.DatetimeField(index=True)
    count = fields.IntField(default=0)

    class Meta:
        table = "rate_limit_hits"
        unique_together = (("bucket", "identity", "window_start"),)
