"""
Activation code lifecycle service

Owns the per-code state machine:

    Active --verify_and_consume--> Used
    Active --(clock passes expires_at)--> Expired   (read-time only, no write)

Used and Expired are terminal for consumption. Single-use relies on the
store's conditional update, so no in-process locking is needed.
"""
import datetime as dt
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .activation_base import (
    ActivationCodeRecord,
    ActivationCodeStore,
    CodeStatus,
)
from .activation_errors import (
    AlreadyUsedError,
    ExpiredError,
    NotFoundError,
    ValidationError,
)
from .code_generator import MAX_CODE_LENGTH, generate_activation_code, normalize_code

logger = logging.getLogger("uvicorn.error")

DEFAULT_EXPIRATION_DAYS = 365
DEFAULT_CLEANUP_AGE = dt.timedelta(minutes=5)
DEFAULT_PRODUCT_INFO: Dict[str, Any] = {
    "name": "Default Product",
    "version": "1.0.0",
    "features": ["basic"],
}


def utc_now() -> dt.datetime:
    """Current UTC datetime with timezone information."""
    return dt.datetime.now(dt.timezone.utc)


def ttl_from(
    days: Optional[float] = None,
    hours: Optional[float] = None,
    default_days: int = DEFAULT_EXPIRATION_DAYS,
) -> dt.timedelta:
    """Build a TTL from request parameters; hours win when both are given."""
    if hours is not None:
        return dt.timedelta(hours=hours)
    if days is not None:
        return dt.timedelta(days=days)
    return dt.timedelta(days=default_days)


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 2) if total > 0 else 0.0


@dataclass
class CodeStats:
    total: int
    used: int
    unused: int
    expired: int
    active: int
    usage_rate: float       # percent of total
    expiration_rate: float  # percent of total


@dataclass
class CodeListing:
    items: List[ActivationCodeRecord]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


class ActivationCodeService:
    def __init__(
        self,
        store: ActivationCodeStore,
        clock: Callable[[], dt.datetime] = utc_now,
        generator: Callable[[], str] = generate_activation_code,
        cleanup_age: dt.timedelta = DEFAULT_CLEANUP_AGE,
        opportunistic_cleanup: bool = True,
        default_expiration_days: int = DEFAULT_EXPIRATION_DAYS,
    ):
        self.store = store
        self.clock = clock
        self.generator = generator
        self.cleanup_age = cleanup_age
        self.opportunistic_cleanup = opportunistic_cleanup
        self.default_expiration_days = default_expiration_days

    # -------- create --------
    async def create(
        self,
        ttl: Optional[dt.timedelta] = None,
        metadata: Optional[Dict[str, Any]] = None,
        product_info: Optional[Dict[str, Any]] = None,
    ) -> ActivationCodeRecord:
        """
        Issue a new code valid for ``ttl`` (default: default_expiration_days).

        Runs the opportunistic cleanup first when enabled. A code collision
        surfaces as DuplicateCodeError; it is not retried here.
        """
        if self.opportunistic_cleanup:
            await self.cleanup(self.cleanup_age)

        now = self.clock()
        if ttl is None:
            ttl = dt.timedelta(days=self.default_expiration_days)
        record = ActivationCodeRecord(
            code=self.generator(),
            created_at=now,
            expires_at=now + ttl,
            metadata=dict(metadata or {}),
            product_info=dict(product_info if product_info is not None else DEFAULT_PRODUCT_INFO),
        )
        stored = await self.store.insert(record)
        logger.info("[activation] issued code id=%s expires_at=%s", stored.id, stored.expires_at.isoformat())
        return stored

    # -------- verify --------
    async def verify_and_consume(self, code: str, used_by: Optional[str] = None) -> ActivationCodeRecord:
        """
        Redeem a code exactly once.

        Raises:
        - ValidationError: blank, oversized or non-string code
        - NotFoundError: no such code
        - AlreadyUsedError: redeemed before (carries the first used_at)
        - ExpiredError: unused but past expires_at (carries expires_at)
        """
        record = await self._lookup(code)
        now = self.clock()
        self._ensure_consumable(record, now)

        if not await self.store.mark_used(record.id, now, used_by):
            # Lost the race to a concurrent redeem (or the row was deleted meanwhile)
            current = await self.store.find_by_id(record.id)
            if current is None:
                raise NotFoundError()
            raise AlreadyUsedError(current.used_at)

        record.is_used = True
        record.used_at = now
        record.used_by = used_by
        logger.info("[activation] consumed code id=%s", record.id)
        return record

    async def check(self, code: str) -> ActivationCodeRecord:
        """Same checks as verify_and_consume, without redeeming."""
        record = await self._lookup(code)
        self._ensure_consumable(record, self.clock())
        return record

    async def _lookup(self, code: Any) -> ActivationCodeRecord:
        if code is not None and not isinstance(code, str):
            raise ValidationError("code must be a string")
        normalized = normalize_code(code)
        if not normalized:
            raise ValidationError("code is required")
        if len(normalized) > MAX_CODE_LENGTH:
            raise ValidationError(f"code must be at most {MAX_CODE_LENGTH} characters")
        record = await self.store.find_by_code(normalized)
        if record is None:
            raise NotFoundError()
        return record

    @staticmethod
    def _ensure_consumable(record: ActivationCodeRecord, now: dt.datetime) -> None:
        if record.is_used:
            raise AlreadyUsedError(record.used_at)
        if record.is_expired(now):
            raise ExpiredError(record.expires_at)

    # -------- cleanup --------
    async def cleanup(self, max_age: dt.timedelta) -> int:
        """Delete unused codes created more than ``max_age`` ago. Used codes are never touched."""
        deleted = await self.store.delete_stale_unused(self.clock() - max_age)
        if deleted:
            logger.info("[cleanup] removed %d unused codes older than %s", deleted, max_age)
        return deleted

    async def preview_cleanup(self, max_age: dt.timedelta) -> List[ActivationCodeRecord]:
        return await self.store.find_stale_unused(self.clock() - max_age)

    async def cleanup_expired(self, older_than: dt.timedelta = dt.timedelta(0)) -> int:
        """Delete unused codes that expired at least ``older_than`` ago."""
        deleted = await self.store.delete_expired_unused(self.clock() - older_than)
        if deleted:
            logger.info("[cleanup] removed %d expired codes (grace %s)", deleted, older_than)
        return deleted

    async def preview_expired(self, older_than: dt.timedelta = dt.timedelta(0)) -> List[ActivationCodeRecord]:
        return await self.store.find_expired_unused(self.clock() - older_than)

    # -------- reporting / admin --------
    async def stats(self) -> CodeStats:
        counts = await self.store.aggregate_counts(self.clock())
        return CodeStats(
            total=counts.total,
            used=counts.used,
            unused=counts.total - counts.used,
            expired=counts.expired,
            active=counts.active,
            usage_rate=_rate(counts.used, counts.total),
            expiration_rate=_rate(counts.expired, counts.total),
        )

    async def list(self, status: CodeStatus = CodeStatus.ALL, page: int = 1, limit: int = 10) -> CodeListing:
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")
        result = await self.store.list_filtered(status, page, limit, self.clock())
        return CodeListing(items=result.items, page=page, limit=limit, total=result.total)

    async def get(self, code_id: str) -> ActivationCodeRecord:
        record = await self.store.find_by_id(code_id)
        if record is None:
            raise NotFoundError()
        return record

    async def delete(self, code_id: str) -> None:
        if not await self.store.delete_by_id(code_id):
            raise NotFoundError()
        logger.info("[activation] deleted code id=%s", code_id)
