"""
Tortoise ORM activation code store

Steady-state adapter over the activation_codes / issued_codes tables.
Single-use is enforced with a conditional UPDATE; uniqueness with the
unique constraints on both tables.
"""
import datetime as dt
import logging
import uuid
from contextlib import asynccontextmanager
from typing import List, Optional

from tortoise.exceptions import BaseORMException, IntegrityError
from tortoise.transactions import in_transaction

from activation_hub.models.activation_code import ActivationCode, IssuedCode
from .activation_base import (
    ActivationCodeRecord,
    ActivationCodeStore,
    CodeCounts,
    CodePage,
    CodeStatus,
)
from .activation_errors import ActivationError, DuplicateCodeError, StorageError

logger = logging.getLogger("uvicorn.error")


def _status_filters(status: CodeStatus, now: dt.datetime) -> dict:
    if status == CodeStatus.USED:
        return {"is_used": True}
    if status == CodeStatus.UNUSED:
        return {"is_used": False}
    if status == CodeStatus.EXPIRED:
        return {"is_used": False, "expires_at__lte": now}
    if status == CodeStatus.ACTIVE:
        return {"is_used": False, "expires_at__gt": now}
    return {}


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def _to_record(row: ActivationCode) -> ActivationCodeRecord:
    return ActivationCodeRecord(
        id=str(row.id),
        code=row.code,
        created_at=row.created_at,
        expires_at=row.expires_at,
        is_used=row.is_used,
        used_at=row.used_at,
        used_by=str(row.used_by_id) if row.used_by_id else None,
        metadata=row.metadata or {},
        product_info=row.product_info or {},
    )


@asynccontextmanager
async def _storage_errors(operation: str):
    """Translate ORM / driver failures into StorageError."""
    try:
        yield
    except ActivationError:
        raise
    except (BaseORMException, OSError) as exc:
        logger.exception("[store] tortoise %s failed", operation)
        raise StorageError(f"{operation} failed") from exc


class TortoiseActivationCodeStore(ActivationCodeStore):
    """Activation code store backed by the configured Tortoise connection"""

    @property
    def name(self) -> str:
        return "tortoise"

    async def insert(self, record: ActivationCodeRecord) -> ActivationCodeRecord:
        async with _storage_errors("insert"):
            try:
                async with in_transaction() as conn:
                    await IssuedCode.create(
                        code=record.code,
                        issued_at=record.created_at,
                        using_db=conn,
                    )
                    row = await ActivationCode.create(
                        code=record.code,
                        created_at=record.created_at,
                        expires_at=record.expires_at,
                        metadata=record.metadata,
                        product_info=record.product_info,
                        using_db=conn,
                    )
            except IntegrityError as exc:
                # Only a clash on the code itself counts as a duplicate
                if await IssuedCode.filter(code=record.code).exists():
                    raise DuplicateCodeError() from exc
                raise
            return _to_record(row)

    async def is_issued(self, code: str) -> bool:
        async with _storage_errors("is_issued"):
            return await IssuedCode.filter(code=code).exists()

    async def find_by_code(self, code: str) -> Optional[ActivationCodeRecord]:
        async with _storage_errors("find_by_code"):
            row = await ActivationCode.get_or_none(code=code)
            return _to_record(row) if row else None

    async def find_by_id(self, code_id: str) -> Optional[ActivationCodeRecord]:
        if not _is_uuid(code_id):
            return None
        async with _storage_errors("find_by_id"):
            row = await ActivationCode.get_or_none(id=code_id)
            return _to_record(row) if row else None

    async def mark_used(
        self,
        code_id: str,
        used_at: dt.datetime,
        used_by: Optional[str] = None,
    ) -> bool:
        values = {"is_used": True, "used_at": used_at}
        if used_by:
            values["used_by_id"] = used_by
        async with _storage_errors("mark_used"):
            # UPDATE ... WHERE id = ? AND is_used = false
            updated = await ActivationCode.filter(id=code_id, is_used=False).update(**values)
            return updated == 1

    async def list_filtered(
        self,
        status: CodeStatus,
        page: int,
        limit: int,
        now: dt.datetime,
    ) -> CodePage:
        async with _storage_errors("list_filtered"):
            qs = ActivationCode.filter(**_status_filters(status, now))
            total = await qs.count()
            rows = await qs.order_by("-created_at").offset((page - 1) * limit).limit(limit)
            return CodePage(items=[_to_record(r) for r in rows], total=total)

    async def delete_by_id(self, code_id: str) -> bool:
        if not _is_uuid(code_id):
            return False
        async with _storage_errors("delete_by_id"):
            deleted = await ActivationCode.filter(id=code_id).delete()
            return deleted > 0

    async def find_stale_unused(self, older_than: dt.datetime) -> List[ActivationCodeRecord]:
        async with _storage_errors("find_stale_unused"):
            rows = await ActivationCode.filter(
                is_used=False, created_at__lt=older_than
            ).order_by("created_at")
            return [_to_record(r) for r in rows]

    async def delete_stale_unused(self, older_than: dt.datetime) -> int:
        async with _storage_errors("delete_stale_unused"):
            return await ActivationCode.filter(is_used=False, created_at__lt=older_than).delete()

    async def find_expired_unused(self, before: dt.datetime) -> List[ActivationCodeRecord]:
        async with _storage_errors("find_expired_unused"):
            rows = await ActivationCode.filter(
                is_used=False, expires_at__lte=before
            ).order_by("expires_at")
            return [_to_record(r) for r in rows]

    async def delete_expired_unused(self, before: dt.datetime) -> int:
        async with _storage_errors("delete_expired_unused"):
            return await ActivationCode.filter(is_used=False, expires_at__lte=before).delete()

    async def aggregate_counts(self, now: dt.datetime) -> CodeCounts:
        async with _storage_errors("aggregate_counts"):
            return CodeCounts(
                total=await ActivationCode.all().count(),
                used=await ActivationCode.filter(**_status_filters(CodeStatus.USED, now)).count(),
                expired=await ActivationCode.filter(**_status_filters(CodeStatus.EXPIRED, now)).count(),
                active=await ActivationCode.filter(**_status_filters(CodeStatus.ACTIVE, now)).count(),
            )
