"""
Fallback activation code store

Decorator over two stores. Writes go to the primary, and only a
StorageError sends them to the secondary. Codes issued into the secondary
while the primary was down stay reachable after it recovers:

- lookups that miss on the primary are retried on the secondary
- mark_used / delete_by_id go to whichever store holds the row
- cleanup and aggregate counts cover both stores
- a code in the secondary's ledger is never issued again by the primary

Paged listing reads the primary only (the secondary when the primary fails).
Uniqueness against the primary's ledger cannot be checked during an outage.
"""
import datetime as dt
import logging
from typing import Any, List, Optional, Tuple

from .activation_base import (
    ActivationCodeRecord,
    ActivationCodeStore,
    CodeCounts,
    CodePage,
    CodeStatus,
)
from .activation_errors import DuplicateCodeError, StorageError

logger = logging.getLogger("uvicorn.error")


class FallbackActivationCodeStore(ActivationCodeStore):
    def __init__(self, primary: ActivationCodeStore, secondary: ActivationCodeStore):
        self.primary = primary
        self.secondary = secondary

    @property
    def name(self) -> str:
        return f"{self.primary.name}->{self.secondary.name}"

    async def _try_primary(self, operation: str, *args) -> Tuple[bool, Any]:
        """Run ``operation`` on the primary; (False, None) when it raised StorageError."""
        try:
            return True, await getattr(self.primary, operation)(*args)
        except StorageError as exc:
            logger.warning(
                "[store] %s failed on %s (%s), falling back to %s",
                operation, self.primary.name, exc.message, self.secondary.name,
            )
            return False, None

    async def _call(self, operation: str, *args):
        ok, result = await self._try_primary(operation, *args)
        if ok:
            return result
        return await getattr(self.secondary, operation)(*args)

    async def _first_hit(self, operation: str, *args):
        ok, result = await self._try_primary(operation, *args)
        if ok and result is not None:
            return result
        return await getattr(self.secondary, operation)(*args)

    async def insert(self, record: ActivationCodeRecord) -> ActivationCodeRecord:
        if await self.secondary.is_issued(record.code):
            raise DuplicateCodeError()
        return await self._call("insert", record)

    async def is_issued(self, code: str) -> bool:
        ok, issued = await self._try_primary("is_issued", code)
        if ok and issued:
            return True
        return await self.secondary.is_issued(code)

    async def find_by_code(self, code: str) -> Optional[ActivationCodeRecord]:
        return await self._first_hit("find_by_code", code)

    async def find_by_id(self, code_id: str) -> Optional[ActivationCodeRecord]:
        return await self._first_hit("find_by_id", code_id)

    async def mark_used(
        self,
        code_id: str,
        used_at: dt.datetime,
        used_by: Optional[str] = None,
    ) -> bool:
        ok, updated = await self._try_primary("mark_used", code_id, used_at, used_by)
        if ok:
            if updated:
                return True
            # A False from the primary is final when the row lives there
            ok, held = await self._try_primary("find_by_id", code_id)
            if ok and held is not None:
                return False
        return await self.secondary.mark_used(code_id, used_at, used_by)

    async def delete_by_id(self, code_id: str) -> bool:
        ok, deleted = await self._try_primary("delete_by_id", code_id)
        if ok and deleted:
            return True
        return await self.secondary.delete_by_id(code_id)

    async def list_filtered(
        self,
        status: CodeStatus,
        page: int,
        limit: int,
        now: dt.datetime,
    ) -> CodePage:
        return await self._call("list_filtered", status, page, limit, now)

    async def find_stale_unused(self, older_than: dt.datetime) -> List[ActivationCodeRecord]:
        ok, rows = await self._try_primary("find_stale_unused", older_than)
        return (rows if ok else []) + await self.secondary.find_stale_unused(older_than)

    async def delete_stale_unused(self, older_than: dt.datetime) -> int:
        ok, deleted = await self._try_primary("delete_stale_unused", older_than)
        return (deleted if ok else 0) + await self.secondary.delete_stale_unused(older_than)

    async def find_expired_unused(self, before: dt.datetime) -> List[ActivationCodeRecord]:
        ok, rows = await self._try_primary("find_expired_unused", before)
        return (rows if ok else []) + await self.secondary.find_expired_unused(before)

    async def delete_expired_unused(self, before: dt.datetime) -> int:
        ok, deleted = await self._try_primary("delete_expired_unused", before)
        return (deleted if ok else 0) + await self.secondary.delete_expired_unused(before)

    async def aggregate_counts(self, now: dt.datetime) -> CodeCounts:
        ok, primary = await self._try_primary("aggregate_counts", now)
        secondary = await self.secondary.aggregate_counts(now)
        if not ok:
            return secondary
        return CodeCounts(
            total=primary.total + secondary.total,
            used=primary.used + secondary.used,
            expired=primary.expired + secondary.expired,
            active=primary.active + secondary.active,
        )
