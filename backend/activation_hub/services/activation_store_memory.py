"""
In-process activation code store

Used as the secondary of the fallback store and in unit tests. Each method
runs without an await between its check and its write, so a single event
loop sees every operation as atomic.
"""
import datetime as dt
import uuid
from dataclasses import replace
from typing import Dict, List, Optional, Set

from .activation_base import (
    ActivationCodeRecord,
    ActivationCodeStore,
    CodeCounts,
    CodePage,
    CodeStatus,
    matches_status,
)
from .activation_errors import DuplicateCodeError


class InMemoryActivationCodeStore(ActivationCodeStore):
    def __init__(self):
        self._rows: Dict[str, ActivationCodeRecord] = {}
        self._by_code: Dict[str, str] = {}
        self._issued: Set[str] = set()  # Survives deletes, like the issued_codes table

    @property
    def name(self) -> str:
        return "memory"

    async def insert(self, record: ActivationCodeRecord) -> ActivationCodeRecord:
        if record.code in self._issued:
            raise DuplicateCodeError()
        stored = replace(record, id=record.id or str(uuid.uuid4()))
        self._issued.add(stored.code)
        self._rows[stored.id] = stored
        self._by_code[stored.code] = stored.id
        return replace(stored)

    async def is_issued(self, code: str) -> bool:
        return code in self._issued

    async def find_by_code(self, code: str) -> Optional[ActivationCodeRecord]:
        code_id = self._by_code.get(code)
        return replace(self._rows[code_id]) if code_id else None

    async def find_by_id(self, code_id: str) -> Optional[ActivationCodeRecord]:
        row = self._rows.get(code_id)
        return replace(row) if row else None

    async def mark_used(
        self,
        code_id: str,
        used_at: dt.datetime,
        used_by: Optional[str] = None,
    ) -> bool:
        row = self._rows.get(code_id)
        if row is None or row.is_used:
            return False
        row.is_used = True
        row.used_at = used_at
        row.used_by = used_by
        return True

    async def list_filtered(
        self,
        status: CodeStatus,
        page: int,
        limit: int,
        now: dt.datetime,
    ) -> CodePage:
        matched = [r for r in self._rows.values() if matches_status(r, status, now)]
        matched.sort(key=lambda r: r.created_at, reverse=True)
        start = (page - 1) * limit
        return CodePage(items=[replace(r) for r in matched[start:start + limit]], total=len(matched))

    async def delete_by_id(self, code_id: str) -> bool:
        row = self._rows.pop(code_id, None)
        if row is None:
            return False
        self._by_code.pop(row.code, None)
        return True

    async def find_stale_unused(self, older_than: dt.datetime) -> List[ActivationCodeRecord]:
        rows = [r for r in self._rows.values() if not r.is_used and r.created_at < older_than]
        return [replace(r) for r in sorted(rows, key=lambda r: r.created_at)]

    async def delete_stale_unused(self, older_than: dt.datetime) -> int:
        return self._delete_ids([r.id for r in await self.find_stale_unused(older_than)])

    async def find_expired_unused(self, before: dt.datetime) -> List[ActivationCodeRecord]:
        rows = [r for r in self._rows.values() if not r.is_used and r.expires_at <= before]
        return [replace(r) for r in sorted(rows, key=lambda r: r.expires_at)]

    async def delete_expired_unused(self, before: dt.datetime) -> int:
        return self._delete_ids([r.id for r in await self.find_expired_unused(before)])

    async def aggregate_counts(self, now: dt.datetime) -> CodeCounts:
        counts = CodeCounts(total=len(self._rows))
        for row in self._rows.values():
            status = row.status(now)
            if status == CodeStatus.USED:
                counts.used += 1
            elif status == CodeStatus.ACTIVE:
                counts.active += 1
            else:
                counts.expired += 1
        return counts

    def _delete_ids(self, ids: List[str]) -> int:
        for code_id in ids:
            row = self._rows.pop(code_id, None)
            if row is not None:
                self._by_code.pop(row.code, None)
        return len(ids)
