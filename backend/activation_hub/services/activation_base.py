"""
Activation Code Storage Interface

Storage port used by the lifecycle service, plus the record and status types
shared by every adapter (Tortoise / in-memory / fallback).
"""
import datetime as dt
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class CodeStatus(str, Enum):
    """Listing filter. ACTIVE / EXPIRED / USED are derived from stored fields plus the clock."""
    ALL = "all"
    USED = "used"
    UNUSED = "unused"
    EXPIRED = "expired"
    ACTIVE = "active"


@dataclass
class ActivationCodeRecord:
    """Storage-neutral view of one activation_codes row"""
    code: str
    created_at: dt.datetime
    expires_at: dt.datetime
    id: Optional[str] = None  # Assigned by the store on insert
    is_used: bool = False
    used_at: Optional[dt.datetime] = None
    used_by: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    product_info: Dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: dt.datetime) -> bool:
        return not self.is_used and now >= self.expires_at

    def is_active(self, now: dt.datetime) -> bool:
        return not self.is_used and now < self.expires_at

    def status(self, now: dt.datetime) -> CodeStatus:
        if self.is_used:
            return CodeStatus.USED
        return CodeStatus.ACTIVE if now < self.expires_at else CodeStatus.EXPIRED


@dataclass
class CodePage:
    """One page of a filtered listing"""
    items: List[ActivationCodeRecord]
    total: int


@dataclass
class CodeCounts:
    """Storage-side aggregate; total == used + active + expired"""
    total: int = 0
    used: int = 0
    expired: int = 0
    active: int = 0


def matches_status(record: ActivationCodeRecord, status: CodeStatus, now: dt.datetime) -> bool:
    """Python rendition of the status predicates, for stores without a query language"""
    if status == CodeStatus.ALL:
        return True
    if status == CodeStatus.UNUSED:
        return not record.is_used
    return record.status(now) == status


class ActivationCodeStore(ABC):
    """
    Activation code storage port.

    Adapters translate their own failures into StorageError and a unique
    violation on ``code`` into DuplicateCodeError; nothing else escapes.
    """

    @abstractmethod
    async def insert(self, record: ActivationCodeRecord) -> ActivationCodeRecord:
        """Insert a new code; returns the stored record with its id."""

    @abstractmethod
    async def is_issued(self, code: str) -> bool:
        """True if ``code`` was ever inserted, even if the row has since been deleted."""

    @abstractmethod
    async def find_by_code(self, code: str) -> Optional[ActivationCodeRecord]:
        pass

    @abstractmethod
    async def find_by_id(self, code_id: str) -> Optional[ActivationCodeRecord]:
        pass

    @abstractmethod
    async def mark_used(
        self,
        code_id: str,
        used_at: dt.datetime,
        used_by: Optional[str] = None,
    ) -> bool:
        """
        Flip is_used for an unused row in a single conditional update.

        Returns:
        - True if this call flipped the row, False if it was already used or is gone
        """

    @abstractmethod
    async def list_filtered(
        self,
        status: CodeStatus,
        page: int,
        limit: int,
        now: dt.datetime,
    ) -> CodePage:
        """Newest-created first; page is 1-based."""

    @abstractmethod
    async def delete_by_id(self, code_id: str) -> bool:
        pass

    @abstractmethod
    async def find_stale_unused(self, older_than: dt.datetime) -> List[ActivationCodeRecord]:
        """Unused codes created before ``older_than`` (cleanup preview)."""

    @abstractmethod
    async def delete_stale_unused(self, older_than: dt.datetime) -> int:
        pass

    @abstractmethod
    async def find_expired_unused(self, before: dt.datetime) -> List[ActivationCodeRecord]:
        """Unused codes with expires_at <= ``before``, soonest expiry first."""

    @abstractmethod
    async def delete_expired_unused(self, before: dt.datetime) -> int:
        pass

    @abstractmethod
    async def aggregate_counts(self, now: dt.datetime) -> CodeCounts:
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Store name for logs (e.g., "tortoise")"""
