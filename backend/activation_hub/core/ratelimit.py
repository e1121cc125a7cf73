# activation_hub/core/ratelimit.py
"""
Fixed-window request admission per caller identity.

The limiter itself is stateless; counters live in a RateLimitStore:
- MemoryRateLimitStore: single API instance
- TortoiseRateLimitStore: shared through the database across instances
"""
import datetime as dt
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from tortoise.expressions import F
from tortoise.transactions import in_transaction

from activation_hub.models.rate_limit import RateLimitHit

logger = logging.getLogger("uvicorn.error")


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int  # seconds until the current window closes


class RateLimitStore(ABC):
    """Backing store for request counters"""

    @abstractmethod
    async def increment(self, bucket: str, identity: str, window_start: dt.datetime) -> int:
        """Count one request in the given window; returns the count including it."""


class MemoryRateLimitStore(RateLimitStore):
    """
    Per-process counters.
    Entries from closed windows are dropped once the map grows past max_entries.
    """

    def __init__(self, max_entries: int = 10_000):
        self.max_entries = max_entries
        self._windows: Dict[Tuple[str, str], Tuple[dt.datetime, int]] = {}

    async def increment(self, bucket: str, identity: str, window_start: dt.datetime) -> int:
        key = (bucket, identity)
        start, count = self._windows.get(key, (window_start, 0))
        if start != window_start:
            start, count = window_start, 0
        count += 1
        self._windows[key] = (start, count)
        if len(self._windows) > self.max_entries:
            self._purge(window_start)
        return count

    def _purge(self, current_window: dt.datetime) -> None:
        stale = [k for k, (start, _) in self._windows.items() if start < current_window]
        for k in stale:
            del self._windows[k]


class TortoiseRateLimitStore(RateLimitStore):
    """
    Counters in the rate_limit_hits table, shared by every instance.
    Closed windows of a bucket are pruned when its next window opens.
    """

    async def increment(self, bucket: str, identity: str, window_start: dt.datetime) -> int:
        async with in_transaction() as conn:
            hit, created = await RateLimitHit.get_or_create(
                bucket=bucket,
                identity=identity,
                window_start=window_start,
                defaults={"count": 0},
                using_db=conn,
            )
            await RateLimitHit.filter(id=hit.id).using_db(conn).update(count=F("count") + 1)
            hit = await RateLimitHit.get(id=hit.id, using_db=conn)
            if created:
                # New window row: every closed window of this bucket is dead, whoever sent it
                await RateLimitHit.filter(
                    bucket=bucket, window_start__lt=window_start
                ).using_db(conn).delete()
        return hit.count


class RateLimiter:
    """
    Admit at most ``max_requests`` per ``window_seconds`` for each (bucket, identity).
    """

    def __init__(
        self,
        store: RateLimitStore,
        max_requests: int = 100,
        window_seconds: int = 60,
        clock: Callable[[], dt.datetime] = _utc_now,
    ):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock

    def window_start(self, now: dt.datetime) -> dt.datetime:
        epoch = math.floor(now.timestamp() / self.window_seconds) * self.window_seconds
        return dt.datetime.fromtimestamp(epoch, tz=dt.timezone.utc)

    async def hit(self, bucket: str, identity: str) -> RateLimitDecision:
        now = self.clock()
        if not identity:
            logger.warning("[ratelimit] empty client identity for bucket=%s, admitting", bucket)
            return RateLimitDecision(allowed=True, remaining=self.max_requests, retry_after=0)

        start = self.window_start(now)
        count = await self.store.increment(bucket, identity, start)
        window_end = start + dt.timedelta(seconds=self.window_seconds)
        retry_after = max(0, math.ceil((window_end - now).total_seconds()))

        if count > self.max_requests:
            logger.warning("[ratelimit] limit exceeded bucket=%s client=%s count=%d", bucket, identity, count)
            return RateLimitDecision(allowed=False, remaining=0, retry_after=retry_after)
        return RateLimitDecision(allowed=True, remaining=self.max_requests - count, retry_after=retry_after)


def build_rate_limit_store(backend: str) -> RateLimitStore:
    if backend == "database":
        return TortoiseRateLimitStore()
    if backend != "memory":
        raise ValueError(f"Unknown RATE_LIMIT_BACKEND: {backend}")
    return MemoryRateLimitStore()
