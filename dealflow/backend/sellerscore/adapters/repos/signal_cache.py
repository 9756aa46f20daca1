# sellerscore/adapters/repos/signal_cache.py
from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...domain.types import CacheRecord, RawPropertySignals
from ...models import SignalCacheRow

log = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_aware_utc(dt: datetime) -> datetime:
    """property_signals timestamps are written as naive UTC; read them back as aware UTC for TTL checks."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _naive_utc(dt: datetime) -> datetime:
    return _ensure_aware_utc(dt).replace(tzinfo=None)


def _record_from_row(row: SignalCacheRow) -> CacheRecord:
    return CacheRecord(
        key=row.cache_key,
        signals=RawPropertySignals.from_dict(json.loads(row.payload_json)),
        fetched_at=_ensure_aware_utc(row.fetched_at),
        expires_at=_ensure_aware_utc(row.expires_at),
    )


class SqlAlchemySignalCache:
    """
    Keyed TTL store on the property_signals table.

    A refresh deletes the live row for the key and inserts a new one in the
    same transaction; rows are never updated in place.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession], *, now: Clock = _utcnow):
        self.session_maker = session_maker
        self.now = now

    async def get(self, key: str) -> CacheRecord | None:
        q = select(SignalCacheRow).where(SignalCacheRow.cache_key == key)
        async with self.session_maker() as session:
            row = (await session.execute(q)).scalars().first()
        if row is None:
            return None
        if _ensure_aware_utc(row.expires_at) <= _ensure_aware_utc(self.now()):
            return None
        return _record_from_row(row)

    async def put(
        self,
        key: str,
        signals: RawPropertySignals,
        ttl_s: int,
        *,
        address: str | None = None,
    ) -> CacheRecord:
        fetched_at = _ensure_aware_utc(self.now())
        expires_at = fetched_at + timedelta(seconds=int(ttl_s))
        payload = json.dumps(signals.to_dict(), default=str)

        async with self.session_maker() as session:
            async with session.begin():
                await session.execute(delete(SignalCacheRow).where(SignalCacheRow.cache_key == key))
                session.add(
                    SignalCacheRow(
                        cache_key=key,
                        address=address,
                        payload_json=payload,
                        fetched_at=_naive_utc(fetched_at),
                        expires_at=_naive_utc(expires_at),
                    )
                )

        return CacheRecord(key=key, signals=signals, fetched_at=fetched_at, expires_at=expires_at)

    async def purge_expired(self) -> int:
        cutoff = _naive_utc(self.now())
        async with self.session_maker() as session:
            async with session.begin():
                res = await session.execute(delete(SignalCacheRow).where(SignalCacheRow.expires_at <= cutoff))
        n = int(res.rowcount or 0)
        if n:
            log.info("purged %d expired signal cache rows", n)
        return n


class InMemorySignalCache:
    """Process-local cache with the same contract. Used in tests and for dry runs."""

    def __init__(self, *, now: Clock = _utcnow):
        self.now = now
        self._rows: dict[str, CacheRecord] = {}

    async def get(self, key: str) -> CacheRecord | None:
        rec = self._rows.get(key)
        if rec is None or rec.expires_at <= _ensure_aware_utc(self.now()):
            return None
        return rec

    async def put(
        self,
        key: str,
        signals: RawPropertySignals,
        ttl_s: int,
        *,
        address: str | None = None,
    ) -> CacheRecord:
        fetched_at = _ensure_aware_utc(self.now())
        rec = CacheRecord(key=key, signals=signals, fetched_at=fetched_at, expires_at=fetched_at + timedelta(seconds=int(ttl_s)))
        # supersede, never mutate
        self._rows[key] = rec
        return rec

    async def purge_expired(self) -> int:
        now = _ensure_aware_utc(self.now())
        dead = [k for k, r in self._rows.items() if r.expires_at <= now]
        for k in dead:
            del self._rows[k]
        return len(dead)


class NullSignalCache:
    """Caching disabled."""

    async def get(self, key: str) -> CacheRecord | None:
        return None

    async def put(
        self,
        key: str,
        signals: RawPropertySignals,
        ttl_s: int,
        *,
        address: str | None = None,
    ) -> CacheRecord:
        now = _utcnow()
        return CacheRecord(key=key, signals=signals, fetched_at=now, expires_at=now)

    async def purge_expired(self) -> int:
        return 0
