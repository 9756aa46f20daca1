# tests/test_signal_cache_roundtrip.py
from datetime import date

import pytest
from sqlalchemy import func, select

from fakes import FIXED_NOW, Clock
from sellerscore.adapters.repos.signal_cache import SqlAlchemySignalCache
from sellerscore.domain.types import Permit, PermitStatus, RawPropertySignals
from sellerscore.models import SignalCacheRow


def _signals(**kw) -> RawPropertySignals:
    base = dict(
        owner_name="JOHN SMITH",
        owner_occupied=False,
        last_sale_date=date(2014, 5, 2),
        estimated_value=310000.0,
        recent_permits=(Permit(type="roofing", status=PermitStatus.final, filed_date=date(2024, 9, 1), tags=("roofing",)),),
        tax_delinquent=False,
    )
    base.update(kw)
    return RawPropertySignals(**base)


@pytest.mark.asyncio
async def test_signal_cache_writes_and_reads_row(async_session_maker):
    cache = SqlAlchemySignalCache(async_session_maker, now=Clock(FIXED_NOW))
    original = _signals()

    rec = await cache.put("pid:p1", original, 600, address="123 Main St, Tampa, FL 33601")
    got = await cache.get("pid:p1")

    assert got is not None
    assert got.signals == original
    assert got.fetched_at == rec.fetched_at
    assert (got.expires_at - got.fetched_at).total_seconds() == 600


@pytest.mark.asyncio
async def test_refresh_supersedes_existing_row(async_session_maker):
    cache = SqlAlchemySignalCache(async_session_maker, now=Clock(FIXED_NOW))
    await cache.put("pid:p1", _signals(estimated_value=100.0), 600)
    await cache.put("pid:p1", _signals(estimated_value=200.0), 600)

    async with async_session_maker() as session:
        n = (await session.execute(select(func.count()).select_from(SignalCacheRow))).scalar_one()
    assert n == 1
    assert (await cache.get("pid:p1")).signals.estimated_value == 200.0


@pytest.mark.asyncio
async def test_expired_rows_are_invisible_then_purged(async_session_maker):
    clock = Clock(FIXED_NOW)
    cache = SqlAlchemySignalCache(async_session_maker, now=clock)
    await cache.put("pid:old", _signals(), 60)
    await cache.put("pid:new", _signals(), 3600)

    clock.advance(120)
    assert await cache.get("pid:old") is None
    assert await cache.get("pid:new") is not None

    assert await cache.purge_expired() == 1
    assert await cache.purge_expired() == 0


@pytest.mark.asyncio
async def test_missing_key(async_session_maker):
    cache = SqlAlchemySignalCache(async_session_maker, now=Clock(FIXED_NOW))
    assert await cache.get("addr:NOWHERE") is None
