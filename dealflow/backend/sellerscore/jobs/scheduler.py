# sellerscore/jobs/scheduler.py
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..adapters.repos.signal_cache import SqlAlchemySignalCache
from ..config import settings
from ..service_layer.ports import SignalCache

log = logging.getLogger(__name__)


async def purge_signal_cache(cache: SignalCache) -> int:
    """
    Quiet-by-default posture: expired rows are already invisible to readers,
    this only keeps the table from growing. Failures are logged, never raised
    into the scheduler loop.
    """
    try:
        n = await cache.purge_expired()
    except Exception:
        log.exception("signal cache purge failed")
        return 0
    if n:
        log.info("signal cache purge removed %d row(s)", n)
    return n


def build_scheduler(session_maker: async_sessionmaker[AsyncSession] | None = None) -> AsyncIOScheduler:
    if session_maker is None:
        from ..db import AsyncSessionLocal

        session_maker = AsyncSessionLocal

    cache = SqlAlchemySignalCache(session_maker)
    sched = AsyncIOScheduler()

    # coroutine job: AsyncIOExecutor awaits it on the scheduler loop
    sched.add_job(
        purge_signal_cache,
        "interval",
        args=[cache],
        minutes=int(settings.SCHED_CACHE_PURGE_INTERVAL_MINUTES),
        id="purge_signal_cache",
    )
    return sched
