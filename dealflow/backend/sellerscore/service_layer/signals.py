# sellerscore/service_layer/signals.py
"""
Signal fetching: cache lookup, address resolution, concurrent provider calls,
authority-ranked merge, state/portfolio fill, cache write.

Provider failures never propagate. Each one becomes a FetchError entry and
the merge proceeds with whatever the other providers returned.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Sequence

from ..config import settings
from ..domain.address import address_key, extract_state, extract_zipcode, normalize_state
from ..domain.merge import fill_missing, merge_patches
from ..domain.types import FetchError, RawPropertySignals, ResolvedAddress, SignalFetchResult, SignalPatch
from ..errors import UnresolvableIdentityError
from .ports import PropertyStore, SignalCache, SignalProvider

log = logging.getLogger(__name__)

CACHE_SOURCE = "cache"


@dataclass(frozen=True)
class SignalFetchOptions:
    property_id: str | None = None
    address: str | None = None
    zipcode: str | None = None
    city: str | None = None
    state: str | None = None
    # provider sources to query; None means all configured providers.
    # A filtered fetch never reads or writes the cache.
    sources: frozenset[str] | None = None
    use_cache: bool = True
    cache_ttl_s: int | None = None
    # engine passes the address it already resolved so we don't look it up twice
    resolved: ResolvedAddress | None = None


def cache_key_for(property_id: str | None, address: str | None) -> str | None:
    if property_id:
        return f"pid:{property_id}"
    if address and address.strip():
        return address_key(address)
    return None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _describe(e: BaseException) -> str:
    msg = str(e).strip()
    return f"{type(e).__name__}: {msg}" if msg else type(e).__name__


class SignalFetcher:
    def __init__(
        self,
        *,
        providers: Sequence[SignalProvider],
        store: PropertyStore | None,
        cache: SignalCache,
        default_ttl_s: int | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        # order matters: equal-authority ties go to the earlier provider
        self.providers = list(providers)
        self.store = store
        self.cache = cache
        self.default_ttl_s = int(default_ttl_s if default_ttl_s is not None else settings.SIGNAL_CACHE_TTL_S)
        self.now = now

    def _enabled(self, opts: SignalFetchOptions) -> list[SignalProvider]:
        if opts.sources is None:
            return list(self.providers)
        return [p for p in self.providers if p.source in opts.sources]

    async def resolve(self, opts: SignalFetchOptions) -> tuple[ResolvedAddress | None, FetchError | None]:
        if opts.resolved is not None:
            return opts.resolved, None
        if opts.address and opts.address.strip():
            return (
                ResolvedAddress(address=opts.address.strip(), city=opts.city, state=opts.state, zipcode=opts.zipcode),
                None,
            )
        if not opts.property_id or self.store is None:
            return None, None

        try:
            resolved = await self.store.resolve_address(opts.property_id)
        except Exception as e:
            log.warning("address resolution failed for property_id=%s: %s", opts.property_id, e)
            return None, FetchError(self.store.source, f"address resolution failed: {_describe(e)}")
        if resolved is None:
            return None, FetchError(self.store.source, f"no address on file for property_id={opts.property_id}")
        if opts.zipcode and not resolved.zipcode and not extract_zipcode(resolved.address):
            resolved = ResolvedAddress(resolved.address, resolved.city, resolved.state, opts.zipcode)
        return resolved, None

    async def _call(
        self,
        provider: SignalProvider,
        address: ResolvedAddress | None,
        property_id: str | None,
    ) -> tuple[list[SignalPatch], FetchError | None]:
        try:
            patches = await provider.fetch_signals(address=address, property_id=property_id)
        except Exception as e:
            log.warning("signal provider %s failed: %s", provider.source, e)
            return [], FetchError(provider.source, _describe(e))
        return list(patches or []), None

    async def enrich(self, signals: RawPropertySignals, resolved: ResolvedAddress | None) -> RawPropertySignals:
        """Fill property state and owner portfolio size so the cached bag is complete."""
        state = normalize_state(resolved.state) if resolved else None
        if state is None and resolved is not None:
            state = extract_state(resolved.one_line)

        portfolio: int | None = None
        if signals.owner_portfolio_size is None and signals.owner_name and self.store is not None:
            try:
                portfolio = await self.store.count_owner_properties(signals.owner_name)
            except Exception as e:
                log.warning("owner portfolio count failed for %r: %s", signals.owner_name, e)

        return fill_missing(signals, property_state=state, owner_portfolio_size=portfolio)

    async def cached(self, opts: SignalFetchOptions) -> SignalFetchResult | None:
        """Unexpired cache entry for the request, or None. Touches nothing but the cache."""
        if not opts.use_cache or opts.sources is not None:
            return None
        key = cache_key_for(opts.property_id, opts.address or (opts.resolved.one_line if opts.resolved else None))
        if key is None:
            return None
        try:
            rec = await self.cache.get(key)
        except Exception as e:
            log.warning("signal cache read failed for %s: %s", key, e)
            return None
        if rec is None:
            return None
        return SignalFetchResult(
            signals=rec.signals,
            sources={CACHE_SOURCE: True, **{p.source: False for p in self.providers}},
            errors=(),
            fetched_at=rec.fetched_at,
            from_cache=True,
        )

    async def fetch_property_signals(self, opts: SignalFetchOptions) -> SignalFetchResult:
        key = cache_key_for(opts.property_id, opts.address or (opts.resolved.one_line if opts.resolved else None))
        if key is None:
            raise UnresolvableIdentityError("property_id or address is required to fetch signals")

        hit = await self.cached(opts)
        if hit is not None:
            return hit

        enabled = self._enabled(opts)
        errors: list[FetchError] = []
        resolved, resolve_err = await self.resolve(opts)
        if resolve_err is not None:
            errors.append(resolve_err)

        runnable: list[SignalProvider] = []
        for p in enabled:
            if p.requires_address and resolved is None:
                errors.append(FetchError(p.source, "skipped: address could not be resolved"))
            else:
                runnable.append(p)

        results = await asyncio.gather(*(self._call(p, resolved, opts.property_id) for p in runnable))

        sources: dict[str, bool] = {p.source: False for p in enabled}
        patches: list[SignalPatch] = []
        for p, (provider_patches, err) in zip(runnable, results):
            if err is not None:
                errors.append(err)
                continue
            sources[p.source] = True
            patches.extend(provider_patches)

        merged, _ = merge_patches(patches)
        signals = await self.enrich(merged, resolved)
        fetched_at = self.now()

        if opts.sources is not None:
            log.debug("skipping cache write for %s: fetch limited to %s", key, sorted(opts.sources))
        elif not errors:
            ttl = int(opts.cache_ttl_s if opts.cache_ttl_s is not None else self.default_ttl_s)
            try:
                await self.cache.put(key, signals, ttl, address=resolved.one_line if resolved else None)
            except Exception as e:
                log.warning("signal cache write failed for %s: %s", key, e)
        else:
            log.info("skipping cache write for %s: %d provider error(s)", key, len(errors))

        return SignalFetchResult(
            signals=signals,
            sources=sources,
            errors=tuple(errors),
            fetched_at=fetched_at,
            from_cache=False,
        )
