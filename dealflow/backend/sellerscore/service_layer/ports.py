# sellerscore/service_layer/ports.py
from __future__ import annotations

from typing import Protocol

from ..domain.adjustments import AdjustmentContext, AdjustmentProposal
from ..domain.types import CacheRecord, RawPropertySignals, ResolvedAddress, SignalPatch


class SignalProvider(Protocol):
    """One external source of property signals (market data, permits, distress store)."""

    source: str
    # market/permit lookups need a street address; the store can go by id
    requires_address: bool

    async def fetch_signals(
        self,
        *,
        address: ResolvedAddress | None,
        property_id: str | None = None,
    ) -> list[SignalPatch]: ...


class PropertyStore(SignalProvider, Protocol):
    async def resolve_address(self, property_id: str) -> ResolvedAddress | None: ...
    async def count_owner_properties(self, owner_name: str) -> int | None: ...


class SignalCache(Protocol):
    async def get(self, key: str) -> CacheRecord | None: ...
    async def put(self, key: str, signals: RawPropertySignals, ttl_s: int, *, address: str | None = None) -> CacheRecord: ...
    async def purge_expired(self) -> int: ...


class AdjustmentProvider(Protocol):
    """Black-box collaborator proposing IQ adjustments. Its output is validated before use."""

    name: str

    async def propose(self, ctx: AdjustmentContext) -> AdjustmentProposal: ...
