# sellerscore/service_layer/motivation.py
"""
Seller-motivation orchestration.

Per request: resolving -> fetching -> classifying -> scoring_standard ->
[scoring_iq] -> complete. Nothing here retries. Only an unresolvable
identity is raised to the caller; provider failures, a dead adjuster, or a
failed cache write show up as lower confidence, fetch errors, or notes.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from datetime import date
from typing import Any, Callable, Mapping, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..adapters.adjusters.heuristic import HeuristicAdjuster
from ..adapters.clients.ai_adjuster import HttpAdjuster
from ..adapters.clients.rentcast import RentCastClient
from ..adapters.clients.shovels import ShovelsClient
from ..adapters.repos.properties import SqlAlchemyPropertyStore
from ..adapters.repos.signal_cache import SqlAlchemySignalCache
from ..config import settings
from ..domain.address import extract_zipcode
from ..domain.adjustments import AdjustmentContext, build_iq_score
from ..domain.normalize import normalize_signals
from ..domain.owner_classifier import classify_owner
from ..domain.scoring_models import score_motivation
from ..domain.types import (
    BatchItemResult,
    DataQuality,
    DealFlowIQScore,
    OwnerClassification,
    PropertyFacts,
    QuickScore,
    RawPropertySignals,
    ResolvedAddress,
    ScoreRequest,
    ScoreType,
    ScoringResult,
    SignalFetchResult,
    StandardMotivationScore,
    Timing,
)
from ..errors import MotivationError, ScoringStageError, UnresolvableIdentityError
from .ports import AdjustmentProvider, PropertyStore
from .signals import SignalFetcher, SignalFetchOptions

log = logging.getLogger(__name__)

CALLER_SOURCE = "caller"


def _ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _as_request(item: ScoreRequest | Mapping[str, Any]) -> ScoreRequest:
    if isinstance(item, ScoreRequest):
        return item
    return ScoreRequest(
        address=item.get("address"),
        property_id=item.get("property_id"),
        zipcode=item.get("zipcode"),
    )


class MotivationEngine:
    def __init__(
        self,
        *,
        fetcher: SignalFetcher,
        store: PropertyStore | None = None,
        adjuster: AdjustmentProvider | None = None,
        iq_timeout_s: float | None = None,
        adjustment_cap: int | None = None,
        max_adjustments: int | None = None,
        batch_concurrency: int | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.fetcher = fetcher
        self.store = store
        self.adjuster = adjuster
        self.iq_timeout_s = float(iq_timeout_s if iq_timeout_s is not None else settings.IQ_TIMEOUT_S)
        self.adjustment_cap = int(adjustment_cap if adjustment_cap is not None else settings.IQ_ADJUSTMENT_CAP)
        self.max_adjustments = int(max_adjustments if max_adjustments is not None else settings.IQ_MAX_ADJUSTMENTS)
        self.batch_concurrency = int(batch_concurrency if batch_concurrency is not None else settings.BATCH_CONCURRENCY)
        self.today = today

    # -----------------------------
    # Stages
    # -----------------------------
    async def _resolve(
        self,
        address: str | None,
        property_id: str | None,
        zipcode: str | None,
    ) -> ResolvedAddress | None:
        if address and address.strip():
            a = address.strip()
            # a full one-line address already carries its state/zip tail
            return ResolvedAddress(address=a, zipcode=zipcode if zipcode and not extract_zipcode(a) else None)

        if not property_id:
            raise UnresolvableIdentityError("either address or property_id is required")

        resolved: ResolvedAddress | None = None
        if self.store is not None:
            try:
                resolved = await self.store.resolve_address(property_id)
            except Exception as e:
                log.warning("address resolution failed for property_id=%s: %s", property_id, e)

        if resolved is None and not zipcode:
            raise UnresolvableIdentityError(
                f"property_id={property_id} could not be resolved to an address",
                property_id=property_id,
            )
        if resolved is not None and zipcode and not resolved.zipcode and not extract_zipcode(resolved.address):
            resolved = replace(resolved, zipcode=zipcode)
        return resolved

    def _classify(self, signals: RawPropertySignals) -> OwnerClassification:
        facts = PropertyFacts(
            owner_type=signals.owner_type,
            owner_occupied=signals.owner_occupied,
            mailing_state=signals.owner_mailing_state,
            property_state=signals.property_state,
            portfolio_size=signals.owner_portfolio_size,
        )
        return classify_owner(signals.owner_name, facts)

    async def _score_iq(
        self,
        standard: StandardMotivationScore,
        ctx: AdjustmentContext,
    ) -> tuple[DealFlowIQScore | None, str | None]:
        if self.adjuster is None:
            return None, "iq_unavailable: no adjuster configured"
        try:
            proposal = await asyncio.wait_for(self.adjuster.propose(ctx), timeout=self.iq_timeout_s)
        except asyncio.TimeoutError:
            log.warning("adjuster %s timed out after %.1fs", self.adjuster.name, self.iq_timeout_s)
            return None, "iq_unavailable: timeout"
        except Exception as e:
            log.warning("adjuster %s failed: %s", self.adjuster.name, e)
            return None, f"iq_unavailable: {type(e).__name__}: {e}"

        try:
            iq = build_iq_score(proposal, ctx, cap=self.adjustment_cap, max_adjustments=self.max_adjustments)
        except Exception as e:
            log.warning("adjuster %s proposal could not be validated: %s", self.adjuster.name, e)
            return None, f"iq_unavailable: invalid proposal ({type(e).__name__})"

        if iq.rejected_adjustments:
            log.info("dropped %d malformed adjustment(s) from %s", iq.rejected_adjustments, iq.source)
        return iq, None

    # -----------------------------
    # Public API
    # -----------------------------
    async def calculate_seller_motivation(
        self,
        *,
        address: str | None = None,
        property_id: str | None = None,
        zipcode: str | None = None,
        score_type: ScoreType | str = ScoreType.standard,
        use_cache: bool = True,
        cache_ttl_s: int | None = None,
        signals: RawPropertySignals | None = None,
        classification: OwnerClassification | None = None,
    ) -> ScoringResult:
        score_type = ScoreType(score_type)
        t0 = time.perf_counter()
        notes: list[str] = []

        t = time.perf_counter()
        if signals is None:
            # a cache hit needs no resolution and no store lookups
            fetch = await self.fetcher.cached(
                SignalFetchOptions(property_id=property_id, address=address, use_cache=use_cache)
            )
            if fetch is None:
                # resolving
                resolved = await self._resolve(address, property_id, zipcode)
                # fetching; the cache was already read above, the write still happens
                fetch = await self.fetcher.fetch_property_signals(
                    SignalFetchOptions(
                        property_id=property_id,
                        address=address,
                        zipcode=zipcode,
                        resolved=resolved,
                        use_cache=False,
                        cache_ttl_s=cache_ttl_s,
                    )
                )
            raw = fetch.signals
        else:
            resolved = await self._resolve(address, property_id, zipcode)
            fetch = SignalFetchResult(
                signals=signals,
                sources={CALLER_SOURCE: True},
                errors=(),
                fetched_at=self.fetcher.now(),
            )
            raw = await self.fetcher.enrich(signals, resolved)
        fetch_ms = _ms(t)
        if fetch.from_cache:
            notes.append("signals_from_cache")

        # classifying
        t = time.perf_counter()
        if classification is None:
            try:
                classification = self._classify(raw)
            except Exception as e:
                raise ScoringStageError("classifying", f"{type(e).__name__}: {e}") from e
        classify_ms = _ms(t)

        # scoring_standard
        t = time.perf_counter()
        try:
            normalized = normalize_signals(raw, today=self.today())
            standard = score_motivation(normalized, classification)
        except Exception as e:
            raise ScoringStageError("scoring_standard", f"{type(e).__name__}: {e}") from e
        score_ms = _ms(t)

        # scoring_iq
        iq: DealFlowIQScore | None = None
        iq_ms = 0
        if score_type.wants_iq:
            t = time.perf_counter()
            ctx = AdjustmentContext(standard=standard, signals=raw, normalized=normalized, classification=classification)
            iq, note = await self._score_iq(standard, ctx)
            if note:
                notes.append(note)
            iq_ms = _ms(t)

        data_quality = DataQuality(
            signals_available=len(normalized.present_fields),
            signals_missing=normalized.missing_fields,
            sources_used=tuple(s for s, ok in fetch.sources.items() if ok),
            confidence=standard.confidence,
        )

        log.debug(
            "scored %s as %s: standard=%.1f iq=%s",
            property_id or address,
            classification.label,
            standard.score,
            None if iq is None else iq.iq_score,
        )

        return ScoringResult(
            standard_score=standard,
            signals=raw,
            classification=classification,
            data_quality=data_quality,
            timing=Timing(
                fetch_ms=fetch_ms,
                classify_ms=classify_ms,
                score_ms=score_ms,
                iq_ms=iq_ms,
                total_ms=_ms(t0),
            ),
            dealflow_iq=iq,
            iq_available=iq is not None,
            fetch_errors=fetch.errors,
            notes=tuple(notes),
        )

    async def batch_calculate_motivation(
        self,
        items: Sequence[ScoreRequest | Mapping[str, Any]],
        *,
        score_type: ScoreType | str = ScoreType.standard,
        concurrency: int | None = None,
        use_cache: bool = True,
    ) -> list[BatchItemResult]:
        """Bounded fan-out. Output order equals input order; one bad item never sinks the batch."""
        requests = [_as_request(i) for i in items]
        sem = asyncio.Semaphore(max(1, int(concurrency or self.batch_concurrency)))

        async def _one(req: ScoreRequest) -> BatchItemResult:
            async with sem:
                try:
                    result = await self.calculate_seller_motivation(
                        address=req.address,
                        property_id=req.property_id,
                        zipcode=req.zipcode,
                        score_type=score_type,
                        use_cache=use_cache,
                    )
                except MotivationError as e:
                    return BatchItemResult(input=req, error=str(e))
                except Exception as e:
                    log.exception("batch item failed: %s", req)
                    return BatchItemResult(input=req, error=f"{type(e).__name__}: {e}")
                return BatchItemResult(input=req, result=result)

        return list(await asyncio.gather(*(_one(r) for r in requests)))

    async def quick_score(self, *, address: str | None = None, property_id: str | None = None) -> QuickScore:
        result = await self.calculate_seller_motivation(
            address=address,
            property_id=property_id,
            score_type=ScoreType.standard,
            use_cache=True,
        )
        return QuickScore(
            score=result.standard_score.score,
            recommendation=result.standard_score.recommendation,
            confidence=result.standard_score.confidence,
            owner_type=result.classification.label,
        )


def build_engine(session_maker: async_sessionmaker[AsyncSession] | None = None) -> MotivationEngine:
    """Wire the production collaborators from settings."""
    if session_maker is None:
        from ..db import AsyncSessionLocal

        session_maker = AsyncSessionLocal

    store = SqlAlchemyPropertyStore(session_maker)
    cache = SqlAlchemySignalCache(session_maker)
    fetcher = SignalFetcher(
        providers=[RentCastClient(), ShovelsClient(), store],
        store=store,
        cache=cache,
    )
    adjuster: AdjustmentProvider = HttpAdjuster() if settings.AI_ADJUSTER_URL else HeuristicAdjuster()
    return MotivationEngine(fetcher=fetcher, store=store, adjuster=adjuster)
