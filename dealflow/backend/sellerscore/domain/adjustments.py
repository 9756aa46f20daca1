# sellerscore/domain/adjustments.py
"""
Turning an untrusted adjustment proposal into a DealFlowIQScore.

Whatever the collaborator returns is treated as hostile input: entries that
are not well-formed are dropped, each adjustment is coerced to int and
clamped to +/- cap, at most `max_adjustments` are kept, and the summed score
is clamped to [0, 100]. Predictions that do not validate are replaced by
locally derived ones.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping

from .types import (
    AiAdjustment,
    DealFlowIQScore,
    NormalizedSignals,
    OfferRange,
    OwnerClassification,
    OwnerPrimaryClass,
    OwnerSubClass,
    Predictions,
    RawPropertySignals,
    StandardMotivationScore,
)

# Offer-range math needs a value; used only when no valuation was reported.
DEFAULT_MARKET_VALUE = 200_000.0

IQ_CONFIDENCE_CEILING = 0.95
IQ_CONFIDENCE_LIFT = 0.10

MAX_FACTOR_LEN = 80
MAX_REASONING_LEN = 500


@dataclass(frozen=True)
class AdjustmentContext:
    """Everything a collaborator may look at when proposing adjustments."""

    standard: StandardMotivationScore
    signals: RawPropertySignals
    normalized: NormalizedSignals
    classification: OwnerClassification


@dataclass(frozen=True)
class AdjustmentProposal:
    """Raw collaborator output. Nothing in here is trusted until validated."""

    adjustments: Any = field(default_factory=list)
    predictions: Any = None
    confidence: Any = None
    source: str = "unknown"


def _coerce_number(x: Any) -> float | None:
    if isinstance(x, bool) or x is None:
        return None
    if isinstance(x, (int, float)):
        v = float(x)
    elif isinstance(x, str):
        try:
            v = float(x.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(v) or math.isinf(v):
        return None
    return v


def _as_mapping(entry: Any) -> Mapping[str, Any] | None:
    if isinstance(entry, Mapping):
        return entry
    if isinstance(entry, AiAdjustment):
        return {"factor": entry.factor, "adjustment": entry.adjustment, "reasoning": entry.reasoning}
    return None


def validate_adjustments(raw: Any, *, cap: int, max_adjustments: int) -> tuple[list[AiAdjustment], int]:
    """Returns (kept, rejected_count)."""
    if not isinstance(raw, (list, tuple)):
        return [], 0 if raw is None else 1

    kept: list[AiAdjustment] = []
    rejected = 0
    for entry in raw:
        m = _as_mapping(entry)
        if m is None:
            rejected += 1
            continue
        factor = m.get("factor")
        value = _coerce_number(m.get("adjustment"))
        if not isinstance(factor, str) or not factor.strip() or value is None:
            rejected += 1
            continue
        if len(kept) >= max_adjustments:
            rejected += 1
            continue

        points = int(round(value))
        points = max(-cap, min(cap, points))
        reasoning = m.get("reasoning")
        kept.append(
            AiAdjustment(
                factor=factor.strip()[:MAX_FACTOR_LEN],
                adjustment=points,
                reasoning=(reasoning.strip() if isinstance(reasoning, str) else "")[:MAX_REASONING_LEN],
            )
        )
    return kept, rejected


def _valid_text(x: Any) -> str | None:
    if isinstance(x, str) and x.strip():
        return x.strip()[:MAX_REASONING_LEN]
    return None


def validate_predictions(raw: Any) -> Predictions | None:
    if isinstance(raw, Predictions):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        return None

    time_to_decision = _valid_text(raw.get("time_to_decision"))
    best_timing = _valid_text(raw.get("best_approach_timing"))
    offer = raw.get("optimal_offer_range")
    if not time_to_decision or not best_timing or not isinstance(offer, Mapping):
        return None

    lo = _coerce_number(offer.get("min"))
    hi = _coerce_number(offer.get("max"))
    if lo is None or hi is None or lo < 0 or lo > hi:
        return None

    return Predictions(
        time_to_decision=time_to_decision,
        best_approach_timing=best_timing,
        optimal_offer_range=OfferRange(min=int(round(lo)), max=int(round(hi))),
    )


def derive_predictions(
    iq_score: float,
    classification: OwnerClassification,
    normalized: NormalizedSignals,
) -> Predictions:
    if classification.primary_class == OwnerPrimaryClass.institutional_distressed:
        time_to_decision = "4-8 weeks" if classification.sub_class == OwnerSubClass.bank_reo else "2-6 weeks"
    elif iq_score >= 75:
        time_to_decision = "1-2 weeks"
    elif iq_score >= 50:
        time_to_decision = "2-4 weeks"
    else:
        time_to_decision = "1-2 months"

    if iq_score >= 70:
        timing = "Now - high motivation detected"
    elif normalized.days_on_market is not None and normalized.days_on_market > 60:
        timing = "Now - extended market time indicates flexibility"
    elif iq_score < 40:
        timing = "Wait 30-60 days for circumstances to change"
    else:
        timing = "Within 2 weeks"

    # higher motivation -> seller accepts a deeper discount
    base_discount = 100.0 - iq_score
    max_discount = min(30.0, base_discount + 10.0)
    min_discount = min(max(5.0, base_discount - 5.0), max_discount)

    value = normalized.market_value or DEFAULT_MARKET_VALUE
    return Predictions(
        time_to_decision=time_to_decision,
        best_approach_timing=timing,
        optimal_offer_range=OfferRange(
            min=int(round(value * (1 - max_discount / 100.0))),
            max=int(round(value * (1 - min_discount / 100.0))),
        ),
    )


def _iq_confidence(raw: Any, standard: StandardMotivationScore) -> float:
    v = _coerce_number(raw)
    if v is not None and 0.0 <= v <= 1.0:
        return round(min(IQ_CONFIDENCE_CEILING, v), 2)
    return round(min(IQ_CONFIDENCE_CEILING, standard.confidence + IQ_CONFIDENCE_LIFT), 2)


def build_iq_score(
    proposal: AdjustmentProposal,
    ctx: AdjustmentContext,
    *,
    cap: int,
    max_adjustments: int,
) -> DealFlowIQScore:
    adjustments, rejected = validate_adjustments(proposal.adjustments, cap=cap, max_adjustments=max_adjustments)

    total = ctx.standard.score + sum(a.adjustment for a in adjustments)
    iq_score = round(max(0.0, min(100.0, total)), 1)

    predictions = validate_predictions(proposal.predictions)
    if predictions is None:
        predictions = derive_predictions(iq_score, ctx.classification, ctx.normalized)

    return DealFlowIQScore(
        iq_score=iq_score,
        standard_score=ctx.standard.score,
        confidence=_iq_confidence(proposal.confidence, ctx.standard),
        ai_adjustments=tuple(adjustments),
        predictions=predictions,
        source=proposal.source,
        rejected_adjustments=rejected,
    )
