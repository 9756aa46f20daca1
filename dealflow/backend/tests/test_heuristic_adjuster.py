# tests/test_heuristic_adjuster.py
from datetime import date

import pytest

from sellerscore.adapters.adjusters.heuristic import HeuristicAdjuster
from sellerscore.domain.adjustments import AdjustmentContext
from sellerscore.domain.normalize import normalize_signals
from sellerscore.domain.owner_classifier import classify_owner
from sellerscore.domain.scoring_models import score_motivation
from sellerscore.domain.types import RawPropertySignals

TODAY = date(2025, 7, 15)


def _ctx(raw: RawPropertySignals) -> AdjustmentContext:
    n = normalize_signals(raw, today=TODAY)
    c = classify_owner(raw.owner_name)
    return AdjustmentContext(standard=score_motivation(n, c), signals=raw, normalized=n, classification=c)


def _by_factor(adjuster: HeuristicAdjuster, raw: RawPropertySignals) -> dict[str, int]:
    return {a["factor"]: a["adjustment"] for a in adjuster.adjustments(_ctx(raw))}


@pytest.mark.parametrize("month,expected", [(4, -3), (12, 5), (1, 5), (7, None)])
def test_seasonal_timing(month, expected):
    got = _by_factor(HeuristicAdjuster(today=lambda: date(2025, month, 10)), RawPropertySignals(owner_name="John Smith"))
    assert got.get("Seasonal Timing") == expected


def test_market_momentum():
    adj = HeuristicAdjuster(today=lambda: TODAY)
    assert _by_factor(adj, RawPropertySignals(price_change_yoy=-8))["Market Momentum"] == 8
    assert _by_factor(adj, RawPropertySignals(price_change_yoy=12))["Market Momentum"] == -5
    assert "Market Momentum" not in _by_factor(adj, RawPropertySignals(price_change_yoy=2))


def test_duration_patterns_by_owner_class():
    adj = HeuristicAdjuster(today=lambda: TODAY)
    seven = _by_factor(adj, RawPropertySignals(owner_name="John Smith", last_sale_date=date(2018, 7, 1)))
    assert seven["Duration Pattern"] == 5

    flip = _by_factor(adj, RawPropertySignals(owner_name="Quick Flip LLC", last_sale_date=date(2025, 1, 1)))
    assert flip["Flip Indicator"] == 10


def test_property_age_and_compound_distress():
    adj = HeuristicAdjuster(today=lambda: TODAY)
    got = _by_factor(
        adj,
        RawPropertySignals(owner_name="John Smith", year_built=1940, tax_delinquent=True, vacant_indicator=True, code_liens=1),
    )
    assert got["Property Age"] == 3
    assert got["Compound Distress"] == 15


def test_institutional_owner_gets_no_age_adjustment():
    adj = HeuristicAdjuster(today=lambda: TODAY)
    got = _by_factor(adj, RawPropertySignals(owner_name="WELLS FARGO BANK NA", year_built=1900))
    assert "Property Age" not in got


@pytest.mark.asyncio
async def test_propose_leaves_predictions_to_local_derivation():
    proposal = await HeuristicAdjuster(today=lambda: TODAY).propose(_ctx(RawPropertySignals(price_change_yoy=-8)))
    assert proposal.source == "heuristic"
    assert proposal.predictions is None
    assert proposal.adjustments
