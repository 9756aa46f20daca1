# tests/test_scoring_models.py
from datetime import date

import pytest

from sellerscore.domain.normalize import normalize_signals
from sellerscore.domain.owner_classifier import classify_owner
from sellerscore.domain.scoring_models import (
    INSUFFICIENT_DATA_RECOMMENDATION,
    REO_RISK,
    TRUST_ESTATE_RISK,
    BandRule,
    score_band,
    score_individual,
    score_investor,
    score_motivation,
)
from sellerscore.domain.types import (
    Impact,
    OwnerPrimaryClass,
    OwnerSubClass,
    Permit,
    PermitStatus,
    PropertyFacts,
    RawPropertySignals,
    ScoreBand,
)

TODAY = date(2025, 7, 15)


def _score(raw: RawPropertySignals):
    n = normalize_signals(raw, today=TODAY)
    c = classify_owner(
        raw.owner_name,
        PropertyFacts(
            owner_type=raw.owner_type,
            owner_occupied=raw.owner_occupied,
            mailing_state=raw.owner_mailing_state,
            property_state=raw.property_state,
            portfolio_size=raw.owner_portfolio_size,
        ),
    )
    return c, n, score_motivation(n, c)


def _factor(score, name):
    return next((f for f in score.factors if f.name == name), None)


def _assert_weights_sum_to_score(s):
    assert s.baseline + sum(f.weight for f in s.factors) == pytest.approx(s.score, abs=0.05)


def test_band_rule_ramp():
    rule = BandRule(3, 10, -8, 15)
    assert rule.points(1) == -8
    assert rule.points(10) == 15
    assert rule.points(25) == 15
    assert rule.points(6.5) == pytest.approx(3.5)


@pytest.mark.parametrize(
    "score,band",
    [(95, ScoreBand.very_high), (80, ScoreBand.very_high), (65, ScoreBand.high), (50, ScoreBand.moderate), (35, ScoreBand.low), (34.9, ScoreBand.very_low)],
)
def test_score_bands(score, band):
    assert score_band(score) == band


def test_long_held_family_trust():
    raw = RawPropertySignals(
        owner_name="Smith Family Trust",
        last_sale_date=date(2003, 7, 15),
        recent_permits=(),
        pre_foreclosure=False,
        tax_delinquent=False,
        vacant_indicator=False,
    )
    c, _, s = _score(raw)

    assert (c.primary_class, c.sub_class) == (OwnerPrimaryClass.individual, OwnerSubClass.trust_living)
    assert s.model_used == "individual_v1"
    assert s.score >= 50
    assert s.band in (ScoreBand.moderate, ScoreBand.high, ScoreBand.very_high)
    assert _factor(s, "Ownership Duration").impact == Impact.positive
    assert _factor(s, "Owner Profile").weight == pytest.approx(8)
    assert TRUST_ESTATE_RISK in s.risk_factors
    assert "Key positive factor: Ownership Duration." in s.recommendation
    # owner_name, last_sale_date, permits, distress present out of 9 groups
    assert s.confidence == pytest.approx(0.61)
    _assert_weights_sum_to_score(s)


def test_small_llc_portfolio_in_falling_market():
    trades = ("roofing",), ("plumbing",), ("electrical",)
    raw = RawPropertySignals(
        owner_name="ABC Holdings LLC",
        owner_portfolio_size=3,
        last_sale_date=date(2017, 7, 15),
        recent_permits=tuple(Permit(type=t[0], filed_date=date(2025, 2, 1), tags=t) for t in trades),
        price_change_yoy=-6.0,
    )
    c, n, s = _score(raw)

    assert (c.primary_class, c.sub_class) == (OwnerPrimaryClass.investor_entity, OwnerSubClass.llc_multi)
    assert n.recent_permit_count == 3
    assert s.model_used == "investor_v1"
    assert _factor(s, "Market Momentum").weight > 0
    assert _factor(s, "Portfolio Concentration").weight > 0
    assert _factor(s, "Ownership Duration").weight <= 0
    assert _factor(s, "Owner Profile").weight == pytest.approx(2)
    _assert_weights_sum_to_score(s)


def test_tenure_is_inverted_between_individual_and_investor():
    n = normalize_signals(RawPropertySignals(last_sale_date=date(2005, 1, 1)), today=TODAY)
    person = classify_owner("John Smith")
    llc = classify_owner("Sunshine Homes LLC")

    ind = score_individual(n, person)
    inv = score_investor(n, llc)

    assert _factor(ind, "Ownership Duration").weight > 0
    assert _factor(inv, "Ownership Duration").weight < 0
    assert ind.score > inv.score


def test_institutional_ignores_tenure():
    raw = RawPropertySignals(
        owner_name="WELLS FARGO BANK NA",
        last_sale_date=date(2024, 1, 15),
        code_liens=2,
    )
    _, _, s = _score(raw)

    assert s.model_used == "institutional_v1"
    assert _factor(s, "Ownership Duration") is None
    assert _factor(s, "Holding Cost Accrual").weight > 0
    assert _factor(s, "Code Liens").weight == pytest.approx(8)
    assert REO_RISK in s.risk_factors
    assert "REO protocols" in s.recommendation
    _assert_weights_sum_to_score(s)


def test_score_clamped_and_bound_recorded():
    raw = RawPropertySignals(
        owner_name="JOHN SMITH HEIRS",
        owner_occupied=False,
        owner_mailing_state="NY",
        property_state="FL",
        last_sale_date=date(2003, 1, 1),
        pre_foreclosure=True,
        tax_delinquent=True,
        vacant_indicator=True,
        code_liens=4,
    )
    _, _, s = _score(raw)

    assert s.score == 100
    assert s.band == ScoreBand.very_high
    bound = _factor(s, "Score Bound")
    assert bound is not None and bound.weight < 0
    assert "Distress signal: Pre-foreclosure" in s.risk_factors
    _assert_weights_sum_to_score(s)


def test_scores_stay_in_range_and_are_deterministic():
    samples = [
        RawPropertySignals(owner_name="ACME BUILDERS INC", estimated_value=500000, mortgage_balance=0, price_change_yoy=25, days_on_market=5),
        RawPropertySignals(owner_name="John Smith", owner_occupied=True, last_sale_date=date(2024, 12, 1), days_on_market=10),
        RawPropertySignals(owner_name="COUNTY OF PASCO", days_on_market=200, recent_permits=(Permit(type="demo", status=PermitStatus.inactive),)),
    ]
    for raw in samples:
        _, _, first = _score(raw)
        _, _, second = _score(raw)
        assert first == second
        assert 0 <= first.score <= 100
        assert 0 <= first.confidence <= 1
        _assert_weights_sum_to_score(first)


def test_no_signal_groups_returns_neutral_score():
    n = normalize_signals(RawPropertySignals(), today=TODAY)
    s = score_motivation(n, classify_owner(None))

    assert s.score == 50
    assert s.factors == ()
    assert s.recommendation == INSUFFICIENT_DATA_RECOMMENDATION
    assert s.confidence == pytest.approx(0.16)


def test_settled_occupant_pulls_score_down():
    raw = RawPropertySignals(owner_name="John Smith", owner_occupied=True, last_sale_date=date(2024, 7, 15))
    _, _, s = _score(raw)
    assert _factor(s, "Settled Occupant").weight == pytest.approx(-10)
    assert s.score < 50
