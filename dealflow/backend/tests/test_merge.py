# tests/test_merge.py
from sellerscore.domain.merge import (
    AUTHORITY_MARKET,
    AUTHORITY_PROPERTY_RECORD,
    AUTHORITY_VALUATION,
    fill_missing,
    merge_patches,
)
from sellerscore.domain.types import RawPropertySignals, SignalPatch


def test_higher_authority_replaces_lower():
    signals, prov = merge_patches(
        [
            SignalPatch("market", AUTHORITY_PROPERTY_RECORD, {"estimated_value": 250000, "owner_name": "JOHN SMITH"}),
            SignalPatch("avm", AUTHORITY_VALUATION, {"estimated_value": 275000}),
        ]
    )
    assert signals.estimated_value == 275000
    assert signals.owner_name == "JOHN SMITH"
    assert prov == {"estimated_value": "avm", "owner_name": "market"}


def test_lower_authority_never_overwrites():
    signals, _ = merge_patches(
        [
            SignalPatch("avm", AUTHORITY_VALUATION, {"estimated_value": 275000}),
            SignalPatch("market", AUTHORITY_PROPERTY_RECORD, {"estimated_value": 250000}),
        ]
    )
    assert signals.estimated_value == 275000


def test_equal_authority_first_patch_wins():
    signals, prov = merge_patches(
        [
            SignalPatch("market", AUTHORITY_MARKET, {"days_on_market": 40}),
            SignalPatch("store", AUTHORITY_MARKET, {"days_on_market": 90}),
        ]
    )
    assert signals.days_on_market == 40
    assert prov["days_on_market"] == "market"


def test_none_never_overwrites_and_unknown_keys_dropped():
    signals, prov = merge_patches(
        [
            SignalPatch("store", 2, {"tax_delinquent": False, "code_liens": 0}),
            SignalPatch("avm", 3, {"tax_delinquent": None, "not_a_signal": 1}),
        ]
    )
    assert signals.tax_delinquent is False
    assert signals.code_liens == 0
    assert "not_a_signal" not in prov


def test_fill_missing_only_fills_gaps():
    base = RawPropertySignals(property_state="FL")
    out = fill_missing(base, property_state="GA", owner_portfolio_size=4, bogus=1)
    assert out.property_state == "FL"
    assert out.owner_portfolio_size == 4
    assert fill_missing(out, owner_portfolio_size=None) is out
