# sellerscore/domain/normalize.py
"""
RawPropertySignals -> NormalizedSignals.

This is the only place defaults are supplied. Each one is listed here:

- equity without a mortgage balance is estimated from the last sale:
  80% initial LTV, 2% of the original loan paid down per year, 3% annual
  appreciation (ESTIMATED_* constants below).
- estimated_value falls back to assessed_value for the equity denominator.
- an empty permit list is "known, none on file" (permit_recency = none);
  a missing permit list is "unknown" and counts stay 0.
- distress flags that were never reported coalesce to False, but
  distress_known records whether any of them was reported at all.
- code_liens missing -> 0.
- absentee is inferred from mailing state != property state when occupancy
  itself was not reported.
"""
from __future__ import annotations

from datetime import date

from .address import normalize_state
from .types import NormalizedSignals, Permit, PermitRecency, PermitStatus, RawPropertySignals

ESTIMATED_INITIAL_LTV = 0.80
ESTIMATED_ANNUAL_PAYDOWN = 0.02
ESTIMATED_ANNUAL_APPRECIATION = 0.03

REPAIR_TAGS = frozenset({"roofing", "plumbing", "electrical", "hvac", "foundation"})
RENOVATION_TAGS = frozenset({"remodel", "renovation", "addition"})

RECENT_PERMIT_MONTHS = 12
STALE_PERMIT_MONTHS = 36

# Signal groups that feed confidence and data-quality reporting.
# A group counts as present when any of its raw fields is set.
EXPECTED_SIGNAL_GROUPS: dict[str, tuple[str, ...]] = {
    "owner_name": ("owner_name",),
    "occupancy": ("owner_occupied", "owner_mailing_state"),
    "last_sale_date": ("last_sale_date",),
    "valuation": ("estimated_value", "assessed_value"),
    "days_on_market": ("days_on_market",),
    "price_change_yoy": ("price_change_yoy",),
    "permits": ("recent_permits",),
    "distress": ("pre_foreclosure", "tax_delinquent", "vacant_indicator", "code_liens"),
    "year_built": ("year_built",),
}


def _months_between(start: date, end: date) -> float:
    return (end - start).days / 30.4375


def _permit_tags(p: Permit) -> set[str]:
    tags = set(p.tags)
    if p.type:
        tags.add(p.type.lower())
    return tags


def estimate_equity_percent(raw: RawPropertySignals, ownership_years: float | None) -> float | None:
    value = raw.estimated_value or raw.assessed_value
    if not value or value <= 0:
        return None

    if raw.mortgage_balance is not None:
        equity = value - raw.mortgage_balance
        return max(0.0, min(100.0, equity / value * 100.0))

    if raw.last_sale_price and ownership_years is not None:
        original_loan = raw.last_sale_price * ESTIMATED_INITIAL_LTV
        paydown = original_loan * ownership_years * ESTIMATED_ANNUAL_PAYDOWN
        mortgage = max(0.0, original_loan - paydown)
        current_value = raw.last_sale_price * (1 + ESTIMATED_ANNUAL_APPRECIATION) ** ownership_years
        return max(0.0, min(100.0, (current_value - mortgage) / value * 100.0))

    return None


def _permit_recency(permits: tuple[Permit, ...], today: date) -> PermitRecency:
    dated = [p.filed_date for p in permits if p.filed_date is not None]
    if not permits:
        return PermitRecency.none
    if not dated:
        return PermitRecency.unknown
    age = _months_between(max(dated), today)
    if age <= RECENT_PERMIT_MONTHS:
        return PermitRecency.recent
    if age <= STALE_PERMIT_MONTHS:
        return PermitRecency.stale
    return PermitRecency.old


def signal_groups_present(raw: RawPropertySignals) -> tuple[list[str], list[str]]:
    present, missing = [], []
    for group, names in EXPECTED_SIGNAL_GROUPS.items():
        if any(getattr(raw, n) is not None for n in names):
            present.append(group)
        else:
            missing.append(group)
    return present, missing


def normalize_signals(raw: RawPropertySignals, *, today: date | None = None) -> NormalizedSignals:
    today = today or date.today()

    ownership_years: float | None = None
    months_since_sale: float | None = None
    if raw.last_sale_date is not None and raw.last_sale_date <= today:
        months_since_sale = _months_between(raw.last_sale_date, today)
        ownership_years = months_since_sale / 12.0

    # permits
    permits = raw.recent_permits
    permits_known = permits is not None
    inactive = repair = renovated = recent = 0
    recency = PermitRecency.unknown
    if permits is not None:
        for p in permits:
            tags = _permit_tags(p)
            if p.status == PermitStatus.inactive:
                inactive += 1
            if tags & REPAIR_TAGS:
                repair += 1
            if p.status == PermitStatus.final and tags & RENOVATION_TAGS:
                renovated += 1
            if p.filed_date is not None and _months_between(p.filed_date, today) <= RECENT_PERMIT_MONTHS:
                recent += 1
        recency = _permit_recency(permits, today)

    # distress
    distress_fields = (raw.pre_foreclosure, raw.tax_delinquent, raw.vacant_indicator, raw.code_liens)
    distress_known = any(v is not None for v in distress_fields)

    # occupancy
    mailing = normalize_state(raw.owner_mailing_state)
    prop_state = normalize_state(raw.property_state)
    out_of_state: bool | None = None
    if mailing and prop_state:
        out_of_state = mailing != prop_state

    absentee: bool | None = None
    if raw.owner_occupied is not None:
        absentee = not raw.owner_occupied
    elif out_of_state:
        absentee = True

    if raw.owner_occupied is True:
        out_of_state = False

    property_age: int | None = None
    if raw.year_built and 1700 <= raw.year_built <= today.year:
        property_age = today.year - raw.year_built

    present, missing = signal_groups_present(raw)

    return NormalizedSignals(
        ownership_years=ownership_years,
        months_since_sale=months_since_sale,
        equity_percent=estimate_equity_percent(raw, ownership_years),
        days_on_market=raw.days_on_market,
        sale_to_list_ratio=raw.sale_to_list_ratio,
        inventory=raw.inventory,
        median_price=raw.median_price,
        price_change_yoy=raw.price_change_yoy,
        permits_known=permits_known,
        permit_count=len(permits or ()),
        inactive_permit_count=inactive,
        repair_permit_count=repair,
        renovation_completed_count=renovated,
        recent_permit_count=recent,
        permit_recency=recency,
        distress_known=distress_known,
        pre_foreclosure=bool(raw.pre_foreclosure),
        tax_delinquent=bool(raw.tax_delinquent),
        vacant=bool(raw.vacant_indicator),
        code_liens=max(0, raw.code_liens or 0),
        owner_occupied=raw.owner_occupied,
        absentee=absentee,
        out_of_state=out_of_state,
        portfolio_size=raw.owner_portfolio_size,
        property_age_years=property_age,
        market_value=raw.estimated_value or raw.assessed_value,
        present_fields=tuple(present),
        missing_fields=tuple(missing),
    )
