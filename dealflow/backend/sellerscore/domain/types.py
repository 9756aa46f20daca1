# sellerscore/domain/types.py
from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from .parsing import to_bool, to_date, to_float, to_int, to_str


# -----------------------------
# Enums
# -----------------------------
class OwnerPrimaryClass(str, Enum):
    individual = "individual"
    investor_entity = "investor_entity"
    institutional_distressed = "institutional_distressed"


class OwnerSubClass(str, Enum):
    # individual
    owner_occupied = "owner_occupied"
    absentee = "absentee"
    inherited = "inherited"
    out_of_state = "out_of_state"
    # investor / entity
    small_investor = "small_investor"
    portfolio_investor = "portfolio_investor"
    llc_single = "llc_single"
    llc_multi = "llc_multi"
    corporate = "corporate"
    trust_living = "trust_living"
    trust_irrevocable = "trust_irrevocable"
    # institutional / distressed
    bank_reo = "bank_reo"
    government_federal = "government_federal"
    government_state = "government_state"
    government_local = "government_local"
    tax_lien = "tax_lien"
    estate_probate = "estate_probate"
    estate_executor = "estate_executor"

    unknown = "unknown"


class Impact(str, Enum):
    positive = "positive"
    negative = "negative"
    neutral = "neutral"


class ScoreType(str, Enum):
    standard = "standard"
    iq = "iq"
    both = "both"

    @property
    def wants_iq(self) -> bool:
        return self in (ScoreType.iq, ScoreType.both)


class ScoreBand(str, Enum):
    very_high = "very_high"
    high = "high"
    moderate = "moderate"
    low = "low"
    very_low = "very_low"


class PermitStatus(str, Enum):
    active = "active"
    final = "final"
    inactive = "inactive"
    in_review = "in_review"


class PermitRecency(str, Enum):
    none = "none"        # permit history known, nothing on file
    recent = "recent"    # newest permit filed within 12 months
    stale = "stale"      # newest permit 12-36 months old
    old = "old"          # newest permit older than 36 months
    unknown = "unknown"  # permit provider gave us nothing


# -----------------------------
# Plain-data rendering
# -----------------------------
def to_plain(obj: Any) -> Any:
    """Render domain objects as JSON-able structures (enums -> values, dates -> ISO)."""
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_plain(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (list, tuple)):
        return [to_plain(x) for x in obj]
    if isinstance(obj, dict):
        return {str(k): to_plain(v) for k, v in obj.items()}
    return obj


class _Plain:
    def to_dict(self) -> dict[str, Any]:
        return to_plain(self)


# -----------------------------
# Owner classification
# -----------------------------
@dataclass(frozen=True)
class PropertyFacts(_Plain):
    owner_type: str | None = None
    owner_occupied: bool | None = None
    mailing_state: str | None = None
    property_state: str | None = None
    portfolio_size: int | None = None


@dataclass(frozen=True)
class OwnerClassification(_Plain):
    primary_class: OwnerPrimaryClass
    sub_class: OwnerSubClass
    confidence: float
    matched_patterns: tuple[str, ...] = ()
    raw_owner_name: str | None = None

    @property
    def label(self) -> str:
        return f"{self.primary_class.value}/{self.sub_class.value}"


# -----------------------------
# Signals
# -----------------------------
@dataclass(frozen=True)
class Permit(_Plain):
    type: str
    status: PermitStatus = PermitStatus.active
    filed_date: date | None = None
    tags: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Permit":
        try:
            status = PermitStatus(str(d.get("status") or "active").lower())
        except ValueError:
            status = PermitStatus.active
        tags = tuple(str(t).lower() for t in (d.get("tags") or ()) if t)
        return cls(
            type=to_str(d.get("type")) or (tags[0] if tags else "unknown"),
            status=status,
            filed_date=to_date(d.get("filed_date")),
            tags=tags,
        )


@dataclass(frozen=True)
class RawPropertySignals(_Plain):
    """
    Sparse signal bag. Every field is optional and None means "not reported";
    a reported zero/False is a real value. Nothing here is ever defaulted.
    """

    # ownership / occupancy
    owner_name: str | None = None
    owner_type: str | None = None
    owner_occupied: bool | None = None
    owner_mailing_address: str | None = None
    owner_mailing_city: str | None = None
    owner_mailing_state: str | None = None
    owner_mailing_zip: str | None = None
    owner_portfolio_size: int | None = None
    property_state: str | None = None

    # transaction / valuation
    last_sale_date: date | None = None
    last_sale_price: float | None = None
    estimated_value: float | None = None
    assessed_value: float | None = None
    mortgage_balance: float | None = None

    # market (zip aggregates)
    days_on_market: float | None = None
    sale_to_list_ratio: float | None = None
    inventory: int | None = None
    median_price: float | None = None
    price_change_yoy: float | None = None

    # property characteristics
    property_type: str | None = None
    bedrooms: float | None = None
    bathrooms: float | None = None
    square_footage: float | None = None
    year_built: int | None = None
    lot_size: float | None = None

    # condition / distress
    recent_permits: tuple[Permit, ...] | None = None
    pre_foreclosure: bool | None = None
    tax_delinquent: bool | None = None
    vacant_indicator: bool | None = None
    code_liens: int | None = None

    def present_fields(self) -> list[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) is not None]

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "RawPropertySignals":
        """Inverse of to_dict(); used for the cache payload. Unknown keys are ignored."""
        permits = d.get("recent_permits")
        return cls(
            owner_name=to_str(d.get("owner_name")),
            owner_type=to_str(d.get("owner_type")),
            owner_occupied=to_bool(d.get("owner_occupied")),
            owner_mailing_address=to_str(d.get("owner_mailing_address")),
            owner_mailing_city=to_str(d.get("owner_mailing_city")),
            owner_mailing_state=to_str(d.get("owner_mailing_state")),
            owner_mailing_zip=to_str(d.get("owner_mailing_zip")),
            owner_portfolio_size=to_int(d.get("owner_portfolio_size")),
            property_state=to_str(d.get("property_state")),
            last_sale_date=to_date(d.get("last_sale_date")),
            last_sale_price=to_float(d.get("last_sale_price")),
            estimated_value=to_float(d.get("estimated_value")),
            assessed_value=to_float(d.get("assessed_value")),
            mortgage_balance=to_float(d.get("mortgage_balance")),
            days_on_market=to_float(d.get("days_on_market")),
            sale_to_list_ratio=to_float(d.get("sale_to_list_ratio")),
            inventory=to_int(d.get("inventory")),
            median_price=to_float(d.get("median_price")),
            price_change_yoy=to_float(d.get("price_change_yoy")),
            property_type=to_str(d.get("property_type")),
            bedrooms=to_float(d.get("bedrooms")),
            bathrooms=to_float(d.get("bathrooms")),
            square_footage=to_float(d.get("square_footage")),
            year_built=to_int(d.get("year_built")),
            lot_size=to_float(d.get("lot_size")),
            recent_permits=None if permits is None else tuple(Permit.from_dict(p) for p in permits),
            pre_foreclosure=to_bool(d.get("pre_foreclosure")),
            tax_delinquent=to_bool(d.get("tax_delinquent")),
            vacant_indicator=to_bool(d.get("vacant_indicator")),
            code_liens=to_int(d.get("code_liens")),
        )


@dataclass(frozen=True)
class NormalizedSignals(_Plain):
    """Comparable units derived once so the three models never redo the arithmetic."""

    ownership_years: float | None = None
    months_since_sale: float | None = None
    equity_percent: float | None = None

    days_on_market: float | None = None
    sale_to_list_ratio: float | None = None
    inventory: int | None = None
    median_price: float | None = None
    price_change_yoy: float | None = None

    permits_known: bool = False
    permit_count: int = 0
    inactive_permit_count: int = 0
    repair_permit_count: int = 0
    renovation_completed_count: int = 0
    recent_permit_count: int = 0
    permit_recency: PermitRecency = PermitRecency.unknown

    distress_known: bool = False
    pre_foreclosure: bool = False
    tax_delinquent: bool = False
    vacant: bool = False
    code_liens: int = 0

    owner_occupied: bool | None = None
    absentee: bool | None = None
    out_of_state: bool | None = None
    portfolio_size: int | None = None

    property_age_years: int | None = None
    market_value: float | None = None

    present_fields: tuple[str, ...] = ()
    missing_fields: tuple[str, ...] = ()

    @property
    def distress_count(self) -> int:
        return sum([self.pre_foreclosure, self.tax_delinquent, self.vacant, self.code_liens > 0])


# -----------------------------
# Scores
# -----------------------------
@dataclass(frozen=True)
class ScoringFactor(_Plain):
    """`weight` is the signed point delta this factor moved the score away from baseline."""

    name: str
    impact: Impact
    weight: float
    description: str
    raw_value: Any = None
    data_source: str = "derived"


@dataclass(frozen=True)
class StandardMotivationScore(_Plain):
    score: float
    confidence: float
    factors: tuple[ScoringFactor, ...]
    recommendation: str
    risk_factors: tuple[str, ...]
    model_used: str
    band: ScoreBand
    baseline: float = 50.0


@dataclass(frozen=True)
class AiAdjustment(_Plain):
    factor: str
    adjustment: int
    reasoning: str


@dataclass(frozen=True)
class OfferRange(_Plain):
    min: int
    max: int


@dataclass(frozen=True)
class Predictions(_Plain):
    time_to_decision: str
    best_approach_timing: str
    optimal_offer_range: OfferRange


@dataclass(frozen=True)
class DealFlowIQScore(_Plain):
    iq_score: float
    standard_score: float
    confidence: float
    ai_adjustments: tuple[AiAdjustment, ...]
    predictions: Predictions
    source: str
    rejected_adjustments: int = 0


# -----------------------------
# Fetching / cache
# -----------------------------
@dataclass(frozen=True)
class FetchError(_Plain):
    source: str
    error: str


@dataclass(frozen=True)
class SignalFetchResult(_Plain):
    signals: RawPropertySignals
    sources: dict[str, bool]
    errors: tuple[FetchError, ...]
    fetched_at: datetime
    from_cache: bool = False


@dataclass(frozen=True)
class CacheRecord(_Plain):
    key: str
    signals: RawPropertySignals
    fetched_at: datetime
    expires_at: datetime


# -----------------------------
# Engine output
# -----------------------------
@dataclass(frozen=True)
class DataQuality(_Plain):
    signals_available: int
    signals_missing: tuple[str, ...]
    sources_used: tuple[str, ...]
    confidence: float


@dataclass(frozen=True)
class Timing(_Plain):
    fetch_ms: int = 0
    classify_ms: int = 0
    score_ms: int = 0
    iq_ms: int = 0
    total_ms: int = 0


@dataclass(frozen=True)
class ScoringResult(_Plain):
    standard_score: StandardMotivationScore
    signals: RawPropertySignals
    classification: OwnerClassification
    data_quality: DataQuality
    timing: Timing
    dealflow_iq: DealFlowIQScore | None = None
    iq_available: bool = False
    fetch_errors: tuple[FetchError, ...] = ()
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class ScoreRequest(_Plain):
    address: str | None = None
    property_id: str | None = None
    zipcode: str | None = None


@dataclass(frozen=True)
class BatchItemResult(_Plain):
    input: ScoreRequest
    result: ScoringResult | None = None
    error: str | None = None


@dataclass(frozen=True)
class QuickScore(_Plain):
    score: float
    recommendation: str
    confidence: float | None = None
    owner_type: str | None = None


@dataclass(frozen=True)
class ResolvedAddress(_Plain):
    address: str
    city: str | None = None
    state: str | None = None
    zipcode: str | None = None

    @property
    def one_line(self) -> str:
        parts = [p for p in (self.address, self.city) if p]
        tail = " ".join(p for p in (self.state, self.zipcode) if p)
        if tail:
            parts.append(tail)
        return ", ".join(parts)


@dataclass(frozen=True)
class SignalPatch:
    """One provider's contribution to the signal bag, ranked by how authoritative it is."""

    source: str
    authority: int
    values: dict[str, Any] = field(default_factory=dict)
