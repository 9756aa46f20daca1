# sellerscore/domain/scoring_models.py
"""
Three owner-archetype scoring strategies behind one dispatch table.

Every model starts from a neutral baseline of 50 and emits factors whose
`weight` is the signed number of points they moved the score. The models
read the same normalized signals but interpret them differently: a long hold
pushes an individual toward selling and an investor away from it, and the
institutional model ignores tenure altogether.

Thresholds and point values live in frozen config dataclasses so they can be
tuned without touching the rule code.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Mapping

from .normalize import EXPECTED_SIGNAL_GROUPS
from .types import (
    Impact,
    NormalizedSignals,
    OwnerClassification,
    OwnerPrimaryClass,
    OwnerSubClass,
    ScoreBand,
    ScoringFactor,
    StandardMotivationScore,
)

BASELINE = 50.0
SCORE_MIN = 0.0
SCORE_MAX = 100.0

# Share of confidence coming from data coverage vs. classification certainty
DATA_CONFIDENCE_WEIGHT = 0.6
CLASSIFICATION_CONFIDENCE_WEIGHT = 0.4

# A positive factor must move the score at least this much to be called out
KEY_FACTOR_MIN_POINTS = 5.0

INSUFFICIENT_DATA_RECOMMENDATION = (
    "Insufficient data to assess motivation. Verify ownership and property details before outreach."
)


# -----------------------------
# Rule config
# -----------------------------
@dataclass(frozen=True)
class BandRule:
    """Linear ramp from (lo, lo_points) to (hi, hi_points), flat outside."""

    lo: float
    hi: float
    lo_points: float
    hi_points: float

    def points(self, x: float) -> float:
        if x <= self.lo:
            return self.lo_points
        if x >= self.hi:
            return self.hi_points
        pos = (x - self.lo) / (self.hi - self.lo)
        return self.lo_points + pos * (self.hi_points - self.lo_points)


@dataclass(frozen=True)
class DistressPoints:
    pre_foreclosure: float
    tax_delinquent: float
    vacant: float
    per_code_lien: float
    code_lien_cap: float


@dataclass(frozen=True)
class ConditionPoints:
    inactive_permits: float
    repair_permits: float
    renovation_completed: float
    # no permits at all on stock older than this many years
    no_reinvestment_age_years: int | None = None
    no_reinvestment: float = 0.0


@dataclass(frozen=True)
class IndividualModelConfig:
    model_id: str = "individual_v1"
    duration: BandRule = BandRule(3, 10, -8, 15)
    settled_occupant_years: float = 3.0
    settled_occupant: float = -10.0
    equity: BandRule = BandRule(20, 80, -4, 6)
    days_on_market: BandRule = BandRule(20, 60, -4, 4)
    condition: ConditionPoints = ConditionPoints(6, 4, -5)
    distress: DistressPoints = DistressPoints(15, 12, 8, 2, 8)
    absentee: float = 4.0
    out_of_state: float = 6.0


@dataclass(frozen=True)
class InvestorModelConfig:
    model_id: str = "investor_v1"
    duration: BandRule = BandRule(2, 10, 6, -10)
    equity: BandRule = BandRule(20, 80, 4, -6)
    # falling prices push investors to exit; rising prices make them hold
    momentum_falling: BandRule = BandRule(-10, 0, 10, 0)
    momentum_rising: BandRule = BandRule(0, 10, 0, -4)
    days_on_market: BandRule = BandRule(20, 60, -3, 8)
    condition: ConditionPoints = ConditionPoints(8, 6, -6, no_reinvestment_age_years=40, no_reinvestment=4)
    portfolio_small: float = 5.0   # 2-4 properties held
    portfolio_large: float = 8.0   # 5+
    distress: DistressPoints = DistressPoints(18, 14, 10, 3, 10)
    absentee: float = 4.0
    out_of_state: float = 6.0


@dataclass(frozen=True)
class InstitutionalModelConfig:
    model_id: str = "institutional_v1"
    per_code_lien: float = 4.0
    code_lien_cap: float = 15.0
    holding_cost: BandRule = BandRule(6, 24, 2, 12)
    holding_cost_sub_classes: frozenset[OwnerSubClass] = frozenset(
        {
            OwnerSubClass.bank_reo,
            OwnerSubClass.government_federal,
            OwnerSubClass.government_state,
            OwnerSubClass.government_local,
            OwnerSubClass.tax_lien,
        }
    )
    stalled_permits: float = 6.0
    days_on_market: BandRule = BandRule(30, 90, 0, 8)
    tax_delinquent: float = 8.0
    vacant: float = 6.0
    pre_foreclosure: float = 6.0


@dataclass(frozen=True)
class SubclassAdjustment:
    points: float
    note: str


SUBCLASS_ADJUSTMENTS: Mapping[OwnerSubClass, SubclassAdjustment] = {
    OwnerSubClass.trust_living: SubclassAdjustment(8, "Living trust, often an estate-planning transition"),
    OwnerSubClass.inherited: SubclassAdjustment(10, "Inherited property, heirs often prefer cash"),
    OwnerSubClass.trust_irrevocable: SubclassAdjustment(3, "Irrevocable trust, trustee may liquidate"),
    OwnerSubClass.small_investor: SubclassAdjustment(3, "Small investor, more exposed to landlord fatigue"),
    OwnerSubClass.llc_multi: SubclassAdjustment(2, "Multi-property LLC"),
    OwnerSubClass.corporate: SubclassAdjustment(-3, "Corporate owner, slow formal decision process"),
    OwnerSubClass.estate_probate: SubclassAdjustment(12, "Estate in probate, heirs usually want to settle"),
    OwnerSubClass.estate_executor: SubclassAdjustment(14, "Executor controls sale, duty to liquidate"),
    OwnerSubClass.tax_lien: SubclassAdjustment(8, "Tax-lien holder, no interest in holding"),
    OwnerSubClass.bank_reo: SubclassAdjustment(4, "Bank REO, wants the asset off the books"),
    OwnerSubClass.government_federal: SubclassAdjustment(-2, "Federal agency, rigid disposition program"),
    OwnerSubClass.government_state: SubclassAdjustment(-4, "State agency, slow disposition process"),
    OwnerSubClass.government_local: SubclassAdjustment(-4, "Local government, slow disposition process"),
}

TRUST_ESTATE_RISK = "Trust/estate ownership may have legal complexities"
REO_RISK = "REO sales have longer timelines and strict protocols"


# -----------------------------
# Factor sheet
# -----------------------------
def _impact(points: float) -> Impact:
    if points > 0:
        return Impact.positive
    if points < 0:
        return Impact.negative
    return Impact.neutral


@dataclass
class _Sheet:
    factors: list[ScoringFactor] = field(default_factory=list)
    risks: list[str] = field(default_factory=list)

    def add(self, name: str, points: float, description: str, *, raw_value=None, source: str = "derived") -> None:
        self.factors.append(
            ScoringFactor(
                name=name,
                impact=_impact(round(points, 1)),
                weight=round(points, 1),
                description=description,
                raw_value=raw_value,
                data_source=source,
            )
        )

    def risk(self, text: str) -> None:
        if text not in self.risks:
            self.risks.append(text)


def _distress(sheet: _Sheet, n: NormalizedSignals, pts: DistressPoints) -> None:
    if not n.distress_known:
        return
    labels: list[str] = []
    total = 0.0
    if n.pre_foreclosure:
        total += pts.pre_foreclosure
        labels.append("Pre-foreclosure")
    if n.tax_delinquent:
        total += pts.tax_delinquent
        labels.append("Tax delinquent")
    if n.vacant:
        total += pts.vacant
        labels.append("Vacant property")
    if n.code_liens > 0:
        total += min(pts.code_lien_cap, pts.per_code_lien * n.code_liens)
        labels.append(f"{n.code_liens} code lien(s)")

    if labels:
        sheet.add(
            "Distress Indicators",
            total,
            f"Active distress signals: {', '.join(labels)}",
            raw_value=", ".join(labels),
            source="store",
        )
        for label in labels:
            sheet.risk(f"Distress signal: {label}")
    else:
        sheet.add("Distress Indicators", 0.0, "No active distress signals detected", source="store")


def _condition(sheet: _Sheet, n: NormalizedSignals, pts: ConditionPoints) -> None:
    if not n.permits_known:
        return
    total = 0.0
    notes: list[str] = []
    if n.inactive_permit_count:
        total += pts.inactive_permits
        notes.append(f"{n.inactive_permit_count} abandoned permit(s)")
    if n.repair_permit_count:
        total += pts.repair_permits
        notes.append("Major repair permits")
    if n.renovation_completed_count:
        total += pts.renovation_completed
        notes.append("Recent renovations completed")
    if (
        pts.no_reinvestment_age_years is not None
        and n.permit_count == 0
        and n.property_age_years is not None
        and n.property_age_years > pts.no_reinvestment_age_years
    ):
        total += pts.no_reinvestment
        notes.append(f"No reinvestment on {n.property_age_years}-year-old property")

    sheet.add(
        "Property Condition",
        total,
        ", ".join(notes) if notes else "No permit signals",
        raw_value=n.permit_count,
        source="permits",
    )


def _occupancy(sheet: _Sheet, n: NormalizedSignals, absentee_pts: float, out_of_state_pts: float) -> None:
    if n.out_of_state:
        sheet.add("Absentee Owner", out_of_state_pts, "Out-of-state owner, remote management burden", raw_value="out_of_state")
    elif n.absentee:
        sheet.add("Absentee Owner", absentee_pts, "Owner does not live at the property", raw_value="absentee")


def _days_on_market(sheet: _Sheet, n: NormalizedSignals, rule: BandRule) -> None:
    if n.days_on_market is None:
        return
    dom = n.days_on_market
    if dom <= rule.lo:
        desc = f"Hot market ({dom:.0f} DOM)"
    elif dom >= rule.hi:
        desc = f"Slow market ({dom:.0f} DOM)"
    else:
        desc = f"Balanced market ({dom:.0f} DOM)"
    sheet.add("Market Conditions", rule.points(dom), desc, raw_value=dom, source="market")


def _equity(sheet: _Sheet, n: NormalizedSignals, rule: BandRule, *, inverted: bool) -> None:
    if n.equity_percent is None:
        return
    eq = n.equity_percent
    pts = rule.points(eq)
    level = "Low" if eq <= rule.lo else "High" if eq >= rule.hi else "Moderate"
    if inverted:
        tail = "may need to sell" if pts > 0 else "no urgency to sell"
    else:
        tail = "flexibility to sell" if pts > 0 else "limited selling options"
    sheet.add("Equity Position", pts, f"{level} equity ({eq:.0f}%) - {tail}", raw_value=round(eq, 1))


def _subclass(sheet: _Sheet, classification: OwnerClassification) -> None:
    adj = SUBCLASS_ADJUSTMENTS.get(classification.sub_class)
    if adj is not None and adj.points:
        sheet.add("Owner Profile", adj.points, adj.note, raw_value=classification.sub_class.value, source="classifier")

    sub = classification.sub_class.value
    if "trust" in sub or "estate" in sub:
        sheet.risk(TRUST_ESTATE_RISK)
    if classification.sub_class == OwnerSubClass.bank_reo:
        sheet.risk(REO_RISK)


# -----------------------------
# Models
# -----------------------------
def score_individual(
    n: NormalizedSignals,
    classification: OwnerClassification,
    cfg: IndividualModelConfig = IndividualModelConfig(),
) -> StandardMotivationScore:
    sheet = _Sheet()

    if n.ownership_years is not None:
        yrs = n.ownership_years
        pts = cfg.duration.points(yrs)
        if yrs >= cfg.duration.hi:
            desc = f"Long-term owner ({yrs:.1f} years) - likely life transition"
        elif yrs <= cfg.duration.lo:
            desc = f"Short-term owner ({yrs:.1f} years) - recent purchase, likely staying"
        else:
            desc = f"Medium-term owner ({yrs:.1f} years)"
        sheet.add("Ownership Duration", pts, desc, raw_value=round(yrs, 1), source="market")

        if n.owner_occupied is True and yrs < cfg.settled_occupant_years:
            sheet.add(
                "Settled Occupant",
                cfg.settled_occupant,
                "Owner moved in recently and lives there",
                raw_value=round(yrs, 1),
            )

    _equity(sheet, n, cfg.equity, inverted=False)
    _days_on_market(sheet, n, cfg.days_on_market)
    _condition(sheet, n, cfg.condition)
    _distress(sheet, n, cfg.distress)
    _occupancy(sheet, n, cfg.absentee, cfg.out_of_state)
    _subclass(sheet, classification)

    return _finish(sheet, n, classification, cfg.model_id)


def score_investor(
    n: NormalizedSignals,
    classification: OwnerClassification,
    cfg: InvestorModelConfig = InvestorModelConfig(),
) -> StandardMotivationScore:
    sheet = _Sheet()

    if n.ownership_years is not None:
        yrs = n.ownership_years
        pts = cfg.duration.points(yrs)
        tail = "may be exiting investment" if pts > 0 else "stable hold, low motivation"
        sheet.add("Ownership Duration", pts, f"Held {yrs:.1f} years - {tail}", raw_value=round(yrs, 1), source="market")

    _equity(sheet, n, cfg.equity, inverted=True)

    if n.price_change_yoy is not None:
        yoy = n.price_change_yoy
        if yoy <= 0:
            pts = cfg.momentum_falling.points(yoy)
            desc = f"Prices down {abs(yoy):.1f}% YoY - exit pressure"
        else:
            pts = cfg.momentum_rising.points(yoy)
            desc = f"Prices up {yoy:.1f}% YoY - incentive to hold"
        sheet.add("Market Momentum", pts, desc, raw_value=yoy, source="market")

    _days_on_market(sheet, n, cfg.days_on_market)
    _condition(sheet, n, cfg.condition)

    if n.portfolio_size is not None and n.portfolio_size >= 2:
        pts = cfg.portfolio_large if n.portfolio_size >= 5 else cfg.portfolio_small
        sheet.add(
            "Portfolio Concentration",
            pts,
            f"Owner holds {n.portfolio_size} properties, candidate for portfolio exit",
            raw_value=n.portfolio_size,
            source="store",
        )

    _occupancy(sheet, n, cfg.absentee, cfg.out_of_state)
    _distress(sheet, n, cfg.distress)
    _subclass(sheet, classification)

    return _finish(sheet, n, classification, cfg.model_id)


def score_institutional(
    n: NormalizedSignals,
    classification: OwnerClassification,
    cfg: InstitutionalModelConfig = InstitutionalModelConfig(),
) -> StandardMotivationScore:
    # process-driven sellers: tenure says nothing about intent here
    sheet = _Sheet()

    if n.code_liens > 0:
        sheet.add(
            "Code Liens",
            min(cfg.code_lien_cap, cfg.per_code_lien * n.code_liens),
            f"{n.code_liens} code lien(s) accruing",
            raw_value=n.code_liens,
            source="store",
        )
        sheet.risk(f"Distress signal: {n.code_liens} code lien(s)")

    if classification.sub_class in cfg.holding_cost_sub_classes and n.months_since_sale is not None:
        months = n.months_since_sale
        sheet.add(
            "Holding Cost Accrual",
            cfg.holding_cost.points(months),
            f"Held {months:.0f} months since taking title",
            raw_value=round(months, 1),
            source="market",
        )

    if n.permits_known or n.days_on_market is not None:
        pts = 0.0
        notes: list[str] = []
        if n.inactive_permit_count:
            pts += cfg.stalled_permits
            notes.append(f"{n.inactive_permit_count} stalled permit(s)")
        if n.days_on_market is not None:
            pts += cfg.days_on_market.points(n.days_on_market)
            notes.append(f"{n.days_on_market:.0f} submarket DOM")
        sheet.add(
            "Administrative Delay",
            pts,
            ", ".join(notes) if notes else "No stalled permits",
            raw_value=n.inactive_permit_count,
            source="permits" if n.permits_known else "market",
        )

    if n.distress_known:
        pts = 0.0
        labels: list[str] = []
        if n.tax_delinquent:
            pts += cfg.tax_delinquent
            labels.append("Tax delinquent")
        if n.vacant:
            pts += cfg.vacant
            labels.append("Vacant property")
        if n.pre_foreclosure:
            pts += cfg.pre_foreclosure
            labels.append("Pre-foreclosure")
        if labels:
            sheet.add("Distress Indicators", pts, f"Active distress signals: {', '.join(labels)}", raw_value=", ".join(labels), source="store")
            for label in labels:
                sheet.risk(f"Distress signal: {label}")

    _subclass(sheet, classification)

    return _finish(sheet, n, classification, cfg.model_id)


ScoringModel = Callable[[NormalizedSignals, OwnerClassification], StandardMotivationScore]

SCORING_MODELS: Mapping[OwnerPrimaryClass, ScoringModel] = {
    OwnerPrimaryClass.individual: score_individual,
    OwnerPrimaryClass.investor_entity: score_investor,
    OwnerPrimaryClass.institutional_distressed: score_institutional,
}

MODEL_IDS: Mapping[OwnerPrimaryClass, str] = {
    OwnerPrimaryClass.individual: IndividualModelConfig().model_id,
    OwnerPrimaryClass.investor_entity: InvestorModelConfig().model_id,
    OwnerPrimaryClass.institutional_distressed: InstitutionalModelConfig().model_id,
}


def score_motivation(n: NormalizedSignals, classification: OwnerClassification) -> StandardMotivationScore:
    """Dispatch to the model for the owner's primary class."""
    if not n.present_fields:
        return insufficient_data_score(classification)
    model = SCORING_MODELS[classification.primary_class]
    return model(n, classification)


# -----------------------------
# Shared finishing
# -----------------------------
def score_band(score: float) -> ScoreBand:
    if score >= 80:
        return ScoreBand.very_high
    if score >= 65:
        return ScoreBand.high
    if score >= 50:
        return ScoreBand.moderate
    if score >= 35:
        return ScoreBand.low
    return ScoreBand.very_low


def compute_confidence(n: NormalizedSignals, classification: OwnerClassification) -> float:
    coverage = len(n.present_fields) / len(EXPECTED_SIGNAL_GROUPS)
    raw = DATA_CONFIDENCE_WEIGHT * coverage + CLASSIFICATION_CONFIDENCE_WEIGHT * classification.confidence
    return round(max(0.0, min(1.0, raw)), 2)


def _finish(
    sheet: _Sheet,
    n: NormalizedSignals,
    classification: OwnerClassification,
    model_id: str,
) -> StandardMotivationScore:
    raw_score = round(BASELINE + sum(f.weight for f in sheet.factors), 1)
    score = max(SCORE_MIN, min(SCORE_MAX, raw_score))
    if score != raw_score:
        sheet.add("Score Bound", score - raw_score, f"Clamped from {raw_score:.1f} to the 0-100 range")

    band = score_band(score)
    return StandardMotivationScore(
        score=score,
        confidence=compute_confidence(n, classification),
        factors=tuple(sheet.factors),
        recommendation=build_recommendation(score, band, classification, sheet.factors, sheet.risks),
        risk_factors=tuple(sheet.risks),
        model_used=model_id,
        band=band,
        baseline=BASELINE,
    )


def insufficient_data_score(classification: OwnerClassification) -> StandardMotivationScore:
    confidence = round(max(0.0, min(1.0, CLASSIFICATION_CONFIDENCE_WEIGHT * classification.confidence)), 2)
    return StandardMotivationScore(
        score=BASELINE,
        confidence=confidence,
        factors=(),
        recommendation=INSUFFICIENT_DATA_RECOMMENDATION,
        risk_factors=(),
        model_used=MODEL_IDS[classification.primary_class],
        band=score_band(BASELINE),
        baseline=BASELINE,
    )


_BAND_OPENINGS = {
    ScoreBand.very_high: "Very high motivation detected.",
    ScoreBand.high: "Strong motivation indicators present.",
    ScoreBand.moderate: "Moderate motivation signals.",
    ScoreBand.low: "Limited motivation indicators.",
    ScoreBand.very_low: "Low motivation signals detected.",
}


def build_recommendation(
    score: float,
    band: ScoreBand,
    classification: OwnerClassification,
    factors: list[ScoringFactor] | tuple[ScoringFactor, ...],
    risks: list[str] | tuple[str, ...],
) -> str:
    parts = [_BAND_OPENINGS[band]]

    strong = score >= 65
    primary = classification.primary_class
    sub = classification.sub_class
    if primary == OwnerPrimaryClass.individual:
        parts.append(
            "Personal approach recommended - empathize with their situation."
            if strong
            else "May need relationship building before negotiation."
        )
    elif primary == OwnerPrimaryClass.investor_entity:
        parts.append(
            "Focus on numbers and quick close terms."
            if strong
            else "Look for tired landlord signals or portfolio exit opportunity."
        )
    elif sub == OwnerSubClass.bank_reo:
        parts.append("Follow REO protocols. Patience required - expect 45-60 day process.")
    elif "estate" in sub.value:
        parts.append("High motivation but verify legal authority. May need probate clearance.")
    else:
        parts.append("Institutional seller - follow their process, limited negotiation flexibility.")

    key = [f for f in factors if f.name != "Score Bound" and f.weight >= KEY_FACTOR_MIN_POINTS]
    if key:
        top = max(key, key=lambda f: f.weight)
        parts.append(f"Key positive factor: {top.name}.")

    if risks:
        parts.append(f"Note: {risks[0]}.")

    return " ".join(parts)
