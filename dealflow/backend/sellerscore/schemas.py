from pydantic import BaseModel, Field, model_validator
from typing import Any, Literal

ScoreTypeIn = Literal["standard", "iq", "both"]


# -----------------------------
# Requests
# -----------------------------
class ScoreRequestIn(BaseModel):
    address: str | None = Field(default=None, max_length=300)
    property_id: str | None = Field(default=None, max_length=64)
    zipcode: str | None = Field(default=None, min_length=5, max_length=10)
    score_type: ScoreTypeIn = "standard"
    refresh: bool = False

    @model_validator(mode="after")
    def _needs_identity(self) -> "ScoreRequestIn":
        if not (self.address and self.address.strip()) and not self.property_id:
            raise ValueError("address or property_id is required")
        return self


class BatchItemIn(BaseModel):
    address: str | None = Field(default=None, max_length=300)
    property_id: str | None = Field(default=None, max_length=64)
    zipcode: str | None = Field(default=None, min_length=5, max_length=10)


class BatchRequestIn(BaseModel):
    items: list[BatchItemIn] = Field(..., min_length=1, max_length=200)
    score_type: ScoreTypeIn = "standard"
    concurrency: int | None = Field(default=None, ge=1, le=20)


# -----------------------------
# Responses
# -----------------------------
class ClassificationOut(BaseModel):
    primary_class: str
    sub_class: str
    confidence: float
    matched_patterns: list[str] = []
    raw_owner_name: str | None = None


class FactorOut(BaseModel):
    name: str
    impact: Literal["positive", "negative", "neutral"]
    weight: float
    description: str
    raw_value: Any = None
    data_source: str


class StandardScoreOut(BaseModel):
    score: float = Field(..., ge=0, le=100)
    confidence: float = Field(..., ge=0, le=1)
    factors: list[FactorOut]
    recommendation: str
    risk_factors: list[str]
    model_used: str
    band: str
    baseline: float


class AdjustmentOut(BaseModel):
    factor: str
    adjustment: int
    reasoning: str


class OfferRangeOut(BaseModel):
    min: int = Field(..., ge=0)
    max: int = Field(..., ge=0)


class PredictionsOut(BaseModel):
    time_to_decision: str
    best_approach_timing: str
    optimal_offer_range: OfferRangeOut


class DealFlowIQOut(BaseModel):
    iq_score: float = Field(..., ge=0, le=100)
    standard_score: float
    confidence: float
    ai_adjustments: list[AdjustmentOut]
    predictions: PredictionsOut
    source: str
    rejected_adjustments: int = 0


class DataQualityOut(BaseModel):
    signals_available: int
    signals_missing: list[str]
    sources_used: list[str]
    confidence: float


class TimingOut(BaseModel):
    fetch_ms: int
    classify_ms: int
    score_ms: int
    iq_ms: int
    total_ms: int


class FetchErrorOut(BaseModel):
    source: str
    error: str


class ScoringResultOut(BaseModel):
    standard_score: StandardScoreOut
    dealflow_iq: DealFlowIQOut | None = None
    iq_available: bool
    classification: ClassificationOut
    signals: dict[str, Any]
    data_quality: DataQualityOut
    timing: TimingOut
    fetch_errors: list[FetchErrorOut]
    notes: list[str]


class BatchItemOut(BaseModel):
    input: BatchItemIn
    result: ScoringResultOut | None = None
    error: str | None = None


class BatchResultOut(BaseModel):
    total: int
    succeeded: int
    failed: int
    results: list[BatchItemOut]


class QuickScoreOut(BaseModel):
    score: float
    recommendation: str
    confidence: float | None = None
    owner_type: str | None = None
