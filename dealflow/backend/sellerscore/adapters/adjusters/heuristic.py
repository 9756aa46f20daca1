# sellerscore/adapters/adjusters/heuristic.py
from __future__ import annotations

from datetime import date
from typing import Any, Callable

from ...domain.adjustments import AdjustmentContext, AdjustmentProposal
from ...domain.types import OwnerPrimaryClass


def _adj(factor: str, points: int, reasoning: str) -> dict[str, Any]:
    return {"factor": factor, "adjustment": points, "reasoning": reasoning}


class HeuristicAdjuster:
    """
    In-process adjustment collaborator used when no remote model is configured.
    Rules: seasonality, price momentum, duration patterns, property age, and
    compound distress. Predictions are left to local derivation.
    """

    name = "heuristic"

    def __init__(self, *, today: Callable[[], date] = date.today):
        self.today = today

    def _seasonal(self, month: int) -> dict[str, Any] | None:
        if 3 <= month <= 5:
            return _adj("Seasonal Timing", -3, "Peak season gives sellers more leverage")
        if month >= 11 or month <= 2:
            return _adj("Seasonal Timing", 5, "Off-season listings often indicate higher motivation")
        return None

    def adjustments(self, ctx: AdjustmentContext) -> list[dict[str, Any]]:
        n = ctx.normalized
        primary = ctx.classification.primary_class
        out: list[dict[str, Any]] = []

        seasonal = self._seasonal(self.today().month)
        if seasonal:
            out.append(seasonal)

        yoy = n.price_change_yoy
        if yoy is not None:
            if yoy < -5:
                out.append(_adj("Market Momentum", 8, f"Market declining {abs(yoy):.1f}% YoY - sellers more motivated to act"))
            elif yoy > 10:
                out.append(_adj("Market Momentum", -5, f"Market rising {yoy:.1f}% YoY - sellers may wait for more appreciation"))

        years = n.ownership_years
        if years is not None:
            if primary == OwnerPrimaryClass.individual and 6 <= years <= 8:
                out.append(_adj("Duration Pattern", 5, "7-year ownership pattern often correlates with major life transitions"))
            if primary == OwnerPrimaryClass.investor_entity and years < 1:
                out.append(_adj("Flip Indicator", 10, "Recent investor purchase suggests potential flip - may be ready to exit"))

        age = n.property_age_years
        if age is not None and age > 50 and primary != OwnerPrimaryClass.institutional_distressed:
            pts = min(5, (age - 50) // 10)
            if pts > 0:
                out.append(_adj("Property Age", pts, f"{age}-year-old property likely has ongoing maintenance burden"))

        count = n.distress_count
        if count >= 2:
            out.append(_adj("Compound Distress", count * 5, f"Multiple distress signals ({count}) indicate urgent seller situation"))

        return out

    async def propose(self, ctx: AdjustmentContext) -> AdjustmentProposal:
        return AdjustmentProposal(adjustments=self.adjustments(ctx), source=self.name)
