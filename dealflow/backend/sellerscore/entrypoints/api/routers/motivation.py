# sellerscore/entrypoints/api/routers/motivation.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from ..deps import get_engine, require_api_key
from ....domain.types import ScoreRequest
from ....errors import ScoringStageError, UnresolvableIdentityError
from ....schemas import (
    BatchItemIn,
    BatchItemOut,
    BatchRequestIn,
    BatchResultOut,
    QuickScoreOut,
    ScoreRequestIn,
    ScoreTypeIn,
    ScoringResultOut,
)
from ....service_layer.motivation import MotivationEngine

log = logging.getLogger(__name__)

router = APIRouter(tags=["motivation"], dependencies=[Depends(require_api_key)])


def _http_error(e: UnresolvableIdentityError | ScoringStageError) -> HTTPException:
    if isinstance(e, UnresolvableIdentityError):
        return HTTPException(status_code=404 if e.property_id else 422, detail=str(e))
    log.error("scoring failed at %s: %s", e.stage, e)
    return HTTPException(status_code=500, detail=f"scoring failed at stage {e.stage}")


@router.get("/properties/{property_id}/motivation", response_model=ScoringResultOut)
async def property_motivation(
    property_id: str,
    score_type: ScoreTypeIn = Query("standard"),
    refresh: bool = Query(False),
    engine: MotivationEngine = Depends(get_engine),
) -> ScoringResultOut:
    try:
        result = await engine.calculate_seller_motivation(
            property_id=property_id,
            score_type=score_type,
            use_cache=not refresh,
        )
    except (UnresolvableIdentityError, ScoringStageError) as e:
        raise _http_error(e)
    return ScoringResultOut.model_validate(result.to_dict())


@router.post("/motivation/score", response_model=ScoringResultOut)
async def score(
    body: ScoreRequestIn,
    engine: MotivationEngine = Depends(get_engine),
) -> ScoringResultOut:
    try:
        result = await engine.calculate_seller_motivation(
            address=body.address,
            property_id=body.property_id,
            zipcode=body.zipcode,
            score_type=body.score_type,
            use_cache=not body.refresh,
        )
    except (UnresolvableIdentityError, ScoringStageError) as e:
        raise _http_error(e)
    return ScoringResultOut.model_validate(result.to_dict())


@router.post("/motivation/batch", response_model=BatchResultOut)
async def batch(
    body: BatchRequestIn,
    engine: MotivationEngine = Depends(get_engine),
) -> BatchResultOut:
    items = [ScoreRequest(address=i.address, property_id=i.property_id, zipcode=i.zipcode) for i in body.items]
    results = await engine.batch_calculate_motivation(
        items,
        score_type=body.score_type,
        concurrency=body.concurrency,
    )

    out: list[BatchItemOut] = []
    for r in results:
        out.append(
            BatchItemOut(
                input=BatchItemIn(**r.input.to_dict()),
                result=ScoringResultOut.model_validate(r.result.to_dict()) if r.result else None,
                error=r.error,
            )
        )
    ok = sum(1 for r in results if r.result is not None)
    return BatchResultOut(total=len(out), succeeded=ok, failed=len(out) - ok, results=out)


@router.get("/motivation/quick", response_model=QuickScoreOut)
async def quick(
    address: str | None = Query(default=None, max_length=300),
    property_id: str | None = Query(default=None, max_length=64),
    engine: MotivationEngine = Depends(get_engine),
) -> QuickScoreOut:
    try:
        qs = await engine.quick_score(address=address, property_id=property_id)
    except (UnresolvableIdentityError, ScoringStageError) as e:
        raise _http_error(e)
    return QuickScoreOut(**qs.to_dict())
