# sellerscore/adapters/clients/ai_adjuster.py
from __future__ import annotations

import logging
from typing import Any

import httpx

from ...config import settings
from ...domain.adjustments import AdjustmentContext, AdjustmentProposal
from ...errors import AdjusterError
from .http_resilience import resilient_request

log = logging.getLogger(__name__)


def context_payload(ctx: AdjustmentContext) -> dict[str, Any]:
    return {
        "standard_score": ctx.standard.to_dict(),
        "classification": ctx.classification.to_dict(),
        "signals": ctx.signals.to_dict(),
        "normalized": ctx.normalized.to_dict(),
    }


class HttpAdjuster:
    """
    Remote adjustment collaborator.

    POST {url} with the scoring context; expects
    {"adjustments": [{"factor", "adjustment", "reasoning"}], "predictions": {...}, "confidence": 0.7}.
    The response is passed through as an untrusted proposal; validation happens upstream.
    No retries here: the engine gives the whole call one timeout budget.
    """

    name = "remote"

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url if url is not None else settings.AI_ADJUSTER_URL
        self.api_key = api_key if api_key is not None else settings.AI_ADJUSTER_API_KEY
        self.transport = transport

    async def propose(self, ctx: AdjustmentContext) -> AdjustmentProposal:
        if not self.url:
            raise AdjusterError("no adjuster url configured")

        headers = {"accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            r = await resilient_request(
                "POST",
                self.url,
                circuit="ai_adjuster",
                headers=headers,
                json=context_payload(ctx),
                max_retries=0,
                transport=self.transport,
            )
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise AdjusterError(f"{type(e).__name__}: {e}") from e

        if not isinstance(data, dict):
            raise AdjusterError("adjuster returned a non-object body")

        return AdjustmentProposal(
            adjustments=data.get("adjustments"),
            predictions=data.get("predictions"),
            confidence=data.get("confidence"),
            source=str(data.get("model") or self.name),
        )
