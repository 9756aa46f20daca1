# tests/test_http_clients.py
import json
from datetime import date

import httpx
import pytest

from sellerscore.adapters.clients import http_resilience
from sellerscore.adapters.clients.ai_adjuster import HttpAdjuster
from sellerscore.adapters.clients.rentcast import RentCastClient, market_values
from sellerscore.adapters.clients.shovels import ShovelsClient
from sellerscore.config import settings
from sellerscore.domain.adjustments import AdjustmentContext
from sellerscore.domain.merge import merge_patches
from sellerscore.domain.normalize import normalize_signals
from sellerscore.domain.owner_classifier import classify_owner
from sellerscore.domain.scoring_models import score_motivation
from sellerscore.domain.types import PermitStatus, RawPropertySignals, ResolvedAddress
from sellerscore.errors import AdjusterError, ProviderError

RC_BASE = "https://rc.test/v1"
SHOVELS_BASE = "https://shovels.test/v2"

PROPERTY = {
    "formattedAddress": "42 Palm Ave, Tampa, FL 33602",
    "state": "FL",
    "zipCode": "33602",
    "ownerOccupied": False,
    "lastSaleDate": "2015-06-01T00:00:00.000Z",
    "lastSalePrice": 210000,
    "yearBuilt": 1978,
    "owner": {
        "names": ["ABC HOLDINGS LLC"],
        "type": "Organization",
        "mailingAddress": {"addressLine1": "1 Wall St", "city": "New York", "state": "NY", "zipCode": "10005"},
    },
    "taxAssessment": {"2022": {"year": 2022, "value": 250000}, "2023": {"year": 2023, "value": 270000}},
}

MARKET = {"saleData": {"averageDaysOnMarket": 48, "yearOverYearChange": -4.2, "medianPrice": 300000, "totalListings": 120}}


def _rentcast_handler(overrides=None, seen=None):
    routes = {
        "/v1/properties": (200, [PROPERTY]),
        "/v1/avm/value": (200, {"price": 325000}),
        "/v1/markets": (200, MARKET),
    }
    routes.update(overrides or {})

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        status, body = routes[request.url.path]
        return httpx.Response(status, json=body)

    return handler


def _rentcast(handler, **kw) -> RentCastClient:
    return RentCastClient("rc-key", RC_BASE, transport=httpx.MockTransport(handler), max_retries=kw.pop("max_retries", 0))


@pytest.mark.asyncio
async def test_rentcast_merges_record_valuation_and_market():
    seen: list[httpx.Request] = []
    client = _rentcast(_rentcast_handler(seen=seen))

    patches = await client.fetch_signals(address=ResolvedAddress("42 Palm Ave", "Tampa", "FL"))
    signals, prov = merge_patches(patches)

    assert signals.owner_name == "ABC HOLDINGS LLC"
    assert signals.owner_type == "organization"
    assert signals.owner_mailing_state == "NY"
    assert signals.last_sale_date == date(2015, 6, 1)
    assert signals.assessed_value == 270000
    assert signals.estimated_value == 325000
    assert signals.days_on_market == 48
    assert signals.price_change_yoy == -4.2
    assert prov["estimated_value"] == "market"

    market_req = next(r for r in seen if r.url.path == "/v1/markets")
    assert market_req.url.params["zipCode"] == "33602"
    assert all(r.headers["X-Api-Key"] == "rc-key" for r in seen)


@pytest.mark.asyncio
async def test_rentcast_partial_failure_returns_remaining_patches():
    client = _rentcast(_rentcast_handler({"/v1/avm/value": (500, {"error": "down"})}))
    patches = await client.fetch_signals(address=ResolvedAddress("42 Palm Ave", "Tampa", "FL", "33602"))
    signals, _ = merge_patches(patches)

    assert signals.estimated_value is None
    assert signals.owner_name == "ABC HOLDINGS LLC"
    assert signals.median_price == 300000


@pytest.mark.asyncio
async def test_rentcast_raises_only_when_everything_failed():
    client = _rentcast(
        _rentcast_handler(
            {
                "/v1/properties": (503, {}),
                "/v1/avm/value": (503, {}),
                "/v1/markets": (503, {}),
            }
        )
    )
    with pytest.raises(ProviderError) as ei:
        await client.fetch_signals(address=ResolvedAddress("42 Palm Ave", "Tampa", "FL", "33602"))
    assert ei.value.source == "market"


@pytest.mark.asyncio
async def test_rentcast_not_found_is_not_an_error():
    client = _rentcast(_rentcast_handler({"/v1/properties": (404, {"message": "not found"})}))
    patches = await client.fetch_signals(address=ResolvedAddress("42 Palm Ave", "Tampa", "FL", "33602"))
    signals, _ = merge_patches(patches)
    assert signals.owner_name is None
    assert signals.estimated_value == 325000


@pytest.mark.asyncio
async def test_rentcast_client_error_is_not_retried():
    seen: list[httpx.Request] = []
    client = _rentcast(_rentcast_handler({"/v1/avm/value": (401, {})}, seen=seen), max_retries=2)
    await client.fetch_signals(address=ResolvedAddress("42 Palm Ave", "Tampa", "FL", "33602"))
    assert sum(1 for r in seen if r.url.path == "/v1/avm/value") == 1


@pytest.mark.asyncio
async def test_rentcast_disabled_without_key():
    client = RentCastClient("", RC_BASE, transport=httpx.MockTransport(_rentcast_handler()))
    assert await client.fetch_signals(address=ResolvedAddress("42 Palm Ave")) == []


def test_market_values_flat_shape():
    assert market_values({"daysOnMarket": 30, "priceChangeYoY": 2.5})["days_on_market"] == 30


def _shovels_handler(seen, *, geo_items=None, pages=None):
    pages = pages if pages is not None else [
        {"items": [{"tags": ["roofing"], "status": "final", "issue_date": "2024-03-02"}], "next_cursor": "c2"},
        {"items": [{"type": "pool", "status": "inactive", "file_date": "2023-01-05"}], "next_cursor": None},
    ]
    geo_items = geo_items if geo_items is not None else [{"geo_id": "G1"}]

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/v2/addresses/search":
            return httpx.Response(200, json={"items": geo_items})
        idx = 1 if request.url.params.get("cursor") == "c2" else 0
        return httpx.Response(200, json=pages[idx])

    return handler


def _shovels(handler) -> ShovelsClient:
    return ShovelsClient(
        "sh-key",
        SHOVELS_BASE,
        lookback_years=3,
        transport=httpx.MockTransport(handler),
        max_retries=0,
        today=lambda: date(2025, 7, 15),
    )


@pytest.mark.asyncio
async def test_shovels_follows_cursor_pages():
    seen: list[httpx.Request] = []
    patches = await _shovels(_shovels_handler(seen)).fetch_signals(address=ResolvedAddress("42 Palm Ave", "Tampa", "FL", "33602"))

    permits = patches[0].values["recent_permits"]
    assert [p.type for p in permits] == ["roofing", "pool"]
    assert permits[1].status == PermitStatus.inactive
    assert permits[0].filed_date == date(2024, 3, 2)

    permit_reqs = [r for r in seen if r.url.path == "/v2/permits/search"]
    assert len(permit_reqs) == 2
    assert permit_reqs[0].url.params["geo_id"] == "G1"
    assert permit_reqs[0].url.params["permit_from"] == "2022-07-15"
    assert permit_reqs[1].url.params["cursor"] == "c2"


@pytest.mark.asyncio
async def test_shovels_no_address_match_means_unknown():
    seen: list[httpx.Request] = []
    patches = await _shovels(_shovels_handler(seen, geo_items=[])).fetch_signals(address=ResolvedAddress("1 Nowhere Rd"))
    assert patches == []


@pytest.mark.asyncio
async def test_shovels_matched_address_without_permits_is_known_empty():
    seen: list[httpx.Request] = []
    client = _shovels(_shovels_handler(seen, pages=[{"items": []}, {"items": []}]))
    patches = await client.fetch_signals(address=ResolvedAddress("42 Palm Ave"))
    assert patches[0].values == {"recent_permits": ()}


def _ctx() -> AdjustmentContext:
    raw = RawPropertySignals(owner_name="John Smith", last_sale_date=date(2012, 1, 1))
    n = normalize_signals(raw, today=date(2025, 7, 15))
    c = classify_owner(raw.owner_name)
    return AdjustmentContext(standard=score_motivation(n, c), signals=raw, normalized=n, classification=c)


@pytest.mark.asyncio
async def test_http_adjuster_posts_context_and_returns_proposal():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"adjustments": [{"factor": "Local", "adjustment": 4, "reasoning": "r"}], "confidence": 0.7, "model": "m-1"},
        )

    adjuster = HttpAdjuster("https://ai.test/adjust", "secret", transport=httpx.MockTransport(handler))
    proposal = await adjuster.propose(_ctx())

    assert proposal.source == "m-1"
    assert proposal.confidence == 0.7
    assert proposal.adjustments[0]["factor"] == "Local"
    assert seen[0].headers["Authorization"] == "Bearer secret"
    body = json.loads(seen[0].content)
    assert set(body) == {"standard_score", "classification", "signals", "normalized"}
    assert body["signals"]["last_sale_date"] == "2012-01-01"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [httpx.Response(500, json={}), httpx.Response(200, json=[1, 2]), httpx.Response(200, content=b"not json")],
)
async def test_http_adjuster_failures_raise_adjuster_error(response):
    adjuster = HttpAdjuster("https://ai.test/adjust", None, transport=httpx.MockTransport(lambda r: response))
    with pytest.raises(AdjusterError):
        await adjuster.propose(_ctx())


@pytest.mark.asyncio
async def test_http_adjuster_without_url():
    with pytest.raises(AdjusterError):
        await HttpAdjuster("", None).propose(_ctx())


@pytest.mark.asyncio
async def test_transient_errors_are_retried(monkeypatch):
    monkeypatch.setattr(settings, "HTTP_BACKOFF_BASE_S", 0.0)
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            raise httpx.ConnectError("reset", request=request)
        if calls["n"] == 2:
            return httpx.Response(429, json={})
        return httpx.Response(200, json={"ok": True})

    r = await http_resilience.resilient_request(
        "GET", "https://x.test/a", circuit="t-retry", max_retries=2, transport=httpx.MockTransport(handler)
    )
    assert r.json() == {"ok": True}
    assert calls["n"] == 3
    assert http_resilience.circuit_state("t-retry").fails == 0


@pytest.mark.asyncio
async def test_circuit_opens_after_repeated_failures(monkeypatch):
    monkeypatch.setattr(settings, "HTTP_CIRCUIT_FAIL_THRESHOLD", 2)
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(503, json={})

    transport = httpx.MockTransport(handler)
    for _ in range(2):
        with pytest.raises(httpx.HTTPStatusError):
            await http_resilience.resilient_request("GET", "https://x.test/b", circuit="t-open", max_retries=0, transport=transport)

    with pytest.raises(http_resilience.CircuitOpenError):
        await http_resilience.resilient_request("GET", "https://x.test/b", circuit="t-open", max_retries=0, transport=transport)
    assert calls["n"] == 2
