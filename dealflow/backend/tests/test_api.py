# tests/test_api.py
import httpx
import pytest

from fakes import FIXED_NOW, FIXED_TODAY, Clock, FakeProvider, FakeStore, FixedAdjuster
from sellerscore.adapters.repos.signal_cache import InMemorySignalCache
from sellerscore.config import settings
from sellerscore.entrypoints.fastapi_app import create_app
from sellerscore.errors import ScoringStageError
from sellerscore.service_layer.motivation import MotivationEngine
from sellerscore.service_layer.signals import SignalFetcher

ADDRESS = "42 Palm Ave, Tampa, FL 33602"


def _engine() -> MotivationEngine:
    clock = Clock(FIXED_NOW)
    store = FakeStore({"tax_delinquent": True})
    market = FakeProvider("market", {"owner_name": "JOHN SMITH HEIRS", "owner_occupied": False, "days_on_market": 70})
    fetcher = SignalFetcher(providers=[market, store], store=store, cache=InMemorySignalCache(now=clock), now=clock)
    return MotivationEngine(
        fetcher=fetcher,
        store=store,
        adjuster=FixedAdjuster([{"factor": "Local", "adjustment": 3, "reasoning": "r"}]),
        iq_timeout_s=1.0,
        today=lambda: FIXED_TODAY,
    )


class ExplodingEngine:
    async def calculate_seller_motivation(self, **kw):
        raise ScoringStageError("scoring_standard", "ValueError: bad input")


@pytest.fixture
async def client():
    app = create_app(_engine(), create_tables=False)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_score_by_address(client):
    r = await client.post("/motivation/score", json={"address": ADDRESS})
    assert r.status_code == 200
    body = r.json()

    assert body["classification"]["sub_class"] == "inherited"
    assert 0 <= body["standard_score"]["score"] <= 100
    assert body["standard_score"]["band"] in {"very_high", "high", "moderate", "low", "very_low"}
    assert body["dealflow_iq"] is None
    assert body["iq_available"] is False
    assert body["signals"]["tax_delinquent"] is True
    assert set(body["data_quality"]["sources_used"]) == {"market", "store"}


@pytest.mark.asyncio
async def test_score_with_iq(client):
    r = await client.post("/motivation/score", json={"address": ADDRESS, "score_type": "both"})
    body = r.json()
    assert body["iq_available"] is True
    assert body["dealflow_iq"]["ai_adjustments"][0]["adjustment"] == 3
    assert body["dealflow_iq"]["iq_score"] == pytest.approx(min(100, body["standard_score"]["score"] + 3))


@pytest.mark.asyncio
async def test_score_requires_identity(client):
    r = await client.post("/motivation/score", json={"score_type": "standard"})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_unknown_property_id_is_404(client):
    r = await client.get("/properties/ghost/motivation")
    assert r.status_code == 404
    assert "ghost" in r.json()["detail"]


@pytest.mark.asyncio
async def test_batch_reports_per_item_failures(client):
    r = await client.post(
        "/motivation/batch",
        json={"items": [{"address": ADDRESS}, {"property_id": "ghost"}], "concurrency": 2},
    )
    assert r.status_code == 200
    body = r.json()
    assert (body["total"], body["succeeded"], body["failed"]) == (2, 1, 1)
    assert body["results"][0]["input"]["address"] == ADDRESS
    assert body["results"][1]["result"] is None
    assert body["results"][1]["error"]


@pytest.mark.asyncio
async def test_batch_rejects_empty_items(client):
    r = await client.post("/motivation/batch", json={"items": []})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_quick_score(client):
    r = await client.get("/motivation/quick", params={"address": ADDRESS})
    assert r.status_code == 200
    body = r.json()
    assert body["owner_type"] == "individual/inherited"
    assert body["recommendation"]


@pytest.mark.asyncio
async def test_api_key_enforced(client, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "k-123")

    assert (await client.post("/motivation/score", json={"address": ADDRESS})).status_code == 401
    ok = await client.post("/motivation/score", json={"address": ADDRESS}, headers={"X-API-Key": "k-123"})
    assert ok.status_code == 200
    # health stays open
    assert (await client.get("/health")).status_code == 200


@pytest.mark.asyncio
async def test_debug_config_redacts_keys(client, monkeypatch):
    monkeypatch.setattr(settings, "RENTCAST_API_KEY", "abcd1234efgh5678")
    body = (await client.get("/debug/config")).json()
    assert body["RENTCAST_API_KEY"] == "abcd***5678"


@pytest.mark.asyncio
async def test_stage_failure_is_500():
    app = create_app(ExplodingEngine(), create_tables=False)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        r = await c.post("/motivation/score", json={"address": ADDRESS})
    assert r.status_code == 500
    assert "scoring_standard" in r.json()["detail"]
