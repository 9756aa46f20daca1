# sellerscore/adapters/clients/shovels.py
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable

import httpx

from ...config import settings
from ...domain.merge import AUTHORITY_PERMITS
from ...domain.parsing import get_first, to_str
from ...domain.types import Permit, ResolvedAddress, SignalPatch
from ...errors import ProviderError
from .http_resilience import resilient_request

log = logging.getLogger(__name__)

SOURCE = "permits"
PAGE_SIZE = 100
MAX_PAGES = 20


def permit_from_item(item: dict[str, Any]) -> Permit:
    tags = [str(t) for t in (item.get("tags") or []) if t]
    return Permit.from_dict(
        {
            "type": tags[0] if tags else to_str(item.get("type")),
            "status": item.get("status"),
            "filed_date": get_first(item, "issue_date", "file_date", "start_date"),
            "tags": tags,
        }
    )


class ShovelsClient:
    """
    Permit history for one address: address search -> geo_id -> paginated
    permit search over the lookback window.
    """

    source = SOURCE
    requires_address = True

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        *,
        lookback_years: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.SHOVELS_API_KEY
        self.base_url = (base_url or settings.SHOVELS_BASE_URL).rstrip("/")
        self.lookback_years = lookback_years if lookback_years is not None else settings.PERMIT_LOOKBACK_YEARS
        self.transport = transport
        self.max_retries = max_retries
        self.today = today

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        r = await resilient_request(
            "GET",
            f"{self.base_url}{path}",
            circuit="shovels",
            headers={"X-API-Key": self.api_key or "", "accept": "application/json"},
            params=params,
            transport=self.transport,
            max_retries=self.max_retries,
        )
        data = r.json()
        if not isinstance(data, dict):
            raise ProviderError(SOURCE, f"unexpected response shape from {path}")
        return data

    async def search_address(self, query: str) -> str | None:
        data = await self._get("/addresses/search", {"q": query})
        items = data.get("items") or []
        if not items or not isinstance(items[0], dict):
            return None
        return to_str(items[0].get("geo_id"))

    async def permits_for_geo_id(self, geo_id: str) -> list[Permit]:
        today = self.today()
        try:
            start = today.replace(year=today.year - self.lookback_years)
        except ValueError:  # Feb 29
            start = today.replace(year=today.year - self.lookback_years, day=28)

        params: dict[str, Any] = {
            "geo_id": geo_id,
            "permit_from": start.isoformat(),
            "permit_to": today.isoformat(),
            "size": PAGE_SIZE,
        }

        out: list[Permit] = []
        for _ in range(MAX_PAGES):
            data = await self._get("/permits/search", params)
            out.extend(permit_from_item(i) for i in (data.get("items") or []) if isinstance(i, dict))
            cursor = to_str(get_first(data, "next_cursor", "cursor"))
            if not cursor:
                break
            params = {**params, "cursor": cursor}
        else:
            log.warning("permit pagination stopped after %d pages for geo_id=%s", MAX_PAGES, geo_id)
        return out

    async def fetch_signals(
        self,
        *,
        address: ResolvedAddress | None,
        property_id: str | None = None,
    ) -> list[SignalPatch]:
        if not self.enabled:
            return []
        if address is None:
            raise ProviderError(SOURCE, "no address to look up")

        geo_id = await self.search_address(address.one_line)
        if not geo_id:
            log.info("no permit address match for %s", address.one_line)
            return []

        permits = await self.permits_for_geo_id(geo_id)
        # address matched: an empty list means "no permits on file"
        return [SignalPatch(SOURCE, AUTHORITY_PERMITS, {"recent_permits": tuple(permits)})]
