# sellerscore/adapters/clients/rentcast.py
from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from ...config import settings
from ...domain.address import extract_zipcode, normalize_state
from ...domain.merge import AUTHORITY_MARKET, AUTHORITY_PROPERTY_RECORD, AUTHORITY_VALUATION
from ...domain.parsing import get_first, get_nested, to_bool, to_date, to_float, to_int, to_str
from ...domain.types import ResolvedAddress, SignalPatch
from ...errors import ProviderError
from .http_resilience import resilient_request

log = logging.getLogger(__name__)

SOURCE = "market"


def _latest_tax_assessment(prop: dict[str, Any]) -> float | None:
    """taxAssessment is keyed by year: {"2023": {"year": 2023, "value": 310000}, ...}"""
    ta = prop.get("taxAssessment") or prop.get("taxAssessments")
    if not isinstance(ta, dict) or not ta:
        return None
    if "value" in ta or "assessedValue" in ta:
        return to_float(get_first(ta, "assessedValue", "value"))
    rows = [v for v in ta.values() if isinstance(v, dict)]
    if not rows:
        return None
    latest = max(rows, key=lambda r: to_int(r.get("year")) or 0)
    return to_float(get_first(latest, "value", "assessedValue"))


def property_record_values(prop: dict[str, Any]) -> dict[str, Any]:
    owner = prop.get("owner") if isinstance(prop.get("owner"), dict) else {}
    names = owner.get("names") or []
    owner_name = to_str(names[0]) if isinstance(names, list) and names else to_str(owner.get("name"))

    return {
        "owner_name": owner_name,
        "owner_type": (to_str(get_first(owner, "type", "ownerType")) or "").lower() or None,
        "owner_occupied": to_bool(prop.get("ownerOccupied")),
        "owner_mailing_address": to_str(get_nested(owner, "mailingAddress.addressLine1")),
        "owner_mailing_city": to_str(get_nested(owner, "mailingAddress.city")),
        "owner_mailing_state": normalize_state(to_str(get_nested(owner, "mailingAddress.state"))),
        "owner_mailing_zip": to_str(get_nested(owner, "mailingAddress.zipCode")),
        "property_state": normalize_state(to_str(prop.get("state"))),
        "last_sale_date": to_date(prop.get("lastSaleDate")),
        "last_sale_price": to_float(prop.get("lastSalePrice")),
        "assessed_value": _latest_tax_assessment(prop),
        "property_type": to_str(prop.get("propertyType")),
        "bedrooms": to_float(prop.get("bedrooms")),
        "bathrooms": to_float(prop.get("bathrooms")),
        "square_footage": to_float(prop.get("squareFootage")),
        "year_built": to_int(prop.get("yearBuilt")),
        "lot_size": to_float(prop.get("lotSize")),
    }


def market_values(market: dict[str, Any]) -> dict[str, Any]:
    # Flat shape or the newer {"saleData": {...}} shape
    sale = market.get("saleData") if isinstance(market.get("saleData"), dict) else market
    return {
        "days_on_market": to_float(get_first(sale, "averageDaysOnMarket", "daysOnMarket", "medianDaysOnMarket")),
        "sale_to_list_ratio": to_float(get_first(sale, "saleToListRatio")),
        "inventory": to_int(get_first(sale, "totalListings", "inventory")),
        "median_price": to_float(get_first(sale, "medianPrice", "medianSalePrice")),
        "price_change_yoy": to_float(get_first(sale, "yearOverYearChange", "priceChangeYoY")),
    }


class RentCastClient:
    """
    Property record, AVM value and zip-level market stats.

    Sub-call failures are logged and skipped; the provider only fails as a
    whole when every sub-call it attempted failed.
    """

    source = SOURCE
    requires_address = True

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.RENTCAST_API_KEY
        self.base_url = (base_url or settings.RENTCAST_BASE_URL).rstrip("/")
        self.transport = transport
        self.max_retries = max_retries

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        headers = {"X-Api-Key": self.api_key or "", "accept": "application/json"}
        try:
            r = await resilient_request(
                "GET",
                f"{self.base_url}{path}",
                circuit="rentcast",
                headers=headers,
                params=params,
                transport=self.transport,
                max_retries=self.max_retries,
            )
        except httpx.HTTPStatusError as e:
            if e.response is not None and e.response.status_code == 404:
                return None
            raise
        return r.json()

    async def search_property(self, address: str) -> dict[str, Any] | None:
        data = await self._get("/properties", {"address": address, "limit": 1})
        if isinstance(data, list):
            return data[0] if data and isinstance(data[0], dict) else None
        return data if isinstance(data, dict) else None

    async def get_valuation(self, address: str) -> dict[str, Any] | None:
        data = await self._get("/avm/value", {"address": address})
        return data if isinstance(data, dict) else None

    async def get_market_data(self, zipcode: str) -> dict[str, Any] | None:
        data = await self._get("/markets", {"zipCode": zipcode})
        return data if isinstance(data, dict) else None

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

        one_line = address.one_line
        patches: list[SignalPatch] = []
        attempted = 0
        failed: list[str] = []

        record_res, value_res = await asyncio.gather(
            self.search_property(one_line),
            self.get_valuation(one_line),
            return_exceptions=True,
        )
        attempted += 2

        zipcode = address.zipcode or extract_zipcode(one_line)
        if isinstance(record_res, BaseException):
            failed.append(f"properties: {type(record_res).__name__}: {record_res}")
            log.warning("rentcast property lookup failed for %s: %s", one_line, record_res)
        elif record_res:
            patches.append(SignalPatch(SOURCE, AUTHORITY_PROPERTY_RECORD, property_record_values(record_res)))
            zipcode = zipcode or to_str(record_res.get("zipCode"))

        if isinstance(value_res, BaseException):
            failed.append(f"avm: {type(value_res).__name__}: {value_res}")
            log.warning("rentcast valuation failed for %s: %s", one_line, value_res)
        elif value_res:
            price = to_float(value_res.get("price"))
            if price is not None:
                patches.append(SignalPatch(SOURCE, AUTHORITY_VALUATION, {"estimated_value": price}))

        if zipcode:
            attempted += 1
            try:
                market = await self.get_market_data(zipcode)
            except (httpx.HTTPError, ValueError) as e:
                failed.append(f"markets: {type(e).__name__}: {e}")
                log.warning("rentcast market data failed for %s: %s", zipcode, e)
            else:
                if market:
                    patches.append(SignalPatch(SOURCE, AUTHORITY_MARKET, market_values(market)))

        if failed and len(failed) == attempted:
            raise ProviderError(SOURCE, "; ".join(failed))
        return patches
