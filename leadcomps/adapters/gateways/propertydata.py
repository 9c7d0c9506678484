# leadcomps/adapters/gateways/propertydata.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from ...config import settings
from ...domain.errors import SourceUnavailable
from ...domain.parsing import round2, round_half_up, to_float, to_int, to_str
from ...domain.property_types import broad_category, normalize_property_type
from ..clients.http_resilience import resilient_request
from .base import FetchResult, RawComparable

log = logging.getLogger(__name__)

WEEKS_PER_MONTH = 4.333

# PropertyData accepts 0-5 bedrooms on the sold-prices and rents endpoints.
_MAX_API_BEDROOMS = 5

_SOLD_PRICE_TYPES = {
    "flat": "flat",
    "terraced": "terraced_house",
    "semi-detached": "semi-detached_house",
    "detached": "detached_house",
}


def _sold_price_type(property_type: str | None) -> str | None:
    canon = normalize_property_type(property_type)
    return _SOLD_PRICE_TYPES.get(canon) if canon else None


def _rent_type(property_type: str | None) -> str | None:
    return broad_category(property_type)


@dataclass(frozen=True)
class AreaRent:
    weekly: float
    monthly: int
    monthly_min: int | None = None
    monthly_max: int | None = None


def _yield_pct(monthly_rent: float | None, price: float | None) -> float | None:
    if not monthly_rent or not price or price <= 0:
        return None
    return round2(monthly_rent * 12 / price * 100)


@dataclass
class PropertyDataGateway:
    """
    Sold comparables from the PropertyData API (https://propertydata.co.uk/api).

    One /sold-prices call for the sales, plus one optional /rents call whose
    area long-let figures are attached to every comparable. PropertyData
    grows its own search area to reach `points`, so the caller's radius is
    applied client-side on the returned distances.

    Credits: every successful call costs at least one credit
    (`api_calls_cost` when the response reports it).
    """

    api_key: str
    base_url: str = "https://api.propertydata.co.uk"
    include_rents: bool = True
    client: httpx.AsyncClient | None = field(default=None, repr=False)
    name: str = "propertydata"

    @classmethod
    def from_settings(cls) -> "PropertyDataGateway":
        if not settings.PROPERTYDATA_API_KEY:
            raise ValueError("PROPERTYDATA_API_KEY is not set")
        return cls(api_key=settings.PROPERTYDATA_API_KEY, base_url=settings.PROPERTYDATA_BASE_URL)

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        resp = await resilient_request(
            "GET",
            self._url(path),
            headers={"accept": "application/json"},
            params={"key": self.api_key, **params},
            client=self.client,
        )
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"unexpected payload type from {path}: {type(data).__name__}")
        if data.get("status") != "success":
            raise ValueError(f"{path} returned status={data.get('status')!r}: {data.get('message') or data.get('error')}")
        return data

    async def fetch(
        self,
        *,
        postcode: str,
        bedrooms: int | None,
        property_type: str | None,
        radius_miles: float,
        max_results: int,
        max_age_months: int,
    ) -> FetchResult:
        params: dict[str, Any] = {
            "postcode": postcode,
            "max_age": max_age_months,
            "points": max_results,
        }
        api_type = _sold_price_type(property_type)
        if api_type:
            params["type"] = api_type
        if bedrooms is not None:
            params["bedrooms"] = min(int(bedrooms), _MAX_API_BEDROOMS)

        try:
            data = await self._get_json("sold-prices", params)
        except (httpx.HTTPError, ValueError) as e:
            log.warning("propertydata sold-prices failed for %s: %s", postcode, e)
            raise SourceUnavailable(f"PropertyData sold-prices unavailable: {e}", source=self.name) from e

        credits = int(to_int(data.get("api_calls_cost")) or 1)
        raw_rows = (data.get("data") or {}).get("raw_data") or []
        rows = [r for r in raw_rows if isinstance(r, dict)]

        area_rent: AreaRent | None = None
        if self.include_rents and rows:
            area_rent, rent_credits = await self._fetch_area_rent(postcode, bedrooms, property_type)
            credits += rent_credits

        out: list[RawComparable] = []
        for row in rows:
            distance = to_float(row.get("distance"))
            if distance is not None and distance > radius_miles:
                continue
            payload = self._canonicalize(row, area_rent=area_rent, fallback_postcode=postcode)
            out.append(RawComparable(payload=payload, source=self.name, source_ref=payload.get("sourceRef")))
            if len(out) >= max_results:
                break

        log.info(
            "propertydata: %d sold rows for %s, %d within %.2f mi, credits=%d",
            len(rows), postcode, len(out), radius_miles, credits,
        )
        return FetchResult(comparables=out, credits_used=credits)

    async def _fetch_area_rent(
        self,
        postcode: str,
        bedrooms: int | None,
        property_type: str | None,
    ) -> tuple[AreaRent | None, int]:
        """Rent enrichment is best effort: failures are logged and cost nothing."""
        params: dict[str, Any] = {"postcode": postcode, "points": 20}
        if bedrooms is not None:
            params["bedrooms"] = min(int(bedrooms), _MAX_API_BEDROOMS)
        rent_type = _rent_type(property_type)
        if rent_type:
            params["type"] = rent_type

        try:
            data = await self._get_json("rents", params)
        except (httpx.HTTPError, ValueError) as e:
            log.warning("propertydata rents failed for %s, continuing without rental data: %s", postcode, e)
            return None, 0

        credits = int(to_int(data.get("api_calls_cost")) or 1)
        long_let = (data.get("data") or {}).get("long_let") or {}
        weekly = to_float(long_let.get("average"))
        if weekly is None or weekly <= 0:
            return None, credits

        lo = hi = None
        rng = long_let.get("70pc_range")
        if isinstance(rng, (list, tuple)) and len(rng) == 2:
            lo_w, hi_w = to_float(rng[0]), to_float(rng[1])
            if lo_w is not None and hi_w is not None:
                lo = round_half_up(lo_w * WEEKS_PER_MONTH)
                hi = round_half_up(hi_w * WEEKS_PER_MONTH)

        return (
            AreaRent(
                weekly=weekly,
                monthly=round_half_up(weekly * WEEKS_PER_MONTH),
                monthly_min=lo,
                monthly_max=hi,
            ),
            credits,
        )

    # -------------------------
    # Canonicalization
    # -------------------------

    def _canonicalize(
        self,
        row: dict[str, Any],
        *,
        area_rent: AreaRent | None,
        fallback_postcode: str,
    ) -> dict[str, Any]:
        price = to_float(row.get("price"))
        address = to_str(row.get("address"))
        sale_date = to_str(row.get("date"))
        ref = to_str(row.get("id")) or "|".join(x for x in (address, sale_date) if x) or None

        payload: dict[str, Any] = {
            "address": address,
            "postcode": to_str(row.get("postcode")) or fallback_postcode,
            "salePrice": price,
            "saleDate": sale_date,
            "bedrooms": to_int(row.get("bedrooms")),
            "bathrooms": to_int(row.get("bathrooms")),
            "propertyType": to_str(row.get("type")),
            "squareFeet": to_float(row.get("sqf")),
            "distance": to_float(row.get("distance")),
            "listingSource": self.name,
            "listingUrl": to_str(row.get("url")),
            "sourceRef": ref,
        }

        if area_rent is not None:
            payload.update(
                {
                    "monthlyRent": area_rent.monthly,
                    "weeklyRent": round_half_up(area_rent.weekly),
                    "areaAverageRent": area_rent.monthly,
                    "rentalYield": _yield_pct(area_rent.monthly, price),
                    "rentalYieldMin": _yield_pct(area_rent.monthly_min, price),
                    "rentalYieldMax": _yield_pct(area_rent.monthly_max, price),
                }
            )
        return payload
