# leadcomps/domain/normalize.py
from __future__ import annotations

from typing import Any

from .parsing import get_first, parse_date, to_float, to_int, to_str
from .postcodes import normalize_postcode
from .types import Comparable


class MalformedComparable(ValueError):
    """A raw comparable that cannot be used (excluded from the batch, not fatal)."""


def comparable_from_payload(payload: dict[str, Any], *, fallback_postcode: str | None = None) -> Comparable:
    """
    Convert a canonical gateway payload into a Comparable.

    Canonical keys: address, postcode, salePrice, saleDate, bedrooms, bathrooms,
    propertyType, squareFeet, distance, daysOnMarket, priceReductions,
    monthlyRent, weeklyRent, rentalYield, rentalYieldMin, rentalYieldMax,
    areaAverageRent, listingSource, listingUrl, listingUrlSecondary, sourceRef.

    Raises MalformedComparable when price or sale date are missing/unparseable.
    """
    price = to_float(get_first(payload, "salePrice", "price"))
    if price is None or price <= 0:
        raise MalformedComparable(f"invalid sale price: {payload.get('salePrice')!r}")

    raw_date = get_first(payload, "saleDate", "date")
    sale_date = parse_date(raw_date)
    if sale_date is None:
        raise MalformedComparable(f"unparseable sale date: {raw_date!r}")

    floor_area = to_float(get_first(payload, "squareFeet", "sqf", "floorArea"))

    return Comparable(
        address=to_str(payload.get("address")) or "Unknown address",
        sale_price=price,
        sale_date=sale_date,
        postcode=normalize_postcode(to_str(payload.get("postcode"))) or fallback_postcode,
        bedrooms=to_int(payload.get("bedrooms")),
        bathrooms=to_int(payload.get("bathrooms")),
        property_type=to_str(get_first(payload, "propertyType", "type")),
        floor_area=floor_area if floor_area and floor_area > 0 else None,
        distance=to_float(payload.get("distance")),
        days_on_market=to_int(payload.get("daysOnMarket")),
        price_reductions=to_int(payload.get("priceReductions")) or 0,
        monthly_rent=to_float(payload.get("monthlyRent")),
        weekly_rent=to_float(payload.get("weeklyRent")),
        rental_yield=to_float(payload.get("rentalYield")),
        rental_yield_min=to_float(payload.get("rentalYieldMin")),
        rental_yield_max=to_float(payload.get("rentalYieldMax")),
        area_average_rent=to_float(payload.get("areaAverageRent")),
        listing_source=to_str(payload.get("listingSource")),
        listing_url=to_str(payload.get("listingUrl")),
        listing_url_secondary=to_str(payload.get("listingUrlSecondary")),
        source_ref=to_str(payload.get("sourceRef")),
    )
