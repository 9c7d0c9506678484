from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from .domain.aggregation import price_per_sqft
from .domain.types import AggregateResult, Comparable, RentalEstimate, ValueRange

Confidence = Literal["HIGH", "MEDIUM", "LOW"]


class RangeOut(BaseModel):
    min: float
    max: float


def _range(r: ValueRange | None) -> RangeOut | None:
    return RangeOut(min=r.min, max=r.max) if r else None


class ComparableOut(BaseModel):
    id: int | None = None
    lead_id: int | None = None

    address: str
    postcode: str | None = None
    sale_price: float
    sale_date: datetime

    bedrooms: int | None = None
    bathrooms: int | None = None
    property_type: str | None = None
    floor_area: float | None = None
    distance: float | None = None
    days_on_market: int | None = None
    price_reductions: int = 0
    price_per_sqft: int | None = None

    monthly_rent: float | None = None
    weekly_rent: float | None = None
    rental_yield: float | None = None
    rental_yield_min: float | None = None
    rental_yield_max: float | None = None
    area_average_rent: float | None = None

    listing_source: str | None = None
    listing_url: str | None = None
    listing_url_secondary: str | None = None

    confidence: float = Field(..., ge=0.0, le=1.0)

    @classmethod
    def from_domain(cls, comp: Comparable, *, id: int | None = None, lead_id: int | None = None) -> "ComparableOut":
        return cls(
            id=id,
            lead_id=lead_id,
            address=comp.address,
            postcode=comp.postcode,
            sale_price=comp.sale_price,
            sale_date=comp.sale_date,
            bedrooms=comp.bedrooms,
            bathrooms=comp.bathrooms,
            property_type=comp.property_type,
            floor_area=comp.floor_area,
            distance=comp.distance,
            days_on_market=comp.days_on_market,
            price_reductions=comp.price_reductions,
            price_per_sqft=price_per_sqft(comp),
            monthly_rent=comp.monthly_rent,
            weekly_rent=comp.weekly_rent,
            rental_yield=comp.rental_yield,
            rental_yield_min=comp.rental_yield_min,
            rental_yield_max=comp.rental_yield_max,
            area_average_rent=comp.area_average_rent,
            listing_source=comp.listing_source,
            listing_url=comp.listing_url,
            listing_url_secondary=comp.listing_url_secondary,
            confidence=comp.confidence if comp.confidence is not None else 0.0,
        )


class AggregateOut(BaseModel):
    lead_id: int
    comparables: list[ComparableOut]
    count: int = Field(..., ge=0)
    avg_price: int | None = None
    avg_rental_yield: float | None = None
    price_range: RangeOut | None = None
    rental_yield_range: RangeOut | None = None
    confidence: Confidence
    search_radius: float | None = None
    last_fetched_at: datetime | None = None
    credits_used: int = 0
    cached: bool = False
    stale: bool = False
    excluded: int = 0
    message: str | None = None
    warning: str | None = None

    @classmethod
    def from_result(cls, lead_id: int, res: AggregateResult) -> "AggregateOut":
        ids: list[int | None] = list(res.comparable_ids) or [None] * len(res.comparables)
        return cls(
            lead_id=lead_id,
            comparables=[
                ComparableOut.from_domain(c, id=i, lead_id=lead_id) for c, i in zip(res.comparables, ids)
            ],
            count=res.count,
            avg_price=res.avg_price,
            avg_rental_yield=res.avg_rental_yield,
            price_range=_range(res.price_range),
            rental_yield_range=_range(res.rental_yield_range),
            confidence=res.confidence.value,
            search_radius=res.search_radius,
            last_fetched_at=res.last_fetched_at,
            credits_used=res.credits_used,
            cached=res.cached,
            stale=res.stale,
            excluded=res.excluded,
            message=res.message,
            warning=res.warning,
        )


class RefreshRequest(BaseModel):
    force_refresh: bool = False
    search_radius: float | None = Field(default=None, gt=0)
    max_results: int | None = Field(default=None, gt=0)
    max_age_months: int | None = Field(default=None, gt=0)


class ComparablesConfigIn(BaseModel):
    search_radius: float = Field(..., ge=0.25, le=10)
    max_results: int = Field(..., ge=3, le=20)
    max_age_months: int = Field(..., ge=6, le=24)
    bedroom_tolerance: int = Field(default=1, ge=0, le=2)
    min_confidence_score: float = Field(default=0.7, ge=0.0, le=1.0)


class ComparablesConfigOut(BaseModel):
    search_radius: float
    max_results: int
    max_age_months: int
    bedroom_tolerance: int
    min_confidence_score: float


class RentalEstimateIn(BaseModel):
    asking_price: float = Field(..., gt=0)
    property_type: str | None = None
    bedrooms: int | None = Field(default=None, ge=0)
    postcode: str | None = None


class RentalEstimateOut(BaseModel):
    monthly_rent: int
    annual_rent: int
    estimated_yield: float
    confidence: Confidence
    floor_area: int | None = None
    rent_per_sqft: float | None = None

    @classmethod
    def from_domain(cls, est: RentalEstimate, floor_area: int | None, rent_per_sqft: float | None) -> "RentalEstimateOut":
        return cls(
            monthly_rent=est.monthly_rent,
            annual_rent=est.annual_rent,
            estimated_yield=est.estimated_yield,
            confidence=est.confidence.value,
            floor_area=floor_area,
            rent_per_sqft=rent_per_sqft,
        )


class LeadRentalOut(RentalEstimateOut):
    lead_id: int
    written: bool


class FloorAreaOut(BaseModel):
    property_type: str | None = None
    bedrooms: int | None = None
    floor_area: int | None = None
