# leadcomps/domain/types.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum


class ConfidenceLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass(frozen=True)
class ValueRange:
    min: float
    max: float


@dataclass(frozen=True)
class RentalEstimate:
    monthly_rent: int
    annual_rent: int
    estimated_yield: float
    confidence: ConfidenceLevel


@dataclass(frozen=True)
class Comparable:
    """
    A normalized comparable sale. `confidence` is None until scored.
    """
    address: str
    sale_price: float
    sale_date: datetime

    postcode: str | None = None
    bedrooms: int | None = None
    bathrooms: int | None = None
    property_type: str | None = None
    floor_area: float | None = None
    distance: float | None = None
    days_on_market: int | None = None
    price_reductions: int = 0

    monthly_rent: float | None = None
    weekly_rent: float | None = None
    rental_yield: float | None = None
    rental_yield_min: float | None = None
    rental_yield_max: float | None = None
    area_average_rent: float | None = None

    listing_source: str | None = None
    listing_url: str | None = None
    listing_url_secondary: str | None = None
    source_ref: str | None = None

    confidence: float | None = None

    def scored(self, confidence: float) -> "Comparable":
        return replace(self, confidence=confidence)


@dataclass(frozen=True)
class ComparableSummary:
    """
    Output of the aggregation engine. Numeric fields are None (not 0) when
    there is no data to aggregate.
    """
    count: int
    avg_price: int | None
    price_range: ValueRange | None
    avg_rental_yield: float | None
    rental_yield_range: ValueRange | None
    mean_confidence: float | None
    confidence: ConfidenceLevel


@dataclass
class AggregateResult:
    comparables: list[Comparable]
    count: int
    avg_price: int | None
    avg_rental_yield: float | None
    price_range: ValueRange | None
    rental_yield_range: ValueRange | None
    confidence: ConfidenceLevel
    search_radius: float | None
    last_fetched_at: datetime | None
    credits_used: int = 0
    cached: bool = False
    stale: bool = False
    excluded: int = 0
    message: str | None = None
    warning: str | None = None
    comparable_ids: list[int] = field(default_factory=list)
