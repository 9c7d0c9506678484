# leadcomps/models.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .domain.types import ConfidenceLevel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


# -----------------------------
# Models
# -----------------------------
class Lead(Base):
    __tablename__ = "leads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    postcode: Mapped[str | None] = mapped_column(String(10), nullable=True, index=True)
    bedrooms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    property_type: Mapped[str | None] = mapped_column(String(40), nullable=True)
    asking_price: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Rental estimate (heuristic fallback, see domain.rental)
    estimated_monthly_rent: Mapped[float | None] = mapped_column(Float, nullable=True)
    estimated_annual_rent: Mapped[float | None] = mapped_column(Float, nullable=True)
    estimated_yield: Mapped[float | None] = mapped_column(Float, nullable=True)
    rental_confidence: Mapped[ConfidenceLevel | None] = mapped_column(Enum(ConfidenceLevel), nullable=True)
    estimated_floor_area: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rental_estimated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Comparables summary, rewritten on every successful refresh
    comparables_count: Mapped[int] = mapped_column(Integer, default=0)
    avg_comparable_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    comparables_confidence: Mapped[ConfidenceLevel | None] = mapped_column(Enum(ConfidenceLevel), nullable=True)
    comparables_fetched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    comparables_search_radius: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class ComparableSale(Base):
    __tablename__ = "comparable_sales"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    lead_id: Mapped[int] = mapped_column(ForeignKey("leads.id", ondelete="CASCADE"), index=True)

    address: Mapped[str] = mapped_column(String(255))
    postcode: Mapped[str | None] = mapped_column(String(10), nullable=True)
    sale_price: Mapped[float] = mapped_column(Float)
    sale_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    bedrooms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bathrooms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    property_type: Mapped[str | None] = mapped_column(String(40), nullable=True)
    floor_area: Mapped[float | None] = mapped_column(Float, nullable=True)  # sq ft
    distance: Mapped[float | None] = mapped_column(Float, nullable=True)  # miles
    days_on_market: Mapped[int | None] = mapped_column(Integer, nullable=True)
    price_reductions: Mapped[int] = mapped_column(Integer, default=0)

    # Rental data
    monthly_rent: Mapped[float | None] = mapped_column(Float, nullable=True)
    weekly_rent: Mapped[float | None] = mapped_column(Float, nullable=True)
    rental_yield: Mapped[float | None] = mapped_column(Float, nullable=True)
    rental_yield_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    rental_yield_max: Mapped[float | None] = mapped_column(Float, nullable=True)
    area_average_rent: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Source information
    listing_source: Mapped[str | None] = mapped_column(String(80), nullable=True)
    listing_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    listing_url_secondary: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_ref: Mapped[str | None] = mapped_column(String(120), nullable=True)

    confidence: Mapped[float] = mapped_column(Float, default=0.0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)


class ComparablesConfig(Base):
    """
    Saved search defaults. One row per owner; a missing row means settings defaults.
    """
    __tablename__ = "comparables_configs"
    __table_args__ = (UniqueConstraint("owner_id", name="uq_comparables_config_owner"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(80))

    search_radius: Mapped[float] = mapped_column(Float)
    max_results: Mapped[int] = mapped_column(Integer)
    max_age_months: Mapped[int] = mapped_column(Integer)
    bedroom_tolerance: Mapped[int] = mapped_column(Integer, default=1)
    min_confidence_score: Mapped[float] = mapped_column(Float, default=0.7)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class LeadEvent(Base):
    """
    Append-only audit trail (comparables_fetched, rental_estimated, ...).
    """
    __tablename__ = "lead_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    lead_id: Mapped[int] = mapped_column(ForeignKey("leads.id", ondelete="CASCADE"), index=True)
    event_type: Mapped[str] = mapped_column(String(80), index=True)

    # optional metadata: {"count": ..., "avg_price": ..., "credits_used": ...}
    details_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)
