# leadcomps/adapters/repos/comparables.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.parsing import ensure_aware_utc
from ...domain.types import Comparable, ComparableSummary
from ...models import ComparableSale, Lead


@dataclass(frozen=True)
class SnapshotMeta:
    count: int
    fetched_at: datetime | None
    search_radius: float | None = None


def to_domain(row: ComparableSale) -> Comparable:
    return Comparable(
        address=row.address,
        sale_price=row.sale_price,
        sale_date=ensure_aware_utc(row.sale_date),
        postcode=row.postcode,
        bedrooms=row.bedrooms,
        bathrooms=row.bathrooms,
        property_type=row.property_type,
        floor_area=row.floor_area,
        distance=row.distance,
        days_on_market=row.days_on_market,
        price_reductions=row.price_reductions or 0,
        monthly_rent=row.monthly_rent,
        weekly_rent=row.weekly_rent,
        rental_yield=row.rental_yield,
        rental_yield_min=row.rental_yield_min,
        rental_yield_max=row.rental_yield_max,
        area_average_rent=row.area_average_rent,
        listing_source=row.listing_source,
        listing_url=row.listing_url,
        listing_url_secondary=row.listing_url_secondary,
        source_ref=row.source_ref,
        confidence=row.confidence,
    )


def _to_row(lead_id: int, comp: Comparable, fetched_at: datetime) -> ComparableSale:
    return ComparableSale(
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
        monthly_rent=comp.monthly_rent,
        weekly_rent=comp.weekly_rent,
        rental_yield=comp.rental_yield,
        rental_yield_min=comp.rental_yield_min,
        rental_yield_max=comp.rental_yield_max,
        area_average_rent=comp.area_average_rent,
        listing_source=comp.listing_source,
        listing_url=comp.listing_url,
        listing_url_secondary=comp.listing_url_secondary,
        source_ref=comp.source_ref,
        confidence=comp.confidence if comp.confidence is not None else 0.0,
        fetched_at=fetched_at,
    )


class ComparableRepository:
    """
    Persistence adapter for comparable snapshots. Never commits: the unit of
    work owns the transaction, so delete + insert + summary land together.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def read_snapshot_meta(self, lead_id: int) -> SnapshotMeta:
        lead = await self.session.get(Lead, lead_id)
        count = (
            await self.session.execute(
                select(func.count()).select_from(ComparableSale).where(ComparableSale.lead_id == lead_id)
            )
        ).scalar_one()
        if lead is None:
            return SnapshotMeta(count=int(count), fetched_at=None)
        fetched_at = lead.comparables_fetched_at
        return SnapshotMeta(
            count=int(count),
            fetched_at=ensure_aware_utc(fetched_at) if fetched_at else None,
            search_radius=lead.comparables_search_radius,
        )

    async def list_for_lead(self, lead_id: int) -> list[ComparableSale]:
        q = (
            select(ComparableSale)
            .where(ComparableSale.lead_id == lead_id)
            .order_by(
                ComparableSale.distance.is_(None),
                ComparableSale.distance.asc(),
                ComparableSale.sale_date.desc(),
                ComparableSale.id.asc(),
            )
        )
        return list((await self.session.execute(q)).scalars().all())

    async def replace_comparables(
        self,
        lead_id: int,
        scored: Sequence[Comparable],
        *,
        fetched_at: datetime,
    ) -> list[ComparableSale]:
        """
        Delete every stored comparable for the lead, then insert `scored`.
        """
        await self.session.execute(delete(ComparableSale).where(ComparableSale.lead_id == lead_id))
        rows = [_to_row(lead_id, c, fetched_at) for c in scored]
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def write_lead_summary(
        self,
        lead_id: int,
        summary: ComparableSummary,
        *,
        fetched_at: datetime,
        search_radius: float,
    ) -> None:
        lead = await self.session.get(Lead, lead_id)
        if lead is None:
            raise LookupError(f"lead {lead_id} not found")
        lead.comparables_count = summary.count
        lead.avg_comparable_price = summary.avg_price
        lead.comparables_confidence = summary.confidence
        lead.comparables_fetched_at = fetched_at
        lead.comparables_search_radius = search_radius
        lead.updated_at = fetched_at
        await self.session.flush()

    async def list_recent(self, limit: int) -> list[ComparableSale]:
        q = select(ComparableSale).order_by(ComparableSale.fetched_at.desc(), ComparableSale.id.desc()).limit(limit)
        return list((await self.session.execute(q)).scalars().all())

    async def list_top_yields(self, limit: int) -> list[ComparableSale]:
        q = (
            select(ComparableSale)
            .where(ComparableSale.rental_yield.isnot(None))
            .order_by(ComparableSale.rental_yield.desc())
            .limit(limit)
        )
        return list((await self.session.execute(q)).scalars().all())
