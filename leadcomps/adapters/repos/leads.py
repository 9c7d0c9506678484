# leadcomps/adapters/repos/leads.py
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.postcodes import extract_postcode, normalize_postcode
from ...models import Lead


class LeadRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, lead_id: int) -> Lead | None:
        return await self.session.get(Lead, lead_id)

    async def create(
        self,
        *,
        address: Optional[str] = None,
        postcode: Optional[str] = None,
        bedrooms: Optional[int] = None,
        property_type: Optional[str] = None,
        asking_price: Optional[float] = None,
        **_extra: Any,  # swallow unexpected kwargs from seed payloads
    ) -> Lead:
        """
        Insert a Lead. The postcode falls back to one found in the address.
        """
        lead = Lead(
            address=address,
            postcode=normalize_postcode(postcode) or extract_postcode(address),
            bedrooms=bedrooms,
            property_type=property_type,
            asking_price=float(asking_price) if asking_price is not None else None,
            comparables_count=0,
        )
        self.session.add(lead)
        await self.session.flush()
        return lead

    async def list_missing_rent_estimate(self, *, limit: int | None = None) -> list[Lead]:
        q = (
            select(Lead)
            .where(Lead.estimated_monthly_rent.is_(None))
            .where(Lead.asking_price.isnot(None))
            .where(Lead.asking_price > 0)
            .order_by(Lead.id)
        )
        if limit is not None:
            q = q.limit(limit)
        return list((await self.session.execute(q)).scalars().all())
